"""
Parsing pipeline for musubi.

tokenize -> compound splits -> special-case merges -> inflection grouping
-> reading overrides -> candidate resolution -> scoring. Tokens without a
dictionary candidate are dropped, so the result covers only recognized
words; use musubi.output.reconstruct_segments to rebuild the full text
around them.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from musubi.combiner import (
    COMPOUND_SPLITS, MergeRule, SplitRule,
    combine_inflections, combine_special_cases, split_compounds,
)
from musubi.diagnostics import ParserDiagnostics
from musubi.lookup import DictionaryStore, resolve_candidates
from musubi.overrides import ReadingOverride, apply_reading_overrides
from musubi.scoring import select_best
from musubi.tokenizer import Token, Tokenizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedWord:
    """A recognized span of the input bound to a dictionary identity."""
    original_text: str
    word_id: int
    reading_index: int


Stage = Callable[..., List[Token]]


class Parser:
    """
    Text to ResolvedWord pipeline.

    A Parser holds no per-call state; one instance can serve any number of
    parse calls as long as its tokenizer and store can.
    """

    def __init__(
        self,
        tokenizer: Tokenizer,
        store: DictionaryStore,
        special_cases: Optional[Sequence[MergeRule]] = None,
        overrides: Optional[Sequence[ReadingOverride]] = None,
        compound_splits: Sequence[SplitRule] = COMPOUND_SPLITS,
    ):
        self.tokenizer = tokenizer
        self.store = store
        self.compound_splits = compound_splits
        self.special_cases = special_cases
        self.overrides = overrides

    @property
    def stages(self) -> List[Tuple[str, Stage]]:
        return [
            ("compound-splits", lambda tokens, stage: split_compounds(
                tokens, rules=self.compound_splits, stage=stage)),
            ("special-cases", lambda tokens, stage: combine_special_cases(
                tokens, rules=self.special_cases, stage=stage)),
            ("inflections", lambda tokens, stage: combine_inflections(tokens, stage=stage)),
            ("reading-overrides", lambda tokens, stage: apply_reading_overrides(
                tokens, rules=self.overrides, stage=stage)),
        ]

    def tokens(self, text: str, diagnostics: Optional[ParserDiagnostics] = None) -> List[Token]:
        """Tokenize and run the rewriting stages, without resolution."""
        if not text or not text.strip():
            return []

        tokens = self.tokenizer.tokenize(text)
        if diagnostics is not None:
            diagnostics.input_text = text
            diagnostics.record_tokenizer(tokens)

        for name, run in self.stages:
            stage = diagnostics.begin_stage(name, tokens) if diagnostics is not None else None
            tokens = run(tokens, stage)
            if stage is not None:
                stage.finish(tokens)
            logger.debug("Stage %s: %s", name, [t.surface for t in tokens])
        return tokens

    def parse(self, text: str, diagnostics: Optional[ParserDiagnostics] = None) -> List[ResolvedWord]:
        """
        Parse text into resolved words.

        Args:
            text: Normalized Japanese text.
            diagnostics: Optional accumulator filled in during the parse.

        Returns:
            Resolved words in input order. Empty for empty or
            whitespace-only input.

        Raises:
            TokenizerError: The tokenizer failed.
            DictionaryStoreError: The dictionary could not be queried.
        """
        words: List[ResolvedWord] = []
        for token in self.tokens(text, diagnostics):
            candidates = resolve_candidates(token, self.store)
            best = select_best(token, candidates)
            if diagnostics is not None:
                diagnostics.record_resolution(token, len(candidates), best)
            if best is None:
                continue
            words.append(ResolvedWord(token.surface, best.word_id, best.reading_index))
        return words


def parse_text(
    text: str,
    tokenizer: Tokenizer,
    store: DictionaryStore,
    diagnostics: Optional[ParserDiagnostics] = None,
) -> List[ResolvedWord]:
    """Parse text with a one-off Parser."""
    return Parser(tokenizer, store).parse(text, diagnostics)
