"""
Parser diagnostics for musubi.

A `ParserDiagnostics` object is created by the caller and passed by reference
through one parse. The pipeline appends the raw tokenizer output and one
`TokenStage` record per rewriting stage (token counts plus the merges,
splits and reading overrides it performed). It never influences the result.

`analyse_failure` classifies a segmentation mismatch against this record and
suggests the merge-table line or stage to look at. It is used by the
regression runner (musubi.regression) and the `musubi diagnose` command.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

MERGE = "merge"
SPLIT = "split"
READING = "reading"


# ============================================================================
# Records
# ============================================================================

@dataclass
class DiagnosticToken:
    """Snapshot of one tokenizer token."""
    surface: str
    offset: int
    part_of_speech: str
    reading: str
    dictionary_form: str

    @classmethod
    def from_token(cls, token) -> "DiagnosticToken":
        return cls(
            surface=token.surface,
            offset=token.offset,
            part_of_speech="-".join(token.pos_detail) or token.pos.value,
            reading=token.reading,
            dictionary_form=token.dictionary_form,
        )


@dataclass
class TokenizerDiagnostics:
    tokens: List[DiagnosticToken] = field(default_factory=list)

    @property
    def surfaces(self) -> List[str]:
        return [t.surface for t in self.tokens]


@dataclass
class TokenModification:
    """One change made by a stage."""
    type: str
    input_tokens: List[str]
    output_token: str
    detail: Optional[str] = None

    def describe(self) -> str:
        text = f"{self.type}: [{', '.join(self.input_tokens)}] → '{self.output_token}'"
        if self.detail:
            text += f" ({self.detail})"
        return text


@dataclass
class TokenStage:
    """Record of one pipeline stage."""
    stage_name: str
    input_token_count: int
    output_token_count: int = 0
    modifications: List[TokenModification] = field(default_factory=list)

    def merge(self, input_tokens: Iterable[str], output_token: str, detail: Optional[str] = None):
        self.modifications.append(TokenModification(MERGE, list(input_tokens), output_token, detail))

    def split(self, input_token: str, output_tokens: Iterable[str], detail: Optional[str] = None):
        for output in output_tokens:
            self.modifications.append(TokenModification(SPLIT, [input_token], output, detail))

    def reading(self, surface: str, old: str, new: str, rule: str):
        self.modifications.append(
            TokenModification(READING, [f"{surface}/{old}"], f"{surface}/{new}", rule)
        )

    def finish(self, tokens: Sequence) -> "TokenStage":
        self.output_token_count = len(tokens)
        return self

    @property
    def merges(self) -> List[TokenModification]:
        return [m for m in self.modifications if m.type == MERGE]


@dataclass
class TokenResolution:
    """Outcome of candidate resolution and scoring for one token."""
    surface: str
    offset: int
    candidate_count: int
    word_id: Optional[int] = None
    reading_index: Optional[int] = None
    score: Optional[int] = None


@dataclass
class ParserDiagnostics:
    """Caller-owned accumulator for one parse."""
    input_text: str = ""
    tokenizer: Optional[TokenizerDiagnostics] = None
    token_stages: List[TokenStage] = field(default_factory=list)
    resolutions: List[TokenResolution] = field(default_factory=list)

    def record_tokenizer(self, tokens: Sequence) -> None:
        self.tokenizer = TokenizerDiagnostics([DiagnosticToken.from_token(t) for t in tokens])

    def begin_stage(self, name: str, tokens: Sequence) -> TokenStage:
        stage = TokenStage(stage_name=name, input_token_count=len(tokens))
        self.token_stages.append(stage)
        return stage

    def record_resolution(self, token, candidate_count: int, best=None) -> None:
        resolution = TokenResolution(token.surface, token.offset, candidate_count)
        if best is not None:
            resolution.word_id = best.word_id
            resolution.reading_index = best.reading_index
            resolution.score = best.total
        self.resolutions.append(resolution)

    def format(self) -> str:
        """Human-readable dump used by the CLI."""
        lines = [f"Input: {self.input_text}"]
        if self.tokenizer is not None:
            lines.append("Tokenizer:")
            for t in self.tokenizer.tokens:
                lines.append(
                    f"  {t.offset:>4} {t.surface}\t{t.part_of_speech}\t{t.reading}\t{t.dictionary_form}"
                )
        for stage in self.token_stages:
            lines.append(
                f"Stage {stage.stage_name}: {stage.input_token_count} → {stage.output_token_count}"
            )
            for mod in stage.modifications:
                lines.append(f"  {mod.describe()}")
        if self.resolutions:
            lines.append("Resolution:")
            for r in self.resolutions:
                if r.word_id is None:
                    lines.append(f"  {r.surface}: unresolved")
                else:
                    lines.append(
                        f"  {r.surface}: {r.word_id}/{r.reading_index} "
                        f"(score {r.score}, {r.candidate_count} candidates)"
                    )
        return "\n".join(lines)


# ============================================================================
# Failure Analysis
# ============================================================================

OVER_SEGMENTATION = "OverSegmentation"
UNDER_SEGMENTATION = "UnderSegmentation"
TOKEN_MISMATCH = "TokenMismatch"


@dataclass
class FailureAnalysis:
    type: str
    description: str
    probable_cause: Optional[str] = None
    suggested_fix: Optional[str] = None


def analyse_failure(
    expected: Sequence[str],
    actual: Sequence[str],
    diagnostics: ParserDiagnostics,
) -> FailureAnalysis:
    """
    Classify why a segmentation differs from the expected one.

    Args:
        expected: Expected token surfaces.
        actual: Surfaces the parser produced.
        diagnostics: Diagnostics recorded during the parse.

    Returns:
        FailureAnalysis with type, probable cause and a suggested fix.
    """
    if len(actual) > len(expected):
        return FailureAnalysis(
            type=OVER_SEGMENTATION,
            description="Parser split tokens that should remain combined",
            probable_cause=_over_segmentation_cause(expected, actual, diagnostics),
            suggested_fix=_suggest_combine_fix(expected, actual),
        )
    if len(actual) < len(expected):
        return FailureAnalysis(
            type=UNDER_SEGMENTATION,
            description="Parser combined tokens that should be separate",
            probable_cause=_under_segmentation_cause(expected, actual, diagnostics),
            suggested_fix=_suggest_split_fix(expected, actual, diagnostics),
        )
    return FailureAnalysis(
        type=TOKEN_MISMATCH,
        description="Token count matches but content differs",
        probable_cause=_mismatch_cause(expected, actual),
        suggested_fix=_suggest_mismatch_fix(expected, actual, diagnostics),
    )


def _split_pieces(token: str, pieces: Sequence[str]) -> List[str]:
    """Find a run of two or more consecutive pieces that concatenate to token."""
    for i in range(len(pieces)):
        acc = ""
        for j in range(i, len(pieces)):
            acc += pieces[j]
            if acc == token:
                if j > i:
                    return list(pieces[i:j + 1])
                break
            if not token.startswith(acc):
                break
    return []


def _over_segmentation_cause(expected, actual, diagnostics: ParserDiagnostics) -> str:
    raw = diagnostics.tokenizer.surfaces if diagnostics.tokenizer else []
    for token in expected:
        pieces = _split_pieces(token, actual)
        if pieces and _split_pieces(token, raw) == pieces:
            return f"Tokenizer split '{token}' into [{', '.join(pieces)}]"

    for stage in diagnostics.token_stages:
        if stage.input_token_count < stage.output_token_count:
            return f"Stage '{stage.stage_name}' split tokens"

    return "Unknown - examine tokenizer output and processing stages"


def _under_segmentation_cause(expected, actual, diagnostics: ParserDiagnostics) -> str:
    unexpected = set(actual) - set(expected)
    fallback = None
    for stage in diagnostics.token_stages:
        for merge in stage.merges:
            text = (f"Stage '{stage.stage_name}' merged "
                    f"[{', '.join(merge.input_tokens)}] → '{merge.output_token}'")
            if merge.output_token in unexpected:
                return text
            fallback = fallback or text
    return fallback or "Unknown - examine processing stages for unexpected merges"


def _mismatch_cause(expected, actual) -> str:
    for i, (e, a) in enumerate(zip(expected, actual)):
        if e != a:
            return f"Token at index {i}: expected '{e}' but got '{a}'"
    return "Unknown mismatch"


def _suggest_combine_fix(expected, actual) -> str:
    lines = []
    actual_idx = 0
    for token in expected:
        if actual_idx >= len(actual):
            break
        if actual[actual_idx] == token:
            actual_idx += 1
            continue

        combined = ""
        to_merge = []
        while actual_idx < len(actual) and len(combined) < len(token):
            combined += actual[actual_idx]
            to_merge.append(actual[actual_idx])
            actual_idx += 1

        if combined == token and len(to_merge) > 1:
            if len(to_merge) in (2, 3):
                surfaces = ", ".join(f'"{s}"' for s in to_merge)
                lines.append("# Add to musubi.combiner.SPECIAL_CASES:")
                lines.append(f"MergeRule(({surfaces},)),")
            else:
                lines.append(f"# Need custom logic to combine: [{', '.join(to_merge)}] → '{token}'")

    return "\n".join(lines) if lines else "No specific fix suggested - examine diagnostics"


def _suggest_split_fix(expected, actual, diagnostics: ParserDiagnostics) -> str:
    lines = []
    expected_idx = 0
    for token in actual:
        if expected_idx >= len(expected):
            break
        if token == expected[expected_idx]:
            expected_idx += 1
            continue

        remaining = token
        parts = []
        while expected_idx < len(expected) and remaining.startswith(expected[expected_idx]):
            parts.append(expected[expected_idx])
            remaining = remaining[len(expected[expected_idx]):]
            expected_idx += 1

        if len(parts) > 1 and not remaining:
            lines.append(f"# Actual '{token}' should be split into: [{', '.join(parts)}]")
            lines.append("# Check which combining stage merged these tokens incorrectly")
            for stage in diagnostics.token_stages:
                if any(m.output_token == token for m in stage.merges):
                    lines.append(f"# Caused by stage: {stage.stage_name}")
                    break

    return "\n".join(lines) if lines else "No specific fix suggested - examine diagnostics"


def _suggest_mismatch_fix(expected, actual, diagnostics: ParserDiagnostics) -> str:
    lines = []
    raw = diagnostics.tokenizer.tokens if diagnostics.tokenizer else []
    for i, (e, a) in enumerate(zip(expected, actual)):
        if e == a:
            continue
        lines.append(f"# Token {i}: '{a}' should be '{e}'")
        source = next((t for t in raw if t.surface == a), None)
        if source is not None:
            lines.append(
                f"# Tokenizer parsed as: {source.part_of_speech} (dict: {source.dictionary_form})"
            )
    return "\n".join(lines) if lines else "No specific fix suggested"
