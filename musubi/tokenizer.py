"""
Tokenizer adapter for musubi.

Wraps the external morphological tokenizer (SudachiPy) and normalizes its
morphemes into immutable `Token` objects. No decision logic lives here:
the adapter only maps fields and checks that the output covers the input
without gaps.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from musubi import settings
from musubi.errors import TokenizerError

logger = logging.getLogger(__name__)


class PartOfSpeech(str, Enum):
    """Coarse part of speech assigned to a token."""
    NOUN = "Noun"
    PRONOUN = "Pronoun"
    NUMERAL = "Numeral"
    VERB = "Verb"
    I_ADJECTIVE = "IAdjective"
    NA_ADJECTIVE = "NaAdjective"
    PARTICLE = "Particle"
    AUXILIARY = "Auxiliary"
    ADVERB = "Adverb"
    PRENOUN_ADJECTIVAL = "PrenounAdjectival"
    INTERJECTION = "Interjection"
    CONJUNCTION = "Conjunction"
    PREFIX = "Prefix"
    SUFFIX = "Suffix"
    COUNTER = "Counter"
    SYMBOL = "Symbol"
    WHITESPACE = "Whitespace"
    EXPRESSION = "Expression"
    UNKNOWN = "Unknown"


# Sudachi top-level POS -> PartOfSpeech
SUDACHI_POS_MAP: Dict[str, PartOfSpeech] = {
    "名詞": PartOfSpeech.NOUN,
    "代名詞": PartOfSpeech.PRONOUN,
    "動詞": PartOfSpeech.VERB,
    "形容詞": PartOfSpeech.I_ADJECTIVE,
    "形状詞": PartOfSpeech.NA_ADJECTIVE,
    "助詞": PartOfSpeech.PARTICLE,
    "助動詞": PartOfSpeech.AUXILIARY,
    "副詞": PartOfSpeech.ADVERB,
    "連体詞": PartOfSpeech.PRENOUN_ADJECTIVAL,
    "感動詞": PartOfSpeech.INTERJECTION,
    "接続詞": PartOfSpeech.CONJUNCTION,
    "接頭辞": PartOfSpeech.PREFIX,
    "接尾辞": PartOfSpeech.SUFFIX,
    "補助記号": PartOfSpeech.SYMBOL,
    "記号": PartOfSpeech.SYMBOL,
    "空白": PartOfSpeech.WHITESPACE,
}

# POS that never reach the dictionary
NON_WORD_POS = frozenset({PartOfSpeech.SYMBOL, PartOfSpeech.WHITESPACE})


def map_part_of_speech(pos: Sequence[str]) -> PartOfSpeech:
    """
    Map a Sudachi POS tuple to a PartOfSpeech.

    Numerals (名詞-数詞) and counters (…-助数詞) get their own category since
    the reading-override predicates look for them.
    """
    if not pos:
        return PartOfSpeech.UNKNOWN
    main = pos[0]
    if main == "名詞" and len(pos) > 1 and pos[1] == "数詞":
        return PartOfSpeech.NUMERAL
    if main == "接尾辞" and "助数詞" in pos:
        return PartOfSpeech.COUNTER
    return SUDACHI_POS_MAP.get(main, PartOfSpeech.UNKNOWN)


@dataclass(frozen=True)
class Token:
    """
    A tokenizer-produced unit.

    Attributes:
        surface: Text as it appears in the input.
        offset: Start position in the input (characters).
        pos: Coarse part of speech.
        reading: Tokenizer reading hypothesis (katakana, may be empty).
        dictionary_form: Dictionary (stem) form; equals surface for
            uninflected words.
        pos_detail: Raw POS tuple from the tokenizer.
    """
    surface: str
    offset: int
    pos: PartOfSpeech
    reading: str = ""
    dictionary_form: str = ""
    pos_detail: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def length(self) -> int:
        return len(self.surface)

    @property
    def end(self) -> int:
        return self.offset + len(self.surface)

    @property
    def is_deconjugated(self) -> bool:
        """True when the surface differs from the dictionary form."""
        return bool(self.dictionary_form) and self.dictionary_form != self.surface

    def has_detail(self, *tags: str) -> bool:
        return any(tag in self.pos_detail for tag in tags)


def token_from_morpheme(morpheme: Any) -> Token:
    """Convert a SudachiPy Morpheme into a Token."""
    pos_detail = tuple(p for p in morpheme.part_of_speech() if p and p != "*")
    return Token(
        surface=morpheme.surface(),
        offset=morpheme.begin(),
        pos=map_part_of_speech(pos_detail),
        reading=morpheme.reading_form() or "",
        dictionary_form=morpheme.dictionary_form() or morpheme.surface(),
        pos_detail=pos_detail,
    )


def check_coverage(text: str, tokens: Sequence[Token]) -> None:
    """
    Verify that tokens cover text in order with no gaps or overlaps.

    Raises:
        TokenizerError: If the token list does not tile the input.
    """
    position = 0
    for token in tokens:
        if token.offset != position or text[token.offset:token.end] != token.surface:
            raise TokenizerError(
                f"tokenizer output is not contiguous at offset {position}: "
                f"got {token.surface!r} at {token.offset}"
            )
        position = token.end
    if position != len(text):
        raise TokenizerError(
            f"tokenizer output stops at offset {position} of {len(text)}"
        )


# ============================================================================
# Tokenizer Interface
# ============================================================================

class Tokenizer(ABC):
    """External tokenizer interface: raw text -> ordered, gapless tokens."""

    @abstractmethod
    def tokenize(self, text: str) -> List[Token]:
        """Tokenize text. Raises TokenizerError on failure."""


class SudachiTokenizer(Tokenizer):
    """
    SudachiPy-backed tokenizer.

    The Sudachi dictionary is loaded on first use and shared by every call
    made through this instance.
    """

    def __init__(
        self,
        dict_type: Optional[str] = None,
        split_mode: Optional[str] = None,
    ):
        self.dict_type = dict_type or settings.SUDACHI_DICT
        self.split_mode = (split_mode or settings.SPLIT_MODE).upper()
        self._tokenizer = None
        self._mode = None

    def _ensure_tokenizer(self):
        if self._tokenizer is not None:
            return self._tokenizer
        try:
            from sudachipy import Dictionary, SplitMode

            modes = {"A": SplitMode.A, "B": SplitMode.B, "C": SplitMode.C}
            if self.split_mode not in modes:
                raise ValueError(f"unknown split mode {self.split_mode!r}")
            self._mode = modes[self.split_mode]
            self._tokenizer = Dictionary(dict=self.dict_type).create(mode=self._mode)
        except Exception as e:
            raise TokenizerError(f"could not load Sudachi dictionary {self.dict_type!r}: {e}") from e
        logger.debug("Loaded Sudachi dictionary %s (mode %s)", self.dict_type, self.split_mode)
        return self._tokenizer

    def tokenize(self, text: str) -> List[Token]:
        if not text:
            return []
        tokenizer = self._ensure_tokenizer()
        try:
            morphemes = tokenizer.tokenize(text, self._mode)
            tokens = [token_from_morpheme(m) for m in morphemes]
        except Exception as e:
            raise TokenizerError(f"Sudachi failed on input of length {len(text)}: {e}") from e
        check_coverage(text, tokens)
        return tokens
