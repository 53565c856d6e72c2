"""
Character handling and kana conversion for musubi.

Provides character classification and hiragana/katakana conversion used
when comparing tokenizer readings against dictionary forms.
Width folding and romaji conversion are done by the caller before parsing.
"""

import re
from typing import Dict, Optional


# ============================================================================
# Kana Tables
# ============================================================================

# Katakana ァ..ヶ and the iteration marks ヽヾ sit 0x60 above their hiragana.
KANA_OFFSET = 0x60

KATAKANA_TO_HIRAGANA: Dict[int, int] = {
    code: code - KANA_OFFSET
    for code in list(range(ord("ァ"), ord("ヶ") + 1)) + [ord("ヽ"), ord("ヾ")]
}


# ============================================================================
# Regular Expressions
# ============================================================================

KATAKANA_REGEX = r"[ァ-ヺヽヾー]"
HIRAGANA_REGEX = r"[ぁ-ゖゝゞー]"
KANA_REGEX = f"(?:{KATAKANA_REGEX}|{HIRAGANA_REGEX})"
NUMERIC_REGEX = r"[0-9０-９〇一二三四五六七八九十百千万億兆零壱弐参]"
PUNCTUATION_REGEX = r"[、。，．,.！？!?…‥・：；]"

_KANA_WORD = re.compile(rf"^{KANA_REGEX}+$")
_NUMERIC_HEAD = re.compile(NUMERIC_REGEX)
_PUNCTUATION_WORD = re.compile(rf"^{PUNCTUATION_REGEX}+$")


# ============================================================================
# Character Testing Functions
# ============================================================================

def is_kana(word: str) -> bool:
    """Check if word consists entirely of kana (hiragana or katakana)."""
    return bool(word) and bool(_KANA_WORD.match(word))


def starts_with_numeral(word: str) -> bool:
    """Check if word starts with an arabic or kanji numeral."""
    return bool(word) and bool(_NUMERIC_HEAD.match(word))


def is_punctuation(word: str) -> bool:
    return bool(word) and bool(_PUNCTUATION_WORD.match(word))


# ============================================================================
# Kana Conversion
# ============================================================================

def as_hiragana(text: str) -> str:
    """
    Convert katakana to hiragana.

    The long vowel mark and katakana without a hiragana counterpart
    (ヷ..ヺ) are kept as they are, as is every non-kana character.
    """
    return text.translate(KATAKANA_TO_HIRAGANA)


def common_prefix(a: str, b: str) -> str:
    """Longest common prefix of two strings."""
    n = 0
    for x, y in zip(a, b):
        if x != y:
            break
        n += 1
    return a[:n]


def strip_suffix(word: str, suffix: str) -> Optional[str]:
    """
    Remove suffix from word, comparing in hiragana.

    Returns None when word does not end with suffix.
    """
    if not suffix:
        return word
    if as_hiragana(word).endswith(as_hiragana(suffix)):
        return word[:len(word) - len(suffix)]
    return None
