"""
Disambiguation scoring for musubi.

Candidates for one token are ranked by an ordered comparison:

1. reading match: the token's reading against the candidate's readings,
   with the kind of form matched (exact, search-only, stem) nested inside
2. entry priority: frequency tier + kana-usage bonus + archaic penalty
   + POS agreement
3. ascending word id

Each component is computed separately and kept on the ScoredCandidate so
diagnostics can show why a candidate won. Weights live in musubi.constants.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from musubi.characters import as_hiragana, common_prefix, is_kana, strip_suffix
from musubi.constants import (
    ARCHAIC_PENALTY, FORM_EXACT_MATCH, FORM_SEARCH_ONLY_MATCH, FORM_STEM_MATCH,
    FREQUENCY_TIER_STEP, KANA_USAGE_BONUS, POS_MATCH_BONUS,
    READING_MATCH, READING_MATCH_WEIGHT, READING_MISMATCH, READING_UNKNOWN,
    TOTAL_READING_SCALE, UNCOMMON_TIER,
)
from musubi.lookup import Candidate
from musubi.tokenizer import PartOfSpeech, Token

logger = logging.getLogger(__name__)


# JMdict POS tag prefixes compatible with each token POS
POS_TAG_PREFIXES: Dict[PartOfSpeech, Tuple[str, ...]] = {
    PartOfSpeech.NOUN: ("n", "pn", "adj-no", "vs"),
    PartOfSpeech.PRONOUN: ("pn",),
    PartOfSpeech.NUMERAL: ("num", "n"),
    PartOfSpeech.VERB: ("v",),
    PartOfSpeech.I_ADJECTIVE: ("adj-i",),
    PartOfSpeech.NA_ADJECTIVE: ("adj-na",),
    PartOfSpeech.PARTICLE: ("prt",),
    PartOfSpeech.AUXILIARY: ("aux", "cop"),
    PartOfSpeech.ADVERB: ("adv",),
    PartOfSpeech.PRENOUN_ADJECTIVAL: ("adj-pn",),
    PartOfSpeech.INTERJECTION: ("int",),
    PartOfSpeech.CONJUNCTION: ("conj",),
    PartOfSpeech.PREFIX: ("pref", "n-pref"),
    PartOfSpeech.SUFFIX: ("suf", "n-suf"),
    PartOfSpeech.COUNTER: ("ctr",),
    PartOfSpeech.EXPRESSION: ("exp",),
}


def pos_compatible(pos: PartOfSpeech, tags: Iterable[str]) -> bool:
    prefixes = POS_TAG_PREFIXES.get(pos)
    if not prefixes:
        return False
    return any(tag.startswith(prefixes) for tag in tags)


@dataclass(frozen=True)
class ScoredCandidate:
    """A candidate with its score components."""
    candidate: Candidate
    reading_match: int
    frequency: int
    kana_bonus: int = 0
    archaic_penalty: int = 0
    pos_bonus: int = 0

    @property
    def word_id(self) -> int:
        return self.candidate.word_id

    @property
    def reading_index(self) -> int:
        return self.candidate.reading_index

    @property
    def priority(self) -> int:
        return self.frequency + self.kana_bonus + self.archaic_penalty + self.pos_bonus

    @property
    def total(self) -> int:
        """Single-number summary; orders like rank_key except for the word-id tie-break."""
        return self.reading_match * TOTAL_READING_SCALE + self.priority


# ============================================================================
# Reading Match
# ============================================================================

def _stem_reading_matches(token: Token, readings: Sequence[str]) -> bool:
    """
    Compare the token's stem reading with each reading's stem.

    For 開いた (dict 開く, reading ヒライタ) the stem is 開, its reading
    ひら, and ひらく matches since ひらく minus く is ひら.
    """
    stem = common_prefix(token.surface, token.dictionary_form)
    stem_reading = strip_suffix(as_hiragana(token.reading), token.surface[len(stem):])
    if stem_reading is None:
        return False
    dict_tail = token.dictionary_form[len(stem):]
    return any(strip_suffix(r, dict_tail) == stem_reading for r in readings)


def reading_match_level(token: Token, candidate: Candidate) -> int:
    """READING_MATCH, READING_UNKNOWN (token has no reading) or READING_MISMATCH."""
    if not token.reading:
        return READING_UNKNOWN
    readings = candidate.kana_readings
    if as_hiragana(token.reading) in readings:
        return READING_MATCH
    if token.is_deconjugated and _stem_reading_matches(token, readings):
        return READING_MATCH
    return READING_MISMATCH


def form_match_level(candidate: Candidate) -> int:
    if candidate.via_dictionary_form:
        return FORM_STEM_MATCH
    if candidate.form_type.is_search_only:
        return FORM_SEARCH_ONLY_MATCH
    return FORM_EXACT_MATCH


def reading_match_score(token: Token, candidate: Candidate) -> int:
    return READING_MATCH_WEIGHT * reading_match_level(token, candidate) + form_match_level(candidate)


# ============================================================================
# Entry Priority
# ============================================================================

def frequency_score(candidate: Candidate) -> int:
    return FREQUENCY_TIER_STEP * (UNCOMMON_TIER - candidate.frequency_tier)


def kana_usage_bonus(token: Token, candidate: Candidate) -> int:
    if is_kana(token.surface) and candidate.usually_kana:
        return KANA_USAGE_BONUS
    return 0


def archaic_penalty(candidate: Candidate) -> int:
    return ARCHAIC_PENALTY if candidate.fully_archaic else 0


def pos_bonus(token: Token, candidate: Candidate) -> int:
    return POS_MATCH_BONUS if pos_compatible(token.pos, candidate.pos_tags) else 0


# ============================================================================
# Ranking
# ============================================================================

def score_candidate(token: Token, candidate: Candidate) -> ScoredCandidate:
    return ScoredCandidate(
        candidate=candidate,
        reading_match=reading_match_score(token, candidate),
        frequency=frequency_score(candidate),
        kana_bonus=kana_usage_bonus(token, candidate),
        archaic_penalty=archaic_penalty(candidate),
        pos_bonus=pos_bonus(token, candidate),
    )


def rank_key(scored: ScoredCandidate) -> Tuple[int, int, int]:
    """Sort key, higher is better: reading match, then priority, then lower word id."""
    return (scored.reading_match, scored.priority, -scored.word_id)


def rank_candidates(token: Token, candidates: Iterable[Candidate]) -> List[ScoredCandidate]:
    """Score candidates and return them best first."""
    scored = [score_candidate(token, c) for c in candidates]
    scored.sort(key=rank_key, reverse=True)
    return scored


def select_best(token: Token, candidates: Sequence[Candidate]) -> Optional[ScoredCandidate]:
    """Pick the best candidate for a token, or None when there are none."""
    if not candidates:
        return None
    ranked = rank_candidates(token, candidates)
    best = ranked[0]
    if logger.isEnabledFor(logging.DEBUG):
        for s in ranked:
            logger.debug(
                "  %s %d/%d reading=%d freq=%d kana=%d arch=%d pos=%d",
                token.surface, s.word_id, s.reading_index, s.reading_match,
                s.frequency, s.kana_bonus, s.archaic_penalty, s.pos_bonus,
            )
    return best
