"""
Consolidated constants for musubi.

This module provides a single source of truth for:
- Interned JMdict POS and usage tag strings
- Frequency tier bands
- Disambiguation score weights

---

CALIBRATION NOTE
================
The score weights below are empirical. They are tuned against the regression
corpora replayed by `musubi diagnose` and `musubi forms`; only their relative
order of magnitude is load-bearing:

- TOTAL_READING_SCALE keeps reading match dominant (it is compared
  first, and the reported total must order the same way).
- ARCHAIC_PENALTY outweighs any sum of frequency, kana and POS bonuses.
- KANA_USAGE_BONUS beats up to two frequency bands, never a reading mismatch.

---
"""

import sys
from typing import Dict, Tuple


# ============================================================================
# Interned POS Tags (for memory efficiency)
# ============================================================================

POS_TAGS: Dict[str, str] = {
    tag: sys.intern(tag) for tag in [
        'n', 'n-adv', 'n-pref', 'n-suf', 'n-t', 'n-pr', 'num', 'ctr', 'pn',
        'v1', 'v1-s', 'v5aru', 'v5b', 'v5g', 'v5k', 'v5k-s', 'v5m', 'v5n',
        'v5r', 'v5r-i', 'v5s', 'v5t', 'v5u', 'v5u-s', 'v5uru', 'vk', 'vs',
        'vs-i', 'vs-s', 'vz', 'vi', 'vt', 'vs-c',
        'adj-i', 'adj-ix', 'adj-na', 'adj-no', 'adj-pn', 'adj-t', 'adj-f',
        'adv', 'adv-to', 'aux', 'aux-v', 'aux-adj',
        'conj', 'cop', 'exp', 'int', 'pref', 'prt', 'suf', 'unc',
    ]
}

# Sense usage markers ("misc" tags)
MISC_USUALLY_KANA = sys.intern('uk')
MISC_ARCHAIC = sys.intern('arch')

# Sense property tag names (sense_prop.tag)
PROP_POS = 'pos'
PROP_MISC = 'misc'
PROP_STAGK = 'stagk'
PROP_STAGR = 'stagr'


def intern_pos(pos: str) -> str:
    """Get interned version of POS tag for memory efficiency."""
    return POS_TAGS.get(pos, pos)


# ============================================================================
# Frequency Tiers
# ============================================================================
# `common` follows the JMdict priority markers as stored per form:
#   None -> no priority marker (uncommon)
#   0    -> on a priority list (ichi1/news1/spec1/gai1) without an nf rank
#   n    -> nfNN rank (1 = most frequent 500 words, up to 48)
# Lower tier = more common. nf01 and nf02 share the top band.

# (upper nf bound inclusive, tier)
NF_TIER_BANDS: Tuple[Tuple[int, int], ...] = (
    (2, 0),
    (12, 1),
    (24, 2),
    (48, 3),
)

UNRANKED_COMMON_TIER = 2
UNCOMMON_TIER = 4


# ============================================================================
# Score Weights
# ============================================================================

# Reading-match levels (compared first)
READING_MISMATCH = 0
READING_UNKNOWN = 1
READING_MATCH = 2

# Form-match levels, nested inside a reading-match level
FORM_STEM_MATCH = 0
FORM_SEARCH_ONLY_MATCH = 1
FORM_EXACT_MATCH = 2

READING_MATCH_WEIGHT = 10

# Entry priority components
FREQUENCY_TIER_STEP = 10
KANA_USAGE_BONUS = 25
ARCHAIC_PENALTY = -200
POS_MATCH_BONUS = 5

# Multiplier that keeps reading match dominant inside ScoredCandidate.total
TOTAL_READING_SCALE = 1000
