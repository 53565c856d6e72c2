"""
Special-case combiner for musubi.

Rewrites the tokenizer's token stream before dictionary lookup:

1. Compound splits: katakana loanword compounds the tokenizer keeps whole
   (メニュー表) are split so the kanji tail is looked up on its own.
2. Fixed-sequence merges: curated 2- and 3-token sequences the tokenizer
   over-splits (greetings, numeral + 日, grammaticalised expressions) are
   merged into one token. The table is plain data; one matcher handles
   every arity, and a rule may carry a context guard.
3. Inflection grouping: a verb or i-adjective absorbs the auxiliaries and
   conjunctive particles that inflect it, keeping the head's dictionary form
   so the resolver can match the base entry.

Contextual reading overrides run after these stages and live in
musubi.overrides.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from musubi.characters import is_kana, strip_suffix
from musubi.diagnostics import TokenStage
from musubi.overrides import Predicate, TokenWindow, not_, preceded_by_pos
from musubi.tokenizer import PartOfSpeech, Token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CombinedToken(Token):
    """A token produced by merging consecutive tokens."""
    constituents: Tuple[Token, ...] = ()
    rule: str = ""


# ============================================================================
# Compound Splits
# ============================================================================

@dataclass(frozen=True)
class SplitRule:
    """
    Split a noun made of a kana head and a fixed kanji tail.

    Attributes:
        suffix: Kanji tail split off as its own token.
        reading: Reading of the tail (katakana).
    """
    suffix: str
    reading: str

    @property
    def name(self) -> str:
        return f"kana+{self.suffix}"

    def matches(self, token: Token) -> bool:
        if token.pos != PartOfSpeech.NOUN or not token.surface.endswith(self.suffix):
            return False
        return is_kana(token.surface[:-len(self.suffix)])


COMPOUND_SPLITS: Tuple[SplitRule, ...] = (
    # メニュー表, リスト表: the chart sense of 表
    SplitRule("表", "ヒョウ"),
)


def split_token(token: Token, rule: SplitRule) -> Tuple[Token, Token]:
    """Split token into its kana head and the rule's kanji tail."""
    head_surface = token.surface[:-len(rule.suffix)]
    head_reading = strip_suffix(token.reading, rule.reading) or head_surface
    head = dataclasses.replace(
        token, surface=head_surface, reading=head_reading, dictionary_form=head_surface,
    )
    tail = dataclasses.replace(
        token, surface=rule.suffix, offset=token.offset + len(head_surface),
        reading=rule.reading, dictionary_form=rule.suffix,
    )
    return head, tail


def split_compounds(
    tokens: Sequence[Token],
    rules: Sequence[SplitRule] = COMPOUND_SPLITS,
    stage: Optional[TokenStage] = None,
) -> List[Token]:
    """Apply the compound split table; unmatched tokens pass through."""
    result: List[Token] = []
    for token in tokens:
        rule = next((r for r in rules if r.matches(token)), None)
        if rule is None:
            result.append(token)
            continue

        parts = split_token(token, rule)
        logger.debug("Split %s -> %s", token.surface, [p.surface for p in parts])
        if stage is not None:
            stage.split(token.surface, [p.surface for p in parts], rule.name)
        result.extend(parts)
    return result


# ============================================================================
# Fixed-Sequence Merge Table
# ============================================================================

@dataclass(frozen=True)
class MergeRule:
    """
    A token-surface sequence that merges into one token.

    Attributes:
        surfaces: Consecutive token surfaces (2 or 3).
        pos: POS of the merged token.
        reading: Reading of the merged token (katakana). Defaults to the
            concatenation of the constituent readings.
        dictionary_form: Dictionary form of the merged token. Defaults to
            its surface.
        when: Context guard evaluated on the first token; None always merges.
    """
    surfaces: Tuple[str, ...]
    pos: PartOfSpeech = PartOfSpeech.EXPRESSION
    reading: Optional[str] = None
    dictionary_form: Optional[str] = None
    when: Optional[Predicate] = None

    @property
    def name(self) -> str:
        return "+".join(self.surfaces)


# 十一日 and 二十一日 keep their own numeral chain
_NOT_AFTER_NUMERAL = not_(preceded_by_pos(PartOfSpeech.NUMERAL))

SPECIAL_CASES: Tuple[MergeRule, ...] = (
    # Greetings and set phrases
    MergeRule(("おはよう", "ござい", "ます")),
    MergeRule(("ありがとう", "ござい", "ます")),
    MergeRule(("おめでとう", "ござい", "ます")),
    MergeRule(("いただき", "ます")),
    MergeRule(("ごちそうさま", "でし", "た")),
    MergeRule(("お疲れ様", "です")),
    MergeRule(("こんにち", "は"), reading="コンニチワ"),
    MergeRule(("こんばん", "は"), reading="コンバンワ"),
    MergeRule(("すみ", "ませ", "ん")),

    # Copula and conjecture expressions
    MergeRule(("じゃ", "ない")),
    MergeRule(("かも", "しれ", "ない")),

    # One day: the tokenizer reads 一日 as numeral + 日
    MergeRule(("一", "日"), pos=PartOfSpeech.NOUN, when=_NOT_AFTER_NUMERAL),
    MergeRule(("１", "日"), pos=PartOfSpeech.NOUN, when=_NOT_AFTER_NUMERAL),

    # よくする (do often): adverb + する, inflected by the grouping stage
    MergeRule(("よく", "し"), pos=PartOfSpeech.VERB, dictionary_form="よくする"),
    MergeRule(("よく", "する"), pos=PartOfSpeech.VERB, dictionary_form="よくする"),

    # Compound particles
    MergeRule(("に", "つい", "て")),
    MergeRule(("に", "とっ", "て")),
    MergeRule(("に", "対し", "て")),
    MergeRule(("に", "よっ", "て")),
    MergeRule(("と", "し", "て")),
    MergeRule(("に", "関し", "て")),

    # Adverbial expressions
    MergeRule(("もし", "かし", "て")),
    MergeRule(("どう", "し", "て")),
    MergeRule(("相", "変わら", "ず")),
    MergeRule(("なん", "て")),
    MergeRule(("とり", "あえ", "ず")),
    MergeRule(("いつ", "の", "間"), reading="イツノマ"),
)


def _index_rules(rules: Sequence[MergeRule]) -> Dict[str, List[MergeRule]]:
    index: Dict[str, List[MergeRule]] = {}
    for rule in rules:
        index.setdefault(rule.surfaces[0], []).append(rule)
    for candidates in index.values():
        candidates.sort(key=lambda r: len(r.surfaces), reverse=True)
    return index


_SPECIAL_CASE_INDEX = _index_rules(SPECIAL_CASES)


def merge_tokens(
    tokens: Sequence[Token],
    pos: PartOfSpeech,
    reading: Optional[str] = None,
    dictionary_form: Optional[str] = None,
    rule: str = "",
) -> CombinedToken:
    """
    Merge consecutive tokens into a CombinedToken.

    Nested CombinedTokens are flattened so `constituents` always holds
    tokenizer tokens.
    """
    constituents: List[Token] = []
    for token in tokens:
        if isinstance(token, CombinedToken):
            constituents.extend(token.constituents)
        else:
            constituents.append(token)
    surface = "".join(t.surface for t in tokens)
    return CombinedToken(
        surface=surface,
        offset=tokens[0].offset,
        pos=pos,
        reading=reading if reading is not None else "".join(t.reading for t in tokens),
        dictionary_form=dictionary_form or surface,
        pos_detail=tokens[0].pos_detail,
        constituents=tuple(constituents),
        rule=rule,
    )


def match_special_case(
    tokens: Sequence[Token],
    i: int,
    index: Optional[Dict[str, List[MergeRule]]] = None,
) -> Optional[MergeRule]:
    """Return the longest merge rule matching tokens starting at i whose guard holds."""
    index = _SPECIAL_CASE_INDEX if index is None else index
    for rule in index.get(tokens[i].surface, ()):
        n = len(rule.surfaces)
        if i + n > len(tokens):
            continue
        if not all(tokens[i + k].surface == rule.surfaces[k] for k in range(n)):
            continue
        if rule.when is None or rule.when(TokenWindow(tokens, i)):
            return rule
    return None


def combine_special_cases(
    tokens: Sequence[Token],
    rules: Optional[Sequence[MergeRule]] = None,
    stage: Optional[TokenStage] = None,
) -> List[Token]:
    """
    Apply the fixed-sequence merge table.

    Args:
        tokens: Token stream.
        rules: Merge rules; defaults to SPECIAL_CASES.
        stage: Diagnostics stage to record merges in.

    Returns:
        New token list. Unmatched tokens pass through unchanged.
    """
    index = _SPECIAL_CASE_INDEX if rules is None else _index_rules(rules)
    result: List[Token] = []
    i = 0
    while i < len(tokens):
        rule = match_special_case(tokens, i, index)
        if rule is None:
            result.append(tokens[i])
            i += 1
            continue

        n = len(rule.surfaces)
        combined = merge_tokens(
            tokens[i:i + n], rule.pos, reading=rule.reading,
            dictionary_form=rule.dictionary_form, rule=rule.name,
        )
        logger.debug("Special case %s -> %s", rule.name, combined.surface)
        if stage is not None:
            stage.merge(rule.surfaces, combined.surface, rule.name)
        result.append(combined)
        i += n
    return result


# ============================================================================
# Inflection Grouping
# ============================================================================

INFLECTION_HEADS = frozenset({PartOfSpeech.VERB, PartOfSpeech.I_ADJECTIVE})

# Auxiliaries that stay separate words (copula)
DETACHED_AUXILIARIES = frozenset({"だ", "です"})

CONJUNCTIVE_PARTICLES = frozenset({"て", "で", "ば", "ちゃ", "じゃ"})
TE_FORMS = frozenset({"て", "で"})


def _attaches(prev: Token, nxt: Token) -> bool:
    if nxt.pos == PartOfSpeech.AUXILIARY:
        return nxt.dictionary_form not in DETACHED_AUXILIARIES
    if nxt.pos == PartOfSpeech.PARTICLE:
        return nxt.has_detail("接続助詞") and nxt.surface in CONJUNCTIVE_PARTICLES
    if nxt.pos == PartOfSpeech.VERB:
        # auxiliary verbs after te-form: 食べて|いる, 書いて|しまう
        return prev.surface in TE_FORMS and nxt.has_detail("非自立可能")
    if nxt.pos == PartOfSpeech.I_ADJECTIVE:
        return nxt.dictionary_form == "ない" and nxt.has_detail("非自立可能")
    return False


def combine_inflections(
    tokens: Sequence[Token],
    stage: Optional[TokenStage] = None,
) -> List[Token]:
    """
    Group verbs and i-adjectives with the tokens inflecting them.

    The merged token keeps the head's POS and dictionary form, and its
    reading is the concatenation of the constituent readings.
    """
    result: List[Token] = []
    i = 0
    while i < len(tokens):
        head = tokens[i]
        j = i + 1
        if head.pos in INFLECTION_HEADS:
            while j < len(tokens) and _attaches(tokens[j - 1], tokens[j]):
                j += 1

        if j - i == 1:
            result.append(head)
            i += 1
            continue

        group = tokens[i:j]
        combined = merge_tokens(
            group, head.pos, dictionary_form=head.dictionary_form, rule="inflection",
        )
        if stage is not None:
            stage.merge([t.surface for t in group], combined.surface, "inflection")
        result.append(combined)
        i = j
    return result
