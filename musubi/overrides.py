"""
Contextual reading overrides for musubi.

The tokenizer's reading guess for some kanji spans depends on grammar it
does not model (表 as "surface" vs "chart", 一日 as a date vs a day-long
duration, ...). Each case is one `ReadingOverride` row in OVERRIDE_RULES:
a span, a context predicate over a bounded token window, and the reading
(and optionally POS) to force. Rules for a span are tried in order and the
first whose predicate holds wins.

Predicates are built from the small combinators below. They only read the
window, and window accessors return None past either end of the stream, so
a predicate never raises on short inputs.
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from musubi import settings
from musubi.characters import is_punctuation, starts_with_numeral
from musubi.diagnostics import TokenStage
from musubi.tokenizer import PartOfSpeech, Token

logger = logging.getLogger(__name__)


class TokenWindow:
    """View of one token and its neighbours, bounded by CONTEXT_WINDOW."""

    def __init__(self, tokens: Sequence[Token], index: int, size: int = settings.CONTEXT_WINDOW):
        self.tokens = tokens
        self.index = index
        self.size = size

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def prev(self, n: int = 1) -> Optional[Token]:
        i = self.index - n
        if n > self.size or i < 0:
            return None
        return self.tokens[i]

    def next(self, n: int = 1) -> Optional[Token]:
        i = self.index + n
        if n > self.size or i >= len(self.tokens):
            return None
        return self.tokens[i]


Predicate = Callable[[TokenWindow], bool]


# ============================================================================
# Predicate Builders
# ============================================================================

def always() -> Predicate:
    return lambda w: True


def not_(predicate: Predicate) -> Predicate:
    return lambda w: not predicate(w)


def all_of(*predicates: Predicate) -> Predicate:
    return lambda w: all(p(w) for p in predicates)


def any_of(*predicates: Predicate) -> Predicate:
    return lambda w: any(p(w) for p in predicates)


def has_pos(*pos: PartOfSpeech) -> Predicate:
    """The token itself carries one of the given POS."""
    return lambda w: w.current.pos in pos


def has_reading(*readings: str) -> Predicate:
    return lambda w: w.current.reading in readings


def followed_by(*surfaces: str) -> Predicate:
    def check(w: TokenWindow) -> bool:
        nxt = w.next()
        return nxt is not None and nxt.surface in surfaces
    return check


def preceded_by(*surfaces: str) -> Predicate:
    def check(w: TokenWindow) -> bool:
        prev = w.prev()
        return prev is not None and prev.surface in surfaces
    return check


def followed_by_pos(*pos: PartOfSpeech) -> Predicate:
    def check(w: TokenWindow) -> bool:
        nxt = w.next()
        return nxt is not None and nxt.pos in pos
    return check


def preceded_by_pos(*pos: PartOfSpeech) -> Predicate:
    def check(w: TokenWindow) -> bool:
        prev = w.prev()
        return prev is not None and prev.pos in pos
    return check


def followed_by_sequence(*forms: str) -> Predicate:
    """
    The next tokens match forms in order.

    A token matches a form by surface or by dictionary form, so
    followed_by_sequence("が", "する") accepts が|した.
    """
    def check(w: TokenWindow) -> bool:
        for n, form in enumerate(forms, start=1):
            nxt = w.next(n)
            if nxt is None or form not in (nxt.surface, nxt.dictionary_form):
                return False
        return True
    return check


def followed_by_pause() -> Predicate:
    """End of input, or a punctuation mark such as 、 or 。 next."""
    def check(w: TokenWindow) -> bool:
        nxt = w.next()
        return nxt is None or is_punctuation(nxt.surface)
    return check


# Month words that do not end in a numeral + 月 pattern
MONTH_WORDS = frozenset({"正月", "先月", "今月", "来月", "毎月", "先々月", "再来月"})

# Words read like numerals in "後 + N" contexts (後何年, 後数日)
NUMERAL_LIKE_PREFIXES = ("何", "数", "幾")


def preceded_by_month() -> Predicate:
    """
    The previous token is a month expression.

    Accepts 七月 / １２月 as one token, 正月-style month words, and 月 split
    off after a numeral token (七|月).
    """
    def check(w: TokenWindow) -> bool:
        prev = w.prev()
        if prev is None or not prev.surface.endswith("月"):
            return False
        if prev.surface in MONTH_WORDS:
            return True
        if len(prev.surface) > 1:
            return starts_with_numeral(prev.surface)
        before = w.prev(2)
        return before is not None and (
            before.pos == PartOfSpeech.NUMERAL or starts_with_numeral(before.surface)
        )
    return check


def followed_by_numeral() -> Predicate:
    def check(w: TokenWindow) -> bool:
        nxt = w.next()
        if nxt is None:
            return False
        return (
            nxt.pos == PartOfSpeech.NUMERAL
            or starts_with_numeral(nxt.surface)
            or nxt.surface.startswith(NUMERAL_LIKE_PREFIXES)
        )
    return check


def is_standalone() -> Predicate:
    """Not glued to a preceding noun/prefix or a following noun/suffix."""
    return all_of(
        not_(preceded_by_pos(PartOfSpeech.NOUN, PartOfSpeech.PREFIX, PartOfSpeech.NUMERAL)),
        not_(followed_by_pos(PartOfSpeech.NOUN, PartOfSpeech.SUFFIX, PartOfSpeech.COUNTER)),
    )


# ============================================================================
# Override Registry
# ============================================================================

@dataclass(frozen=True)
class ReadingOverride:
    """
    Force a reading (and optionally a POS) on a span in a given context.

    Attributes:
        span: Exact token surface the rule applies to.
        when: Context predicate.
        reading: Reading to force (katakana), or None to keep it.
        pos: POS to force, or None to keep it.
        name: Rule name reported in diagnostics.
    """
    span: str
    when: Predicate
    reading: Optional[str] = None
    pos: Optional[PartOfSpeech] = None
    name: str = ""

    def apply(self, token: Token) -> Token:
        changes = {}
        if self.reading is not None:
            changes["reading"] = self.reading
        if self.pos is not None:
            changes["pos"] = self.pos
        return dataclasses.replace(token, **changes)


_NOUNISH = (PartOfSpeech.NOUN, PartOfSpeech.PRONOUN, PartOfSpeech.NUMERAL, PartOfSpeech.PREFIX)

# Verbs of movement that take 表に as their destination (表に出る)
MOTION_VERBS = ("出る", "出す", "行く", "来る", "回る", "向かう")

_TOWARD = any_of(
    followed_by("へ"),
    *(followed_by_sequence("に", verb) for verb in MOTION_VERBS),
)

OVERRIDE_RULES: Tuple[ReadingOverride, ...] = (
    # 表: おもて (outside) as a destination, ひょう (chart) after a noun
    ReadingOverride("表", all_of(_TOWARD, not_(preceded_by_pos(*_NOUNISH))),
                    reading="オモテ", name="omote-directional"),
    ReadingOverride("表", preceded_by_pos(PartOfSpeech.NOUN),
                    reading="ヒョウ", name="hyou-after-noun"),

    # 一日: ついたち only as a date
    ReadingOverride("一日", preceded_by_month(), reading="ツイタチ", name="tsuitachi-date"),
    ReadingOverride("一日", always(), reading="イチニチ", name="ichinichi-duration"),
    ReadingOverride("１日", preceded_by_month(), reading="ツイタチ", name="tsuitachi-date"),
    ReadingOverride("１日", always(), reading="イチニチ", name="ichinichi-duration"),

    # 寒気がする: chills, not cold air
    ReadingOverride("寒気", followed_by_sequence("が", "する"), reading="サムケ", name="samuke-ga-suru"),

    # 後 + number: "N more", not the ご suffix
    ReadingOverride("後", followed_by_numeral(), reading="アト", name="ato-before-numeral"),

    # 禍 on its own is わざわい; か only appears inside compounds
    ReadingOverride("禍", is_standalone(), reading="ワザワイ", name="wazawai-standalone"),

    # 空 tagged as an adjectival noun (うつろ) is almost always から (empty)
    ReadingOverride("空", has_pos(PartOfSpeech.NA_ADJECTIVE),
                    reading="カラ", pos=PartOfSpeech.NOUN, name="kara-empty"),

    # あの: hesitation before a pause or interjection, demonstrative otherwise
    ReadingOverride("あの", any_of(followed_by_pause(),
                                   followed_by_pos(PartOfSpeech.INTERJECTION, PartOfSpeech.EXPRESSION)),
                    pos=PartOfSpeech.INTERJECTION, name="ano-hesitation"),
    ReadingOverride("あの", always(), pos=PartOfSpeech.PRENOUN_ADJECTIVAL, name="ano-demonstrative"),
)


def _index_overrides(rules: Sequence[ReadingOverride]) -> Dict[str, List[ReadingOverride]]:
    index: Dict[str, List[ReadingOverride]] = {}
    for rule in rules:
        index.setdefault(rule.span, []).append(rule)
    return index


_OVERRIDE_INDEX = _index_overrides(OVERRIDE_RULES)


def _match(index: Dict[str, List[ReadingOverride]], tokens: Sequence[Token], i: int) -> Optional[ReadingOverride]:
    candidates = index.get(tokens[i].surface)
    if not candidates:
        return None
    window = TokenWindow(tokens, i)
    return next((rule for rule in candidates if rule.when(window)), None)


def find_override(
    tokens: Sequence[Token],
    i: int,
    rules: Optional[Sequence[ReadingOverride]] = None,
) -> Optional[ReadingOverride]:
    """Return the first rule whose span and predicate match token i."""
    index = _OVERRIDE_INDEX if rules is None else _index_overrides(rules)
    return _match(index, tokens, i)


def apply_reading_overrides(
    tokens: Sequence[Token],
    rules: Optional[Sequence[ReadingOverride]] = None,
    stage: Optional[TokenStage] = None,
) -> List[Token]:
    """
    Apply contextual overrides to a token stream.

    Predicates see the stream as it was before this stage, so the outcome
    does not depend on rule order across different tokens.
    """
    index = _OVERRIDE_INDEX if rules is None else _index_overrides(rules)
    result: List[Token] = []
    for i, token in enumerate(tokens):
        rule = _match(index, tokens, i)
        if rule is None:
            result.append(token)
            continue

        updated = rule.apply(token)
        if updated != token:
            logger.debug("Override %s on %s: %s -> %s",
                         rule.name, token.surface, token.reading, updated.reading)
            if stage is not None:
                stage.reading(token.surface, token.reading, updated.reading, rule.name)
        result.append(updated)
    return result
