"""
Candidate resolution for musubi.

Looks up dictionary entries for a token and turns each entry into a
`Candidate`: the entry plus the form (and so the reading index) the token
matched. Entries come from a `DictionaryStore`:

- `SqlDictionaryStore` reads the SQLAlchemy tables in musubi.db.models.
- `InMemoryDictionaryStore` serves a fixed list of entries.

Reading indexes follow the dictionary's reading list: kanji forms first
(by ord), then kana forms (by ord).
"""

import logging
import threading
import weakref
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from sqlalchemy import func, select, union
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from musubi.characters import as_hiragana
from musubi.constants import (
    MISC_ARCHAIC, MISC_USUALLY_KANA, NF_TIER_BANDS,
    PROP_MISC, PROP_POS, PROP_STAGK, PROP_STAGR,
    UNCOMMON_TIER, UNRANKED_COMMON_TIER, intern_pos,
)
from musubi.db.connection import Cache
from musubi.db.models import Entry, KanaText, KanjiText, Sense
from musubi.errors import DictionaryStoreError
from musubi.tokenizer import NON_WORD_POS, Token

logger = logging.getLogger(__name__)


# ============================================================================
# Entry Model
# ============================================================================

class FormType(str, Enum):
    KANJI = "kanji"
    KANA = "kana"
    SEARCH_ONLY_KANJI = "search_only_kanji"
    SEARCH_ONLY_KANA = "search_only_kana"

    @property
    def is_kana(self) -> bool:
        return self in (FormType.KANA, FormType.SEARCH_ONLY_KANA)

    @property
    def is_search_only(self) -> bool:
        return self in (FormType.SEARCH_ONLY_KANJI, FormType.SEARCH_ONLY_KANA)


@dataclass(frozen=True)
class EntryForm:
    """
    One written form of an entry.

    Attributes:
        text: Form text.
        form_type: Kanji or kana, regular or search-only.
        reading_index: Position in the entry's reading list.
        common: Frequency marker (None = uncommon, 0 = priority list
            without nf rank, n = nf rank).
    """
    text: str
    form_type: FormType
    reading_index: int
    common: Optional[int] = None


@dataclass(frozen=True)
class EntrySense:
    """A sense with its POS tags, usage markers and form restrictions."""
    pos: Tuple[str, ...] = ()
    misc: Tuple[str, ...] = ()
    stagk: Tuple[str, ...] = ()
    stagr: Tuple[str, ...] = ()

    @property
    def restrictions(self) -> Tuple[str, ...]:
        return self.stagk + self.stagr

    @property
    def is_archaic(self) -> bool:
        return MISC_ARCHAIC in self.misc

    def applies_to(self, form: EntryForm) -> bool:
        """
        True unless the sense is restricted to other forms of the same kind.

        A sense restricted to some kanji forms (stagk) still applies to
        every kana form, and vice versa.
        """
        own = self.stagr if form.form_type.is_kana else self.stagk
        return not own or form.text in own


@dataclass(frozen=True)
class DictionaryEntry:
    """A dictionary word: ordered forms and senses."""
    word_id: int
    forms: Tuple[EntryForm, ...]
    senses: Tuple[EntrySense, ...] = ()

    @property
    def fully_archaic(self) -> bool:
        return bool(self.senses) and all(s.is_archaic for s in self.senses)

    @property
    def kana_forms(self) -> List[EntryForm]:
        return [f for f in self.forms if f.form_type.is_kana]

    def forms_for(self, text: str) -> List[EntryForm]:
        return [f for f in self.forms if f.text == text]

    def form_for(self, text: str) -> Optional[EntryForm]:
        """The form equal to text, preferring regular forms over search-only ones."""
        matches = self.forms_for(text)
        if not matches:
            return None
        return min(matches, key=lambda f: (f.form_type.is_search_only, f.reading_index))


def build_entry(
    word_id: int,
    kanji: Iterable[dict] = (),
    kana: Iterable[dict] = (),
    senses: Iterable[dict] = (),
) -> DictionaryEntry:
    """
    Build a DictionaryEntry from plain form/sense dicts.

    Form dicts carry `text` and optionally `common` and `search_only`;
    sense dicts carry optional `pos`, `misc`, `stagk` and `stagr` lists.
    Reading indexes are assigned kanji first, then kana, in the given order.
    """
    forms: List[EntryForm] = []
    for data in kanji:
        form_type = FormType.SEARCH_ONLY_KANJI if data.get("search_only") else FormType.KANJI
        forms.append(EntryForm(data["text"], form_type, len(forms), data.get("common")))
    for data in kana:
        form_type = FormType.SEARCH_ONLY_KANA if data.get("search_only") else FormType.KANA
        forms.append(EntryForm(data["text"], form_type, len(forms), data.get("common")))
    return DictionaryEntry(
        word_id=word_id,
        forms=tuple(forms),
        senses=tuple(
            EntrySense(
                pos=tuple(intern_pos(p) for p in s.get("pos", ())),
                misc=tuple(s.get("misc", ())),
                stagk=tuple(s.get("stagk", ())),
                stagr=tuple(s.get("stagr", ())),
            )
            for s in senses
        ),
    )


def frequency_tier(common: Optional[int]) -> int:
    """Coarse frequency band of a form; 0 is the most common."""
    if common is None:
        return UNCOMMON_TIER
    if common == 0:
        return UNRANKED_COMMON_TIER
    for bound, tier in NF_TIER_BANDS:
        if common <= bound:
            return tier
    return UNCOMMON_TIER - 1


@dataclass(frozen=True)
class Candidate:
    """
    A dictionary entry the token may refer to.

    Attributes:
        entry: The dictionary entry.
        form: The form the token matched; its index is the reading index.
        via_dictionary_form: Matched through the token's dictionary form
            rather than its surface.
    """
    entry: DictionaryEntry
    form: EntryForm
    via_dictionary_form: bool = False

    @property
    def word_id(self) -> int:
        return self.entry.word_id

    @property
    def reading_index(self) -> int:
        return self.form.reading_index

    @property
    def form_text(self) -> str:
        return self.form.text

    @property
    def form_type(self) -> FormType:
        return self.form.form_type

    @property
    def frequency_tier(self) -> int:
        return frequency_tier(self.form.common)

    @property
    def matching_senses(self) -> List[EntrySense]:
        return [s for s in self.entry.senses if s.applies_to(self.form)]

    @property
    def pos_tags(self) -> FrozenSet[str]:
        return frozenset(p for s in self.matching_senses for p in s.pos)

    @property
    def usage_markers(self) -> FrozenSet[str]:
        return frozenset(m for s in self.matching_senses for m in s.misc)

    @property
    def usually_kana(self) -> bool:
        return any(MISC_USUALLY_KANA in s.misc for s in self.matching_senses)

    @property
    def fully_archaic(self) -> bool:
        """Every sense that applies to the matched form is archaic."""
        senses = self.matching_senses
        return bool(senses) and all(s.is_archaic for s in senses)

    @property
    def kana_readings(self) -> List[str]:
        """Readings of the matched form, as hiragana."""
        if self.form_type.is_kana:
            return [as_hiragana(self.form.text)]
        return [as_hiragana(f.text) for f in self.entry.kana_forms]


# ============================================================================
# Dictionary Stores
# ============================================================================

class DictionaryStore(ABC):
    """Read-only source of dictionary entries."""

    @abstractmethod
    def find_entries(self, text: str) -> List[DictionaryEntry]:
        """Entries with a kanji or kana form exactly equal to text."""

    @abstractmethod
    def reading_count(self, word_id: int) -> int:
        """Length of the entry's reading list (0 for unknown ids)."""


class InMemoryDictionaryStore(DictionaryStore):
    """Dictionary store over a fixed list of entries."""

    def __init__(self, entries: Iterable[DictionaryEntry] = ()):
        self._entries: Dict[int, DictionaryEntry] = {}
        self._by_text: Dict[str, List[int]] = {}
        for entry in entries:
            self.add(entry)

    def add(self, entry: DictionaryEntry):
        self._entries[entry.word_id] = entry
        for text in {f.text for f in entry.forms}:
            ids = self._by_text.setdefault(text, [])
            if entry.word_id not in ids:
                ids.append(entry.word_id)

    def find_entries(self, text: str) -> List[DictionaryEntry]:
        return [self._entries[i] for i in sorted(self._by_text.get(text, ()))]

    def reading_count(self, word_id: int) -> int:
        entry = self._entries.get(word_id)
        return len(entry.forms) if entry else 0


def _load_form_texts(session: Session) -> Set[str]:
    texts = session.execute(
        union(select(KanjiText.text), select(KanaText.text))
    ).scalars().all()
    return set(texts)


def _load_reading_counts(session: Session) -> Dict[int, int]:
    counts: Dict[int, int] = {}
    for model in (KanjiText, KanaText):
        rows = session.execute(
            select(model.seq, func.count(model.id)).group_by(model.seq)
        ).all()
        for seq, n in rows:
            counts[seq] = counts.get(seq, 0) + n
    return counts


# engine -> warm caches; entries go away with the engine
_engine_caches = weakref.WeakKeyDictionary()
_engine_caches_lock = threading.Lock()

_WARM_DATA = {
    "form-texts": _load_form_texts,
    "reading-counts": _load_reading_counts,
}


def engine_caches(engine: Engine) -> Dict[str, Cache]:
    """The warm caches of one database engine, created on first use."""
    with _engine_caches_lock:
        caches = _engine_caches.get(engine)
        if caches is None:
            caches = {
                name: Cache(f"{name}:{engine.url}#{id(engine)}", initializer)
                for name, initializer in _WARM_DATA.items()
            }
            _engine_caches[engine] = caches
        return caches


class SqlDictionaryStore(DictionaryStore):
    """
    Dictionary store backed by the musubi SQLite schema.

    The set of all form texts and the reading count per entry are built
    once per database and shared read-only by every store on it. Call
    `Cache.reset_all()` after reloading the dictionary.
    """

    def __init__(self, session: Session):
        self.session = session
        caches = engine_caches(session.get_bind())
        self._form_texts = caches["form-texts"]
        self._reading_counts = caches["reading-counts"]
        self._entries: Dict[int, DictionaryEntry] = {}

    def warm_up(self):
        """Build the shared warm data now instead of on first lookup."""
        self._ensure(self._form_texts)
        self._ensure(self._reading_counts)

    def _ensure(self, cache: Cache):
        try:
            return cache.ensure(self.session)
        except SQLAlchemyError as e:
            raise DictionaryStoreError(f"could not build {cache.name}: {e}") from e

    def find_entries(self, text: str) -> List[DictionaryEntry]:
        if text not in self._ensure(self._form_texts):
            return []
        try:
            seqs = self.session.execute(
                union(
                    select(KanjiText.seq).where(KanjiText.text == text),
                    select(KanaText.seq).where(KanaText.text == text),
                )
            ).scalars().all()
            missing = [s for s in seqs if s not in self._entries]
            if missing:
                rows = self.session.execute(
                    select(Entry)
                    .where(Entry.seq.in_(missing))
                    .options(
                        selectinload(Entry.kanji),
                        selectinload(Entry.kana),
                        selectinload(Entry.senses).selectinload(Sense.props),
                    )
                ).scalars().all()
                for row in rows:
                    self._entries[row.seq] = self._to_entry(row)
        except SQLAlchemyError as e:
            raise DictionaryStoreError(f"lookup failed for {text!r}: {e}") from e
        return [self._entries[s] for s in sorted(seqs) if s in self._entries]

    def reading_count(self, word_id: int) -> int:
        return self._ensure(self._reading_counts).get(word_id, 0)

    @staticmethod
    def _to_entry(row: Entry) -> DictionaryEntry:
        senses = []
        for sense in row.senses:
            props: Dict[str, List[str]] = {}
            for prop in sense.props:
                props.setdefault(prop.tag, []).append(prop.text)
            senses.append({
                "pos": props.get(PROP_POS, []),
                "misc": props.get(PROP_MISC, []),
                "stagk": props.get(PROP_STAGK, []),
                "stagr": props.get(PROP_STAGR, []),
            })
        return build_entry(
            row.seq,
            kanji=[{"text": k.text, "common": k.common, "search_only": k.search_only} for k in row.kanji],
            kana=[{"text": k.text, "common": k.common, "search_only": k.search_only} for k in row.kana],
            senses=senses,
        )


# ============================================================================
# Resolution
# ============================================================================

def resolve_candidates(token: Token, store: DictionaryStore) -> List[Candidate]:
    """
    Find the candidate entries for a token.

    Entries with a form equal to the surface come first; for deconjugated
    tokens, entries with a form equal to the dictionary form are added.
    Each entry yields one candidate, using the surface match when it has
    both. Returns [] for symbols, whitespace and unknown words.
    """
    if token.pos in NON_WORD_POS or not token.surface.strip():
        return []

    candidates: Dict[int, Candidate] = {}
    for entry in store.find_entries(token.surface):
        candidates[entry.word_id] = Candidate(entry, entry.form_for(token.surface))

    if token.is_deconjugated:
        for entry in store.find_entries(token.dictionary_form):
            if entry.word_id not in candidates:
                candidates[entry.word_id] = Candidate(
                    entry, entry.form_for(token.dictionary_form), via_dictionary_form=True,
                )

    result = [candidates[k] for k in sorted(candidates)]
    logger.debug("%s: %d candidates", token.surface, len(result))
    return result
