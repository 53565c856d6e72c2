"""
Dictionary snapshot loading for musubi.

Snapshots are JSON lists of entries:

    [{"word_id": 1585410,
      "kanji": [{"text": "儘"}, {"text": "侭"}],
      "kana": [{"text": "まま", "common": 0}, {"text": "ママ", "search_only": true}],
      "senses": [{"pos": ["n"], "misc": ["uk"]}]}]

Form order in the file is the reading order (kanji first, then kana).
"""

import json
import logging
from pathlib import Path
from typing import Iterable, List, Union

from sqlalchemy.orm import Session

from musubi.constants import PROP_MISC, PROP_POS, PROP_STAGK, PROP_STAGR
from musubi.db.connection import Cache
from musubi.db.models import Entry, KanaText, KanjiText, Sense, SenseProp
from musubi.lookup import DictionaryEntry, build_entry

logger = logging.getLogger(__name__)

SENSE_PROP_TAGS = (PROP_POS, PROP_MISC, PROP_STAGK, PROP_STAGR)


def read_snapshot(path: Union[str, Path]) -> List[dict]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of entries")
    return data


def entries_from_snapshot(data: Iterable[dict]) -> List[DictionaryEntry]:
    """Convert snapshot dicts to DictionaryEntry objects (for InMemoryDictionaryStore)."""
    return [
        build_entry(d["word_id"], d.get("kanji", ()), d.get("kana", ()), d.get("senses", ()))
        for d in data
    ]


# ============================================================================
# Database Helpers
# ============================================================================

def add_entry(session: Session, data: dict) -> Entry:
    """Insert one snapshot entry, replacing an existing entry with the same id."""
    seq = data["word_id"]
    existing = session.get(Entry, seq)
    if existing is not None:
        session.delete(existing)
        session.flush()

    kanji = data.get("kanji", [])
    kana = data.get("kana", [])
    entry = Entry(seq=seq, n_kanji=len(kanji), n_kana=len(kana))
    for i, k in enumerate(kanji):
        entry.kanji.append(KanjiText(
            seq=seq, text=k["text"], ord=i,
            common=k.get("common"), search_only=bool(k.get("search_only")),
        ))
    for i, k in enumerate(kana):
        entry.kana.append(KanaText(
            seq=seq, text=k["text"], ord=i,
            common=k.get("common"), search_only=bool(k.get("search_only")),
            nokanji=bool(k.get("nokanji")),
        ))
    for i, s in enumerate(data.get("senses", [])):
        sense = Sense(seq=seq, ord=i)
        for tag in SENSE_PROP_TAGS:
            for j, text in enumerate(s.get(tag, [])):
                sense.props.append(SenseProp(seq=seq, tag=tag, text=text, ord=j))
        entry.senses.append(sense)
    session.add(entry)
    return entry


def load_entries(session: Session, source: Union[str, Path, Iterable[dict]]) -> int:
    """
    Load a snapshot into the database and commit.

    Args:
        session: Database session.
        source: Snapshot path or already-parsed entry dicts.

    Returns:
        Number of entries loaded.
    """
    data = read_snapshot(source) if isinstance(source, (str, Path)) else list(source)
    count = 0
    for item in data:
        if "word_id" not in item:
            logger.warning("Skipping entry without word_id: %r", item)
            continue
        add_entry(session, item)
        count += 1
    session.commit()
    # warm caches describe the old contents
    Cache.reset_all()
    logger.info("Loaded %d entries", count)
    return count
