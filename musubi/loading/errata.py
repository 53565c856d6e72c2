"""
Dictionary corrections for musubi.

Applied after a snapshot is loaded, to fix usage markers and frequency
data that skew form selection. A corrections file is a JSON list of
actions:

    [{"action": "add_sense_prop", "word_id": 2257610, "sense": 0,
      "tag": "misc", "text": "uk"},
     {"action": "delete_sense_prop", "word_id": 1585410, "tag": "misc", "text": "arch"},
     {"action": "set_common", "word_id": 1585410, "form": "kana", "text": "まま", "common": 3}]
"""

import json
import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from musubi.db.connection import Cache
from musubi.db.models import KanaText, KanjiText, Sense, SenseProp

logger = logging.getLogger(__name__)

FORM_MODELS = {"kanji": KanjiText, "kana": KanaText}


def read_errata(path: Union[str, Path]) -> List[dict]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of corrections")
    return data


# ============================================================================
# Corrections
# ============================================================================

def add_sense_prop(session: Session, seq: int, sense_ord: int, tag: str, text: str) -> bool:
    """
    Append a property to one sense of an entry.

    Returns:
        True if the property was added; False when the sense does not
        exist or already carries it.
    """
    sense = session.execute(
        select(Sense).where(Sense.seq == seq, Sense.ord == sense_ord)
    ).scalar_one_or_none()
    if sense is None:
        logger.warning("No sense %d on entry %d", sense_ord, seq)
        return False

    same_tag = [p for p in sense.props if p.tag == tag]
    if any(p.text == text for p in same_tag):
        return False
    next_ord = max((p.ord for p in same_tag), default=-1) + 1
    sense.props.append(SenseProp(seq=seq, tag=tag, text=text, ord=next_ord))
    return True


def delete_sense_prop(session: Session, seq: int, tag: str, text: str) -> int:
    """Remove a property from every sense of an entry; returns rows removed."""
    result = session.execute(
        delete(SenseProp)
        .where(SenseProp.seq == seq, SenseProp.tag == tag, SenseProp.text == text)
    )
    return result.rowcount


def set_common(session: Session, form: str, seq: int, text: str, common: Optional[int]) -> int:
    """
    Set the frequency marker of a kanji or kana form.

    Raises:
        ValueError: form is neither "kanji" nor "kana".
    """
    model = FORM_MODELS.get(form)
    if model is None:
        raise ValueError(f"Unknown form kind: {form!r}")
    result = session.execute(
        update(model)
        .where(model.seq == seq, model.text == text)
        .values(common=common)
    )
    return result.rowcount


ACTIONS: Dict[str, Callable[[Session, dict], object]] = {
    "add_sense_prop": lambda session, item: add_sense_prop(
        session, item["word_id"], item.get("sense", 0), item["tag"], item["text"]),
    "delete_sense_prop": lambda session, item: delete_sense_prop(
        session, item["word_id"], item["tag"], item["text"]),
    "set_common": lambda session, item: set_common(
        session, item["form"], item["word_id"], item["text"], item.get("common")),
}


def apply_errata(session: Session, source: Union[str, Path, Iterable[dict]]) -> int:
    """
    Apply a corrections file (or parsed list) and commit.

    Returns:
        Number of corrections that changed the database.

    Raises:
        ValueError: An action is unknown or a form kind is invalid.
        KeyError: An action lacks a required field.
    """
    data = read_errata(source) if isinstance(source, (str, Path)) else list(source)
    applied = 0
    for item in data:
        action = ACTIONS.get(item.get("action"))
        if action is None:
            raise ValueError(f"Unknown errata action: {item.get('action')!r}")
        if action(session, item):
            applied += 1
    session.commit()
    Cache.reset_all()
    logger.info("Applied %d of %d corrections", applied, len(data))
    return applied
