"""
SQLAlchemy ORM models for the musubi dictionary store.

The schema follows JMdict: one `entry` per word id, its kanji and kana
forms, and senses with tagged properties (pos, misc, stagk, stagr).
A form's reading index is its position in the entry's reading list:
kanji forms first (by ord), then kana forms (by ord).
"""

from typing import List, Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class Entry(Base):
    """A dictionary entry (JMdict ent_seq)."""
    __tablename__ = "entry"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    n_kanji: Mapped[int] = mapped_column(Integer, default=0)
    n_kana: Mapped[int] = mapped_column(Integer, default=0)

    kanji: Mapped[List["KanjiText"]] = relationship(
        back_populates="entry", order_by="KanjiText.ord", cascade="all, delete-orphan",
    )
    kana: Mapped[List["KanaText"]] = relationship(
        back_populates="entry", order_by="KanaText.ord", cascade="all, delete-orphan",
    )
    senses: Mapped[List["Sense"]] = relationship(
        back_populates="entry", order_by="Sense.ord", cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Entry seq={self.seq}>"


class KanjiText(Base):
    """A kanji form of an entry."""
    __tablename__ = "kanji_text"
    __table_args__ = (Index("ix_kanji_text_text", "text"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    seq: Mapped[int] = mapped_column(ForeignKey("entry.seq", ondelete="CASCADE"), index=True)
    text: Mapped[str] = mapped_column(String, nullable=False)
    ord: Mapped[int] = mapped_column(Integer, nullable=False)
    # None = uncommon, 0 = priority list without nf rank, n = nf rank
    common: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    search_only: Mapped[bool] = mapped_column(Boolean, default=False)

    entry: Mapped[Entry] = relationship(back_populates="kanji")

    def __repr__(self) -> str:
        return f"<KanjiText {self.seq}:{self.text}>"


class KanaText(Base):
    """A kana form (reading) of an entry."""
    __tablename__ = "kana_text"
    __table_args__ = (Index("ix_kana_text_text", "text"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    seq: Mapped[int] = mapped_column(ForeignKey("entry.seq", ondelete="CASCADE"), index=True)
    text: Mapped[str] = mapped_column(String, nullable=False)
    ord: Mapped[int] = mapped_column(Integer, nullable=False)
    common: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    nokanji: Mapped[bool] = mapped_column(Boolean, default=False)
    search_only: Mapped[bool] = mapped_column(Boolean, default=False)

    entry: Mapped[Entry] = relationship(back_populates="kana")

    def __repr__(self) -> str:
        return f"<KanaText {self.seq}:{self.text}>"


class Sense(Base):
    """One sense of an entry."""
    __tablename__ = "sense"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    seq: Mapped[int] = mapped_column(ForeignKey("entry.seq", ondelete="CASCADE"), index=True)
    ord: Mapped[int] = mapped_column(Integer, nullable=False)

    entry: Mapped[Entry] = relationship(back_populates="senses")
    props: Mapped[List["SenseProp"]] = relationship(
        back_populates="sense", order_by="SenseProp.ord", cascade="all, delete-orphan",
    )


class SenseProp(Base):
    """A tagged sense property: pos, misc (uk, arch, ...), stagk, stagr."""
    __tablename__ = "sense_prop"
    __table_args__ = (Index("ix_sense_prop_seq_tag", "seq", "tag"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    sense_id: Mapped[int] = mapped_column(ForeignKey("sense.id", ondelete="CASCADE"), index=True)
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    tag: Mapped[str] = mapped_column(String, nullable=False)
    text: Mapped[str] = mapped_column(String, nullable=False)
    ord: Mapped[int] = mapped_column(Integer, default=0)

    sense: Mapped[Sense] = relationship(back_populates="props")
