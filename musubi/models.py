"""
Pydantic models for musubi JSON output.

Usage:
    from musubi.models import ParseResult

    result = ParseResult.from_words(text, musubi.parse(text))
    print(result.model_dump_json(indent=2))
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class WordResult(BaseModel):
    """One resolved word with its position in the input."""
    model_config = ConfigDict(from_attributes=True)

    text: str = Field(..., description="Surface text as it appears in input")
    word_id: int = Field(..., description="JMdict sequence number")
    reading_index: int = Field(..., description="Index into the entry's reading list (kanji forms, then kana)")
    start: Optional[int] = Field(None, description="Start index in original text")
    end: Optional[int] = Field(None, description="End index in original text")


class SegmentResult(BaseModel):
    """
    A piece of the input: either a resolved word or literal text.

    Literal segments (punctuation, unknown words) have no word id.
    """
    text: str = Field(..., description="Segment text")
    start: int = Field(..., description="Start index in original text")
    word_id: Optional[int] = Field(None, description="JMdict sequence number, None for literal text")
    reading_index: Optional[int] = Field(None, description="Reading index, None for literal text")

    @property
    def is_word(self) -> bool:
        return self.word_id is not None


class ParseResult(BaseModel):
    """Words and full-coverage segments for one input."""
    text: str = Field(..., description="Input text")
    words: List[WordResult] = Field(default_factory=list)
    segments: List[SegmentResult] = Field(default_factory=list)

    @classmethod
    def from_words(cls, text: str, words: list) -> "ParseResult":
        """Build from the output of musubi.parse()."""
        from musubi.output import reconstruct_segments

        segments = reconstruct_segments(text, words)
        return cls(
            text=text,
            words=[
                WordResult(
                    text=s.text,
                    word_id=s.word_id,
                    reading_index=s.reading_index,
                    start=s.start,
                    end=s.start + len(s.text),
                )
                for s in segments if s.is_word
            ],
            segments=segments,
        )


class FailureReport(BaseModel):
    """One failed regression case."""
    input: str = Field(..., description="Input text")
    expected: List[str] = Field(default_factory=list, description="Expected surfaces or identity")
    actual: List[str] = Field(default_factory=list, description="Produced surfaces or identity")
    type: str = Field(..., description="OverSegmentation, UnderSegmentation, TokenMismatch or FormMismatch")
    description: str = ""
    probable_cause: Optional[str] = None
    suggested_fix: Optional[str] = None
    diagnostics: Optional[str] = Field(None, description="Formatted parser diagnostics")


class RegressionSummary(BaseModel):
    """Outcome of replaying a regression corpus."""
    total: int = 0
    passed: int = 0
    failures: List[FailureReport] = Field(default_factory=list)

    @property
    def failed(self) -> int:
        return self.total - self.passed

    @property
    def ok(self) -> bool:
        return not self.failures
