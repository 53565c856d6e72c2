"""
Regression corpora for musubi.

Two kinds of cases are replayed through a Parser:

- segmentation cases: input text and the expected word surfaces
- form cases: input text, one token of it, and the (word_id, reading_index)
  that token must resolve to

Corpora are JSON lists:

    [{"input": "表へ出る", "expected": ["表", "へ", "出る"]}]
    [{"input": "表へ出る", "token": "表", "word_id": 1489340, "reading_index": 0}]

Each failure carries the parser diagnostics and, for segmentation, the
failure analysis from musubi.diagnostics.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Union

from musubi.diagnostics import ParserDiagnostics, analyse_failure
from musubi.models import FailureReport, RegressionSummary
from musubi.parser import Parser

logger = logging.getLogger(__name__)

FORM_MISMATCH = "FormMismatch"
TOKEN_MISSING = "TokenMissing"


@dataclass(frozen=True)
class SegmentationCase:
    input: str
    expected: List[str]


@dataclass(frozen=True)
class FormCase:
    input: str
    token: str
    word_id: int
    reading_index: int


def _read_json_list(path: Union[str, Path]) -> list:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of cases")
    return data


def load_segmentation_cases(path: Union[str, Path]) -> List[SegmentationCase]:
    return [SegmentationCase(d["input"], list(d["expected"])) for d in _read_json_list(path)]


def load_form_cases(path: Union[str, Path]) -> List[FormCase]:
    return [
        FormCase(d["input"], d["token"], int(d["word_id"]), int(d["reading_index"]))
        for d in _read_json_list(path)
    ]


# ============================================================================
# Runners
# ============================================================================

def check_segmentation(parser: Parser, case: SegmentationCase) -> Optional[FailureReport]:
    """Replay one segmentation case; None when it passes."""
    diagnostics = ParserDiagnostics(input_text=case.input)
    actual = [w.original_text for w in parser.parse(case.input, diagnostics)]
    if actual == case.expected:
        return None

    analysis = analyse_failure(case.expected, actual, diagnostics)
    return FailureReport(
        input=case.input,
        expected=case.expected,
        actual=actual,
        type=analysis.type,
        description=analysis.description,
        probable_cause=analysis.probable_cause,
        suggested_fix=analysis.suggested_fix,
        diagnostics=diagnostics.format(),
    )


def check_form(parser: Parser, case: FormCase) -> Optional[FailureReport]:
    """Replay one form-selection case; None when it passes."""
    diagnostics = ParserDiagnostics(input_text=case.input)
    words = parser.parse(case.input, diagnostics)
    match = next((w for w in words if w.original_text == case.token), None)
    expected = [case.token, str(case.word_id), str(case.reading_index)]

    if match is None:
        return FailureReport(
            input=case.input,
            expected=expected,
            actual=[w.original_text for w in words],
            type=TOKEN_MISSING,
            description=f"Token '{case.token}' not found in parse results",
            diagnostics=diagnostics.format(),
        )

    if match.word_id == case.word_id and match.reading_index == case.reading_index:
        return None

    reasons = []
    if match.word_id != case.word_id:
        reasons.append(f"WordId: expected {case.word_id}, got {match.word_id}")
    if match.reading_index != case.reading_index:
        reasons.append(f"ReadingIndex: expected {case.reading_index}, got {match.reading_index}")
    return FailureReport(
        input=case.input,
        expected=expected,
        actual=[match.original_text, str(match.word_id), str(match.reading_index)],
        type=FORM_MISMATCH,
        description="; ".join(reasons),
        diagnostics=diagnostics.format(),
    )


def _run(parser: Parser, cases: list, check) -> RegressionSummary:
    summary = RegressionSummary(total=len(cases))
    for case in cases:
        failure = check(parser, case)
        if failure is None:
            summary.passed += 1
        else:
            logger.debug("Failed: %s (%s)", case.input, failure.type)
            summary.failures.append(failure)
    logger.info("%d/%d passed", summary.passed, summary.total)
    return summary


def run_segmentation(parser: Parser, cases: Iterable[SegmentationCase]) -> RegressionSummary:
    return _run(parser, list(cases), check_segmentation)


def run_forms(parser: Parser, cases: Iterable[FormCase]) -> RegressionSummary:
    return _run(parser, list(cases), check_form)


def format_summary(summary: RegressionSummary, verbose: bool = False) -> str:
    """Human-readable report used by the CLI."""
    lines = [f"{summary.passed}/{summary.total} passed, {summary.failed} failed"]
    for failure in summary.failures:
        lines.append("")
        lines.append(f"FAIL {failure.input} [{failure.type}]")
        lines.append(f"  expected: {' | '.join(failure.expected)}")
        lines.append(f"  actual:   {' | '.join(failure.actual)}")
        if failure.description:
            lines.append(f"  {failure.description}")
        if failure.probable_cause:
            lines.append(f"  cause: {failure.probable_cause}")
        if failure.suggested_fix:
            lines.extend(f"  {line}" for line in failure.suggested_fix.splitlines())
        if verbose and failure.diagnostics:
            lines.extend(f"    {line}" for line in failure.diagnostics.splitlines())
    return "\n".join(lines)
