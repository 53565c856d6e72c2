"""
musubi: Japanese word segmentation and dictionary identity resolution.

Turns Japanese text into recognized word spans bound to JMdict identities
(word id + reading index), on top of the SudachiPy tokenizer.
"""

import threading
import time
from typing import Optional, Tuple

__version__ = "0.1.0"

_local = threading.local()


def default_tokenizer():
    """The SudachiPy tokenizer for the current thread, created on first use."""
    from musubi.tokenizer import SudachiTokenizer

    tokenizer = getattr(_local, "tokenizer", None)
    if tokenizer is None:
        tokenizer = _local.tokenizer = SudachiTokenizer()
    return tokenizer


def get_parser(session=None, tokenizer=None):
    """
    Build a Parser over the SQLite dictionary.

    Args:
        session: Optional database session. If None, uses the shared one.
        tokenizer: Optional tokenizer. If None, uses SudachiPy.
    """
    from musubi.db.connection import get_session
    from musubi.lookup import SqlDictionaryStore
    from musubi.parser import Parser

    if session is None:
        session = get_session()
    return Parser(tokenizer or default_tokenizer(), SqlDictionaryStore(session))


def warm_up(verbose: bool = False, session=None) -> Tuple[float, dict]:
    """
    Pre-initialize the tokenizer and dictionary caches.

    Call this once at application startup to avoid cold-start latency on
    the first parse.

    Returns:
        Tuple of (total_time_seconds, timing_details_dict)
    """
    from musubi.db.connection import get_session
    from musubi.lookup import SqlDictionaryStore

    timings = {}
    total_start = time.perf_counter()

    if verbose:
        print("Warming up musubi caches...")

    t0 = time.perf_counter()
    if session is None:
        session = get_session()
    timings['session'] = (time.perf_counter() - t0) * 1000
    if verbose:
        print(f"  Session:        {timings['session']:>7.1f}ms")

    t0 = time.perf_counter()
    SqlDictionaryStore(session).warm_up()
    timings['dictionary'] = (time.perf_counter() - t0) * 1000
    if verbose:
        print(f"  Dictionary:     {timings['dictionary']:>7.1f}ms")

    t0 = time.perf_counter()
    default_tokenizer().tokenize("準備")
    timings['tokenizer'] = (time.perf_counter() - t0) * 1000
    if verbose:
        print(f"  Tokenizer:      {timings['tokenizer']:>7.1f}ms")

    total_time = time.perf_counter() - total_start
    timings['total'] = total_time * 1000
    if verbose:
        print(f"Total warm-up:    {timings['total']:>7.1f}ms")

    return total_time, timings


def parse(text: str, session=None, diagnostics=None) -> list:
    """
    Parse Japanese text into resolved words.

    Args:
        text: Japanese text to parse.
        session: Optional database session. If None, uses the shared one.
        diagnostics: Optional musubi.diagnostics.ParserDiagnostics to fill.

    Returns:
        List of musubi.parser.ResolvedWord in input order.

    Example:
        >>> import musubi
        >>> for w in musubi.parse("表へ出る"):
        ...     print(w.original_text, w.word_id, w.reading_index)
    """
    return get_parser(session).parse(text, diagnostics)
