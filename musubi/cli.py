"""
Command line interface for musubi.

Usage:
    musubi "日本語テキスト"                # one line per word: surface, word id, reading index
    musubi -f "日本語テキスト"             # full JSON
    musubi -s "日本語テキスト"             # every segment, '-' for unrecognized text
    musubi --diagnostics "日本語テキスト"  # pipeline trace
    musubi load entries.json             # load a dictionary snapshot
    musubi diagnose corpus.json          # replay segmentation cases
    musubi forms corpus.json             # replay form-selection cases
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional

from musubi import __version__, get_parser, settings
from musubi.db.connection import get_db_path, get_session, init_db
from musubi.diagnostics import ParserDiagnostics
from musubi.errors import MusubiError
from musubi.models import ParseResult
from musubi.output import segments_to_text

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    level = logging.DEBUG if settings.DEBUG else logging.INFO if verbose else logging.WARNING
    logging.basicConfig(level=level, format='%(asctime)s - %(levelname)s - %(message)s')


def make_parser(db_path: Optional[str] = None):
    """Build a Parser for the database at db_path."""
    return get_parser(get_session(db_path))


def _check_database(db_path: Optional[str]) -> bool:
    path = get_db_path(db_path)
    if not path.exists():
        print(f"Error: dictionary database not found: {path}", file=sys.stderr)
        print("Load one with: musubi load ENTRIES.json", file=sys.stderr)
        return False
    return True


# ============================================================================
# Subcommands
# ============================================================================

def load_command(args) -> int:
    """Load a dictionary snapshot into the database."""
    from musubi.loading.entries import load_entries
    from musubi.loading.errata import apply_errata

    source = Path(args.entries)
    if not source.exists():
        print(f"Error: snapshot not found: {source}", file=sys.stderr)
        return 1
    if args.errata and not Path(args.errata).exists():
        print(f"Error: errata file not found: {args.errata}", file=sys.stderr)
        return 1

    db_path = get_db_path(args.database)
    print(f"Loading {source} into {db_path}...")
    t0 = time.perf_counter()
    try:
        init_db(db_path, drop=args.replace)
        session = get_session(db_path)
        total = load_entries(session, source)
        fixed = apply_errata(session, args.errata) if args.errata else 0
    except (MusubiError, ValueError, KeyError) as e:
        print(f"Error loading snapshot: {e}", file=sys.stderr)
        return 1

    elapsed = time.perf_counter() - t0
    print(f"Loaded {total:,} entries in {elapsed:.1f}s")
    if args.errata:
        print(f"Applied {fixed:,} corrections from {args.errata}")
    return 0


def main_load(args: list) -> int:
    """CLI entry point for load subcommand."""
    parser = argparse.ArgumentParser(
        description='Load a JSON dictionary snapshot into the musubi database',
        prog='musubi load',
    )
    parser.add_argument('entries', metavar='ENTRIES.json', help='Snapshot file')
    parser.add_argument('-d', '--database', default=None, metavar='PATH',
                        help='Database path (default: MUSUBI_DB_PATH or musubi/data/musubi.db)')
    parser.add_argument('--replace', action='store_true',
                        help='Drop existing tables before loading')
    parser.add_argument('--errata', default=None, metavar='ERRATA.json',
                        help='Corrections to apply after loading')
    parser.add_argument('--verbose', action='store_true', help='Log progress')

    parsed = parser.parse_args(args)
    setup_logging(parsed.verbose)
    return load_command(parsed)


def main_regression(args: list, kind: str) -> int:
    """CLI entry point for the diagnose and forms subcommands."""
    from musubi.regression import (
        format_summary, load_form_cases, load_segmentation_cases,
        run_forms, run_segmentation,
    )

    descriptions = {
        'diagnose': 'Replay segmentation cases and analyse failures',
        'forms': 'Replay form-selection cases',
    }
    parser = argparse.ArgumentParser(description=descriptions[kind], prog=f'musubi {kind}')
    parser.add_argument('corpus', metavar='CORPUS.json', help='Case file')
    parser.add_argument('-d', '--database', default=None, metavar='PATH', help='Path to SQLite database file')
    parser.add_argument('-j', '--json', action='store_true', help='Print the summary as JSON')
    parser.add_argument('--verbose', action='store_true', help='Include diagnostics for each failure')

    parsed = parser.parse_args(args)
    setup_logging(parsed.verbose)

    if not _check_database(parsed.database):
        return 1
    try:
        if kind == 'diagnose':
            summary = run_segmentation(make_parser(parsed.database), load_segmentation_cases(parsed.corpus))
        else:
            summary = run_forms(make_parser(parsed.database), load_form_cases(parsed.corpus))
    except (OSError, ValueError, KeyError) as e:
        print(f"Error reading corpus: {e}", file=sys.stderr)
        return 1
    except MusubiError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if parsed.json:
        print(summary.model_dump_json(indent=2))
    else:
        print(format_summary(summary, verbose=parsed.verbose))
    return 0 if summary.ok else 1


# ============================================================================
# Main
# ============================================================================

def main(args: Optional[list] = None) -> int:
    """Main CLI entry point."""
    args_list = args if args is not None else sys.argv[1:]

    if args_list and args_list[0] == 'load':
        return main_load(args_list[1:])
    if args_list and args_list[0] in ('diagnose', 'forms'):
        return main_regression(args_list[1:], args_list[0])

    parser = argparse.ArgumentParser(
        description='Command line interface for musubi (Japanese word identity resolution)',
        prog='musubi',
        epilog=(
            'Subcommands:\n'
            '  musubi load ENTRIES.json     Load a dictionary snapshot\n'
            '  musubi diagnose CORPUS.json  Replay segmentation cases\n'
            '  musubi forms CORPUS.json     Replay form-selection cases'
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('text', nargs='*', help='Japanese text to parse')
    parser.add_argument('-f', '--full', action='store_true', help='Words and segments as JSON')
    parser.add_argument('-s', '--segments', action='store_true',
                        help='One line per segment, including unrecognized text')
    parser.add_argument('-d', '--database', type=str, default=None, metavar='PATH',
                        help='Path to SQLite database file')
    parser.add_argument('--diagnostics', action='store_true', help='Print the pipeline trace')
    parser.add_argument('--verbose', action='store_true', help='Enable INFO logging')
    parser.add_argument('-v', '--version', action='store_true', help='Show version information')

    parsed = parser.parse_args(args_list)

    if parsed.version:
        print(f'musubi {__version__}')
        return 0

    text = ' '.join(parsed.text) if parsed.text else ''
    if not text:
        parser.print_help()
        return 1
    if len(text) > settings.MAX_INPUT_LENGTH:
        print(f'Error: input is {len(text)} characters, limit is {settings.MAX_INPUT_LENGTH}',
              file=sys.stderr)
        return 1

    setup_logging(parsed.verbose)
    if not _check_database(parsed.database):
        return 1

    diagnostics = ParserDiagnostics() if parsed.diagnostics else None
    try:
        words = make_parser(parsed.database).parse(text, diagnostics)
    except MusubiError as e:
        print(f'Error processing text: {e}', file=sys.stderr)
        return 1

    result = ParseResult.from_words(text, words)
    if parsed.full:
        print(result.model_dump_json(indent=2))
    elif parsed.segments:
        print(segments_to_text(result.segments))
    else:
        for word in result.words:
            print(f'{word.text}\t{word.word_id}\t{word.reading_index}')

    if diagnostics is not None:
        print(diagnostics.format())
    return 0


if __name__ == '__main__':
    sys.exit(main())
