"""
Module: cli

Purpose:
    Command line access to quiz archives without an editor UI. Every
    command imports the archive into a throwaway session directory, so
    the user's own editing state is never touched.

Commands:
    inspect   Summarise an archive (pages, questions, skipped pages)
    to-json   Whole-quiz JSON preview
    page-json JSON preview of one page
    repack    Import and re-export (normalises legacy archives)
"""

from __future__ import annotations

import argparse
import logging
import sys
import tempfile
from pathlib import Path
from typing import Optional, Sequence

from quiz_builder import __version__
from quiz_builder.config import StoreConfig
from quiz_builder.core.errors import ArchiveFormatError
from quiz_builder.editor.session import QuizSession
from quiz_builder.utils.logging_utils import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_BAD_ARCHIVE = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="quiz-builder", description="Inspect and convert quiz archives")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    parser.add_argument("--log-file", type=Path, help="Also append log records to this file")

    sub = parser.add_subparsers(dest="command", required=True)

    inspect = sub.add_parser("inspect", help="Summarise a quiz archive")
    inspect.add_argument("archive", type=Path)

    to_json = sub.add_parser("to-json", help="Print the whole quiz as JSON")
    to_json.add_argument("archive", type=Path)
    to_json.add_argument("-o", "--output", type=Path, help="Write to a file instead of stdout")

    page_json = sub.add_parser("page-json", help="Print one page as JSON")
    page_json.add_argument("archive", type=Path)
    page_json.add_argument("page_id")

    repack = sub.add_parser("repack", help="Re-export an archive in the current layout")
    repack.add_argument("archive", type=Path)
    repack.add_argument("output", type=Path, nargs="?", help="Output path (default: suggested file name)")

    return parser


def _inspect(session: QuizSession, args: argparse.Namespace, skipped: Sequence[str]) -> int:
    document = session.document()
    manifest = document.manifest
    print(f"Name:        {manifest.name or '(untitled)'}")
    if manifest.description:
        print(f"Description: {manifest.description}")
    print(f"Pages:       {manifest.total_pages}")
    print(f"Questions:   {manifest.total_questions}")
    if manifest.global_time_limit is not None:
        print(f"Time limit:  {manifest.global_time_limit} min (whole quiz)")
    elif manifest.page_time_limit is not None:
        print(f"Time limit:  {manifest.page_time_limit} min (per page)")
    for page in document.ordered_pages():
        marker = "  [skipped]" if page.id in skipped else ""
        print(f"  {page.id}: {page.title!r}, {len(page.questions)} questions{marker}")
    return EXIT_OK


def _to_json(session: QuizSession, args: argparse.Namespace) -> int:
    text = session.full_quiz_json()
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(text, encoding="utf-8")
        logger.info(f"Wrote {args.output}")
    else:
        print(text)
    return EXIT_OK


def _page_json(session: QuizSession, args: argparse.Namespace) -> int:
    try:
        print(session.page_json(args.page_id))
    except KeyError:
        logger.error(f"No page {args.page_id!r} in {args.archive}")
        return EXIT_ERROR
    return EXIT_OK


def _repack(session: QuizSession, args: argparse.Namespace) -> int:
    output = args.output or args.archive.with_name(session.suggested_filename())
    if output.resolve() == args.archive.resolve():
        logger.error("Refusing to overwrite the source archive")
        return EXIT_ERROR
    written = session.export_to(output)
    print(written)
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING, args.log_file)

    if not args.archive.is_file():
        logger.error(f"No such archive: {args.archive}")
        return EXIT_ERROR

    with tempfile.TemporaryDirectory(prefix="quiz-builder-") as tmp:
        with QuizSession(StoreConfig(data_dir=Path(tmp))) as session:
            try:
                result = session.import_document(args.archive)
            except ArchiveFormatError as e:
                logger.error(f"{args.archive}: {e}")
                return EXIT_BAD_ARCHIVE

            if args.command == "inspect":
                return _inspect(session, args, result.skipped_pages)
            if args.command == "to-json":
                return _to_json(session, args)
            if args.command == "page-json":
                return _page_json(session, args)
            return _repack(session, args)


if __name__ == "__main__":
    sys.exit(main())
