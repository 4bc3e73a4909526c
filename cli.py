from __future__ import annotations

import argparse
import logging
import sys
import zipfile
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from pdf2epub.config import ConverterConfig
from pdf2epub.errors import ExtractionError
from pdf2epub.package import Compression
from pdf2epub.pdf_pipeline import convert_pdf_file
from pdf2epub.validators.epub_structure import inspect_epub

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)


def _existing_file(path_str: str) -> Path:
    path = Path(path_str)
    if not path.is_file():
        raise argparse.ArgumentTypeError(f"{path} is not an existing file")
    return path


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="PDF to EPUB converter CLI")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log every page")

    subparsers = parser.add_subparsers(dest="command", required=True)

    convert_parser = subparsers.add_parser("convert", help="Convert a PDF to EPUB")
    convert_parser.add_argument("--input", dest="input_path", required=True, type=_existing_file)
    convert_parser.add_argument("--out", dest="out_path", help="Defaults to <input stem>.epub next to the input")
    convert_parser.add_argument("--title", help="Defaults to the input file name without its extension")
    convert_parser.add_argument("--store", action="store_true", help="Store entries without compression")

    validate_parser = subparsers.add_parser("validate", help="Check the structure of an EPUB archive")
    validate_parser.add_argument("--input", dest="input_path", required=True, type=_existing_file)

    return parser


class _ProgressLogger:
    def __init__(self) -> None:
        self.last: Optional[int] = None

    def __call__(self, percent: int) -> None:
        if percent != self.last:
            self.last = percent
            logger.info("Progress: %d%%", percent)


def _handle_convert(args: argparse.Namespace) -> int:
    try:
        config = ConverterConfig.load()
        if args.store:
            config = replace(config, compression=Compression.STORE)
        out_path = convert_pdf_file(
            args.input_path,
            args.out_path,
            title=args.title,
            config=config,
            on_progress=_ProgressLogger(),
        )
    except (ExtractionError, ValueError) as exc:
        logger.error("Conversion failed: %s", exc)
        return 1
    print(out_path)
    return 0


def _handle_validate(args: argparse.Namespace) -> int:
    try:
        report = inspect_epub(args.input_path.read_bytes())
    except zipfile.BadZipFile as exc:
        logger.error("%s: not a zip archive (%s)", args.input_path, exc)
        return 1
    if report.problems:
        for problem in report.problems:
            logger.error("%s: %s", args.input_path, problem)
        return 1
    print("valid")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger("pdf2epub").setLevel(logging.DEBUG)

    if args.command == "convert":
        return _handle_convert(args)
    if args.command == "validate":
        return _handle_validate(args)
    parser.error("Unknown command")
    return 2


if __name__ == "__main__":
    sys.exit(main())
