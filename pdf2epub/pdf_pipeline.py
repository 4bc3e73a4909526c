from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from .common import ProgressCallback, notify, round_half_up
from .config import ConverterConfig
from .extractors.pdfminer_text import extract_page_texts
from .package import PackageOptions, assemble_epub

logger = logging.getLogger(__name__)


# Share of the progress bar given to extraction; assembly fills the rest.
_START_PROGRESS = 5
_EXTRACTION_SHARE = 0.85

_extension_re = re.compile(r"\.[^/.]+$")


def derive_title(filename: str) -> str:
    """Strip the last extension from a file name: ``report.v2.pdf`` -> ``report.v2``."""

    return _extension_re.sub("", Path(filename).name)


def convert_pdf(
    data: bytes,
    title: str,
    on_progress: Optional[ProgressCallback] = None,
    *,
    config: Optional[ConverterConfig] = None,
    options: Optional[PackageOptions] = None,
) -> bytes:
    """Convert PDF bytes to EPUB bytes.

    Progress starts at 5, extraction maps onto 5..90 and the final value
    after assembly is 100. :class:`~pdf2epub.errors.ExtractionError`
    propagates unchanged and no archive is produced.
    """

    config = config or ConverterConfig()
    notify(on_progress, _START_PROGRESS)

    def _extraction_progress(percent: int) -> None:
        notify(on_progress, round_half_up(_START_PROGRESS + percent * _EXTRACTION_SHARE))

    pages = extract_page_texts(
        data,
        _extraction_progress,
        tolerance=config.line_tolerance,
        password=config.pdf_password,
    )
    archive = assemble_epub(title, pages, options=options or config.package_options())
    notify(on_progress, 100)
    return archive


def convert_pdf_file(
    pdf_path: str | Path,
    out_path: str | Path | None = None,
    *,
    title: Optional[str] = None,
    config: Optional[ConverterConfig] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> Path:
    source = Path(pdf_path)
    if not source.exists():
        raise FileNotFoundError(str(source))
    if source.suffix.lower() != ".pdf":
        raise ValueError(f"Please select a valid PDF file: {source.name}")

    book_title = title or derive_title(source.name)
    target = Path(out_path) if out_path else source.with_name(f"{derive_title(source.name)}.epub")

    logger.info("Converting %s -> %s", source, target)
    archive = convert_pdf(source.read_bytes(), book_title, on_progress, config=config)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(archive)
    logger.info("Wrote %d bytes to %s", len(archive), target)
    return target
