from __future__ import annotations

from typing import Optional


class ExtractionError(Exception):
    """Raised when the source bytes cannot be read as a PDF.

    Covers corrupted or truncated files, password protected documents and
    structures pdfminer cannot interpret. ``page_num`` is set when the failure
    happened while a specific page was being processed.
    """

    def __init__(self, message: str, page_num: Optional[int] = None) -> None:
        super().__init__(message)
        self.page_num = page_num
