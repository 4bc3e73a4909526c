from __future__ import annotations

import io
import logging
from typing import Iterator, List, Optional, Tuple

from pdfminer.converter import PDFPageAggregator
from pdfminer.layout import LAParams, LTContainer, LTTextLine
from pdfminer.pdfdocument import PDFDocument
from pdfminer.pdfinterp import PDFPageInterpreter, PDFResourceManager
from pdfminer.pdfpage import PDFPage
from pdfminer.pdfparser import PDFParser

from ..common import PageText, ProgressCallback, TextFragment, notify, percent_complete
from ..errors import ExtractionError
from .reading_order import LINE_TOLERANCE, reflow_page

logger = logging.getLogger(__name__)

_PDF_MAGIC = b"%PDF-"


def _open_pages(data: bytes, password: str) -> List[PDFPage]:
    if _PDF_MAGIC not in data[:1024]:
        logger.error("Input is not a PDF (missing %s header)", _PDF_MAGIC.decode("ascii"))
        raise ExtractionError("Failed to process PDF file. It might be corrupted or protected.")
    try:
        parser = PDFParser(io.BytesIO(data))
        document = PDFDocument(parser, password=password)
        pages = list(PDFPage.create_pages(document))
    except Exception as exc:  # noqa: BLE001
        logger.error("Unable to parse PDF: %s", exc)
        raise ExtractionError("Failed to process PDF file. It might be corrupted or protected.") from exc
    if not document.is_extractable:
        logger.error("PDF forbids text extraction")
        raise ExtractionError("Text extraction is not allowed for this PDF.")
    return pages


def _collect_fragments(container: LTContainer, out: List[TextFragment]) -> None:
    for obj in container:
        if isinstance(obj, LTTextLine):
            text = obj.get_text().rstrip("\n")
            if text:
                out.append(TextFragment(text=text, x=obj.x0, y=obj.y0))
        elif isinstance(obj, LTContainer):
            _collect_fragments(obj, out)


def iter_page_fragments(
    data: bytes,
    *,
    laparams: Optional[LAParams] = None,
    password: str = "",
) -> Iterator[Tuple[int, int, List[TextFragment]]]:
    """Yield ``(page_num, page_count, fragments)`` for each page in order.

    Fragments are the text lines found by pdfminer's layout analysis, in the
    order pdfminer reports them. The document is opened on the first
    ``next()`` call, so parse failures surface before any page is yielded.
    """

    pages = _open_pages(data, password)
    total = len(pages)
    logger.info("Extracting text from %d page(s)", total)

    rsrcmgr = PDFResourceManager()
    device = PDFPageAggregator(rsrcmgr, laparams=laparams or LAParams(all_texts=True))
    interpreter = PDFPageInterpreter(rsrcmgr, device)
    try:
        for page_num, page in enumerate(pages, start=1):
            try:
                interpreter.process_page(page)
                layout = device.get_result()
            except Exception as exc:  # noqa: BLE001
                logger.error("Failed to process page %d: %s", page_num, exc)
                raise ExtractionError(
                    f"Failed to process page {page_num} of the PDF file.", page_num=page_num
                ) from exc
            fragments: List[TextFragment] = []
            _collect_fragments(layout, fragments)
            yield page_num, total, fragments
    finally:
        device.close()


def extract_pages(
    data: bytes,
    on_progress: Optional[ProgressCallback] = None,
    *,
    tolerance: float = LINE_TOLERANCE,
    laparams: Optional[LAParams] = None,
    password: str = "",
) -> List[PageText]:
    pages: List[PageText] = []
    for page_num, total, fragments in iter_page_fragments(data, laparams=laparams, password=password):
        text = reflow_page(fragments, tolerance)
        pages.append(PageText(page_num=page_num, text=text, fragment_count=len(fragments)))
        logger.debug("Page %d/%d: %d fragment(s), %d char(s)", page_num, total, len(fragments), len(text))
        notify(on_progress, percent_complete(page_num, total))
    if not pages:
        notify(on_progress, 100)
    return pages


def extract_page_texts(
    data: bytes,
    on_progress: Optional[ProgressCallback] = None,
    *,
    tolerance: float = LINE_TOLERANCE,
    laparams: Optional[LAParams] = None,
    password: str = "",
) -> List[str]:
    """Return one reflowed text string per page, index = page number - 1.

    ``on_progress`` receives the rounded percentage of pages done after each
    page; the last value is always 100. Raises :class:`ExtractionError` when
    the bytes are not a readable PDF or any page fails to decode.
    """

    pages = extract_pages(data, on_progress, tolerance=tolerance, laparams=laparams, password=password)
    return [page.text for page in pages]
