from __future__ import annotations

import pytest

from pdf2epub.errors import ExtractionError
from pdf2epub.extractors import pdfminer_text
from pdf2epub.extractors.pdfminer_text import extract_page_texts, extract_pages, iter_page_fragments


def test_extract_page_texts_one_entry_per_page_in_reading_order(sample_pdf):
    pages = extract_page_texts(sample_pdf)
    assert pages == ["left right World", "", "Fish & Chips <daily>"]


def test_extract_pages_reports_fragment_counts(sample_pdf):
    pages = extract_pages(sample_pdf)
    assert [page.page_num for page in pages] == [1, 2, 3]
    assert [page.fragment_count for page in pages] == [3, 0, 1]


def test_iter_page_fragments_exposes_raw_positions(sample_pdf):
    first_page_num, total, fragments = next(iter_page_fragments(sample_pdf))
    assert (first_page_num, total) == (1, 3)
    by_text = {fragment.text: fragment for fragment in fragments}
    assert set(by_text) == {"World", "right", "left"}
    assert by_text["left"].y > by_text["World"].y
    assert by_text["left"].x < by_text["right"].x


def test_progress_is_monotonic_and_ends_at_100(sample_pdf):
    seen = []
    extract_page_texts(sample_pdf, seen.append)
    assert seen == [33, 67, 100]


def test_progress_rounds_halves_up(pdf_factory):
    data = pdf_factory([[("a", 72, 700)]] * 8)
    seen = []
    extract_page_texts(data, seen.append)
    assert seen == [13, 25, 38, 50, 63, 75, 88, 100]


def test_tolerance_is_configurable(pdf_factory):
    data = pdf_factory([[("right", 300, 700), ("left", 72, 690)]])
    assert extract_page_texts(data) == ["right left"]
    assert extract_page_texts(data, tolerance=15) == ["left right"]


def test_document_without_pages_reports_completion(monkeypatch):
    monkeypatch.setattr(pdfminer_text, "iter_page_fragments", lambda data, **kwargs: iter(()))
    seen = []
    assert extract_page_texts(b"%PDF-1.4", seen.append) == []
    assert seen == [100]


@pytest.mark.parametrize(
    "payload",
    [
        b"",
        b"this is not a pdf at all",
        b"%PDF-1.4\nthis file was truncated",
    ],
)
def test_malformed_input_raises_extraction_error(payload):
    seen = []
    with pytest.raises(ExtractionError):
        extract_page_texts(payload, seen.append)
    assert seen == []


def test_page_failure_aborts_whole_document(sample_pdf, monkeypatch):
    calls = []

    class ExplodingInterpreter(pdfminer_text.PDFPageInterpreter):
        def process_page(self, page):
            calls.append(page)
            if len(calls) == 2:
                raise KeyError("broken content stream")
            super().process_page(page)

    monkeypatch.setattr(pdfminer_text, "PDFPageInterpreter", ExplodingInterpreter)
    seen = []
    with pytest.raises(ExtractionError) as excinfo:
        extract_page_texts(sample_pdf, seen.append)
    assert excinfo.value.page_num == 2
    assert isinstance(excinfo.value.__cause__, KeyError)
    assert seen == [33]
