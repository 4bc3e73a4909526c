from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

import pytest

Fragment = Tuple[str, float, float]


def _pdf_string(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def make_pdf(pages: Sequence[Sequence[Fragment]]) -> bytes:
    """Build a minimal PDF with one Helvetica ``Tj`` per fragment, in the given order."""

    bodies: Dict[int, bytes] = {}
    kids: List[str] = []
    for index, fragments in enumerate(pages):
        page_id, content_id = 4 + 2 * index, 5 + 2 * index
        kids.append(f"{page_id} 0 R")
        stream = "".join(
            f"BT /F1 12 Tf {x} {y} Td ({_pdf_string(text)}) Tj ET\n" for text, x, y in fragments
        ).encode("latin-1")
        bodies[page_id] = (
            "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 3 0 R >> >> /Contents {content_id} 0 R >>"
        ).encode("ascii")
        bodies[content_id] = b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"endstream"
    bodies[1] = b"<< /Type /Catalog /Pages 2 0 R >>"
    bodies[2] = f"<< /Type /Pages /Kids [{' '.join(kids)}] /Count {len(pages)} >>".encode("ascii")
    bodies[3] = b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica /Encoding /WinAnsiEncoding >>"

    out = bytearray(b"%PDF-1.4\n")
    offsets: Dict[int, int] = {}
    for num in sorted(bodies):
        offsets[num] = len(out)
        out += b"%d 0 obj\n" % num + bodies[num] + b"\nendobj\n"

    xref_at = len(out)
    size = max(bodies) + 1
    out += b"xref\n0 %d\n" % size
    out += b"0000000000 65535 f \n"
    for num in range(1, size):
        out += b"%010d 00000 n \n" % offsets[num]
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (size, xref_at)
    return bytes(out)


@pytest.fixture
def sample_pdf() -> bytes:
    # Fragments are written bottom-up and right-to-left on purpose.
    return make_pdf(
        [
            [("World", 72, 600), ("right", 300, 700), ("left", 72, 702)],
            [],
            [("Fish & Chips <daily>", 72, 500)],
        ]
    )


@pytest.fixture
def pdf_factory():
    return make_pdf
