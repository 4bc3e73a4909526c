from __future__ import annotations

from functools import cmp_to_key
from typing import Iterable, List, Sequence

from ..common import TextFragment

# Fragments whose origins differ vertically by no more than this many PDF
# units are treated as sitting on the same line.
LINE_TOLERANCE = 5.0


def compare_fragments(a: TextFragment, b: TextFragment, tolerance: float = LINE_TOLERANCE) -> float:
    """Order two fragments top-to-bottom, then left-to-right.

    PDF user space grows upward, so the fragment with the larger ``y`` is
    visually higher and sorts first. Within the tolerance band only the
    horizontal origin decides.
    """

    y_diff = b.y - a.y
    if abs(y_diff) > tolerance:
        return y_diff
    return a.x - b.x


def sort_fragments(fragments: Iterable[TextFragment], tolerance: float = LINE_TOLERANCE) -> List[TextFragment]:
    # list.sort is stable, so exact ties keep their extraction order.
    key = cmp_to_key(lambda a, b: compare_fragments(a, b, tolerance))
    return sorted(fragments, key=key)


def join_fragments(fragments: Sequence[TextFragment]) -> str:
    return " ".join(fragment.text for fragment in fragments)


def reflow_page(fragments: Iterable[TextFragment], tolerance: float = LINE_TOLERANCE) -> str:
    """Return the page's text in reading order, fragments separated by a space."""

    return join_fragments(sort_fragments(fragments, tolerance))
