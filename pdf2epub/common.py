from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Optional


ProgressCallback = Callable[[int], None]


@dataclass(frozen=True)
class TextFragment:
    """A run of glyphs positioned at its origin in PDF user space (y grows upward)."""

    text: str
    x: float
    y: float


@dataclass
class PageText:
    page_num: int
    text: str
    fragment_count: int = 0


@dataclass(frozen=True)
class ManifestItem:
    id: str
    href: str
    media_type: str


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percent_complete(done: int, total: int) -> int:
    """Return ``done / total`` as a whole percentage, rounding halves up."""

    if total <= 0:
        return 100
    return round_half_up(done * 100 / total)


def notify(on_progress: Optional[ProgressCallback], value: int) -> None:
    if on_progress is not None:
        on_progress(value)
