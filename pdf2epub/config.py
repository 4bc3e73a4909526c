from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

from .extractors.reading_order import LINE_TOLERANCE
from .package import DEFAULT_CREATOR, DEFAULT_LANGUAGE, Compression, PackageOptions

logger = logging.getLogger(__name__)


def _prepare_env() -> None:
    """Load ``.env`` from the working directory without overriding the process env."""

    load_dotenv(find_dotenv(usecwd=True), override=False)


def _float_env(name: str, default: float) -> float:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    try:
        value = float(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw_value!r}") from exc
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {raw_value!r}")
    return value


def _compression_env(name: str, default: Compression) -> Compression:
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return default
    try:
        return Compression(raw_value.strip().lower())
    except ValueError as exc:
        choices = ", ".join(c.value for c in Compression)
        raise ValueError(f"{name} must be one of {choices}, got {raw_value!r}") from exc


@dataclass(frozen=True)
class ConverterConfig:
    """Runtime settings for a PDF to EPUB conversion."""

    line_tolerance: float = LINE_TOLERANCE
    compression: Compression = Compression.DEFLATE
    language: str = DEFAULT_LANGUAGE
    creator: str = DEFAULT_CREATOR
    pdf_password: str = ""

    @classmethod
    def load(cls) -> "ConverterConfig":
        """Load settings from ``PDF2EPUB_*`` environment variables.

        Values from a local ``.env`` file are picked up too. Unset variables
        fall back to the defaults; malformed ones raise :class:`ValueError`.
        """

        _prepare_env()
        config = cls(
            line_tolerance=_float_env("PDF2EPUB_LINE_TOLERANCE", LINE_TOLERANCE),
            compression=_compression_env("PDF2EPUB_COMPRESSION", Compression.DEFLATE),
            language=os.getenv("PDF2EPUB_LANGUAGE") or DEFAULT_LANGUAGE,
            creator=os.getenv("PDF2EPUB_CREATOR") or DEFAULT_CREATOR,
            pdf_password=os.getenv("PDF2EPUB_PDF_PASSWORD", ""),
        )
        logger.debug("Loaded converter config: tolerance=%s compression=%s", config.line_tolerance, config.compression.value)
        return config

    def package_options(self) -> PackageOptions:
        return PackageOptions(language=self.language, creator=self.creator, compression=self.compression)
