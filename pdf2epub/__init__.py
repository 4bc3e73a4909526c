"""Convert paginated PDF documents into reflowable EPUB 2 packages."""

from .common import ManifestItem, PageText, TextFragment
from .config import ConverterConfig
from .errors import ExtractionError
from .extractors.pdfminer_text import extract_page_texts, extract_pages
from .package import Compression, PackageOptions, assemble_epub, escape_xml_text, write_epub
from .pdf_pipeline import convert_pdf, convert_pdf_file, derive_title

__all__ = [
    "Compression",
    "ConverterConfig",
    "ExtractionError",
    "ManifestItem",
    "PackageOptions",
    "PageText",
    "TextFragment",
    "assemble_epub",
    "convert_pdf",
    "convert_pdf_file",
    "derive_title",
    "escape_xml_text",
    "extract_page_texts",
    "extract_pages",
    "write_epub",
]
