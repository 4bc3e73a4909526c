from __future__ import annotations

import io
import logging
import re
import uuid
import zipfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Sequence
from xml.sax.saxutils import escape

from lxml import etree

from .common import ManifestItem

logger = logging.getLogger(__name__)


MIMETYPE = "application/epub+zip"
CONTAINER_PATH = "META-INF/container.xml"
OPF_PATH = "OEBPS/content.opf"
NCX_HREF = "toc.ncx"
NCX_ID = "ncx"
TEXT_DIR = "Text"
DEFAULT_LANGUAGE = "en"
DEFAULT_CREATOR = "PDF to EPUB Converter"

XHTML_MEDIA_TYPE = "application/xhtml+xml"
NCX_MEDIA_TYPE = "application/x-dtbncx+xml"
OPF_MEDIA_TYPE = "application/oebps-package+xml"

CONTAINER_NS = "urn:oasis:names:tc:opendocument:xmlns:container"
OPF_NS = "http://www.idpf.org/2007/opf"
DC_NS = "http://purl.org/dc/elements/1.1/"
NCX_NS = "http://www.daisy.org/z3986/2005/ncx/"

# saxutils.escape handles "&" first, then "<" and ">", then these.
_QUOTE_ENTITIES = {'"': "&quot;", "'": "&apos;"}

# Code points XML 1.0 does not allow in character data.
_invalid_xml_re = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")

_PAGE_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.1//EN" "http://www.w3.org/TR/xhtml11/DTD/xhtml11.dtd">
<html xmlns="http://www.w3.org/1999/xhtml">
  <head>
    <title>{title} - Page {number}</title>
    <style>
      body {{ padding: 1em; line-height: 1.6; font-family: sans-serif; }}
      p {{ margin-bottom: 1em; text-indent: 1.2em; }}
    </style>
  </head>
  <body>
    <p>{text}</p>
  </body>
</html>
"""


class Compression(str, Enum):
    STORE = "store"
    DEFLATE = "deflate"

    @property
    def zip_method(self) -> int:
        return zipfile.ZIP_STORED if self is Compression.STORE else zipfile.ZIP_DEFLATED


def _new_identifier() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class PackageOptions:
    """Fixed metadata and archive settings for :func:`assemble_epub`.

    ``compression`` applies to every entry except ``mimetype``, which is
    always stored. ``identifier_factory`` returns the UUID embedded as
    ``urn:uuid:<value>``; tests pass a constant.
    """

    language: str = DEFAULT_LANGUAGE
    creator: str = DEFAULT_CREATOR
    compression: Compression = Compression.DEFLATE
    identifier_factory: Callable[[], str] = _new_identifier


def strip_invalid_xml_chars(text: str) -> str:
    return _invalid_xml_re.sub("", text)


def escape_xml_text(text: str) -> str:
    """Escape ``& < > " '`` as named entities, ampersand first."""

    return escape(text, _QUOTE_ENTITIES)


def page_filename(index: int) -> str:
    return f"page_{index}.xhtml"


def build_manifest(page_count: int) -> List[ManifestItem]:
    items = [
        ManifestItem(id=f"p{i}", href=f"{TEXT_DIR}/{page_filename(i)}", media_type=XHTML_MEDIA_TYPE)
        for i in range(page_count)
    ]
    items.append(ManifestItem(id=NCX_ID, href=NCX_HREF, media_type=NCX_MEDIA_TYPE))
    return items


def _serialise(root: etree._Element) -> bytes:
    return etree.tostring(root, encoding="utf-8", xml_declaration=True, pretty_print=True)


def _container_xml() -> bytes:
    container = etree.Element(f"{{{CONTAINER_NS}}}container", nsmap={None: CONTAINER_NS})
    container.set("version", "1.0")
    rootfiles = etree.SubElement(container, f"{{{CONTAINER_NS}}}rootfiles")
    rootfile = etree.SubElement(rootfiles, f"{{{CONTAINER_NS}}}rootfile")
    rootfile.set("full-path", OPF_PATH)
    rootfile.set("media-type", OPF_MEDIA_TYPE)
    return _serialise(container)


def _content_opf(
    title: str,
    identifier: str,
    manifest: Sequence[ManifestItem],
    spine: Sequence[str],
    options: PackageOptions,
) -> bytes:
    package = etree.Element(f"{{{OPF_NS}}}package", nsmap={None: OPF_NS})
    package.set("unique-identifier", "bookid")
    package.set("version", "2.0")

    metadata = etree.SubElement(package, f"{{{OPF_NS}}}metadata", nsmap={"dc": DC_NS})
    etree.SubElement(metadata, f"{{{DC_NS}}}title").text = title
    etree.SubElement(metadata, f"{{{DC_NS}}}language").text = options.language
    etree.SubElement(metadata, f"{{{DC_NS}}}creator").text = options.creator
    ident = etree.SubElement(metadata, f"{{{DC_NS}}}identifier")
    ident.set("id", "bookid")
    ident.text = identifier

    manifest_el = etree.SubElement(package, f"{{{OPF_NS}}}manifest")
    for item in manifest:
        node = etree.SubElement(manifest_el, f"{{{OPF_NS}}}item")
        node.set("id", item.id)
        node.set("href", item.href)
        node.set("media-type", item.media_type)

    spine_el = etree.SubElement(package, f"{{{OPF_NS}}}spine")
    spine_el.set("toc", NCX_ID)
    for idref in spine:
        etree.SubElement(spine_el, f"{{{OPF_NS}}}itemref").set("idref", idref)
    return _serialise(package)


def _toc_ncx(title: str, identifier: str, first_href: str | None) -> bytes:
    ncx = etree.Element(f"{{{NCX_NS}}}ncx", nsmap={None: NCX_NS})
    ncx.set("version", "2005-1")
    head = etree.SubElement(ncx, f"{{{NCX_NS}}}head")
    for name, content in (
        ("dtb:uid", identifier),
        ("dtb:depth", "1"),
        ("dtb:totalPageCount", "0"),
        ("dtb:maxPageNumber", "0"),
    ):
        meta = etree.SubElement(head, f"{{{NCX_NS}}}meta")
        meta.set("name", name)
        meta.set("content", content)

    doc_title = etree.SubElement(ncx, f"{{{NCX_NS}}}docTitle")
    etree.SubElement(doc_title, f"{{{NCX_NS}}}text").text = title

    nav_map = etree.SubElement(ncx, f"{{{NCX_NS}}}navMap")
    if first_href is not None:
        nav_point = etree.SubElement(nav_map, f"{{{NCX_NS}}}navPoint")
        nav_point.set("id", "navpoint-1")
        nav_point.set("playOrder", "1")
        label = etree.SubElement(nav_point, f"{{{NCX_NS}}}navLabel")
        etree.SubElement(label, f"{{{NCX_NS}}}text").text = "Start"
        etree.SubElement(nav_point, f"{{{NCX_NS}}}content").set("src", first_href)
    return _serialise(ncx)


def _page_xhtml(title: str, index: int, text: str) -> str:
    return _PAGE_TEMPLATE.format(
        title=escape_xml_text(title),
        number=index + 1,
        text=escape_xml_text(text),
    )


def assemble_epub(title: str, pages: Sequence[str], *, options: PackageOptions | None = None) -> bytes:
    """Build an EPUB 2 archive in memory with one XHTML file per page.

    The ``mimetype`` entry is written first and uncompressed; every other
    entry uses ``options.compression``. Returns the archive bytes.
    """

    options = options or PackageOptions()
    title = strip_invalid_xml_chars(title)
    pages = [strip_invalid_xml_chars(page) for page in pages]
    identifier = f"urn:uuid:{options.identifier_factory()}"
    manifest = build_manifest(len(pages))
    content_items = manifest[:-1]
    spine = [item.id for item in content_items]
    method = options.compression.zip_method

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("mimetype", MIMETYPE, compress_type=zipfile.ZIP_STORED)
        zf.writestr(CONTAINER_PATH, _container_xml(), compress_type=method)
        for index, (item, text) in enumerate(zip(content_items, pages)):
            zf.writestr(f"OEBPS/{item.href}", _page_xhtml(title, index, text), compress_type=method)
        zf.writestr(OPF_PATH, _content_opf(title, identifier, manifest, spine, options), compress_type=method)
        first_href = content_items[0].href if content_items else None
        zf.writestr(f"OEBPS/{NCX_HREF}", _toc_ncx(title, identifier, first_href), compress_type=method)

    logger.info("Assembled EPUB '%s' with %d page(s)", title, len(pages))
    return buffer.getvalue()


def write_epub(
    out_path: str | Path,
    title: str,
    pages: Sequence[str],
    *,
    options: PackageOptions | None = None,
) -> Path:
    target = Path(out_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(assemble_epub(title, pages, options=options))
    logger.info("Wrote %s", target)
    return target
