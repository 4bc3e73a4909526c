from __future__ import annotations

import io
import logging
import posixpath
import zipfile
from dataclasses import dataclass, field
from typing import List, Optional

from lxml import etree

from ..common import ManifestItem
from ..package import CONTAINER_PATH, MIMETYPE, NCX_MEDIA_TYPE, XHTML_MEDIA_TYPE

logger = logging.getLogger(__name__)


EPUB_NS = {
    "c": "urn:oasis:names:tc:opendocument:xmlns:container",
    "opf": "http://www.idpf.org/2007/opf",
    "dc": "http://purl.org/dc/elements/1.1/",
    "ncx": "http://www.daisy.org/z3986/2005/ncx/",
    "html": "http://www.w3.org/1999/xhtml",
}


@dataclass
class EpubReport:
    first_entry: Optional[str] = None
    first_entry_stored: bool = False
    mimetype: Optional[str] = None
    rootfile: Optional[str] = None
    title: Optional[str] = None
    identifier: Optional[str] = None
    manifest: List[ManifestItem] = field(default_factory=list)
    spine: List[str] = field(default_factory=list)
    toc_id: Optional[str] = None
    problems: List[str] = field(default_factory=list)

    @property
    def content_items(self) -> List[ManifestItem]:
        return [item for item in self.manifest if item.media_type == XHTML_MEDIA_TYPE]

    @property
    def is_valid(self) -> bool:
        return not self.problems


def _parse_xml(zf: zipfile.ZipFile, path: str, report: EpubReport) -> Optional[etree._Element]:
    try:
        return etree.fromstring(zf.read(path))
    except etree.XMLSyntaxError as exc:
        logger.debug("Failed to parse %s: %s", path, exc)
        report.problems.append(f"{path} is not well-formed XML")
        return None


def _read_container(zf: zipfile.ZipFile, report: EpubReport) -> Optional[str]:
    names = zf.namelist()
    if names.count(CONTAINER_PATH) != 1:
        report.problems.append(f"expected exactly one {CONTAINER_PATH}, found {names.count(CONTAINER_PATH)}")
        return None
    container_xml = _parse_xml(zf, CONTAINER_PATH, report)
    if container_xml is None:
        return None
    rootfile = container_xml.xpath("//c:rootfile/@full-path", namespaces=EPUB_NS)
    if not rootfile:
        report.problems.append("container is missing a rootfile")
        return None
    return str(rootfile[0])


def _parse_opf(zf: zipfile.ZipFile, opf_path: str, report: EpubReport) -> bool:
    opf_doc = _parse_xml(zf, opf_path, report)
    if opf_doc is None:
        return False
    report.title = opf_doc.findtext(".//dc:title", namespaces=EPUB_NS)
    report.identifier = opf_doc.findtext(".//dc:identifier", namespaces=EPUB_NS)
    report.manifest = [
        ManifestItem(id=item.get("id"), href=item.get("href"), media_type=item.get("media-type"))
        for item in opf_doc.xpath("//opf:manifest/opf:item", namespaces=EPUB_NS)
    ]
    report.spine = [
        item.get("idref")
        for item in opf_doc.xpath("//opf:spine/opf:itemref", namespaces=EPUB_NS)
    ]
    toc = opf_doc.xpath("//opf:spine/@toc", namespaces=EPUB_NS)
    report.toc_id = str(toc[0]) if toc else None
    return True


def _check_cross_references(zf: zipfile.ZipFile, opf_path: str, report: EpubReport) -> None:
    base = posixpath.dirname(opf_path)
    names = set(zf.namelist())
    ids = [item.id for item in report.manifest]
    if len(ids) != len(set(ids)):
        report.problems.append("manifest ids are not unique")
    by_id = {item.id: item for item in report.manifest}
    for item in report.manifest:
        path = posixpath.join(base, item.href)
        if path not in names:
            report.problems.append(f"manifest item {item.id} points at missing {item.href}")
        elif item.media_type in (XHTML_MEDIA_TYPE, NCX_MEDIA_TYPE):
            _parse_xml(zf, path, report)
    for idref in report.spine:
        if idref not in by_id:
            report.problems.append(f"spine references unknown id {idref}")
    content_ids = [item.id for item in report.content_items]
    if report.spine != content_ids:
        report.problems.append("spine order does not match manifest content order")
    toc_item = by_id.get(report.toc_id) if report.toc_id else None
    if toc_item is None or toc_item.media_type != NCX_MEDIA_TYPE:
        report.problems.append("spine toc does not reference an NCX manifest item")


def inspect_epub(data: bytes) -> EpubReport:
    """Read an archive back the way a reading system would and report on it."""

    report = EpubReport()
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        infos = zf.infolist()
        if infos:
            first = infos[0]
            report.first_entry = first.filename
            report.first_entry_stored = first.compress_type == zipfile.ZIP_STORED
            if first.filename == "mimetype":
                report.mimetype = zf.read(first).decode("ascii", errors="replace")
        if report.first_entry != "mimetype":
            report.problems.append("first entry is not mimetype")
        elif not report.first_entry_stored:
            report.problems.append("mimetype entry is compressed")
        elif report.mimetype != MIMETYPE:
            report.problems.append(f"unexpected mimetype {report.mimetype!r}")

        rootfile = _read_container(zf, report)
        if rootfile is None:
            return report
        if rootfile not in zf.namelist():
            report.problems.append(f"rootfile {rootfile} is missing from the archive")
            return report
        report.rootfile = rootfile
        if _parse_opf(zf, rootfile, report):
            _check_cross_references(zf, rootfile, report)

    logger.debug(
        "Inspected EPUB: %d manifest item(s), %d spine item(s), %d problem(s)",
        len(report.manifest),
        len(report.spine),
        len(report.problems),
    )
    return report


def validate_epub(data: bytes) -> EpubReport:
    report = inspect_epub(data)
    if report.problems:
        raise ValueError("Invalid EPUB: " + "; ".join(report.problems))
    return report
