"""EPUB metadata extraction using ebooklib.

Dublin Core fields come from ebooklib. Series information lives in OPF
``<meta>`` refinements that ebooklib does not expose, so the raw package
document is read from the zip container for that.

Series resolution order:
    1. EPUB3 belongs-to-collection + group-position refinement
    2. calibre:series / calibre:series_index meta tags
    3. "(Series, Book N)" or "Series, Book N" in the title, then the description
"""

from __future__ import annotations

import zipfile
import xml.etree.ElementTree as ET
from pathlib import Path

from ebooklib import epub
from loguru import logger

from ..errors import MetadataError
from ..models import INVALID_SERIES, Metadata, SourceType
from .series import extract_series_from_text, sanitize_series_candidate

log = logger.bind(stage="epub")

CONTAINER_NS = "urn:oasis:names:tc:opendocument:xmlns:container"
OPF_NS = "http://www.idpf.org/2007/opf"

DEFAULT_SERIES_INDEX = 1.0


def _dc_values(book: epub.EpubBook, name: str) -> list[str]:
    # Entries are (value, attributes) tuples
    return [
        str(value).strip()
        for value, _attrs in book.get_metadata("DC", name)
        if value and str(value).strip()
    ]


def _dc_first(book: epub.EpubBook, name: str) -> str:
    values = _dc_values(book, name)
    return values[0] if values else ""


def read_opf(path: Path) -> ET.Element | None:
    """Parse the package document referenced by META-INF/container.xml."""
    try:
        with zipfile.ZipFile(path) as zf:
            container = ET.fromstring(zf.read("META-INF/container.xml"))
            rootfile = container.find(f".//{{{CONTAINER_NS}}}rootfile")
            if rootfile is None or not rootfile.get("full-path"):
                return None
            return ET.fromstring(zf.read(rootfile.get("full-path")))
    except (zipfile.BadZipFile, KeyError, ET.ParseError, OSError) as exc:
        log.debug(f"read_opf({path}) failed: {exc}")
        return None


def _parse_index(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value.strip())
    except ValueError:
        return None


def series_from_opf(opf: ET.Element) -> tuple[str, float | None] | None:
    """Tiers 1 and 2: EPUB3 collection refinements, then calibre meta tags."""
    metas = list(opf.iter(f"{{{OPF_NS}}}meta"))

    for meta in metas:
        if meta.get("property") != "belongs-to-collection":
            continue
        name = (meta.text or "").strip()
        if not name:
            continue
        index = None
        collection_type = None
        meta_id = meta.get("id")
        if meta_id:
            for ref in metas:
                if ref.get("refines") != f"#{meta_id}":
                    continue
                if ref.get("property") == "group-position":
                    index = _parse_index(ref.text)
                elif ref.get("property") == "collection-type":
                    collection_type = (ref.text or "").strip()
        # Sets are not series; untyped collections are treated as series
        if collection_type and collection_type != "series":
            continue
        return name, index

    calibre: dict[str, str] = {}
    for meta in metas:
        meta_name = meta.get("name", "")
        if meta_name in ("calibre:series", "calibre:series_index"):
            calibre[meta_name] = meta.get("content", "")
    name = calibre.get("calibre:series", "").strip()
    if name:
        return name, _parse_index(calibre.get("calibre:series_index"))

    return None


def read_epub(path: Path) -> Metadata:
    """Extract canonical metadata from an EPUB file."""
    log.debug(f"read_epub(path={path})")
    try:
        book = epub.read_epub(str(path), options={"ignore_ncx": True})
    except Exception as exc:
        raise MetadataError(path, f"failed to read EPUB: {exc}") from exc

    title = _dc_first(book, "title")
    authors = _dc_values(book, "creator")
    description = _dc_first(book, "description")

    raw: dict = {
        "title": title,
        "authors": authors,
        "publisher": _dc_first(book, "publisher"),
        "language": _dc_first(book, "language"),
        "identifier": _dc_first(book, "identifier"),
        "description": description,
        "subjects": _dc_values(book, "subject"),
    }

    series_name = ""
    series_index: float | None = None

    opf = read_opf(path)
    found = series_from_opf(opf) if opf is not None else None
    if found is None:
        found = extract_series_from_text(title) or extract_series_from_text(
            description
        )
    if found is not None:
        series_name, series_index = found
        series_name = sanitize_series_candidate(series_name, source=str(path))

    series: list[str] = []
    if series_name:
        series.append(series_name)
        raw["series"] = series_name
        if series_name != INVALID_SERIES:
            raw["series_index"] = (
                series_index if series_index is not None else DEFAULT_SERIES_INDEX
            )

    return Metadata(
        title=title,
        authors=authors,
        series=series,
        source_type=SourceType.EPUB,
        source_path=str(path),
        raw_data=raw,
    )
