"""Shared fixtures: clean AO_* environment, sidecar and EPUB builders."""

import json
import os
import zipfile
from pathlib import Path

import pytest
from loguru import logger

from audiobook_organizer.config import OrganizerConfig

_CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="OEBPS/content.opf" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

_OPF_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="2.0" unique-identifier="bookid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:opf="http://www.idpf.org/2007/opf">
    <dc:identifier id="bookid">urn:uuid:0000-test</dc:identifier>
    <dc:title>{title}</dc:title>
{creators}
    <dc:language>en</dc:language>
{description}
{extra_meta}
  </metadata>
  <manifest>
    <item id="chapter1" href="chapter1.xhtml" media-type="application/xhtml+xml"/>
  </manifest>
  <spine>
    <itemref idref="chapter1"/>
  </spine>
</package>
"""

_CHAPTER = """<?xml version="1.0" encoding="UTF-8"?>
<html xmlns="http://www.w3.org/1999/xhtml"><head><title>One</title></head>
<body><p>Chapter one.</p></body></html>
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    """Remove AO_* vars so tests see actual defaults."""
    for var in list(os.environ):
        if var.startswith("AO_"):
            monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def _quiet_logger():
    """Drop loguru sinks added by setup_logging() in a previous test."""
    yield
    logger.remove()


@pytest.fixture
def make_config(tmp_path):
    def _make(**kwargs) -> OrganizerConfig:
        kwargs.setdefault("base_dir", tmp_path)
        return OrganizerConfig(_env_file=None, **kwargs)

    return _make


def write_sidecar(directory: Path, **data) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / "metadata.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def build_epub(
    path: Path,
    title: str = "The Final Empire",
    authors: tuple[str, ...] = ("Brandon Sanderson",),
    description: str = "",
    extra_meta: str = "",
) -> Path:
    """Write a minimal EPUB 2 container with optional raw <meta> lines."""
    creators = "\n".join(f"    <dc:creator>{a}</dc:creator>" for a in authors)
    desc = f"    <dc:description>{description}</dc:description>" if description else ""
    opf = _OPF_TEMPLATE.format(
        title=title, creators=creators, description=desc, extra_meta=extra_meta
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED)
        zf.writestr("META-INF/container.xml", _CONTAINER_XML)
        zf.writestr("OEBPS/content.opf", opf)
        zf.writestr("OEBPS/chapter1.xhtml", _CHAPTER)
    return path


@pytest.fixture
def sidecar():
    return write_sidecar


@pytest.fixture
def epub_file():
    return build_epub
