"""
Pytest configuration and fixtures.

Provides common test fixtures for all test modules. Binary fixture
documents are generated on the fly with the same libraries the extractors
read them with.
"""

import base64
import io
import re
import tempfile
import zipfile
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

import fitz  # PyMuPDF
import pytest
from pptx import Presentation
from pptx.opc.constants import RELATIONSHIP_TYPE as RT
from pptx.opc.package import Part
from pptx.opc.packuri import PackURI
from pptx.util import Inches

from indexkit.config import Settings
from indexkit.models import FileType, NormalizedRecord

# 1x1 RGBA PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)

BLANK_LAYOUT = 6


# ==============================================================================
# Directory Fixtures
# ==============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def media_dir(temp_dir: Path) -> Path:
    """Directory extracted assets are written to."""
    return temp_dir / "output" / "media"


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """Create test settings pointing at the temporary directory."""
    return Settings(
        output_directory=temp_dir / "output",
        media_dirname="media",
        corpus_filename="search-index.json",
        max_workers=1,
        log_level="DEBUG",
    )


@pytest.fixture
def png_bytes() -> bytes:
    """A tiny valid PNG image."""
    return PNG_BYTES


# ==============================================================================
# Record Fixtures
# ==============================================================================


def make_record(index: int = 1, **overrides: Any) -> NormalizedRecord:
    """Build a well-formed record with predictable values."""
    values: dict[str, Any] = {
        "id": f"record-{index}",
        "title": f"Document {index}",
        "content": f"Body text of document {index}.",
        "source_path": f"/data/doc{index}.md",
        "file_type": FileType.MD,
        "indexed_date": datetime(2024, 5, 1, 12, 30, index, tzinfo=timezone.utc),
        "images": [f"/data/media/doc{index}_image_1.png"],
        "metadata": {"HeadingCount": "1"},
    }
    values.update(overrides)
    return NormalizedRecord(**values)


@pytest.fixture
def record_factory() -> Callable[..., NormalizedRecord]:
    """Expose the record builder to tests."""
    return make_record


@pytest.fixture
def sample_record() -> NormalizedRecord:
    """A single well-formed record."""
    return make_record(
        1,
        file_type=FileType.PPTX,
        audio_files=["/data/media/doc1_audio_1.mp3"],
        video_files=["/data/media/doc1_video_1.mp4"],
        metadata={"Author": "Ada", "SlideCount": "3"},
    )


@pytest.fixture
def sample_records() -> list[NormalizedRecord]:
    """Three well-formed records."""
    return [make_record(i) for i in range(1, 4)]


# ==============================================================================
# Markdown Fixtures
# ==============================================================================


@pytest.fixture
def sample_md_file(temp_dir: Path) -> Path:
    """Minimal Markdown document with a heading, a paragraph and an image."""
    file_path = temp_dir / "docs" / "intro.md"
    file_path.parent.mkdir(parents=True)
    file_path.write_text("# Title\n\nHello world.\n\n![alt](img.png)", encoding="utf-8")
    return file_path


@pytest.fixture
def structured_md_file(temp_dir: Path) -> Path:
    """Markdown document exercising headings, code, links, tables and images."""
    content = """# Guide

Intro with a [link](https://example.com) and a [relative link](other.md).

![first](images/one.png)

## Install

```bash
pip install indexkit
```

## Usage

| Option | Meaning |
|--------|---------|
| -v     | verbose |

    indented code block

### Details

Fish & chips cost < 5 "units".

![remote](https://cdn.example.com/two.png)
![parent](../shared/three.png)
"""
    file_path = temp_dir / "guide" / "guide.md"
    file_path.parent.mkdir(parents=True)
    file_path.write_text(content, encoding="utf-8")
    return file_path


# ==============================================================================
# Presentation Fixtures
# ==============================================================================


def attach_media(slide: Any, partname: str, content_type: str, blob: bytes, reltypes: tuple[str, ...]) -> Part:
    """Attach a binary media part to a slide through the given relationships."""
    part = Part(PackURI(partname), content_type, package=slide.part.package, blob=blob)
    for reltype in reltypes:
        slide.part.relate_to(part, reltype)
    return part


def build_presentation(
    path: Path,
    slides: list[dict[str, Any]],
    title: str = "",
    author: str | None = None,
    created: datetime | None = None,
    core_properties: bool = True,
) -> Path:
    """
    Write a .pptx file.

    Each slide description may contain ``texts`` (list of text box strings),
    ``group_texts`` (text boxes inside a group shape), ``images`` (number of
    PNG pictures), ``audio`` and ``video`` (number of clips).
    With ``core_properties=False`` the package is saved without a
    ``docProps/core.xml`` part, as some producers write it.
    """
    prs = Presentation()
    media_index = 0

    for layout in slides:
        slide = prs.slides.add_slide(prs.slide_layouts[BLANK_LAYOUT])

        for text in layout.get("texts", []):
            box = slide.shapes.add_textbox(Inches(1), Inches(1), Inches(6), Inches(1))
            box.text_frame.text = text

        if layout.get("group_texts"):
            group = slide.shapes.add_group_shape()
            for text in layout["group_texts"]:
                box = group.shapes.add_textbox(Inches(1), Inches(3), Inches(6), Inches(1))
                box.text_frame.text = text

        for _ in range(layout.get("images", 0)):
            slide.shapes.add_picture(io.BytesIO(PNG_BYTES), Inches(1), Inches(2))

        for _ in range(layout.get("audio", 0)):
            media_index += 1
            attach_media(
                slide,
                f"/ppt/media/media{media_index}.mp3",
                "audio/mpeg",
                b"ID3-fake-audio",
                (RT.AUDIO, RT.MEDIA),
            )

        for _ in range(layout.get("video", 0)):
            media_index += 1
            attach_media(
                slide,
                f"/ppt/media/media{media_index}.mp4",
                "video/mp4",
                b"fake-mp4-video",
                (RT.VIDEO, RT.MEDIA),
            )

    prs.core_properties.title = title
    if author is not None:
        prs.core_properties.author = author
    if created is not None:
        prs.core_properties.created = created
        prs.core_properties.modified = created

    prs.save(str(path))
    if not core_properties:
        strip_core_properties(path)
    return path


def strip_core_properties(path: Path) -> None:
    """Remove the core-properties part and every reference to it from a saved package."""
    with zipfile.ZipFile(path) as source:
        entries = {name: source.read(name) for name in source.namelist()}

    del entries["docProps/core.xml"]
    entries["_rels/.rels"] = re.sub(rb"<Relationship [^>]*core-properties[^>]*/>", b"", entries["_rels/.rels"])
    entries["[Content_Types].xml"] = re.sub(
        rb'<Override PartName="/docProps/core.xml"[^>]*/>', b"", entries["[Content_Types].xml"]
    )

    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as target:
        for name, data in entries.items():
            target.writestr(name, data)


@pytest.fixture
def pptx_builder() -> Callable[..., Path]:
    """Expose the presentation builder to tests."""
    return build_presentation


@pytest.fixture
def sample_pptx_file(temp_dir: Path) -> Path:
    """Two slides: text plus a PNG, then a single audio clip and no text."""
    return build_presentation(
        temp_dir / "deck.pptx",
        [
            {"texts": ["Intro"], "images": 1},
            {"audio": 1},
        ],
    )


# ==============================================================================
# PDF Fixtures
# ==============================================================================


def build_pdf(
    path: Path,
    pages: list[str],
    metadata: dict[str, str] | None = None,
    image_pages: tuple[int, ...] = (),
) -> Path:
    """Write a PDF with one text line per page and optional images (0-based page indexes)."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)

    for index in image_pages:
        doc[index].insert_image(fitz.Rect(100, 100, 200, 200), stream=PNG_BYTES)

    if metadata:
        doc.set_metadata(metadata)

    doc.save(str(path))
    doc.close()
    return path


@pytest.fixture
def pdf_builder() -> Callable[..., Path]:
    """Expose the PDF builder to tests."""
    return build_pdf


@pytest.fixture
def sample_pdf_file(temp_dir: Path) -> Path:
    """Three pages (the middle one blank), document info and one image."""
    return build_pdf(
        temp_dir / "report.pdf",
        ["First page text", "", "Third page text"],
        metadata={"title": "Quarterly Report", "author": "Grace", "keywords": "q1, finance"},
        image_pages=(0,),
    )
