"""
PowerPoint presentation extractor using python-pptx.

Extracts slide text in reading order, embedded images, embedded audio and
video clips, and the package core properties from .pptx files.
"""

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any, ClassVar

from pptx import Presentation
from pptx.exc import PackageNotFoundError
from pptx.opc.constants import RELATIONSHIP_TYPE as RT
from pptx.shapes.group import GroupShape

from indexkit.assets import AssetKind, AssetWriter
from indexkit.extractors.base import DocumentExtractor, ExtractionError
from indexkit.models import FileType, NormalizedRecord

logger = logging.getLogger(__name__)

# Relationship types a slide uses to reference embedded media. A single clip
# is usually reachable through both the audio/video reference and the
# generic media reference.
MEDIA_RELATIONSHIPS: frozenset[str] = frozenset({RT.AUDIO, RT.VIDEO, RT.MEDIA})

DATE_FORMAT = "%Y-%m-%d"


class PptxExtractor(DocumentExtractor):
    """
    Extracts a normalized record from PowerPoint presentations (.pptx).

    Extracts:
    - Text runs of every text-bearing shape, slide by slide
    - Images attached to each slide
    - Audio and video parts attached to each slide
    - Author, dates and title from the core properties
    """

    SUPPORTED_EXTENSIONS: ClassVar[tuple[str, ...]] = (".pptx",)
    FILE_TYPE: ClassVar[FileType] = FileType.PPTX

    def extract(self, file_path: Path, output_dir: Path) -> NormalizedRecord:
        """
        Extract text, media and metadata from a presentation.

        Args:
            file_path: Path to the .pptx file.
            output_dir: Directory embedded media is written to.

        Returns:
            NormalizedRecord for the presentation.

        Raises:
            ExtractionError: If the presentation cannot be opened or read.
        """
        self._validate_file(file_path)
        self._prepare_output(file_path, output_dir)

        record = self._create_record(file_path)
        writer = self._create_writer(file_path, output_dir)
        skipped: list[str] = []

        try:
            presentation = Presentation(str(file_path))
            slides = list(presentation.slides)

            record.content = self._extract_text(slides)
            self._extract_images(slides, writer, record)
            self._extract_media(slides, writer, record)
            skipped.extend(self._extract_metadata(presentation, record))
            record.metadata["SlideCount"] = str(len(slides))

        except PackageNotFoundError as e:
            raise ExtractionError(
                "File is not a valid .pptx presentation or is corrupted", file_path, cause=e
            ) from e
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"Unexpected error: {e}", file_path, cause=e) from e

        self._finish(file_path, writer, skipped)
        return record

    def _extract_text(self, slides: list[Any]) -> str:
        """
        Build the record content from all slides.

        Slides whose text is empty or whitespace-only are left out.
        """
        slide_texts: list[str] = []

        for slide in slides:
            slide_text = self._extract_slide_text(slide)
            if slide_text.strip():
                slide_texts.append(slide_text)

        return "\n\n".join(slide_texts)

    def _extract_slide_text(self, slide: Any) -> str:
        """Join the non-blank text runs of one slide with single spaces."""
        runs: list[str] = []

        for shape in self._iter_shapes(slide.shapes):
            if not shape.has_text_frame:
                continue
            for paragraph in shape.text_frame.paragraphs:
                for run in paragraph.runs:
                    if run.text and run.text.strip():
                        runs.append(run.text)

        return " ".join(runs)

    def _iter_shapes(self, shapes: Iterable[Any]) -> Iterator[Any]:
        """Yield shapes in document order, descending into group shapes."""
        for shape in shapes:
            if isinstance(shape, GroupShape):
                yield from self._iter_shapes(shape.shapes)
            else:
                yield shape

    def _extract_images(self, slides: list[Any], writer: AssetWriter, record: NormalizedRecord) -> None:
        """Write every image part attached to a slide, in slide order."""
        for slide in slides:
            for part in self._related_parts(slide, {RT.IMAGE}):
                path = writer.save(part.blob, part.content_type, AssetKind.IMAGE)
                if path is not None:
                    record.images.append(str(path))

    def _extract_media(self, slides: list[Any], writer: AssetWriter, record: NormalizedRecord) -> None:
        """Write audio and video parts attached to each slide."""
        for slide in slides:
            media_parts = self._related_parts(slide, MEDIA_RELATIONSHIPS)

            for part in media_parts:
                if "audio" in (part.content_type or "").lower():
                    path = writer.save(part.blob, part.content_type, AssetKind.AUDIO)
                    if path is not None:
                        record.audio_files.append(str(path))

            for part in media_parts:
                if "video" in (part.content_type or "").lower():
                    path = writer.save(part.blob, part.content_type, AssetKind.VIDEO)
                    if path is not None:
                        record.video_files.append(str(path))

    def _related_parts(self, slide: Any, reltypes: Iterable[str]) -> list[Any]:
        """
        Collect the internal parts a slide references through ``reltypes``.

        Each part is returned once even if several relationships point at it.
        """
        wanted = set(reltypes)
        parts: list[Any] = []
        seen: set[str] = set()

        for rel in slide.part.rels.values():
            if rel.is_external or rel.reltype not in wanted:
                continue
            part = rel.target_part
            partname = str(part.partname)
            if partname in seen:
                continue
            seen.add(partname)
            parts.append(part)

        return parts

    def _extract_metadata(self, presentation: Any, record: NormalizedRecord) -> list[str]:
        """
        Copy core properties into the record metadata.

        Only a package that actually carries a core-properties part is read;
        python-pptx would otherwise make up default properties.

        Returns:
            Descriptions of properties that could not be read.
        """
        skipped: list[str] = []

        try:
            presentation.part.package.part_related_by(RT.CORE_PROPERTIES)
        except KeyError:
            logger.debug("No core properties in '%s'", record.source_path)
            return skipped

        try:
            properties = presentation.core_properties
        except Exception as e:
            logger.warning("Could not read core properties of '%s': %s", record.source_path, e)
            return [f"core properties: {e}"]

        readers = (
            ("Author", lambda: properties.author),
            ("CreatedDate", lambda: self._format_date(properties.created)),
            ("ModifiedDate", lambda: self._format_date(properties.modified)),
            ("DocumentTitle", lambda: properties.title),
        )

        for key, read in readers:
            try:
                record.set_metadata(key, read())
            except Exception as e:
                logger.warning("Could not read %s of '%s': %s", key, record.source_path, e)
                skipped.append(f"{key}: {e}")

        record.promote_title(record.metadata.get("DocumentTitle"))
        return skipped

    @staticmethod
    def _format_date(value: Any) -> str | None:
        return value.strftime(DATE_FORMAT) if value is not None else None
