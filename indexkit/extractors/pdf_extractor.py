"""
PDF document extractor using PyMuPDF.

Extracts page text in reading order, image XObjects referenced from page
resources, and the document information dictionary.
"""

import logging
from pathlib import Path
from typing import ClassVar

import fitz  # PyMuPDF

from indexkit.assets import AssetKind, AssetWriter
from indexkit.extractors.base import DocumentExtractor, ExtractionError
from indexkit.models import FileType, NormalizedRecord

logger = logging.getLogger(__name__)

# Document info key -> record metadata key
INFO_FIELDS: tuple[tuple[str, str], ...] = (
    ("author", "Author"),
    ("title", "DocumentTitle"),
    ("subject", "Subject"),
    ("keywords", "Keywords"),
    ("creator", "Creator"),
    ("producer", "Producer"),
)

# PyMuPDF image format -> MIME type understood by the asset writer
IMAGE_CONTENT_TYPES: dict[str, str] = {
    "png": "image/png",
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "tif": "image/tiff",
    "tiff": "image/tiff",
}

DEFAULT_IMAGE_EXTENSION = ".png"


class PDFExtractor(DocumentExtractor):
    """
    Extracts a normalized record from PDF files.

    Uses PyMuPDF for text extraction in content-stream reading order.
    Image failures are isolated: one unreadable image never aborts the page
    or the document.
    """

    SUPPORTED_EXTENSIONS: ClassVar[tuple[str, ...]] = (".pdf",)
    FILE_TYPE: ClassVar[FileType] = FileType.PDF

    def extract(self, file_path: Path, output_dir: Path) -> NormalizedRecord:
        """
        Extract text, images and metadata from a PDF file.

        Args:
            file_path: Path to the PDF file.
            output_dir: Directory extracted images are written to.

        Returns:
            NormalizedRecord for the document.

        Raises:
            ExtractionError: If the PDF cannot be opened or is corrupted.
        """
        self._validate_file(file_path)
        self._prepare_output(file_path, output_dir)

        record = self._create_record(file_path)
        writer = self._create_writer(file_path, output_dir)
        skipped: list[str] = []

        try:
            with fitz.open(file_path) as doc:
                if doc.needs_pass:
                    raise ExtractionError("PDF is encrypted and needs a password", file_path)

                record.content = self._extract_text(doc)
                skipped.extend(self._extract_images(doc, writer, record))
                self._extract_metadata(doc, record)
                record.metadata["PageCount"] = str(doc.page_count)

        except fitz.FileDataError as e:
            raise ExtractionError("PDF file is corrupted or invalid", file_path, cause=e) from e
        except fitz.EmptyFileError as e:
            raise ExtractionError("PDF file is empty", file_path, cause=e) from e
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"Unexpected error: {e}", file_path, cause=e) from e

        self._finish(file_path, writer, skipped)
        return record

    def _extract_text(self, doc: fitz.Document) -> str:
        """Join the non-blank page texts with a blank line, in page order."""
        page_texts: list[str] = []

        for page in doc:
            page_text = page.get_text(
                "text",
                flags=fitz.TEXT_PRESERVE_WHITESPACE | fitz.TEXT_PRESERVE_LIGATURES,
            )
            if page_text.strip():
                page_texts.append(page_text)

        return "\n\n".join(page_texts)

    def _extract_images(self, doc: fitz.Document, writer: AssetWriter, record: NormalizedRecord) -> list[str]:
        """
        Write every image XObject referenced from each page.

        Returns:
            Descriptions of images that could not be extracted.
        """
        skipped: list[str] = []

        for page_number, page in enumerate(doc, start=1):
            try:
                page_images = page.get_images(full=True)
            except Exception as e:
                logger.warning("Could not list images on page %d of '%s': %s", page_number, record.source_path, e)
                skipped.append(f"page {page_number} images: {e}")
                continue

            seen: set[int] = set()
            for image_info in page_images:
                xref = image_info[0]
                if xref in seen:
                    continue
                seen.add(xref)

                try:
                    image = doc.extract_image(xref)
                except Exception as e:
                    logger.warning(
                        "Error extracting image xref %d from page %d of '%s': %s",
                        xref,
                        page_number,
                        record.source_path,
                        e,
                    )
                    skipped.append(f"page {page_number} image xref {xref}: {e}")
                    continue

                if not image or not image.get("image"):
                    continue

                content_type, extension = self._image_type(image.get("ext"))
                path = writer.save(image["image"], content_type, AssetKind.IMAGE, extension=extension)
                if path is not None:
                    record.images.append(str(path))

        return skipped

    @staticmethod
    def _image_type(image_format: str | None) -> tuple[str | None, str | None]:
        """
        Resolve the content type for a PyMuPDF image format.

        Unknown formats keep the default ``.png`` extension.
        """
        content_type = IMAGE_CONTENT_TYPES.get((image_format or "").lower())
        if content_type is None:
            return None, DEFAULT_IMAGE_EXTENSION
        return content_type, None

    def _extract_metadata(self, doc: fitz.Document, record: NormalizedRecord) -> None:
        """Copy the non-blank document info fields into the record metadata."""
        info = doc.metadata or {}

        for info_key, metadata_key in INFO_FIELDS:
            record.set_metadata(metadata_key, info.get(info_key))

        record.promote_title(record.metadata.get("DocumentTitle"))
