"""
Extractor registry.

Maps lower-cased file extensions to the extractor class that reads them.
Dispatch is by extension only; file contents are never sniffed.
"""

from pathlib import Path

from indexkit.extractors.base import DocumentExtractor, ExtractionError
from indexkit.extractors.markdown_extractor import MarkdownExtractor
from indexkit.extractors.pdf_extractor import PDFExtractor
from indexkit.extractors.pptx_extractor import PptxExtractor
from indexkit.models import NormalizedRecord

_REGISTRY: dict[str, type[DocumentExtractor]] = {
    extension: extractor_cls
    for extractor_cls in (PptxExtractor, PDFExtractor, MarkdownExtractor)
    for extension in extractor_cls.SUPPORTED_EXTENSIONS
}


def get_supported_extensions() -> tuple[str, ...]:
    """Extensions with a registered extractor, sorted (e.g. ``('.md', '.pdf', '.pptx')``)."""
    return tuple(sorted(_REGISTRY))


def create_extractor(file_path: Path | str) -> DocumentExtractor:
    """
    Instantiate the extractor registered for a file's extension.

    Every call returns a fresh extractor, so no per-call state is shared
    between documents.

    Raises:
        ExtractionError: If no extractor handles the extension.
    """
    path = Path(file_path)
    extractor_cls = _REGISTRY.get(path.suffix.lower())

    if extractor_cls is None:
        raise ExtractionError(
            f"Unsupported file format '{path.suffix.lower()}'. "
            f"Supported formats: {get_supported_extensions()}",
            path,
        )

    return extractor_cls()


def extract_document(file_path: Path | str, output_dir: Path | str) -> NormalizedRecord:
    """
    Extract one document in a single call.

    Args:
        file_path: Document to read.
        output_dir: Directory embedded assets are written to.

    Returns:
        NormalizedRecord for the document.

    Raises:
        ExtractionError: If the format is unsupported or extraction fails.
    """
    path = Path(file_path)
    return create_extractor(path).extract(path, Path(output_dir))
