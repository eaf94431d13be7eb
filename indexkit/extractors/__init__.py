"""
Document Extraction Module.

Provides a unified interface for turning documents into normalized records:
- PowerPoint presentations (.pptx)
- PDF (.pdf)
- Markdown (.md)
"""

from indexkit.extractors.base import DocumentExtractor, ExtractionError, SourceNotFoundError
from indexkit.extractors.factory import create_extractor, extract_document, get_supported_extensions

__all__ = [
    "DocumentExtractor",
    "ExtractionError",
    "SourceNotFoundError",
    "create_extractor",
    "extract_document",
    "get_supported_extensions",
]
