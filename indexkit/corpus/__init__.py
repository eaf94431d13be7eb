"""
Corpus Module.

Validation, serialization, merging, batch extraction and publishing of
record corpora.
"""

from indexkit.corpus.merge import CorpusMergeService
from indexkit.corpus.pipeline import ExtractionPipeline, discover_sources
from indexkit.corpus.serializer import CorpusFormatError, CorpusSerializer
from indexkit.corpus.validator import RecordValidationError, RecordValidator

__all__ = [
    "CorpusFormatError",
    "CorpusMergeService",
    "CorpusSerializer",
    "ExtractionPipeline",
    "RecordValidationError",
    "RecordValidator",
    "discover_sources",
]
