"""
Batch extraction pipeline.

Turns a file or a directory tree into a corpus: every supported document
is extracted, validated and appended in discovery order, its media written
under ``<output>/media``, and the surviving records saved as
``<output>/search-index.json``.

One bad document never stops the batch; it ends up in the report's
failures instead.
"""

import logging
from collections.abc import Iterable
from concurrent.futures import ProcessPoolExecutor
from functools import partial
from pathlib import Path

from indexkit.config import Settings, get_settings
from indexkit.corpus.serializer import CorpusSerializer
from indexkit.corpus.validator import RecordValidator
from indexkit.extractors import ExtractionError, SourceNotFoundError, create_extractor
from indexkit.models import BatchReport, ExtractionStats, FailureKind, FileFailure, NormalizedRecord

logger = logging.getLogger(__name__)

# Outcome of one document: the record or the failure, plus diagnostics
_Outcome = tuple[NormalizedRecord | None, FileFailure | None, ExtractionStats | None]


def discover_sources(input_path: Path, extensions: Iterable[str]) -> list[Path]:
    """
    List the documents to extract.

    A file is returned as-is. A directory is searched recursively and its
    matches are grouped by extension (in the order given), each group
    sorted by path.

    Raises:
        SourceNotFoundError: If ``input_path`` does not exist.
    """
    if input_path.is_file():
        return [input_path]

    if not input_path.is_dir():
        raise SourceNotFoundError("Path not found", input_path)

    sources: list[Path] = []
    for extension in extensions:
        matches = sorted(
            path for path in input_path.rglob("*") if path.is_file() and path.suffix.lower() == extension
        )
        logger.info("Found %d %s file(s)", len(matches), extension)
        sources.extend(matches)
    return sources


class ExtractionPipeline:
    """
    Extracts a batch of documents into a corpus.

    Documents are independent of each other, so with ``max_workers > 1``
    they are extracted in a pool of worker processes; results are still
    collected in discovery order. PyMuPDF is not thread-safe, so
    documents are never extracted on threads.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        serializer: CorpusSerializer | None = None,
        validator: RecordValidator | None = None,
    ):
        self._settings = settings or get_settings()
        self._serializer = serializer or CorpusSerializer()
        self._validator = validator or RecordValidator()

    def run(self, input_path: Path | str, output_dir: Path | str | None = None) -> BatchReport:
        """
        Extract a file or directory and save the resulting corpus.

        Args:
            input_path: Document or directory of documents.
            output_dir: Output root; defaults to the configured output directory.

        Returns:
            BatchReport with accepted records, per-file failures and the
            corpus path (None when no record survived).

        Raises:
            SourceNotFoundError: If ``input_path`` does not exist.
            OSError: If the output directories cannot be created.
        """
        source = Path(input_path)
        output_root = Path(output_dir) if output_dir is not None else self._settings.output_directory
        media_dir = output_root / self._settings.media_dirname

        sources = discover_sources(source, self._settings.supported_extensions)

        output_root.mkdir(parents=True, exist_ok=True)
        media_dir.mkdir(parents=True, exist_ok=True)

        report = BatchReport(media_directory=media_dir)
        for record, failure, stats in self._extract_all(sources, media_dir):
            if stats is not None:
                report.stats.append(stats)
            if failure is not None:
                report.failures.append(failure)
            elif record is not None:
                report.records.append(record)

        if report.records:
            report.corpus_path = self._serializer.save(report.records, output_root / self._settings.corpus_filename)
        else:
            logger.warning("No documents were processed.")

        return report

    def extract_file(self, file_path: Path, media_dir: Path) -> _Outcome:
        """
        Extract and validate a single document, converting errors into a failure.

        Returns:
            ``(record, None, stats)`` on success, ``(None, failure, stats)`` otherwise.
        """
        logger.info("Processing: %s", file_path.name)

        try:
            extractor = create_extractor(file_path)
        except ExtractionError as e:
            logger.warning("Unsupported file type: %s", file_path.suffix)
            return None, FileFailure(path=str(file_path), kind=FailureKind.UNSUPPORTED, message=str(e)), None

        try:
            record = extractor.extract(file_path, media_dir)
        except SourceNotFoundError as e:
            logger.error("%s", e)
            return None, FileFailure(path=str(file_path), kind=FailureKind.NOT_FOUND, message=str(e)), None
        except ExtractionError as e:
            logger.error("Error processing %s: %s", file_path.name, e)
            return None, FileFailure(path=str(file_path), kind=FailureKind.EXTRACTION, message=str(e)), None

        stats = extractor.last_stats
        missing = self._validator.missing_fields(record)
        if missing:
            self._validator.validate(record)
            message = f"Document validation failed: missing {', '.join(missing)}"
            return None, FileFailure(path=str(file_path), kind=FailureKind.VALIDATION, message=message), stats

        logger.info(
            "Extracted %s: title=%r, %d chars, %d image(s), %d audio, %d video",
            file_path.name,
            record.title,
            len(record.content),
            len(record.images),
            len(record.audio_files),
            len(record.video_files),
        )
        return record, None, stats

    def _extract_all(self, sources: list[Path], media_dir: Path) -> list[_Outcome]:
        """Extract every source, sequentially or in worker processes, in source order."""
        workers = min(self._settings.max_workers, len(sources))

        if workers <= 1:
            return [self.extract_file(path, media_dir) for path in sources]

        with ProcessPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(partial(self.extract_file, media_dir=media_dir), sources))
