"""
Corpus merging.

Merging is plain concatenation: records keep input-file order, then their
order within each file. Records are not deduplicated by id.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

from indexkit.corpus.serializer import CorpusFormatError, CorpusSerializer
from indexkit.models import MergeReport, NormalizedRecord, SourceLoadResult

logger = logging.getLogger(__name__)


class CorpusMergeService:
    """
    Merges several corpus files into one.

    A missing or corrupt input is reported and skipped; it never aborts
    the merge of the remaining inputs.
    """

    def __init__(self, serializer: CorpusSerializer | None = None):
        self._serializer = serializer or CorpusSerializer()

    def merge(self, input_paths: Iterable[Path | str], output_path: Path | str) -> MergeReport:
        """
        Concatenate the records of all inputs and write them to ``output_path``.

        Nothing is written when no input yielded any record.

        Args:
            input_paths: Corpus files, merged in the given order.
            output_path: Destination corpus file.

        Returns:
            MergeReport with per-input counts and errors.
        """
        merged: list[NormalizedRecord] = []
        sources: list[SourceLoadResult] = []

        for input_path in input_paths:
            path = Path(input_path)
            try:
                records = self._serializer.load(path)
            except (OSError, CorpusFormatError) as e:
                logger.warning("Error loading %s: %s", path, e)
                sources.append(SourceLoadResult(path=str(path), error=str(e)))
                continue

            merged.extend(records)
            sources.append(SourceLoadResult(path=str(path), count=len(records)))
            logger.info("Loaded %d record(s) from %s", len(records), path)

        if not merged:
            logger.warning("No records to merge.")
            return MergeReport(sources=sources)

        written = self._serializer.save(merged, Path(output_path))
        logger.info("Merged %d total record(s) into %s", len(merged), written)
        return MergeReport(sources=sources, total=len(merged), output_path=written)
