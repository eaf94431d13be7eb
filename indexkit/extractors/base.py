"""
Extractor interface and the errors extractors raise.

Defines the interface every format extractor implements, ensuring all of
them converge on the same NormalizedRecord schema.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import ClassVar

from indexkit.assets import AssetWriter
from indexkit.models import ExtractionStats, FileType, NormalizedRecord


class ExtractionError(Exception):
    """
    A single document could not be turned into a record.

    The original library exception, when there is one, is kept as ``cause``.
    """

    def __init__(self, message: str, file_path: str | Path, cause: Exception | None = None):
        self.file_path = str(file_path)
        self.cause = cause
        super().__init__(f"Failed to extract '{file_path}': {message}")


class SourceNotFoundError(ExtractionError):
    """Raised when the input file or directory does not exist."""


class DocumentExtractor(ABC):
    """
    Interface for document extractors.

    Each extractor declares the file extensions it handles and the format
    tag it stamps on its records. Extraction is self-contained per call:
    every call gets its own record, asset writer and counters.
    """

    SUPPORTED_EXTENSIONS: ClassVar[tuple[str, ...]] = ()
    FILE_TYPE: ClassVar[FileType]

    def __init__(self) -> None:
        self.last_stats: ExtractionStats | None = None

    @classmethod
    def supports(cls, file_path: Path) -> bool:
        """
        Whether the file extension is one this extractor reads.

        Args:
            file_path: Path to the file to check.

        Returns:
            True for a handled extension, compared case-insensitively.
        """
        return file_path.suffix.lower() in cls.SUPPORTED_EXTENSIONS

    @abstractmethod
    def extract(self, file_path: Path, output_dir: Path) -> NormalizedRecord:
        """
        Extract a normalized record from the document.

        Args:
            file_path: Path to the document file.
            output_dir: Directory embedded assets are written to.

        Returns:
            NormalizedRecord with text, asset paths and metadata.

        Raises:
            ExtractionError: If the document cannot be opened or read.
        """
        ...

    def _validate_file(self, file_path: Path) -> None:
        """
        Reject missing paths, directories and foreign extensions before opening anything.

        Args:
            file_path: Path to validate.

        Raises:
            SourceNotFoundError: If the file doesn't exist.
            ExtractionError: If the path isn't a file or isn't supported.
        """
        if not file_path.exists():
            raise SourceNotFoundError("File does not exist", file_path)

        if not file_path.is_file():
            raise ExtractionError("Path is not a file", file_path)

        if not self.supports(file_path):
            raise ExtractionError(
                f"Unsupported file format. Expected one of: {self.SUPPORTED_EXTENSIONS}",
                file_path,
            )

    def _prepare_output(self, file_path: Path, output_dir: Path) -> None:
        """
        Create the asset output directory.

        Raises:
            ExtractionError: If the directory cannot be created.
        """
        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExtractionError(f"Cannot create output directory '{output_dir}'", file_path, cause=e) from e

    def _create_record(self, file_path: Path) -> NormalizedRecord:
        """
        Create an empty record for a source file.

        Args:
            file_path: Path to the source file.

        Returns:
            NormalizedRecord with id, title, source path and format tag set.
        """
        return NormalizedRecord.create(file_path.resolve(), self.FILE_TYPE)

    def _create_writer(self, file_path: Path, output_dir: Path) -> AssetWriter:
        """Create the per-call asset writer for a source file."""
        return AssetWriter(output_dir=output_dir, base_name=file_path.stem)

    def _finish(
        self,
        file_path: Path,
        writer: AssetWriter | None = None,
        skipped: list[str] | None = None,
    ) -> ExtractionStats:
        """Record the diagnostics of the call that just completed."""
        stats = ExtractionStats(
            source_path=str(file_path),
            assets_written=len(writer.written) if writer else 0,
            asset_failures=[str(e) for e in writer.failures] if writer else [],
            skipped_items=list(skipped or []),
        )
        self.last_stats = stats
        return stats
