"""
Pydantic models for indexkit.

These models define the schemas for:
- Normalized records produced by the extractors
- Per-call extraction diagnostics
- Batch, merge and publish reports

Records serialize with camelCase keys so that the corpus file matches the
search-index document layout.
"""

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

INDEXED_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> datetime:
    """Current UTC time truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _new_id() -> str:
    return str(uuid4())


class FileType(str, Enum):
    """Source format a record was extracted from."""

    PPTX = "PPTX"
    PDF = "PDF"
    MD = "MD"


# ==============================================================================
# Record Models
# ==============================================================================


class NormalizedRecord(BaseModel):
    """
    The normalized output unit for one source document.

    A record is created by exactly one extractor call and is only mutated
    during that call. Asset lists keep discovery order.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    id: str = Field(
        default="",
        description="Unique identifier, assigned once by create()",
    )

    title: str = Field(
        default="",
        description="Best-effort human title",
    )

    content: str = Field(
        default="",
        description="Concatenated text of all slides/pages/blocks",
    )

    source_path: str = Field(
        default="",
        description="Path to the original input file",
    )

    file_type: FileType = Field(
        ...,
        description="Format tag of the extractor that produced the record",
    )

    indexed_date: datetime = Field(
        default_factory=utc_now,
        description="UTC timestamp of extraction, second precision",
    )

    images: list[str] = Field(
        default_factory=list,
        description="Paths (or URLs after publishing) of extracted images",
    )

    audio_files: list[str] = Field(
        default_factory=list,
        description="Paths (or URLs after publishing) of extracted audio clips",
    )

    video_files: list[str] = Field(
        default_factory=list,
        description="Paths (or URLs after publishing) of extracted video clips",
    )

    metadata: dict[str, str] = Field(
        default_factory=dict,
        description="Extractor-specific string metadata",
    )

    @classmethod
    def create(cls, source_path: str | Path, file_type: FileType) -> "NormalizedRecord":
        """
        Start a new record for a source file.

        The title is initialized from the file name stem and may later be
        promoted to a better title found in the document itself.
        """
        return cls(
            id=_new_id(),
            source_path=str(source_path),
            file_type=file_type,
            title=Path(source_path).stem,
        )

    @field_validator("indexed_date")
    @classmethod
    def normalize_indexed_date(cls, v: datetime) -> datetime:
        """Store timestamps as UTC with second precision."""
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc).replace(microsecond=0)

    @field_validator("metadata", mode="before")
    @classmethod
    def stringify_metadata(cls, v: Any) -> Any:
        """Accept non-string scalar values from hand-edited corpus files; nulls are dropped."""
        if isinstance(v, dict):
            return {
                str(key): value if isinstance(value, str) else str(value)
                for key, value in v.items()
                if value is not None
            }
        return v

    @field_serializer("indexed_date")
    def serialize_indexed_date(self, v: datetime) -> str:
        return v.astimezone(timezone.utc).strftime(INDEXED_DATE_FORMAT)

    @property
    def default_title(self) -> str:
        """The title a record starts with: the source file name stem."""
        return Path(self.source_path).stem

    def promote_title(self, candidate: str | None) -> bool:
        """
        Replace the title with a document-provided one.

        Only applies while the title is blank or still the file name stem,
        so the first better title found wins.

        Returns:
            True if the title was replaced.
        """
        if not candidate or not candidate.strip():
            return False
        if self.title.strip() and self.title != self.default_title:
            return False
        self.title = candidate
        return True

    def set_metadata(self, key: str, value: object | None) -> None:
        """Set a metadata entry, skipping missing or blank values."""
        if value is None:
            return
        text = str(value)
        if text.strip():
            self.metadata[key] = text

    def to_json_dict(self) -> dict[str, Any]:
        """Dump the record with corpus-file keys, omitting null values."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ==============================================================================
# Extraction Diagnostics
# ==============================================================================


class ExtractionStats(BaseModel):
    """
    Diagnostics for one extraction call.

    Asset write failures are recovered in place; this is where they stay
    visible to the caller.
    """

    source_path: str = Field(
        default="",
        description="Path of the document the stats belong to",
    )

    assets_written: int = Field(
        default=0,
        ge=0,
        description="Number of assets successfully written",
    )

    asset_failures: list[str] = Field(
        default_factory=list,
        description="One message per asset that could not be written",
    )

    skipped_items: list[str] = Field(
        default_factory=list,
        description="Optional items (metadata fields, images) that could not be read",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_clean(self) -> bool:
        """True when nothing had to be skipped."""
        return not self.asset_failures and not self.skipped_items


# ==============================================================================
# Report Models
# ==============================================================================


class FailureKind(str, Enum):
    """Why a source file did not produce a record."""

    NOT_FOUND = "not_found"
    UNSUPPORTED = "unsupported"
    EXTRACTION = "extraction"
    VALIDATION = "validation"


class FileFailure(BaseModel):
    """A source file that did not make it into the corpus."""

    model_config = ConfigDict(frozen=True)

    path: str
    kind: FailureKind
    message: str


class BatchReport(BaseModel):
    """Outcome of extracting a file or directory into a corpus."""

    records: list[NormalizedRecord] = Field(default_factory=list)
    failures: list[FileFailure] = Field(default_factory=list)
    stats: list[ExtractionStats] = Field(default_factory=list)
    corpus_path: Path | None = None
    media_directory: Path | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def succeeded(self) -> int:
        """Number of records accepted into the corpus."""
        return len(self.records)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed(self) -> int:
        """Number of source files that produced no record."""
        return len(self.failures)


class SourceLoadResult(BaseModel):
    """Result of loading one input corpus during a merge."""

    model_config = ConfigDict(frozen=True)

    path: str
    count: int = Field(default=0, ge=0)
    error: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def ok(self) -> bool:
        return self.error is None


class MergeReport(BaseModel):
    """Outcome of merging several corpus files into one."""

    sources: list[SourceLoadResult] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)
    output_path: Path | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def failed_sources(self) -> list[str]:
        """Paths of inputs that could not be loaded."""
        return [source.path for source in self.sources if not source.ok]


class PublishReport(BaseModel):
    """Outcome of handing a corpus to the upload and index collaborators."""

    assets_uploaded: int = Field(default=0, ge=0)
    asset_failures: list[str] = Field(default_factory=list)
    batches_uploaded: int = Field(default=0, ge=0)
    batch_failures: list[str] = Field(default_factory=list)
    records_uploaded: int = Field(default=0, ge=0)
