"""
Publishing boundary.

Uploading media to blob storage, provisioning the remote search index and
answering questions against it are done by external collaborators. This
module defines what indexkit expects of them and implements the parts that
belong to the corpus itself: deriving the index schema, collecting and
rewriting asset references, and batching uploads.
"""

import logging
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from indexkit.config import get_settings
from indexkit.models import FileType, NormalizedRecord, PublishReport

logger = logging.getLogger(__name__)

ASSET_FIELDS: tuple[str, ...] = ("images", "audio_files", "video_files")


class IndexField(BaseModel):
    """One field of the search index schema."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    key: bool = False
    searchable: bool = False
    filterable: bool = False
    sortable: bool = False
    facetable: bool = False


class SearchHit(BaseModel):
    """A result returned by the question-answering collaborator."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    content: str
    source_path: str = Field(alias="sourcePath")
    file_type: FileType = Field(alias="fileType")
    score: float = Field(alias="@search.score")


@runtime_checkable
class AssetUploader(Protocol):
    """Uploads a local asset and returns the URL it is reachable at."""

    def upload(self, path: Path) -> str: ...


@runtime_checkable
class SearchIndexClient(Protocol):
    """Creates the remote index and accepts batches of documents."""

    def create_or_update_index(self, name: str, fields: Sequence[IndexField]) -> None: ...

    def upload_documents(self, name: str, documents: Sequence[dict[str, Any]]) -> None: ...


@runtime_checkable
class QuestionAnswerer(Protocol):
    """Runs free-text queries against the provisioned index."""

    def search(self, query: str, top: int = 5) -> list[SearchHit]: ...


def index_fields() -> list[IndexField]:
    """Derive the search index schema from the record fields."""
    collection = "Collection(Edm.String)"
    return [
        IndexField(name="id", type="Edm.String", key=True, filterable=True),
        IndexField(name="title", type="Edm.String", searchable=True, filterable=True, sortable=True),
        IndexField(name="content", type="Edm.String", searchable=True),
        IndexField(name="sourcePath", type="Edm.String", filterable=True),
        IndexField(name="fileType", type="Edm.String", filterable=True, facetable=True),
        IndexField(name="indexedDate", type="Edm.DateTimeOffset", filterable=True, sortable=True),
        IndexField(name="images", type=collection),
        IndexField(name="audioFiles", type=collection),
        IndexField(name="videoFiles", type=collection),
    ]


def to_index_document(record: NormalizedRecord) -> dict[str, Any]:
    """Project a record onto the indexed fields (metadata is not indexed)."""
    names = {field.name for field in index_fields()}
    return {key: value for key, value in record.to_json_dict().items() if key in names}


def collect_asset_paths(records: Sequence[NormalizedRecord]) -> list[str]:
    """Unique asset references across all records, in first-seen order."""
    seen: dict[str, None] = {}
    for record in records:
        for field_name in ASSET_FIELDS:
            for path in getattr(record, field_name):
                seen.setdefault(path, None)
    return list(seen)


def rewrite_asset_references(
    records: Sequence[NormalizedRecord],
    url_map: dict[str, str],
) -> list[NormalizedRecord]:
    """
    Replace local asset paths with uploaded URLs.

    Returns copies; paths missing from ``url_map`` are kept unchanged.
    """
    rewritten: list[NormalizedRecord] = []
    for record in records:
        update = {
            field_name: [url_map.get(path, path) for path in getattr(record, field_name)]
            for field_name in ASSET_FIELDS
        }
        rewritten.append(record.model_copy(update=update, deep=True))
    return rewritten


def batched(records: Sequence[Any], size: int) -> Iterator[list[Any]]:
    """Yield consecutive slices of at most ``size`` items."""
    if size < 1:
        raise ValueError("Batch size must be at least 1")
    for start in range(0, len(records), size):
        yield list(records[start : start + size])


def resolve_asset(path: str, media_dir: Path) -> Path:
    """Locate an asset: as given if it exists, otherwise by file name in the media directory."""
    candidate = Path(path)
    if candidate.is_file():
        return candidate
    return media_dir / candidate.name


def publish(
    records: Sequence[NormalizedRecord],
    media_dir: Path,
    uploader: AssetUploader,
    index_client: SearchIndexClient,
    index_name: str,
    batch_size: int | None = None,
) -> tuple[list[NormalizedRecord], PublishReport]:
    """
    Upload assets, rewrite references and push records to the search index.

    A failed asset upload or a failed batch is reported and skipped; the
    rest of the corpus is still published. Without an explicit
    ``batch_size`` the configured ``index_batch_size`` is used.

    Returns:
        The records as published (with remote URLs) and a PublishReport.
    """
    if batch_size is None:
        batch_size = get_settings().index_batch_size
    report = PublishReport()
    url_map: dict[str, str] = {}

    for asset in collect_asset_paths(records):
        local = resolve_asset(asset, media_dir)
        if not local.is_file():
            logger.warning("Asset not found: %s", asset)
            report.asset_failures.append(f"{asset}: not found")
            continue
        try:
            url_map[asset] = uploader.upload(local)
        except Exception as e:
            logger.warning("Error uploading %s: %s", asset, e)
            report.asset_failures.append(f"{asset}: {e}")
            continue
        report.assets_uploaded += 1

    published = rewrite_asset_references(records, url_map)
    index_client.create_or_update_index(index_name, index_fields())

    for batch in batched(published, batch_size):
        documents = [to_index_document(record) for record in batch]
        try:
            index_client.upload_documents(index_name, documents)
        except Exception as e:
            logger.warning("Error uploading batch of %d document(s): %s", len(documents), e)
            report.batch_failures.append(str(e))
            continue
        report.batches_uploaded += 1
        report.records_uploaded += len(documents)

    return published, report
