"""
Asset writing for extracted media.

Every extractor persists embedded images, audio and video through this
module so that all assets share one naming scheme:

    {base_name}_{kind}_{counter}{ext}

Names are deterministic for a given source file, so re-running an
extraction overwrites the previous run's assets instead of piling up copies.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)


class AssetKind(str, Enum):
    """Kind of binary asset, used in file names and counter selection."""

    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"


IMAGE_EXTENSIONS: dict[str, str] = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "image/bmp": ".bmp",
    "image/tiff": ".tiff",
}

# Checked in order; the first substring found in the content type wins
MEDIA_EXTENSIONS: tuple[tuple[str, str], ...] = (
    ("mp3", ".mp3"),
    ("wav", ".wav"),
    ("mp4", ".mp4"),
    ("avi", ".avi"),
    ("wmv", ".wmv"),
    ("mpeg", ".mpeg"),
)

FALLBACK_EXTENSION = ".bin"


class AssetWriteError(Exception):
    """
    Raised when a single asset cannot be written.

    Extractors catch this, log it and carry on with the rest of the document.
    """

    def __init__(self, path: str | Path, cause: Exception | None = None):
        self.path = str(path)
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to write asset '{path}'{detail}")


def extension_for(content_type: str | None, kind: AssetKind = AssetKind.IMAGE) -> str:
    """
    Map a MIME content type to a file extension.

    Images use an exact lookup; audio and video are matched by substring
    because their content types vary a lot between producers.

    Args:
        content_type: MIME type reported by the container, may be None.
        kind: Kind of asset the content type belongs to.

    Returns:
        Extension including the leading dot, ``.bin`` when unknown.
    """
    if not content_type:
        return FALLBACK_EXTENSION

    normalized = content_type.strip().lower()

    if kind is AssetKind.IMAGE:
        return IMAGE_EXTENSIONS.get(normalized, FALLBACK_EXTENSION)

    for needle, extension in MEDIA_EXTENSIONS:
        if needle in normalized:
            return extension
    return FALLBACK_EXTENSION


def asset_filename(base_name: str, kind: AssetKind, counter: int, extension: str) -> str:
    """Build the deterministic file name of an asset."""
    return f"{base_name}_{kind.value}_{counter}{extension}"


def write_asset(
    data: bytes,
    content_type: str | None,
    base_name: str,
    counter: int,
    output_dir: Path,
    kind: AssetKind = AssetKind.IMAGE,
    extension: str | None = None,
) -> Path:
    """
    Write one asset to disk.

    Args:
        data: Raw asset bytes.
        content_type: MIME type hint used to pick the extension.
        base_name: Base name of the source document (file name stem).
        counter: Per-document, per-kind sequence number.
        output_dir: Directory to write into; created if missing.
        kind: Asset kind, part of the file name.
        extension: Explicit extension overriding the content type lookup.

    Returns:
        Path of the written file.

    Raises:
        AssetWriteError: If the file cannot be written.
    """
    ext = extension or extension_for(content_type, kind)
    path = output_dir / asset_filename(base_name, kind, counter, ext)

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as e:
        raise AssetWriteError(path, cause=e) from e

    return path


@dataclass
class AssetCounters:
    """
    Per-document asset counters.

    One instance lives for exactly one extraction call, which keeps
    documents independent of each other when extracted in parallel.
    """

    image: int = 1
    audio: int = 1
    video: int = 1

    def next(self, kind: AssetKind) -> int:
        """Return the current counter for ``kind`` and advance it."""
        current = getattr(self, kind.value)
        setattr(self, kind.value, current + 1)
        return current


@dataclass
class AssetWriter:
    """
    Best-effort asset writer bound to one document.

    ``save`` never raises for a single bad asset: the failure is logged and
    kept in ``failures`` so the caller can report it.
    """

    output_dir: Path
    base_name: str
    counters: AssetCounters = field(default_factory=AssetCounters)
    failures: list[AssetWriteError] = field(default_factory=list)
    written: list[Path] = field(default_factory=list)

    def save(
        self,
        data: bytes | None,
        content_type: str | None,
        kind: AssetKind,
        extension: str | None = None,
    ) -> Path | None:
        """
        Write an asset and return its path, or None if it was skipped.

        Empty payloads are skipped without consuming a counter value.
        """
        if not data:
            return None

        counter = self.counters.next(kind)
        try:
            path = write_asset(
                data,
                content_type,
                self.base_name,
                counter,
                self.output_dir,
                kind=kind,
                extension=extension,
            )
        except AssetWriteError as e:
            logger.warning("Skipping %s asset #%d of '%s': %s", kind.value, counter, self.base_name, e)
            self.failures.append(e)
            return None

        logger.debug("Wrote %s", path)
        self.written.append(path)
        return path
