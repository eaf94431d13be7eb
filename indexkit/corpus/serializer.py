"""
Corpus serialization.

A corpus file is UTF-8 JSON shaped like a search-index upload payload:

    {"value": [ {record}, {record}, ... ]}

Because corpus files are also edited and merged by hand, loading accepts a
bare array of records or a single bare record as well.
"""

import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from indexkit.models import NormalizedRecord

logger = logging.getLogger(__name__)

_RECORD_LIST = TypeAdapter(list[NormalizedRecord])


class CorpusFormatError(Exception):
    """Raised when text is not a corpus in any of the accepted shapes."""

    def __init__(self, message: str, source: str | Path | None = None, cause: Exception | None = None):
        self.source = str(source) if source is not None else None
        self.cause = cause
        if source is not None:
            message = f"{source}: {message}"
        super().__init__(message)


def describe_validation_error(error: ValidationError) -> str:
    """Summarize the first problem of a validation error, e.g. ``record 0, fileType: Field required``."""
    detail = error.errors()[0]
    location = [str(part) for part in detail["loc"]]
    if location and location[0].isdigit():
        location[0] = f"record {location[0]}"
    where = ", ".join(location)
    return f"{where}: {detail['msg']}" if where else detail["msg"]


class CorpusSerializer:
    """
    Encodes and decodes corpora.

    Shapes accepted by ``deserialize``, tried in order (first success wins):
    1. ``{"value": [...]}`` with a non-empty array
    2. ``[...]``, a non-empty bare array of records
    3. ``{...}``, a single bare record
    """

    def __init__(self, indent: int | None = 2):
        self._indent = indent

    def serialize(self, records: Sequence[NormalizedRecord]) -> str:
        """
        Encode records as a wrapped corpus document.

        Dates are written as second-precision UTC with a ``Z`` suffix and
        null values are omitted.
        """
        payload = {"value": [record.to_json_dict() for record in records]}
        return json.dumps(payload, indent=self._indent, ensure_ascii=False)

    def deserialize(self, text: str, source: str | Path | None = None) -> list[NormalizedRecord]:
        """
        Decode a corpus document.

        Every record must carry the required fields (``id`` aside), notably
        ``fileType``. One invalid record makes the whole document unreadable;
        the error message names the first offending field.

        Args:
            text: JSON text in one of the accepted shapes.
            source: Optional origin, used in error messages.

        Returns:
            Records in file order.

        Raises:
            CorpusFormatError: If the text is not JSON or matches no shape.
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise CorpusFormatError(f"Invalid JSON: {e}", source, cause=e) from e

        first_error: ValidationError | None = None
        for parse in (self._parse_wrapped, self._parse_array, self._parse_single):
            try:
                records = parse(data)
            except ValidationError as e:
                logger.debug("Shape %s rejected: %s", parse.__name__, e)
                first_error = first_error or e
                continue
            if records:
                return records

        message = "Unable to deserialize JSON to a corpus of records"
        if first_error is not None:
            message = f"{message} ({describe_validation_error(first_error)})"
        raise CorpusFormatError(message, source, cause=first_error)

    def save(self, records: Sequence[NormalizedRecord], path: Path) -> Path:
        """
        Write records to a corpus file, creating parent directories.

        Raises:
            ValueError: If ``records`` is empty.
        """
        if not records:
            raise ValueError("Records collection cannot be empty")

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.serialize(records), encoding="utf-8")
        logger.info("Saved %d record(s) to %s", len(records), path)
        return path

    def load(self, path: Path) -> list[NormalizedRecord]:
        """
        Read a corpus file.

        Raises:
            FileNotFoundError: If the file does not exist.
            CorpusFormatError: If the content is not a corpus, including when
                any record lacks a required field such as ``fileType``.
        """
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")

        return self.deserialize(path.read_text(encoding="utf-8-sig"), source=path)

    @staticmethod
    def _parse_wrapped(data: Any) -> list[NormalizedRecord] | None:
        if not isinstance(data, dict) or not isinstance(data.get("value"), list) or not data["value"]:
            return None
        return _RECORD_LIST.validate_python(data["value"])

    @staticmethod
    def _parse_array(data: Any) -> list[NormalizedRecord] | None:
        if not isinstance(data, list) or not data:
            return None
        return _RECORD_LIST.validate_python(data)

    @staticmethod
    def _parse_single(data: Any) -> list[NormalizedRecord] | None:
        if not isinstance(data, dict):
            return None
        return [NormalizedRecord.model_validate(data)]
