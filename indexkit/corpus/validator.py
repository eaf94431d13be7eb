"""
Record validation module.

Gates records before they are accepted into a corpus: a record needs a
non-blank id, title and content to be useful for search.
"""

import logging

from indexkit.models import NormalizedRecord

logger = logging.getLogger(__name__)


class RecordValidationError(Exception):
    """Raised when a record is missing required fields."""

    def __init__(self, fields: list[str], source_path: str = ""):
        self.fields = fields
        self.source_path = source_path
        where = f" for '{source_path}'" if source_path else ""
        super().__init__(f"Record validation failed{where}: missing {', '.join(fields)}")


class RecordValidator:
    """
    Validates records for completeness.

    Checks, in order:
    1. id is non-blank
    2. title is non-blank
    3. content is non-blank
    """

    REQUIRED_FIELDS: tuple[str, ...] = ("id", "title", "content")

    def missing_fields(self, record: NormalizedRecord) -> list[str]:
        """
        List every required field that is empty or whitespace-only.

        Args:
            record: The record to check. It is not modified.

        Returns:
            Names of the failing fields, in check order.
        """
        return [name for name in self.REQUIRED_FIELDS if not (getattr(record, name) or "").strip()]

    def validate(self, record: NormalizedRecord) -> bool:
        """
        Validate a record, logging the first failing field.

        Args:
            record: The record to validate.

        Returns:
            True if id, title and content are all non-blank.
        """
        missing = self.missing_fields(record)
        if missing:
            logger.warning(
                "Validation failed: document %s is required (%s)",
                missing[0],
                record.source_path or record.id or "<unknown>",
            )
            return False
        return True

    def validate_or_raise(self, record: NormalizedRecord) -> None:
        """
        Validate a record and raise if invalid.

        Raises:
            RecordValidationError: Naming every missing field.
        """
        missing = self.missing_fields(record)
        if missing:
            raise RecordValidationError(missing, record.source_path)
