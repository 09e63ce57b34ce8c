"""Record-level exceptions: malformed log records, bad timestamps, empty input."""

from typing import Any, Dict, Optional

from .base import TimesheetError


def _preview(value: Any, limit: int = 60) -> str:
    text = repr(value)
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


class RecordError(TimesheetError):
    """Base class for commit record errors."""

    pass


class MalformedRecordError(RecordError):
    """Raised when a single raw log record cannot be decoded.

    The log parser absorbs these: the record is dropped and counted.
    """

    def __init__(self, reason: str, hash_prefix: Optional[str] = None, raw: Optional[str] = None):
        details: Dict[str, str] = {"reason": reason}
        if hash_prefix:
            details["hash"] = hash_prefix
        if raw is not None:
            details["raw"] = _preview(raw)

        super().__init__(f"Malformed commit record: {reason}", details=details)
        self.reason = reason
        self.hash_prefix = hash_prefix
        self.raw = raw


class InvalidTimestampError(RecordError):
    """Raised when a date value cannot be resolved to a valid instant."""

    def __init__(self, value: Any, field: str = "date", hash_prefix: Optional[str] = None):
        details = {"field": field, "value": _preview(value)}
        if hash_prefix:
            details["hash"] = hash_prefix

        super().__init__(f"Invalid timestamp in {field}", details=details)
        self.value = value
        self.field = field
        self.hash_prefix = hash_prefix


class EmptyInputError(RecordError):
    """Raised when no valid commits survive normalization."""

    def __init__(self, total: int, skipped: int):
        super().__init__(
            "No valid commits found after normalization. Check commit dates.",
            details={"total": str(total), "skipped": str(skipped)},
        )
        self.total = total
        self.skipped = skipped
