"""
Exceptions raised by Trellis.

Store faults are wrapped in StoreFailure so callers can apply their own retry
policy; everything else signals a missing record or a programming error.
"""

from typing import Any, Dict, List, Optional


class TrellisError(Exception):
    """Base exception for all Trellis errors."""


class NotFound(TrellisError):
    """Raised when a referenced content node or parent does not exist."""

    def __init__(self, collection: str, record_id: Optional[str]):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection} '{record_id}' not found")


class AlreadyExists(TrellisError):
    """Raised when a new content node would reuse the id of an existing one."""

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection} '{record_id}' already exists")


class InvariantViolation(TrellisError):
    """Raised on malformed input that indicates a programming error."""


class StoreFailure(TrellisError):
    """Raised when the underlying document store operation fails."""


class PartialDeleteFailure(StoreFailure):
    """
    Raised when some of the concurrent soft-delete operations failed.

    The operations that succeeded are not rolled back; their results are kept
    in ``completed`` keyed by operation name.
    """

    def __init__(self, content_id: str, failures: Dict[str, BaseException], completed: Dict[str, Any]):
        self.content_id = content_id
        self.failures = failures
        self.completed = completed
        names = ", ".join(sorted(failures))
        super().__init__(f"Delete of '{content_id}' partially failed: {names}")

    @property
    def failed_operations(self) -> List[str]:
        return sorted(self.failures)
