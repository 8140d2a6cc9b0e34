"""Error types raised by the study engine."""
from typing import List, Optional


class StudyError(Exception):
    """Base class for study engine errors."""


class StorageUnavailable(StudyError):
    """The underlying database could not be reached or written."""


class ValidationError(StudyError):
    """A corpus import batch contained malformed records.

    The whole batch is rejected; ``errors`` lists one message per bad record.
    """

    def __init__(self, message: str, errors: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.errors: List[str] = errors or []
