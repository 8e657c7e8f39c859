"""
Failure classification for inventory operations.

Taxonomy:
- NotFound: stale container or card ids. Never raised by the engine; the
  operation is a no-op with a zeroed result.
- CapacityExceeded: a resize asked for more copies than exist. Rejected
  with the maximum permissible quantity, nothing mutated.
- PersistenceFailure: a store write failed. Propagated; the in-memory
  change is NOT rolled back, callers reload if they need strict consistency.
- PartialBatchFailure: some writes of a multi-container reconciliation
  failed. The others stay committed.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class FailureKind(str, Enum):
    """Classification of failure types."""

    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    PERSISTENCE_FAILURE = "persistence_failure"
    PARTIAL_BATCH_FAILURE = "partial_batch_failure"
    SERVICE_UNAVAILABLE = "service_unavailable"


class FailureDetail(BaseModel):
    """Detailed information about a failure."""

    kind: FailureKind = Field(
        ...,
        description="Classification of the failure",
    )
    message: str = Field(
        ...,
        description="User-appropriate explanation of what went wrong",
    )
    detail: str | None = Field(
        default=None,
        description="Additional technical detail (optional)",
    )
    suggestion: str | None = Field(
        default=None,
        description="Suggested action for the user",
    )
    max_available: int | None = Field(
        default=None,
        description="Largest quantity the request could have used (capacity failures)",
    )


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)

    def to_detail(self) -> FailureDetail:
        """Convert to a response body."""
        return FailureDetail(
            kind=self.kind,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
        )


class CapacityExceededError(KnownError):
    """
    Raised when a resize asks for more copies than are free.

    Carries the maximum quantity the allocation could be resized to, given
    what every other container already claims.
    """

    def __init__(self, card_id: str, requested: int, max_available: int) -> None:
        self.card_id = card_id
        self.requested = requested
        self.max_available = max_available
        super().__init__(
            kind=FailureKind.CAPACITY_EXCEEDED,
            message=f"Only {max_available} available",
            detail=f"Requested {requested} copies of card {card_id}",
            suggestion="Lower the quantity or add more copies to your collection.",
            status_code=409,
        )

    def to_detail(self) -> FailureDetail:
        detail = super().to_detail()
        detail.max_available = self.max_available
        return detail


class PersistenceError(KnownError):
    """
    Raised when the store fails to write a card or container.

    ``result`` holds the engine result describing the in-memory change that
    stayed in place, when the failure happened inside an engine operation.
    """

    def __init__(self, message: str, detail: str | None = None, result: Any = None) -> None:
        self.result = result
        super().__init__(
            kind=FailureKind.PERSISTENCE_FAILURE,
            message=message,
            detail=detail,
            suggestion="Please retry. Reload your data if the problem persists.",
            status_code=503,
        )
