"""
Result types returned by the allocation engine.

Each result says whether the change only exists in memory or also reached
the store, so callers can detect the window where the two diverge.
"""

from dataclasses import dataclass, field
from enum import Enum


class MutationOutcome(str, Enum):
    """How far a mutation got."""

    NOOP = "noop"  # nothing to do (unresolvable ids, no change needed)
    LOCAL = "local"  # in-memory state changed, durable write failed
    PERSISTED = "persisted"  # in-memory state changed and written


@dataclass
class AllocationResult:
    """
    Split of a requested quantity between stock and wishlist.

    INVARIANT: allocated + wishlisted == requested quantity, except for
    no-op results where both are 0.
    """

    allocated: int = 0
    wishlisted: int = 0
    wishlist_card_id: str | None = None
    outcome: MutationOutcome = MutationOutcome.NOOP

    @property
    def requested(self) -> int:
        return self.allocated + self.wishlisted

    @property
    def has_shortfall(self) -> bool:
        """True if some of the request went to the wishlist."""
        return self.wishlisted > 0


@dataclass
class LedgerUpdateResult:
    """Result of deallocate / resize / bulk ledger edits on one container."""

    container_id: str | None = None
    quantity: int = 0
    outcome: MutationOutcome = MutationOutcome.NOOP

    @property
    def changed(self) -> bool:
        return self.outcome != MutationOutcome.NOOP


@dataclass
class ReconciliationResult:
    """
    Result of converting claims on a shrunk or deleted Card to wishlist claims.

    Each touched container is written independently: ``persisted_ids`` lists
    those written, ``failed`` maps the rest to their error message.
    """

    card_id: str
    excess: int = 0
    converted: int = 0
    wishlist_card_id: str | None = None
    persisted_ids: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def touched_ids(self) -> list[str]:
        return [*self.persisted_ids, *self.failed]

    @property
    def is_complete(self) -> bool:
        """True when every touched container reached the store."""
        return not self.failed

    @property
    def outcome(self) -> MutationOutcome:
        if self.excess == 0:
            return MutationOutcome.NOOP
        if self.failed:
            return MutationOutcome.LOCAL
        return MutationOutcome.PERSISTED
