"""Order store protocol consumed by split sessions.

The store supplies the source order and its line items, and accepts the
final split request as one atomic unit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from tablesplit.core.entities import RawLine, SourceOrder


@runtime_checkable
class OrderStore(Protocol):
    """Protocol for order persistence backends."""

    def get_order(self, order_id: int) -> SourceOrder | None:
        """Fetch an order snapshot, or None if it does not exist."""
        ...

    def get_order_items(self, order_id: int) -> list[RawLine]:
        """Fetch the order's line items as persisted."""
        ...

    def commit_split(self, request: dict[str, Any]) -> list[int]:
        """Apply a split request atomically.

        Creates one order per entry of ``split_items``, overwrites the
        original order's aggregate fields with ``original_order_update`` and
        replaces its line items with ``remaining_items``. Either everything
        is written or nothing is.

        Args:
            request: Output of ``SplitResult.to_request()``

        Returns:
            Ids of the created orders, in request order.
        """
        ...
