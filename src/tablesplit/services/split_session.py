"""Split session: one user's interactive split of one order."""

from __future__ import annotations

from tablesplit.adapters.store import OrderStore
from tablesplit.config import SplitConfig
from tablesplit.core.aggregator import aggregate
from tablesplit.core.allocator import allocate_discount, allocate_tax
from tablesplit.core.entities import (
    BucketLine,
    MergedLine,
    RawLine,
    SourceOrder,
    SplitBucket,
)
from tablesplit.core.errors import CommitFailureError, OrderNotFoundError
from tablesplit.core.finalize import SplitResult, finalize
from tablesplit.core.ledger import BucketLedger, LabelFactory, timestamp_label_factory
from tablesplit.core.logger import SplitLogger


class SplitSession:
    """Owns the ledger for one split of one source order.

    The session is synchronous and not shared: callers serialize their
    actions. Nothing is persisted until ``commit()`` succeeds, so dropping
    the session (``cancel()``) has no side effects.
    """

    def __init__(
        self,
        source_order: SourceOrder,
        raw_lines: list[RawLine],
        config: SplitConfig | None = None,
        label_factory: LabelFactory | None = None,
        split_logger: SplitLogger | None = None,
        store: OrderStore | None = None,
    ) -> None:
        """Aggregate lines, allocate the order tax and open the ledger.

        Args:
            source_order: Snapshot of the order being split
            raw_lines: The order's line items as persisted
            config: Engine configuration (defaults used when omitted)
            label_factory: Overrides generated bucket labels
            split_logger: Logger for session events
        """
        self._store = store
        self._config = config or SplitConfig()
        self._logger = split_logger or SplitLogger()
        self._source_order = source_order

        lines = aggregate(raw_lines)
        self._logger.lines_aggregated(len(raw_lines), len(lines))
        if self._config.spread_order_discount:
            self._spread_order_discount(lines)
        allocate_tax(lines, source_order.tax, self._logger)

        self._ledger: BucketLedger | None = BucketLedger(
            lines,
            table_id=source_order.table_id,
            label_factory=label_factory
            or timestamp_label_factory(self._config.bucket_prefix),
            split_logger=self._logger,
        )
        self._logger.session_opened(
            source_order.id, len(lines), sum(line.total_quantity for line in lines)
        )

    @classmethod
    def open(
        cls,
        store: OrderStore,
        order_id: int,
        config: SplitConfig | None = None,
        label_factory: LabelFactory | None = None,
        split_logger: SplitLogger | None = None,
    ) -> SplitSession:
        """Load an order from the store and start a session for it.

        Raises:
            OrderNotFoundError: the store has no such order
        """
        source_order = store.get_order(order_id)
        if source_order is None:
            raise OrderNotFoundError(f"Order {order_id} not found")
        raw_lines = store.get_order_items(order_id)
        return cls(
            source_order,
            raw_lines,
            config=config,
            label_factory=label_factory,
            split_logger=split_logger,
            store=store,
        )

    def _spread_order_discount(self, lines: list[MergedLine]) -> None:
        order_discount = self._source_order.discount
        if order_discount == 0 or any(line.line_discount for line in lines):
            return
        shares = allocate_discount(lines, order_discount)
        for line, share in zip(lines, shares, strict=True):
            line.line_discount = share
        self._logger.discount_spread(order_discount, shares)

    @property
    def ledger(self) -> BucketLedger:
        if self._ledger is None:
            raise RuntimeError("Split session was cancelled")
        return self._ledger

    @property
    def source_order(self) -> SourceOrder:
        return self._source_order

    @property
    def lines(self) -> list[MergedLine]:
        return self.ledger.lines

    @property
    def buckets(self) -> list[SplitBucket]:
        return self.ledger.buckets

    @property
    def can_add_bucket(self) -> bool:
        """More buckets only make sense while more than one unit remains."""
        return self.ledger.remaining_units > 1

    def move(self, product_id: int, bucket_index: int, quantity: int) -> BucketLine:
        return self.ledger.move_quantity(product_id, bucket_index, quantity)

    def move_one(self, product_id: int, bucket_index: int) -> BucketLine:
        return self.ledger.move_one(product_id, bucket_index)

    def remove(self, bucket_index: int, product_id: int, quantity: int) -> None:
        self.ledger.remove_quantity(bucket_index, product_id, quantity)

    def add_bucket(self, label: str | None = None) -> SplitBucket:
        return self.ledger.add_bucket(label)

    def remove_bucket(self, bucket_index: int) -> None:
        self.ledger.remove_bucket(bucket_index)

    def preview(self) -> SplitResult:
        """Finalize without committing."""
        return finalize(
            self.ledger,
            self._source_order,
            default_customer_name=self._config.default_customer_name,
            split_logger=self._logger,
        )

    def commit(self, store: OrderStore | None = None) -> list[int]:
        """Finalize and hand the split to the store in one atomic write.

        The session keeps its state whether or not the write succeeds, so a
        failed commit can be retried.

        Args:
            store: Store to write to (defaults to the one the session was
                opened from)

        Returns:
            Ids of the created orders

        Raises:
            EmptySplitError: nothing was moved
            CommitFailureError: the store rejected or failed the write
        """
        target = store or self._store
        if target is None:
            raise ValueError("No order store to commit to")

        result = self.preview()
        try:
            new_order_ids = target.commit_split(result.to_request())
        except Exception as e:
            self._logger.commit_failed(self._source_order.id, e)
            raise CommitFailureError(str(e)) from e

        self._logger.commit_succeeded(self._source_order.id, new_order_ids)
        return new_order_ids

    def cancel(self) -> None:
        """Discard all split state. Nothing was persisted."""
        self._ledger = None
