"""Bucket ledger: tracks where each unit of the source order currently sits."""

from __future__ import annotations

from collections.abc import Callable
import time

from tablesplit.core.allocator import prorate
from tablesplit.core.entities import BucketLine, MergedLine, SplitBucket, floor_money
from tablesplit.core.errors import (
    BucketNotFoundError,
    DuplicateBucketError,
    InsufficientRemainingError,
    InvalidQuantityError,
    LastBucketError,
    ProductNotFoundError,
    ValidationError,
)
from tablesplit.core.logger import SplitLogger

LabelFactory = Callable[[], str]


def timestamp_label_factory(prefix: str = "ORD") -> LabelFactory:
    """Build a factory producing labels like ``ORD-1718000000000``."""

    def _make() -> str:
        return f"{prefix}-{int(time.time() * 1000)}"

    return _make


class BucketLedger:
    """Mutable split state for one session.

    Holds the merged source lines (with their remaining quantities) and
    the destination buckets. Every operation validates before it mutates,
    so a rejected call leaves the ledger unchanged.
    """

    def __init__(
        self,
        lines: list[MergedLine],
        table_id: int | None = None,
        label_factory: LabelFactory | None = None,
        split_logger: SplitLogger | None = None,
    ) -> None:
        """Initialize ledger with one empty bucket.

        Args:
            lines: Aggregated source lines with allocated tax
            table_id: Table inherited by every new bucket
            label_factory: Generates bucket labels when none is given
            split_logger: Logger for ledger events
        """
        self._lines = {line.product_id: line for line in lines}
        self._table_id = table_id
        self._label_factory = label_factory or timestamp_label_factory()
        self._logger = split_logger or SplitLogger()
        self._buckets: list[SplitBucket] = []
        self.add_bucket()

    # -----------------------------------------------------------------------
    # Read helpers
    # -----------------------------------------------------------------------

    @property
    def lines(self) -> list[MergedLine]:
        return list(self._lines.values())

    @property
    def buckets(self) -> list[SplitBucket]:
        return list(self._buckets)

    @property
    def remaining_units(self) -> int:
        return sum(line.remaining_quantity for line in self._lines.values())

    @property
    def moved_units(self) -> int:
        return sum(bucket.unit_count for bucket in self._buckets)

    @property
    def is_empty(self) -> bool:
        """True when no bucket holds any quantity."""
        return all(bucket.is_empty for bucket in self._buckets)

    def remaining_lines(self) -> list[MergedLine]:
        """Source lines that still have unassigned units."""
        return [line for line in self._lines.values() if line.remaining_quantity > 0]

    def line_for(self, product_id: int) -> MergedLine:
        line = self._lines.get(product_id)
        if line is None:
            raise ProductNotFoundError(f"Product {product_id} is not in this order")
        return line

    def bucket(self, bucket_index: int) -> SplitBucket:
        if not 0 <= bucket_index < len(self._buckets):
            raise BucketNotFoundError(
                f"No bucket at index {bucket_index} "
                f"({len(self._buckets)} buckets)"
            )
        return self._buckets[bucket_index]

    # -----------------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------------

    def move_quantity(
        self, line: MergedLine | int, bucket_index: int, quantity: int
    ) -> BucketLine:
        """Move units of a source line into a bucket.

        Args:
            line: Merged line, or its product id
            bucket_index: Destination bucket
            quantity: Units to move

        Returns:
            The bucket line holding the product after the move

        Raises:
            InvalidQuantityError: quantity is not positive
            InsufficientRemainingError: quantity exceeds remaining units
            ProductNotFoundError: product is not in the source order
            BucketNotFoundError: bucket index is out of range
        """
        product_id = line if isinstance(line, int) else line.product_id
        try:
            if quantity <= 0:
                raise InvalidQuantityError(
                    f"Cannot move {quantity} units; quantity must be positive"
                )
            source = self.line_for(product_id)
            if quantity > source.remaining_quantity:
                raise InsufficientRemainingError(
                    product_id, quantity, source.remaining_quantity
                )
            bucket = self.bucket(bucket_index)
        except ValidationError as e:
            self._logger.operation_rejected("move", str(e))
            raise

        source.remaining_quantity -= quantity
        moved_discount = prorate(source.line_discount, quantity, source.total_quantity)

        existing = bucket.line_for(product_id)
        if existing is not None:
            existing.quantity += quantity
            existing.discount += moved_discount
            existing.total = floor_money(source.unit_price * existing.quantity)
            target = existing
        else:
            target = BucketLine(
                product_id=source.product_id,
                product_name=source.product_name,
                unit_price=source.unit_price,
                quantity=quantity,
                total=floor_money(source.unit_price * quantity),
                discount=moved_discount,
                tax_rate=source.tax_rate,
            )
            bucket.lines.append(target)

        self._logger.quantity_moved(product_id, bucket.label, quantity)
        return target

    def move_one(self, product_id: int, bucket_index: int) -> BucketLine:
        """Move a single unit, the quick action offered per source line."""
        return self.move_quantity(product_id, bucket_index, 1)

    def remove_quantity(
        self, bucket_index: int, product_id: int, quantity: int
    ) -> None:
        """Return units from a bucket line to its source line.

        The bucket line's total and discount are recomputed from the source
        line for the new quantity. The entry is dropped once it reaches zero.

        Raises:
            InvalidQuantityError: quantity is not positive, or exceeds what
                the bucket holds for this product
            BucketNotFoundError: bucket index is out of range
        """
        try:
            bucket = self.bucket(bucket_index)
            bucket_line = bucket.line_for(product_id)
            if bucket_line is None:
                raise InvalidQuantityError(
                    f"Cannot remove product {product_id} from {bucket.label}; "
                    "it holds none"
                )
            if quantity <= 0 or quantity > bucket_line.quantity:
                raise InvalidQuantityError(
                    f"Cannot remove {quantity} of product {product_id} "
                    f"from {bucket.label}; it holds {bucket_line.quantity}"
                )
            source = self.line_for(product_id)
        except ValidationError as e:
            self._logger.operation_rejected("remove", str(e))
            raise

        source.remaining_quantity += quantity
        new_quantity = bucket_line.quantity - quantity
        if new_quantity == 0:
            bucket.lines.remove(bucket_line)
        else:
            bucket_line.quantity = new_quantity
            bucket_line.total = floor_money(source.unit_price * new_quantity)
            bucket_line.discount = prorate(
                source.line_discount, new_quantity, source.total_quantity
            )

        self._logger.quantity_returned(product_id, bucket.label, quantity)

    def add_bucket(self, label: str | None = None) -> SplitBucket:
        """Append an empty bucket. Generates a unique label when none is given."""
        taken = {bucket.label for bucket in self._buckets}
        if label is None:
            label = self._label_factory()
            base, suffix = label, 2
            while label in taken:
                label = f"{base}-{suffix}"
                suffix += 1
        elif label in taken:
            self._logger.operation_rejected("add_bucket", f"duplicate label {label}")
            raise DuplicateBucketError(f"Bucket label {label!r} already in use")

        bucket = SplitBucket(label=label, table_id=self._table_id)
        self._buckets.append(bucket)
        self._logger.bucket_added(label, len(self._buckets))
        return bucket

    def remove_bucket(self, bucket_index: int) -> None:
        """Drop a bucket, returning all of its units to the source lines.

        Raises:
            LastBucketError: the bucket is the only one left
            BucketNotFoundError: bucket index is out of range
        """
        try:
            bucket = self.bucket(bucket_index)
            if len(self._buckets) == 1:
                raise LastBucketError("Cannot remove the last remaining bucket")
        except ValidationError as e:
            self._logger.operation_rejected("remove_bucket", str(e))
            raise

        returned = bucket.unit_count
        for bucket_line in list(bucket.lines):
            self.remove_quantity(
                bucket_index, bucket_line.product_id, bucket_line.quantity
            )
        del self._buckets[bucket_index]
        self._logger.bucket_removed(bucket.label, returned)
