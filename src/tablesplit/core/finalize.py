"""Turn a bucket ledger into per-order figures ready for persistence."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Any

from tablesplit.core.allocator import prorate
from tablesplit.core.entities import MergedLine, SourceOrder, floor_money
from tablesplit.core.errors import ArithmeticInconsistencyError, EmptySplitError
from tablesplit.core.ledger import BucketLedger
from tablesplit.core.logger import SplitLogger

DEFAULT_CUSTOMER_NAME = "Khách hàng"
MONEY_FIELDS = ("subtotal", "discount", "tax", "total")


@dataclass
class ItemFigures:
    """One product line of a new order or of the remainder."""

    product_id: int
    product_name: str
    quantity: int
    unit_price: Decimal
    total: int  # undiscounted unit_price * quantity
    discount: int
    tax: int
    tax_rate: Decimal
    subtotal: int
    price_before_tax: int


@dataclass
class OrderFigures:
    """Aggregate money fields of one order."""

    subtotal: int = 0
    discount: int = 0
    tax: int = 0
    total: int = 0

    def add_item(self, item: ItemFigures) -> None:
        self.subtotal += item.subtotal
        self.discount += item.discount
        self.tax += item.tax

    def as_dict(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in MONEY_FIELDS}


@dataclass
class BucketPayload:
    """A new order created by the split."""

    name: str
    table_id: int | None
    parent_order_id: int
    price_include_tax: bool
    customer_count: int
    customer_name: str
    figures: OrderFigures
    items: list[ItemFigures] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = {
            "name": self.name,
            "table_id": self.table_id,
            "parent_order_id": self.parent_order_id,
            "price_include_tax": self.price_include_tax,
            "customer_count": self.customer_count,
            "customer_name": self.customer_name,
            "items": [asdict(item) for item in self.items],
        }
        data.update(self.figures.as_dict())
        return data


@dataclass
class RemainderUpdate:
    """Replacement figures and lines for the original order."""

    figures: OrderFigures
    items: list[ItemFigures] = field(default_factory=list)


@dataclass
class SplitResult:
    """Output of finalize: new orders plus the shrunken original."""

    original_order_id: int
    buckets: list[BucketPayload]
    remainder: RemainderUpdate

    def to_request(self) -> dict[str, Any]:
        """Render the commit request handed to the order store."""
        return {
            "original_order_id": self.original_order_id,
            "split_items": [bucket.to_dict() for bucket in self.buckets],
            "remaining_items": [asdict(item) for item in self.remainder.items],
            "original_order_update": self.remainder.figures.as_dict(),
        }


def _price_before_tax(
    unit_price: Decimal,
    quantity: int,
    discount: int,
    tax: int,
    tax_rate: Decimal,
    price_includes_tax: bool,
) -> int:
    gross = unit_price * quantity
    if not price_includes_tax:
        return floor_money(gross)
    net = (gross - discount) * 100 / (100 + tax_rate)
    return floor_money(net) - tax


def _item_figures(
    source: MergedLine,
    quantity: int,
    discount: int,
    price_includes_tax: bool,
) -> tuple[int, int, int]:
    """Return (gross, tax, subtotal) for ``quantity`` units of a source line."""
    gross = floor_money(source.unit_price * quantity)
    tax = prorate(source.allocated_tax, quantity, source.total_quantity)
    subtotal = gross - discount - tax if price_includes_tax else gross - discount
    return gross, tax, subtotal


def _bucket_items(
    ledger: BucketLedger, bucket_index: int, price_includes_tax: bool
) -> list[ItemFigures]:
    items: list[ItemFigures] = []
    for bucket_line in ledger.bucket(bucket_index).lines:
        source = ledger.line_for(bucket_line.product_id)
        gross, tax, subtotal = _item_figures(
            source, bucket_line.quantity, bucket_line.discount, price_includes_tax
        )
        items.append(
            ItemFigures(
                product_id=bucket_line.product_id,
                product_name=bucket_line.product_name,
                quantity=bucket_line.quantity,
                unit_price=bucket_line.unit_price,
                total=gross,
                discount=bucket_line.discount,
                tax=tax,
                tax_rate=bucket_line.tax_rate,
                subtotal=subtotal,
                price_before_tax=_price_before_tax(
                    bucket_line.unit_price,
                    bucket_line.quantity,
                    bucket_line.discount,
                    tax,
                    bucket_line.tax_rate,
                    price_includes_tax,
                ),
            )
        )
    return items


def _remainder_items(
    ledger: BucketLedger, price_includes_tax: bool
) -> list[ItemFigures]:
    items: list[ItemFigures] = []
    for source in ledger.remaining_lines():
        quantity = source.remaining_quantity
        discount = prorate(source.line_discount, quantity, source.total_quantity)
        gross, tax, subtotal = _item_figures(
            source, quantity, discount, price_includes_tax
        )
        items.append(
            ItemFigures(
                product_id=source.product_id,
                product_name=source.product_name,
                quantity=quantity,
                unit_price=source.unit_price,
                total=gross,
                discount=discount,
                tax=tax,
                tax_rate=source.tax_rate,
                subtotal=subtotal,
                price_before_tax=subtotal,
            )
        )
    return items


def _sum_figures(items: list[ItemFigures]) -> OrderFigures:
    figures = OrderFigures()
    for item in items:
        figures.add_item(item)
    figures.total = figures.subtotal + figures.tax
    return figures


def _reconcile(
    source_order: SourceOrder,
    buckets: list[BucketPayload],
    remainder: OrderFigures,
    split_logger: SplitLogger,
) -> None:
    """Let the remainder absorb whatever local flooring left over."""
    for name in MONEY_FIELDS:
        allocated = sum(getattr(b.figures, name) for b in buckets)
        allocated += getattr(remainder, name)
        residual = getattr(source_order, name) - allocated
        if residual:
            setattr(remainder, name, getattr(remainder, name) + residual)
            split_logger.residual_reconciled(name, residual)


def verify_conservation(result: SplitResult, source_order: SourceOrder) -> None:
    """Raise if any money field of the split does not add up to the source."""
    for name in MONEY_FIELDS:
        split_sum = sum(getattr(b.figures, name) for b in result.buckets)
        split_sum += getattr(result.remainder.figures, name)
        expected = getattr(source_order, name)
        if split_sum != expected:
            raise ArithmeticInconsistencyError(
                f"{name} of split order {source_order.id} sums to {split_sum}, "
                f"expected {expected}"
            )


def finalize(
    ledger: BucketLedger,
    source_order: SourceOrder,
    default_customer_name: str = DEFAULT_CUSTOMER_NAME,
    split_logger: SplitLogger | None = None,
) -> SplitResult:
    """Compute the new orders and the remainder of ``source_order``.

    Each bucket and the remainder are figured line by line with local
    flooring; the remainder then absorbs the residual so that subtotal,
    discount, tax and total all sum exactly to the source order.

    Args:
        ledger: Split state built by the session
        source_order: The order being split (not mutated)
        default_customer_name: Used when the source order has no name
        split_logger: Logger for finalize events

    Returns:
        SplitResult ready to be rendered with ``to_request()``

    Raises:
        EmptySplitError: no bucket holds any quantity
        ArithmeticInconsistencyError: figures fail the conservation check
    """
    split_logger = split_logger or SplitLogger()
    if ledger.is_empty:
        split_logger.operation_rejected("finalize", "no quantities moved")
        raise EmptySplitError("Move at least one item into a new order")

    price_includes_tax = source_order.price_includes_tax
    buckets: list[BucketPayload] = []
    for index, bucket in enumerate(ledger.buckets):
        if bucket.is_empty:
            continue
        items = _bucket_items(ledger, index, price_includes_tax)
        buckets.append(
            BucketPayload(
                name=bucket.label,
                table_id=bucket.table_id,
                parent_order_id=source_order.id,
                price_include_tax=price_includes_tax,
                customer_count=source_order.customer_count or 1,
                customer_name=source_order.customer_name or default_customer_name,
                figures=_sum_figures(items),
                items=items,
            )
        )

    remainder_items = _remainder_items(ledger, price_includes_tax)
    remainder_figures = _sum_figures(remainder_items)
    _reconcile(source_order, buckets, remainder_figures, split_logger)

    result = SplitResult(
        original_order_id=source_order.id,
        buckets=buckets,
        remainder=RemainderUpdate(figures=remainder_figures, items=remainder_items),
    )
    verify_conservation(result, source_order)
    split_logger.split_finalized(result)
    return result
