"""Order fixtures for split engine tests."""

from __future__ import annotations

from decimal import Decimal
import itertools

from tablesplit.core.aggregator import aggregate
from tablesplit.core.allocator import allocate_tax
from tablesplit.core.entities import RawLine, SourceOrder
from tablesplit.core.ledger import BucketLedger, LabelFactory


def create_raw_line(
    product_id: int,
    quantity: int,
    unit_price: int | str = 100000,
    *,
    total: int | str | None = None,
    discount: int | str | None = 0,
    tax_rate: int | str = 10,
    product_name: str | None = None,
) -> RawLine:
    """Create a RawLine; total defaults to unit_price * quantity."""
    if total is None:
        total = int(Decimal(str(unit_price)) * quantity)
    return RawLine(
        product_id=product_id,
        product_name=product_name or f"Product {product_id}",
        quantity=quantity,
        unit_price=str(unit_price),
        total=total,
        discount=discount,
        tax_rate=str(tax_rate),
    )


def create_source_order(
    *,
    subtotal: int,
    tax: int,
    discount: int = 0,
    total: int | None = None,
    price_includes_tax: bool = False,
    order_id: int = 1,
    table_id: int | None = 7,
    customer_count: int | None = 2,
    customer_name: str | None = "Table guest",
) -> SourceOrder:
    """Create a SourceOrder; total defaults to subtotal + tax."""
    return SourceOrder(
        id=order_id,
        subtotal=subtotal,
        tax=tax,
        discount=discount,
        total=subtotal + tax if total is None else total,
        price_includes_tax=price_includes_tax,
        table_id=table_id,
        customer_count=customer_count,
        customer_name=customer_name,
    )


def sequential_labels(prefix: str = "ORD") -> LabelFactory:
    """Deterministic label factory: ORD-1, ORD-2, ..."""
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


def create_ledger(
    raw_lines: list[RawLine],
    order_tax: int,
    *,
    table_id: int | None = 7,
) -> BucketLedger:
    """Aggregate, allocate tax and open a ledger with deterministic labels."""
    lines = aggregate(raw_lines)
    allocate_tax(lines, order_tax)
    return BucketLedger(lines, table_id=table_id, label_factory=sequential_labels())


def create_single_product_ledger() -> tuple[BucketLedger, SourceOrder]:
    """Product 1 x3 at 100,000 with 10% tax (30,000), prices exclude tax."""
    order = create_source_order(subtotal=300000, tax=30000)
    ledger = create_ledger([create_raw_line(1, 3, 100000)], order.tax)
    return ledger, order
