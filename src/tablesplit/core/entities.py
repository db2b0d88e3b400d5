"""Order split domain entities and money helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal, InvalidOperation

MoneyLike = int | str | Decimal | None


def to_decimal(value: MoneyLike) -> Decimal:
    """Parse a stored amount (e.g. "100000.00") into a Decimal.

    Missing or empty values parse to zero.
    """
    if value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    text = str(value).strip()
    if not text:
        return Decimal(0)
    try:
        return Decimal(text)
    except InvalidOperation as e:
        raise ValueError(f"Invalid money value: {value!r}") from e


def floor_money(value: Decimal) -> int:
    """Truncate a Decimal amount to whole money units, rounding down."""
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def to_money(value: MoneyLike) -> int:
    """Parse a stored amount into whole money units."""
    return floor_money(to_decimal(value))


@dataclass(frozen=True, slots=True)
class SourceOrder:
    """Snapshot of the order being split. Never mutated by the engine."""

    id: int
    subtotal: int
    tax: int
    discount: int
    total: int
    price_includes_tax: bool = False
    table_id: int | None = None
    customer_count: int | None = None
    customer_name: str | None = None


@dataclass(frozen=True, slots=True)
class RawLine:
    """Order line item as persisted. Several may reference one product."""

    product_id: int
    product_name: str
    quantity: int
    unit_price: MoneyLike
    total: MoneyLike = None
    discount: MoneyLike = None
    tax_rate: MoneyLike = None


@dataclass
class MergedLine:
    """One entry per distinct product of the source order.

    Attributes:
        total_quantity: Quantity before any split.
        remaining_quantity: Units not assigned to a bucket yet.
        line_total: Sum of stored line totals, before discount.
        line_discount: Sum of stored line discounts.
        allocated_tax: This line's share of the order tax.
        tax_rate: Percentage, e.g. Decimal("10").
    """

    product_id: int
    product_name: str
    unit_price: Decimal
    total_quantity: int
    remaining_quantity: int
    line_total: int
    line_discount: int
    tax_rate: Decimal
    allocated_tax: int = 0

    @property
    def moved_quantity(self) -> int:
        return self.total_quantity - self.remaining_quantity


@dataclass
class BucketLine:
    """Quantity of one product placed in a split bucket.

    ``total`` is always the undiscounted ``unit_price * quantity``;
    ``discount`` is tracked separately.
    """

    product_id: int
    product_name: str
    unit_price: Decimal
    quantity: int
    total: int
    discount: int
    tax_rate: Decimal


@dataclass
class SplitBucket:
    """A new order being assembled from moved quantities."""

    label: str
    table_id: int | None
    lines: list[BucketLine] = field(default_factory=list)

    def line_for(self, product_id: int) -> BucketLine | None:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def unit_count(self) -> int:
        return sum(line.quantity for line in self.lines)
