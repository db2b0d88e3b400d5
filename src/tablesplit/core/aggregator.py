"""Merge raw order lines that reference the same product."""

from __future__ import annotations

from collections.abc import Iterable

from tablesplit.core.entities import MergedLine, RawLine, to_decimal, to_money


def aggregate(raw_lines: Iterable[RawLine]) -> list[MergedLine]:
    """Collapse raw lines into one merged line per product.

    Quantities, totals and discounts are exact sums of stored amounts.
    Unit price and tax rate come from the first line seen for a product.

    Args:
        raw_lines: Order line items as persisted

    Returns:
        Merged lines in first-seen product order
    """
    merged: dict[int, MergedLine] = {}

    for raw in raw_lines:
        existing = merged.get(raw.product_id)
        if existing is None:
            merged[raw.product_id] = MergedLine(
                product_id=raw.product_id,
                product_name=raw.product_name,
                unit_price=to_decimal(raw.unit_price),
                total_quantity=raw.quantity,
                remaining_quantity=raw.quantity,
                line_total=to_money(raw.total),
                line_discount=to_money(raw.discount),
                tax_rate=to_decimal(raw.tax_rate),
            )
            continue

        existing.total_quantity += raw.quantity
        existing.remaining_quantity += raw.quantity
        existing.line_total += to_money(raw.total)
        existing.line_discount += to_money(raw.discount)

    return list(merged.values())
