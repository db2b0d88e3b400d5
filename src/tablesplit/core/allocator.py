"""Proportional allocation of order-level tax and discount to lines."""

from __future__ import annotations

from tablesplit.core.entities import MergedLine
from tablesplit.core.logger import SplitLogger


def prorate(amount: int, part: int, whole: int) -> int:
    """Return ``floor(amount * part / whole)``, or 0 when ``whole`` is 0.

    Integer floor division keeps the result exact for any sizes.
    """
    if whole == 0:
        return 0
    return (amount * part) // whole


def allocate_proportionally(amount: int, weights: list[int]) -> list[int]:
    """Allocate ``amount`` over ``weights`` so shares sum exactly to it.

    Every share but the last is floored; the last share absorbs the
    rounding slack. A zero total weight allocates nothing.

    Args:
        amount: Total amount to allocate (whole money units)
        weights: One weight per recipient, in allocation order

    Returns:
        List of shares, same length as weights
    """
    if not weights:
        return []

    total_weight = sum(weights)
    if total_weight == 0:
        return [0] * len(weights)

    shares: list[int] = []
    allocated = 0
    for weight in weights[:-1]:
        share = prorate(amount, weight, total_weight)
        shares.append(share)
        allocated += share
    shares.append(amount - allocated)
    return shares


def allocate_tax(
    lines: list[MergedLine],
    order_tax: int,
    split_logger: SplitLogger | None = None,
) -> None:
    """Set ``allocated_tax`` on each line from the order's stored tax."""
    shares = allocate_proportionally(order_tax, [line.line_total for line in lines])
    for line, share in zip(lines, shares, strict=True):
        line.allocated_tax = share
    if split_logger is not None:
        split_logger.tax_allocated(order_tax, shares)


def allocate_discount(lines: list[MergedLine], order_discount: int) -> list[int]:
    """Return each line's share of an order-level discount."""
    return allocate_proportionally(
        order_discount, [line.line_total for line in lines]
    )
