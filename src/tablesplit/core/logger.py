"""Logging for order split operations.

Keeps log formatting out of the allocation and ledger code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import loguru
from loguru import logger

if TYPE_CHECKING:
    from tablesplit.core.finalize import SplitResult


class SplitLogger:
    """Handles all logging for split sessions."""

    def __init__(self, logger_instance: loguru.Logger = logger) -> None:
        """Initialize logger.

        Args:
            logger_instance: Logger instance to use (defaults to loguru.logger)
        """
        self._logger = logger_instance

    def session_opened(self, order_id: int, line_count: int, unit_count: int) -> None:
        """Log split session start."""
        self._logger.bind(order_id=order_id, lines=line_count, units=unit_count).info(
            "Split session opened for order {}: {} products, {} units",
            order_id,
            line_count,
            unit_count,
        )

    def lines_aggregated(self, raw_count: int, merged_count: int) -> None:
        """Log raw lines merged per product."""
        self._logger.bind(raw=raw_count, merged=merged_count).debug(
            "Aggregated {} raw lines into {} products", raw_count, merged_count
        )

    def tax_allocated(self, order_tax: int, shares: list[int]) -> None:
        """Log order tax distribution over merged lines."""
        self._logger.bind(order_tax=order_tax, shares=shares).debug(
            "Allocated order tax {} across {} lines", order_tax, len(shares)
        )

    def discount_spread(self, order_discount: int, shares: list[int]) -> None:
        """Log order-level discount spread onto lines."""
        self._logger.bind(order_discount=order_discount, shares=shares).info(
            "Spread order discount {} across {} lines",
            order_discount,
            len(shares),
        )

    def quantity_moved(self, product_id: int, bucket_label: str, quantity: int) -> None:
        """Log units moved into a bucket."""
        self._logger.bind(
            product_id=product_id, bucket=bucket_label, quantity=quantity
        ).debug("Moved {} x product {} -> {}", quantity, product_id, bucket_label)

    def quantity_returned(
        self, product_id: int, bucket_label: str, quantity: int
    ) -> None:
        """Log units returned from a bucket to the source order."""
        self._logger.bind(
            product_id=product_id, bucket=bucket_label, quantity=quantity
        ).debug("Returned {} x product {} <- {}", quantity, product_id, bucket_label)

    def operation_rejected(self, operation: str, reason: str) -> None:
        """Log a rejected ledger operation (no state change)."""
        self._logger.bind(operation=operation).warning(
            "Rejected {}: {}", operation, reason
        )

    def bucket_added(self, label: str, bucket_count: int) -> None:
        """Log new bucket."""
        self._logger.bind(bucket=label, buckets=bucket_count).debug(
            "Added bucket {} ({} total)", label, bucket_count
        )

    def bucket_removed(self, label: str, returned_units: int) -> None:
        """Log bucket removal."""
        self._logger.bind(bucket=label, returned=returned_units).debug(
            "Removed bucket {}, returned {} units", label, returned_units
        )

    def residual_reconciled(self, dimension: str, residual: int) -> None:
        """Log rounding residual absorbed by the remainder."""
        self._logger.bind(dimension=dimension, residual=residual).warning(
            "Remainder absorbed {} residual of {}", dimension, residual
        )

    def split_finalized(self, result: SplitResult) -> None:
        """Log finalize summary."""
        self._logger.bind(
            order_id=result.original_order_id,
            buckets=len(result.buckets),
            remainder_total=result.remainder.figures.total,
        ).info(
            "Finalized split of order {} into {} new orders (remainder total {})",
            result.original_order_id,
            len(result.buckets),
            result.remainder.figures.total,
        )

    def commit_succeeded(self, order_id: int, new_order_ids: list[int]) -> None:
        """Log committed split."""
        self._logger.bind(order_id=order_id, new_order_ids=new_order_ids).info(
            "Committed split of order {}: created {}", order_id, new_order_ids
        )

    def commit_failed(self, order_id: int, error: Exception) -> None:
        """Log failed commit."""
        self._logger.bind(order_id=order_id, error=str(error)).error(
            "Split commit for order {} failed: {}", order_id, error
        )
