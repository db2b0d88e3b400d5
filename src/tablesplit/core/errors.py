"""Errors raised by the split allocation engine."""

from __future__ import annotations


class SplitError(Exception):
    """Base error for order split operations."""


# ---------------------------------------------------------------------------
# Validation errors (recoverable, no state change happened)
# ---------------------------------------------------------------------------


class ValidationError(SplitError):
    """A ledger or finalize request was rejected before any mutation."""


class InvalidQuantityError(ValidationError):
    """Non-positive quantity, or a removal larger than the bucket line."""


class InsufficientRemainingError(ValidationError):
    """A move asked for more units than remain on the source line."""

    def __init__(self, product_id: int, requested: int, remaining: int) -> None:
        super().__init__(
            f"Cannot move {requested} of product {product_id}, "
            f"only {remaining} remaining"
        )
        self.product_id = product_id
        self.requested = requested
        self.remaining = remaining


class BucketNotFoundError(ValidationError):
    """Bucket index outside the ledger."""


class ProductNotFoundError(ValidationError):
    """The product is not part of the source order."""


class LastBucketError(ValidationError):
    """At least one bucket must exist while a session is active."""


class DuplicateBucketError(ValidationError):
    """Bucket labels are unique per session."""


class EmptySplitError(ValidationError):
    """Finalize was called while every bucket is empty."""


# ---------------------------------------------------------------------------
# Session and store errors
# ---------------------------------------------------------------------------


class OrderNotFoundError(SplitError):
    """The order store has no order with the requested id."""


class CommitFailureError(SplitError):
    """The order store rejected or failed the atomic split write."""


class ArithmeticInconsistencyError(SplitError):
    """Reconciled figures do not add up to the source order.

    Signals a programming fault, never a user error.
    """
