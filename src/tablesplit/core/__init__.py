"""Split allocation engine: aggregation, allocation, ledger and finalize."""

from tablesplit.core.aggregator import aggregate
from tablesplit.core.allocator import (
    allocate_discount,
    allocate_proportionally,
    allocate_tax,
    prorate,
)
from tablesplit.core.entities import (
    BucketLine,
    MergedLine,
    RawLine,
    SourceOrder,
    SplitBucket,
)
from tablesplit.core.finalize import SplitResult, finalize
from tablesplit.core.ledger import BucketLedger

__all__ = [
    "BucketLedger",
    "BucketLine",
    "MergedLine",
    "RawLine",
    "SourceOrder",
    "SplitBucket",
    "SplitResult",
    "aggregate",
    "allocate_discount",
    "allocate_proportionally",
    "allocate_tax",
    "finalize",
    "prorate",
]
