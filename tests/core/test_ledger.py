"""Tests for the bucket ledger."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from tablesplit.core.aggregator import aggregate
from tablesplit.core.allocator import allocate_tax
from tablesplit.core.errors import (
    BucketNotFoundError,
    DuplicateBucketError,
    InsufficientRemainingError,
    InvalidQuantityError,
    LastBucketError,
    ProductNotFoundError,
)
from tablesplit.core.ledger import BucketLedger, timestamp_label_factory
from tablesplit.core.logger import SplitLogger
from tests.core.fixtures import (
    create_ledger,
    create_raw_line,
    create_single_product_ledger,
    sequential_labels,
)


def create_discounted_ledger() -> BucketLedger:
    """Product 1 x3 at 100 with 10 discount, product 2 x2 at 50."""
    return create_ledger(
        [
            create_raw_line(1, 3, 100, discount=10),
            create_raw_line(2, 2, 50),
        ],
        order_tax=0,
    )


class TestLedgerSetup:
    def test_starts_with_one_empty_bucket(self) -> None:
        ledger, _ = create_single_product_ledger()

        assert len(ledger.buckets) == 1
        assert ledger.buckets[0].label == "ORD-1"
        assert ledger.buckets[0].table_id == 7
        assert ledger.is_empty
        assert ledger.remaining_units == 3
        assert ledger.moved_units == 0

    def test_timestamp_labels_use_prefix(self) -> None:
        label = timestamp_label_factory("SPLIT")()

        assert label.startswith("SPLIT-")
        assert label.removeprefix("SPLIT-").isdigit()


class TestMoveQuantity:
    """Tests for moving units into a bucket."""

    def test_moves_into_new_bucket_line(self) -> None:
        # Setup
        ledger, _ = create_single_product_ledger()
        line = ledger.line_for(1)

        # Act
        bucket_line = ledger.move_quantity(line, 0, 1)

        # Assert
        assert line.remaining_quantity == 2
        assert bucket_line.quantity == 1
        assert bucket_line.total == 100000
        assert bucket_line.discount == 0
        assert bucket_line.tax_rate == Decimal("10")
        assert ledger.buckets[0].lines == [bucket_line]

    def test_accepts_product_id(self) -> None:
        ledger, _ = create_single_product_ledger()

        ledger.move_quantity(1, 0, 2)

        assert ledger.line_for(1).remaining_quantity == 1

    def test_moving_all_remaining_units_succeeds(self) -> None:
        ledger, _ = create_single_product_ledger()

        ledger.move_quantity(1, 0, 3)

        assert ledger.line_for(1).remaining_quantity == 0
        assert ledger.remaining_lines() == []

    def test_prorates_discount(self) -> None:
        # Setup
        ledger = create_discounted_ledger()

        # Act
        bucket_line = ledger.move_quantity(1, 0, 2)

        # Assert - floor(10 * 2 / 3)
        assert bucket_line.discount == 6
        assert bucket_line.total == 200

    def test_merges_into_existing_bucket_line(self) -> None:
        # Setup
        ledger = create_discounted_ledger()
        ledger.move_quantity(1, 0, 1)

        # Act
        bucket_line = ledger.move_quantity(1, 0, 1)

        # Assert - discount accumulates floor(10 / 3) per move
        assert len(ledger.buckets[0].lines) == 1
        assert bucket_line.quantity == 2
        assert bucket_line.discount == 6
        assert bucket_line.total == 200

    def test_fractional_unit_price_is_floored(self) -> None:
        # Setup
        ledger = create_ledger(
            [create_raw_line(1, 3, "10.5", total="31.5")], order_tax=0
        )

        # Act
        bucket_line = ledger.move_quantity(1, 0, 3)

        # Assert
        assert bucket_line.total == 31

    def test_zero_quantity_is_rejected(self) -> None:
        ledger, _ = create_single_product_ledger()

        with pytest.raises(InvalidQuantityError):
            ledger.move_quantity(1, 0, 0)

        assert ledger.line_for(1).remaining_quantity == 3
        assert ledger.is_empty

    def test_negative_quantity_is_rejected(self) -> None:
        ledger, _ = create_single_product_ledger()

        with pytest.raises(InvalidQuantityError):
            ledger.move_quantity(1, 0, -1)

    def test_more_than_remaining_is_rejected(self) -> None:
        # Setup
        ledger, _ = create_single_product_ledger()
        ledger.move_quantity(1, 0, 2)

        # Act
        with pytest.raises(InsufficientRemainingError) as exc_info:
            ledger.move_quantity(1, 0, 2)

        # Assert
        assert exc_info.value.remaining == 1
        assert exc_info.value.requested == 2
        assert ledger.line_for(1).remaining_quantity == 1
        assert ledger.buckets[0].lines[0].quantity == 2

    def test_unknown_bucket_is_rejected_without_mutation(self) -> None:
        ledger, _ = create_single_product_ledger()

        with pytest.raises(BucketNotFoundError):
            ledger.move_quantity(1, 3, 1)

        assert ledger.line_for(1).remaining_quantity == 3

    def test_unknown_product_is_rejected(self) -> None:
        ledger, _ = create_single_product_ledger()

        with pytest.raises(ProductNotFoundError):
            ledger.move_quantity(99, 0, 1)

    def test_rejection_is_logged(self) -> None:
        # Setup
        lines = aggregate([create_raw_line(1, 1)])
        allocate_tax(lines, 0)
        mock_logger = MagicMock(spec=SplitLogger)
        ledger = BucketLedger(
            lines, label_factory=sequential_labels(), split_logger=mock_logger
        )

        # Act
        with pytest.raises(InvalidQuantityError):
            ledger.move_quantity(1, 0, 0)

        # Assert
        mock_logger.operation_rejected.assert_called_once()
        assert mock_logger.operation_rejected.call_args.args[0] == "move"
        mock_logger.quantity_moved.assert_not_called()

    def test_move_one(self) -> None:
        ledger, _ = create_single_product_ledger()

        bucket_line = ledger.move_one(1, 0)

        assert bucket_line.quantity == 1
        assert ledger.line_for(1).remaining_quantity == 2


class TestRemoveQuantity:
    """Tests for returning units from a bucket."""

    @pytest.mark.parametrize("quantity", [1, 2, 3])
    def test_move_then_remove_restores_state(self, quantity: int) -> None:
        # Setup
        ledger, _ = create_single_product_ledger()

        # Act
        ledger.move_quantity(1, 0, quantity)
        ledger.remove_quantity(0, 1, quantity)

        # Assert
        assert ledger.line_for(1).remaining_quantity == 3
        assert ledger.buckets[0].lines == []

    def test_move_two_remove_one_equals_moving_one(self) -> None:
        # Setup
        ledger, _ = create_single_product_ledger()
        direct, _ = create_single_product_ledger()

        # Act
        ledger.move_quantity(1, 0, 2)
        ledger.remove_quantity(0, 1, 1)
        direct.move_quantity(1, 0, 1)

        # Assert
        assert ledger.buckets[0].lines == direct.buckets[0].lines
        assert ledger.buckets[0].lines[0].quantity == 1
        assert ledger.buckets[0].lines[0].total == 100000
        assert ledger.line_for(1).remaining_quantity == 2

    def test_recomputes_discount_from_source_line(self) -> None:
        # Setup
        ledger = create_discounted_ledger()
        ledger.move_quantity(1, 0, 3)

        # Act
        ledger.remove_quantity(0, 1, 1)

        # Assert - floor(10 * 2 / 3)
        bucket_line = ledger.buckets[0].lines[0]
        assert bucket_line.quantity == 2
        assert bucket_line.discount == 6
        assert bucket_line.total == 200

    def test_remove_more_than_held_is_rejected(self) -> None:
        # Setup
        ledger, _ = create_single_product_ledger()
        ledger.move_quantity(1, 0, 1)

        # Act
        with pytest.raises(InvalidQuantityError):
            ledger.remove_quantity(0, 1, 2)

        # Assert
        assert ledger.line_for(1).remaining_quantity == 2
        assert ledger.buckets[0].lines[0].quantity == 1

    def test_remove_zero_is_rejected(self) -> None:
        ledger, _ = create_single_product_ledger()
        ledger.move_quantity(1, 0, 1)

        with pytest.raises(InvalidQuantityError):
            ledger.remove_quantity(0, 1, 0)

    def test_remove_product_not_in_bucket_is_rejected(self) -> None:
        ledger = create_discounted_ledger()
        ledger.move_quantity(1, 0, 1)

        with pytest.raises(InvalidQuantityError, match="holds none"):
            ledger.remove_quantity(0, 2, 1)

        assert ledger.line_for(2).remaining_quantity == 2
        assert [line.product_id for line in ledger.buckets[0].lines] == [1]

    def test_remove_from_empty_bucket_is_rejected_and_logged(self) -> None:
        # Setup
        lines = aggregate([create_raw_line(1, 2)])
        mock_logger = MagicMock(spec=SplitLogger)
        ledger = BucketLedger(
            lines, label_factory=sequential_labels(), split_logger=mock_logger
        )

        # Act
        with pytest.raises(InvalidQuantityError):
            ledger.remove_quantity(0, 1, 1)

        # Assert
        assert mock_logger.operation_rejected.call_args.args[0] == "remove"
        mock_logger.quantity_returned.assert_not_called()
        assert ledger.line_for(1).remaining_quantity == 2

    def test_remove_from_unknown_bucket_is_rejected(self) -> None:
        ledger, _ = create_single_product_ledger()

        with pytest.raises(BucketNotFoundError):
            ledger.remove_quantity(2, 1, 1)


class TestBuckets:
    """Tests for adding and removing buckets."""

    def test_add_bucket_generates_label(self) -> None:
        ledger, _ = create_single_product_ledger()

        bucket = ledger.add_bucket()

        assert bucket.label == "ORD-2"
        assert bucket.table_id == 7
        assert len(ledger.buckets) == 2

    def test_add_bucket_with_label(self) -> None:
        ledger, _ = create_single_product_ledger()

        bucket = ledger.add_bucket("Window seat")

        assert ledger.buckets[1] is bucket
        assert bucket.label == "Window seat"

    def test_duplicate_label_is_rejected(self) -> None:
        ledger, _ = create_single_product_ledger()

        with pytest.raises(DuplicateBucketError):
            ledger.add_bucket("ORD-1")

        assert len(ledger.buckets) == 1

    def test_generated_labels_stay_unique(self) -> None:
        # Setup - a factory that always returns the same label
        lines = aggregate([create_raw_line(1, 1)])
        ledger = BucketLedger(lines, label_factory=lambda: "ORD-X")

        # Act
        ledger.add_bucket()
        ledger.add_bucket()

        # Assert
        assert [b.label for b in ledger.buckets] == ["ORD-X", "ORD-X-2", "ORD-X-3"]

    def test_remove_bucket_returns_quantities(self) -> None:
        # Setup
        ledger = create_discounted_ledger()
        ledger.add_bucket()
        ledger.move_quantity(1, 1, 2)
        ledger.move_quantity(2, 1, 1)
        ledger.move_quantity(1, 0, 1)

        # Act
        ledger.remove_bucket(1)

        # Assert
        assert len(ledger.buckets) == 1
        assert ledger.line_for(1).remaining_quantity == 2
        assert ledger.line_for(2).remaining_quantity == 2
        assert ledger.buckets[0].lines[0].quantity == 1

    def test_last_bucket_cannot_be_removed(self) -> None:
        ledger, _ = create_single_product_ledger()
        ledger.move_quantity(1, 0, 1)

        with pytest.raises(LastBucketError):
            ledger.remove_bucket(0)

        assert len(ledger.buckets) == 1
        assert ledger.line_for(1).remaining_quantity == 2

    def test_remove_unknown_bucket_is_rejected(self) -> None:
        ledger, _ = create_single_product_ledger()
        ledger.add_bucket()

        with pytest.raises(BucketNotFoundError):
            ledger.remove_bucket(5)
