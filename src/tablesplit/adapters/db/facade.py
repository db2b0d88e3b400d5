"""SQLAlchemy-backed order store."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from loguru import logger
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker

from tablesplit.adapters.db.models import Base, Order, OrderItem
from tablesplit.core.entities import RawLine, SourceOrder, to_money


def _to_source_order(order: Order) -> SourceOrder:
    return SourceOrder(
        id=order.order_id,
        subtotal=order.subtotal,
        tax=order.tax,
        discount=order.discount,
        total=order.total,
        price_includes_tax=order.price_include_tax,
        table_id=order.table_id,
        customer_count=order.customer_count,
        customer_name=order.customer_name,
    )


def _to_raw_line(item: OrderItem) -> RawLine:
    return RawLine(
        product_id=item.product_id,
        product_name=item.product_name,
        quantity=item.quantity,
        unit_price=item.unit_price,
        total=item.total,
        discount=item.discount,
        tax_rate=item.tax_rate,
    )


def _build_item(data: Mapping[str, Any]) -> OrderItem:
    """Create an OrderItem from a split request item or a RawLine-like dict."""
    return OrderItem(
        product_id=data["product_id"],
        product_name=data.get("product_name") or "",
        quantity=data["quantity"],
        unit_price=str(data["unit_price"]),
        total=to_money(data.get("total")),
        discount=to_money(data.get("discount")),
        tax=to_money(data.get("tax")),
        tax_rate=str(data.get("tax_rate") or "0"),
        price_before_tax=(
            to_money(data["price_before_tax"])
            if data.get("price_before_tax") is not None
            else None
        ),
    )


class DB:
    """Order store backed by SQLAlchemy."""

    def __init__(self, url: str) -> None:
        """Initialize database connection.

        Args:
            url: Database URL (e.g., "sqlite:///tablesplit.db")
        """
        self._url = url
        self._engine = create_engine(url, echo=False)
        self._session_factory = sessionmaker(bind=self._engine, class_=Session)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Context manager for database sessions."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_schema(self) -> None:
        """Create all tables if they do not exist."""
        Base.metadata.create_all(self._engine)

    def add_order(
        self,
        *,
        order_number: str,
        items: Iterable[Mapping[str, Any]],
        subtotal: int,
        tax: int,
        discount: int,
        total: int,
        price_include_tax: bool = False,
        table_id: int | None = None,
        customer_name: str | None = None,
        customer_count: int | None = None,
    ) -> int:
        """Insert an order with its items and return the new order id."""
        with self.session() as session:  # type: Session
            order = Order(
                order_number=order_number,
                table_id=table_id,
                customer_name=customer_name,
                customer_count=customer_count,
                subtotal=subtotal,
                tax=tax,
                discount=discount,
                total=total,
                price_include_tax=price_include_tax,
            )
            order.items = [_build_item(item) for item in items]
            session.add(order)
            session.flush()
            return order.order_id

    def get_order(self, order_id: int) -> SourceOrder | None:
        """Fetch an order snapshot by id."""
        with self.session() as session:  # type: Session
            order = session.get(Order, order_id)
            return _to_source_order(order) if order is not None else None

    def get_order_items(self, order_id: int) -> list[RawLine]:
        """Fetch an order's line items in insertion order."""
        with self.session() as session:  # type: Session
            rows = session.scalars(
                select(OrderItem)
                .where(OrderItem.order_id == order_id)
                .order_by(OrderItem.order_item_id)
            ).all()
            return [_to_raw_line(row) for row in rows]

    def list_child_orders(self, order_id: int) -> list[SourceOrder]:
        """List orders created by splitting ``order_id``."""
        with self.session() as session:  # type: Session
            rows = session.scalars(
                select(Order)
                .where(Order.parent_order_id == order_id)
                .order_by(Order.order_id)
            ).all()
            return [_to_source_order(row) for row in rows]

    def commit_split(self, request: dict[str, Any]) -> list[int]:
        """Apply a split request in a single transaction.

        Args:
            request: Output of ``SplitResult.to_request()``

        Returns:
            Ids of the created orders, in request order

        Raises:
            LookupError: the original order does not exist (nothing written)
        """
        original_id = request["original_order_id"]
        with self.session() as session:  # type: Session
            original = session.get(Order, original_id)
            if original is None:
                raise LookupError(f"Order {original_id} not found")

            new_orders: list[Order] = []
            for payload in request["split_items"]:
                order = Order(
                    order_number=payload["name"],
                    table_id=payload.get("table_id"),
                    customer_name=payload.get("customer_name"),
                    customer_count=payload.get("customer_count"),
                    subtotal=payload["subtotal"],
                    tax=payload["tax"],
                    discount=payload["discount"],
                    total=payload["total"],
                    price_include_tax=payload["price_include_tax"],
                    parent_order_id=original_id,
                )
                order.items = [_build_item(item) for item in payload["items"]]
                session.add(order)
                new_orders.append(order)

            update = request["original_order_update"]
            original.subtotal = update["subtotal"]
            original.tax = update["tax"]
            original.discount = update["discount"]
            original.total = update["total"]
            original.items = [
                _build_item(item) for item in request["remaining_items"]
            ]

            session.flush()
            new_ids = [order.order_id for order in new_orders]

        logger.bind(order_id=original_id, new_order_ids=new_ids).debug(
            "Persisted split of order {} into {}", original_id, new_ids
        )
        return new_ids
