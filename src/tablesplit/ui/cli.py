"""Command line interface for previewing and committing order splits."""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv
import pydantic
from rich.console import Console
from rich.table import Table
import typer
import yaml

from tablesplit.adapters.db.facade import DB
from tablesplit.config import SplitConfig, load_split_config_from_env
from tablesplit.core.errors import SplitError
from tablesplit.core.finalize import SplitResult
from tablesplit.services.plan import apply_plan, load_split_plan
from tablesplit.services.split_session import SplitSession

# Load environment variables from .env
load_dotenv()

app = typer.Typer(
    help="tablesplit: split restaurant orders with exact money allocation.",
    no_args_is_help=True,
)

console = Console()


def _load_config() -> SplitConfig:
    try:
        return load_split_config_from_env()
    except ValueError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(1) from None


def _open_db(database_url: str | None) -> tuple[DB, SplitConfig]:
    config = _load_config()
    return DB(database_url or config.database_url), config


def _render_result(result: SplitResult) -> Table:
    table = Table(title=f"Split of order {result.original_order_id}")
    table.add_column("Order")
    table.add_column("Items", justify="right")
    for name in ("Subtotal", "Discount", "Tax", "Total"):
        table.add_column(name, justify="right")

    rows = [
        (bucket.name, sum(i.quantity for i in bucket.items), bucket.figures)
        for bucket in result.buckets
    ]
    rows.append(
        (
            "(remainder)",
            sum(i.quantity for i in result.remainder.items),
            result.remainder.figures,
        )
    )
    for name, units, figures in rows:
        table.add_row(
            name,
            str(units),
            f"{figures.subtotal:,}",
            f"{figures.discount:,}",
            f"{figures.tax:,}",
            f"{figures.total:,}",
        )
    return table


@app.command("init-db")
def init_db(
    database_url: str | None = typer.Option(None, help="Overrides the env URL"),
) -> None:
    """Create the order tables."""
    db, _ = _open_db(database_url)
    db.create_schema()
    typer.echo("Schema created.")


@app.command("show")
def show(
    order_id: int,
    database_url: str | None = typer.Option(None, help="Overrides the env URL"),
) -> None:
    """Show an order's merged lines and their allocated tax."""
    db, config = _open_db(database_url)
    try:
        session = SplitSession.open(db, order_id, config=config)
    except SplitError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1) from None

    order = session.source_order
    table = Table(title=f"Order {order.id}")
    table.add_column("Product", justify="right")
    table.add_column("Name")
    table.add_column("Qty", justify="right")
    table.add_column("Line total", justify="right")
    table.add_column("Discount", justify="right")
    table.add_column("Allocated tax", justify="right")
    for line in session.lines:
        table.add_row(
            str(line.product_id),
            line.product_name,
            str(line.total_quantity),
            f"{line.line_total:,}",
            f"{line.line_discount:,}",
            f"{line.allocated_tax:,}",
        )
    console.print(table)
    console.print(
        f"subtotal {order.subtotal:,}  discount {order.discount:,}  "
        f"tax {order.tax:,}  total {order.total:,}"
    )


@app.command("split")
def split(
    order_id: int,
    plan_path: Path = typer.Argument(..., help="YAML split plan"),  # noqa: B008
    apply: bool = typer.Option(
        False,
        "--apply",
        help="Commit the split. Default is a dry-run preview.",
    ),
    database_url: str | None = typer.Option(None, help="Overrides the env URL"),
) -> None:
    """Split an order according to a plan file."""
    db, config = _open_db(database_url)
    try:
        plan = load_split_plan(plan_path)
    except (OSError, yaml.YAMLError, pydantic.ValidationError) as e:
        typer.echo(f"Invalid plan {plan_path}: {e}", err=True)
        raise typer.Exit(1) from None

    try:
        session = SplitSession.open(db, order_id, config=config)
        apply_plan(session, plan)
        console.print(_render_result(session.preview()))
        if not apply:
            typer.echo("Dry run. Use --apply to commit.")
            return
        new_order_ids = session.commit()
    except SplitError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1) from None

    typer.echo(f"Created orders: {', '.join(str(i) for i in new_order_ids)}")


if __name__ == "__main__":
    app()
