"""Split engine configuration loaded from environment variables."""

from __future__ import annotations

from dataclasses import dataclass
import os

from tablesplit.core.finalize import DEFAULT_CUSTOMER_NAME

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True, slots=True)
class SplitConfig:
    """Split engine configuration loaded at process startup."""

    database_url: str = "sqlite:///tablesplit.db"
    bucket_prefix: str = "ORD"
    default_customer_name: str = DEFAULT_CUSTOMER_NAME
    spread_order_discount: bool = False


def _parse_bool(name: str, default: str) -> bool:
    value = os.environ.get(name, default).strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {value!r}")


def load_split_config_from_env() -> SplitConfig:
    """Load split config from env and validate it."""
    database_url = os.environ.get(
        "TABLESPLIT_DATABASE_URL", "sqlite:///tablesplit.db"
    ).strip()
    if not database_url:
        raise ValueError("TABLESPLIT_DATABASE_URL must not be empty")

    bucket_prefix = os.environ.get("TABLESPLIT_BUCKET_PREFIX", "ORD").strip()
    if not bucket_prefix or any(c.isspace() for c in bucket_prefix):
        raise ValueError(
            "TABLESPLIT_BUCKET_PREFIX must be a non-empty string without spaces"
        )

    default_customer_name = os.environ.get(
        "TABLESPLIT_DEFAULT_CUSTOMER_NAME", DEFAULT_CUSTOMER_NAME
    ).strip()
    if not default_customer_name:
        raise ValueError("TABLESPLIT_DEFAULT_CUSTOMER_NAME must not be empty")

    return SplitConfig(
        database_url=database_url,
        bucket_prefix=bucket_prefix,
        default_customer_name=default_customer_name,
        spread_order_discount=_parse_bool("TABLESPLIT_SPREAD_ORDER_DISCOUNT", "false"),
    )
