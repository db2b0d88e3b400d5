"""YAML split plans: a scripted sequence of bucket moves."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field
import yaml

from tablesplit.services.split_session import SplitSession


class PlanItem(BaseModel):
    """Units of one product to move into a bucket."""

    product_id: int
    quantity: int = Field(gt=0)


class PlanBucket(BaseModel):
    """One destination order in a plan."""

    label: str | None = None
    items: list[PlanItem] = Field(default_factory=list)


class SplitPlan(BaseModel):
    """Buckets to build, in order."""

    buckets: list[PlanBucket] = Field(min_length=1)


def load_split_plan(path: Path) -> SplitPlan:
    """Read and validate a plan file.

    Raises:
        yaml.YAMLError: the file is not valid YAML
        pydantic.ValidationError: the file does not describe a valid plan
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return SplitPlan.model_validate(data)


def apply_plan(session: SplitSession, plan: SplitPlan) -> None:
    """Perform the plan's moves on a session.

    The first plan bucket fills the session's default bucket; when the
    plan names it, a bucket with that label replaces the default one.
    Further plan buckets are appended.
    """
    for index, plan_bucket in enumerate(plan.buckets):
        bucket_index = 0
        if index > 0:
            session.add_bucket(plan_bucket.label)
            bucket_index = len(session.buckets) - 1
        elif plan_bucket.label is not None and session.buckets[0].is_empty:
            session.add_bucket(plan_bucket.label)
            session.remove_bucket(0)
            bucket_index = len(session.buckets) - 1
        for item in plan_bucket.items:
            session.move(item.product_id, bucket_index, item.quantity)
