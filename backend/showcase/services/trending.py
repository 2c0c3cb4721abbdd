"""
Trending Score

Ranks projects by a blend of this month's views and how recently they were
created:

    score = monthly_views * 0.7 + recency_bonus
    recency_bonus = (created_at - now + 30 days) / 1 day * 3

The bonus shrinks linearly to zero over the first 30 days and keeps going
negative after that, so stale projects need real traffic to stay on top.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, TypeVar

from sqlalchemy import select

from showcase.models import ProjectView

T = TypeVar("T")

MONTHLY_VIEWS_WEIGHT = 0.7
RECENCY_WINDOW = timedelta(days=30)
RECENCY_POINTS_PER_DAY = 3.0


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def trending_score(created_at: datetime, monthly_views: int, now: datetime | None = None) -> float:
    now = _as_utc(now or datetime.now(timezone.utc))
    created_at = _as_utc(created_at)
    recency_days = (created_at - now + RECENCY_WINDOW).total_seconds() / 86400
    return (monthly_views or 0) * MONTHLY_VIEWS_WEIGHT + recency_days * RECENCY_POINTS_PER_DAY


def rank_trending(
    items: Iterable[T],
    monthly_views: dict[int, int],
    *,
    id_of: Callable[[T], int],
    created_of: Callable[[T], datetime],
    now: datetime | None = None,
) -> list[T]:
    """Sort descending by trending score.

    ``sorted`` is stable, so equal scores keep the incoming order.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    return sorted(
        items,
        key=lambda item: trending_score(created_of(item), monthly_views.get(id_of(item), 0), now),
        reverse=True,
    )


def monthly_views_subquery(now: datetime):
    """Views recorded for the calendar month of ``now``, one row per project.

    Meant to be outer-joined against the candidate projects so only their
    rows are read.
    """
    return (
        select(ProjectView.project_id, ProjectView.views_count)
        .where(ProjectView.month == now.month, ProjectView.year == now.year)
        .subquery()
    )
