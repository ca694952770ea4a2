"""Filtering and day grouping for the milestone list."""
from __future__ import annotations

from datetime import date, timedelta, tzinfo
from typing import Dict, List, Optional, Sequence, Tuple

from .models import Milestone, to_local, utcnow


def _matches(text: str, needle: str) -> bool:
    return needle in text.casefold()


def filter_milestones(milestones: Sequence[Milestone], query: str) -> List[Milestone]:
    """Keep milestones whose title or notes contain ``query``, ignoring case.

    An empty query returns every milestone in its original order.
    """
    if not query:
        return list(milestones)
    needle = query.casefold()
    return [m for m in milestones if _matches(m.title, needle) or _matches(m.notes, needle)]


def day_of(milestone: Milestone, tz: Optional[tzinfo] = None) -> date:
    return to_local(milestone.created_at, tz).date()


def group_by_day(
    milestones: Sequence[Milestone],
    tz: Optional[tzinfo] = None,
) -> List[Tuple[date, List[Milestone]]]:
    """Partition by the local calendar day of ``created_at``, newest day first.

    Within a day the input order is kept; callers pass milestones already
    sorted by ``created_at`` descending.
    """
    groups: Dict[date, List[Milestone]] = {}
    for milestone in milestones:
        groups.setdefault(day_of(milestone, tz), []).append(milestone)
    return sorted(groups.items(), key=lambda item: item[0], reverse=True)


def label_for_day(day: date, today: Optional[date] = None, tz: Optional[tzinfo] = None) -> str:
    """Name ``day`` relative to ``today``, which defaults to the current date in ``tz``."""
    today = today or to_local(utcnow(), tz).date()
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return day.strftime("%Y-%m-%d")


def build_sections(
    milestones: Sequence[Milestone],
    query: str = "",
    today: Optional[date] = None,
    tz: Optional[tzinfo] = None,
) -> List[Tuple[str, List[Milestone]]]:
    """Filter, group and label milestones in display order."""
    if today is None:
        today = to_local(utcnow(), tz).date()
    grouped = group_by_day(filter_milestones(milestones, query), tz)
    return [(label_for_day(day, today), items) for day, items in grouped]
