"""Tests for filtering, grouping and day labels."""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import List

import pytest

from milsto.engine import build_sections, filter_milestones, group_by_day, label_for_day
from milsto.models import Milestone, utcnow

from tests.conftest import make_milestone


class TestFilter:
    def test_empty_query_is_identity(self, three_days: List[Milestone]) -> None:
        assert filter_milestones(three_days, "") == three_days

    def test_case_insensitive_title(self, three_days: List[Milestone]) -> None:
        result = filter_milestones(three_days, "gym")
        assert [m.title for m in result] == ["Gym"]

    def test_matches_notes(self, three_days: List[Milestone]) -> None:
        result = filter_milestones(three_days, "PASSPORT")
        assert [m.title for m in result] == ["Leave for airport"]

    def test_preserves_input_order(self, three_days: List[Milestone]) -> None:
        result = filter_milestones(three_days, "e")
        assert result == [m for m in three_days if "e" in (m.title + m.notes).lower()]

    def test_no_match(self, three_days: List[Milestone]) -> None:
        assert filter_milestones(three_days, "zzz") == []

    def test_unicode_casefold(self, now: datetime) -> None:
        items = [make_milestone("Straße sperren", now)]
        assert filter_milestones(items, "STRASSE") == items


class TestGroup:
    def test_most_recent_day_first(self, three_days: List[Milestone], now: datetime) -> None:
        groups = group_by_day(three_days, tz=timezone.utc)
        today = now.date()
        assert [day for day, _ in groups] == [today, today - timedelta(days=1), today - timedelta(days=2)]

    def test_partition_is_exhaustive_and_disjoint(self, three_days: List[Milestone]) -> None:
        groups = group_by_day(three_days, tz=timezone.utc)
        flattened = [m.id for _, items in groups for m in items]
        assert sorted(flattened) == sorted(m.id for m in three_days)
        assert len(flattened) == len(set(flattened))
        for day, items in groups:
            assert all(m.created_at.astimezone(timezone.utc).date() == day for m in items)

    def test_keeps_order_within_day(self, three_days: List[Milestone]) -> None:
        groups = group_by_day(three_days, tz=timezone.utc)
        assert [m.title for m in groups[0][1]] == ["Leave for airport", "Project deadline"]
        assert [m.title for m in groups[2][1]] == ["Pay rent", "Weekend trip"]

    def test_uses_given_timezone(self, now: datetime) -> None:
        late = make_milestone("Late", datetime(2026, 3, 14, 23, 30, tzinfo=timezone.utc))
        plus_two = timezone(timedelta(hours=2))
        assert group_by_day([late], tz=plus_two)[0][0] == date(2026, 3, 15)

    def test_empty(self) -> None:
        assert group_by_day([]) == []

    def test_removed_day_disappears(self, three_days: List[Milestone]) -> None:
        remaining = [m for m in three_days if m.title != "Gym"]
        assert len(group_by_day(remaining, tz=timezone.utc)) == 2


class TestLabels:
    def test_today_and_yesterday(self) -> None:
        today = date(2026, 3, 14)
        assert label_for_day(today, today) == "Today"
        assert label_for_day(date(2026, 3, 13), today) == "Yesterday"

    def test_older_days_are_dated(self) -> None:
        assert label_for_day(date(2026, 3, 1), date(2026, 3, 14)) == "2026-03-01"

    def test_build_sections(self, three_days: List[Milestone], now: datetime) -> None:
        sections = build_sections(three_days, "", today=now.date(), tz=timezone.utc)
        assert [label for label, _ in sections] == ["Today", "Yesterday", "2026-03-12"]

    def test_build_sections_filters_first(self, three_days: List[Milestone], now: datetime) -> None:
        sections = build_sections(three_days, "trip", today=now.date(), tz=timezone.utc)
        assert [(label, [m.title for m in items]) for label, items in sections] == [("2026-03-12", ["Weekend trip"])]


@pytest.mark.usefixtures("berlin_tz")
class TestSystemZone:
    def test_winter_late_evening_stays_on_its_day(self) -> None:
        winter = make_milestone("Winter", datetime(2026, 1, 15, 22, 30, tzinfo=timezone.utc))
        assert group_by_day([winter])[0][0] == date(2026, 1, 15)

    def test_summer_after_midnight_moves_to_next_day(self) -> None:
        summer = make_milestone("Summer", datetime(2026, 7, 15, 22, 30, tzinfo=timezone.utc))
        assert group_by_day([summer])[0][0] == date(2026, 7, 16)

    def test_mixed_offsets_group_separately(self) -> None:
        items = [
            make_milestone("Summer", datetime(2026, 7, 15, 21, 30, tzinfo=timezone.utc)),
            make_milestone("Winter", datetime(2026, 1, 15, 22, 30, tzinfo=timezone.utc)),
        ]
        assert [day for day, _ in group_by_day(items)] == [date(2026, 7, 15), date(2026, 1, 15)]


class TestTodayFollowsZone:
    def test_label_uses_given_zone(self) -> None:
        far_east = timezone(timedelta(hours=14))
        today_there = utcnow().astimezone(far_east).date()
        assert label_for_day(today_there, tz=far_east) == "Today"
        assert label_for_day(today_there - timedelta(days=1), tz=far_east) == "Yesterday"

    def test_sections_judge_today_in_grouping_zone(self) -> None:
        far_west = timezone(timedelta(hours=-12))
        fresh = make_milestone("Fresh", utcnow())
        assert build_sections([fresh], tz=far_west)[0][0] == "Today"
