"""Tests for aggregation of time entries."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest  # type: ignore[import-not-found]

from time_ledger.analysis.aggregation import (
    UNKNOWN_PROJECT,
    UNKNOWN_TASK,
    GroupBy,
    aggregate,
    dashboard_totals,
    day_bounds,
    filter_entries,
    resolve_timezone,
    total_time_in_range,
    week_start_date,
)
from time_ledger.core.duration import total_seconds
from time_ledger.core.errors import InvalidRangeError
from time_ledger.core.models import Project, Task, TimeEntry

UTC = timezone.utc


def entry(task_id: str, start: datetime, seconds: int, user_id: str = "alice") -> TimeEntry:
    return TimeEntry(
        task_id=task_id,
        user_id=user_id,
        start_time=start,
        end_time=start + timedelta(seconds=seconds),
        duration=seconds,
    )


@pytest.fixture
def catalog() -> tuple[list[Project], list[Task]]:
    """Three projects; two of them hold a task titled "Review"."""
    projects = [
        Project(id="p1", name="Website", user_id="alice"),
        Project(id="p2", name="Mobile", user_id="alice"),
        Project(id="p3", name="Admin", user_id="alice"),
    ]
    tasks = [
        Task(id="t1", title="Review", project_id="p1", user_id="alice"),
        Task(id="t2", title="Review", project_id="p2", user_id="alice"),
        Task(id="t3", title="Invoices", project_id="p3", user_id="alice"),
    ]
    return projects, tasks


@pytest.fixture
def entries() -> list[TimeEntry]:
    day = datetime(2026, 1, 5, 9, 0, tzinfo=UTC)
    return [
        entry("t1", day, 1800),
        entry("t2", day + timedelta(hours=1), 3600),
        entry("t3", day + timedelta(days=1), 900),
        entry("t1", day + timedelta(days=8), 2700),
        entry("t2", day + timedelta(days=30), 600),
    ]


class TestGroupByEntity:
    """Test project and task buckets."""

    def test_project_totals_match_direct_sum(self, catalog, entries) -> None:
        """Test that project buckets partition the total."""
        projects, tasks = catalog

        rows = aggregate(entries, tasks, projects, GroupBy.PROJECT)

        assert sum(r.seconds for r in rows) == total_seconds(entries)
        assert {r.label: r.seconds for r in rows} == {
            "Website": 4500,
            "Mobile": 4200,
            "Admin": 900,
        }

    def test_colliding_task_titles_stay_separate(self, catalog, entries) -> None:
        """Test that two "Review" tasks in different projects keep their own totals."""
        projects, tasks = catalog

        rows = aggregate(entries, tasks, projects, "task")
        by_key = {r.key: r for r in rows}

        assert len(rows) == 3
        assert by_key["t1"].label == by_key["t2"].label == "Review"
        assert by_key["t1"].seconds == 4500
        assert by_key["t2"].seconds == 4200

    def test_first_seen_order_and_sorting(self, catalog, entries) -> None:
        projects, tasks = catalog

        unsorted = aggregate(entries, tasks, projects, GroupBy.PROJECT)
        ordered = aggregate(entries, tasks, projects, GroupBy.PROJECT, sort=True)

        assert [r.label for r in unsorted] == ["Website", "Mobile", "Admin"]
        assert [r.label for r in ordered] == ["Admin", "Mobile", "Website"]

    def test_hours_round_half_up(self, catalog) -> None:
        projects, tasks = catalog
        day = datetime(2026, 1, 5, tzinfo=UTC)

        rows = aggregate([entry("t1", day, 5400)], tasks, projects, GroupBy.PROJECT)

        assert rows[0].hours == 2
        assert rows[0].to_dict() == {"label": "Website", "hours": 2}

    def test_unresolved_references(self, catalog) -> None:
        """Test missing tasks and projects."""
        projects, tasks = catalog
        orphan_task = Task(id="t9", title="Orphan", project_id="gone", user_id="alice")
        day = datetime(2026, 1, 5, tzinfo=UTC)
        items = [entry("t9", day, 60), entry("missing", day, 120)]

        by_project = aggregate(items, tasks + [orphan_task], projects, GroupBy.PROJECT)
        by_task = aggregate(items, tasks + [orphan_task], projects, GroupBy.TASK)
        by_day = aggregate(items, tasks, projects, GroupBy.DAY)

        assert [(r.label, r.seconds) for r in by_project] == [(UNKNOWN_PROJECT, 60)]
        assert {r.label for r in by_task} == {"Orphan", UNKNOWN_TASK}
        assert by_day[0].seconds == 180

    def test_active_entries_contribute_nothing(self, catalog) -> None:
        projects, tasks = catalog
        running = TimeEntry(task_id="t1", user_id="alice", start_time=datetime.now(UTC))

        rows = aggregate([running], tasks, projects, GroupBy.PROJECT)

        assert rows[0].seconds == 0


class TestGroupByCalendar:
    """Test day, week and month buckets."""

    def test_days(self, catalog, entries) -> None:
        projects, tasks = catalog

        rows = aggregate(entries, tasks, projects, GroupBy.DAY)

        assert [(r.label, r.seconds) for r in rows] == [
            ("2026-01-05", 5400),
            ("2026-01-06", 900),
            ("2026-01-13", 2700),
            ("2026-02-04", 600),
        ]

    def test_weeks_start_monday_or_sunday(self, catalog) -> None:
        projects, tasks = catalog
        sunday = datetime(2026, 1, 11, 12, tzinfo=UTC)
        monday = datetime(2026, 1, 12, 12, tzinfo=UTC)
        items = [entry("t1", sunday, 60), entry("t1", monday, 120)]

        monday_weeks = aggregate(items, tasks, projects, GroupBy.WEEK)
        sunday_weeks = aggregate(items, tasks, projects, GroupBy.WEEK, week_start="sunday")

        assert [r.label for r in monday_weeks] == ["Week of 2026-01-05", "Week of 2026-01-12"]
        assert [(r.label, r.seconds) for r in sunday_weeks] == [("Week of 2026-01-11", 180)]

    def test_months_sorted_chronologically(self, catalog, entries) -> None:
        projects, tasks = catalog

        rows = aggregate(list(reversed(entries)), tasks, projects, GroupBy.MONTH, sort=True)

        assert [(r.key, r.seconds) for r in rows] == [("2026-01", 9000), ("2026-02", 600)]

    def test_timezone_moves_day_boundary(self, catalog) -> None:
        """Test that 23:30 UTC on Jan 5 is Jan 6 in Berlin."""
        projects, tasks = catalog
        late = datetime(2026, 1, 5, 23, 30, tzinfo=UTC)

        utc_rows = aggregate([entry("t1", late, 60)], tasks, projects, GroupBy.DAY)
        berlin_rows = aggregate(
            [entry("t1", late, 60)], tasks, projects, GroupBy.DAY, tz=ZoneInfo("Europe/Berlin")
        )

        assert utc_rows[0].label == "2026-01-05"
        assert berlin_rows[0].label == "2026-01-06"

    def test_naive_timestamps_read_as_utc(self, catalog) -> None:
        projects, tasks = catalog
        naive = TimeEntry(
            task_id="t1", user_id="alice", start_time=datetime(2026, 1, 5, 23, 30), duration=60
        )

        rows = aggregate([naive], tasks, projects, GroupBy.DAY)

        assert rows[0].label == "2026-01-05"


class TestFiltering:
    """Test caller-side helpers."""

    def test_filter_by_range_project_and_user(self, catalog, entries) -> None:
        _, tasks = catalog
        bob_entry = entry("t1", datetime(2026, 1, 5, 10, tzinfo=UTC), 60, user_id="bob")
        items = entries + [bob_entry]

        january = filter_entries(
            items,
            tasks,
            start=datetime(2026, 1, 5, tzinfo=UTC),
            end=datetime(2026, 1, 31, tzinfo=UTC),
        )
        website = filter_entries(items, tasks, project_id="p1")
        bobs = filter_entries(items, tasks, user_id="bob")

        assert len(january) == 5
        assert [e.task_id for e in website] == ["t1", "t1", "t1"]
        assert bobs == [bob_entry]

    def test_total_time_in_range(self, entries) -> None:
        start = datetime(2026, 1, 5, tzinfo=UTC)
        end = datetime(2026, 1, 6, 23, 59, tzinfo=UTC)

        assert total_time_in_range(entries, start, end) == 6300

    def test_day_bounds_cover_whole_days(self) -> None:
        start, end = day_bounds(date(2026, 1, 5), date(2026, 1, 6), ZoneInfo("Europe/Berlin"))

        assert start == datetime(2026, 1, 4, 23, 0, tzinfo=UTC)
        assert end == datetime(2026, 1, 6, 22, 59, 59, 999999, tzinfo=UTC)

    def test_day_bounds_open_ends(self) -> None:
        assert day_bounds(None, None) == (None, None)
        start, end = day_bounds(date(2026, 1, 5), None)
        assert start == datetime(2026, 1, 5, tzinfo=UTC)
        assert end is None

    def test_day_bounds_reversed(self) -> None:
        with pytest.raises(InvalidRangeError):
            day_bounds(date(2026, 1, 6), date(2026, 1, 5))


class TestDashboard:
    """Test today, week and month totals."""

    def test_totals(self, entries) -> None:
        now = datetime(2026, 1, 13, 18, tzinfo=UTC)

        totals = dashboard_totals(entries, now)

        assert totals.today == 2700
        assert totals.this_week == 2700
        assert totals.this_month == 5400 + 900 + 2700

    def test_future_entries_are_ignored(self, entries) -> None:
        now = datetime(2026, 1, 5, 12, tzinfo=UTC)

        totals = dashboard_totals(entries, now)

        assert totals.today == 5400
        assert totals.this_month == 5400


def test_week_start_date() -> None:
    assert week_start_date(date(2026, 1, 7)) == date(2026, 1, 5)
    assert week_start_date(date(2026, 1, 7), "sunday") == date(2026, 1, 4)
    with pytest.raises(ValueError):
        week_start_date(date(2026, 1, 7), "friday")


def test_resolve_timezone() -> None:
    assert resolve_timezone(None) is UTC
    assert resolve_timezone("utc") is UTC
    assert resolve_timezone("Europe/Berlin") == ZoneInfo("Europe/Berlin")
    assert resolve_timezone("local") is not None
