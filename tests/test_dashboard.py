"""Tests for dashboard statistics."""

from datetime import date, datetime

import pytest

from complaint_desk.dashboard import DashboardFilters, DashboardService, _preview
from complaint_desk.entities import ComplaintPriority, ComplaintStatus

NOW = datetime(2025, 7, 16, 12, 0)


@pytest.fixture
def seeded(make_complaint):
    return [
        make_complaint(created_at=datetime(2025, 2, 10), status=ComplaintStatus.RESOLVED),
        make_complaint(created_at=datetime(2025, 5, 3), priority=ComplaintPriority.HIGH),
        make_complaint(
            created_at=datetime(2025, 7, 1),
            status=ComplaintStatus.RESOLVED,
            priority=ComplaintPriority.HIGH,
        ),
        make_complaint(created_at=datetime(2025, 7, 15, 23, 59), evidences=["image/png"]),
    ]


def test_preview():
    assert _preview(None) == "No description"
    assert _preview("short") == "short"
    assert _preview("x" * 150) == "x" * 100 + "..."


def test_months_back_must_be_positive():
    with pytest.raises(ValueError, match="months_back"):
        DashboardFilters(months_back=0)


class TestSummary:
    def test_totals(self, session, seeded):
        summary = DashboardService(session).summary(now=NOW)

        assert summary["stats"] == {
            "total_complaints": 4,
            "total_users": 0,
            "pending_complaints": 2,
            "in_progress_complaints": 0,
            "resolved_complaints": 2,
            "rejected_complaints": 0,
        }
        assert summary["status_stats"] == {
            "pending": 2,
            "in_progress": 0,
            "resolved": 2,
            "rejected": 0,
        }
        assert summary["priority_stats"] == {"low": 0, "medium": 2, "high": 2}

    def test_monthly_trend_oldest_first(self, session, seeded):
        summary = DashboardService(session).summary(now=NOW)
        monthly = summary["monthly_stats"]

        assert [row["month"] for row in monthly] == [
            "Feb 2025",
            "Mar 2025",
            "Apr 2025",
            "May 2025",
            "Jun 2025",
            "Jul 2025",
        ]
        assert [row["complaints"] for row in monthly] == [1, 0, 0, 1, 0, 2]
        assert [row["resolved"] for row in monthly] == [1, 0, 0, 0, 0, 1]

    def test_months_back(self, session, seeded):
        summary = DashboardService(session).summary(DashboardFilters(months_back=2), now=NOW)
        assert [row["month"] for row in summary["monthly_stats"]] == ["Jun 2025", "Jul 2025"]

    def test_date_range_includes_whole_last_day(self, session, seeded):
        filters = DashboardFilters(date_from=date(2025, 7, 1), date_to=date(2025, 7, 15))
        summary = DashboardService(session).summary(filters, now=NOW)
        assert summary["stats"]["total_complaints"] == 2

    def test_status_and_priority_filters(self, session, seeded):
        filters = DashboardFilters(
            status=ComplaintStatus.RESOLVED, priority=ComplaintPriority.HIGH
        )
        summary = DashboardService(session).summary(filters, now=NOW)
        assert summary["stats"]["total_complaints"] == 1
        assert summary["filters"]["status"] == ComplaintStatus.RESOLVED

    def test_recent_complaints_newest_first(self, session, seeded):
        recent = DashboardService(session).summary(now=NOW)["recent_complaints"]

        assert [item["id"] for item in recent] == [c.id for c in reversed(seeded)]
        newest = recent[0]
        assert newest["evidences_count"] == 1
        assert newest["days_since_created"] == 1
        assert newest["time_created"] == "23:59:00"
        assert newest["reporter"] == "Budi Santoso"

    def test_recent_complaints_anonymous_and_limited(self, session, make_complaint):
        for _ in range(7):
            make_complaint(reporter=None, created_at=datetime(2025, 7, 1))
        recent = DashboardService(session).summary(now=NOW)["recent_complaints"]
        assert len(recent) == 5
        assert {item["reporter"] for item in recent} == {"Anonymous"}

    def test_filter_options(self, session):
        summary = DashboardService(session).summary(now=NOW)
        assert summary["filter_options"]["statuses"] == [
            "pending",
            "in_progress",
            "resolved",
            "rejected",
        ]
        assert summary["filter_options"]["priorities"] == ["low", "medium", "high"]
