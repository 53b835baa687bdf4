"""Dashboard statistics over complaints."""

from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta
from math import ceil
from typing import Any, Dict, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import func
from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from complaint_desk.entities import Complaint, ComplaintPriority, ComplaintStatus, User

RECENT_COMPLAINTS = 5
DESCRIPTION_PREVIEW = 100


@dataclass
class DashboardFilters:
    """
    Filters applied to the complaint statistics.

    Attributes:
        date_from: First creation day included
        date_to: Last creation day included
        status: Only complaints with this status
        priority: Only complaints with this priority
        months_back: Number of months in the monthly trend
    """

    date_from: Optional[date] = None
    date_to: Optional[date] = None
    status: Optional[ComplaintStatus] = None
    priority: Optional[ComplaintPriority] = None
    months_back: int = 6

    def __post_init__(self):
        if self.months_back < 1:
            raise ValueError("months_back must be >= 1")

    def conditions(self) -> List[Any]:
        conditions = []
        if self.date_from:
            conditions.append(Complaint.created_at >= datetime.combine(self.date_from, time.min))
        if self.date_to:
            end = datetime.combine(self.date_to + timedelta(days=1), time.min)
            conditions.append(Complaint.created_at < end)
        if self.status:
            conditions.append(Complaint.status == self.status)
        if self.priority:
            conditions.append(Complaint.priority == self.priority)
        return conditions


def _preview(description: Optional[str]) -> str:
    if not description:
        return "No description"
    if len(description) > DESCRIPTION_PREVIEW:
        return description[:DESCRIPTION_PREVIEW] + "..."
    return description


class DashboardService:
    def __init__(self, session: Session):
        self.session = session

    def _count(self, *conditions: Any) -> int:
        statement = select(func.count()).select_from(Complaint).where(*conditions)
        return self.session.exec(statement).one()

    def _grouped(self, column: Any, members: Any, conditions: List[Any]) -> Dict[str, int]:
        statement = (
            select(column, func.count()).select_from(Complaint).where(*conditions).group_by(column)
        )
        counts = {member.value: 0 for member in members}
        for value, count in self.session.exec(statement).all():
            counts[str(value)] = count
        return counts

    def monthly_stats(
        self, conditions: List[Any], months_back: int, today: date
    ) -> List[Dict[str, Any]]:
        """Complaints and resolved complaints per month, oldest month first."""
        current_month = today.replace(day=1)
        rows = []
        for offset in range(months_back - 1, -1, -1):
            start = current_month - relativedelta(months=offset)
            end = start + relativedelta(months=1)
            in_month = [
                *conditions,
                Complaint.created_at >= datetime.combine(start, time.min),
                Complaint.created_at < datetime.combine(end, time.min),
            ]
            rows.append(
                {
                    "month": start.strftime("%b %Y"),
                    "complaints": self._count(*in_month),
                    "resolved": self._count(*in_month, Complaint.status == ComplaintStatus.RESOLVED),
                }
            )
        return rows

    def recent_complaints(self, now: datetime) -> List[Dict[str, Any]]:
        statement = (
            select(Complaint)
            .options(selectinload(Complaint.evidences))
            .order_by(Complaint.created_at.desc(), Complaint.id.desc())
            .limit(RECENT_COMPLAINTS)
        )
        recent = []
        for complaint in self.session.exec(statement).all():
            age = now - complaint.created_at
            recent.append(
                {
                    "id": complaint.id,
                    "complaint_number": complaint.complaint_number,
                    "incident_title": complaint.incident_title,
                    "incident_description": _preview(complaint.incident_description),
                    "reporter": complaint.reporter or "Anonymous",
                    "reporter_type": complaint.reporter_identity_type,
                    "status": complaint.status,
                    "priority": complaint.priority,
                    "evidences_count": len(complaint.evidences),
                    "created_at": complaint.created_at,
                    "updated_at": complaint.updated_at,
                    "days_since_created": max(0, ceil(age.total_seconds() / 86400)),
                    "time_created": complaint.created_at.strftime("%H:%M:%S"),
                }
            )
        return recent

    def summary(
        self, filters: Optional[DashboardFilters] = None, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Build the dashboard payload.

        Args:
            filters: Complaint filters (recent complaints ignore them)
            now: Reference time (defaults to the current time)

        Returns:
            Dict[str, Any]: Totals, per-status and per-priority counts,
            monthly trend, recent complaints and the applied filters
        """
        filters = filters or DashboardFilters()
        now = now or datetime.now()
        conditions = filters.conditions()

        status_stats = self._grouped(Complaint.status, ComplaintStatus, conditions)
        total_users = self.session.exec(select(func.count()).select_from(User)).one()

        return {
            "stats": {
                "total_complaints": self._count(*conditions),
                "total_users": total_users,
                "pending_complaints": status_stats[ComplaintStatus.PENDING.value],
                "in_progress_complaints": status_stats[ComplaintStatus.IN_PROGRESS.value],
                "resolved_complaints": status_stats[ComplaintStatus.RESOLVED.value],
                "rejected_complaints": status_stats[ComplaintStatus.REJECTED.value],
            },
            "status_stats": status_stats,
            "priority_stats": self._grouped(Complaint.priority, ComplaintPriority, conditions),
            "monthly_stats": self.monthly_stats(conditions, filters.months_back, now.date()),
            "recent_complaints": self.recent_complaints(now),
            "filters": asdict(filters),
            "filter_options": {
                "statuses": [status.value for status in ComplaintStatus],
                "priorities": [priority.value for priority in ComplaintPriority],
            },
        }
