"""
Read-only attendance and leave-usage aggregates.

A user is Absent on a day iff one of their Approved leaves covers that day
(dates only, both ends inclusive).
"""
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import extract, func
from sqlalchemy.orm import Session, joinedload

from leavedesk.core.config import settings
from leavedesk.core.exceptions import ValidationError
from leavedesk.models.leave import Leave, LeaveStatus
from leavedesk.models.user import User, UserRole
from leavedesk.services.base import BaseService

PRESENT = "Present"
ABSENT = "Absent"

# Population visible to each role in company-wide views
HR_VISIBLE_ROLES = (UserRole.EMPLOYEE, UserRole.MANAGER, UserRole.HR)
ALL_ROLES = tuple(UserRole)


def paginate(items: Sequence, page: int, size: int) -> Dict[str, object]:
    total = len(items)
    start = (page - 1) * size
    return {
        "total": total,
        "page": page,
        "size": size,
        "total_pages": (total + size - 1) // size if size else 0,
        "items": list(items[start:start + size]),
    }


class AttendanceService(BaseService):

    def __init__(self, db: Session):
        super().__init__(db)

    # --- Populations ---

    def users_with_roles(self, roles: Iterable[UserRole]) -> List[User]:
        return self.db.query(User).filter(User.role.in_(list(roles))).order_by(User.id).all()

    def team_of(self, manager: User) -> List[User]:
        # Read-only inverse of manager_id
        return list(manager.reports)

    def population_for(self, viewer: User) -> List[User]:
        if viewer.role == UserRole.ADMIN:
            return self.users_with_roles(ALL_ROLES)
        if viewer.role == UserRole.HR:
            return self.users_with_roles(HR_VISIBLE_ROLES)
        if viewer.role == UserRole.MANAGER:
            return self.team_of(viewer)
        return [viewer]

    # --- Attendance ---

    def absent_user_ids(self, user_ids: List[int], on_date: date) -> set:
        if not user_ids:
            return set()
        rows = self.db.query(Leave.user_id).filter(
            Leave.user_id.in_(user_ids),
            Leave.status == LeaveStatus.APPROVED,
            Leave.start_date <= on_date,
            Leave.end_date >= on_date,
        ).distinct().all()
        return {row[0] for row in rows}

    def daily_attendance(self, population: List[User], on_date: date) -> List[Dict[str, object]]:
        absent = self.absent_user_ids([u.id for u in population], on_date)
        return [
            {
                "user_id": user.id,
                "name": user.name,
                "role": user.role.value,
                "status": ABSENT if user.id in absent else PRESENT,
            }
            for user in population
        ]

    # --- Summaries ---

    def leave_day_summary(
        self,
        roles: Iterable[UserRole],
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Dict[str, int]:
        """
        Approved leave days per owner role. With a range, only leaves that
        overlap it count and each is clipped to the range.
        """
        roles = list(roles)
        if date_from and date_to and date_from > date_to:
            raise ValidationError("date_from cannot be after date_to")

        summary = {role.value: 0 for role in roles}
        query = self.db.query(Leave).join(User, Leave.user_id == User.id).options(joinedload(Leave.user)).filter(
            Leave.status == LeaveStatus.APPROVED,
            Leave.start_date.isnot(None),
            Leave.end_date.isnot(None),
            User.role.in_(roles),
        )
        if date_from:
            query = query.filter(Leave.end_date >= date_from)
        if date_to:
            query = query.filter(Leave.start_date <= date_to)

        for leave in query.all():
            start = max(leave.start_date, date_from) if date_from else leave.start_date
            end = min(leave.end_date, date_to) if date_to else leave.end_date
            if date_from or date_to:
                days = (end - start).days + 1
            else:
                days = leave.duration if leave.duration is not None else (end - start).days + 1
            summary[leave.user.role.value] += days
        return summary

    def monthly_trends(self, roles: Iterable[UserRole], year: Optional[int] = None) -> List[Dict[str, object]]:
        """Approved leaves per month of ``start_date``, oldest month first."""
        year_col = extract("year", Leave.start_date)
        month_col = extract("month", Leave.start_date)
        query = self.db.query(
            year_col,
            month_col,
            func.count(Leave.id),
            func.coalesce(func.sum(Leave.duration), 0),
        ).join(User, Leave.user_id == User.id).filter(
            Leave.status == LeaveStatus.APPROVED,
            Leave.start_date.isnot(None),
            User.role.in_(list(roles)),
        )
        if year is not None:
            query = query.filter(year_col == year)

        rows = query.group_by(year_col, month_col).order_by(year_col, month_col).all()
        return [
            {
                "month": f"{int(y):04d}-{int(m):02d}",
                "leave_count": int(count),
                "leave_days": int(days),
            }
            for y, m, count, days in rows
        ]

    # --- Manager team views ---

    def team_leaves(self, manager: User, status: Optional[LeaveStatus] = None, page: int = 1, size: int = 10) -> Dict[str, object]:
        query = self.db.query(Leave).join(User, Leave.user_id == User.id).filter(User.manager_id == manager.id)
        if status is not None:
            query = query.filter(Leave.status == status)
        total = query.count()
        leaves = query.order_by(Leave.start_date.desc(), Leave.id.desc()).offset((page - 1) * size).limit(size).all()
        return {
            "total": total,
            "page": page,
            "size": size,
            "total_pages": (total + size - 1) // size,
            "items": leaves,
        }

    def team_attendance(self, manager: User, on_date: date, page: int = 1, size: int = 10) -> Dict[str, object]:
        return paginate(self.daily_attendance(self.team_of(manager), on_date), page, size)

    def latecomers(self, manager: User, on_date: Optional[date] = None) -> List[User]:
        cutoff = settings.leave.latecomer_hour
        late = []
        for user in self.team_of(manager):
            if not user.last_login:
                continue
            if on_date and user.last_login.date() != on_date:
                continue
            if user.last_login.hour >= cutoff:
                late.append(user)
        return late

    def manager_dashboard(self, manager: User, today: date) -> Dict[str, int]:
        team_ids = [u.id for u in self.team_of(manager)]
        if not team_ids:
            return {"total_leaves_pending": 0, "upcoming_leaves": 0, "latecomer_count": 0}

        pending = self.db.query(Leave).filter(
            Leave.user_id.in_(team_ids),
            Leave.status == LeaveStatus.PENDING,
        ).count()
        horizon = today + timedelta(days=settings.leave.upcoming_window_days)
        upcoming = self.db.query(Leave).filter(
            Leave.user_id.in_(team_ids),
            Leave.status == LeaveStatus.APPROVED,
            Leave.start_date >= today,
            Leave.start_date <= horizon,
        ).count()
        return {
            "total_leaves_pending": pending,
            "upcoming_leaves": upcoming,
            "latecomer_count": len(self.latecomers(manager, on_date=today)),
        }
