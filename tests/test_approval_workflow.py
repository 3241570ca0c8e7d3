from datetime import date
from unittest.mock import MagicMock

import pytest
from fastapi import status
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from leavedesk.database import Base
from leavedesk.models.leave import Leave, LeaveStatus, LeaveType
from leavedesk.models.notification import Notification, NotificationType
from leavedesk.models.user import User, UserRole
from leavedesk.services.approval import ApprovalService
from leavedesk.services.notification import NotificationDispatcher


def _decide(comment="Looks fine", decision="Approved"):
    return {"status": decision, "comment": comment}


# --- Manager ---

def test_manager_approves_team_leave(client, manager_user, employee_user, auth_headers, make_leave,
                                     db_session, notifications):
    leave = make_leave(employee_user)
    response = client.patch(
        f"/api/manager/{manager_user.id}/leave/{leave.id}/approve",
        json=_decide(),
        headers=auth_headers(manager_user),
    )
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["message"] == "Leave approved by Manager"
    assert body["leave"]["status"] == "Approved"
    assert body["leave"]["manager_comment"] == "Looks fine"

    db_session.refresh(manager_user)
    assert manager_user.last_leave_approved_at is not None
    assert manager_user.last_leave_rejected_at is None

    assert len(notifications.sent) == 1
    assert notifications.sent[0]["user_id"] == employee_user.id
    assert notifications.sent[0]["title"] == "Leave Approved"
    assert notifications.sent[0]["type"] == NotificationType.SUCCESS
    assert notifications.sent[0]["leave_id"] == leave.id


def test_manager_rejection_stamps_rejected_at(client, manager_user, employee_user, auth_headers, make_leave,
                                              db_session):
    leave = make_leave(employee_user)
    response = client.patch(
        f"/api/manager/{manager_user.id}/leave/{leave.id}/approve",
        json=_decide(decision="Rejected", comment="Team is short that week"),
        headers=auth_headers(manager_user),
    )
    assert response.json()["leave"]["status"] == "Rejected"
    db_session.refresh(manager_user)
    assert manager_user.last_leave_rejected_at is not None
    assert manager_user.last_leave_approved_at is None


def test_manager_cannot_act_outside_team(client, manager_user, make_user, auth_headers, make_leave, db_session):
    stranger = make_user(UserRole.EMPLOYEE)
    leave = make_leave(stranger)
    response = client.patch(
        f"/api/manager/{manager_user.id}/leave/{leave.id}/approve",
        json=_decide(),
        headers=auth_headers(manager_user),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
    db_session.refresh(leave)
    assert leave.status == LeaveStatus.PENDING


def test_manager_cannot_use_another_managers_path(client, manager_user, employee_user, make_user, auth_headers,
                                                  make_leave):
    other_manager = make_user(UserRole.MANAGER)
    leave = make_leave(employee_user)
    response = client.patch(
        f"/api/manager/{manager_user.id}/leave/{leave.id}/approve",
        json=_decide(),
        headers=auth_headers(other_manager),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_manager_cannot_decide_escalated_leave(client, manager_user, employee_user, auth_headers, make_leave):
    leave = make_leave(employee_user, status=LeaveStatus.PENDING_ADMIN_APPROVAL)
    response = client.patch(
        f"/api/manager/{manager_user.id}/leave/{leave.id}/approve",
        json=_decide(),
        headers=auth_headers(manager_user),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_decision_on_terminal_leave_conflicts(client, manager_user, employee_user, auth_headers, make_leave,
                                              notifications):
    leave = make_leave(employee_user, status=LeaveStatus.APPROVED)
    response = client.patch(
        f"/api/manager/{manager_user.id}/leave/{leave.id}/approve",
        json=_decide(),
        headers=auth_headers(manager_user),
    )
    assert response.status_code == status.HTTP_409_CONFLICT
    assert notifications.sent == []


def test_invalid_target_status(client, manager_user, employee_user, auth_headers, make_leave):
    leave = make_leave(employee_user)
    response = client.patch(
        f"/api/manager/{manager_user.id}/leave/{leave.id}/approve",
        json=_decide(decision="Pending"),
        headers=auth_headers(manager_user),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "INVALID_STATUS"


def test_blank_comment_is_rejected(client, manager_user, employee_user, auth_headers, make_leave, db_session):
    leave = make_leave(employee_user)
    response = client.patch(
        f"/api/manager/{manager_user.id}/leave/{leave.id}/approve",
        json=_decide(comment="   "),
        headers=auth_headers(manager_user),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    db_session.refresh(leave)
    assert leave.status == LeaveStatus.PENDING


def test_decision_on_missing_leave(client, manager_user, auth_headers):
    response = client.patch(
        f"/api/manager/{manager_user.id}/leave/4242/approve",
        json=_decide(),
        headers=auth_headers(manager_user),
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_employee_cannot_reach_manager_routes(client, manager_user, employee_user, auth_headers, make_leave):
    leave = make_leave(employee_user)
    response = client.patch(
        f"/api/manager/{employee_user.id}/leave/{leave.id}/approve",
        json=_decide(),
        headers=auth_headers(employee_user),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


# --- HR ---

def test_hr_approves_manager_leave(client, hr_user, manager_user, auth_headers, make_leave):
    leave = make_leave(manager_user, status=LeaveStatus.PENDING_HR_APPROVAL)
    response = client.patch(
        f"/api/hr/leave/{leave.id}/decision", json=_decide(comment="Covered"), headers=auth_headers(hr_user)
    )
    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["message"] == "Leave approved by HR"
    assert body["leave"]["status"] == "Approved"
    assert body["leave"]["hr_comment"] == "Covered"


def test_hr_admin_chain(client, hr_user, admin_user, manager_user, auth_headers, make_leave):
    """A long manager leave needs HR first, then Admin."""
    leave = make_leave(manager_user, start_date=date(2025, 7, 7), end_date=date(2025, 7, 11),
                       status=LeaveStatus.PENDING_HR_ADMIN_APPROVAL)

    response = client.patch(f"/api/hr/leave/{leave.id}/decision", json=_decide(), headers=auth_headers(hr_user))
    assert response.json()["leave"]["status"] == "PendingAdminApproval"

    # HR has already acted on this link of the chain
    again = client.patch(f"/api/hr/leave/{leave.id}/decision", json=_decide(), headers=auth_headers(hr_user))
    assert again.status_code == status.HTTP_403_FORBIDDEN

    final = client.patch(f"/api/admin/leaves/{leave.id}/approve", json=_decide(), headers=auth_headers(admin_user))
    assert final.status_code == status.HTTP_200_OK
    assert final.json()["leave"]["status"] == "Approved"


def test_hr_cannot_decide_hr_owned_leave(client, hr_user, make_user, auth_headers, make_leave):
    colleague = make_user(UserRole.HR)
    leave = make_leave(colleague, status=LeaveStatus.PENDING_ADMIN_APPROVAL)
    response = client.patch(f"/api/hr/leave/{leave.id}/decision", json=_decide(), headers=auth_headers(hr_user))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_hr_cannot_decide_manager_queue(client, hr_user, employee_user, auth_headers, make_leave):
    leave = make_leave(employee_user, status=LeaveStatus.PENDING)
    response = client.patch(f"/api/hr/leave/{leave.id}/decision", json=_decide(), headers=auth_headers(hr_user))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_hr_pending_queue(client, hr_user, manager_user, employee_user, admin_user, auth_headers, make_leave):
    waiting = make_leave(manager_user, status=LeaveStatus.PENDING_HR_APPROVAL)
    make_leave(employee_user, status=LeaveStatus.PENDING)
    make_leave(admin_user, status=LeaveStatus.PENDING)

    pending = client.get("/api/hr/leaves/pending", headers=auth_headers(hr_user)).json()
    assert [leave["id"] for leave in pending] == [waiting.id]

    visible = client.get("/api/hr/leaves", headers=auth_headers(hr_user)).json()
    assert admin_user.id not in {leave["user_id"] for leave in visible}
    assert len(visible) == 2


# --- Admin ---

def test_admin_decides_hr_leave(client, admin_user, hr_user, auth_headers, make_leave):
    leave = make_leave(hr_user, status=LeaveStatus.PENDING_ADMIN_APPROVAL)
    response = client.patch(
        f"/api/admin/leaves/{leave.id}/approve",
        json=_decide(decision="Rejected", comment="Quarter close"),
        headers=auth_headers(admin_user),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == "Leave status updated by Admin"
    assert response.json()["leave"]["status"] == "Rejected"

    hr_leaves = client.get("/api/admin/leaves/hr", headers=auth_headers(admin_user)).json()
    assert [item["id"] for item in hr_leaves] == [leave.id]


def test_admin_decides_long_employee_leave(client, admin_user, employee_user, auth_headers, make_leave):
    leave = make_leave(employee_user, start_date=date(2025, 6, 2), end_date=date(2025, 6, 7))
    response = client.patch(f"/api/admin/leaves/{leave.id}/approve", json=_decide(), headers=auth_headers(admin_user))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["leave"]["status"] == "Approved"


def test_admin_defers_short_leave_to_manager(client, admin_user, employee_user, auth_headers, make_leave):
    leave = make_leave(employee_user, start_date=date(2025, 6, 2), end_date=date(2025, 6, 6))
    response = client.patch(f"/api/admin/leaves/{leave.id}/approve", json=_decide(), headers=auth_headers(admin_user))
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["message"] == "Leave approval below threshold should be handled by Manager"


def test_non_admin_cannot_use_admin_decision(client, hr_user, employee_user, auth_headers, make_leave):
    leave = make_leave(employee_user, status=LeaveStatus.PENDING_ADMIN_APPROVAL)
    response = client.patch(f"/api/admin/leaves/{leave.id}/approve", json=_decide(), headers=auth_headers(hr_user))
    assert response.status_code == status.HTTP_403_FORBIDDEN


# --- Notifications ---

def test_dispatcher_persists_notification(db_session, employee_user, make_leave):
    leave = make_leave(employee_user, status=LeaveStatus.APPROVED)
    dispatcher = NotificationDispatcher(session_factory=sessionmaker(bind=db_session.get_bind()))
    dispatcher.dispatch(employee_user.id, "Leave Approved", "Enjoy the break", "success", leave_id=leave.id)

    saved = db_session.query(Notification).filter(Notification.user_id == employee_user.id).all()
    assert len(saved) == 1
    assert saved[0].title == "Leave Approved"
    assert saved[0].type == NotificationType.SUCCESS
    assert saved[0].leave_id == leave.id
    assert saved[0].is_read is False


def test_cancelled_leave_keeps_its_notices(client, employee_user, auth_headers, make_leave, db_session):
    leave = make_leave(employee_user)
    db_session.add(Notification(user_id=employee_user.id, leave_id=leave.id, title="Leave Update", message="Queued"))
    db_session.commit()

    response = client.delete(f"/api/employee/leave/{leave.id}", headers=auth_headers(employee_user))
    assert response.status_code == status.HTTP_200_OK

    notice = db_session.query(Notification).filter(Notification.user_id == employee_user.id).one()
    assert notice.leave_id is None
    assert notice.type == NotificationType.INFO


def test_dispatcher_failure_is_swallowed():
    broken_session = MagicMock()
    broken_session.add.side_effect = RuntimeError("channel down")
    dispatcher = NotificationDispatcher(session_factory=lambda: broken_session)

    dispatcher.dispatch(1, "Leave Approved", "message")

    broken_session.rollback.assert_called_once()
    broken_session.close.assert_called_once()


def test_failing_notification_does_not_change_result(client, manager_user, employee_user, auth_headers, make_leave,
                                                     db_session):
    from leavedesk.main import app
    from leavedesk.services.notification import get_notification_dispatcher

    broken_session = MagicMock()
    broken_session.commit.side_effect = RuntimeError("channel down")
    app.dependency_overrides[get_notification_dispatcher] = lambda: NotificationDispatcher(
        session_factory=lambda: broken_session
    )

    leave = make_leave(employee_user)
    response = client.patch(
        f"/api/manager/{manager_user.id}/leave/{leave.id}/approve",
        json=_decide(),
        headers=auth_headers(manager_user),
    )
    assert response.status_code == status.HTTP_200_OK
    db_session.refresh(leave)
    assert leave.status == LeaveStatus.APPROVED


@pytest.fixture
def isolated_session():
    """A session on its own engine, free to roll back without touching the shared fixtures."""
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()
    engine.dispose()


def test_failed_commit_keeps_leave_and_audit_stamp_unchanged(isolated_session):
    manager = User(name="Team Manager", email="manager@example.com", hashed_password="x", role=UserRole.MANAGER)
    isolated_session.add(manager)
    isolated_session.commit()
    employee = User(name="Team Employee", email="employee@example.com", hashed_password="x",
                    role=UserRole.EMPLOYEE, manager_id=manager.id)
    isolated_session.add(employee)
    isolated_session.commit()
    leave = Leave(user_id=employee.id, type=LeaveType.CASUAL, start_date=date(2025, 6, 2),
                  end_date=date(2025, 6, 2), duration=1, status=LeaveStatus.PENDING)
    isolated_session.add(leave)
    isolated_session.commit()
    leave_id, manager_id = leave.id, manager.id

    def fail_flush(session, flush_context):
        raise RuntimeError("disk full")

    event.listen(isolated_session, "after_flush", fail_flush)
    try:
        with pytest.raises(RuntimeError):
            ApprovalService(isolated_session).decide_as_manager(manager, leave_id, "Approved", "Looks fine")
    finally:
        event.remove(isolated_session, "after_flush", fail_flush)

    isolated_session.expire_all()
    stored = isolated_session.query(Leave).filter(Leave.id == leave_id).one()
    assert stored.status == LeaveStatus.PENDING
    assert stored.manager_comment is None
    approver = isolated_session.query(User).filter(User.id == manager_id).one()
    assert approver.last_leave_approved_at is None
    assert approver.last_leave_rejected_at is None
