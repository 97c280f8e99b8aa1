import pytest

from helpdesk.core.errors import ConflictOfState, ValidationFailed
from helpdesk.db.models import (
    HistoryFieldEnum as Field,
    RoleEnum as Role,
    SupportLevelEnum as Level,
    Ticket,
    TicketStatusEnum as Status,
    User,
)
from helpdesk.services import lifecycle


def _user(uid: int, role: Role, name: str | None = None) -> User:
    return User(id=uid, email=f"u{uid}@example.com", name=name, role=role, is_active=True)


def _ticket(**kw) -> Ticket:
    data = dict(id=1, submitter_id=1, assignee_id=None, status=Status.new, support_level=None, comments=[])
    data.update(kw)
    return Ticket(**data)


FIRST = _user(3, Role.firstline, "Frida")
FIRST_OTHER = _user(4, Role.firstline, "Finn")
SECOND = _user(5, Role.secondline, "Sven")
ADMIN = _user(6, Role.admin, "Ada")
USER = _user(1, Role.user)


@pytest.mark.parametrize(
    "src,dst,ok",
    [
        (Status.new, Status.in_progress, True),
        (Status.new, Status.resolved, False),
        (Status.new, Status.escalated, False),
        (Status.in_progress, Status.escalated, True),
        (Status.in_progress, Status.resolved, True),
        (Status.in_progress, Status.new, False),
        (Status.escalated, Status.in_progress, True),
        (Status.escalated, Status.resolved, True),
        (Status.resolved, Status.in_progress, False),
        (Status.resolved, Status.new, False),
    ],
)
def test_transition_table(src, dst, ok):
    assert lifecycle.can_transition(src, dst) is ok


def test_assign_moves_new_ticket_into_progress():
    t = _ticket()
    changes = lifecycle.assign(t, FIRST, FIRST)
    assert t.assignee_id == FIRST.id
    assert t.support_level is Level.firstline
    assert t.status is Status.in_progress
    assert {c.field for c in changes} == {Field.assignee, Field.support_level, Field.status}


def test_assign_already_assigned_is_conflict_for_support():
    t = _ticket(assignee_id=FIRST_OTHER.id, status=Status.in_progress, support_level=Level.firstline)
    with pytest.raises(ConflictOfState):
        lifecycle.assign(t, FIRST, FIRST)


def test_admin_can_reassign():
    t = _ticket(assignee_id=FIRST.id, status=Status.in_progress, support_level=Level.firstline)
    lifecycle.assign(t, ADMIN, SECOND)
    assert t.assignee_id == SECOND.id
    assert t.support_level is Level.secondline
    assert t.status is Status.in_progress


def test_assign_resolved_is_conflict():
    t = _ticket(status=Status.resolved)
    with pytest.raises(ConflictOfState):
        lifecycle.assign(t, ADMIN, FIRST)


def test_assign_non_support_is_invalid():
    with pytest.raises(ValidationFailed) as exc:
        lifecycle.assign(_ticket(), ADMIN, USER)
    assert exc.value.errors[0]["field"] == "assigned_to"


def test_escalate_hands_over_to_second_line():
    t = _ticket(assignee_id=FIRST.id, status=Status.in_progress, support_level=Level.firstline)
    lifecycle.escalate(t, FIRST)
    assert t.status is Status.escalated
    assert t.support_level is Level.secondline
    assert t.assignee_id is None


def test_escalate_requires_in_progress():
    with pytest.raises(ConflictOfState):
        lifecycle.escalate(_ticket(), FIRST)


def test_escalate_twice_is_conflict():
    t = _ticket(assignee_id=SECOND.id, status=Status.in_progress, support_level=Level.secondline)
    with pytest.raises(ConflictOfState):
        lifecycle.escalate(t, SECOND)


def test_resolve_adds_system_comment():
    t = _ticket(assignee_id=SECOND.id, status=Status.in_progress, support_level=Level.secondline)
    changes = lifecycle.change_status(t, SECOND, Status.resolved)
    assert t.status is Status.resolved
    assert t.resolved_at is not None
    assert [c.field for c in changes] == [Field.status]
    assert len(t.comments) == 1
    note = t.comments[0]
    assert note.is_system is True
    assert note.author_id == SECOND.id
    assert note.text == "Ticket marked as resolved by Sven (secondline support)"


def test_resolution_note_falls_back_to_email_and_role():
    anon_admin = _user(9, Role.admin)
    assert lifecycle.resolution_note(anon_admin) == "Ticket marked as resolved by u9@example.com (admin)"


def test_same_status_is_noop():
    t = _ticket(status=Status.in_progress, assignee_id=FIRST.id)
    assert lifecycle.change_status(t, FIRST, Status.in_progress) == []


def test_illegal_transition_is_conflict():
    t = _ticket(status=Status.resolved, assignee_id=SECOND.id, support_level=Level.secondline)
    with pytest.raises(ConflictOfState) as exc:
        lifecycle.change_status(t, SECOND, Status.in_progress)
    assert "resolved -> in_progress" in exc.value.detail


def test_in_progress_needs_assignee():
    with pytest.raises(ConflictOfState):
        lifecycle.change_status(_ticket(), FIRST, Status.in_progress)


def test_admin_reopens_resolved_ticket():
    t = _ticket(status=Status.resolved, assignee_id=SECOND.id, support_level=Level.secondline)
    lifecycle.resolve(t, ADMIN)
    lifecycle.change_status(t, ADMIN, Status.in_progress)
    assert t.status is Status.in_progress
    assert t.resolved_at is None


def test_admin_escalation_override_keeps_side_effects():
    t = _ticket(assignee_id=FIRST.id, status=Status.new, support_level=Level.firstline)
    lifecycle.change_status(t, ADMIN, Status.escalated)
    assert t.status is Status.escalated
    assert t.support_level is Level.secondline
    assert t.assignee_id is None


def test_update_content_records_only_real_changes():
    t = _ticket(title="Old", description="d", priority=None)
    changes = lifecycle.update_content(t, {"title": "New", "description": "d"})
    assert len(changes) == 1
    assert changes[0].field is Field.title
    assert (changes[0].old, changes[0].new) == ("Old", "New")


def test_repeated_self_assign_changes_nothing():
    t = _ticket()
    lifecycle.assign(t, FIRST, FIRST)
    assert lifecycle.assign(t, FIRST, FIRST) == []
    assert t.assignee_id == FIRST.id
    assert t.status is Status.in_progress


def test_assignee_moved_to_other_tier_takes_ticket_along():
    t = _ticket(assignee_id=FIRST.id, status=Status.in_progress, support_level=Level.firstline)
    changes = lifecycle.follow_assignee_role(t, Role.secondline)
    assert t.support_level is Level.secondline
    assert t.assignee_id == FIRST.id
    assert t.status is Status.in_progress
    assert [(c.field, c.old, c.new) for c in changes] == [(Field.support_level, "firstline", "secondline")]


def test_same_tier_role_change_is_noop():
    t = _ticket(assignee_id=FIRST.id, status=Status.in_progress, support_level=Level.firstline)
    assert lifecycle.follow_assignee_role(t, Role.firstline) == []


@pytest.mark.parametrize(
    "level,queue",
    [(Level.firstline, Status.new), (Level.secondline, Status.escalated)],
)
def test_assignee_leaving_support_returns_ticket_to_queue(level, queue):
    t = _ticket(assignee_id=FIRST.id, status=Status.in_progress, support_level=level)
    lifecycle.follow_assignee_role(t, Role.user)
    assert t.assignee_id is None
    assert t.support_level is level
    assert t.status is queue
