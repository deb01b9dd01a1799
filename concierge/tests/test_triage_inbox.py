import pytest

from concierge.models.symptom_submission import SubmissionStatus, UrgencyFlag
from concierge.schemas.symptoms import IntakeFields
from concierge.services.intake import submit_intake
from concierge.services.triage_inbox import QueueFilter, TriageInbox, can_transition
from concierge.utils.exceptions import InvalidStatusTransition, NotFoundError, ValidationError

S = SubmissionStatus


@pytest.mark.parametrize(
    "current,new,allowed",
    [
        (S.SUBMITTED, S.UNDER_REVIEW, True),
        (S.SUBMITTED, S.REVIEWED, True),
        (S.UNDER_REVIEW, S.SCHEDULED, True),
        (S.REVIEWED, S.UNDER_REVIEW, False),
        (S.UNDER_REVIEW, S.SUBMITTED, False),
        (S.SUBMITTED, S.ESCALATED, True),
        (S.REVIEWED, S.ESCALATED, True),
        (S.SCHEDULED, S.ESCALATED, False),
        (S.ESCALATED, S.REVIEWED, False),
    ],
)
def test_can_transition(current, new, allowed):
    assert can_transition(current, new) is allowed


def _submit(db, storage, text, severity=3, owner="user-1"):
    return submit_intake(db, storage, owner, IntakeFields(symptoms=text, severity=severity)).submission_id


def test_queue_filters(db, storage):
    high = _submit(db, storage, "severe chest pain", severity=9)
    low = _submit(db, storage, "runny nose", owner="user-2")
    inbox = TriageInbox(db, "provider-1")

    assert [r.id for r in inbox.list_queue()] == [low, high]
    assert [r.id for r in inbox.list_queue(QueueFilter.HIGH_PRIORITY)] == [high]

    inbox.change_status(low, S.REVIEWED)
    assert [r.id for r in inbox.list_queue(QueueFilter.UNREVIEWED)] == [high]
    assert len(inbox.list_queue(limit=1)) == 1


def test_open_moves_submitted_to_under_review(db, storage):
    sid = _submit(db, storage, "cough")
    inbox = TriageInbox(db, "provider-1")
    row = inbox.open_submission(sid)
    assert row.status == S.UNDER_REVIEW
    actions = [a.action for a in inbox.list_activity(sid)]
    assert sorted(actions) == ["Status Changed", "Viewed"]

    # a second view only logs
    assert inbox.open_submission(sid).status == S.UNDER_REVIEW
    assert [a.action for a in inbox.list_activity(sid)].count("Viewed") == 2


def test_change_status_forward_and_terminal(db, storage):
    sid = _submit(db, storage, "cough")
    inbox = TriageInbox(db, "provider-1")
    assert inbox.change_status(sid, S.REVIEWED).status == S.REVIEWED
    # same status is a no-op
    assert inbox.change_status(sid, S.REVIEWED).status == S.REVIEWED
    with pytest.raises(InvalidStatusTransition):
        inbox.change_status(sid, S.UNDER_REVIEW)
    assert inbox.change_status(sid, S.ESCALATED).status == S.ESCALATED
    with pytest.raises(InvalidStatusTransition) as ei:
        inbox.change_status(sid, S.SCHEDULED)
    assert ei.value.status_code == 409

    details = [a.details for a in inbox.list_activity(sid)]
    assert details == ["Submitted -> Reviewed", "Reviewed -> Escalated"]


def test_status_change_never_touches_urgency(db, storage):
    sid = _submit(db, storage, "severe headache", severity=9)
    inbox = TriageInbox(db, "provider-1")
    row = inbox.change_status(sid, S.SCHEDULED)
    assert row.urgency_flag == UrgencyFlag.HIGH


def test_notes(db, storage):
    sid = _submit(db, storage, "cough")
    inbox = TriageInbox(db, "provider-1")
    with pytest.raises(ValidationError):
        inbox.add_note(sid, "   ")
    first = inbox.add_note(sid, "Called member, resting at home")
    second = inbox.add_note(sid, " Follow up Friday ")
    notes = inbox.list_notes(sid)
    assert [n.id for n in notes] == [first.id, second.id]
    assert notes[1].content == "Follow up Friday"
    assert notes[0].provider_id == "provider-1"


def test_unknown_submission(db):
    inbox = TriageInbox(db, "provider-1")
    with pytest.raises(NotFoundError):
        inbox.open_submission("missing")
    with pytest.raises(NotFoundError):
        inbox.add_note("missing", "hello")
