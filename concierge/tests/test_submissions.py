from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from concierge.models.symptom_submission import (
    DurationCategory,
    RiskLabel,
    SubmissionStatus,
    UrgencyFlag,
)
from concierge.services.submissions import NewSubmission, SubmissionRepository
from concierge.utils.exceptions import NotFoundError, PersistenceError, ValidationError


def _new(owner="user-1", symptoms="sore throat", **kw):
    data = dict(
        profile_id=owner,
        symptoms=symptoms,
        urgency_flag=UrgencyFlag.LOW,
        severity=3,
    )
    data.update(kw)
    return NewSubmission(**data)


def test_create_and_get_round_trip(db):
    repo = SubmissionRepository(db)
    row = repo.create_submission(_new(
        duration=DurationCategory.ONE_TO_THREE_DAYS,
        onset_date=date(2024, 3, 1),
        ai_assessment="This may be consistent with viral pharyngitis.",
        ai_risk_level=RiskLabel.MILD,
        ai_confidence=0.85,
        session_id="SYM-1234",
    ))
    assert row.status == SubmissionStatus.SUBMITTED
    assert row.attachments_incomplete is False

    got = repo.get_submission(row.id, owner_id="user-1")
    assert got.symptoms == "sore throat"
    assert got.duration == DurationCategory.ONE_TO_THREE_DAYS
    assert got.onset_date == date(2024, 3, 1)
    assert got.ai_risk_level == RiskLabel.MILD
    assert got.session_id == "SYM-1234"


def test_symptoms_encrypted_at_rest(db):
    repo = SubmissionRepository(db)
    row = repo.create_submission(_new(symptoms="private rash details"))
    raw = db.connection().exec_driver_sql(
        "SELECT symptoms FROM symptom_submissions WHERE id = ?", (row.id,)
    ).scalar_one()
    assert "private rash" not in raw


def test_create_rejects_blank_symptoms(db):
    with pytest.raises(ValidationError):
        SubmissionRepository(db).create_submission(_new(symptoms="  "))


def test_list_is_newest_first_and_owner_scoped(db):
    repo = SubmissionRepository(db)
    first = repo.create_submission(_new(symptoms="first"))
    second = repo.create_submission(_new(symptoms="second"))
    repo.create_submission(_new(owner="user-2", symptoms="someone else"))

    rows = repo.list_submissions("user-1")
    assert [r.id for r in rows] == [second.id, first.id]

    page = repo.list_submissions("user-1", limit=1, offset=1)
    assert [r.id for r in page] == [first.id]


def test_list_empty_for_new_member(db):
    assert SubmissionRepository(db).list_submissions("user-2") == []


def test_get_hides_other_owners_rows(db):
    repo = SubmissionRepository(db)
    row = repo.create_submission(_new(owner="user-2"))
    with pytest.raises(NotFoundError):
        repo.get_submission(row.id, owner_id="user-1")
    with pytest.raises(NotFoundError):
        repo.get_submission("does-not-exist")


def test_files_listed_oldest_first(db):
    repo = SubmissionRepository(db)
    row = repo.create_submission(_new())
    assert repo.list_files(row.id) == []
    a = repo.add_file(row.id, "memory://a", "a.png", "image/png")
    b = repo.add_file(row.id, "memory://b", "b.jpg", "image/jpeg")
    assert [f.id for f in repo.list_files(row.id)] == [a.id, b.id]


def test_mark_attachments_incomplete(db):
    repo = SubmissionRepository(db)
    row = repo.create_submission(_new())
    repo.mark_attachments_incomplete(row.id)
    assert repo.get_submission(row.id).attachments_incomplete is True


def test_transient_errors_are_retried(db, monkeypatch):
    repo = SubmissionRepository(db)
    real_execute = db.execute
    calls = {"n": 0}

    def flaky_execute(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        return real_execute(*args, **kwargs)

    monkeypatch.setattr(db, "execute", flaky_execute)
    assert repo.list_submissions("user-1") == []
    assert calls["n"] == 2


def test_persistent_failure_maps_to_persistence_error(db, monkeypatch):
    repo = SubmissionRepository(db)

    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(db, "execute", broken)
    with pytest.raises(PersistenceError) as ei:
        repo.list_submissions("user-1")
    assert ei.value.status_code == 503
    assert ei.value.message == "Could not list submissions"
