import pytest

from concierge.schemas.symptoms import IntakeFields
from concierge.services.history import HistoryViewer
from concierge.services.intake import submit_intake
from concierge.services.submissions import SubmissionRepository
from concierge.utils.exceptions import NotFoundError, PersistenceError


def _submit(db, storage, text="cough"):
    return submit_intake(db, storage, "user-1", IntakeFields(symptoms=text)).submission_id


def test_refresh_lists_own_submissions(db, storage):
    first = _submit(db, storage, "first")
    second = _submit(db, storage, "second")
    submit_intake(db, storage, "user-2", IntakeFields(symptoms="not mine"))

    viewer = HistoryViewer(SubmissionRepository(db), "user-1")
    items = viewer.refresh()
    assert [s.id for s in items] == [second, first]
    assert viewer.summary(first).symptoms == "first"
    assert viewer.summary("missing") is None


def test_refresh_failure_keeps_previous_items(db, storage, monkeypatch):
    _submit(db, storage)
    repo = SubmissionRepository(db)
    viewer = HistoryViewer(repo, "user-1")
    viewer.refresh()

    def broken(*_a, **_k):
        raise PersistenceError("Could not list submissions")

    monkeypatch.setattr(repo, "list_submissions", broken)
    assert len(viewer.refresh()) == 1
    assert viewer.notices == ["Failed to load submission history"]


def test_load_detail_includes_files(db, storage):
    from concierge.services.attachments import PendingAttachment

    result = submit_intake(
        db, storage, "user-1", IntakeFields(symptoms="rash"),
        [PendingAttachment("rash.jpg", "image/jpeg", b"img")],
    )
    detail = HistoryViewer(SubmissionRepository(db), "user-1").load_detail(result.submission_id)
    assert detail.id == result.submission_id
    assert [f.file_name for f in detail.files] == ["rash.jpg"]


def test_load_detail_falls_back_to_summary(db, storage, monkeypatch):
    sid = _submit(db, storage)
    repo = SubmissionRepository(db)
    viewer = HistoryViewer(repo, "user-1")
    viewer.refresh()

    def broken(*_a, **_k):
        raise PersistenceError("Could not list submission files")

    monkeypatch.setattr(repo, "list_files", broken)
    detail = viewer.load_detail(sid)
    assert detail.id == sid
    assert detail.files == []
    assert "Failed to load submission details" in viewer.notices


def test_load_detail_without_summary_propagates(db, storage):
    sid = submit_intake(db, storage, "user-2", IntakeFields(symptoms="private")).submission_id
    viewer = HistoryViewer(SubmissionRepository(db), "user-1")
    with pytest.raises(NotFoundError):
        viewer.load_detail(sid)


def test_backend_failure_without_summary_propagates(db, storage, monkeypatch):
    sid = _submit(db, storage)
    repo = SubmissionRepository(db)
    viewer = HistoryViewer(repo, "user-1")

    def broken(*_a, **_k):
        raise PersistenceError("Could not load submission")

    monkeypatch.setattr(repo, "get_submission", broken)
    with pytest.raises(PersistenceError):
        viewer.load_detail(sid)
    assert viewer.notices == ["Failed to load submission details"]
