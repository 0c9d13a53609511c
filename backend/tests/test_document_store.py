from datetime import datetime, timedelta, timezone

import pytest

from core.errors import DocumentNotFound, InvalidTransition
from models.document import DocumentStatus
from services import document_store
from services.document_store import DocumentMetadata


def _create(db, account_id="acct-1", name="report.pdf", size=100):
    return document_store.create(
        db,
        DocumentMetadata(account_id=account_id, file_name=name, file_type="pdf", file_size=size),
    )


def test_create_starts_uploaded(db, make_account):
    make_account()
    doc = _create(db)

    assert doc.status == DocumentStatus.UPLOADED.value
    assert doc.retry_count == 0
    assert doc.created_at is not None
    assert doc.analysis_start_time is None


def test_create_rejects_negative_size(db, make_account):
    make_account()
    with pytest.raises(ValueError):
        _create(db, size=-1)


def test_get_is_scoped_to_account(db, make_account):
    make_account()
    make_account("acct-2")
    doc = _create(db)

    assert document_store.get(db, doc.id, "acct-1").id == doc.id
    with pytest.raises(DocumentNotFound):
        document_store.get(db, doc.id, "acct-2")


def test_list_by_account_newest_first_and_paged(db, make_account):
    make_account()
    make_account("acct-2")
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    ids = []
    for i in range(3):
        doc = _create(db, name=f"doc{i}.pdf")
        doc.created_at = base + timedelta(minutes=i)
        ids.append(doc.id)
    db.commit()
    _create(db, account_id="acct-2")

    docs = document_store.list_by_account(db, "acct-1")
    assert [d.id for d in docs] == list(reversed(ids))

    page = document_store.list_by_account(db, "acct-1", skip=1, limit=1)
    assert [d.id for d in page] == [ids[1]]


def test_status_walk_records_analysis_times(db, make_account):
    make_account()
    doc = _create(db)

    doc = document_store.update_status(db, doc.id, DocumentStatus.PROCESSING.value)
    assert doc.analysis_start_time is not None
    assert doc.analysis_end_time is None

    doc = document_store.update_status(db, doc.id, DocumentStatus.ANALYZED.value, result_ref="res-1")
    assert doc.status == DocumentStatus.ANALYZED.value
    assert doc.result_ref == "res-1"
    assert doc.analysis_end_time >= doc.analysis_start_time


def test_failed_records_reason(db, make_account):
    make_account()
    doc = _create(db)
    document_store.update_status(db, doc.id, DocumentStatus.PROCESSING.value)

    doc = document_store.update_status(db, doc.id, DocumentStatus.FAILED.value, reason="Timeout")

    assert doc.failure_reason == "Timeout"


@pytest.mark.parametrize("current, target", [
    ("uploaded", "analyzed"),
    ("uploaded", "failed"),
    ("analyzed", "processing"),
    ("analyzed", "failed"),
    ("failed", "analyzed"),
])
def test_illegal_transitions_rejected(current, target):
    assert not document_store.can_transition(current, target)


def test_update_status_leaves_row_untouched_on_illegal_move(db, make_account):
    make_account()
    doc = _create(db)

    with pytest.raises(InvalidTransition) as exc:
        document_store.update_status(db, doc.id, DocumentStatus.ANALYZED.value, result_ref="r")

    assert exc.value.current == "uploaded"
    db.expire_all()
    doc = document_store.get(db, doc.id)
    assert doc.status == DocumentStatus.UPLOADED.value
    assert doc.result_ref is None


def test_update_status_unknown_document(db):
    with pytest.raises(DocumentNotFound):
        document_store.update_status(db, "missing", DocumentStatus.PROCESSING.value)


def test_list_stale_processing(db, make_account):
    make_account()
    stale = _create(db, name="stale.pdf")
    fresh = _create(db, name="fresh.pdf")
    _create(db, name="idle.pdf")
    document_store.update_status(db, stale.id, DocumentStatus.PROCESSING.value)
    document_store.update_status(db, fresh.id, DocumentStatus.PROCESSING.value)
    stale = document_store.get(db, stale.id)
    stale.analysis_start_time = datetime.now(timezone.utc) - timedelta(hours=1)
    db.commit()

    cutoff = datetime.now(timezone.utc) - timedelta(minutes=15)
    assert [d.id for d in document_store.list_stale_processing(db, cutoff)] == [stale.id]
