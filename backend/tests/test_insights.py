from datetime import datetime, timedelta, timezone

from models.document import Document
from services import insights


def _doc(db, doc_id, status="uploaded", file_type="pdf", size=100, created_at=None,
         started=None, finished=None, account_id="acct-1"):
    doc = Document(
        id=doc_id,
        account_id=account_id,
        file_name=f"{doc_id}.{file_type}",
        file_type=file_type,
        file_size=size,
        status=status,
        created_at=created_at or datetime.now(timezone.utc),
        analysis_start_time=started,
        analysis_end_time=finished,
    )
    db.add(doc)
    db.commit()
    return doc


def test_empty_account_reports_zero_filled_summary(db, make_account):
    make_account()

    summary = insights.summarize(db, "acct-1")

    assert summary["total_documents"] == 0
    assert summary["by_status"] == {"uploaded": 0, "processing": 0, "analyzed": 0, "failed": 0}
    assert summary["by_type"] == {}
    assert summary["avg_analysis_duration"] == 0.0
    assert summary["recent_activity"] == []


def test_summary_counts_and_average_duration(db, make_account):
    make_account()
    make_account("acct-2")
    start = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    _doc(db, "a", status="analyzed", size=300, started=start, finished=start + timedelta(seconds=30))
    _doc(db, "b", status="analyzed", file_type="docx", size=200,
         started=start, finished=start + timedelta(seconds=90))
    _doc(db, "c", status="failed", size=50, started=start, finished=start + timedelta(seconds=900))
    _doc(db, "d", status="processing", file_type="txt", size=10, started=start)
    _doc(db, "other", account_id="acct-2", size=999)

    summary = insights.summarize(db, "acct-1")

    assert summary["total_documents"] == 4
    assert summary["total_storage_bytes"] == 560
    assert summary["by_status"] == {"uploaded": 0, "processing": 1, "analyzed": 2, "failed": 1}
    assert summary["by_type"] == {"pdf": 2, "docx": 1, "txt": 1}
    # failed analyses don't count towards the average
    assert summary["avg_analysis_duration"] == 60.0


def test_recent_activity_is_daily_and_ascending(db, make_account):
    make_account()
    now = datetime(2026, 5, 20, 15, 0, tzinfo=timezone.utc)
    _doc(db, "old", created_at=now - timedelta(days=45))
    _doc(db, "d1", created_at=now - timedelta(days=2, hours=1))
    _doc(db, "d2", created_at=now - timedelta(days=2, hours=2))
    _doc(db, "d3", created_at=now - timedelta(hours=1))

    summary = insights.summarize(db, "acct-1", now=now)

    assert summary["recent_activity"] == [
        {"date": "2026-05-18", "count": 2},
        {"date": "2026-05-20", "count": 1},
    ]
