"""
Insights aggregator: per-account document analytics for the dashboard.

Everything is computed from the account's current committed documents; there
is no cache.
"""
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from models.document import Document, DocumentStatus

logger = logging.getLogger(__name__)


def summarize(db: Session, account_id: str, now: Optional[datetime] = None) -> dict:
    """Return real-time analytics for one account's documents."""
    now = now or datetime.now(timezone.utc)

    # ── Totals ──
    total_docs, total_bytes = db.query(
        func.count(Document.id), func.coalesce(func.sum(Document.file_size), 0)
    ).filter(Document.account_id == account_id).one()

    # ── By status / type ──
    by_status = {status.value: 0 for status in DocumentStatus}
    status_rows = (
        db.query(Document.status, func.count(Document.id))
        .filter(Document.account_id == account_id)
        .group_by(Document.status)
        .all()
    )
    for status, count in status_rows:
        by_status[status] = count

    type_rows = (
        db.query(Document.file_type, func.count(Document.id))
        .filter(Document.account_id == account_id)
        .group_by(Document.file_type)
        .all()
    )
    by_type = {file_type or "unknown": count for file_type, count in type_rows}

    # ── Average analysis duration (analyzed documents) ──
    analyzed = db.query(Document).filter(
        Document.account_id == account_id,
        Document.status == DocumentStatus.ANALYZED.value,
        Document.analysis_start_time.isnot(None),
        Document.analysis_end_time.isnot(None),
    ).all()

    durations = [
        (d.analysis_end_time - d.analysis_start_time).total_seconds()
        for d in analyzed
    ]
    avg_duration = round(sum(durations) / len(durations), 1) if durations else 0.0

    # ── Uploads per day over the activity window, oldest first ──
    since = now - timedelta(days=settings.INSIGHTS_ACTIVITY_DAYS)
    created = (
        db.query(Document.created_at)
        .filter(Document.account_id == account_id, Document.created_at >= since)
        .all()
    )
    per_day = Counter(row.created_at.date() for row in created if row.created_at)
    recent_activity = [
        {"date": day.isoformat(), "count": per_day[day]}
        for day in sorted(per_day)
    ]

    return {
        "total_documents": total_docs or 0,
        "by_status": by_status,
        "by_type": by_type,
        "total_storage_bytes": int(total_bytes or 0),
        "avg_analysis_duration": avg_duration,
        "recent_activity": recent_activity,
    }
