"""
Document record store: persistence of document metadata and status.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from core.errors import DocumentNotFound, InvalidTransition
from models.document import Document, DocumentStatus

logger = logging.getLogger(__name__)

# status -> statuses it may move to
TRANSITIONS = {
    DocumentStatus.UPLOADED.value: {DocumentStatus.PROCESSING.value},
    DocumentStatus.PROCESSING.value: {DocumentStatus.ANALYZED.value, DocumentStatus.FAILED.value},
    DocumentStatus.ANALYZED.value: set(),
    DocumentStatus.FAILED.value: {DocumentStatus.PROCESSING.value},
}

TERMINAL_STATUSES = {DocumentStatus.ANALYZED.value}


@dataclass
class DocumentMetadata:
    account_id: str
    file_name: str
    file_type: str
    file_size: int
    storage_path: Optional[str] = None
    id: Optional[str] = None


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, set())


def create(db: Session, metadata: DocumentMetadata, *, flush_only: bool = False) -> Document:
    """Insert a new document in status ``uploaded``."""
    if metadata.file_size < 0:
        raise ValueError("file_size must be >= 0")

    doc = Document(
        id=metadata.id or str(uuid.uuid4()),
        account_id=metadata.account_id,
        file_name=metadata.file_name,
        file_type=metadata.file_type,
        file_size=metadata.file_size,
        storage_path=metadata.storage_path,
        status=DocumentStatus.UPLOADED.value,
        created_at=datetime.now(timezone.utc),
    )
    db.add(doc)
    if flush_only:
        db.flush()
    else:
        db.commit()
        db.refresh(doc)
    return doc


def get(db: Session, document_id: str, account_id: Optional[str] = None) -> Document:
    """Fetch a document, optionally scoped to its owning account."""
    query = db.query(Document).filter(Document.id == document_id)
    if account_id is not None:
        query = query.filter(Document.account_id == account_id)
    doc = query.first()
    if not doc:
        raise DocumentNotFound(document_id)
    return doc


def list_by_account(db: Session, account_id: str, skip: int = 0, limit: Optional[int] = None) -> List[Document]:
    """Documents of one account, newest first."""
    query = (
        db.query(Document)
        .filter(Document.account_id == account_id)
        .order_by(Document.created_at.desc(), Document.id.desc())
        .offset(skip)
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def update_status(
    db: Session,
    document_id: str,
    new_status: str,
    result_ref: Optional[str] = None,
    reason: Optional[str] = None,
    *,
    attempt: Optional[int] = None,
    bump_retry: bool = False,
) -> Document:
    """
    Move a document to ``new_status``.

    The write is a compare-and-swap on the status that was read (and on the
    analysis ``attempt`` when given), so of two racing updates for the same
    document only the first lands. Raises InvalidTransition for moves outside
    the transition table and for updates that lost the race.
    """
    doc = (
        db.query(Document)
        .filter(Document.id == document_id)
        .populate_existing()
        .first()
    )
    if not doc:
        raise DocumentNotFound(document_id)

    previous = doc.status
    if not can_transition(previous, new_status):
        db.rollback()
        raise InvalidTransition(document_id, previous, new_status)

    now = datetime.now(timezone.utc)
    values = {Document.status: new_status, Document.updated_at: now}
    if new_status == DocumentStatus.PROCESSING.value:
        values.update({
            Document.analysis_start_time: now,
            Document.analysis_end_time: None,
            Document.failure_reason: None,
        })
    elif new_status == DocumentStatus.ANALYZED.value:
        values.update({Document.result_ref: result_ref, Document.analysis_end_time: now})
    elif new_status == DocumentStatus.FAILED.value:
        values.update({Document.failure_reason: reason, Document.analysis_end_time: now})
    if bump_retry:
        values[Document.retry_count] = Document.retry_count + 1

    conditions = [Document.id == document_id, Document.status == previous]
    if attempt is not None:
        conditions.append(Document.retry_count == attempt)

    try:
        matched = (
            db.query(Document)
            .filter(*conditions)
            .update(values, synchronize_session=False)
        )
        if not matched:
            db.rollback()
            current = db.query(Document).filter(Document.id == document_id).populate_existing().first()
            if not current:
                raise DocumentNotFound(document_id)
            logger.warning(
                f"Document {document_id}: {previous} -> {new_status} lost to a concurrent update "
                f"(now {current.status})"
            )
            raise InvalidTransition(document_id, current.status, new_status)
        db.commit()
    except (InvalidTransition, DocumentNotFound):
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(doc)
    logger.info(f"Document {document_id}: {previous} -> {new_status}")
    return doc


def delete(db: Session, doc: Document, *, flush_only: bool = False) -> None:
    db.delete(doc)
    if flush_only:
        db.flush()
    else:
        db.commit()


def list_stale_processing(db: Session, started_before: datetime) -> List[Document]:
    """Documents still ``processing`` whose analysis started before the cutoff."""
    return (
        db.query(Document)
        .filter(
            Document.status == DocumentStatus.PROCESSING.value,
            Document.analysis_start_time.isnot(None),
            Document.analysis_start_time < started_before,
        )
        .all()
    )
