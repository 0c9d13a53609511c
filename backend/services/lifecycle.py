"""
Document lifecycle controller.

Drives a document through ``uploaded -> processing -> analyzed | failed`` and
keeps quota usage in step with document creation and deletion. Every
operation takes the account identifier explicitly; nothing here looks up the
current user.

Analysis is dispatched through a caller-supplied ``dispatch(document_id)``
callable (FastAPI ``BackgroundTasks`` in the API layer) so an upload never
waits on the analyzer.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from config import settings
from core.errors import InvalidTransition, QuotaExceeded, StorageError
from models.document import Document, DocumentStatus
from services import document_store, quota_ledger, supabase_storage
from services.document_store import DocumentMetadata

logger = logging.getLogger(__name__)

Dispatch = Callable[[str], None]

# first attempt + one internal retry
STORAGE_ATTEMPTS = 2

SUCCESS = "success"
ERROR = "error"
TIMEOUT = "timeout"


@dataclass(frozen=True)
class AnalysisOutcome:
    """Result reported by the analyzer for one document."""
    kind: str
    result_ref: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def success(cls, result_ref: str) -> "AnalysisOutcome":
        return cls(SUCCESS, result_ref=result_ref)

    @classmethod
    def error(cls, reason: str) -> "AnalysisOutcome":
        return cls(ERROR, reason=reason)

    @classmethod
    def timeout(cls) -> "AnalysisOutcome":
        return cls(TIMEOUT)

    @property
    def succeeded(self) -> bool:
        return self.kind == SUCCESS

    @property
    def failure_reason(self) -> Optional[str]:
        if self.kind == TIMEOUT:
            return "Timeout"
        if self.kind == ERROR:
            return f"Error: {self.reason or 'analysis failed'}"
        return None


@dataclass
class UploadRequest:
    file_name: str
    file_type: str
    content_type: str = "application/octet-stream"


def _remove_stored_file(storage_path: str) -> None:
    try:
        supabase_storage.delete_file(storage_path)
    except Exception as e:
        logger.warning(f"Could not remove orphaned file {storage_path}: {e}")


def _persist_upload(
    db: Session,
    account_id: str,
    request: UploadRequest,
    content: bytes,
) -> Document:
    """
    Store the file, then reserve quota, insert the record and commit the
    reservation in a single transaction. An interrupted upload therefore
    leaves neither a document nor a dangling reservation.
    """
    doc_id = str(uuid.uuid4())
    storage_path = supabase_storage.build_path(account_id, doc_id, request.file_name)
    size = len(content)
    last_error: Optional[Exception] = None
    file_stored = False

    for attempt in range(1, STORAGE_ATTEMPTS + 1):
        try:
            supabase_storage.upload_file(content, storage_path, request.content_type)
            file_stored = True

            decision = quota_ledger.reserve(db, account_id, size, flush_only=True)
            if not decision.allowed:
                # lost the last slot to a concurrent upload since the pre-check
                db.rollback()
                _remove_stored_file(storage_path)
                raise QuotaExceeded(decision.reason, quota=quota_ledger.usage(db, account_id))

            doc = document_store.create(
                db,
                DocumentMetadata(
                    id=doc_id,
                    account_id=account_id,
                    file_name=request.file_name,
                    file_type=request.file_type,
                    file_size=size,
                    storage_path=storage_path,
                ),
                flush_only=True,
            )
            quota_ledger.commit(db, account_id, size, flush_only=True)
            db.commit()
            # Committed: nothing past this point may retry or undo the upload
            return doc
        except QuotaExceeded:
            raise
        except Exception as e:
            db.rollback()
            last_error = e
            logger.warning(
                f"Storing document {doc_id} failed (attempt {attempt}/{STORAGE_ATTEMPTS}): {e}"
            )

    if file_stored:
        _remove_stored_file(storage_path)

    raise StorageError(f"Document could not be stored: {last_error}")


def submit_upload(
    db: Session,
    account_id: str,
    request: UploadRequest,
    content: bytes,
    dispatch: Dispatch,
) -> Document:
    """
    Accept an upload for ``account_id``.

    Turns the upload away early when the plan has no room, then stores the
    file and record together with the quota reservation and schedules
    analysis. Raises QuotaExceeded when the plan has no room and StorageError
    when persistence fails; neither leaves quota usage behind.
    """
    size = len(content)
    decision = quota_ledger.check(db, account_id, size)
    if not decision.allowed:
        raise QuotaExceeded(decision.reason, quota=quota_ledger.usage(db, account_id))

    try:
        doc = _persist_upload(db, account_id, request, content)
    except StorageError:
        logger.error(f"Upload of '{request.file_name}' for account {account_id} failed")
        raise

    logger.info(f"Document uploaded: {doc.id} ({request.file_name}, {size} bytes) for account {account_id}")
    dispatch(doc.id)
    return doc


def mark_processing(db: Session, document_id: str) -> Document:
    """
    Record that the analyzer is taking the job for a freshly uploaded document.

    No-op when already processing (``retry`` moves the document itself). A
    failed document only goes back to processing through ``retry``.
    """
    doc = document_store.get(db, document_id)
    if doc.status == DocumentStatus.PROCESSING.value:
        return doc
    if doc.status != DocumentStatus.UPLOADED.value:
        raise InvalidTransition(document_id, doc.status, DocumentStatus.PROCESSING.value)
    return document_store.update_status(db, document_id, DocumentStatus.PROCESSING.value)


def _is_settled(doc: Document) -> bool:
    return doc.status in (DocumentStatus.ANALYZED.value, DocumentStatus.FAILED.value)


def _is_stale(doc: Document, attempt: Optional[int]) -> bool:
    return attempt is not None and attempt != (doc.retry_count or 0)


def on_analysis_result(
    db: Session,
    document_id: str,
    outcome: AnalysisOutcome,
    attempt: Optional[int] = None,
) -> Document:
    """
    Apply an analyzer outcome.

    Duplicate or late results for a document that already settled are
    ignored, as are results for an earlier ``attempt`` than the one running
    now. A result that overtakes the dispatch (document still ``uploaded``)
    promotes the document to ``processing`` first.
    """
    doc = document_store.get(db, document_id)
    if _is_settled(doc):
        logger.info(f"Ignoring {outcome.kind} result for document {document_id} (already {doc.status})")
        return doc
    if _is_stale(doc, attempt):
        logger.info(
            f"Ignoring {outcome.kind} result for document {document_id} "
            f"from attempt {attempt} (current attempt {doc.retry_count})"
        )
        return doc

    try:
        if doc.status == DocumentStatus.UPLOADED.value:
            try:
                document_store.update_status(db, document_id, DocumentStatus.PROCESSING.value)
            except InvalidTransition:
                # the dispatch got there first
                pass

        if outcome.succeeded:
            return document_store.update_status(
                db, document_id, DocumentStatus.ANALYZED.value,
                result_ref=outcome.result_ref, attempt=attempt,
            )
        return document_store.update_status(
            db, document_id, DocumentStatus.FAILED.value,
            reason=outcome.failure_reason, attempt=attempt,
        )
    except InvalidTransition:
        # A concurrent delivery or retry won the compare-and-swap
        current = document_store.get(db, document_id)
        if _is_settled(current) or _is_stale(current, attempt):
            logger.info(f"Ignoring {outcome.kind} result for document {document_id} (settled concurrently)")
            return current
        raise


def retry(db: Session, account_id: str, document_id: str, dispatch: Dispatch) -> Document:
    """Re-run analysis for a failed document."""
    doc = document_store.get(db, document_id, account_id)
    if doc.status != DocumentStatus.FAILED.value:
        logger.warning(f"Retry rejected for document {document_id} in status '{doc.status}'")
        raise InvalidTransition(document_id, doc.status, DocumentStatus.PROCESSING.value)

    if doc.retry_count >= settings.MAX_ANALYSIS_RETRIES:
        logger.warning(f"Retry limit reached for document {document_id}")
        raise InvalidTransition(
            document_id,
            doc.status,
            DocumentStatus.PROCESSING.value,
            reason=f"Maximum retry attempts ({settings.MAX_ANALYSIS_RETRIES}) exceeded for document {document_id}",
        )

    # The new attempt number is written with the status change
    doc = document_store.update_status(
        db, document_id, DocumentStatus.PROCESSING.value,
        attempt=doc.retry_count, bump_retry=True,
    )

    logger.info(f"Retrying analysis for document {document_id} (attempt {doc.retry_count})")
    dispatch(doc.id)
    return doc


def delete_document(db: Session, account_id: str, document_id: str) -> None:
    """
    Remove a document and give its quota back in one transaction.

    The stored file is removed afterwards; a storage error there is logged and
    does not undo the deletion.
    """
    doc = document_store.get(db, document_id, account_id)
    file_path = doc.storage_path
    file_name = doc.file_name
    size = doc.file_size

    try:
        quota_ledger.release(db, account_id, size, committed=True, flush_only=True)
        document_store.delete(db, doc, flush_only=True)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to delete document {document_id}: {e}", exc_info=True)
        raise StorageError("Failed to delete document") from e

    if file_path:
        try:
            supabase_storage.delete_file(file_path)
        except Exception as e:
            logger.warning(f"Could not delete from storage: {e}")

    logger.info(f"Document deleted: {file_name} ({document_id}) for account {account_id}")


def expire_stale(db: Session, now: Optional[datetime] = None) -> List[str]:
    """Fail every document whose analysis outlived ANALYSIS_TIMEOUT_SECONDS."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(seconds=settings.ANALYSIS_TIMEOUT_SECONDS)

    expired = []
    for doc in document_store.list_stale_processing(db, cutoff):
        updated = on_analysis_result(db, doc.id, AnalysisOutcome.timeout())
        if updated.failure_reason == "Timeout":
            expired.append(doc.id)

    if expired:
        logger.warning(f"Timed out {len(expired)} document(s) awaiting analysis")
    return expired
