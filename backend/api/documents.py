"""
Document management API routes.
"""
import re
import uuid
import logging
import os
from fastapi import APIRouter, UploadFile, File, Depends, HTTPException, Query, Request, BackgroundTasks
from sqlalchemy.orm import Session

from schemas.document_schema import DocumentOut, DocumentDetailOut, DocumentDownloadOut
from dependencies import get_current_account_id, get_db
from core.rate_limit import limiter
from services import document_store, lifecycle, supabase_storage
from services.lifecycle import UploadRequest
from workers.analysis_worker import dispatch_analysis
from constants import SUPPORTED_FILE_TYPES, MAX_FILE_SIZE_MB, DOCUMENT_LIST_MAX_PAGE
from config import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["Documents"])


def _safe_file_name(raw_name: str, file_ext: str) -> str:
    # Strip path traversal, keep only safe characters
    safe_name = os.path.basename(raw_name or "upload")
    safe_name = re.sub(r'[^\w.\-]', '_', safe_name)
    if not safe_name or safe_name.startswith('.'):
        safe_name = f"upload_{uuid.uuid4().hex[:8]}{file_ext}"
    return safe_name


@router.post("/upload", response_model=DocumentOut, status_code=201)
@limiter.limit(settings.RATE_LIMIT_UPLOAD)
def upload_document(
    request: Request,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    account_id: str = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    # ── Validate file extension ──
    file_ext = os.path.splitext(file.filename or "")[1].lower()
    if file_ext not in SUPPORTED_FILE_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{file_ext}'. Allowed: {', '.join(SUPPORTED_FILE_TYPES)}",
        )

    file_bytes = file.file.read()
    if not file_bytes:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    # ── Hard cap; plan limits are enforced by the quota ledger ──
    max_bytes = MAX_FILE_SIZE_MB * 1024 * 1024
    if len(file_bytes) > max_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File too large ({len(file_bytes) / (1024*1024):.1f} MB). Maximum allowed: {MAX_FILE_SIZE_MB} MB",
        )

    doc = lifecycle.submit_upload(
        db,
        account_id,
        UploadRequest(
            file_name=_safe_file_name(file.filename, file_ext),
            file_type=SUPPORTED_FILE_TYPES[file_ext],
            content_type=file.content_type or "application/octet-stream",
        ),
        file_bytes,
        dispatch=lambda document_id: background_tasks.add_task(dispatch_analysis, document_id),
    )
    return DocumentOut.model_validate(doc)


@router.get("", response_model=list[DocumentOut])
def list_documents(
    account_id: str = Depends(get_current_account_id),
    db: Session = Depends(get_db),
    skip: int = Query(0, ge=0, description="Number of documents to skip"),
    limit: int = Query(50, ge=1, le=DOCUMENT_LIST_MAX_PAGE, description="Max documents to return"),
):
    docs = document_store.list_by_account(db, account_id, skip=skip, limit=limit)
    return [DocumentOut.model_validate(doc) for doc in docs]


@router.get("/{doc_id}", response_model=DocumentDetailOut)
def get_document(
    doc_id: str,
    account_id: str = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    """Get metadata and analysis state for a single document."""
    doc = document_store.get(db, doc_id, account_id)
    return DocumentDetailOut.model_validate(doc)


@router.get("/{doc_id}/download", response_model=DocumentDownloadOut)
def download_document(
    doc_id: str,
    account_id: str = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    """Return a short-lived signed URL for the stored file."""
    doc = document_store.get(db, doc_id, account_id)
    if not doc.storage_path:
        raise HTTPException(status_code=404, detail="File not available")

    try:
        url = supabase_storage.get_signed_url(doc.storage_path)
    except Exception as e:
        logger.error(f"Failed to create download URL for {doc_id}: {e}")
        raise HTTPException(status_code=503, detail="Download temporarily unavailable")

    return DocumentDownloadOut(download_url=url, file_name=doc.file_name)


@router.post("/{doc_id}/retry", response_model=DocumentDetailOut)
@limiter.limit(settings.RATE_LIMIT_RETRY)
def retry_document(
    request: Request,
    doc_id: str,
    background_tasks: BackgroundTasks,
    account_id: str = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    """Re-run analysis for a failed document."""
    doc = lifecycle.retry(
        db,
        account_id,
        doc_id,
        dispatch=lambda document_id: background_tasks.add_task(dispatch_analysis, document_id),
    )
    return DocumentDetailOut.model_validate(doc)


@router.delete("/{doc_id}")
def delete_document(
    doc_id: str,
    account_id: str = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    """Delete a document and its stored file, returning its quota."""
    lifecycle.delete_document(db, account_id, doc_id)
    return {"message": "Document deleted", "id": doc_id}
