"""Background work for the analysis pipeline: dispatch to the analyzer and the
timeout sweep. Both open their own DB session, as they run outside requests."""
import logging

from db.database import SessionLocal
from core.errors import DocumentNotFound, InvalidTransition
from services import lifecycle, supabase_storage
from services.analyzer_client import AnalyzerError, AnalyzerTimeout, request_analysis
from services.lifecycle import AnalysisOutcome

logger = logging.getLogger(__name__)


def _signed_url(file_path: str) -> str:
    try:
        return supabase_storage.get_signed_url(file_path)
    except Exception as e:
        # The analyzer can still fetch by storage path
        logger.warning(f"Could not sign URL for {file_path}: {e}")
        return ""


def dispatch_analysis(document_id: str):
    """
    Hand one document to the analyzer.

    The document moves to ``processing`` before the request goes out, so a
    fast analyzer callback always finds it there. A rejected or timed-out
    request fails the document right away.
    Runs synchronously so FastAPI dispatches it to a thread pool.
    """
    db = SessionLocal()
    try:
        try:
            doc = lifecycle.mark_processing(db, document_id)
        except (DocumentNotFound, InvalidTransition) as e:
            # Deleted or settled before the task ran
            logger.info(f"Skipping analysis dispatch for {document_id}: {e}")
            return

        file_url = _signed_url(doc.storage_path) if doc.storage_path else ""
        attempt = doc.retry_count or 0

        try:
            request_analysis(document_id, doc.storage_path or "", file_url, attempt=attempt)
        except AnalyzerTimeout as e:
            logger.error(f"Analyzer timed out for document {document_id}: {e}")
            lifecycle.on_analysis_result(db, document_id, AnalysisOutcome.timeout(), attempt=attempt)
        except AnalyzerError as e:
            logger.error(f"Analyzer dispatch failed for document {document_id}: {e}")
            lifecycle.on_analysis_result(db, document_id, AnalysisOutcome.error(str(e)), attempt=attempt)
    except Exception as e:
        logger.error(f"Error dispatching document {document_id}: {e}", exc_info=True)
        raise
    finally:
        db.close()


def sweep_timeouts() -> list:
    """Fail documents whose analysis has outlived ANALYSIS_TIMEOUT_SECONDS."""
    db = SessionLocal()
    try:
        return lifecycle.expire_stale(db)
    finally:
        db.close()
