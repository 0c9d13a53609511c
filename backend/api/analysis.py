"""
Analyzer callback route. The analyzer reports outcomes here, authenticated
by a shared token rather than a user JWT.
"""
import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from schemas.analysis_schema import AnalysisCallback, AnalysisCallbackAck
from dependencies import get_db
from services import lifecycle
from services.lifecycle import AnalysisOutcome
from config import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analysis", tags=["Analysis"])


def verify_analyzer_token(x_analyzer_token: Optional[str] = Header(None)) -> None:
    expected = settings.ANALYZER_CALLBACK_TOKEN
    if not expected:
        logger.error("Analyzer callback rejected: ANALYZER_CALLBACK_TOKEN is not configured")
        raise HTTPException(status_code=503, detail="Analyzer callbacks are not configured")
    if not x_analyzer_token or not hmac.compare_digest(x_analyzer_token, expected):
        raise HTTPException(status_code=401, detail="Invalid analyzer token")


def _to_outcome(body: AnalysisCallback) -> AnalysisOutcome:
    if body.outcome == "success":
        return AnalysisOutcome.success(body.result_ref)
    if body.outcome == "timeout":
        return AnalysisOutcome.timeout()
    return AnalysisOutcome.error(body.reason or "analysis failed")


@router.post("/callback", response_model=AnalysisCallbackAck, dependencies=[Depends(verify_analyzer_token)])
def analysis_callback(body: AnalysisCallback, db: Session = Depends(get_db)):
    """Apply an analyzer outcome. Duplicate deliveries are acknowledged and ignored."""
    doc = lifecycle.on_analysis_result(db, body.document_id, _to_outcome(body), attempt=body.attempt)
    return AnalysisCallbackAck(document_id=doc.id, status=doc.status)
