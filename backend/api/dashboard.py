"""
Dashboard analytics API routes.
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from dependencies import get_current_account_id, get_db
from schemas.insights_schema import InsightsOut
from services import insights

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("/insights", response_model=InsightsOut)
def get_insights(
    account_id: str = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    """Return real-time analytics for the current account's dashboard."""
    return InsightsOut.model_validate(insights.summarize(db, account_id))
