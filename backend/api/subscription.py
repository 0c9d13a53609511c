"""
Subscription status and billing webhook routes.
"""
import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from dependencies import get_current_account_id, get_db
from schemas.subscription_schema import PlanChange, SubscriptionStatusOut
from services import subscription_service
from config import settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscription", tags=["Subscription"])


@router.get("/status", response_model=SubscriptionStatusOut)
def subscription_status(
    account_id: str = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    """Current plan, its features and quota usage."""
    return SubscriptionStatusOut.model_validate(
        subscription_service.get_subscription_status(db, account_id)
    )


@router.post("/webhook", response_model=SubscriptionStatusOut)
def billing_webhook(
    body: PlanChange,
    x_webhook_secret: Optional[str] = Header(None),
    db: Session = Depends(get_db),
):
    """Plan changes pushed by the billing provider."""
    expected = settings.BILLING_WEBHOOK_SECRET
    if not expected:
        raise HTTPException(status_code=503, detail="Billing webhook is not configured")
    if not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, expected):
        logger.warning("Billing webhook rejected: bad secret")
        raise HTTPException(status_code=401, detail="Invalid webhook secret")

    subscription_service.change_plan(
        db, body.account_id, body.plan, status=body.status, expires_at=body.expires_at
    )
    return SubscriptionStatusOut.model_validate(
        subscription_service.get_subscription_status(db, body.account_id)
    )
