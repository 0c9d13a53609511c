"""
Account provisioning and subscription plan resolution.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import settings
from core.plans import PLANS, Plan, get_plan
from models.account import Account

logger = logging.getLogger(__name__)

ACTIVE = "active"


def ensure_account(db: Session, account_id: str) -> Account:
    """Return the account row, creating it on the plan default the first time
    an authenticated identifier is seen."""
    account = db.query(Account).filter(Account.id == account_id).first()
    if account:
        return account

    account = Account(
        id=account_id,
        plan=settings.DEFAULT_PLAN,
        subscription_status=ACTIVE,
    )
    db.add(account)
    try:
        db.commit()
    except IntegrityError:
        # Another request provisioned it first
        db.rollback()
        return db.query(Account).filter(Account.id == account_id).one()
    db.refresh(account)
    logger.info(f"Provisioned account {account_id} on plan '{account.plan}'")
    return account


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def resolve_plan(account: Account, now: Optional[datetime] = None) -> Plan:
    """
    Return the plan whose limits currently apply to ``account``.

    An expired or inactive paid subscription reverts the account to the free
    plan. The downgrade is written to the account object; the caller's
    transaction persists it.
    """
    if account.plan == "free":
        return get_plan("free")

    now = now or datetime.now(timezone.utc)
    expired = (
        account.subscription_expires_at is not None
        and _as_utc(account.subscription_expires_at) < now
    )
    if expired or account.subscription_status != ACTIVE:
        previous = account.plan
        account.plan = "free"
        if expired:
            account.subscription_status = "expired"
        account.subscription_expires_at = None
        logger.info(
            f"Account {account.id} reverted from '{previous}' to 'free' "
            f"(status={account.subscription_status})"
        )
        return get_plan("free")

    return get_plan(account.plan)


def change_plan(
    db: Session,
    account_id: str,
    plan_id: str,
    status: str = ACTIVE,
    expires_at: Optional[datetime] = None,
) -> Account:
    """Apply a plan change pushed by the billing provider."""
    if plan_id not in PLANS:
        raise ValueError(f"Unknown plan '{plan_id}'")

    account = ensure_account(db, account_id)
    account.plan = plan_id
    account.subscription_status = status
    # Free never expires
    account.subscription_expires_at = None if plan_id == "free" else expires_at
    db.commit()
    db.refresh(account)

    logger.info(f"Account {account_id} moved to plan '{plan_id}' (status={status})")
    return account


def get_subscription_status(db: Session, account_id: str) -> dict:
    """Plan, subscription details and quota usage for the status page."""
    from services import quota_ledger

    account = ensure_account(db, account_id)
    plan = resolve_plan(account)
    if db.is_modified(account):
        db.commit()

    return {
        "plan": plan.id,
        "plan_name": plan.name,
        "status": account.subscription_status,
        "expires_at": account.subscription_expires_at,
        "features": sorted(plan.features),
        "quota": quota_ledger.usage(db, account_id),
    }
