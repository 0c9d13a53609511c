"""
Quota ledger: per-account storage and document-count accounting.

Usage is tracked as committed counters (``bytes_used``, ``document_count``)
plus outstanding reservations (``bytes_reserved``, ``documents_reserved``).
A reservation is taken before a document is persisted and is then either
committed into usage or released. The upload path reserves, inserts the
document and commits the reservation in one transaction, so an interrupted
upload leaves no reservation behind. Limits are checked against
``used + reserved + requested``, so committed usage never exceeds a limit.

``reserve`` is a compare-and-swap: a single conditional UPDATE that only
matches the account row while the request still fits. The database applies
concurrent reservations for one account one at a time, so two uploads can't
both claim the last slot. ``commit`` and ``release`` are arithmetic UPDATEs
and never read-modify-write in Python.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import case
from sqlalchemy.orm import Session

from core.plans import UNLIMITED, Plan, is_within_limit
from models.account import Account
from services.subscription_service import ensure_account, resolve_plan

logger = logging.getLogger(__name__)


@dataclass
class QuotaDecision:
    allowed: bool
    reason: Optional[str] = None
    account_id: str = ""
    size_bytes: int = 0


def _format_mb(num_bytes: int) -> str:
    return f"{num_bytes / (1024 * 1024):.2f}MB"


def _clamped(expr):
    return case((expr < 0, 0), else_=expr)


def _current_plan(db: Session, account_id: str) -> tuple[Account, Plan]:
    account = ensure_account(db, account_id)
    plan = resolve_plan(account)
    if db.is_modified(account):
        # persist a downgrade made by resolve_plan
        db.commit()
    return account, plan


def _denial_reasons(account: Account, plan: Plan, size_bytes: int) -> list[str]:
    reasons = []
    documents = account.document_count + account.documents_reserved
    if not is_within_limit(documents + 1, plan.max_documents):
        reasons.append(f"Document limit reached ({documents}/{plan.max_documents})")

    stored = account.bytes_used + account.bytes_reserved
    if not is_within_limit(stored + size_bytes, plan.max_storage_bytes):
        reasons.append(
            f"Storage limit reached ({_format_mb(stored)} / {_format_mb(plan.max_storage_bytes)})"
        )
    return reasons


def _file_size_reason(plan: Plan, size_bytes: int) -> Optional[str]:
    if is_within_limit(size_bytes, plan.max_file_size_bytes):
        return None
    return (
        f"File size exceeds limit ({_format_mb(size_bytes)} / "
        f"{_format_mb(plan.max_file_size_bytes)})"
    )


def check(db: Session, account_id: str, size_bytes: int) -> QuotaDecision:
    """
    Non-binding read of whether ``size_bytes`` would currently fit.

    Lets callers turn an upload away before doing any work; only ``reserve``
    actually claims the room.
    """
    if size_bytes < 0:
        raise ValueError("size_bytes must be >= 0")

    account, plan = _current_plan(db, account_id)
    reasons = []
    size_reason = _file_size_reason(plan, size_bytes)
    if size_reason:
        reasons.append(size_reason)
    reasons.extend(_denial_reasons(account, plan, size_bytes))
    if reasons:
        reason = "; ".join(reasons)
        logger.warning(f"Quota denied for account {account_id}: {reason}")
        return QuotaDecision(False, reason, account_id, size_bytes)
    return QuotaDecision(True, None, account_id, size_bytes)


def reserve(db: Session, account_id: str, size_bytes: int, *, flush_only: bool = False) -> QuotaDecision:
    """
    Tentatively claim room for one document of ``size_bytes``.

    Returns an allowed decision once the reservation is written, or a denied
    decision carrying the reason. Nothing is written when denied.

    With ``flush_only`` the reservation stays in the caller's open
    transaction, so it commits together with the document row or is rolled
    back with it.
    """
    if size_bytes < 0:
        raise ValueError("size_bytes must be >= 0")

    account, plan = _current_plan(db, account_id)

    reason = _file_size_reason(plan, size_bytes)
    if reason:
        logger.warning(f"Quota denied for account {account_id}: {reason}")
        return QuotaDecision(False, reason, account_id, size_bytes)

    conditions = [Account.id == account_id]
    if plan.max_documents != UNLIMITED:
        conditions.append(
            Account.document_count + Account.documents_reserved + 1 <= plan.max_documents
        )
    if plan.max_storage_bytes != UNLIMITED:
        conditions.append(
            Account.bytes_used + Account.bytes_reserved + size_bytes <= plan.max_storage_bytes
        )

    try:
        matched = (
            db.query(Account)
            .filter(*conditions)
            .update(
                {
                    Account.bytes_reserved: Account.bytes_reserved + size_bytes,
                    Account.documents_reserved: Account.documents_reserved + 1,
                },
                synchronize_session=False,
            )
        )
        if not flush_only:
            db.commit()
    except Exception:
        if not flush_only:
            db.rollback()
        raise

    if matched:
        logger.debug(f"Reserved {size_bytes} bytes for account {account_id}")
        return QuotaDecision(True, None, account_id, size_bytes)

    db.refresh(account)
    reason = "; ".join(_denial_reasons(account, plan, size_bytes)) or "Quota exceeded"
    logger.warning(f"Quota denied for account {account_id}: {reason}")
    return QuotaDecision(False, reason, account_id, size_bytes)


def _apply(db: Session, account_id: str, values: dict, flush_only: bool) -> None:
    matched = (
        db.query(Account)
        .filter(Account.id == account_id)
        .update(values, synchronize_session=False)
    )
    if not matched:
        logger.warning(f"Quota update skipped: account {account_id} not found")
    if flush_only:
        db.flush()
    else:
        db.commit()


def commit(db: Session, account_id: str, size_bytes: int, *, flush_only: bool = False) -> None:
    """
    Move a reservation into committed usage.

    With ``flush_only`` the change joins the caller's open transaction so it
    commits atomically with the document row.
    """
    _apply(
        db,
        account_id,
        {
            Account.bytes_reserved: _clamped(Account.bytes_reserved - size_bytes),
            Account.documents_reserved: _clamped(Account.documents_reserved - 1),
            Account.bytes_used: Account.bytes_used + size_bytes,
            Account.document_count: Account.document_count + 1,
        },
        flush_only,
    )


def release(
    db: Session,
    account_id: str,
    size_bytes: int,
    *,
    committed: bool = False,
    flush_only: bool = False,
) -> None:
    """
    Give quota back.

    ``committed=False`` reverts a reservation that never reached persistence;
    ``committed=True`` decrements usage for a deleted document. Counters are
    clamped at zero.
    """
    if committed:
        values = {
            Account.bytes_used: _clamped(Account.bytes_used - size_bytes),
            Account.document_count: _clamped(Account.document_count - 1),
        }
    else:
        values = {
            Account.bytes_reserved: _clamped(Account.bytes_reserved - size_bytes),
            Account.documents_reserved: _clamped(Account.documents_reserved - 1),
        }
    _apply(db, account_id, values, flush_only)


def _resource(current: int, limit: int, unit: str) -> dict:
    remaining = UNLIMITED if limit == UNLIMITED else max(0, limit - current)
    return {"current": current, "limit": limit, "unit": unit, "remaining": remaining}


def usage(db: Session, account_id: str) -> dict:
    """Quota display data: ``{current, limit, unit}`` per resource."""
    account, plan = _current_plan(db, account_id)
    return {
        "documents": _resource(
            account.document_count + account.documents_reserved, plan.max_documents, "count"
        ),
        "storage": _resource(
            account.bytes_used + account.bytes_reserved, plan.max_storage_bytes, "bytes"
        ),
    }
