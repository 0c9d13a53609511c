from datetime import datetime, timedelta, timezone

from core.plans import UNLIMITED
from models.account import Account
from services import quota_ledger

MB = 1024 * 1024


def _account(db, account_id="acct-1"):
    db.expire_all()
    return db.query(Account).filter(Account.id == account_id).one()


def test_reserve_provisions_unknown_account_on_free_plan(db):
    decision = quota_ledger.reserve(db, "new-acct", 1 * MB)

    assert decision.allowed
    account = _account(db, "new-acct")
    assert account.plan == "free"
    assert account.bytes_reserved == 1 * MB
    assert account.documents_reserved == 1


def test_reserve_commit_moves_reservation_into_usage(db, make_account):
    make_account()
    assert quota_ledger.reserve(db, "acct-1", 2 * MB).allowed

    quota_ledger.commit(db, "acct-1", 2 * MB)

    account = _account(db)
    assert (account.bytes_used, account.document_count) == (2 * MB, 1)
    assert (account.bytes_reserved, account.documents_reserved) == (0, 0)


def test_release_reverts_pending_reservation(db, make_account):
    make_account()
    quota_ledger.reserve(db, "acct-1", 3 * MB)

    quota_ledger.release(db, "acct-1", 3 * MB)

    account = _account(db)
    assert (account.bytes_reserved, account.documents_reserved) == (0, 0)
    assert (account.bytes_used, account.document_count) == (0, 0)


def test_release_committed_decrements_usage(db, make_account):
    make_account(bytes_used=5 * MB, document_count=2)

    quota_ledger.release(db, "acct-1", 5 * MB, committed=True)

    account = _account(db)
    assert (account.bytes_used, account.document_count) == (0, 1)


def test_release_never_goes_negative(db, make_account):
    make_account(bytes_used=1 * MB, document_count=0)

    quota_ledger.release(db, "acct-1", 4 * MB, committed=True)
    quota_ledger.release(db, "acct-1", 4 * MB)

    account = _account(db)
    assert account.bytes_used == 0
    assert account.document_count == 0
    assert account.bytes_reserved == 0
    assert account.documents_reserved == 0


def test_document_limit_counts_outstanding_reservations(db, make_account):
    make_account(document_count=9)

    assert quota_ledger.reserve(db, "acct-1", 1).allowed
    decision = quota_ledger.reserve(db, "acct-1", 1)

    assert not decision.allowed
    assert "Document limit reached" in decision.reason
    assert _account(db).documents_reserved == 1


def test_storage_limit_denied_without_side_effects(db, make_account):
    make_account(bytes_used=95 * MB, document_count=1)

    decision = quota_ledger.reserve(db, "acct-1", 6 * MB)

    assert not decision.allowed
    assert "Storage limit reached" in decision.reason
    account = _account(db)
    assert (account.bytes_reserved, account.documents_reserved) == (0, 0)


def test_file_size_limit_follows_plan(db, make_account):
    make_account()
    make_account("acct-pro", plan="pro")

    assert not quota_ledger.reserve(db, "acct-1", 11 * MB).allowed
    assert quota_ledger.reserve(db, "acct-pro", 11 * MB).allowed


def test_enterprise_limits_are_unlimited(db, make_account):
    make_account("acct-ent", plan="enterprise", document_count=10_000, bytes_used=500 * 1024 * MB)

    assert quota_ledger.reserve(db, "acct-ent", 40 * MB).allowed

    usage = quota_ledger.usage(db, "acct-ent")
    assert usage["documents"]["limit"] == UNLIMITED
    assert usage["storage"]["remaining"] == UNLIMITED


def test_expired_subscription_is_enforced_as_free(db, make_account):
    make_account(
        "acct-lapsed",
        plan="pro",
        document_count=10,
        subscription_expires_at=datetime.now(timezone.utc) - timedelta(days=1),
    )

    decision = quota_ledger.reserve(db, "acct-lapsed", 1)

    assert not decision.allowed
    account = _account(db, "acct-lapsed")
    assert account.plan == "free"
    assert account.subscription_status == "expired"


def test_usage_reports_current_limit_and_unit(db, make_account):
    make_account(bytes_used=10 * MB, document_count=3)
    quota_ledger.reserve(db, "acct-1", 1 * MB)

    usage = quota_ledger.usage(db, "acct-1")

    assert usage["documents"] == {"current": 4, "limit": 10, "unit": "count", "remaining": 6}
    assert usage["storage"]["current"] == 11 * MB
    assert usage["storage"]["limit"] == 100 * MB
    assert usage["storage"]["unit"] == "bytes"
