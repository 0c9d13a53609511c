# Point the app at a throwaway database before anything imports config
import os
import sys
import tempfile

BACKEND_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

_TMP_DIR = tempfile.mkdtemp(prefix="docinsight-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["DEBUG"] = "true"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["ANALYZER_CALLBACK_TOKEN"] = "analyzer-test-token"
os.environ["BILLING_WEBHOOK_SECRET"] = "billing-test-secret"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from core.jwt_handler import create_access_token  # noqa: E402
from db.database import Base, SessionLocal, engine  # noqa: E402
from main import app  # noqa: E402
from models.account import Account  # noqa: E402
from services import supabase_storage  # noqa: E402
from services.analyzer_client import AnalyzerError, AnalyzerTimeout  # noqa: E402
import workers.analysis_worker as analysis_worker  # noqa: E402


class FakeStorage:
    """In-memory stand-in for the Supabase bucket."""

    def __init__(self):
        self.files = {}
        self.fail_uploads = 0   # number of upcoming uploads that raise

    def upload_file(self, file_bytes, file_path, content_type="application/octet-stream", bucket=None):
        if self.fail_uploads:
            self.fail_uploads -= 1
            raise RuntimeError("storage unavailable")
        self.files[file_path] = file_bytes
        return file_path

    def get_signed_url(self, file_path, expires_in=3600, bucket=None):
        return f"https://storage.test/{file_path}?token=signed"

    def delete_file(self, file_path, bucket=None):
        self.files.pop(file_path, None)


class FakeAnalyzer:
    """Records analysis requests; ``mode`` picks how the analyzer answers."""

    def __init__(self):
        self.requests = []
        self.attempts = []
        self.mode = "accept"    # accept | reject | timeout

    def __call__(self, document_id, file_ref, file_url="", attempt=0):
        self.requests.append(document_id)
        self.attempts.append(attempt)
        if self.mode == "timeout":
            raise AnalyzerTimeout("Analyzer did not respond")
        if self.mode == "reject":
            raise AnalyzerError("Analyzer rejected job (500)")


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(monkeypatch):
    fake = FakeStorage()
    monkeypatch.setattr(supabase_storage, "upload_file", fake.upload_file)
    monkeypatch.setattr(supabase_storage, "get_signed_url", fake.get_signed_url)
    monkeypatch.setattr(supabase_storage, "delete_file", fake.delete_file)
    return fake


@pytest.fixture
def analyzer(monkeypatch):
    fake = FakeAnalyzer()
    monkeypatch.setattr(analysis_worker, "request_analysis", fake)
    return fake


@pytest.fixture
def client(storage, analyzer):
    return TestClient(app)


@pytest.fixture
def make_account(db):
    def _make(account_id="acct-1", plan="free", **fields):
        account = Account(id=account_id, plan=plan, subscription_status="active", **fields)
        db.add(account)
        db.commit()
        db.refresh(account)
        return account
    return _make


def auth_headers(account_id="acct-1"):
    token = create_access_token({"sub": account_id})
    return {"Authorization": f"Bearer {token}"}


class Dispatches(list):
    """Collects document ids handed to the analyzer dispatch."""

    def __call__(self, document_id):
        self.append(document_id)


@pytest.fixture
def dispatched():
    return Dispatches()


@pytest.fixture
def headers_for():
    return auth_headers
