"""
Domain error taxonomy for the document lifecycle and quota core.

Each error carries a stable ``kind`` that callers can switch on and the HTTP
status the API layer answers with (see the handler registered in main.py).
"""
from typing import Optional


class LifecycleError(Exception):
    """Base class for errors raised by the lifecycle / quota core."""
    kind = "LifecycleError"
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class QuotaExceeded(LifecycleError):
    """Raised when an upload would push the account past a plan limit"""
    kind = "QuotaExceeded"
    status_code = 403

    def __init__(self, reason: str, quota: Optional[dict] = None):
        super().__init__(reason)
        self.reason = reason
        self.quota = quota or {}


class InvalidTransition(LifecycleError):
    """Raised when a document status change is not in the transition table"""
    kind = "InvalidTransition"
    status_code = 409

    def __init__(self, document_id: str, current: str, target: str, reason: Optional[str] = None):
        detail = reason or f"Document {document_id} cannot move from '{current}' to '{target}'"
        super().__init__(detail)
        self.document_id = document_id
        self.current = current
        self.target = target


class StorageError(LifecycleError):
    """Raised when persisting a document (file or record) fails"""
    kind = "StorageError"
    status_code = 503

    def __init__(self, reason: str = "Document could not be stored"):
        super().__init__(reason)


class DocumentNotFound(LifecycleError):
    """Raised when a document doesn't exist for the requesting account"""
    kind = "DocumentNotFound"
    status_code = 404

    def __init__(self, document_id: str):
        super().__init__(f"Document {document_id} not found")
        self.document_id = document_id
