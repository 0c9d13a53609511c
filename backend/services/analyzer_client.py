"""
HTTP client for the external document analyzer.

The analyzer accepts a job and reports back later through
``POST /api/analysis/callback``.
"""
import logging

import httpx

from config import settings

logger = logging.getLogger(__name__)


class AnalyzerError(Exception):
    """Raised when the analyzer rejects or fails to accept a job."""
    pass


class AnalyzerTimeout(AnalyzerError):
    """Raised when the analyzer doesn't answer within ANALYZER_TIMEOUT_SECONDS."""
    pass


def request_analysis(document_id: str, file_ref: str, file_url: str = "", attempt: int = 0) -> None:
    """
    Submit one document to the analyzer. Returns once the job is accepted.

    ``attempt`` is echoed back in the callback so results of an earlier run
    can be told apart from the current one.
    """
    headers = {}
    if settings.ANALYZER_API_KEY:
        headers["Authorization"] = f"Bearer {settings.ANALYZER_API_KEY}"

    payload = {
        "document_id": document_id,
        "file_ref": file_ref,
        "file_url": file_url,
        "attempt": attempt,
        "callback_url": settings.ANALYZER_CALLBACK_URL,
    }

    try:
        with httpx.Client(timeout=settings.ANALYZER_TIMEOUT_SECONDS) as client:
            response = client.post(
                f"{settings.ANALYZER_URL.rstrip('/')}/analyze",
                json=payload,
                headers=headers,
            )
            response.raise_for_status()
    except httpx.TimeoutException as e:
        raise AnalyzerTimeout(f"Analyzer did not respond: {e}") from e
    except httpx.HTTPStatusError as e:
        raise AnalyzerError(
            f"Analyzer rejected job ({e.response.status_code})"
        ) from e
    except httpx.HTTPError as e:
        raise AnalyzerError(f"Analyzer unreachable: {e}") from e

    logger.info(f"Analyzer accepted document {document_id}")
