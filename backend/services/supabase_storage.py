"""
Document file storage on a Supabase Storage bucket.

Files live under ``account_<account_id>/<document_id>/<file_name>`` so a
document's file can be found and removed from its record alone.
"""
import logging
from supabase import create_client, Client

from config import settings

logger = logging.getLogger(__name__)

# lifetime of download links and of the link handed to the analyzer
SIGNED_URL_TTL_SECONDS = 3600

_client: Client | None = None


def _get_client() -> Client:
    """Lazy-initialize the Supabase client."""
    global _client
    if _client is None:
        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
            raise RuntimeError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY must be set in .env"
            )
        _client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
        logger.info("Supabase client initialized")
    return _client


def _bucket(bucket: str | None):
    return _get_client().storage.from_(bucket or settings.SUPABASE_BUCKET)


def build_path(account_id: str, document_id: str, file_name: str) -> str:
    return f"account_{account_id}/{document_id}/{file_name}"


def upload_file(
    file_bytes: bytes,
    file_path: str,
    content_type: str = "application/octet-stream",
    bucket: str | None = None,
) -> str:
    """
    Store a document's bytes at ``file_path``.

    Uploads overwrite, so retrying a half-finished upload for the same
    document is safe. Returns the storage path.
    """
    _bucket(bucket).upload(
        path=file_path,
        file=file_bytes,
        file_options={"content-type": content_type, "upsert": "true"},
    )
    logger.info(f"Stored {len(file_bytes)} bytes at {file_path}")
    return file_path


def get_signed_url(
    file_path: str, expires_in: int = SIGNED_URL_TTL_SECONDS, bucket: str | None = None
) -> str:
    """Temporary download URL for a stored document."""
    res = _bucket(bucket).create_signed_url(file_path, expires_in)
    # key casing differs between storage client versions
    return res.get("signedURL") or res.get("signedUrl", "")


def delete_file(file_path: str, bucket: str | None = None) -> None:
    _bucket(bucket).remove([file_path])
    logger.info(f"Removed {file_path} from storage")
