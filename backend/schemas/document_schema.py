"""
Pydantic schemas for document-related request / response models.
"""
from datetime import datetime
from typing import Optional

from schemas.common import CamelModel


class DocumentOut(CamelModel):
    id: str
    file_name: str
    file_type: str
    file_size: int
    status: str
    created_at: datetime


class DocumentDetailOut(DocumentOut):
    updated_at: Optional[datetime] = None
    result_ref: Optional[str] = None
    failure_reason: Optional[str] = None
    retry_count: int = 0
    analysis_start_time: Optional[datetime] = None
    analysis_end_time: Optional[datetime] = None


class DocumentDownloadOut(CamelModel):
    download_url: str
    file_name: str
