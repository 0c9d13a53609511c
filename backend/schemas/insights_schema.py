"""
Pydantic schemas for the analytics dashboard.
"""
from typing import Dict, List

from schemas.common import CamelModel


class ActivityPoint(CamelModel):
    date: str
    count: int


class InsightsOut(CamelModel):
    total_documents: int
    by_status: Dict[str, int]
    by_type: Dict[str, int]
    total_storage_bytes: int
    avg_analysis_duration: float
    recent_activity: List[ActivityPoint]
