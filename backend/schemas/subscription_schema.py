"""
Pydantic schemas for subscription status and plan changes.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import field_validator

from core.plans import PLANS
from schemas.common import CamelModel


class QuotaResource(CamelModel):
    current: int
    limit: int          # -1 = unlimited
    unit: str           # "count" | "bytes"
    remaining: int


class QuotaSummary(CamelModel):
    documents: QuotaResource
    storage: QuotaResource


class SubscriptionStatusOut(CamelModel):
    plan: str
    plan_name: str
    status: str
    expires_at: Optional[datetime] = None
    features: List[str] = []
    quota: QuotaSummary


class PlanChange(CamelModel):
    account_id: str
    plan: str
    status: str = "active"
    expires_at: Optional[datetime] = None

    @field_validator("plan")
    @classmethod
    def plan_known(cls, v: str) -> str:
        if v not in PLANS:
            raise ValueError(f"Unknown plan '{v}'. Allowed: {', '.join(PLANS)}")
        return v
