"""
Pydantic schemas for analyzer callbacks.
"""
from typing import Literal, Optional

from pydantic import Field, model_validator

from schemas.common import CamelModel


class AnalysisCallback(CamelModel):
    document_id: str
    outcome: Literal["success", "error", "timeout"]
    result_ref: Optional[str] = None
    reason: Optional[str] = None
    attempt: Optional[int] = Field(None, ge=0)   # echoed from the dispatch

    @model_validator(mode="after")
    def result_ref_on_success(self):
        if self.outcome == "success" and not self.result_ref:
            raise ValueError("result_ref is required for a success outcome")
        return self


class AnalysisCallbackAck(CamelModel):
    document_id: str
    status: str
