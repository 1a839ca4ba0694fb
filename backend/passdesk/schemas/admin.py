"""
Pydantic schemas for operator endpoints.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class RegistrationCorrectionResponse(BaseModel):
    event_id: int
    previous: int
    actual: int

    model_config = {"from_attributes": True}


class ReconcileResponse(BaseModel):
    ok: bool = True
    corrections: list[RegistrationCorrectionResponse]


class SyncReportResponse(BaseModel):
    status: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    fetched: int = 0
    upserted: int = 0
    skipped: int = 0
    failed: int = 0
    error: Optional[str] = None

    model_config = {"from_attributes": True}
