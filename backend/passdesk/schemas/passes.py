"""
Pydantic schemas for passes, slots, attendance and cash verification.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from passdesk.models.slot import MAX_SLOTS_PER_PASS


class PassCreate(BaseModel):
    email: EmailStr
    payment_id: str = Field(..., min_length=1, max_length=100)
    method: str = Field("cash", min_length=1, max_length=20)
    amount: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    paid_on: Optional[datetime] = None


class PassResponse(BaseModel):
    id: uuid.UUID
    user_email: str
    payment_id: str
    verified: bool
    issued: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class SlotAssign(BaseModel):
    slot_no: int = Field(..., ge=1, le=MAX_SLOTS_PER_PASS)
    event_id: int


class SlotResponse(BaseModel):
    pass_id: uuid.UUID
    slot_no: int
    event_id: int
    attended: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class SlotAssignedResponse(BaseModel):
    ok: bool = True
    slot: SlotResponse


class OkResponse(BaseModel):
    ok: bool = True


class AttendanceMark(BaseModel):
    event_id: int
    attended: bool = True


class AttendanceResponse(BaseModel):
    ok: bool = True
    attended: bool
    changed: bool


class CashPaidResponse(BaseModel):
    ok: bool = True
    already_verified: bool
    operation_id: Optional[uuid.UUID] = None


class IssueResponse(BaseModel):
    ok: bool = True
    changed: bool


class ScannedSlotResponse(BaseModel):
    slot_no: int
    event_id: int
    event_name: str
    department_id: Optional[int]
    attended: bool

    model_config = {"from_attributes": True}


class ScannedPassResponse(BaseModel):
    id: uuid.UUID
    user_email: str
    payment_id: str
    payment_method: str
    verified: bool
    issued: bool

    model_config = {"from_attributes": True}


class ScanResponse(BaseModel):
    pass_: ScannedPassResponse = Field(..., alias="pass")
    slots: list[ScannedSlotResponse]

    model_config = {"populate_by_name": True}
