"""
Slot endpoints: assign an event to a slot, remove an unattended slot.
"""

import uuid

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from passdesk.api.deps import get_current_actor, get_db
from passdesk.api.results import unwrap
from passdesk.core.security import Actor
from passdesk.schemas.passes import SlotAssign, SlotAssignedResponse, SlotResponse, OkResponse
from passdesk.services.slot_service import assign_slot, delete_slot

router = APIRouter(prefix="/passes/{pass_id}/slots", tags=["Slots"])


@router.post("", response_model=SlotAssignedResponse, status_code=status.HTTP_201_CREATED)
async def assign(
    pass_id: uuid.UUID,
    data: SlotAssign,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    slot = unwrap(await assign_slot(db, pass_id, data.slot_no, data.event_id, actor))
    return SlotAssignedResponse(slot=SlotResponse.model_validate(slot))


@router.delete("/{slot_no}", response_model=OkResponse)
async def remove(
    pass_id: uuid.UUID,
    slot_no: int = Path(...),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    unwrap(await delete_slot(db, pass_id, slot_no, actor))
    return OkResponse()
