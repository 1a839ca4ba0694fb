"""
Attendance endpoint.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from passdesk.api.deps import get_context, get_current_actor, get_db
from passdesk.api.results import unwrap
from passdesk.core.context import AppContext
from passdesk.core.security import Actor
from passdesk.schemas.passes import AttendanceMark, AttendanceResponse
from passdesk.services.attendance_service import mark_attendance

router = APIRouter(prefix="/passes/{pass_id}/attendance", tags=["Attendance"])


@router.post("", response_model=AttendanceResponse)
async def mark(
    pass_id: uuid.UUID,
    data: AttendanceMark,
    db: AsyncSession = Depends(get_db),
    ctx: AppContext = Depends(get_context),
    actor: Actor = Depends(get_current_actor),
):
    """Mark (or, where enabled, unmark) attendance for one event on a pass. Idempotent."""
    change = unwrap(
        await mark_attendance(
            db,
            pass_id,
            data.event_id,
            data.attended,
            actor,
            reversible=ctx.settings.ATTENDANCE_REVERSIBLE,
        )
    )
    return AttendanceResponse(attended=change.attended, changed=change.changed)
