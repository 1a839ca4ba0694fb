"""
Attendance tracker.

A slot moves unattended -> attended. Moving back is only possible when the
deployment turns on ATTENDANCE_REVERSIBLE. Re-applying the current state is
a successful no-op, so a scanner that retries never sees an error.

The transition itself is a conditional update:

    UPDATE slots SET attended = :to
    WHERE pass_id = :pass_id AND event_id = :event_id AND attended = :from

The slot row is locked (SELECT ... FOR UPDATE) before its state is read, so
the update always sees the state it was decided on, and a mark racing with
a slot removal either lands first or finds the slot gone (NotFound).
"""

import uuid
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from passdesk.core.logging import get_logger
from passdesk.core.metrics import record_attendance
from passdesk.core.security import Actor
from passdesk.models.event import Event
from passdesk.models.slot import Slot
from passdesk.services.policy import ATTENDANCE_MARKERS, Decision, authorize_actor
from passdesk.services.results import (
    Ok, Result, NotFound, Forbidden, Conflict, InternalError, result_tag,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class AttendanceChange:
    pass_id: uuid.UUID
    event_id: int
    attended: bool
    changed: bool


async def mark_attendance(
    db: AsyncSession,
    pass_id: uuid.UUID,
    event_id: int,
    attended: bool,
    actor: Actor,
    reversible: bool = False,
) -> Result[AttendanceChange]:
    try:
        result = await _mark(db, pass_id, event_id, attended, actor, reversible)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("attendance_storage_error", pass_id=str(pass_id), event_id=event_id)
        result = InternalError("storage error while marking attendance")
    else:
        if not isinstance(result, Ok):
            await db.rollback()

    if isinstance(result, Ok):
        record_attendance("changed" if result.value.changed else "unchanged")
        logger.info(
            "attendance_marked",
            pass_id=str(pass_id),
            event_id=event_id,
            attended=attended,
            changed=result.value.changed,
            actor=actor.email,
        )
    else:
        record_attendance(result_tag(result))
        logger.warning(
            "attendance_rejected",
            pass_id=str(pass_id),
            event_id=event_id,
            actor=actor.email,
            result=result_tag(result),
            reason=result.reason,
        )
    return result


async def _mark(db, pass_id, event_id, attended, actor, reversible) -> Result[AttendanceChange]:
    event = (
        await db.execute(select(Event.id, Event.department_id).where(Event.id == event_id))
    ).one_or_none()
    if event is None:
        return NotFound("event not found")

    if authorize_actor(actor, event.department_id, ATTENDANCE_MARKERS) is Decision.DENY:
        return Forbidden("event is outside your department")

    # Row lock: a concurrent delete_slot either finishes first (the slot is
    # gone) or waits for this mark and then refuses an attended slot
    current = (
        await db.execute(
            select(Slot.attended)
            .where(Slot.pass_id == pass_id, Slot.event_id == event_id)
            .with_for_update()
        )
    ).scalar_one_or_none()
    if current is None:
        return NotFound("slot for event not found on this pass")

    unchanged = AttendanceChange(pass_id=pass_id, event_id=event_id, attended=attended, changed=False)
    if current == attended:
        await db.commit()
        return Ok(unchanged)
    if not attended and not reversible:
        return Conflict("attendance cannot be unmarked")

    updated = await db.execute(
        update(Slot)
        .where(
            Slot.pass_id == pass_id,
            Slot.event_id == event_id,
            Slot.attended.is_(not attended),
        )
        .values(attended=attended)
    )
    await db.commit()
    if updated.rowcount == 0:
        return Ok(unchanged)
    return Ok(AttendanceChange(pass_id=pass_id, event_id=event_id, attended=attended, changed=True))
