"""
Slot allocator: race-safe assignment and removal of slots on a pass.

CONCURRENCY STRATEGY: Pessimistic lock on the pass row
======================================================

Problem:
  Two volunteers scan the same pass at two desks. One assigns event A to
  slot 1, the other assigns event B to slot 1 at the same moment. Both check
  "is slot 1 free?", both see yes, both insert. Or both assign event A to
  different slots and the pass ends up registered twice for one event.

Solution:
  Every write against a pass starts with

      SELECT id FROM passes WHERE id = :pass_id FOR UPDATE

  which serializes all assignment/removal for that one pass. The checks that
  follow (duplicate event, slot taken) then read a stable view of the pass's
  slots. Writers on different passes never wait for each other.

  Contention here is per pass and tiny: at most a couple of desks touch the
  same pass, so a row lock costs nothing and needs no retry loop.

  The unique constraints on (pass_id, slot_no) and (pass_id, event_id) stay
  as the final safety net. If one ever fires (a writer that skipped the lock,
  a manual insert) the IntegrityError is turned into a Conflict instead of a
  500.

Registration counter:
  events.registrations is bumped in the same transaction as the slot insert
  (registrations = registrations + 1 is atomic under concurrent passes) and
  decremented, floored at zero, on delete. It is a derived value;
  reconcile_registrations() recomputes it from the slot table.
"""

import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from passdesk.core.logging import get_logger
from passdesk.core.metrics import (
    record_slot_operation,
    registration_corrections,
    slot_operation_latency,
)
from passdesk.core.security import Actor
from passdesk.models.event import Event
from passdesk.models.passes import Pass
from passdesk.models.slot import Slot, MAX_SLOTS_PER_PASS
from passdesk.services.policy import SLOT_WRITERS, Decision, authorize_actor
from passdesk.services.results import (
    Ok, Result, Invalid, NotFound, Forbidden, Conflict, InternalError, result_tag,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class RegistrationCorrection:
    event_id: int
    previous: int
    actual: int


async def _lock_pass(db: AsyncSession, pass_id: uuid.UUID) -> bool:
    result = await db.execute(select(Pass.id).where(Pass.id == pass_id).with_for_update())
    return result.scalar_one_or_none() is not None


async def assign_slot(
    db: AsyncSession,
    pass_id: uuid.UUID,
    slot_no: int,
    event_id: int,
    actor: Actor,
) -> Result[Slot]:
    """
    Bind ``event_id`` to slot ``slot_no`` of a pass.

    Returns Ok(slot) on success; Invalid, NotFound, Forbidden or Conflict
    otherwise. The transaction is committed on success and rolled back on
    every other outcome.
    """
    started = time.perf_counter()
    try:
        result = await _assign(db, pass_id, slot_no, event_id, actor)
    except IntegrityError as e:
        await db.rollback()
        logger.info("slot_assign_lost_race", pass_id=str(pass_id), slot_no=slot_no, event_id=event_id, error=str(e.orig))
        result = Conflict("slot was taken by a concurrent request")
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("slot_assign_storage_error", pass_id=str(pass_id), slot_no=slot_no, event_id=event_id)
        result = InternalError("storage error while assigning slot")
    else:
        if not isinstance(result, Ok):
            await db.rollback()

    tag = result_tag(result)
    record_slot_operation("assign", tag)
    slot_operation_latency.labels(operation="assign").observe(time.perf_counter() - started)
    if isinstance(result, Ok):
        logger.info(
            "slot_assigned",
            pass_id=str(pass_id),
            slot_no=slot_no,
            event_id=event_id,
            actor=actor.email,
        )
    else:
        logger.warning(
            "slot_assign_rejected",
            pass_id=str(pass_id),
            slot_no=slot_no,
            event_id=event_id,
            actor=actor.email,
            result=tag,
            reason=result.reason,
        )
    return result


async def _assign(db, pass_id, slot_no, event_id, actor) -> Result[Slot]:
    if not 1 <= slot_no <= MAX_SLOTS_PER_PASS:
        return Invalid(f"slot_no must be an integer between 1 and {MAX_SLOTS_PER_PASS}")

    # Step 1: serialize against every other writer of this pass
    if not await _lock_pass(db, pass_id):
        return NotFound("pass not found")

    # Step 2: event and its department
    event = (
        await db.execute(select(Event.id, Event.department_id).where(Event.id == event_id))
    ).one_or_none()
    if event is None:
        return NotFound("event not found")

    # Step 3: department scoping is decided by the event being written
    if authorize_actor(actor, event.department_id, SLOT_WRITERS) is Decision.DENY:
        return Forbidden("event is outside your department")

    # Step 4 and 5: stable under the pass lock
    taken = (
        await db.execute(select(Slot.slot_no, Slot.event_id).where(Slot.pass_id == pass_id))
    ).all()
    if any(row.event_id == event_id for row in taken):
        return Conflict("this event is already assigned to the pass")
    if any(row.slot_no == slot_no for row in taken):
        return Conflict("slot number already used for this pass")

    # Step 6: insert and count in the same transaction
    slot = Slot(
        pass_id=pass_id,
        slot_no=slot_no,
        event_id=event_id,
        attended=False,
        created_at=datetime.now(timezone.utc),
    )
    db.add(slot)
    await db.flush()
    await db.execute(
        update(Event)
        .where(Event.id == event_id)
        .values(registrations=Event.registrations + 1)
    )

    # Step 7
    await db.commit()
    return Ok(slot)


async def delete_slot(
    db: AsyncSession,
    pass_id: uuid.UUID,
    slot_no: int,
    actor: Actor,
) -> Result[Slot]:
    """
    Remove slot ``slot_no`` from a pass, provided it has not been attended.

    The slot row is locked along with the pass, so an attendance mark racing
    with the delete either lands first (and the delete is refused) or waits
    until the slot is gone.
    """
    started = time.perf_counter()
    try:
        result = await _delete(db, pass_id, slot_no, actor)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("slot_delete_storage_error", pass_id=str(pass_id), slot_no=slot_no)
        result = InternalError("storage error while deleting slot")
    else:
        if not isinstance(result, Ok):
            await db.rollback()

    tag = result_tag(result)
    record_slot_operation("delete", tag)
    slot_operation_latency.labels(operation="delete").observe(time.perf_counter() - started)
    if isinstance(result, Ok):
        logger.info(
            "slot_deleted",
            pass_id=str(pass_id),
            slot_no=slot_no,
            event_id=result.value.event_id,
            actor=actor.email,
        )
    else:
        logger.warning(
            "slot_delete_rejected",
            pass_id=str(pass_id),
            slot_no=slot_no,
            actor=actor.email,
            result=tag,
            reason=result.reason,
        )
    return result


async def _delete(db, pass_id, slot_no, actor) -> Result[Slot]:
    if not 1 <= slot_no <= MAX_SLOTS_PER_PASS:
        return Invalid(f"slot_no must be an integer between 1 and {MAX_SLOTS_PER_PASS}")

    if not await _lock_pass(db, pass_id):
        return NotFound("pass not found")

    row = (
        await db.execute(
            select(Slot, Event.department_id)
            .join(Event, Event.id == Slot.event_id)
            .where(Slot.pass_id == pass_id, Slot.slot_no == slot_no)
            .with_for_update(of=Slot)
        )
    ).one_or_none()
    if row is None:
        return NotFound("slot not found")

    slot, department_id = row
    if slot.attended:
        return Conflict("cannot delete attended slot")

    if authorize_actor(actor, department_id, SLOT_WRITERS) is Decision.DENY:
        return Forbidden("event is outside your department")

    deleted = await db.execute(
        delete(Slot).where(
            Slot.pass_id == pass_id,
            Slot.slot_no == slot_no,
            Slot.attended.is_(False),
        )
    )
    if deleted.rowcount != 1:
        return Conflict("slot changed while deleting")

    # Floored at zero to absorb any earlier drift
    await db.execute(
        update(Event)
        .where(Event.id == slot.event_id)
        .values(registrations=func.greatest(Event.registrations - 1, 0))
    )
    await db.commit()
    return Ok(slot)


async def reconcile_registrations(db: AsyncSession) -> Result[list[RegistrationCorrection]]:
    """
    Recompute events.registrations from the slot table.

    Operational escape hatch for counter drift. Only events whose counter
    disagrees with the slot count are touched, and each one is rewritten
    from a fresh count inside the UPDATE itself.
    """
    actual = (
        select(func.count())
        .select_from(Slot)
        .where(Slot.event_id == Event.id)
        .scalar_subquery()
    )
    try:
        drifted = (
            await db.execute(
                select(Event.id, Event.registrations, actual.label("actual"))
                .where(Event.registrations != actual)
                .order_by(Event.id)
                .with_for_update(of=Event)
            )
        ).all()

        corrections = []
        for row in drifted:
            await db.execute(
                update(Event).where(Event.id == row.id).values(registrations=actual)
            )
            corrections.append(
                RegistrationCorrection(event_id=row.id, previous=row.registrations, actual=row.actual)
            )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("registration_reconcile_failed")
        return InternalError("storage error while reconciling registrations")

    if corrections:
        registration_corrections.inc(len(corrections))
    logger.info("registrations_reconciled", corrected=len(corrections))
    return Ok(corrections)
