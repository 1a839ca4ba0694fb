"""
Pass registry: pass creation, scan view and the one-way pass flags.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from passdesk.core.logging import get_logger
from passdesk.core.security import Actor
from passdesk.models.event import Event
from passdesk.models.passes import Pass
from passdesk.models.receipt import Receipt
from passdesk.models.slot import Slot
from passdesk.services.policy import PASS_ISSUERS, can_see
from passdesk.services.results import Ok, Result, NotFound, Forbidden, Conflict, InternalError

logger = get_logger(__name__)


@dataclass
class ScannedSlot:
    slot_no: int
    event_id: int
    event_name: str
    department_id: Optional[int]
    attended: bool


@dataclass
class ScannedPass:
    id: uuid.UUID
    user_email: str
    payment_id: str
    payment_method: str
    verified: bool
    issued: bool
    slots: list[ScannedSlot] = field(default_factory=list)


async def compare_and_set_flag(
    db: AsyncSession,
    flag: InstrumentedAttribute,
    pass_id: uuid.UUID,
    **extra_values,
) -> bool:
    """
    Flip a boolean pass flag from false to true, only if it is still false.

    Returns True when this call performed the transition and False when the
    flag was already set (possibly by a concurrent caller). No lock is taken:
    the WHERE clause is the compare, the row count is the answer.
    """
    result = await db.execute(
        update(Pass)
        .where(Pass.id == pass_id, flag.is_(False))
        .values({flag.key: True, **extra_values})
    )
    return result.rowcount == 1


async def issue_pass(
    db: AsyncSession,
    user_email: str,
    payment_id: str,
    method: str,
    amount: Decimal,
    actor: Actor,
    paid_on: Optional[datetime] = None,
) -> Result[Pass]:
    """Create the receipt and its pass in one transaction, receipt first."""
    if actor.role not in PASS_ISSUERS:
        return Forbidden("role cannot issue passes")

    try:
        db.add(
            Receipt(
                payment_id=payment_id,
                method=method.lower(),
                amount=amount,
                paid_on=paid_on or datetime.now(timezone.utc),
            )
        )
        await db.flush()
        admission = Pass(id=uuid.uuid4(), user_email=user_email, payment_id=payment_id)
        db.add(admission)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning("pass_issue_rejected", payment_id=payment_id, reason="duplicate_payment")
        return Conflict("a pass already exists for this payment")
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("pass_issue_storage_error", payment_id=payment_id)
        return InternalError("storage error while creating pass")

    await db.refresh(admission)
    logger.info("pass_issued", pass_id=str(admission.id), payment_id=payment_id, actor=actor.email)
    return Ok(admission)


async def mark_issued(db: AsyncSession, pass_id: uuid.UUID, actor: Actor) -> Result[bool]:
    """Record that the physical ticket was handed out. Idempotent."""
    if actor.role not in PASS_ISSUERS:
        return Forbidden("role cannot issue tickets")

    exists = (await db.execute(select(Pass.id).where(Pass.id == pass_id))).scalar_one_or_none()
    if exists is None:
        return NotFound("pass not found")

    changed = await compare_and_set_flag(db, Pass.issued, pass_id)
    await db.commit()
    logger.info("ticket_issued", pass_id=str(pass_id), changed=changed, actor=actor.email)
    return Ok(changed)


async def scan_pass(db: AsyncSession, pass_id: uuid.UUID, actor: Actor) -> Result[ScannedPass]:
    """Pass plus the slots the actor's department scope lets them see."""
    row = (
        await db.execute(
            select(Pass, Receipt.method)
            .join(Receipt, Receipt.payment_id == Pass.payment_id)
            .where(Pass.id == pass_id)
        )
    ).one_or_none()
    if row is None:
        return NotFound("pass not found")

    admission, method = row
    slot_rows = (
        await db.execute(
            select(Slot.slot_no, Slot.event_id, Slot.attended, Event.name, Event.department_id)
            .join(Event, Event.id == Slot.event_id)
            .where(Slot.pass_id == pass_id)
            .order_by(Slot.slot_no)
        )
    ).all()

    return Ok(
        ScannedPass(
            id=admission.id,
            user_email=admission.user_email,
            payment_id=admission.payment_id,
            payment_method=method,
            verified=admission.verified,
            issued=admission.issued,
            slots=[
                ScannedSlot(
                    slot_no=s.slot_no,
                    event_id=s.event_id,
                    event_name=s.name,
                    department_id=s.department_id,
                    attended=s.attended,
                )
                for s in slot_rows
                if can_see(actor, s.department_id)
            ],
        )
    )
