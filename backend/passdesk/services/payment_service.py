"""
Payment verification bridge: converge passes.verified with the external
payment authority for cash payments.

Protocol
========

1. Local fast path: if the pass is already verified, succeed without calling
   out. Retried clicks from the dashboard stop here.
2. Call the payment service with a fresh operation id, the actor and a
   timestamp. The operation id lets the service deduplicate a delivery it
   has already seen.
3. Anything but a 2xx is an UpstreamFailure and nothing local changes.
4. On success, compare-and-swap the flag:

       UPDATE passes SET verified = true, ... WHERE id = :id AND verified = false

   Zero rows means a concurrent caller finished first; that is a success.

No distributed lock: the payment service owns the business decision, and the
local write is a single idempotent column flip. Inside one process, callers
for the same pass share one in-flight verification (SingleFlight), so a burst
of retries costs one upstream call.

The verification runs in its own session: it may outlive the request that
started it when other callers are still waiting on the shared result.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from passdesk.core.logging import get_logger
from passdesk.core.metrics import record_cash_verification
from passdesk.core.security import Actor
from passdesk.core.singleflight import SingleFlight
from passdesk.infrastructure.payment_client import PaymentVerificationClient, PaymentServiceError
from passdesk.models.passes import Pass
from passdesk.services.pass_service import compare_and_set_flag
from passdesk.services.policy import CASH_VERIFIERS
from passdesk.services.results import (
    Ok, Result, NotFound, Forbidden, UpstreamFailure, InternalError, result_tag,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class CashVerification:
    pass_id: uuid.UUID
    already_verified: bool
    operation_id: Optional[uuid.UUID] = None


async def mark_cash_paid(
    session_factory: async_sessionmaker[AsyncSession],
    payments: PaymentVerificationClient,
    flights: SingleFlight,
    pass_id: uuid.UUID,
    actor: Actor,
) -> Result[CashVerification]:
    if actor.role not in CASH_VERIFIERS:
        record_cash_verification("forbidden")
        return Forbidden("role cannot verify cash payments")

    return await flights.do(
        ("cash", pass_id),
        lambda: _verify(session_factory, payments, pass_id, actor),
    )


async def _verify(session_factory, payments, pass_id, actor) -> Result[CashVerification]:
    async with session_factory() as db:
        try:
            verified = (
                await db.execute(select(Pass.verified).where(Pass.id == pass_id))
            ).scalar_one_or_none()
        except SQLAlchemyError:
            logger.exception("cash_verification_storage_error", pass_id=str(pass_id), stage="read")
            return _finish(InternalError("storage error while reading pass"), pass_id)

        if verified is None:
            return _finish(NotFound("pass not found"), pass_id)
        if verified:
            return _finish(Ok(CashVerification(pass_id=pass_id, already_verified=True)), pass_id)

        # Do not hold a connection open while waiting on the upstream
        await db.rollback()

        operation_id = uuid.uuid4()
        now = datetime.now(timezone.utc)
        try:
            await payments.confirm_cash_payment(
                pass_id=pass_id,
                marked_by=actor.email,
                operation_id=operation_id,
                timestamp=now,
            )
        except PaymentServiceError as e:
            logger.error(
                "cash_verification_upstream_failed",
                pass_id=str(pass_id),
                operation_id=str(operation_id),
                error=str(e),
            )
            return _finish(UpstreamFailure("payment verification service rejected or failed the request"), pass_id)

        try:
            changed = await compare_and_set_flag(
                db, Pass.verified, pass_id, verified_by=actor.email, verified_at=now
            )
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception(
                "cash_verification_storage_error",
                pass_id=str(pass_id),
                operation_id=str(operation_id),
                stage="write",
            )
            return _finish(InternalError("storage error while recording verification"), pass_id)

    if not changed:
        # Another caller completed the same transition first
        record_cash_verification("lost_race")
        logger.info("cash_verification_lost_race", pass_id=str(pass_id), operation_id=str(operation_id))
        return Ok(CashVerification(pass_id=pass_id, already_verified=True, operation_id=operation_id))

    return _finish(
        Ok(CashVerification(pass_id=pass_id, already_verified=False, operation_id=operation_id)),
        pass_id,
        actor=actor.email,
        operation_id=str(operation_id),
    )


def _finish(result: Result[CashVerification], pass_id: uuid.UUID, **context) -> Result[CashVerification]:
    if isinstance(result, Ok):
        tag = "already_verified" if result.value.already_verified else "verified"
        record_cash_verification(tag)
        logger.info("cash_verification_done", pass_id=str(pass_id), result=tag, **context)
    else:
        record_cash_verification(result_tag(result))
        logger.warning("cash_verification_rejected", pass_id=str(pass_id), result=result_tag(result), reason=result.reason)
    return result
