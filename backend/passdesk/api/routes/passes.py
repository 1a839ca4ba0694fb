"""
Pass endpoints: creation, ticket issue and cash payment verification.
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from passdesk.api.deps import get_context, get_current_actor, get_db
from passdesk.api.results import unwrap
from passdesk.core.context import AppContext
from passdesk.core.security import Actor
from passdesk.schemas.passes import PassCreate, PassResponse, CashPaidResponse, IssueResponse
from passdesk.services.pass_service import issue_pass, mark_issued
from passdesk.services.payment_service import mark_cash_paid

router = APIRouter(prefix="/passes", tags=["Passes"])


@router.post("", response_model=PassResponse, status_code=status.HTTP_201_CREATED)
async def create_pass(
    data: PassCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """
    Record a payment receipt and create its pass.
    One pass per payment: a second pass for the same payment id is a 409.
    """
    return unwrap(
        await issue_pass(
            db,
            user_email=data.email,
            payment_id=data.payment_id,
            method=data.method,
            amount=data.amount,
            actor=actor,
            paid_on=data.paid_on,
        )
    )


@router.post("/{pass_id}/issue", response_model=IssueResponse)
async def issue_ticket(
    pass_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    changed = unwrap(await mark_issued(db, pass_id, actor))
    return IssueResponse(changed=changed)


@router.post("/{pass_id}/mark-cash-paid", response_model=CashPaidResponse)
async def cash_paid(
    pass_id: uuid.UUID,
    ctx: AppContext = Depends(get_context),
    actor: Actor = Depends(get_current_actor),
):
    """
    Confirm a cash payment with the payment service and mark the pass verified.

    Safe to retry: an already verified pass succeeds without calling out, and
    concurrent calls for one pass share a single upstream request.
    """
    verification = unwrap(
        await mark_cash_paid(ctx.session_factory, ctx.payments, ctx.flights, pass_id, actor)
    )
    return CashPaidResponse(
        already_verified=verification.already_verified,
        operation_id=verification.operation_id,
    )
