"""
Operator endpoints: registration counter repair and manual catalog sync.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from passdesk.api.deps import get_context, get_db, require_roles
from passdesk.api.results import unwrap
from passdesk.core.context import AppContext
from passdesk.core.security import Actor
from passdesk.schemas.admin import ReconcileResponse, RegistrationCorrectionResponse, SyncReportResponse
from passdesk.services.policy import OPERATORS
from passdesk.services.slot_service import reconcile_registrations

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post("/reconcile-registrations", response_model=ReconcileResponse)
async def reconcile(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(require_roles(OPERATORS)),
):
    corrections = unwrap(await reconcile_registrations(db))
    return ReconcileResponse(
        corrections=[RegistrationCorrectionResponse.model_validate(c) for c in corrections]
    )


@router.post("/sync-events", response_model=SyncReportResponse)
async def sync_events(
    ctx: AppContext = Depends(get_context),
    actor: Actor = Depends(require_roles(OPERATORS)),
):
    """Run one catalog sync now. Skipped if a run is already in progress."""
    report = await ctx.event_sync.run()
    return SyncReportResponse.model_validate(report)
