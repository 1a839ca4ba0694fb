"""
Scan endpoint: what a desk sees after reading a pass QR code.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from passdesk.api.deps import get_current_actor, get_db
from passdesk.api.results import unwrap
from passdesk.core.security import Actor
from passdesk.schemas.passes import ScanResponse, ScannedPassResponse, ScannedSlotResponse
from passdesk.services.pass_service import scan_pass

router = APIRouter(prefix="/scan", tags=["Scan"])


@router.get("/{pass_id}", response_model=ScanResponse, response_model_by_alias=True)
async def scan(
    pass_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Pass details with the slots visible to the caller's department."""
    scanned = unwrap(await scan_pass(db, pass_id, actor))
    return ScanResponse(
        pass_=ScannedPassResponse.model_validate(scanned),
        slots=[ScannedSlotResponse.model_validate(s) for s in scanned.slots],
    )
