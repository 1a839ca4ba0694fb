"""
Authentication endpoints: staff login.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from passdesk.api.deps import get_context, get_db
from passdesk.core.context import AppContext
from passdesk.schemas.auth import LoginRequest, Token
from passdesk.services.auth_service import authenticate_staff

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=Token)
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db),
    ctx: AppContext = Depends(get_context),
):
    """Authenticate a staff member and receive a bearer token."""
    token = await authenticate_staff(db, login_data.email, login_data.password, ctx.settings)
    return Token(token=token)
