"""
FastAPI dependencies: application context, database session, identity.
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from passdesk.core.context import AppContext
from passdesk.core.logging import get_logger
from passdesk.core.security import Actor, Role, InvalidTokenError, decode_access_token

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


async def get_db(ctx: AppContext = Depends(get_context)) -> AsyncGenerator[AsyncSession, None]:
    async with ctx.session_factory() as session:
        yield session


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    ctx: AppContext = Depends(get_context),
) -> Actor:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return decode_access_token(
            credentials.credentials, ctx.settings.SECRET_KEY, algorithm=ctx.settings.ALGORITHM
        )
    except InvalidTokenError as e:
        logger.info("token_rejected", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_roles(allowed: frozenset[Role]):
    """Coarse role gate. Department scoping is decided later, per resource."""

    def dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed:
            logger.warning("role_forbidden", actor=actor.email, role=actor.role.value)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return actor

    return dependency
