"""
Authentication service handling staff login and account seeding.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from passdesk.core.config import Settings
from passdesk.core.logging import get_logger
from passdesk.core.security import Actor, Role, hash_password, verify_password, create_access_token
from passdesk.models.admin import Admin

logger = get_logger(__name__)


async def authenticate_staff(db: AsyncSession, email: str, password: str, settings: Settings) -> str:
    """
    Authenticate a staff member and return a signed identity token.
    Raises 401 if credentials are invalid.
    """
    result = await db.execute(select(Admin).where(Admin.email == email))
    admin = result.scalar_one_or_none()

    if not admin or not verify_password(password, admin.password_hash):
        logger.warning("login_failed", email=email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    actor = Actor(email=admin.email, role=Role(admin.role), department_id=admin.department_id)
    token = create_access_token(
        actor,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        expires_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    )
    logger.info("staff_logged_in", email=admin.email, role=admin.role, department_id=admin.department_id)
    return token


async def upsert_staff(
    db: AsyncSession,
    email: str,
    password: str,
    role: Role,
    department_id: Optional[int] = None,
) -> Admin:
    """Create a staff account, or reset the password/role/department of an existing one."""
    result = await db.execute(select(Admin).where(Admin.email == email))
    admin = result.scalar_one_or_none()
    if admin is None:
        admin = Admin(email=email)
        db.add(admin)

    admin.password_hash = hash_password(password)
    admin.role = role.value
    admin.department_id = department_id
    await db.commit()
    await db.refresh(admin)

    logger.info("staff_seeded", email=email, role=role.value, department_id=department_id)
    return admin
