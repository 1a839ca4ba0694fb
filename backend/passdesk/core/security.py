"""
Password hashing and signed identity tokens.

Tokens are HS256 JWTs carrying the staff identity the policy layer needs:
    sub            staff email
    role           volunteer | event_admin | dept_admin | super_admin
    department_id  department scope, null for central staff
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import bcrypt
import jwt


class Role(str, Enum):
    VOLUNTEER = "volunteer"
    EVENT_ADMIN = "event_admin"
    DEPT_ADMIN = "dept_admin"
    SUPER_ADMIN = "super_admin"


@dataclass(frozen=True)
class Actor:
    """Authenticated staff member, as decoded from the bearer token."""

    email: str
    role: Role
    department_id: Optional[int] = None

    @property
    def is_central(self) -> bool:
        return self.department_id is None


class InvalidTokenError(Exception):
    pass


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in the admins table
        return False


def create_access_token(
    actor: Actor,
    secret_key: str,
    algorithm: str = "HS256",
    expires_minutes: int = 720,
) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": actor.email,
        "role": actor.role.value,
        "department_id": actor.department_id,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def decode_access_token(token: str, secret_key: str, algorithm: str = "HS256") -> Actor:
    try:
        payload = jwt.decode(token, secret_key, algorithms=[algorithm])
    except jwt.PyJWTError as e:
        raise InvalidTokenError(str(e)) from e

    try:
        role = Role(payload["role"])
        email = payload["sub"]
    except (KeyError, ValueError) as e:
        raise InvalidTokenError("token is missing identity claims") from e

    department_id = payload.get("department_id")
    return Actor(
        email=email,
        role=role,
        department_id=int(department_id) if department_id is not None else None,
    )
