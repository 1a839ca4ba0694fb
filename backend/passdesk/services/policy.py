"""
Authorization policy.

Role membership is coarse and can be checked before touching any data (see
``api.deps.require_roles``). Department scoping cannot: it depends on the
department of the specific event being written, so every write operation
loads its resource first and then calls ``authorize``.
"""

from enum import Enum
from typing import Iterable, Optional

from passdesk.core.security import Actor, Role

# Operation role sets
SLOT_WRITERS = frozenset({Role.VOLUNTEER, Role.DEPT_ADMIN, Role.SUPER_ADMIN})
ATTENDANCE_MARKERS = frozenset({Role.EVENT_ADMIN, Role.DEPT_ADMIN, Role.SUPER_ADMIN})
CASH_VERIFIERS = frozenset({Role.VOLUNTEER, Role.DEPT_ADMIN, Role.SUPER_ADMIN})
PASS_ISSUERS = frozenset({Role.VOLUNTEER, Role.DEPT_ADMIN, Role.SUPER_ADMIN})
SCANNERS = frozenset(Role)
OPERATORS = frozenset({Role.SUPER_ADMIN})


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


def authorize(
    actor_role: Role,
    actor_department: Optional[int],
    resource_department: Optional[int],
    required_roles: Iterable[Role],
) -> Decision:
    """
    Decide whether an actor may write a resource owned by ``resource_department``.

    super_admin and central staff (no department) are unrestricted once their
    role is allowed. Department-scoped staff only reach resources of their own
    department; a resource without a department is out of every scope.
    """
    if actor_role not in frozenset(required_roles):
        return Decision.DENY
    if actor_role == Role.SUPER_ADMIN or actor_department is None:
        return Decision.ALLOW
    if resource_department is not None and resource_department == actor_department:
        return Decision.ALLOW
    return Decision.DENY


def authorize_actor(actor: Actor, resource_department: Optional[int], required_roles: Iterable[Role]) -> Decision:
    return authorize(actor.role, actor.department_id, resource_department, required_roles)


def can_see(actor: Actor, resource_department: Optional[int]) -> bool:
    """Visibility rule used to filter scan results."""
    return authorize_actor(actor, resource_department, SCANNERS) is Decision.ALLOW
