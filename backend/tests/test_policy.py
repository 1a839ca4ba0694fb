"""
Tests for the authorization decision function. No database, no HTTP.
"""

import pytest

from passdesk.core.security import Actor, Role
from passdesk.services.policy import (
    ATTENDANCE_MARKERS, SLOT_WRITERS, Decision, authorize, can_see,
)

CSE = 1
ECE = 2


@pytest.mark.parametrize("role", [Role.VOLUNTEER, Role.DEPT_ADMIN])
def test_scoped_writer_own_department(role):
    assert authorize(role, CSE, CSE, SLOT_WRITERS) is Decision.ALLOW


@pytest.mark.parametrize("role", [Role.VOLUNTEER, Role.DEPT_ADMIN])
def test_scoped_writer_other_department(role):
    assert authorize(role, CSE, ECE, SLOT_WRITERS) is Decision.DENY


def test_role_outside_operation_is_denied_even_in_scope():
    assert authorize(Role.EVENT_ADMIN, CSE, CSE, SLOT_WRITERS) is Decision.DENY
    assert authorize(Role.VOLUNTEER, CSE, CSE, ATTENDANCE_MARKERS) is Decision.DENY


def test_super_admin_bypasses_scope():
    assert authorize(Role.SUPER_ADMIN, CSE, ECE, SLOT_WRITERS) is Decision.ALLOW
    assert authorize(Role.SUPER_ADMIN, None, None, ATTENDANCE_MARKERS) is Decision.ALLOW


def test_central_staff_bypass_scope():
    assert authorize(Role.VOLUNTEER, None, ECE, SLOT_WRITERS) is Decision.ALLOW
    assert authorize(Role.EVENT_ADMIN, None, CSE, ATTENDANCE_MARKERS) is Decision.ALLOW


def test_resource_without_department_is_outside_every_scope():
    assert authorize(Role.DEPT_ADMIN, CSE, None, SLOT_WRITERS) is Decision.DENY


def test_event_admin_marks_only_own_department():
    assert authorize(Role.EVENT_ADMIN, ECE, ECE, ATTENDANCE_MARKERS) is Decision.ALLOW
    assert authorize(Role.EVENT_ADMIN, ECE, CSE, ATTENDANCE_MARKERS) is Decision.DENY


def test_visibility_follows_scope():
    scoped = Actor(email="v@example.com", role=Role.EVENT_ADMIN, department_id=CSE)
    central = Actor(email="c@example.com", role=Role.VOLUNTEER)
    assert can_see(scoped, CSE)
    assert not can_see(scoped, ECE)
    assert not can_see(scoped, None)
    assert can_see(central, ECE)
    assert can_see(central, None)
