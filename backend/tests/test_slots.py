"""
Tests for slot assignment and removal, including concurrency scenarios.
"""

import asyncio
import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select, update

from passdesk.core.security import Role
from passdesk.models import Event, Slot

CSE = 1
ECE = 2


async def registrations(db, event_id: int) -> int:
    db.expire_all()
    return (await db.execute(select(Event.registrations).where(Event.id == event_id))).scalar_one()


async def slot_count(db, event_id: int) -> int:
    return (await db.execute(select(func.count()).select_from(Slot).where(Slot.event_id == event_id))).scalar_one()


def assign(client, pass_id, slot_no, event_id, headers):
    return client.post(f"/passes/{pass_id}/slots", json={"slot_no": slot_no, "event_id": event_id}, headers=headers)


@pytest.mark.asyncio
async def test_assign_and_delete_scenario(client: AsyncClient, db_session, test_pass, volunteer_headers):
    """Assign, refuse a taken slot, refuse a duplicate event, delete; counter follows."""
    response = await assign(client, test_pass.id, 1, 10, volunteer_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["ok"] is True
    assert data["slot"]["slot_no"] == 1
    assert data["slot"]["event_id"] == 10
    assert data["slot"]["attended"] is False
    assert await registrations(db_session, 10) == 1

    response = await assign(client, test_pass.id, 1, 11, volunteer_headers)
    assert response.status_code == 409

    response = await assign(client, test_pass.id, 2, 10, volunteer_headers)
    assert response.status_code == 409

    response = await client.delete(f"/passes/{test_pass.id}/slots/1", headers=volunteer_headers)
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert await registrations(db_session, 10) == 0


@pytest.mark.asyncio
async def test_concurrent_assign_same_slot(client: AsyncClient, db_session, test_pass, super_admin_headers):
    """Two desks race for slot 1 with different events: exactly one wins."""
    r1, r2 = await asyncio.gather(
        assign(client, test_pass.id, 1, 10, super_admin_headers),
        assign(client, test_pass.id, 1, 20, super_admin_headers),
    )
    assert sorted([r1.status_code, r2.status_code]) == [201, 409]

    slots = (await db_session.execute(select(Slot).where(Slot.pass_id == test_pass.id))).scalars().all()
    assert len(slots) == 1
    assert await registrations(db_session, 10) + await registrations(db_session, 20) == 1


@pytest.mark.asyncio
async def test_concurrent_assign_same_event(client: AsyncClient, db_session, test_pass, super_admin_headers):
    """The same event raced into two slots lands once."""
    results = await asyncio.gather(*[
        assign(client, test_pass.id, slot_no, 10, super_admin_headers) for slot_no in (1, 2, 3, 4)
    ])
    statuses = sorted(r.status_code for r in results)
    assert statuses == [201, 409, 409, 409]
    assert await slot_count(db_session, 10) == 1
    assert await registrations(db_session, 10) == 1


@pytest.mark.asyncio
async def test_registrations_match_slots_after_mixed_sequence(
    client: AsyncClient, db_session, test_pass, super_admin_headers
):
    await assign(client, test_pass.id, 1, 10, super_admin_headers)
    await assign(client, test_pass.id, 2, 11, super_admin_headers)
    await assign(client, test_pass.id, 3, 20, super_admin_headers)
    await client.delete(f"/passes/{test_pass.id}/slots/2", headers=super_admin_headers)
    await assign(client, test_pass.id, 2, 30, super_admin_headers)
    await client.delete(f"/passes/{test_pass.id}/slots/1", headers=super_admin_headers)

    for event_id in (10, 11, 20, 30):
        assert await registrations(db_session, event_id) == await slot_count(db_session, event_id)


@pytest.mark.asyncio
async def test_pass_holds_at_most_four_slots(client: AsyncClient, db_session, test_pass, super_admin_headers):
    for slot_no, event_id in zip((1, 2, 3, 4), (10, 11, 20, 30)):
        response = await assign(client, test_pass.id, slot_no, event_id, super_admin_headers)
        assert response.status_code == 201

    response = await assign(client, test_pass.id, 5, 10, super_admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("slot_no", [0, 5, -1])
async def test_slot_number_out_of_range(client: AsyncClient, test_pass, volunteer_headers, slot_no):
    response = await assign(client, test_pass.id, slot_no, 10, volunteer_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_malformed_pass_id(client: AsyncClient, seeded, volunteer_headers):
    response = await assign(client, "not-a-uuid", 1, 10, volunteer_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_pass(client: AsyncClient, seeded, volunteer_headers):
    response = await assign(client, uuid.uuid4(), 1, 10, volunteer_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_unknown_event(client: AsyncClient, test_pass, volunteer_headers):
    response = await assign(client, test_pass.id, 1, 999, volunteer_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_assign_outside_department(client: AsyncClient, db_session, test_pass, headers_for):
    """A CSE volunteer cannot put an ECE event on a pass."""
    response = await assign(client, test_pass.id, 1, 20, headers_for(Role.VOLUNTEER, CSE))
    assert response.status_code == 403
    assert await registrations(db_session, 20) == 0


@pytest.mark.asyncio
async def test_assign_central_event_needs_central_staff(client: AsyncClient, test_pass, headers_for):
    response = await assign(client, test_pass.id, 1, 30, headers_for(Role.DEPT_ADMIN, ECE))
    assert response.status_code == 403

    response = await assign(client, test_pass.id, 1, 30, headers_for(Role.VOLUNTEER))
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_event_admin_cannot_assign(client: AsyncClient, test_pass, headers_for):
    response = await assign(client, test_pass.id, 1, 10, headers_for(Role.EVENT_ADMIN, CSE))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_assign_requires_auth(client: AsyncClient, test_pass):
    response = await client.post(f"/passes/{test_pass.id}/slots", json={"slot_no": 1, "event_id": 10})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_delete_attended_slot_refused(client: AsyncClient, db_session, test_pass, super_admin_headers):
    await assign(client, test_pass.id, 1, 10, super_admin_headers)
    response = await client.post(
        f"/passes/{test_pass.id}/attendance", json={"event_id": 10}, headers=super_admin_headers
    )
    assert response.status_code == 200

    response = await client.delete(f"/passes/{test_pass.id}/slots/1", headers=super_admin_headers)
    assert response.status_code == 409
    assert await slot_count(db_session, 10) == 1
    assert await registrations(db_session, 10) == 1


@pytest.mark.asyncio
async def test_delete_missing_slot(client: AsyncClient, test_pass, volunteer_headers):
    response = await client.delete(f"/passes/{test_pass.id}/slots/3", headers=volunteer_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_slot_out_of_range(client: AsyncClient, test_pass, volunteer_headers):
    response = await client.delete(f"/passes/{test_pass.id}/slots/9", headers=volunteer_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_outside_department(client: AsyncClient, db_session, test_pass, super_admin_headers, headers_for):
    await assign(client, test_pass.id, 1, 20, super_admin_headers)
    response = await client.delete(f"/passes/{test_pass.id}/slots/1", headers=headers_for(Role.VOLUNTEER, CSE))
    assert response.status_code == 403
    assert await slot_count(db_session, 20) == 1


@pytest.mark.asyncio
async def test_reconcile_repairs_drift(client: AsyncClient, db_session, test_pass, super_admin_headers):
    await assign(client, test_pass.id, 1, 10, super_admin_headers)
    await db_session.execute(update(Event).where(Event.id == 10).values(registrations=5))
    await db_session.execute(update(Event).where(Event.id == 20).values(registrations=2))
    await db_session.commit()

    response = await client.post("/admin/reconcile-registrations", headers=super_admin_headers)
    assert response.status_code == 200
    corrections = {c["event_id"]: c for c in response.json()["corrections"]}
    assert corrections[10]["previous"] == 5 and corrections[10]["actual"] == 1
    assert corrections[20]["previous"] == 2 and corrections[20]["actual"] == 0
    assert set(corrections) == {10, 20}

    assert await registrations(db_session, 10) == 1
    assert await registrations(db_session, 20) == 0

    response = await client.post("/admin/reconcile-registrations", headers=super_admin_headers)
    assert response.json()["corrections"] == []


@pytest.mark.asyncio
async def test_reconcile_requires_super_admin(client: AsyncClient, seeded, headers_for):
    response = await client.post("/admin/reconcile-registrations", headers=headers_for(Role.DEPT_ADMIN, CSE))
    assert response.status_code == 403
