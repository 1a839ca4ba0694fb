"""
Locust Load Test Suite

Needs a seeded staff account and synced events:
  python -m passdesk.manage seed-admin --email load@example.com --password load123 --role super_admin
  python -m passdesk.manage sync-events

Run scenarios:
  locust -f locustfile.py --tags contention   # Many desks, one pass, one slot
  locust -f locustfile.py --tags cash         # Retried cash verification
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests

Environment:
  LOAD_STAFF_EMAIL / LOAD_STAFF_PASSWORD   staff credentials (super_admin)
  LOAD_EVENT_IDS                           comma separated synced event ids
"""

import os
import random
import uuid
from locust import HttpUser, task, between, tag, events

STAFF_EMAIL = os.environ.get("LOAD_STAFF_EMAIL", "load@example.com")
STAFF_PASSWORD = os.environ.get("LOAD_STAFF_PASSWORD", "load123")
EVENT_IDS = [int(e) for e in os.environ.get("LOAD_EVENT_IDS", "1,2,3,4,5").split(",") if e.strip()]

# Shared state
CONTENTION_PASS_ID = None
PASS_IDS = []


def login(client):
    resp = client.post("/auth/login", json={"email": STAFF_EMAIL, "password": STAFF_PASSWORD})
    if resp.status_code == 200:
        return {"Authorization": f"Bearer {resp.json()['token']}"}
    return {}


def create_pass(client, headers):
    resp = client.post(
        "/passes",
        json={
            "email": f"load_{random.randint(10000, 99999)}@example.com",
            "payment_id": f"load-{uuid.uuid4()}",
            "method": "cash",
            "amount": "250.00",
        },
        headers=headers,
        name="/passes",
    )
    if resp.status_code == 201:
        return resp.json()["id"]
    return None


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "="*60)
    print(f"SETUP: staff={STAFF_EMAIL} events={EVENT_IDS}")
    print("="*60)


class ContentionUser(HttpUser):
    """
    TEST 1: Slot contention - every user fights over slot 1 of the same pass

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM slots WHERE pass_id = X;           -- at most 4
      SELECT id, registrations FROM events;                   -- matches slot counts
    or POST /admin/reconcile-registrations and expect no corrections.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = login(self.client)
        if self.headers and not CONTENTION_PASS_ID:
            pass_id = create_pass(self.client, self.headers)
            if pass_id:
                globals()["CONTENTION_PASS_ID"] = pass_id
                print(f"\n✓ Created contention pass {pass_id}\n")

    @tag("contention")
    @task(3)
    def assign_slot(self):
        if not CONTENTION_PASS_ID or not self.headers:
            return

        with self.client.post(
            f"/passes/{CONTENTION_PASS_ID}/slots",
            json={"slot_no": random.randint(1, 4), "event_id": random.choice(EVENT_IDS)},
            headers=self.headers,
            name="/passes/{id}/slots",
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: slot or event already taken
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("contention")
    @task(1)
    def delete_slot(self):
        if not CONTENTION_PASS_ID or not self.headers:
            return

        with self.client.delete(
            f"/passes/{CONTENTION_PASS_ID}/slots/{random.randint(1, 4)}",
            headers=self.headers,
            name="/passes/{id}/slots/{slot_no}",
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 404, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class CashRetryUser(HttpUser):
    """
    TEST 2: Cash verification retries - impatient desks clicking repeatedly

    Run: locust -f locustfile.py --tags cash -u 50 -r 10 --run-time 60s

    Needs PAYMENT_SERVICE_URL pointing at a reachable payment service.
    The payment service should see one call per pass.
    """
    wait_time = between(0.1, 0.5)

    def on_start(self):
        self.headers = login(self.client)
        if self.headers:
            pass_id = create_pass(self.client, self.headers)
            if pass_id:
                PASS_IDS.append(pass_id)

    @tag("cash")
    @task
    def mark_cash_paid(self):
        if not PASS_IDS or not self.headers:
            return

        with self.client.post(
            f"/passes/{random.choice(PASS_IDS)}/mark-cash-paid",
            headers=self.headers,
            name="/passes/{id}/mark-cash-paid",
            catch_response=True,
        ) as resp:
            if resp.status_code in (200, 502):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("cash")
    @task(2)
    def scan(self):
        if PASS_IDS and self.headers:
            self.client.get(
                f"/scan/{random.choice(PASS_IDS)}", headers=self.headers, name="/scan/{id}"
            )


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = login(self.client)

    def expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_pass(self):
        with self.client.post(
            f"/passes/{uuid.uuid4()}/slots",
            json={"slot_no": 1, "event_id": EVENT_IDS[0]},
            headers=self.headers,
            name="/passes/{unknown}/slots",
            catch_response=True,
        ) as resp:
            self.expect(resp, (404,))

    @tag("edge")
    @task
    def malformed_pass_id(self):
        with self.client.get(
            "/scan/not-a-uuid", headers=self.headers, name="/scan/{malformed}", catch_response=True
        ) as resp:
            self.expect(resp, (400,))

    @tag("edge")
    @task
    def slot_out_of_range(self):
        if not PASS_IDS:
            return
        with self.client.post(
            f"/passes/{random.choice(PASS_IDS)}/slots",
            json={"slot_no": random.choice([0, 5, -1]), "event_id": EVENT_IDS[0]},
            headers=self.headers,
            name="/passes/{id}/slots [bad slot_no]",
            catch_response=True,
        ) as resp:
            self.expect(resp, (400,))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/passes",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self.expect(resp, (400,))

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.get(f"/scan/{uuid.uuid4()}", name="/scan/{id} [no auth]", catch_response=True) as resp:
            self.expect(resp, (401,))
