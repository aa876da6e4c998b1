"""
Locust Load Test Suite

Events and tickets can only be created by an admin, so the setup logs in
with ADMIN_EMAIL / ADMIN_PASSWORD (seed one before running).

Run scenarios:
  locust -f locustfile.py --tags concurrency  # 100 users race for 10 tickets
  locust -f locustfile.py --tags throughput   # Read-heavy browsing
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
import string
from datetime import datetime, timezone, timedelta

import requests
from locust import HttpUser, task, between, tag, events

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@eventflow.io")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "adminpass123")
PASSWORD = "loadtest123"
CONTENDED_TICKETS = 10

# Shared state
EVENT_IDS = []
CONTENDED = {"event_id": None, "ticket_id": None}


def random_email():
    return "load_" + "".join(random.choices(string.ascii_lowercase + string.digits, k=10)) + "@test.com"


def register(client):
    """Register a fresh user and return auth headers (empty on failure)."""
    resp = client.post("/api/v1/auth/register", json={
        "name": "Load Tester",
        "email": random_email(),
        "password": PASSWORD,
    })
    if resp.status_code != 201:
        return {}
    return {"Authorization": f"Bearer {resp.json()['data']['token']}"}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Setup: one published event with a single ticket type of 10 units."""
    host = environment.host or "http://localhost:8000"
    session = requests.Session()

    resp = session.post(f"{host}/api/v1/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    if resp.status_code != 200:
        print(f"\nSETUP SKIPPED: admin login failed ({resp.status_code})\n")
        return
    session.headers["Authorization"] = f"Bearer {resp.json()['data']['token']}"

    start = datetime.now(timezone.utc) + timedelta(days=30)
    resp = session.post(f"{host}/api/v1/events", json={
        "title": "Concurrency Test Event",
        "description": f"{CONTENDED_TICKETS} tickets only",
        "venue": "Load Hall",
        "start_date": start.isoformat(),
        "end_date": (start + timedelta(hours=3)).isoformat(),
        "max_attendees": 1000,
        "price": "0",
    })
    if resp.status_code != 201:
        print(f"\nSETUP FAILED: event creation returned {resp.status_code}\n")
        return
    event_id = resp.json()["data"]["id"]

    resp = session.post(f"{host}/api/v1/events/{event_id}/tickets", json={
        "name": "General Admission",
        "price": "0",
        "quantity": CONTENDED_TICKETS,
    })
    if resp.status_code == 201:
        CONTENDED.update(event_id=event_id, ticket_id=resp.json()["data"]["id"])
        EVENT_IDS.append(event_id)
        print(f"\nCreated event {event_id} with {CONTENDED_TICKETS} tickets\n")


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users -> 10 tickets

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT COALESCE(SUM(quantity), 0) FROM bookings
      WHERE ticket_id = X AND status IN ('pending', 'confirmed');
    Should be <= 10, and equal to tickets.quantity - tickets.available_quantity
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = register(self.client)

    @tag("concurrency")
    @task
    def book_contended_ticket(self):
        """All users fight for the same 10 units."""
        if not CONTENDED["ticket_id"] or not self.headers:
            return

        with self.client.post("/api/v1/bookings",
            json={"event_id": CONTENDED["event_id"], "ticket_id": CONTENDED["ticket_id"], "quantity": 1},
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: sold out
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - read path

    Run: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s

    Compare avg response time, requests/sec and P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events(self):
        page = random.randint(1, 5)
        self.client.get(f"/api/v1/events?page={page}&limit=20", name="/api/v1/events")

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            event_id = random.choice(EVENT_IDS)
            self.client.get(f"/api/v1/events/{event_id}", name="/api/v1/events/{id}")
            self.client.get(f"/api/v1/events/{event_id}/tickets", name="/api/v1/events/{id}/tickets")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = register(self.client)

    def _expect(self, payload, allowed, headers=None, **kwargs):
        with self.client.post("/api/v1/bookings",
            json=payload,
            headers=self.headers if headers is None else headers,
            catch_response=True,
            **kwargs
        ) as resp:
            if resp.status_code in allowed:
                resp.success()
            else:
                resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def invalid_event_id(self):
        self._expect({"event_id": 999999, "ticket_id": 1, "quantity": 1}, (404,))

    @tag("edge")
    @task
    def zero_quantity(self):
        self._expect({"event_id": 1, "ticket_id": 1, "quantity": 0}, (422,))

    @tag("edge")
    @task
    def huge_quantity(self):
        self._expect({"event_id": 1, "ticket_id": 1, "quantity": 999999}, (422,))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post("/api/v1/bookings",
            data="not json at all",
            headers={**self.headers, "Content-Type": "application/json"},
            catch_response=True
        ) as resp:
            if resp.status_code == 422:
                resp.success()
            else:
                resp.failure(f"Expected 422, got {resp.status_code}")

    @tag("edge")
    @task
    def missing_auth(self):
        self._expect({"event_id": 1, "ticket_id": 1, "quantity": 1}, (401,), headers={})


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing, some bookings, a few cancellations.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = register(self.client)
        self.booking_ids = []

    @task(50)
    def browse_events(self):
        resp = self.client.get("/api/v1/events?page=1&limit=20", name="/api/v1/events")
        if resp.status_code == 200:
            for event in resp.json().get("data") or []:
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @task(10)
    def book_tickets(self):
        if not EVENT_IDS or not self.headers:
            return
        event_id = random.choice(EVENT_IDS)
        resp = self.client.get(f"/api/v1/events/{event_id}/tickets", name="/api/v1/events/{id}/tickets")
        tickets = resp.json().get("data") if resp.status_code == 200 else None
        if not tickets:
            return
        with self.client.post("/api/v1/bookings",
            json={"event_id": event_id, "ticket_id": random.choice(tickets)["id"], "quantity": random.randint(1, 3)},
            headers=self.headers,
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                self.booking_ids.append(resp.json()["data"]["booking"]["id"])
                resp.success()
            elif resp.status_code == 409:
                resp.success()

    @task(2)
    def cancel_booking(self):
        if self.booking_ids:
            booking_id = self.booking_ids.pop()
            self.client.post(f"/api/v1/bookings/{booking_id}/cancel",
                headers=self.headers, name="/api/v1/bookings/{id}/cancel")
