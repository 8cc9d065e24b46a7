"""
Locust load test suite.

Tokens are minted locally with the service's SECRET_KEY for users that
already exist in the target database (ids LOAD_USER_MIN..LOAD_USER_MAX).
LOAD_EVENT_ID must name a published, approved event with a small limit.

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Overbooking under contention
  locust -f locustfile.py --tags throughput   # Cached public listing
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests

After a concurrency run, verify:
  SELECT COUNT(*) FROM registrations WHERE event_id = X AND status IN (0, 1);
It must not exceed the event's limit.
"""

import os
import random

import jwt
from locust import HttpUser, task, between, tag, events

SECRET_KEY = os.getenv("SECRET_KEY", "campus-activity-secret")
USER_ID_RANGE = (int(os.getenv("LOAD_USER_MIN", "1")), int(os.getenv("LOAD_USER_MAX", "500")))
CONCURRENCY_EVENT_ID = int(os.getenv("LOAD_EVENT_ID", "1"))

EVENT_IDS = []


def token_headers(user_id=None):
    user_id = user_id or random.randint(*USER_ID_RANGE)
    token = jwt.encode({"sub": str(user_id)}, SECRET_KEY, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print(f"\nTarget event {CONCURRENCY_EVENT_ID}, users {USER_ID_RANGE[0]}-{USER_ID_RANGE[1]}\n")


class ConcurrencyUser(HttpUser):
    """
    Many students race for the same few slots.

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = token_headers()

    @tag("concurrency")
    @task
    def register_limited_event(self):
        with self.client.post(
            "/api/v1/registrations/",
            json={"event_id": CONCURRENCY_EVENT_ID},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            # 409: full or already registered, 403: not eligible
            if resp.status_code in (201, 403, 409):
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    Cache effectiveness of the public listing.

    Run twice, with REDIS_ENABLED=true and false, and compare latency:
      locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events_cached(self):
        page = random.randint(1, 5)
        resp = self.client.get(
            f"/api/v1/events/?page={page}&page_size=20",
            name="/api/v1/events/ [cached]",
        )
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    Bad input must produce proper error codes, never a 500.

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = token_headers()

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_event(self):
        with self.client.post(
            "/api/v1/registrations/",
            json={"event_id": 999999},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/registrations/",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (400, 422))

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post(
            "/api/v1/registrations/",
            json={"event_id": CONCURRENCY_EVENT_ID},
            catch_response=True,
        ) as resp:
            self._expect(resp, (401,))

    @tag("edge")
    @task
    def forged_token(self):
        with self.client.post(
            "/api/v1/registrations/",
            json={"event_id": CONCURRENCY_EVENT_ID},
            headers={"Authorization": "Bearer forged.token.value"},
            catch_response=True,
        ) as resp:
            self._expect(resp, (401,))

    @tag("edge")
    @task
    def invalid_review_outcome(self):
        with self.client.patch(
            f"/api/v1/events/{CONCURRENCY_EVENT_ID}/review",
            json={"review_status": "pending"},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (400, 403))


class RealisticUser(HttpUser):
    """
    Mixed workload: mostly browsing, some registrations.

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.headers = token_headers()

    @task(50)
    def browse_events(self):
        resp = self.client.get("/api/v1/events/?page=1&page_size=20")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @task(20)
    def view_event(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @task(10)
    def register(self):
        if EVENT_IDS:
            self.client.post(
                "/api/v1/registrations/",
                json={"event_id": random.choice(EVENT_IDS)},
                headers=self.headers,
            )

    @task(5)
    def my_registrations(self):
        self.client.get("/api/v1/registrations/", headers=self.headers)
