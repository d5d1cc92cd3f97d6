"""
Locust Load Test Suite

Seed a flight and a small fare class pool first (e.g. 10 seats), then point
the run at it:

  LOAD_FLIGHT_ID=1 LOAD_FARE_CLASS_ID=1 locust -f locustfile.py --tags concurrency
  locust -f locustfile.py --tags throughput   # Availability cache
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py --tags payment      # Duplicate gateway callbacks
  locust -f locustfile.py                     # All tests

After a concurrency run, verify no oversell:
  SELECT COUNT(*) FROM tickets WHERE flight_id = X AND status <> 'canceled';
  SELECT remaining_seats FROM seat_pools WHERE flight_id = X;
The ticket count plus remaining_seats must equal total_seats.
"""

import os
import random
import string
from locust import HttpUser, task, between, tag

FLIGHT_ID = int(os.environ.get("LOAD_FLIGHT_ID", "1"))
FARE_CLASS_ID = int(os.environ.get("LOAD_FARE_CLASS_ID", "1"))


def random_passenger():
    citizen_id = "".join(random.choices(string.ascii_uppercase + string.digits, k=12))
    return {"full_name": f"Load Tester {citizen_id[:4]}", "citizen_id": citizen_id}


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users fight for a 10 seat pool

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s
    """
    wait_time = between(0, 0.1)

    @tag("concurrency")
    @task
    def book_last_seats(self):
        with self.client.post(
            "/api/v1/bookings/",
            json={
                "flight_id": FLIGHT_ID,
                "fare_class_id": FARE_CLASS_ID,
                "passengers": [random_passenger() for _ in range(random.randint(1, 2))],
            },
            catch_response=True,
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: sold out or seat race lost
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - availability cache effectiveness

    Run once with Redis and once without, then compare latency percentiles.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def availability(self):
        self.client.get(
            f"/api/v1/flights/{FLIGHT_ID}/availability",
            name="/api/v1/flights/{id}/availability [cached]",
        )

    @tag("throughput", "read")
    @task(3)
    def seat_lookup(self):
        seat = f"{random.randint(1, 30)}{random.choice('ABCDEF')}"
        self.client.get(
            f"/api/v1/tickets/seat-availability?flight_id={FLIGHT_ID}&seat_number={seat}",
            name="/api/v1/tickets/seat-availability",
        )

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - bad input must map to 4xx, never 500
    """
    wait_time = between(0.5, 1.5)

    def _expect(self, payload, allowed, name):
        with self.client.post("/api/v1/bookings/", json=payload, name=name, catch_response=True) as resp:
            if resp.status_code in allowed:
                resp.success()
            else:
                resp.failure(f"Expected {allowed}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_flight(self):
        self._expect(
            {"flight_id": 999999, "fare_class_id": FARE_CLASS_ID, "passengers": [random_passenger()]},
            [404],
            "bookings [unknown flight]",
        )

    @tag("edge")
    @task
    def no_passengers(self):
        self._expect(
            {"flight_id": FLIGHT_ID, "fare_class_id": FARE_CLASS_ID, "passengers": []},
            [422],
            "bookings [no passengers]",
        )

    @tag("edge")
    @task
    def mismatched_seats(self):
        self._expect(
            {
                "flight_id": FLIGHT_ID,
                "fare_class_id": FARE_CLASS_ID,
                "passengers": [random_passenger(), random_passenger()],
                "seat_numbers": ["1A"],
            },
            [422],
            "bookings [mismatched seats]",
        )

    @tag("edge")
    @task
    def bad_citizen_id(self):
        self._expect(
            {
                "flight_id": FLIGHT_ID,
                "fare_class_id": FARE_CLASS_ID,
                "passengers": [{"full_name": "Bad Id", "citizen_id": "!!"}],
            },
            [422],
            "bookings [bad citizen id]",
        )

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/bookings/",
            data="not json at all",
            name="bookings [malformed]",
            catch_response=True,
        ) as resp:
            if resp.status_code in [400, 422]:
                resp.success()
            else:
                resp.failure(f"Expected 400/422, got {resp.status_code}")


class PaymentUser(HttpUser):
    """
    TEST 4: At-least-once gateway delivery

    Each user books, creates an order and delivers the success callback
    three times. Every delivery must answer 200 and the tickets end PAID once.
    """
    wait_time = between(0.5, 1)

    @tag("payment")
    @task
    def book_and_pay_with_replays(self):
        resp = self.client.post(
            "/api/v1/bookings/",
            json={"flight_id": FLIGHT_ID, "fare_class_id": FARE_CLASS_ID, "passengers": [random_passenger()]},
        )
        if resp.status_code != 201:
            return
        code = resp.json()["confirmation_code"]

        order = self.client.post(f"/api/v1/payments/{code}/order", name="/api/v1/payments/{code}/order")
        if order.status_code != 200:
            return

        callback = {"order_id": order.json()["order_id"], "success": True}
        for _ in range(3):
            with self.client.post("/api/v1/payments/callback", json=callback, catch_response=True) as cb:
                if cb.status_code == 200 and cb.json()["status"] == "paid":
                    cb.success()
                else:
                    cb.failure(f"Callback not idempotent: {cb.status_code}")
