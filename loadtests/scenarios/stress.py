"""Stress test scenarios.

PricingFloodUser hammers the stateless pricing endpoint. ScanFloodUser
points many door staff at the same handful of tickets so that redemption
races are the common case rather than the exception.
"""

import random

from locust import HttpUser, constant_pacing, events, task

from loadtests.data_generators import event_data, face_value_cents, identity, order_data, payment_data
from loadtests.helpers.response import extract_error_detail

SHARED_TICKETS = 20


class PricingFloodUser(HttpUser):
    """Maximum request rate against GET /pricing."""

    wait_time = constant_pacing(0.05)

    @task
    def price(self):
        self.client.get(
            "/pricing",
            params={"face_value_cents": face_value_cents()},
            name="[STRESS] GET /pricing",
        )


class ScanFloodUser(HttpUser):
    """Many scanners, few tickets: exactly one scan per ticket may be valid.

    The first user to start sets up a shared event and its tickets; every
    user then scans random tickets from that pool.
    """

    wait_time = constant_pacing(0.1)
    shared: dict = {}

    def on_start(self):
        if not ScanFloodUser.shared:
            ScanFloodUser.shared.update(self._prepare())

    def _prepare(self) -> dict:
        owner_id = identity("organizer")
        buyer_id = identity("buyer")
        event = self.client.post("/events", json=event_data(owner_id, starts_in_days=0), name="[SETUP] POST /events")
        event_id = event.json()["event_id"]
        tier_id = event.json()["tier_ids"][0]

        qr_codes = []
        while len(qr_codes) < SHARED_TICKETS:
            order = self.client.post("/orders", json=order_data(event_id, tier_id, buyer_id), name="[SETUP] POST /orders")
            order_id = order.json()["order_id"]
            self.client.post(f"/orders/{order_id}/payment", json=payment_data(), name="[SETUP] POST /orders/{id}/payment")
            tickets = self.client.get(
                f"/orders/{order_id}/tickets",
                params={"requested_by": buyer_id},
                name="[SETUP] GET /orders/{id}/tickets",
            )
            qr_codes.extend(t["qr_code"] for t in tickets.json())

        return {"event_id": event_id, "scanner_id": owner_id, "qr_codes": qr_codes}

    @task
    def scan(self):
        with self.client.post(
            f"/events/{self.shared['event_id']}/scans",
            json={"qr_code": random.choice(self.shared["qr_codes"]), "scanner_id": self.shared["scanner_id"]},
            catch_response=True,
            name="[STRESS] POST /events/{id}/scans",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Scan failed: {resp.status_code}: {extract_error_detail(resp)}")
            elif resp.json()["outcome"] not in ("valid", "duplicate"):
                resp.failure(f"Unexpected outcome {resp.json()['outcome']}")


@events.test_stop.add_listener
def _reset_shared_tickets(**_kwargs):
    ScanFloodUser.shared.clear()
