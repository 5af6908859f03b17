"""Door scanning load test scenarios.

An organizer schedules an event, buyers purchase and pay, then the doors
open: every ticket is scanned once and a share of them is scanned again
to exercise the duplicate path under contention.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import event_data, identity, order_data, payment_data
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import EventState, OrderState

RESCAN_PROBABILITY = 0.3


class DoorNightJourney(SequentialTaskSet):
    """Schedule Event -> Place Order -> Pay -> Fetch Tickets -> Scan (and rescan).

    Generates events: EventScheduled, OrderPlaced, OrderPaid, TicketIssued,
    TicketRedeemed.
    """

    def on_start(self):
        self.event = EventState(owner_id=identity("organizer"))
        self.order = OrderState(buyer_id=identity("buyer"))

    @task
    def schedule_event(self):
        # Starts shortly so the event is not over by the time doors open
        with self.client.post(
            "/events",
            json=event_data(self.event.owner_id, starts_in_days=0),
            catch_response=True,
            name="POST /events",
        ) as resp:
            if resp.status_code == 201:
                self.event.event_id = resp.json()["event_id"]
                self.event.tier_ids = resp.json()["tier_ids"]
            else:
                resp.failure(f"Schedule event failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def place_order(self):
        payload = order_data(self.event.event_id, random.choice(self.event.tier_ids), self.order.buyer_id)
        with self.client.post("/orders", json=payload, catch_response=True, name="POST /orders") as resp:
            if resp.status_code == 201:
                self.order.order_id = resp.json()["order_id"]
            else:
                resp.failure(f"Place order failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def pay(self):
        with self.client.post(
            f"/orders/{self.order.order_id}/payment",
            json=payment_data(),
            catch_response=True,
            name="POST /orders/{id}/payment",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Payment failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def fetch_tickets(self):
        with self.client.get(
            f"/orders/{self.order.order_id}/tickets",
            params={"requested_by": self.order.buyer_id},
            catch_response=True,
            name="GET /orders/{id}/tickets",
        ) as resp:
            if resp.status_code == 200:
                self.order.qr_codes = [t["qr_code"] for t in resp.json()]
            else:
                resp.failure(f"Fetch tickets failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def scan_tickets(self):
        for qr_code in self.order.qr_codes:
            self._scan(qr_code, expected="valid", name="POST /events/{id}/scans (first)")
            if random.random() < RESCAN_PROBABILITY:
                self._scan(qr_code, expected="duplicate", name="POST /events/{id}/scans (rescan)")

    @task
    def done(self):
        self.interrupt()

    def _scan(self, qr_code, expected, name):
        with self.client.post(
            f"/events/{self.event.event_id}/scans",
            json={"qr_code": qr_code, "scanner_id": self.event.owner_id},
            catch_response=True,
            name=name,
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Scan failed: {resp.status_code}: {extract_error_detail(resp)}")
            elif resp.json()["outcome"] != expected:
                resp.failure(f"Expected {expected}, got {resp.json()['outcome']}")


class DoorUser(HttpUser):
    """Door staff working through a queue of ticket holders."""

    tasks = [DoorNightJourney]
    wait_time = between(0.2, 1.0)
