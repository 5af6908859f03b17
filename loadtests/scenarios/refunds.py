"""Refund load test scenarios.

Three stateful SequentialTaskSet journeys: an organizer refund, a buyer
request that an organizer reviews, and a buyer request auto-approved by
the event's policy.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import (
    event_data,
    identity,
    order_data,
    payment_data,
    refund_policy_data,
    refund_request_data,
)
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import EventState, OrderState, RefundRequestState


class _PaidOrderJourney(SequentialTaskSet):
    """Shared first steps: schedule an event, then place and pay an order."""

    auto_approve = False

    def on_start(self):
        self.event = EventState(owner_id=identity("organizer"))
        self.order = OrderState(buyer_id=identity("buyer"))
        self.request = RefundRequestState()

    @task
    def schedule_event(self):
        with self.client.post(
            "/events",
            json=event_data(self.event.owner_id),
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
    def configure_policy(self):
        with self.client.put(
            f"/events/{self.event.event_id}/refund-policy",
            json=refund_policy_data(self.event.owner_id, auto_approve=self.auto_approve),
            catch_response=True,
            name="PUT /events/{id}/refund-policy",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Configure policy failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def place_and_pay(self):
        payload = order_data(self.event.event_id, random.choice(self.event.tier_ids), self.order.buyer_id)
        with self.client.post("/orders", json=payload, catch_response=True, name="POST /orders") as resp:
            if resp.status_code != 201:
                resp.failure(f"Place order failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()
            self.order.order_id = resp.json()["order_id"]

        with self.client.post(
            f"/orders/{self.order.order_id}/payment",
            json=payment_data(),
            catch_response=True,
            name="POST /orders/{id}/payment",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Payment failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()


class OrganizerRefundJourney(_PaidOrderJourney):
    """... -> Organizer Refund -> Repeat Refund (must be refused).

    Generates events: OrderRefunded, TicketRefunded, TierInventoryReleased,
    RefundRecorded.
    """

    @task
    def refund(self):
        self._refund(expect_success=True, name="POST /orders/{id}/refund")

    @task
    def refund_again(self):
        self._refund(expect_success=False, name="POST /orders/{id}/refund (repeat)")

    @task
    def done(self):
        self.interrupt()

    def _refund(self, expect_success, name):
        with self.client.post(
            f"/orders/{self.order.order_id}/refund",
            json={"initiated_by": self.event.owner_id, "reason": "Load test refund"},
            catch_response=True,
            name=name,
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Refund failed: {resp.status_code}: {extract_error_detail(resp)}")
            elif resp.json()["success"] is not expect_success:
                resp.failure(f"Unexpected refund result: {resp.json()}")


class ReviewedRequestJourney(_PaidOrderJourney):
    """... -> Buyer Request -> Organizer Approves or Declines.

    Generates events: RefundRequested, RefundRequestApproved or
    RefundRequestDeclined, RefundRequestProcessed.
    """

    @task
    def submit_request(self):
        with self.client.post(
            "/refund-requests",
            json=refund_request_data(self.order.order_id, self.order.buyer_id),
            catch_response=True,
            name="POST /refund-requests",
        ) as resp:
            if resp.status_code == 201:
                self.request.request_id = resp.json()["request_id"]
                self.request.status = resp.json()["status"]
            else:
                resp.failure(f"Submit request failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def review(self):
        action = "approve" if random.random() < 0.7 else "decline"
        with self.client.post(
            f"/refund-requests/{self.request.request_id}/review",
            json={"action": action, "reviewer_id": self.event.owner_id},
            catch_response=True,
            name=f"POST /refund-requests/{{id}}/review ({action})",
        ) as resp:
            if resp.status_code == 200:
                self.request.status = resp.json()["status"]
            else:
                resp.failure(f"Review failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class AutoApprovedRequestJourney(_PaidOrderJourney):
    """... -> Buyer Request processed without review."""

    auto_approve = True

    @task
    def submit_request(self):
        with self.client.post(
            "/refund-requests",
            json=refund_request_data(self.order.order_id, self.order.buyer_id),
            catch_response=True,
            name="POST /refund-requests (auto-approve)",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(f"Submit request failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class RefundUser(HttpUser):
    """Weighted mix of the refund journeys."""

    tasks = {
        OrganizerRefundJourney: 3,
        ReviewedRequestJourney: 4,
        AutoApprovedRequestJourney: 2,
    }
    wait_time = between(0.5, 2.0)
