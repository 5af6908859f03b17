"""Tests for customer refund requests, including auto-approval."""

from datetime import timedelta

import pytest
from protean import current_domain

from ticketing.access import SYSTEM_IDENTITY, AuthorizationDenied
from ticketing.order.order import Order, OrderStatus
from ticketing.refund.processing import process_refund
from ticketing.refund.request import RefundRequest, RefundRequestStatus
from ticketing.refund.results import RequestAutoApproved, RequestSubmitted, SubmissionRejected
from ticketing.refund.submission import submit_refund_request
from ticketing.ticket.ticket import Ticket


def _request(request_id):
    return current_domain.repository_for(RefundRequest).get(request_id)


class TestGuards:
    def test_only_the_buyer_may_ask(self, make_event, make_paid_order):
        order = make_paid_order(make_event())
        with pytest.raises(AuthorizationDenied) as exc:
            submit_refund_request(str(order.id), "someone-else", "cant_attend")
        assert exc.value.reason == "not_order_owner"

    def test_organizer_cannot_ask_on_behalf_of_buyer(self, make_event, make_paid_order):
        order = make_paid_order(make_event())
        with pytest.raises(AuthorizationDenied):
            submit_refund_request(str(order.id), "organizer-1", "cant_attend")

    def test_already_refunded(self, make_event, make_paid_order):
        order = make_paid_order(make_event())
        process_refund(str(order.id), None, "organizer-1")

        outcome = submit_refund_request(str(order.id), "buyer-1", "cant_attend")

        assert isinstance(outcome, SubmissionRejected)
        assert outcome.code == "already_refunded"

    def test_one_pending_request_per_order(self, make_event, make_paid_order):
        order = make_paid_order(make_event())
        submit_refund_request(str(order.id), "buyer-1", "cant_attend")

        outcome = submit_refund_request(str(order.id), "buyer-1", "other")

        assert outcome.code == "already_requested"

    def test_window_closed(self, make_event, make_paid_order):
        order = make_paid_order(make_event(starts_in=timedelta(hours=12)))

        outcome = submit_refund_request(str(order.id), "buyer-1", "cant_attend")

        assert outcome == SubmissionRejected(code="not_eligible", reason="refund_window_closed")

    def test_redeemed_ticket(self, make_event, make_paid_order, tickets_for):
        order = make_paid_order(make_event())
        ticket = tickets_for(order)[0]
        ticket.redeem("scanner-1")
        current_domain.repository_for(Ticket).add(ticket)

        outcome = submit_refund_request(str(order.id), "buyer-1", "cant_attend")

        assert outcome.reason == "tickets_redeemed"

    def test_rejection_stores_nothing(self, make_event, make_paid_order):
        order = make_paid_order(make_event(allow_refunds=False))
        submit_refund_request(str(order.id), "buyer-1", "cant_attend")
        assert current_domain.repository_for(RefundRequest).find_pending_for_order(str(order.id)) is None


class TestManualReview:
    def test_waits_for_organizer(self, make_event, make_paid_order, gateway):
        order = make_paid_order(make_event())

        outcome = submit_refund_request(str(order.id), "buyer-1", "cant_attend", details="  Flight cancelled ")

        assert isinstance(outcome, RequestSubmitted)
        assert outcome.status == RefundRequestStatus.PENDING.value
        assert outcome.auto_approval_failure is None
        assert gateway.calls == []

        stored = _request(outcome.request_id)
        assert stored.details == "Flight cancelled"
        assert stored.requester_id == "buyer-1"

    def test_declined_request_does_not_block_a_new_one(self, make_event, make_paid_order):
        order = make_paid_order(make_event())
        first = submit_refund_request(str(order.id), "buyer-1", "cant_attend")
        request = _request(first.request_id)
        request.decline("organizer-1")
        current_domain.repository_for(RefundRequest).add(request)

        outcome = submit_refund_request(str(order.id), "buyer-1", "other")

        assert isinstance(outcome, RequestSubmitted)


class TestAutoApproval:
    def test_refunded_immediately(self, make_event, make_paid_order, gateway):
        order = make_paid_order(make_event(auto_approve_enabled=True))

        outcome = submit_refund_request(str(order.id), "buyer-1", "cant_attend")

        assert isinstance(outcome, RequestAutoApproved)
        assert outcome.refund.amount_cents == 5704
        assert gateway.calls[0]["metadata"]["initiated_by"] == SYSTEM_IDENTITY
        assert gateway.calls[0]["metadata"]["reason"] == "Auto-approved customer request: cant_attend"

        stored = _request(outcome.request_id)
        assert stored.status == RefundRequestStatus.PROCESSED.value
        assert stored.auto_approved is True
        assert stored.reviewed_by == SYSTEM_IDENTITY
        assert stored.ledger_entry_id == outcome.refund.ledger_entry_id
        assert current_domain.repository_for(Order).get(order.id).status == OrderStatus.REFUNDED.value

    def test_close_to_event_goes_to_review(self, make_event, make_paid_order, gateway):
        order = make_paid_order(make_event(starts_in=timedelta(hours=40), auto_approve_enabled=True))

        outcome = submit_refund_request(str(order.id), "buyer-1", "cant_attend")

        assert isinstance(outcome, RequestSubmitted)
        assert gateway.calls == []

    def test_large_order_goes_to_review(self, make_event, make_paid_order):
        listing = make_event(auto_approve_enabled=True)
        order = make_paid_order(listing, quantity=5, tier_index=1)

        outcome = submit_refund_request(str(order.id), "buyer-1", "cant_attend")

        assert isinstance(outcome, RequestSubmitted)

    def test_frequent_requester_goes_to_review(self, make_event, make_paid_order):
        repo = current_domain.repository_for(RefundRequest)
        for n in range(3):
            repo.add(RefundRequest.submit(order_id=f"older-order-{n}", requester_id="buyer-1", reason="other"))
        order = make_paid_order(make_event(auto_approve_enabled=True))

        outcome = submit_refund_request(str(order.id), "buyer-1", "cant_attend")

        assert isinstance(outcome, RequestSubmitted)

    def test_processor_failure_leaves_request_pending(self, make_event, make_paid_order, gateway):
        order = make_paid_order(make_event(auto_approve_enabled=True))
        gateway.configure(should_succeed=False, failure_reason="Card issuer unavailable")

        outcome = submit_refund_request(str(order.id), "buyer-1", "cant_attend")

        assert isinstance(outcome, RequestSubmitted)
        assert outcome.status == RefundRequestStatus.PENDING.value
        assert outcome.auto_approval_failure == "Card issuer unavailable"

        stored = _request(outcome.request_id)
        assert stored.is_pending
        assert stored.last_failure == "Card issuer unavailable"
        assert stored.auto_approved is False
