"""Tests for the RefundRequest aggregate state machine."""

import pytest
from protean.exceptions import ValidationError

from ticketing.refund.events import (
    RefundRequestApproved,
    RefundRequestDeclined,
    RefundRequested,
    RefundRequestProcessed,
    RefundRequestReopened,
)
from ticketing.refund.request import RefundRequest, RefundRequestStatus


def _make_request(details="Flight cancelled"):
    request = RefundRequest.submit(order_id="ord-001", requester_id="buyer-1", reason="cant_attend", details=details)
    request._events.clear()
    return request


class TestSubmit:
    def test_starts_pending(self):
        request = _make_request()
        assert request.status == RefundRequestStatus.PENDING.value
        assert request.is_pending
        assert request.requested_at is not None

    def test_raises_event(self):
        request = RefundRequest.submit(order_id="ord-001", requester_id="buyer-1", reason="other")
        assert isinstance(request._events[0], RefundRequested)

    def test_unknown_reason_rejected(self):
        with pytest.raises(ValidationError):
            RefundRequest.submit(order_id="ord-001", requester_id="buyer-1", reason="changed_my_mind")

    def test_blank_details_dropped(self):
        assert _make_request(details="   ").details is None


class TestProcessingReason:
    def test_with_details(self):
        request = _make_request()
        assert request.processing_reason("Organizer approved") == "Organizer approved: cant_attend - Flight cancelled"

    def test_without_details(self):
        request = _make_request(details=None)
        assert request.processing_reason("Organizer approved") == "Organizer approved: cant_attend"


class TestReview:
    def test_approve(self):
        request = _make_request()
        request.approve("organizer-1", response="Sorry to miss you")
        assert request.status == RefundRequestStatus.APPROVED.value
        assert request.reviewed_by == "organizer-1"
        assert request.reviewer_response == "Sorry to miss you"
        assert isinstance(request._events[0], RefundRequestApproved)

    def test_decline(self):
        request = _make_request()
        request.decline("organizer-1", response="Policy is final")
        assert request.status == RefundRequestStatus.DECLINED.value
        assert isinstance(request._events[0], RefundRequestDeclined)

    def test_reviewed_once(self):
        request = _make_request()
        request.decline("organizer-1")
        with pytest.raises(ValidationError):
            request.approve("organizer-2")


class TestProcessingOutcome:
    def test_mark_processed(self):
        request = _make_request()
        request.approve("organizer-1")
        request._events.clear()
        request.mark_processed("fake_re_1", ledger_entry_id="led-1")
        assert request.status == RefundRequestStatus.PROCESSED.value
        assert request.gateway_refund_id == "fake_re_1"
        assert isinstance(request._events[0], RefundRequestProcessed)

    def test_reopen_after_failure(self):
        request = _make_request()
        request.approve("organizer-1")
        request._events.clear()
        request.reopen("Refund declined")
        assert request.is_pending
        assert request.last_failure == "Refund declined"
        assert request.reviewed_by is None
        assert isinstance(request._events[0], RefundRequestReopened)

    def test_pending_request_cannot_be_processed(self):
        request = _make_request()
        with pytest.raises(ValidationError):
            request.mark_processed("fake_re_1")

    def test_link_ledger_entry_only_once(self):
        request = _make_request()
        request.approve("organizer-1")
        request.mark_processed("fake_re_1")
        request.link_ledger_entry("led-1")
        request.link_ledger_entry("led-2")
        assert request.ledger_entry_id == "led-1"
