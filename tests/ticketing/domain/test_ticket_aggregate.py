"""Tests for the Ticket aggregate and QR tokens."""

from datetime import UTC, datetime

import pytest
from protean.exceptions import ValidationError

from ticketing.ticket.events import TicketIssued, TicketRedeemed, TicketRefunded
from ticketing.ticket.qr import QR_ALPHABET, QR_LENGTH, generate_qr_code, normalize_qr_code
from ticketing.ticket.ticket import Ticket, TicketStatus


def _make_ticket(**overrides):
    ticket = Ticket.issue(
        event_id=overrides.get("event_id", "evt-001"),
        order_id="ord-001",
        tier_id="tier-001",
        owner_id="buyer-1",
        serial_no=1,
        attendee_name="Ada Byron",
        qr_code=overrides.get("qr_code", "K7M2QX9P"),
    )
    ticket._events.clear()
    return ticket


class TestQrCodes:
    def test_generated_code_uses_unambiguous_alphabet(self):
        for _ in range(50):
            code = generate_qr_code()
            assert len(code) == QR_LENGTH
            assert set(code) <= set(QR_ALPHABET)

    def test_normalize_trims_and_upper_cases(self):
        assert normalize_qr_code("  k7m2qx9p \n") == "K7M2QX9P"

    @pytest.mark.parametrize("token", ["", "K7M2QX9", "K7M2QX9PP", "K7M2QX0P", "K7M2QXIP", "K7M2-X9P", None, 12345678])
    def test_normalize_rejects_malformed(self, token):
        assert normalize_qr_code(token) is None


class TestIssue:
    def test_issue_sets_initial_state(self):
        ticket = Ticket.issue(event_id="evt-001", order_id="ord-001", tier_id="tier-001", owner_id="buyer-1", serial_no=3)
        assert ticket.status == TicketStatus.ISSUED.value
        assert ticket.redeemed_at is None
        assert ticket.serial_no == 3
        assert len(ticket.qr_code) == QR_LENGTH

    def test_issue_raises_event(self):
        ticket = Ticket.issue(event_id="evt-001", order_id="ord-001", tier_id="tier-001", owner_id="buyer-1", serial_no=1)
        assert len(ticket._events) == 1
        assert isinstance(ticket._events[0], TicketIssued)


class TestRedeem:
    def test_redeem_sets_status_and_time_together(self):
        ticket = _make_ticket()
        at = datetime(2026, 5, 1, 20, 0, tzinfo=UTC)
        ticket.redeem("scanner-1", at=at)
        assert ticket.status == TicketStatus.REDEEMED.value
        assert ticket.redeemed_at == at
        assert ticket.is_redeemed

    def test_redeem_raises_event(self):
        ticket = _make_ticket()
        ticket.redeem("scanner-1")
        event = ticket._events[0]
        assert isinstance(event, TicketRedeemed)
        assert event.scanner_id == "scanner-1"

    def test_cannot_redeem_twice(self):
        ticket = _make_ticket()
        ticket.redeem("scanner-1")
        first = ticket.redeemed_at
        with pytest.raises(ValidationError):
            ticket.redeem("scanner-2")
        assert ticket.redeemed_at == first

    def test_transferred_ticket_can_be_redeemed(self):
        ticket = _make_ticket()
        ticket.transfer("friend-7", attendee_name="Grace Hopper")
        ticket.redeem("scanner-1")
        assert ticket.status == TicketStatus.REDEEMED.value

    def test_redeemed_at_without_status_is_rejected(self):
        ticket = _make_ticket()
        with pytest.raises(ValidationError):
            ticket.redeemed_at = datetime.now(UTC)


class TestTerminalStates:
    def test_refund(self):
        ticket = _make_ticket()
        ticket.refund("fake_re_1")
        assert ticket.status == TicketStatus.REFUNDED.value
        assert isinstance(ticket._events[0], TicketRefunded)

    def test_redeemed_ticket_cannot_be_refunded(self):
        ticket = _make_ticket()
        ticket.redeem("scanner-1")
        with pytest.raises(ValidationError):
            ticket.refund("fake_re_1")

    def test_refunded_ticket_cannot_be_redeemed(self):
        ticket = _make_ticket()
        ticket.refund("fake_re_1")
        with pytest.raises(ValidationError):
            ticket.redeem("scanner-1")

    def test_void_ticket_cannot_be_transferred(self):
        ticket = _make_ticket()
        ticket.void("Chargeback")
        with pytest.raises(ValidationError):
            ticket.transfer("friend-7")
