"""Tests for door scanning: the rule chain, the scan log and racing scanners."""

from datetime import timedelta

import pytest
from protean import current_domain

from ticketing.access import AuthorizationDenied
from ticketing.scanning.results import (
    ScanDuplicate,
    ScanExpired,
    ScanInvalid,
    ScanRefunded,
    ScanValid,
    ScanVoid,
    ScanWrongEvent,
)
from ticketing.scanning.scan_log import ScanOutcome
from ticketing.scanning.validator import scan_log_for_event, validate
from ticketing.ticket.repository import TicketRepository
from ticketing.ticket.ticket import Ticket, TicketStatus


@pytest.fixture()
def door(make_event, make_paid_order, tickets_for, directory):
    listing = make_event()
    directory.grant_scanner(str(listing.id), "scanner-1")
    order = make_paid_order(listing)
    return listing, tickets_for(order)


def _log(listing):
    return scan_log_for_event(str(listing.id), "organizer-1")


class TestValidScan:
    def test_admits_ticket(self, door):
        listing, tickets = door
        result = validate(str(listing.id), tickets[0].qr_code, "scanner-1")

        assert isinstance(result, ScanValid)
        assert result.success is True
        assert result.receipt.ticket_id == str(tickets[0].id)
        assert result.receipt.tier_name == "General"

        ticket = current_domain.repository_for(Ticket).get(tickets[0].id)
        assert ticket.status == TicketStatus.REDEEMED.value
        assert ticket.redeemed_at == result.redeemed_at

    def test_token_is_normalized(self, door):
        listing, tickets = door
        result = validate(str(listing.id), f"  {tickets[0].qr_code.lower()} ", "scanner-1")
        assert isinstance(result, ScanValid)

    def test_writes_one_log_entry(self, door):
        listing, tickets = door
        validate(str(listing.id), tickets[0].qr_code, "scanner-1")

        entries = _log(listing)
        assert len(entries) == 1
        assert entries[0].outcome == ScanOutcome.VALID.value
        assert entries[0].ticket_id == str(tickets[0].id)
        assert entries[0].detail_dict["qr_token"] == tickets[0].qr_code
        assert "redeemed_at" in entries[0].detail_dict

    def test_event_owner_can_scan(self, door):
        listing, tickets = door
        assert isinstance(validate(str(listing.id), tickets[0].qr_code, "organizer-1"), ScanValid)


class TestRejections:
    def test_second_scan_is_duplicate(self, door):
        listing, tickets = door
        first = validate(str(listing.id), tickets[0].qr_code, "scanner-1")
        second = validate(str(listing.id), tickets[0].qr_code, "scanner-1")

        assert isinstance(second, ScanDuplicate)
        assert second.original_redeemed_at == first.redeemed_at
        assert "Already scanned" in second.message

    def test_malformed_token(self, door):
        listing, _ = door
        result = validate(str(listing.id), "not-a-code", "scanner-1")

        assert isinstance(result, ScanInvalid)
        assert result.error == "malformed_token"
        entry = _log(listing)[0]
        assert entry.ticket_id is None
        assert entry.detail_dict == {"qr_token": "not-a-code", "error": "malformed_token"}

    def test_unknown_token(self, door):
        listing, _ = door
        result = validate(str(listing.id), "ZZZZ2222", "scanner-1")
        assert isinstance(result, ScanInvalid)
        assert result.error == "ticket_not_found"

    @pytest.mark.parametrize(
        "prepare",
        [
            None,
            lambda t: t.redeem("scanner-1"),
            lambda t: t.transfer("friend-7"),
            lambda t: t.refund("fake_re_1"),
            lambda t: t.void("Chargeback"),
        ],
        ids=["issued", "redeemed", "transferred", "refunded", "void"],
    )
    def test_ticket_for_another_event(self, door, make_event, directory, prepare):
        listing, tickets = door
        repo = current_domain.repository_for(Ticket)
        ticket = repo.get(tickets[0].id)
        if prepare is not None:
            prepare(ticket)
            repo.add(ticket)
        before = repo.get(ticket.id)

        other = make_event()
        directory.grant_scanner(str(other.id), "scanner-1")

        result = validate(str(other.id), ticket.qr_code, "scanner-1")

        assert isinstance(result, ScanWrongEvent)
        assert result.actual_event_id == str(listing.id)

        after = repo.get(ticket.id)
        assert after.status == before.status
        assert after.redeemed_at == before.redeemed_at
        assert after._version == before._version

        entries = scan_log_for_event(str(other.id), "organizer-1")
        assert len(entries) == 1
        assert entries[0].outcome == ScanOutcome.WRONG_EVENT.value
        assert entries[0].ticket_id == str(ticket.id)
        assert entries[0].detail_dict["actual_event_id"] == str(listing.id)
        assert _log(listing) == []

    def test_refunded_ticket(self, door):
        listing, tickets = door
        repo = current_domain.repository_for(Ticket)
        ticket = repo.get(tickets[0].id)
        ticket.refund("fake_re_1")
        repo.add(ticket)

        assert isinstance(validate(str(listing.id), ticket.qr_code, "scanner-1"), ScanRefunded)

    def test_void_ticket(self, door):
        listing, tickets = door
        repo = current_domain.repository_for(Ticket)
        ticket = repo.get(tickets[0].id)
        ticket.void("Chargeback")
        repo.add(ticket)

        assert isinstance(validate(str(listing.id), ticket.qr_code, "scanner-1"), ScanVoid)

    def test_event_over(self, make_event, make_paid_order, tickets_for, directory):
        listing = make_event(starts_in=-timedelta(hours=6), duration=timedelta(hours=4))
        directory.grant_scanner(str(listing.id), "scanner-1")
        tickets = tickets_for(make_paid_order(listing))

        result = validate(str(listing.id), tickets[0].qr_code, "scanner-1")

        assert isinstance(result, ScanExpired)
        assert result.event_end == listing.end_at
        assert _log(listing)[0].outcome == ScanOutcome.EXPIRED.value


class TestAuthorization:
    def test_unknown_scanner_is_denied(self, door):
        listing, tickets = door
        with pytest.raises(AuthorizationDenied) as exc:
            validate(str(listing.id), tickets[0].qr_code, "stranger")
        assert exc.value.reason == "not_event_scanner"

    def test_denied_scan_is_not_logged(self, door):
        listing, tickets = door
        with pytest.raises(AuthorizationDenied):
            validate(str(listing.id), tickets[0].qr_code, "stranger")
        assert _log(listing) == []

    def test_disabled_scanner_is_denied(self, door, directory):
        listing, tickets = door
        directory.disable_scanner(str(listing.id), "scanner-1")
        with pytest.raises(AuthorizationDenied):
            validate(str(listing.id), tickets[0].qr_code, "scanner-1")

    def test_scanner_cannot_read_scan_log(self, door):
        listing, _ = door
        with pytest.raises(AuthorizationDenied) as exc:
            scan_log_for_event(str(listing.id), "scanner-1")
        assert exc.value.reason == "not_event_manager"

    def test_event_manager_can_read_scan_log(self, door, directory):
        listing, tickets = door
        directory.grant_event_manager(str(listing.id), "manager-1")
        validate(str(listing.id), tickets[0].qr_code, "scanner-1")
        assert len(scan_log_for_event(str(listing.id), "manager-1")) == 1


class TestConcurrentScans:
    def test_loser_of_a_race_reports_duplicate(self, door, monkeypatch):
        """Two scanners read the ticket; one redeems first. The other must not redeem again."""
        listing, tickets = door
        stale = current_domain.repository_for(Ticket).get(tickets[0].id)

        winner = validate(str(listing.id), tickets[0].qr_code, "organizer-1")
        assert isinstance(winner, ScanValid)

        monkeypatch.setattr(TicketRepository, "find_by_qr_code", lambda self, qr_code: stale)
        loser = validate(str(listing.id), tickets[0].qr_code, "scanner-1")

        assert isinstance(loser, ScanDuplicate)
        assert loser.original_redeemed_at == winner.redeemed_at

        outcomes = sorted(entry.outcome for entry in _log(listing))
        assert outcomes == [ScanOutcome.DUPLICATE.value, ScanOutcome.VALID.value]

        ticket = current_domain.repository_for(Ticket).get(tickets[0].id)
        assert ticket.redeemed_at == winner.redeemed_at

    def test_many_scans_one_redemption(self, door):
        listing, tickets = door
        results = [validate(str(listing.id), tickets[0].qr_code, "scanner-1") for _ in range(5)]
        assert sum(isinstance(r, ScanValid) for r in results) == 1
        assert sum(isinstance(r, ScanDuplicate) for r in results) == 4
