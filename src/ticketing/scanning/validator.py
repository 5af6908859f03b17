"""Door scanning: decides whether a presented ticket gets in.

Rules are applied in a fixed order and the first match wins:

    1. scanner must hold a scanning role for the event (else AuthorizationDenied)
    2. malformed or unknown token        → invalid
    3. ticket belongs to another event   → wrong_event
    4. ticket refunded / void            → refunded / void
    5. ticket already redeemed           → duplicate (with original time)
    6. event already over                → expired
    7. redeem                            → valid

Redemption is a conditional write: the ticket is saved against the version
it was read at, so of two scanners racing on one ticket exactly one
commits. The loser re-reads the ticket and reports what it now sees,
normally a duplicate carrying the winner's timestamp.

Each call that passes authorization appends exactly one scan log entry.
"""

from datetime import UTC, datetime

import structlog
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from ticketing.access import AuthorizationDenied
from ticketing.access.policy import authorize_auditor, authorize_scanner
from ticketing.listing.event_listing import EventListing
from ticketing.scanning.results import (
    ScanDuplicate,
    ScanExpired,
    ScanInvalid,
    ScanRefunded,
    ScanResult,
    ScanValid,
    ScanVoid,
    ScanWrongEvent,
    TicketReceipt,
)
from ticketing.scanning.scan_log import ScanLogEntry, ScanOutcome
from ticketing.ticket.qr import normalize_qr_code
from ticketing.ticket.ticket import Ticket, TicketStatus

logger = structlog.get_logger(__name__)

MAX_REDEEM_ATTEMPTS = 3


def validate(event_id, presented_token, scanner_id, now=None) -> ScanResult:
    """Validate a ticket presented at the door of ``event_id``."""
    now = now or datetime.now(UTC)
    listing = current_domain.repository_for(EventListing).get(event_id)

    try:
        authorize_scanner(scanner_id, listing)
    except AuthorizationDenied:
        logger.info("Scan refused: scanner not authorized", event_id=str(event_id), scanner_id=scanner_id)
        raise

    scan = _Scan(listing=listing, scanner_id=scanner_id, raw_token=presented_token, now=now)

    token = normalize_qr_code(presented_token)
    if token is None:
        return scan.invalid("malformed_token")

    ticket = current_domain.repository_for(Ticket).find_by_qr_code(token)
    if ticket is None:
        return scan.invalid("ticket_not_found")

    scan.qr_token = token
    return scan.resolve(ticket)


def scan_log_for_event(event_id, requested_by) -> list[ScanLogEntry]:
    """Audit export: the event's scan log, newest first."""
    listing = current_domain.repository_for(EventListing).get(event_id)
    authorize_auditor(requested_by, listing)

    return (
        current_domain.repository_for(ScanLogEntry)
        ._dao.query.filter(event_id=str(event_id))
        .order_by("-scanned_at")
        .limit(None)
        .all()
        .items
    )


class _Scan:
    """One scan attempt: applies the rules and writes the single log entry."""

    def __init__(self, listing, scanner_id, raw_token, now):
        self.listing = listing
        self.scanner_id = scanner_id
        self.qr_token = raw_token.strip() if isinstance(raw_token, str) else ""
        self.now = now

    # -------------------------------------------------------------------
    # Rule chain
    # -------------------------------------------------------------------
    def resolve(self, ticket) -> ScanResult:
        for _ in range(MAX_REDEEM_ATTEMPTS):
            if str(ticket.event_id) != str(self.listing.id):
                return self._wrong_event(ticket)
            if ticket.status == TicketStatus.REFUNDED.value:
                return self._terminal(ticket, ScanOutcome.REFUNDED)
            if ticket.status == TicketStatus.VOID.value:
                return self._terminal(ticket, ScanOutcome.VOID)
            if ticket.is_redeemed:
                return self._duplicate(ticket)
            if self.listing.has_ended(self.now):
                return self._expired(ticket)

            try:
                ticket.redeem(self.scanner_id, at=self.now)
                current_domain.repository_for(Ticket).add(ticket)
            except ExpectedVersionError:
                logger.info(
                    "Ticket changed while redeeming, re-reading",
                    ticket_id=str(ticket.id),
                    event_id=str(self.listing.id),
                )
                ticket = current_domain.repository_for(Ticket).get(ticket.id)
                continue

            return self._valid(ticket)

        raise ExpectedVersionError(f"Ticket {ticket.id} kept changing during redemption")

    # -------------------------------------------------------------------
    # Outcomes
    # -------------------------------------------------------------------
    def invalid(self, error) -> ScanInvalid:
        self._log(ScanOutcome.INVALID, details={"error": error})
        return ScanInvalid(error=error)

    def _wrong_event(self, ticket) -> ScanWrongEvent:
        self._log(ScanOutcome.WRONG_EVENT, ticket, details={"actual_event_id": str(ticket.event_id)})
        return ScanWrongEvent(ticket_id=str(ticket.id), actual_event_id=str(ticket.event_id))

    def _terminal(self, ticket, outcome):
        self._log(outcome, ticket)
        if outcome == ScanOutcome.REFUNDED:
            return ScanRefunded(ticket_id=str(ticket.id))
        return ScanVoid(ticket_id=str(ticket.id))

    def _duplicate(self, ticket) -> ScanDuplicate:
        self._log(ScanOutcome.DUPLICATE, ticket, details={"original_redeemed_at": ticket.redeemed_at.isoformat()})
        return ScanDuplicate(receipt=self._receipt(ticket), original_redeemed_at=ticket.redeemed_at)

    def _expired(self, ticket) -> ScanExpired:
        self._log(ScanOutcome.EXPIRED, ticket, details={"event_end": self.listing.end_at.isoformat()})
        return ScanExpired(ticket_id=str(ticket.id), event_end=self.listing.end_at)

    def _valid(self, ticket) -> ScanValid:
        self._log(ScanOutcome.VALID, ticket, details={"redeemed_at": ticket.redeemed_at.isoformat()})
        logger.info("Ticket redeemed", ticket_id=str(ticket.id), event_id=str(self.listing.id))
        return ScanValid(receipt=self._receipt(ticket), redeemed_at=ticket.redeemed_at)

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _receipt(self, ticket) -> TicketReceipt:
        tier = self.listing.tier(ticket.tier_id)
        return TicketReceipt(
            ticket_id=str(ticket.id),
            tier_name=tier.name if tier else "",
            attendee_name=ticket.attendee_name or "",
            badge_label=tier.badge_label if tier else None,
        )

    def _log(self, outcome: ScanOutcome, ticket=None, details=None) -> None:
        entry = ScanLogEntry.record(
            event_id=str(self.listing.id),
            scanner_id=self.scanner_id,
            outcome=outcome,
            ticket_id=str(ticket.id) if ticket is not None else None,
            details={"qr_token": self.qr_token, **(details or {})},
            at=self.now,
        )
        current_domain.repository_for(ScanLogEntry).add(entry)
