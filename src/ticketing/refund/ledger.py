"""Refund ledger: the local mirror of money the processor has returned.

Two paths report the same processor refund: the synchronous refund call
and the processor's confirmation webhook. Both end in the RecordRefund
command, keyed by the processor's refund id. Whichever arrives first
invalidates the tickets, releases inventory, marks the order refunded and
writes the entry. The second finds the entry and only stamps the
confirmation id if it was missing.

The entry is added before anything else changes, so the processor refund
id is claimed first. A writer that loses a race either fails that unique
claim or collides on the order's version and is retried; both ways it
ends up finding the winner's entry and stops.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import UTC, datetime

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from ticketing.domain import ticketing
from ticketing.listing.event_listing import EventListing
from ticketing.order.order import Order, OrderStatus
from ticketing.refund.events import RefundConfirmed, RefundRecorded
from ticketing.refund.request import RefundRequest
from ticketing.ticket.ticket import REFUNDABLE_STATUSES, Ticket, TicketStatus

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ticketing.aggregate
class RefundLedgerEntry:
    order_id = Identifier(required=True)
    event_id = Identifier(required=True)
    gateway_refund_id = String(max_length=255, required=True, unique=True)
    confirmation_id = String(max_length=255)
    amount_cents = Integer(required=True)
    currency = String(max_length=3, default="USD")
    reason = Text()
    refund_type = String(max_length=20, required=True)  # organizer | admin
    initiated_by = Identifier(required=True)
    tickets_refunded = Integer(default=0)
    inventory_released = Integer(default=0)
    processed_at = DateTime(required=True)
    confirmed_at = DateTime()

    @classmethod
    def record(
        cls,
        order,
        gateway_refund_id,
        amount_cents,
        reason,
        refund_type,
        initiated_by,
        tickets_refunded,
        inventory_released,
        confirmation_id=None,
    ):
        now = datetime.now(UTC)
        entry = cls(
            order_id=str(order.id),
            event_id=str(order.event_id),
            gateway_refund_id=gateway_refund_id,
            confirmation_id=confirmation_id,
            amount_cents=amount_cents,
            currency=order.currency,
            reason=reason,
            refund_type=refund_type,
            initiated_by=initiated_by,
            tickets_refunded=tickets_refunded,
            inventory_released=inventory_released,
            processed_at=now,
            confirmed_at=now if confirmation_id else None,
        )
        entry.raise_(
            RefundRecorded(
                entry_id=str(entry.id),
                order_id=str(order.id),
                event_id=str(order.event_id),
                gateway_refund_id=gateway_refund_id,
                amount_cents=amount_cents,
                currency=order.currency,
                refund_type=refund_type,
                initiated_by=str(initiated_by),
                tickets_refunded=tickets_refunded,
                inventory_released=inventory_released,
                processed_at=now,
            )
        )
        return entry

    def confirm(self, confirmation_id) -> bool:
        """Stamp the processor's confirmation. Returns False if already stamped."""
        if self.confirmation_id:
            return False

        now = datetime.now(UTC)
        self.confirmation_id = confirmation_id
        self.confirmed_at = now

        self.raise_(
            RefundConfirmed(
                entry_id=str(self.id),
                gateway_refund_id=self.gateway_refund_id,
                confirmation_id=confirmation_id,
                confirmed_at=now,
            )
        )
        return True


@ticketing.repository(part_of=RefundLedgerEntry)
class RefundLedgerRepository:
    def find_by_gateway_refund_id(self, gateway_refund_id: str) -> RefundLedgerEntry | None:
        return self._dao.query.filter(gateway_refund_id=gateway_refund_id).all().first

    def find_by_order(self, order_id: str) -> list[RefundLedgerEntry]:
        return self._dao.query.filter(order_id=order_id).order_by("processed_at").all().items


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------
@ticketing.command(part_of=RefundLedgerEntry)
class RecordRefund:
    """Mirror a processor refund locally. Safe to send more than once."""

    order_id = Identifier(required=True)
    gateway_refund_id = String(required=True, max_length=255)
    amount_cents = Integer(required=True)
    reason = Text()
    refund_type = String(required=True, max_length=20)
    initiated_by = Identifier(required=True)
    confirmation_id = String(max_length=255)


@dataclass(frozen=True)
class LedgerWrite:
    """What a RecordRefund did: the entry id and whether it was created now."""

    entry_id: str
    created: bool
    tickets_refunded: int


@ticketing.command_handler(part_of=RefundLedgerEntry)
class RefundLedgerHandler:
    @handle(RecordRefund)
    def record_refund(self, command):
        ledger_repo = current_domain.repository_for(RefundLedgerEntry)

        existing = ledger_repo.find_by_gateway_refund_id(command.gateway_refund_id)
        if existing is not None:
            return self._already_recorded(ledger_repo, existing, command)

        order_repo = current_domain.repository_for(Order)
        listing_repo = current_domain.repository_for(EventListing)
        ticket_repo = current_domain.repository_for(Ticket)

        order = order_repo.get(command.order_id)
        listing = listing_repo.get(order.event_id)
        tickets = self._refundable_tickets(ticket_repo, order)

        released_by_tier = Counter(str(ticket.tier_id) for ticket in tickets)
        inventory_released = sum(listing.releasable(tier_id, count) for tier_id, count in released_by_tier.items())

        entry = RefundLedgerEntry.record(
            order=order,
            gateway_refund_id=command.gateway_refund_id,
            amount_cents=command.amount_cents,
            reason=command.reason,
            refund_type=command.refund_type,
            initiated_by=command.initiated_by,
            tickets_refunded=len(tickets),
            inventory_released=inventory_released,
            confirmation_id=command.confirmation_id,
        )

        # Claim the processor refund id before touching tickets or the order
        try:
            ledger_repo.add(entry)
        except ValidationError as exc:
            if not isinstance(exc.messages, dict) or "gateway_refund_id" not in exc.messages:
                raise
            logger.info("Refund recorded by a concurrent writer", gateway_refund_id=command.gateway_refund_id)
            winner = ledger_repo.find_by_gateway_refund_id(command.gateway_refund_id)
            return self._already_recorded(ledger_repo, winner, command)

        for ticket in tickets:
            ticket.refund(command.gateway_refund_id)
            ticket_repo.add(ticket)

        if released_by_tier:
            for tier_id, count in released_by_tier.items():
                listing.release_inventory(tier_id, count)
            listing_repo.add(listing)

        if order.status != OrderStatus.REFUNDED.value:
            order.mark_refunded(command.gateway_refund_id, command.amount_cents)
            order_repo.add(order)

        request_repo = current_domain.repository_for(RefundRequest)
        for request in request_repo.find_by_gateway_refund_id(command.gateway_refund_id):
            request.link_ledger_entry(str(entry.id))
            request_repo.add(request)

        logger.info(
            "Refund recorded",
            order_id=str(order.id),
            gateway_refund_id=command.gateway_refund_id,
            tickets_refunded=len(tickets),
            inventory_released=inventory_released,
        )
        return LedgerWrite(str(entry.id), created=True, tickets_refunded=len(tickets))

    def _already_recorded(self, ledger_repo, existing, command):
        if command.confirmation_id and existing.confirm(command.confirmation_id):
            ledger_repo.add(existing)
            logger.info(
                "Refund confirmation stamped",
                gateway_refund_id=command.gateway_refund_id,
                confirmation_id=command.confirmation_id,
            )
        else:
            logger.info("Refund already recorded", gateway_refund_id=command.gateway_refund_id)
        return LedgerWrite(str(existing.id), created=False, tickets_refunded=existing.tickets_refunded)

    def _refundable_tickets(self, ticket_repo, order):
        refundable = []
        for ticket in ticket_repo.find_by_order(str(order.id)):
            if ticket.status in REFUNDABLE_STATUSES:
                refundable.append(ticket)
            elif ticket.status == TicketStatus.REDEEMED.value:
                logger.warning(
                    "Redeemed ticket left as is during refund",
                    ticket_id=str(ticket.id),
                    order_id=str(order.id),
                )
        return refundable
