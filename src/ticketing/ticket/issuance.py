"""Ticket issuance: reacts to OrderPaid by minting one ticket per unit.

Issuance is idempotent: an order that already has tickets is left alone, so
a redelivered OrderPaid never doubles admissions or inventory claims.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from ticketing.access.policy import authorize_auditor
from ticketing.domain import ticketing
from ticketing.listing.event_listing import EventListing
from ticketing.order.events import OrderPaid
from ticketing.order.order import Order, OrderStatus
from ticketing.ticket.ticket import Ticket

logger = structlog.get_logger(__name__)


def issue_tickets_for_order(order_id) -> list[Ticket]:
    """Issue the tickets a paid order is owed. Returns the tickets issued now."""
    order = current_domain.repository_for(Order).get(order_id)
    if order.status != OrderStatus.PAID.value:
        logger.info("Order not paid, no tickets issued", order_id=str(order_id), status=order.status)
        return []

    ticket_repo = current_domain.repository_for(Ticket)
    if ticket_repo.find_by_order(str(order.id)):
        logger.info("Tickets already issued", order_id=str(order.id))
        return []

    listing_repo = current_domain.repository_for(EventListing)
    listing = listing_repo.get(order.event_id)

    issued = []
    for line in order.lines:
        tier = listing.tier(line.tier_id)
        first_serial = tier.issued_count + 1 if tier is not None else 1
        listing.claim_inventory(line.tier_id, line.quantity)
        for offset in range(line.quantity):
            issued.append(
                Ticket.issue(
                    event_id=str(order.event_id),
                    order_id=str(order.id),
                    tier_id=str(line.tier_id),
                    owner_id=str(order.buyer_id),
                    serial_no=first_serial + offset,
                )
            )

    listing_repo.add(listing)
    for ticket in issued:
        ticket_repo.add(ticket)

    logger.info("Tickets issued", order_id=str(order.id), count=len(issued))
    return issued


@ticketing.event_handler(part_of=Order)
class TicketIssuanceHandler:
    """Issues tickets once an order is paid."""

    @handle(OrderPaid)
    def on_order_paid(self, event: OrderPaid) -> None:
        issue_tickets_for_order(event.order_id)


def tickets_for_order(order_id, requested_by) -> list[Ticket]:
    """The tickets on an order, for its buyer or the event's managers."""
    order = current_domain.repository_for(Order).get(order_id)
    if str(order.buyer_id) != str(requested_by):
        listing = current_domain.repository_for(EventListing).get(order.event_id)
        authorize_auditor(requested_by, listing)
    return current_domain.repository_for(Ticket).find_by_order(str(order.id))
