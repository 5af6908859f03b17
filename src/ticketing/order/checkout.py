"""Commands and handler for placing and paying orders.

Prices come from the event's tiers, never from the caller; the pricing
engine turns the subtotal into fees and total.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ticketing.domain import ticketing
from ticketing.listing.event_listing import EventListing
from ticketing.order.order import Order

logger = structlog.get_logger(__name__)


@ticketing.command(part_of="Order")
class PlaceOrder:
    """Start checkout for tickets to one event."""

    event_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    buyer_email = String(max_length=254)
    lines = Text(required=True)  # JSON: list of {tier_id, quantity}
    currency = String(max_length=3, default="USD")


@ticketing.command(part_of="Order")
class ConfirmPayment:
    """The processor reports a successful charge."""

    order_id = Identifier(required=True)
    payment_reference = String(required=True, max_length=255)


@ticketing.command(part_of="Order")
class RecordPaymentFailure:
    """The processor reports a declined charge."""

    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)


@ticketing.command_handler(part_of=Order)
class CheckoutHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        requested = json.loads(command.lines) if isinstance(command.lines, str) else command.lines
        listing = current_domain.repository_for(EventListing).get(command.event_id)

        lines = []
        for item in requested:
            tier = listing.tier(item["tier_id"])
            if tier is None:
                raise ValidationError({"lines": [f"Unknown tier {item['tier_id']}"]})
            quantity = int(item["quantity"])
            if quantity < 1:
                raise ValidationError({"lines": ["Quantity must be at least 1"]})
            if quantity > tier.available:
                raise ValidationError({"lines": [f"Only {tier.available} tickets left in {tier.name}"]})
            lines.append(
                {
                    "tier_id": str(tier.id),
                    "quantity": quantity,
                    "unit_price_cents": tier.price_cents,
                }
            )

        order = Order.place(
            buyer_id=command.buyer_id,
            buyer_email=command.buyer_email,
            event_id=command.event_id,
            lines=lines,
            currency=command.currency or "USD",
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            event_id=str(command.event_id),
            total_cents=order.total_cents,
        )
        return str(order.id)

    @handle(ConfirmPayment)
    def confirm_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_paid(command.payment_reference)
        repo.add(order)

    @handle(RecordPaymentFailure)
    def record_payment_failure(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.mark_failed(command.reason)
        repo.add(order)
