"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from ticketing.domain import ticketing


@ticketing.event(part_of="Order")
class OrderPlaced:
    """A buyer started checkout; the price is fixed from here on."""

    __version__ = 1

    order_id = Identifier(required=True)
    event_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    subtotal_cents = Integer(required=True)
    fees_cents = Integer(required=True)
    total_cents = Integer(required=True)
    currency = String(required=True)
    placed_at = DateTime(required=True)


@ticketing.event(part_of="Order")
class OrderPaid:
    """The processor captured the charge."""

    __version__ = 1

    order_id = Identifier(required=True)
    event_id = Identifier(required=True)
    buyer_id = Identifier(required=True)
    payment_reference = String(required=True)
    total_cents = Integer(required=True)
    paid_at = DateTime(required=True)


@ticketing.event(part_of="Order")
class OrderPaymentFailed:
    """The processor declined the charge."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)


@ticketing.event(part_of="Order")
class OrderRefunded:
    """The whole order was refunded and its tickets invalidated."""

    __version__ = 1

    order_id = Identifier(required=True)
    event_id = Identifier(required=True)
    gateway_refund_id = String(required=True)
    amount_cents = Integer(required=True)
    refunded_at = DateTime(required=True)


@ticketing.event(part_of="Order")
class OrderRefundDeclined:
    """The processor definitively declined a refund attempt."""

    __version__ = 1

    order_id = Identifier(required=True)
    attempt = Integer(required=True)
    reason = String(required=True)
    declined_at = DateTime(required=True)
