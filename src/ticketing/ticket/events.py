"""Domain events for the Ticket aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from ticketing.domain import ticketing


@ticketing.event(part_of="Ticket")
class TicketIssued:
    """A paid order produced an admission ticket."""

    __version__ = 1

    ticket_id = Identifier(required=True)
    event_id = Identifier(required=True)
    order_id = Identifier(required=True)
    tier_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    serial_no = Integer(required=True)
    issued_at = DateTime(required=True)


@ticketing.event(part_of="Ticket")
class TicketRedeemed:
    """The ticket holder was admitted at the door."""

    __version__ = 1

    ticket_id = Identifier(required=True)
    event_id = Identifier(required=True)
    scanner_id = Identifier(required=True)
    redeemed_at = DateTime(required=True)


@ticketing.event(part_of="Ticket")
class TicketTransferred:
    """The ticket changed hands before the event."""

    __version__ = 1

    ticket_id = Identifier(required=True)
    from_owner_id = Identifier(required=True)
    to_owner_id = Identifier(required=True)
    transferred_at = DateTime(required=True)


@ticketing.event(part_of="Ticket")
class TicketRefunded:
    """The ticket was invalidated because its order was refunded."""

    __version__ = 1

    ticket_id = Identifier(required=True)
    event_id = Identifier(required=True)
    order_id = Identifier(required=True)
    gateway_refund_id = String(required=True)
    refunded_at = DateTime(required=True)


@ticketing.event(part_of="Ticket")
class TicketVoided:
    """The ticket was cancelled out of band."""

    __version__ = 1

    ticket_id = Identifier(required=True)
    event_id = Identifier(required=True)
    reason = String(required=True)
    voided_at = DateTime(required=True)
