"""Domain events for the EventListing aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from ticketing.domain import ticketing


@ticketing.event(part_of="EventListing")
class EventScheduled:
    """An organizer scheduled a ticketed event."""

    __version__ = 1

    event_id = Identifier(required=True)
    title = String(required=True)
    owner_id = Identifier(required=True)
    org_id = Identifier()
    start_at = DateTime(required=True)
    end_at = DateTime()
    tier_count = Integer(default=0)


@ticketing.event(part_of="EventListing")
class RefundPolicyConfigured:
    """The organizer changed how refunds behave for the event."""

    __version__ = 1

    event_id = Identifier(required=True)
    allow_refunds = Boolean(required=True)
    refund_window_hours = Integer(required=True)
    auto_approve_enabled = Boolean(required=True)
    refund_fees = Boolean(required=True)
    configured_by = Identifier(required=True)


@ticketing.event(part_of="EventListing")
class TierInventoryReleased:
    """Refunded tickets went back on sale."""

    __version__ = 1

    event_id = Identifier(required=True)
    tier_id = Identifier(required=True)
    quantity = Integer(required=True)
    issued_count = Integer(required=True)
