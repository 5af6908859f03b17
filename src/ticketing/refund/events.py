"""Domain events for refund requests and the refund ledger."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from ticketing.domain import ticketing


# ---------------------------------------------------------------------------
# Refund requests
# ---------------------------------------------------------------------------
@ticketing.event(part_of="RefundRequest")
class RefundRequested:
    """A customer asked for their order to be refunded."""

    __version__ = 1

    request_id = Identifier(required=True)
    order_id = Identifier(required=True)
    requester_id = Identifier(required=True)
    reason = String(required=True)
    details = Text()
    requested_at = DateTime(required=True)


@ticketing.event(part_of="RefundRequest")
class RefundRequestApproved:
    """A reviewer (or the auto-approval rule) approved the request."""

    __version__ = 1

    request_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reviewed_by = Identifier(required=True)
    auto_approved = Boolean(default=False)
    approved_at = DateTime(required=True)


@ticketing.event(part_of="RefundRequest")
class RefundRequestDeclined:
    """A reviewer declined the request."""

    __version__ = 1

    request_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reviewed_by = Identifier(required=True)
    response = Text()
    declined_at = DateTime(required=True)


@ticketing.event(part_of="RefundRequest")
class RefundRequestReopened:
    """Processing an approved request failed; it is pending again."""

    __version__ = 1

    request_id = Identifier(required=True)
    order_id = Identifier(required=True)
    failure = Text(required=True)
    reopened_at = DateTime(required=True)


@ticketing.event(part_of="RefundRequest")
class RefundRequestProcessed:
    """The approved refund went through at the processor."""

    __version__ = 1

    request_id = Identifier(required=True)
    order_id = Identifier(required=True)
    gateway_refund_id = String(required=True)
    ledger_entry_id = Identifier()
    processed_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Refund ledger
# ---------------------------------------------------------------------------
@ticketing.event(part_of="RefundLedgerEntry")
class RefundRecorded:
    """A processor refund was mirrored into the local ledger."""

    __version__ = 1

    entry_id = Identifier(required=True)
    order_id = Identifier(required=True)
    event_id = Identifier(required=True)
    gateway_refund_id = String(required=True)
    amount_cents = Integer(required=True)
    currency = String(required=True)
    refund_type = String(required=True)
    initiated_by = Identifier(required=True)
    tickets_refunded = Integer(required=True)
    inventory_released = Integer(required=True)
    processed_at = DateTime(required=True)


@ticketing.event(part_of="RefundLedgerEntry")
class RefundConfirmed:
    """The processor's asynchronous confirmation arrived for a recorded refund."""

    __version__ = 1

    entry_id = Identifier(required=True)
    gateway_refund_id = String(required=True)
    confirmation_id = String(required=True)
    confirmed_at = DateTime(required=True)
