"""Refund processing: authorize, check eligibility, move money, record it.

The processor call happens outside any local transaction. Whatever the
processor says is final: once a refund id comes back the operation
succeeds, even if the local ledger write fails afterwards. In that case
the ledger is reported as ``pending`` and the processor's webhook or the
reconciliation sweep completes it later through the same idempotent
RecordRefund command.

Idempotency key: ``refund:{order_id}:{refund_attempts}``. An ambiguous
failure (timeout) leaves the attempt counter alone so a retry reuses the
key and the processor returns the original refund instead of paying twice.
"""

from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from ticketing.access.policy import authorize_refund_manager, refund_type
from ticketing.gateway import GatewayError, get_gateway
from ticketing.listing.event_listing import EventListing
from ticketing.order.order import Order
from ticketing.refund.eligibility import evaluate
from ticketing.refund.ledger import RecordRefund
from ticketing.refund.results import (
    RefundConfirmationIntent,
    RefundFailed,
    RefundNotEligible,
    RefundOutcome,
    RefundSucceeded,
)
from ticketing.ticket.ticket import REFUNDABLE_STATUSES, Ticket

logger = structlog.get_logger(__name__)


def process_refund(order_id, reason, initiated_by, now=None) -> RefundOutcome:
    """Refund a whole order on behalf of ``initiated_by``.

    Raises AuthorizationDenied before anything is touched if the initiator
    cannot manage refunds for the order's event.
    """
    now = now or datetime.now(UTC)
    order_repo = current_domain.repository_for(Order)
    order = order_repo.get(order_id)
    listing = current_domain.repository_for(EventListing).get(order.event_id)

    roles = authorize_refund_manager(initiated_by, listing)
    kind = refund_type(roles)

    tickets = current_domain.repository_for(Ticket).find_by_order(str(order.id))
    eligibility = evaluate(order, listing, tickets, initiated_by, roles, now)
    if not eligibility.eligible:
        logger.info("Refund not eligible", order_id=str(order.id), reason=eligibility.reason)
        return RefundNotEligible(reason=eligibility.reason)

    amount = order.total_cents
    idempotency_key = order.refund_idempotency_key

    try:
        result = get_gateway().create_refund(
            payment_reference=order.payment_reference,
            amount_cents=amount,
            currency=order.currency,
            idempotency_key=idempotency_key,
            metadata={
                "order_id": str(order.id),
                "event_id": str(order.event_id),
                "reason": reason,
                "refund_type": kind,
                "initiated_by": str(initiated_by),
            },
        )
    except GatewayError as exc:
        logger.warning(
            "Refund call to processor failed",
            order_id=str(order.id),
            idempotency_key=idempotency_key,
            error=str(exc),
        )
        return RefundFailed(code="processor_error", message=str(exc), retryable=True)

    if not result.success:
        order.record_refund_declined(result.failure_reason)
        order_repo.add(order)
        logger.warning(
            "Refund declined by processor",
            order_id=str(order.id),
            idempotency_key=idempotency_key,
            failure_reason=result.failure_reason,
        )
        return RefundFailed(
            code="processor_error",
            message=result.failure_reason or "Refund declined",
            retryable=False,
        )

    logger.info(
        "Refund issued",
        order_id=str(order.id),
        refund_id=result.gateway_refund_id,
        amount_cents=result.amount_cents,
        refund_type=kind,
    )

    refundable = sum(1 for t in tickets if t.status in REFUNDABLE_STATUSES)
    ledger_status, ledger_entry_id, tickets_refunded = _record(order, result, reason, kind, initiated_by, refundable)

    return RefundSucceeded(
        refund_id=result.gateway_refund_id,
        amount_cents=result.amount_cents,
        status=result.gateway_status or "succeeded",
        ledger_status=ledger_status,
        ledger_entry_id=ledger_entry_id,
        notification=RefundConfirmationIntent(
            order_id=str(order.id),
            email=order.buyer_email,
            amount_cents=result.amount_cents,
            currency=result.currency,
            tickets_refunded=tickets_refunded,
            event_title=listing.title,
            reason=reason,
        ),
    )


def _record(order, result, reason, kind, initiated_by, refundable):
    """Write the ledger. Returns (ledger_status, entry_id, tickets_refunded).

    While the ledger is pending, ``refundable`` is the count the writer will
    refund once it catches up.
    """
    try:
        written = current_domain.process(
            RecordRefund(
                order_id=str(order.id),
                gateway_refund_id=result.gateway_refund_id,
                amount_cents=result.amount_cents,
                reason=reason,
                refund_type=kind,
                initiated_by=str(initiated_by),
            ),
            asynchronous=False,
        )
    except Exception as exc:
        # Money has moved; the webhook or reconciliation will finish the ledger
        logger.warning(
            "Refund ledger write deferred",
            order_id=str(order.id),
            refund_id=result.gateway_refund_id,
            error=str(exc),
        )
        return "pending", None, refundable

    return "completed", written.entry_id, written.tickets_refunded
