"""Customer refund requests.

A buyer asks for their order back. Requests the event's policy allows to
skip review are approved by the platform itself and processed straight
away; everything else waits for an organizer.
"""

from datetime import UTC, datetime

import structlog
from protean.utils.globals import current_domain

from ticketing.access import SYSTEM_IDENTITY, AuthorizationDenied
from ticketing.access.policy import roles_for
from ticketing.listing.event_listing import EventListing
from ticketing.order.order import Order, OrderStatus
from ticketing.refund.eligibility import AUTO_APPROVE_HISTORY_WINDOW, evaluate, should_auto_approve
from ticketing.refund.processing import process_refund
from ticketing.refund.request import RefundRequest, RefundRequestStatus
from ticketing.refund.results import (
    RefundNotEligible,
    RequestAutoApproved,
    RequestSubmitted,
    SubmissionOutcome,
    SubmissionRejected,
)
from ticketing.refund.review import settle_approved_request
from ticketing.ticket.ticket import Ticket

logger = structlog.get_logger(__name__)


def submit_refund_request(order_id, requester_id, reason, details=None, now=None) -> SubmissionOutcome:
    """File a refund request for ``order_id`` on behalf of its buyer."""
    now = now or datetime.now(UTC)
    order = current_domain.repository_for(Order).get(order_id)
    listing = current_domain.repository_for(EventListing).get(order.event_id)

    if str(order.buyer_id) != str(requester_id):
        raise AuthorizationDenied("not_order_owner", identity_id=requester_id, event_id=str(listing.id))

    if order.status == OrderStatus.REFUNDED.value:
        return SubmissionRejected(code="already_refunded", reason="Order has already been refunded")

    request_repo = current_domain.repository_for(RefundRequest)
    if request_repo.find_pending_for_order(str(order.id)) is not None:
        return SubmissionRejected(code="already_requested", reason="A refund request is already pending")

    tickets = current_domain.repository_for(Ticket).find_by_order(str(order.id))
    roles = roles_for(requester_id, listing)
    eligibility = evaluate(order, listing, tickets, requester_id, roles, now)
    if not eligibility.eligible:
        return SubmissionRejected(code="not_eligible", reason=eligibility.reason)

    recent = request_repo.count_since(str(requester_id), now - AUTO_APPROVE_HISTORY_WINDOW)
    request = RefundRequest.submit(order_id=str(order.id), requester_id=requester_id, reason=reason, details=details)

    decision = should_auto_approve(order, listing, tickets, requester_id, roles, recent, now)
    if not decision.auto_approve:
        request_repo.add(request)
        logger.info(
            "Refund request submitted",
            request_id=str(request.id),
            order_id=str(order.id),
            auto_approval=decision.reason,
        )
        return RequestSubmitted(request_id=str(request.id), status=request.status)

    request.approve(SYSTEM_IDENTITY, response="Automatically approved", auto_approved=True)
    request_repo.add(request)
    logger.info("Refund request auto-approved", request_id=str(request.id), order_id=str(order.id))

    refund = process_refund(
        order_id=str(order.id),
        reason=request.processing_reason("Auto-approved customer request"),
        initiated_by=SYSTEM_IDENTITY,
        now=now,
    )
    return settle_approved_request(
        request.id,
        refund,
        on_success=RequestAutoApproved,
        on_failure=_submitted_after_failure,
    )


def _submitted_after_failure(request_id, refund):
    failure = refund.reason if isinstance(refund, RefundNotEligible) else refund.message
    return RequestSubmitted(
        request_id=request_id,
        status=RefundRequestStatus.PENDING.value,
        auto_approval_failure=failure,
    )
