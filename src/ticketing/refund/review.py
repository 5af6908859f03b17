"""Organizer review of customer refund requests.

A request is reviewed once. The approve/decline write is conditional on
the version the reviewer read, so of two reviewers acting together only
one decision lands; the other gets ``already_reviewed`` and the processor
is never called twice.

Approval is committed before money moves. If processing then fails the
request goes back to ``pending`` with the failure recorded.
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from protean.exceptions import ExpectedVersionError
from protean.utils.globals import current_domain

from ticketing.access import AuthorizationDenied
from ticketing.access.policy import authorize_refund_manager
from ticketing.listing.event_listing import EventListing
from ticketing.order.order import Order
from ticketing.refund.processing import process_refund
from ticketing.refund.request import RefundRequest, RefundRequestStatus
from ticketing.refund.results import (
    ApprovalFailed,
    DeclineNoticeIntent,
    RefundNotEligible,
    RefundSucceeded,
    RequestApproved,
    RequestDeclined,
    ReviewOutcome,
    ReviewRejected,
)

logger = structlog.get_logger(__name__)


class ReviewAction(Enum):
    APPROVE = "approve"
    DECLINE = "decline"


def review_refund_request(request_id, action, reviewer_id, note=None, now=None) -> ReviewOutcome:
    """Approve or decline a pending refund request."""
    now = now or datetime.now(UTC)
    action = ReviewAction(action)

    request_repo = current_domain.repository_for(RefundRequest)
    request = request_repo.get(request_id)
    order = current_domain.repository_for(Order).get(request.order_id)
    listing = current_domain.repository_for(EventListing).get(order.event_id)

    authorize_refund_manager(reviewer_id, listing)

    if not request.is_pending:
        return ReviewRejected(request_id=str(request.id), code="already_reviewed")

    if action == ReviewAction.DECLINE:
        request.decline(reviewer_id, response=note)
    else:
        request.approve(reviewer_id, response=note)

    try:
        request_repo.add(request)
    except ExpectedVersionError:
        logger.info("Refund request reviewed concurrently", request_id=str(request.id))
        return ReviewRejected(request_id=str(request.id), code="already_reviewed")

    if action == ReviewAction.DECLINE:
        logger.info("Refund request declined", request_id=str(request.id), reviewer_id=reviewer_id)
        return RequestDeclined(
            request_id=str(request.id),
            notification=DeclineNoticeIntent(
                request_id=str(request.id),
                order_id=str(order.id),
                email=order.buyer_email,
                event_title=listing.title,
                response=note,
            ),
        )

    logger.info("Refund request approved", request_id=str(request.id), reviewer_id=reviewer_id)
    try:
        refund = process_refund(
            order_id=str(order.id),
            reason=request.processing_reason("Organizer approved"),
            initiated_by=reviewer_id,
            now=now,
        )
    except AuthorizationDenied as exc:
        # Roles can change between the review check and processing
        settle_failed_request(request.id, exc.reason)
        raise

    return settle_approved_request(request.id, refund, on_success=RequestApproved, on_failure=ApprovalFailed)


def settle_approved_request(request_id, refund, on_success, on_failure):
    """Move an approved request to processed, or back to pending on failure."""
    if isinstance(refund, RefundSucceeded):
        request_repo = current_domain.repository_for(RefundRequest)
        request = request_repo.get(request_id)
        request.mark_processed(refund.refund_id, ledger_entry_id=refund.ledger_entry_id)
        request_repo.add(request)
        logger.info(
            "Refund request processed",
            request_id=str(request_id),
            refund_id=refund.refund_id,
            ledger_status=refund.ledger_status,
        )
        return on_success(request_id=str(request_id), refund=refund)

    failure = refund.reason if isinstance(refund, RefundNotEligible) else refund.message
    settle_failed_request(request_id, failure)
    return on_failure(request_id=str(request_id), refund=refund)


def settle_failed_request(request_id, failure) -> None:
    request_repo = current_domain.repository_for(RefundRequest)
    request = request_repo.get(request_id)
    if request.status != RefundRequestStatus.APPROVED.value:
        return
    request.reopen(failure)
    request_repo.add(request)
    logger.warning("Refund request reopened", request_id=str(request_id), failure=failure)
