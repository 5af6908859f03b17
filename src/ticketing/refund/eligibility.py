"""Refund eligibility rules.

Pure functions over already-loaded state: no repository access and no
clock reads. The caller passes ``now`` and the requester's roles, so the
same inputs always give the same verdict.

Checks run in a fixed order and the first failure is reported:

    not_order_owner → already_refunded → order_not_paid →
    refunds_disabled → refund_window_closed → tickets_redeemed
"""

from dataclasses import dataclass
from datetime import timedelta

from ticketing.access import Role
from ticketing.order.order import OrderStatus
from ticketing.ticket.ticket import TicketStatus

MANAGING_ROLES = frozenset({Role.EVENT_OWNER, Role.ORG_ADMIN, Role.EVENT_MANAGER, Role.PLATFORM_ADMIN})

AUTO_APPROVE_MIN_LEAD = timedelta(hours=48)
AUTO_APPROVE_MAX_ORDER_AGE = timedelta(days=30)
AUTO_APPROVE_HISTORY_WINDOW = timedelta(days=90)
AUTO_APPROVE_MAX_RECENT_REQUESTS = 3
AUTO_APPROVE_MAX_TOTAL_CENTS = 50_000


@dataclass(frozen=True)
class Eligibility:
    eligible: bool
    reason: str


@dataclass(frozen=True)
class AutoApproval:
    auto_approve: bool
    reason: str


def evaluate(order, event, tickets, requester_id, roles, now) -> Eligibility:
    """Decide whether ``order`` may be refunded at ``now``."""
    is_buyer = str(order.buyer_id) == str(requester_id)
    if not is_buyer and not (roles & MANAGING_ROLES):
        return Eligibility(False, "not_order_owner")

    if order.status == OrderStatus.REFUNDED.value:
        return Eligibility(False, "already_refunded")

    if order.status != OrderStatus.PAID.value:
        return Eligibility(False, "order_not_paid")

    policy = event.refund_policy
    if not policy.allow_refunds:
        return Eligibility(False, "refunds_disabled")

    if now > event.refund_deadline():
        return Eligibility(False, "refund_window_closed")

    if any(t.status == TicketStatus.REDEEMED.value for t in tickets):
        return Eligibility(False, "tickets_redeemed")

    return Eligibility(True, "eligible")


def should_auto_approve(order, event, tickets, requester_id, roles, recent_request_count, now) -> AutoApproval:
    """Whether a customer's request can skip organizer review.

    Never approves anything ``evaluate`` would refuse.
    ``recent_request_count`` counts the requester's requests in the last
    90 days, excluding the one being decided.
    """
    eligibility = evaluate(order, event, tickets, requester_id, roles, now)
    if not eligibility.eligible:
        return AutoApproval(False, eligibility.reason)

    if not event.refund_policy.auto_approve_enabled:
        return AutoApproval(False, "auto_approve_disabled")

    if event.start_at - now <= AUTO_APPROVE_MIN_LEAD:
        return AutoApproval(False, "too_close_to_event")

    if order.paid_at is None or now - order.paid_at > AUTO_APPROVE_MAX_ORDER_AGE:
        return AutoApproval(False, "order_too_old")

    if recent_request_count >= AUTO_APPROVE_MAX_RECENT_REQUESTS:
        return AutoApproval(False, "too_many_requests")

    if order.total_cents >= AUTO_APPROVE_MAX_TOTAL_CENTS:
        return AutoApproval(False, "amount_over_limit")

    return AutoApproval(True, "auto_approved")
