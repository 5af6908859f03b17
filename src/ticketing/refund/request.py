"""RefundRequest aggregate (CQRS): a customer's ask to be refunded.

A request is reviewed exactly once. Approval is committed before the money
moves, so a crash mid-refund leaves an auditable "approved" request rather
than a lost decision; a failed refund puts the request back to pending.

State Machine:
    PENDING → APPROVED | DECLINED
    APPROVED → PROCESSED | PENDING (processing failed)
    DECLINED, PROCESSED → (terminal)
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, String, Text

from ticketing.domain import ticketing
from ticketing.refund.events import (
    RefundRequestApproved,
    RefundRequestDeclined,
    RefundRequested,
    RefundRequestProcessed,
    RefundRequestReopened,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class RefundRequestStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    PROCESSED = "processed"


class RefundReason(Enum):
    CANT_ATTEND = "cant_attend"
    EVENT_POSTPONED = "event_postponed"
    EVENT_CANCELLED = "event_cancelled"
    DUPLICATE_PURCHASE = "duplicate_purchase"
    NOT_AS_DESCRIBED = "not_as_described"
    OTHER = "other"


_VALID_TRANSITIONS = {
    RefundRequestStatus.PENDING: {RefundRequestStatus.APPROVED, RefundRequestStatus.DECLINED},
    RefundRequestStatus.APPROVED: {RefundRequestStatus.PROCESSED, RefundRequestStatus.PENDING},
    RefundRequestStatus.DECLINED: set(),  # Terminal
    RefundRequestStatus.PROCESSED: set(),  # Terminal
}


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ticketing.aggregate
class RefundRequest:
    order_id = Identifier(required=True)
    requester_id = Identifier(required=True)
    reason = String(choices=RefundReason, required=True)
    details = Text()
    status = String(choices=RefundRequestStatus, default=RefundRequestStatus.PENDING.value)
    reviewed_by = Identifier()
    reviewer_response = Text()
    auto_approved = Boolean(default=False)
    last_failure = Text()
    gateway_refund_id = String(max_length=255)
    ledger_entry_id = Identifier()
    requested_at = DateTime()
    reviewed_at = DateTime()
    processed_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def submit(cls, order_id, requester_id, reason, details=None):
        now = datetime.now(UTC)
        details = details.strip() if details and details.strip() else None
        request = cls(
            order_id=order_id,
            requester_id=requester_id,
            reason=reason,
            details=details,
            status=RefundRequestStatus.PENDING.value,
            requested_at=now,
        )
        request.raise_(
            RefundRequested(
                request_id=str(request.id),
                order_id=str(order_id),
                requester_id=str(requester_id),
                reason=reason,
                details=details,
                requested_at=now,
            )
        )
        return request

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: RefundRequestStatus) -> None:
        current = RefundRequestStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    @property
    def is_pending(self) -> bool:
        return self.status == RefundRequestStatus.PENDING.value

    def processing_reason(self, prefix) -> str:
        """Reason text handed to the processor, e.g. "Organizer approved: cant_attend - sick"."""
        text = f"{prefix}: {self.reason}"
        return f"{text} - {self.details}" if self.details else text

    # -------------------------------------------------------------------
    # Review
    # -------------------------------------------------------------------
    def approve(self, reviewed_by, response=None, auto_approved=False):
        self._assert_can_transition(RefundRequestStatus.APPROVED)

        now = datetime.now(UTC)
        self.status = RefundRequestStatus.APPROVED.value
        self.reviewed_by = reviewed_by
        self.reviewer_response = response
        self.auto_approved = auto_approved
        self.reviewed_at = now

        self.raise_(
            RefundRequestApproved(
                request_id=str(self.id),
                order_id=str(self.order_id),
                reviewed_by=str(reviewed_by),
                auto_approved=auto_approved,
                approved_at=now,
            )
        )

    def decline(self, reviewed_by, response=None):
        self._assert_can_transition(RefundRequestStatus.DECLINED)

        now = datetime.now(UTC)
        self.status = RefundRequestStatus.DECLINED.value
        self.reviewed_by = reviewed_by
        self.reviewer_response = response
        self.reviewed_at = now

        self.raise_(
            RefundRequestDeclined(
                request_id=str(self.id),
                order_id=str(self.order_id),
                reviewed_by=str(reviewed_by),
                response=response,
                declined_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Processing outcome
    # -------------------------------------------------------------------
    def reopen(self, failure):
        """Roll an approved request back to pending after processing failed."""
        self._assert_can_transition(RefundRequestStatus.PENDING)

        now = datetime.now(UTC)
        self.status = RefundRequestStatus.PENDING.value
        self.last_failure = failure
        self.reviewed_by = None
        self.reviewed_at = None
        self.auto_approved = False

        self.raise_(
            RefundRequestReopened(
                request_id=str(self.id),
                order_id=str(self.order_id),
                failure=failure,
                reopened_at=now,
            )
        )

    def mark_processed(self, gateway_refund_id, ledger_entry_id=None):
        self._assert_can_transition(RefundRequestStatus.PROCESSED)

        now = datetime.now(UTC)
        self.status = RefundRequestStatus.PROCESSED.value
        self.gateway_refund_id = gateway_refund_id
        self.ledger_entry_id = ledger_entry_id
        self.processed_at = now

        self.raise_(
            RefundRequestProcessed(
                request_id=str(self.id),
                order_id=str(self.order_id),
                gateway_refund_id=gateway_refund_id,
                ledger_entry_id=ledger_entry_id,
                processed_at=now,
            )
        )

    def link_ledger_entry(self, ledger_entry_id):
        """Attach the ledger entry once the asynchronous path has written it."""
        if self.status != RefundRequestStatus.PROCESSED.value:
            raise ValidationError({"status": ["Only processed requests link to a ledger entry"]})
        if self.ledger_entry_id is None:
            self.ledger_entry_id = ledger_entry_id


@ticketing.repository(part_of=RefundRequest)
class RefundRequestRepository:
    def find_pending_for_order(self, order_id: str) -> RefundRequest | None:
        return self._dao.query.filter(order_id=order_id, status=RefundRequestStatus.PENDING.value).all().first

    def find_by_gateway_refund_id(self, gateway_refund_id: str) -> list[RefundRequest]:
        return self._dao.query.filter(gateway_refund_id=gateway_refund_id).all().items

    def count_since(self, requester_id: str, since: datetime) -> int:
        return self._dao.query.filter(requester_id=requester_id, requested_at__gte=since).all().total
