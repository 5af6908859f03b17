"""Outcome types for the refund workflows.

Expected business outcomes (not eligible, processor declined, already
reviewed) are returned as values. Only authorization failures and
infrastructure faults are raised.

Notification intents are plain data handed back to the caller; delivering
them is someone else's job.
"""

from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Notification intents
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class RefundConfirmationIntent:
    order_id: str
    email: str | None
    amount_cents: int
    currency: str
    tickets_refunded: int
    event_title: str
    reason: str | None


@dataclass(frozen=True)
class DeclineNoticeIntent:
    request_id: str
    order_id: str
    email: str | None
    event_title: str
    response: str | None


# ---------------------------------------------------------------------------
# process_refund
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class RefundSucceeded:
    refund_id: str
    amount_cents: int
    status: str
    ledger_status: str  # completed | pending
    ledger_entry_id: str | None
    notification: RefundConfirmationIntent
    success: bool = True


@dataclass(frozen=True)
class RefundNotEligible:
    reason: str
    success: bool = False


@dataclass(frozen=True)
class RefundFailed:
    code: str
    message: str
    retryable: bool
    success: bool = False


RefundOutcome = RefundSucceeded | RefundNotEligible | RefundFailed


# ---------------------------------------------------------------------------
# review_refund_request
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class RequestDeclined:
    request_id: str
    notification: DeclineNoticeIntent


@dataclass(frozen=True)
class RequestApproved:
    request_id: str
    refund: RefundSucceeded


@dataclass(frozen=True)
class ApprovalFailed:
    request_id: str
    refund: RefundNotEligible | RefundFailed


@dataclass(frozen=True)
class ReviewRejected:
    request_id: str
    code: str  # already_reviewed


ReviewOutcome = RequestDeclined | RequestApproved | ApprovalFailed | ReviewRejected


# ---------------------------------------------------------------------------
# submit_refund_request
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class SubmissionRejected:
    code: str  # already_refunded | already_requested | not_eligible
    reason: str


@dataclass(frozen=True)
class RequestSubmitted:
    request_id: str
    status: str
    auto_approval_failure: str | None = None


@dataclass(frozen=True)
class RequestAutoApproved:
    request_id: str
    refund: RefundSucceeded


SubmissionOutcome = SubmissionRejected | RequestSubmitted | RequestAutoApproved


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------
@dataclass
class ReconciliationReport:
    checked: int = 0
    reconciled: int = 0
    already_recorded: int = 0
    failed: int = 0
