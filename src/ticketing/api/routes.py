"""FastAPI endpoints for the Ticketing domain."""

import json
import os

from fastapi import APIRouter, Header, HTTPException, Query
from protean.utils.globals import current_domain

from ticketing.access import SYSTEM_IDENTITY, AuthorizationDenied
from ticketing.api.schemas import (
    ConfigureGatewayRequest,
    ConfirmPaymentRequest,
    EventIdResponse,
    GatewayConfigResponse,
    LedgerWriteResponse,
    OrderIdResponse,
    PlaceOrderRequest,
    PriceBreakdownResponse,
    ProcessRefundRequest,
    ReconcileRequest,
    ReconciliationResponse,
    RefundPolicyRequest,
    RefundRequestResponse,
    RefundResponse,
    RefundWebhookRequest,
    ReviewRefundRequest,
    ScanLogEntryResponse,
    ScanRequest,
    ScanResponse,
    ScheduleEventRequest,
    StatusResponse,
    SubmitRefundRequest,
    TicketReceiptResponse,
    TicketResponse,
)
from ticketing.gateway import get_gateway
from ticketing.gateway.fake_adapter import FakeGateway
from ticketing.listing.event_listing import EventListing
from ticketing.listing.management import ConfigureRefundPolicy, ScheduleEvent
from ticketing.order.checkout import ConfirmPayment, PlaceOrder
from ticketing.pricing import breakdown
from ticketing.refund.processing import process_refund
from ticketing.refund.reconciliation import confirm_refund, reconcile_refunds
from ticketing.refund.results import (
    ApprovalFailed,
    RefundFailed,
    RefundNotEligible,
    RefundSucceeded,
    RequestApproved,
    RequestAutoApproved,
    RequestDeclined,
    ReviewRejected,
    SubmissionRejected,
)
from ticketing.refund.review import review_refund_request
from ticketing.refund.submission import submit_refund_request
from ticketing.scanning.validator import scan_log_for_event, validate
from ticketing.ticket.issuance import tickets_for_order


def _forbidden(exc: AuthorizationDenied) -> HTTPException:
    return HTTPException(status_code=403, detail=exc.reason)


def _caller(identity_id: str) -> str:
    """An identity named in a request. The platform's own identity is not one."""
    if identity_id == SYSTEM_IDENTITY:
        raise AuthorizationDenied("reserved_identity", identity_id=identity_id)
    return identity_id


def _refund_response(outcome) -> RefundResponse:
    if isinstance(outcome, RefundSucceeded):
        return RefundResponse(
            success=True,
            refund_id=outcome.refund_id,
            amount_cents=outcome.amount_cents,
            status=outcome.status,
            ledger_status=outcome.ledger_status,
            ledger_entry_id=outcome.ledger_entry_id,
            tickets_refunded=outcome.notification.tickets_refunded,
        )
    if isinstance(outcome, RefundNotEligible):
        return RefundResponse(success=False, error="not_eligible", reason=outcome.reason)
    if isinstance(outcome, RefundFailed):
        return RefundResponse(
            success=False,
            error=outcome.code,
            message=outcome.message,
            retryable=outcome.retryable,
        )
    raise TypeError(f"Unexpected refund outcome {type(outcome).__name__}")


def _scan_response(result) -> ScanResponse:
    receipt = getattr(result, "receipt", None)
    return ScanResponse(
        outcome=result.outcome.value,
        success=result.success,
        message=result.message,
        ticket=TicketReceiptResponse(**vars(receipt)) if receipt else None,
        redeemed_at=getattr(result, "redeemed_at", None),
        original_redeemed_at=getattr(result, "original_redeemed_at", None),
        event_end=getattr(result, "event_end", None),
        actual_event_id=getattr(result, "actual_event_id", None),
        error=getattr(result, "error", None),
    )


# ---------------------------------------------------------------------------
# Pricing Router
# ---------------------------------------------------------------------------
pricing_router = APIRouter(prefix="/pricing", tags=["pricing"])


@pricing_router.get("", response_model=PriceBreakdownResponse)
async def price(face_value_cents: int = Query(..., ge=0), currency: str = "USD") -> PriceBreakdownResponse:
    """Price breakdown for a face-value amount."""
    result = breakdown(face_value_cents, currency)
    return PriceBreakdownResponse(**vars(result))


# ---------------------------------------------------------------------------
# Event Router
# ---------------------------------------------------------------------------
event_router = APIRouter(prefix="/events", tags=["events"])


@event_router.post("", status_code=201, response_model=EventIdResponse)
async def schedule_event(body: ScheduleEventRequest) -> EventIdResponse:
    command = ScheduleEvent(
        title=body.title,
        owner_id=body.owner_id,
        org_id=body.org_id,
        start_at=body.start_at,
        end_at=body.end_at,
        tiers=json.dumps([tier.model_dump() for tier in body.tiers]),
    )
    event_id = current_domain.process(command, asynchronous=False)
    listing = current_domain.repository_for(EventListing).get(event_id)
    return EventIdResponse(event_id=event_id, tier_ids=[str(t.id) for t in listing.tiers])


@event_router.put("/{event_id}/refund-policy", response_model=StatusResponse)
async def configure_refund_policy(event_id: str, body: RefundPolicyRequest) -> StatusResponse:
    try:
        _caller(body.configured_by)
        command = ConfigureRefundPolicy(event_id=event_id, **body.model_dump())
        current_domain.process(command, asynchronous=False)
    except AuthorizationDenied as exc:
        raise _forbidden(exc) from exc
    return StatusResponse(status="configured")


@event_router.post("/{event_id}/scans", response_model=ScanResponse)
async def scan_ticket(event_id: str, body: ScanRequest) -> ScanResponse:
    """Validate a ticket presented at the door."""
    try:
        result = validate(event_id, body.qr_code, _caller(body.scanner_id))
    except AuthorizationDenied as exc:
        raise _forbidden(exc) from exc
    return _scan_response(result)


@event_router.get("/{event_id}/scan-log", response_model=list[ScanLogEntryResponse])
async def scan_log(event_id: str, requested_by: str) -> list[ScanLogEntryResponse]:
    try:
        entries = scan_log_for_event(event_id, _caller(requested_by))
    except AuthorizationDenied as exc:
        raise _forbidden(exc) from exc
    return [
        ScanLogEntryResponse(
            id=str(entry.id),
            ticket_id=str(entry.ticket_id) if entry.ticket_id else None,
            scanner_id=str(entry.scanner_id),
            outcome=entry.outcome,
            details=entry.detail_dict,
            scanned_at=entry.scanned_at,
        )
        for entry in entries
    ]


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest) -> OrderIdResponse:
    command = PlaceOrder(
        event_id=body.event_id,
        buyer_id=body.buyer_id,
        buyer_email=body.buyer_email,
        lines=json.dumps([line.model_dump() for line in body.lines]),
        currency=body.currency,
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=result)


@order_router.post("/{order_id}/payment", response_model=StatusResponse)
async def confirm_payment(order_id: str, body: ConfirmPaymentRequest) -> StatusResponse:
    """Record a successful charge; tickets are issued in response."""
    command = ConfirmPayment(order_id=order_id, payment_reference=body.payment_reference)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="paid")


@order_router.get("/{order_id}/tickets", response_model=list[TicketResponse])
async def order_tickets(order_id: str, requested_by: str) -> list[TicketResponse]:
    try:
        tickets = tickets_for_order(order_id, _caller(requested_by))
    except AuthorizationDenied as exc:
        raise _forbidden(exc) from exc
    return [
        TicketResponse(
            ticket_id=str(t.id),
            serial_no=t.serial_no,
            tier_id=str(t.tier_id),
            qr_code=t.qr_code,
            status=t.status,
            redeemed_at=t.redeemed_at,
        )
        for t in tickets
    ]


@order_router.post("/{order_id}/refund", response_model=RefundResponse)
async def refund_order(order_id: str, body: ProcessRefundRequest) -> RefundResponse:
    """Organizer or admin refund of a whole order."""
    try:
        outcome = process_refund(order_id, body.reason, _caller(body.initiated_by))
    except AuthorizationDenied as exc:
        raise _forbidden(exc) from exc
    return _refund_response(outcome)


# ---------------------------------------------------------------------------
# Refund Request Router
# ---------------------------------------------------------------------------
refund_request_router = APIRouter(prefix="/refund-requests", tags=["refund-requests"])


@refund_request_router.post("", status_code=201, response_model=RefundRequestResponse)
async def submit_request(body: SubmitRefundRequest) -> RefundRequestResponse:
    try:
        outcome = submit_refund_request(body.order_id, _caller(body.requester_id), body.reason, body.details)
    except AuthorizationDenied as exc:
        raise _forbidden(exc) from exc

    if isinstance(outcome, SubmissionRejected):
        raise HTTPException(status_code=409, detail={"code": outcome.code, "reason": outcome.reason})
    if isinstance(outcome, RequestAutoApproved):
        return RefundRequestResponse(
            request_id=outcome.request_id,
            status="processed",
            auto_approved=True,
            refund=_refund_response(outcome.refund),
        )
    return RefundRequestResponse(
        request_id=outcome.request_id,
        status=outcome.status,
        reason=outcome.auto_approval_failure,
    )


@refund_request_router.post("/{request_id}/review", response_model=RefundRequestResponse)
async def review_request(request_id: str, body: ReviewRefundRequest) -> RefundRequestResponse:
    try:
        outcome = review_refund_request(request_id, body.action, _caller(body.reviewer_id), body.note)
    except AuthorizationDenied as exc:
        raise _forbidden(exc) from exc

    if isinstance(outcome, ReviewRejected):
        raise HTTPException(status_code=409, detail={"code": outcome.code})
    if isinstance(outcome, RequestDeclined):
        return RefundRequestResponse(request_id=outcome.request_id, status="declined")
    if isinstance(outcome, RequestApproved):
        return RefundRequestResponse(
            request_id=outcome.request_id,
            status="processed",
            refund=_refund_response(outcome.refund),
        )
    if isinstance(outcome, ApprovalFailed):
        return RefundRequestResponse(
            request_id=outcome.request_id,
            status="pending",
            refund=_refund_response(outcome.refund),
        )
    raise TypeError(f"Unexpected review outcome {type(outcome).__name__}")


# ---------------------------------------------------------------------------
# Processor Router
# ---------------------------------------------------------------------------
refund_router = APIRouter(prefix="/refunds", tags=["refunds"])


@refund_router.post("/webhook", response_model=LedgerWriteResponse)
async def refund_webhook(
    body: RefundWebhookRequest,
    x_gateway_signature: str = Header(default=""),
) -> LedgerWriteResponse:
    """Processor confirmation that a refund went through."""
    gateway = get_gateway()
    if not gateway.verify_webhook_signature(json.dumps(body.model_dump()), x_gateway_signature):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    written = confirm_refund(**body.model_dump())
    return LedgerWriteResponse(entry_id=written.entry_id, created=written.created)


@refund_router.post("/reconcile", response_model=ReconciliationResponse)
async def reconcile(body: ReconcileRequest) -> ReconciliationResponse:
    try:
        report = reconcile_refunds(body.since, _caller(body.requested_by))
    except AuthorizationDenied as exc:
        raise _forbidden(exc) from exc
    return ReconciliationResponse(**vars(report))


gateway_router = APIRouter(prefix="/gateway", tags=["gateway"])


@gateway_router.post("/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only)."""
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
    )
