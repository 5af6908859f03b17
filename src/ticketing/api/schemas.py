"""Pydantic request/response schemas for the Ticketing API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

# --- Pricing ---


class PriceBreakdownResponse(BaseModel):
    subtotal: int
    fees: int
    total: int
    platform_fee: int
    currency: str


# --- Event Schemas ---


class TierInput(BaseModel):
    name: str = Field(..., max_length=100)
    badge_label: str | None = Field(None, max_length=50)
    price_cents: int = Field(..., ge=0)
    quantity: int = Field(..., ge=0)


class ScheduleEventRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "title": "Warehouse Sessions: Night One",
                    "owner_id": "org-owner-17",
                    "org_id": "org-17",
                    "start_at": "2026-11-21T20:00:00Z",
                    "end_at": "2026-11-22T02:00:00Z",
                    "tiers": [
                        {"name": "General", "price_cents": 2500, "quantity": 400},
                        {"name": "VIP", "badge_label": "VIP", "price_cents": 7500, "quantity": 50},
                    ],
                }
            ]
        }
    }

    title: str = Field(..., max_length=200)
    owner_id: str
    org_id: str | None = None
    start_at: datetime
    end_at: datetime | None = None
    tiers: list[TierInput] = Field(default_factory=list)


class EventIdResponse(BaseModel):
    event_id: str
    tier_ids: list[str] = Field(default_factory=list)


class RefundPolicyRequest(BaseModel):
    configured_by: str
    allow_refunds: bool = True
    refund_window_hours: int = Field(24, ge=1, le=168)
    auto_approve_enabled: bool = False
    refund_fees: bool = True


class ScanLogEntryResponse(BaseModel):
    id: str
    ticket_id: str | None = None
    scanner_id: str
    outcome: str
    details: dict
    scanned_at: datetime


# --- Scanning ---


class ScanRequest(BaseModel):
    model_config = {"json_schema_extra": {"examples": [{"qr_code": "K7M2QX9P", "scanner_id": "door-staff-3"}]}}

    qr_code: str = Field(..., max_length=64)
    scanner_id: str


class TicketReceiptResponse(BaseModel):
    ticket_id: str
    tier_name: str
    attendee_name: str
    badge_label: str | None = None


class ScanResponse(BaseModel):
    outcome: str
    success: bool
    message: str
    ticket: TicketReceiptResponse | None = None
    redeemed_at: datetime | None = None
    original_redeemed_at: datetime | None = None
    event_end: datetime | None = None
    actual_event_id: str | None = None
    error: str | None = None


# --- Orders ---


class OrderLineInput(BaseModel):
    tier_id: str
    quantity: int = Field(..., ge=1)


class PlaceOrderRequest(BaseModel):
    event_id: str
    buyer_id: str
    buyer_email: str | None = Field(None, max_length=254)
    lines: list[OrderLineInput]
    currency: str = Field("USD", max_length=3)


class OrderIdResponse(BaseModel):
    order_id: str


class ConfirmPaymentRequest(BaseModel):
    payment_reference: str = Field(..., max_length=255)


class TicketResponse(BaseModel):
    ticket_id: str
    serial_no: int
    tier_id: str
    qr_code: str
    status: str
    redeemed_at: datetime | None = None


class StatusResponse(BaseModel):
    status: str


# --- Refunds ---


class ProcessRefundRequest(BaseModel):
    initiated_by: str
    reason: str | None = None


class RefundResponse(BaseModel):
    success: bool
    refund_id: str | None = None
    amount_cents: int | None = None
    status: str | None = None
    ledger_status: str | None = None
    ledger_entry_id: str | None = None
    tickets_refunded: int | None = None
    error: str | None = None
    reason: str | None = None
    message: str | None = None
    retryable: bool | None = None


class SubmitRefundRequest(BaseModel):
    order_id: str
    requester_id: str
    reason: str
    details: str | None = Field(None, max_length=2000)


class ReviewRefundRequest(BaseModel):
    action: str = Field(..., pattern="^(approve|decline)$")
    reviewer_id: str
    note: str | None = Field(None, max_length=2000)


class RefundRequestResponse(BaseModel):
    request_id: str | None = None
    status: str
    auto_approved: bool = False
    code: str | None = None
    reason: str | None = None
    refund: RefundResponse | None = None


class RefundWebhookRequest(BaseModel):
    gateway_refund_id: str
    confirmation_id: str
    order_id: str
    amount_cents: int
    reason: str | None = None
    refund_type: str = "admin"
    initiated_by: str = "system"


class LedgerWriteResponse(BaseModel):
    entry_id: str
    created: bool


class ReconcileRequest(BaseModel):
    since: datetime
    requested_by: str


class ReconciliationResponse(BaseModel):
    checked: int
    reconciled: int
    already_recorded: int
    failed: int


# --- Gateway ---


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Refund declined"


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    failure_reason: str
