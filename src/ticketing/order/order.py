"""Order aggregate (CQRS): one checkout transaction and its money fields.

Money is held in integer cents. Fees are never entered by hand: they are
computed by the pricing engine from the subtotal when the order is placed,
and an invariant re-checks that relationship on every change.

State Machine:
    pending → paid | failed
    paid → refunded | partially_refunded
    partially_refunded → refunded
    refunded, failed → (terminal)
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from ticketing.domain import ticketing
from ticketing.order.events import (
    OrderPaid,
    OrderPaymentFailed,
    OrderPlaced,
    OrderRefundDeclined,
    OrderRefunded,
)
from ticketing.pricing import breakdown, processing_fee


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"
    FAILED = "failed"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.FAILED},
    OrderStatus.PAID: {OrderStatus.REFUNDED, OrderStatus.PARTIALLY_REFUNDED},
    OrderStatus.PARTIALLY_REFUNDED: {OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),  # Terminal
    OrderStatus.FAILED: set(),  # Terminal
}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ticketing.entity(part_of="Order")
class OrderLine:
    """Tickets of one tier bought in this order."""

    tier_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price_cents = Integer(required=True, min_value=0)

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ticketing.aggregate
class Order:
    buyer_id = Identifier(required=True)
    buyer_email = String(max_length=254)
    event_id = Identifier(required=True)
    lines = HasMany(OrderLine)
    subtotal_cents = Integer(default=0)
    fees_cents = Integer(default=0)
    total_cents = Integer(default=0)
    platform_fee_cents = Integer(default=0)
    currency = String(max_length=3, default="USD")
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_reference = String(max_length=255)
    refund_attempts = Integer(default=0)
    placed_at = DateTime()
    paid_at = DateTime()
    refunded_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def total_is_subtotal_plus_fees(self):
        if self.total_cents != self.subtotal_cents + self.fees_cents:
            raise ValidationError({"total_cents": ["Total must equal subtotal plus fees"]})

    @invariant.post
    def fees_follow_pricing(self):
        if self.fees_cents != processing_fee(self.subtotal_cents):
            raise ValidationError({"fees_cents": ["Fees must be computed from the subtotal"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, buyer_id, event_id, lines, buyer_email=None, currency="USD"):
        """Place an order. ``lines`` is a list of {tier_id, quantity, unit_price_cents}."""
        if not lines:
            raise ValidationError({"lines": ["An order needs at least one line"]})

        now = datetime.now(UTC)
        subtotal = sum(line["quantity"] * line["unit_price_cents"] for line in lines)
        price = breakdown(subtotal, currency)

        order = cls(
            buyer_id=buyer_id,
            buyer_email=buyer_email,
            event_id=event_id,
            subtotal_cents=price.subtotal,
            fees_cents=price.fees,
            total_cents=price.total,
            platform_fee_cents=price.platform_fee,
            currency=currency,
            status=OrderStatus.PENDING.value,
            refund_attempts=0,
            placed_at=now,
        )
        for line in lines:
            order.add_lines(
                OrderLine(
                    tier_id=line["tier_id"],
                    quantity=line["quantity"],
                    unit_price_cents=line["unit_price_cents"],
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                event_id=str(event_id),
                buyer_id=str(buyer_id),
                subtotal_cents=price.subtotal,
                fees_cents=price.fees,
                total_cents=price.total,
                currency=currency,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: OrderStatus) -> None:
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def mark_paid(self, payment_reference):
        self._assert_can_transition(OrderStatus.PAID)

        now = datetime.now(UTC)
        self.status = OrderStatus.PAID.value
        self.payment_reference = payment_reference
        self.paid_at = now

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                event_id=str(self.event_id),
                buyer_id=str(self.buyer_id),
                payment_reference=payment_reference,
                total_cents=self.total_cents,
                paid_at=now,
            )
        )

    def mark_failed(self, reason):
        self._assert_can_transition(OrderStatus.FAILED)

        now = datetime.now(UTC)
        self.status = OrderStatus.FAILED.value

        self.raise_(OrderPaymentFailed(order_id=str(self.id), reason=reason, failed_at=now))

    # -------------------------------------------------------------------
    # Refunds
    # -------------------------------------------------------------------
    @property
    def refund_idempotency_key(self) -> str:
        """Processor idempotency key for the current refund attempt.

        Stable across retries of the same attempt; changes only after the
        processor definitively declines.
        """
        return f"refund:{self.id}:{self.refund_attempts}"

    def record_refund_declined(self, reason):
        now = datetime.now(UTC)
        attempt = self.refund_attempts
        self.refund_attempts = attempt + 1

        self.raise_(
            OrderRefundDeclined(
                order_id=str(self.id),
                attempt=attempt,
                reason=reason,
                declined_at=now,
            )
        )

    def mark_refunded(self, gateway_refund_id, amount_cents):
        self._assert_can_transition(OrderStatus.REFUNDED)

        now = datetime.now(UTC)
        self.status = OrderStatus.REFUNDED.value
        self.refunded_at = now

        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                event_id=str(self.event_id),
                gateway_refund_id=gateway_refund_id,
                amount_cents=amount_cents,
                refunded_at=now,
            )
        )
