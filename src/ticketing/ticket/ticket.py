"""Ticket aggregate (CQRS): one admission unit.

Redemption is one-way. ``redeemed_at`` is set together with the
``redeemed`` status and never changes afterwards; the two always agree.

State Machine:
    issued → redeemed | refunded | void | transferred
    transferred → redeemed | refunded | void | transferred
    redeemed, refunded, void → (terminal)
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String

from ticketing.domain import ticketing
from ticketing.ticket.events import (
    TicketIssued,
    TicketRedeemed,
    TicketRefunded,
    TicketTransferred,
    TicketVoided,
)
from ticketing.ticket.qr import generate_qr_code


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class TicketStatus(Enum):
    ISSUED = "issued"
    TRANSFERRED = "transferred"
    REDEEMED = "redeemed"
    REFUNDED = "refunded"
    VOID = "void"


_VALID_TRANSITIONS = {
    TicketStatus.ISSUED: {
        TicketStatus.REDEEMED,
        TicketStatus.REFUNDED,
        TicketStatus.VOID,
        TicketStatus.TRANSFERRED,
    },
    TicketStatus.TRANSFERRED: {
        TicketStatus.REDEEMED,
        TicketStatus.REFUNDED,
        TicketStatus.VOID,
        TicketStatus.TRANSFERRED,
    },
    TicketStatus.REDEEMED: set(),  # Absorbing
    TicketStatus.REFUNDED: set(),  # Terminal
    TicketStatus.VOID: set(),  # Terminal
}

# Statuses the refund ledger writer moves to refunded
REFUNDABLE_STATUSES = frozenset({TicketStatus.ISSUED.value, TicketStatus.TRANSFERRED.value})


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ticketing.aggregate
class Ticket:
    event_id = Identifier(required=True)
    order_id = Identifier(required=True)
    tier_id = Identifier(required=True)
    owner_id = Identifier(required=True)
    attendee_name = String(max_length=200)
    qr_code = String(max_length=8, required=True, unique=True)
    serial_no = Integer(default=1)
    status = String(choices=TicketStatus, default=TicketStatus.ISSUED.value)
    redeemed_at = DateTime()
    issued_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def redeemed_at_matches_status(self):
        is_redeemed = self.status == TicketStatus.REDEEMED.value
        if is_redeemed != (self.redeemed_at is not None):
            raise ValidationError({"redeemed_at": ["Redemption time is set exactly when a ticket is redeemed"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def issue(cls, event_id, order_id, tier_id, owner_id, serial_no, attendee_name=None, qr_code=None):
        now = datetime.now(UTC)
        ticket = cls(
            event_id=event_id,
            order_id=order_id,
            tier_id=tier_id,
            owner_id=owner_id,
            attendee_name=attendee_name,
            qr_code=qr_code or generate_qr_code(),
            serial_no=serial_no,
            status=TicketStatus.ISSUED.value,
            issued_at=now,
            updated_at=now,
        )
        ticket.raise_(
            TicketIssued(
                ticket_id=str(ticket.id),
                event_id=str(event_id),
                order_id=str(order_id),
                tier_id=str(tier_id),
                owner_id=str(owner_id),
                serial_no=serial_no,
                issued_at=now,
            )
        )
        return ticket

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status: TicketStatus) -> None:
        current = TicketStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    @property
    def is_redeemed(self) -> bool:
        return self.redeemed_at is not None

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def redeem(self, scanner_id, at=None):
        """Admit the holder. Persist with the version this copy was read at."""
        self._assert_can_transition(TicketStatus.REDEEMED)

        now = at or datetime.now(UTC)
        with atomic_change(self):
            self.status = TicketStatus.REDEEMED.value
            self.redeemed_at = now
            self.updated_at = now

        self.raise_(
            TicketRedeemed(
                ticket_id=str(self.id),
                event_id=str(self.event_id),
                scanner_id=str(scanner_id),
                redeemed_at=now,
            )
        )

    def transfer(self, to_owner_id, attendee_name=None):
        self._assert_can_transition(TicketStatus.TRANSFERRED)

        now = datetime.now(UTC)
        from_owner_id = self.owner_id
        self.status = TicketStatus.TRANSFERRED.value
        self.owner_id = to_owner_id
        self.attendee_name = attendee_name
        self.updated_at = now

        self.raise_(
            TicketTransferred(
                ticket_id=str(self.id),
                from_owner_id=str(from_owner_id),
                to_owner_id=str(to_owner_id),
                transferred_at=now,
            )
        )

    def refund(self, gateway_refund_id):
        self._assert_can_transition(TicketStatus.REFUNDED)

        now = datetime.now(UTC)
        self.status = TicketStatus.REFUNDED.value
        self.updated_at = now

        self.raise_(
            TicketRefunded(
                ticket_id=str(self.id),
                event_id=str(self.event_id),
                order_id=str(self.order_id),
                gateway_refund_id=gateway_refund_id,
                refunded_at=now,
            )
        )

    def void(self, reason):
        self._assert_can_transition(TicketStatus.VOID)

        now = datetime.now(UTC)
        self.status = TicketStatus.VOID.value
        self.updated_at = now

        self.raise_(
            TicketVoided(
                ticket_id=str(self.id),
                event_id=str(self.event_id),
                reason=reason,
                voided_at=now,
            )
        )
