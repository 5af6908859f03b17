"""Payment processor port (abstract interface).

Defines the contract every processor adapter must implement for refunds.
Amounts are integer cents. Every refund carries an idempotency key: the
processor returns the original result for a key it has already seen
instead of moving money twice.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


class GatewayError(Exception):
    """The processor could not be reached or rejected the request outright."""


class GatewayUnavailable(GatewayError):
    """The call timed out or the connection dropped mid-flight.

    The refund may or may not exist on the processor side. Retry only with
    the same idempotency key.
    """


@dataclass(frozen=True)
class RefundResult:
    """Result of a refund attempt, or a refund listed back from the processor."""

    success: bool
    gateway_refund_id: str | None = None
    amount_cents: int = 0
    currency: str = "USD"
    gateway_status: str | None = None
    failure_reason: str | None = None
    metadata: dict = field(default_factory=dict)
    created_at: datetime | None = None


class PaymentGateway(ABC):
    """Abstract payment processor interface."""

    @abstractmethod
    def create_refund(
        self,
        payment_reference: str,
        amount_cents: int,
        currency: str,
        idempotency_key: str,
        metadata: dict,
    ) -> RefundResult:
        """Refund (part of) a previous charge."""
        ...

    @abstractmethod
    def list_refunds(self, created_after: datetime) -> list[RefundResult]:
        """List successful refunds created after a point in time."""
        ...

    @abstractmethod
    def verify_webhook_signature(
        self,
        payload: str,
        signature: str,
    ) -> bool:
        """Verify that a webhook payload is authentically from the processor."""
        ...
