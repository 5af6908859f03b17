"""Configurable fake payment processor for development and testing.

Simulates the processor's refund API without external calls:
- idempotency keys are honoured, a repeated key returns the stored result
- refunds can be declined or made to time out on demand
- every call is recorded in ``calls`` for assertions
"""

from datetime import UTC, datetime
from uuid import uuid4

from ticketing.gateway.port import GatewayUnavailable, PaymentGateway, RefundResult


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Refund declined"
        self.timeouts_remaining: int = 0
        self.apply_before_timeout: bool = False
        self.calls: list[dict] = []
        self.refunds: dict[str, RefundResult] = {}
        self._by_idempotency_key: dict[str, RefundResult] = {}

    def configure(self, should_succeed: bool, failure_reason: str = "Refund declined") -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def time_out_next(self, times: int = 1, after_applying: bool = False) -> None:
        """Make the next ``times`` refund calls raise GatewayUnavailable.

        With ``after_applying`` the refund is created before the timeout,
        which is the ambiguous case a real processor can produce.
        """
        self.timeouts_remaining = times
        self.apply_before_timeout = after_applying

    @property
    def refund_effects(self) -> int:
        """Number of distinct refunds that actually moved money."""
        return len(self.refunds)

    def create_refund(
        self,
        payment_reference: str,
        amount_cents: int,
        currency: str,
        idempotency_key: str,
        metadata: dict,
    ) -> RefundResult:
        self.calls.append(
            {
                "method": "create_refund",
                "payment_reference": payment_reference,
                "amount_cents": amount_cents,
                "currency": currency,
                "idempotency_key": idempotency_key,
                "metadata": dict(metadata),
            }
        )

        if self.timeouts_remaining > 0:
            self.timeouts_remaining -= 1
            if self.apply_before_timeout and idempotency_key not in self._by_idempotency_key:
                self._apply(amount_cents, currency, idempotency_key, metadata)
            raise GatewayUnavailable("Timed out waiting for the payment processor")

        if idempotency_key in self._by_idempotency_key:
            return self._by_idempotency_key[idempotency_key]

        if not self.should_succeed:
            result = RefundResult(
                success=False,
                amount_cents=amount_cents,
                currency=currency,
                gateway_status="failed",
                failure_reason=self.failure_reason,
                metadata=dict(metadata),
            )
            self._by_idempotency_key[idempotency_key] = result
            return result

        return self._apply(amount_cents, currency, idempotency_key, metadata)

    def _apply(self, amount_cents: int, currency: str, idempotency_key: str, metadata: dict) -> RefundResult:
        result = RefundResult(
            success=True,
            gateway_refund_id=f"fake_re_{uuid4().hex[:12]}",
            amount_cents=amount_cents,
            currency=currency,
            gateway_status="succeeded",
            metadata=dict(metadata),
            created_at=datetime.now(UTC),
        )
        self.refunds[result.gateway_refund_id] = result
        self._by_idempotency_key[idempotency_key] = result
        return result

    def list_refunds(self, created_after: datetime) -> list[RefundResult]:
        self.calls.append({"method": "list_refunds", "created_after": created_after})
        return sorted(
            (r for r in self.refunds.values() if r.created_at and r.created_at > created_after),
            key=lambda r: r.created_at,
        )

    def verify_webhook_signature(self, payload: str, signature: str) -> bool:  # noqa: ARG002
        return signature == "test-signature"
