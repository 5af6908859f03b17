"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations.
PAYMENT_GATEWAY selects the adapter; "fake" is the default.
"""

import os

from ticketing.gateway.port import GatewayError, GatewayUnavailable, PaymentGateway, RefundResult

__all__ = [
    "GatewayError",
    "GatewayUnavailable",
    "PaymentGateway",
    "RefundResult",
    "get_gateway",
    "set_gateway",
    "reset_gateway",
]

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway. Defaults to FakeGateway."""
    global _current_gateway
    if _current_gateway is None:
        adapter = os.environ.get("PAYMENT_GATEWAY", "fake")
        if adapter == "fake":
            from ticketing.gateway.fake_adapter import FakeGateway

            _current_gateway = FakeGateway()
        else:
            raise ValueError(f"Unknown payment gateway: {adapter}")
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
