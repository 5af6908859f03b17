"""Ticketing domain API package."""

from ticketing.api.routes import (
    event_router,
    gateway_router,
    order_router,
    pricing_router,
    refund_request_router,
    refund_router,
)

__all__ = [
    "pricing_router",
    "event_router",
    "order_router",
    "refund_request_router",
    "refund_router",
    "gateway_router",
]
