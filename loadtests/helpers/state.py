"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance keeps its own state; nothing is shared across
users. State holds the ids returned by creation endpoints so follow-up
requests can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class EventState:
    """An event this simulated organizer owns."""

    event_id: str | None = None
    owner_id: str | None = None
    tier_ids: list[str] = field(default_factory=list)


@dataclass
class OrderState:
    """A paid order and the tickets it was issued."""

    order_id: str | None = None
    buyer_id: str | None = None
    qr_codes: list[str] = field(default_factory=list)


@dataclass
class RefundRequestState:
    request_id: str | None = None
    status: str | None = None
