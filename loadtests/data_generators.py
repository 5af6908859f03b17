"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the domain's validation rules
and match the exact field names expected by the API's Pydantic request
schemas.
"""

import random
import uuid
from datetime import UTC, datetime, timedelta

from faker import Faker

fake = Faker()

REFUND_REASONS = ["cant_attend", "event_postponed", "duplicate_purchase", "not_as_described", "other"]


def identity(prefix: str) -> str:
    """Generate identities like 'buyer-a1b2c3d4'."""
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


# ---------- Events ----------


def event_data(owner_id: str, starts_in_days: int | None = None) -> dict:
    """Generate a ScheduleEventRequest payload with two tiers."""
    days = starts_in_days if starts_in_days is not None else random.randint(5, 60)
    start_at = datetime.now(UTC) + timedelta(days=days, hours=random.randint(0, 12))
    general = random.choice([1500, 2500, 3500, 4900])
    return {
        "title": f"{fake.city()} {random.choice(['Sessions', 'Live', 'Festival', 'Nights'])}"[:200],
        "owner_id": owner_id,
        "start_at": start_at.isoformat(),
        "end_at": (start_at + timedelta(hours=random.randint(2, 8))).isoformat(),
        "tiers": [
            {"name": "General", "price_cents": general, "quantity": 5000},
            {"name": "VIP", "badge_label": "VIP", "price_cents": general * 4, "quantity": 500},
        ],
    }


def refund_policy_data(configured_by: str, auto_approve: bool = False) -> dict:
    return {
        "configured_by": configured_by,
        "allow_refunds": True,
        "refund_window_hours": random.choice([24, 48, 72]),
        "auto_approve_enabled": auto_approve,
        "refund_fees": random.random() < 0.8,
    }


# ---------- Orders ----------


def order_data(event_id: str, tier_id: str, buyer_id: str) -> dict:
    return {
        "event_id": event_id,
        "buyer_id": buyer_id,
        "buyer_email": fake.email(),
        "lines": [{"tier_id": tier_id, "quantity": random.randint(1, 4)}],
    }


def payment_data() -> dict:
    return {"payment_reference": f"ch_lt_{uuid.uuid4().hex[:16]}"}


# ---------- Refunds ----------


def refund_request_data(order_id: str, requester_id: str) -> dict:
    return {
        "order_id": order_id,
        "requester_id": requester_id,
        "reason": random.choice(REFUND_REASONS),
        "details": fake.sentence(nb_words=10) if random.random() < 0.5 else None,
    }


def face_value_cents() -> int:
    return random.choice([100, 999, 2500, 4999, 10000, 25000, 99900])
