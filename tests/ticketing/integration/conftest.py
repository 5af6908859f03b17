from datetime import UTC, datetime, timedelta

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean.integrations.fastapi import register_exception_handlers

from ticketing.api import (
    event_router,
    gateway_router,
    order_router,
    pricing_router,
    refund_request_router,
    refund_router,
)


@pytest.fixture()
def client():
    app = FastAPI()
    for router in (pricing_router, event_router, order_router, refund_request_router, refund_router, gateway_router):
        app.include_router(router)
    register_exception_handlers(app)
    return TestClient(app)


@pytest.fixture()
def api_event(client):
    """Schedule an event over HTTP and return its id."""

    def _create(owner_id="organizer-1", starts_in=timedelta(days=10), **overrides):
        start_at = datetime.now(UTC) + starts_in
        payload = {
            "title": "Harbour Lights Festival",
            "owner_id": owner_id,
            "start_at": start_at.isoformat(),
            "end_at": (start_at + timedelta(hours=4)).isoformat(),
            "tiers": [
                {"name": "General", "price_cents": 2500, "quantity": 100},
                {"name": "VIP", "badge_label": "VIP", "price_cents": 10000, "quantity": 10},
            ],
        }
        payload.update(overrides)
        response = client.post("/events", json=payload)
        assert response.status_code == 201
        return response.json()["event_id"]

    return _create


@pytest.fixture()
def api_paid_order(client):
    """Place and pay an order over HTTP for the first tier of ``event_id``."""
    from protean import current_domain

    from ticketing.listing.event_listing import EventListing

    def _create(event_id, buyer_id="buyer-1", quantity=2):
        listing = current_domain.repository_for(EventListing).get(event_id)
        tier = next(t for t in listing.tiers if t.name == "General")
        response = client.post(
            "/orders",
            json={
                "event_id": event_id,
                "buyer_id": buyer_id,
                "buyer_email": "buyer@example.com",
                "lines": [{"tier_id": str(tier.id), "quantity": quantity}],
            },
        )
        assert response.status_code == 201
        order_id = response.json()["order_id"]

        response = client.post(f"/orders/{order_id}/payment", json={"payment_reference": f"ch_{order_id[:8]}"})
        assert response.status_code == 200
        return order_id

    return _create
