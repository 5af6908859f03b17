"""Integration tests for pricing, event and door-scanning endpoints."""

from datetime import UTC, datetime, timedelta

from protean import current_domain

from ticketing.access import get_directory
from ticketing.listing.event_listing import EventListing
from ticketing.ticket.ticket import Ticket


def _tickets(order_id):
    return current_domain.repository_for(Ticket).find_by_order(order_id)


class TestPricingAPI:
    def test_breakdown(self, client):
        response = client.get("/pricing", params={"face_value_cents": 1000})
        assert response.status_code == 200
        assert response.json() == {
            "subtotal": 1000,
            "fees": 313,
            "total": 1313,
            "platform_fee": 245,
            "currency": "USD",
        }

    def test_negative_face_value_rejected(self, client):
        response = client.get("/pricing", params={"face_value_cents": -1})
        assert response.status_code == 422


class TestScheduleEventAPI:
    def test_returns_201(self, client, api_event):
        event_id = api_event()
        listing = current_domain.repository_for(EventListing).get(event_id)
        assert listing.title == "Harbour Lights Festival"
        assert len(listing.tiers) == 2
        assert listing.refund_policy.refund_window_hours == 24

    def test_response_lists_tier_ids(self, client):
        start_at = datetime.now(UTC) + timedelta(days=3)
        response = client.post(
            "/events",
            json={
                "title": "Rooftop Cinema",
                "owner_id": "organizer-1",
                "start_at": start_at.isoformat(),
                "tiers": [{"name": "Deckchair", "price_cents": 1800, "quantity": 60}],
            },
        )

        assert response.status_code == 201
        listing = current_domain.repository_for(EventListing).get(response.json()["event_id"])
        assert response.json()["tier_ids"] == [str(listing.tiers[0].id)]

    def test_end_before_start_is_400(self, client):
        start_at = datetime.now(UTC) + timedelta(days=3)
        response = client.post(
            "/events",
            json={
                "title": "Backwards",
                "owner_id": "organizer-1",
                "start_at": start_at.isoformat(),
                "end_at": (start_at - timedelta(hours=1)).isoformat(),
            },
        )
        assert response.status_code == 400


class TestRefundPolicyAPI:
    def test_owner_configures(self, client, api_event):
        event_id = api_event()
        response = client.put(
            f"/events/{event_id}/refund-policy",
            json={"configured_by": "organizer-1", "refund_window_hours": 72, "auto_approve_enabled": True},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "configured"

        policy = current_domain.repository_for(EventListing).get(event_id).refund_policy
        assert policy.refund_window_hours == 72
        assert policy.auto_approve_enabled is True

    def test_stranger_gets_403(self, client, api_event):
        event_id = api_event()
        response = client.put(f"/events/{event_id}/refund-policy", json={"configured_by": "stranger"})
        assert response.status_code == 403

    def test_window_out_of_range_is_422(self, client, api_event):
        event_id = api_event()
        response = client.put(
            f"/events/{event_id}/refund-policy",
            json={"configured_by": "organizer-1", "refund_window_hours": 500},
        )
        assert response.status_code == 422


class TestScanAPI:
    def test_valid_then_duplicate(self, client, api_event, api_paid_order):
        event_id = api_event()
        order_id = api_paid_order(event_id)
        get_directory().grant_scanner(event_id, "scanner-1")
        qr_code = _tickets(order_id)[0].qr_code

        first = client.post(f"/events/{event_id}/scans", json={"qr_code": qr_code, "scanner_id": "scanner-1"})
        assert first.status_code == 200
        body = first.json()
        assert body["outcome"] == "valid"
        assert body["success"] is True
        assert body["ticket"]["tier_name"] == "General"

        second = client.post(f"/events/{event_id}/scans", json={"qr_code": qr_code, "scanner_id": "scanner-1"})
        assert second.json()["outcome"] == "duplicate"
        assert second.json()["success"] is False
        assert second.json()["original_redeemed_at"] is not None

    def test_malformed_code(self, client, api_event):
        event_id = api_event()
        response = client.post(f"/events/{event_id}/scans", json={"qr_code": "??", "scanner_id": "organizer-1"})
        assert response.status_code == 200
        assert response.json()["outcome"] == "invalid"
        assert response.json()["error"] == "malformed_token"

    def test_unauthorized_scanner_gets_403(self, client, api_event):
        event_id = api_event()
        response = client.post(f"/events/{event_id}/scans", json={"qr_code": "ABCD2345", "scanner_id": "stranger"})
        assert response.status_code == 403
        assert response.json()["detail"] == "not_event_scanner"

    def test_unknown_event_is_404(self, client):
        response = client.post("/events/no-such-event/scans", json={"qr_code": "ABCD2345", "scanner_id": "x"})
        assert response.status_code == 404


class TestScanLogAPI:
    def test_owner_reads_log(self, client, api_event, api_paid_order):
        event_id = api_event()
        order_id = api_paid_order(event_id)
        qr_code = _tickets(order_id)[0].qr_code
        client.post(f"/events/{event_id}/scans", json={"qr_code": qr_code, "scanner_id": "organizer-1"})

        response = client.get(f"/events/{event_id}/scan-log", params={"requested_by": "organizer-1"})

        assert response.status_code == 200
        entries = response.json()
        assert len(entries) == 1
        assert entries[0]["outcome"] == "valid"
        assert entries[0]["details"]["qr_token"] == qr_code

    def test_scanner_gets_403(self, client, api_event):
        event_id = api_event()
        get_directory().grant_scanner(event_id, "scanner-1")
        response = client.get(f"/events/{event_id}/scan-log", params={"requested_by": "scanner-1"})
        assert response.status_code == 403
