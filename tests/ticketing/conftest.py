import json
from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from ticketing.access import reset_directory, set_directory
from ticketing.access.memory_adapter import InMemoryRoleDirectory
from ticketing.gateway import reset_gateway, set_gateway
from ticketing.gateway.fake_adapter import FakeGateway

ORGANIZER = "organizer-1"
BUYER = "buyer-1"
SCANNER = "scanner-1"


@pytest.fixture(scope="session")
def ticketing_bed():
    from ticketing.domain import ticketing

    bed = DomainFixture(ticketing)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ticketing_bed):
    with ticketing_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def gateway():
    fake = FakeGateway()
    set_gateway(fake)
    yield fake
    reset_gateway()


@pytest.fixture(autouse=True)
def directory():
    roles = InMemoryRoleDirectory()
    set_directory(roles)
    yield roles
    reset_directory()


@pytest.fixture()
def make_event():
    """Schedule an event and persist it."""
    from ticketing.listing.event_listing import EventListing, RefundPolicy

    def _make(
        owner_id=ORGANIZER,
        org_id=None,
        starts_in=timedelta(days=10),
        duration=timedelta(hours=4),
        tiers=None,
        **policy,
    ):
        start_at = datetime.now(UTC) + starts_in
        listing = EventListing.schedule(
            title="Harbour Lights Festival",
            owner_id=owner_id,
            org_id=org_id,
            start_at=start_at,
            end_at=start_at + duration if duration is not None else None,
            tiers=tiers
            or [
                {"name": "General", "price_cents": 2500, "quantity": 100},
                {"name": "VIP", "badge_label": "VIP", "price_cents": 10000, "quantity": 10},
            ],
            refund_policy=RefundPolicy(**policy) if policy else None,
        )
        current_domain.repository_for(EventListing).add(listing)
        return listing

    return _make


@pytest.fixture()
def make_paid_order():
    """Place and pay an order; tickets are issued by the OrderPaid handler."""
    from ticketing.order.checkout import ConfirmPayment, PlaceOrder
    from ticketing.order.order import Order

    def _make(listing, buyer_id=BUYER, quantity=2, tier_index=0, buyer_email="buyer@example.com"):
        tier = listing.tiers[tier_index]
        order_id = current_domain.process(
            PlaceOrder(
                event_id=str(listing.id),
                buyer_id=buyer_id,
                buyer_email=buyer_email,
                lines=json.dumps([{"tier_id": str(tier.id), "quantity": quantity}]),
            ),
            asynchronous=False,
        )
        current_domain.process(
            ConfirmPayment(order_id=order_id, payment_reference=f"ch_{order_id[:8]}"),
            asynchronous=False,
        )
        return current_domain.repository_for(Order).get(order_id)

    return _make


@pytest.fixture()
def tickets_for():
    from ticketing.ticket.ticket import Ticket

    def _tickets(order):
        return current_domain.repository_for(Ticket).find_by_order(str(order.id))

    return _tickets
