"""Shared BDD fixtures and step definitions for the Ticketing domain."""

from datetime import timedelta

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then, when

from ticketing.order.order import Order
from ticketing.refund.processing import process_refund
from ticketing.ticket.ticket import Ticket


@pytest.fixture()
def error():
    """Holds an exception raised by a When step."""
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("an event starting in {days:d} days"), target_fixture="listing")
def _event(make_event, days):
    return make_event(starts_in=timedelta(days=days))


@given(parsers.cfparse("an auto-approving event starting in {days:d} days"), target_fixture="listing")
def _auto_approving_event(make_event, days):
    return make_event(starts_in=timedelta(days=days), auto_approve_enabled=True)


@given("an event that ended an hour ago", target_fixture="listing")
def _past_event(make_event):
    return make_event(starts_in=-timedelta(hours=5), duration=timedelta(hours=4))


@given(parsers.cfparse("a paid order for {quantity:d} tickets"), target_fixture="order")
def _paid_order(listing, make_paid_order, quantity):
    return make_paid_order(listing, quantity=quantity)


@given(parsers.cfparse('"{identity}" is door staff for the event'))
def _door_staff(listing, directory, identity):
    directory.grant_scanner(str(listing.id), identity)


@given(parsers.cfparse('the order was refunded by "{identity}"'))
def _already_refunded(order, identity):
    process_refund(str(order.id), None, identity)


@given("the first ticket was scanned at the door")
def _first_ticket_scanned(order, tickets_for):
    ticket = tickets_for(order)[0]
    ticket.redeem("scanner-1")
    current_domain.repository_for(Ticket).add(ticket)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('access is denied with "{reason}"'))
def _denied(error, reason):
    assert "exc" in error, "Expected the action to be denied"
    assert error["exc"].reason == reason


@then(parsers.cfparse('the order is "{status}"'))
def _order_status(order, status):
    assert current_domain.repository_for(Order).get(order.id).status == status


@then(parsers.cfparse("the processor refund count is {count:d}"))
def _refund_effects(gateway, count):
    assert gateway.refund_effects == count
