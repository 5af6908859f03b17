"""BDD tests for door scanning."""

from protean import current_domain
from pytest_bdd import parsers, scenarios, then, when

from ticketing.access import AuthorizationDenied
from ticketing.scanning.validator import scan_log_for_event, validate
from ticketing.ticket.ticket import Ticket

scenarios("features/door_scanning.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('"{scanner_id}" scans the first ticket'), target_fixture="scan")
def scan_first_ticket(listing, order, tickets_for, scanner_id, error):
    ticket = tickets_for(order)[0]
    try:
        return validate(str(listing.id), ticket.qr_code, scanner_id)
    except AuthorizationDenied as exc:
        error["exc"] = exc
        return None


@when(parsers.cfparse('"{scanner_id}" scans the code "{code}"'), target_fixture="scan")
def scan_code(listing, scanner_id, code):
    return validate(str(listing.id), code, scanner_id)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the scan outcome is "{outcome}"'))
def scan_outcome(scan, outcome):
    assert scan.outcome.value == outcome


@then(parsers.cfparse('the first ticket is "{status}"'))
def first_ticket_status(order, tickets_for, status):
    ticket = current_domain.repository_for(Ticket).get(tickets_for(order)[0].id)
    assert ticket.status == status


@then(parsers.cfparse("the scan log has {count:d} entry"))
@then(parsers.cfparse("the scan log has {count:d} entries"))
def scan_log_size(listing, count):
    assert len(scan_log_for_event(str(listing.id), str(listing.owner_id))) == count
