"""Ticketing bounded context: pricing, door scanning, and refund integrity.

Owns the ticket state machine (issuance, redemption, refund, void), the
order money fields, and the refund workflow that keeps the payment
processor and the local ledger consistent.
"""

from protean.domain import Domain

from ticketing.utils.logging import configure_logging

configure_logging()

ticketing = Domain(name="ticketing")
