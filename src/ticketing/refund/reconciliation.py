"""Bring the local ledger in line with what the processor reports.

Two entry points feed the same idempotent RecordRefund command:

- ``confirm_refund``: the processor's refund webhook
- ``reconcile_refunds``: a periodic sweep over the processor's refund list,
  for refunds whose synchronous ledger write failed and whose webhook was
  lost
"""

import structlog
from protean.utils.globals import current_domain

from ticketing.access import SYSTEM_IDENTITY
from ticketing.access.policy import authorize_platform_admin
from ticketing.gateway import get_gateway
from ticketing.refund.ledger import RecordRefund, RefundLedgerEntry
from ticketing.refund.results import ReconciliationReport

logger = structlog.get_logger(__name__)


def confirm_refund(
    gateway_refund_id,
    confirmation_id,
    order_id,
    amount_cents,
    reason=None,
    refund_type="admin",
    initiated_by=SYSTEM_IDENTITY,
):
    """Record a processor-confirmed refund. Returns the ledger write."""
    written = current_domain.process(
        RecordRefund(
            order_id=order_id,
            gateway_refund_id=gateway_refund_id,
            amount_cents=amount_cents,
            reason=reason,
            refund_type=refund_type,
            initiated_by=initiated_by,
            confirmation_id=confirmation_id,
        ),
        asynchronous=False,
    )
    logger.info(
        "Refund webhook processed",
        gateway_refund_id=gateway_refund_id,
        entry_id=written.entry_id,
        created=written.created,
    )
    return written


def reconcile_refunds(since, requested_by=SYSTEM_IDENTITY) -> ReconciliationReport:
    """Replay RecordRefund for processor refunds missing from the ledger.

    Scheduled sweeps run as the system; anyone else must be a platform admin.
    """
    authorize_platform_admin(requested_by)

    report = ReconciliationReport()
    ledger_repo = current_domain.repository_for(RefundLedgerEntry)

    for refund in get_gateway().list_refunds(created_after=since):
        report.checked += 1

        if ledger_repo.find_by_gateway_refund_id(refund.gateway_refund_id) is not None:
            report.already_recorded += 1
            continue

        metadata = refund.metadata or {}
        if "order_id" not in metadata:
            logger.warning("Processor refund without order reference", gateway_refund_id=refund.gateway_refund_id)
            report.failed += 1
            continue

        try:
            current_domain.process(
                RecordRefund(
                    order_id=metadata["order_id"],
                    gateway_refund_id=refund.gateway_refund_id,
                    amount_cents=refund.amount_cents,
                    reason=metadata.get("reason"),
                    refund_type=metadata.get("refund_type", "admin"),
                    initiated_by=metadata.get("initiated_by", SYSTEM_IDENTITY),
                ),
                asynchronous=False,
            )
        except Exception as exc:
            logger.error(
                "Refund reconciliation failed",
                gateway_refund_id=refund.gateway_refund_id,
                order_id=metadata["order_id"],
                error=str(exc),
            )
            report.failed += 1
            continue

        report.reconciled += 1

    logger.info(
        "Refund reconciliation finished",
        checked=report.checked,
        reconciled=report.reconciled,
        already_recorded=report.already_recorded,
        failed=report.failed,
    )
    return report
