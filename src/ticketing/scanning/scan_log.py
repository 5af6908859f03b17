"""ScanLogEntry aggregate: the append-only audit trail of door scans.

Every redemption attempt, accepted or rejected, leaves exactly one entry.
Entries are created and never changed; organizers use them to settle
disputes at the door.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, String, Text

from ticketing.domain import ticketing


class ScanOutcome(Enum):
    VALID = "valid"
    DUPLICATE = "duplicate"
    EXPIRED = "expired"
    INVALID = "invalid"
    WRONG_EVENT = "wrong_event"
    REFUNDED = "refunded"
    VOID = "void"


@ticketing.aggregate
class ScanLogEntry:
    event_id = Identifier(required=True)
    ticket_id = Identifier()  # None when the token matched no ticket
    scanner_id = Identifier(required=True)
    outcome = String(choices=ScanOutcome, required=True)
    details = Text()  # JSON object
    scanned_at = DateTime(required=True)

    @classmethod
    def record(cls, event_id, scanner_id, outcome: ScanOutcome, ticket_id=None, details=None, at=None):
        return cls(
            event_id=event_id,
            ticket_id=ticket_id,
            scanner_id=scanner_id,
            outcome=outcome.value,
            details=json.dumps(details or {}, default=str),
            scanned_at=at or datetime.now(UTC),
        )

    @property
    def detail_dict(self) -> dict:
        return json.loads(self.details) if self.details else {}
