"""Scan results, one type per outcome.

Rejections are ordinary results, not exceptions: wrong-event scans and
double scans happen all night at a busy door.
"""

from dataclasses import dataclass, field
from datetime import datetime

from ticketing.scanning.scan_log import ScanOutcome


@dataclass(frozen=True)
class TicketReceipt:
    """What the scanner UI shows about an admitted (or re-presented) ticket."""

    ticket_id: str
    tier_name: str
    attendee_name: str
    badge_label: str | None = None


@dataclass(frozen=True)
class ScanValid:
    receipt: TicketReceipt
    redeemed_at: datetime
    outcome: ScanOutcome = field(default=ScanOutcome.VALID, init=False)
    success: bool = field(default=True, init=False)

    @property
    def message(self) -> str:
        return "Ticket validated"


@dataclass(frozen=True)
class ScanDuplicate:
    receipt: TicketReceipt
    original_redeemed_at: datetime
    outcome: ScanOutcome = field(default=ScanOutcome.DUPLICATE, init=False)
    success: bool = field(default=False, init=False)

    @property
    def message(self) -> str:
        return f"Already scanned at {self.original_redeemed_at.isoformat()}"


@dataclass(frozen=True)
class ScanExpired:
    ticket_id: str
    event_end: datetime
    outcome: ScanOutcome = field(default=ScanOutcome.EXPIRED, init=False)
    success: bool = field(default=False, init=False)

    @property
    def message(self) -> str:
        return "Event has ended"


@dataclass(frozen=True)
class ScanInvalid:
    error: str  # malformed_token | ticket_not_found
    outcome: ScanOutcome = field(default=ScanOutcome.INVALID, init=False)
    success: bool = field(default=False, init=False)

    @property
    def message(self) -> str:
        return "Invalid code format" if self.error == "malformed_token" else "Invalid ticket"


@dataclass(frozen=True)
class ScanWrongEvent:
    ticket_id: str
    actual_event_id: str
    outcome: ScanOutcome = field(default=ScanOutcome.WRONG_EVENT, init=False)
    success: bool = field(default=False, init=False)

    @property
    def message(self) -> str:
        return "Ticket is for a different event"


@dataclass(frozen=True)
class ScanRefunded:
    ticket_id: str
    outcome: ScanOutcome = field(default=ScanOutcome.REFUNDED, init=False)
    success: bool = field(default=False, init=False)

    @property
    def message(self) -> str:
        return "Ticket has been refunded"


@dataclass(frozen=True)
class ScanVoid:
    ticket_id: str
    outcome: ScanOutcome = field(default=ScanOutcome.VOID, init=False)
    success: bool = field(default=False, init=False)

    @property
    def message(self) -> str:
        return "Ticket is void"


ScanResult = ScanValid | ScanDuplicate | ScanExpired | ScanInvalid | ScanWrongEvent | ScanRefunded | ScanVoid
