"""Pricing engine: face value in, full fee breakdown out.

The platform keeps a target net fee of 6.6% + $1.79 per charge. The card
processor then takes 2.9% + $0.30 of whatever is charged, so the buyer's
total is grossed up until the platform still nets its target:

    platform_target = face * 0.066 + 1.79
    total_charge    = (face + platform_target + 0.30) / (1 - 0.029)
    fees            = round((total_charge - face) * 100)   # cents
    platform_fee    = round(platform_target * 100)         # cents

Everything is computed in Decimal and rounded half away from zero on the
final cent. No clock, no randomness: identical input yields identical
output, which is what makes checkout retries idempotent.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

PLATFORM_FEE_RATE = Decimal("0.066")
PLATFORM_FEE_FIXED = Decimal("1.79")
PROCESSOR_FEE_RATE = Decimal("0.029")
PROCESSOR_FEE_FIXED = Decimal("0.30")

_CENTS = Decimal(100)


@dataclass(frozen=True)
class PriceBreakdown:
    """Buyer-facing price of a face-value amount, all in integer cents."""

    subtotal: int
    fees: int
    total: int
    platform_fee: int
    currency: str = "USD"


def _round_cents(amount: Decimal) -> int:
    # ROUND_HALF_UP in Decimal rounds half away from zero
    return int(amount.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _platform_target(face_value: Decimal) -> Decimal:
    return face_value * PLATFORM_FEE_RATE + PLATFORM_FEE_FIXED


def platform_fee(face_value_cents: int) -> int:
    """The platform's own cut in cents (excludes the processor gross-up)."""
    if face_value_cents <= 0:
        return 0
    face_value = Decimal(face_value_cents) / _CENTS
    return _round_cents(_platform_target(face_value) * _CENTS)


def processing_fee(face_value_cents: int) -> int:
    """Total fees charged on top of face value, in cents."""
    if face_value_cents <= 0:
        return 0
    face_value = Decimal(face_value_cents) / _CENTS
    total_net = face_value + _platform_target(face_value)
    total_charge = (total_net + PROCESSOR_FEE_FIXED) / (1 - PROCESSOR_FEE_RATE)
    return _round_cents((total_charge - face_value) * _CENTS)


def breakdown(face_value_cents: int, currency: str = "USD") -> PriceBreakdown:
    """Compute the full price breakdown for a face-value amount."""
    fees = processing_fee(face_value_cents)
    return PriceBreakdown(
        subtotal=face_value_cents,
        fees=fees,
        total=face_value_cents + fees,
        platform_fee=platform_fee(face_value_cents),
        currency=currency,
    )
