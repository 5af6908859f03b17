"""QR tokens printed on tickets.

Eight characters from an alphabet without look-alikes (no I, O, 0 or 1),
so door staff can key a code in by hand when a camera fails.
"""

import re
import secrets

QR_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
QR_LENGTH = 8
QR_PATTERN = re.compile(r"^[A-HJ-NP-Z2-9]{8}$")


def generate_qr_code() -> str:
    return "".join(secrets.choice(QR_ALPHABET) for _ in range(QR_LENGTH))


def normalize_qr_code(presented) -> str | None:
    """Upper-case and trim a presented token; None when it cannot be a QR code."""
    if not isinstance(presented, str):
        return None
    token = presented.strip().upper()
    return token if QR_PATTERN.match(token) else None
