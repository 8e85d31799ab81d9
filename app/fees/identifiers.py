"""
Payment and receipt identifiers.

Receipt numbers are short and human-readable (RCPT-YYMMDD-XXXX), so they can collide;
uniqueness is enforced by the database and the payment service regenerates on conflict.
"""

import secrets
import string
from datetime import datetime, timezone
from typing import Optional

_ALPHABET = string.ascii_uppercase + string.digits
_BASE36 = string.digits + string.ascii_uppercase


def _base36(value: int) -> str:
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits)) or "0"


def generate_receipt_no(now: Optional[datetime] = None) -> str:
    """RCPT-YYMMDD-XXXX with a random 4 digit suffix."""
    now = now or datetime.now(timezone.utc)
    suffix = f"{secrets.randbelow(10000):04d}"
    return f"RCPT-{now:%y%m%d}-{suffix}"


def generate_payment_id(now: Optional[datetime] = None) -> str:
    """PAY-<base36 millisecond timestamp>-<6 random alphanumerics>."""
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    random_part = "".join(secrets.choice(_ALPHABET) for _ in range(6))
    return f"PAY-{_base36(millis)}-{random_part}"
