"""Unit tests for payment and receipt identifier generation."""

import re
from datetime import datetime, timezone

from app.fees.identifiers import _base36, generate_payment_id, generate_receipt_no


def test_receipt_no_format() -> None:
    """RCPT- + YYMMDD + 4 digits."""
    now = datetime(2024, 6, 3, 10, 30, tzinfo=timezone.utc)
    receipt = generate_receipt_no(now)
    assert re.match(r"^RCPT-240603-\d{4}$", receipt)


def test_receipt_no_defaults_to_today() -> None:
    receipt = generate_receipt_no()
    assert receipt.startswith(f"RCPT-{datetime.now(timezone.utc):%y%m%d}-")


def test_payment_id_format() -> None:
    now = datetime(2024, 6, 3, 10, 30, tzinfo=timezone.utc)
    payment_id = generate_payment_id(now)
    prefix, stamp, suffix = payment_id.split("-")
    assert prefix == "PAY"
    assert int(stamp, 36) == int(now.timestamp() * 1000)
    assert re.match(r"^[A-Z0-9]{6}$", suffix)


def test_payment_ids_differ() -> None:
    """Random suffix: 36^6 possibilities, 20 calls are distinct."""
    now = datetime(2024, 6, 3, tzinfo=timezone.utc)
    ids = {generate_payment_id(now) for _ in range(20)}
    assert len(ids) == 20


def test_base36() -> None:
    assert _base36(0) == "0"
    assert _base36(35) == "Z"
    assert _base36(36) == "10"
    assert int(_base36(1717410600000), 36) == 1717410600000
