import asyncio
from uuid import UUID

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.orm.exc import StaleDataError

from app.api.v1.payments import service as payment_service
from app.api.v1.payments.schemas import PaymentCreate
from app.core.config import settings
from app.core.models import FeeAuditLog, PaymentAllocation, PaymentHistoryEntry, StudentFeeSnapshot


YEAR = "2024-2025"


async def _admit(client: AsyncClient, annual_fee: int = 50000, terms: int = 3, **overrides) -> str:
    response = await client.post(
        "/api/v1/fees/class",
        json={"class_name": "5", "academic_year": YEAR, "total_annual_fee": annual_fee, "total_terms": terms},
    )
    assert response.status_code in (200, 201), response.text
    payload = {
        "admission_no": "ADM-100",
        "first_name": "Ravi",
        "class_name": "Class 5",
        "academic_year": YEAR,
    }
    payload.update(overrides)
    response = await client.post("/api/v1/students", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["id"]


async def _pay(client: AsyncClient, student_id: str, **fields):
    body = {"academic_year": YEAR, "payment_mode": "Cash"}
    body.update(fields)
    return await client.post(f"/api/v1/payments/students/{student_id}", json=body)


async def _details(client: AsyncClient, student_id: str) -> dict:
    response = await client.get(f"/api/v1/payments/students/{student_id}/fee-details")
    assert response.status_code == 200, response.text
    return response.json()


@pytest.mark.asyncio
async def test_term_payment_updates_snapshot_and_ledger(client: AsyncClient) -> None:
    student_id = await _admit(client)

    response = await _pay(client, student_id, term=1, school_fee_paid=16667, description="Cash at counter")
    assert response.status_code == 201, response.text
    result = response.json()
    payment = result["payment"]
    assert payment["receipt_no"].startswith("RCPT-")
    assert payment["payment_id"].startswith("PAY-")
    assert payment["term_number"] == 1
    assert payment["description"] == "Term 1 Payment - Cash at counter"
    assert payment["total_amount"] == 16667
    assert payment["received_by"] == "Admin"
    assert payment["allocations"] == [{"component": "school", "term_number": 1, "amount": 16667}]
    assert result["total_paid"] == 16667
    assert result["total_due"] == 50000 - 16667
    assert result["fee_status"] == "Partial"

    details = await _details(client, student_id)
    terms = {t["term"]: t for t in details["term_details"]}
    assert terms[1]["status"] == "Paid"
    assert terms[1]["payment_count"] == 1
    assert terms[2]["status"] == "Unpaid"
    assert details["next_term_number"] == 2
    assert details["components"]["school_fee"]["term_paid"] == {"1": 16667}
    assert list(details["components"]) == ["school_fee"]
    assert len(details["recent_payments"]) == 1


@pytest.mark.asyncio
async def test_term_overpayment_rejected_without_changes(client: AsyncClient, session_factory) -> None:
    student_id = await _admit(client)

    response = await _pay(client, student_id, term=1, school_fee_paid=20000)
    assert response.status_code == 400
    assert "exceeds Term 1 due amount (16667) by 3333" in response.json()["detail"]

    details = await _details(client, student_id)
    assert details["summary"]["total_paid"] == 0
    assert details["summary"]["total_due"] == 50000
    async with session_factory() as db:
        count = (await db.execute(select(func.count(PaymentHistoryEntry.id)))).scalar_one()
        assert count == 0
        count = (await db.execute(select(func.count(PaymentAllocation.id)))).scalar_one()
        assert count == 0


@pytest.mark.asyncio
async def test_second_payment_to_same_term_limited_to_remaining(client: AsyncClient) -> None:
    student_id = await _admit(client)
    assert (await _pay(client, student_id, term=1, school_fee_paid=10000)).status_code == 201

    response = await _pay(client, student_id, term=1, school_fee_paid=6668)
    assert response.status_code == 400
    assert "(6667)" in response.json()["detail"]
    assert (await _pay(client, student_id, term=1, school_fee_paid=6667)).status_code == 201


@pytest.mark.asyncio
async def test_component_overpayment_rejected(client: AsyncClient) -> None:
    student_id = await _admit(client)
    response = await _pay(client, student_id, school_fee_paid=50001)
    assert response.status_code == 400
    assert response.json()["detail"] == "School fee payment (50001) exceeds due amount (50000)"

    # No transport on this student: any transport amount exceeds a due of 0
    response = await _pay(client, student_id, transport_fee_paid=10)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_payment_must_be_positive(client: AsyncClient) -> None:
    student_id = await _admit(client)
    assert (await _pay(client, student_id, school_fee_paid=0)).status_code == 422
    assert (await _pay(client, student_id, school_fee_paid=-5)).status_code == 422


@pytest.mark.asyncio
async def test_auto_distribution_and_totals(client: AsyncClient) -> None:
    student_id = await _admit(client)

    first = (await _pay(client, student_id, term=1, school_fee_paid=16667)).json()
    second = (await _pay(client, student_id, school_fee_paid=10000)).json()
    assert second["payment"]["term_number"] is None
    assert second["payment"]["allocations"] == [{"component": "school", "term_number": 2, "amount": 10000}]
    assert second["payment"]["description"] == "Fee Payment (Term 2)"

    third = (await _pay(client, student_id, school_fee_paid=23333)).json()
    assert third["payment"]["allocations"] == [
        {"component": "school", "term_number": 2, "amount": 6667},
        {"component": "school", "term_number": 3, "amount": 16666},
    ]
    assert third["payment"]["description"] == "Fee Payment (Terms 2, 3)"
    assert third["total_due"] == 0
    assert third["fee_status"] == "Paid"

    history = (await client.get(f"/api/v1/payments/students/{student_id}/history")).json()
    assert len(history) == 3
    assert sum(p["total_amount"] for p in history) == third["total_paid"] == 50000
    assert {p["payment_id"] for p in history} == {
        first["payment"]["payment_id"],
        second["payment"]["payment_id"],
        third["payment"]["payment_id"],
    }

    details = await _details(client, student_id)
    assert all(t["status"] == "Paid" for t in details["term_details"])
    assert details["next_term_number"] is None

    # Fully paid: any further payment is an over-payment
    assert (await _pay(client, student_id, school_fee_paid=1)).status_code == 400


@pytest.mark.asyncio
async def test_transport_terms_follow_transport_schedule(client: AsyncClient) -> None:
    await client.post(
        "/api/v1/fees/bus",
        json={"village_name": "Rampur", "academic_year": YEAR, "distance": 5, "fee_amount": 9000},
    )
    student_id = await _admit(client, annual_fee=40000, terms=2, uses_transport=True, village="Rampur")

    details = await _details(client, student_id)
    transport = details["components"]["transport_fee"]
    assert transport["terms"] == settings.transport_fee_terms
    assert transport["term_distribution"] == {"1": 3000, "2": 3000, "3": 3000}
    # School has two terms, transport three
    assert details["total_terms"] == 3
    assert details["term_details"][2]["due_amount"] == 3000

    response = await _pay(client, student_id, term=3, transport_fee_paid=3000)
    assert response.status_code == 201, response.text

    response = await _pay(client, student_id, term=3, school_fee_paid=100)
    assert response.status_code == 400
    assert "Term 3 does not exist for school fee" in response.json()["detail"]


@pytest.mark.asyncio
async def test_validate_is_a_dry_run(client: AsyncClient) -> None:
    student_id = await _admit(client)
    url = f"/api/v1/payments/students/{student_id}/validate"

    ok = (await client.post(url, json={"academic_year": YEAR, "term": 1, "school_fee_paid": 16000})).json()
    assert ok["is_valid"] is True
    assert ok["issues"] == []
    assert ok["term_due_amounts"]["school_fee"] == 16667
    assert ok["remaining_after_payment"]["school_fee"] == 34000

    bad = (await client.post(url, json={"academic_year": YEAR, "term": 1, "school_fee_paid": 20000})).json()
    assert bad["is_valid"] is False
    assert len(bad["issues"]) == 1

    details = await _details(client, student_id)
    assert details["summary"]["total_paid"] == 0


@pytest.mark.asyncio
async def test_unknown_academic_year(client: AsyncClient) -> None:
    student_id = await _admit(client)
    response = await client.post(
        f"/api/v1/payments/students/{student_id}",
        json={"academic_year": "2030-2031", "school_fee_paid": 100},
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Fee details not found for academic year 2030-2031"


@pytest.mark.asyncio
async def test_custom_identifiers_and_conflict(client: AsyncClient) -> None:
    student_id = await _admit(client)
    response = await _pay(
        client, student_id, school_fee_paid=1000, custom_receipt_no="RCPT-MANUAL-1", custom_payment_id="PAY-MANUAL-1"
    )
    assert response.status_code == 201
    assert response.json()["payment"]["receipt_no"] == "RCPT-MANUAL-1"

    response = await _pay(client, student_id, school_fee_paid=1000, custom_receipt_no="RCPT-MANUAL-1")
    assert response.status_code == 409

    details = await _details(client, student_id)
    assert details["summary"]["total_paid"] == 1000


@pytest.mark.asyncio
async def test_generated_receipt_collision_is_retried(client: AsyncClient, monkeypatch) -> None:
    student_id = await _admit(client)
    assert (await _pay(client, student_id, school_fee_paid=1000, custom_receipt_no="RCPT-240101-0001")).status_code == 201

    receipts = iter(["RCPT-240101-0001", "RCPT-240101-0002"])
    monkeypatch.setattr(payment_service, "generate_receipt_no", lambda now=None: next(receipts))

    response = await _pay(client, student_id, school_fee_paid=2000)
    assert response.status_code == 201, response.text
    assert response.json()["payment"]["receipt_no"] == "RCPT-240101-0002"
    assert response.json()["total_paid"] == 3000


@pytest.mark.asyncio
async def test_concurrent_update_conflict_after_retries(client: AsyncClient, monkeypatch) -> None:
    student_id = await _admit(client)
    calls = []

    async def always_stale(db, *args, **kwargs):
        calls.append(1)
        raise StaleDataError("snapshot version changed")

    monkeypatch.setattr(payment_service, "_apply_payment", always_stale)
    response = await _pay(client, student_id, school_fee_paid=1000)
    assert response.status_code == 409
    assert len(calls) == settings.payment_max_retries


@pytest.mark.asyncio
async def test_summary_details_and_receipt(client: AsyncClient, session_factory) -> None:
    student_id = await _admit(client, parent_name="Mr. Kumar")
    await _pay(client, student_id, term=1, school_fee_paid=16667, payment_mode="UPI", transaction_id="UPI-123")
    paid = (await _pay(client, student_id, school_fee_paid=5000)).json()["payment"]

    summary = (await client.get(f"/api/v1/payments/students/{student_id}/summary")).json()
    assert summary["payment_stats"]["total_payments"] == 2
    assert summary["payment_stats"]["total_amount_paid"] == 21667
    assert summary["payment_stats"]["payment_methods"] == {"UPI": 1, "Cash": 1}
    assert summary["outstanding"]["amount"] == 50000 - 21667
    assert summary["fee_summary"]["payment_status"] == "Partial"
    assert set(summary["component_breakdown"]) == {"school_fee", "transport_fee", "hostel_fee"}

    details = (await client.get(f"/api/v1/payments/students/{student_id}/{paid['payment_id']}")).json()
    assert details["payment"]["receipt_no"] == paid["receipt_no"]
    assert details["student"]["parent_name"] == "Mr. Kumar"

    receipt = (await client.get(f"/api/v1/payments/students/{student_id}/{paid['payment_id']}/receipt")).json()
    assert receipt["receipt_id"] == f"RECEIPT-{paid['receipt_no']}"
    assert receipt["school_info"]["name"] == settings.school_name
    assert receipt["is_partial_payment"] is True
    assert receipt["student"]["class_name"] == "Class 5"

    missing = await client.get(f"/api/v1/payments/students/{student_id}/PAY-NOPE")
    assert missing.status_code == 404

    async with session_factory() as db:
        actions = (
            await db.execute(select(FeeAuditLog.action_type).where(FeeAuditLog.reference_table == "payment_history"))
        ).scalars().all()
        assert actions == ["PAYMENT", "PAYMENT"]


@pytest.mark.asyncio
async def test_fractional_amounts_rejected(client: AsyncClient, session_factory) -> None:
    student_id = await _admit(client)
    response = await _pay(client, student_id, school_fee_paid=100.5)
    assert response.status_code == 422
    response = await _pay(client, student_id, transport_fee_paid="0.4", school_fee_paid=100)
    assert response.status_code == 422

    async with session_factory() as db:
        count = (await db.execute(select(func.count(PaymentHistoryEntry.id)))).scalar_one()
        assert count == 0

    # Whole amounts sent as floats are accepted unchanged
    response = await _pay(client, student_id, school_fee_paid=100.0)
    assert response.status_code == 201
    assert response.json()["payment"]["total_amount"] == 100


async def _load_snapshot(db, student_id: str) -> StudentFeeSnapshot:
    stmt = select(StudentFeeSnapshot).where(
        StudentFeeSnapshot.student_id == UUID(student_id),
        StudentFeeSnapshot.academic_year == YEAR,
    )
    return (await db.execute(stmt)).scalar_one()


@pytest.mark.asyncio
async def test_stale_snapshot_write_is_detected(file_client: AsyncClient, file_session_factory) -> None:
    student_id = await _admit(file_client)

    async with file_session_factory() as first, file_session_factory() as second:
        stale = await _load_snapshot(first, student_id)
        assert stale.total_paid == 0

        result = await payment_service.process_payment(
            second, UUID(student_id), PaymentCreate(academic_year=YEAR, school_fee_paid=1000)
        )
        assert result.total_paid == 1000

        stale.total_paid = stale.total_paid + 500
        with pytest.raises(StaleDataError):
            await first.commit()
        await first.rollback()

    async with file_session_factory() as db:
        snap = await _load_snapshot(db, student_id)
        assert snap.total_paid == 1000
        assert snap.total_due == 49000


@pytest.mark.asyncio
async def test_concurrent_payments_are_not_lost(file_client: AsyncClient, file_session_factory) -> None:
    student_id = await _admit(file_client)

    async def pay(amount: int):
        async with file_session_factory() as db:
            return await payment_service.process_payment(
                db, UUID(student_id), PaymentCreate(academic_year=YEAR, school_fee_paid=amount)
            )

    results = await asyncio.gather(pay(1000), pay(2000))
    assert sorted(r.payment.total_amount for r in results) == [1000, 2000]

    async with file_session_factory() as db:
        snap = await _load_snapshot(db, student_id)
        history = (
            await db.execute(select(PaymentHistoryEntry.total_amount).where(PaymentHistoryEntry.snapshot_id == snap.id))
        ).scalars().all()
        allocated = (
            await db.execute(select(func.sum(PaymentAllocation.amount)).where(PaymentAllocation.snapshot_id == snap.id))
        ).scalar_one()
    assert len(history) == 2
    assert snap.total_paid == sum(history) == allocated == 3000
    assert snap.school_fee_paid == 3000
    assert snap.total_due == 47000
