from decimal import Decimal

import pytest
from httpx import AsyncClient


YEAR = "2024-2025"
NEXT_YEAR = "2025-2026"


async def _class_fee(client: AsyncClient, class_name: str, year: str, fee: int, terms: int = 3) -> None:
    response = await client.post(
        "/api/v1/fees/class",
        json={"class_name": class_name, "academic_year": year, "total_annual_fee": fee, "total_terms": terms},
    )
    assert response.status_code == 201, response.text


def _student(**overrides) -> dict:
    payload = {
        "admission_no": "ADM-001",
        "first_name": "Asha",
        "last_name": "Verma",
        "class_name": "V",
        "academic_year": YEAR,
        "school_fee_discount": 10,
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_admission_freezes_fee_snapshot(client: AsyncClient) -> None:
    await _class_fee(client, "5", YEAR, 50000)

    response = await client.post("/api/v1/students", json=_student())
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["class_level"] == "CLASS_5"
    assert data["class_name"] == "Class 5"
    assert data["full_name"] == "Asha Verma"
    assert data["fee_calculation_warnings"] == []

    (snap,) = data["fee_snapshots"]
    assert snap["academic_year"] == YEAR
    assert snap["school_fee"] == 45000
    assert snap["transport_fee"] == 0
    assert snap["hostel_fee"] == 0
    assert snap["total_fee"] == 45000
    assert snap["total_due"] == 45000
    assert snap["total_paid"] == 0
    assert snap["school_fee_terms"] == 3
    assert snap["school_fee_is_default"] is False
    assert Decimal(snap["school_fee_discount_applied"]) == Decimal("10")


@pytest.mark.asyncio
async def test_admission_without_structures_uses_flagged_defaults(client: AsyncClient) -> None:
    response = await client.post(
        "/api/v1/students",
        json=_student(class_name="LKG", uses_transport=True, village="Unmapped", school_fee_discount=0),
    )
    assert response.status_code == 201, response.text
    data = response.json()
    snap = data["fee_snapshots"][0]
    assert snap["school_fee_is_default"] is True
    assert snap["transport_fee_is_default"] is True
    assert snap["hostel_fee_is_default"] is False
    assert snap["calculation_failed"] is False
    assert snap["total_fee"] == snap["school_fee"] + snap["transport_fee"]
    assert len(data["fee_calculation_warnings"]) == 2


@pytest.mark.asyncio
async def test_invalid_class_rejected(client: AsyncClient) -> None:
    response = await client.post("/api/v1/students", json=_student(class_name="Class 13"))
    assert response.status_code == 400
    assert response.json()["detail"] == 'Invalid class: "Class 13"'


@pytest.mark.asyncio
async def test_duplicate_admission_no(client: AsyncClient) -> None:
    assert (await client.post("/api/v1/students", json=_student())).status_code == 201
    response = await client.post("/api/v1/students", json=_student(first_name="Other"))
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_discount_change_keeps_existing_snapshot(client: AsyncClient) -> None:
    await _class_fee(client, "5", YEAR, 50000)
    student = (await client.post("/api/v1/students", json=_student())).json()

    response = await client.patch(
        f"/api/v1/students/{student['id']}/discounts",
        json={"school_fee_discount": 50},
    )
    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["school_fee_discount"]) == Decimal("50")
    assert data["fee_snapshots"][0]["school_fee"] == 45000


@pytest.mark.asyncio
async def test_academic_year_rollover_with_promotion(client: AsyncClient) -> None:
    await _class_fee(client, "5", YEAR, 50000)
    await _class_fee(client, "6", NEXT_YEAR, 60000, terms=2)
    student = (await client.post("/api/v1/students", json=_student())).json()

    response = await client.post(
        f"/api/v1/students/{student['id']}/fees",
        json={"academic_year": NEXT_YEAR, "promote": True},
    )
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["class_level"] == "CLASS_6"
    assert data["academic_year"] == NEXT_YEAR
    snapshots = {s["academic_year"]: s for s in data["fee_snapshots"]}
    assert snapshots[YEAR]["school_fee"] == 45000
    assert snapshots[NEXT_YEAR]["school_fee"] == 54000
    assert snapshots[NEXT_YEAR]["school_fee_terms"] == 2

    again = await client.post(f"/api/v1/students/{student['id']}/fees", json={"academic_year": NEXT_YEAR})
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_get_unknown_student(client: AsyncClient) -> None:
    response = await client.get("/api/v1/students/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404
