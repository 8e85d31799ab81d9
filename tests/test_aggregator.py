from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.enums import StudentType
from app.core.models import BusFeeStructure, ClassFeeStructure, HostelFeeStructure
from app.fees import aggregator
from app.fees.aggregator import StudentFeeInput, calculate_student_fees
from app.fees.class_levels import ClassLevel
from app.fees.snapshots import snapshot_from_calculation


YEAR = "2024-2025"


async def _seed(db: AsyncSession) -> None:
    db.add_all(
        [
            ClassFeeStructure(
                class_level=ClassLevel.CLASS_6.value,
                academic_year=YEAR,
                total_annual_fee=Decimal("50000"),
                total_terms=3,
            ),
            BusFeeStructure(village_name="Shivpur", academic_year=YEAR, distance=Decimal("8"), fee_amount=Decimal("9000")),
            HostelFeeStructure(
                class_level=ClassLevel.CLASS_6.value,
                academic_year=YEAR,
                total_annual_fee=Decimal("60000"),
                total_terms=4,
            ),
        ]
    )
    await db.commit()


@pytest.mark.asyncio
async def test_day_scholar_without_transport(db_session: AsyncSession) -> None:
    await _seed(db_session)
    result = await calculate_student_fees(
        db_session,
        StudentFeeInput(
            class_level=ClassLevel.CLASS_6,
            academic_year=YEAR,
            village="Shivpur",
            uses_transport=False,
            student_type=StudentType.DAY_SCHOLAR,
            school_fee_discount=Decimal("10"),
            transport_fee_discount=Decimal("50"),
            hostel_fee_discount=Decimal("25"),
        ),
    )
    assert result.success is True
    assert result.school_fee == 45000
    assert result.transport_fee == 0
    assert result.hostel_fee == 0
    assert result.total_fee == 45000
    assert result.transport is None
    assert result.hostel is None
    assert result.school.term_split == {1: 15000, 2: 15000, 3: 15000}
    assert result.uses_defaults is False


@pytest.mark.asyncio
async def test_hosteller_with_transport(db_session: AsyncSession) -> None:
    await _seed(db_session)
    result = await calculate_student_fees(
        db_session,
        StudentFeeInput(
            class_level=ClassLevel.CLASS_6,
            academic_year=YEAR,
            village="shivpur",
            uses_transport=True,
            student_type=StudentType.HOSTELLER,
            transport_fee_discount=Decimal("10"),
        ),
    )
    assert result.school_fee == 50000
    assert result.transport_fee == 8100
    assert result.hostel_fee == 60000
    assert result.total_fee == result.school_fee + result.transport_fee + result.hostel_fee
    # Transport is billed over its own fixed term count, hostel over the structure's.
    assert result.transport.terms == settings.transport_fee_terms
    assert result.transport.village == "Shivpur"
    assert result.hostel.terms == 4
    assert result.hostel.term_split == {1: 15000, 2: 15000, 3: 15000, 4: 15000}


@pytest.mark.asyncio
async def test_missing_structures_are_flagged(db_session: AsyncSession) -> None:
    result = await calculate_student_fees(
        db_session,
        StudentFeeInput(
            class_level=ClassLevel.UKG,
            academic_year=YEAR,
            uses_transport=True,
            student_type=StudentType.DAY_SCHOLAR,
        ),
    )
    assert result.success is True
    assert result.school.is_default is True
    assert result.transport.is_default is True
    assert result.school_fee == int(settings.default_class_annual_fee)
    assert result.transport_fee == int(settings.default_transport_fee)
    assert result.uses_defaults is True
    assert len(result.details) == 2


@pytest.mark.asyncio
async def test_storage_failure_degrades_to_defaults(db_session: AsyncSession, monkeypatch) -> None:
    async def broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database unavailable"))

    monkeypatch.setattr(aggregator, "resolve_class_fee", broken)
    data = StudentFeeInput(
        class_level=ClassLevel.CLASS_3,
        academic_year=YEAR,
        uses_transport=True,
        student_type=StudentType.HOSTELLER,
    )
    result = await calculate_student_fees(db_session, data)

    assert result.success is False
    assert "database unavailable" in result.error
    assert result.school_fee == int(settings.default_class_annual_fee)
    assert result.transport_fee == int(settings.default_transport_fee)
    assert result.hostel_fee == int(settings.default_hostel_annual_fee)
    assert result.total_fee == result.school_fee + result.transport_fee + result.hostel_fee
    assert "Using default fees due to calculation error" in result.details

    snap = snapshot_from_calculation(None, result)
    assert snap.calculation_failed is True
    assert snap.school_fee_is_default is True
    assert snap.total_due == snap.total_fee
