from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.models import BusFeeStructure, ClassFeeStructure, HostelFeeStructure
from app.fees.class_levels import ClassLevel
from app.fees.resolver import resolve_bus_fee, resolve_class_fee, resolve_hostel_fee


YEAR = "2024-2025"


@pytest.mark.asyncio
async def test_class_fee_found(db_session: AsyncSession) -> None:
    db_session.add(
        ClassFeeStructure(
            class_level=ClassLevel.CLASS_5.value,
            academic_year=YEAR,
            total_annual_fee=Decimal("42000"),
            total_terms=2,
            tuition_fee=Decimal("36000"),
        )
    )
    await db_session.commit()

    fee = await resolve_class_fee(db_session, ClassLevel.CLASS_5, YEAR)
    assert fee.is_default is False
    assert fee.structure_id is not None
    assert fee.total_annual_fee == Decimal("42000")
    assert fee.total_terms == 2


@pytest.mark.asyncio
async def test_class_fee_missing_uses_default(db_session: AsyncSession, caplog) -> None:
    with caplog.at_level("WARNING"):
        fee = await resolve_class_fee(db_session, ClassLevel.LKG, YEAR)
    assert fee.is_default is True
    assert fee.structure_id is None
    assert fee.total_annual_fee == settings.default_class_annual_fee
    assert fee.total_terms == settings.default_class_terms
    assert "No active class fee structure for LKG" in caplog.text


@pytest.mark.asyncio
async def test_inactive_class_fee_is_ignored(db_session: AsyncSession) -> None:
    db_session.add(
        ClassFeeStructure(
            class_level=ClassLevel.CLASS_1.value,
            academic_year=YEAR,
            total_annual_fee=Decimal("30000"),
            total_terms=3,
            is_active=False,
        )
    )
    await db_session.commit()

    fee = await resolve_class_fee(db_session, ClassLevel.CLASS_1, YEAR)
    assert fee.is_default is True


@pytest.mark.asyncio
async def test_bus_fee_case_insensitive_and_substring(db_session: AsyncSession) -> None:
    db_session.add_all(
        [
            BusFeeStructure(village_name="Rampur", academic_year=YEAR, distance=Decimal("5"), fee_amount=Decimal("8000")),
            BusFeeStructure(
                village_name="Rampur Kalan", academic_year=YEAR, distance=Decimal("9"), fee_amount=Decimal("11000")
            ),
        ]
    )
    await db_session.commit()

    exact = await resolve_bus_fee(db_session, "RAMPUR", YEAR)
    assert exact.is_default is False
    assert exact.village_name == "Rampur"
    assert exact.fee_amount == Decimal("8000")

    partial = await resolve_bus_fee(db_session, "kalan", YEAR)
    assert partial.village_name == "Rampur Kalan"
    assert partial.fee_amount == Decimal("11000")


@pytest.mark.asyncio
async def test_bus_fee_unknown_village_uses_default(db_session: AsyncSession) -> None:
    fee = await resolve_bus_fee(db_session, "Nowhere", YEAR)
    assert fee.is_default is True
    assert fee.village_name == "Nowhere"
    assert fee.fee_amount == settings.default_transport_fee


@pytest.mark.asyncio
async def test_bus_fee_empty_village_skips_lookup(db_session: AsyncSession) -> None:
    db_session.add(BusFeeStructure(village_name="Rampur", academic_year=YEAR, distance=Decimal("5"), fee_amount=Decimal("8000")))
    await db_session.commit()

    for village in (None, "", "   "):
        fee = await resolve_bus_fee(db_session, village, YEAR)
        assert fee.is_default is True
        assert fee.village_name is None
        assert fee.fee_amount == settings.default_transport_fee


@pytest.mark.asyncio
async def test_hostel_fee(db_session: AsyncSession) -> None:
    db_session.add(
        HostelFeeStructure(
            class_level=ClassLevel.CLASS_8.value,
            academic_year=YEAR,
            total_annual_fee=Decimal("90000"),
            total_terms=4,
        )
    )
    await db_session.commit()

    found = await resolve_hostel_fee(db_session, ClassLevel.CLASS_8, YEAR)
    assert found.is_default is False
    assert found.total_terms == 4

    missing = await resolve_hostel_fee(db_session, ClassLevel.CLASS_9, YEAR)
    assert missing.is_default is True
    assert missing.total_annual_fee == settings.default_hostel_annual_fee
