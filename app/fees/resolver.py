"""
Fee-structure resolver.

Looks up the active class / bus / hostel fee structure for a student. A missing structure is
not an error: the configured default amounts are returned instead, flagged is_default=True,
and a warning is logged so the fallback shows up in the logs and on the snapshot.
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.models import BusFeeStructure, ClassFeeStructure, HostelFeeStructure
from app.fees.class_levels import ClassLevel

logger = logging.getLogger(__name__)


class ResolvedClassFee(BaseModel):
    class_level: ClassLevel
    academic_year: str
    total_annual_fee: Decimal
    total_terms: int
    tuition_fee: Decimal = Decimal("0")
    exam_fee: Decimal = Decimal("0")
    activity_fee: Decimal = Decimal("0")
    library_fee: Decimal = Decimal("0")
    sports_fee: Decimal = Decimal("0")
    lab_fee: Decimal = Decimal("0")
    computer_fee: Decimal = Decimal("0")
    other_charges: Decimal = Decimal("0")
    is_default: bool = False
    structure_id: Optional[UUID] = None


class ResolvedBusFee(BaseModel):
    village_name: Optional[str] = None
    academic_year: str
    fee_amount: Decimal
    distance: Decimal = Decimal("0")
    vehicle_type: str = "bus"
    is_default: bool = False
    structure_id: Optional[UUID] = None


class ResolvedHostelFee(BaseModel):
    class_level: ClassLevel
    academic_year: str
    total_annual_fee: Decimal
    total_terms: int
    is_default: bool = False
    structure_id: Optional[UUID] = None


def default_class_fee(class_level: ClassLevel, academic_year: str) -> ResolvedClassFee:
    return ResolvedClassFee(
        class_level=class_level,
        academic_year=academic_year,
        total_annual_fee=settings.default_class_annual_fee,
        total_terms=settings.default_class_terms,
        tuition_fee=settings.default_tuition_fee,
        exam_fee=settings.default_exam_fee,
        activity_fee=settings.default_activity_fee,
        library_fee=settings.default_library_fee,
        sports_fee=settings.default_sports_fee,
        is_default=True,
    )


def default_hostel_fee(class_level: ClassLevel, academic_year: str) -> ResolvedHostelFee:
    return ResolvedHostelFee(
        class_level=class_level,
        academic_year=academic_year,
        total_annual_fee=settings.default_hostel_annual_fee,
        total_terms=settings.default_hostel_terms,
        is_default=True,
    )


async def resolve_class_fee(db: AsyncSession, class_level: ClassLevel, academic_year: str) -> ResolvedClassFee:
    result = await db.execute(
        select(ClassFeeStructure).where(
            ClassFeeStructure.class_level == class_level.value,
            ClassFeeStructure.academic_year == academic_year,
            ClassFeeStructure.is_active.is_(True),
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        logger.warning(
            "No active class fee structure for %s (%s); using default fee %s",
            class_level.display_name,
            academic_year,
            settings.default_class_annual_fee,
        )
        return default_class_fee(class_level, academic_year)
    return ResolvedClassFee(
        class_level=class_level,
        academic_year=academic_year,
        total_annual_fee=row.total_annual_fee,
        total_terms=row.total_terms,
        tuition_fee=row.tuition_fee,
        exam_fee=row.exam_fee,
        activity_fee=row.activity_fee,
        library_fee=row.library_fee,
        sports_fee=row.sports_fee,
        lab_fee=row.lab_fee,
        computer_fee=row.computer_fee,
        other_charges=row.other_charges,
        structure_id=row.id,
    )


def default_bus_fee(village: Optional[str], academic_year: str) -> ResolvedBusFee:
    return ResolvedBusFee(
        village_name=village or None,
        academic_year=academic_year,
        fee_amount=settings.default_transport_fee,
        is_default=True,
    )


async def resolve_bus_fee(db: AsyncSession, village: Optional[str], academic_year: str) -> ResolvedBusFee:
    """
    Transport fee for a village: case-insensitive exact match first, then substring match.
    An empty village gets the default fee without touching the database.
    """
    village = (village or "").strip()
    if not village:
        logger.warning(
            "No village given for transport fee (%s); using default fee %s",
            academic_year,
            settings.default_transport_fee,
        )
        return default_bus_fee(None, academic_year)

    base = select(BusFeeStructure).where(
        BusFeeStructure.academic_year == academic_year,
        BusFeeStructure.is_active.is_(True),
    )
    needle = village.lower()
    result = await db.execute(base.where(func.lower(BusFeeStructure.village_name) == needle).limit(1))
    row = result.scalar_one_or_none()
    if row is None:
        result = await db.execute(
            base.where(func.lower(BusFeeStructure.village_name).contains(needle, autoescape=True))
            .order_by(BusFeeStructure.village_name)
            .limit(1)
        )
        row = result.scalar_one_or_none()
    if row is None:
        logger.warning(
            "No active bus fee structure for village %r (%s); using default fee %s",
            village,
            academic_year,
            settings.default_transport_fee,
        )
        return default_bus_fee(village, academic_year)
    return ResolvedBusFee(
        village_name=row.village_name,
        academic_year=academic_year,
        fee_amount=row.fee_amount,
        distance=row.distance,
        vehicle_type=row.vehicle_type,
        structure_id=row.id,
    )


async def resolve_hostel_fee(db: AsyncSession, class_level: ClassLevel, academic_year: str) -> ResolvedHostelFee:
    result = await db.execute(
        select(HostelFeeStructure).where(
            HostelFeeStructure.class_level == class_level.value,
            HostelFeeStructure.academic_year == academic_year,
            HostelFeeStructure.is_active.is_(True),
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        logger.warning(
            "No active hostel fee structure for %s (%s); using default fee %s",
            class_level.display_name,
            academic_year,
            settings.default_hostel_annual_fee,
        )
        return default_hostel_fee(class_level, academic_year)
    return ResolvedHostelFee(
        class_level=class_level,
        academic_year=academic_year,
        total_annual_fee=row.total_annual_fee,
        total_terms=row.total_terms,
        structure_id=row.id,
    )
