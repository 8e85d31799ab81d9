"""
Fee aggregator.

Combines the school, transport and hostel components into a student's annual fee with a
per-component breakdown. Transport is included only for students using school transport and
hostel only for hostellers. A storage failure while resolving structures does not fail the
calculation: the configured default amounts are used and the result is marked success=False.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.enums import FeeComponent, StudentType
from app.fees.calculations import apply_discount, split_evenly
from app.fees.class_levels import ClassLevel
from app.fees.resolver import (
    ResolvedBusFee,
    ResolvedClassFee,
    ResolvedHostelFee,
    default_bus_fee,
    default_class_fee,
    default_hostel_fee,
    resolve_bus_fee,
    resolve_class_fee,
    resolve_hostel_fee,
)

logger = logging.getLogger(__name__)


class StudentFeeInput(BaseModel):
    class_level: ClassLevel
    academic_year: str
    village: Optional[str] = None
    uses_transport: bool = False
    student_type: StudentType = StudentType.DAY_SCHOLAR
    school_fee_discount: Decimal = Field(Decimal("0"), ge=0, le=100)
    transport_fee_discount: Decimal = Field(Decimal("0"), ge=0, le=100)
    hostel_fee_discount: Decimal = Field(Decimal("0"), ge=0, le=100)


class ComponentBreakdown(BaseModel):
    component: FeeComponent
    base_amount: Decimal
    discount_percent: Decimal
    amount: int
    terms: int
    term_amount: int
    term_split: Dict[int, int]
    is_default: bool = False
    structure_id: Optional[UUID] = None
    village: Optional[str] = None
    distance: Optional[Decimal] = None
    vehicle_type: Optional[str] = None
    components: Optional[Dict[str, Decimal]] = None


class FeeCalculationResult(BaseModel):
    success: bool = True
    error: Optional[str] = None
    class_level: ClassLevel
    class_display_name: str
    academic_year: str
    student_type: StudentType
    uses_transport: bool
    village: Optional[str] = None
    school_fee: int = 0
    transport_fee: int = 0
    hostel_fee: int = 0
    total_fee: int = 0
    terms: int
    school: ComponentBreakdown
    transport: Optional[ComponentBreakdown] = None
    hostel: Optional[ComponentBreakdown] = None
    details: List[str] = Field(default_factory=list)

    @property
    def uses_defaults(self) -> bool:
        return any(part is not None and part.is_default for part in (self.school, self.transport, self.hostel))


def _breakdown(
    component: FeeComponent,
    base_amount: Decimal,
    discount: Decimal,
    terms: int,
    is_default: bool,
    structure_id: Optional[UUID],
    **extra,
) -> ComponentBreakdown:
    amount = apply_discount(base_amount, discount)
    split = split_evenly(amount, terms)
    return ComponentBreakdown(
        component=component,
        base_amount=base_amount,
        discount_percent=discount,
        amount=amount,
        terms=terms,
        term_amount=split.get(1, 0),
        term_split=split,
        is_default=is_default,
        structure_id=structure_id,
        **extra,
    )


def _build_result(
    data: StudentFeeInput,
    class_fee: ResolvedClassFee,
    bus_fee: Optional[ResolvedBusFee],
    hostel_fee: Optional[ResolvedHostelFee],
) -> FeeCalculationResult:
    level = data.class_level
    details: List[str] = []

    school = _breakdown(
        FeeComponent.SCHOOL,
        class_fee.total_annual_fee,
        data.school_fee_discount,
        class_fee.total_terms,
        class_fee.is_default,
        class_fee.structure_id,
        components={
            "tuition_fee": class_fee.tuition_fee,
            "exam_fee": class_fee.exam_fee,
            "activity_fee": class_fee.activity_fee,
            "library_fee": class_fee.library_fee,
            "sports_fee": class_fee.sports_fee,
            "lab_fee": class_fee.lab_fee,
            "computer_fee": class_fee.computer_fee,
            "other_charges": class_fee.other_charges,
        },
    )
    if class_fee.is_default:
        details.append(f"No class fee structure for {level.display_name} ({data.academic_year}); default fee applied")

    transport = None
    if bus_fee is not None:
        transport = _breakdown(
            FeeComponent.TRANSPORT,
            bus_fee.fee_amount,
            data.transport_fee_discount,
            settings.transport_fee_terms,
            bus_fee.is_default,
            bus_fee.structure_id,
            village=bus_fee.village_name,
            distance=bus_fee.distance,
            vehicle_type=bus_fee.vehicle_type,
        )
        if bus_fee.is_default:
            details.append(f"No bus fee structure for village {data.village or 'Not specified'}; default fee applied")

    hostel = None
    if hostel_fee is not None:
        hostel = _breakdown(
            FeeComponent.HOSTEL,
            hostel_fee.total_annual_fee,
            data.hostel_fee_discount,
            hostel_fee.total_terms,
            hostel_fee.is_default,
            hostel_fee.structure_id,
        )
        if hostel_fee.is_default:
            details.append(f"No hostel fee structure for {level.display_name} ({data.academic_year}); default fee applied")

    school_fee = school.amount
    transport_fee = transport.amount if transport else 0
    hostel_fee_amount = hostel.amount if hostel else 0
    return FeeCalculationResult(
        class_level=level,
        class_display_name=level.display_name,
        academic_year=data.academic_year,
        student_type=data.student_type,
        uses_transport=data.uses_transport,
        village=data.village,
        school_fee=school_fee,
        transport_fee=transport_fee,
        hostel_fee=hostel_fee_amount,
        total_fee=school_fee + transport_fee + hostel_fee_amount,
        terms=school.terms,
        school=school,
        transport=transport,
        hostel=hostel,
        details=details,
    )


def _default_result(data: StudentFeeInput, error: str) -> FeeCalculationResult:
    class_fee = default_class_fee(data.class_level, data.academic_year)
    bus_fee = default_bus_fee(data.village, data.academic_year) if data.uses_transport else None
    hostel_fee = None
    if data.student_type == StudentType.HOSTELLER:
        hostel_fee = default_hostel_fee(data.class_level, data.academic_year)
    result = _build_result(data, class_fee, bus_fee, hostel_fee)
    result.success = False
    result.error = error
    result.details.append("Using default fees due to calculation error")
    return result


async def calculate_student_fees(db: AsyncSession, data: StudentFeeInput) -> FeeCalculationResult:
    """Resolve every applicable fee structure and compute the student's annual fee."""
    try:
        class_fee = await resolve_class_fee(db, data.class_level, data.academic_year)
        bus_fee = None
        if data.uses_transport:
            bus_fee = await resolve_bus_fee(db, data.village, data.academic_year)
        hostel_fee = None
        if data.student_type == StudentType.HOSTELLER:
            hostel_fee = await resolve_hostel_fee(db, data.class_level, data.academic_year)
    except SQLAlchemyError as exc:
        logger.exception(
            "Fee calculation failed for %s (%s); falling back to default fees",
            data.class_level.display_name,
            data.academic_year,
        )
        return _default_result(data, str(exc))
    return _build_result(data, class_fee, bus_fee, hostel_fee)
