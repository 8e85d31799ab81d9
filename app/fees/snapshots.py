"""Fee snapshots: freeze an aggregator result onto a student for one academic year."""

from decimal import Decimal
from uuid import UUID

from app.core.models import StudentFeeSnapshot
from app.fees.aggregator import FeeCalculationResult


def snapshot_from_calculation(student_id: UUID, result: FeeCalculationResult) -> StudentFeeSnapshot:
    """
    Build (but do not add) the snapshot for a calculation.

    Component term counts, discounts, base amounts and default flags are copied so later
    structure or discount changes never alter what this student owes for the year.
    """
    transport = result.transport
    hostel = result.hostel
    return StudentFeeSnapshot(
        student_id=student_id,
        academic_year=result.academic_year,
        class_level=result.class_level.value,
        school_fee=result.school_fee,
        transport_fee=result.transport_fee,
        hostel_fee=result.hostel_fee,
        school_fee_paid=0,
        transport_fee_paid=0,
        hostel_fee_paid=0,
        total_fee=result.total_fee,
        total_paid=0,
        total_due=result.total_fee,
        terms=result.school.terms,
        school_fee_terms=result.school.terms,
        transport_fee_terms=transport.terms if transport else result.school.terms,
        hostel_fee_terms=hostel.terms if hostel else result.school.terms,
        school_fee_base=result.school.base_amount,
        transport_fee_base=transport.base_amount if transport else Decimal("0"),
        hostel_fee_base=hostel.base_amount if hostel else Decimal("0"),
        school_fee_discount_applied=result.school.discount_percent,
        transport_fee_discount_applied=transport.discount_percent if transport else Decimal("0"),
        hostel_fee_discount_applied=hostel.discount_percent if hostel else Decimal("0"),
        school_fee_is_default=result.school.is_default,
        transport_fee_is_default=bool(transport and transport.is_default),
        hostel_fee_is_default=bool(hostel and hostel.is_default),
        calculation_failed=not result.success,
    )
