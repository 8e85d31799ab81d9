"""Students service: admission with first fee snapshot, discount settings, academic-year fee assignment."""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import StudentStatus
from app.core.exceptions import InvalidClassError, ServiceError
from app.core.models import Student, StudentFeeSnapshot
from app.fees.aggregator import FeeCalculationResult, StudentFeeInput, calculate_student_fees
from app.fees.audit import log_fee_audit
from app.fees.calculations import to_decimal
from app.fees.class_levels import ClassLevel, parse_class_level
from app.fees.snapshots import snapshot_from_calculation

from .schemas import (
    AcademicYearFeeCreate,
    FeeSnapshotResponse,
    StudentCreate,
    StudentDiscountUpdate,
    StudentResponse,
)

logger = logging.getLogger(__name__)


def snapshot_to_response(snap: StudentFeeSnapshot) -> FeeSnapshotResponse:
    return FeeSnapshotResponse(
        id=snap.id,
        student_id=snap.student_id,
        academic_year=snap.academic_year,
        class_level=snap.class_level,
        class_name=ClassLevel(snap.class_level).display_name,
        school_fee=snap.school_fee,
        transport_fee=snap.transport_fee,
        hostel_fee=snap.hostel_fee,
        school_fee_paid=snap.school_fee_paid,
        transport_fee_paid=snap.transport_fee_paid,
        hostel_fee_paid=snap.hostel_fee_paid,
        total_fee=snap.total_fee,
        total_paid=snap.total_paid,
        total_due=snap.total_due,
        terms=snap.terms,
        school_fee_terms=snap.school_fee_terms,
        transport_fee_terms=snap.transport_fee_terms,
        hostel_fee_terms=snap.hostel_fee_terms,
        school_fee_base=to_decimal(snap.school_fee_base),
        transport_fee_base=to_decimal(snap.transport_fee_base),
        hostel_fee_base=to_decimal(snap.hostel_fee_base),
        school_fee_discount_applied=to_decimal(snap.school_fee_discount_applied),
        transport_fee_discount_applied=to_decimal(snap.transport_fee_discount_applied),
        hostel_fee_discount_applied=to_decimal(snap.hostel_fee_discount_applied),
        school_fee_is_default=snap.school_fee_is_default,
        transport_fee_is_default=snap.transport_fee_is_default,
        hostel_fee_is_default=snap.hostel_fee_is_default,
        calculation_failed=snap.calculation_failed,
        version=snap.version,
        created_at=snap.created_at,
        updated_at=snap.updated_at,
    )


def _student_to_response(
    student: Student,
    snapshots: List[StudentFeeSnapshot],
    warnings: Optional[List[str]] = None,
) -> StudentResponse:
    return StudentResponse(
        id=student.id,
        admission_no=student.admission_no,
        first_name=student.first_name,
        last_name=student.last_name,
        full_name=student.full_name,
        class_level=student.class_level,
        class_name=ClassLevel(student.class_level).display_name,
        section=student.section,
        roll_no=student.roll_no,
        academic_year=student.academic_year,
        village=student.village,
        uses_transport=student.uses_transport,
        student_type=student.student_type,
        school_fee_discount=to_decimal(student.school_fee_discount),
        transport_fee_discount=to_decimal(student.transport_fee_discount),
        hostel_fee_discount=to_decimal(student.hostel_fee_discount),
        parent_name=student.parent_name,
        parent_phone=student.parent_phone,
        status=student.status,
        created_at=student.created_at,
        updated_at=student.updated_at,
        fee_snapshots=[snapshot_to_response(s) for s in snapshots],
        fee_calculation_warnings=warnings or [],
    )


def _snapshot_audit_values(snap: StudentFeeSnapshot) -> dict:
    return {
        "academic_year": snap.academic_year,
        "class_level": snap.class_level,
        "school_fee": snap.school_fee,
        "transport_fee": snap.transport_fee,
        "hostel_fee": snap.hostel_fee,
        "total_fee": snap.total_fee,
        "uses_defaults": snap.uses_defaults,
        "calculation_failed": snap.calculation_failed,
    }


def _fee_input(student: Student, class_level: ClassLevel, academic_year: str) -> StudentFeeInput:
    return StudentFeeInput(
        class_level=class_level,
        academic_year=academic_year,
        village=student.village,
        uses_transport=student.uses_transport,
        student_type=student.student_type,
        school_fee_discount=to_decimal(student.school_fee_discount),
        transport_fee_discount=to_decimal(student.transport_fee_discount),
        hostel_fee_discount=to_decimal(student.hostel_fee_discount),
    )


async def _calculate(db: AsyncSession, data: StudentFeeInput) -> FeeCalculationResult:
    result = await calculate_student_fees(db, data)
    if not result.success:
        # The failed read may have left the transaction unusable.
        await db.rollback()
    return result


async def get_student_or_404(db: AsyncSession, student_id: UUID) -> Student:
    student = await db.get(Student, student_id)
    if not student:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    return student


async def _list_snapshots(db: AsyncSession, student_id: UUID) -> List[StudentFeeSnapshot]:
    result = await db.execute(
        select(StudentFeeSnapshot)
        .where(StudentFeeSnapshot.student_id == student_id)
        .order_by(StudentFeeSnapshot.academic_year.desc())
    )
    return list(result.scalars().all())


async def create_student(db: AsyncSession, payload: StudentCreate) -> StudentResponse:
    """Admit a student and persist the fee snapshot for the admission year."""
    level = parse_class_level(payload.class_name)
    if level is None:
        raise InvalidClassError(payload.class_name)

    student = Student(
        admission_no=payload.admission_no.strip(),
        first_name=payload.first_name.strip(),
        last_name=(payload.last_name or "").strip() or None,
        class_level=level.value,
        section=payload.section,
        roll_no=payload.roll_no,
        academic_year=payload.academic_year,
        village=(payload.village or "").strip() or None,
        uses_transport=payload.uses_transport,
        student_type=payload.student_type.value,
        school_fee_discount=payload.school_fee_discount,
        transport_fee_discount=payload.transport_fee_discount,
        hostel_fee_discount=payload.hostel_fee_discount,
        parent_name=payload.parent_name,
        parent_phone=payload.parent_phone,
        status=StudentStatus.ACTIVE.value,
    )
    result = await _calculate(db, _fee_input(student, level, payload.academic_year))
    if not result.success:
        logger.error(
            "Admission %s: fee calculation failed (%s); snapshot uses default fees",
            payload.admission_no,
            result.error,
        )

    try:
        db.add(student)
        await db.flush()
        snap = snapshot_from_calculation(student.id, result)
        db.add(snap)
        await db.flush()
        await log_fee_audit(
            db, "student_fee_snapshots", snap.id,
            "CREATE", None, _snapshot_audit_values(snap), payload.created_by,
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            f"A student with admission number {payload.admission_no} already exists",
            status.HTTP_409_CONFLICT,
        )
    await db.refresh(student)
    await db.refresh(snap)
    logger.info(
        "Admitted student %s to %s (%s), total fee %s",
        student.admission_no,
        level.display_name,
        payload.academic_year,
        snap.total_fee,
    )
    return _student_to_response(student, [snap], result.details)


async def get_student(db: AsyncSession, student_id: UUID) -> StudentResponse:
    student = await get_student_or_404(db, student_id)
    return _student_to_response(student, await _list_snapshots(db, student_id))


async def update_student_discounts(
    db: AsyncSession,
    student_id: UUID,
    payload: StudentDiscountUpdate,
) -> StudentResponse:
    """Change discount settings. Snapshots already computed keep the discounts they were frozen with."""
    student = await get_student_or_404(db, student_id)
    fields = ("school_fee_discount", "transport_fee_discount", "hostel_fee_discount")
    old = {f: str(getattr(student, f)) for f in fields}
    for f, val in payload.model_dump(exclude_unset=True).items():
        if f in fields and val is not None:
            setattr(student, f, val)
    await log_fee_audit(
        db, "students", student.id,
        "UPDATE", old, {f: str(getattr(student, f)) for f in fields}, payload.updated_by,
    )
    await db.commit()
    await db.refresh(student)
    return _student_to_response(student, await _list_snapshots(db, student_id))


async def assign_academic_year_fees(
    db: AsyncSession,
    student_id: UUID,
    payload: AcademicYearFeeCreate,
) -> StudentResponse:
    """Compute and freeze the fee snapshot for a new academic year (rollover / promotion)."""
    student = await get_student_or_404(db, student_id)
    existing = (
        await db.execute(
            select(StudentFeeSnapshot.id).where(
                StudentFeeSnapshot.student_id == student_id,
                StudentFeeSnapshot.academic_year == payload.academic_year,
            )
        )
    ).scalar_one_or_none()
    if existing is not None:
        raise ServiceError(
            f"Fees for academic year {payload.academic_year} already exist for this student",
            status.HTTP_409_CONFLICT,
        )

    level = ClassLevel(student.class_level)
    if payload.class_name:
        level = parse_class_level(payload.class_name)
        if level is None:
            raise InvalidClassError(payload.class_name)
    elif payload.promote:
        next_level = level.next_level()
        if next_level is None:
            raise ServiceError(f"{level.display_name} is the final class; cannot promote", status.HTTP_400_BAD_REQUEST)
        level = next_level

    result = await _calculate(db, _fee_input(student, level, payload.academic_year))
    if not result.success:
        await db.refresh(student)

    old = {"class_level": student.class_level, "academic_year": student.academic_year}
    student.class_level = level.value
    student.academic_year = payload.academic_year
    snap = snapshot_from_calculation(student.id, result)
    try:
        db.add(snap)
        await db.flush()
        await log_fee_audit(
            db, "students", student.id,
            "UPDATE", old, {"class_level": level.value, "academic_year": payload.academic_year}, payload.created_by,
        )
        await log_fee_audit(
            db, "student_fee_snapshots", snap.id,
            "CREATE", None, _snapshot_audit_values(snap), payload.created_by,
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            f"Fees for academic year {payload.academic_year} already exist for this student",
            status.HTTP_409_CONFLICT,
        )
    await db.refresh(student)
    return _student_to_response(student, await _list_snapshots(db, student_id), result.details)
