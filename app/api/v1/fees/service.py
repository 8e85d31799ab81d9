"""Fees service: class / bus / hostel fee structures, summaries and fee calculation preview. Changes are audited."""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidClassError, ServiceError
from app.core.models import BusFeeStructure, ClassFeeStructure, HostelFeeStructure, StudentFeeSnapshot
from app.fees.aggregator import FeeCalculationResult, StudentFeeInput, calculate_student_fees
from app.fees.audit import log_fee_audit
from app.fees.calculations import round_amount, split_evenly, to_decimal
from app.fees.class_levels import ClassLevel, parse_class_level

from .schemas import (
    ActiveStatusUpdate,
    BusFeeSearchResult,
    BusFeeStructureCreate,
    BusFeeStructureList,
    BusFeeStructureResponse,
    BusFeeStructureUpdate,
    BusFeeSummary,
    BusFeeSummaryTotals,
    ClassFeeStructureCreate,
    ClassFeeStructureList,
    ClassFeeStructureResponse,
    ClassFeeStructureUpdate,
    ClassFeeSummary,
    ClassFeeSummaryTotals,
    FeeCalculationRequest,
    HostelFeeStructureCreate,
    HostelFeeStructureList,
    HostelFeeStructureResponse,
    HostelFeeStructureUpdate,
    HostelFeeSummary,
    HostelFeeSummaryTotals,
    PageInfo,
    VillageFeeEntry,
    VillageFeeSummary,
)

CLASS_FEE_FIELDS = (
    "total_annual_fee",
    "total_terms",
    "tuition_fee",
    "exam_fee",
    "activity_fee",
    "library_fee",
    "sports_fee",
    "lab_fee",
    "computer_fee",
    "other_charges",
    "description",
)
BUS_FEE_FIELDS = ("distance", "fee_amount", "vehicle_type", "description")
HOSTEL_FEE_FIELDS = ("total_annual_fee", "total_terms", "description")

_CENTS = Decimal("0.01")


def _class_level(label: str) -> ClassLevel:
    level = parse_class_level(label)
    if level is None:
        raise InvalidClassError(label)
    return level


def _audit_values(obj, fields: Iterable[str]) -> dict:
    out = {}
    for f in fields:
        val = getattr(obj, f)
        if hasattr(val, "value"):
            val = val.value
        out[f] = str(val) if isinstance(val, Decimal) else val
    return out


def _apply_changes(obj, values: dict, fields: Iterable[str]) -> None:
    for f in fields:
        if f in values and values[f] is not None:
            val = values[f]
            setattr(obj, f, val.value if hasattr(val, "value") else val)


def _page_info(page: int, limit: int, total: int) -> PageInfo:
    return PageInfo(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit else 0)


def _average(total: Decimal, count: int) -> Decimal:
    if not count:
        return Decimal("0.00")
    return (total / count).quantize(_CENTS, rounding=ROUND_HALF_UP)


async def _commit_or_conflict(db: AsyncSession, message: str, flush_only: bool = False) -> None:
    try:
        if flush_only:
            await db.flush()
        else:
            await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(message, status.HTTP_409_CONFLICT)


def _term_split(total_annual_fee, total_terms: int) -> Dict[int, int]:
    return split_evenly(round_amount(total_annual_fee), total_terms)


# --- Class Fee Structure ---
def _cfs_to_response(cfs: ClassFeeStructure) -> ClassFeeStructureResponse:
    split = _term_split(cfs.total_annual_fee, cfs.total_terms)
    return ClassFeeStructureResponse(
        id=cfs.id,
        class_level=cfs.class_level,
        class_name=ClassLevel(cfs.class_level).display_name,
        academic_year=cfs.academic_year,
        total_annual_fee=to_decimal(cfs.total_annual_fee),
        total_terms=cfs.total_terms,
        term_amount=split.get(1, 0),
        term_split=split,
        tuition_fee=to_decimal(cfs.tuition_fee),
        exam_fee=to_decimal(cfs.exam_fee),
        activity_fee=to_decimal(cfs.activity_fee),
        library_fee=to_decimal(cfs.library_fee),
        sports_fee=to_decimal(cfs.sports_fee),
        lab_fee=to_decimal(cfs.lab_fee),
        computer_fee=to_decimal(cfs.computer_fee),
        other_charges=to_decimal(cfs.other_charges),
        description=cfs.description,
        is_active=cfs.is_active,
        created_by=cfs.created_by,
        updated_by=cfs.updated_by,
        created_at=cfs.created_at,
        updated_at=cfs.updated_at,
    )


async def _get_class_fee_or_404(db: AsyncSession, structure_id: UUID) -> ClassFeeStructure:
    cfs = await db.get(ClassFeeStructure, structure_id)
    if not cfs:
        raise ServiceError("Class fee structure not found", status.HTTP_404_NOT_FOUND)
    return cfs


async def upsert_class_fee_structure(
    db: AsyncSession,
    payload: ClassFeeStructureCreate,
) -> Tuple[ClassFeeStructureResponse, bool]:
    """Create the structure for (class, academic year), or update it if one exists. Returns (structure, created)."""
    level = _class_level(payload.class_name)
    existing = (
        await db.execute(
            select(ClassFeeStructure).where(
                ClassFeeStructure.class_level == level.value,
                ClassFeeStructure.academic_year == payload.academic_year,
            )
        )
    ).scalar_one_or_none()
    actor = payload.created_by or "system"
    values = payload.model_dump(exclude_unset=True)

    if existing:
        old = _audit_values(existing, CLASS_FEE_FIELDS)
        _apply_changes(existing, values, CLASS_FEE_FIELDS)
        existing.updated_by = actor
        await log_fee_audit(
            db, "class_fee_structures", existing.id,
            "UPDATE", old, _audit_values(existing, CLASS_FEE_FIELDS), actor,
        )
        await _commit_or_conflict(db, "Class fee structure could not be updated")
        await db.refresh(existing)
        return _cfs_to_response(existing), False

    cfs = ClassFeeStructure(
        class_level=level.value,
        academic_year=payload.academic_year,
        total_annual_fee=payload.total_annual_fee,
        total_terms=payload.total_terms,
        tuition_fee=payload.tuition_fee,
        exam_fee=payload.exam_fee,
        activity_fee=payload.activity_fee,
        library_fee=payload.library_fee,
        sports_fee=payload.sports_fee,
        lab_fee=payload.lab_fee,
        computer_fee=payload.computer_fee,
        other_charges=payload.other_charges,
        description=payload.description,
        is_active=True,
        created_by=actor,
        updated_by=actor,
    )
    db.add(cfs)
    await _commit_or_conflict(db, "A fee structure for this class and academic year already exists", flush_only=True)
    await log_fee_audit(
        db, "class_fee_structures", cfs.id,
        "CREATE", None,
        {"class_level": level.value, "academic_year": payload.academic_year, **_audit_values(cfs, CLASS_FEE_FIELDS)},
        actor,
    )
    await _commit_or_conflict(db, "A fee structure for this class and academic year already exists")
    await db.refresh(cfs)
    return _cfs_to_response(cfs), True


async def get_class_fee_structure(db: AsyncSession, class_name: str, academic_year: str) -> ClassFeeStructureResponse:
    level = _class_level(class_name)
    cfs = (
        await db.execute(
            select(ClassFeeStructure).where(
                ClassFeeStructure.class_level == level.value,
                ClassFeeStructure.academic_year == academic_year,
                ClassFeeStructure.is_active.is_(True),
            )
        )
    ).scalar_one_or_none()
    if not cfs:
        raise ServiceError(
            f"Fee structure not found for {level.display_name} in academic year {academic_year}",
            status.HTTP_404_NOT_FOUND,
        )
    return _cfs_to_response(cfs)


async def list_class_fee_structures(
    db: AsyncSession,
    academic_year: Optional[str] = None,
    class_name: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = 1,
    limit: int = 50,
) -> ClassFeeStructureList:
    stmt = select(ClassFeeStructure)
    if academic_year:
        stmt = stmt.where(ClassFeeStructure.academic_year == academic_year)
    if class_name:
        stmt = stmt.where(ClassFeeStructure.class_level == _class_level(class_name).value)
    if is_active is not None:
        stmt = stmt.where(ClassFeeStructure.is_active.is_(is_active))
    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
    rows = (await db.execute(stmt)).scalars().all()
    # Promotion order is not the lexical order of the stored value.
    rows = sorted(rows, key=lambda c: (c.academic_year, ClassLevel(c.class_level).rank))
    start = (page - 1) * limit
    return ClassFeeStructureList(
        items=[_cfs_to_response(c) for c in rows[start:start + limit]],
        pagination=_page_info(page, limit, total),
    )


async def update_class_fee_structure(
    db: AsyncSession,
    structure_id: UUID,
    payload: ClassFeeStructureUpdate,
) -> ClassFeeStructureResponse:
    cfs = await _get_class_fee_or_404(db, structure_id)
    old = _audit_values(cfs, CLASS_FEE_FIELDS + ("is_active",))
    values = payload.model_dump(exclude_unset=True)
    _apply_changes(cfs, values, CLASS_FEE_FIELDS + ("is_active",))
    cfs.updated_by = payload.updated_by or "system"
    await log_fee_audit(
        db, "class_fee_structures", cfs.id,
        "UPDATE", old, _audit_values(cfs, CLASS_FEE_FIELDS + ("is_active",)), cfs.updated_by,
    )
    await _commit_or_conflict(db, "Class fee structure could not be updated")
    await db.refresh(cfs)
    return _cfs_to_response(cfs)


async def delete_class_fee_structure(db: AsyncSession, structure_id: UUID, deleted_by: Optional[str] = None) -> None:
    """Delete a class fee structure. Refused once fee snapshots exist for that class and year."""
    cfs = await _get_class_fee_or_404(db, structure_id)
    in_use = (
        await db.execute(
            select(func.count(StudentFeeSnapshot.id)).where(
                StudentFeeSnapshot.class_level == cfs.class_level,
                StudentFeeSnapshot.academic_year == cfs.academic_year,
            )
        )
    ).scalar_one()
    if in_use:
        raise ServiceError(
            "Cannot delete class fee structure. Fees already generated for this class.",
            status.HTTP_400_BAD_REQUEST,
        )
    await log_fee_audit(
        db, "class_fee_structures", cfs.id,
        "DELETE", {"class_level": cfs.class_level, "academic_year": cfs.academic_year, **_audit_values(cfs, CLASS_FEE_FIELDS)},
        None, deleted_by,
    )
    await db.delete(cfs)
    await db.commit()


async def set_class_fee_structure_active(
    db: AsyncSession,
    structure_id: UUID,
    payload: ActiveStatusUpdate,
) -> ClassFeeStructureResponse:
    cfs = await _get_class_fee_or_404(db, structure_id)
    old_active = cfs.is_active
    cfs.is_active = payload.is_active
    cfs.updated_by = payload.updated_by or "system"
    await log_fee_audit(
        db, "class_fee_structures", cfs.id,
        "ACTIVATE" if payload.is_active else "DEACTIVATE",
        {"is_active": old_active}, {"is_active": payload.is_active}, cfs.updated_by,
    )
    await db.commit()
    await db.refresh(cfs)
    return _cfs_to_response(cfs)


async def class_fee_summary(db: AsyncSession, academic_year: Optional[str] = None) -> ClassFeeSummary:
    stmt = select(ClassFeeStructure).where(ClassFeeStructure.is_active.is_(True))
    if academic_year:
        stmt = stmt.where(ClassFeeStructure.academic_year == academic_year)
    rows = (await db.execute(stmt)).scalars().all()
    rows = sorted(rows, key=lambda c: (c.academic_year, ClassLevel(c.class_level).rank))
    revenue = sum((to_decimal(c.total_annual_fee) for c in rows), Decimal("0"))
    return ClassFeeSummary(
        summary=[_cfs_to_response(c) for c in rows],
        totals=ClassFeeSummaryTotals(
            total_classes=len(rows),
            total_annual_revenue=revenue,
            average_annual_fee=_average(revenue, len(rows)),
        ),
    )


# --- Bus Fee Structure ---
def _bfs_to_response(bfs: BusFeeStructure) -> BusFeeStructureResponse:
    return BusFeeStructureResponse(
        id=bfs.id,
        village_name=bfs.village_name,
        academic_year=bfs.academic_year,
        distance=to_decimal(bfs.distance),
        fee_amount=to_decimal(bfs.fee_amount),
        vehicle_type=bfs.vehicle_type,
        description=bfs.description,
        is_active=bfs.is_active,
        created_by=bfs.created_by,
        updated_by=bfs.updated_by,
        created_at=bfs.created_at,
        updated_at=bfs.updated_at,
    )


async def _get_bus_fee_or_404(db: AsyncSession, structure_id: UUID) -> BusFeeStructure:
    bfs = await db.get(BusFeeStructure, structure_id)
    if not bfs:
        raise ServiceError("Bus fee structure not found", status.HTTP_404_NOT_FOUND)
    return bfs


async def upsert_bus_fee_structure(
    db: AsyncSession,
    payload: BusFeeStructureCreate,
) -> Tuple[BusFeeStructureResponse, bool]:
    village = payload.village_name.strip()
    existing = (
        await db.execute(
            select(BusFeeStructure).where(
                func.lower(BusFeeStructure.village_name) == village.lower(),
                BusFeeStructure.academic_year == payload.academic_year,
            )
        )
    ).scalar_one_or_none()
    actor = payload.created_by or "system"
    values = payload.model_dump(exclude_unset=True)

    if existing:
        old = _audit_values(existing, BUS_FEE_FIELDS)
        _apply_changes(existing, values, BUS_FEE_FIELDS)
        existing.updated_by = actor
        await log_fee_audit(
            db, "bus_fee_structures", existing.id,
            "UPDATE", old, _audit_values(existing, BUS_FEE_FIELDS), actor,
        )
        await _commit_or_conflict(db, "Bus fee structure could not be updated")
        await db.refresh(existing)
        return _bfs_to_response(existing), False

    bfs = BusFeeStructure(
        village_name=village,
        academic_year=payload.academic_year,
        distance=payload.distance,
        fee_amount=payload.fee_amount,
        vehicle_type=payload.vehicle_type.value,
        description=payload.description,
        is_active=True,
        created_by=actor,
        updated_by=actor,
    )
    db.add(bfs)
    await _commit_or_conflict(db, "A bus fee structure for this village and academic year already exists", flush_only=True)
    await log_fee_audit(
        db, "bus_fee_structures", bfs.id,
        "CREATE", None,
        {"village_name": village, "academic_year": payload.academic_year, **_audit_values(bfs, BUS_FEE_FIELDS)},
        actor,
    )
    await _commit_or_conflict(db, "A bus fee structure for this village and academic year already exists")
    await db.refresh(bfs)
    return _bfs_to_response(bfs), True


async def get_bus_fee_structure(db: AsyncSession, village_name: str, academic_year: str) -> BusFeeStructureResponse:
    bfs = (
        await db.execute(
            select(BusFeeStructure).where(
                func.lower(BusFeeStructure.village_name) == village_name.strip().lower(),
                BusFeeStructure.academic_year == academic_year,
                BusFeeStructure.is_active.is_(True),
            )
        )
    ).scalar_one_or_none()
    if not bfs:
        raise ServiceError(
            f"Bus fee structure not found for {village_name} in academic year {academic_year}",
            status.HTTP_404_NOT_FOUND,
        )
    return _bfs_to_response(bfs)


async def list_bus_fee_structures(
    db: AsyncSession,
    academic_year: Optional[str] = None,
    village_name: Optional[str] = None,
    is_active: Optional[bool] = None,
    vehicle_type: Optional[str] = None,
    page: int = 1,
    limit: int = 50,
) -> BusFeeStructureList:
    stmt = select(BusFeeStructure)
    if academic_year:
        stmt = stmt.where(BusFeeStructure.academic_year == academic_year)
    if village_name:
        stmt = stmt.where(func.lower(BusFeeStructure.village_name).contains(village_name.lower(), autoescape=True))
    if is_active is not None:
        stmt = stmt.where(BusFeeStructure.is_active.is_(is_active))
    if vehicle_type:
        stmt = stmt.where(BusFeeStructure.vehicle_type == vehicle_type)
    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
    stmt = (
        stmt.order_by(BusFeeStructure.village_name, BusFeeStructure.academic_year.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    rows = (await db.execute(stmt)).scalars().all()
    return BusFeeStructureList(items=[_bfs_to_response(b) for b in rows], pagination=_page_info(page, limit, total))


async def search_bus_fee_structures(
    db: AsyncSession,
    village_name: str,
    academic_year: Optional[str] = None,
) -> BusFeeSearchResult:
    if not village_name or not village_name.strip():
        raise ServiceError("Please provide village name for search", status.HTTP_400_BAD_REQUEST)
    stmt = select(BusFeeStructure).where(
        BusFeeStructure.is_active.is_(True),
        func.lower(BusFeeStructure.village_name).contains(village_name.strip().lower(), autoescape=True),
    )
    if academic_year:
        stmt = stmt.where(BusFeeStructure.academic_year == academic_year)
    rows = (await db.execute(stmt.order_by(BusFeeStructure.village_name).limit(100))).scalars().all()
    return BusFeeSearchResult(items=[_bfs_to_response(b) for b in rows], count=len(rows))


async def update_bus_fee_structure(
    db: AsyncSession,
    structure_id: UUID,
    payload: BusFeeStructureUpdate,
) -> BusFeeStructureResponse:
    bfs = await _get_bus_fee_or_404(db, structure_id)
    old = _audit_values(bfs, BUS_FEE_FIELDS + ("is_active",))
    _apply_changes(bfs, payload.model_dump(exclude_unset=True), BUS_FEE_FIELDS + ("is_active",))
    bfs.updated_by = payload.updated_by or "system"
    await log_fee_audit(
        db, "bus_fee_structures", bfs.id,
        "UPDATE", old, _audit_values(bfs, BUS_FEE_FIELDS + ("is_active",)), bfs.updated_by,
    )
    await _commit_or_conflict(db, "Bus fee structure could not be updated")
    await db.refresh(bfs)
    return _bfs_to_response(bfs)


async def delete_bus_fee_structure(db: AsyncSession, structure_id: UUID, deleted_by: Optional[str] = None) -> None:
    bfs = await _get_bus_fee_or_404(db, structure_id)
    await log_fee_audit(
        db, "bus_fee_structures", bfs.id,
        "DELETE", {"village_name": bfs.village_name, "academic_year": bfs.academic_year, **_audit_values(bfs, BUS_FEE_FIELDS)},
        None, deleted_by,
    )
    await db.delete(bfs)
    await db.commit()


async def set_bus_fee_structure_active(
    db: AsyncSession,
    structure_id: UUID,
    payload: ActiveStatusUpdate,
) -> BusFeeStructureResponse:
    bfs = await _get_bus_fee_or_404(db, structure_id)
    old_active = bfs.is_active
    bfs.is_active = payload.is_active
    bfs.updated_by = payload.updated_by or "system"
    await log_fee_audit(
        db, "bus_fee_structures", bfs.id,
        "ACTIVATE" if payload.is_active else "DEACTIVATE",
        {"is_active": old_active}, {"is_active": payload.is_active}, bfs.updated_by,
    )
    await db.commit()
    await db.refresh(bfs)
    return _bfs_to_response(bfs)


async def bus_fee_summary(db: AsyncSession, academic_year: Optional[str] = None) -> BusFeeSummary:
    """Active bus fees grouped by village with min / max / average fee and average distance."""
    stmt = select(BusFeeStructure).where(BusFeeStructure.is_active.is_(True))
    if academic_year:
        stmt = stmt.where(BusFeeStructure.academic_year == academic_year)
    stmt = stmt.order_by(BusFeeStructure.village_name, BusFeeStructure.distance)
    rows = (await db.execute(stmt)).scalars().all()

    by_village: Dict[str, List[BusFeeStructure]] = {}
    for bfs in rows:
        by_village.setdefault(bfs.village_name, []).append(bfs)

    summary = []
    for village, entries in by_village.items():
        fees = [to_decimal(e.fee_amount) for e in entries]
        distances = [to_decimal(e.distance) for e in entries]
        summary.append(
            VillageFeeSummary(
                village_name=village,
                entries=[
                    VillageFeeEntry(
                        academic_year=e.academic_year,
                        distance=to_decimal(e.distance),
                        fee_amount=to_decimal(e.fee_amount),
                        vehicle_type=e.vehicle_type,
                        description=e.description,
                    )
                    for e in entries
                ],
                total_entries=len(entries),
                min_fee=min(fees),
                max_fee=max(fees),
                average_fee=_average(sum(fees, Decimal("0")), len(fees)),
                average_distance=_average(sum(distances, Decimal("0")), len(distances)),
            )
        )
    return BusFeeSummary(
        summary=summary,
        totals=BusFeeSummaryTotals(total_villages=len(summary), total_entries=len(rows)),
    )


# --- Hostel Fee Structure ---
def _hfs_to_response(hfs: HostelFeeStructure) -> HostelFeeStructureResponse:
    split = _term_split(hfs.total_annual_fee, hfs.total_terms)
    return HostelFeeStructureResponse(
        id=hfs.id,
        class_level=hfs.class_level,
        class_name=ClassLevel(hfs.class_level).display_name,
        academic_year=hfs.academic_year,
        total_annual_fee=to_decimal(hfs.total_annual_fee),
        total_terms=hfs.total_terms,
        term_amount=split.get(1, 0),
        term_split=split,
        description=hfs.description,
        is_active=hfs.is_active,
        created_by=hfs.created_by,
        updated_by=hfs.updated_by,
        created_at=hfs.created_at,
        updated_at=hfs.updated_at,
    )


async def _get_hostel_fee_or_404(db: AsyncSession, structure_id: UUID) -> HostelFeeStructure:
    hfs = await db.get(HostelFeeStructure, structure_id)
    if not hfs:
        raise ServiceError("Hostel fee structure not found", status.HTTP_404_NOT_FOUND)
    return hfs


async def upsert_hostel_fee_structure(
    db: AsyncSession,
    payload: HostelFeeStructureCreate,
) -> Tuple[HostelFeeStructureResponse, bool]:
    level = _class_level(payload.class_name)
    existing = (
        await db.execute(
            select(HostelFeeStructure).where(
                HostelFeeStructure.class_level == level.value,
                HostelFeeStructure.academic_year == payload.academic_year,
            )
        )
    ).scalar_one_or_none()
    actor = payload.created_by or "system"
    values = payload.model_dump(exclude_unset=True)

    if existing:
        old = _audit_values(existing, HOSTEL_FEE_FIELDS)
        _apply_changes(existing, values, HOSTEL_FEE_FIELDS)
        existing.updated_by = actor
        await log_fee_audit(
            db, "hostel_fee_structures", existing.id,
            "UPDATE", old, _audit_values(existing, HOSTEL_FEE_FIELDS), actor,
        )
        await _commit_or_conflict(db, "Hostel fee structure could not be updated")
        await db.refresh(existing)
        return _hfs_to_response(existing), False

    hfs = HostelFeeStructure(
        class_level=level.value,
        academic_year=payload.academic_year,
        total_annual_fee=payload.total_annual_fee,
        total_terms=payload.total_terms,
        description=payload.description,
        is_active=True,
        created_by=actor,
        updated_by=actor,
    )
    db.add(hfs)
    await _commit_or_conflict(db, "A hostel fee structure for this class and academic year already exists", flush_only=True)
    await log_fee_audit(
        db, "hostel_fee_structures", hfs.id,
        "CREATE", None,
        {"class_level": level.value, "academic_year": payload.academic_year, **_audit_values(hfs, HOSTEL_FEE_FIELDS)},
        actor,
    )
    await _commit_or_conflict(db, "A hostel fee structure for this class and academic year already exists")
    await db.refresh(hfs)
    return _hfs_to_response(hfs), True


async def get_hostel_fee_structure(db: AsyncSession, class_name: str, academic_year: str) -> HostelFeeStructureResponse:
    level = _class_level(class_name)
    hfs = (
        await db.execute(
            select(HostelFeeStructure).where(
                HostelFeeStructure.class_level == level.value,
                HostelFeeStructure.academic_year == academic_year,
                HostelFeeStructure.is_active.is_(True),
            )
        )
    ).scalar_one_or_none()
    if not hfs:
        raise ServiceError(
            f"Hostel fee structure not found for {level.display_name} in academic year {academic_year}",
            status.HTTP_404_NOT_FOUND,
        )
    return _hfs_to_response(hfs)


async def list_hostel_fee_structures(
    db: AsyncSession,
    academic_year: Optional[str] = None,
    class_name: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = 1,
    limit: int = 50,
) -> HostelFeeStructureList:
    stmt = select(HostelFeeStructure)
    if academic_year:
        stmt = stmt.where(HostelFeeStructure.academic_year == academic_year)
    if class_name:
        stmt = stmt.where(HostelFeeStructure.class_level == _class_level(class_name).value)
    if is_active is not None:
        stmt = stmt.where(HostelFeeStructure.is_active.is_(is_active))
    total = (await db.execute(select(func.count()).select_from(stmt.subquery()))).scalar_one()
    rows = (await db.execute(stmt)).scalars().all()
    rows = sorted(rows, key=lambda h: (h.academic_year, ClassLevel(h.class_level).rank))
    start = (page - 1) * limit
    return HostelFeeStructureList(
        items=[_hfs_to_response(h) for h in rows[start:start + limit]],
        pagination=_page_info(page, limit, total),
    )


async def update_hostel_fee_structure(
    db: AsyncSession,
    structure_id: UUID,
    payload: HostelFeeStructureUpdate,
) -> HostelFeeStructureResponse:
    hfs = await _get_hostel_fee_or_404(db, structure_id)
    old = _audit_values(hfs, HOSTEL_FEE_FIELDS + ("is_active",))
    _apply_changes(hfs, payload.model_dump(exclude_unset=True), HOSTEL_FEE_FIELDS + ("is_active",))
    hfs.updated_by = payload.updated_by or "system"
    await log_fee_audit(
        db, "hostel_fee_structures", hfs.id,
        "UPDATE", old, _audit_values(hfs, HOSTEL_FEE_FIELDS + ("is_active",)), hfs.updated_by,
    )
    await _commit_or_conflict(db, "Hostel fee structure could not be updated")
    await db.refresh(hfs)
    return _hfs_to_response(hfs)


async def delete_hostel_fee_structure(db: AsyncSession, structure_id: UUID, deleted_by: Optional[str] = None) -> None:
    """Delete a hostel fee structure. Refused once hostel fees were generated for that class and year."""
    hfs = await _get_hostel_fee_or_404(db, structure_id)
    in_use = (
        await db.execute(
            select(func.count(StudentFeeSnapshot.id)).where(
                StudentFeeSnapshot.class_level == hfs.class_level,
                StudentFeeSnapshot.academic_year == hfs.academic_year,
                StudentFeeSnapshot.hostel_fee > 0,
            )
        )
    ).scalar_one()
    if in_use:
        raise ServiceError(
            "Cannot delete hostel fee structure. Fees already generated for this class.",
            status.HTTP_400_BAD_REQUEST,
        )
    await log_fee_audit(
        db, "hostel_fee_structures", hfs.id,
        "DELETE", {"class_level": hfs.class_level, "academic_year": hfs.academic_year, **_audit_values(hfs, HOSTEL_FEE_FIELDS)},
        None, deleted_by,
    )
    await db.delete(hfs)
    await db.commit()


async def set_hostel_fee_structure_active(
    db: AsyncSession,
    structure_id: UUID,
    payload: ActiveStatusUpdate,
) -> HostelFeeStructureResponse:
    hfs = await _get_hostel_fee_or_404(db, structure_id)
    old_active = hfs.is_active
    hfs.is_active = payload.is_active
    hfs.updated_by = payload.updated_by or "system"
    await log_fee_audit(
        db, "hostel_fee_structures", hfs.id,
        "ACTIVATE" if payload.is_active else "DEACTIVATE",
        {"is_active": old_active}, {"is_active": payload.is_active}, hfs.updated_by,
    )
    await db.commit()
    await db.refresh(hfs)
    return _hfs_to_response(hfs)


async def hostel_fee_summary(db: AsyncSession, academic_year: Optional[str] = None) -> HostelFeeSummary:
    stmt = select(HostelFeeStructure).where(HostelFeeStructure.is_active.is_(True))
    if academic_year:
        stmt = stmt.where(HostelFeeStructure.academic_year == academic_year)
    rows = (await db.execute(stmt)).scalars().all()
    rows = sorted(rows, key=lambda h: (h.academic_year, ClassLevel(h.class_level).rank))
    revenue = sum((to_decimal(h.total_annual_fee) for h in rows), Decimal("0"))
    return HostelFeeSummary(
        summary=[_hfs_to_response(h) for h in rows],
        totals=HostelFeeSummaryTotals(
            total_classes=len(rows),
            total_annual_revenue=revenue,
            average_annual_fee=_average(revenue, len(rows)),
        ),
    )


# --- Fee calculation preview ---
async def preview_student_fees(db: AsyncSession, payload: FeeCalculationRequest) -> FeeCalculationResult:
    """Run the fee aggregator for an arbitrary student profile without persisting anything."""
    level = _class_level(payload.class_name)
    return await calculate_student_fees(
        db,
        StudentFeeInput(
            class_level=level,
            academic_year=payload.academic_year,
            village=payload.village,
            uses_transport=payload.uses_transport,
            student_type=payload.student_type,
            school_fee_discount=payload.school_fee_discount,
            transport_fee_discount=payload.transport_fee_discount,
            hostel_fee_discount=payload.hostel_fee_discount,
        ),
    )
