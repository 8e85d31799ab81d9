"""
Payments service: apply payments to a student's fee snapshot and keep the payment ledger.

Every payment writes one PaymentHistoryEntry, its PaymentAllocation rows (which term of which
component each amount went to), the snapshot counters and an audit row in one transaction.
Term-level paid amounts are always summed from allocations.
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.api.v1.students.service import get_student_or_404
from app.core.config import settings
from app.core.enums import FeeComponent, FeeStatus, PaymentStatus
from app.core.exceptions import OverpaymentError, PaymentConflictError, ServiceError
from app.core.models import PaymentAllocation, PaymentHistoryEntry, Student, StudentFeeSnapshot
from app.fees.audit import log_fee_audit
from app.fees.calculations import distribute_payment_across_terms, remaining_due_per_term, split_evenly
from app.fees.class_levels import ClassLevel
from app.fees.identifiers import generate_payment_id, generate_receipt_no

from .schemas import (
    ComponentAmounts,
    ComponentStatus,
    FeeTotals,
    OutstandingDetails,
    PaymentAllocationResponse,
    PaymentCreate,
    PaymentDetailsResponse,
    PaymentResponse,
    PaymentResult,
    PaymentStats,
    PaymentSummaryResponse,
    PaymentValidationResponse,
    ReceiptFeeSummary,
    ReceiptResponse,
    RecentPayment,
    SchoolInfo,
    StudentFeeDetailsResponse,
    StudentInfo,
    TermDetail,
)

logger = logging.getLogger(__name__)

COMPONENTS = (FeeComponent.SCHOOL, FeeComponent.TRANSPORT, FeeComponent.HOSTEL)
_LABELS = {
    FeeComponent.SCHOOL: "School fee",
    FeeComponent.TRANSPORT: "Transport fee",
    FeeComponent.HOSTEL: "Hostel fee",
}

Allocation = Tuple[FeeComponent, int, int]  # (component, term, amount)
PaidByTerm = Dict[FeeComponent, Dict[int, int]]


# --- Snapshot helpers ---
def _total(snap: StudentFeeSnapshot, component: FeeComponent) -> int:
    return getattr(snap, f"{component.value}_fee") or 0


def _paid(snap: StudentFeeSnapshot, component: FeeComponent) -> int:
    return getattr(snap, f"{component.value}_fee_paid") or 0


def _terms(snap: StudentFeeSnapshot, component: FeeComponent) -> int:
    return getattr(snap, f"{component.value}_fee_terms") or snap.terms


def _is_default(snap: StudentFeeSnapshot, component: FeeComponent) -> bool:
    return bool(getattr(snap, f"{component.value}_fee_is_default"))


def _due(snap: StudentFeeSnapshot, component: FeeComponent) -> int:
    return max(0, _total(snap, component) - _paid(snap, component))


def _fee_status(total_fee: int, total_due: int) -> FeeStatus:
    if total_due <= 0:
        return FeeStatus.PAID
    if total_due >= total_fee:
        return FeeStatus.UNPAID
    return FeeStatus.PARTIAL


def _percentage(part: int, whole: int) -> Decimal:
    if whole <= 0:
        return Decimal("100.00")
    return (Decimal(part) * 100 / Decimal(whole)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _payment_amounts(payload: PaymentCreate) -> Dict[FeeComponent, int]:
    return {
        FeeComponent.SCHOOL: payload.school_fee_paid,
        FeeComponent.TRANSPORT: payload.transport_fee_paid,
        FeeComponent.HOSTEL: payload.hostel_fee_paid,
    }


async def _get_snapshot(
    db: AsyncSession,
    student_id: UUID,
    academic_year: str,
    for_update: bool = False,
) -> StudentFeeSnapshot:
    stmt = select(StudentFeeSnapshot).where(
        StudentFeeSnapshot.student_id == student_id,
        StudentFeeSnapshot.academic_year == academic_year,
    )
    if for_update:
        stmt = stmt.with_for_update()
    snap = (await db.execute(stmt)).scalar_one_or_none()
    if not snap:
        raise ServiceError(f"Fee details not found for academic year {academic_year}", status.HTTP_404_NOT_FOUND)
    return snap


async def _load_allocations(db: AsyncSession, snapshot_id: UUID) -> List[PaymentAllocation]:
    result = await db.execute(
        select(PaymentAllocation)
        .join(PaymentHistoryEntry, PaymentAllocation.payment_entry_id == PaymentHistoryEntry.id)
        .where(
            PaymentAllocation.snapshot_id == snapshot_id,
            PaymentHistoryEntry.status == PaymentStatus.COMPLETED.value,
        )
    )
    return list(result.scalars().all())


def _paid_by_term(allocations: Sequence[PaymentAllocation]) -> PaidByTerm:
    paid: PaidByTerm = {c: defaultdict(int) for c in COMPONENTS}
    for a in allocations:
        paid[FeeComponent(a.component)][a.term_number] += a.amount
    return paid


# --- Allocation planning (pure) ---
def plan_allocations(
    snap: StudentFeeSnapshot,
    amounts: Mapping[FeeComponent, int],
    term: Optional[int],
    paid_by_term: PaidByTerm,
) -> Tuple[List[str], List[Allocation]]:
    """
    Check a payment against the snapshot and work out its allocations.

    Returns (issues, allocations). Any issue means the payment must be rejected as a whole.
    A term-scoped amount may not exceed that term's remaining due; otherwise the amount may
    not exceed the component's remaining due and is spread over terms largest due first.
    """
    issues: List[str] = []
    allocations: List[Allocation] = []
    for component in COMPONENTS:
        amount = amounts.get(component, 0)
        if amount <= 0:
            continue
        label = _LABELS[component]
        total = _total(snap, component)
        terms = _terms(snap, component)
        due = _due(snap, component)
        if amount > due:
            issues.append(f"{label} payment ({amount}) exceeds due amount ({due})")
            continue
        if term is not None:
            if term > terms:
                issues.append(f"Term {term} does not exist for {label.lower()} ({terms} terms)")
                continue
            term_due = remaining_due_per_term(total, terms, paid_by_term[component])[term]
            if amount > term_due:
                issues.append(
                    f"{label} payment ({amount}) exceeds Term {term} due amount ({term_due}) by {amount - term_due}"
                )
                continue
            allocations.append((component, term, amount))
        else:
            split = distribute_payment_across_terms(amount, total, terms, paid_by_term[component])
            allocations.extend((component, t, a) for t, a in sorted(split.items()) if a > 0)
    return issues, allocations


def _description(payload: PaymentCreate, allocations: Sequence[Allocation]) -> str:
    note = (payload.description or "").strip()
    if payload.term is not None:
        text = f"Term {payload.term} Payment"
    else:
        terms = sorted({t for _, t, _ in allocations})
        text = "Fee Payment (Term{} {})".format("s" if len(terms) > 1 else "", ", ".join(str(t) for t in terms))
    return f"{text} - {note}" if note else text


# --- Response mappers ---
def _allocations_by_entry(allocations: Sequence[PaymentAllocation]) -> Dict[UUID, List[PaymentAllocation]]:
    grouped: Dict[UUID, List[PaymentAllocation]] = defaultdict(list)
    for a in allocations:
        grouped[a.payment_entry_id].append(a)
    return grouped


def _entry_to_response(entry: PaymentHistoryEntry, allocations: Sequence[PaymentAllocation]) -> PaymentResponse:
    return PaymentResponse(
        id=entry.id,
        payment_id=entry.payment_id,
        receipt_no=entry.receipt_no,
        student_id=entry.student_id,
        academic_year=entry.academic_year,
        payment_date=entry.payment_date,
        school_fee_paid=entry.school_fee_paid,
        transport_fee_paid=entry.transport_fee_paid,
        hostel_fee_paid=entry.hostel_fee_paid,
        total_amount=entry.total_amount,
        payment_mode=entry.payment_mode,
        term_number=entry.term_number,
        description=entry.description,
        cheque_no=entry.cheque_no,
        bank_name=entry.bank_name,
        transaction_id=entry.transaction_id,
        notes=entry.notes,
        received_by=entry.received_by,
        status=entry.status,
        allocations=[
            PaymentAllocationResponse(component=a.component, term_number=a.term_number, amount=a.amount)
            for a in sorted(allocations, key=lambda a: (COMPONENTS.index(FeeComponent(a.component)), a.term_number))
        ],
    )


def _student_info(student: Student) -> StudentInfo:
    return StudentInfo(
        id=student.id,
        name=student.full_name,
        admission_no=student.admission_no,
        roll_no=student.roll_no,
        class_level=student.class_level,
        class_name=ClassLevel(student.class_level).display_name,
        section=student.section,
        academic_year=student.academic_year,
        student_type=student.student_type,
        parent_name=student.parent_name,
        parent_phone=student.parent_phone,
        village=student.village,
    )


def _component_statuses(
    snap: StudentFeeSnapshot,
    paid_by_term: PaidByTerm,
    include_empty: bool,
) -> Dict[str, ComponentStatus]:
    out: Dict[str, ComponentStatus] = {}
    for component in COMPONENTS:
        total = _total(snap, component)
        if total <= 0 and not include_empty:
            continue
        paid = _paid(snap, component)
        terms = _terms(snap, component)
        out[f"{component.value}_fee"] = ComponentStatus(
            total=total,
            paid=paid,
            due=max(0, total - paid),
            percentage_paid=_percentage(paid, total),
            discount=getattr(snap, f"{component.value}_fee_discount_applied") or Decimal("0"),
            terms=terms,
            term_distribution=split_evenly(total, terms) if total > 0 else {},
            term_paid=dict(sorted(paid_by_term[component].items())),
            is_default=_is_default(snap, component),
        )
    return out


def _term_details(snap: StudentFeeSnapshot, allocations: Sequence[PaymentAllocation]) -> List[TermDetail]:
    """Per-term due / paid across all components. Components may have different term counts."""
    due_per_term: Dict[int, int] = defaultdict(int)
    max_terms = snap.terms
    for component in COMPONENTS:
        total = _total(snap, component)
        if total <= 0:
            continue
        terms = _terms(snap, component)
        max_terms = max(max_terms, terms)
        for t, amount in split_evenly(total, terms).items():
            due_per_term[t] += amount

    paid_per_term: Dict[int, int] = defaultdict(int)
    entries_per_term: Dict[int, set] = defaultdict(set)
    for a in allocations:
        paid_per_term[a.term_number] += a.amount
        entries_per_term[a.term_number].add(a.payment_entry_id)

    details = []
    for t in range(1, max_terms + 1):
        due = due_per_term.get(t, 0)
        paid = paid_per_term.get(t, 0)
        remaining = max(0, due - paid)
        if remaining == 0:
            term_status = FeeStatus.PAID
        elif paid > 0:
            term_status = FeeStatus.PARTIAL
        else:
            term_status = FeeStatus.UNPAID
        details.append(
            TermDetail(
                term=t,
                due_amount=due,
                paid_amount=paid,
                remaining_amount=remaining,
                status=term_status,
                payment_count=len(entries_per_term.get(t, ())),
            )
        )
    return details


def _fee_totals(snap: StudentFeeSnapshot) -> FeeTotals:
    return FeeTotals(
        total_fee=snap.total_fee,
        total_paid=snap.total_paid,
        total_due=snap.total_due,
        percentage_paid=_percentage(snap.total_paid, snap.total_fee),
        payment_status=_fee_status(snap.total_fee, snap.total_due),
    )


async def _entries(
    db: AsyncSession,
    student_id: UUID,
    academic_year: Optional[str] = None,
) -> List[PaymentHistoryEntry]:
    stmt = select(PaymentHistoryEntry).where(
        PaymentHistoryEntry.student_id == student_id,
        PaymentHistoryEntry.status == PaymentStatus.COMPLETED.value,
    )
    if academic_year:
        stmt = stmt.where(PaymentHistoryEntry.academic_year == academic_year)
    stmt = stmt.order_by(PaymentHistoryEntry.payment_date.desc(), PaymentHistoryEntry.created_at.desc())
    return list((await db.execute(stmt)).scalars().all())


async def _allocations_for_entries(db: AsyncSession, entry_ids: Sequence[UUID]) -> Dict[UUID, List[PaymentAllocation]]:
    if not entry_ids:
        return {}
    result = await db.execute(select(PaymentAllocation).where(PaymentAllocation.payment_entry_id.in_(list(entry_ids))))
    return _allocations_by_entry(result.scalars().all())


# --- Fee details ---
async def get_student_fee_details(
    db: AsyncSession,
    student_id: UUID,
    academic_year: Optional[str] = None,
) -> StudentFeeDetailsResponse:
    """Components with term split, term-wise status, totals and the 10 most recent payments."""
    student = await get_student_or_404(db, student_id)
    year = academic_year or student.academic_year
    snap = await _get_snapshot(db, student_id, year)
    allocations = await _load_allocations(db, snap.id)
    paid_by_term = _paid_by_term(allocations)
    term_details = _term_details(snap, allocations)
    entries = (await _entries(db, student_id, year))[:10]
    by_entry = _allocations_by_entry(allocations)
    next_term = next((t.term for t in term_details if t.remaining_amount > 0), None)
    return StudentFeeDetailsResponse(
        student=_student_info(student),
        academic_year=year,
        components=_component_statuses(snap, paid_by_term, include_empty=False),
        summary=_fee_totals(snap),
        total_terms=len(term_details),
        term_details=term_details,
        recent_payments=[_entry_to_response(e, by_entry.get(e.id, [])) for e in entries],
        next_term_number=next_term,
        uses_default_fees=snap.uses_defaults,
        snapshot_updated_at=snap.updated_at,
    )


# --- Validation ---
async def validate_payment(db: AsyncSession, student_id: UUID, payload: PaymentCreate) -> PaymentValidationResponse:
    """Dry run of process_payment: same checks, nothing written."""
    await get_student_or_404(db, student_id)
    snap = await _get_snapshot(db, student_id, payload.academic_year)
    paid_by_term = _paid_by_term(await _load_allocations(db, snap.id))
    amounts = _payment_amounts(payload)
    issues, _ = plan_allocations(snap, amounts, payload.term, paid_by_term)

    dues = {c: _due(snap, c) for c in COMPONENTS}
    remaining = {c: max(0, dues[c] - amounts[c]) for c in COMPONENTS}
    term_dues = None
    if payload.term is not None:
        per_component = {
            c: remaining_due_per_term(_total(snap, c), _terms(snap, c), paid_by_term[c]).get(payload.term, 0)
            for c in COMPONENTS
        }
        term_dues = ComponentAmounts(
            school_fee=per_component[FeeComponent.SCHOOL],
            transport_fee=per_component[FeeComponent.TRANSPORT],
            hostel_fee=per_component[FeeComponent.HOSTEL],
            total=sum(per_component.values()),
        )
    return PaymentValidationResponse(
        is_valid=not issues,
        issues=issues,
        due_amounts=ComponentAmounts(
            school_fee=dues[FeeComponent.SCHOOL],
            transport_fee=dues[FeeComponent.TRANSPORT],
            hostel_fee=dues[FeeComponent.HOSTEL],
            total=sum(dues.values()),
        ),
        proposed_payment=ComponentAmounts(
            school_fee=amounts[FeeComponent.SCHOOL],
            transport_fee=amounts[FeeComponent.TRANSPORT],
            hostel_fee=amounts[FeeComponent.HOSTEL],
            total=sum(amounts.values()),
        ),
        remaining_after_payment=ComponentAmounts(
            school_fee=remaining[FeeComponent.SCHOOL],
            transport_fee=remaining[FeeComponent.TRANSPORT],
            hostel_fee=remaining[FeeComponent.HOSTEL],
            total=sum(remaining.values()),
        ),
        term=payload.term,
        term_due_amounts=term_dues,
    )


# --- Process payment ---
async def _ensure_custom_ids_free(db: AsyncSession, payload: PaymentCreate) -> None:
    conditions = []
    if payload.custom_payment_id:
        conditions.append(PaymentHistoryEntry.payment_id == payload.custom_payment_id)
    if payload.custom_receipt_no:
        conditions.append(PaymentHistoryEntry.receipt_no == payload.custom_receipt_no)
    if not conditions:
        return
    clash = (await db.execute(select(PaymentHistoryEntry.id).where(or_(*conditions)).limit(1))).scalar_one_or_none()
    if clash is not None:
        raise PaymentConflictError("A payment with this receipt number or payment ID already exists")


async def _apply_payment(
    db: AsyncSession,
    student_id: UUID,
    payload: PaymentCreate,
    amounts: Dict[FeeComponent, int],
) -> PaymentResult:
    snap = await _get_snapshot(db, student_id, payload.academic_year, for_update=True)
    paid_by_term = _paid_by_term(await _load_allocations(db, snap.id))
    issues, allocations = plan_allocations(snap, amounts, payload.term, paid_by_term)
    if issues:
        await db.rollback()
        raise OverpaymentError("; ".join(issues))

    now = datetime.now(timezone.utc)
    received_by = (payload.received_by or "").strip() or "Admin"
    total_amount = sum(amounts.values())
    entry = PaymentHistoryEntry(
        payment_id=payload.custom_payment_id or generate_payment_id(now),
        receipt_no=payload.custom_receipt_no or generate_receipt_no(now),
        student_id=student_id,
        snapshot_id=snap.id,
        academic_year=payload.academic_year,
        payment_date=now,
        school_fee_paid=amounts[FeeComponent.SCHOOL],
        transport_fee_paid=amounts[FeeComponent.TRANSPORT],
        hostel_fee_paid=amounts[FeeComponent.HOSTEL],
        total_amount=total_amount,
        payment_mode=payload.payment_mode.value,
        term_number=payload.term,
        description=_description(payload, allocations),
        cheque_no=payload.cheque_no,
        bank_name=payload.bank_name,
        transaction_id=payload.transaction_id,
        notes=payload.notes,
        received_by=received_by,
        status=PaymentStatus.COMPLETED.value,
    )
    db.add(entry)
    await db.flush()

    rows = [
        PaymentAllocation(
            payment_entry_id=entry.id,
            snapshot_id=snap.id,
            component=component.value,
            term_number=term,
            amount=amount,
        )
        for component, term, amount in allocations
    ]
    db.add_all(rows)

    old = {
        "school_fee_paid": snap.school_fee_paid,
        "transport_fee_paid": snap.transport_fee_paid,
        "hostel_fee_paid": snap.hostel_fee_paid,
        "total_paid": snap.total_paid,
        "total_due": snap.total_due,
        "version": snap.version,
    }
    snap.school_fee_paid = _paid(snap, FeeComponent.SCHOOL) + amounts[FeeComponent.SCHOOL]
    snap.transport_fee_paid = _paid(snap, FeeComponent.TRANSPORT) + amounts[FeeComponent.TRANSPORT]
    snap.hostel_fee_paid = _paid(snap, FeeComponent.HOSTEL) + amounts[FeeComponent.HOSTEL]
    snap.total_paid = snap.school_fee_paid + snap.transport_fee_paid + snap.hostel_fee_paid
    snap.total_due = max(0, snap.total_fee - snap.total_paid)
    await log_fee_audit(
        db, "payment_history", entry.id,
        "PAYMENT", old,
        {
            "payment_id": entry.payment_id,
            "receipt_no": entry.receipt_no,
            "amount": total_amount,
            "term": payload.term,
            "allocations": [[c.value, t, a] for c, t, a in allocations],
            "total_paid": snap.total_paid,
            "total_due": snap.total_due,
        },
        received_by,
    )
    await db.commit()

    logger.info(
        "Payment %s (receipt %s) of %s recorded for student %s, %s; due now %s",
        entry.payment_id,
        entry.receipt_no,
        total_amount,
        student_id,
        payload.academic_year,
        snap.total_due,
    )
    return PaymentResult(
        payment=_entry_to_response(entry, rows),
        total_fee=snap.total_fee,
        total_paid=snap.total_paid,
        total_due=snap.total_due,
        school_fee_paid=snap.school_fee_paid,
        transport_fee_paid=snap.transport_fee_paid,
        hostel_fee_paid=snap.hostel_fee_paid,
        fee_status=_fee_status(snap.total_fee, snap.total_due),
    )


async def process_payment(db: AsyncSession, student_id: UUID, payload: PaymentCreate) -> PaymentResult:
    """
    Apply a payment to the student's snapshot for payload.academic_year.

    Over-payment is rejected before anything is written. A clash on a generated payment ID or
    receipt number, or a concurrent write to the snapshot, rolls back and retries from a fresh
    read, up to PAYMENT_MAX_RETRIES attempts.
    """
    amounts = _payment_amounts(payload)
    if sum(amounts.values()) <= 0:
        raise ServiceError("Payment amount must be greater than zero", status.HTTP_400_BAD_REQUEST)
    await get_student_or_404(db, student_id)
    custom_ids = bool(payload.custom_payment_id or payload.custom_receipt_no)
    if custom_ids:
        await _ensure_custom_ids_free(db, payload)

    attempts = settings.payment_max_retries
    for attempt in range(1, attempts + 1):
        try:
            return await _apply_payment(db, student_id, payload, amounts)
        except IntegrityError:
            await db.rollback()
            if custom_ids:
                raise PaymentConflictError("A payment with this receipt number or payment ID already exists")
            logger.warning(
                "Payment identifier collision for student %s (attempt %d/%d); regenerating",
                student_id,
                attempt,
                attempts,
            )
        except StaleDataError:
            await db.rollback()
            logger.warning(
                "Fee snapshot for student %s (%s) changed concurrently (attempt %d/%d); retrying",
                student_id,
                payload.academic_year,
                attempt,
                attempts,
            )
    raise PaymentConflictError("Payment could not be recorded because of concurrent updates. Please retry.")


# --- History / summary / details / receipt ---
async def get_payment_history(
    db: AsyncSession,
    student_id: UUID,
    academic_year: Optional[str] = None,
) -> List[PaymentResponse]:
    await get_student_or_404(db, student_id)
    entries = await _entries(db, student_id, academic_year)
    by_entry = await _allocations_for_entries(db, [e.id for e in entries])
    return [_entry_to_response(e, by_entry.get(e.id, [])) for e in entries]


async def get_payment_summary(
    db: AsyncSession,
    student_id: UUID,
    academic_year: Optional[str] = None,
) -> PaymentSummaryResponse:
    student = await get_student_or_404(db, student_id)
    year = academic_year or student.academic_year
    snap = await _get_snapshot(db, student_id, year)
    allocations = await _load_allocations(db, snap.id)
    entries = await _entries(db, student_id, year)

    methods: Dict[str, int] = defaultdict(int)
    for e in entries:
        methods[e.payment_mode] += 1
    dates = [e.payment_date for e in entries]
    outstanding = None
    if snap.total_due > 0:
        outstanding = OutstandingDetails(
            amount=snap.total_due,
            school_fee=_due(snap, FeeComponent.SCHOOL),
            transport_fee=_due(snap, FeeComponent.TRANSPORT),
            hostel_fee=_due(snap, FeeComponent.HOSTEL),
        )
    return PaymentSummaryResponse(
        student=_student_info(student),
        academic_year=year,
        fee_summary=_fee_totals(snap),
        component_breakdown=_component_statuses(snap, _paid_by_term(allocations), include_empty=True),
        term_breakdown=_term_details(snap, allocations),
        payment_stats=PaymentStats(
            total_payments=len(entries),
            total_amount_paid=sum(e.total_amount for e in entries),
            first_payment_date=min(dates) if dates else None,
            last_payment_date=max(dates) if dates else None,
            payment_methods=dict(methods),
        ),
        recent_payments=[
            RecentPayment(
                payment_id=e.payment_id,
                receipt_no=e.receipt_no,
                payment_date=e.payment_date,
                payment_mode=e.payment_mode,
                amount=e.total_amount,
                description=e.description,
            )
            for e in entries[:5]
        ],
        outstanding=outstanding,
    )


async def _get_entry_or_404(db: AsyncSession, student_id: UUID, payment_id: str) -> PaymentHistoryEntry:
    entry = (
        await db.execute(
            select(PaymentHistoryEntry).where(
                PaymentHistoryEntry.student_id == student_id,
                PaymentHistoryEntry.payment_id == payment_id,
            )
        )
    ).scalar_one_or_none()
    if not entry:
        raise ServiceError(f"Payment with ID {payment_id} not found", status.HTTP_404_NOT_FOUND)
    return entry


async def get_payment_details(db: AsyncSession, student_id: UUID, payment_id: str) -> PaymentDetailsResponse:
    student = await get_student_or_404(db, student_id)
    entry = await _get_entry_or_404(db, student_id, payment_id)
    by_entry = await _allocations_for_entries(db, [entry.id])
    return PaymentDetailsResponse(
        payment=_entry_to_response(entry, by_entry.get(entry.id, [])),
        student=_student_info(student),
    )


async def get_receipt_data(db: AsyncSession, student_id: UUID, payment_id: str) -> ReceiptResponse:
    """Receipt data for one payment. Rendering (PDF, print) happens elsewhere."""
    student = await get_student_or_404(db, student_id)
    entry = await _get_entry_or_404(db, student_id, payment_id)
    snap = await db.get(StudentFeeSnapshot, entry.snapshot_id)
    allocations = await _load_allocations(db, snap.id)
    by_entry = _allocations_by_entry(allocations)
    return ReceiptResponse(
        receipt_id=f"RECEIPT-{entry.receipt_no}",
        student=_student_info(student),
        payment=_entry_to_response(entry, by_entry.get(entry.id, [])),
        fee_summary=ReceiptFeeSummary(
            academic_year=snap.academic_year,
            total_fee=snap.total_fee,
            total_paid=snap.total_paid,
            total_due=snap.total_due,
            payment_status=_fee_status(snap.total_fee, snap.total_due),
            components=_component_statuses(snap, _paid_by_term(allocations), include_empty=True),
        ),
        school_info=SchoolInfo(
            name=settings.school_name,
            address=settings.school_address,
            phone=settings.school_phone,
            email=settings.school_email,
            principal=settings.school_principal,
        ),
        generated_at=datetime.now(timezone.utc),
        is_partial_payment=snap.total_due > 0,
    )
