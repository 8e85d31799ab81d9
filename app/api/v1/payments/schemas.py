"""Payments schemas: payment request, validation, fee details, history, summary, receipt data."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from app.api.v1.fees.schemas import ACADEMIC_YEAR_PATTERN
from app.core.enums import FeeStatus, PaymentMode


# --- Payment request ---
class PaymentCreate(BaseModel):
    """
    One payment, already split by the caller into school / transport / hostel amounts.
    With `term` the amounts are credited to that term; without it they are spread over the
    outstanding terms, largest remaining due first.
    """

    academic_year: str = Field(..., pattern=ACADEMIC_YEAR_PATTERN)
    term: Optional[int] = Field(None, ge=1, le=4)
    school_fee_paid: int = Field(0, ge=0)
    transport_fee_paid: int = Field(0, ge=0)
    hostel_fee_paid: int = Field(0, ge=0)
    payment_mode: PaymentMode = PaymentMode.CASH
    description: Optional[str] = Field(None, max_length=200)
    received_by: Optional[str] = Field(None, max_length=100)
    cheque_no: Optional[str] = Field(None, max_length=50)
    bank_name: Optional[str] = Field(None, max_length=100)
    transaction_id: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    custom_receipt_no: Optional[str] = Field(None, max_length=40)
    custom_payment_id: Optional[str] = Field(None, max_length=40)

    @model_validator(mode="after")
    def check_total_positive(self):
        if self.school_fee_paid + self.transport_fee_paid + self.hostel_fee_paid <= 0:
            raise ValueError("Payment amount must be greater than zero")
        return self


# --- Validation (dry run) ---
class ComponentAmounts(BaseModel):
    school_fee: int
    transport_fee: int
    hostel_fee: int
    total: int


class PaymentValidationResponse(BaseModel):
    is_valid: bool
    issues: List[str]
    due_amounts: ComponentAmounts
    proposed_payment: ComponentAmounts
    remaining_after_payment: ComponentAmounts
    term: Optional[int] = None
    term_due_amounts: Optional[ComponentAmounts] = None


# --- History ---
class PaymentAllocationResponse(BaseModel):
    component: str
    term_number: int
    amount: int

    class Config:
        from_attributes = True


class PaymentResponse(BaseModel):
    id: UUID
    payment_id: str
    receipt_no: str
    student_id: UUID
    academic_year: str
    payment_date: datetime
    school_fee_paid: int
    transport_fee_paid: int
    hostel_fee_paid: int
    total_amount: int
    payment_mode: str
    term_number: Optional[int] = None
    description: str
    cheque_no: Optional[str] = None
    bank_name: Optional[str] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None
    received_by: str
    status: str
    allocations: List[PaymentAllocationResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class PaymentResult(BaseModel):
    """Outcome of a processed payment: the ledger entry plus the updated totals."""

    payment: PaymentResponse
    total_fee: int
    total_paid: int
    total_due: int
    school_fee_paid: int
    transport_fee_paid: int
    hostel_fee_paid: int
    fee_status: FeeStatus


# --- Fee details ---
class StudentInfo(BaseModel):
    id: UUID
    name: str
    admission_no: str
    roll_no: Optional[str] = None
    class_level: str
    class_name: str
    section: Optional[str] = None
    academic_year: str
    student_type: str
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = None
    village: Optional[str] = None


class ComponentStatus(BaseModel):
    total: int
    paid: int
    due: int
    percentage_paid: Decimal
    discount: Decimal = Decimal("0")
    terms: int
    term_distribution: Dict[int, int] = Field(default_factory=dict)
    term_paid: Dict[int, int] = Field(default_factory=dict)
    is_default: bool = False


class TermDetail(BaseModel):
    term: int
    due_amount: int
    paid_amount: int
    remaining_amount: int
    status: FeeStatus
    payment_count: int = 0


class FeeTotals(BaseModel):
    total_fee: int
    total_paid: int
    total_due: int
    percentage_paid: Decimal
    payment_status: FeeStatus


class StudentFeeDetailsResponse(BaseModel):
    student: StudentInfo
    academic_year: str
    components: Dict[str, ComponentStatus]
    summary: FeeTotals
    total_terms: int
    term_details: List[TermDetail]
    recent_payments: List[PaymentResponse]
    next_term_number: Optional[int] = None
    uses_default_fees: bool
    snapshot_updated_at: datetime


# --- Summary ---
class PaymentStats(BaseModel):
    total_payments: int
    total_amount_paid: int
    first_payment_date: Optional[datetime] = None
    last_payment_date: Optional[datetime] = None
    payment_methods: Dict[str, int]


class RecentPayment(BaseModel):
    payment_id: str
    receipt_no: str
    payment_date: datetime
    payment_mode: str
    amount: int
    description: str


class OutstandingDetails(BaseModel):
    amount: int
    school_fee: int
    transport_fee: int
    hostel_fee: int


class PaymentSummaryResponse(BaseModel):
    student: StudentInfo
    academic_year: str
    fee_summary: FeeTotals
    component_breakdown: Dict[str, ComponentStatus]
    term_breakdown: List[TermDetail]
    payment_stats: PaymentStats
    recent_payments: List[RecentPayment]
    outstanding: Optional[OutstandingDetails] = None


# --- Details / receipt ---
class PaymentDetailsResponse(BaseModel):
    payment: PaymentResponse
    student: StudentInfo


class SchoolInfo(BaseModel):
    name: str
    address: str
    phone: str
    email: str
    principal: str


class ReceiptFeeSummary(BaseModel):
    academic_year: str
    total_fee: int
    total_paid: int
    total_due: int
    payment_status: FeeStatus
    components: Dict[str, ComponentStatus]


class ReceiptResponse(BaseModel):
    receipt_id: str
    student: StudentInfo
    payment: PaymentResponse
    fee_summary: ReceiptFeeSummary
    school_info: SchoolInfo
    generated_at: datetime
    is_partial_payment: bool
