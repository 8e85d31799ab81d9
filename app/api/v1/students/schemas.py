from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.api.v1.fees.schemas import ACADEMIC_YEAR_PATTERN
from app.core.enums import StudentStatus, StudentType


# ----- Student -----

class StudentCreate(BaseModel):
    """Admit a student. The first fee snapshot is computed from the fee structures in force."""

    admission_no: str = Field(..., min_length=1, max_length=30)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    class_name: str = Field(..., min_length=1, description="Any accepted class label: Nursery, LKG, 5, V, Class 5")
    section: Optional[str] = Field(None, max_length=5)
    roll_no: Optional[str] = Field(None, max_length=20)
    academic_year: str = Field(..., pattern=ACADEMIC_YEAR_PATTERN)
    village: Optional[str] = Field(None, max_length=150)
    uses_transport: bool = False
    student_type: StudentType = StudentType.DAY_SCHOLAR
    school_fee_discount: Decimal = Field(Decimal("0"), ge=0, le=100)
    transport_fee_discount: Decimal = Field(Decimal("0"), ge=0, le=100)
    hostel_fee_discount: Decimal = Field(Decimal("0"), ge=0, le=100)
    parent_name: Optional[str] = Field(None, max_length=150)
    parent_phone: Optional[str] = Field(None, max_length=20)
    created_by: Optional[str] = None


class StudentDiscountUpdate(BaseModel):
    """Discount settings for future fee calculations. Existing snapshots keep their discounts."""

    school_fee_discount: Optional[Decimal] = Field(None, ge=0, le=100)
    transport_fee_discount: Optional[Decimal] = Field(None, ge=0, le=100)
    hostel_fee_discount: Optional[Decimal] = Field(None, ge=0, le=100)
    updated_by: Optional[str] = None


class AcademicYearFeeCreate(BaseModel):
    """Compute the fee snapshot for another academic year, optionally moving the student to a new class."""

    academic_year: str = Field(..., pattern=ACADEMIC_YEAR_PATTERN)
    class_name: Optional[str] = Field(None, description="New class for the year; defaults to the current class")
    promote: bool = Field(False, description="Move the student to the next class level")
    created_by: Optional[str] = None


class FeeSnapshotResponse(BaseModel):
    id: UUID
    student_id: UUID
    academic_year: str
    class_level: str
    class_name: str
    school_fee: int
    transport_fee: int
    hostel_fee: int
    school_fee_paid: int
    transport_fee_paid: int
    hostel_fee_paid: int
    total_fee: int
    total_paid: int
    total_due: int
    terms: int
    school_fee_terms: int
    transport_fee_terms: int
    hostel_fee_terms: int
    school_fee_base: Decimal
    transport_fee_base: Decimal
    hostel_fee_base: Decimal
    school_fee_discount_applied: Decimal
    transport_fee_discount_applied: Decimal
    hostel_fee_discount_applied: Decimal
    school_fee_is_default: bool
    transport_fee_is_default: bool
    hostel_fee_is_default: bool
    calculation_failed: bool
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StudentResponse(BaseModel):
    id: UUID
    admission_no: str
    first_name: str
    last_name: Optional[str] = None
    full_name: str
    class_level: str
    class_name: str
    section: Optional[str] = None
    roll_no: Optional[str] = None
    academic_year: str
    village: Optional[str] = None
    uses_transport: bool
    student_type: StudentType
    school_fee_discount: Decimal
    transport_fee_discount: Decimal
    hostel_fee_discount: Decimal
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = None
    status: StudentStatus
    created_at: datetime
    updated_at: datetime
    fee_snapshots: List[FeeSnapshotResponse] = Field(default_factory=list)
    fee_calculation_warnings: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True
