"""Fees schemas: class / bus / hostel fee structures and fee calculation preview."""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import StudentType, VehicleType

ACADEMIC_YEAR_PATTERN = r"^\d{4}-\d{4}$"


class PageInfo(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class ActiveStatusUpdate(BaseModel):
    is_active: bool
    updated_by: Optional[str] = None


# --- Class Fee Structure ---
class ClassFeeStructureCreate(BaseModel):
    """Create or update (by class + academic year) a class fee structure."""

    class_name: str = Field(..., min_length=1, description="Any accepted class label: LKG, 5, V, Class 5, fifth")
    academic_year: str = Field(..., pattern=ACADEMIC_YEAR_PATTERN, examples=["2024-2025"])
    total_annual_fee: Decimal = Field(..., ge=0)
    total_terms: int = Field(3, ge=1, le=4)
    tuition_fee: Decimal = Field(Decimal("0"), ge=0)
    exam_fee: Decimal = Field(Decimal("0"), ge=0)
    activity_fee: Decimal = Field(Decimal("0"), ge=0)
    library_fee: Decimal = Field(Decimal("0"), ge=0)
    sports_fee: Decimal = Field(Decimal("0"), ge=0)
    lab_fee: Decimal = Field(Decimal("0"), ge=0)
    computer_fee: Decimal = Field(Decimal("0"), ge=0)
    other_charges: Decimal = Field(Decimal("0"), ge=0)
    description: Optional[str] = None
    created_by: Optional[str] = None


class ClassFeeStructureUpdate(BaseModel):
    total_annual_fee: Optional[Decimal] = Field(None, ge=0)
    total_terms: Optional[int] = Field(None, ge=1, le=4)
    tuition_fee: Optional[Decimal] = Field(None, ge=0)
    exam_fee: Optional[Decimal] = Field(None, ge=0)
    activity_fee: Optional[Decimal] = Field(None, ge=0)
    library_fee: Optional[Decimal] = Field(None, ge=0)
    sports_fee: Optional[Decimal] = Field(None, ge=0)
    lab_fee: Optional[Decimal] = Field(None, ge=0)
    computer_fee: Optional[Decimal] = Field(None, ge=0)
    other_charges: Optional[Decimal] = Field(None, ge=0)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    updated_by: Optional[str] = None


class ClassFeeStructureResponse(BaseModel):
    id: UUID
    class_level: str
    class_name: str
    academic_year: str
    total_annual_fee: Decimal
    total_terms: int
    term_amount: int
    term_split: Dict[int, int]
    tuition_fee: Decimal
    exam_fee: Decimal
    activity_fee: Decimal
    library_fee: Decimal
    sports_fee: Decimal
    lab_fee: Decimal
    computer_fee: Decimal
    other_charges: Decimal
    description: Optional[str] = None
    is_active: bool
    created_by: str
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ClassFeeStructureList(BaseModel):
    items: List[ClassFeeStructureResponse]
    pagination: PageInfo


class ClassFeeSummaryTotals(BaseModel):
    total_classes: int
    total_annual_revenue: Decimal
    average_annual_fee: Decimal


class ClassFeeSummary(BaseModel):
    summary: List[ClassFeeStructureResponse]
    totals: ClassFeeSummaryTotals


# --- Bus Fee Structure ---
class BusFeeStructureCreate(BaseModel):
    village_name: str = Field(..., min_length=1, max_length=150)
    academic_year: str = Field(..., pattern=ACADEMIC_YEAR_PATTERN)
    distance: Decimal = Field(..., ge=0, description="Distance from school in km")
    fee_amount: Decimal = Field(..., ge=0)
    vehicle_type: VehicleType = VehicleType.BUS
    description: Optional[str] = None
    created_by: Optional[str] = None


class BusFeeStructureUpdate(BaseModel):
    distance: Optional[Decimal] = Field(None, ge=0)
    fee_amount: Optional[Decimal] = Field(None, ge=0)
    vehicle_type: Optional[VehicleType] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    updated_by: Optional[str] = None


class BusFeeStructureResponse(BaseModel):
    id: UUID
    village_name: str
    academic_year: str
    distance: Decimal
    fee_amount: Decimal
    vehicle_type: str
    description: Optional[str] = None
    is_active: bool
    created_by: str
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BusFeeStructureList(BaseModel):
    items: List[BusFeeStructureResponse]
    pagination: PageInfo


class BusFeeSearchResult(BaseModel):
    items: List[BusFeeStructureResponse]
    count: int


class VillageFeeEntry(BaseModel):
    academic_year: str
    distance: Decimal
    fee_amount: Decimal
    vehicle_type: str
    description: Optional[str] = None


class VillageFeeSummary(BaseModel):
    village_name: str
    entries: List[VillageFeeEntry]
    total_entries: int
    min_fee: Decimal
    max_fee: Decimal
    average_fee: Decimal
    average_distance: Decimal


class BusFeeSummaryTotals(BaseModel):
    total_villages: int
    total_entries: int


class BusFeeSummary(BaseModel):
    summary: List[VillageFeeSummary]
    totals: BusFeeSummaryTotals


# --- Hostel Fee Structure ---
class HostelFeeStructureCreate(BaseModel):
    class_name: str = Field(..., min_length=1)
    academic_year: str = Field(..., pattern=ACADEMIC_YEAR_PATTERN)
    total_annual_fee: Decimal = Field(..., ge=0)
    total_terms: int = Field(3, ge=1, le=4)
    description: Optional[str] = None
    created_by: Optional[str] = None


class HostelFeeStructureUpdate(BaseModel):
    total_annual_fee: Optional[Decimal] = Field(None, ge=0)
    total_terms: Optional[int] = Field(None, ge=1, le=4)
    description: Optional[str] = None
    is_active: Optional[bool] = None
    updated_by: Optional[str] = None


class HostelFeeStructureResponse(BaseModel):
    id: UUID
    class_level: str
    class_name: str
    academic_year: str
    total_annual_fee: Decimal
    total_terms: int
    term_amount: int
    term_split: Dict[int, int]
    description: Optional[str] = None
    is_active: bool
    created_by: str
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class HostelFeeStructureList(BaseModel):
    items: List[HostelFeeStructureResponse]
    pagination: PageInfo


class HostelFeeSummaryTotals(BaseModel):
    total_classes: int
    total_annual_revenue: Decimal
    average_annual_fee: Decimal


class HostelFeeSummary(BaseModel):
    summary: List[HostelFeeStructureResponse]
    totals: HostelFeeSummaryTotals


# --- Fee calculation preview ---
class FeeCalculationRequest(BaseModel):
    class_name: str = Field(..., min_length=1)
    academic_year: str = Field(..., pattern=ACADEMIC_YEAR_PATTERN)
    village: Optional[str] = None
    uses_transport: bool = False
    student_type: StudentType = StudentType.DAY_SCHOLAR
    school_fee_discount: Decimal = Field(Decimal("0"), ge=0, le=100)
    transport_fee_discount: Decimal = Field(Decimal("0"), ge=0, le=100)
    hostel_fee_discount: Decimal = Field(Decimal("0"), ge=0, le=100)
