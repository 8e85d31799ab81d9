"""Class fee structure: annual school fee per class per academic year."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ClassFeeStructure(Base):
    """
    Fee structure per class per academic year.
    Component amounts are informational; total_annual_fee is what students are billed.
    """

    __tablename__ = "class_fee_structures"
    __table_args__ = (
        UniqueConstraint("class_level", "academic_year", name="uq_class_fee_structure_class_year"),
        CheckConstraint("total_terms BETWEEN 1 AND 4", name="chk_class_fee_structure_terms"),
        CheckConstraint("total_annual_fee >= 0", name="chk_class_fee_structure_amount"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    class_level = Column(String(20), nullable=False, index=True)  # ClassLevel value, e.g. LKG, CLASS_5
    academic_year = Column(String(9), nullable=False, index=True)  # e.g. "2024-2025"
    total_annual_fee = Column(Numeric(12, 2), nullable=False)
    total_terms = Column(Integer, nullable=False, default=3)
    tuition_fee = Column(Numeric(12, 2), nullable=False, default=0)
    exam_fee = Column(Numeric(12, 2), nullable=False, default=0)
    activity_fee = Column(Numeric(12, 2), nullable=False, default=0)
    library_fee = Column(Numeric(12, 2), nullable=False, default=0)
    sports_fee = Column(Numeric(12, 2), nullable=False, default=0)
    lab_fee = Column(Numeric(12, 2), nullable=False, default=0)
    computer_fee = Column(Numeric(12, 2), nullable=False, default=0)
    other_charges = Column(Numeric(12, 2), nullable=False, default=0)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_by = Column(String(100), nullable=False, default="system")
    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
