"""Hostel fee structure: annual boarding fee per class per academic year."""

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from app.core.models.class_fee_structure import _utcnow
from app.db.session import Base


class HostelFeeStructure(Base):
    __tablename__ = "hostel_fee_structures"
    __table_args__ = (
        UniqueConstraint("class_level", "academic_year", name="uq_hostel_fee_structure_class_year"),
        CheckConstraint("total_terms BETWEEN 1 AND 4", name="chk_hostel_fee_structure_terms"),
        CheckConstraint("total_annual_fee >= 0", name="chk_hostel_fee_structure_amount"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    class_level = Column(String(20), nullable=False, index=True)
    academic_year = Column(String(9), nullable=False, index=True)
    total_annual_fee = Column(Numeric(12, 2), nullable=False)
    total_terms = Column(Integer, nullable=False, default=3)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_by = Column(String(100), nullable=False, default="system")
    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
