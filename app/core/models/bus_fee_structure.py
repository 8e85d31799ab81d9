"""Bus fee structure: annual transport fee per village per academic year."""

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Numeric, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from app.core.models.class_fee_structure import _utcnow
from app.db.session import Base


class BusFeeStructure(Base):
    """Transport fee for a village. Looked up case-insensitively by village name."""

    __tablename__ = "bus_fee_structures"
    __table_args__ = (
        UniqueConstraint("village_name", "academic_year", name="uq_bus_fee_structure_village_year"),
        CheckConstraint(
            "vehicle_type IN ('bus','van','auto','other')",
            name="chk_bus_fee_structure_vehicle_type",
        ),
        CheckConstraint("fee_amount >= 0 AND distance >= 0", name="chk_bus_fee_structure_amounts"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    village_name = Column(String(150), nullable=False, index=True)
    academic_year = Column(String(9), nullable=False, index=True)
    distance = Column(Numeric(8, 2), nullable=False)  # km from school
    fee_amount = Column(Numeric(12, 2), nullable=False)
    vehicle_type = Column(String(10), nullable=False, default="bus")
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_by = Column(String(100), nullable=False, default="system")
    updated_by = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
