"""Student fee snapshot: frozen annual fee per student per academic year. Mutated only by payments."""

import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.models.class_fee_structure import _utcnow
from app.db.session import Base


class StudentFeeSnapshot(Base):
    """
    Fee snapshot computed once (admission or academic-year rollover).
    Fee amounts, term counts, discounts and default flags never change afterwards;
    only the *_paid counters and totals move, and every write bumps `version`.
    """

    __tablename__ = "student_fee_snapshots"
    __table_args__ = (
        UniqueConstraint("student_id", "academic_year", name="uq_student_fee_snapshot_year"),
        CheckConstraint(
            "school_fee_paid <= school_fee"
            " AND transport_fee_paid <= transport_fee"
            " AND hostel_fee_paid <= hostel_fee",
            name="chk_student_fee_snapshot_paid",
        ),
        CheckConstraint("total_due >= 0", name="chk_student_fee_snapshot_due"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="RESTRICT"), nullable=False, index=True)
    academic_year = Column(String(9), nullable=False)
    class_level = Column(String(20), nullable=False)

    # Post-discount annual totals, whole currency units
    school_fee = Column(Integer, nullable=False, default=0)
    transport_fee = Column(Integer, nullable=False, default=0)
    hostel_fee = Column(Integer, nullable=False, default=0)
    school_fee_paid = Column(Integer, nullable=False, default=0)
    transport_fee_paid = Column(Integer, nullable=False, default=0)
    hostel_fee_paid = Column(Integer, nullable=False, default=0)
    total_fee = Column(Integer, nullable=False, default=0)
    total_paid = Column(Integer, nullable=False, default=0)
    total_due = Column(Integer, nullable=False, default=0)

    terms = Column(Integer, nullable=False, default=3)
    school_fee_terms = Column(Integer, nullable=False, default=3)
    transport_fee_terms = Column(Integer, nullable=False, default=3)
    hostel_fee_terms = Column(Integer, nullable=False, default=3)

    school_fee_base = Column(Numeric(12, 2), nullable=False, default=0)
    transport_fee_base = Column(Numeric(12, 2), nullable=False, default=0)
    hostel_fee_base = Column(Numeric(12, 2), nullable=False, default=0)
    school_fee_discount_applied = Column(Numeric(5, 2), nullable=False, default=0)
    transport_fee_discount_applied = Column(Numeric(5, 2), nullable=False, default=0)
    hostel_fee_discount_applied = Column(Numeric(5, 2), nullable=False, default=0)

    # True when the amount came from configured fallbacks rather than a fee structure
    school_fee_is_default = Column(Boolean, nullable=False, default=False)
    transport_fee_is_default = Column(Boolean, nullable=False, default=False)
    hostel_fee_is_default = Column(Boolean, nullable=False, default=False)
    calculation_failed = Column(Boolean, nullable=False, default=False)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    student = relationship("Student", backref="fee_snapshots")

    @property
    def uses_defaults(self) -> bool:
        return bool(self.school_fee_is_default or self.transport_fee_is_default or self.hostel_fee_is_default)
