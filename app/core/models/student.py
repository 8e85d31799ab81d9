import uuid

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Numeric, String
from sqlalchemy.dialects.postgresql import UUID

from app.core.enums import StudentStatus
from app.core.models.class_fee_structure import _utcnow
from app.db.session import Base


class Student(Base):
    """
    Student record as seen by the fee subsystem.
    Discount percentages here are the current settings; snapshots freeze their own copy.
    """

    __tablename__ = "students"
    __table_args__ = (
        CheckConstraint(
            "student_type IN ('Day Scholar','Hosteller')",
            name="chk_student_type",
        ),
        CheckConstraint(
            "school_fee_discount BETWEEN 0 AND 100"
            " AND transport_fee_discount BETWEEN 0 AND 100"
            " AND hostel_fee_discount BETWEEN 0 AND 100",
            name="chk_student_discount_range",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    admission_no = Column(String(30), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    class_level = Column(String(20), nullable=False, index=True)  # ClassLevel value
    section = Column(String(5), nullable=True)
    roll_no = Column(String(20), nullable=True)
    academic_year = Column(String(9), nullable=False)  # current academic year
    village = Column(String(150), nullable=True)
    uses_transport = Column(Boolean, nullable=False, default=False)
    student_type = Column(String(20), nullable=False, default="Day Scholar")
    school_fee_discount = Column(Numeric(5, 2), nullable=False, default=0)
    transport_fee_discount = Column(Numeric(5, 2), nullable=False, default=0)
    hostel_fee_discount = Column(Numeric(5, 2), nullable=False, default=0)
    parent_name = Column(String(150), nullable=True)
    parent_phone = Column(String(20), nullable=True)
    status = Column(String(20), nullable=False, default=StudentStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()
