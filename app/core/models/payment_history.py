"""Payment history: append-only ledger of payments against a student fee snapshot."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.enums import PaymentStatus
from app.core.models.class_fee_structure import _utcnow
from app.db.session import Base


class PaymentHistoryEntry(Base):
    """One row per payment. Never updated or deleted once written."""

    __tablename__ = "payment_history"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    payment_id = Column(String(40), nullable=False, unique=True)
    receipt_no = Column(String(40), nullable=False, unique=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="RESTRICT"), nullable=False, index=True)
    snapshot_id = Column(
        UUID(as_uuid=True),
        ForeignKey("student_fee_snapshots.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    academic_year = Column(String(9), nullable=False, index=True)
    payment_date = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    school_fee_paid = Column(Integer, nullable=False, default=0)
    transport_fee_paid = Column(Integer, nullable=False, default=0)
    hostel_fee_paid = Column(Integer, nullable=False, default=0)
    total_amount = Column(Integer, nullable=False)
    payment_mode = Column(String(30), nullable=False)  # Cash, Cheque, UPI, Card, Bank Transfer, Online
    term_number = Column(Integer, nullable=True)  # NULL when auto-distributed
    description = Column(String(255), nullable=False)
    cheque_no = Column(String(50), nullable=True)
    bank_name = Column(String(100), nullable=True)
    transaction_id = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    received_by = Column(String(100), nullable=False, default="system")
    status = Column(String(20), nullable=False, default=PaymentStatus.COMPLETED.value)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    student = relationship("Student")
    snapshot = relationship("StudentFeeSnapshot", backref="payments")
