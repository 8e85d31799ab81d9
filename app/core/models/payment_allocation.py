import uuid

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class PaymentAllocation(Base):
    """Portion of a payment credited to one term of one fee component."""

    __tablename__ = "payment_allocations"
    __table_args__ = (
        CheckConstraint("amount > 0", name="chk_payment_allocation_amount"),
        CheckConstraint("component IN ('school','transport','hostel')", name="chk_payment_allocation_component"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    payment_entry_id = Column(
        UUID(as_uuid=True),
        ForeignKey("payment_history.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    snapshot_id = Column(
        UUID(as_uuid=True),
        ForeignKey("student_fee_snapshots.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    component = Column(String(20), nullable=False)
    term_number = Column(Integer, nullable=False)
    amount = Column(Integer, nullable=False)

    payment_entry = relationship("PaymentHistoryEntry", backref="allocations")
