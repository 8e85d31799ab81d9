from app.core.models.class_fee_structure import ClassFeeStructure
from app.core.models.bus_fee_structure import BusFeeStructure
from app.core.models.hostel_fee_structure import HostelFeeStructure
from app.core.models.student import Student
from app.core.models.student_fee_snapshot import StudentFeeSnapshot
from app.core.models.payment_history import PaymentHistoryEntry
from app.core.models.payment_allocation import PaymentAllocation
from app.core.models.fee_audit_log import FeeAuditLog

__all__ = [
    "ClassFeeStructure",
    "BusFeeStructure",
    "HostelFeeStructure",
    "Student",
    "StudentFeeSnapshot",
    "PaymentHistoryEntry",
    "PaymentAllocation",
    "FeeAuditLog",
]
