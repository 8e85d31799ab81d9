from enum import Enum


class StudentType(str, Enum):
    DAY_SCHOLAR = "Day Scholar"
    HOSTELLER = "Hosteller"


class StudentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ALUMNI = "alumni"
    TRANSFERRED = "transferred"


class VehicleType(str, Enum):
    BUS = "bus"
    VAN = "van"
    AUTO = "auto"
    OTHER = "other"


class FeeComponent(str, Enum):
    """Billable components of a student's annual fee."""

    SCHOOL = "school"
    TRANSPORT = "transport"
    HOSTEL = "hostel"


class PaymentMode(str, Enum):
    CASH = "Cash"
    CHEQUE = "Cheque"
    UPI = "UPI"
    CARD = "Card"
    BANK_TRANSFER = "Bank Transfer"
    ONLINE = "Online"


class PaymentStatus(str, Enum):
    COMPLETED = "Completed"


class FeeStatus(str, Enum):
    UNPAID = "Unpaid"
    PARTIAL = "Partial"
    PAID = "Paid"
