from enum import Enum


class AgeUnit(str, Enum):
    YEARS = "Years"
    MONTHS = "Months"
    DAYS = "Days"

    @property
    def letter(self) -> str:
        return self.value[0]


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"
    OTHER = "Other"


class InvoiceStatus(str, Enum):
    BOOKED = "Booked"
    SAMPLE_COLLECTED = "Sample Collected"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class LineStatus(str, Enum):
    PENDING = "Pending"
    SAMPLE_COLLECTED = "Sample Collected"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    REPORTED = "Reported"


class PaymentStatus(str, Enum):
    DUE = "Due"
    PARTIAL = "Partial Paid"
    PAID = "Paid"


class PaymentMethod(str, Enum):
    CASH = "Cash"
    CARD = "Card"
    UPI = "UPI"
    BANK_TRANSFER = "Bank Transfer"
    CHEQUE = "Cheque"


class VisitMode(str, Enum):
    OPD = "OPD"
    IPD = "IPD"
    EMERGENCY = "Emergency"
    HOME_COLLECTION = "Home Collection"


class SystemRole(str, Enum):
    SUPER_ADMIN = "SuperAdmin"
    LAB_ADMIN = "LabAdmin"
    ADMIN = "Admin"


class LockState(str, Enum):
    UNLOCKED = "Unlocked"
    SOFT_LOCKED = "SoftLocked"
    HARD_LOCKED = "HardLocked"
