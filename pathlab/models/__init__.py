from pathlab.models.catalog import TestDefinition
from pathlab.models.counter import Counter
from pathlab.models.deleted_record import DeletedRecord
from pathlab.models.invoice import Invoice, InvoiceAdjustment, InvoiceEdit, InvoiceLine, PaymentEntry
from pathlab.models.lab import CustomRole, Lab
from pathlab.models.patient import Patient
from pathlab.models.registration import PathologyRegistration, PathologyReport
from pathlab.models.user import User, UserSession

__all__ = [
    "Counter",
    "CustomRole",
    "DeletedRecord",
    "Invoice",
    "InvoiceAdjustment",
    "InvoiceEdit",
    "InvoiceLine",
    "Lab",
    "PathologyRegistration",
    "PathologyReport",
    "Patient",
    "PaymentEntry",
    "TestDefinition",
    "User",
    "UserSession",
]
