"""Edit lock for invoices.

A generated report hard-locks a receipt for good. A pathology registration
soft-locks it until someone sets ``edit_allowed`` on the registration. The
report check always wins over the registration.
"""
import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from pathlab.enums import LockState
from pathlab.errors import HardLockedError, SoftLockedError
from pathlab.models.registration import PathologyRegistration, PathologyReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockStatus:
    state: LockState
    report_exists: bool
    registration_exists: bool
    edit_allowed: bool

    def as_dict(self) -> dict:
        return {
            "state": self.state.value,
            "reportExists": self.report_exists,
            "registrationExists": self.registration_exists,
            "editAllowed": self.edit_allowed,
        }


def resolve_state(report_exists: bool, registration_exists: bool, edit_allowed: bool) -> LockState:
    if report_exists:
        return LockState.HARD_LOCKED
    if registration_exists and not edit_allowed:
        return LockState.SOFT_LOCKED
    return LockState.UNLOCKED


def evaluate_lock(db: Session, invoice_id: str) -> LockStatus:
    report_exists = (
        db.scalar(select(PathologyReport.id).where(PathologyReport.invoice_id == invoice_id)) is not None
    )
    registration = db.scalar(
        select(PathologyRegistration).where(PathologyRegistration.invoice_id == invoice_id)
    )
    edit_allowed = bool(registration and registration.edit_allowed)
    state = resolve_state(report_exists, registration is not None, edit_allowed)
    return LockStatus(state, report_exists, registration is not None, edit_allowed)


def ensure_editable(lock: LockStatus, receipt_number: int | None = None, *, removing_committed: bool = False) -> None:
    """Raise unless the change is allowed under ``lock``.

    Hard lock refuses everything. Soft lock only refuses dropping lines that
    were already saved; undoing a line added in the same edit never reaches here.
    """
    if lock.state is LockState.HARD_LOCKED:
        logger.warning("Rejected edit on hard-locked receipt %s", receipt_number)
        raise HardLockedError(receipt_number)
    if lock.state is LockState.SOFT_LOCKED and removing_committed:
        logger.warning("Rejected removal on soft-locked receipt %s", receipt_number)
        raise SoftLockedError(receipt_number)
