"""Named, monotonically increasing sequences.

Allocation is one ``UPDATE ... RETURNING`` against the counter row, so the
database serializes concurrent callers. It runs inside the caller's
transaction: if the booking rolls back, so does the number.
"""
import logging
import re
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from pathlab.config import settings
from pathlab.errors import CounterAllocationError, NotFoundError, ValidationFailed
from pathlab.models.counter import Counter
from pathlab.models.invoice import Invoice
from pathlab.models.patient import Patient

logger = logging.getLogger(__name__)

GLOBAL_CRN = "db_crn"
_YEARLY = re.compile(r"^(patientId|registrationNumber|receipt)_(\d{4})$")
_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_]{0,99}$")


def patient_sequence(year: int) -> str:
    return f"patientId_{year}"


def registration_sequence(year: int) -> str:
    return f"registrationNumber_{year}"


def receipt_sequence(year: int) -> str:
    return f"receipt_{year}"


def format_id(prefix: str, value: int, padding: int = 0) -> str:
    return f"{prefix}{str(value).zfill(padding)}"


def format_patient_id(value: int) -> str:
    return format_id(settings.patient_id_prefix, value, settings.patient_id_padding)


def validate_name(name: str) -> str:
    if not _NAME.match(name or ""):
        raise ValidationFailed(f"Invalid sequence name '{name}'")
    return name


def _ensure_row(db: Session, name: str) -> None:
    now = datetime.utcnow()
    dialect = db.get_bind().dialect.name
    if dialect in ("sqlite", "postgresql"):
        insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
        stmt = (
            insert(Counter)
            .values(name=name, value=0, created_at=now, updated_at=now)
            .on_conflict_do_nothing(index_elements=["name"])
        )
        db.execute(stmt)
        return

    if db.get(Counter, name) is not None:
        return
    try:
        with db.begin_nested():
            db.add(Counter(name=name, value=0, created_at=now, updated_at=now))
    except IntegrityError:
        # Another transaction created it first.
        logger.debug("Counter %s created concurrently", name)


def allocate_next(db: Session, name: str) -> int:
    """Increment ``name`` and return the new value, creating it at 0 on first use."""
    try:
        _ensure_row(db, name)
        stmt = (
            update(Counter)
            .where(Counter.name == name)
            .values(value=Counter.value + 1, updated_at=datetime.utcnow())
            .returning(Counter.value)
            .execution_options(synchronize_session=False)
        )
        value = db.execute(stmt).scalar_one()
    except SQLAlchemyError as exc:
        logger.exception("Counter allocation failed for %s", name)
        raise CounterAllocationError(name) from exc

    logger.info("Allocated %s=%s", name, value)
    return value


def current_value(db: Session, name: str) -> int:
    return db.scalar(select(Counter.value).where(Counter.name == name)) or 0


def list_counters(db: Session) -> list[Counter]:
    return db.scalars(select(Counter).order_by(Counter.name).execution_options(populate_existing=True)).all()


def has_owning_table(name: str) -> bool:
    return name == GLOBAL_CRN or _YEARLY.match(name) is not None


def observed_maximum(db: Session, name: str) -> int:
    """Largest number already issued for a known sequence."""
    if name == GLOBAL_CRN:
        return db.scalar(select(func.max(Invoice.db_crn))) or 0

    match = _YEARLY.match(name)
    if not match:
        raise NotFoundError(f"No owning table is known for sequence '{name}'")
    kind, year = match.group(1), int(match.group(2))

    if kind == "receipt":
        return db.scalar(select(func.max(Invoice.receipt_number)).where(Invoice.receipt_year == year)) or 0
    if kind == "registrationNumber":
        return (
            db.scalar(select(func.max(Patient.registration_number)).where(Patient.registration_year == year))
            or 0
        )

    highest = 0
    prefix = settings.patient_id_prefix
    for patient_id in db.scalars(select(Patient.patient_id).where(Patient.registration_year == year)):
        digits = patient_id[len(prefix):] if patient_id.startswith(prefix) else patient_id
        if digits.isdigit():
            highest = max(highest, int(digits))
    return highest


def resync(db: Session, name: str, minimum: int | None = None) -> tuple[int, int]:
    """Raise ``name`` to the highest issued value, or to ``minimum`` if that is higher.

    Never lowers the counter. A sequence with no owning table can only be
    raised through ``minimum``. Returns ``(before, after)``.
    """
    if minimum is not None and not has_owning_table(name):
        target = minimum
    else:
        target = max(minimum or 0, observed_maximum(db, name))
    try:
        _ensure_row(db, name)
        before = db.execute(select(Counter.value).where(Counter.name == name)).scalar_one()
        db.execute(
            update(Counter)
            .where(Counter.name == name, Counter.value < target)
            .values(value=target, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        after = db.execute(select(Counter.value).where(Counter.name == name)).scalar_one()
    except SQLAlchemyError as exc:
        logger.exception("Counter resync failed for %s", name)
        raise CounterAllocationError(name) from exc

    if after != before:
        logger.warning("Counter %s raised from %s to %s", name, before, after)
    return before, after
