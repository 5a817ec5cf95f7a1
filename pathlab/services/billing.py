"""Line and bill arithmetic. Pure functions over Decimal, no I/O."""
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from pathlab.config import settings
from pathlab.enums import PaymentStatus
from pathlab.errors import DuplicateTestError, PaymentExceedsTotalError, ValidationFailed

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
NET_SUM = "net_sum"
LEGACY = "legacy"


def to_money(value, field_name: str = "amount") -> Decimal:
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValidationFailed(f"Invalid {field_name}: {value!r}") from exc
    if not amount.is_finite():
        raise ValidationFailed(f"Invalid {field_name}: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def normalize_test_name(name: str | None) -> str:
    text = (name or "").strip().lower().replace(".", "")
    return re.sub(r"\s+", " ", text)


def line_key(category: str | None, name: str | None) -> str:
    return f"{normalize_test_name(category)}:{normalize_test_name(name)}"


@dataclass
class LineItem:
    name: str
    category: str
    price: Decimal
    quantity: int = 1
    discount: Decimal = ZERO
    test_id: int | None = None
    line_id: int | None = None
    # Set for lines added during the current edit and not yet saved.
    added_in_session: bool = field(default=False, compare=False)

    def __post_init__(self):
        self.price = to_money(self.price, "price")
        self.discount = to_money(self.discount or 0, "discount")
        if self.price < 0:
            raise ValidationFailed(f"Price for '{self.name}' cannot be negative")
        if self.quantity < 1:
            raise ValidationFailed(f"Quantity for '{self.name}' must be at least 1")
        if self.discount < 0:
            raise ValidationFailed(f"Discount for '{self.name}' cannot be negative")
        # Discount can never exceed the line's gross.
        self.discount = min(self.discount, self.gross)

    @property
    def gross(self) -> Decimal:
        return (self.price * self.quantity).quantize(CENT)

    @property
    def net_amount(self) -> Decimal:
        return (self.gross - self.discount).quantize(CENT)

    @property
    def key(self) -> str:
        return line_key(self.category, self.name)

    def audit_view(self) -> dict:
        return {"name": self.name, "category": self.category, "netAmount": self.net_amount}


def ensure_not_duplicate(existing_names: Iterable[str], candidate: str) -> None:
    """Refuse ``candidate`` if any existing line has the same normalized name."""
    wanted = normalize_test_name(candidate)
    if any(normalize_test_name(name) == wanted for name in existing_names):
        raise DuplicateTestError(candidate)


def ensure_unique_lines(lines: Iterable[LineItem]) -> None:
    seen: list[str] = []
    for line in lines:
        ensure_not_duplicate(seen, line.name)
        seen.append(line.name)


@dataclass(frozen=True)
class BillSummary:
    gross_amount: Decimal
    subtotal: Decimal
    total_discount: Decimal
    net_payable: Decimal

    def as_dict(self) -> dict:
        return {
            "grossAmount": self.gross_amount,
            "subtotal": self.subtotal,
            "totalDiscount": self.total_discount,
            "netPayable": self.net_payable,
        }


def summarize(lines: Iterable[LineItem], mode: str | None = None) -> BillSummary:
    mode = mode or settings.net_payable_mode
    items = list(lines)
    gross = sum((line.gross for line in items), ZERO)
    subtotal = sum((line.net_amount for line in items), ZERO)
    total_discount = sum((line.discount for line in items), ZERO)
    if mode == LEGACY:
        net_payable = subtotal - total_discount
    elif mode == NET_SUM:
        net_payable = subtotal
    else:
        raise ValidationFailed(f"Unknown net payable mode '{mode}'")
    return BillSummary(gross, subtotal, total_discount, net_payable)


def balance(net_payable, received) -> Decimal:
    remaining = (to_money(net_payable) - to_money(received)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(Decimal("0"), remaining)


def payment_status(paid, total) -> PaymentStatus:
    paid, total = to_money(paid), to_money(total)
    if paid <= 0:
        return PaymentStatus.DUE
    if paid < total:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PAID


def check_payment(already_paid, total, amount) -> Decimal:
    """Validate a new payment and return the resulting paid amount."""
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationFailed("Payment amount must be greater than zero")
    new_paid = to_money(already_paid) + amount
    total = to_money(total)
    if new_paid > total:
        raise PaymentExceedsTotalError(
            f"Payment of {amount} would bring the paid amount to {new_paid}, above the total of {total}",
            {"paidAmount": to_money(already_paid), "totalAmount": total, "attempted": amount},
        )
    return new_paid
