"""Before/after diffs for invoice edits."""
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from pathlab.services.billing import ZERO, line_key, to_money


def _key(entry: dict) -> str:
    return line_key(entry.get("category"), entry.get("name"))


def _total(entries: Iterable[dict]) -> Decimal:
    return sum((to_money(entry.get("netAmount") or 0) for entry in entries), ZERO)


@dataclass(frozen=True)
class TestDiff:
    added: list[dict]
    removed: list[dict]
    delta: Decimal


def diff_tests(before: Sequence[dict], after: Sequence[dict]) -> TestDiff:
    """Entries are ``{name, category, netAmount}``, keyed by ``category:name``."""
    before_keys = {_key(entry) for entry in before}
    after_keys = {_key(entry) for entry in after}
    added = [entry for entry in after if _key(entry) not in before_keys]
    removed = [entry for entry in before if _key(entry) not in after_keys]
    return TestDiff(added=added, removed=removed, delta=_total(after) - _total(before))


def _serializable(entries: Sequence[dict]) -> list[dict]:
    return [
        {"name": entry["name"], "category": entry["category"], "netAmount": str(to_money(entry["netAmount"]))}
        for entry in entries
    ]


def build_changes(before: Sequence[dict], after: Sequence[dict], total_before, total_after, **extra) -> dict:
    changes = {
        "testsBefore": _serializable(before),
        "testsAfter": _serializable(after),
        "totalAmount": {"before": str(to_money(total_before)), "after": str(to_money(total_after))},
    }
    changes.update({key: value for key, value in extra.items() if value is not None})
    return changes


def describe_entry(edited_at: datetime, edited_by: str | None, changes: dict) -> dict:
    diff = diff_tests(changes.get("testsBefore", []), changes.get("testsAfter", []))
    return {
        "at": edited_at,
        "by": edited_by,
        "changes": changes,
        "addedTests": diff.added,
        "removedTests": diff.removed,
        "delta": diff.delta,
    }


def last_edit(entries: Sequence) -> tuple[datetime | None, str | None]:
    """Read the "last edited" fields off the final history entry."""
    if not entries:
        return None, None
    final = entries[-1]
    return final.edited_at, final.edited_by
