from pathlab.services import billing
from pathlab.services.edit_lock import LockStatus, ensure_editable


class EditSession:
    """Working copy of an invoice's lines during one edit.

    Lines added here can be dropped again freely. Dropping a saved line goes
    through the full lock check, and the hard lock refuses every change.
    """

    def __init__(self, committed: list[billing.LineItem], lock: LockStatus, receipt_number: int | None = None):
        self.committed = list(committed)
        self.lines = list(committed)
        self.lock = lock
        self.receipt_number = receipt_number

    def _find(self, line_id=None, name=None) -> billing.LineItem:
        for line in self.lines:
            if line_id is not None and line.line_id == line_id:
                return line
            if name is not None and billing.normalize_test_name(line.name) == billing.normalize_test_name(name):
                return line
        raise KeyError(line_id if line_id is not None else name)

    def add(self, item: billing.LineItem) -> billing.LineItem:
        ensure_editable(self.lock, self.receipt_number)
        billing.ensure_not_duplicate([line.name for line in self.lines], item.name)
        item.added_in_session = True
        item.line_id = None
        self.lines.append(item)
        return item

    def remove(self, line_id=None, name=None) -> billing.LineItem:
        line = self._find(line_id, name)
        if not line.added_in_session:
            ensure_editable(self.lock, self.receipt_number, removing_committed=True)
        self.lines.remove(line)
        return line

    def modify(self, line_id, quantity: int, discount) -> billing.LineItem:
        ensure_editable(self.lock, self.receipt_number)
        line = self._find(line_id)
        updated = billing.LineItem(
            name=line.name,
            category=line.category,
            price=line.price,
            quantity=quantity,
            discount=discount,
            test_id=line.test_id,
            line_id=line.line_id,
            added_in_session=line.added_in_session,
        )
        self.lines[self.lines.index(line)] = updated
        return updated

    def reorder(self, test_ids: list) -> None:
        rank = {test_id: index for index, test_id in enumerate(test_ids)}
        self.lines.sort(key=lambda line: rank.get(line.test_id, len(rank)))

    @property
    def added(self) -> list[billing.LineItem]:
        return [line for line in self.lines if line.added_in_session]

    @property
    def removed(self) -> list[billing.LineItem]:
        current_ids = {line.line_id for line in self.lines if line.line_id is not None}
        return [line for line in self.committed if line.line_id not in current_ids]

    @property
    def changed(self) -> bool:
        return self.lines != self.committed
