import pytest

from pathlab.enums import LockState
from pathlab.errors import DuplicateTestError, HardLockedError, SoftLockedError
from pathlab.services.billing import LineItem
from pathlab.services.edit_lock import LockStatus, ensure_editable, resolve_state
from pathlab.services.edit_session import EditSession

UNLOCKED = LockStatus(LockState.UNLOCKED, False, False, False)
SOFT = LockStatus(LockState.SOFT_LOCKED, False, True, False)
HARD = LockStatus(LockState.HARD_LOCKED, True, True, True)


@pytest.mark.parametrize(
    "report,registration,allowed,expected",
    [
        (False, False, False, LockState.UNLOCKED),
        (False, True, False, LockState.SOFT_LOCKED),
        (False, True, True, LockState.UNLOCKED),
        (True, False, False, LockState.HARD_LOCKED),
        (True, True, True, LockState.HARD_LOCKED),
    ],
)
def test_resolve_state(report, registration, allowed, expected):
    assert resolve_state(report, registration, allowed) is expected


def test_hard_lock_refuses_everything():
    with pytest.raises(HardLockedError):
        ensure_editable(HARD, 12)
    with pytest.raises(HardLockedError):
        ensure_editable(HARD, 12, removing_committed=True)


def test_soft_lock_only_refuses_removals():
    ensure_editable(SOFT, 12)
    with pytest.raises(SoftLockedError) as exc_info:
        ensure_editable(SOFT, 12, removing_committed=True)
    assert exc_info.value.status_code == 403
    assert exc_info.value.details == {"receiptNumber": 12}


def committed():
    return [
        LineItem(name="CBC", category="Haematology", price="300", test_id=1, line_id=10),
        LineItem(name="Blood Sugar", category="Biochemistry", price="150", test_id=2, line_id=11),
    ]


def test_session_added_line_can_always_be_removed():
    session = EditSession(committed(), SOFT, 12)
    session.add(LineItem(name="Lipid Profile", category="Biochemistry", price="200", test_id=3))
    removed = session.remove(name="lipid profile")
    assert removed.name == "Lipid Profile"
    assert [line.name for line in session.lines] == ["CBC", "Blood Sugar"]


def test_soft_lock_blocks_committed_removal():
    session = EditSession(committed(), SOFT, 12)
    with pytest.raises(SoftLockedError):
        session.remove(line_id=10)
    assert len(session.lines) == 2


def test_hard_lock_blocks_add_and_modify():
    session = EditSession(committed(), HARD, 12)
    with pytest.raises(HardLockedError):
        session.add(LineItem(name="Lipid Profile", category="Biochemistry", price="200", test_id=3))
    with pytest.raises(HardLockedError):
        session.modify(10, quantity=2, discount=0)
    with pytest.raises(HardLockedError):
        session.remove(line_id=10)


def test_unlocked_session_tracks_changes():
    session = EditSession(committed(), UNLOCKED, 12)
    session.remove(line_id=10)
    session.add(LineItem(name="Urine Routine", category="Clinical Pathology", price="100", test_id=4))
    updated = session.modify(11, quantity=2, discount="20")

    assert updated.net_amount == 280
    assert [line.name for line in session.removed] == ["CBC"]
    assert [line.name for line in session.added] == ["Urine Routine"]
    assert session.changed


def test_session_rejects_duplicates():
    session = EditSession(committed(), UNLOCKED)
    with pytest.raises(DuplicateTestError):
        session.add(LineItem(name="c.b.c", category="Haematology", price="300", test_id=9))


def test_reorder_follows_requested_order():
    session = EditSession(committed(), UNLOCKED)
    session.reorder([2, 1])
    assert [line.test_id for line in session.lines] == [2, 1]
