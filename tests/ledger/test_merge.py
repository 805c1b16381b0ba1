from src.attendance_sync.attendance_sync.attendance.model import AttendanceRow, BatchResponse, MeetingContext, Subject
from src.attendance_sync.attendance_sync.core.enums import AttendanceStatus, ErrorKind
from src.attendance_sync.attendance_sync.ledger.ledger import AttendanceLedger
from src.attendance_sync.attendance_sync.ledger.merge import reconcile

M1 = Subject.member("m-1")
G1 = Subject.guest("g-1")

PRESENT = AttendanceStatus.PRESENT
ABSENT = AttendanceStatus.ABSENT
UNSET = AttendanceStatus.UNSET


def _ledger():
    ledger = AttendanceLedger(MeetingContext("mtg-1"))
    ledger.register([M1, G1])
    ledger.load_baseline([AttendanceRow("a-2", G1, PRESENT)])
    return ledger


def test_new_row_gets_server_id_and_becomes_clean():
    ledger = _ledger()
    ledger.set_current(M1, PRESENT)

    reconcile(ledger, BatchResponse.ok(records=[AttendanceRow("a-1", M1, PRESENT)]), {M1: PRESENT})

    entry = ledger.get(M1)
    assert (entry.attendance_id, entry.baseline, entry.current) == ("a-1", PRESENT, PRESENT)
    assert not ledger.has_dirty()


def test_edit_made_during_the_save_survives():
    ledger = _ledger()
    ledger.set_current(M1, PRESENT)
    sent = {M1: PRESENT}
    ledger.set_current(M1, ABSENT)

    reconcile(ledger, BatchResponse.ok(records=[AttendanceRow("a-1", M1, PRESENT)]), sent)

    entry = ledger.get(M1)
    assert entry.attendance_id == "a-1"
    assert entry.baseline is PRESENT
    assert entry.current is ABSENT
    assert ledger.is_dirty(M1)


def test_deleted_row_is_forgotten():
    ledger = _ledger()
    ledger.set_current(G1, UNSET)

    reconcile(ledger, BatchResponse.ok(deleted_ids=["a-2"]), {G1: UNSET})

    entry = ledger.get(G1)
    assert (entry.attendance_id, entry.baseline, entry.current) == (None, UNSET, UNSET)


def test_reselect_during_deletion_stays_dirty_without_an_id():
    ledger = _ledger()
    ledger.set_current(G1, UNSET)
    sent = {G1: UNSET}
    ledger.set_current(G1, PRESENT)

    reconcile(ledger, BatchResponse.ok(deleted_ids=["a-2"]), sent)

    entry = ledger.get(G1)
    assert entry.attendance_id is None
    assert entry.baseline is UNSET
    assert entry.current is PRESENT


def test_unknown_deleted_id_is_ignored():
    ledger = _ledger()

    reconcile(ledger, BatchResponse.ok(deleted_ids=["zzz"]), {})

    assert ledger.get(G1).attendance_id == "a-2"


def test_failed_response_leaves_ledger_untouched():
    ledger = _ledger()
    ledger.set_current(M1, PRESENT)

    reconcile(ledger, BatchResponse.failure("boom", ErrorKind.TRANSACTION_FAILURE), {M1: PRESENT})

    entry = ledger.get(M1)
    assert entry.attendance_id is None
    assert entry.baseline is UNSET
    assert entry.current is PRESENT
