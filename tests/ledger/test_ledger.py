from src.attendance_sync.attendance_sync.attendance.model import AttendanceRow, MeetingContext, Subject
from src.attendance_sync.attendance_sync.core.enums import AttendanceStatus
from src.attendance_sync.attendance_sync.ledger.ledger import AttendanceLedger, AttendanceSummary

M1 = Subject.member("m-1")
M2 = Subject.member("m-2")
G1 = Subject.guest("g-1")


def _ledger():
    ledger = AttendanceLedger(MeetingContext("mtg-1"))
    ledger.register([M1, M2, G1])
    return ledger


def test_registered_subjects_start_unset_and_clean():
    ledger = _ledger()

    assert len(ledger) == 3
    assert all(e.current is AttendanceStatus.UNSET and not e.is_dirty for e in ledger)


def test_set_current_reports_whether_anything_changed():
    ledger = _ledger()

    assert ledger.set_current(M1, AttendanceStatus.PRESENT) is True
    assert ledger.set_current(M1, AttendanceStatus.PRESENT) is False
    assert ledger.is_dirty(M1)

    ledger.set_current(M1, AttendanceStatus.UNSET)
    assert not ledger.has_dirty()


def test_load_baseline_sets_id_baseline_and_current():
    ledger = _ledger()

    ledger.load_baseline([AttendanceRow("a-1", M1, AttendanceStatus.APOLOGY)])

    entry = ledger.get(M1)
    assert (entry.attendance_id, entry.baseline, entry.current) == ("a-1", AttendanceStatus.APOLOGY, AttendanceStatus.APOLOGY)
    assert ledger.find_by_attendance_id("a-1") is entry


def test_silent_reload_keeps_unsaved_edit_on_covered_subject():
    ledger = _ledger()
    ledger.load_baseline([AttendanceRow("a-1", M1, AttendanceStatus.PRESENT)])
    ledger.set_current(M1, AttendanceStatus.ABSENT)

    ledger.load_baseline([AttendanceRow("a-1", M1, AttendanceStatus.APOLOGY)], silent=True)

    entry = ledger.get(M1)
    assert entry.baseline is AttendanceStatus.APOLOGY
    assert entry.current is AttendanceStatus.ABSENT


def test_full_reload_overwrites_unsaved_edit():
    ledger = _ledger()
    ledger.set_current(M1, AttendanceStatus.ABSENT)

    ledger.load_baseline([AttendanceRow("a-1", M1, AttendanceStatus.PRESENT)])

    assert ledger.get(M1).current is AttendanceStatus.PRESENT
    assert not ledger.has_dirty()


def test_subject_missing_from_rows_loses_its_row():
    ledger = _ledger()
    ledger.load_baseline(
        [AttendanceRow("a-1", M1, AttendanceStatus.PRESENT), AttendanceRow("a-2", M2, AttendanceStatus.PRESENT)]
    )
    ledger.set_current(M2, AttendanceStatus.ABSENT)

    ledger.load_baseline([], silent=True)

    m1, m2 = ledger.get(M1), ledger.get(M2)
    assert (m1.attendance_id, m1.baseline, m1.current) == (None, AttendanceStatus.UNSET, AttendanceStatus.UNSET)
    assert (m2.attendance_id, m2.baseline, m2.current) == (None, AttendanceStatus.UNSET, AttendanceStatus.ABSENT)


def test_snapshot_is_read_only_and_detached():
    ledger = _ledger()
    ledger.load_baseline([AttendanceRow("a-1", M1, AttendanceStatus.PRESENT)])

    snapshot = ledger.snapshot_baseline()
    ledger.load_baseline([])

    assert snapshot[M1].attendance_id == "a-1"
    assert snapshot[M1].status is AttendanceStatus.PRESENT


def test_summary_counts_current_values():
    ledger = _ledger()
    ledger.set_current(M1, AttendanceStatus.PRESENT)
    ledger.set_current(M2, AttendanceStatus.APOLOGY)
    ledger.set_current(G1, AttendanceStatus.PRESENT)

    assert ledger.summary() == AttendanceSummary(present=2, apology=1, absent=0)


def test_reset_drops_entries_and_binds_new_meeting():
    ledger = _ledger()
    ledger.set_current(M1, AttendanceStatus.PRESENT)

    ledger.reset(MeetingContext("mtg-2"))

    assert ledger.meeting.meeting_id == "mtg-2"
    assert len(ledger) == 0
