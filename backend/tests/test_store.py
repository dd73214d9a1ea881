"""Persistent store adapter tests."""
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError
from werkzeug.datastructures import MultiDict

from conftest import NOW, scan_for
from qr_attendance import db
from qr_attendance.models import AttendanceRecord, AttendanceSession, Participant, ParticipantRole
from qr_attendance.services.attendance_service import AttendanceService
from qr_attendance.services.participant_service import ParticipantService
from qr_attendance.services.session_service import SessionService
from qr_attendance.services.store_service import AttendanceFilters, AttendanceUpdate, StoreService
from qr_attendance.utils.errors import ErrorKind


@pytest.fixture
def populated(app, make_session, make_participant):
    """Two sessions on different days, three participants, four scans."""
    monday = make_session(name='Monday Meetup', date='2025-03-10')
    tuesday = make_session(name='Tuesday Meetup', date='2025-03-11')
    make_participant('C1', 'Carla Core', ParticipantRole.CORE_MEMBER)
    make_participant('V1', 'Victor Vol', ParticipantRole.VOLUNTEER)
    make_participant('V2', 'valerie vol', ParticipantRole.VOLUNTEER)

    tue_now = NOW + timedelta(days=1)
    AttendanceService.mark_attendance(scan_for(monday, 'C1'), now=NOW)
    AttendanceService.mark_attendance(scan_for(monday, 'V1'), now=NOW + timedelta(minutes=1))
    AttendanceService.mark_attendance(scan_for(tuesday, 'V1'), now=tue_now)
    AttendanceService.mark_attendance(scan_for(tuesday, 'V2'), now=tue_now + timedelta(minutes=1))
    return {
        'monday': monday['session']['sessionId'],
        'tuesday': tuesday['session']['sessionId']
    }


def _pairs(records):
    return [(r.session_id, r.student_id) for r in records]


def test_attendance_newest_first(populated):
    records = StoreService.get_attendance()
    assert _pairs(records) == [
        (populated['tuesday'], 'V2'),
        (populated['tuesday'], 'V1'),
        (populated['monday'], 'V1'),
        (populated['monday'], 'C1'),
    ]


def test_filter_by_date_range(populated):
    filters, error = AttendanceFilters.from_args({'startDate': '2025-03-11', 'endDate': '2025-03-11'})
    assert error is None
    assert {r.session_id for r in StoreService.get_attendance(filters)} == {populated['tuesday']}

    filters, _ = AttendanceFilters.from_args({'endDate': '2025-03-10'})
    assert {r.session_id for r in StoreService.get_attendance(filters)} == {populated['monday']}


def test_filters_combine_conjunctively(populated):
    filters, _ = AttendanceFilters.from_args(MultiDict({
        'role': 'Volunteer',
        'sessionId': populated['tuesday'],
        'studentId': 'V1'
    }))
    assert _pairs(StoreService.get_attendance(filters)) == [(populated['tuesday'], 'V1')]


def test_filter_by_role(populated):
    filters, _ = AttendanceFilters.from_args({'role': 'CoreMember'})
    assert _pairs(StoreService.get_attendance(filters)) == [(populated['monday'], 'C1')]


def test_filter_by_name_is_case_insensitive_substring(populated):
    filters, _ = AttendanceFilters.from_args({'name': 'VAL'})
    assert [r.student_id for r in StoreService.get_attendance(filters)] == ['V2']

    filters, _ = AttendanceFilters.from_args({'name': ' vol '})
    assert sorted(r.student_id for r in StoreService.get_attendance(filters)) == ['V1', 'V1', 'V2']


@pytest.mark.parametrize('needle', ['%', '_', 'r_Vol', 'Vic%Vol'])
def test_filter_by_name_matches_wildcards_literally(populated, needle):
    filters, _ = AttendanceFilters.from_args({'name': needle})
    assert StoreService.get_attendance(filters) == []


def test_invalid_filters(app):
    _, error = AttendanceFilters.from_args({'role': 'Manager'})
    assert error.kind == ErrorKind.VALIDATION_ERROR

    _, error = AttendanceFilters.from_args({'startDate': '11/03/2025'})
    assert error.kind == ErrorKind.VALIDATION_ERROR


def _record(session_id, student_id):
    return StoreService.find_attendance(session_id, student_id)


def test_update_recomputes_duration_and_status(populated):
    record = _record(populated['monday'], 'C1')

    changes, error = AttendanceUpdate.from_dict({
        'outTime': '2025-03-10T11:30:00.000Z',
        'duration': 999,
        'status': 'partial'
    })
    assert error is None
    updated, error = StoreService.update_attendance(record.id, changes)

    assert error is None
    assert updated.duration == 90
    assert updated.to_dict()['status'] == 'present'


def test_update_in_time_recomputes_existing_out(populated):
    record = _record(populated['monday'], 'C1')
    changes, _ = AttendanceUpdate.from_dict({'outTime': '2025-03-10T11:00:00Z'})
    StoreService.update_attendance(record.id, changes)

    changes, _ = AttendanceUpdate.from_dict({'inTime': '2025-03-10T10:45:00+00:00'})
    updated, error = StoreService.update_attendance(record.id, changes)

    assert error is None
    assert updated.duration == 15


def test_update_clearing_out_time_reverts_to_partial(populated):
    record = _record(populated['monday'], 'C1')
    changes, _ = AttendanceUpdate.from_dict({'outTime': '2025-03-10T11:00:00Z'})
    StoreService.update_attendance(record.id, changes)

    changes, _ = AttendanceUpdate.from_dict({'outTime': None})
    updated, error = StoreService.update_attendance(record.id, changes)

    assert error is None
    assert updated.duration is None
    assert updated.to_dict()['status'] == 'partial'


def test_update_rejects_out_before_in(populated):
    record = _record(populated['monday'], 'C1')
    changes, _ = AttendanceUpdate.from_dict({'outTime': '2025-03-10T09:00:00Z'})

    updated, error = StoreService.update_attendance(record.id, changes)

    assert updated is None
    assert error.kind == ErrorKind.VALIDATION_ERROR
    assert _record(populated['monday'], 'C1').out_time is None


def test_update_allows_future_in_time_with_out_time(populated):
    record = _record(populated['monday'], 'C1')
    changes, _ = AttendanceUpdate.from_dict({
        'inTime': '2025-03-10T12:00:00Z',
        'outTime': '2025-03-10T12:30:00Z'
    })

    updated, error = StoreService.update_attendance(record.id, changes, now=NOW)

    assert error is None
    assert updated.duration == 30


def test_update_rejects_future_in_time_on_open_record(populated):
    record = _record(populated['monday'], 'C1')
    changes, _ = AttendanceUpdate.from_dict({'inTime': '2025-03-10T12:00:00Z'})

    updated, error = StoreService.update_attendance(record.id, changes, now=NOW)

    assert updated is None
    assert error.kind == ErrorKind.VALIDATION_ERROR
    assert _record(populated['monday'], 'C1').to_dict()['inTime'] == '2025-03-10T10:00:00.000Z'


@pytest.mark.parametrize('data', [
    {'studentId': 'V2'},
    {'inTime': None},
    {'inTime': 'yesterday'},
])
def test_update_rejects_bad_changes(app, data):
    changes, error = AttendanceUpdate.from_dict(data)
    assert changes is None
    assert error.kind == ErrorKind.VALIDATION_ERROR


def test_update_unknown_record(app):
    changes, _ = AttendanceUpdate.from_dict({'outTime': '2025-03-10T11:00:00Z'})
    updated, error = StoreService.update_attendance('missing', changes)
    assert error.kind == ErrorKind.NOT_FOUND


def test_delete_attendance(populated):
    record = _record(populated['monday'], 'C1')
    assert StoreService.delete_attendance(record.id)
    assert not StoreService.delete_attendance(record.id)
    assert AttendanceRecord.query.count() == 3


def test_delete_participant_cascades(populated):
    deleted, error = ParticipantService.delete_participant('V1')

    assert deleted and error is None
    assert db.session.get(Participant, 'V1') is None
    assert AttendanceRecord.query.filter_by(student_id='V1').count() == 0
    assert AttendanceRecord.query.count() == 2


def test_delete_session_cascades(populated):
    deleted, error = SessionService.delete_session(populated['tuesday'])

    assert deleted and error is None
    assert db.session.get(AttendanceSession, populated['tuesday']) is None
    assert AttendanceRecord.query.filter_by(session_id=populated['tuesday']).count() == 0
    assert AttendanceRecord.query.count() == 2


def test_delete_unknown_participant(app):
    deleted, error = ParticipantService.delete_participant('ghost')
    assert not deleted
    assert error.kind == ErrorKind.PARTICIPANT_NOT_FOUND


def test_cascade_rolls_back_on_failure(populated, monkeypatch):

    def failing_commit():
        raise OperationalError('COMMIT', {}, Exception('disk I/O error'))

    monkeypatch.setattr(db.session, 'commit', failing_commit)
    with pytest.raises(OperationalError):
        StoreService.delete_participant('V1')
    monkeypatch.undo()

    assert AttendanceRecord.query.filter_by(student_id='V1').count() == 2
    assert StoreService.get_participant('V1') is not None


def test_participant_create_and_conflict(app):
    created, error = ParticipantService.create_participant(' P9 ', ' Pat ', 'CoreMember')
    assert error is None
    assert created['id'] == 'P9'
    assert created['name'] == 'Pat'

    _, error = ParticipantService.create_participant('P9', 'Other', 'Volunteer')
    assert error.kind == ErrorKind.CONFLICT

    _, error = ParticipantService.create_participant('P10', 'Other', 'Chief')
    assert error.kind == ErrorKind.VALIDATION_ERROR


def test_participant_update_only_name_and_role(app, make_participant):
    make_participant('P1', 'Pat', ParticipantRole.VOLUNTEER)

    updated, error = ParticipantService.update_participant('P1', {'role': 'CoreMember'})
    assert error is None
    assert updated['role'] == 'CoreMember'
    assert updated['name'] == 'Pat'

    _, error = ParticipantService.update_participant('P1', {'id': 'P2'})
    assert error.kind == ErrorKind.VALIDATION_ERROR
