"""Session lifecycle tests."""
import json
import re
from datetime import datetime, timedelta, timezone

import pytest

from conftest import NOW, SESSION_END
from qr_attendance import db
from qr_attendance.models import AttendanceSession, SessionStatus
from qr_attendance.services import session_service
from qr_attendance.services.qr_service import QRService
from qr_attendance.services.session_service import SessionService, generate_session_id
from qr_attendance.services.signature_service import SignatureService
from qr_attendance.services.store_service import StoreService
from qr_attendance.utils.errors import ErrorKind


def test_generate_session_id_format():
    session_id = generate_session_id(NOW)
    assert re.fullmatch(r'SESSION_1741600800000_[0-9a-z]{9}', session_id)
    assert generate_session_id(NOW) != session_id


def test_create_session_signs_expiry(make_session):
    result = make_session()
    session = result['session']

    assert session['status'] == 'active'
    assert session['isActive'] is True
    assert session['expiryTime'] == '2025-03-10T17:00:00.000Z'
    assert session['startDateTime'] == '2025-03-10T09:00:00.000Z'
    assert SignatureService.verify(session['sessionId'], session['expiryTime'], session['signature'])


def test_create_session_qr_payload(make_session):
    result = make_session()
    payload = json.loads(result['qrData'])

    assert set(payload) == {'sessionId', 'expiryTime', 'signature'}
    assert payload['sessionId'] == result['session']['sessionId']
    assert result['qrCode'].startswith('data:image/png;base64,')


def test_create_session_survives_qr_render_failure(app, make_session, monkeypatch):
    def broken(qr_string):
        raise OSError('no image backend')

    monkeypatch.setattr(QRService, 'render_image', staticmethod(broken))
    result = make_session()

    assert 'qrCode' not in result
    assert result['qrData']
    assert StoreService.get_session(result['session']['sessionId']) is not None


@pytest.mark.parametrize('overrides, fragment', [
    ({'name': '  '}, 'Session name is required'),
    ({'date': '10/03/2025'}, 'YYYY-MM-DD'),
    ({'start_time': '9am'}, 'HH:MM'),
    ({'end_time': '08:00'}, 'End time must be after start time'),
    ({'end_time': '09:00'}, 'End time must be after start time'),
    ({'session_type': 'Everyone'}, 'Session type must be one of'),
])
def test_create_session_validation(app, overrides, fragment):
    args = {
        'name': 'Workshop',
        'date': '2025-03-10',
        'start_time': '09:00',
        'end_time': '17:00',
        'session_type': 'Both'
    }
    args.update(overrides)

    result, error = SessionService.create_session(**args)

    assert result is None
    assert error.kind == ErrorKind.VALIDATION_ERROR
    assert fragment in error.message
    assert AttendanceSession.query.count() == 0


def test_create_session_uses_configured_timezone(app, make_session):
    app.config['TIMEZONE'] = 'Europe/Berlin'
    session = make_session()['session']

    # CET is UTC+1 in early March
    assert session['startDateTime'] == '2025-03-10T08:00:00.000Z'
    assert session['expiryTime'] == '2025-03-10T16:00:00.000Z'
    assert session['startTime'] == '09:00'


def test_create_session_retries_id_collision(app, make_session, monkeypatch):
    taken = make_session()['session']['sessionId']
    db.session.expunge_all()
    ids = iter([taken, taken, 'SESSION_1741600800000_fresh0001'])
    monkeypatch.setattr(session_service, 'generate_session_id', lambda now=None: next(ids))

    second = make_session(name='Second')

    assert second['session']['sessionId'] == 'SESSION_1741600800000_fresh0001'
    assert AttendanceSession.query.count() == 2
    assert StoreService.get_session(taken).name == 'Morning Standup'


def test_create_session_gives_up_after_max_attempts(app, make_session, monkeypatch):
    taken = make_session()['session']['sessionId']
    db.session.expunge_all()
    monkeypatch.setattr(session_service, 'generate_session_id', lambda now=None: taken)

    result, error = SessionService.create_session('Again', '2025-03-10', '09:00', '17:00', 'Both')

    assert result is None
    assert error.kind == ErrorKind.CONFLICT
    assert AttendanceSession.query.count() == 1


def test_end_session_is_idempotent(app, make_session):
    session_id = make_session()['session']['sessionId']
    ended_at = NOW + timedelta(hours=1)

    first, error = SessionService.end_session(session_id, now=ended_at)
    assert error is None
    assert first['status'] == 'ended'
    assert first['isActive'] is False

    second, error = SessionService.end_session(session_id, now=ended_at + timedelta(hours=1))
    assert error is None
    assert second['status'] == 'ended'
    assert second['endedAt'] == first['endedAt']


def test_end_unknown_session(app):
    result, error = SessionService.end_session('SESSION_0_missing00')
    assert result is None
    assert error.kind == ErrorKind.SESSION_NOT_FOUND


def test_is_active_until_expiry_inclusive(app, make_session):
    session = StoreService.get_session(make_session()['session']['sessionId'])

    assert SessionService.is_active(session, NOW)
    assert SessionService.is_active(session, SESSION_END)
    assert not SessionService.is_active(session, SESSION_END + timedelta(milliseconds=1))


def test_update_session_name_and_type_only(app, make_session):
    created = make_session()['session']

    result, error = SessionService.update_session(
        created['sessionId'], {'name': 'Renamed', 'sessionType': 'Core'}
    )
    assert error is None
    assert result['name'] == 'Renamed'
    assert result['sessionType'] == 'Core'
    assert result['expiryTime'] == created['expiryTime']
    assert result['signature'] == created['signature']

    result, error = SessionService.update_session(
        created['sessionId'], {'expiryTime': '2030-01-01T00:00:00.000Z'}
    )
    assert result is None
    assert error.kind == ErrorKind.VALIDATION_ERROR
    assert StoreService.get_session(created['sessionId']).expiry_iso == created['expiryTime']


def test_update_session_rejects_bad_type(app, make_session):
    session_id = make_session()['session']['sessionId']
    result, error = SessionService.update_session(session_id, {'sessionType': 'Nobody'})
    assert error.kind == ErrorKind.VALIDATION_ERROR


def test_list_sessions_newest_first(app, make_session):
    make_session(name='First')
    make_session(name='Second')

    names = [s['name'] for s in SessionService.list_sessions()]
    assert names == ['Second', 'First']


def test_end_expired_sessions(app, make_session):
    expired = make_session(name='Early', start_time='06:00', end_time='08:00')
    current = make_session(name='Current')

    ended = SessionService.end_expired_sessions(now=NOW)

    assert ended == 1
    assert StoreService.get_session(expired['session']['sessionId']).status == SessionStatus.ENDED
    assert StoreService.get_session(current['session']['sessionId']).status == SessionStatus.ACTIVE
    assert SessionService.end_expired_sessions(now=NOW) == 0


def test_end_expired_cli(app, make_session):
    make_session(name='Past', date='2020-01-01')

    result = app.test_cli_runner().invoke(args=['end-expired'])

    assert 'Ended 1 expired sessions.' in result.output


def test_qr_payload_for_existing_session(app, make_session):
    created = make_session()
    result, error = SessionService.get_qr(created['session']['sessionId'])

    assert error is None
    assert result['qrData'] == created['qrData']


def test_session_timestamps_are_utc(app, make_session):
    session = StoreService.get_session(make_session()['session']['sessionId'])
    assert session.is_expired(datetime(2025, 3, 10, 17, 0, 1, tzinfo=timezone.utc))
