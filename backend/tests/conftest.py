"""Shared pytest fixtures."""
from datetime import datetime, timezone

import pytest

from qr_attendance import create_app, db
from qr_attendance.models import Participant, ParticipantRole
from qr_attendance.services.session_service import SessionService

ADMIN_PASSWORD = 'test-admin-password'

# 10:00 UTC on the day the default test session runs 09:00-17:00
NOW = datetime(2025, 3, 10, 10, 0, 0, tzinfo=timezone.utc)
SESSION_END = datetime(2025, 3, 10, 17, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def app():
    """Create test app."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def admin_headers(client):
    """Bearer header for a freshly logged-in admin."""
    response = client.post('/api/auth/login', json={'password': ADMIN_PASSWORD})
    assert response.status_code == 200
    token = response.get_json()['data']['token']
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def frozen_now(monkeypatch):
    """Pin the scan clock used by the public endpoints."""
    monkeypatch.setattr('qr_attendance.services.attendance_service.utc_now', lambda: NOW)
    return NOW


@pytest.fixture
def make_participant(app):
    def _make(participant_id='P001', name='Test Participant', role=ParticipantRole.VOLUNTEER):
        participant = Participant(id=participant_id, name=name, role=role)
        db.session.add(participant)
        db.session.commit()
        return participant
    return _make


@pytest.fixture
def make_session(app):
    """Create a session through the service; returns the service result."""
    def _make(name='Morning Standup', date='2025-03-10', start_time='09:00',
              end_time='17:00', session_type='Both'):
        result, error = SessionService.create_session(
            name=name,
            date=date,
            start_time=start_time,
            end_time=end_time,
            session_type=session_type,
            now=NOW
        )
        assert error is None, error
        return result
    return _make


def scan_for(created, student_id):
    """Scan body built from a create-session result."""
    session = created['session']
    return {
        'sessionId': session['sessionId'],
        'expiryTime': session['expiryTime'],
        'signature': session['signature'],
        'studentId': student_id
    }
