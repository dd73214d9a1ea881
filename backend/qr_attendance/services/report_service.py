"""Attendance reporting: spreadsheet grid, analytics and CSV export."""
import io
from typing import Dict, List, Optional

import pandas as pd
from flask import current_app

from qr_attendance.models import AttendanceStatus
from qr_attendance.services.store_service import AttendanceFilters, StoreService
from qr_attendance.utils.timeutils import ensure_utc, get_zone

CELL_PRESENT = 'Present'
CELL_PARTIAL = 'Partial'
CELL_ABSENT = 'Absent'

CSV_COLUMNS = [
    'Student ID', 'Name', 'Role', 'Session Name', 'Date',
    'In Time', 'Out Time', 'Duration (min)', 'Status'
]


def _cell(record) -> str:
    if record is None:
        return CELL_ABSENT
    return CELL_PRESENT if record.status == AttendanceStatus.PRESENT else CELL_PARTIAL


def _local_clock(value, zone) -> str:
    if value is None:
        return ''
    return ensure_utc(value).astimezone(zone).strftime('%H:%M:%S')


class ReportService:
    """Read-only views over the attendance store."""

    @staticmethod
    def spreadsheet(filters: Optional[AttendanceFilters] = None) -> Dict:
        """One row per participant, one column per session seen in the records."""
        filters = filters or AttendanceFilters()
        records = StoreService.get_attendance(filters)

        sessions = {}
        by_pair = {}
        for record in records:
            sessions.setdefault(record.session_id, {
                'sessionId': record.session_id,
                'sessionName': record.session_name,
                'date': record.session_date.isoformat() if record.session_date else None
            })
            by_pair[(record.student_id, record.session_id)] = record

        session_list = sorted(sessions.values(), key=lambda s: (s['date'] or '', s['sessionId']))

        participants = StoreService.list_participants()
        if filters.student_id:
            participants = [p for p in participants if p.id == filters.student_id]
        if filters.role:
            participants = [p for p in participants if p.role.value == filters.role]
        if filters.name:
            needle = filters.name.lower()
            participants = [p for p in participants if needle in p.name.lower()]

        rows = []
        for participant in participants:
            rows.append({
                'studentId': participant.id,
                'name': participant.name,
                'role': participant.role.value,
                'sessions': {
                    s['sessionId']: _cell(by_pair.get((participant.id, s['sessionId'])))
                    for s in session_list
                }
            })

        return {
            'students': rows,
            'sessions': session_list,
            'summary': {
                'totalStudents': len(rows),
                'totalSessions': len(session_list),
                'totalRecords': len(records)
            }
        }

    @staticmethod
    def analytics() -> Dict:
        """Per-participant attendance rates against every session on record."""
        threshold = current_app.config.get('LOW_ATTENDANCE_THRESHOLD', 75)
        participants = StoreService.list_participants()
        total_sessions = len(StoreService.list_sessions())
        records = StoreService.get_attendance()

        counts: Dict[str, Dict[str, int]] = {}
        for record in records:
            entry = counts.setdefault(record.student_id, {'present': 0, 'partial': 0})
            if record.status == AttendanceStatus.PRESENT:
                entry['present'] += 1
            else:
                entry['partial'] += 1

        students: List[Dict] = []
        for participant in participants:
            entry = counts.get(participant.id, {'present': 0, 'partial': 0})
            attended = entry['present'] + entry['partial']
            percentage = round(attended / total_sessions * 100, 2) if total_sessions else 0.0
            students.append({
                'studentId': participant.id,
                'name': participant.name,
                'role': participant.role.value,
                'present': entry['present'],
                'partial': entry['partial'],
                'absent': max(total_sessions - attended, 0),
                'percentage': percentage,
                'isLowAttendance': percentage < threshold
            })

        possible = len(participants) * total_sessions
        average = round(len(records) / possible * 100, 2) if possible else 0.0

        return {
            'overall': {
                'totalStudents': len(participants),
                'totalSessions': total_sessions,
                'totalAttendanceRecords': len(records),
                'averageAttendance': average,
                'lowAttendanceStudents': sum(1 for s in students if s['isLowAttendance'])
            },
            'students': students
        }

    @staticmethod
    def export_csv(filters: Optional[AttendanceFilters] = None) -> str:
        """Filtered attendance as CSV text, wall-clock times in ``TIMEZONE``."""
        zone = get_zone(current_app.config.get('TIMEZONE', 'UTC'))
        records = StoreService.get_attendance(filters)

        data = [{
            'Student ID': record.student_id,
            'Name': record.student_name,
            'Role': record.student_role,
            'Session Name': record.session_name or record.session_id,
            'Date': record.date.isoformat() if record.date else '',
            'In Time': _local_clock(record.in_time, zone),
            'Out Time': _local_clock(record.out_time, zone),
            'Duration (min)': record.duration if record.duration is not None else '',
            'Status': record.status.value if record.status else ''
        } for record in records]

        df = pd.DataFrame(data, columns=CSV_COLUMNS)

        output = io.StringIO()
        df.to_csv(output, index=False, encoding='utf-8-sig')
        output.seek(0)
        return output.getvalue()
