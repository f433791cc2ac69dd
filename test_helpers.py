"""
Test helpers: an in-memory roster REST API for view and service tests.

FakeRosterBackend is a requests transport adapter, so the real
roster.api code path (session, URL building, error normalization) runs
unchanged against it. It implements the nine student and mark endpoints,
including server-side search, standard filter, sort and pagination.
"""
import json
import math
import re
import uuid
from datetime import datetime, timedelta
from unittest import mock
from urllib.parse import parse_qs, urlsplit

import requests
from django.test import override_settings
from requests.adapters import BaseAdapter
from requests.structures import CaseInsensitiveDict

TEST_API_BASE_URL = 'http://roster-api.test/api'

ROUTES = [
    ('GET', r'^student/getStudents$', 'list_students'),
    ('GET', r'^student/getStudent/(?P<pk>[^/]+)$', 'get_student'),
    ('POST', r'^student/setStudentInfo$', 'create_student'),
    ('PUT', r'^student/updateStudentInfo$', 'update_student'),
    ('DELETE', r'^student/deleteStudentById/(?P<pk>[^/]+)$', 'delete_student'),
    ('GET', r'^mark/studentMarks/(?P<pk>[^/]+)$', 'list_marks'),
    ('POST', r'^mark/setStudentMarks$', 'create_mark'),
    ('PUT', r'^mark/studentMarks/(?P<pk>[^/]+)$', 'update_mark'),
    ('DELETE', r'^mark/studentMarks/(?P<pk>[^/]+)$', 'delete_mark'),
]


class FakeRosterBackend(BaseAdapter):
    """In-memory roster API answering requests made through a requests.Session"""

    def __init__(self):
        super().__init__()
        self.students = {}
        self.marks = {}
        self.calls = []
        self.failing = set()    # path prefixes that answer 500 {success: false}
        self.unreachable = False
        self._clock = datetime(2024, 1, 1, 9, 0, 0)

    # ------------------------------------------------------------------
    # Test controls
    # ------------------------------------------------------------------

    def fail(self, path_prefix):
        self.failing.add(path_prefix)

    def recover(self):
        self.failing.clear()
        self.unreachable = False

    def calls_to(self, method, path_prefix=''):
        return [call for call in self.calls if call[0] == method and call[1].startswith(path_prefix)]

    def add_student(self, **fields):
        record = {
            'name': 'Asha Rao',
            'rollNumber': 1,
            'standard': 1,
            'email': 'asha@example.com',
            'phone': '9876543210',
        }
        record.update(fields)
        record.setdefault('studentCardId', f"{chr(64 + int(record['standard']))}{record['rollNumber']}")
        return self._create_student(record)

    def add_mark(self, student_id, subject_name, subject_mark):
        return self._create_mark({
            'studentId': student_id,
            'subjectName': subject_name,
            'subjectMark': subject_mark,
        })

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def send(self, request, stream=False, timeout=None, verify=True, cert=None, proxies=None):
        parts = urlsplit(request.url)
        base_path = urlsplit(TEST_API_BASE_URL).path
        path = parts.path[len(base_path):].strip('/')
        params = {key: values[-1] for key, values in parse_qs(parts.query).items()}
        body = json.loads(request.body) if request.body else None
        self.calls.append((request.method, path, params, body))

        if self.unreachable:
            raise requests.ConnectionError('roster API unreachable')
        if any(path.startswith(prefix) for prefix in self.failing):
            return self._respond(request, 500, {'success': False, 'message': 'Internal server error'})

        for method, pattern, handler in ROUTES:
            match = re.match(pattern, path)
            if method == request.method and match:
                status, payload = getattr(self, handler)(params, body, **match.groupdict())
                return self._respond(request, status, payload)
        return self._respond(request, 404, {'success': False, 'message': f'No route for {path}'})

    def close(self):
        pass

    def _respond(self, request, status, payload):
        response = requests.Response()
        response.status_code = status
        response.reason = 'OK' if status < 400 else 'Error'
        response._content = json.dumps(payload).encode('utf-8')
        response.encoding = 'utf-8'
        response.headers = CaseInsensitiveDict({'Content-Type': 'application/json'})
        response.url = request.url
        response.request = request
        return response

    def _tick(self):
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    # ------------------------------------------------------------------
    # Students
    # ------------------------------------------------------------------

    def _create_student(self, data):
        record = {key: value for key, value in data.items() if key != 'id'}
        record['id'] = uuid.uuid4().hex
        record['createdAt'] = record['updatedAt'] = self._tick()
        self.students[record['id']] = record
        return record

    def list_students(self, params, body):
        rows = list(self.students.values())

        search = params.get('search', '').lower()
        if search:
            rows = [
                row for row in rows
                if search in row['name'].lower()
                or search in str(row['rollNumber'])
                or search in str(row.get('studentCardId', '')).lower()
            ]
        if params.get('standard'):
            rows = [row for row in rows if int(row['standard']) == int(params['standard'])]

        sort_by = params.get('sortBy', 'createdAt')
        rows.sort(key=lambda row: row.get(sort_by), reverse=params.get('sortOrder', 'DESC') == 'DESC')

        page = int(params.get('page', 1))
        limit = int(params.get('limit', 10))
        total = len(rows)
        return 200, {
            'success': True,
            'data': rows[(page - 1) * limit:page * limit],
            'totalRecords': total,
            'totalPages': math.ceil(total / limit),
        }

    def get_student(self, params, body, pk):
        if pk not in self.students:
            return 404, {'success': False, 'message': 'Student not found'}
        return 200, {'success': True, 'data': self.students[pk]}

    def create_student(self, params, body):
        return 201, {'success': True, 'data': self._create_student(body)}

    def update_student(self, params, body):
        pk = params.get('id')
        if pk not in self.students:
            return 404, {'success': False, 'message': 'Student not found'}
        record = self.students[pk]
        record.update({key: value for key, value in body.items() if key != 'id'})
        record['updatedAt'] = self._tick()
        return 200, {'success': True, 'data': record}

    def delete_student(self, params, body, pk):
        if self.students.pop(pk, None) is None:
            return 404, {'success': False, 'message': 'Student not found'}
        for mark_id in [m['id'] for m in self.marks.values() if m['studentId'] == pk]:
            del self.marks[mark_id]
        return 200, {'success': True}

    # ------------------------------------------------------------------
    # Marks
    # ------------------------------------------------------------------

    def _create_mark(self, data):
        record = dict(data)
        record['id'] = uuid.uuid4().hex
        record['createdAt'] = record['updatedAt'] = self._tick()
        self.marks[record['id']] = record
        return record

    def list_marks(self, params, body, pk):
        return 200, {'success': True, 'data': [m for m in self.marks.values() if m['studentId'] == pk]}

    def create_mark(self, params, body):
        if body.get('studentId') not in self.students:
            return 400, {'success': False, 'message': 'Student not found'}
        return 201, {'success': True, 'data': self._create_mark(body)}

    def update_mark(self, params, body, pk):
        if pk not in self.marks:
            return 404, {'success': False, 'message': 'Mark not found'}
        record = self.marks[pk]
        record.update(body)
        record['updatedAt'] = self._tick()
        return 200, {'success': True, 'data': record}

    def delete_mark(self, params, body, pk):
        if self.marks.pop(pk, None) is None:
            return 404, {'success': False, 'message': 'Mark not found'}
        return 200, {'success': True}


class FakeBackendMixin:
    """TestCase mixin routing roster.api through a fresh FakeRosterBackend"""

    def setUp(self):
        super().setUp()
        self.backend = FakeRosterBackend()
        session = requests.Session()
        session.mount(TEST_API_BASE_URL, self.backend)

        patcher = mock.patch('roster.api.get_session', return_value=session)
        patcher.start()
        self.addCleanup(patcher.stop)

        settings_override = override_settings(ROSTER_API_BASE_URL=TEST_API_BASE_URL)
        settings_override.enable()
        self.addCleanup(settings_override.disable)
