# marks/services.py - Roster API calls for marks

import logging
from concurrent.futures import ThreadPoolExecutor

from roster import api
from roster.api import StaleResponseError
from students.services import get_student

logger = logging.getLogger(__name__)


def get_student_marks(student_id):
    body = api.call('GET', f'mark/studentMarks/{student_id}')
    return body.get('data') or []


def create_mark(student_id, subject_name, subject_mark):
    body = api.call('POST', 'mark/setStudentMarks', json={
        'studentId': student_id,
        'subjectName': subject_name,
        'subjectMark': subject_mark,
    })
    logger.info(f"Added {subject_name} mark for student {student_id}")
    return body.get('data')


def update_mark(mark_id, subject_name, subject_mark):
    body = api.call('PUT', f'mark/studentMarks/{mark_id}', json={
        'subjectName': subject_name,
        'subjectMark': subject_mark,
    })
    logger.info(f"Updated mark {mark_id}")
    return body.get('data')


def delete_mark(mark_id):
    body = api.call('DELETE', f'mark/studentMarks/{mark_id}')
    logger.info(f"Deleted mark {mark_id}")
    return body


def _check_owner(student_id, student, marks):
    """Reject payloads that belong to some other student than the one requested"""
    if student and student.get('id') is not None and str(student['id']) != str(student_id):
        raise StaleResponseError(f"Student response is for {student['id']}, expected {student_id}")
    for mark in marks:
        owner = mark.get('studentId')
        if owner is not None and str(owner) != str(student_id):
            raise StaleResponseError(f"Mark {mark.get('id')} belongs to {owner}, expected {student_id}")


def load_student_marks(student_id):
    """Fetch a student and their marks concurrently and wait for both.

    If either request fails the whole load fails; there is no partial
    result.
    """
    with ThreadPoolExecutor(max_workers=2) as executor:
        student_future = executor.submit(get_student, student_id)
        marks_future = executor.submit(get_student_marks, student_id)
        student = student_future.result()
        marks = marks_future.result()

    if not student:
        raise api.ApiError('Student not found')
    try:
        _check_owner(student_id, student, marks)
    except StaleResponseError as e:
        logger.warning(f"Discarding stale marks load: {e}")
        raise
    return student, marks
