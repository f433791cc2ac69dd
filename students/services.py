# students/services.py - Roster API calls for students

import logging

from roster import api
from .directory import Listing

logger = logging.getLogger(__name__)


def list_students(query):
    """GET student/getStudents for one DirectoryQuery; returns a Listing"""
    body = api.call('GET', 'student/getStudents', params=query.to_api_params())
    listing = Listing.from_response(body)
    logger.info(
        f"Loaded {len(listing.rows)} of {listing.total_records} students "
        f"(page {query.page}/{listing.total_pages})"
    )
    return listing


def get_student(student_id):
    body = api.call('GET', f'student/getStudent/{student_id}')
    return body.get('data')


def create_student(student_data):
    """POST student/setStudentInfo; ``student_data`` must not carry an id"""
    payload = {key: value for key, value in student_data.items() if key != 'id'}
    body = api.call('POST', 'student/setStudentInfo', json=payload)
    logger.info(f"Created student {payload.get('name')} ({payload.get('studentCardId')})")
    return body.get('data')


def update_student(student_id, student_data):
    """PUT student/updateStudentInfo with the existing id merged into the body"""
    payload = dict(student_data, id=student_id)
    body = api.call('PUT', 'student/updateStudentInfo', params={'id': student_id}, json=payload)
    logger.info(f"Updated student {student_id}")
    return body.get('data')


def delete_student(student_id):
    body = api.call('DELETE', f'student/deleteStudentById/{student_id}')
    logger.info(f"Deleted student {student_id}")
    return body
