"""
Tests for the marks app.
Tests: grade mapping, average, mark validation, concurrent load,
marks page and the confirm-then-save/delete flows.
"""
from django.contrib.messages import get_messages
from django.test import TestCase
from django.urls import reverse

from marks.serializers import SUBJECT_MARK_ERROR, MarkSerializer
from marks.services import load_student_marks
from marks.utils import average_mark, grade_for, graded_rows
from roster.api import ApiError, StaleResponseError
from test_helpers import FakeBackendMixin


def message_texts(response):
    return [str(message) for message in get_messages(response.wsgi_request)]


class GradeForTest(TestCase):
    """Test the letter grade thresholds"""

    def test_boundaries(self):
        expected = {
            100: 'A', 90: 'A',
            89: 'B', 80: 'B',
            79: 'C', 70: 'C',
            69: 'D', 60: 'D',
            59: 'F', 0: 'F',
        }
        for subject_mark, grade in expected.items():
            self.assertEqual(grade_for(subject_mark), grade, subject_mark)

    def test_rows_carry_grade_and_tone(self):
        rows = graded_rows([{'subjectMark': 95}, {'subjectMark': 12}])
        self.assertEqual([(r['grade'], r['tone']) for r in rows], [('A', 'success'), ('F', 'danger')])


class AverageMarkTest(TestCase):
    """Test the average shown above the table"""

    def test_no_marks_is_zero(self):
        self.assertEqual(average_mark([]), 0)

    def test_two_decimals(self):
        marks = [{'subjectMark': 80}, {'subjectMark': 90}, {'subjectMark': 70}]
        self.assertEqual(average_mark(marks), '80.00')

    def test_rounding(self):
        marks = [{'subjectMark': 70}, {'subjectMark': 71}, {'subjectMark': 71}]
        self.assertEqual(average_mark(marks), '70.67')


class MarkSerializerTest(TestCase):
    """Test the add/edit mark form rules"""

    def test_text_mark_becomes_int(self):
        serializer = MarkSerializer(data={'subject_name': 'Physics', 'subject_mark': '88'})
        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.validated_data, {'subjectName': 'Physics', 'subjectMark': 88})

    def test_range(self):
        for value in ('-1', '101', 'abc', ''):
            serializer = MarkSerializer(data={'subject_name': 'Physics', 'subject_mark': value})
            self.assertFalse(serializer.is_valid(), value)
            self.assertEqual(serializer.errors['subject_mark'], [SUBJECT_MARK_ERROR])

    def test_bounds_allowed(self):
        for value in ('0', '100'):
            serializer = MarkSerializer(data={'subject_name': 'Physics', 'subject_mark': value})
            self.assertTrue(serializer.is_valid(), value)

    def test_subject_required(self):
        serializer = MarkSerializer(data={'subject_name': '', 'subject_mark': '50'})
        self.assertFalse(serializer.is_valid())
        self.assertIn('subject_name', serializer.errors)


class LoadStudentMarksTest(FakeBackendMixin, TestCase):
    """Test the joined student + marks fetch"""

    def setUp(self):
        super().setUp()
        self.student = self.backend.add_student(name='Asha Rao')
        self.backend.add_mark(self.student['id'], 'Maths', 91)

    def test_loads_both(self):
        student, marks = load_student_marks(self.student['id'])
        self.assertEqual(student['name'], 'Asha Rao')
        self.assertEqual([m['subjectName'] for m in marks], ['Maths'])
        paths = sorted(call[1] for call in self.backend.calls)
        self.assertEqual(paths, [f"mark/studentMarks/{self.student['id']}",
                                 f"student/getStudent/{self.student['id']}"])

    def test_marks_failure_fails_whole_load(self):
        self.backend.fail('mark/')
        with self.assertRaises(ApiError):
            load_student_marks(self.student['id'])

    def test_student_failure_fails_whole_load(self):
        self.backend.fail('student/')
        with self.assertRaises(ApiError):
            load_student_marks(self.student['id'])

    def test_foreign_mark_is_stale(self):
        other = self.backend.add_student(name='Other')
        foreign = self.backend.add_mark(other['id'], 'Art', 40)
        list_marks = self.backend.list_marks

        def leaky_list_marks(params, body, pk):
            status, payload = list_marks(params, body, pk)
            payload['data'].append(foreign)
            return status, payload

        self.backend.list_marks = leaky_list_marks
        with self.assertRaises(StaleResponseError):
            load_student_marks(self.student['id'])

    def test_other_student_payload_is_stale(self):
        other = self.backend.add_student(name='Other')
        get_student = self.backend.get_student

        def wrong_student(params, body, pk):
            return get_student(params, body, other['id'])

        self.backend.get_student = wrong_student
        with self.assertRaises(StaleResponseError):
            load_student_marks(self.student['id'])


class MarkURLResolutionTest(TestCase):
    """Test that all mark URLs resolve correctly"""

    def test_list_url(self):
        self.assertEqual(reverse('marks:list', args=['s1']), '/student/s1/marks/')

    def test_save_url(self):
        self.assertEqual(reverse('marks:save', args=['s1']), '/student/s1/marks/save/')

    def test_delete_url(self):
        self.assertEqual(reverse('marks:delete', args=['s1', 'm1']), '/student/s1/marks/m1/delete/')


class StudentMarksViewTest(FakeBackendMixin, TestCase):
    """Test the marks page"""

    def setUp(self):
        super().setUp()
        self.student = self.backend.add_student(name='Asha Rao', standard=5, rollNumber=23)
        self.url = reverse('marks:list', args=[self.student['id']])

    def test_renders_marks_grades_and_average(self):
        for subject, value in (('Maths', 80), ('Physics', 90), ('Art', 70)):
            self.backend.add_mark(self.student['id'], subject, value)
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.context['loaded'])
        self.assertEqual(response.context['average'], '80.00')
        self.assertEqual(response.context['total_subjects'], 3)
        self.assertContains(response, 'Total Subjects')
        self.assertEqual([row['grade'] for row in response.context['rows']], ['B', 'A', 'C'])
        self.assertContains(response, 'Asha Rao')

    def test_empty_state(self):
        response = self.client.get(self.url)
        self.assertEqual(response.context['average'], 0)
        self.assertContains(response, 'No marks recorded yet. Add marks to get started.')

    def test_partial_failure_blocks_rendering(self):
        self.backend.fail('mark/')
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.context['loaded'])
        self.assertEqual(response.context['rows'], [])
        self.assertNotContains(response, 'Asha Rao')
        self.assertIn('Failed to fetch data', message_texts(response))

    def test_edit_param_opens_form(self):
        mark = self.backend.add_mark(self.student['id'], 'Maths', 64)
        response = self.client.get(self.url, {'edit': mark['id']})
        form = response.context['form']
        self.assertTrue(form['open'])
        self.assertEqual((form['subject_name'], form['subject_mark']), ('Maths', '64'))

    def test_add_param_opens_empty_form(self):
        response = self.client.get(self.url, {'add': '1'})
        self.assertTrue(response.context['form']['open'])
        self.assertEqual(response.context['form']['mark_id'], '')


class MarkSaveViewTest(FakeBackendMixin, TestCase):
    """Test add/update with confirmation"""

    def setUp(self):
        super().setUp()
        self.student = self.backend.add_student()
        self.url = reverse('marks:save', args=[self.student['id']])

    def test_add_asks_first(self):
        response = self.client.post(self.url, {'subject_name': 'Maths', 'subject_mark': '77'})
        self.assertContains(response, 'Add New Mark?')
        self.assertEqual(self.backend.calls_to('POST'), [])

    def test_add_confirmed(self):
        response = self.client.post(self.url, {'subject_name': 'Maths', 'subject_mark': '77', 'decision': 'confirm'})
        self.assertRedirects(response, reverse('marks:list', args=[self.student['id']]), fetch_redirect_response=False)
        _method, path, _params, body = self.backend.calls_to('POST')[-1]
        self.assertEqual(path, 'mark/setStudentMarks')
        self.assertEqual(body, {'studentId': self.student['id'], 'subjectName': 'Maths', 'subjectMark': 77})
        self.assertIn('Mark added successfully', message_texts(response))

    def test_duplicate_subjects_allowed(self):
        self.backend.add_mark(self.student['id'], 'Maths', 50)
        self.client.post(self.url, {'subject_name': 'Maths', 'subject_mark': '60', 'decision': 'confirm'})
        self.assertEqual(len(self.backend.marks), 2)

    def test_update_confirmed(self):
        mark = self.backend.add_mark(self.student['id'], 'Maths', 50)
        self.client.post(self.url, {
            'mark_id': mark['id'], 'subject_name': 'Maths', 'subject_mark': '65', 'decision': 'confirm',
        })
        _method, path, _params, body = self.backend.calls_to('PUT')[-1]
        self.assertEqual(path, f"mark/studentMarks/{mark['id']}")
        self.assertEqual(body, {'subjectName': 'Maths', 'subjectMark': 65})
        self.assertEqual(self.backend.marks[mark['id']]['subjectMark'], 65)

    def test_update_asks_first(self):
        mark = self.backend.add_mark(self.student['id'], 'Maths', 50)
        response = self.client.post(self.url, {'mark_id': mark['id'], 'subject_name': 'Maths', 'subject_mark': '65'})
        self.assertContains(response, 'Update Mark?')
        self.assertEqual(self.backend.calls_to('PUT'), [])

    def test_cancel_keeps_draft_and_sends_nothing(self):
        response = self.client.post(self.url, {'subject_name': 'Maths', 'subject_mark': '77', 'decision': 'cancel'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.backend.calls_to('POST'), [])
        self.assertTrue(response.context['form']['open'])
        self.assertEqual(response.context['form']['subject_name'], 'Maths')

    def test_invalid_mark_is_not_sent(self):
        response = self.client.post(self.url, {'subject_name': 'Maths', 'subject_mark': '120', 'decision': 'confirm'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.backend.calls_to('POST'), [])
        self.assertIn('subject_mark', response.context['form']['errors'])

    def test_failed_add(self):
        self.backend.fail('mark/setStudentMarks')
        response = self.client.post(self.url, {'subject_name': 'Maths', 'subject_mark': '77', 'decision': 'confirm'})
        self.assertIn('Failed to add mark', message_texts(response))
        self.assertEqual(self.backend.marks, {})


class MarkDeleteViewTest(FakeBackendMixin, TestCase):
    """Test mark deletion with confirmation"""

    def setUp(self):
        super().setUp()
        self.student = self.backend.add_student()
        self.mark = self.backend.add_mark(self.student['id'], 'Maths', 50)
        self.url = reverse('marks:delete', args=[self.student['id'], self.mark['id']])

    def test_asks_first(self):
        response = self.client.post(self.url)
        self.assertContains(response, 'Delete this mark record? This action cannot be undone.')
        self.assertEqual(self.backend.calls_to('DELETE'), [])

    def test_cancel(self):
        self.client.post(self.url, {'decision': 'cancel'})
        self.assertEqual(self.backend.calls_to('DELETE'), [])
        self.assertIn(self.mark['id'], self.backend.marks)

    def test_confirm(self):
        response = self.client.post(self.url, {'decision': 'confirm'})
        self.assertRedirects(response, reverse('marks:list', args=[self.student['id']]), fetch_redirect_response=False)
        self.assertNotIn(self.mark['id'], self.backend.marks)
        self.assertIn('Mark deleted successfully', message_texts(response))

    def test_failure_keeps_mark(self):
        self.backend.fail('mark/studentMarks')
        response = self.client.post(self.url, {'decision': 'confirm'})
        self.assertIn('Failed to delete mark', message_texts(response))
        self.assertIn(self.mark['id'], self.backend.marks)
