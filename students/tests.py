"""
Comprehensive tests for the students app.
Tests: card id derivation, pager window, directory query state, editor
validation, API client functions, directory/editor/delete views.
"""
from django.contrib.messages import get_messages
from django.http import QueryDict
from django.test import TestCase
from django.urls import reverse

from roster.api import ApiError
from students.directory import ASC, DESC, DirectoryQuery, Listing, last_listing, remember_listing
from students.serializers import (
    EMAIL_ERROR, NAME_ERROR, PHONE_ERROR, STANDARD_ERROR,
    DirectoryQuerySerializer, StudentSerializer, editor_initial,
)
from students.services import create_student, delete_student, list_students, update_student
from students.utils import ELLIPSIS, derive_student_card_id, page_window, showing_range, standard_letter
from test_helpers import FakeBackendMixin


def message_texts(response):
    return [str(message) for message in get_messages(response.wsgi_request)]


def valid_draft(**overrides):
    draft = {
        'name': 'Meera Iyer',
        'roll_number': '23',
        'standard': '5',
        'email': 'meera@example.com',
        'phone': '9123456780',
    }
    draft.update(overrides)
    return draft


# ============================================================================
# Card id derivation
# ============================================================================

class DeriveStudentCardIdTest(TestCase):
    """Test the standard/roll number -> card id rule"""

    def test_example(self):
        self.assertEqual(derive_student_card_id(3, 12), 'C12')

    def test_every_standard(self):
        for standard in range(1, 27):
            for roll in (1, 7, 123):
                self.assertEqual(
                    derive_student_card_id(standard, roll),
                    chr(64 + standard) + str(roll),
                )

    def test_first_and_last_letter(self):
        self.assertEqual(standard_letter(1), 'A')
        self.assertEqual(standard_letter(26), 'Z')

    def test_form_text_values(self):
        self.assertEqual(derive_student_card_id('5', '23'), 'E23')

    def test_missing_value_gives_none(self):
        self.assertIsNone(derive_student_card_id('', 12))
        self.assertIsNone(derive_student_card_id(3, ''))
        self.assertIsNone(derive_student_card_id(None, None))

    def test_standard_outside_alphabet_gives_none(self):
        self.assertIsNone(derive_student_card_id(0, 12))
        self.assertIsNone(derive_student_card_id(27, 12))

    def test_not_a_number_gives_none(self):
        self.assertIsNone(derive_student_card_id('abc', 12))


# ============================================================================
# Pager
# ============================================================================

class PageWindowTest(TestCase):
    """Test which page numbers the pager shows"""

    def test_first_page(self):
        self.assertEqual(page_window(1, 10), [1, 2, 3, 4, 5, ELLIPSIS, 10])

    def test_last_page(self):
        self.assertEqual(page_window(10, 10), [1, ELLIPSIS, 6, 7, 8, 9, 10])

    def test_middle_page(self):
        self.assertEqual(page_window(5, 10), [1, ELLIPSIS, 3, 4, 5, 6, 7, ELLIPSIS, 10])

    def test_window_clamped_at_start(self):
        self.assertEqual(page_window(3, 10), [1, 2, 3, 4, 5, ELLIPSIS, 10])

    def test_window_clamped_at_end(self):
        self.assertEqual(page_window(8, 10), [1, ELLIPSIS, 6, 7, 8, 9, 10])

    def test_no_ellipsis_when_window_touches_first_page(self):
        self.assertEqual(page_window(4, 10), [1, 2, 3, 4, 5, 6, ELLIPSIS, 10])

    def test_no_ellipsis_when_window_touches_last_page(self):
        self.assertEqual(page_window(7, 10), [1, ELLIPSIS, 5, 6, 7, 8, 9, 10])

    def test_few_pages(self):
        self.assertEqual(page_window(2, 3), [1, 2, 3])
        self.assertEqual(page_window(1, 1), [1])

    def test_six_pages(self):
        self.assertEqual(page_window(1, 6), [1, 2, 3, 4, 5, 6])

    def test_no_pages(self):
        self.assertEqual(page_window(1, 0), [])


class ShowingRangeTest(TestCase):
    """Test the "Showing X to Y of Z" numbers"""

    def test_full_page(self):
        self.assertEqual(showing_range(2, 10, 35), (11, 20))

    def test_partial_last_page(self):
        self.assertEqual(showing_range(4, 10, 35), (31, 35))

    def test_empty(self):
        self.assertEqual(showing_range(1, 10, 0), (0, 0))


# ============================================================================
# Directory query state
# ============================================================================

class DirectoryQueryTest(TestCase):
    """Test sort, filter and pagination transitions"""

    def test_defaults(self):
        query = DirectoryQuery()
        self.assertEqual(query.page, 1)
        self.assertEqual(query.limit, 10)
        self.assertEqual(query.sort_by, 'createdAt')
        self.assertEqual(query.sort_order, DESC)

    def test_change_sort_same_field_twice(self):
        query = DirectoryQuery(sort_by='name', sort_order=DESC)
        first = query.change_sort('name')
        second = first.change_sort('name')
        self.assertEqual((first.sort_by, first.sort_order), ('name', ASC))
        self.assertEqual((second.sort_by, second.sort_order), ('name', DESC))

    def test_change_sort_new_field_is_desc(self):
        query = DirectoryQuery(sort_by='name', sort_order=ASC)
        changed = query.change_sort('rollNumber')
        self.assertEqual(changed.sort_by, 'rollNumber')
        self.assertEqual(changed.sort_order, DESC)

    def test_change_sort_keeps_page(self):
        query = DirectoryQuery(page=4)
        self.assertEqual(query.change_sort('name').page, 4)

    def test_standard_filter_resets_page(self):
        query = DirectoryQuery(page=4).with_standard(7)
        self.assertEqual(query.page, 1)
        self.assertEqual(query.standard, 7)

    def test_page_size_resets_page(self):
        query = DirectoryQuery(page=4).with_limit(50)
        self.assertEqual(query.page, 1)
        self.assertEqual(query.limit, 50)

    def test_search_resets_page(self):
        query = DirectoryQuery(page=3).with_search('meera')
        self.assertEqual(query.page, 1)
        self.assertEqual(query.search, 'meera')

    def test_transitions_do_not_mutate(self):
        query = DirectoryQuery(page=4)
        query.with_standard(2)
        query.change_sort('name')
        self.assertEqual(query, DirectoryQuery(page=4))

    def test_clear_filters(self):
        query = DirectoryQuery(page=3, limit=50, search='x', standard=4, sort_by='name', sort_order=ASC)
        cleared = query.clear_filters()
        self.assertEqual(cleared, DirectoryQuery(page=1, limit=50))

    def test_api_params_strip_unset(self):
        params = DirectoryQuery().to_api_params()
        self.assertEqual(params, {'page': 1, 'limit': 10, 'sortBy': 'createdAt', 'sortOrder': 'DESC'})

    def test_api_params_with_filters(self):
        params = DirectoryQuery(search='ram', standard=3).to_api_params()
        self.assertEqual(params['search'], 'ram')
        self.assertEqual(params['standard'], 3)

    def test_urlencode_round_trips_through_serializer(self):
        query = DirectoryQuery(page=2, limit=20, search='ram', standard=3, sort_by='name', sort_order=ASC)
        parsed = DirectoryQuerySerializer(data=QueryDict(query.urlencode())).to_query()
        self.assertEqual(parsed, query)


class DirectoryQuerySerializerTest(TestCase):
    """Test parsing of directory GET parameters"""

    def parse(self, query_string):
        return DirectoryQuerySerializer(data=QueryDict(query_string)).to_query()

    def test_empty_gives_defaults(self):
        self.assertEqual(self.parse(''), DirectoryQuery())

    def test_bad_values_fall_back_individually(self):
        query = self.parse('page=zero&limit=7&standard=19&sort_by=email&sort_order=UP&search=ravi')
        self.assertEqual(query, DirectoryQuery(search='ravi'))

    def test_blank_standard_is_unset(self):
        self.assertIsNone(self.parse('standard=').standard)

    def test_whitespace_search_is_unset(self):
        self.assertIsNone(self.parse('search=%20%20').search)


class ListingSnapshotTest(TestCase):
    """Test keeping the last good page"""

    def test_remember_and_restore(self):
        session = {}
        remember_listing(session, Listing(rows=[{'id': '1'}], total_records=1, total_pages=1))
        restored = last_listing(session)
        self.assertEqual(restored.rows, [{'id': '1'}])
        self.assertEqual(restored.total_pages, 1)

    def test_nothing_remembered(self):
        restored = last_listing({})
        self.assertEqual(restored.rows, [])
        self.assertEqual(restored.total_records, 0)

    def test_non_numeric_totals_raise_api_error(self):
        with self.assertRaises(ApiError):
            Listing.from_response({'success': True, 'data': [], 'totalRecords': 'many', 'totalPages': 1})


# ============================================================================
# Editor validation
# ============================================================================

class StudentSerializerTest(TestCase):
    """Test the editor's field rules"""

    def errors_for(self, **overrides):
        serializer = StudentSerializer(data=valid_draft(**overrides))
        serializer.is_valid()
        return serializer.errors

    def test_valid_draft(self):
        serializer = StudentSerializer(data=valid_draft())
        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.validated_data['rollNumber'], 23)
        self.assertEqual(serializer.validated_data['standard'], 5)
        self.assertEqual(serializer.validated_data['studentCardId'], 'E23')

    def test_empty_name(self):
        self.assertEqual(self.errors_for(name='')['name'], [NAME_ERROR])

    def test_name_too_long(self):
        self.assertEqual(self.errors_for(name='a' * 257)['name'], [NAME_ERROR])

    def test_name_at_limit(self):
        self.assertNotIn('name', self.errors_for(name='a' * 256))

    def test_bad_email(self):
        self.assertEqual(self.errors_for(email='bad')['email'], [EMAIL_ERROR])

    def test_short_email_ok(self):
        self.assertNotIn('email', self.errors_for(email='a@b.co'))

    def test_phone_wrong_length(self):
        self.assertEqual(self.errors_for(phone='12345')['phone'], [PHONE_ERROR])

    def test_phone_bad_leading_digit(self):
        self.assertEqual(self.errors_for(phone='5123456789')['phone'], [PHONE_ERROR])

    def test_phone_valid(self):
        self.assertNotIn('phone', self.errors_for(phone='6123456789'))

    def test_phone_with_letters(self):
        self.assertIn('phone', self.errors_for(phone='98765abcde'))

    def test_phone_non_ascii_digits(self):
        self.assertEqual(self.errors_for(phone='6\u0661\u0662\u0663\u0664\u0665\u0666\u0667\u0668\u0669')['phone'], [PHONE_ERROR])

    def test_standard_out_of_range(self):
        self.assertEqual(self.errors_for(standard='0')['standard'], [STANDARD_ERROR])
        self.assertEqual(self.errors_for(standard='27')['standard'], [STANDARD_ERROR])

    def test_standard_boundaries(self):
        self.assertNotIn('standard', self.errors_for(standard='1'))
        self.assertNotIn('standard', self.errors_for(standard='26'))

    def test_standard_not_numeric(self):
        self.assertEqual(self.errors_for(standard='five')['standard'], [STANDARD_ERROR])

    def test_roll_number_required(self):
        self.assertIn('roll_number', self.errors_for(roll_number=''))

    def test_only_offending_fields_flagged(self):
        errors = self.errors_for(email='bad', phone='1')
        self.assertEqual(set(errors), {'email', 'phone'})

    def test_card_id_from_input_is_ignored(self):
        serializer = StudentSerializer(data=valid_draft(student_card_id='Z99'))
        self.assertTrue(serializer.is_valid(), serializer.errors)
        self.assertEqual(serializer.validated_data['studentCardId'], 'E23')


class EditorInitialTest(TestCase):
    """Test form values for an existing record"""

    def test_card_id_is_rederived(self):
        record = {
            'id': 'abc', 'name': 'Kiran', 'rollNumber': 4, 'standard': 2,
            'studentCardId': 'OLD', 'email': 'k@example.com', 'phone': '9000000000',
        }
        initial = editor_initial(record)
        self.assertEqual(initial['student_card_id'], 'B4')
        self.assertEqual(initial['roll_number'], 4)

    def test_missing_fields_are_blank(self):
        initial = editor_initial({'name': 'Kiran'})
        self.assertEqual(initial['email'], '')
        self.assertEqual(initial['student_card_id'], '')


# ============================================================================
# API client functions
# ============================================================================

class StudentServicesTest(FakeBackendMixin, TestCase):
    """Test the student endpoint wrappers against the in-memory API"""

    def test_list_sends_only_set_parameters(self):
        list_students(DirectoryQuery())
        method, path, params, _body = self.backend.calls[-1]
        self.assertEqual((method, path), ('GET', 'student/getStudents'))
        self.assertEqual(params, {'page': '1', 'limit': '10', 'sortBy': 'createdAt', 'sortOrder': 'DESC'})

    def test_list_uses_server_totals(self):
        for roll in range(1, 26):
            self.backend.add_student(rollNumber=roll)
        listing = list_students(DirectoryQuery(limit=10, page=3))
        self.assertEqual(len(listing.rows), 5)
        self.assertEqual(listing.total_records, 25)
        self.assertEqual(listing.total_pages, 3)

    def test_create_never_sends_id(self):
        create_student({'id': 'x', 'name': 'A', 'rollNumber': 1, 'standard': 1})
        _method, _path, _params, body = self.backend.calls[-1]
        self.assertNotIn('id', body)

    def test_update_merges_id(self):
        student = self.backend.add_student()
        update_student(student['id'], {'name': 'Renamed'})
        method, path, params, body = self.backend.calls[-1]
        self.assertEqual((method, path), ('PUT', 'student/updateStudentInfo'))
        self.assertEqual(params, {'id': student['id']})
        self.assertEqual(body['id'], student['id'])

    def test_server_failure_raises(self):
        self.backend.fail('student/')
        with self.assertRaises(ApiError) as ctx:
            list_students(DirectoryQuery())
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.payload['success'], False)

    def test_transport_failure_raises(self):
        self.backend.unreachable = True
        with self.assertRaises(ApiError):
            delete_student('anything')

    def test_not_found_raises(self):
        with self.assertRaises(ApiError) as ctx:
            delete_student('missing')
        self.assertEqual(str(ctx.exception), 'Student not found')


# ============================================================================
# Views
# ============================================================================

class StudentURLResolutionTest(TestCase):
    """Test that all student URLs resolve correctly"""

    def test_student_list_url(self):
        self.assertEqual(reverse('students:list'), '/')

    def test_student_create_url(self):
        self.assertEqual(reverse('students:create'), '/students/create/')

    def test_student_update_url(self):
        self.assertEqual(reverse('students:update', args=['abc']), '/students/abc/edit/')

    def test_student_delete_url(self):
        self.assertEqual(reverse('students:delete', args=['abc']), '/students/abc/delete/')


class StudentListViewTest(FakeBackendMixin, TestCase):
    """Test the directory page"""

    def test_lists_students(self):
        self.backend.add_student(name='Asha')
        self.backend.add_student(name='Bala')
        response = self.client.get(reverse('students:list'))
        self.assertEqual(response.status_code, 200)
        names = [row['name'] for row in response.context['students']]
        self.assertEqual(names, ['Bala', 'Asha'])  # newest first
        self.assertContains(response, 'Showing 1 to 2 of 2 students')

    def test_query_string_reaches_api(self):
        self.client.get(reverse('students:list'), {
            'search': 'ram', 'standard': '4', 'sort_by': 'name', 'sort_order': 'ASC', 'limit': '20', 'page': '2',
        })
        _method, _path, params, _body = self.backend.calls_to('GET', 'student/getStudents')[-1]
        self.assertEqual(params, {
            'search': 'ram', 'standard': '4', 'sortBy': 'name', 'sortOrder': 'ASC', 'limit': '20', 'page': '2',
        })

    def test_sort_links_keep_page(self):
        for roll in range(1, 31):
            self.backend.add_student(rollNumber=roll)
        response = self.client.get(reverse('students:list'), {'page': '2'})
        name_link = next(link for link in response.context['sort_links'] if link['field'] == 'name')
        self.assertIn('page=2', name_link['query'])
        self.assertIn('sort_order=DESC', name_link['query'])

    def test_filter_links_reset_page(self):
        response = self.client.get(reverse('students:list'), {'page': '3'})
        for option in response.context['standard_options'] + response.context['page_size_options']:
            self.assertIn('page=1', option['query'])

    def test_pager_window(self):
        for roll in range(1, 101):
            self.backend.add_student(rollNumber=roll)
        response = self.client.get(reverse('students:list'), {'page': '5'})
        numbers = [page.get('number') for page in response.context['pages']]
        self.assertEqual(numbers, [1, None, 3, 4, 5, 6, 7, None, 10])
        self.assertTrue(response.context['has_previous'])
        self.assertTrue(response.context['has_next'])

    def test_failed_fetch_keeps_previous_rows(self):
        self.backend.add_student(name='Asha')
        self.client.get(reverse('students:list'))
        self.backend.fail('student/getStudents')
        response = self.client.get(reverse('students:list'), {'page': '2'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual([row['name'] for row in response.context['students']], ['Asha'])
        self.assertIn('Failed to fetch students', message_texts(response))

    def test_failed_first_fetch_renders_empty(self):
        self.backend.unreachable = True
        response = self.client.get(reverse('students:list'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['students'], [])

    def test_malformed_totals_show_fetch_error(self):
        self.backend.add_student(name='Asha')
        list_students = self.backend.list_students

        def garbled_list_students(params, body):
            status, payload = list_students(params, body)
            payload['totalRecords'] = 'many'
            return status, payload

        self.backend.list_students = garbled_list_students
        response = self.client.get(reverse('students:list'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['students'], [])
        self.assertIn('Failed to fetch students', message_texts(response))


class StudentEditorViewTest(FakeBackendMixin, TestCase):
    """Test create and update through the editor"""

    def test_create_then_list_has_derived_card_id(self):
        response = self.client.post(reverse('students:create'), valid_draft(standard='5', roll_number='23'))
        self.assertRedirects(response, reverse('students:list'), fetch_redirect_response=False)
        self.assertIn('New student created successfully.', message_texts(response))

        listing = list_students(DirectoryQuery())
        self.assertEqual(len(listing.rows), 1)
        self.assertEqual(listing.rows[0]['studentCardId'], 'E23')

    def test_invalid_draft_never_reaches_api(self):
        response = self.client.post(reverse('students:create'), valid_draft(phone='12345', email='bad'))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.backend.calls, [])
        self.assertIn('phone', response.context['errors'])
        self.assertIn('email', response.context['errors'])
        self.assertNotIn('name', response.context['errors'])

    def test_failed_create_keeps_draft(self):
        self.backend.fail('student/setStudentInfo')
        response = self.client.post(reverse('students:create'), valid_draft(name='Keep Me'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['draft']['name'], 'Keep Me')
        self.assertEqual(response.context['draft']['student_card_id'], 'E23')
        self.assertIn('Failed to create student', message_texts(response))

    def test_redirect_restores_directory_query(self):
        response = self.client.post(reverse('students:create'), valid_draft(next='page=2&limit=20'))
        self.assertRedirects(response, '/?page=2&limit=20', fetch_redirect_response=False)

    def test_edit_form_rederives_card_id(self):
        student = self.backend.add_student(standard=2, rollNumber=4, studentCardId='STALE')
        response = self.client.get(reverse('students:update', args=[student['id']]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['draft']['student_card_id'], 'B4')
        self.assertTrue(response.context['is_edit'])

    def test_update(self):
        student = self.backend.add_student(standard=2, rollNumber=4)
        response = self.client.post(
            reverse('students:update', args=[student['id']]),
            valid_draft(standard='3', roll_number='4'),
        )
        self.assertRedirects(response, reverse('students:list'), fetch_redirect_response=False)
        self.assertEqual(self.backend.students[student['id']]['studentCardId'], 'C4')
        self.assertIn('Student information updated successfully.', message_texts(response))

    def test_edit_unknown_student_redirects(self):
        response = self.client.get(reverse('students:update', args=['missing']))
        self.assertRedirects(response, reverse('students:list'), fetch_redirect_response=False)
        self.assertIn('Failed to load student', message_texts(response))


class StudentDeleteViewTest(FakeBackendMixin, TestCase):
    """Test the confirm-then-delete flow"""

    def setUp(self):
        super().setUp()
        self.student = self.backend.add_student(name='Asha Rao')
        self.url = reverse('students:delete', args=[self.student['id']])

    def test_first_post_asks_for_confirmation(self):
        response = self.client.post(self.url, {'name': 'Asha Rao'})
        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Delete Asha Rao? This action cannot be undone.')
        self.assertEqual(self.backend.calls_to('DELETE'), [])

    def test_cancel_issues_no_request(self):
        response = self.client.post(self.url, {'name': 'Asha Rao', 'decision': 'cancel'})
        self.assertRedirects(response, reverse('students:list'), fetch_redirect_response=False)
        self.assertEqual(self.backend.calls_to('DELETE'), [])
        self.assertIn(self.student['id'], self.backend.students)

    def test_confirm_removes_from_next_listing(self):
        query = DirectoryQuery()
        before = list_students(query)
        self.assertEqual(len(before.rows), 1)

        response = self.client.post(self.url, {'decision': 'confirm', 'next': 'page=1'})
        self.assertRedirects(response, '/?page=1', fetch_redirect_response=False)
        self.assertIn('Student has been deleted.', message_texts(response))

        after = list_students(query)
        self.assertEqual(after.rows, [])

    def test_failed_delete_keeps_student(self):
        self.backend.fail('student/deleteStudentById')
        response = self.client.post(self.url, {'decision': 'confirm'})
        self.assertIn('Failed to delete student', message_texts(response))
        self.assertIn(self.student['id'], self.backend.students)

    def test_get_not_allowed(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, 405)
