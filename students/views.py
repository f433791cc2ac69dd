# students/views.py - Directory, editor and delete views

from django.conf import settings
from django.contrib import messages
from django.shortcuts import redirect
from django.urls import reverse
from django.views import View
from django.views.generic import TemplateView

from roster.api import ApiError
from roster.confirmation import (
    CANCELLED, PENDING, read_decision, request_confirmation,
)
from .directory import last_listing, remember_listing
from .serializers import (
    DirectoryQuerySerializer, StudentSerializer, editor_draft, editor_initial,
)
from .services import (
    create_student, delete_student, get_student, list_students, update_student,
)
from .utils import ELLIPSIS, page_window, showing_range


def directory_url(query_string=''):
    """Directory URL with the operator's list query restored"""
    url = reverse('students:list')
    return f"{url}?{query_string}" if query_string else url


class StudentListView(TemplateView):
    """Student directory: search, standard filter, sort and pagination against the API"""
    template_name = 'students/list.html'

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        query = DirectoryQuerySerializer(data=self.request.GET).to_query()

        try:
            listing = list_students(query)
            remember_listing(self.request.session, listing)
        except ApiError:
            # Keep showing whatever was on screen before the failed refetch
            messages.error(self.request, 'Failed to fetch students')
            listing = last_listing(self.request.session)

        pages = []
        for number in page_window(query.page, listing.total_pages):
            if number is ELLIPSIS:
                pages.append({'ellipsis': True})
            else:
                pages.append({
                    'number': number,
                    'query': query.with_page(number).urlencode(),
                    'current': number == query.page,
                })

        sort_links = [
            {
                'field': field,
                'label': label,
                'query': query.change_sort(field).urlencode(),
                'active': field == query.sort_by,
            }
            for field, label in settings.ROSTER_SORT_FIELDS
        ]

        first, last = showing_range(query.page, query.limit, listing.total_records)
        search_hidden = query.with_search(None).to_query_params()

        context.update({
            'students': listing.rows,
            'total_records': listing.total_records,
            'total_pages': listing.total_pages,
            'query': query,
            'query_string': query.urlencode(),
            'pages': pages,
            'has_previous': query.page > 1,
            'has_next': query.page < listing.total_pages,
            'previous_query': query.with_page(query.page - 1).urlencode(),
            'next_query': query.with_page(query.page + 1).urlencode(),
            'sort_links': sort_links,
            'search_hidden_fields': sorted(search_hidden.items()),
            'standard_options': [
                {'value': std, 'query': query.with_standard(std).urlencode(), 'selected': std == query.standard}
                for std in settings.ROSTER_FILTER_STANDARDS
            ],
            'all_standards_query': query.with_standard(None).urlencode(),
            'page_size_options': [
                {'value': size, 'query': query.with_limit(size).urlencode(), 'selected': size == query.limit}
                for size in settings.ROSTER_PAGE_SIZES
            ],
            'clear_filters_query': query.clear_filters().urlencode(),
            'showing_first': first,
            'showing_last': last,
        })
        return context


class StudentEditorView(TemplateView):
    """Shared create/update flow: validate the draft, call the API, go back to the directory"""
    template_name = 'students/form.html'
    is_edit = False

    def get_return_query(self):
        return self.request.GET.get('next') or self.request.POST.get('next', '')

    def render_editor(self, draft, errors=None, status=200):
        context = self.get_context_data(
            draft=draft,
            errors=errors or {},
            is_edit=self.is_edit,
            return_query=self.get_return_query(),
            cancel_url=directory_url(self.get_return_query()),
        )
        return self.render_to_response(context, status=status)

    def submit(self, validated_data):
        raise NotImplementedError

    def post(self, request, *args, **kwargs):
        serializer = StudentSerializer(data=request.POST)
        draft = editor_draft(request.POST)
        if not serializer.is_valid():
            return self.render_editor(draft, errors=serializer.errors, status=400)

        action = 'update' if self.is_edit else 'create'
        try:
            self.submit(serializer.validated_data)
        except ApiError:
            messages.error(request, f'Failed to {action} student')
            return self.render_editor(draft)

        if self.is_edit:
            messages.success(request, 'Student information updated successfully.')
        else:
            messages.success(request, 'New student created successfully.')
        return redirect(directory_url(self.get_return_query()))


class StudentCreateView(StudentEditorView):
    """Create a new student"""

    def get(self, request, *args, **kwargs):
        return self.render_editor(editor_draft({}))

    def submit(self, validated_data):
        return create_student(validated_data)


class StudentUpdateView(StudentEditorView):
    """Update an existing student"""
    is_edit = True

    def get(self, request, *args, **kwargs):
        try:
            record = get_student(kwargs['pk'])
        except ApiError:
            messages.error(request, 'Failed to load student')
            return redirect(directory_url(self.get_return_query()))
        if not record:
            messages.error(request, 'Student not found!')
            return redirect(directory_url(self.get_return_query()))
        return self.render_editor(editor_initial(record))

    def submit(self, validated_data):
        return update_student(self.kwargs['pk'], validated_data)


class StudentDeleteView(View):
    """Delete a student after the operator confirms"""
    http_method_names = ['post']

    def post(self, request, *args, **kwargs):
        return_query = request.POST.get('next', '')
        decision = read_decision(request.POST)

        if decision == PENDING:
            name = request.POST.get('name') or 'this student'
            return request_confirmation(
                request,
                title='Are you sure?',
                text=f'Delete {name}? This action cannot be undone.',
                action_url=request.path,
                payload=request.POST,
                confirm_label='Yes, delete it!',
                tone='warning',
            )

        if decision == CANCELLED:
            return redirect(directory_url(return_query))

        try:
            delete_student(kwargs['pk'])
            messages.success(request, 'Student has been deleted.')
        except ApiError:
            messages.error(request, 'Failed to delete student')

        return redirect(directory_url(return_query))
