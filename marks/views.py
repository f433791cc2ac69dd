# marks/views.py - Per-student marks page

from django.contrib import messages
from django.shortcuts import redirect, render
from django.urls import reverse
from django.views import View

from roster.api import ApiError
from roster.confirmation import CANCELLED, PENDING, read_decision, request_confirmation
from .serializers import MarkSerializer
from .services import create_mark, delete_mark, load_student_marks, update_mark
from .utils import average_mark, graded_rows


def closed_form():
    return {'open': False, 'mark_id': '', 'subject_name': '', 'subject_mark': '', 'errors': {}}


def form_from_post(data, errors=None):
    return {
        'open': True,
        'mark_id': data.get('mark_id', ''),
        'subject_name': data.get('subject_name', ''),
        'subject_mark': data.get('subject_mark', ''),
        'errors': errors or {},
    }


def marks_url(student_id):
    return reverse('marks:list', kwargs={'student_id': student_id})


def render_marks_page(request, student_id, form=None, status=200):
    """Load student and marks together; on any failure the table is not rendered"""
    context = {
        'student_id': student_id,
        'student': None,
        'rows': [],
        'average': 0,
        'total_subjects': 0,
        'loaded': False,
        'form': form or closed_form(),
    }
    try:
        student, marks = load_student_marks(student_id)
    except ApiError:
        messages.error(request, 'Failed to fetch data')
        return render(request, 'marks/list.html', context, status=status)

    context.update({
        'student': student,
        'marks': marks,
        'rows': graded_rows(marks),
        'average': average_mark(marks),
        'total_subjects': len(marks),
        'loaded': True,
    })

    # ?edit=<mark id> opens the form on that mark, ?add=1 opens it empty
    if form is None:
        edit_id = request.GET.get('edit')
        if edit_id:
            mark = next((m for m in marks if str(m.get('id')) == edit_id), None)
            if mark is not None:
                context['form'] = {
                    'open': True,
                    'mark_id': edit_id,
                    'subject_name': mark.get('subjectName', ''),
                    'subject_mark': str(mark.get('subjectMark', '')),
                    'errors': {},
                }
        elif request.GET.get('add'):
            context['form'] = dict(closed_form(), open=True)

    return render(request, 'marks/list.html', context, status=status)


class StudentMarksView(View):
    """Marks of one student with grades and the average"""

    def get(self, request, *args, **kwargs):
        return render_marks_page(request, kwargs['student_id'])


class MarkSaveView(View):
    """Add a mark, or update one when the form carries mark_id, after confirmation"""
    http_method_names = ['post']

    def post(self, request, *args, **kwargs):
        student_id = kwargs['student_id']
        mark_id = request.POST.get('mark_id', '')
        serializer = MarkSerializer(data=request.POST)
        if not serializer.is_valid():
            return render_marks_page(
                request, student_id,
                form=form_from_post(request.POST, serializer.errors),
                status=400,
            )

        decision = read_decision(request.POST)
        if decision == PENDING:
            return request_confirmation(
                request,
                title='Update Mark?' if mark_id else 'Add New Mark?',
                text='',
                action_url=request.path,
                payload=request.POST,
            )
        if decision == CANCELLED:
            return render_marks_page(request, student_id, form=form_from_post(request.POST))

        subject_name = serializer.validated_data['subjectName']
        subject_mark = serializer.validated_data['subjectMark']
        try:
            if mark_id:
                update_mark(mark_id, subject_name, subject_mark)
                messages.success(request, 'Mark updated successfully')
            else:
                create_mark(student_id, subject_name, subject_mark)
                messages.success(request, 'Mark added successfully')
        except ApiError:
            messages.error(request, f"Failed to {'update' if mark_id else 'add'} mark")
            return render_marks_page(request, student_id, form=form_from_post(request.POST))

        return redirect(marks_url(student_id))


class MarkDeleteView(View):
    """Delete one mark after confirmation"""
    http_method_names = ['post']

    def post(self, request, *args, **kwargs):
        student_id = kwargs['student_id']
        decision = read_decision(request.POST)

        if decision == PENDING:
            return request_confirmation(
                request,
                title='Are you sure?',
                text='Delete this mark record? This action cannot be undone.',
                action_url=request.path,
                payload=request.POST,
                confirm_label='Yes, delete it!',
                tone='warning',
            )

        if decision != CANCELLED:
            try:
                delete_mark(kwargs['mark_id'])
                messages.success(request, 'Mark deleted successfully')
            except ApiError:
                messages.error(request, 'Failed to delete mark')

        return redirect(marks_url(student_id))
