# students/serializers.py - Editor validation and directory query parsing

import re

from django.conf import settings
from rest_framework import serializers
from rest_framework.fields import SkipField

from .directory import ASC, DESC, DEFAULT_SORT_BY, DEFAULT_SORT_ORDER, DirectoryQuery
from .utils import derive_student_card_id

EMAIL_RE = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
PHONE_RE = re.compile(r'^[6-9][0-9]{9}$')

NAME_MAX_LENGTH = 256
STANDARD_MIN = 1
STANDARD_MAX = 26

NAME_ERROR = "Name must be less than 256 characters."
EMAIL_ERROR = "Invalid email address."
PHONE_ERROR = "Phone must be a valid 10-digit number starting with 6-9."
STANDARD_ERROR = "Standard must be between 1 and 26."
ROLL_NUMBER_ERROR = "Roll number must be a positive whole number."

# (form field, API field) pairs shown in the editor
EDITOR_FIELDS = [
    ('name', 'name'),
    ('roll_number', 'rollNumber'),
    ('standard', 'standard'),
    ('student_card_id', 'studentCardId'),
    ('email', 'email'),
    ('phone', 'phone'),
]


def _messages(text, *keys):
    return {key: text for key in keys}


class StudentSerializer(serializers.Serializer):
    """Student draft as submitted from the editor.

    Form field names are snake_case; ``source`` maps each one to the
    camelCase name the roster API uses, so ``validated_data`` can be sent
    as-is. The card id is never read from input.
    """

    id = serializers.CharField(read_only=True)
    name = serializers.CharField(
        max_length=NAME_MAX_LENGTH,
        trim_whitespace=False,
        error_messages=_messages(NAME_ERROR, 'required', 'blank', 'null', 'max_length'),
    )
    roll_number = serializers.IntegerField(
        source='rollNumber',
        min_value=1,
        error_messages=_messages(ROLL_NUMBER_ERROR, 'invalid', 'required', 'null', 'min_value', 'max_string_length'),
    )
    standard = serializers.IntegerField(
        min_value=STANDARD_MIN,
        max_value=STANDARD_MAX,
        error_messages=_messages(STANDARD_ERROR, 'invalid', 'required', 'null', 'min_value', 'max_value', 'max_string_length'),
    )
    student_card_id = serializers.CharField(source='studentCardId', read_only=True)
    email = serializers.CharField(error_messages=_messages(EMAIL_ERROR, 'required', 'blank', 'null'))
    phone = serializers.CharField(error_messages=_messages(PHONE_ERROR, 'required', 'blank', 'null'))

    def validate_email(self, value):
        if not EMAIL_RE.match(value):
            raise serializers.ValidationError(EMAIL_ERROR)
        return value

    def validate_phone(self, value):
        if not PHONE_RE.match(value):
            raise serializers.ValidationError(PHONE_ERROR)
        return value

    def validate(self, attrs):
        """The card id is always re-derived from standard and roll number"""
        attrs['studentCardId'] = derive_student_card_id(attrs['standard'], attrs['rollNumber'])
        return attrs


def editor_initial(record):
    """Editor values for an existing API record.

    The stored card id is replaced whenever standard and roll number allow
    deriving one.
    """
    initial = {}
    for form_name, api_name in EDITOR_FIELDS:
        value = record.get(api_name)
        initial[form_name] = '' if value is None else value
    derived = derive_student_card_id(initial['standard'], initial['roll_number'])
    if derived:
        initial['student_card_id'] = derived
    return initial


def editor_draft(data):
    """Echo of a submitted editor form, card id recomputed, for re-rendering"""
    draft = {form_name: data.get(form_name, '') for form_name, _api_name in EDITOR_FIELDS}
    draft['student_card_id'] = derive_student_card_id(draft['standard'], draft['roll_number']) or ''
    return draft


class DirectoryQuerySerializer(serializers.Serializer):
    """Serializer for student directory query parameters"""

    page = serializers.IntegerField(min_value=1, required=False, default=1)
    limit = serializers.ChoiceField(choices=[], required=False)
    search = serializers.CharField(required=False, allow_blank=True, default='')
    standard = serializers.ChoiceField(choices=[], required=False, allow_blank=True)
    sort_by = serializers.ChoiceField(choices=[], required=False, default=DEFAULT_SORT_BY)
    sort_order = serializers.ChoiceField(choices=[ASC, DESC], required=False, default=DEFAULT_SORT_ORDER)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['limit'].choices = [str(size) for size in settings.ROSTER_PAGE_SIZES]
        self.fields['standard'].choices = [str(std) for std in settings.ROSTER_FILTER_STANDARDS]
        self.fields['sort_by'].choices = [field for field, _label in settings.ROSTER_SORT_FIELDS]

    def clean_fields(self):
        """Validate each parameter on its own; bad or missing ones are left out"""
        values = {}
        for name, field in self.fields.items():
            try:
                values[name] = field.run_validation(field.get_value(self.initial_data))
            except (serializers.ValidationError, SkipField):
                continue
        return values

    def to_query(self):
        values = self.clean_fields()
        standard = values.get('standard')
        return DirectoryQuery(
            page=values.get('page', 1),
            limit=int(values.get('limit', settings.ROSTER_DEFAULT_PAGE_SIZE)),
            search=(values.get('search') or '').strip() or None,
            standard=int(standard) if standard else None,
            sort_by=values.get('sort_by', DEFAULT_SORT_BY),
            sort_order=values.get('sort_order', DEFAULT_SORT_ORDER),
        )
