# marks/serializers.py - Add/edit mark form validation

from rest_framework import serializers

SUBJECT_NAME_ERROR = "Subject name is required."
SUBJECT_MARK_ERROR = "Mark must be a whole number between 0 and 100."


def _messages(text, *keys):
    return {key: text for key in keys}


class MarkSerializer(serializers.Serializer):
    """Mark draft from the add/edit form; the mark arrives as text and leaves as an int"""
    id = serializers.CharField(read_only=True)
    subject_name = serializers.CharField(
        source='subjectName',
        error_messages=_messages(SUBJECT_NAME_ERROR, 'required', 'blank', 'null'),
    )
    subject_mark = serializers.IntegerField(
        source='subjectMark',
        min_value=0,
        max_value=100,
        error_messages=_messages(SUBJECT_MARK_ERROR, 'invalid', 'required', 'null', 'min_value', 'max_value', 'max_string_length'),
    )
