# marks/utils.py

# Lower bound of each grade, highest first
GRADE_THRESHOLDS = [
    (90, 'A'),
    (80, 'B'),
    (70, 'C'),
    (60, 'D'),
]
FAILING_GRADE = 'F'

GRADE_TONES = {
    'A': 'success',
    'B': 'info',
    'C': 'warning',
    'D': 'caution',
    'F': 'danger',
}


def grade_for(subject_mark):
    """
    Letter grade for a mark out of 100: >=90 A, 80-89 B, 70-79 C, 60-69 D, else F.
    """
    for lower_bound, grade in GRADE_THRESHOLDS:
        if subject_mark >= lower_bound:
            return grade
    return FAILING_GRADE


def average_mark(marks):
    """
    Mean subjectMark of the given marks as a two-decimal string ("80.00").

    Returns 0 when there are no marks.
    """
    if not marks:
        return 0
    total = sum(mark['subjectMark'] for mark in marks)
    return f"{total / len(marks):.2f}"


def graded_rows(marks):
    """Marks paired with their grade and display tone, in server order"""
    rows = []
    for mark in marks:
        grade = grade_for(mark['subjectMark'])
        rows.append({
            'mark': mark,
            'grade': grade,
            'tone': GRADE_TONES[grade],
        })
    return rows
