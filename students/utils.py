# students/utils.py

import string

ELLIPSIS = None
WINDOW_SIZE = 5


def standard_letter(standard):
    """
    Maps a standard to its card letter: 1 -> A, 2 -> B, ... 26 -> Z.
    """
    return string.ascii_uppercase[int(standard) - 1]


def _as_int(value):
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def derive_student_card_id(standard, roll_number):
    """
    Builds the student card id from standard and roll number, e.g. (3, 12) -> "C12".

    Returns None until both values are present and the standard maps to a letter.
    """
    standard = _as_int(standard)
    roll = _as_int(roll_number)
    if standard is None or roll is None:
        return None
    if not 1 <= standard <= 26:
        return None
    return f"{standard_letter(standard)}{roll}"


def page_window(current_page, total_pages):
    """
    Page numbers to render for the pager. ELLIPSIS (None) marks a gap.

    Page 1 and the last page are always present; up to five pages around
    the current one are shown in between.
    """
    if total_pages < 1:
        return []
    current_page = min(max(current_page, 1), total_pages)

    if total_pages <= WINDOW_SIZE:
        start, end = 1, total_pages
    elif current_page <= 3:
        start, end = 1, WINDOW_SIZE
    elif current_page >= total_pages - 2:
        start, end = total_pages - WINDOW_SIZE + 1, total_pages
    else:
        start, end = current_page - 2, current_page + 2

    pages = []
    if start > 1:
        pages.append(1)
        if start > 2:
            pages.append(ELLIPSIS)
    pages.extend(range(start, end + 1))
    if end < total_pages:
        if end < total_pages - 1:
            pages.append(ELLIPSIS)
        pages.append(total_pages)
    return pages


def showing_range(page, limit, total_records):
    """
    (first, last) row numbers of the current page for the "Showing X to Y of Z" line.
    """
    if total_records <= 0:
        return 0, 0
    first = (page - 1) * limit + 1
    last = min(page * limit, total_records)
    if first > last:
        return 0, 0
    return first, last
