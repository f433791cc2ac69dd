# students/directory.py - List query state for the student directory

from urllib.parse import urlencode

from roster.api import ApiError

ASC = 'ASC'
DESC = 'DESC'

DEFAULT_SORT_BY = 'createdAt'
DEFAULT_SORT_ORDER = DESC
DEFAULT_LIMIT = 10

SNAPSHOT_SESSION_KEY = 'students.directory.snapshot'


class DirectoryQuery:
    """Current page, page size, search, standard filter and sort of the directory.

    Instances are never mutated; every transition returns a new query.
    Unset values (empty search, no standard filter) are None.
    """

    def __init__(self, page=1, limit=DEFAULT_LIMIT, search=None, standard=None,
                 sort_by=DEFAULT_SORT_BY, sort_order=DEFAULT_SORT_ORDER):
        self.page = page
        self.limit = limit
        self.search = search or None
        self.standard = standard
        self.sort_by = sort_by
        self.sort_order = sort_order

    def __eq__(self, other):
        if not isinstance(other, DirectoryQuery):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self):
        return f"DirectoryQuery({self.as_dict()!r})"

    def as_dict(self):
        return {
            'page': self.page,
            'limit': self.limit,
            'search': self.search,
            'standard': self.standard,
            'sort_by': self.sort_by,
            'sort_order': self.sort_order,
        }

    def copy(self, **changes):
        values = self.as_dict()
        values.update(changes)
        return DirectoryQuery(**values)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def change_sort(self, field):
        """Flip the order on the same field, else sort the new field DESC. Keeps the page."""
        if field == self.sort_by:
            order = ASC if self.sort_order == DESC else DESC
            return self.copy(sort_order=order)
        return self.copy(sort_by=field, sort_order=DESC)

    def with_page(self, page):
        return self.copy(page=page)

    def with_standard(self, standard):
        return self.copy(standard=standard, page=1)

    def with_limit(self, limit):
        return self.copy(limit=limit, page=1)

    def with_search(self, search):
        return self.copy(search=search or None, page=1)

    def clear_filters(self):
        """Drop search and standard, back to page 1 sorted newest first. Page size is kept."""
        return self.copy(
            search=None,
            standard=None,
            page=1,
            sort_by=DEFAULT_SORT_BY,
            sort_order=DEFAULT_SORT_ORDER,
        )

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def to_api_params(self):
        """Parameters for GET student/getStudents, without unset fields"""
        params = {
            'page': self.page,
            'limit': self.limit,
            'search': self.search,
            'standard': self.standard,
            'sortBy': self.sort_by,
            'sortOrder': self.sort_order,
        }
        return {key: value for key, value in params.items() if value not in (None, '')}

    def to_query_params(self):
        """Parameters for the directory page's own URL"""
        params = {
            'page': self.page,
            'limit': self.limit,
            'search': self.search,
            'standard': self.standard,
            'sort_by': self.sort_by,
            'sort_order': self.sort_order,
        }
        return {key: value for key, value in params.items() if value not in (None, '')}

    def urlencode(self):
        return urlencode(self.to_query_params())


class Listing:
    """One page of the directory as returned by the server"""

    def __init__(self, rows=None, total_records=0, total_pages=0):
        self.rows = rows or []
        self.total_records = total_records
        self.total_pages = total_pages

    @classmethod
    def from_response(cls, body):
        """Build a Listing from a getStudents body; non-numeric totals raise ApiError"""
        try:
            total_records = int(body.get('totalRecords') or 0)
            total_pages = int(body.get('totalPages') or 0)
        except (TypeError, ValueError) as e:
            raise ApiError(f"Malformed student listing totals: {e}", payload=body) from e
        return cls(
            rows=body.get('data') or [],
            total_records=total_records,
            total_pages=total_pages,
        )

    def to_snapshot(self):
        return {
            'rows': self.rows,
            'total_records': self.total_records,
            'total_pages': self.total_pages,
        }

    @classmethod
    def from_snapshot(cls, snapshot):
        if not snapshot:
            return cls()
        return cls(**snapshot)


def remember_listing(session, listing):
    """Keep the last successful page so a failed refetch can keep showing it"""
    session[SNAPSHOT_SESSION_KEY] = listing.to_snapshot()


def last_listing(session):
    return Listing.from_snapshot(session.get(SNAPSHOT_SESSION_KEY))
