# roster/api.py - Shared transport for the roster REST API

import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

_session = None


class ApiError(Exception):
    """Raised when the roster API is unreachable or reports a failure.

    ``payload`` holds the server's error body when there was one; otherwise
    the message is the transport's own error text.
    """

    def __init__(self, message, payload=None, status_code=None):
        super().__init__(message)
        self.payload = payload
        self.status_code = status_code


class StaleResponseError(ApiError):
    """A response arrived for a different record than the one requested."""


def get_session():
    """Return the process-wide requests session used for every API call"""
    global _session
    if _session is None:
        _session = requests.Session()
        _session.headers.update({'Accept': 'application/json'})
    return _session


def build_url(path):
    return f"{settings.ROSTER_API_BASE_URL.rstrip('/')}/{path.lstrip('/')}"


def _safe_json(response):
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {'data': body}


def _error_message(body, response):
    for key in ('message', 'error'):
        if body.get(key):
            return str(body[key])
    return f"HTTP {response.status_code}"


def call(method, path, params=None, json=None):
    """Issue one API request and return its decoded body.

    Any transport failure, non-2xx status or ``success: false`` body is
    raised as ApiError. No retries.
    """
    url = build_url(path)
    try:
        response = get_session().request(
            method,
            url,
            params=params,
            json=json,
            timeout=settings.ROSTER_API_TIMEOUT,
        )
    except requests.RequestException as e:
        logger.exception(f"{method} {url} failed: {e}")
        raise ApiError(str(e)) from e

    body = _safe_json(response)
    if not response.ok or body.get('success') is False:
        message = _error_message(body, response)
        logger.error(f"{method} {url} returned {response.status_code}: {message}")
        raise ApiError(message, payload=body or None, status_code=response.status_code)

    return body
