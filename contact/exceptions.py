import logging

from django_ratelimit.exceptions import Ratelimited
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Name, email, and message are required"


class StoreError(Exception):
    """Any failure of the underlying storage.

    ``retryable`` is set for connectivity problems and timeouts, where the
    same call may succeed later.
    """

    def __init__(self, message, retryable=False):
        super().__init__(message)
        self.retryable = retryable


class SubmissionNotFound(Exception):
    def __init__(self, pk):
        super().__init__("Contact not found")
        self.pk = pk


class SubmissionInvalid(ValueError):
    """Per-field errors of a rejected submission; ``missing`` lists empty required fields."""

    def __init__(self, errors, missing=()):
        super().__init__(
            MISSING_FIELDS_MESSAGE if missing else "Invalid contact submission"
        )
        self.errors = errors
        self.missing = list(missing)


def _flatten(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _flatten(value)
        return ""
    if isinstance(detail, list):
        return _flatten(detail[0]) if detail else ""
    return str(detail)


def api_exception_handler(exc, context):
    """Render framework errors with the ``{success, error}`` body used by the API."""
    if isinstance(exc, Ratelimited):
        logger.warning(
            "Contact submission rate limited.",
            extra={"path": context["request"].path},
        )
        return Response(
            {"success": False, "error": "Too many submissions, try again later"},
            status=status.HTTP_429_TOO_MANY_REQUESTS,
        )

    response = exception_handler(exc, context)
    if response is None:
        return None

    response.data = {"success": False, "error": _flatten(response.data)}
    return response
