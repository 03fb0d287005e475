# backend/core/exceptions.py
"""
Error taxonomy shared by the content store, the renderer and the admin surface.

4xx errors are expected and carry a message for the caller; 5xx errors are
logged here and answered with a generic body so internals never leak.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Internal server error"


class ContentError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Content error"

    def __init__(self, message=None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotFound(ContentError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Unauthorized(ContentError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Admin session required"


class ValidationError(ContentError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class Conflict(ContentError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class StoreError(ContentError):
    default_message = "Content store failure"


class RenderError(ContentError):
    default_message = "Rendering failed"


def error_payload(message, details=None):
    payload = {"success": False, "error": message}
    if details:
        payload["details"] = details
    return payload


def api_exception_handler(exc, context):
    """
    DRF EXCEPTION_HANDLER: reshapes domain and DRF errors into
    {"success": false, "error": ..., "details": ...}.
    """
    if isinstance(exc, ContentError):
        if exc.status_code >= 500:
            view = context.get("view")
            logger.error("%s in %s: %s", type(exc).__name__, type(view).__name__ if view else "?", exc,
                         exc_info=exc)
            return Response(error_payload(GENERIC_SERVER_ERROR), status=exc.status_code)
        return Response(error_payload(exc.message, exc.details), status=exc.status_code)

    response = exception_handler(exc, context)
    if response is None:
        # unhandled: let Django's 500 machinery log it
        return None

    data = response.data
    if isinstance(data, dict) and "detail" in data and len(data) == 1:
        response.data = error_payload(str(data["detail"]))
    else:
        response.data = error_payload("Invalid input", data)
    return response
