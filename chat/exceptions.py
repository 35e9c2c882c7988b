from __future__ import annotations

import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .services.relay import RelayError
from .store import InvalidInput, NotFound, StorageUnavailable

logger = logging.getLogger(__name__)


def _first_error(detail) -> str:
    if isinstance(detail, dict):
        for field, value in detail.items():
            message = _first_error(value)
            return message if field == "non_field_errors" else f"{field}: {message}"
    if isinstance(detail, list) and detail:
        return _first_error(detail[0])
    return str(detail)


def api_exception_handler(exc, context):
    """Render every API failure as {"error": "..."} with a status matching its kind."""
    if isinstance(exc, RelayError):
        return Response({"error": str(exc)}, status=exc.status_code)
    if isinstance(exc, NotFound):
        return Response({"error": str(exc)}, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, StorageUnavailable):
        return Response({"error": str(exc)}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
    if isinstance(exc, InvalidInput):
        return Response({"error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

    response = exception_handler(exc, context)
    if response is None:
        logger.error("Unhandled API error: %s", exc, exc_info=exc)
        return Response({"error": "Internal server error"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    if isinstance(exc, exceptions.ValidationError):
        response.data = {"error": _first_error(exc.detail), "fields": exc.detail}
    elif isinstance(response.data, dict) and "detail" in response.data:
        response.data = {"error": str(response.data["detail"])}
    return response
