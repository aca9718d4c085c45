import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """DRF exception handler that also turns database failures into an opaque 500.

    The traceback is logged server side; the client only ever sees a fixed message.
    """
    response = exception_handler(exc, context)
    if response is not None:
        return response

    if isinstance(exc, DatabaseError):
        view = context.get("view")
        logger.exception("Database error in %s", view.__class__.__name__ if view else "unknown view")
        return Response(
            {"error": "Internal server error"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return None
