# ledger/responses.py

from rest_framework import status
from rest_framework.response import Response

ERROR_STATUS = {
    "validation_error": status.HTTP_400_BAD_REQUEST,
    "insufficient_stock": status.HTTP_409_CONFLICT,
    "insufficient_funds": status.HTTP_409_CONFLICT,
    "invalid_state_transition": status.HTTP_409_CONFLICT,
    "not_found": status.HTTP_404_NOT_FOUND,
    "internal_error": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def command_error_response(result) -> Response:
    """Map a failed CommandResult onto an HTTP error response."""
    return Response(
        {"detail": result.error, "code": result.error_code},
        status=ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )
