"""
Error taxonomy shared by services and endpoints.

Services raise these instead of HTTPException so they stay usable outside a
request; ``gymdesk.main`` maps them to HTTP responses.
"""
from fastapi import status


class GymDeskError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    # Message returned to clients when the detail must not leak
    public_detail = None

    def __init__(self, detail: str = "An error occurred"):
        super().__init__(detail)
        self.detail = detail


class ValidationError(GymDeskError):
    """Missing or malformed input, detected before any mutation."""
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(GymDeskError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(GymDeskError):
    """Unique constraint violation or a delete blocked by dependent rows."""
    status_code = status.HTTP_409_CONFLICT


class DispatchError(GymDeskError):
    """The messaging gateway call failed."""
    status_code = status.HTTP_502_BAD_GATEWAY
    public_detail = "Failed to send WhatsApp message"


class UpstreamError(GymDeskError):
    """Media store or database unavailable."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    public_detail = "Service temporarily unavailable"
