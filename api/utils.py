"""
Utility functions for API operations.
"""

import traceback
from fastapi.responses import JSONResponse

from .models import ErrorResponse
from .exceptions import APIException
from core.logger import UnifiedLogger
from core.settings.store import get_general_settings

# Create API logger
logger = UnifiedLogger(tag="api")


def _debug_enabled() -> bool:
    debug_setting = get_general_settings().get("debug")
    return bool(debug_setting and getattr(debug_setting, "value", False))


def create_error_response(exception: Exception) -> JSONResponse:
    """
    Create a standardized error response from an exception.

    Args:
        exception: The exception that occurred

    Returns:
        JSONResponse with standardized error format
    """
    if isinstance(exception, APIException):
        error_response = ErrorResponse(
            error=exception.error_type,
            message=exception.detail,
            details=exception.details
        )
        return JSONResponse(
            status_code=exception.status_code,
            content=error_response.model_dump()
        )

    if _debug_enabled():
        error_response = ErrorResponse(
            error="InternalServerError",
            message=str(exception),
            details={
                "error_type": type(exception).__name__,
                "traceback": traceback.format_exc()
            }
        )
    else:
        error_response = ErrorResponse(
            error="InternalServerError",
            message="An unexpected error occurred",
            details={"error_type": type(exception).__name__}
        )

    # Always log the full traceback server-side
    logger.error(f"Unexpected API error: {traceback.format_exc()}")

    return JSONResponse(
        status_code=500,
        content=error_response.model_dump()
    )
