"""
Custom exceptions and error handling for the API module.
"""

from typing import Dict, Optional
from fastapi import HTTPException


class APIException(HTTPException):
    """Base exception for API-related errors."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        message: str,
        details: Optional[Dict] = None
    ):
        self.error_type = error_type
        self.details = details
        super().__init__(status_code=status_code, detail=message)


class SessionNotFound(APIException):
    """Raised when a requested session is not registered."""

    def __init__(self, session_id: str):
        super().__init__(
            status_code=404,
            error_type="SessionNotFound",
            message=f"Session '{session_id}' not found",
            details={"session_id": session_id}
        )


class SessionSealed(APIException):
    """Raised when a streaming update targets a session whose turn has ended."""

    def __init__(self, session_id: str):
        super().__init__(
            status_code=409,
            error_type="SessionSealed",
            message=f"Session '{session_id}' is sealed; send a user message to start a new turn",
            details={"session_id": session_id}
        )


class PreconditionViolation(APIException):
    """Raised when a transcript edit is requested in a state that cannot accept it."""

    def __init__(self, session_id: str, violation: str):
        super().__init__(
            status_code=409,
            error_type="PreconditionViolation",
            message=violation,
            details={"session_id": session_id}
        )


class InvalidStreamingUpdate(APIException):
    """Raised when a streaming update is structurally unusable."""

    def __init__(self, reason: str):
        super().__init__(
            status_code=400,
            error_type="InvalidStreamingUpdate",
            message=f"Invalid streaming update: {reason}",
            details={"reason": reason}
        )


class SystemConfigurationError(APIException):
    """Raised when there are system configuration issues."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(
            status_code=500,
            error_type="SystemConfiguration",
            message=f"System configuration error: {message}",
            details=details
        )
