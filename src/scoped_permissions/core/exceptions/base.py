"""Base exceptions for scoped-permissions.

This module defines the base exception hierarchy for the library. All
exceptions inherit from ScopedPermissionsError and carry an error code and
structured details for callers that report failures.
"""

from typing import Any, Dict, Optional


class ScopedPermissionsError(Exception):
    """Base exception for all scoped-permissions errors.

    All exceptions in the library inherit from this base class and include
    structured error information for better debugging and reporting.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *args,
        **kwargs
    ):
        super().__init__(message, *args, **kwargs)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}


def create_error_response(exception: ScopedPermissionsError) -> Dict[str, Any]:
    """Create standardized error payload from exception.

    Args:
        exception: The scoped-permissions exception

    Returns:
        Error dictionary
    """
    return {
        "error": {
            "code": exception.error_code,
            "message": exception.message,
            "details": exception.details,
            "type": exception.__class__.__name__,
        }
    }
