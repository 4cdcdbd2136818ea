"""
Error types and codes
Every error response carries one of the codes below
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Stable error codes returned to clients"""
    INVALID_DEVICE_ID = "INVALID_DEVICE_ID"
    MISSING_REQUIRED_FIELDS = "MISSING_REQUIRED_FIELDS"
    INVALID_REQUEST_BODY = "INVALID_REQUEST_BODY"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    NOT_FOUND = "NOT_FOUND"
    CLIENT_ERROR = "CLIENT_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VARIABLES_FETCH_ERROR = "VARIABLES_FETCH_ERROR"
    VARIABLE_SAVE_ERROR = "VARIABLE_SAVE_ERROR"
    VARIABLE_DELETE_ERROR = "VARIABLE_DELETE_ERROR"
    SUBSCRIPTION_CHECK_ERROR = "SUBSCRIPTION_CHECK_ERROR"
    SUBSCRIPTION_CREATE_ERROR = "SUBSCRIPTION_CREATE_ERROR"


ERROR_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.INVALID_DEVICE_ID: "Invalid device ID format",
    ErrorCode.MISSING_REQUIRED_FIELDS: "Key and value are required",
    ErrorCode.INVALID_REQUEST_BODY: "Invalid request body",
    ErrorCode.RATE_LIMIT_EXCEEDED: "Too many requests",
    ErrorCode.NOT_FOUND: "Endpoint not found",
    ErrorCode.CLIENT_ERROR: "Request could not be processed",
    ErrorCode.INTERNAL_ERROR: "Internal server error",
    ErrorCode.VARIABLES_FETCH_ERROR: "Failed to fetch variables",
    ErrorCode.VARIABLE_SAVE_ERROR: "Failed to save variable",
    ErrorCode.VARIABLE_DELETE_ERROR: "Failed to delete variable",
    ErrorCode.SUBSCRIPTION_CHECK_ERROR: "Failed to check subscription",
    ErrorCode.SUBSCRIPTION_CREATE_ERROR: "Failed to create subscription",
}


class ProxyError(Exception):
    """Error rendered as {error, code, details?} with the given HTTP status"""

    def __init__(self, status_code: int, code: ErrorCode, message: Optional[str] = None,
                 details: Optional[str] = None):
        self.status_code = status_code
        self.code = code
        self.message = message or ERROR_MESSAGES[code]
        self.details = details
        super().__init__(self.message)

    def to_response(self) -> Dict[str, Any]:
        content = {"error": self.message, "code": self.code.value}
        if self.details is not None:
            content["details"] = self.details
        return content


class UpstreamError(Exception):
    """
    Failed call to an external API.

    status_code is None when the request never produced a response
    (connection error, timeout).
    """

    def __init__(self, service: str, status_code: Optional[int] = None, body: str = "",
                 reason: Optional[str] = None):
        self.service = service
        self.status_code = status_code
        self.body = body
        if status_code is not None:
            message = f"{service} API error: {status_code} - {body}"
        else:
            message = f"{service} API unreachable: {reason or 'request failed'}"
        super().__init__(message)
