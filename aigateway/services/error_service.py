"""Error envelopes and structured operation logging."""

import logging
from typing import Any, Dict, Optional, Union

from aigateway.models.response import ErrorCode, ErrorResponse, ManagementResponse

logger = logging.getLogger(__name__)


class ErrorService:
    """Builds error envelopes and writes structured log records."""

    @staticmethod
    def create_error_response(
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
    ) -> ErrorResponse:
        """Create standardized error response.

        Args:
            code: Error code
            message: Human readable error
            details: Additional error details
            correlation_id: Request correlation ID

        Returns:
            ErrorResponse object
        """
        return ErrorResponse(
            error=message, code=code, details=details, correlation_id=correlation_id
        )

    @staticmethod
    def map_http_status_to_error_code(status_code: int) -> ErrorCode:
        mapping = {
            400: ErrorCode.INVALID_REQUEST,
            401: ErrorCode.UNAUTHORIZED,
            403: ErrorCode.FORBIDDEN,
            404: ErrorCode.NOT_FOUND,
            422: ErrorCode.INVALID_REQUEST,
            429: ErrorCode.RATE_LIMITED,
            500: ErrorCode.INTERNAL_SERVER_ERROR,
            502: ErrorCode.SERVICE_UNAVAILABLE,
            503: ErrorCode.SERVICE_UNAVAILABLE,
            504: ErrorCode.REQUEST_TIMEOUT,
        }
        return mapping.get(status_code, ErrorCode.INTERNAL_SERVER_ERROR)

    @staticmethod
    def failure(
        component: str,
        action: str,
        error: Union[Exception, str],
        additional_data: Optional[Dict[str, Any]] = None,
    ) -> ManagementResponse:
        """Log a failed operation and wrap it in a failure envelope."""
        message = str(error)
        ErrorService.log_operation(
            component, action, success=False, error=message, additional_data=additional_data
        )
        return ManagementResponse.fail(message)

    @staticmethod
    def log_error(
        error_code: ErrorCode,
        message: str,
        correlation_id: Optional[str] = None,
        user_id: Optional[str] = None,
        path: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Log an HTTP level error with request context.

        Args:
            error_code: Error code
            message: Error message
            correlation_id: Request correlation ID
            user_id: User ID
            path: Request path
            details: Additional details
        """
        log_data = {
            "error_code": error_code.value,
            "message": message,
        }

        if correlation_id:
            log_data["correlation_id"] = correlation_id
        if user_id:
            log_data["user_id"] = user_id
        if path:
            log_data["path"] = path
        if details:
            log_data["details"] = details

        logger.error(f"Error: {log_data}")

    @staticmethod
    def log_operation(
        component: str,
        action: str,
        success: bool = True,
        error: Optional[str] = None,
        additional_data: Optional[Dict[str, Any]] = None,
    ):
        """Log the outcome of a manager or router operation.

        Args:
            component: Emitting component, e.g. ``api-manager``
            action: Operation name, e.g. ``create-provider``
            success: Whether the operation succeeded
            error: Error message for failures
            additional_data: Identifiers worth keeping with the record
        """
        log_data: Dict[str, Any] = {"component": component, "action": action}
        if additional_data:
            log_data["additional_data"] = additional_data

        if success:
            logger.info(f"Operation succeeded: {log_data}")
        else:
            log_data["error"] = error
            logger.error(f"Operation failed: {log_data}")
