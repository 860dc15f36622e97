"""
Centralized error handling for the Trip Analysis API.

Provides consistent error response formatting, error codes for the failure
scenarios the API can hit, and context-rich logging. Remote analyzer
failures are classified here and then absorbed by the heuristic fallback.
"""

import asyncio
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

import httpx
from anthropic import APIError, APITimeoutError, RateLimitError
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.models.responses import ErrorResponse


class ErrorCode(str, Enum):
    """Enumeration of error codes for different failure scenarios."""

    # HTTP status code specific errors
    HTTP_400 = "HTTP_400"
    HTTP_404 = "HTTP_404"
    HTTP_405 = "HTTP_405"
    HTTP_429 = "HTTP_429"
    HTTP_500 = "HTTP_500"

    # Client errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Server errors (5xx)
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"

    # Remote agent errors
    REMOTE_UNREACHABLE = "REMOTE_UNREACHABLE"
    REMOTE_TIMEOUT = "REMOTE_TIMEOUT"
    REMOTE_RATE_LIMITED = "REMOTE_RATE_LIMITED"
    REMOTE_INVALID_RESPONSE = "REMOTE_INVALID_RESPONSE"

    # LLM API specific errors
    LLM_API_ERROR = "LLM_API_ERROR"
    LLM_RATE_LIMITED = "LLM_RATE_LIMITED"
    LLM_QUOTA_EXCEEDED = "LLM_QUOTA_EXCEEDED"
    LLM_TIMEOUT = "LLM_TIMEOUT"


class ErrorHandler:
    """
    Centralized error handling with consistent error response formatting.
    """

    ERROR_STATUS_MAPPING: Dict[ErrorCode, int] = {
        ErrorCode.HTTP_400: 400,
        ErrorCode.HTTP_404: 404,
        ErrorCode.HTTP_405: 405,
        ErrorCode.HTTP_429: 429,
        ErrorCode.HTTP_500: 500,

        ErrorCode.VALIDATION_ERROR: 422,

        ErrorCode.INTERNAL_SERVER_ERROR: 500,

        ErrorCode.REMOTE_UNREACHABLE: 502,
        ErrorCode.REMOTE_TIMEOUT: 504,
        ErrorCode.REMOTE_RATE_LIMITED: 429,
        ErrorCode.REMOTE_INVALID_RESPONSE: 502,

        ErrorCode.LLM_API_ERROR: 502,
        ErrorCode.LLM_RATE_LIMITED: 429,
        ErrorCode.LLM_QUOTA_EXCEEDED: 429,
        ErrorCode.LLM_TIMEOUT: 504,
    }

    ERROR_MESSAGES: Dict[ErrorCode, str] = {
        ErrorCode.HTTP_400: "Bad Request",
        ErrorCode.HTTP_404: "Not Found",
        ErrorCode.HTTP_405: "Method Not Allowed",
        ErrorCode.HTTP_429: "Too Many Requests",
        ErrorCode.HTTP_500: "Internal Server Error",

        ErrorCode.VALIDATION_ERROR: "Request validation failed",
        ErrorCode.INTERNAL_SERVER_ERROR: "An unexpected error occurred",
        ErrorCode.REMOTE_UNREACHABLE: "Unable to reach the remote analysis agent",
        ErrorCode.REMOTE_TIMEOUT: "Remote analysis timed out",
        ErrorCode.REMOTE_RATE_LIMITED: "Remote analysis agent rate limit exceeded",
        ErrorCode.REMOTE_INVALID_RESPONSE: "Remote analysis agent returned an invalid response",
        ErrorCode.LLM_API_ERROR: "LLM API error occurred",
        ErrorCode.LLM_RATE_LIMITED: "LLM API rate limit exceeded",
        ErrorCode.LLM_QUOTA_EXCEEDED: "LLM API quota exceeded",
        ErrorCode.LLM_TIMEOUT: "LLM API request timeout",
    }

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize the ErrorHandler.

        Args:
            logger: Optional logger instance. If not provided, creates a new logger.
        """
        self.logger = logger or logging.getLogger(__name__)

    def create_error_response(
        self,
        error_code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> ErrorResponse:
        """
        Create a standardized error response.

        Args:
            error_code: The error code enum value
            message: Optional custom error message. If not provided, uses default message.
            details: Optional additional error details

        Returns:
            ErrorResponse: Standardized error response object
        """
        final_message = message or self.ERROR_MESSAGES.get(error_code, "Unknown error")

        if details:
            final_message = f"{final_message}. Details: {details}"

        return ErrorResponse(
            error=error_code.value,
            message=final_message,
            timestamp=datetime.now(timezone.utc)
        )

    def log_error(
        self,
        error_code: ErrorCode,
        message: str,
        request: Optional[Request] = None,
        exception: Optional[Exception] = None,
        additional_context: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log error with context information.

        Args:
            error_code: The error code enum value
            message: Error message
            request: Optional FastAPI request object
            exception: Optional exception that caused the error
            additional_context: Optional additional context information
        """
        context = {
            "error_code": error_code.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        if request:
            context.update({
                "method": request.method,
                "url": str(request.url),
                "client_ip": request.client.host if request.client else "unknown",
                "user_agent": request.headers.get("user-agent", "unknown"),
            })

        if additional_context:
            context.update(additional_context)

        self.logger.error(
            f"{error_code.value}: {message}",
            extra={"context": context},
            exc_info=exception is not None
        )

    def classify_remote_error(self, error: Exception, analyzer: str = "remote") -> Tuple[ErrorCode, str]:
        """
        Map an exception raised by a remote analyzer to an error code.

        Args:
            error: The exception
            analyzer: Name of the analyzer that raised it

        Returns:
            Tuple of (ErrorCode, error_message)
        """
        error_message = str(error)

        if isinstance(error, RateLimitError):
            if "quota" in error_message.lower() or "billing" in error_message.lower():
                return ErrorCode.LLM_QUOTA_EXCEEDED, f"Anthropic API quota exceeded: {error_message}"
            return ErrorCode.LLM_RATE_LIMITED, f"Anthropic API rate limit exceeded: {error_message}"

        if isinstance(error, APITimeoutError):
            return ErrorCode.LLM_TIMEOUT, f"Anthropic API timeout: {error_message}"

        if isinstance(error, APIError):
            status_code = getattr(error, "status_code", None)
            if status_code == 429:
                return ErrorCode.LLM_RATE_LIMITED, f"Anthropic API rate limit exceeded: {error_message}"
            if status_code is not None:
                return ErrorCode.LLM_API_ERROR, f"Anthropic API error (HTTP {status_code}): {error_message}"
            return ErrorCode.LLM_API_ERROR, f"Anthropic API error: {error_message}"

        if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
            return ErrorCode.REMOTE_TIMEOUT, f"{analyzer} analysis timed out"

        if isinstance(error, httpx.HTTPStatusError):
            status_code = error.response.status_code
            if status_code == 429:
                return ErrorCode.REMOTE_RATE_LIMITED, f"{analyzer} rate limit exceeded (HTTP 429)"
            return ErrorCode.REMOTE_UNREACHABLE, f"{analyzer} returned HTTP {status_code}"

        if isinstance(error, httpx.RequestError):
            return ErrorCode.REMOTE_UNREACHABLE, f"Network error calling {analyzer}: {error_message}"

        if isinstance(error, ValueError):
            return ErrorCode.REMOTE_INVALID_RESPONSE, f"Unusable {analyzer} response: {error_message}"

        return ErrorCode.INTERNAL_SERVER_ERROR, f"Unexpected {analyzer} error: {type(error).__name__}: {error_message}"

    def handle_remote_error(
        self,
        error: Exception,
        analyzer: str = "remote",
        request: Optional[Request] = None,
        destination: Optional[str] = None
    ) -> Tuple[ErrorCode, str]:
        """
        Classify and log a remote analyzer failure.

        Returns:
            Tuple of (ErrorCode, error_message)
        """
        error_code, message = self.classify_remote_error(error, analyzer)

        context: Dict[str, Any] = {"analyzer": analyzer, "error_type": type(error).__name__}
        if destination:
            context["destination"] = destination

        self.log_error(
            error_code=error_code,
            message=message,
            request=request,
            exception=error,
            additional_context=context
        )
        return error_code, message

    def create_json_response(
        self,
        error_code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ) -> JSONResponse:
        """
        Create a JSON response for an error.

        Args:
            error_code: The error code enum value
            message: Optional custom error message
            details: Optional additional error details
            status_code: Overrides the status mapped from the error code

        Returns:
            JSONResponse: FastAPI JSON response with appropriate status code
        """
        error_response = self.create_error_response(error_code, message, details)
        status = status_code or self.ERROR_STATUS_MAPPING.get(error_code, 500)

        return JSONResponse(
            status_code=status,
            content=error_response.model_dump(mode='json')
        )

    def error_code_for_status(self, status_code: int) -> ErrorCode:
        """ErrorCode for a plain HTTP status, HTTP_500 for unmapped ones."""
        try:
            return ErrorCode(f"HTTP_{status_code}")
        except ValueError:
            return ErrorCode.HTTP_500

    def handle_validation_error(
        self,
        error: Union[RequestValidationError, ValidationError],
        request: Optional[Request] = None
    ) -> JSONResponse:
        """
        Handle request and Pydantic validation errors.

        Args:
            error: The validation error
            request: Optional FastAPI request object

        Returns:
            JSONResponse: Error response for validation failure
        """
        error_details = error.errors()
        message = f"Request validation failed: {error_details}"

        self.log_error(
            error_code=ErrorCode.VALIDATION_ERROR,
            message=message,
            request=request,
            additional_context={"validation_errors": error_details}
        )

        return self.create_json_response(ErrorCode.VALIDATION_ERROR, message)


# Global error handler instance
error_handler = ErrorHandler()
