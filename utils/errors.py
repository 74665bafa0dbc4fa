"""Application error types shared by the retrieval pipeline and its collaborators."""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    UNKNOWN = "unknown"
    INVALID_PARAMETER = "invalid_parameter"
    CONFIGURATION = "configuration"
    NETWORK = "network"
    TIMEOUT = "timeout"
    SEARCH = "search"
    SEARCH_LIMIT_EXCEEDED = "search_limit_exceeded"
    EXTRACTION = "extraction"
    MODEL = "model"
    INTEGRATION = "integration"


class AppError(Exception):
    """
    Base exception for the application.

    Carries a machine-readable code and a free-form details dict so callers can
    log or serialize failures without parsing messages.
    """

    default_code = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str,
        code: ErrorCode | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": type(self).__name__,
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(AppError):
    default_code = ErrorCode.CONFIGURATION


class SearchError(AppError):
    default_code = ErrorCode.SEARCH


class FetchError(AppError):
    default_code = ErrorCode.NETWORK


class ExtractionError(AppError):
    default_code = ErrorCode.EXTRACTION


class ModelError(AppError):
    default_code = ErrorCode.MODEL


class IntegrationError(AppError):
    default_code = ErrorCode.INTEGRATION


def handle_error(
    error: BaseException,
    default_message: str = "Unexpected error",
    default_code: ErrorCode = ErrorCode.UNKNOWN,
) -> AppError:
    """
    Normalize any exception into an AppError.

    AppError instances are returned unchanged; anything else is wrapped with the
    original exception type recorded in details.
    """
    if isinstance(error, AppError):
        return error

    message = str(error) or default_message
    return AppError(message, default_code, {"original_error": type(error).__name__})
