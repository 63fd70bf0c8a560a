"""Exception hierarchy for Documenter.

Every failure the core raises derives from ``DocumenterError`` and carries a
machine-readable ``code`` plus a free-form ``context`` dict for logging.

Propagation:
    - ``FileOperationError`` / ``ValidationError`` / ``ToolError`` are caught
      at the tool boundary and turned into ``{"success": false, ...}`` JSON.
    - ``ProviderError`` escapes the agent runtime; the conversation shell
      reports it and the user may retry.
    - ``ConfigurationError`` is fatal at startup.
"""

from typing import Any, Dict, Optional


class DocumenterError(Exception):
    """Base class for all Documenter errors."""

    code: Optional[str] = None

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.context = context or {}


class ConfigurationError(DocumenterError):
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, "CONFIGURATION_ERROR", context)


class FileOperationError(DocumenterError):
    """A filesystem call failed. ``operation`` is read/write/list/stat."""

    def __init__(
        self,
        message: str,
        file_path: str,
        operation: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            "FILE_OPERATION_ERROR",
            {**(context or {}), "file_path": file_path, "operation": operation},
        )
        self.file_path = file_path
        self.operation = operation


class ProviderError(DocumenterError):
    """The model backend failed; tagged with the backend that was in use."""

    def __init__(self, message: str, provider: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, "PROVIDER_ERROR", {**(context or {}), "provider": provider})
        self.provider = provider


class ToolRoundLimitError(ProviderError):
    """The model kept requesting tools past the configured round limit."""

    def __init__(self, provider: str, max_rounds: int):
        super().__init__(
            f"Too many tool rounds: model requested tools more than {max_rounds} times in one turn",
            provider,
            {"max_tool_rounds": max_rounds},
        )
        self.code = "TOOL_ROUND_LIMIT"
        self.max_rounds = max_rounds


class ValidationError(DocumenterError):
    def __init__(self, message: str, field: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", {**(context or {}), "field": field})
        self.field = field


class ToolError(DocumenterError):
    def __init__(self, message: str, tool_name: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, "TOOL_ERROR", {**(context or {}), "tool_name": tool_name})
        self.tool_name = tool_name


def is_documenter_error(error: BaseException) -> bool:
    return isinstance(error, DocumenterError)


def get_error_message(error: Any) -> str:
    """Safely extract a human-readable message from anything raised."""
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    if isinstance(error, str):
        return error
    return "Unknown error occurred"


def get_error_details(error: Any) -> Dict[str, Any]:
    """Structured view of an error for logging."""
    if isinstance(error, DocumenterError):
        details: Dict[str, Any] = {"message": error.message}
        if error.code:
            details["code"] = error.code
        if error.context:
            details["context"] = error.context
        return details
    if isinstance(error, BaseException):
        return {"message": get_error_message(error), "type": type(error).__name__}
    return {"message": str(error)}
