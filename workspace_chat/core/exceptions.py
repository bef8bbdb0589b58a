"""
Exception hierarchy for the workspace chat engine.

Provides layered exception structure for domain-specific errors.
Every exception carries a machine-readable code that is surfaced to
clients either as a pre-stream JSON error or as a terminal stream event.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from datetime import datetime
from typing import Any


class WorkspaceChatException(Exception):
    """Base exception for all workspace chat errors."""

    code: str = "UNKNOWN_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(WorkspaceChatException):
    """Raised when request validation fails."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            details: Additional context
        """
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class WorkspaceNotFoundError(WorkspaceChatException):
    """Raised when no workspace matches the requested slug."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, slug: str) -> None:
        super().__init__(f"Workspace not found: {slug}", {"slug": slug})


class WorkspaceDisabledError(WorkspaceChatException):
    """Raised when a workspace exists but is switched off."""

    code = "DISABLED"
    status_code = 403

    def __init__(self, slug: str) -> None:
        super().__init__("This workspace is currently disabled", {"slug": slug})


class SessionNotFoundError(WorkspaceChatException):
    """Raised when a session is unknown or belongs to another workspace."""

    code = "SESSION_INVALID"
    status_code = 400

    def __init__(self, session_id: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize session not found error.

        Args:
            session_id: ID of the missing session
            details: Additional context
        """
        details = details or {}
        details["session_id"] = session_id
        super().__init__(f"Session not found: {session_id}", details)


class SessionExpiredError(WorkspaceChatException):
    """Raised when a session is past its expiry."""

    code = "SESSION_EXPIRED"
    status_code = 400

    def __init__(self, session_id: str) -> None:
        super().__init__(
            "Session has expired. Please start a new conversation.",
            {"session_id": session_id},
        )


class ThreadNotFoundError(WorkspaceChatException):
    """Raised when a thread is unknown or not owned by the session."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, thread_id: str) -> None:
        super().__init__(f"Thread not found: {thread_id}", {"thread_id": thread_id})


class RateLimitExceededError(WorkspaceChatException):
    """Raised when an embed visitor exceeds a quota."""

    code = "RATE_LIMITED"
    status_code = 429

    def __init__(
        self,
        reason: str,
        limit: int,
        reset_at: datetime | None,
    ) -> None:
        """
        Initialize rate limit error.

        Args:
            reason: Which counter was exhausted ("daily" or "session")
            limit: The configured limit for that counter
            reset_at: When the counter frees up again
        """
        self.reason = reason
        self.limit = limit
        self.reset_at = reset_at
        message = f"Rate limit exceeded ({reason} limit of {limit})."
        if reset_at is not None:
            message += f" Resets at {reset_at.isoformat()}"
        super().__init__(message, {"reason": reason, "limit": limit})


class RetrievalError(WorkspaceChatException):
    """Base exception for retrieval failures."""

    code = "RAG_ERROR"


class VectorStoreError(RetrievalError):
    """Raised when vector store operations fail."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize vector store error.

        Args:
            message: Error message
            operation: Operation that failed (query, delete_collection)
            details: Additional context
        """
        details = details or {}
        if operation:
            details["operation"] = operation
        super().__init__(message, details)


class EmbeddingError(RetrievalError):
    """Raised when the embedding provider cannot vectorize a query."""


class ToolExecutionError(WorkspaceChatException):
    """Raised when a tool invocation fails."""

    code = "TOOL_ERROR"

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(message, {"tool_name": tool_name})
        self.tool_name = tool_name


class ToolTimeoutError(ToolExecutionError):
    """Raised when a tool exceeds its timeout."""

    def __init__(self, tool_name: str, timeout_seconds: float) -> None:
        super().__init__(tool_name, f"Tool {tool_name} timed out after {timeout_seconds:g}s")


class LLMError(WorkspaceChatException):
    """Raised when the language model call fails."""

    code = "LLM_ERROR"


class SummarizationError(WorkspaceChatException):
    """Raised when conversation summarization fails."""


class StreamTimeoutError(WorkspaceChatException):
    """Raised when a stream exceeds its maximum duration."""

    code = "TIMEOUT_ERROR"

    def __init__(self, limit_seconds: float) -> None:
        super().__init__(
            f"Response took longer than {limit_seconds:g}s and was stopped",
            {"limit_seconds": limit_seconds},
        )


class StreamPhaseError(WorkspaceChatException):
    """Raised when an event would break monotonic phase ordering."""
