"""
Exception hierarchy for the tutoring pipeline.

Fatal errors abort a turn and supply the user-visible answer through
``user_message``. Recoverable ones are carried as warnings on stage outcomes
and reported by ``kind`` in answers and metrics.
"""

from datetime import datetime, timezone
from typing import Any


class TutorLoopError(Exception):
    """Base exception with structured context for logging"""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        retry_after: float | None = None,
        recoverable: bool = False,
        user_message: str | None = None,
    ):
        """
        Args:
            message: Technical message for logs
            details: Structured context, merged into log events
            retry_after: Seconds the caller should wait before retrying, if known
            recoverable: True if the turn continues despite this error
            user_message: Text shown to the learner; defaults to ``message``
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.retry_after = retry_after
        self.recoverable = recoverable
        self.user_message = user_message or message
        self.occurred_at = datetime.now(timezone.utc)

    @property
    def kind(self) -> str:
        """Name reported in answer warnings and degradation metrics."""
        return type(self).__name__

    def __str__(self) -> str:
        text = self.message
        if self.details:
            text += " (" + ", ".join(f"{k}={v}" for k, v in self.details.items()) + ")"
        flags = []
        if self.recoverable:
            flags.append("recoverable")
        if self.retry_after:
            flags.append(f"retry after {self.retry_after}s")
        if flags:
            text += f" [{'; '.join(flags)}]"
        return text

    def to_dict(self) -> dict[str, Any]:
        """Flat dict for structured log events."""
        return {
            "kind": self.kind,
            "message": self.message,
            "recoverable": self.recoverable,
            "retry_after": self.retry_after,
            "occurred_at": self.occurred_at.isoformat(),
            **self.details,
        }


class ClassificationError(TutorLoopError):
    """The intent classifier failed or returned a malformed result. Fatal to the turn."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            details=details,
            recoverable=False,
            user_message="Sorry, I couldn't work out what you're asking. Please try rephrasing.",
        )


class RetrievalDegraded(TutorLoopError):
    """Embedding, search or fragment fetch failed; the turn proceeds with cached fragments."""

    def __init__(self, message: str, stage: str, details: dict[str, Any] | None = None):
        details = details or {}
        details["stage"] = stage

        super().__init__(
            message=message,
            details=details,
            recoverable=True,
            user_message="Reference material is unavailable right now. Answering without it.",
        )
        self.stage = stage


class SummarizationDegraded(TutorLoopError):
    """Compaction was skipped this turn; history stays over-size until the next trigger."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            details=details,
            recoverable=True,
            user_message="Conversation summary could not be updated.",
        )


class ToolInvocationFailed(TutorLoopError):
    """A tool call failed. Encoded as a negative tool result, never raised out of the loop."""

    def __init__(
        self,
        message: str,
        tool_name: str,
        correlation_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        details.update({"tool_name": tool_name, "correlation_id": correlation_id})

        super().__init__(
            message=message,
            details=details,
            recoverable=True,
            user_message=f"Tool '{tool_name}' failed.",
        )
        self.tool_name = tool_name
        self.correlation_id = correlation_id


class LoopExceededMaxIterations(TutorLoopError):
    """The generation collaborator kept requesting tools past the iteration cap"""

    def __init__(self, max_iterations: int, details: dict[str, Any] | None = None):
        details = details or {}
        details["max_iterations"] = max_iterations

        super().__init__(
            message=f"Agent loop exceeded {max_iterations} iterations without a final answer",
            details=details,
            recoverable=False,
            user_message=(
                "Sorry, I got stuck putting that answer together. "
                "Please try asking again in a different way."
            ),
        )
        self.max_iterations = max_iterations


class GenerationError(TutorLoopError):
    """The generation collaborator failed. Fatal to the turn."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message=message,
            details=details,
            recoverable=False,
            user_message="Sorry, I'm having trouble answering right now. Please try again shortly.",
        )


class LLMError(TutorLoopError):
    """A model provider call failed after retries and fallbacks"""

    USER_MESSAGES = {
        401: "The tutor's model credentials were rejected. Please check the API key.",
        429: "The tutor is getting too many requests. Please try again in a moment.",
        503: "The tutor's model service is temporarily unavailable. Please try again.",
    }
    TRANSIENT_STATUS_CODES = frozenset({429, 503})

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(
            message=message,
            details=details,
            retry_after=retry_after,
            recoverable=status_code in self.TRANSIENT_STATUS_CODES,
            user_message=self.USER_MESSAGES.get(
                status_code, "The tutor's model could not be reached."
            ),
        )
        self.status_code = status_code


class UnknownToolCorrelation(TutorLoopError):
    """A late tool result arrived for a correlation id the session is not waiting on"""

    def __init__(self, session_id: str, correlation_id: str):
        super().__init__(
            message=f"No pending tool call '{correlation_id}' in session '{session_id}'",
            details={"session_id": session_id, "correlation_id": correlation_id},
            recoverable=False,
            user_message="That result doesn't belong to any pending request.",
        )
        self.session_id = session_id
        self.correlation_id = correlation_id


class ConfigurationError(TutorLoopError):
    """Configuration validation errors"""

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value

        super().__init__(
            message=message,
            details=details,
            recoverable=False,
            user_message=f"Configuration error: {message}",
        )
        self.field = field
        self.value = value
