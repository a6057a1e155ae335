"""Enums shared by the data model and configuration.

String-valued so they serialize cleanly through pydantic and JSON.
"""

from enum import Enum


class Role(str, Enum):
    """Author of a turn.

    Attributes:
        USER: The learner
        MODEL: The generation collaborator (answers and tool requests)
        SYSTEM: Tool results and other system-authored turns
    """
    USER = "user"
    MODEL = "model"
    SYSTEM = "system"

    def __str__(self) -> str:
        """Return the enum value as a string for serialization."""
        return self.value


class ToolStatus(str, Enum):
    """Outcome of a single tool invocation."""
    SUCCESS = "success"
    FAILURE = "failure"
    PENDING = "pending"

    def __str__(self) -> str:
        return self.value


class LoopState(str, Enum):
    """AgentLoop states.

    Attributes:
        COMPOSING: Waiting on the generation collaborator
        AWAITING_TOOL_RESULT: A tool call is in flight
        DONE: A plain-text answer was produced
        FAILED: Terminal failure (iteration cap or generation error)
    """
    COMPOSING = "composing"
    AWAITING_TOOL_RESULT = "awaiting_tool_result"
    DONE = "done"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


class AnswerStatus(str, Enum):
    """How a turn ended, as reported to the caller."""
    ANSWERED = "answered"
    OUT_OF_DOMAIN = "out_of_domain"
    PENDING_TOOL = "pending_tool"
    DEGRADED = "degraded"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


class LogLevel(str, Enum):
    """Standard logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def __str__(self) -> str:
        """Return the enum value as a string for serialization."""
        return self.value


__all__ = [
    "Role",
    "ToolStatus",
    "LoopState",
    "AnswerStatus",
    "LogLevel",
]
