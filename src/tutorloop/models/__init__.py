"""Data model for the tutoring pipeline."""

from .context import (
    AttachmentPart,
    Part,
    Session,
    StoredSession,
    TextPart,
    ToolRequestPart,
    ToolResultPart,
    Turn,
)
from .enums import AnswerStatus, LogLevel, LoopState, Role, ToolStatus
from .schemas import (
    AssembledContext,
    ClassificationRequest,
    ClassificationResult,
    FragmentRef,
    GenerationRequest,
    GenerationResponse,
    LoopOutcome,
    RetrievedFragment,
    SearchHit,
    ToolCall,
    ToolDefinition,
    ToolOutcome,
    ToolParameter,
    TutorAnswer,
    TutorRequest,
)

__all__ = [
    "AnswerStatus",
    "AssembledContext",
    "AttachmentPart",
    "ClassificationRequest",
    "ClassificationResult",
    "FragmentRef",
    "GenerationRequest",
    "GenerationResponse",
    "LogLevel",
    "LoopOutcome",
    "LoopState",
    "Part",
    "RetrievedFragment",
    "Role",
    "SearchHit",
    "Session",
    "StoredSession",
    "TextPart",
    "ToolCall",
    "ToolDefinition",
    "ToolOutcome",
    "ToolParameter",
    "ToolRequestPart",
    "ToolResultPart",
    "ToolStatus",
    "Turn",
    "TutorAnswer",
    "TutorRequest",
]
