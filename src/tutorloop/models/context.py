"""
Conversation state: turns, their parts, and the per-session working state.

A Session holds the recent turns (bounded by compaction), a rolled-up summary
of older turns, and a bounded cache of retrieved reference fragments.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from .enums import Role, ToolStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TextPart(BaseModel):
    """Plain text content."""

    kind: Literal["text"] = "text"
    text: str


class AttachmentPart(BaseModel):
    """Reference to a binary attachment held in external blob storage."""

    kind: Literal["attachment"] = "attachment"
    uri: str
    mime_type: str = "application/octet-stream"


class ToolRequestPart(BaseModel):
    """A tool invocation requested by the generation collaborator."""

    kind: Literal["tool_request"] = "tool_request"
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    correlation_id: str


class ToolResultPart(BaseModel):
    """Outcome of a tool invocation, fed back to the generation collaborator."""

    kind: Literal["tool_result"] = "tool_result"
    name: str
    correlation_id: str
    status: ToolStatus
    payload: Any = None
    error: str | None = None


Part = Annotated[
    Union[TextPart, AttachmentPart, ToolRequestPart, ToolResultPart],
    Field(discriminator="kind"),
]


class Turn(BaseModel):
    """One message in a conversation."""

    role: Role
    parts: list[Part] = Field(default_factory=list)
    preamble: bool = Field(
        default=False,
        description="Synthetic context turn produced by assembly, never stored in history",
    )
    created_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def user_text(cls, text: str, attachments: list[AttachmentPart] | None = None) -> "Turn":
        return cls(role=Role.USER, parts=[TextPart(text=text), *(attachments or [])])

    @classmethod
    def model_text(cls, text: str) -> "Turn":
        return cls(role=Role.MODEL, parts=[TextPart(text=text)])

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        return "\n".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def tool_requests(self) -> list[ToolRequestPart]:
        return [p for p in self.parts if isinstance(p, ToolRequestPart)]

    @property
    def tool_results(self) -> list[ToolResultPart]:
        return [p for p in self.parts if isinstance(p, ToolResultPart)]


class Session(BaseModel):
    """
    Working state for one conversation.

    History is chronological and append-only except when compaction replaces
    the oldest turns with ``summary``.
    """

    session_id: str
    history: list[Turn] = Field(default_factory=list)
    fragment_cache: dict[str, str] = Field(
        default_factory=dict,
        description="Fragment id -> truncated text, oldest first",
    )
    summary: str = Field(default="", description="Rolled-up summary of compacted turns")
    summary_generations: int = Field(
        default=0, description="Number of successful compactions"
    )
    title: str | None = Field(default=None, description="Short topic title, set once")
    pending_tool_calls: dict[str, str] = Field(
        default_factory=dict,
        description="Correlation id -> tool name for out-of-band calls awaiting a result",
    )
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def append(self, turn: Turn) -> None:
        """
        Append a turn to history.

        Raises:
            ValueError: If a tool result has no matching earlier request
        """
        for result in turn.tool_results:
            if not self._has_matching_request(result):
                raise ValueError(
                    f"Tool result for '{result.name}' ({result.correlation_id}) "
                    "has no matching tool request in session"
                )
        self.history.append(turn)
        self.updated_at = _utcnow()

    def _has_matching_request(self, result: ToolResultPart) -> bool:
        if self.pending_tool_calls.get(result.correlation_id) == result.name:
            return True
        return any(
            request.name == result.name
            for turn in self.history
            for request in turn.tool_requests
        )

    def remember_fragment(self, fragment_id: str, text: str, max_entries: int) -> None:
        """Cache a fragment's text, evicting the oldest entries past ``max_entries``."""
        self.fragment_cache.pop(fragment_id, None)
        self.fragment_cache[fragment_id] = text
        while len(self.fragment_cache) > max_entries:
            oldest = next(iter(self.fragment_cache))
            del self.fragment_cache[oldest]

    def record_compaction(self, summary: str, keep: int) -> None:
        """Replace all but the most recent ``keep`` turns with ``summary``."""
        self.summary = summary
        self.history = self.history[-keep:] if keep > 0 else []
        self.summary_generations += 1
        self.updated_at = _utcnow()


class StoredSession(BaseModel):
    """Durable view of a session as returned by a session store."""

    session_id: str
    history: list[Turn] = Field(default_factory=list)
    summary: str = ""
    title: str | None = None
