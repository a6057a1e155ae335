"""
Core Pydantic schemas for the tutoring pipeline.

These schemas define the data contracts between pipeline stages and the
external collaborators (classifier, embedder, vector search, fragment store,
summarizer, generator and tools).
"""

from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from .context import AttachmentPart, Turn
from .enums import AnswerStatus, LoopState


class ClassificationRequest(BaseModel):
    """Input to the classification collaborator."""

    prior_context_summary: str = Field(
        default="", description="Domain summary plus the session's rolled-up summary"
    )
    current_turn_text: str
    attachments_present: bool = False
    recent_history: List[Turn] = Field(
        default_factory=list, description="Most recent turns, for resolving references"
    )


class ClassificationResult(BaseModel):
    """
    Intent classification for one user turn.

    ``out_of_domain_message`` is set iff the turn is out of domain and
    ``retrieval_query`` is set iff retrieval is needed.
    """

    model_config = ConfigDict(populate_by_name=True)

    in_domain: bool = Field(
        ..., validation_alias=AliasChoices("in_domain", "inDomain", "isInDomain")
    )
    out_of_domain_message: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "out_of_domain_message", "outOfDomainMessage", "messageIfOutOfDomain"
        ),
    )
    retrieval_needed: bool = Field(
        default=False,
        validation_alias=AliasChoices("retrieval_needed", "retrievalNeeded"),
    )
    retrieval_query: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("retrieval_query", "retrievalQuery", "ragQuery"),
    )

    @model_validator(mode="after")
    def check_invariants(self) -> "ClassificationResult":
        if self.in_domain and self.out_of_domain_message is not None:
            raise ValueError("out_of_domain_message must be null for in-domain turns")
        if not self.in_domain and not (self.out_of_domain_message or "").strip():
            raise ValueError("out_of_domain_message is required for out-of-domain turns")
        if self.retrieval_needed and not (self.retrieval_query or "").strip():
            raise ValueError("retrieval_query is required when retrieval is needed")
        if not self.retrieval_needed and self.retrieval_query is not None:
            raise ValueError("retrieval_query must be null when retrieval is not needed")
        return self


class SearchHit(BaseModel):
    """One vector search result."""

    fragment_id: str
    score: float
    collection: str = ""


class FragmentRef(BaseModel):
    """Locator handed to the fragment-text collaborator."""

    collection: str
    fragment_id: str


class RetrievedFragment(BaseModel):
    """A truncated reference snippet owned by the session that retrieved it."""

    id: str
    text: str
    source_rank: int = Field(..., description="0-based position in the ranked results")
    score: float = 0.0
    collection: str = ""


class ToolParameter(BaseModel):
    """Schema for a single tool parameter definition."""

    name: str = Field(..., description="Parameter name")
    type: str = Field(..., description="Parameter type (string, number, boolean, object, array)")
    description: str = Field(..., description="Parameter description for LLM")
    required: bool = Field(default=True, description="Whether parameter is required")
    enum: Optional[List[str]] = Field(default=None, description="Allowed values if enumerated")


class ToolDefinition(BaseModel):
    """
    Schema for a tool offered to the generation collaborator.
    Converts to the OpenAI function-calling format used by LiteLLM.
    """

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "generate_video",
            "description": "Render a short explainer video on a topic",
            "parameters": [
                {
                    "name": "topic",
                    "type": "string",
                    "description": "What the video should explain",
                    "required": True
                }
            ]
        }
    })

    name: str = Field(..., description="Unique tool identifier")
    description: str = Field(..., description="Clear description of tool purpose and usage")
    parameters: List[ToolParameter] = Field(default_factory=list)

    def to_function_schema(self) -> Dict[str, Any]:
        """Render as an OpenAI-style function tool."""
        properties: Dict[str, Any] = {}
        for param in self.parameters:
            prop: Dict[str, Any] = {"type": param.type, "description": param.description}
            if param.enum:
                prop["enum"] = param.enum
            properties[param.name] = prop

        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": [p.name for p in self.parameters if p.required],
                },
            },
        }


class ToolOutcome(BaseModel):
    """
    Explicit tool return value.

    Tools may return any payload (treated as success) or a ToolOutcome to
    signal an out-of-band pending result or a media side-channel artifact.
    """

    payload: Any = None
    pending: bool = False
    media: bool = False


class ToolCall(BaseModel):
    """A tool invocation requested by the generation collaborator."""

    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    call_id: Optional[str] = None


class AssembledContext(BaseModel):
    """Context handed to generation: working history plus carried summary."""

    working_history: List[Turn] = Field(default_factory=list)
    carried_summary: str = ""
    fragments: Dict[str, str] = Field(
        default_factory=dict, description="Cached fragment id -> text for grounding"
    )


class GenerationRequest(BaseModel):
    """Input to the generation collaborator."""

    context: AssembledContext
    tools: List[ToolDefinition] = Field(default_factory=list)


class GenerationResponse(BaseModel):
    """Output of the generation collaborator: either text or tool calls."""

    text: Optional[str] = None
    tool_calls: List[ToolCall] = Field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def wants_tool(self) -> bool:
        return bool(self.tool_calls)


class LoopOutcome(BaseModel):
    """Terminal result of one AgentLoop run."""

    state: LoopState
    text: str
    media: bool = False
    iterations: int = 0
    tools_invoked: List[str] = Field(default_factory=list)
    pending_tool_calls: List[str] = Field(default_factory=list)
    title: Optional[str] = Field(default=None, description="Session title, once one is set")
    error: Optional[str] = None
    error_kind: Optional[str] = Field(
        default=None, description="Exception class name when the loop failed"
    )


class TutorRequest(BaseModel):
    """One incoming learner turn."""

    session_id: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)
    domain_summary: str = Field(
        default="", description="What this tutor covers, e.g. the notebook summary"
    )
    attachments: List[AttachmentPart] = Field(default_factory=list)


class TutorAnswer(BaseModel):
    """The pipeline's answer to one turn."""

    session_id: str
    text: str
    status: AnswerStatus
    media: bool = Field(default=False, description="A tool produced a side-channel media artifact")
    fragment_ids: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(
        default_factory=list, description="Recoverable conditions hit during the turn"
    )
    iterations: int = 0
    pending_tool_calls: List[str] = Field(default_factory=list)
    title: Optional[str] = Field(default=None, description="Session title, once one is set")
