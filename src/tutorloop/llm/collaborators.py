"""
LiteLLM-backed classifier, summarizer, titler and generator.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from ..exceptions import LLMError
from ..models.context import Turn
from ..models.schemas import (
    ClassificationRequest,
    ClassificationResult,
    GenerationRequest,
    GenerationResponse,
    ToolCall,
)
from ..utils.logging import get_logger
from .client import LLMClient
from .prompts import (
    TUTOR_SYSTEM_PROMPT,
    build_classification_messages,
    build_summary_messages,
    build_title_messages,
    build_tutor_system_prompt,
    turns_to_messages,
)


class SummaryResponse(BaseModel):
    summary: str


class LiteLLMClassifier:
    """
    Intent classifier returning the raw JSON object.

    Validation against ClassificationResult happens in the IntentRouter so
    that malformed output is reported as a classification failure.
    """

    def __init__(self, client: LLMClient, model: Optional[str] = None):
        self.client = client
        self.model = model

    async def classify(self, request: ClassificationRequest) -> Dict[str, Any]:
        response = await self.client.acomplete(
            messages=build_classification_messages(request),
            model=self.model,
            response_schema=ClassificationResult,
            temperature=0.0,
            feature="intent",
        )
        return response.content


class LiteLLMSummarizer:
    """Rolls older turns into the running session summary."""

    def __init__(self, client: LLMClient, model: Optional[str] = None):
        self.client = client
        self.model = model

    async def summarize(self, existing_summary: str, turns: List[Turn]) -> str:
        response = await self.client.acomplete(
            messages=build_summary_messages(existing_summary, turns),
            model=self.model,
            response_schema=SummaryResponse,
            temperature=0.2,
            feature="summary",
        )
        content = response.content
        summary = content.get("summary") if isinstance(content, dict) else None
        if not isinstance(summary, str) or not summary.strip():
            raise LLMError(
                "Summarizer returned no summary",
                details={"model": response.model, "content": str(content)[:200]},
            )
        return summary.strip()


class LiteLLMTitler:
    """Names a conversation after its first exchange."""

    def __init__(self, client: LLMClient, model: Optional[str] = None):
        self.client = client
        self.model = model

    async def title(self, turns: List[Turn]) -> str:
        response = await self.client.acomplete(
            messages=build_title_messages(turns),
            model=self.model,
            temperature=0.2,
            max_tokens=32,
            feature="title",
        )
        content = response.content if isinstance(response.content, str) else ""
        title = content.strip().strip('"').strip()
        if not title:
            raise LLMError("Titler returned no title", details={"model": response.model})
        return title


class LiteLLMGenerator:
    """Tutor answer generation with tool calling."""

    def __init__(
        self,
        client: LLMClient,
        model: Optional[str] = None,
        system_prompt: str = TUTOR_SYSTEM_PROMPT,
        temperature: float = 0.7,
    ):
        self.client = client
        self.model = model
        self.system_prompt = system_prompt
        self.temperature = temperature
        self.logger = get_logger(__name__)

    def build_messages(self, request: GenerationRequest) -> List[Dict[str, Any]]:
        system = build_tutor_system_prompt(request.context, self.system_prompt)
        return [{"role": "system", "content": system}] + turns_to_messages(
            request.context.working_history
        )

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        response = await self.client.acomplete_with_tools(
            messages=self.build_messages(request),
            tools=[tool.to_function_schema() for tool in request.tools],
            model=self.model,
            temperature=self.temperature,
            feature="generation",
        )
        tool_calls = [
            ToolCall(name=call["name"], arguments=call["arguments"], call_id=call["id"])
            for call in response.tool_calls
        ]
        return GenerationResponse(
            text=response.content or None,
            tool_calls=tool_calls,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
        )
