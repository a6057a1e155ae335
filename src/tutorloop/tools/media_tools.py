"""
Media tools: explainer video rendering.

Rendering is asynchronous. The tool submits a job to the render service and
returns a pending outcome; the service later calls back (webhook) and the
result reaches the session through ``TutorPipeline.resume_tool_result``.
"""

from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import httpx

from ..models.schemas import ToolDefinition, ToolOutcome, ToolParameter
from ..utils.logging import get_logger

logger = get_logger(__name__)

VIDEO_TOOL_NAME = "video_gen"

VIDEO_TOOL_DEFINITION = ToolDefinition(
    name=VIDEO_TOOL_NAME,
    description=(
        "Creates a short animated video that explains a concept. Use only when "
        "the learner asks for a video or a visual walkthrough would clearly help."
    ),
    parameters=[
        ToolParameter(
            name="topic",
            type="string",
            description="The concept the video should explain",
        ),
        ToolParameter(
            name="level",
            type="string",
            description="Depth of the explanation",
            required=False,
            enum=["beginner", "intermediate", "advanced"],
        ),
    ],
)

ToolFunc = Callable[..., Awaitable[ToolOutcome]]


def create_video_generation_tool(
    endpoint: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 30.0,
) -> Tuple[ToolDefinition, ToolFunc]:
    """
    Build the video tool bound to a render service endpoint.

    Args:
        endpoint: URL of the render service's submit endpoint
        client: Shared HTTP client; a short-lived one is used per call if None
        timeout: HTTP timeout in seconds

    Returns:
        (definition, async function) ready for ``ToolExecutor.register``
    """

    async def _post(payload: Dict[str, Any]) -> httpx.Response:
        if client is not None:
            return await client.post(endpoint, json=payload, timeout=timeout)
        async with httpx.AsyncClient(timeout=timeout) as http:
            return await http.post(endpoint, json=payload)

    async def video_gen(topic: str, level: str = "beginner") -> ToolOutcome:
        response = await _post({"topic": topic, "level": level})
        if response.status_code >= 400:
            logger.error(
                "video_render_request_failed",
                status_code=response.status_code,
                body=response.text[:200],
            )
            response.raise_for_status()

        job = response.json() if response.content else {}
        logger.info("video_render_started", topic=topic, job_id=job.get("jobId"))
        return ToolOutcome(
            payload={"result": "Video generation started.", "job_id": job.get("jobId")},
            pending=True,
            media=True,
        )

    return VIDEO_TOOL_DEFINITION, video_gen
