"""
tutorloop - Conversational Tutoring Pipeline
Intent routing, retrieval, rolling summaries and tool calling for tutor chats
"""

# Setup rich tracebacks globally
from .utils.rich_logging import setup_rich_logging
setup_rich_logging()

from .core.config import TutorConfig
from .core.pipeline import TutorPipeline
from .models.schemas import ToolDefinition, TutorAnswer, TutorRequest

__version__ = "0.1.0"

__all__ = [
    "TutorPipeline",
    "TutorRequest",
    "TutorAnswer",
    "ToolDefinition",
    "TutorConfig",
]
