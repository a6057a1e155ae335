"""Tools the tutor can call."""

from .media_tools import VIDEO_TOOL_DEFINITION, VIDEO_TOOL_NAME, create_video_generation_tool
from .notebook_search import (
    NOTEBOOK_SEARCH_DEFINITION,
    NOTEBOOK_SEARCH_TOOL_NAME,
    create_notebook_search_tool,
)

__all__ = [
    "NOTEBOOK_SEARCH_DEFINITION",
    "NOTEBOOK_SEARCH_TOOL_NAME",
    "VIDEO_TOOL_DEFINITION",
    "VIDEO_TOOL_NAME",
    "create_notebook_search_tool",
    "create_video_generation_tool",
]
