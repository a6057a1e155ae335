"""LLM integration via LiteLLM."""

from .client import LLMClient, LLMResponse
from .collaborators import (
    LiteLLMClassifier,
    LiteLLMGenerator,
    LiteLLMSummarizer,
    LiteLLMTitler,
)

__all__ = [
    "LLMClient",
    "LLMResponse",
    "LiteLLMClassifier",
    "LiteLLMGenerator",
    "LiteLLMSummarizer",
    "LiteLLMTitler",
]
