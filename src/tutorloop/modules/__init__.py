"""Pipeline stages: assembly, routing, retrieval, tools and the agent loop."""

from .agent_loop import AgentLoop
from .context_assembler import AppendResult, CompactionResult, ContextAssembler
from .intent_router import IntentRouter
from .retriever import RetrievalOutcome, Retriever
from .tool_executor import ToolExecutor, ToolInvocation

__all__ = [
    "AgentLoop",
    "AppendResult",
    "CompactionResult",
    "ContextAssembler",
    "IntentRouter",
    "RetrievalOutcome",
    "Retriever",
    "ToolExecutor",
    "ToolInvocation",
]
