"""
Notebook search: lets the tutor query the learner's notebook mid-answer.

The tool is session-bound. Hits are merged into the working session's
fragment cache exactly as turn-level retrieval does, so later generation
calls see them in the retrieved-context block.
"""

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Tuple

from ..models.context import Session
from ..models.schemas import ToolDefinition, ToolParameter
from ..utils.logging import get_logger

if TYPE_CHECKING:
    from ..modules.retriever import Retriever

logger = get_logger(__name__)

NOTEBOOK_SEARCH_TOOL_NAME = "search_notebook"

NO_RESULTS_MESSAGE = "No relevant information found in the notebook."

NOTEBOOK_SEARCH_DEFINITION = ToolDefinition(
    name=NOTEBOOK_SEARCH_TOOL_NAME,
    description=(
        "Searches the learner's study materials in this notebook. Use it before "
        "answering a question about the notebook's topic when the reference "
        "material you already have does not cover it. Cite returned fragments "
        "as [fragment id]. If nothing relevant comes back, say that the answer "
        "comes from general knowledge."
    ),
    parameters=[
        ToolParameter(
            name="query",
            type="string",
            description=(
                "A semantic search query built from the key concepts of the "
                "question, phrased as a statement"
            ),
        ),
    ],
)

SessionToolFunc = Callable[..., Awaitable[Dict[str, Any]]]


def create_notebook_search_tool(
    retriever: "Retriever",
) -> Tuple[ToolDefinition, SessionToolFunc]:
    """
    Build the notebook search tool over ``retriever``.

    Register the function with ``bind_session=True``. A degraded retrieval
    is raised so the executor reports it to the model as a failed call.

    Returns:
        (definition, async function taking the session and a query)
    """

    async def search_notebook(session: Session, query: str) -> Dict[str, Any]:
        outcome = await retriever.retrieve(session, query)
        if outcome.warning is not None:
            raise outcome.warning

        logger.info(
            "notebook_search_completed",
            session_id=session.session_id,
            fragments=len(outcome.fragments),
        )
        if not outcome.fragments:
            return {"results": [], "message": NO_RESULTS_MESSAGE}
        return {
            "results": [
                {"id": fragment.id, "text": fragment.text, "score": fragment.score}
                for fragment in outcome.fragments
            ]
        }

    return NOTEBOOK_SEARCH_DEFINITION, search_notebook
