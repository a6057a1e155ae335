"""
Example: index a few notebook fragments, then ask the tutor about them.

Requires GEMINI_API_KEY (or TUTORLOOP_GEMINI_API_KEY) in the environment.

    python examples/ingest_and_chat.py
"""

import asyncio
import os

from tutorloop import TutorConfig, TutorRequest
from tutorloop.core.factory import build_pipeline
from tutorloop.rag import ChromaVectorSearch, GeminiEmbedder, LocalFragmentStore
from tutorloop.utils.rich_logging import console

NOTEBOOK = {
    "membrane-1": "The cell membrane is a phospholipid bilayer that controls what enters and leaves the cell.",
    "osmosis-1": "Osmosis is the diffusion of water across a semipermeable membrane from low to high solute concentration.",
    "transport-1": "Active transport uses ATP to move molecules against their concentration gradient.",
}


async def ingest(config: TutorConfig) -> None:
    collection = config.retrieval_collections[0]
    embedder = GeminiEmbedder(
        config.embedding_model, api_key=config.gemini_api_key, task_type="retrieval_document"
    )
    search = ChromaVectorSearch(config.vector_store_dir)
    fragments = LocalFragmentStore(config.fragment_store_dir)

    ids, vectors = [], []
    for fragment_id, text in NOTEBOOK.items():
        fragments.write_text(collection, fragment_id, text)
        ids.append(fragment_id)
        vectors.append(await embedder.embed(text, config.vector_dim))

    search.add_fragments(collection, ids, vectors)
    console.print_success(f"Indexed {len(ids)} fragments into '{collection}'")


async def main() -> None:
    config = TutorConfig(
        gemini_api_key=os.getenv("GEMINI_API_KEY"),
        vector_store_dir="./data/chroma",
    )
    console.print_banner()
    await ingest(config)

    pipeline = build_pipeline(config)
    for question in ["What is osmosis?", "How is that different from active transport?"]:
        console.console.print(f"[learner]Learner:[/learner] {question}")
        answer = await pipeline.handle_turn(
            TutorRequest(
                session_id="example-session",
                text=question,
                domain_summary="Introductory cell biology notebook",
            )
        )
        console.print_answer(answer)

    console.print_metrics(pipeline.metrics.snapshot())


if __name__ == "__main__":
    asyncio.run(main())
