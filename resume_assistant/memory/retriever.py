# resume_assistant/memory/retriever.py
from typing import List

from resume_assistant.config import TOP_K
from resume_assistant.models import RAGContext


def retrieve(
    query: str,
    user_id: str,
    embedder,
    store,
    top_k: int = TOP_K,
) -> List[RAGContext]:
    """
    Retrieve the top-k chunks of one user most similar to the query.

    Args:
        query: User's question
        user_id: Owner whose chunks may be returned
        embedder: Embedder instance to generate the query embedding
        store: ChunkStore instance to search
        top_k: Number of results to return

    Returns:
        RAGContext list, most similar first. Empty when the user has no
        stored chunks.
    """
    query_embedding = embedder.embed(query)

    hits = store.nearest_neighbors(
        query_embedding,
        user_id=user_id,
        k=top_k,
    )

    return [
        RAGContext(content=chunk.content, similarity=score)
        for chunk, score in hits
    ]
