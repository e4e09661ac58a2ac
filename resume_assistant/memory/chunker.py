# resume_assistant/memory/chunker.py

import logging
from typing import List

from resume_assistant.config import CHUNK_SIZE

logger = logging.getLogger(__name__)


def chunk_text(text: str, size: int = CHUNK_SIZE) -> List[str]:
    """
    Fixed-width character chunker.

    Architecture contract:
    loader → chunker → embedder → chunk store

    Guarantees:
    • chunks concatenate back to exactly the input
    • every chunk is at most `size` characters
    • only the last chunk may be shorter
    • empty input yields no chunks
    """

    if size <= 0:
        raise ValueError(f"Invalid chunk size: {size}")

    if not text:
        logger.warning("Chunking skipped: empty text")
        return []

    chunks = [
        text[start:start + size]
        for start in range(0, len(text), size)
    ]

    logger.info(
        "Chunking completed",
        extra={
            "total_characters": len(text),
            "chunk_size": size,
            "chunks_created": len(chunks),
        },
    )

    return chunks
