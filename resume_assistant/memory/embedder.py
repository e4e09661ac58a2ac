# resume_assistant/memory/embedder.py

"""
Embedding client.

Architecture contract:
chunker → embedder → chunk store

Guarantees:
• Always returns a 1-D numpy float32 vector
• Always normalized (cosine-ready)
• One provider call per text, sequential
• Provider failures surface as EmbeddingUnavailable, never retried here
"""

import logging
import os
from typing import List, Optional

import numpy as np
import google.generativeai as genai
from openai import OpenAI

from resume_assistant.config import (
    EMBEDDING_PROVIDER,
    EMBEDDING_MODEL,
    EMBEDDING_TIMEOUT_SECONDS,
)
from resume_assistant.errors import EmbeddingUnavailable

logger = logging.getLogger(__name__)


MODEL_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "models/text-embedding-004": 768,
}


class Embedder:
    """
    Provider-backed embedding generator.

    Responsibilities:
    • Call the OpenAI or Gemini embedding API
    • Normalize vectors for inner-product search
    • Report the model's canonical dimension to the chunk store
    """

    # ============================================================
    # INITIALIZATION
    # ============================================================

    def __init__(
        self,
        provider: str = EMBEDDING_PROVIDER,
        model: str = EMBEDDING_MODEL,
        timeout: float = EMBEDDING_TIMEOUT_SECONDS,
        client: Optional[OpenAI] = None,
    ):

        if model not in MODEL_DIMENSIONS:
            raise ValueError(f"Unsupported embedding model: {model}")

        if provider not in ("openai", "gemini"):
            raise ValueError(f"Unsupported embedding provider: {provider}")

        self._provider = provider
        self._model = model
        self._timeout = timeout
        self._dimension = MODEL_DIMENSIONS[model]
        self._client = client

        if provider == "openai" and self._client is None:
            self._client = OpenAI(
                api_key=os.getenv("OPENAI_API_KEY"),
                timeout=timeout,
            )

        if provider == "gemini":
            genai.configure(api_key=os.getenv("GEMINI_API_KEY"))

        logger.info(
            "Embedding model initialized",
            extra={
                "provider": provider,
                "model": model,
                "dimension": self._dimension,
            }
        )

    # ============================================================
    # PUBLIC API
    # ============================================================

    def embed(self, text: str) -> np.ndarray:

        if not text:
            raise ValueError("Cannot embed empty text")

        try:

            if self._provider == "openai":
                values = self._embed_openai(text)
            else:
                values = self._embed_gemini(text)

        except Exception as e:

            logger.error(
                "Embedding generation failed",
                extra={
                    "provider": self._provider,
                    "model": self._model,
                    "error": str(e),
                }
            )

            raise EmbeddingUnavailable(
                "Embedding provider call failed",
                details=str(e),
            ) from e

        vector = np.asarray(values, dtype="float32")

        if vector.shape != (self._dimension,):
            raise EmbeddingUnavailable(
                "Embedding provider returned an unexpected shape",
                details=f"expected ({self._dimension},), got {vector.shape}",
            )

        norm = np.linalg.norm(vector)

        if norm > 0:
            vector = vector / norm

        return vector

    def embed_batch(self, texts: List[str]) -> List[np.ndarray]:
        """
        Embed each text independently, in order.

        A failure on element i raises after elements 0..i-1 were embedded;
        callers that persist per element keep what they already stored.
        """

        logger.info(
            "Batch embedding started",
            extra={"texts": len(texts)}
        )

        return [self.embed(text) for text in texts]

    # ============================================================
    # PROVIDERS
    # ============================================================

    def _embed_openai(self, text: str) -> List[float]:

        response = self._client.embeddings.create(
            model=self._model,
            input=text,
        )

        return response.data[0].embedding

    def _embed_gemini(self, text: str) -> List[float]:

        result = genai.embed_content(
            model=self._model,
            content=text,
            request_options={"timeout": self._timeout},
        )

        return result["embedding"]

    # ============================================================
    # ACCESSORS
    # ============================================================

    @property
    def model(self) -> str:
        return self._model

    def get_dimension(self) -> int:
        """
        Required by ChunkStore initialization.
        """
        return self._dimension

    def health_check(self) -> dict:

        return {
            "model": self._model,
            "dimension": self._dimension,
            "provider": self._provider,
            "status": "healthy"
        }
