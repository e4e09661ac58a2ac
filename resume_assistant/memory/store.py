import json
import logging
import os
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import faiss
import numpy as np

from resume_assistant.errors import StoreUnavailable
from resume_assistant.models import DocumentChunk


logger = logging.getLogger(__name__)


def normalize(vectors: np.ndarray) -> np.ndarray:

    norms = np.linalg.norm(
        vectors,
        axis=1,
        keepdims=True,
    )

    return vectors / np.clip(norms, 1e-10, None)


def as_matrix(embedding) -> np.ndarray:

    embedding = np.asarray(embedding, dtype="float32")

    if embedding.ndim == 1:
        embedding = embedding.reshape(1, -1)

    return embedding


def rank(hits: List[Tuple[DocumentChunk, float]], k: int) -> List[Tuple[DocumentChunk, float]]:
    """Descending similarity, ties broken by chunk id, truncated to k."""

    ordered = sorted(hits, key=lambda hit: (-hit[1], hit[0].id))

    return ordered[:k]


class ChunkStore(ABC):
    """
    Storage capability used by ingestion and retrieval.

    Implementations must never return a chunk whose user_id differs from
    the queried user_id.
    """

    def __init__(self, dim: int, embedding_model: Optional[str] = None):

        if dim <= 0:
            raise ValueError("Embedding dimension must be positive")

        self._dim = dim
        self._embedding_model = embedding_model

    @property
    def dimension(self) -> int:
        return self._dim

    @abstractmethod
    def insert(
        self,
        user_id: str,
        source_file_name: str,
        content: str,
        embedding,
    ) -> DocumentChunk:
        """Persist one chunk with its vector; assigns id and created_at."""

    @abstractmethod
    def nearest_neighbors(
        self,
        query_embedding,
        user_id: str,
        k: int,
    ) -> List[Tuple[DocumentChunk, float]]:
        """Up to k chunks of user_id, most similar first."""

    @abstractmethod
    def count(self, user_id: Optional[str] = None) -> int:
        """Number of stored chunks, optionally for one user."""

    def _build_chunk(self, user_id, source_file_name, content, embedding) -> DocumentChunk:

        if not content:
            raise ValueError("Chunk content must not be empty")

        vector = normalize(as_matrix(embedding))

        if vector.shape != (1, self._dim):
            raise ValueError(
                f"Embedding dimension mismatch: expected {self._dim}, "
                f"got {vector.shape[-1]}"
            )

        return DocumentChunk(
            id=str(uuid.uuid4()),
            user_id=user_id,
            source_file_name=source_file_name,
            content=content,
            embedding=vector[0].tolist(),
            embedding_model=self._embedding_model,
            created_at=datetime.now(timezone.utc),
        )


class FaissChunkStore(ChunkStore):
    """
    In-process chunk store.

    One exact inner-product FAISS index per user, so search can never
    touch another user's vectors. Optionally persisted to `persist_dir` as
    two append-only files and rebuilt from them on startup:

    - vectors.f32: raw float32 vectors, concatenated
    - chunks.jsonl: one metadata line per chunk with its vector's byte offset

    The metadata line is written last, so a vector without one is ignored.
    """

    VECTORS_FILE = "vectors.f32"
    METADATA_FILE = "chunks.jsonl"

    def __init__(
        self,
        dim: int,
        embedding_model: Optional[str] = None,
        persist_dir: Optional[str] = None,
    ):

        super().__init__(dim, embedding_model)

        self._persist_dir = persist_dir
        self._lock = threading.Lock()
        self._indexes: Dict[str, faiss.IndexFlatIP] = {}
        self._chunks: Dict[str, List[DocumentChunk]] = {}

        self._load_from_disk()

        logger.info(
            "FaissChunkStore initialized",
            extra={
                "dimension": dim,
                "users": len(self._chunks),
                "chunks": self.count(),
            },
        )

    # ============================================================
    # CHUNK STORE API
    # ============================================================

    def insert(self, user_id, source_file_name, content, embedding) -> DocumentChunk:

        chunk = self._build_chunk(user_id, source_file_name, content, embedding)

        with self._lock:

            # Disk first: a failed write leaves memory untouched
            try:
                self._append_to_disk(chunk)
            except OSError as e:
                raise StoreUnavailable(
                    "Failed to persist chunk",
                    details=str(e),
                ) from e

            self._add(chunk)

        logger.debug(
            "Chunk inserted",
            extra={"chunk_id": chunk.id, "user_id": user_id},
        )

        return chunk

    def nearest_neighbors(self, query_embedding, user_id, k):

        if k <= 0:
            return []

        query = normalize(as_matrix(query_embedding))

        if query.shape != (1, self._dim):
            raise ValueError(
                f"Query dimension mismatch: expected {self._dim}, "
                f"got {query.shape[-1]}"
            )

        with self._lock:

            index = self._indexes.get(user_id)

            if index is None or index.ntotal == 0:
                return []

            chunks = self._chunks[user_id]

            try:
                # Exhaustive search keeps tie-breaking independent of FAISS
                scores, positions = index.search(query, index.ntotal)
            except RuntimeError as e:
                raise StoreUnavailable(
                    "Vector search failed",
                    details=str(e),
                ) from e

        hits = [
            (chunks[position], float(score))
            for score, position in zip(scores[0], positions[0])
            if position >= 0
        ]

        return rank(hits, k)

    def count(self, user_id=None) -> int:

        if user_id is not None:
            return len(self._chunks.get(user_id, []))

        return sum(len(chunks) for chunks in self._chunks.values())

    # ============================================================
    # INTERNALS
    # ============================================================

    def _add(self, chunk: DocumentChunk):

        index = self._indexes.get(chunk.user_id)

        if index is None:
            index = faiss.IndexFlatIP(self._dim)
            self._indexes[chunk.user_id] = index
            self._chunks[chunk.user_id] = []

        index.add(as_matrix(chunk.embedding))

        self._chunks[chunk.user_id].append(chunk)

    def _path(self, name: str) -> str:
        return os.path.join(self._persist_dir, name)

    def _append_to_disk(self, chunk: DocumentChunk):

        if not self._persist_dir:
            return

        os.makedirs(self._persist_dir, exist_ok=True)

        vector = np.asarray(chunk.embedding, dtype="float32")

        with open(self._path(self.VECTORS_FILE), "ab") as f:
            f.seek(0, os.SEEK_END)
            offset = f.tell()
            f.write(vector.tobytes())

        record = chunk.model_dump(mode="json", exclude={"embedding"})
        record["offset"] = offset
        record["dimension"] = int(vector.shape[0])

        with open(self._path(self.METADATA_FILE), "a") as f:
            f.write(json.dumps(record) + "\n")

    def _load_from_disk(self):

        if not self._persist_dir or not os.path.exists(self._path(self.METADATA_FILE)):
            return

        vectors_path = self._path(self.VECTORS_FILE)

        try:

            with open(self._path(self.METADATA_FILE), "r") as f:
                lines = [line for line in f.read().splitlines() if line.strip()]

            vectors = b""

            if os.path.exists(vectors_path):
                with open(vectors_path, "rb") as f:
                    vectors = f.read()

        except OSError as e:
            raise StoreUnavailable(
                "Failed to load chunk store",
                details=str(e),
            ) from e

        for line_number, line in enumerate(lines, start=1):

            try:
                record = json.loads(line)
            except ValueError as e:

                # Interrupted append
                if line_number == len(lines):
                    logger.warning(
                        "Skipping truncated chunk record",
                        extra={"line": line_number},
                    )
                    continue

                raise StoreUnavailable(
                    "Failed to load chunk store",
                    details=f"line {line_number}: {e}",
                ) from e

            offset = record.pop("offset")
            dimension = record.pop("dimension")

            if dimension != self._dim:
                logger.warning(
                    "Skipping stored chunk with foreign dimension",
                    extra={"chunk_id": record.get("id")},
                )
                continue

            if offset + dimension * 4 > len(vectors):
                raise StoreUnavailable(
                    "Failed to load chunk store",
                    details=f"vector missing for chunk {record.get('id')}",
                )

            vector = np.frombuffer(vectors, dtype="float32", count=dimension, offset=offset)

            self._add(DocumentChunk(embedding=vector.tolist(), **record))
