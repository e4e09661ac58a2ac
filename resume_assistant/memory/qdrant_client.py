import logging
from datetime import datetime, timezone
from typing import Optional

from qdrant_client import QdrantClient
from qdrant_client.http.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    VectorParams,
)

from resume_assistant.config import (
    QDRANT_URL,
    QDRANT_API_KEY,
    QDRANT_COLLECTION,
    QDRANT_TIMEOUT_SECONDS,
)
from resume_assistant.errors import StoreUnavailable
from resume_assistant.memory.store import ChunkStore, as_matrix, rank
from resume_assistant.models import DocumentChunk

logger = logging.getLogger(__name__)


class QdrantVectorDB:
    """
    Qdrant client wrapper.

    Only provides the collection; scoping and ranking live in
    QdrantChunkStore.
    """

    def __init__(
        self,
        dim: int,
        collection: str = QDRANT_COLLECTION,
        client: Optional[QdrantClient] = None,
    ):

        self._dim = dim

        self._client = client or QdrantClient(
            url=QDRANT_URL,
            api_key=QDRANT_API_KEY,
            timeout=int(QDRANT_TIMEOUT_SECONDS),
        )

        self._collection = collection

        self._ensure_collection()

        logger.info(
            "Qdrant client initialized",
            extra={
                "collection": self._collection,
                "dimension": dim,
            },
        )

    @property
    def client(self) -> QdrantClient:
        return self._client

    @property
    def collection(self) -> str:
        return self._collection

    def _ensure_collection(self):
        """
        Ensures the collection exists with the user_id payload index that
        scoped search depends on.
        """

        if not self._client.collection_exists(self._collection):

            self._client.create_collection(
                collection_name=self._collection,
                vectors_config=VectorParams(
                    size=self._dim,
                    distance=Distance.COSINE,
                ),
            )

            logger.info(
                "Qdrant collection created",
                extra={"collection": self._collection},
            )

            self._client.create_payload_index(
                collection_name=self._collection,
                field_name="user_id",
                field_schema=PayloadSchemaType.KEYWORD,
            )

    def health_check(self):

        return self._client.get_collections()


class QdrantChunkStore(ChunkStore):
    """Remote chunk store: one Qdrant point per chunk, filtered by user_id."""

    def __init__(
        self,
        dim: int,
        embedding_model: Optional[str] = None,
        db: Optional[QdrantVectorDB] = None,
    ):

        super().__init__(dim, embedding_model)

        try:
            self._db = db or QdrantVectorDB(dim)
        except Exception as e:
            raise StoreUnavailable(
                "Qdrant is unreachable",
                details=str(e),
            ) from e

    def _user_filter(self, user_id: str) -> Filter:

        must = [
            FieldCondition(key="user_id", match=MatchValue(value=user_id)),
        ]

        # Vectors of different models are never compared
        if self._embedding_model:
            must.append(
                FieldCondition(
                    key="embedding_model",
                    match=MatchValue(value=self._embedding_model),
                )
            )

        return Filter(must=must)

    def insert(self, user_id, source_file_name, content, embedding) -> DocumentChunk:

        chunk = self._build_chunk(user_id, source_file_name, content, embedding)

        point = PointStruct(
            id=chunk.id,
            vector=chunk.embedding,
            payload={
                "user_id": chunk.user_id,
                "source_file_name": chunk.source_file_name,
                "content": chunk.content,
                "embedding_model": chunk.embedding_model,
                "created_at": chunk.created_at.isoformat(),
            },
        )

        try:
            self._db.client.upsert(
                collection_name=self._db.collection,
                points=[point],
                wait=True,
            )
        except Exception as e:
            raise StoreUnavailable(
                "Failed to store chunk in Qdrant",
                details=str(e),
            ) from e

        return chunk

    def _query(self, query, user_id: str, limit: int):

        try:
            response = self._db.client.query_points(
                collection_name=self._db.collection,
                query=query.tolist(),
                query_filter=self._user_filter(user_id),
                limit=limit,
                with_payload=True,
                with_vectors=True,
            )
        except Exception as e:
            raise StoreUnavailable(
                "Qdrant search failed",
                details=str(e),
            ) from e

        return response.points

    def nearest_neighbors(self, query_embedding, user_id, k):

        if k <= 0:
            return []

        query = as_matrix(query_embedding)[0]

        limit = k
        points = self._query(query, user_id, limit)

        # Qdrant picks arbitrarily among points tied with the k-th score,
        # so widen the window until every tied point is in it
        while len(points) == limit and points[-1].score >= points[k - 1].score:
            limit *= 2
            points = self._query(query, user_id, limit)

        hits = []

        for point in points:

            payload = point.payload or {}

            # Scoped by the filter; re-checked per point
            if payload.get("user_id") != user_id:
                continue

            hits.append((self._to_chunk(point, payload), float(point.score)))

        return rank(hits, k)

    def _to_chunk(self, point, payload) -> DocumentChunk:

        created_at = payload.get("created_at")

        return DocumentChunk(
            id=str(point.id),
            user_id=payload["user_id"],
            source_file_name=payload.get("source_file_name", ""),
            content=payload.get("content", ""),
            embedding=list(point.vector or []),
            embedding_model=payload.get("embedding_model"),
            created_at=(
                datetime.fromisoformat(created_at)
                if created_at
                else datetime.now(timezone.utc)
            ),
        )

    def count(self, user_id=None) -> int:

        try:
            result = self._db.client.count(
                collection_name=self._db.collection,
                count_filter=self._user_filter(user_id) if user_id else None,
                exact=True,
            )
        except Exception as e:
            raise StoreUnavailable(
                "Qdrant count failed",
                details=str(e),
            ) from e

        return result.count
