"""
Service container.

Every collaborator is constructed once at startup by build_services() and
handed to routes through FastAPI dependencies. Tests build a Services
instance with fakes and pass it to create_app().
"""

import logging
import os
from dataclasses import dataclass

from fastapi import Request

from resume_assistant.config import (
    BLOB_STORE_BACKEND,
    STORAGE_DIR,
    VECTOR_STORE_BACKEND,
)
from resume_assistant.llm.client import LLMClient
from resume_assistant.memory.embedder import Embedder
from resume_assistant.memory.qdrant_client import QdrantChunkStore
from resume_assistant.memory.store import ChunkStore, FaissChunkStore
from resume_assistant.observability.metrics import MetricsTracker
from resume_assistant.observability.posthog_client import PostHogClient
from resume_assistant.storage.blob_store import BlobStore, LocalBlobStore, S3BlobStore
from resume_assistant.storage.chat_store import ChatStore, DocumentRegistry
from resume_assistant.workflow.ingestion import IngestionPipeline

logger = logging.getLogger(__name__)


@dataclass
class Services:
    embedder: Embedder
    chunk_store: ChunkStore
    llm_client: LLMClient
    blob_store: BlobStore
    chat_store: ChatStore
    document_registry: DocumentRegistry
    metrics: MetricsTracker
    analytics: PostHogClient
    vector_store_backend: str = VECTOR_STORE_BACKEND

    @property
    def ingestion(self) -> IngestionPipeline:
        return IngestionPipeline(
            blob_store=self.blob_store,
            embedder=self.embedder,
            store=self.chunk_store,
        )


def build_chunk_store(embedder: Embedder, backend: str = VECTOR_STORE_BACKEND) -> ChunkStore:

    if backend == "faiss":
        return FaissChunkStore(
            dim=embedder.get_dimension(),
            embedding_model=embedder.model,
            persist_dir=os.path.join(STORAGE_DIR, "chunks"),
        )

    if backend == "qdrant":
        return QdrantChunkStore(
            dim=embedder.get_dimension(),
            embedding_model=embedder.model,
        )

    raise ValueError(f"Unsupported vector store backend: {backend}")


def build_blob_store(backend: str = BLOB_STORE_BACKEND) -> BlobStore:

    if backend == "local":
        return LocalBlobStore(root=os.path.join(STORAGE_DIR, "blobs"))

    if backend == "s3":
        return S3BlobStore()

    raise ValueError(f"Unsupported blob store backend: {backend}")


def build_services() -> Services:

    embedder = Embedder()

    services = Services(
        embedder=embedder,
        chunk_store=build_chunk_store(embedder),
        llm_client=LLMClient(),
        blob_store=build_blob_store(),
        chat_store=ChatStore(directory=STORAGE_DIR),
        document_registry=DocumentRegistry(directory=STORAGE_DIR),
        metrics=MetricsTracker(path=os.path.join(STORAGE_DIR, "metrics.json")),
        analytics=PostHogClient(),
    )

    logger.info(
        "Services initialized",
        extra={
            "vector_store": VECTOR_STORE_BACKEND,
            "blob_store": BLOB_STORE_BACKEND,
        },
    )

    return services


def get_services(request: Request) -> Services:
    return request.app.state.services
