# resume_assistant/workflow/ingestion.py

"""
Document ingestion pipeline.

DOWNLOADING → EXTRACTING → CHUNKING → EMBEDDING → DONE
FAILED is reachable from any state.

Chunks are embedded and stored one at a time, in order. A failure while
embedding or storing does not roll back chunks already stored; the raised
IngestionFailed reports how many were persisted.
"""

import enum
import logging
import time
from dataclasses import dataclass

from resume_assistant.config import CHUNK_SIZE
from resume_assistant.errors import (
    IngestionFailed,
    ResumeAssistantError,
    StoreUnavailable,
    ValidationError,
)
from resume_assistant.memory.chunker import chunk_text
from resume_assistant.memory.loader import load_text_from_bytes

logger = logging.getLogger(__name__)


class IngestionState(str, enum.Enum):
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    CHUNKING = "chunking"
    EMBEDDING = "embedding"
    DONE = "done"
    FAILED = "failed"


@dataclass
class IngestionResult:
    file_path: str
    file_name: str
    user_id: str
    chunks_processed: int
    state: IngestionState
    latency_seconds: float


class IngestionPipeline:

    def __init__(self, blob_store, embedder, store, chunk_size: int = CHUNK_SIZE):

        self._blob_store = blob_store
        self._embedder = embedder
        self._store = store
        self._chunk_size = chunk_size

    def run(self, file_path: str, file_name: str, user_id: str) -> IngestionResult:

        if not file_path or not file_name or not user_id:
            raise ValidationError(
                "Missing required fields",
                details="filePath, fileName and userId are required",
            )

        start = time.time()
        state = IngestionState.DOWNLOADING
        persisted = 0

        log_extra = {"file_path": file_path, "user_id": user_id}

        try:

            self._transition(state, log_extra)
            data = self._blob_store.download(file_path)

            state = IngestionState.EXTRACTING
            self._transition(state, log_extra)
            text = load_text_from_bytes(data, file_name)

            state = IngestionState.CHUNKING
            self._transition(state, log_extra)
            chunks = chunk_text(text, self._chunk_size)

            state = IngestionState.EMBEDDING
            self._transition(state, {**log_extra, "chunks": len(chunks)})

            for chunk in chunks:

                embedding = self._embedder.embed(chunk)

                self._store.insert(
                    user_id=user_id,
                    source_file_name=file_name,
                    content=chunk,
                    embedding=embedding,
                )

                persisted += 1

        except ResumeAssistantError as e:

            self._log_failure(state, persisted, e.message, log_extra)

            if state is IngestionState.EMBEDDING:
                raise IngestionFailed(e, chunks_persisted=persisted) from e

            raise

        except Exception as e:

            self._log_failure(state, persisted, str(e), log_extra)

            if state is IngestionState.EMBEDDING:
                cause = StoreUnavailable("Failed to store chunk", details=str(e))
                raise IngestionFailed(cause, chunks_persisted=persisted) from e

            raise

        latency = time.time() - start

        self._transition(
            IngestionState.DONE,
            {**log_extra, "chunks_processed": persisted, "latency_seconds": round(latency, 3)},
        )

        return IngestionResult(
            file_path=file_path,
            file_name=file_name,
            user_id=user_id,
            chunks_processed=persisted,
            state=IngestionState.DONE,
            latency_seconds=latency,
        )

    def _transition(self, state: IngestionState, extra: dict):

        logger.info("Ingestion state", extra={**extra, "state": state.value})

    def _log_failure(self, state: IngestionState, persisted: int, error: str, extra: dict):

        logger.error(
            "Ingestion failed",
            extra={
                **extra,
                "state": IngestionState.FAILED.value,
                "failed_state": state.value,
                "chunks_persisted": persisted,
                "error": error,
            },
        )
