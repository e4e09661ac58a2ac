# resume_assistant/observability/posthog_client.py

"""
PostHog product analytics for resume ingestion and chat.

Events are keyed by the caller's user id when known, else by request id.
File names are never sent; only the extension is. Without POSTHOG_API_KEY
every call is a no-op, and capture errors are logged, not raised.
"""

import logging
import os
from typing import Any, Dict, Optional

from posthog import Posthog


logger = logging.getLogger(__name__)


DOCUMENT_PROCESSED = "document_processed"
INGESTION_FAILED = "ingestion_failed"
RETRIEVAL_COMPLETED = "retrieval_completed"
CHAT_COMPLETED = "chat_completed"
SYSTEM_ERROR = "system_error"


class PostHogClient:

    def __init__(self, api_key: Optional[str] = None, host: Optional[str] = None):

        api_key = api_key or os.getenv("POSTHOG_API_KEY")
        self._host = host or os.getenv("POSTHOG_HOST", "https://app.posthog.com")

        self._client: Optional[Posthog] = None

        if api_key:
            self._client = Posthog(
                project_api_key=api_key,
                host=self._host,
                timeout=5,
                flush_interval=1,
            )

        logger.info(
            "Analytics configured",
            extra={"posthog_enabled": self.enabled, "host": self._host},
        )

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def capture(self, event: str, distinct_id: str, properties: Dict[str, Any]):

        if self._client is None:
            return

        try:
            self._client.capture(
                distinct_id=distinct_id,
                event=event,
                properties=properties,
            )
        except Exception as e:
            logger.warning(
                "Analytics capture failed",
                extra={"event": event, "error": str(e)},
            )

    # Ingestion

    def track_document_processed(self, distinct_id: str, file_name: str, chunks: int, latency: float):

        self.capture(DOCUMENT_PROCESSED, distinct_id, {
            "file_type": os.path.splitext(file_name)[1].lower().lstrip("."),
            "chunks": chunks,
            "latency_seconds": round(latency, 3),
        })

    def track_ingestion_failed(self, distinct_id: str, stage: str, chunks_persisted: int):

        self.capture(INGESTION_FAILED, distinct_id, {
            "stage": stage,
            "chunks_persisted": chunks_persisted,
        })

    # Chat

    def track_retrieval(self, distinct_id: str, chunks_retrieved: int, top_score: Optional[float]):

        self.capture(RETRIEVAL_COMPLETED, distinct_id, {
            "chunks_retrieved": chunks_retrieved,
            "top_score": top_score,
            "empty": chunks_retrieved == 0,
        })

    def track_chat(self, distinct_id: str, message_count: int, latency: float):

        self.capture(CHAT_COMPLETED, distinct_id, {
            "message_count": message_count,
            "latency_seconds": round(latency, 3),
        })

    def track_error(self, distinct_id: str, error_type: str, error_message: str, endpoint: str):

        self.capture(SYSTEM_ERROR, distinct_id, {
            "error_type": error_type,
            "error_message": error_message,
            "endpoint": endpoint,
        })

    def shutdown(self):
        """Flush queued events."""

        if self._client is not None:
            self._client.shutdown()
