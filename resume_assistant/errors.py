# resume_assistant/errors.py

"""
Error taxonomy for the RAG pipeline.

Every error names the stage that failed so the API layer can map it to a
status code and a structured body without inspecting messages.
"""

from typing import Optional


class ResumeAssistantError(Exception):

    stage = "unknown"
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):

        super().__init__(message)

        self.message = message
        self.details = details

    def to_dict(self) -> dict:

        body = {"error": self.message}

        if self.details:
            body["details"] = self.details

        return body


class ValidationError(ResumeAssistantError):
    """Missing or malformed request fields. Raised before any external call."""

    stage = "validation"
    status_code = 400


class NotFound(ResumeAssistantError):

    stage = "lookup"
    status_code = 404


class ExtractionFailed(ResumeAssistantError):
    """The source document could not be parsed into text."""

    stage = "extraction"
    status_code = 422


class EmbeddingUnavailable(ResumeAssistantError):

    stage = "embedding"
    status_code = 502


class GenerationUnavailable(ResumeAssistantError):

    stage = "generation"
    status_code = 502


class StoreUnavailable(ResumeAssistantError):
    """Chunk store, blob store or chat store failure."""

    stage = "storage"
    status_code = 503


class IngestionFailed(ResumeAssistantError):
    """
    Ingestion stopped after some chunks were already stored.

    Stored chunks are not rolled back; chunks_persisted reports how many
    made it so the caller can decide whether to re-process the document.
    """

    stage = "ingestion"

    def __init__(self, cause: ResumeAssistantError, chunks_persisted: int):

        super().__init__(
            f"Ingestion failed during {cause.stage}",
            details=cause.details or cause.message,
        )

        self.cause = cause
        self.stage = cause.stage
        self.status_code = cause.status_code
        self.chunks_persisted = chunks_persisted

    def to_dict(self) -> dict:

        body = super().to_dict()
        body["chunksPersisted"] = self.chunks_persisted

        return body
