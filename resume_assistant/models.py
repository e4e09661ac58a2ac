from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================
# DOMAIN RECORDS
# ============================================================

class DocumentChunk(BaseModel):
    """A stored slice of a user's document with its embedding."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    source_file_name: str
    content: str
    embedding: List[float]
    embedding_model: Optional[str] = None
    created_at: datetime


class RAGContext(BaseModel):
    content: str
    similarity: float


class ChatSession(BaseModel):
    id: str
    user_id: str
    title: str
    created_at: datetime


class ChatMessage(BaseModel):
    id: str
    session_id: str
    role: Literal["user", "assistant"]
    content: str
    created_at: datetime


class UserDocument(BaseModel):
    id: str
    user_id: str
    file_name: str
    file_path: str
    chunks_count: int
    created_at: datetime


# ============================================================
# API PAYLOADS
# ============================================================

class _CamelModel(BaseModel):

    model_config = ConfigDict(populate_by_name=True)


class ConversationTurn(BaseModel):
    role: str
    content: str


class ChatRequest(_CamelModel):
    """
    Fields are optional so that missing values reach the workflow and are
    rejected there as a ValidationError instead of a framework 422.
    """

    messages: Optional[List[ConversationTurn]] = None
    user_id: Optional[str] = Field(None, alias="userId")
    session_id: Optional[str] = Field(None, alias="sessionId")


class ChatResponse(BaseModel):
    reply: str


class ProcessFileRequest(_CamelModel):
    file_path: Optional[str] = Field(None, alias="filePath")
    file_name: Optional[str] = Field(None, alias="fileName")
    user_id: Optional[str] = Field(None, alias="userId")


class ProcessFileResponse(_CamelModel):
    success: bool = True
    chunks_processed: int = Field(..., alias="chunksProcessed")


class UploadResponse(ProcessFileResponse):
    file_path: str = Field(..., alias="filePath")


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class CreateSessionRequest(_CamelModel):
    user_id: Optional[str] = Field(None, alias="userId")
    title: Optional[str] = None


class UpdateSessionRequest(_CamelModel):
    user_id: Optional[str] = Field(None, alias="userId")
    title: str = Field(..., min_length=1, max_length=200)


class SaveMessageRequest(_CamelModel):
    user_id: Optional[str] = Field(None, alias="userId")
    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1)


class ListDocumentsResponse(BaseModel):
    documents: List[UserDocument]
    total_documents: int
    total_chunks: int


class HealthResponse(BaseModel):
    status: str
    total_documents: int
    total_chunks: int
    embedding: dict
    llm: dict
    vector_store: str
