import logging
import os
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool

from resume_assistant.config import ALLOWED_FILE_EXTENSIONS, MAX_FILE_SIZE_MB
from resume_assistant.dependencies import Services, get_services
from resume_assistant.errors import NotFound, ResumeAssistantError, ValidationError
from resume_assistant.memory.retriever import retrieve
from resume_assistant.models import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ChatSession,
    CreateSessionRequest,
    HealthResponse,
    ListDocumentsResponse,
    ProcessFileRequest,
    ProcessFileResponse,
    SaveMessageRequest,
    UpdateSessionRequest,
    UploadResponse,
)
from resume_assistant.storage.blob_store import generate_file_path
from resume_assistant.workflow.resume_chat import answer_chat, validate_chat_input


# ============================================================
# LOGGER
# ============================================================

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================
# HELPERS
# ============================================================

def _distinct_id(request: Request, user_id: Optional[str]) -> str:
    return user_id or getattr(request.state, "request_id", "anonymous")


def _require_user_id(user_id: Optional[str]) -> str:

    if not user_id:
        raise ValidationError("Missing required fields", details="userId is required")

    return user_id


def validate_upload(filename: Optional[str], content: bytes):

    if not filename:
        raise ValidationError("Missing file name")

    extension = os.path.splitext(filename)[1].lower()

    if extension not in ALLOWED_FILE_EXTENSIONS:
        raise ValidationError(
            "Unsupported file type",
            details=f"allowed: {', '.join(ALLOWED_FILE_EXTENSIONS)}",
        )

    size_mb = len(content) / (1024 * 1024)

    if size_mb > MAX_FILE_SIZE_MB:
        raise ValidationError(
            "File too large",
            details=f"{size_mb:.2f}MB exceeds {MAX_FILE_SIZE_MB}MB",
        )


def _run_ingestion(services: Services, file_path: str, file_name: str, user_id: str):

    try:
        result = services.ingestion.run(
            file_path=file_path,
            file_name=file_name,
            user_id=user_id,
        )
    except ResumeAssistantError as e:
        services.analytics.track_ingestion_failed(
            distinct_id=user_id,
            stage=e.stage,
            chunks_persisted=getattr(e, "chunks_persisted", 0),
        )
        raise

    services.document_registry.add(
        user_id=user_id,
        file_name=file_name,
        file_path=file_path,
        chunks_count=result.chunks_processed,
    )

    services.analytics.track_document_processed(
        distinct_id=user_id,
        file_name=file_name,
        chunks=result.chunks_processed,
        latency=result.latency_seconds,
    )

    return result


# ============================================================
# CHAT
# ============================================================

@router.post("/api/chat", response_model=ChatResponse)
def chat(
    payload: ChatRequest,
    request: Request,
    services: Services = Depends(get_services),
):

    start_time = time.time()

    validate_chat_input(payload.messages, payload.user_id)

    if payload.session_id:
        services.chat_store.get_session(payload.session_id, user_id=payload.user_id)

    distinct_id = _distinct_id(request, payload.user_id)

    def retrieve_fn(query: str, user_id: str, top_k: int):

        contexts = retrieve(
            query,
            user_id=user_id,
            embedder=services.embedder,
            store=services.chunk_store,
            top_k=top_k,
        )

        services.analytics.track_retrieval(
            distinct_id=distinct_id,
            chunks_retrieved=len(contexts),
            top_score=contexts[0].similarity if contexts else None,
        )

        return contexts

    result = answer_chat(
        messages=payload.messages,
        user_id=payload.user_id,
        retrieve_fn=retrieve_fn,
        llm_client=services.llm_client,
    )

    if payload.session_id:

        last = payload.messages[-1]

        if last.role == "user":
            services.chat_store.save_message(payload.session_id, "user", last.content)

        services.chat_store.save_message(payload.session_id, "assistant", result["reply"])

    services.analytics.track_chat(
        distinct_id=distinct_id,
        message_count=len(payload.messages),
        latency=time.time() - start_time,
    )

    logger.info(
        "Chat reply generated",
        extra={
            "user_id": payload.user_id,
            "sources_used": result["sources_used"],
        },
    )

    return ChatResponse(reply=result["reply"])


# ============================================================
# DOCUMENT PROCESSING
# ============================================================

@router.post("/api/process-file", response_model=ProcessFileResponse)
def process_file(
    payload: ProcessFileRequest,
    services: Services = Depends(get_services),
):

    if not payload.file_path or not payload.file_name or not payload.user_id:
        raise ValidationError(
            "Missing required fields",
            details="filePath, fileName and userId are required",
        )

    if not payload.file_path.startswith(f"{payload.user_id}/"):
        raise ValidationError(
            "File does not belong to user",
            details=payload.file_path,
        )

    result = _run_ingestion(
        services,
        file_path=payload.file_path,
        file_name=payload.file_name,
        user_id=payload.user_id,
    )

    return ProcessFileResponse(chunks_processed=result.chunks_processed)


@router.post("/api/upload", response_model=UploadResponse)
async def upload_document(
    file: UploadFile = File(...),
    user_id: Optional[str] = Form(None, alias="userId"),
    services: Services = Depends(get_services),
):

    user_id = _require_user_id(user_id)

    content = await file.read()

    validate_upload(file.filename, content)

    file_path = generate_file_path(user_id, file.filename)

    await run_in_threadpool(services.blob_store.upload, file_path, content)

    result = await run_in_threadpool(
        _run_ingestion,
        services,
        file_path,
        file.filename,
        user_id,
    )

    return UploadResponse(
        chunks_processed=result.chunks_processed,
        file_path=file_path,
    )


@router.get("/api/documents", response_model=ListDocumentsResponse)
def list_documents(
    user_id: Optional[str] = Query(None, alias="userId"),
    services: Services = Depends(get_services),
):

    user_id = _require_user_id(user_id)

    documents = services.document_registry.list_for_user(user_id)

    return ListDocumentsResponse(
        documents=documents,
        total_documents=len(documents),
        total_chunks=sum(document.chunks_count for document in documents),
    )


# ============================================================
# CHAT SESSIONS
# ============================================================

@router.post("/api/sessions", response_model=ChatSession)
def create_session(
    payload: CreateSessionRequest,
    services: Services = Depends(get_services),
):

    user_id = _require_user_id(payload.user_id)

    return services.chat_store.create_session(user_id, payload.title)


@router.get("/api/sessions", response_model=List[ChatSession])
def list_sessions(
    user_id: Optional[str] = Query(None, alias="userId"),
    services: Services = Depends(get_services),
):

    return services.chat_store.list_sessions(_require_user_id(user_id))


@router.get("/api/sessions/latest", response_model=ChatSession)
def latest_session(
    user_id: Optional[str] = Query(None, alias="userId"),
    services: Services = Depends(get_services),
):

    session = services.chat_store.get_latest_session(_require_user_id(user_id))

    if session is None:
        raise NotFound("No chat session for user", details=user_id)

    return session


@router.patch("/api/sessions/{session_id}", response_model=ChatSession)
def rename_session(
    session_id: str,
    payload: UpdateSessionRequest,
    services: Services = Depends(get_services),
):

    return services.chat_store.update_title(
        session_id,
        payload.title,
        user_id=_require_user_id(payload.user_id),
    )


@router.get("/api/sessions/{session_id}/messages", response_model=List[ChatMessage])
def get_messages(
    session_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    services: Services = Depends(get_services),
):

    services.chat_store.get_session(session_id, user_id=_require_user_id(user_id))

    return services.chat_store.get_messages(session_id)


@router.post("/api/sessions/{session_id}/messages", response_model=ChatMessage)
def save_message(
    session_id: str,
    payload: SaveMessageRequest,
    services: Services = Depends(get_services),
):

    return services.chat_store.save_message(
        session_id,
        payload.role,
        payload.content,
        user_id=_require_user_id(payload.user_id),
    )


# ============================================================
# HEALTH / METRICS
# ============================================================

@router.get("/health", response_model=HealthResponse)
def health_check(services: Services = Depends(get_services)):

    return HealthResponse(
        status="healthy",
        total_documents=services.document_registry.count(),
        total_chunks=services.chunk_store.count(),
        embedding=services.embedder.health_check(),
        llm=services.llm_client.health_check(),
        vector_store=services.vector_store_backend,
    )


@router.get("/metrics")
def get_metrics(services: Services = Depends(get_services)):

    return services.metrics.get_metrics()
