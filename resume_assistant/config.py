"""
Configuration for the Resume Assistant.

Centralizes every tunable parameter of the RAG pipeline and its storage
collaborators. Each value can be overridden through an environment
variable of the same name.
"""

import os


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, default))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, default))


def _env_list(name: str, default: str) -> list:
    return [
        item.strip()
        for item in os.getenv(name, default).split(",")
        if item.strip()
    ]


# ========== DOCUMENT PROCESSING ==========

# Fixed-width chunking, in characters
CHUNK_SIZE = _env_int("CHUNK_SIZE", 800)

# Extracted text beyond this is dropped before chunking
MAX_DOCUMENT_CHARACTERS = _env_int("MAX_DOCUMENT_CHARACTERS", 500_000)

# File upload limits
MAX_FILE_SIZE_MB = _env_int("MAX_FILE_SIZE_MB", 10)
ALLOWED_FILE_EXTENSIONS = _env_list("ALLOWED_FILE_EXTENSIONS", ".pdf,.md,.txt")


# ========== EMBEDDING CONFIGURATION ==========

EMBEDDING_PROVIDER = os.getenv("EMBEDDING_PROVIDER", "openai")  # openai | gemini

EMBEDDING_MODEL = os.getenv(
    "EMBEDDING_MODEL",
    "text-embedding-3-small"
    if EMBEDDING_PROVIDER == "openai"
    else "models/text-embedding-004",
)

EMBEDDING_TIMEOUT_SECONDS = _env_float("EMBEDDING_TIMEOUT_SECONDS", 30.0)


# ========== RETRIEVAL CONFIGURATION ==========

# Number of chunks fed to the prompt
TOP_K = _env_int("TOP_K", 5)

VECTOR_STORE_BACKEND = os.getenv("VECTOR_STORE_BACKEND", "faiss")  # faiss | qdrant

QDRANT_URL = os.getenv("QDRANT_URL", "http://localhost:6333")
QDRANT_API_KEY = os.getenv("QDRANT_API_KEY")
QDRANT_COLLECTION = os.getenv("QDRANT_COLLECTION", "document_chunks")
QDRANT_TIMEOUT_SECONDS = _env_float("QDRANT_TIMEOUT_SECONDS", 30.0)


# ========== LLM CONFIGURATION ==========

LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai")  # openai | gemini

LLM_MODEL = os.getenv(
    "LLM_MODEL",
    "gpt-4o-mini" if LLM_PROVIDER == "openai" else "gemini-1.5-flash",
)

# Low temperature keeps answers close to the resume text
LLM_TEMPERATURE = _env_float("LLM_TEMPERATURE", 0.2)
LLM_MAX_TOKENS = _env_int("LLM_MAX_TOKENS", 800)
LLM_TIMEOUT_SECONDS = _env_float("LLM_TIMEOUT_SECONDS", 60.0)


# ========== STORAGE ==========

STORAGE_DIR = os.getenv("STORAGE_DIR", "storage")

BLOB_STORE_BACKEND = os.getenv("BLOB_STORE_BACKEND", "local")  # local | s3
STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "user-files")
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
BLOB_TIMEOUT_SECONDS = _env_float("BLOB_TIMEOUT_SECONDS", 30.0)

CHAT_SESSIONS_TABLE = os.getenv("CHAT_SESSIONS_TABLE", "chat_sessions")
MESSAGES_TABLE = os.getenv("MESSAGES_TABLE", "messages")
USER_DOCUMENTS_TABLE = os.getenv("USER_DOCUMENTS_TABLE", "user_documents")


# ========== CHAT ==========

DEFAULT_CHAT_TITLE = os.getenv("DEFAULT_CHAT_TITLE", "New Chat")


# ========== OBSERVABILITY ==========

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")


# ========== DESIGN TRADE-OFFS (DOCUMENTED) ==========

"""
TRADE-OFF DECISIONS:

1. CHUNK_SIZE = 800 characters, no overlap:
   - Plain fixed-width slices, no sentence awareness
   - Resumes are short, so a handful of chunks covers a whole document

2. TOP_K = 5:
   - Enough context for a three-section summary
   - More chunks raise token cost without much gain on a single resume

3. FAISS in-process by default, Qdrant when VECTOR_STORE_BACKEND=qdrant:
   - FAISS: zero infrastructure, data lives with the process
   - Qdrant: persistent, shared between instances

4. No retries anywhere in the pipeline:
   - Every failure surfaces to the caller, who may resubmit
"""
