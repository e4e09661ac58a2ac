import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Type

from pydantic import BaseModel

from resume_assistant.config import (
    CHAT_SESSIONS_TABLE,
    DEFAULT_CHAT_TITLE,
    MESSAGES_TABLE,
    USER_DOCUMENTS_TABLE,
)
from resume_assistant.errors import NotFound, StoreUnavailable
from resume_assistant.models import ChatMessage, ChatSession, UserDocument


logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ============================================================
# JSON TABLE (PERSISTENT)
# ============================================================

class JsonTable:
    """
    Append-ordered record list mirrored to `<directory>/<name>.json`.

    With no directory the table lives in memory only.
    """

    def __init__(self, name: str, model: Type[BaseModel], directory: Optional[str] = None):

        self._name = name
        self._model = model
        self._lock = threading.Lock()
        self._records: List[BaseModel] = []

        self._path = os.path.join(directory, f"{name}.json") if directory else None

        self._load()

    def _load(self):

        if not self._path or not os.path.exists(self._path):
            logger.info("Table file not found. Starting fresh.", extra={"table": self._name})
            return

        try:

            with open(self._path, "r") as f:
                data = json.load(f)

        except (OSError, ValueError) as e:
            raise StoreUnavailable(
                f"Failed to load table {self._name}",
                details=str(e),
            ) from e

        self._records = [self._model(**record) for record in data]

        logger.info(
            "Table loaded",
            extra={"table": self._name, "records": len(self._records)},
        )

    def _save(self, records: List[BaseModel]):

        if not self._path:
            return

        os.makedirs(os.path.dirname(self._path) or ".", exist_ok=True)

        tmp_path = f"{self._path}.tmp"

        with open(tmp_path, "w") as f:
            json.dump([record.model_dump(mode="json") for record in records], f)

        os.replace(tmp_path, self._path)

    def insert(self, record: BaseModel) -> BaseModel:

        with self._lock:

            records = self._records + [record]

            try:
                self._save(records)
            except OSError as e:
                raise StoreUnavailable(
                    f"Failed to write table {self._name}",
                    details=str(e),
                ) from e

            self._records = records

        return record

    def replace(self, record_id: str, record: BaseModel) -> BaseModel:

        with self._lock:

            records = [record if r.id == record_id else r for r in self._records]

            try:
                self._save(records)
            except OSError as e:
                raise StoreUnavailable(
                    f"Failed to write table {self._name}",
                    details=str(e),
                ) from e

            self._records = records

        return record

    def select(self, **filters) -> List[BaseModel]:
        """Records matching every field filter, in insertion order."""

        with self._lock:
            records = list(self._records)

        return [
            record
            for record in records
            if all(getattr(record, field) == value for field, value in filters.items())
        ]


# ============================================================
# CHAT SESSIONS AND MESSAGES
# ============================================================

class ChatStore:
    """Sessions and messages, each session owned by one user."""

    def __init__(self, directory: Optional[str] = None):

        self._sessions = JsonTable(CHAT_SESSIONS_TABLE, ChatSession, directory)
        self._messages = JsonTable(MESSAGES_TABLE, ChatMessage, directory)

    def create_session(self, user_id: str, title: Optional[str] = None) -> ChatSession:

        session = ChatSession(
            id=_new_id(),
            user_id=user_id,
            title=title or DEFAULT_CHAT_TITLE,
            created_at=_now(),
        )

        self._sessions.insert(session)

        logger.info(
            "Chat session created",
            extra={"session_id": session.id, "user_id": user_id},
        )

        return session

    def list_sessions(self, user_id: str) -> List[ChatSession]:
        """Newest first; among equal timestamps the later insert wins."""

        sessions = self._sessions.select(user_id=user_id)

        return sorted(
            reversed(sessions),
            key=lambda session: session.created_at,
            reverse=True,
        )

    def get_session(self, session_id: str, user_id: Optional[str] = None) -> ChatSession:

        filters: Dict[str, str] = {"id": session_id}

        if user_id is not None:
            filters["user_id"] = user_id

        matches = self._sessions.select(**filters)

        if not matches:
            raise NotFound("Chat session not found", details=session_id)

        return matches[0]

    def get_latest_session(self, user_id: str) -> Optional[ChatSession]:

        sessions = self.list_sessions(user_id)

        return sessions[0] if sessions else None

    def update_title(self, session_id: str, title: str, user_id: Optional[str] = None) -> ChatSession:

        session = self.get_session(session_id, user_id=user_id)

        updated = session.model_copy(update={"title": title})

        return self._sessions.replace(session_id, updated)

    def save_message(
        self,
        session_id: str,
        role: str,
        content: str,
        user_id: Optional[str] = None,
    ) -> ChatMessage:

        self.get_session(session_id, user_id=user_id)

        message = ChatMessage(
            id=_new_id(),
            session_id=session_id,
            role=role,
            content=content,
            created_at=_now(),
        )

        return self._messages.insert(message)

    def get_messages(self, session_id: str) -> List[ChatMessage]:
        """Creation order, which is the conversation history."""

        messages = self._messages.select(session_id=session_id)

        return sorted(messages, key=lambda message: message.created_at)


# ============================================================
# DOCUMENT REGISTRY
# ============================================================

class DocumentRegistry:
    """Processed documents per user."""

    def __init__(self, directory: Optional[str] = None):

        self._documents = JsonTable(USER_DOCUMENTS_TABLE, UserDocument, directory)

    def add(self, user_id: str, file_name: str, file_path: str, chunks_count: int) -> UserDocument:

        document = UserDocument(
            id=_new_id(),
            user_id=user_id,
            file_name=file_name,
            file_path=file_path,
            chunks_count=chunks_count,
            created_at=_now(),
        )

        self._documents.insert(document)

        logger.info(
            "Document registered",
            extra={"document_id": document.id, "user_id": user_id},
        )

        return document

    def list_for_user(self, user_id: str) -> List[UserDocument]:

        documents = self._documents.select(user_id=user_id)

        return sorted(
            reversed(documents),
            key=lambda document: document.created_at,
            reverse=True,
        )

    def count(self) -> int:

        return len(self._documents.select())
