# tests/conftest.py
import re
import zlib

import numpy as np
import pytest
from fastapi.testclient import TestClient

from resume_assistant.dependencies import Services
from resume_assistant.errors import EmbeddingUnavailable, GenerationUnavailable, NotFound
from resume_assistant.main import create_app
from resume_assistant.memory.store import FaissChunkStore
from resume_assistant.observability.metrics import MetricsTracker
from resume_assistant.observability.posthog_client import PostHogClient
from resume_assistant.storage.blob_store import BlobStore
from resume_assistant.storage.chat_store import ChatStore, DocumentRegistry


FAKE_DIMENSION = 32


class FakeEmbedder:
    """
    Deterministic bag-of-words embedder.

    Texts sharing words get similar vectors, so ranking tests behave like
    a real model without network calls.
    """

    model = "fake-embedding"

    def __init__(self, fail_on_call=None):
        self.calls = []
        self.fail_on_call = fail_on_call

    def embed(self, text):

        self.calls.append(text)

        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise EmbeddingUnavailable("Embedding provider call failed", details="timeout")

        vector = np.zeros(FAKE_DIMENSION, dtype="float32")
        vector[0] = 0.01

        for word in re.findall(r"[a-z0-9]+", text.lower()):
            vector[1 + zlib.crc32(word.encode()) % (FAKE_DIMENSION - 1)] += 1.0

        return vector / np.linalg.norm(vector)

    def embed_batch(self, texts):
        return [self.embed(text) for text in texts]

    def get_dimension(self):
        return FAKE_DIMENSION

    def health_check(self):
        return {"model": self.model, "dimension": FAKE_DIMENSION, "provider": "fake", "status": "healthy"}


class FakeLLM:

    def __init__(self, reply="Professional Summary:\nA seasoned engineer.", fail=False):
        self.reply = reply
        self.fail = fail
        self.prompts = []

    def generate(self, prompt):

        self.prompts.append(prompt)

        if self.fail:
            raise GenerationUnavailable("Generative model call failed", details="quota exceeded")

        return self.reply

    def health_check(self):
        return {"provider": "fake", "model": "fake-llm"}


class InMemoryBlobStore(BlobStore):

    def __init__(self, files=None):
        self.files = dict(files or {})
        self.downloads = []

    def upload(self, path, data):
        self.files[path] = data
        return path

    def download(self, path):

        self.downloads.append(path)

        if path not in self.files:
            raise NotFound("File not found", details=path)

        return self.files[path]


@pytest.fixture(autouse=True)
def no_posthog(monkeypatch):
    monkeypatch.delenv("POSTHOG_API_KEY", raising=False)


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def chunk_store():
    return FaissChunkStore(dim=FAKE_DIMENSION, embedding_model=FakeEmbedder.model)


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def services(embedder, chunk_store, llm, blob_store):
    return Services(
        embedder=embedder,
        chunk_store=chunk_store,
        llm_client=llm,
        blob_store=blob_store,
        chat_store=ChatStore(),
        document_registry=DocumentRegistry(),
        metrics=MetricsTracker(),
        analytics=PostHogClient(),
    )


@pytest.fixture
def client(services):
    """
    FastAPI test client wired to fakes.

    Used to make requests to the API in tests.
    """
    return TestClient(create_app(services), raise_server_exceptions=False)


@pytest.fixture
def resume_text():
    return (
        "Jane Doe. Senior backend engineer with eight years of Python and Go. "
        "Led the migration of a payments platform to Kubernetes. "
        "Skills: Python, FastAPI, PostgreSQL, Kafka, Terraform."
    )
