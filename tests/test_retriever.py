# tests/test_retriever.py
from unittest.mock import Mock

import pytest

from resume_assistant.errors import EmbeddingUnavailable, StoreUnavailable
from resume_assistant.memory.retriever import retrieve
from resume_assistant.models import RAGContext


def store_text(store, embedder, user_id, text):
    return store.insert(user_id, "cv.pdf", text, embedder.embed(text))


class TestRetrieve:

    def test_empty_user_gets_empty_context(self, embedder, chunk_store):
        assert retrieve("What are her skills?", "new-user", embedder, chunk_store) == []

    def test_most_relevant_chunk_first(self, embedder, chunk_store):
        store_text(chunk_store, embedder, "alice", "Hobbies: hiking, chess and painting")
        store_text(chunk_store, embedder, "alice", "Skills: Python, Kafka, Terraform")

        contexts = retrieve("Python Kafka skills", "alice", embedder, chunk_store)

        assert isinstance(contexts[0], RAGContext)
        assert contexts[0].content == "Skills: Python, Kafka, Terraform"
        assert contexts[0].similarity >= contexts[1].similarity

    def test_scoped_to_requesting_user(self, embedder, chunk_store):
        store_text(chunk_store, embedder, "alice", "Skills: Python, Kafka")
        store_text(chunk_store, embedder, "bob", "Skills: Python, Kafka")

        contexts = retrieve("Python Kafka", "bob", embedder, chunk_store, top_k=10)

        assert len(contexts) == 1

    def test_top_k_is_passed_to_store(self, embedder):
        store = Mock()
        store.nearest_neighbors.return_value = []

        retrieve("question", "alice", embedder, store, top_k=3)

        _, kwargs = store.nearest_neighbors.call_args
        assert kwargs["k"] == 3
        assert kwargs["user_id"] == "alice"

    def test_default_top_k_is_five(self, embedder):
        store = Mock()
        store.nearest_neighbors.return_value = []

        retrieve("question", "alice", embedder, store)

        assert store.nearest_neighbors.call_args.kwargs["k"] == 5


class TestRetrieveFailures:

    def test_embedding_failure_propagates_unchanged(self, chunk_store):
        embedder = Mock()
        error = EmbeddingUnavailable("Embedding provider call failed")
        embedder.embed.side_effect = error

        with pytest.raises(EmbeddingUnavailable) as exc_info:
            retrieve("question", "alice", embedder, chunk_store)

        assert exc_info.value is error

    def test_store_failure_propagates_unchanged(self, embedder):
        store = Mock()
        store.nearest_neighbors.side_effect = StoreUnavailable("Vector search failed")

        with pytest.raises(StoreUnavailable):
            retrieve("question", "alice", embedder, store)
