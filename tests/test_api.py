# tests/test_api.py
import pytest


def seed_chunk(services, user_id, text):
    services.chunk_store.insert(user_id, "cv.pdf", text, services.embedder.embed(text))


class TestChatEndpoint:

    def test_reply_grounded_in_user_chunk(self, client, services, llm, resume_text):
        seed_chunk(services, "alice", resume_text)

        response = client.post(
            "/api/chat",
            json={
                "messages": [{"role": "user", "content": "Summarize this resume"}],
                "userId": "alice",
            },
        )

        assert response.status_code == 200
        assert response.json() == {"reply": llm.reply}
        assert resume_text in llm.prompts[0]
        assert "user: Summarize this resume" in llm.prompts[0]

    def test_other_users_chunks_not_in_prompt(self, client, services, llm):
        seed_chunk(services, "alice", "Alice confidential salary history")

        response = client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "salary history"}], "userId": "bob"},
        )

        assert response.status_code == 200
        assert "Alice confidential" not in llm.prompts[0]

    def test_missing_user_id_makes_no_external_calls(self, client, embedder, llm):
        response = client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "Summarize this resume"}]},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required fields"
        assert embedder.calls == []
        assert llm.prompts == []

    def test_missing_messages(self, client, embedder):
        response = client.post("/api/chat", json={"userId": "alice"})

        assert response.status_code == 400
        assert embedder.calls == []

    def test_generation_failure_is_structured(self, client, llm):
        llm.fail = True

        response = client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "hi"}], "userId": "alice"},
        )

        assert response.status_code == 502
        body = response.json()
        assert body["error"] == "Generative model call failed"
        assert body["details"] == "quota exceeded"
        assert "Traceback" not in response.text

    def test_session_receives_both_turns(self, client, services):
        session = services.chat_store.create_session("alice")

        response = client.post(
            "/api/chat",
            json={
                "messages": [{"role": "user", "content": "Summarize this resume"}],
                "userId": "alice",
                "sessionId": session.id,
            },
        )

        assert response.status_code == 200

        messages = services.chat_store.get_messages(session.id)
        assert [(m.role, m.content) for m in messages] == [
            ("user", "Summarize this resume"),
            ("assistant", response.json()["reply"]),
        ]

    def test_foreign_session_rejected(self, client, services, llm):
        session = services.chat_store.create_session("alice")

        response = client.post(
            "/api/chat",
            json={
                "messages": [{"role": "user", "content": "hi"}],
                "userId": "bob",
                "sessionId": session.id,
            },
        )

        assert response.status_code == 404
        assert llm.prompts == []


class TestProcessFileEndpoint:

    def test_2000_character_document(self, client, services, blob_store):
        blob_store.files["alice/1_cv.txt"] = ("r" * 2000).encode()

        response = client.post(
            "/api/process-file",
            json={"filePath": "alice/1_cv.txt", "fileName": "cv.txt", "userId": "alice"},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "chunksProcessed": 3}
        assert services.chunk_store.count("alice") == 3
        assert services.document_registry.list_for_user("alice")[0].chunks_count == 3

    @pytest.mark.parametrize("missing", ["filePath", "fileName", "userId"])
    def test_missing_field(self, client, blob_store, missing):
        payload = {"filePath": "alice/1_cv.txt", "fileName": "cv.txt", "userId": "alice"}
        del payload[missing]

        response = client.post("/api/process-file", json=payload)

        assert response.status_code == 400
        assert blob_store.downloads == []

    def test_unknown_file(self, client):
        response = client.post(
            "/api/process-file",
            json={"filePath": "alice/none.pdf", "fileName": "none.pdf", "userId": "alice"},
        )

        assert response.status_code == 404

    def test_other_users_file_rejected(self, client, blob_store, services):
        blob_store.files["alice/1_cv.txt"] = b"Alice private resume"

        response = client.post(
            "/api/process-file",
            json={"filePath": "alice/1_cv.txt", "fileName": "cv.txt", "userId": "bob"},
        )

        assert response.status_code == 400
        assert blob_store.downloads == []
        assert services.chunk_store.count("bob") == 0

    def test_unparseable_file(self, client, blob_store, services):
        blob_store.files["alice/1_cv.txt"] = b"\xff\xfe"

        response = client.post(
            "/api/process-file",
            json={"filePath": "alice/1_cv.txt", "fileName": "cv.txt", "userId": "alice"},
        )

        assert response.status_code == 422
        assert services.chunk_store.count() == 0

    def test_partial_failure_reports_persisted_chunks(self, client, blob_store, embedder, services):
        blob_store.files["alice/1_cv.txt"] = ("r" * 2000).encode()
        embedder.fail_on_call = 2

        response = client.post(
            "/api/process-file",
            json={"filePath": "alice/1_cv.txt", "fileName": "cv.txt", "userId": "alice"},
        )

        assert response.status_code == 502
        assert response.json()["chunksPersisted"] == 1
        assert services.document_registry.list_for_user("alice") == []


class TestUploadEndpoint:

    def test_upload_stores_and_processes(self, client, blob_store, services):
        response = client.post(
            "/api/upload",
            data={"userId": "alice"},
            files={"file": ("my cv.txt", b"Python engineer", "text/plain")},
        )

        assert response.status_code == 200

        body = response.json()
        assert body["success"] is True
        assert body["chunksProcessed"] == 1
        assert body["filePath"].startswith("alice/")
        assert body["filePath"].endswith("_my_cv.txt")
        assert blob_store.files[body["filePath"]] == b"Python engineer"

        documents = client.get("/api/documents", params={"userId": "alice"}).json()
        assert documents["total_documents"] == 1
        assert documents["total_chunks"] == 1

    def test_wrong_extension(self, client):
        response = client.post(
            "/api/upload",
            data={"userId": "alice"},
            files={"file": ("cv.exe", b"MZ", "application/octet-stream")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Unsupported file type"

    def test_missing_user(self, client, blob_store):
        response = client.post(
            "/api/upload",
            files={"file": ("cv.txt", b"text", "text/plain")},
        )

        assert response.status_code == 400
        assert blob_store.files == {}


class TestSessionEndpoints:

    def test_session_lifecycle(self, client):
        created = client.post("/api/sessions", json={"userId": "alice"}).json()

        assert created["title"] == "New Chat"

        client.patch(
            f"/api/sessions/{created['id']}",
            json={"userId": "alice", "title": "CV review"},
        )
        client.post(
            f"/api/sessions/{created['id']}/messages",
            json={"userId": "alice", "role": "user", "content": "hello"},
        )

        latest = client.get("/api/sessions/latest", params={"userId": "alice"}).json()
        messages = client.get(
            f"/api/sessions/{created['id']}/messages",
            params={"userId": "alice"},
        ).json()

        assert latest["id"] == created["id"]
        assert latest["title"] == "CV review"
        assert [m["content"] for m in messages] == ["hello"]

    def test_sessions_listed_newest_first(self, client):
        client.post("/api/sessions", json={"userId": "alice", "title": "one"})
        client.post("/api/sessions", json={"userId": "alice", "title": "two"})

        sessions = client.get("/api/sessions", params={"userId": "alice"}).json()

        assert [s["title"] for s in sessions] == ["two", "one"]

    def test_no_latest_session(self, client):
        assert client.get("/api/sessions/latest", params={"userId": "alice"}).status_code == 404

    def test_sessions_scoped_to_owner(self, client):
        created = client.post("/api/sessions", json={"userId": "alice"}).json()
        path = f"/api/sessions/{created['id']}"

        rename = client.patch(path, json={"userId": "bob", "title": "mine now"})
        write = client.post(f"{path}/messages", json={"userId": "bob", "role": "user", "content": "x"})
        read = client.get(f"{path}/messages", params={"userId": "bob"})

        assert [rename.status_code, write.status_code, read.status_code] == [404, 404, 404]

        latest = client.get("/api/sessions/latest", params={"userId": "alice"}).json()
        assert latest["title"] == "New Chat"

    def test_session_messages_require_user(self, client):
        created = client.post("/api/sessions", json={"userId": "alice"}).json()

        response = client.get(f"/api/sessions/{created['id']}/messages")

        assert response.status_code == 400

    def test_invalid_role(self, client):
        created = client.post("/api/sessions", json={"userId": "alice"}).json()

        response = client.post(
            f"/api/sessions/{created['id']}/messages",
            json={"userId": "alice", "role": "system", "content": "x"},
        )

        assert response.status_code == 422


class TestHealthAndMetrics:

    def test_health_counts(self, client, services):
        seed_chunk(services, "alice", "Python")

        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["total_chunks"] == 1
        assert data["embedding"]["model"] == "fake-embedding"
        assert data["llm"]["provider"] == "fake"

    def test_metrics_count_requests(self, client):
        client.get("/health")
        client.post("/api/chat", json={})

        metrics = client.get("/metrics").json()

        assert metrics["successful_requests"] >= 1
        assert metrics["failed_requests"] >= 1
        assert "p95_latency" in metrics

    def test_request_id_header(self, client):
        assert client.get("/").headers["X-Request-ID"]

    def test_unexpected_error_hides_internals(self, client, services):
        def explode(*args, **kwargs):
            raise RuntimeError("database password is hunter2")

        services.chunk_store.nearest_neighbors = explode

        response = client.post(
            "/api/chat",
            json={"messages": [{"role": "user", "content": "hi"}], "userId": "alice"},
        )

        assert response.status_code == 500
        assert "hunter2" not in response.text
