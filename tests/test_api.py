"""
API tests for the retrieval service.
Services are swapped for in-memory ones through dependency overrides.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

from storyrag.api import deps
from storyrag.services.index_service import IndexService
from storyrag.main import app

CHAPTER = {
    "id": "ch1",
    "project_id": "p1",
    "order": 1,
    "title": "出山",
    "content": "林风背着剑离开了青云宗，山路漫长，他走了整整一天。" * 8,
}
ORIGINAL = "他走进房间，看到桌子上放着一封信。他拿起信，打开来看。信上写着一些字。" * 3
REWRITE = "推门的一瞬，冷风卷着雨丝扑面而来。案头压着半封残信，墨迹洇开，像谁哭过。" * 3


class TestRecordsAPI:

    def test_index_chapter_in_background(self, client, store):
        response = client.post("/storyrag/records/chapters", json=CHAPTER)
        assert response.status_code == 202
        assert response.json()["accepted"] is True
        # TestClient runs background tasks before returning
        assert len(store.list_by_related_id("ch1")) >= 1

    def test_index_chapter_sync(self, client):
        response = client.post("/storyrag/records/chapters?sync=true", json=CHAPTER)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "indexed"
        assert data["related_id"] == "ch1"
        assert data["records_written"] >= 1

    def test_sync_indexing_runs_off_the_event_loop(self, client, store):
        loops = []

        class LoopRecordingEmbedder:
            def embed_text(self, text):
                try:
                    loops.append(asyncio.get_running_loop())
                except RuntimeError:
                    loops.append(None)
                return [1.0, 0.0]

        app.dependency_overrides[deps.get_index_service] = lambda: IndexService(store, LoopRecordingEmbedder())
        response = client.post("/storyrag/records/characters?sync=true", json={"id": "pc1", "name": "林风"})
        assert response.status_code == 200
        assert loops == [None]

    def test_short_chapter_is_skipped(self, client):
        response = client.post("/storyrag/records/chapters?sync=true", json={**CHAPTER, "content": "短。"})
        assert response.json()["status"] == "skipped"

    def test_index_other_kinds(self, client, store):
        r1 = client.post("/storyrag/records/characters?sync=true", json={"id": "pc1", "name": "林风", "role": "剑客"})
        r2 = client.post("/storyrag/records/wiki?sync=true", json={"id": "w1", "name": "青云宗"})
        r3 = client.post("/storyrag/records/style-samples?sync=true", json={
            "id": "s1", "original_ai": ORIGINAL, "user_final": REWRITE, "edit_ratio": 0.7,
        })
        assert [r.json()["status"] for r in (r1, r2, r3)] == ["indexed"] * 3
        assert {r.kind.value for r in store.get_all()} == {"character", "wiki", "style"}

    def test_invalid_payload(self, client):
        response = client.post("/storyrag/records/characters", json={"id": "pc1"})
        assert response.status_code == 422

    def test_sync_and_durable_conflict(self, client):
        response = client.post("/storyrag/records/chapters?sync=true&durable=true", json=CHAPTER)
        assert response.status_code == 400

    def test_durable_starts_workflow(self, client):
        temporal = MagicMock()
        temporal.start_indexing = AsyncMock(return_value="index-chapter-ch1-abc")
        app.dependency_overrides[deps.get_temporal_client] = lambda: temporal

        response = client.post("/storyrag/records/chapters?durable=true", json=CHAPTER)
        assert response.status_code == 202
        assert response.json()["workflow_id"] == "index-chapter-ch1-abc"
        request = temporal.start_indexing.await_args.args[0]
        assert request.kind == "chapter"
        assert request.entity["id"] == "ch1"

    def test_durable_without_temporal(self, client):
        temporal = MagicMock()
        temporal.start_indexing = AsyncMock(side_effect=RuntimeError("connection refused"))
        app.dependency_overrides[deps.get_temporal_client] = lambda: temporal
        response = client.post("/storyrag/records/chapters?durable=true", json=CHAPTER)
        assert response.status_code == 503

    def test_list_hides_vectors(self, client):
        client.post("/storyrag/records/chapters?sync=true", json=CHAPTER)
        client.post("/storyrag/records/characters?sync=true", json={"id": "pc1", "name": "林风"})
        records = client.get("/storyrag/records").json()
        assert len(records) >= 2
        assert all("vector" not in r and r["has_vector"] for r in records)

        only = client.get("/storyrag/records", params={"kind": "character"}).json()
        assert [r["related_id"] for r in only] == ["pc1"]

    def test_delete_entity(self, client, store):
        client.post("/storyrag/records/chapters?sync=true", json=CHAPTER)
        assert client.delete("/storyrag/records/ch1").status_code == 204
        assert store.count() == 0
        assert client.delete("/storyrag/records/ch1").status_code == 404

    def test_clear(self, client, store):
        client.post("/storyrag/records/chapters?sync=true", json=CHAPTER)
        assert client.delete("/storyrag/records").status_code == 204
        assert store.count() == 0


class TestSearchAndContextAPI:

    def test_search(self, client):
        client.post("/storyrag/records/chapters?sync=true", json=CHAPTER)
        client.post("/storyrag/records/characters?sync=true", json={"id": "pc1", "name": "林风", "role": "剑客"})
        response = client.post("/storyrag/search", json={"query": "林风", "k": 1})
        assert response.status_code == 200
        data = response.json()
        assert data["k"] == 1
        assert len(data["hits"]) == 1
        hit = data["hits"][0]
        assert {"vector_similarity", "keyword_score", "recency_weight", "composite_score"} <= hit.keys()
        assert data["degraded"] is False

    def test_search_empty_query(self, client):
        assert client.post("/storyrag/search", json={"query": "  "}).status_code == 400

    def test_context(self, client):
        client.post("/storyrag/records/chapters?sync=true", json=CHAPTER)
        response = client.post("/storyrag/context", json={
            "query": "林风",
            "token_budget": 500,
            "options": {"exclude_related_ids": ["other"]},
        })
        assert response.status_code == 200
        data = response.json()
        assert data["text"].startswith("[Previous chapter 1: 出山]")
        assert data["degraded"] is False
        assert data["style_section"] == ""
        assert all("vector" not in c["record"] for c in data["candidates"])

    def test_context_with_style_samples(self, client):
        client.post("/storyrag/style-samples/capture", json={
            "project_id": "p1", "original_ai": ORIGINAL, "user_final": REWRITE,
        })
        response = client.post("/storyrag/context", json={
            "query": "雨夜", "options": {"project_id": "p1"}, "style_samples": 2,
        })
        assert "### Example 1" in response.json()["style_section"]

    def test_naive_sample_timestamp_with_context_and_stats(self, client):
        client.post("/storyrag/records/style-samples?sync=true", json={
            "id": "s1", "project_id": "p1", "original_ai": ORIGINAL, "user_final": REWRITE,
            "edit_ratio": 0.7, "created_at": "2026-10-01T12:00:00",
        })
        client.post("/storyrag/style-samples/capture", json={
            "project_id": "p1", "original_ai": ORIGINAL, "user_final": REWRITE + "又改了一句。",
        })
        response = client.post("/storyrag/context", json={
            "query": "雨夜", "options": {"project_id": "p1"}, "style_samples": 2,
        })
        assert response.status_code == 200
        assert "query_vector" not in response.json()
        assert "### Example 2" in response.json()["style_section"]
        stats = client.get("/storyrag/style-samples/stats", params={"project_id": "p1"})
        assert stats.status_code == 200
        assert stats.json()["total_samples"] == 2

    def test_context_negative_budget(self, client):
        assert client.post("/storyrag/context", json={"query": "林风", "token_budget": -1}).status_code == 422


class TestStyleAPI:

    def test_capture_saved(self, client):
        response = client.post("/storyrag/style-samples/capture", json={
            "project_id": "p1", "chapter_id": "ch1", "original_ai": ORIGINAL, "user_final": REWRITE,
        })
        assert response.status_code == 200
        data = response.json()
        assert data["saved"] is True
        assert data["outcome"]["status"] == "indexed"

        listed = client.get("/storyrag/style-samples", params={"project_id": "p1"}).json()
        assert [s["id"] for s in listed] == [data["sample"]["id"]]

    def test_capture_light_edit(self, client):
        response = client.post("/storyrag/style-samples/capture", json={
            "original_ai": ORIGINAL, "user_final": ORIGINAL,
        })
        assert response.json()["saved"] is False

    def test_similar_and_stats(self, client):
        client.post("/storyrag/style-samples/capture", json={
            "project_id": "p1", "original_ai": ORIGINAL, "user_final": REWRITE,
        })
        similar = client.post("/storyrag/style-samples/similar", json={"project_id": "p1", "context": "雨"}).json()
        assert len(similar["samples"]) == 1
        assert similar["prompt_section"].startswith("\n## Writing style reference")

        stats = client.get("/storyrag/style-samples/stats", params={"project_id": "p1"}).json()
        assert stats["total_samples"] == 1

    def test_delete_unknown_sample(self, client):
        assert client.delete("/storyrag/style-samples/nope").status_code == 404
