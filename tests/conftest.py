import pytest
from fastapi.testclient import TestClient

from storyrag.adapters.embedding_providers.base import EmbeddingError
from storyrag.adapters.embedding_providers.hash_provider import HashProvider
from storyrag.api import deps
from storyrag.main import app
from storyrag.models.record import IndexedRecord, RecordKind
from storyrag.repositories.base import StoreError
from storyrag.repositories.memory.record_repo import RecordRepo
from storyrag.services.context_service import ContextService
from storyrag.services.index_service import IndexService
from storyrag.services.style_service import StyleService


class FailingEmbedder:
    """Embedding provider that is always down."""

    def __init__(self) -> None:
        self.calls = 0

    def embed_text(self, text):
        self.calls += 1
        raise EmbeddingError("provider unavailable")


class BrokenStore(RecordRepo):
    """Record store whose backend refuses every call."""

    def put_all(self, records):
        raise StoreError("backend down")

    def get_all(self):
        raise StoreError("backend down")

    def replace_related(self, related_id, records):
        raise StoreError("backend down")

    def delete_by_related_id(self, related_id):
        raise StoreError("backend down")


def make_record(id, text, kind=RecordKind.CHAPTER, vector=None, order=None, related_id=None, **metadata):
    return IndexedRecord(
        id=id,
        related_id=related_id or id.split(":")[0],
        kind=kind,
        text=text,
        vector=vector,
        order=order,
        metadata=metadata,
    )


@pytest.fixture
def store():
    return RecordRepo()


@pytest.fixture
def embedder():
    return HashProvider(dim=32)


@pytest.fixture
def index_service(store, embedder):
    return IndexService(store, embedder, chunk_size=200, chunk_overlap=20, min_chapter_chars=100)


@pytest.fixture
def context_service(store, embedder):
    return ContextService(store, embedder, query_timeout=2.0)


@pytest.fixture
def style_service(index_service):
    return StyleService(index_service, index_service.embedder)


@pytest.fixture
def client(store, index_service, context_service, style_service):
    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_index_service] = lambda: index_service
    app.dependency_overrides[deps.get_context_service] = lambda: context_service
    app.dependency_overrides[deps.get_style_service] = lambda: style_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
