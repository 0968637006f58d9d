"""
Temporal workflow and activities for durable indexing.

The indexing core never retries a provider call. This workflow is the caller
that does: embedding runs as an activity under a retry policy, and when every
attempt fails the entity is still stored, keyword-only.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional

from temporalio import activity, workflow
from temporalio.common import RetryPolicy
from temporalio.exceptions import ActivityError, ApplicationError

# services are only touched inside activities
with workflow.unsafe.imports_passed_through():
    import logging

    from storyrag.adapters.embedding_providers.base import EmbeddingError
    from storyrag.models.record import RecordKind
    from storyrag.models.retrieval import IndexStatus
    from storyrag.services.index_service import ENTITY_MODELS, IndexService

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes for Workflow Input/Output
# ============================================================================

@dataclass
class IndexRequest:
    """Input for the indexing workflow. entity is the JSON form of the source entity."""
    kind: str
    entity: Dict[str, Any]


@dataclass
class IndexResponse:
    related_id: str
    kind: str
    status: str
    records_written: int = 0
    error: Optional[str] = None
    embedding_attempts_exhausted: bool = False


EMBED_RETRY = RetryPolicy(
    initial_interval=timedelta(seconds=1),
    backoff_coefficient=2.0,
    maximum_interval=timedelta(seconds=30),
    maximum_attempts=5,
)
STORE_RETRY = RetryPolicy(initial_interval=timedelta(seconds=1), maximum_attempts=3)


# ============================================================================
# Activities
# ============================================================================

class IndexActivities:
    """Activities bound to the services of one worker process."""

    def __init__(self, index_service: IndexService) -> None:
        self.index_service = index_service

    def _entity(self, request: IndexRequest):
        try:
            model = ENTITY_MODELS[RecordKind(request.kind)]
        except ValueError as e:
            raise ApplicationError(f"unknown record kind: {request.kind}", non_retryable=True) from e
        return model.model_validate(request.entity)

    @activity.defn(name="embed_entity")
    def embed_entity(self, request: IndexRequest) -> Optional[List[List[float]]]:
        """None when there is nothing to embed; raises so Temporal retries provider failures."""
        plan = self.index_service.plan(self._entity(request))
        if plan.skip_reason is not None:
            return None
        if self.index_service.embedder is None:
            raise ApplicationError("no embedding provider configured", non_retryable=True)
        try:
            return self.index_service.embed(plan.embed_texts)
        except EmbeddingError as e:
            logger.warning("Embedding %s %s failed: %s", request.kind, plan.related_id, e)
            raise

    @activity.defn(name="store_entity")
    def store_entity(self, request: IndexRequest, vectors: Optional[List[List[float]]], error: Optional[str]) -> IndexResponse:
        plan = self.index_service.plan(self._entity(request))
        outcome = self.index_service.commit(plan, vectors, error)
        if outcome.status == IndexStatus.FAILED:
            raise ApplicationError(f"store rejected {plan.related_id}: {outcome.error}")
        return IndexResponse(
            related_id=outcome.related_id,
            kind=outcome.kind.value,
            status=outcome.status.value,
            records_written=outcome.records_written,
            error=outcome.error,
        )


# ============================================================================
# Workflow
# ============================================================================

@workflow.defn(name="IndexWorkflow")
class IndexWorkflow:
    """
    1. Embed the entity's chunks (retried with backoff)
    2. Replace the entity's records, keyword-only if step 1 gave up
    """

    def __init__(self) -> None:
        self._step = "pending"

    @workflow.run
    async def run(self, request: IndexRequest) -> IndexResponse:
        self._step = "embedding"
        vectors: Optional[List[List[float]]] = None
        error: Optional[str] = None
        exhausted = False
        try:
            vectors = await workflow.execute_activity_method(
                IndexActivities.embed_entity,
                request,
                start_to_close_timeout=timedelta(seconds=60),
                retry_policy=EMBED_RETRY,
            )
        except ActivityError as e:
            error = str(e.cause or e)
            exhausted = True
            workflow.logger.warning("Embedding gave up for %s, storing keyword-only: %s", request.kind, error)

        self._step = "storing"
        try:
            response = await workflow.execute_activity_method(
                IndexActivities.store_entity,
                args=[request, vectors, error],
                start_to_close_timeout=timedelta(seconds=30),
                retry_policy=STORE_RETRY,
            )
        except ActivityError as e:
            self._step = "failed"
            return IndexResponse(
                related_id=str(request.entity.get("id", "")),
                kind=request.kind,
                status=IndexStatus.FAILED.value,
                error=str(e.cause or e),
                embedding_attempts_exhausted=exhausted,
            )

        response.embedding_attempts_exhausted = exhausted
        self._step = "done"
        return response

    @workflow.query(name="get_status")
    def get_status(self) -> Dict[str, str]:
        return {"current_step": self._step}
