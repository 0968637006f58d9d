"""
Temporal client for starting indexing workflows.
"""

from dataclasses import asdict
from typing import Optional
import uuid

from temporalio.client import Client

from storyrag.temporal_workflows.index_workflow import IndexRequest, IndexResponse


TASK_QUEUE = "storyrag-index-queue"


class TemporalIndexClient:
    """
    Starts IndexWorkflow runs. Connects lazily on first use.
    """

    def __init__(self, temporal_url: str = "localhost:7233"):
        self.temporal_url = temporal_url
        self._client: Optional[Client] = None

    async def connect(self) -> Client:
        if not self._client:
            self._client = await Client.connect(self.temporal_url)
        return self._client

    @staticmethod
    def workflow_id(request: IndexRequest) -> str:
        return f"index-{request.kind}-{request.entity.get('id', 'unknown')}-{uuid.uuid4().hex[:8]}"

    async def start_indexing(self, request: IndexRequest) -> str:
        """Fire and forget; returns the workflow id."""
        client = await self.connect()
        handle = await client.start_workflow(
            "IndexWorkflow",
            request,
            id=self.workflow_id(request),
            task_queue=TASK_QUEUE,
        )
        return handle.id

    async def execute_indexing(self, request: IndexRequest) -> dict:
        client = await self.connect()
        result = await client.execute_workflow(
            "IndexWorkflow",
            request,
            id=self.workflow_id(request),
            task_queue=TASK_QUEUE,
            result_type=IndexResponse,
        )
        return asdict(result)

    async def get_workflow_status(self, workflow_id: str) -> dict:
        client = await self.connect()
        handle = client.get_workflow_handle(workflow_id)
        return await handle.query("get_status")
