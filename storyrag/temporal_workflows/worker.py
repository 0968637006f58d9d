"""
Temporal worker for the indexing workflow.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor

from temporalio.client import Client
from temporalio.worker import Worker

from storyrag.core.config import settings
from storyrag.services.factory import build_embedder, build_index_service, build_store
from storyrag.temporal_workflows.client import TASK_QUEUE
from storyrag.temporal_workflows.index_workflow import IndexActivities, IndexWorkflow

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main():
    # the worker only sees records in a shared store; run it with USE_REDIS=true
    if not settings.USE_REDIS:
        logger.warning("Worker is using an in-memory store; the API will not see its records")
    index_service = build_index_service(settings, build_store(settings), build_embedder(settings))
    activities = IndexActivities(index_service)

    logger.info("Connecting to Temporal server at %s...", settings.TEMPORAL_ADDRESS)
    client = await Client.connect(settings.TEMPORAL_ADDRESS)
    logger.info("Connected to Temporal server")

    with ThreadPoolExecutor(max_workers=8) as executor:
        worker = Worker(
            client,
            task_queue=TASK_QUEUE,
            workflows=[IndexWorkflow],
            activities=[activities.embed_entity, activities.store_entity],
            activity_executor=executor,
        )
        logger.info("Starting worker on task queue: %s", TASK_QUEUE)
        await worker.run()


if __name__ == "__main__":
    asyncio.run(main())
