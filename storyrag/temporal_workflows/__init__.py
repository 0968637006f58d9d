"""
Temporal workflows package.
"""

from .index_workflow import (
    IndexWorkflow,
    IndexActivities,
    IndexRequest,
    IndexResponse,
)
from .client import TemporalIndexClient, TASK_QUEUE

__all__ = [
    "IndexWorkflow",
    "IndexActivities",
    "IndexRequest",
    "IndexResponse",
    "TemporalIndexClient",
    "TASK_QUEUE",
]
