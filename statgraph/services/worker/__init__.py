"""Job workers."""

from statgraph.services.worker.pool import WorkerPool
from statgraph.services.worker.processor import TaskProcessor

__all__ = ["TaskProcessor", "WorkerPool"]
