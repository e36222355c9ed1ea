"""
Queued source syncs.

Components:
- SyncJobQueue: Redis Streams queue of sync requests
- SyncWorker: Consumes jobs and runs the sync pipeline
- SyncQueueConfig: Stream names and worker tuning
"""

from contentflow.sync_jobs.config import SyncQueueConfig
from contentflow.sync_jobs.queue import SyncJob, SyncJobQueue
from contentflow.sync_jobs.worker import SyncWorker

__all__ = [
    "SyncJob",
    "SyncJobQueue",
    "SyncQueueConfig",
    "SyncWorker",
]
