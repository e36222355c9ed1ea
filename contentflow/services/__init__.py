"""Service layer wiring the pipeline to its concrete collaborators."""

from contentflow.services.sync_service import SyncService

__all__ = ["SyncService"]
