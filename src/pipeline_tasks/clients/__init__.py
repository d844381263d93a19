"""Remote collaborators consumed by pipeline tasks."""

from pipeline_tasks.clients.metadata_store import HttpMetadataStoreClient, MetadataStoreClient
from pipeline_tasks.clients.permissions import HttpPermissionService, PermissionService

__all__ = [
    "HttpMetadataStoreClient",
    "HttpPermissionService",
    "MetadataStoreClient",
    "PermissionService",
]
