"""Google Cloud adapters: Filestore, Cloud SQL and Compute Engine."""

from appwizard.infra.google.compute import GoogleComputeService
from appwizard.infra.google.database import GoogleDatabaseService
from appwizard.infra.google.storage import GoogleStorageService

__all__ = ["GoogleComputeService", "GoogleDatabaseService", "GoogleStorageService"]
