"""AWS adapters: EFS, RDS and EC2."""

from appwizard.infra.aws.compute import AWSComputeService
from appwizard.infra.aws.database import AWSDatabaseService
from appwizard.infra.aws.storage import AWSStorageService

__all__ = ["AWSComputeService", "AWSDatabaseService", "AWSStorageService"]
