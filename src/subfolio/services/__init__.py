"""Write workflows and read-only catalog views."""

from subfolio.services.catalog import CatalogService
from subfolio.services.deletion import DeletionWorkflow
from subfolio.services.portfolio import PortfolioService
from subfolio.services.provisioning import ProvisioningWorkflow

__all__ = [
    "CatalogService",
    "DeletionWorkflow",
    "PortfolioService",
    "ProvisioningWorkflow",
]
