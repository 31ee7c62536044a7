"""AWS integration module.

Provides CodeDeploy deployment tracking and EC2 fleet inventory
behind small typed clients.
"""

from .client import CodeDeployClient, FleetInventoryClient, create_session, partition

__all__ = ["CodeDeployClient", "FleetInventoryClient", "create_session", "partition"]
