"""Solution Deployer - holding-pattern deployment of solution package batches."""

__version__ = "0.1.0"

from solution_deployer.core.config import DeploymentConfig, PackageConfig, Settings, load_deployment_config
from solution_deployer.deploy.orchestrator import PackageDeployer

__all__ = [
    "DeploymentConfig",
    "PackageConfig",
    "PackageDeployer",
    "Settings",
    "load_deployment_config",
    "__version__",
]
