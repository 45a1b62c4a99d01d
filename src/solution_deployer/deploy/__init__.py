"""
Deployment primitives.

- PackageDeployer: runs the holding-pattern passes over a package batch
- SolutionImporter / RemoteImporter: per-package remote operations
- ImportRepository: contract for the remote platform client
- EventChannel: progress notifications
"""

from .models import (
    ImportResult,
    ImportState,
    ImportUpdateEvent,
    SolutionDetails,
    SolutionStatus,
)
from .events import EventChannel, Subscription
from .files import SolutionFileManager
from .repository import ImportRepository, InMemoryImportRepository, load_repository_factory
from .importer import RemoteImporter, SolutionImporter
from .orchestrator import PackageDeployer, SolutionPackage

__all__ = [
    "PackageDeployer",
    "SolutionPackage",
    "RemoteImporter",
    "SolutionImporter",
    "SolutionFileManager",
    "ImportRepository",
    "InMemoryImportRepository",
    "load_repository_factory",
    "EventChannel",
    "Subscription",
    "ImportResult",
    "ImportState",
    "ImportUpdateEvent",
    "SolutionDetails",
    "SolutionStatus",
]
