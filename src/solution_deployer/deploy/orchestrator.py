"""Holding-pattern deployment of an ordered batch of solution packages.

A deployment runs three passes, each over every package:

1. ``install_holding_solutions``: forward, imports each package as a
   ``<name>_Holding`` solution so customizations stay live.
2. ``delete_original_solutions``: reverse, removes originals that are due for
   deletion now. Later packages may depend on earlier ones, so the last
   package goes first.
3. ``install_new_solutions``: forward, imports each package as the real
   solution and drops its holding copy straight afterwards.

Passes must be called in that order; the deployer does not track which pass
ran last. A remote failure ends the current pass and propagates. Nothing is
retried or rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Tuple

import structlog

from solution_deployer.core.config import DeploymentConfig, PackageConfig
from solution_deployer.deploy.events import EventCallback, EventChannel, Subscription
from solution_deployer.deploy.files import SolutionFileManager
from solution_deployer.deploy.importer import RemoteImporter, SolutionImporter
from solution_deployer.deploy.models import SolutionDetails
from solution_deployer.deploy.repository import ImportRepository

logger = structlog.get_logger()

ImporterFactory = Callable[[PackageConfig], RemoteImporter]

HOLDING_NOT_REQUIRED = "Holding Solution is not required"
HOLDING_DELETION_NOT_REQUIRED = "Holding Solution deletion not required"


@dataclass(frozen=True)
class SolutionPackage:
    """A package's settings paired with the importer that owns its solution."""

    import_setting: PackageConfig
    solution_importer: RemoteImporter

    @property
    def details(self) -> SolutionDetails:
        return self.solution_importer.get_solution_details()


class PackageDeployer:
    """Runs the holding-pattern passes over the configured packages."""

    def __init__(self, config: DeploymentConfig, importer_factory: ImporterFactory):
        self.config = config
        self._events = EventChannel()
        self._packages: Tuple[SolutionPackage, ...] = tuple(
            SolutionPackage(import_setting=setting, solution_importer=importer_factory(setting))
            for setting in config.packages
        )
        logger.info(
            "Package deployer initialized",
            package_count=len(self._packages),
            skip_holding_pattern=config.skip_holding_pattern,
            use_async=config.use_async,
        )

    @classmethod
    def from_repository(cls, config: DeploymentConfig, repository: ImportRepository) -> "PackageDeployer":
        """Build a deployer whose packages are read from ``config.solutions_folder``."""

        def factory(setting: PackageConfig) -> RemoteImporter:
            file_manager = SolutionFileManager(Path(config.solutions_folder) / setting.name, setting.force_upgrade)
            return SolutionImporter(file_manager, repository, config.use_new_api, setting.delete_only)

        return cls(config, factory)

    @property
    def packages(self) -> Tuple[SolutionPackage, ...]:
        return self._packages

    def subscribe(self, callback: EventCallback) -> Subscription:
        return self._events.subscribe(callback)

    def unsubscribe(self, subscription: Subscription) -> None:
        self._events.unsubscribe(subscription)

    def get_solution_details(self) -> List[SolutionDetails]:
        return [package.details for package in self._packages]

    def install_holding_solutions(self) -> None:
        logger.info("Deployment pass started", phase="install_holding", package_count=len(self._packages))

        for package in self._packages:
            setting = package.import_setting
            if self.config.skip_holding_pattern or setting.delete_only:
                self._notify(package, HOLDING_NOT_REQUIRED)
                continue

            self._notify(
                package,
                f"Holding Solution installation started, PublishWorkflows:{setting.publish_workflows}, "
                f"OverwriteUnmanagedCustomizations {setting.overwrite_unmanaged_customizations}",
            )
            result = package.solution_importer.import_holding_solution(
                self.config.use_async,
                True,
                self.config.poll_interval_ms,
                self.config.async_timeout_seconds,
                setting.publish_workflows,
                setting.overwrite_unmanaged_customizations,
            )
            self._notify(package, f"Holding Solution installation finished, status:{result.state.value}")

        logger.info("Deployment pass finished", phase="install_holding")

    def delete_original_solutions(self) -> None:
        logger.info("Deployment pass started", phase="delete_original", package_count=len(self._packages))

        for package in reversed(self._packages):
            setting = package.import_setting
            if not (self.config.skip_holding_pattern or setting.delete_only):
                continue

            self._notify(package, "Original Solution deletion started")
            message = package.solution_importer.delete_original_solution(setting.delete_only)
            self._notify(package, message)

        logger.info("Deployment pass finished", phase="delete_original")

    def install_new_solutions(self) -> None:
        logger.info("Deployment pass started", phase="install_new", package_count=len(self._packages))

        for package in self._packages:
            setting = package.import_setting
            self._notify(
                package,
                f"Updated Solution installation started, PublishWorkflows:{setting.publish_workflows}, "
                f"OverwriteUnmanagedCustomizations {setting.overwrite_unmanaged_customizations}",
            )
            result = package.solution_importer.import_updated_solution(
                self.config.use_async,
                True,
                self.config.poll_interval_ms,
                self.config.async_timeout_seconds,
                setting.publish_workflows,
                setting.overwrite_unmanaged_customizations,
            )
            self._notify(package, f"Updated Solution installation finished, status:{result.state.value}")

            if not setting.delete_only and not self.config.skip_holding_pattern:
                self._notify(package, "Holding Solution deletion started")
                message = package.solution_importer.delete_holding_solution()
                self._notify(package, message)
            else:
                self._notify(package, HOLDING_DELETION_NOT_REQUIRED)

        logger.info("Deployment pass finished", phase="install_new")

    def _notify(self, package: SolutionPackage, message: str) -> None:
        self._events.emit(package.details, message)
