"""Per-package remote import operations."""

from __future__ import annotations

from typing import Callable, Optional, Protocol

import structlog

from solution_deployer.core.exceptions import RemoteOperationError
from solution_deployer.deploy.files import SolutionFileManager
from solution_deployer.deploy.models import (
    ImportResult,
    ImportState,
    SolutionDetails,
    SolutionStatus,
)
from solution_deployer.deploy.polling import wait_for_completion
from solution_deployer.deploy.repository import ImportRepository

logger = structlog.get_logger()


class RemoteImporter(Protocol):
    """Remote operations the deployer drives for a single package."""

    def import_holding_solution(
        self,
        use_async: bool,
        wait: bool,
        poll_interval_ms: int,
        timeout_seconds: int,
        publish_workflows: bool,
        overwrite_unmanaged_customizations: bool,
    ) -> ImportResult:
        ...

    def import_updated_solution(
        self,
        use_async: bool,
        wait: bool,
        poll_interval_ms: int,
        timeout_seconds: int,
        publish_workflows: bool,
        overwrite_unmanaged_customizations: bool,
    ) -> ImportResult:
        ...

    def delete_original_solution(self, delete_only: bool) -> str:
        ...

    def delete_holding_solution(self) -> str:
        ...

    def get_solution_details(self) -> SolutionDetails:
        ...


class SolutionImporter:
    """RemoteImporter backed by a solution archive and an ImportRepository."""

    def __init__(
        self,
        file_manager: SolutionFileManager,
        repository: ImportRepository,
        use_new_api: bool = False,
        delete_only: bool = False,
    ):
        self.file_manager = file_manager
        self.repository = repository
        self.use_new_api = use_new_api
        self.delete_only = delete_only
        self._details = SolutionDetails(
            solution_name=file_manager.unique_name,
            holding_solution_name=file_manager.holding_solution_name,
            package_path=str(file_manager.path),
            package_version=file_manager.version,
            force_upgrade=file_manager.force_upgrade,
        )

    def get_solution_details(self) -> SolutionDetails:
        return self._details

    def import_holding_solution(
        self,
        use_async: bool,
        wait: bool,
        poll_interval_ms: int,
        timeout_seconds: int,
        publish_workflows: bool,
        overwrite_unmanaged_customizations: bool,
    ) -> ImportResult:
        name = self._details.holding_solution_name
        if self._is_current_version(name, track_installed=False):
            logger.info("Holding solution already at package version, holding import skipped", solution=name)
            self._update(status=SolutionStatus.HOLDING_INSTALLED)
            return ImportResult(state=ImportState.SKIPPED, message="Solution version already installed")

        content = self.file_manager.read_holding_package()
        result = self._import(
            content,
            "import_holding",
            use_async=use_async,
            wait=wait,
            poll_interval_ms=poll_interval_ms,
            timeout_seconds=timeout_seconds,
            publish_workflows=publish_workflows,
            overwrite_unmanaged_customizations=overwrite_unmanaged_customizations,
        )
        if result.state == ImportState.SUCCEEDED:
            self._update(status=SolutionStatus.HOLDING_INSTALLED)
        return result

    def import_updated_solution(
        self,
        use_async: bool,
        wait: bool,
        poll_interval_ms: int,
        timeout_seconds: int,
        publish_workflows: bool,
        overwrite_unmanaged_customizations: bool,
    ) -> ImportResult:
        name = self._details.solution_name
        if self.delete_only:
            logger.info("Delete-only solution, update import skipped", solution=name)
            return ImportResult(state=ImportState.SKIPPED, message="Solution is configured as delete-only")

        if self._is_current_version(name):
            logger.info("Solution already at package version, update import skipped", solution=name)
            self._update(status=SolutionStatus.NEW_INSTALLED)
            return ImportResult(state=ImportState.SKIPPED, message="Solution version already installed")

        content = self.file_manager.read_package()
        result = self._import(
            content,
            "import_update",
            use_async=use_async,
            wait=wait,
            poll_interval_ms=poll_interval_ms,
            timeout_seconds=timeout_seconds,
            publish_workflows=publish_workflows,
            overwrite_unmanaged_customizations=overwrite_unmanaged_customizations,
        )
        if result.state == ImportState.SUCCEEDED:
            self._update(status=SolutionStatus.NEW_INSTALLED, installed_version=self._details.package_version)
        return result

    def delete_original_solution(self, delete_only: bool) -> str:
        name = self._details.solution_name
        if self._call("delete_original", self.repository.get_solution_version, name) is None:
            self._update(status=SolutionStatus.ORIGINAL_DELETED)
            return f"Original Solution {name} not installed, deletion not required"

        self._call("delete_original", self.repository.delete_solution, name)
        logger.info("Deleted original solution", solution=name, delete_only=delete_only)
        self._update(status=SolutionStatus.ORIGINAL_DELETED, installed_version=None)
        return f"Original Solution {name} deleted"

    def delete_holding_solution(self) -> str:
        name = self._details.holding_solution_name
        if self._call("delete_holding", self.repository.get_solution_version, name) is None:
            self._update(status=SolutionStatus.HOLDING_DELETED)
            return f"Holding Solution {name} not installed, deletion not required"

        self._call("delete_holding", self.repository.delete_solution, name)
        logger.info("Deleted holding solution", solution=name)
        self._update(status=SolutionStatus.HOLDING_DELETED)
        return f"Holding Solution {name} deleted"

    def _import(
        self,
        content: bytes,
        operation: str,
        *,
        use_async: bool,
        wait: bool,
        poll_interval_ms: int,
        timeout_seconds: int,
        publish_workflows: bool,
        overwrite_unmanaged_customizations: bool,
    ) -> ImportResult:
        options = dict(
            publish_workflows=publish_workflows,
            overwrite_unmanaged_customizations=overwrite_unmanaged_customizations,
            use_new_api=self.use_new_api,
        )
        logger.info(
            "Importing solution",
            solution=self._details.solution_name,
            operation=operation,
            use_async=use_async,
            use_new_api=self.use_new_api,
        )

        if not use_async:
            result = self._call(operation, lambda: self.repository.import_solution(content, **options))
        else:
            job_id = self._call(operation, lambda: self.repository.start_import_solution(content, **options))
            if not wait:
                return ImportResult(state=ImportState.IN_PROGRESS, job_id=job_id)
            finished = self._call(
                operation,
                lambda: wait_for_completion(
                    lambda: self.repository.get_async_operation(job_id),
                    poll_interval_ms=poll_interval_ms,
                    timeout_seconds=timeout_seconds,
                ),
            )
            result = ImportResult(state=finished.state, job_id=job_id, message=finished.message)

        if result.state in (ImportState.FAILED, ImportState.CANCELED):
            raise RemoteOperationError(
                f"{operation} for {self._details.solution_name} ended with state {result.state.value}: {result.message or 'no details'}",
                code=result.state.value,
                solution_name=self._details.solution_name,
                operation=operation,
            )
        return result

    def _call(self, operation: str, func: Callable, *args):
        try:
            return func(*args)
        except RemoteOperationError as e:
            if e.solution_name is None:
                e.solution_name = self._details.solution_name
            if e.operation is None:
                e.operation = operation
            raise
        except Exception as e:
            raise RemoteOperationError(
                f"{operation} for {self._details.solution_name} failed: {e}",
                code="remote_error",
                solution_name=self._details.solution_name,
                operation=operation,
            ) from e

    def _is_current_version(self, name: str, track_installed: bool = True) -> bool:
        installed: Optional[str] = self._call("get_version", self.repository.get_solution_version, name)
        if track_installed:
            self._update(installed_version=installed)
        if self.file_manager.force_upgrade:
            return False
        return installed is not None and installed == self._details.package_version

    def _update(self, **changes) -> None:
        self._details = self._details.model_copy(update=changes)
