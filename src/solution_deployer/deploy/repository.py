"""Remote platform client contract and a process-local implementation."""

from __future__ import annotations

import importlib
import io
import uuid
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, Tuple

import structlog

from solution_deployer.core.exceptions import ConfigurationError, RemoteOperationError
from solution_deployer.deploy.files import MANIFEST_ENTRY
from solution_deployer.deploy.models import AsyncOperation, ImportResult, ImportState

logger = structlog.get_logger()


class ImportRepository(Protocol):
    """Operations the remote customization platform exposes.

    Implementations own transport, authentication and serialization. Failures
    should be raised as ``RemoteOperationError``.
    """

    def get_solution_version(self, unique_name: str) -> Optional[str]:
        ...

    def import_solution(
        self,
        content: bytes,
        *,
        publish_workflows: bool,
        overwrite_unmanaged_customizations: bool,
        use_new_api: bool,
    ) -> ImportResult:
        ...

    def start_import_solution(
        self,
        content: bytes,
        *,
        publish_workflows: bool,
        overwrite_unmanaged_customizations: bool,
        use_new_api: bool,
    ) -> str:
        ...

    def get_async_operation(self, job_id: str) -> AsyncOperation:
        ...

    def delete_solution(self, unique_name: str) -> None:
        ...


@dataclass
class _PendingJob:
    unique_name: str
    version: str
    polls_remaining: int
    final_state: ImportState = ImportState.SUCCEEDED


@dataclass
class InMemoryImportRepository:
    """Keeps installed solutions in a dict; used for dry runs and tests.

    ``polls_until_complete`` controls how many ``get_async_operation`` calls
    report ``in_progress`` before an async job finishes. A negative value
    leaves jobs running forever.
    """

    solutions: Dict[str, str] = field(default_factory=dict)
    polls_until_complete: int = 0
    fail_imports: bool = False
    calls: List[Tuple[str, str]] = field(default_factory=list)
    _jobs: Dict[str, _PendingJob] = field(default_factory=dict, repr=False)

    def get_solution_version(self, unique_name: str) -> Optional[str]:
        return self.solutions.get(unique_name)

    def import_solution(
        self,
        content: bytes,
        *,
        publish_workflows: bool,
        overwrite_unmanaged_customizations: bool,
        use_new_api: bool,
    ) -> ImportResult:
        unique_name, version = _read_identity(content)
        self.calls.append(("import", unique_name))
        if self.fail_imports:
            return ImportResult(state=ImportState.FAILED, message=f"Import of {unique_name} rejected")
        self.solutions[unique_name] = version
        return ImportResult(state=ImportState.SUCCEEDED)

    def start_import_solution(
        self,
        content: bytes,
        *,
        publish_workflows: bool,
        overwrite_unmanaged_customizations: bool,
        use_new_api: bool,
    ) -> str:
        unique_name, version = _read_identity(content)
        self.calls.append(("start_import", unique_name))
        job_id = str(uuid.uuid4())
        self._jobs[job_id] = _PendingJob(
            unique_name=unique_name,
            version=version,
            polls_remaining=self.polls_until_complete,
            final_state=ImportState.FAILED if self.fail_imports else ImportState.SUCCEEDED,
        )
        return job_id

    def get_async_operation(self, job_id: str) -> AsyncOperation:
        job = self._jobs.get(job_id)
        if job is None:
            raise RemoteOperationError(f"Unknown async operation: {job_id}", code="job_not_found")

        if job.polls_remaining != 0:
            if job.polls_remaining > 0:
                job.polls_remaining -= 1
            return AsyncOperation(job_id=job_id, state=ImportState.IN_PROGRESS)

        if job.final_state == ImportState.SUCCEEDED:
            self.solutions[job.unique_name] = job.version
        return AsyncOperation(job_id=job_id, state=job.final_state)

    def delete_solution(self, unique_name: str) -> None:
        self.calls.append(("delete", unique_name))
        if unique_name not in self.solutions:
            raise RemoteOperationError(f"Solution not found: {unique_name}", code="solution_not_found")
        del self.solutions[unique_name]


def _read_identity(content: bytes) -> Tuple[str, str]:
    with zipfile.ZipFile(io.BytesIO(content), "r") as zf:
        root = ET.fromstring(zf.read(MANIFEST_ENTRY))
    return root.findtext("SolutionManifest/UniqueName"), root.findtext("SolutionManifest/Version")


RepositoryFactory = Callable[[], ImportRepository]


def load_repository_factory(reference: str) -> RepositoryFactory:
    """Resolve a ``module:callable`` reference to a repository factory.

    Raises:
        ConfigurationError: If the reference is malformed or cannot be imported
    """
    if ":" not in reference:
        raise ConfigurationError(f"Repository factory must be 'module:callable', got: {reference}", code="repository_spec")

    module_name, attr_name = reference.split(":", 1)
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import repository module {module_name}: {e}", code="repository_import") from e

    factory = getattr(module, attr_name, None)
    if factory is None or not callable(factory):
        raise ConfigurationError(f"{module_name} has no callable {attr_name}", code="repository_import")

    logger.info("Resolved repository factory", factory=reference)
    return factory
