"""Models for solution package deployments."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ImportState(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    SKIPPED = "skipped"        # Target slot already holds this version

    @property
    def is_terminal(self) -> bool:
        return self not in (ImportState.PENDING, ImportState.IN_PROGRESS)


class SolutionStatus(str, Enum):
    NOT_INSTALLED = "not_installed"
    HOLDING_INSTALLED = "holding_installed"
    ORIGINAL_DELETED = "original_deleted"
    NEW_INSTALLED = "new_installed"
    HOLDING_DELETED = "holding_deleted"


class ImportResult(BaseModel):
    state: ImportState
    job_id: Optional[str] = None
    message: Optional[str] = None


class AsyncOperation(BaseModel):
    """Snapshot of a remote asynchronous job."""

    job_id: str
    state: ImportState
    message: Optional[str] = None


class SolutionDetails(BaseModel):
    """Descriptor of a package's solution as last observed by its importer."""

    model_config = ConfigDict(frozen=True)

    solution_name: str
    holding_solution_name: str
    package_path: str
    package_version: Optional[str] = None
    installed_version: Optional[str] = None
    force_upgrade: bool = False
    status: SolutionStatus = SolutionStatus.NOT_INSTALLED


class ImportUpdateEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=datetime.now)
    solution_details: SolutionDetails
    message: str
