"""
Pytest configuration and fixtures for solution deployer tests.
"""

import zipfile
from pathlib import Path
from typing import List, Optional, Tuple

import pytest

from solution_deployer.core.config import DeploymentConfig, PackageConfig
from solution_deployer.core.exceptions import RemoteOperationError
from solution_deployer.deploy.models import ImportResult, ImportState, SolutionDetails


MANIFEST_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<ImportExportXml version="9.1" SolutionPackageVersion="9.1">
  <SolutionManifest>
    <UniqueName>{name}</UniqueName>
    <Version>{version}</Version>
    <Managed>1</Managed>
  </SolutionManifest>
</ImportExportXml>
"""


def write_solution_zip(path: Path, unique_name: str, version: str = "1.0.0.0") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("solution.xml", MANIFEST_TEMPLATE.format(name=unique_name, version=version))
        zf.writestr("customizations.xml", "<ImportExportXml><Entities /></ImportExportXml>")
        zf.writestr("[Content_Types].xml", "<Types />")
    return path


@pytest.fixture
def solution_zip(tmp_path):
    """Factory writing a solution archive into tmp_path/solutions."""

    def _make(unique_name: str, version: str = "1.0.0.0", file_name: Optional[str] = None) -> Path:
        return write_solution_zip(tmp_path / "solutions" / (file_name or f"{unique_name}.zip"), unique_name, version)

    return _make


class FakeImporter:
    """RemoteImporter double that writes every call into a shared timeline."""

    def __init__(self, name: str, timeline: List[Tuple[str, str, str]], fail_on: Optional[str] = None):
        self.name = name
        self.timeline = timeline
        self.fail_on = fail_on
        self.calls: List[Tuple[str, tuple]] = []

    def _record(self, operation: str, args: tuple) -> None:
        self.calls.append((operation, args))
        self.timeline.append(("call", self.name, operation))
        if self.fail_on == operation:
            raise RemoteOperationError(f"{operation} failed for {self.name}", solution_name=self.name, operation=operation)

    def import_holding_solution(self, *args) -> ImportResult:
        self._record("import_holding", args)
        return ImportResult(state=ImportState.SUCCEEDED)

    def import_updated_solution(self, *args) -> ImportResult:
        self._record("import_update", args)
        return ImportResult(state=ImportState.SUCCEEDED)

    def delete_original_solution(self, delete_only: bool) -> str:
        self._record("delete_original", (delete_only,))
        return f"Original Solution {self.name} deleted"

    def delete_holding_solution(self) -> str:
        self._record("delete_holding", ())
        return f"Holding Solution {self.name}_Holding deleted"

    def get_solution_details(self) -> SolutionDetails:
        return SolutionDetails(
            solution_name=self.name,
            holding_solution_name=f"{self.name}_Holding",
            package_path=f"/solutions/{self.name}.zip",
            package_version="1.0.0.0",
        )


@pytest.fixture
def timeline():
    return []


@pytest.fixture
def make_config(tmp_path):
    """Build a DeploymentConfig from (name, delete_only) pairs."""

    def _make(packages, **overrides) -> DeploymentConfig:
        values = dict(
            solutions_folder=tmp_path / "solutions",
            poll_interval_ms=10,
            async_timeout_seconds=5,
            packages=tuple(
                PackageConfig(name=name, delete_only=delete_only) for name, delete_only in packages
            ),
        )
        values.update(overrides)
        return DeploymentConfig(**values)

    return _make


@pytest.fixture
def fake_factory(timeline):
    """Importer factory producing FakeImporters; failures keyed by package name."""

    importers = {}

    def _factory(setting: PackageConfig) -> FakeImporter:
        importer = FakeImporter(setting.name, timeline, fail_on=_factory.failures.get(setting.name))
        importers[setting.name] = importer
        return importer

    _factory.failures = {}
    _factory.importers = importers
    return _factory
