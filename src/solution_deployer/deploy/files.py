"""Solution package archive access."""

from __future__ import annotations

import io
import xml.etree.ElementTree as ET
import zipfile
from pathlib import Path
from typing import Optional, Tuple

import structlog

from solution_deployer.core.exceptions import PackageFileError

logger = structlog.get_logger()

MANIFEST_ENTRY = "solution.xml"
HOLDING_SUFFIX = "_Holding"


class SolutionFileManager:
    """Reads a solution archive and derives its holding variant.

    The archive is a zip with a ``solution.xml`` manifest whose
    ``SolutionManifest/UniqueName`` and ``SolutionManifest/Version`` identify
    the solution. Metadata is read lazily and cached. A missing archive is
    tolerated for metadata so delete-only packages need no file on disk.
    """

    def __init__(self, path: Path, force_upgrade: bool = False):
        self.path = Path(path)
        self.force_upgrade = force_upgrade
        self._manifest: Optional[Tuple[str, Optional[str]]] = None

    @property
    def exists(self) -> bool:
        return self.path.is_file()

    @property
    def unique_name(self) -> str:
        return self._read_manifest()[0]

    @property
    def version(self) -> Optional[str]:
        return self._read_manifest()[1]

    @property
    def holding_solution_name(self) -> str:
        return f"{self.unique_name}{HOLDING_SUFFIX}"

    def read_package(self) -> bytes:
        """Return the archive bytes."""
        if not self.exists:
            raise PackageFileError(f"Solution package not found: {self.path}", code="package_not_found")
        return self.path.read_bytes()

    def read_holding_package(self) -> bytes:
        """Return a copy of the archive renamed to the holding solution."""
        content = self.read_package()
        holding_name = self.holding_solution_name

        source = io.BytesIO(content)
        target = io.BytesIO()
        with zipfile.ZipFile(source, "r") as zin, zipfile.ZipFile(target, "w", zipfile.ZIP_DEFLATED) as zout:
            for item in zin.infolist():
                data = zin.read(item.filename)
                if item.filename == MANIFEST_ENTRY:
                    data = self._rename_manifest(data, holding_name)
                zout.writestr(item, data)
        return target.getvalue()

    def _read_manifest(self) -> Tuple[str, Optional[str]]:
        if self._manifest is not None:
            return self._manifest

        if not self.exists:
            # Delete-only packages may have no archive; fall back to the file stem
            logger.debug("Solution package missing, using file stem", path=str(self.path))
            self._manifest = (self.path.stem, None)
            return self._manifest

        try:
            with zipfile.ZipFile(self.path, "r") as zf:
                raw = zf.read(MANIFEST_ENTRY)
        except zipfile.BadZipFile as e:
            raise PackageFileError(f"Not a valid solution archive: {self.path}", code="package_invalid") from e
        except KeyError as e:
            raise PackageFileError(f"{MANIFEST_ENTRY} missing from {self.path}", code="package_invalid") from e

        try:
            root = ET.fromstring(raw)
        except ET.ParseError as e:
            raise PackageFileError(f"Malformed {MANIFEST_ENTRY} in {self.path}: {e}", code="package_invalid") from e

        unique_name = (root.findtext("SolutionManifest/UniqueName") or "").strip()
        version = (root.findtext("SolutionManifest/Version") or "").strip()
        if not unique_name or not version:
            raise PackageFileError(
                f"{MANIFEST_ENTRY} in {self.path} must declare UniqueName and Version",
                code="package_invalid",
            )

        self._manifest = (unique_name, version)
        logger.debug("Read solution manifest", path=str(self.path), solution=unique_name, version=version)
        return self._manifest

    @staticmethod
    def _rename_manifest(raw: bytes, unique_name: str) -> bytes:
        root = ET.fromstring(raw)
        node = root.find("SolutionManifest/UniqueName")
        if node is None:
            raise PackageFileError(f"{MANIFEST_ENTRY} has no UniqueName", code="package_invalid")
        node.text = unique_name
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)
