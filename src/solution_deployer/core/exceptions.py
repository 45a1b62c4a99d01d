"""Custom exceptions for the solution deployer."""

from typing import Optional


class DeployerError(Exception):
    """Base exception for all deployer errors."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class ConfigurationError(DeployerError):
    """Deployment configuration is missing or invalid."""
    pass


class PackageFileError(DeployerError):
    """Solution package archive is missing or unreadable."""
    pass


class RemoteOperationError(DeployerError):
    """A remote platform operation failed."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        solution_name: Optional[str] = None,
        operation: Optional[str] = None,
    ):
        super().__init__(message, code)
        self.solution_name = solution_name
        self.operation = operation


class RemoteTimeoutError(RemoteOperationError):
    """Polling an asynchronous remote operation exceeded its timeout."""
    pass
