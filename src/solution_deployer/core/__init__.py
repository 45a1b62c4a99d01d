"""Core configuration and error types for the solution deployer."""
