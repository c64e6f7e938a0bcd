"""Layered configuration from defaults, files, environment variables and overrides."""

__version__ = "0.1.0"

__all__ = ["config", "environment", "errors", "files", "formats", "source", "value"]