"""HTTP service for LinkGuardian."""

from .app import ScanServer, create_app

__all__ = ["ScanServer", "create_app"]
