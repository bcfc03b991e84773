from __future__ import annotations

"""
Error taxonomy for the reporter.

- NotFound is not an exception: stores return None when no prior state exists.
- PersistenceError / CorruptStateError / LegacyMigrationError are raised by the
  store layer and swallowed (logged) at the registry boundary.
- TrackerError is the only failure surfaced to callers of the service layer.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


class ReporterError(Exception):
    """Base class for all reporter errors."""


class PersistenceError(ReporterError):
    """A per-scope file could not be written (or read back)."""


class CorruptStateError(PersistenceError):
    """A persisted file exists but could not be parsed or decoded."""


class LegacyMigrationError(CorruptStateError):
    """A legacy envelope was read but its content could not be decoded."""


class ConfigurationError(ReporterError, ValueError):
    """Missing or invalid configuration (env, job record, templates)."""


@dataclass
class ErrorCollection:
    status: Optional[int] = None
    error_messages: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)


class TrackerError(ReporterError):
    """A tracker call returned one or more structured error collections."""

    def __init__(self, message: str, error_collections: Optional[List[ErrorCollection]] = None) -> None:
        super().__init__(message)
        self.error_collections: List[ErrorCollection] = list(error_collections or [])
