from __future__ import annotations

"""
Per-scope JSON persistence with a one-time legacy migration path.

Layout for a scope directory and a file name F:
- <scope_dir>/F.json  primary format (UTF-8, 2-space indent, atomic replace)
- <scope_dir>/F       legacy binary envelope, read only, migrated on first load

load() never raises: missing state, corrupt JSON and undecodable legacy files
all come back as None (the latter two logged as errors) so a bad file cannot
take the host process down. save() raises PersistenceError; registries decide
what to do with it.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Generic, Optional, TypeVar

from jira_test_reporter.errors import CorruptStateError, LegacyMigrationError, PersistenceError
from jira_test_reporter.state.legacy import read_envelope

logger = logging.getLogger(__name__)

T = TypeVar("T")

JSON_SUFFIX = ".json"


class PersistentKeyedStore(Generic[T]):
    def __init__(
        self,
        file_name: str,
        encode: Callable[[T], Any],
        decode: Callable[[Any], T],
        legacy_decode: Optional[Callable[[Any], T]] = None,
    ) -> None:
        self.file_name = file_name
        self._encode = encode
        self._decode = decode
        self._legacy_decode = legacy_decode

    def path_for(self, scope_dir: Path) -> Path:
        return Path(scope_dir) / (self.file_name + JSON_SUFFIX)

    def legacy_path_for(self, scope_dir: Path) -> Path:
        return Path(scope_dir) / self.file_name

    # ---------- Read ----------
    def load_primary(self, scope_dir: Path) -> Optional[T]:
        """Read only the JSON file. None when absent, CorruptStateError when unreadable."""
        path = self.path_for(scope_dir)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as ex:
            raise CorruptStateError(f"could not read {path}: {ex}") from ex
        try:
            data = json.loads(text)
        except ValueError as ex:
            raise CorruptStateError(f"invalid JSON in {path}: {ex}") from ex
        try:
            return self._decode(data)
        except CorruptStateError:
            raise
        except (TypeError, ValueError, KeyError, AttributeError) as ex:
            raise CorruptStateError(f"could not decode {path}: {ex}") from ex

    def load(self, scope_dir: Path, scope_name: Optional[str] = None) -> Optional[T]:
        label = scope_name or str(scope_dir)
        try:
            value = self.load_primary(scope_dir)
        except CorruptStateError as ex:
            logger.error("ERROR: Could not load %s for %s: %s", self.file_name, label, ex)
            return None
        if value is not None or self.path_for(scope_dir).exists():
            return value
        value = self._load_legacy(scope_dir, label)
        if value is None:
            logger.info("No %s found for %s", self.file_name, label)
        return value

    def _load_legacy(self, scope_dir: Path, label: str) -> Optional[T]:
        if self._legacy_decode is None:
            return None
        path = self.legacy_path_for(scope_dir)
        try:
            raw = read_envelope(path)
        except FileNotFoundError:
            return None
        except OSError as ex:
            logger.error("ERROR: Found %s from a previous version for %s, but could not read it: %s", self.file_name, label, ex)
            return None
        except LegacyMigrationError as ex:
            logger.error("ERROR: Found %s from a previous version for %s, but was unable to load it: %s", self.file_name, label, ex)
            return None
        try:
            value = self._legacy_decode(raw)
        except (CorruptStateError, TypeError, ValueError, KeyError, AttributeError) as ex:
            logger.error("ERROR: Found %s from a previous version for %s, but was unable to load it: %s", self.file_name, label, ex)
            return None
        logger.info("Found and successfully loaded %s from a previous version for %s", self.file_name, label)
        try:
            self.save(scope_dir, value)
        except PersistenceError as ex:
            logger.error("ERROR: Could not migrate %s for %s to JSON: %s", self.file_name, label, ex)
        return value

    # ---------- Write ----------
    def save(self, scope_dir: Path, value: T) -> None:
        path = self.path_for(scope_dir)
        try:
            payload = json.dumps(self._encode(value), indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as ex:
            raise PersistenceError(f"could not encode {path}: {ex}") from ex
        tmp_name: Optional[str] = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=str(path.parent), prefix=path.name + ".", suffix=".tmp", delete=False
            ) as fh:
                tmp_name = fh.name
                fh.write(payload)
            os.replace(tmp_name, path)
        except OSError as ex:
            if tmp_name and os.path.exists(tmp_name):
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
            raise PersistenceError(f"could not save {path}: {ex}") from ex
