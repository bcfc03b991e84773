from __future__ import annotations

"""
Test -> issue key mapping, one sub-map per leaf scope.

File: <scope root>/JiraIssueKeyToTestMap.json (legacy: JiraIssueKeyToTestMap)

Every mutation of a sub-map persists only that sub-map. The outer
scope -> sub-map dict is read without a lock once a scope is registered;
registration and mutation each lock only the scope involved, so work on
different scopes never contends.
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from jira_test_reporter.errors import CorruptStateError, PersistenceError
from jira_test_reporter.models import Scope
from jira_test_reporter.state.store import PersistentKeyedStore

logger = logging.getLogger(__name__)

ISSUE_MAP_FILE = "JiraIssueKeyToTestMap"


def _decode_map(data: Any) -> Dict[str, str]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise CorruptStateError(f"issue map must be an object, got {type(data).__name__}")
    return {str(k): str(v) for k, v in data.items() if v is not None}


def issue_map_store() -> PersistentKeyedStore[Dict[str, str]]:
    return PersistentKeyedStore(ISSUE_MAP_FILE, encode=dict, decode=_decode_map, legacy_decode=_decode_map)


@dataclass
class _ScopeMap:
    scope: Scope
    tests: Dict[str, str] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)


class TestIssueRegistry:
    __test__ = False

    def __init__(self, store: Optional[PersistentKeyedStore[Dict[str, str]]] = None) -> None:
        self._store = store or issue_map_store()
        self._jobs: Dict[str, _ScopeMap] = {}
        self._registration_locks: Dict[str, threading.Lock] = {}

    # ---------- Registration ----------
    def register(self, scope: Scope) -> None:
        if scope.is_composite:
            for child in scope.iter_leaves():
                self.register(child)
            return
        if scope.full_name in self._jobs:
            return
        lock = self._registration_locks.setdefault(scope.full_name, threading.Lock())
        with lock:
            if scope.full_name in self._jobs:
                return
            tests = self._store.load(scope.root_dir, scope.full_name) or {}
            self._jobs[scope.full_name] = _ScopeMap(scope=scope, tests=tests)

    def is_registered(self, scope: Scope) -> bool:
        return scope.full_name in self._jobs

    def _entry(self, scope: Scope, action: str) -> _ScopeMap:
        if scope.is_composite:
            raise ValueError(f"Cannot {action} on composite job {scope.full_name}; use one of its configurations")
        entry = self._jobs.get(scope.full_name)
        if entry is None:
            logger.warning("WARNING: Unregistered job %s", scope.full_name)
            self.register(scope)
            entry = self._jobs[scope.full_name]
        return entry

    def _save(self, entry: _ScopeMap) -> None:
        # Caller holds entry.lock
        try:
            self._store.save(entry.scope.root_dir, entry.tests)
        except PersistenceError as ex:
            logger.error("ERROR: Could not save job map for %s: %s", entry.scope.full_name, ex)

    # ---------- Mutation ----------
    def link(self, scope: Scope, test_id: str, issue_key: str) -> None:
        entry = self._entry(scope, "link a test")
        with entry.lock:
            entry.tests[test_id] = issue_key
            self._save(entry)

    def unlink(self, scope: Scope, test_id: str, issue_key: str) -> bool:
        """Remove the link only if the test is still linked to issue_key."""
        entry = self._entry(scope, "unlink a test")
        with entry.lock:
            if entry.tests.get(test_id) != issue_key:
                return False
            del entry.tests[test_id]
            self._save(entry)
            return True

    # ---------- Read ----------
    def lookup(self, scope: Scope, test_id: str) -> Optional[str]:
        return self._entry(scope, "look up a test").tests.get(test_id)

    def export(self, scope: Scope, child_name: Optional[str] = None) -> Optional[Dict[str, Any]]:
        if scope.is_composite:
            if child_name is not None:
                child = scope.child(child_name)
                return self.export(child) if child is not None else None
            return {c.name: self.export(c) for c in scope.children if c is not scope}
        entry = self._jobs.get(scope.full_name)
        if entry is None:
            return {}
        with entry.lock:
            return dict(entry.tests)

    def export_json(self, scope: Scope, child_name: Optional[str] = None) -> str:
        return json.dumps(self.export(scope, child_name), indent=2, sort_keys=True)
