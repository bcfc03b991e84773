from __future__ import annotations

"""
Job -> last saved issue-creation configuration.

A new configuration is saved whenever a job's reporter settings are applied;
builds that run afterwards must all see that latest record, so it is cached
here and persisted per scope.

File: <scope root>/JiraIssueJobConfigs.json (legacy: JiraIssueJobConfigs)

JSON keys keep the names existing files were written with:
  projectKey, issueType, configs, autoRaiseIssue, autoResolveIssue,
  preventDuplicateIssue, maxNoofBugs
"""

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Pattern, Tuple

from jira_test_reporter.errors import ConfigurationError, CorruptStateError, PersistenceError
from jira_test_reporter.fields import FieldTemplate
from jira_test_reporter.models import Scope
from jira_test_reporter.state.codec import decode_templates, encode_templates
from jira_test_reporter.state.store import PersistentKeyedStore

logger = logging.getLogger(__name__)

JOB_CONFIGS_FILE = "JiraIssueJobConfigs"


def issue_key_regex(project_key: str) -> Pattern[str]:
    return re.compile(re.escape(project_key) + r"-\d+")


def _flag(data: Dict[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise CorruptStateError(f"job config {key} must be a boolean, got {value!r}")
    return value


@dataclass(frozen=True)
class JobPolicyRecord:
    project_key: str
    issue_type: int
    configs: Tuple[FieldTemplate, ...] = ()
    auto_raise_issue: bool = False
    auto_resolve_issue: bool = False
    prevent_duplicate_issue: bool = False
    max_bugs_per_day: Optional[str] = None
    # Derived from project_key on every construction; never persisted
    issue_key_pattern: Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        project_key = str(self.project_key or "").strip()
        if not project_key:
            raise ConfigurationError("A project key is required")
        object.__setattr__(self, "project_key", project_key)
        object.__setattr__(self, "configs", tuple(self.configs or ()))
        object.__setattr__(self, "issue_key_pattern", issue_key_regex(self.project_key))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projectKey": self.project_key,
            "issueType": self.issue_type,
            "configs": encode_templates(self.configs),
            "autoRaiseIssue": self.auto_raise_issue,
            "autoResolveIssue": self.auto_resolve_issue,
            "preventDuplicateIssue": self.prevent_duplicate_issue,
            "maxNoofBugs": self.max_bugs_per_day,
        }

    @classmethod
    def from_dict(cls, data: Any, context: Optional[str] = None) -> "JobPolicyRecord":
        if not isinstance(data, dict):
            raise CorruptStateError(f"job config must be an object, got {type(data).__name__}")
        project_key = str(data.get("projectKey") or "").strip()
        if not project_key:
            raise CorruptStateError("job config has no projectKey")
        try:
            issue_type = int(data["issueType"])
        except (KeyError, TypeError, ValueError) as ex:
            raise CorruptStateError(f"job config has no valid issueType: {ex}") from ex
        max_bugs = data.get("maxNoofBugs")
        return cls(
            project_key=project_key,
            issue_type=issue_type,
            configs=tuple(decode_templates(data.get("configs"), context=context)),
            auto_raise_issue=_flag(data, "autoRaiseIssue"),
            auto_resolve_issue=_flag(data, "autoResolveIssue"),
            prevent_duplicate_issue=_flag(data, "preventDuplicateIssue"),
            max_bugs_per_day=str(max_bugs) if max_bugs is not None else None,
        )


def job_configs_store() -> PersistentKeyedStore[JobPolicyRecord]:
    return PersistentKeyedStore(
        JOB_CONFIGS_FILE,
        encode=JobPolicyRecord.to_dict,
        decode=JobPolicyRecord.from_dict,
        legacy_decode=JobPolicyRecord.from_dict,
    )


class JobPolicyRegistry:
    def __init__(self, store: Optional[PersistentKeyedStore[JobPolicyRecord]] = None) -> None:
        self._store = store or job_configs_store()
        self._records: Dict[str, JobPolicyRecord] = {}
        self._locks: Dict[str, threading.Lock] = {}

    def _lock(self, scope: Scope) -> threading.Lock:
        return self._locks.setdefault(scope.full_name, threading.Lock())

    def preload(self, scopes: Iterable[Scope]) -> int:
        """Load every known scope once at startup; returns how many had a record."""
        found = 0
        for scope in scopes:
            if self.get(scope) is not None:
                found += 1
        return found

    def save(self, scope: Scope, record: JobPolicyRecord) -> None:
        with self._lock(scope):
            self._records[scope.full_name] = record
            try:
                self._store.save(scope.root_dir, record)
            except PersistenceError as ex:
                logger.error("ERROR: Could not save job configs for %s: %s", scope.full_name, ex)

    def get(self, scope: Scope) -> Optional[JobPolicyRecord]:
        """The scope's own record, else its composite parent's."""
        record = self._own(scope)
        if record is None and scope.parent is not None:
            record = self._own(scope.parent)
        return record

    def _own(self, scope: Scope) -> Optional[JobPolicyRecord]:
        record = self._records.get(scope.full_name)
        if record is not None:
            return record
        with self._lock(scope):
            record = self._records.get(scope.full_name)
            if record is None:
                record = self._store.load(scope.root_dir, scope.full_name)
                if record is not None:
                    self._records[scope.full_name] = record
            return record

    # ---------- Accessors ----------
    def project_key(self, scope: Scope) -> Optional[str]:
        record = self.get(scope)
        return record.project_key if record else None

    def issue_type(self, scope: Scope) -> Optional[int]:
        record = self.get(scope)
        return record.issue_type if record else None

    def field_templates(self, scope: Scope) -> Optional[List[FieldTemplate]]:
        record = self.get(scope)
        return list(record.configs) if record else None

    def auto_raise_issue(self, scope: Scope) -> bool:
        record = self.get(scope)
        return record.auto_raise_issue if record else False

    def auto_resolve_issue(self, scope: Scope) -> bool:
        record = self.get(scope)
        return record.auto_resolve_issue if record else False

    def prevent_duplicate_issue(self, scope: Scope) -> bool:
        record = self.get(scope)
        return record.prevent_duplicate_issue if record else False

    def max_bugs_per_day(self, scope: Scope) -> Optional[str]:
        record = self.get(scope)
        return record.max_bugs_per_day if record else None

    def issue_key_pattern(self, scope: Scope) -> Optional[Pattern[str]]:
        record = self.get(scope)
        return record.issue_key_pattern if record else None

    def is_issue_key(self, scope: Scope, text: str) -> bool:
        """True when text is a whole issue key of the scope's configured project."""
        pattern = self.issue_key_pattern(scope)
        return bool(pattern and pattern.fullmatch((text or "").strip()))
