from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple
import logging

from jira_test_reporter.clients.base import TrackerClient
from jira_test_reporter.errors import ConfigurationError, TrackerError
from jira_test_reporter.fields import DEFAULT_TEMPLATES, FieldTemplate
from jira_test_reporter.models import ResultStatus, RunReport, Scope, SearchResult, TestResult
from jira_test_reporter.shared.log_utils import log_kv
from jira_test_reporter.state.issue_map import TestIssueRegistry
from jira_test_reporter.state.job_configs import JobPolicyRecord, JobPolicyRegistry
from jira_test_reporter.services.jql import (
    DAILY_COUNT_MAX_RESULTS,
    DUPLICATE_MAX_RESULTS,
    SEARCH_FIELDS,
    build_daily_count_query,
    build_issue_fields,
    duplicate_query_for,
    format_tracker_error,
    get_issue_url,
    merge_fields,
    parse_bug_limit,
)

logger = logging.getLogger(__name__)

RESOLVE_TRANSITION = "Resolve Issue"

# Outcomes of handling one failed test
EXISTING = "existing"
REUSED = "reused"
CREATED = "created"
SKIPPED = "skipped"


class ReporterService:
    """Build-completion hook linking test results to tracker issues.

    Methods used by entry points:
    - process_results(scope, results, env, username)
    - report_failure(scope, test, env, username) / report_pass(scope, test)
    - find_issues(scope, test, env), bugs_per_day(scope, username)
    - create_issue(scope, test, env), resolve_issue(scope, issue_key)
    - issue_url(issue_key)
    """

    def __init__(
        self,
        client: TrackerClient,
        issues: TestIssueRegistry,
        jobs: JobPolicyRegistry,
        default_templates: Sequence[FieldTemplate] = DEFAULT_TEMPLATES,
        server_url: str = "",
        username: Optional[str] = None,
    ) -> None:
        self.client = client
        self.issues = issues
        self.jobs = jobs
        self.default_templates = default_templates
        self.server_url = server_url
        self.username = username

    # ---------- Utils ----------
    def _record(self, scope: Scope) -> JobPolicyRecord:
        record = self.jobs.get(scope)
        if record is None:
            raise ConfigurationError(f"No issue configuration saved for job {scope.full_name}")
        return record

    def _tracker_failed(self, action: str, scope: Scope, ex: TrackerError) -> None:
        logger.error("ERROR: Could not %s for %s:\n%s", action, scope.full_name, format_tracker_error(ex))

    def issue_url(self, issue_key: str) -> str:
        return get_issue_url(self.server_url, issue_key) if self.server_url else issue_key

    # ---------- Tracker calls ----------
    def find_issues(self, scope: Scope, test: TestResult, env: Optional[Mapping[str, str]] = None) -> SearchResult:
        """Open issues in the job's project matching the first default template's text."""
        record = self._record(scope)
        jql = duplicate_query_for(record.project_key, self.default_templates, test, env)
        log_kv("jql", scope=scope.full_name, query=jql)
        try:
            return self.client.search_jql(jql, DUPLICATE_MAX_RESULTS, 0, SEARCH_FIELDS)
        except TrackerError as ex:
            self._tracker_failed("search for duplicate issues", scope, ex)
            raise

    def bugs_per_day(self, scope: Scope, username: str) -> int:
        record = self._record(scope)
        jql = build_daily_count_query(record.project_key, username)
        log_kv("jql", scope=scope.full_name, query=jql)
        try:
            return self.client.search_jql(jql, DAILY_COUNT_MAX_RESULTS, 0, SEARCH_FIELDS).total
        except TrackerError as ex:
            self._tracker_failed("count today's issues", scope, ex)
            raise

    def create_issue(self, scope: Scope, test: TestResult, env: Optional[Mapping[str, str]] = None) -> str:
        record = self._record(scope)
        # Defaults first, job templates override fields with the same name
        fields: Dict[str, Any] = merge_fields(build_issue_fields(self.default_templates, record.configs, test, env))
        try:
            key = self.client.create_issue(record.project_key, record.issue_type, fields)
        except TrackerError as ex:
            self._tracker_failed(f"create an issue for test {test.full_name}", scope, ex)
            raise
        logger.info("Created issue %s for test %s (%s)", key, test.full_name, self.issue_url(key))
        return key

    def resolve_issue(self, scope: Scope, issue_key: str) -> bool:
        try:
            ok = self.client.transition_issue(issue_key, RESOLVE_TRANSITION)
        except TrackerError as ex:
            self._tracker_failed(f"resolve issue {issue_key}", scope, ex)
            raise
        log_kv("resolve_issue", scope=scope.full_name, issue=issue_key, ok=ok)
        return ok

    # ---------- Policy ----------
    def _handle_failure(
        self,
        scope: Scope,
        test: TestResult,
        env: Optional[Mapping[str, str]],
        username: Optional[str],
    ) -> Tuple[Optional[str], str]:
        existing = self.issues.lookup(scope, test.test_id)
        if existing:
            return existing, EXISTING
        record = self._record(scope)
        if not record.auto_raise_issue:
            return None, SKIPPED

        if record.prevent_duplicate_issue:
            keys = self.find_issues(scope, test, env).issue_keys()
            if keys:
                self.issues.link(scope, test.test_id, keys[0])
                logger.info("Linked test %s to existing issue %s", test.full_name, keys[0])
                return keys[0], REUSED

        limit = parse_bug_limit(record.max_bugs_per_day)
        if limit is not None:
            creator = username or self.username
            if not creator:
                raise ConfigurationError(f"A daily bug limit is set for {scope.full_name} but no creator username is known")
            count = self.bugs_per_day(scope, creator)
            if count >= limit:
                logger.warning(
                    "WARNING: Daily bug limit reached for %s (%d/%d); not raising an issue for %s",
                    scope.full_name, count, limit, test.full_name,
                )
                return None, SKIPPED

        key = self.create_issue(scope, test, env)
        self.issues.link(scope, test.test_id, key)
        return key, CREATED

    def report_failure(
        self,
        scope: Scope,
        test: TestResult,
        env: Optional[Mapping[str, str]] = None,
        username: Optional[str] = None,
    ) -> Optional[str]:
        """Issue key linked to a failed test afterwards, or None when none was raised."""
        key, _outcome = self._handle_failure(scope, test, env, username)
        return key

    def report_pass(self, scope: Scope, test: TestResult) -> Optional[str]:
        """Resolve and unlink the issue of a passing test; returns the unlinked key."""
        if not self.jobs.auto_resolve_issue(scope):
            return None
        key = self.issues.lookup(scope, test.test_id)
        if not key:
            return None
        if not self.resolve_issue(scope, key):
            logger.warning("WARNING: Issue %s has no '%s' transition; unlinking it anyway", key, RESOLVE_TRANSITION)
        # Another build may have relinked the test meanwhile
        return key if self.issues.unlink(scope, test.test_id, key) else None

    def process_results(
        self,
        scope: Scope,
        results: Iterable[TestResult],
        env: Optional[Mapping[str, str]] = None,
        username: Optional[str] = None,
    ) -> RunReport:
        report = RunReport(scope=scope.full_name)
        if scope.is_composite:
            # Links live on the configurations only
            report.warnings.append(f"{scope.full_name} has configurations; report results for one of them")
            return report
        if self.jobs.get(scope) is None:
            report.warnings.append(f"No issue configuration saved for job {scope.full_name}")
            return report
        for test in results:
            try:
                if test.status is ResultStatus.FAILED:
                    key, outcome = self._handle_failure(scope, test, env, username)
                    if outcome == CREATED:
                        report.created_issues.append(key)
                    elif outcome in (EXISTING, REUSED):
                        report.reused_issues.append(key)
                    else:
                        report.skipped_tests.append(test.test_id)
                elif test.status is ResultStatus.PASSED:
                    key = self.report_pass(scope, test)
                    if key:
                        report.resolved_issues.append(key)
                else:
                    report.skipped_tests.append(test.test_id)
            except TrackerError as ex:
                report.failures.append(f"{test.test_id}: {format_tracker_error(ex, ' | ')}")
            except ConfigurationError as ex:
                report.failures.append(f"{test.test_id}: {ex}")
        return report
