from __future__ import annotations

"""
Owning context for the registries and the service.

Initialization order (bootstrap):
1. discover scopes under the jobs root
2. construct both registries (each with its per-scope store)
3. register every scope's issue map and preload every job configuration
4. construct the service on top of the tracker client

Entry points build one context and pass it (or its parts) to every call site.
"""

from dataclasses import dataclass, field
import logging
from typing import Dict, List, Optional

from jira_test_reporter.clients.base import TrackerClient
from jira_test_reporter.models import Scope
from jira_test_reporter.services.reporter_service import ReporterService
from jira_test_reporter.shared.config_loader import JiraConfig, ReporterConfig
from jira_test_reporter.shared.scopes import discover_scopes, index_scopes
from jira_test_reporter.state.issue_map import TestIssueRegistry
from jira_test_reporter.state.job_configs import JobPolicyRegistry

logger = logging.getLogger(__name__)


@dataclass
class ReporterContext:
    config: ReporterConfig
    issues: TestIssueRegistry
    jobs: JobPolicyRegistry
    scopes: List[Scope] = field(default_factory=list)
    service: Optional[ReporterService] = None
    _index: Dict[str, Scope] = field(default_factory=dict, repr=False)

    @classmethod
    def bootstrap(
        cls,
        config: ReporterConfig,
        client: Optional[TrackerClient] = None,
        jira: Optional[JiraConfig] = None,
    ) -> "ReporterContext":
        scopes = discover_scopes(config.jobs_root)
        issues = TestIssueRegistry()
        jobs = JobPolicyRegistry()
        for scope in scopes:
            issues.register(scope)
        configured = jobs.preload(list(index_scopes(scopes).values()))
        logger.info("Loaded %d job(s) from %s, %d with issue configuration", len(scopes), config.jobs_root, configured)
        service = None
        if client is not None:
            service = ReporterService(
                client,
                issues,
                jobs,
                default_templates=config.default_templates(),
                server_url=jira.server_url if jira else "",
                username=jira.username if jira else None,
            )
        return cls(config=config, issues=issues, jobs=jobs, scopes=scopes, service=service, _index=index_scopes(scopes))

    def scope(self, full_name: str) -> Optional[Scope]:
        return self._index.get(full_name)
