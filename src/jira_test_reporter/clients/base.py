from __future__ import annotations

from typing import Any, Dict, Optional, Protocol, Sequence

from jira_test_reporter.models import SearchResult


class TrackerClient(Protocol):
    """Blocking tracker calls; failures raise TrackerError, nothing is retried."""

    def create_issue(self, project_key: str, issue_type_id: int, fields: Dict[str, Any]) -> str:
        ...

    def search_jql(
        self,
        jql: str,
        max_results: int = 50,
        start_at: int = 0,
        fields: Optional[Sequence[str]] = None,
    ) -> SearchResult:
        ...

    def transition_issue(self, issue_key: str, transition_name: str) -> bool:
        ...
