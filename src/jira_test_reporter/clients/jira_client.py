from __future__ import annotations

"""
Minimal Jira REST (v2) client used by the reporter service.

Key helpers:
- JiraClient._request(method, path, params=None, json=None)
- create_issue(project_key, issue_type_id, fields) -> issue key
- search_jql(jql, max_results, start_at, fields) -> SearchResult
- transition_issue(issue_key, transition_name) -> bool

No retries (the adapter is mounted with
Retry(total=0)); any non-2xx answer is raised as TrackerError carrying the
server's error collection.
"""

from typing import Any, Dict, List, Optional, Sequence
import logging

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from jira_test_reporter.errors import ErrorCollection, TrackerError
from jira_test_reporter.models import SearchResult
from jira_test_reporter.shared.config_loader import JiraConfig
from jira_test_reporter.shared.log_utils import redact_error_payload

logger = logging.getLogger(__name__)

API_PREFIX = "/rest/api/2"


def _error_collection(r: requests.Response) -> ErrorCollection:
    try:
        body = r.json() or {}
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    messages = [str(m) for m in (body.get("errorMessages") or [])]
    errors = {str(k): str(v) for k, v in (body.get("errors") or {}).items()}
    if not messages and not errors and r.text:
        messages = [r.text[:500]]
    return ErrorCollection(status=r.status_code, error_messages=messages, errors=errors)


def _json_body(r: requests.Response) -> Dict[str, Any]:
    try:
        body = r.json()
    except ValueError as ex:
        raise TrackerError(f"Jira returned a non-JSON body (status {r.status_code}): {ex}") from ex
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise TrackerError(f"Jira returned an unexpected body type {type(body).__name__}")
    return body


class JiraClient:
    def __init__(self, cfg: Optional[JiraConfig] = None, timeout: float = 30.0) -> None:
        self.cfg = cfg or JiraConfig.load()
        self.base_url: str = self.cfg.server_url.rstrip("/")
        self.timeout = timeout

        # HTTP session with connection pooling
        self.session = requests.Session()
        adapter = HTTPAdapter(pool_connections=10, pool_maxsize=20, max_retries=Retry(total=0, backoff_factor=0))
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        if self.cfg.username and self.cfg.api_token:
            self.session.auth = (self.cfg.username, self.cfg.api_token)

    # ---------- HTTP ----------
    def _headers(self) -> Dict[str, str]:
        h = {"Accept": "application/json", "Content-Type": "application/json"}
        # Personal access token without a username
        if self.cfg.api_token and not self.cfg.username:
            h["Authorization"] = f"Bearer {self.cfg.api_token}"
        return h

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        if not path.startswith("/"):
            path = "/" + path
        url = self.base_url + API_PREFIX + path
        headers = {**self._headers(), **(kwargs.pop("headers", {}) or {})}
        try:
            r = self.session.request(method=method.upper(), url=url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"Jira Request Error: {method.upper()} {path}: {e}")
            raise TrackerError(f"Jira request failed: {e}") from e
        if r.status_code >= 400:
            collection = _error_collection(r)
            logger.debug("Jira error payload: %s", redact_error_payload(collection.errors))
            raise TrackerError(f"Jira returned {r.status_code} for {method.upper()} {path}", [collection])
        return r

    # ---------- Issues ----------
    def create_issue(self, project_key: str, issue_type_id: int, fields: Dict[str, Any]) -> str:
        body_fields: Dict[str, Any] = {
            "project": {"key": project_key},
            "issuetype": {"id": str(issue_type_id)},
        }
        body_fields.update(fields)
        r = self._request("POST", "/issue", json={"fields": body_fields})
        key = str(_json_body(r).get("key") or "").strip()
        if not key:
            raise TrackerError("Jira created an issue but returned no key")
        return key

    def search_jql(
        self,
        jql: str,
        max_results: int = 50,
        start_at: int = 0,
        fields: Optional[Sequence[str]] = None,
    ) -> SearchResult:
        body: Dict[str, Any] = {"jql": jql, "maxResults": int(max_results), "startAt": int(start_at)}
        if fields:
            body["fields"] = list(fields)
        r = self._request("POST", "/search", json=body)
        data = _json_body(r)
        issues = data.get("issues") or []
        return SearchResult(
            total=int(data.get("total") or 0),
            start_at=int(data.get("startAt") or 0),
            max_results=int(data.get("maxResults") or max_results),
            issues=[i for i in issues if isinstance(i, dict)],
        )

    def list_transitions(self, issue_key: str) -> List[Dict[str, Any]]:
        r = self._request("GET", f"/issue/{issue_key}/transitions")
        items = _json_body(r).get("transitions") or []
        return [t for t in items if isinstance(t, dict)]

    def transition_issue(self, issue_key: str, transition_name: str) -> bool:
        wanted = (transition_name or "").strip().lower()
        for t in self.list_transitions(issue_key):
            if str(t.get("name") or "").strip().lower() == wanted:
                self._request("POST", f"/issue/{issue_key}/transitions", json={"transition": {"id": str(t.get("id"))}})
                return True
        return False
