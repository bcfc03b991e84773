from __future__ import annotations

"""
Pure helpers that shape tracker requests.

- escape_jql(text): minimal escaping of user/test text embedded in JQL
- build_duplicate_query / duplicate_query_for: open issues with the same text
- build_daily_count_query: issues a user created in a project today
- build_issue_fields / merge_fields: default templates first, job templates after
- get_issue_url, format_tracker_error, parse_bug_limit
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from jira_test_reporter.errors import ConfigurationError, TrackerError
from jira_test_reporter.fields import FieldTemplate
from jira_test_reporter.models import TestResult

logger = logging.getLogger(__name__)

DUPLICATE_MAX_RESULTS = 50
DAILY_COUNT_MAX_RESULTS = 30
SEARCH_FIELDS: Tuple[str, ...] = ("summary", "issuetype", "created", "updated", "project", "status")


def escape_jql(text: str) -> str:
    # Only brackets are escaped. Other JQL/Lucene metacharacters pass through
    # unchanged, so this is not a general sanitizer.
    return (text or "").replace("[", "\\\\[").replace("]", "\\\\]")


def build_duplicate_query(project_key: str, rendered_text: str) -> str:
    return 'status != "closed" and project = "%s" and text ~ "%s"' % (project_key, escape_jql(rendered_text))


def duplicate_query_for(
    project_key: str,
    templates: Sequence[FieldTemplate],
    test: TestResult,
    env: Optional[Mapping[str, str]] = None,
) -> str:
    """Duplicate-check query using the first template's rendered value."""
    if not templates:
        raise ConfigurationError("Duplicate detection needs at least one field template (none configured)")
    _name, value = templates[0].render(test, env)
    return build_duplicate_query(project_key, str(value))


def build_daily_count_query(project_key: str, username: str) -> str:
    return 'project = "%s" and Created >= startOfDay() and creator= "%s"' % (project_key, username)


def build_issue_fields(
    default_templates: Iterable[FieldTemplate],
    job_templates: Iterable[FieldTemplate],
    test: TestResult,
    env: Optional[Mapping[str, str]] = None,
) -> List[Tuple[str, Any]]:
    pairs = [t.render(test, env) for t in default_templates]
    pairs += [t.render(test, env) for t in job_templates]
    return pairs


def merge_fields(pairs: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for name, value in pairs:
        out[name] = value
    return out


def get_issue_url(server_url: str, issue_key: str) -> str:
    base = server_url if server_url.endswith("/") else server_url + "/"
    return f"{base}browse/{issue_key}"


def format_tracker_error(error: TrackerError, newline: str = "\n") -> str:
    parts: List[str] = []
    for collection in error.error_collections:
        block = [f"Error {collection.status}"]
        block += [str(m) for m in collection.error_messages]
        block += [str(v) for v in collection.errors.values()]
        parts.append(newline.join(block))
    return newline.join(parts) if parts else str(error)


def parse_bug_limit(raw: Optional[str]) -> Optional[int]:
    """Daily bug limit; None means unlimited."""
    s = str(raw or "").strip()
    if not s:
        return None
    try:
        return int(s)
    except ValueError:
        logger.warning("WARNING: Ignoring non-numeric daily bug limit %r", raw)
        return None
