"""
Logging helpers:
- single-line key=value action records
- redaction of secrets in tracker error payloads
- root logging setup for entry points
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict

LOGGER_NAME = "jira_test_reporter"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

_EMAIL_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")
_TOKEN_KEYS = {
    "authorization",
    "access_token",
    "api_token",
    "token",
    "password",
    "secret",
}


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


def redact_error_payload(err: Any) -> Any:
    """Best-effort redacted clone: token-like dict keys and emails are masked."""
    if isinstance(err, dict):
        out: Dict[str, Any] = {}
        for k, v in err.items():
            if isinstance(k, str) and k.strip().lower() in _TOKEN_KEYS:
                out[k] = "***REDACTED***"
            else:
                out[k] = redact_error_payload(v)
        return out
    if isinstance(err, list):
        return [redact_error_payload(x) for x in err]
    if isinstance(err, str):
        return _EMAIL_RE.sub("***@***", err)
    return err


def log_kv(action: str, level: int = logging.INFO, **fields: Any) -> None:
    """Log a single-line action record with key=value pairs.

    Example
    - log_kv("jql", scope="folder/job", query='project = "ABC"')
    """
    parts = [f"{k}={v}" for k, v in fields.items()]
    logging.getLogger(LOGGER_NAME).log(level, f"{action}: " + " ".join(parts))
