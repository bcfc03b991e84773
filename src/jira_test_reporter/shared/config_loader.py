from __future__ import annotations

"""
Configuration for the tracker client and the reporter.

Jira (priority):
1. JSON file at JIRA_CONFIG_PATH (keys: server_url, username, api_token / password)
2. Environment: JIRA_SERVER_URL, JIRA_USERNAME, JIRA_API_TOKEN (or JIRA_PASSWORD)

Reporter:
- JTR_JOBS_ROOT: directory holding one sub-directory per job (default: jobs)
- JTR_DEFAULT_TEMPLATES_PATH: optional JSON list of field templates in wire form,
  replacing the built-in summary/description defaults
- JTR_LOG_LEVEL: root log level for entry points (default: INFO)

Entry points call load_dotenv() first, so a local .env works for both.
Never commit secrets; this loader only reads local machine state.
"""

from dataclasses import dataclass
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from jira_test_reporter.errors import ConfigurationError, CorruptStateError
from jira_test_reporter.fields import DEFAULT_TEMPLATES, FieldTemplate
from jira_test_reporter.state.codec import decode_templates

logger = logging.getLogger(__name__)


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as ex:
        raise ConfigurationError(f"Could not read configuration file {path}: {ex}") from ex


@dataclass
class JiraConfig:
    server_url: str
    username: Optional[str]
    api_token: Optional[str]

    @classmethod
    def load(cls) -> "JiraConfig":
        data: Dict[str, Any] = {}
        cfg_path = (os.getenv("JIRA_CONFIG_PATH") or "").strip()
        if cfg_path:
            loaded = _load_json(Path(cfg_path))
            if not isinstance(loaded, dict):
                raise ConfigurationError(f"{cfg_path} must contain a JSON object")
            data = loaded
        server_url = str(data.get("server_url") or os.getenv("JIRA_SERVER_URL") or "").strip()
        if not server_url:
            raise ConfigurationError("JIRA_SERVER_URL is required")
        username = str(data.get("username") or os.getenv("JIRA_USERNAME") or "").strip() or None
        api_token = (
            str(
                data.get("api_token")
                or data.get("password")
                or os.getenv("JIRA_API_TOKEN")
                or os.getenv("JIRA_PASSWORD")
                or ""
            ).strip()
            or None
        )
        return cls(server_url=server_url, username=username, api_token=api_token)


@dataclass
class ReporterConfig:
    jobs_root: Path
    default_templates_path: Optional[Path]
    log_level: str

    @classmethod
    def load(cls) -> "ReporterConfig":
        jobs_root = Path((os.getenv("JTR_JOBS_ROOT") or "jobs").strip())
        tpl = (os.getenv("JTR_DEFAULT_TEMPLATES_PATH") or "").strip()
        level = (os.getenv("JTR_LOG_LEVEL") or "INFO").strip().upper()
        return cls(jobs_root=jobs_root, default_templates_path=Path(tpl) if tpl else None, log_level=level)

    def default_templates(self) -> Tuple[FieldTemplate, ...]:
        if self.default_templates_path is None:
            return DEFAULT_TEMPLATES
        raw = _load_json(self.default_templates_path)
        try:
            templates = decode_templates(raw, context=str(self.default_templates_path))
        except CorruptStateError as ex:
            raise ConfigurationError(f"Invalid default templates in {self.default_templates_path}: {ex}") from ex
        if not templates:
            logger.warning("WARNING: %s has no usable templates; using built-in defaults", self.default_templates_path)
            return DEFAULT_TEMPLATES
        return tuple(templates)
