import json

import pytest

from jira_test_reporter.errors import ConfigurationError
from jira_test_reporter.shared.config_loader import JiraConfig, ReporterConfig

ENV_KEYS = (
    "JIRA_CONFIG_PATH",
    "JIRA_SERVER_URL",
    "JIRA_USERNAME",
    "JIRA_API_TOKEN",
    "JIRA_PASSWORD",
    "JTR_JOBS_ROOT",
    "JTR_DEFAULT_TEMPLATES_PATH",
    "JTR_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_jira_config_from_env(monkeypatch):
    monkeypatch.setenv("JIRA_SERVER_URL", "https://jira.example.com")
    monkeypatch.setenv("JIRA_USERNAME", "ci-bot")
    monkeypatch.setenv("JIRA_PASSWORD", "secret")

    cfg = JiraConfig.load()

    assert cfg == JiraConfig(server_url="https://jira.example.com", username="ci-bot", api_token="secret")


def test_jira_config_file_wins_over_env(monkeypatch, tmp_path):
    path = tmp_path / "jira.json"
    path.write_text(json.dumps({"server_url": "https://file.example.com", "api_token": "pat"}), encoding="utf-8")
    monkeypatch.setenv("JIRA_CONFIG_PATH", str(path))
    monkeypatch.setenv("JIRA_SERVER_URL", "https://env.example.com")
    monkeypatch.setenv("JIRA_USERNAME", "ci-bot")

    cfg = JiraConfig.load()

    assert cfg.server_url == "https://file.example.com"
    assert cfg.username == "ci-bot"
    assert cfg.api_token == "pat"


def test_jira_config_requires_server_url():
    with pytest.raises(ConfigurationError):
        JiraConfig.load()


def test_reporter_config_defaults(tmp_path):
    cfg = ReporterConfig.load()

    assert str(cfg.jobs_root) == "jobs"
    assert cfg.default_templates_path is None
    assert cfg.log_level == "INFO"


def test_reporter_config_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("JTR_JOBS_ROOT", str(tmp_path))
    monkeypatch.setenv("JTR_DEFAULT_TEMPLATES_PATH", str(tmp_path / "defaults.json"))
    monkeypatch.setenv("JTR_LOG_LEVEL", "debug")

    cfg = ReporterConfig.load()

    assert cfg.jobs_root == tmp_path
    assert cfg.default_templates_path == tmp_path / "defaults.json"
    assert cfg.log_level == "DEBUG"
