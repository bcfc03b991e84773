import json
import sys

import pytest

from jira_test_reporter.cli import configure_job, link_test, show_issue_map


@pytest.fixture
def jobs_root(tmp_path, monkeypatch):
    root = tmp_path / "jobs"
    (root / "payments").mkdir(parents=True)
    monkeypatch.setenv("JTR_JOBS_ROOT", str(root))
    monkeypatch.delenv("JTR_DEFAULT_TEMPLATES_PATH", raising=False)
    return root


def _run(monkeypatch, module, *argv):
    monkeypatch.setattr(sys, "argv", [module.__name__, *argv])
    module.main()


def test_configure_link_and_show(jobs_root, monkeypatch, capsys, tmp_path):
    templates = tmp_path / "templates.json"
    templates.write_text(
        json.dumps([{"type": "SelectableFields", "properties": {"fieldKey": "priority", "value": "3"}}]),
        encoding="utf-8",
    )

    _run(monkeypatch, configure_job, "--job", "payments", "--project", "ABC", "--issue-type", "10004",
         "--auto-raise", "--templates", str(templates))
    saved = json.loads(capsys.readouterr().out)
    assert saved["config"]["projectKey"] == "ABC"
    assert saved["config"]["configs"][0]["type"] == "SelectableFields"

    _run(monkeypatch, link_test, "--job", "payments", "--test", "pkg.T.a", "--issue", "ABC-12")
    assert json.loads(capsys.readouterr().out)["changed"] is True

    _run(monkeypatch, show_issue_map, "--job", "payments")
    assert json.loads(capsys.readouterr().out) == {"pkg.T.a": "ABC-12"}


def test_link_rejects_foreign_issue_key(jobs_root, monkeypatch):
    _run(monkeypatch, configure_job, "--job", "payments", "--project", "ABC", "--issue-type", "1")

    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, link_test, "--job", "payments", "--test", "pkg.T.a", "--issue", "XYZ-1")
    assert exc.value.code == 1


def test_unknown_job_exits(jobs_root, monkeypatch):
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, show_issue_map, "--job", "nope")
    assert exc.value.code == 1


def test_configure_rejects_blank_project(jobs_root, monkeypatch):
    with pytest.raises(SystemExit) as exc:
        _run(monkeypatch, configure_job, "--job", "payments", "--project", " ", "--issue-type", "1")

    assert exc.value.code == 1
    assert not (jobs_root / "payments" / "JiraIssueJobConfigs.json").exists()
