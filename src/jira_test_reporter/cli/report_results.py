from __future__ import annotations

"""
Build-completion entry point: read JUnit reports and raise/resolve issues.

Example
  jtr-report --job payments/linux --results build/test-results

Build variables (BUILD_URL, JOB_NAME, ...) are taken from the process
environment and are available to string templates as ${NAME}.
"""

import argparse
import json
import logging
import os

from dotenv import load_dotenv

from jira_test_reporter.clients.jira_client import JiraClient
from jira_test_reporter.context import ReporterContext
from jira_test_reporter.errors import ReporterError
from jira_test_reporter.shared.config_loader import JiraConfig, ReporterConfig
from jira_test_reporter.shared.junit import parse_junit_reports
from jira_test_reporter.shared.log_utils import setup_logging

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Report JUnit results of a build to Jira")
    ap.add_argument("--job", required=True, help="Job full name (child configurations as <job>/<child>)")
    ap.add_argument("--results", required=True, help="JUnit XML file or directory")
    ap.add_argument("--username", help="Creator used for the daily bug limit (default: JIRA_USERNAME)")
    return ap.parse_args()


def main() -> None:
    load_dotenv()
    args = parse_args()
    cfg = ReporterConfig.load()
    setup_logging(cfg.log_level)
    try:
        jira = JiraConfig.load()
        ctx = ReporterContext.bootstrap(cfg, client=JiraClient(jira), jira=jira)
        scope = ctx.scope(args.job)
        if scope is None:
            raise ReporterError(f"Job {args.job} not found under {cfg.jobs_root}")
        results = parse_junit_reports(args.results)
        logger.info(f"Parsed {len(results)} test result(s) from {args.results}")
        report = ctx.service.process_results(scope, results, env=dict(os.environ), username=args.username)
    except (ReporterError, ValueError) as ex:
        logger.error(f"ERROR: {ex}")
        raise SystemExit(1)
    print(json.dumps(report.model_dump(), indent=2))
    if report.failures:
        raise SystemExit(2)


if __name__ == "__main__":
    main()
