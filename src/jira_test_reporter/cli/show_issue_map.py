from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from jira_test_reporter.context import ReporterContext
from jira_test_reporter.shared.config_loader import ReporterConfig
from jira_test_reporter.shared.log_utils import setup_logging

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Print the test -> issue key map of a job as JSON")
    ap.add_argument("--job", required=True, help="Job full name")
    ap.add_argument("--child", help="Configuration name, for jobs with configurations")
    return ap.parse_args()


def main() -> None:
    load_dotenv()
    args = parse_args()
    cfg = ReporterConfig.load()
    setup_logging(cfg.log_level)
    ctx = ReporterContext.bootstrap(cfg)
    scope = ctx.scope(args.job)
    if scope is None:
        logger.error(f"ERROR: Job {args.job} not found under {cfg.jobs_root}")
        raise SystemExit(1)
    print(ctx.issues.export_json(scope, args.child))


if __name__ == "__main__":
    main()
