from __future__ import annotations

"""
Save the issue-creation configuration of one job.

Example
  jtr-configure-job --job payments/linux --project ABC --issue-type 10004 \
      --auto-raise --auto-resolve --prevent-duplicates --max-bugs 5 \
      --templates job_templates.json

--templates is a JSON list of field templates in wire form, e.g.
  [{"type": "SelectableFields", "properties": {"fieldKey": "priority", "value": "3"}}]
"""

import argparse
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from jira_test_reporter.context import ReporterContext
from jira_test_reporter.errors import CorruptStateError, ReporterError
from jira_test_reporter.shared.config_loader import ReporterConfig
from jira_test_reporter.shared.log_utils import setup_logging
from jira_test_reporter.state.codec import decode_templates
from jira_test_reporter.state.job_configs import JobPolicyRecord

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Save a job's Jira issue configuration")
    ap.add_argument("--job", required=True, help="Job full name (child configurations as <job>/<child>)")
    ap.add_argument("--project", required=True, help="Jira project key")
    ap.add_argument("--issue-type", required=True, type=int, help="Jira issue type id")
    ap.add_argument("--templates", help="JSON file with the job's field templates")
    ap.add_argument("--auto-raise", action="store_true", help="Raise an issue for each new failure")
    ap.add_argument("--auto-resolve", action="store_true", help="Resolve the linked issue when a test passes again")
    ap.add_argument("--prevent-duplicates", action="store_true", help="Reuse an open issue with the same text")
    ap.add_argument("--max-bugs", help="Max issues raised per day by the reporter user (blank = unlimited)")
    return ap.parse_args()


def main() -> None:
    load_dotenv()
    args = parse_args()
    cfg = ReporterConfig.load()
    setup_logging(cfg.log_level)
    try:
        ctx = ReporterContext.bootstrap(cfg)
        scope = ctx.scope(args.job)
        if scope is None:
            raise ReporterError(f"Job {args.job} not found under {cfg.jobs_root}")
        templates = []
        if args.templates:
            path = Path(args.templates)
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
                templates = decode_templates(raw, context=str(path))
            except (OSError, ValueError) as ex:
                raise ReporterError(f"Could not read templates from {path}: {ex}") from ex
            except CorruptStateError as ex:
                raise ReporterError(f"Invalid templates in {path}: {ex}") from ex
        record = JobPolicyRecord(
            project_key=args.project.strip(),
            issue_type=args.issue_type,
            configs=tuple(templates),
            auto_raise_issue=args.auto_raise,
            auto_resolve_issue=args.auto_resolve,
            prevent_duplicate_issue=args.prevent_duplicates,
            max_bugs_per_day=args.max_bugs,
        )
        ctx.jobs.save(scope, record)
    except ReporterError as ex:
        logger.error(f"ERROR: {ex}")
        raise SystemExit(1)
    print(json.dumps({"job": scope.full_name, "config": record.to_dict()}, indent=2))


if __name__ == "__main__":
    main()
