from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List

from jira_test_reporter.models import ResultStatus, TestResult

logger = logging.getLogger(__name__)


def _parse_file(xml_file: Path) -> List[TestResult]:
    results: List[TestResult] = []
    root = ET.parse(xml_file).getroot()
    # <testsuites> wraps suites, a bare <testsuite> is also accepted
    for testcase in root.iter("testcase"):
        classname = testcase.get("classname", "")
        name = testcase.get("name", "")
        full_name = f"{classname}.{name}" if classname else name
        if not full_name:
            continue

        failure = testcase.find("failure")
        if failure is None:
            failure = testcase.find("error")
        if testcase.find("skipped") is not None:
            status = ResultStatus.SKIPPED
        elif failure is not None:
            status = ResultStatus.FAILED
        else:
            status = ResultStatus.PASSED

        details = ""
        trace = ""
        if failure is not None:
            details = failure.get("message", "") or ""
            trace = (failure.text or "").strip()
            if not details and trace:
                details = trace.splitlines()[0]

        results.append(
            TestResult(
                full_name=full_name,
                name=name,
                status=status,
                error_details=details,
                error_stack_trace=trace,
            )
        )
    return results


def parse_junit_reports(path: Path) -> List[TestResult]:
    """Parse one JUnit XML file, or every *.xml under a directory."""
    p = Path(path)
    files = sorted(p.rglob("*.xml")) if p.is_dir() else [p]
    results: List[TestResult] = []
    seen = set()
    for xml_file in files:
        try:
            parsed = _parse_file(xml_file)
        except ET.ParseError as ex:
            logger.warning("WARNING: Skipping unreadable JUnit report %s: %s", xml_file, ex)
            continue
        for r in parsed:
            if r.test_id in seen:
                continue
            seen.add(r.test_id)
            results.append(r)
    return results
