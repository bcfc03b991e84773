import pytest

from jira_test_reporter.models import Scope, ScopeKind, TestResult, ResultStatus


@pytest.fixture
def leaf_scope(tmp_path):
    d = tmp_path / "jobs" / "payments"
    d.mkdir(parents=True)
    return Scope(name="payments", full_name="payments", root_dir=d)


@pytest.fixture
def composite_scope(tmp_path):
    root = tmp_path / "jobs" / "matrix"
    parent = Scope(name="matrix", full_name="matrix", root_dir=root, kind=ScopeKind.COMPOSITE)
    children = []
    for name in ("linux", "windows"):
        d = root / "configurations" / name
        d.mkdir(parents=True)
        children.append(Scope(name=name, full_name=f"matrix/{name}", root_dir=d, parent=parent))
    return Scope(name="matrix", full_name="matrix", root_dir=root, kind=ScopeKind.COMPOSITE, children=tuple(children))


@pytest.fixture
def failed_test():
    return TestResult(
        full_name="com.acme.PaymentTest.refund",
        status=ResultStatus.FAILED,
        error_details="expected 200 but was 500",
        error_stack_trace="AssertionError: expected 200 but was 500\n\tat PaymentTest.refund",
    )


@pytest.fixture
def passed_test():
    return TestResult(full_name="com.acme.PaymentTest.refund", status=ResultStatus.PASSED)
