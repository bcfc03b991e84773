import pytest

from jira_test_reporter.errors import CorruptStateError
from jira_test_reporter.fields import (
    SUMMARY_MAX_LEN,
    SelectableArrayFields,
    SelectableFields,
    StringFields,
    UserFields,
    result_variables,
    substitute,
)
from jira_test_reporter.models import TestResult
from jira_test_reporter.state.codec import decode_template, decode_templates, encode_template


def test_default_variables(failed_test):
    v = result_variables(failed_test, {"BUILD_URL": "https://ci/job/1/"})

    assert v["DEFAULT_SUMMARY"] == "com.acme.PaymentTest.refund: expected 200 but was 500"
    assert v["TEST_NAME"] == "refund"
    assert "{noformat}" in v["DEFAULT_DESCRIPTION"]
    assert v["DEFAULT_DESCRIPTION"].endswith("Build: https://ci/job/1/")


def test_summary_without_error_details_is_the_full_name(passed_test):
    assert result_variables(passed_test)["DEFAULT_SUMMARY"] == "com.acme.PaymentTest.refund"


def test_summary_is_truncated():
    t = TestResult(full_name="x" * 400)

    assert len(result_variables(t)["DEFAULT_SUMMARY"]) == SUMMARY_MAX_LEN


def test_substitute_env_and_unknown_names(failed_test):
    out = substitute("${TEST_NAME} in #${BUILD_NUMBER} ${NOPE}", failed_test, {"BUILD_NUMBER": "42"})

    assert out == "refund in #42 ${NOPE}"


def test_test_variables_win_over_env(failed_test):
    assert substitute("$TEST_NAME", failed_test, {"TEST_NAME": "env"}) == "refund"


def test_variant_rendering(failed_test):
    env = {"OWNER": "jdoe"}

    assert StringFields(field_key="labels", value="ci").render(failed_test, env) == ("labels", "ci")
    assert SelectableFields(field_key="priority", value="3").render(failed_test, env) == ("priority", {"id": "3"})
    assert SelectableArrayFields(field_key="components", values=["10", "11"]).render(failed_test, env) == (
        "components",
        [{"id": "10"}, {"id": "11"}],
    )
    assert UserFields(field_key="assignee", value="${OWNER}").render(failed_test, env) == ("assignee", {"name": "jdoe"})


def test_encode_template_wire_form():
    raw = encode_template(SelectableArrayFields(field_key="components", values=["10"]))

    assert raw == {"type": "SelectableArrayFields", "properties": {"fieldKey": "components", "values": ["10"]}}
    assert decode_template(raw) == SelectableArrayFields(field_key="components", values=["10"])


@pytest.mark.parametrize(
    "raw",
    [
        "StringFields",
        {"type": "Nope", "properties": {"fieldKey": "x"}},
        {"type": "StringFields"},
        {"type": "SelectableFields", "properties": {"fieldKey": "priority"}},
        {"type": "StringFields", "properties": {"fieldKey": ""}},
    ],
)
def test_decode_template_rejects(raw):
    with pytest.raises(CorruptStateError):
        decode_template(raw)


def test_decode_templates_skips_bad_items(caplog):
    raw = [
        {"type": "Nope", "properties": {}},
        {"type": "UserFields", "properties": {"fieldKey": "reporter", "value": "bot"}},
    ]

    assert decode_templates(raw, context="payments") == [UserFields(field_key="reporter", value="bot")]
    assert "for payments" in caplog.text


def test_decode_templates_container():
    assert decode_templates(None) == []
    with pytest.raises(CorruptStateError):
        decode_templates({"type": "StringFields"})
