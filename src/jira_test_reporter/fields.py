from __future__ import annotations

"""
Field templates: configured rules that derive one tracker issue field from a
test result and the build environment.

Variants
- StringFields: free text with variable substitution
- SelectableFields: single option, submitted as {"id": value}
- SelectableArrayFields: multiple options, submitted as [{"id": v}, ...]
- UserFields: a user, submitted as {"name": value}

FIELD_TYPES is the static discriminator table used by the JSON codec; a new
variant is added by defining the model and registering its discriminator.
"""

from string import Template
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field

from jira_test_reporter.models import TestResult

SUMMARY_MAX_LEN = 255


def result_variables(test: TestResult, env: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Variables a template may reference, derived from one test result."""
    env = env or {}
    summary = f"{test.full_name}: {test.error_details}".strip().rstrip(":")
    lines = [f"Test: {test.full_name}"]
    if test.error_details:
        lines += ["", "Error details:", test.error_details]
    if test.error_stack_trace:
        lines += ["", "Stack trace:", "{noformat}", test.error_stack_trace, "{noformat}"]
    if env.get("BUILD_URL"):
        lines += ["", f"Build: {env['BUILD_URL']}"]
    return {
        "DEFAULT_SUMMARY": summary[:SUMMARY_MAX_LEN],
        "DEFAULT_DESCRIPTION": "\n".join(lines),
        "TEST_FULL_NAME": test.full_name,
        "TEST_NAME": test.name,
        "TEST_ERROR_DETAILS": test.error_details,
        "TEST_STACK_TRACE": test.error_stack_trace,
    }


def substitute(text: str, test: TestResult, env: Optional[Mapping[str, str]] = None) -> str:
    # One pass: test variables win over env vars, unknown names stay as written
    mapping: Dict[str, str] = {str(k): str(v) for k, v in (env or {}).items()}
    mapping.update(result_variables(test, env))
    return Template(text or "").safe_substitute(mapping)


class FieldTemplate(BaseModel):
    """Base for all variants. Payload keys keep their camelCase wire names."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    type_name: ClassVar[str] = ""

    field_key: str = Field(alias="fieldKey", min_length=1)

    def render(self, test: TestResult, env: Optional[Mapping[str, str]] = None) -> Tuple[str, Any]:
        raise NotImplementedError

    def to_properties(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class StringFields(FieldTemplate):
    type_name: ClassVar[str] = "StringFields"

    value: str = ""

    def render(self, test: TestResult, env: Optional[Mapping[str, str]] = None) -> Tuple[str, Any]:
        return self.field_key, substitute(self.value, test, env)


class SelectableFields(FieldTemplate):
    type_name: ClassVar[str] = "SelectableFields"

    value: str

    def render(self, test: TestResult, env: Optional[Mapping[str, str]] = None) -> Tuple[str, Any]:
        return self.field_key, {"id": self.value}


class SelectableArrayFields(FieldTemplate):
    type_name: ClassVar[str] = "SelectableArrayFields"

    values: List[str] = Field(default_factory=list)

    def render(self, test: TestResult, env: Optional[Mapping[str, str]] = None) -> Tuple[str, Any]:
        return self.field_key, [{"id": v} for v in self.values]


class UserFields(FieldTemplate):
    type_name: ClassVar[str] = "UserFields"

    value: str

    def render(self, test: TestResult, env: Optional[Mapping[str, str]] = None) -> Tuple[str, Any]:
        return self.field_key, {"name": substitute(self.value, test, env)}


FIELD_TYPES: Dict[str, Type[FieldTemplate]] = {
    cls.type_name: cls
    for cls in (StringFields, SelectableFields, SelectableArrayFields, UserFields)
}

DEFAULT_TEMPLATES: Tuple[FieldTemplate, ...] = (
    StringFields(field_key="summary", value="${DEFAULT_SUMMARY}"),
    StringFields(field_key="description", value="${DEFAULT_DESCRIPTION}"),
)
