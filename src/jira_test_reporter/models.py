from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator


class ScopeKind(Enum):
    LEAF = "leaf"
    COMPOSITE = "composite"


@dataclass(frozen=True)
class Scope:
    """A CI job (or sub-job) used as the key of both registries.

    full_name is the stable unique key; name is the short name a composite
    parent uses for this child when exporting. A child keeps a childless copy
    of its composite parent in parent, used to read the parent's settings.
    """

    name: str
    full_name: str
    root_dir: Path
    kind: ScopeKind = ScopeKind.LEAF
    children: Tuple["Scope", ...] = field(default_factory=tuple)
    parent: Optional["Scope"] = field(default=None, repr=False, compare=False)

    @property
    def is_composite(self) -> bool:
        return self.kind is ScopeKind.COMPOSITE

    def iter_leaves(self) -> Iterator["Scope"]:
        # Nested composites are skipped, they register their own children
        for child in self.children:
            if child.is_composite:
                continue
            yield child

    def child(self, name: str) -> Optional["Scope"]:
        for c in self.children:
            if c.name == name:
                return c
        return None


class ResultStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class TestResult(BaseModel):
    __test__ = False

    full_name: str
    name: str = Field("")
    test_id: str = Field("")
    status: ResultStatus = ResultStatus.PASSED
    error_details: str = Field("")
    error_stack_trace: str = Field("")

    @model_validator(mode="after")
    def _defaults_from_full_name(self) -> "TestResult":
        if not self.test_id:
            self.test_id = self.full_name
        if not self.name:
            self.name = self.full_name.rsplit(".", 1)[-1]
        return self

    @property
    def failed(self) -> bool:
        return self.status is ResultStatus.FAILED


class SearchResult(BaseModel):
    total: int = 0
    start_at: int = 0
    max_results: int = 0
    issues: List[Dict[str, Any]] = Field(default_factory=list)

    def issue_keys(self) -> List[str]:
        return [str(i.get("key")) for i in self.issues if i.get("key")]


class RunReport(BaseModel):
    scope: str
    created_issues: List[str] = Field(default_factory=list)
    reused_issues: List[str] = Field(default_factory=list)
    resolved_issues: List[str] = Field(default_factory=list)
    skipped_tests: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    failures: List[str] = Field(default_factory=list)
