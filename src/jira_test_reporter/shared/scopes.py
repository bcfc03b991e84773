from __future__ import annotations

"""
Scope discovery from a jobs directory.

Layout
- <jobs_root>/<job>/                          leaf job
- <jobs_root>/<job>/configurations/<child>/   composite job with leaf children

A child's full name is "<job>/<child>"; its short name is "<child>".
"""

from pathlib import Path
from typing import Dict, List

from jira_test_reporter.models import Scope, ScopeKind

CONFIGURATIONS_DIR = "configurations"


def build_scope(job_dir: Path, name: str) -> Scope:
    configs_dir = job_dir / CONFIGURATIONS_DIR
    if not configs_dir.is_dir():
        return Scope(name=name, full_name=name, root_dir=job_dir)
    parent = Scope(name=name, full_name=name, root_dir=job_dir, kind=ScopeKind.COMPOSITE)
    children = tuple(
        Scope(name=d.name, full_name=f"{name}/{d.name}", root_dir=d, parent=parent)
        for d in sorted(configs_dir.iterdir())
        if d.is_dir()
    )
    return Scope(name=name, full_name=name, root_dir=job_dir, kind=ScopeKind.COMPOSITE, children=children)


def discover_scopes(jobs_root: Path) -> List[Scope]:
    root = Path(jobs_root)
    if not root.is_dir():
        return []
    return [build_scope(d, d.name) for d in sorted(root.iterdir()) if d.is_dir()]


def index_scopes(scopes: List[Scope]) -> Dict[str, Scope]:
    """full_name -> scope, including composite children."""
    out: Dict[str, Scope] = {}
    for s in scopes:
        out[s.full_name] = s
        for c in s.children:
            out[c.full_name] = c
    return out
