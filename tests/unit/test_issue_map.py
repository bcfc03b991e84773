import json
import logging
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest

from jira_test_reporter.errors import PersistenceError
from jira_test_reporter.state.issue_map import TestIssueRegistry, issue_map_store


@pytest.fixture
def registry():
    return TestIssueRegistry()


def test_link_lookup_and_persist(registry, leaf_scope):
    registry.register(leaf_scope)
    registry.link(leaf_scope, "com.acme.A.test", "ABC-1")

    assert registry.lookup(leaf_scope, "com.acme.A.test") == "ABC-1"
    assert registry.lookup(leaf_scope, "com.acme.B.test") is None
    on_disk = json.loads((leaf_scope.root_dir / "JiraIssueKeyToTestMap.json").read_text(encoding="utf-8"))
    assert on_disk == {"com.acme.A.test": "ABC-1"}


def test_links_survive_a_new_registry(registry, leaf_scope):
    registry.register(leaf_scope)
    registry.link(leaf_scope, "t1", "ABC-1")
    registry.link(leaf_scope, "t2", "ABC-2")

    fresh = TestIssueRegistry()
    fresh.register(leaf_scope)
    assert fresh.export(leaf_scope) == {"t1": "ABC-1", "t2": "ABC-2"}


def test_unlink_only_removes_matching_key(registry, leaf_scope):
    registry.register(leaf_scope)
    registry.link(leaf_scope, "t1", "ABC-1")

    assert registry.unlink(leaf_scope, "t1", "ABC-2") is False
    assert registry.lookup(leaf_scope, "t1") == "ABC-1"
    assert registry.unlink(leaf_scope, "t1", "ABC-1") is True
    assert registry.lookup(leaf_scope, "t1") is None
    assert registry.unlink(leaf_scope, "t1", "ABC-1") is False


def test_relinking_replaces_the_key(registry, leaf_scope):
    registry.register(leaf_scope)
    registry.link(leaf_scope, "t1", "ABC-1")
    registry.link(leaf_scope, "t1", "ABC-5")

    assert registry.lookup(leaf_scope, "t1") == "ABC-5"


def test_register_is_idempotent(leaf_scope):
    store = MagicMock(wraps=issue_map_store())
    registry = TestIssueRegistry(store=store)

    registry.register(leaf_scope)
    registry.register(leaf_scope)

    assert store.load.call_count == 1
    assert registry.is_registered(leaf_scope)


def test_concurrent_registration_loads_once(leaf_scope):
    store = MagicMock(wraps=issue_map_store())
    registry = TestIssueRegistry(store=store)

    def register_and_get_map(_):
        registry.register(leaf_scope)
        return registry._jobs[leaf_scope.full_name].tests

    with ThreadPoolExecutor(max_workers=16) as ex:
        maps = list(ex.map(register_and_get_map, range(64)))

    assert store.load.call_count == 1
    assert all(m is maps[0] for m in maps)


def test_concurrent_links_are_all_persisted(registry, leaf_scope):
    registry.register(leaf_scope)

    with ThreadPoolExecutor(max_workers=8) as ex:
        list(ex.map(lambda i: registry.link(leaf_scope, f"t{i}", f"ABC-{i}"), range(50)))

    fresh = TestIssueRegistry()
    fresh.register(leaf_scope)
    assert fresh.export(leaf_scope) == {f"t{i}": f"ABC-{i}" for i in range(50)}


def test_unregistered_scope_is_registered_with_warning(registry, leaf_scope, caplog):
    registry.link(leaf_scope, "t1", "ABC-1")

    assert registry.is_registered(leaf_scope)
    assert registry.lookup(leaf_scope, "t1") == "ABC-1"
    assert "Unregistered job payments" in caplog.text


def test_composite_registers_every_child(registry, composite_scope):
    registry.register(composite_scope)

    for child in composite_scope.children:
        assert registry.is_registered(child)
    assert not registry.is_registered(composite_scope)


def test_composite_export_nests_children(registry, composite_scope):
    registry.register(composite_scope)
    linux = composite_scope.child("linux")
    registry.link(linux, "t1", "ABC-1")

    assert registry.export(composite_scope) == {"linux": {"t1": "ABC-1"}, "windows": {}}
    assert registry.export(composite_scope, "linux") == {"t1": "ABC-1"}
    assert registry.export(composite_scope, "solaris") is None


def test_composite_scope_cannot_hold_links(registry, composite_scope):
    registry.register(composite_scope)

    with pytest.raises(ValueError):
        registry.link(composite_scope, "t1", "ABC-1")
    with pytest.raises(ValueError):
        registry.lookup(composite_scope, "t1")


def test_export_of_unknown_leaf_is_empty(registry, leaf_scope):
    assert registry.export(leaf_scope) == {}


def test_export_json_is_sorted(registry, leaf_scope):
    registry.register(leaf_scope)
    registry.link(leaf_scope, "zeta", "ABC-2")
    registry.link(leaf_scope, "alpha", "ABC-1")

    assert registry.export_json(leaf_scope) == '{\n  "alpha": "ABC-1",\n  "zeta": "ABC-2"\n}'


def test_save_failure_keeps_link_in_memory(leaf_scope, caplog):
    store = MagicMock()
    store.load.return_value = None
    store.save.side_effect = PersistenceError("disk full")
    registry = TestIssueRegistry(store=store)
    registry.register(leaf_scope)

    registry.link(leaf_scope, "t1", "ABC-1")

    assert registry.lookup(leaf_scope, "t1") == "ABC-1"
    assert any(r.levelno == logging.ERROR and "disk full" in r.getMessage() for r in caplog.records)
