"""Tests for TaskCache."""

import time
from datetime import timedelta

from platsync.core.platform import Product, Project, Spec, Task, TaskCache


class TestTaskCache:
    def test_empty_cache(self) -> None:
        cache = TaskCache()
        assert cache.get_projects() == ([], False)
        assert cache.get_products("p1") == ([], False)
        assert cache.get_specs("pr1") == ([], False)
        assert cache.get_tasks("s1") == ([], False)
        assert cache.last_updated is None

    def test_empty_list_is_present(self) -> None:
        """Test that "fetched, empty" differs from "never fetched"."""
        cache = TaskCache()
        cache.set_tasks("s1", [])
        assert cache.get_tasks("s1") == ([], True)
        assert cache.get_tasks("s2") == ([], False)

    def test_levels_keyed_by_parent(self) -> None:
        cache = TaskCache()
        cache.set_projects([Project(id="p1")])
        cache.set_products("p1", [Product(id="pr1", project_id="p1")])
        cache.set_specs("pr1", [Spec(id="s1", product_id="pr1")])
        cache.set_tasks("s1", [Task(id="t1", spec_id="s1")])

        assert [p.id for p in cache.get_projects()[0]] == ["p1"]
        assert [p.id for p in cache.get_products("p1")[0]] == ["pr1"]
        assert [s.id for s in cache.get_specs("pr1")[0]] == ["s1"]
        assert [t.id for t in cache.get_tasks("s1")[0]] == ["t1"]

    def test_returned_lists_are_copies(self) -> None:
        cache = TaskCache()
        cache.set_tasks("s1", [Task(id="t1")])
        tasks, _ = cache.get_tasks("s1")
        tasks.append(Task(id="t2"))
        assert len(cache.get_tasks("s1")[0]) == 1

    def test_find_task(self) -> None:
        cache = TaskCache()
        cache.set_tasks("s1", [Task(id="t1")])
        cache.set_tasks("s2", [Task(id="t2", title="Second")])
        found = cache.find_task("t2")
        assert found is not None and found.title == "Second"
        assert cache.find_task("missing") is None

    def test_invalidate(self) -> None:
        cache = TaskCache()
        cache.set_projects([Project(id="p1")])
        cache.set_tasks("s1", [Task(id="t1")])

        cache.invalidate()

        assert cache.get_projects() == ([], False)
        assert cache.get_tasks("s1") == ([], False)
        assert cache.last_updated is None
        assert cache.is_stale(3600)


class TestStaleness:
    """Tests for whole-cache staleness."""

    def test_never_populated_is_stale(self) -> None:
        assert TaskCache().is_stale(3600)

    def test_fresh_after_set(self) -> None:
        cache = TaskCache()
        cache.set_projects([])
        assert not cache.is_stale(60)
        assert not cache.is_stale(timedelta(minutes=1))
        assert cache.last_updated is not None

    def test_stale_after_max_age(self) -> None:
        cache = TaskCache()
        cache.set_projects([])
        time.sleep(0.05)
        assert cache.is_stale(0.01)
        assert cache.is_stale(timedelta(milliseconds=10))

    def test_any_set_refreshes_everything(self) -> None:
        """Test that staleness is tracked with one timestamp for all levels."""
        cache = TaskCache()
        cache.set_projects([])
        time.sleep(0.05)
        assert cache.is_stale(0.03)
        cache.set_tasks("s1", [])
        assert not cache.is_stale(0.03)
