"""
In-memory cache of the platform hierarchy.

Holds the last fetched projects, products (by project), specs (by product)
and tasks (by spec) so the UI keeps working when the platform is
unreachable.

Staleness is tracked with a single timestamp for the whole cache: any
``set_*`` call marks everything fresh. A cache that was never populated is
always stale.
"""

from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta, timezone
from typing import TypeVar

from platsync.core.platform.models import Product, Project, Spec, Task

T = TypeVar("T")


class TaskCache:
    """
    Thread-safe snapshot of the platform hierarchy.

    Getters return ``(items, present)`` so callers can tell "never fetched"
    apart from "fetched, empty". Returned lists are copies.

    Example:
        >>> cache = TaskCache()
        >>> cache.get_tasks("spec-1")
        ([], False)
        >>> cache.set_tasks("spec-1", [])
        >>> cache.get_tasks("spec-1")
        ([], True)
        >>> cache.is_stale(60)
        False
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._projects: list[Project] | None = None
        self._products: dict[str, list[Product]] = {}
        self._specs: dict[str, list[Spec]] = {}
        self._tasks: dict[str, list[Task]] = {}
        self._last_updated: datetime | None = None
        self._last_updated_mono: float | None = None

    def _touch(self) -> None:
        # Caller holds the lock
        self._last_updated = datetime.now(timezone.utc)
        self._last_updated_mono = time.monotonic()

    @staticmethod
    def _lookup(level: dict[str, list[T]], key: str) -> tuple[list[T], bool]:
        items = level.get(key)
        if items is None:
            return [], False
        return list(items), True

    def set_projects(self, projects: list[Project]) -> None:
        with self._lock:
            self._projects = list(projects)
            self._touch()

    def get_projects(self) -> tuple[list[Project], bool]:
        with self._lock:
            if self._projects is None:
                return [], False
            return list(self._projects), True

    def set_products(self, project_id: str, products: list[Product]) -> None:
        with self._lock:
            self._products[project_id] = list(products)
            self._touch()

    def get_products(self, project_id: str) -> tuple[list[Product], bool]:
        with self._lock:
            return self._lookup(self._products, project_id)

    def set_specs(self, product_id: str, specs: list[Spec]) -> None:
        with self._lock:
            self._specs[product_id] = list(specs)
            self._touch()

    def get_specs(self, product_id: str) -> tuple[list[Spec], bool]:
        with self._lock:
            return self._lookup(self._specs, product_id)

    def set_tasks(self, spec_id: str, tasks: list[Task]) -> None:
        with self._lock:
            self._tasks[spec_id] = list(tasks)
            self._touch()

    def get_tasks(self, spec_id: str) -> tuple[list[Task], bool]:
        with self._lock:
            return self._lookup(self._tasks, spec_id)

    def find_task(self, task_id: str) -> Task | None:
        """Look up a cached task by ID across every spec."""
        with self._lock:
            for tasks in self._tasks.values():
                for task in tasks:
                    if task.id == task_id:
                        return task
        return None

    @property
    def last_updated(self) -> datetime | None:
        """When any level was last set (None if never, or after invalidate)."""
        with self._lock:
            return self._last_updated

    def invalidate(self) -> None:
        """Clear every level and reset the staleness clock."""
        with self._lock:
            self._projects = None
            self._products = {}
            self._specs = {}
            self._tasks = {}
            self._last_updated = None
            self._last_updated_mono = None

    def is_stale(self, max_age: float | timedelta) -> bool:
        """
        Check whether the cache is older than ``max_age``.

        Args:
            max_age: Maximum age in seconds, or a timedelta

        Returns:
            True if the cache was never populated or was last set more
            than ``max_age`` ago
        """
        if isinstance(max_age, timedelta):
            max_age = max_age.total_seconds()

        with self._lock:
            if self._last_updated_mono is None:
                return True
            return time.monotonic() - self._last_updated_mono > max_age


__all__ = ["TaskCache"]
