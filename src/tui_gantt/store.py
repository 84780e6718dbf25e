"""Task/dependency persistence: store interface, in-memory and YAML file stores."""

from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import yaml

from tui_gantt.errors import SchedulingError, StoreError
from tui_gantt.models import Dependency, Task

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class TaskStore(ABC):
    """The external persistence boundary the scheduler talks to."""

    @abstractmethod
    def list_tasks(self) -> list[Task]: ...

    @abstractmethod
    def list_dependencies(self) -> list[Dependency]: ...

    @abstractmethod
    def insert_task(self, task: Task) -> Task: ...

    @abstractmethod
    def update_task(self, task: Task) -> Task: ...

    @abstractmethod
    def delete_task(self, task_id: str) -> None: ...

    @abstractmethod
    def insert_dependency(self, dependency: Dependency) -> Dependency: ...

    @abstractmethod
    def delete_dependency(self, dependency_id: str) -> None: ...

    @abstractmethod
    def delete_dependencies_for(self, task_id: str) -> int:
        """Delete every dependency touching *task_id*; return how many."""

    def get_task(self, task_id: str) -> Task | None:
        for task in self.list_tasks():
            if task.id == task_id:
                return task
        return None


class InMemoryStore(TaskStore):
    """Dictionary-backed store for tests and demo mode."""

    def __init__(self, tasks: list[Task] | None = None, dependencies: list[Dependency] | None = None) -> None:
        self._tasks: dict[str, Task] = {t.id: t for t in tasks or []}
        self._dependencies: dict[str, Dependency] = {d.id: d for d in dependencies or []}

    def list_tasks(self) -> list[Task]:
        return list(self._tasks.values())

    def list_dependencies(self) -> list[Dependency]:
        return list(self._dependencies.values())

    def get_task(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def insert_task(self, task: Task) -> Task:
        if task.id in self._tasks:
            raise StoreError(f"task already exists: {task.id}")
        self._tasks[task.id] = task
        return task

    def update_task(self, task: Task) -> Task:
        if task.id not in self._tasks:
            raise StoreError(f"task not found: {task.id}")
        self._tasks[task.id] = task
        return task

    def delete_task(self, task_id: str) -> None:
        if self._tasks.pop(task_id, None) is None:
            raise StoreError(f"task not found: {task_id}")

    def insert_dependency(self, dependency: Dependency) -> Dependency:
        if dependency.id in self._dependencies:
            raise StoreError(f"dependency already exists: {dependency.id}")
        self._dependencies[dependency.id] = dependency
        return dependency

    def delete_dependency(self, dependency_id: str) -> None:
        if self._dependencies.pop(dependency_id, None) is None:
            raise StoreError(f"dependency not found: {dependency_id}")

    def delete_dependencies_for(self, task_id: str) -> int:
        doomed = [
            dep_id for dep_id, dep in self._dependencies.items()
            if dep.predecessor_id == task_id or dep.successor_id == task_id
        ]
        for dep_id in doomed:
            del self._dependencies[dep_id]
        return len(doomed)


class YamlFileStore(TaskStore):
    """Store that keeps all records in one YAML file.

    Every read re-loads the file; every write rewrites it with a .bak
    backup and an atomic rename. Records that fail validation are listed
    in ``skipped`` and written back unchanged.
    """

    def __init__(self, path: Path, backup: bool = True) -> None:
        self.path = path
        self.backup = backup
        self.skipped: list[str] = []
        self._invalid: dict[str, list[Any]] = {"task": [], "dependency": []}

    # ── file I/O ──────────────────────────────────────────────────

    def _load(self) -> tuple[list[Task], list[Dependency]]:
        self.skipped = []
        self._invalid = {"task": [], "dependency": []}
        if not self.path.exists():
            return [], []
        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as exc:
            logger.error("cannot read schedule %s: %s", self.path, exc)
            raise StoreError(f"cannot read {self.path}: {exc}") from exc
        if data is None:
            return [], []
        if not isinstance(data, dict):
            raise StoreError(f"{self.path}: expected a mapping at top level")

        tasks = self._decode(data.get("tasks"), Task.from_record, "task")
        dependencies = self._decode(data.get("dependencies"), Dependency.from_record, "dependency")
        return tasks, dependencies

    def _decode(self, raw: Any, decode, label: str) -> list:
        items = []
        for i, record in enumerate(raw or []):
            if not isinstance(record, dict):
                self.skipped.append(f"{label}[{i}]: not a mapping")
                self._invalid[label].append(record)
                continue
            try:
                items.append(decode(record))
            except SchedulingError as exc:
                self.skipped.append(f"{label}[{i}]: {exc}")
                self._invalid[label].append(record)
                logger.warning("skipping invalid %s record %d in %s: %s", label, i, self.path, exc)
        return items

    def _save(self, tasks: list[Task], dependencies: list[Dependency]) -> None:
        content = yaml.safe_dump(
            {
                "version": SCHEMA_VERSION,
                "tasks": [t.to_record() for t in tasks] + self._invalid["task"],
                "dependencies": [d.to_record() for d in dependencies] + self._invalid["dependency"],
            },
            sort_keys=False,
            allow_unicode=True,
        )
        try:
            self._write_atomic(content)
        except OSError as exc:
            logger.error("cannot write schedule %s: %s", self.path, exc)
            raise StoreError(f"cannot write {self.path}: {exc}") from exc

    def _write_atomic(self, content: str) -> None:
        """Back up the current file, write a temp file, then rename it over."""
        target = self.path
        if self.backup and target.exists():
            bak_path = target.with_suffix(target.suffix + ".bak")
            try:
                bak_path.write_text(target.read_text(encoding="utf-8"), encoding="utf-8")
            except OSError:
                logger.warning("could not write backup %s", bak_path)

        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=target.parent, suffix=".tmp", prefix=".tui-gantt-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_path, target)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def initialize(self) -> None:
        """Create an empty schedule file if none exists."""
        if not self.path.exists():
            self._save([], [])

    # ── TaskStore ─────────────────────────────────────────────────

    def list_tasks(self) -> list[Task]:
        return self._load()[0]

    def list_dependencies(self) -> list[Dependency]:
        return self._load()[1]

    def insert_task(self, task: Task) -> Task:
        tasks, deps = self._load()
        if any(t.id == task.id for t in tasks):
            raise StoreError(f"task already exists: {task.id}")
        tasks.append(task)
        self._save(tasks, deps)
        return task

    def update_task(self, task: Task) -> Task:
        tasks, deps = self._load()
        for i, existing in enumerate(tasks):
            if existing.id == task.id:
                tasks[i] = task
                self._save(tasks, deps)
                return task
        raise StoreError(f"task not found: {task.id}")

    def delete_task(self, task_id: str) -> None:
        tasks, deps = self._load()
        remaining = [t for t in tasks if t.id != task_id]
        if len(remaining) == len(tasks):
            raise StoreError(f"task not found: {task_id}")
        self._save(remaining, deps)

    def insert_dependency(self, dependency: Dependency) -> Dependency:
        tasks, deps = self._load()
        if any(d.id == dependency.id for d in deps):
            raise StoreError(f"dependency already exists: {dependency.id}")
        deps.append(dependency)
        self._save(tasks, deps)
        return dependency

    def delete_dependency(self, dependency_id: str) -> None:
        tasks, deps = self._load()
        remaining = [d for d in deps if d.id != dependency_id]
        if len(remaining) == len(deps):
            raise StoreError(f"dependency not found: {dependency_id}")
        self._save(tasks, remaining)

    def delete_dependencies_for(self, task_id: str) -> int:
        tasks, deps = self._load()
        remaining = [d for d in deps if task_id not in (d.predecessor_id, d.successor_id)]
        removed = len(deps) - len(remaining)
        if removed:
            self._save(tasks, remaining)
        return removed
