"""Task registry and dependency graph.

This module holds the shared, mutable task graph every builder writes into:
- Phony tasks (umbrella nodes such as 'compile' or 'native')
- File tasks (a filesystem artifact produced by the task's action)
- Directory tasks (idempotent 'mkdir -p')

Design:
    - Tasks are stored by name and reference each other by name only, so
      rewriting one task's prerequisite list is visible to every task that
      depends on it.
    - Registration is get-or-insert: defining a task twice enhances the
      existing node (new prerequisites are appended, an existing action is
      never replaced).
    - Execution is a sequential depth-first traversal, each task running at
      most once per session. File tasks only run when out of date.
"""

import logging
import os
import shutil
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple, Type

logger = logging.getLogger(__name__)

Action = Callable[["Task"], None]

# Timestamps used for prerequisites that never force a rebuild (existing
# directories) and for artifacts that do not exist yet.
EARLY = 0.0
LATE = float("inf")


class TaskError(Exception):
    """Raised when a task cannot be resolved or the graph is malformed."""
    pass


class Task:
    """A phony task: always runs when invoked, produces nothing on disk."""

    def __init__(self, name: str, registry: "TaskRegistry"):
        self.name = name
        self.registry = registry
        self.prerequisites: List[str] = []
        self.actions: List[Action] = []
        self.comment: Optional[str] = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} => {self.prerequisites}>"

    def enhance(
        self,
        prerequisites: Iterable[str] = (),
        action: Optional[Action] = None
    ) -> "Task":
        """Append prerequisites and attach an action if none is set yet.

        Args:
            prerequisites: Names of tasks this task depends on
            action: Callable receiving this task when it executes

        Returns:
            This task
        """
        for prerequisite in prerequisites:
            if prerequisite not in self.prerequisites:
                self.prerequisites.append(prerequisite)
        if action is not None and not self.actions:
            self.actions.append(action)
        return self

    def clear_prerequisites(self) -> None:
        self.prerequisites.clear()

    def needed(self) -> bool:
        return True

    def timestamp(self) -> float:
        return time.time()

    def execute(self) -> None:
        logger.debug(f"Execute {self.name}")
        for action in self.actions:
            action(self)


class FileTask(Task):
    """A task representing a file that its action produces."""

    @property
    def path(self) -> Path:
        return self.registry.path(self.name)

    def needed(self) -> bool:
        if not self.path.exists():
            return True
        stamp = self.path.stat().st_mtime
        return any(
            self.registry.lookup(name).timestamp() > stamp
            for name in self.prerequisites
        )

    def timestamp(self) -> float:
        if self.path.exists():
            return self.path.stat().st_mtime
        return LATE


class DirectoryTask(FileTask):
    """A directory that is created when missing.

    Existing directories never make a dependent file out of date.
    """

    def needed(self) -> bool:
        return not self.path.is_dir()

    def timestamp(self) -> float:
        return EARLY if self.path.is_dir() else LATE


def _make_directory(task: Task) -> None:
    path = task.registry.path(task.name)
    if not path.is_dir():
        logger.info(f"mkdir -p {task.name}")
    path.mkdir(parents=True, exist_ok=True)


class TaskRegistry:
    """Process-wide registry of tasks for one build session.

    Example usage:
        registry = TaskRegistry(base_dir=Path("."))
        registry.directory("lib")
        registry.file("lib/foo.so", ["copy:foo"], lambda t: ...)
        registry.task("compile", ["lib/foo.so"])
        registry.invoke("compile")
    """

    def __init__(self, base_dir: Optional[Path] = None):
        """Initialize an empty registry.

        Args:
            base_dir: Directory that relative task names (file paths) are
                resolved against. Defaults to the current directory.
        """
        self.base_dir = Path(base_dir) if base_dir is not None else Path.cwd()
        self._tasks: Dict[str, Task] = {}
        self._invoked: Set[str] = set()
        self._clean_paths: Dict[str, None] = {}
        self._clobber_paths: Dict[str, None] = {}

    # Registration

    def task(
        self,
        name: str,
        prerequisites: Iterable[str] = (),
        action: Optional[Action] = None
    ) -> Task:
        """Get or create a phony task and enhance it."""
        return self._define(Task, name, prerequisites, action)

    def file(
        self,
        name: str,
        prerequisites: Iterable[str] = (),
        action: Optional[Action] = None
    ) -> Task:
        """Get or create a file task and enhance it."""
        return self._define(FileTask, name, prerequisites, action)

    def directory(self, name: str) -> Task:
        """Get or create a directory task."""
        return self._define(DirectoryTask, name, (), _make_directory)

    def _define(
        self,
        task_class: Type[Task],
        name: str,
        prerequisites: Iterable[str],
        action: Optional[Action]
    ) -> Task:
        task = self._tasks.get(name)
        if task is None:
            task = task_class(name, self)
            self._tasks[name] = task
        return task.enhance(prerequisites, action)

    def describe(self, name: str, comment: str) -> None:
        self[name].comment = comment

    # Lookup

    def is_defined(self, name: str) -> bool:
        return name in self._tasks

    def __contains__(self, name: object) -> bool:
        return name in self._tasks

    def __getitem__(self, name: str) -> Task:
        try:
            return self._tasks[name]
        except KeyError:
            raise TaskError(f"Don't know how to build task '{name}'") from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def lookup(self, name: str) -> Task:
        """Resolve a task name, falling back to an existing file on disk.

        Source files are plain prerequisites that nobody registers; they are
        resolved to a transient file task without touching the registry.

        Raises:
            TaskError: If the name is neither registered nor an existing file
        """
        if name in self._tasks:
            return self._tasks[name]
        if self.path(name).exists():
            return FileTask(name, self)
        raise TaskError(f"Don't know how to build task '{name}'")

    def path(self, name: str) -> Path:
        """Filesystem path of a file task name."""
        return self.base_dir / name

    def edges(self) -> Set[Tuple[str, str]]:
        """All (task, prerequisite) pairs currently in the graph."""
        return {
            (name, prerequisite)
            for name, task in self._tasks.items()
            for prerequisite in task.prerequisites
        }

    def described_tasks(self) -> List[Task]:
        return sorted(
            (task for task in self._tasks.values() if task.comment),
            key=lambda task: task.name
        )

    # Cleanup intents

    @property
    def clean_paths(self) -> List[str]:
        """Transient paths removed by 'clean'."""
        return list(self._clean_paths)

    @property
    def clobber_paths(self) -> List[str]:
        """Final artifacts and temp roots removed by 'clobber'."""
        return list(self._clobber_paths)

    def add_clean(self, path: str) -> None:
        self._clean_paths.setdefault(path, None)

    def add_clobber(self, path: str) -> None:
        self._clobber_paths.setdefault(path, None)

    def define_clean_tasks(self) -> None:
        """Register 'clean' and 'clobber' (idempotent)."""
        if not self.is_defined("clean"):
            self.task("clean", action=lambda t: self._remove(self.clean_paths))
            self.describe("clean", "Remove any temporary products.")
        if not self.is_defined("clobber"):
            self.task(
                "clobber",
                ["clean"],
                action=lambda t: self._remove(self.clobber_paths)
            )
            self.describe("clobber", "Remove any generated files.")

    def _remove(self, names: Iterable[str]) -> None:
        for name in names:
            path = self.path(name)
            if path.is_dir():
                logger.info(f"rm -r {name}")
                shutil.rmtree(path)
            elif path.exists():
                logger.info(f"rm {name}")
                os.remove(path)

    # Execution

    def invoke(self, name: str) -> None:
        """Invoke a task after its prerequisites, once per session.

        Raises:
            TaskError: If a task is unknown or the graph has a cycle
        """
        self._invoke(name, ())

    def _invoke(self, name: str, chain: Tuple[str, ...]) -> None:
        if name in chain:
            cycle = " => ".join(chain + (name,))
            raise TaskError(f"Circular dependency detected: {cycle}")
        if name in self._invoked:
            return
        task = self.lookup(name)
        self._invoked.add(name)

        for prerequisite in list(task.prerequisites):
            self._invoke(prerequisite, chain + (name,))

        if task.needed():
            task.execute()

    def reenable(self) -> None:
        """Forget which tasks already ran so they can be invoked again."""
        self._invoked.clear()
