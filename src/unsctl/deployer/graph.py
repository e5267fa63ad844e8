"""TaskGraph — ordered, tag-selected deployment tasks.

Tasks run strictly one after another in registration order. There is no
dependency solving: each task locates its own prerequisites in the
network store during ``ensure_dependencies`` and fails if they are absent.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from unsctl.deployer.session import DeploymentSession

log = structlog.get_logger(__name__)

DependencyResolver = Callable[["DeploymentSession", dict[str, Any]], dict[str, Any]]
TaskRunner = Callable[["DeploymentSession", dict[str, Any]], None]


def normalize_tags(tags: str | Iterable[str] | None) -> list[str]:
    """Lower-case tag list; a bare string is one tag, not a sequence of letters."""
    if tags is None:
        return []
    if isinstance(tags, str):
        return [tags.lower()]
    return [tag.lower() for tag in tags]


def _no_dependencies(session: DeploymentSession, config: dict[str, Any]) -> dict[str, Any]:
    return {}


@dataclass(frozen=True)
class Task:
    """One deployment/configuration step selected by tag.

    Attributes:
        name: Identifier used in logs and listings.
        tags: Lower-case tags; the task runs if any is requested.
        run: Side-effecting step, called with the resolved dependencies.
        ensure_dependencies: Read-only resolution of prerequisites.
    """

    name: str
    tags: frozenset[str]
    run: TaskRunner
    ensure_dependencies: DependencyResolver = _no_dependencies

    def matches(self, tags: Iterable[str]) -> bool:
        return any(tag.lower() in self.tags for tag in tags)


class TaskGraph:
    """Immutable, ordered collection of tasks."""

    def __init__(self, tasks: Iterable[Task]) -> None:
        self._tasks: tuple[Task, ...] = tuple(tasks)
        names = [task.name for task in self._tasks]
        duplicates = {name for name in names if names.count(name) > 1}
        if duplicates:
            msg = f"Duplicate task names: {sorted(duplicates)}"
            raise ValueError(msg)

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def select(self, tags: str | Iterable[str] | None) -> list[Task]:
        """Tasks whose tags intersect *tags* (case-insensitive), in order."""
        requested = normalize_tags(tags)
        if not requested:
            return []
        return [task for task in self._tasks if task.matches(requested)]

    def execute(
        self,
        session: DeploymentSession,
        tags: str | Iterable[str] | None = None,
        config: dict[str, Any] | None = None,
    ) -> list[str]:
        """Run the selected tasks; returns the names of the tasks that ran.

        The first failure propagates and stops the run. Whatever earlier
        tasks persisted stays persisted.
        """
        executed: list[str] = []
        for task in self.select(tags):
            log.info("Executing task", task=task.name, tags=sorted(task.tags))
            dependencies = task.ensure_dependencies(session, config or {})
            task.run(session, dependencies)
            executed.append(task.name)
        return executed
