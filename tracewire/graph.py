"""Explicit task graph owned by the configuration phase.

Components never mutate tasks directly: every node and every edge goes
through :class:`TaskGraph`, which keeps registration idempotent and edge sets
duplicate-free. Callbacks queued with :meth:`TaskGraph.after_evaluate` run
once the host reports that the project model is finalized.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from graphlib import TopologicalSorter
from typing import TypeVar

from tracewire.errors import DeferredWiringError, MissingTaskError, TracewireError
from tracewire.logging import get_logger

logger = get_logger("tracewire.graph")


class Task:
    """Base task type. Subclasses override :meth:`execute`."""

    def __init__(self, name: str) -> None:
        self.name = name

    def execute(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


T = TypeVar("T", bound=Task)
TaskRef = Task | str


@dataclass
class _Node:
    task: Task
    depends_on: set[str] = field(default_factory=set)
    finalized_by: set[str] = field(default_factory=set)


@dataclass(frozen=True, order=True)
class Edge:
    kind: str  # "dependsOn" | "finalizedBy"
    source: str
    target: str


class TaskGraph:
    def __init__(self) -> None:
        self._nodes: dict[str, _Node] = {}
        self._deferred: dict[str, Callable[[], None]] = {}
        self._evaluated = False
        self.errors: list[DeferredWiringError] = []

    # --- Nodes ---------------------------------------------------------------

    def register(
        self,
        name: str,
        task_type: type[T],
        configure: Callable[[T], None] | None = None,
    ) -> T:
        """Register *name* once; later calls return the existing task untouched."""
        node = self._nodes.get(name)
        if node is not None:
            if not isinstance(node.task, task_type):
                raise TracewireError(
                    f"Task '{name}' already registered as {type(node.task).__name__}, "
                    f"not {task_type.__name__}"
                )
            return node.task  # type: ignore[return-value]
        task = task_type(name)
        if configure is not None:
            configure(task)
        self._nodes[name] = _Node(task)
        return task

    def find(self, name: str) -> Task | None:
        node = self._nodes.get(name)
        return node.task if node else None

    def named(self, name: str) -> Task:
        node = self._nodes.get(name)
        if node is None:
            raise MissingTaskError(name)
        return node.task

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def task_names(self) -> list[str]:
        return list(self._nodes)

    # --- Edges ---------------------------------------------------------------

    def _node(self, ref: TaskRef) -> _Node:
        name = ref if isinstance(ref, str) else ref.name
        node = self._nodes.get(name)
        if node is None:
            raise MissingTaskError(name)
        return node

    def depends_on(self, task: TaskRef, *dependencies: TaskRef) -> None:
        node = self._node(task)
        for dep in dependencies:
            node.depends_on.add(self._node(dep).task.name)

    def finalized_by(self, task: TaskRef, *finalizers: TaskRef) -> None:
        node = self._node(task)
        for fin in finalizers:
            node.finalized_by.add(self._node(fin).task.name)

    def dependencies_of(self, task: TaskRef) -> frozenset[str]:
        return frozenset(self._node(task).depends_on)

    def finalizers_of(self, task: TaskRef) -> frozenset[str]:
        return frozenset(self._node(task).finalized_by)

    def edges(self) -> set[Edge]:
        out: set[Edge] = set()
        for name, node in self._nodes.items():
            out.update(Edge("dependsOn", name, d) for d in node.depends_on)
            out.update(Edge("finalizedBy", name, f) for f in node.finalized_by)
        return out

    # --- Evaluation lifecycle ------------------------------------------------

    @property
    def evaluated(self) -> bool:
        return self._evaluated

    def after_evaluate(self, callback: Callable[[], None], key: str | None = None) -> None:
        """Queue *callback* for when the project model is finalized.

        A second callback queued under the same *key* is ignored, so wiring
        the same variant twice defers its edges once.
        """
        if self._evaluated:
            self._run_deferred(callback)
            return
        key = key or f"anon-{len(self._deferred)}"
        self._deferred.setdefault(key, callback)

    def finish_evaluation(self) -> list[DeferredWiringError]:
        if self._evaluated:
            return list(self.errors)
        self._evaluated = True
        for callback in self._deferred.values():
            self._run_deferred(callback)
        self._deferred.clear()
        return list(self.errors)

    def _run_deferred(self, callback: Callable[[], None]) -> None:
        try:
            callback()
        except DeferredWiringError as exc:
            # scoped to one variant; the rest of the build keeps configuring
            logger.error(str(exc), extra={"variant": exc.variant})
            self.errors.append(exc)

    # --- Execution -----------------------------------------------------------

    def execution_plan(self, requested: Iterable[TaskRef]) -> list[str]:
        """Order the tasks needed to run *requested*, honouring both edge kinds."""
        included: set[str] = set()
        pending = [self._node(r).task.name for r in requested]
        while pending:
            name = pending.pop()
            if name in included:
                continue
            included.add(name)
            node = self._nodes[name]
            pending.extend(node.depends_on)
            pending.extend(node.finalized_by)

        sorter: TopologicalSorter[str] = TopologicalSorter()
        for name in self._nodes:
            if name not in included:
                continue
            node = self._nodes[name]
            sorter.add(name, *node.depends_on)
            for fin in node.finalized_by:
                sorter.add(fin, name)
        return list(sorter.static_order())

    def run(self, requested: Iterable[TaskRef]) -> list[str]:
        order = self.execution_plan(requested)
        for name in order:
            logger.info("> Task :%s", name)
            self._nodes[name].task.execute()
        return order
