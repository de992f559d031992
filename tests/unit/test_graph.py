from __future__ import annotations

import pytest

from tracewire.errors import DeferredWiringError, MissingTaskError, TracewireError
from tracewire.graph import Edge, Task, TaskGraph


class Recording(Task):
    log: list[str] = []

    def execute(self) -> None:
        Recording.log.append(self.name)


class Other(Task):
    pass


def test_register_is_idempotent_and_configures_once() -> None:
    graph = TaskGraph()
    calls: list[str] = []
    first = graph.register("a", Task, lambda t: calls.append(t.name))
    second = graph.register("a", Task, lambda t: calls.append(t.name))
    assert first is second
    assert calls == ["a"]
    assert len(graph) == 1


def test_register_rejects_type_clash() -> None:
    graph = TaskGraph()
    graph.register("a", Other)
    with pytest.raises(TracewireError):
        graph.register("a", Recording)


def test_named_raises_for_missing_task() -> None:
    graph = TaskGraph()
    assert graph.find("nope") is None
    with pytest.raises(MissingTaskError):
        graph.named("nope")
    graph.register("a", Task)
    with pytest.raises(MissingTaskError):
        graph.depends_on("a", "nope")


def test_edges_are_deduplicated() -> None:
    graph = TaskGraph()
    a = graph.register("a", Task)
    graph.register("b", Task)
    graph.depends_on(a, "b")
    graph.depends_on("a", "b")
    graph.finalized_by("b", a)
    graph.finalized_by("b", "a")
    assert graph.edges() == {Edge("dependsOn", "a", "b"), Edge("finalizedBy", "b", "a")}


def test_after_evaluate_runs_keyed_callbacks_once() -> None:
    graph = TaskGraph()
    calls: list[str] = []
    graph.after_evaluate(lambda: calls.append("x"), key="k")
    graph.after_evaluate(lambda: calls.append("y"), key="k")
    graph.after_evaluate(lambda: calls.append("z"))
    assert calls == []
    assert graph.finish_evaluation() == []
    assert calls == ["x", "z"]
    # callbacks registered after evaluation run right away
    graph.after_evaluate(lambda: calls.append("late"))
    assert calls == ["x", "z", "late"]


def test_deferred_errors_are_collected_per_variant() -> None:
    graph = TaskGraph()
    calls: list[str] = []

    def _broken() -> None:
        raise DeferredWiringError("release", "dexguardApkRelease")

    graph.after_evaluate(_broken, key="release")
    graph.after_evaluate(lambda: calls.append("staging"), key="staging")
    errors = graph.finish_evaluation()
    assert [e.variant for e in errors] == ["release"]
    assert calls == ["staging"]


def test_execution_plan_orders_dependencies_and_finalizers() -> None:
    graph = TaskGraph()
    for name in ("compile", "shrink", "upload", "uuid", "package", "unrelated"):
        graph.register(name, Recording)
    graph.depends_on("shrink", "compile")
    graph.depends_on("package", "shrink", "uuid")
    graph.depends_on("upload", "uuid")
    graph.finalized_by("shrink", "upload")

    Recording.log = []
    order = graph.run(["package"])
    assert order == Recording.log
    assert "unrelated" not in order
    assert order.index("compile") < order.index("shrink") < order.index("upload")
    assert order.index("uuid") < order.index("upload")
    assert order.index("uuid") < order.index("package")
