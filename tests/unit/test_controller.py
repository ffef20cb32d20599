"""Tests for the expansion controller."""

import asyncio

import pytest

from radial_mindmap.core.expansion.controller import (
    ExpansionController,
    ExpansionResult,
    ExpansionStatus,
)
from radial_mindmap.core.tree.store import TreeStore
from radial_mindmap.errors import CollaboratorFailure
from tests.unit.fakes import FakeIdeaGenerator


def _child(store: TreeStore, text: str) -> str:
    return next(n.id for n in store.nodes.values() if n.text == text)


def test_start_seeds_root_and_children(
    controller: ExpansionController, store: TreeStore, generator: FakeIdeaGenerator
) -> None:
    result = asyncio.run(controller.start("  Idea  "))

    assert result.status is ExpansionStatus.EXPANDED
    root = store.get(store.root_id)  # type: ignore[arg-type]
    assert root is not None
    assert root.text == "Idea"
    assert root.is_expanded
    assert not root.is_loading
    assert result.child_ids == root.children_ids
    assert generator.calls == [("Idea", [])]
    store.check_invariants()


def test_start_with_blank_topic_does_nothing(
    controller: ExpansionController, store: TreeStore, generator: FakeIdeaGenerator
) -> None:
    result = asyncio.run(controller.start("   "))

    assert result == ExpansionResult(node_id=None, status=ExpansionStatus.SKIPPED)
    assert len(store) == 0
    assert generator.calls == []


def test_start_replaces_previous_map(
    controller: ExpansionController, store: TreeStore
) -> None:
    asyncio.run(controller.start("First"))
    asyncio.run(controller.start("Second"))

    assert store.get(store.root_id).text == "Second"  # type: ignore[arg-type,union-attr]
    assert len(store) == 4
    store.check_invariants()


def test_expand_passes_context_path(
    controller: ExpansionController, store: TreeStore, generator: FakeIdeaGenerator
) -> None:
    generator.add_response("A", ["A1", "A2"])

    async def scenario() -> ExpansionResult:
        await controller.start("Idea")
        await controller.expand(_child(store, "A"))
        return await controller.expand(_child(store, "A1"))

    result = asyncio.run(scenario())

    assert result.status is ExpansionStatus.EXPANDED
    assert generator.calls[-1] == ("A1", ["Idea", "A"])
    for child_id in result.child_ids:
        assert store.get(child_id).depth == 3  # type: ignore[union-attr]
    store.check_invariants()


def test_double_expand_makes_one_request(
    controller: ExpansionController, store: TreeStore, generator: FakeIdeaGenerator
) -> None:
    async def scenario() -> tuple[ExpansionResult, ExpansionResult]:
        await controller.start("Idea")
        a = _child(store, "A")
        gate = generator.hold("A")
        first = asyncio.create_task(controller.expand(a))
        second = asyncio.create_task(controller.expand(a))
        await asyncio.sleep(0)
        gate.set()
        return await first, await second

    first, second = asyncio.run(scenario())

    assert first.status is ExpansionStatus.EXPANDED
    assert second.status is ExpansionStatus.SKIPPED
    assert [c for c, _ in generator.calls].count("A") == 1
    a = store.get(_child(store, "A"))
    assert a is not None
    assert len(a.children_ids) == 3
    store.check_invariants()


def test_expand_on_expanded_node_is_noop(
    controller: ExpansionController, store: TreeStore, generator: FakeIdeaGenerator
) -> None:
    asyncio.run(controller.start("Idea"))
    before = store.snapshot()
    calls = len(generator.calls)

    result = asyncio.run(controller.expand(store.root_id))  # type: ignore[arg-type]

    assert result.status is ExpansionStatus.SKIPPED
    assert store.snapshot() == before
    assert len(generator.calls) == calls


def test_expand_unknown_node_is_noop(
    controller: ExpansionController, generator: FakeIdeaGenerator
) -> None:
    result = asyncio.run(controller.expand("missing"))
    assert result.status is ExpansionStatus.SKIPPED
    assert generator.calls == []


def test_failed_expansion_restores_node(
    controller: ExpansionController, store: TreeStore, generator: FakeIdeaGenerator
) -> None:
    generator.add_response("A", ConnectionError("network down"))

    async def scenario() -> ExpansionResult:
        await controller.start("Idea")
        return await controller.expand(_child(store, "A"))

    result = asyncio.run(scenario())

    assert result.status is ExpansionStatus.FAILED
    assert isinstance(result.error, CollaboratorFailure)
    assert "network down" in str(result.error)
    assert isinstance(result.error.__cause__, ConnectionError)
    a = store.get(_child(store, "A"))
    assert a is not None
    assert (a.is_loading, a.is_expanded, a.children_ids) == (False, False, ())
    store.check_invariants()


def test_failed_expansion_can_be_retried(
    controller: ExpansionController, store: TreeStore, generator: FakeIdeaGenerator
) -> None:
    generator.add_response("Idea", RuntimeError("quota"))
    first = asyncio.run(controller.start("Idea"))
    assert first.status is ExpansionStatus.FAILED

    generator.add_response("Idea", ["X", "Y"])
    second = asyncio.run(controller.expand(store.root_id))  # type: ignore[arg-type]

    assert second.status is ExpansionStatus.EXPANDED
    assert [store.get(c).text for c in second.child_ids] == ["X", "Y"]  # type: ignore[union-attr]


def test_timeout_counts_as_failure(store: TreeStore, generator: FakeIdeaGenerator) -> None:
    controller = ExpansionController(store, generator, timeout=0.01)

    async def scenario() -> ExpansionResult:
        generator.hold("Idea")
        return await controller.start("Idea")

    result = asyncio.run(scenario())

    assert result.status is ExpansionStatus.FAILED
    assert "timed out" in str(result.error)
    root = store.get(store.root_id)  # type: ignore[arg-type]
    assert root is not None
    assert not root.is_loading


def test_empty_result_makes_permanent_leaf(
    controller: ExpansionController, store: TreeStore, generator: FakeIdeaGenerator
) -> None:
    generator.add_response("B", [])

    async def scenario() -> tuple[ExpansionResult, ExpansionResult]:
        await controller.start("Idea")
        b = _child(store, "B")
        return await controller.expand(b), await controller.expand(b)

    first, second = asyncio.run(scenario())

    assert first.status is ExpansionStatus.EMPTY
    assert first.error is None
    assert second.status is ExpansionStatus.SKIPPED
    b = store.get(_child(store, "B"))
    assert b is not None
    assert (b.is_loading, b.is_expanded, b.children_ids) == (False, True, ())
    assert [c for c, _ in generator.calls].count("B") == 1


def test_response_after_reset_is_discarded(
    controller: ExpansionController, store: TreeStore, generator: FakeIdeaGenerator
) -> None:
    async def scenario() -> ExpansionResult:
        await controller.start("Idea")
        gate = generator.hold("A")
        task = asyncio.create_task(controller.expand(_child(store, "A")))
        await asyncio.sleep(0)
        controller.reset()
        gate.set()
        return await task

    result = asyncio.run(scenario())

    assert result.status is ExpansionStatus.DISCARDED
    assert len(store) == 0
    assert controller.focused_node_id is None


def test_response_for_old_map_does_not_touch_new_map(
    controller: ExpansionController, store: TreeStore, generator: FakeIdeaGenerator
) -> None:
    async def scenario() -> ExpansionResult:
        gate = generator.hold("Old")
        old = asyncio.create_task(controller.start("Old"))
        await asyncio.sleep(0)
        await controller.start("New")
        gate.set()
        return await old

    result = asyncio.run(scenario())

    assert result.status is ExpansionStatus.DISCARDED
    assert store.get(store.root_id).text == "New"  # type: ignore[arg-type,union-attr]
    assert len(store) == 4
    store.check_invariants()


def test_independent_nodes_expand_concurrently(
    controller: ExpansionController, store: TreeStore, generator: FakeIdeaGenerator
) -> None:
    generator.add_response("A", ["A1"])
    generator.add_response("B", ["B1", "B2"])

    async def scenario() -> list[ExpansionResult]:
        await controller.start("Idea")
        return await asyncio.gather(
            controller.expand(_child(store, "A")), controller.expand(_child(store, "B"))
        )

    results = asyncio.run(scenario())

    assert [r.status for r in results] == [ExpansionStatus.EXPANDED] * 2
    assert [len(r.child_ids) for r in results] == [1, 2]
    store.check_invariants()


def test_focus_follows_click_before_result(
    controller: ExpansionController, store: TreeStore, generator: FakeIdeaGenerator
) -> None:
    focused: list[str | None] = []
    controller.add_focus_listener(focused.append)

    async def scenario() -> str | None:
        await controller.start("Idea")
        gate = generator.hold("C")
        task = asyncio.create_task(controller.expand(_child(store, "C")))
        await asyncio.sleep(0)
        during = controller.focused_node_id
        gate.set()
        await task
        return during

    during = asyncio.run(scenario())

    c = _child(store, "C")
    assert during == c
    assert focused == [store.root_id, c]


def test_change_listener_sees_loading_then_result(
    controller: ExpansionController, store: TreeStore
) -> None:
    seen: list[bool] = []
    controller.add_change_listener(
        lambda: seen.append(store.get(store.root_id).is_loading)  # type: ignore[arg-type,union-attr]
    )

    asyncio.run(controller.start("Idea"))

    assert seen == [True, False]


@pytest.mark.parametrize(("max_depth", "expected"), [(1, ExpansionStatus.SKIPPED), (2, ExpansionStatus.EXPANDED)])
def test_max_depth_limits_expansion(
    store: TreeStore, generator: FakeIdeaGenerator, max_depth: int, expected: ExpansionStatus
) -> None:
    controller = ExpansionController(store, generator, max_depth=max_depth)

    async def scenario() -> ExpansionResult:
        await controller.start("Idea")
        return await controller.expand(_child(store, "A"))

    assert asyncio.run(scenario()).status is expected


def test_layout_tracks_store(controller: ExpansionController) -> None:
    assert controller.layout().is_empty

    asyncio.run(controller.start("Idea"))

    layout = controller.layout()
    assert len(layout.nodes) == 4
    assert (layout.nodes[0].x, layout.nodes[0].y) == (0.0, 0.0)
