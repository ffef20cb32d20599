"""Expansion controller: turn a click on a node into committed children."""

import asyncio
import enum
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from radial_mindmap.config import DEFAULT_TIMEOUT, MAX_DEPTH
from radial_mindmap.core.layout.radial import compute_layout
from radial_mindmap.core.tree.store import TreeStore
from radial_mindmap.errors import CollaboratorFailure
from radial_mindmap.models.node import TreeLayout
from radial_mindmap.protocols import IdeaGeneratorProtocol

FocusListener = Callable[[str | None], None]
ChangeListener = Callable[[], None]


class ExpansionStatus(enum.Enum):
    SKIPPED = "skipped"
    EXPANDED = "expanded"
    EMPTY = "empty"
    FAILED = "failed"
    DISCARDED = "discarded"


@dataclass(frozen=True)
class ExpansionResult:
    """Outcome of one expand or start request."""

    node_id: str | None
    status: ExpansionStatus
    child_ids: tuple[str, ...] = ()
    error: CollaboratorFailure | None = None


class ExpansionController:
    """Orchestrates idea generation against a tree store.

    All store mutations happen on the event loop thread. The only await
    point is the call to the idea generator. A node is marked loading
    before that await, so at most one request per node is ever in flight.
    """

    def __init__(
        self,
        store: TreeStore,
        generator: IdeaGeneratorProtocol,
        *,
        timeout: float | None = DEFAULT_TIMEOUT,
        max_depth: int | None = MAX_DEPTH,
    ) -> None:
        self.store = store
        self.generator = generator
        self.timeout = timeout
        self.max_depth = max_depth
        self.focused_node_id: str | None = None
        self._focus_listeners: list[FocusListener] = []
        self._change_listeners: list[ChangeListener] = []

    def add_focus_listener(self, listener: FocusListener) -> None:
        """Register a callback that receives the node id to centre on."""
        self._focus_listeners.append(listener)

    def add_change_listener(self, listener: ChangeListener) -> None:
        """Register a callback invoked after every store mutation."""
        self._change_listeners.append(listener)

    def layout(self) -> TreeLayout:
        """Lay out the current tree."""
        return compute_layout(self.store.snapshot(), self.store.root_id)

    async def start(self, topic: str) -> ExpansionResult:
        """Replace the current map with a new one seeded by ``topic``."""
        topic = topic.strip()
        if not topic:
            return ExpansionResult(node_id=None, status=ExpansionStatus.SKIPPED)

        self.store.reset()
        root_id = self.store.create_root(topic)
        self._changed()
        self._focus(root_id)
        logger.info("Seeding map with {!r}", topic)
        return await self._generate_and_commit(root_id, topic, [])

    async def expand(self, node_id: str) -> ExpansionResult:
        """Generate and attach children for ``node_id``.

        Does nothing when the node is missing, loading, already expanded or
        too deep.
        """
        node = self.store.get(node_id)
        if node is None or not self.store.is_expandable(node_id, max_depth=self.max_depth):
            logger.debug("Ignoring expand request for {}", node_id)
            return ExpansionResult(node_id=node_id, status=ExpansionStatus.SKIPPED)

        self.store.mark_loading(node_id)
        self._changed()
        self._focus(node_id)

        context_path = self.store.context_path(node_id)
        logger.info("Expanding {!r} (context: {})", node.text, " -> ".join(context_path) or "-")
        return await self._generate_and_commit(node_id, node.text, context_path)

    def reset(self) -> None:
        """Discard the map. Responses still in flight will be dropped."""
        self.store.reset()
        self._changed()
        self._focus(None)

    async def _generate_and_commit(
        self, node_id: str, concept: str, context_path: list[str]
    ) -> ExpansionResult:
        generation = self.store.generation
        try:
            ideas = await asyncio.wait_for(
                self.generator.generate(concept, context_path), timeout=self.timeout
            )
        except Exception as e:
            if self._is_stale(node_id, generation):
                return self._discard(node_id)
            reason = "timed out" if isinstance(e, TimeoutError) else str(e) or type(e).__name__
            failure = CollaboratorFailure(node_id, f"Idea generation for {concept!r} failed: {reason}")
            failure.__cause__ = e
            logger.opt(exception=e).warning("Idea generation for {!r} failed", concept)
            self.store.fail_expansion(node_id)
            self._changed()
            return ExpansionResult(node_id=node_id, status=ExpansionStatus.FAILED, error=failure)

        if self._is_stale(node_id, generation):
            return self._discard(node_id)

        child_ids = self.store.commit_expansion(node_id, ideas)
        self._changed()
        if not child_ids:
            logger.info("No ideas for {!r}; it stays a leaf", concept)
            return ExpansionResult(node_id=node_id, status=ExpansionStatus.EMPTY)

        logger.info("Added {} ideas under {!r}", len(child_ids), concept)
        return ExpansionResult(
            node_id=node_id, status=ExpansionStatus.EXPANDED, child_ids=tuple(child_ids)
        )

    def _is_stale(self, node_id: str, generation: int) -> bool:
        if self.store.generation != generation:
            return True
        node = self.store.get(node_id)
        return node is None or not node.is_loading

    def _discard(self, node_id: str) -> ExpansionResult:
        logger.info("Discarding response for {}: the map was reset", node_id)
        return ExpansionResult(node_id=node_id, status=ExpansionStatus.DISCARDED)

    def _focus(self, node_id: str | None) -> None:
        self.focused_node_id = node_id
        for listener in self._focus_listeners:
            listener(node_id)

    def _changed(self) -> None:
        for listener in self._change_listeners:
            listener()
