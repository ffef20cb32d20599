"""In-memory tree store: the single owner of all idea nodes."""

import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from types import MappingProxyType

from loguru import logger

from radial_mindmap.errors import PreconditionViolation
from radial_mindmap.models.node import IdeaNode


def _new_id() -> str:
    return uuid.uuid4().hex


class TreeStore:
    """Mapping from node id to node, plus the designated root.

    Every mutation swaps in a new dict, so a snapshot taken by a reader is
    never modified afterwards. ``generation`` increases on each reset and
    lets async callers detect that the tree they started on is gone.
    """

    def __init__(self, *, id_factory: Callable[[], str] = _new_id) -> None:
        self._nodes: dict[str, IdeaNode] = {}
        self._root_id: str | None = None
        self._id_factory = id_factory
        self.generation = 0

    # --- Queries ---

    @property
    def root_id(self) -> str | None:
        return self._root_id

    @property
    def nodes(self) -> Mapping[str, IdeaNode]:
        return MappingProxyType(self._nodes)

    def snapshot(self) -> dict[str, IdeaNode]:
        """Return a shallow copy of the node mapping."""
        return dict(self._nodes)

    def get(self, node_id: str) -> IdeaNode | None:
        return self._nodes.get(node_id)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def context_path(self, node_id: str) -> list[str]:
        """Ancestor texts from the root down to the node's parent.

        Returns an empty list for the root or an unknown node.
        """
        path: list[str] = []
        node = self._nodes.get(node_id)
        while node is not None and node.parent_id is not None:
            parent = self._nodes.get(node.parent_id)
            if parent is None:
                break
            path.append(parent.text)
            node = parent
        path.reverse()
        return path

    def is_expandable(self, node_id: str, *, max_depth: int | None = None) -> bool:
        """Whether an expansion may start on this node right now."""
        node = self._nodes.get(node_id)
        if node is None or node.is_loading or node.is_expanded or node.children_ids:
            return False
        return max_depth is None or node.depth < max_depth

    # --- Mutations ---

    def create_root(self, text: str) -> str:
        """Create the depth-0 node in loading state and return its id."""
        if self._root_id is not None or self._nodes:
            msg = f"Cannot create root {text!r}: store already has root {self._root_id!r}"
            raise PreconditionViolation(msg)

        node_id = self._id_factory()
        root = IdeaNode(id=node_id, text=text, parent_id=None, depth=0, is_loading=True)
        self._nodes = {node_id: root}
        self._root_id = node_id
        logger.debug("Created root {} ({!r})", node_id, text)
        return node_id

    def mark_loading(self, node_id: str) -> None:
        """Flag a node as having an expansion request in flight."""
        node = self._require(node_id)
        if node.is_loading:
            raise PreconditionViolation(f"Node {node_id!r} is already loading")
        if node.is_expanded or node.children_ids:
            raise PreconditionViolation(f"Node {node_id!r} is already expanded")

        self._nodes = {**self._nodes, node_id: replace(node, is_loading=True)}
        logger.debug("Marked {} loading", node_id)

    def commit_expansion(self, node_id: str, generated_texts: Sequence[str]) -> list[str]:
        """Attach one child per generated text and mark the node expanded.

        Returns the new child ids in the order of ``generated_texts``.
        """
        node = self._require(node_id)
        if not node.is_loading:
            raise PreconditionViolation(f"Node {node_id!r} is not loading")
        if node.children_ids:
            raise PreconditionViolation(f"Node {node_id!r} already has children")

        updated = dict(self._nodes)
        child_ids: list[str] = []
        for text in generated_texts:
            child_id = self._id_factory()
            if child_id in updated:
                raise PreconditionViolation(f"Id {child_id!r} is already in use")
            updated[child_id] = IdeaNode(
                id=child_id,
                text=text,
                parent_id=node_id,
                depth=node.depth + 1,
            )
            child_ids.append(child_id)

        updated[node_id] = replace(
            node,
            is_loading=False,
            is_expanded=True,
            children_ids=tuple(child_ids),
        )
        self._nodes = updated
        logger.debug("Committed {} children under {}", len(child_ids), node_id)
        return child_ids

    def fail_expansion(self, node_id: str) -> None:
        """Return a loading node to its expandable state."""
        node = self._require(node_id)
        if not node.is_loading:
            raise PreconditionViolation(f"Node {node_id!r} is not loading")

        self._nodes = {**self._nodes, node_id: replace(node, is_loading=False)}
        logger.debug("Expansion of {} failed, node is expandable again", node_id)

    def reset(self) -> None:
        """Discard the whole tree."""
        self._nodes = {}
        self._root_id = None
        self.generation += 1
        logger.debug("Store reset (generation {})", self.generation)

    # --- Invariants ---

    def check_invariants(self) -> None:
        """Raise PreconditionViolation if the tree structure is inconsistent."""
        if not self._nodes:
            if self._root_id is not None:
                raise PreconditionViolation(f"Empty store still names root {self._root_id!r}")
            return

        roots = [n.id for n in self._nodes.values() if n.is_root]
        if roots != [self._root_id]:
            raise PreconditionViolation(f"Expected single root {self._root_id!r}, found {roots!r}")

        for node in self._nodes.values():
            if node.is_loading and node.is_expanded:
                raise PreconditionViolation(f"Node {node.id!r} is both loading and expanded")
            if node.parent_id is None:
                if node.depth != 0:
                    raise PreconditionViolation(f"Root {node.id!r} has depth {node.depth}")
                continue
            parent = self._nodes.get(node.parent_id)
            if parent is None:
                raise PreconditionViolation(f"Node {node.id!r} has missing parent {node.parent_id!r}")
            if node.depth != parent.depth + 1:
                raise PreconditionViolation(
                    f"Node {node.id!r} has depth {node.depth}, parent depth {parent.depth}"
                )
            if node.id not in parent.children_ids:
                raise PreconditionViolation(f"Node {node.id!r} is not listed by its parent")

        seen: set[str] = set()
        stack = [roots[0]]
        while stack:
            current = stack.pop()
            if current in seen:
                raise PreconditionViolation(f"Node {current!r} is reachable twice")
            if current not in self._nodes:
                raise PreconditionViolation(f"Listed child {current!r} does not exist")
            seen.add(current)
            stack.extend(self._nodes[current].children_ids)
        if len(seen) != len(self._nodes):
            orphans = sorted(set(self._nodes) - seen)
            raise PreconditionViolation(f"Unreachable nodes: {orphans!r}")

    def _require(self, node_id: str) -> IdeaNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise PreconditionViolation(f"Unknown node {node_id!r}")
        return node
