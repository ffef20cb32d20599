"""Domain models for the radial mind map."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class IdeaNode:
    """A single concept in the idea tree."""

    id: str
    text: str
    parent_id: str | None
    depth: int
    children_ids: tuple[str, ...] = ()
    is_loading: bool = False
    is_expanded: bool = False

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


@dataclass(frozen=True)
class PositionedNode:
    """A node annotated with its place on the radial layout.

    ``parent_x``/``parent_y`` repeat the parent's coordinates so a renderer
    can draw the connector without a second lookup. They are ``None`` for
    the root.
    """

    id: str
    text: str
    depth: int
    x: float
    y: float
    angle: float
    radius: float
    is_loading: bool
    is_expanded: bool
    children_ids: tuple[str, ...]
    parent_id: str | None = None
    parent_x: float | None = None
    parent_y: float | None = None


@dataclass(frozen=True)
class LayoutEdge:
    """A parent -> child connector with both endpoints resolved."""

    source_id: str
    source_x: float
    source_y: float
    target_id: str
    target_x: float
    target_y: float


@dataclass(frozen=True)
class TreeLayout:
    """Positioned nodes (breadth-first, root first) and the edges between them."""

    nodes: tuple[PositionedNode, ...] = ()
    links: tuple[LayoutEdge, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def find(self, node_id: str) -> PositionedNode | None:
        """Return the positioned node with the given id, if laid out."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialise to plain JSON-compatible structures."""
        return {
            "nodes": [
                {
                    "id": n.id,
                    "text": n.text,
                    "depth": n.depth,
                    "x": n.x,
                    "y": n.y,
                    "isLoading": n.is_loading,
                    "isExpanded": n.is_expanded,
                    "childrenIds": list(n.children_ids),
                    "parentId": n.parent_id,
                }
                for n in self.nodes
            ],
            "links": [
                {
                    "sourceId": e.source_id,
                    "sourceX": e.source_x,
                    "sourceY": e.source_y,
                    "targetId": e.target_id,
                    "targetX": e.target_x,
                    "targetY": e.target_y,
                }
                for e in self.links
            ],
        }
