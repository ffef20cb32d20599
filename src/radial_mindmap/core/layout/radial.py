"""Radial tidy-tree layout.

Nodes sit on concentric rings (``radius = depth * radius_step``) and are
spread around the circle with the Reingold-Tilford tidy-tree walk, in its
linear-time form (Buchheim, Jünger & Leipert, 2002):

- leaves get one unit of separation, so each subtree claims a wedge that
  grows with its number of leaves;
- a parent is centred over its first and last child;
- subtrees are pushed apart until no contour overlaps, so parent-child
  edges never cross.

Separation between two adjacent nodes is ``(1 if siblings else 2) / depth``.
Cousins get twice the gap of siblings. Deep rings have more circumference
per radian, so they need less angular padding.

The whole layout is recomputed from scratch on every call. Growing one
branch can therefore rotate its neighbours' wedges.
"""

import math
from collections import deque
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field

from loguru import logger

from radial_mindmap.config import RADIUS_STEP
from radial_mindmap.errors import MalformedTree
from radial_mindmap.models.node import IdeaNode, LayoutEdge, PositionedNode, TreeLayout

FULL_CIRCLE = 2 * math.pi


@dataclass(eq=False, repr=False)
class _WalkNode:
    """Working state of one node during the tidy-tree walk.

    A detached node is its own parent until ``adopt`` links it into the tree.
    """

    node: IdeaNode
    depth: int
    index: int
    parent: "_WalkNode" = field(init=False)
    children: list["_WalkNode"] = field(default_factory=list)
    ancestor: "_WalkNode" = field(init=False)
    default_ancestor: "_WalkNode | None" = None
    thread: "_WalkNode | None" = None
    prelim: float = 0.0
    mod: float = 0.0
    change: float = 0.0
    shift: float = 0.0
    x: float = 0.0

    def __post_init__(self) -> None:
        self.parent = self
        self.ancestor = self

    def adopt(self, child: "_WalkNode") -> None:
        child.parent = self
        self.children.append(child)


def compute_layout(
    nodes: Mapping[str, IdeaNode],
    root_id: str | None,
    *,
    radius_step: float = RADIUS_STEP,
    strict: bool = False,
) -> TreeLayout:
    """Assign every node reachable from ``root_id`` a position on the rings.

    Args:
        nodes: Snapshot of the tree store's node mapping.
        root_id: Id of the root node, or None for an empty map.
        radius_step: Distance between consecutive rings.
        strict: Raise MalformedTree instead of returning an empty layout
            when the mapping is not a single tree under ``root_id``.

    Returns:
        Positioned nodes in breadth-first order and one edge per
        parent-child pair. Empty when there is no root.
    """
    if root_id is None or root_id not in nodes:
        return TreeLayout()

    try:
        root = _stratify(nodes, root_id)
    except MalformedTree:
        if strict:
            raise
        logger.opt(exception=True).warning("Cannot lay out tree rooted at {}", root_id)
        return TreeLayout()

    _tidy(root)
    return _emit(root, radius_step)


def _stratify(nodes: Mapping[str, IdeaNode], root_id: str) -> _WalkNode:
    """Build the walk tree from flat parent links, validating its shape."""
    root_node = nodes[root_id]
    if not root_node.is_root:
        raise MalformedTree(f"Root {root_id!r} has parent {root_node.parent_id!r}")

    by_parent: dict[str, list[IdeaNode]] = {}
    for node in nodes.values():
        if node.parent_id is None:
            if node.id != root_id:
                raise MalformedTree(f"Multiple roots: {root_id!r} and {node.id!r}")
            continue
        if node.parent_id not in nodes:
            raise MalformedTree(f"Node {node.id!r} has missing parent {node.parent_id!r}")
        by_parent.setdefault(node.parent_id, []).append(node)

    # Sentinel parent so the root can be treated like any other node.
    sentinel = _WalkNode(node=root_node, depth=-1, index=0)
    root = _WalkNode(node=root_node, depth=0, index=0)
    sentinel.adopt(root)

    queue = deque([root])
    placed = 1
    while queue:
        current = queue.popleft()
        kids = _ordered_children(current.node, by_parent.get(current.node.id, []))
        for i, kid in enumerate(kids):
            walk = _WalkNode(node=kid, depth=current.depth + 1, index=i)
            current.adopt(walk)
            queue.append(walk)
        placed += len(kids)

    if placed != len(nodes):
        raise MalformedTree(f"{len(nodes) - placed} node(s) unreachable from root {root_id!r}")
    return root


def _ordered_children(parent: IdeaNode, kids: list[IdeaNode]) -> list[IdeaNode]:
    """Order children by the parent's generation order, unlisted ones last."""
    rank = {child_id: i for i, child_id in enumerate(parent.children_ids)}
    fallback = len(rank)
    return sorted(kids, key=lambda kid: rank.get(kid.id, fallback))


def _separation(a: _WalkNode, b: _WalkNode) -> float:
    return (1 if a.parent is b.parent else 2) / max(a.depth, 1)


def _tidy(root: _WalkNode) -> None:
    """Run both passes of the walk and normalise breadth to a full circle."""
    for v in _post_order(root):
        _first_walk(v)
    root.parent.mod = -root.prelim
    for v in _pre_order(root):
        v.x = v.prelim + v.parent.mod
        v.mod += v.parent.mod

    left = right = root
    for v in _pre_order(root):
        if v.x < left.x:
            left = v
        if v.x > right.x:
            right = v

    pad = 1 if left is right else _separation(left, right) / 2
    tx = pad - left.x
    kx = FULL_CIRCLE / (right.x + pad + tx)
    for v in _pre_order(root):
        v.x = (v.x + tx) * kx


def _first_walk(v: _WalkNode) -> None:
    siblings = v.parent.children
    w = siblings[v.index - 1] if v.index else None
    if v.children:
        _execute_shifts(v)
        midpoint = (v.children[0].prelim + v.children[-1].prelim) / 2
        if w is not None:
            v.prelim = w.prelim + _separation(v, w)
            v.mod = v.prelim - midpoint
        else:
            v.prelim = midpoint
    elif w is not None:
        v.prelim = w.prelim + _separation(v, w)
    v.parent.default_ancestor = _apportion(v, w, v.parent.default_ancestor or siblings[0])


def _apportion(v: _WalkNode, w: _WalkNode | None, ancestor: _WalkNode) -> _WalkNode:
    """Push ``v``'s subtree right until it clears everything left of it."""
    if w is None:
        return ancestor

    vip = vop = v
    vim = w
    vom = v.parent.children[0]
    sip, sop, sim, som = v.mod, v.mod, w.mod, vom.mod

    while True:
        next_im, next_ip = _next_right(vim), _next_left(vip)
        if next_im is None or next_ip is None:
            break
        vim, vip = next_im, next_ip
        vom = _next_left(vom)  # type: ignore[assignment]
        vop = _next_right(vop)  # type: ignore[assignment]
        vop.ancestor = v
        shift = vim.prelim + sim - vip.prelim - sip + _separation(vim, vip)
        if shift > 0:
            _move_subtree(_next_ancestor(vim, v, ancestor), v, shift)
            sip += shift
            sop += shift
        sim += vim.mod
        sip += vip.mod
        som += vom.mod
        sop += vop.mod

    if next_im is not None and _next_right(vop) is None:
        vop.thread = next_im
        vop.mod += sim - sop
    if next_ip is not None and _next_left(vom) is None:
        vom.thread = next_ip
        vom.mod += sip - som
        ancestor = v
    return ancestor


def _next_left(v: _WalkNode) -> _WalkNode | None:
    return v.children[0] if v.children else v.thread


def _next_right(v: _WalkNode) -> _WalkNode | None:
    return v.children[-1] if v.children else v.thread


def _next_ancestor(vim: _WalkNode, v: _WalkNode, ancestor: _WalkNode) -> _WalkNode:
    return vim.ancestor if vim.ancestor.parent is v.parent else ancestor


def _move_subtree(wm: _WalkNode, wp: _WalkNode, shift: float) -> None:
    change = shift / (wp.index - wm.index)
    wp.change -= change
    wp.shift += shift
    wm.change += change
    wp.prelim += shift
    wp.mod += shift


def _execute_shifts(v: _WalkNode) -> None:
    shift = 0.0
    change = 0.0
    for w in reversed(v.children):
        w.prelim += shift
        w.mod += shift
        change += w.change
        shift += w.shift + change


def _pre_order(root: _WalkNode) -> Iterator[_WalkNode]:
    stack = [root]
    while stack:
        v = stack.pop()
        yield v
        stack.extend(reversed(v.children))


def _post_order(root: _WalkNode) -> list[_WalkNode]:
    stack = [root]
    visited: list[_WalkNode] = []
    while stack:
        v = stack.pop()
        visited.append(v)
        stack.extend(v.children)
    visited.reverse()
    return visited


def _to_cartesian(angle: float, radius: float) -> tuple[float, float]:
    # Shift by a quarter turn so angle 0 points up.
    if radius == 0:
        return 0.0, 0.0
    return radius * math.cos(angle - math.pi / 2), radius * math.sin(angle - math.pi / 2)


def _emit(root: _WalkNode, radius_step: float) -> TreeLayout:
    placed: dict[int, PositionedNode] = {}
    positioned: list[PositionedNode] = []
    links: list[LayoutEdge] = []

    queue = deque([root])
    while queue:
        v = queue.popleft()
        queue.extend(v.children)

        angle = 0.0 if v is root else v.x
        radius = v.depth * radius_step
        x, y = _to_cartesian(angle, radius)
        parent = placed.get(id(v.parent)) if v is not root else None
        item = PositionedNode(
            id=v.node.id,
            text=v.node.text,
            depth=v.depth,
            x=x,
            y=y,
            angle=angle,
            radius=radius,
            is_loading=v.node.is_loading,
            is_expanded=v.node.is_expanded,
            children_ids=v.node.children_ids,
            parent_id=parent.id if parent else None,
            parent_x=parent.x if parent else None,
            parent_y=parent.y if parent else None,
        )
        placed[id(v)] = item
        positioned.append(item)
        if parent is not None:
            links.append(
                LayoutEdge(
                    source_id=parent.id,
                    source_x=parent.x,
                    source_y=parent.y,
                    target_id=item.id,
                    target_x=item.x,
                    target_y=item.y,
                )
            )

    return TreeLayout(nodes=tuple(positioned), links=tuple(links))
