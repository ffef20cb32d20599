"""Render idea trees as markdown outlines."""

import io

from radial_mindmap.core.tree.store import TreeStore


def render_tree_as_markdown(
    store: TreeStore,
    *,
    node_id: str | None = None,
    max_depth: int | None = None,
    numbered: dict[str, int] | None = None,
) -> str:
    """Render a node and its descendants as an indented bullet list.

    Args:
        store: Tree store to read from.
        node_id: Node to start from (None = the root).
        max_depth: Max levels below the start node to include (None = unlimited).
        numbered: Optional id -> label number map; numbered nodes are
            prefixed with ``[N]`` so interactive shells can refer to them.

    Returns:
        Markdown string, empty when the start node does not exist.
    """
    start_id = node_id or store.root_id
    start = store.get(start_id) if start_id else None
    if start is None:
        return ""

    out = io.StringIO()
    stack = [start]
    while stack:
        node = stack.pop()
        relative_depth = node.depth - start.depth
        indent = "    " * relative_depth

        label = f"[{numbered[node.id]}] " if numbered and node.id in numbered else ""
        suffix = ""
        if node.is_loading:
            suffix = " ⏳"
        elif node.is_expanded and not node.children_ids:
            suffix = " (no ideas)"
        out.write(f"{indent}- {label}{node.text}{suffix}\n")

        # Truncation indicator when children are cut off by max_depth
        if max_depth is not None and relative_depth == max_depth:
            count = len(node.children_ids)
            if count:
                noun = "child" if count == 1 else "children"
                out.write(f"{indent}    - ... ({count} more {noun}, id={node.id})\n")
            continue

        for child_id in reversed(node.children_ids):
            child = store.get(child_id)
            if child is not None:
                stack.append(child)

    return out.getvalue()
