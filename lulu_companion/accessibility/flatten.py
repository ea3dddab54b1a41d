"""Element Flattener: UI element tree -> ordered, distinct text fragments.

The fragment order is the pre-order traversal order of the tree, which is
what the positional heuristics of the field extractor rely on ("a label is
followed by its value").  Exact duplicates are dropped; the first
occurrence keeps its position.

The tree belongs to another process and nothing guarantees it is bounded,
so traversal carries both a depth limit and a node budget.
"""

from __future__ import annotations

import logging

from lulu_companion.accessibility.element import AccessibleElement

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 32
DEFAULT_MAX_NODES = 2000


class _Walk:
    """Mutable traversal state for one flattening pass."""

    __slots__ = ("fragments", "seen", "visited", "max_depth", "max_nodes", "truncated")

    def __init__(self, max_depth: int, max_nodes: int) -> None:
        self.fragments: list[str] = []
        self.seen: set[str] = set()
        self.visited = 0
        self.max_depth = max_depth
        self.max_nodes = max_nodes
        self.truncated = False

    def collect(self, element: AccessibleElement) -> None:
        for raw in element.text_attributes():
            if not isinstance(raw, str):
                continue
            text = raw.strip()
            if text and text not in self.seen:
                self.seen.add(text)
                self.fragments.append(text)


def _visit(element: AccessibleElement, depth: int, walk: _Walk) -> None:
    if walk.visited >= walk.max_nodes:
        walk.truncated = True
        return
    walk.visited += 1
    walk.collect(element)

    if depth >= walk.max_depth:
        if element.children():
            walk.truncated = True
        return
    for child in element.children():
        _visit(child, depth + 1, walk)
        if walk.visited >= walk.max_nodes:
            walk.truncated = True
            return


def flatten_element_tree(
    root: AccessibleElement,
    max_depth: int = DEFAULT_MAX_DEPTH,
    max_nodes: int = DEFAULT_MAX_NODES,
) -> list[str]:
    """Collect every distinct text fragment under *root* in traversal order.

    Args:
        root: The window (or any element) to flatten.  Its own text
            attributes are included.
        max_depth: Children deeper than this below *root* are not visited.
        max_nodes: Traversal stops after this many elements.

    Returns:
        Stripped, non-empty, de-duplicated fragments.
    """
    walk = _Walk(max_depth=max_depth, max_nodes=max_nodes)
    _visit(root, 0, walk)
    if walk.truncated:
        logger.debug(
            "Element tree truncated (visited=%d, max_depth=%d, max_nodes=%d)",
            walk.visited, max_depth, max_nodes,
        )
    return walk.fragments
