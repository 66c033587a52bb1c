"""
Task hierarchy from indentation.

Nodes live in an arena (a list) and refer to each other by index, so the tree
has no reference cycles. Lines must be added in file order: a node's parent
is the nearest open ancestor whose indentation is smaller than its own.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Optional

from loguru import logger


@dataclass
class TaskNode:
    """One task line in the arena."""

    index: int
    line: int
    indent: int  # raw indentation width
    payload: Any = None
    parent_index: Optional[int] = None
    child_indices: list[int] = field(default_factory=list)
    depth: int = 0

    @property
    def is_root(self) -> bool:
        return self.parent_index is None


class TaskTreeBuilder:
    """Builds parent/child links from an ordered stream of task lines."""

    def __init__(self):
        self.nodes: list[TaskNode] = []
        self._stack: list[int] = []

    def __len__(self) -> int:
        return len(self.nodes)

    def add(self, line: int, indent: int, payload: Any = None) -> TaskNode:
        """Append a task line and attach it to its parent.

        The ancestor stack is popped until its top is indented less than
        ``indent``; that node (if any) becomes the parent. A line indented
        without any open ancestor becomes a root.
        """
        index = len(self.nodes)
        node = TaskNode(index=index, line=line, indent=indent, payload=payload)

        while self._stack and self.nodes[self._stack[-1]].indent >= indent:
            self._stack.pop()

        if self._stack:
            parent = self.nodes[self._stack[-1]]
            node.parent_index = self._stack[-1]
            node.depth = parent.depth + 1
            parent.child_indices.append(index)
        elif indent > 0:
            logger.debug(f"Line {line} is indented with no parent task, treating as root")

        self.nodes.append(node)
        self._stack.append(index)
        return node

    def parent_of(self, node: TaskNode) -> Optional[TaskNode]:
        if node.parent_index is None:
            return None
        return self.nodes[node.parent_index]

    def roots(self) -> list[TaskNode]:
        return [node for node in self.nodes if node.is_root]

    def walk(self) -> Iterator[TaskNode]:
        """Yield nodes top-down, every parent before its children."""
        for root in self.roots():
            yield from self._walk(root)

    def _walk(self, node: TaskNode) -> Iterator[TaskNode]:
        pending = [node]
        while pending:
            current = pending.pop()
            yield current
            pending.extend(self.nodes[i] for i in reversed(current.child_indices))

    def ancestors(self, node: TaskNode) -> Iterator[TaskNode]:
        parent = self.parent_of(node)
        while parent is not None:
            yield parent
            parent = self.parent_of(parent)
