"""Node types produced by the YAML subset parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "MappingNode",
    "Node",
    "ScalarNode",
    "SequenceNode",
]


@dataclass
class ScalarNode:
    """A scalar value, always kept as a string."""

    value: str

    def to_python(self) -> str:
        return self.value


@dataclass
class MappingNode:
    """An ordered mapping from string keys to nodes."""

    items: dict[str, Node] = field(default_factory=dict)

    def to_python(self) -> dict[str, Any]:
        return {k: v.to_python() for k, v in self.items.items()}


@dataclass
class SequenceNode:
    """An ordered list of nodes."""

    items: list[Node] = field(default_factory=list)

    def to_python(self) -> list[Any]:
        return [v.to_python() for v in self.items]


type Node = ScalarNode | MappingNode | SequenceNode
"""Any node of a parsed document."""
