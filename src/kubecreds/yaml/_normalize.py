"""Convert kebab-case mapping keys to camel case."""

from __future__ import annotations

import re

from ._nodes import MappingNode, Node, ScalarNode, SequenceNode

__all__ = ["kebab_to_camel_case", "normalize_keys"]

_KEBAB_REGEX = re.compile(r"-([a-z])")


def kebab_to_camel_case(key: str) -> str:
    """Convert a kebab-case key to camel case.

    Only a hyphen followed by a lowercase letter is collapsed, so keys that
    are already camel case are returned unchanged.

    Examples
    --------
    >>> kebab_to_camel_case("certificate-authority-data")
    'certificateAuthorityData'
    """
    return _KEBAB_REGEX.sub(lambda m: m.group(1).upper(), key)


def normalize_keys(node: Node) -> Node:
    """Return a copy of a node tree with every mapping key in camel case.

    Parameters
    ----------
    node
        Root of the tree to convert.

    Returns
    -------
    Node
        New tree. The input is not modified.
    """
    match node:
        case MappingNode(items=items):
            return MappingNode(
                {
                    kebab_to_camel_case(k): normalize_keys(v)
                    for k, v in items.items()
                }
            )
        case SequenceNode(items=items):
            return SequenceNode([normalize_keys(v) for v in items])
        case ScalarNode(value=value):
            return ScalarNode(value)
