"""Parser for the subset of YAML used by kubeconfig files."""

from ._nodes import MappingNode, Node, ScalarNode, SequenceNode
from ._normalize import kebab_to_camel_case, normalize_keys
from ._parser import YamlSyntaxError, parse
from ._tokenizer import TokenizedLine, tokenize

__all__ = [
    "MappingNode",
    "Node",
    "ScalarNode",
    "SequenceNode",
    "TokenizedLine",
    "YamlSyntaxError",
    "kebab_to_camel_case",
    "normalize_keys",
    "parse",
    "tokenize",
]
