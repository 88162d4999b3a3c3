"""Test doubles for code that resolves Kubernetes credentials."""

from ._filesystem import MockFileSystem
from ._process import MockProcessRunner

__all__ = [
    "MockFileSystem",
    "MockProcessRunner",
]
