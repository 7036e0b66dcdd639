"""Middleware composition engine."""

from .composer import Composer
from .nodes import (
    Branch,
    ErrorBoundary,
    Fork,
    Lazy,
    Leaf,
    NextFn,
    Node,
    Sequence,
    flatten,
    run,
    run_node,
    sequence,
)

__all__ = [
    "Composer",
    "Node",
    "Leaf",
    "Sequence",
    "Branch",
    "Fork",
    "Lazy",
    "ErrorBoundary",
    "NextFn",
    "flatten",
    "sequence",
    "run",
    "run_node",
]
