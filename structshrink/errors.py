"""
structshrink.errors — Exceptions raised by the reducer.

Oracle failures are never wrapped: whatever a predicate raises leaves
shrink() unchanged.
"""


class StructShrinkError(Exception):
    """Base class for errors raised by structshrink itself."""


class GrammarError(StructShrinkError, ValueError):
    """The grammar description is malformed (raised at table-build time)."""


class PathError(StructShrinkError, LookupError):
    """A path does not resolve to a position inside the given tree."""

    def __init__(self, message: str, path: tuple = ()):
        super().__init__(message)
        self.path = path


class NodeTypeError(StructShrinkError, TypeError):
    """A node was constructed with an unknown type or inadmissible fields."""


class PreconditionError(StructShrinkError):
    """shrink() was given a tree that does not satisfy its own predicate."""
