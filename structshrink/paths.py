"""
structshrink.paths — Reading and copy-on-write replacement by path.

A path is a tuple of steps from the root: a field name (str) steps into
a node, an index (int) steps into a list.  Replacing at a path rebuilds
only the nodes and tuples along that path; every sibling is shared with
the original tree.
"""

import dataclasses
from typing import Any, Sequence, Union

from .errors import PathError
from .nodes import Node


Step = Union[str, int]
Path = tuple[Step, ...]


def _step(value: Any, step: Step, path: Path) -> Any:
    if value is None:
        raise PathError(f"cannot step into an absent value at {path!r}", path)
    if isinstance(value, tuple):
        # bool is an int subclass, reject it explicitly
        if type(step) is not int:
            raise PathError(f"list step must be an index, got {step!r} at {path!r}", path)
        if not 0 <= step < len(value):
            raise PathError(f"index {step} out of range (length {len(value)}) at {path!r}", path)
        return value[step]
    if isinstance(value, Node):
        if not isinstance(step, str) or step not in value.FIELDS:
            raise PathError(f"{value.type} has no field {step!r} at {path!r}", path)
        return getattr(value, step)
    raise PathError(f"cannot step into primitive {value!r} at {path!r}", path)


def access_path(tree: Any, path: Sequence[Step]) -> Any:
    """
    Value at `path` inside `tree`.

    Returns None when the final step lands on an absent optional field;
    any step that does not resolve raises PathError.
    """
    path = tuple(path)
    value = tree
    for depth, step in enumerate(path):
        value = _step(value, step, path[:depth + 1])
    return value


def replace_at_path(tree: Any, path: Sequence[Step], replacement: Any) -> Any:
    """
    New tree equal to `tree` except that the value at `path` is
    `replacement`.  The input is never modified.
    """
    return _replace(tree, tuple(path), 0, replacement)


def _replace(value: Any, path: Path, depth: int, replacement: Any) -> Any:
    if depth == len(path):
        return replacement
    step = path[depth]
    child = _step(value, step, path[:depth + 1])
    new_child = _replace(child, path, depth + 1, replacement)
    if isinstance(value, tuple):
        return value[:step] + (new_child,) + value[step + 1:]
    return dataclasses.replace(value, **{step: new_child})
