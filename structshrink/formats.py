"""
structshrink.formats — Convert between trees and plain data.

Supported conversions:
    • Python objects (dicts with a "type" key, lists, primitives) ↔ Node
    • JSON strings ↔ Node

Plain data uses the Shift AST spelling: camelCase field names, `super`
and `global` unprefixed.  This is the shape shift-parser emits, so a
tree parsed elsewhere can be loaded with from_json().
"""

import json
import re
from typing import Any

from .errors import NodeTypeError
from .nodes import Node, make_node


# snake_case field name → Shift name, where the rule below is not enough
_RENAMED = {
    "super_class": "super",
    "is_global": "global",
}
_RENAMED_BACK = {shift: ours for ours, shift in _RENAMED.items()}

_CAMEL_HUMP = re.compile(r"(?<=[a-z0-9])([A-Z])")


def _to_shift_name(field: str) -> str:
    if field in _RENAMED:
        return _RENAMED[field]
    head, *rest = field.split("_")
    return head + "".join(part.title() for part in rest)


def _from_shift_name(field: str) -> str:
    if field in _RENAMED_BACK:
        return _RENAMED_BACK[field]
    return _CAMEL_HUMP.sub(r"_\1", field).lower()


# ═══════════════════════════════════════════════════════════════════
#  PYTHON OBJECTS ↔ TREES
# ═══════════════════════════════════════════════════════════════════

def from_python(obj: Any) -> Any:
    """
    Convert plain data to a tree.

    Mapping:
        dict with "type"  → node of that type (checked by make_node)
        list / tuple      → tuple
        str, int, float,
        bool, None        → unchanged

    Raises NodeTypeError for a dict without a "type" key or for any
    node make_node() rejects.
    """
    if isinstance(obj, dict):
        if "type" not in obj:
            raise NodeTypeError(f"object without a 'type' key: {sorted(obj)}")
        fields = {
            _from_shift_name(key): from_python(value)
            for key, value in obj.items()
            if key != "type"
        }
        return make_node(obj["type"], fields)
    if isinstance(obj, (list, tuple)):
        return tuple(from_python(item) for item in obj)
    return obj


def to_python(tree: Any) -> Any:
    """
    Convert a tree back to plain data.

    Inverse of from_python:
        from_python(to_python(tree)) == tree
    """
    if isinstance(tree, Node):
        data = {"type": tree.type}
        for name, value in tree.fields():
            data[_to_shift_name(name)] = to_python(value)
        return data
    if isinstance(tree, tuple):
        return [to_python(item) for item in tree]
    return tree


# ═══════════════════════════════════════════════════════════════════
#  JSON STRINGS ↔ TREES
# ═══════════════════════════════════════════════════════════════════

def from_json(text: str) -> Any:
    """Parse Shift-format JSON into a tree."""
    return from_python(json.loads(text))


def to_json(tree: Any, **kwargs) -> str:
    """Serialise a tree to Shift-format JSON."""
    return json.dumps(to_python(tree), **kwargs)
