"""
structshrink.nodes — One frozen dataclass per grammar type.

Classes are generated from the raw grammar at import time and exported
under their type names (``nodes.IdentifierExpression`` and so on), so

    IdentifierExpression(name="x").type == "IdentifierExpression"

Calling a class directly performs no checks.  The reducer must be able
to build grammatically well-typed nodes that are placed where the
surrounding tree does not allow them (the validator rejects those
later), so checking is a separate step: make_node() verifies every
field against its declared type before constructing.
"""

from dataclasses import make_dataclass
from typing import Any, Iterator, Optional

from .errors import NodeTypeError
from .grammar import admits
from .jsgrammar import FIELD_TYPES, JS_GRAMMAR


class Node:
    """Base class of every generated node class."""
    __slots__ = ()

    FIELDS: tuple[str, ...] = ()

    @property
    def type(self) -> str:
        return type(self).__name__

    def fields(self) -> Iterator[tuple[str, Any]]:
        """(name, value) for every field, in grammar order."""
        for name in self.FIELDS:
            yield name, getattr(self, name)


def _make_class(type_name: str, field_names: list[str]) -> type:
    return make_dataclass(
        type_name,
        [(name, Any) for name in field_names],
        bases=(Node,),
        namespace={"FIELDS": tuple(field_names), "__module__": __name__},
        frozen=True,
        slots=True,
    )


NODE_CLASSES: dict[str, type] = {
    type_name: _make_class(type_name, [name for name, _ in fields])
    for type_name, fields in JS_GRAMMAR.items()
}

globals().update(NODE_CLASSES)


def make_node(type_name: str, fields: Optional[dict[str, Any]] = None, **kwargs: Any) -> Node:
    """
    Checked constructor.

    Fields may be passed as a dict, as keywords, or both.  Raises
    NodeTypeError for an unknown type, a missing or unexpected field, or
    a value the field's declared type does not admit.  Nested nodes are
    checked by type name only.
    """
    cls = NODE_CLASSES.get(type_name)
    if cls is None:
        raise NodeTypeError(f"unknown node type {type_name!r}")

    values = dict(fields or {})
    values.update(kwargs)
    declared = FIELD_TYPES[type_name]

    missing = [name for name in declared if name not in values]
    if missing:
        raise NodeTypeError(f"{type_name} is missing field(s) {missing}")
    unexpected = sorted(set(values) - set(declared))
    if unexpected:
        raise NodeTypeError(f"{type_name} has no field(s) {unexpected}")

    for name, field_type in declared.items():
        if not admits(field_type, values[name]):
            raise NodeTypeError(
                f"{type_name}.{name} does not admit {values[name]!r} (expected {field_type!r})"
            )
    return cls(**values)


def contains_type(type_name: str, tree: Any) -> bool:
    """
    Whether any node in `tree` has type `type_name`.

    `tree` may be a node, a tuple of nodes or a primitive field value,
    so a predicate built with functools.partial(contains_type, "X") can
    be handed straight to shrink().
    """
    if isinstance(tree, tuple):
        return any(contains_type(type_name, item) for item in tree)
    if not isinstance(tree, Node):
        return False
    if tree.type == type_name:
        return True
    return any(contains_type(type_name, value) for _, value in tree.fields())
