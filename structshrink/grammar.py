"""
structshrink.grammar — Field type descriptors and the grammar table.

A grammar is described twice:

    RAW        type name → ordered [(field name, SpecType)], exactly as a
               grammar author writes it: nested unions, primitives,
               lists and optionals all allowed.

    FLATTENED  type name → {field name: FieldType}, the only shape the
               enumerator ever looks at.  Built once by build_table().

Flattening does three things:

    1. Nested unions collapse into one set of type names.
    2. A plain node type becomes a union of one, so "which types may
       stand here?" is always a set-membership question.
    3. Fields whose type is primitive (Boolean, String, Number, Enum, or
       a List/Maybe of those) are dropped.  They hold no subtrees.

A union whose flattened members include a List, Maybe or Union is
rejected with GrammarError at build time, never at traversal time.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping, Optional, Union

from .errors import GrammarError


PRIMITIVE_TYPES = frozenset({"Boolean", "String", "Number", "Enum"})
CONTAINER_TYPES = frozenset({"Union", "List", "Maybe"})


# ═══════════════════════════════════════════════════════════════════
#  RAW TYPES
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class SpecType:
    """
    An unflattened grammar type.

    type_name is "Union", "List", "Maybe", a primitive name or a node
    type name.  arguments holds the member types of a Union, the single
    element type of a List/Maybe, or the allowed values of an Enum.
    """
    type_name: str
    arguments: tuple = ()

    @property
    def argument(self) -> "SpecType":
        return self.arguments[0]

    def __repr__(self) -> str:
        if not self.arguments:
            return self.type_name
        return f"{self.type_name}({', '.join(map(repr, self.arguments))})"


def union(*members: Union[str, SpecType]) -> SpecType:
    return SpecType("Union", tuple(_coerce(m) for m in members))


def list_of(element: Union[str, SpecType]) -> SpecType:
    return SpecType("List", (_coerce(element),))


def maybe(inner: Union[str, SpecType]) -> SpecType:
    return SpecType("Maybe", (_coerce(inner),))


def enum(*values: str) -> SpecType:
    return SpecType("Enum", tuple(values))


def _coerce(t: Union[str, SpecType]) -> SpecType:
    return SpecType(t) if isinstance(t, str) else t


BOOLEAN = SpecType("Boolean")
STRING = SpecType("String")
NUMBER = SpecType("Number")


# ═══════════════════════════════════════════════════════════════════
#  FLATTENED DESCRIPTORS
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class UnionType:
    """A position that may hold a node of any of the named types."""
    arguments: frozenset

    def __repr__(self) -> str:
        return f"Union({', '.join(sorted(self.arguments))})"


@dataclass(frozen=True, slots=True)
class ListType:
    """A position holding a tuple whose elements all have type `argument`."""
    argument: "FieldType"

    def __repr__(self) -> str:
        return f"List({self.argument!r})"


@dataclass(frozen=True, slots=True)
class MaybeType:
    """A position that may be absent (None) or hold `argument`."""
    argument: "FieldType"

    def __repr__(self) -> str:
        return f"Maybe({self.argument!r})"


FieldType = Union[UnionType, ListType, MaybeType]
GrammarTable = dict[str, dict[str, FieldType]]


def _flatten_union(t: SpecType) -> list[SpecType]:
    if t.type_name != "Union":
        return [t]
    return [member for argument in t.arguments for member in _flatten_union(argument)]


def flatten(t: SpecType) -> FieldType:
    """Flatten one raw type into a descriptor."""
    if t.type_name == "Union":
        members = {m.type_name for m in _flatten_union(t)}
        nested = members & CONTAINER_TYPES
        if nested:
            raise GrammarError(f"union is nontrivial: {t!r} contains {sorted(nested)}")
        return UnionType(frozenset(members))
    if t.type_name == "List":
        return ListType(flatten(t.argument))
    if t.type_name == "Maybe":
        return MaybeType(flatten(t.argument))
    # a single node type is simpler to handle as a union of one
    return UnionType(frozenset({t.type_name}))


def is_constant_type(t: SpecType) -> bool:
    """True for primitives and for List/Maybe wrappers around them."""
    if t.type_name in PRIMITIVE_TYPES:
        return True
    if t.type_name in ("List", "Maybe"):
        return is_constant_type(t.argument)
    return False


RawGrammar = dict[str, list[tuple[str, SpecType]]]


def raw_grammar(raw: Mapping[str, list[tuple[str, Union[str, SpecType]]]]) -> RawGrammar:
    """
    The raw grammar with every field type as a SpecType.

    A grammar author may write a plain node type as its bare name,
    ("body", "FunctionBody"); this turns it into SpecType("FunctionBody").
    """
    return {
        name: [(field, _coerce(field_type)) for field, field_type in fields]
        for name, fields in raw.items()
    }


def build_table(raw: Mapping[str, list[tuple[str, Union[str, SpecType]]]]) -> GrammarTable:
    """
    Build the flattened grammar table from a raw grammar.

    Every node type named anywhere in the grammar must itself be
    declared; primitive-typed fields are dropped.  Raises GrammarError
    on nontrivial unions or undeclared type names.
    """
    table: GrammarTable = {}
    for name, fields in raw_grammar(raw).items():
        table[name] = {
            field: flatten(field_type)
            for field, field_type in fields
            if not is_constant_type(field_type)
        }

    for name, fields in table.items():
        for field, field_type in fields.items():
            for member in _member_names(field_type):
                if member not in table:
                    raise GrammarError(f"{name}.{field} refers to undeclared type {member!r}")
    return table


def _member_names(field_type: FieldType) -> frozenset:
    while isinstance(field_type, (ListType, MaybeType)):
        field_type = field_type.argument
    return field_type.arguments


# ═══════════════════════════════════════════════════════════════════
#  DERIVED INDEXES
# ═══════════════════════════════════════════════════════════════════

def is_statement_type(field_type: Optional[FieldType]) -> bool:
    """A union that accepts an ExpressionStatement accepts "a statement"."""
    return isinstance(field_type, UnionType) and "ExpressionStatement" in field_type.arguments


def is_statement_list_type(field_type: Optional[FieldType]) -> bool:
    return isinstance(field_type, ListType) and is_statement_type(field_type.argument)


def statement_lists(table: GrammarTable) -> dict[str, str]:
    """Map each type that owns a statement list to the name of that field."""
    return {
        name: field
        for name, fields in table.items()
        for field, field_type in fields.items()
        if is_statement_list_type(field_type)
    }


# ═══════════════════════════════════════════════════════════════════
#  VALUE CHECKS
# ═══════════════════════════════════════════════════════════════════

@lru_cache(maxsize=None)
def _union_names(t: SpecType) -> frozenset:
    return frozenset(m.type_name for m in _flatten_union(t))


def admits(t: SpecType, value: Any) -> bool:
    """
    Whether `value` may be stored in a field of raw type `t`.

    Node values are checked by type name only, which is all a
    constructor needs; the validator walks children itself.
    """
    name = t.type_name
    if name == "Maybe":
        return value is None or admits(t.argument, value)
    if name == "List":
        return isinstance(value, tuple) and all(admits(t.argument, v) for v in value)
    if name == "Boolean":
        return type(value) is bool
    if name == "String":
        return isinstance(value, str)
    if name == "Number":
        return isinstance(value, (int, float)) and type(value) is not bool
    if name == "Enum":
        return isinstance(value, str) and value in t.arguments
    # Union or a node type name
    type_name = getattr(value, "type", None)
    if not isinstance(type_name, str):
        return False
    return type_name in _union_names(t)
