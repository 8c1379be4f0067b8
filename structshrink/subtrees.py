"""
structshrink.subtrees — Enumerate every tree one structural edit away.
======================================================================

§1  ORDER
─────────

The tree is walked breadth-first from the root.  Removing an outer node
subsumes every edit inside it, so outer edits are offered first: a
reducer that accepts the first improvement converges in far fewer
oracle calls that way.

Within a list, elements are removed from the last index to the first.
Later code tends to have fewer dependents than earlier code, so its
removal is more likely to keep the property being preserved.


§2  EDITS AT ONE POSITION
─────────────────────────

For the value at each visited position, in this order:

    1. LIST REMOVAL     drop one element (skipped for the last
                        declarator of a VariableDeclaration and for
                        template elements, which go in pairs via 5).
    2. ABSENT           set an optional position to None.
    3. PROMOTION        replace the nearest ancestor position that
                        admits this node with the node itself, or with
                        the node wrapped in a fresh ExpressionStatement
                        or BlockStatement when that ancestor expects a
                        statement.
    4. SENTINEL         replace with `null` or `;` where admitted.
    5. REWRITE          per-type canonicalisation (see _REWRITES).
    6. FLAG             flip one field that is literally True.
    7. RECURSE          queue every grammar field of the node.

Only the nearest ancestor is used for promotion.  Repeated shrinking
then takes a → b and b → c separately instead of also offering a → c.


§3  TRAVERSAL STATE
───────────────────

Each queued position carries its path, the declared field type of every
position from the root down to it, and the type name occupying each of
those positions (None for list positions).  field_types[0] is the type
given for the root; parent_types[i] is the type of the node occupying
path[:i].
"""

from collections import deque
from dataclasses import dataclass, replace
from functools import partial
from typing import Any, Callable, Iterable, Iterator, Optional

from .grammar import FieldType, ListType, MaybeType, UnionType, is_statement_type, statement_lists
from .jsgrammar import GRAMMAR
from .nodes import Node, make_node
from .paths import Path, access_path, replace_at_path


# types that may stand alone as the expression of an ExpressionStatement
EXPRESSION_TYPES = GRAMMAR["ExpressionStatement"]["expression"].arguments

# type name → name of its Statement[] field
STATEMENT_LISTS = statement_lists(GRAMMAR)

CANONICAL_PATTERN = "a"
PLACEHOLDER_PROPERTY = "_"
DEFAULT_EXPORT_NAME = "*default*"

SENTINEL_TYPES = ("LiteralNullExpression", "EmptyStatement")


@dataclass(frozen=True, slots=True)
class _Position:
    path: Path
    field_types: tuple[Optional[FieldType], ...]
    parent_types: tuple[Optional[str], ...]


# ═══════════════════════════════════════════════════════════════════
#  ENUMERATION
# ═══════════════════════════════════════════════════════════════════

def subtrees(tree: Node, root_field_type: Optional[FieldType] = None) -> Iterator[Any]:
    """
    Yield every tree that differs from `tree` by one structural edit.

    `root_field_type` is the declared type of the position `tree`
    occupies; passing it allows the root itself to be replaced by a
    sentinel or set to None.  The sequence is finite and each call
    starts afresh.
    """
    queue = deque([_Position((), (root_field_type,), ())])

    while queue:
        position = queue.popleft()
        path, field_types, parent_types = position.path, position.field_types, position.parent_types
        field_type = field_types[-1]
        parent_type = parent_types[-1] if parent_types else None

        current = access_path(tree, path)
        if current is None:
            continue

        replace_this = partial(replace_at_path, tree, path)

        if isinstance(current, tuple):
            can_remove = parent_type != "TemplateExpression" and not (
                parent_type == "VariableDeclaration" and len(current) == 1
            )
            child_field_types = field_types + (field_type.argument if isinstance(field_type, ListType) else None,)
            child_parent_types = parent_types + (None,)
            for i in reversed(range(len(current))):
                if can_remove:
                    yield replace_this(current[:i] + current[i + 1:])
                queue.append(_Position(path + (i,), child_field_types, child_parent_types))
            continue

        if isinstance(field_type, MaybeType):
            yield replace_this(None)

        yield from _promotions(tree, path, current, field_types, parent_types)

        type_name = current.type
        if isinstance(field_type, UnionType):
            for sentinel in SENTINEL_TYPES:
                if type_name != sentinel and sentinel in field_type.arguments:
                    yield replace_this(make_node(sentinel))

        rewrite = _REWRITES.get(type_name)
        if rewrite is not None:
            for replacement in rewrite(current):
                yield replace_this(replacement)

        for name, value in current.fields():
            if value is True:
                yield replace_this(replace(current, **{name: False}))

        child_parent_types = parent_types + (type_name,)
        for name, child_type in GRAMMAR[type_name].items():
            queue.append(_Position(path + (name,), field_types + (child_type,), child_parent_types))


def _promotions(tree: Node, path: Path, current: Node,
                field_types: tuple, parent_types: tuple) -> Iterator[Any]:
    """Replace the nearest admitting ancestor position; the root is never replaced."""
    type_name = current.type
    wrap_expression = type_name in EXPRESSION_TYPES
    wrap_block = type_name in STATEMENT_LISTS

    for i in range(len(field_types) - 2, 0, -1):
        ancestor_type = field_types[i]
        occupant = parent_types[i]
        if ancestor_type is not None:
            while isinstance(ancestor_type, MaybeType):
                ancestor_type = ancestor_type.argument

            if isinstance(ancestor_type, UnionType) and type_name in ancestor_type.arguments:
                yield replace_at_path(tree, path[:i], current)
                return

            if wrap_expression and occupant != "ExpressionStatement" and is_statement_type(ancestor_type):
                wrapped = make_node("ExpressionStatement", expression=current)
                yield replace_at_path(tree, path[:i], wrapped)
                return

            if wrap_block and occupant != "BlockStatement" and is_statement_type(ancestor_type):
                statements = getattr(current, STATEMENT_LISTS[type_name])
                wrapped = make_node("BlockStatement", block=make_node("Block", statements=statements))
                yield replace_at_path(tree, path[:i], wrapped)
                return

        # an existing wrapper is promoted by its own rule
        if occupant == "ExpressionStatement":
            wrap_expression = False
        if occupant == "BlockStatement":
            wrap_block = False


# ═══════════════════════════════════════════════════════════════════
#  PER-TYPE REWRITES
# ═══════════════════════════════════════════════════════════════════
#  Each rewrite yields replacement nodes for the position itself.

def _empty_raw_value(node: Node) -> Iterator[Node]:
    if node.raw_value != "":
        yield make_node(node.type, raw_value="")


def _empty_value(node: Node) -> Iterator[Node]:
    if node.value != "":
        yield make_node(node.type, value="")


def _canonical_pattern(node: Node) -> Iterator[Node]:
    if node.pattern != CANONICAL_PATTERN:
        yield replace(node, pattern=CANONICAL_PATTERN)


def _drop_template_pairs(node: Node) -> Iterator[Node]:
    elements = node.elements
    for i in range(1, len(elements), 2):
        yield make_node("TemplateExpression", tag=node.tag, elements=elements[:i - 1] + elements[i + 1:])


_STATIC_COUNTERPART = {
    "ComputedMemberExpression": "StaticMemberExpression",
    "ComputedMemberAssignmentTarget": "StaticMemberAssignmentTarget",
}


def _computed_to_static(node: Node) -> Iterator[Node]:
    yield make_node(_STATIC_COUNTERPART[node.type], object=node.object, property=PLACEHOLDER_PROPERTY)


def _placeholder_property(node: Node) -> Iterator[Node]:
    if node.property != PLACEHOLDER_PROPERTY:
        yield make_node(node.type, object=node.object, property=PLACEHOLDER_PROPERTY)


def _drop_default_case(node: Node) -> Iterator[Node]:
    yield make_node(
        "SwitchStatement",
        discriminant=node.discriminant,
        cases=node.pre_default_cases + node.post_default_cases,
    )


def _function_expression(body: Node, params: Optional[Node] = None, *,
                         is_async: bool = False, is_generator: bool = False,
                         name: Optional[Node] = None) -> Node:
    if params is None:
        params = make_node("FormalParameters", items=(), rest=None)
    return make_node(
        "FunctionExpression",
        is_async=is_async,
        is_generator=is_generator,
        name=name,
        params=params,
        body=body,
    )


def _arrow_to_function(node: Node) -> Iterator[Node]:
    body = node.body
    if body.type != "FunctionBody":
        body = make_node(
            "FunctionBody",
            directives=(),
            statements=(make_node("ReturnStatement", expression=body),),
        )
    yield _function_expression(body, node.params, is_async=node.is_async)


def _anonymous_default(name: Node) -> Optional[Node]:
    return None if name.name == DEFAULT_EXPORT_NAME else name


def _function_declaration_to_expression(node: Node) -> Iterator[Node]:
    expression = _function_expression(
        node.body,
        node.params,
        is_async=node.is_async,
        is_generator=node.is_generator,
        name=_anonymous_default(node.name),
    )
    yield make_node("ExpressionStatement", expression=expression)


def _class_declaration_to_expression(node: Node) -> Iterator[Node]:
    expression = make_node(
        "ClassExpression",
        name=_anonymous_default(node.name),
        super_class=node.super_class,
        elements=node.elements,
    )
    yield make_node("ExpressionStatement", expression=expression)


def _class_to_object(node: Node) -> Iterator[Node]:
    yield make_node("ObjectExpression", properties=tuple(element.method for element in node.elements))


def _methods_to_functions(node: Node) -> Iterator[Node]:
    for prop in node.properties:
        if prop.type == "Method":
            yield _function_expression(
                prop.body, prop.params, is_async=prop.is_async, is_generator=prop.is_generator,
            )
        elif prop.type == "Getter":
            yield _function_expression(prop.body)
        elif prop.type == "Setter":
            params = make_node("FormalParameters", items=(prop.param,), rest=None)
            yield _function_expression(prop.body, params)


_REWRITES: dict[str, Callable[[Node], Iterable[Node]]] = {
    "Directive": _empty_raw_value,
    "TemplateElement": _empty_raw_value,
    "LiteralStringExpression": _empty_value,
    "StaticPropertyName": _empty_value,
    "LiteralRegExpExpression": _canonical_pattern,
    "TemplateExpression": _drop_template_pairs,
    "ComputedMemberExpression": _computed_to_static,
    "ComputedMemberAssignmentTarget": _computed_to_static,
    "StaticMemberExpression": _placeholder_property,
    "StaticMemberAssignmentTarget": _placeholder_property,
    "SwitchStatementWithDefault": _drop_default_case,
    "ArrowExpression": _arrow_to_function,
    "FunctionDeclaration": _function_declaration_to_expression,
    "ClassDeclaration": _class_declaration_to_expression,
    "ClassExpression": _class_to_object,
    "ObjectExpression": _methods_to_functions,
}
