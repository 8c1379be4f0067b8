"""
structshrink.validator — Whole-tree validity.
=============================================

A candidate produced by one structural edit is well-typed at the edited
position but may still be an illegal program: a `return` promoted out of
its function, a `let` promoted next to a clashing `let`, a `break` with
no loop left around it.  validate() reports these as EarlyError records.

Two walks are made.  The first checks that every field holds a value
its declared type admits; if anything is ill-typed those errors are
returned alone.  The second walk can then rely on the shape of every
node and checks the context-dependent rules:

    §1  function context    return / await / yield placement
    §2  jumps               break / continue targets, duplicate labels
    §3  super               super.x in methods, super() in derived
                            constructors
    §4  declarations        declarator lists, const initialisers,
                            lexical declarations in statement position,
                            per-scope name clashes
    §5  templates           text / expression alternation
    §6  classes             constructor and static prototype rules
    §7  modules             one default export, the `*default*` name
    §8  tokens              identifier spelling, literal ranges
    §9  strict mode         modules, classes and "use strict" code:
                            no `delete x`, no eval/arguments bindings,
                            unique parameter names
"""

import math
import re
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterable, Iterator

from .grammar import admits
from .jsgrammar import FIELD_TYPES
from .nodes import Node
from .paths import Path


DEFAULT_EXPORT_NAME = "*default*"

LOOP_TYPES = frozenset({"DoWhileStatement", "ForStatement", "WhileStatement"})
SWITCH_TYPES = frozenset({"SwitchStatement", "SwitchStatementWithDefault"})
METHOD_TYPES = frozenset({"Method", "Getter", "Setter"})

# fields holding a single statement rather than a statement list
SINGLE_STATEMENT_FIELDS = {
    "DoWhileStatement": ("body",),
    "ForStatement": ("body",),
    "IfStatement": ("consequent", "alternate"),
    "LabeledStatement": ("body",),
    "WhileStatement": ("body",),
}

RESERVED_WORDS = frozenset("""
    await break case catch class const continue debugger default delete do
    else enum export extends false finally for function if implements import
    in instanceof interface let new null package private protected public
    return static super switch this throw true try typeof var void while
    with yield
""".split())

STRICT_RESTRICTED_NAMES = frozenset({"eval", "arguments"})

IDENTIFIER_NAME = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*\Z")


@dataclass(frozen=True, slots=True)
class EarlyError:
    """One violated rule, located by the path of the offending node."""
    path: Path
    message: str

    def __str__(self) -> str:
        return f"{'.'.join(map(str, self.path)) or '<root>'}: {self.message}"


def validate(tree: Any) -> list[EarlyError]:
    """All early errors in `tree`, or [] if it is a valid program."""
    errors = list(_type_errors(tree, ()))
    if errors:
        return errors
    checker = _Checker()
    checker.visit(tree, (), _Context())
    return checker.errors


def is_valid(tree: Any) -> bool:
    return not validate(tree)


# ═══════════════════════════════════════════════════════════════════
#  WELL-TYPEDNESS
# ═══════════════════════════════════════════════════════════════════

def _type_errors(value: Any, path: Path) -> Iterator[EarlyError]:
    if not isinstance(value, Node):
        yield EarlyError(path, f"expected a node, got {value!r}")
        return
    for name, field_type in FIELD_TYPES[value.type].items():
        child = getattr(value, name)
        if not admits(field_type, child):
            yield EarlyError(path + (name,), f"{value.type}.{name} does not admit {child!r}")
        elif isinstance(child, Node):
            yield from _type_errors(child, path + (name,))
        elif isinstance(child, tuple):
            for i, item in enumerate(child):
                if isinstance(item, Node):
                    yield from _type_errors(item, path + (name, i))


# ═══════════════════════════════════════════════════════════════════
#  CONTEXT
# ═══════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class _Context:
    in_function: bool = False
    is_async: bool = False
    is_generator: bool = False
    in_iteration: bool = False
    in_switch: bool = False
    labels: tuple[tuple[str, bool], ...] = ()   # (label, labels a loop)
    super_property: bool = False
    super_call: bool = False
    strict: bool = False
    # only meaningful for the direct child they are set for
    derived_class: bool = False
    derived_constructor: bool = False
    default_name: bool = False

    def label(self, name: str):
        for label, is_loop in self.labels:
            if label == name:
                return is_loop
        return None


def _has_use_strict(node: Node) -> bool:
    """A Script or FunctionBody opening with a "use strict" directive."""
    if node.type not in ("Script", "FunctionBody"):
        return False
    return any(directive.raw_value == "use strict" for directive in node.directives)


def _simple_parameters(params: Node) -> bool:
    return params.rest is None and all(item.type != "BindingWithDefault" for item in params.items)


def _function_context(node: Node, field: str, ctx: _Context, *,
                      super_property: bool, super_call: bool) -> _Context:
    in_body = field == "body"
    return _Context(
        in_function=True,
        is_async=in_body and getattr(node, "is_async", False),
        is_generator=in_body and getattr(node, "is_generator", False),
        super_property=super_property,
        super_call=super_call,
        strict=ctx.strict or _has_use_strict(node.body),
    )


def _labelled_loop(statement: Node) -> bool:
    while statement.type == "LabeledStatement":
        statement = statement.body
    return statement.type in LOOP_TYPES


def _child_context(node: Node, field: str, ctx: _Context, outer: _Context) -> _Context:
    """Context for the value of `field`; `ctx` is `outer` minus one-shot flags."""
    kind = node.type
    if kind == "Module":
        return replace(ctx, strict=True)
    elif kind == "Script":
        return replace(ctx, strict=_has_use_strict(node))
    elif kind in ("FunctionDeclaration", "FunctionExpression"):
        if field in ("params", "body"):
            return _function_context(node, field, ctx, super_property=False, super_call=False)
        if field == "name" and kind == "FunctionDeclaration":
            return replace(ctx, default_name=outer.default_name)
    elif kind in METHOD_TYPES:
        if field in ("params", "param", "body"):
            return _function_context(
                node, field, ctx, super_property=True, super_call=outer.derived_constructor,
            )
    elif kind == "ArrowExpression":
        if field in ("params", "body"):
            return replace(
                ctx,
                in_function=True,
                is_async=node.is_async and field == "body",
                is_generator=False,
                in_iteration=False,
                in_switch=False,
                labels=(),
                strict=ctx.strict or _has_use_strict(node.body),
            )
    elif kind in ("ClassDeclaration", "ClassExpression"):
        # the whole class, heritage included, is strict code
        if field == "elements":
            return replace(ctx, strict=True, derived_class=node.super_class is not None)
        if field == "name" and kind == "ClassDeclaration":
            return replace(ctx, strict=True, default_name=outer.default_name)
        return replace(ctx, strict=True)
    elif kind == "ClassElement":
        if field == "method":
            return replace(
                ctx,
                derived_constructor=outer.derived_class and not node.is_static and _is_constructor(node.method),
            )
    elif kind == "ExportDefault":
        return replace(ctx, default_name=True)
    elif kind in LOOP_TYPES:
        if field == "body":
            return replace(ctx, in_iteration=True)
    elif kind in SWITCH_TYPES:
        if field != "discriminant":
            return replace(ctx, in_switch=True)
    elif kind == "LabeledStatement":
        return replace(ctx, labels=ctx.labels + ((node.label, _labelled_loop(node.body)),))
    return ctx


# ═══════════════════════════════════════════════════════════════════
#  DECLARED NAMES
# ═══════════════════════════════════════════════════════════════════

def _parameter_name(param: Node) -> str:
    binding = param.binding if param.type == "BindingWithDefault" else param
    return binding.name


def _parameter_names(params: Node) -> list[str]:
    names = [_parameter_name(item) for item in params.items]
    if params.rest is not None:
        names.append(params.rest.name)
    return names


def _declarator_names(declaration: Node) -> list[str]:
    return [declarator.binding.name for declarator in declaration.declarators]


def _unwrap_export(item: Node) -> Node:
    if item.type == "Export":
        return item.declaration
    if item.type == "ExportDefault":
        return item.body
    return item


def _lexical_names(items: Iterable[Node], functions_are_var: bool) -> list[str]:
    names = []
    for item in items:
        item = _unwrap_export(item)
        kind = item.type
        if kind == "VariableDeclarationStatement":
            item, kind = item.declaration, "VariableDeclaration"
        if kind == "VariableDeclaration":
            if item.kind != "var":
                names.extend(_declarator_names(item))
        elif kind == "ClassDeclaration":
            names.append(item.name.name)
        elif kind == "FunctionDeclaration" and not functions_are_var:
            names.append(item.name.name)
    return names


def _var_names(items: Iterable[Node], functions_are_var: bool) -> list[str]:
    names = []
    for item in items:
        item = _unwrap_export(item)
        if functions_are_var and item.type == "FunctionDeclaration":
            names.append(item.name.name)
        names.extend(_hoisted_vars(item))
    return names


def _hoisted_vars(statement: Any) -> Iterator[str]:
    """`var` names declared by a statement, looking through nested blocks."""
    if statement is None:
        return
    kind = statement.type
    if kind == "VariableDeclarationStatement":
        statement, kind = statement.declaration, "VariableDeclaration"
    if kind == "VariableDeclaration":
        if statement.kind == "var":
            yield from _declarator_names(statement)
    elif kind == "BlockStatement":
        for child in statement.block.statements:
            yield from _hoisted_vars(child)
    elif kind == "IfStatement":
        yield from _hoisted_vars(statement.consequent)
        yield from _hoisted_vars(statement.alternate)
    elif kind in ("DoWhileStatement", "WhileStatement", "LabeledStatement"):
        yield from _hoisted_vars(statement.body)
    elif kind == "ForStatement":
        if statement.init is not None and statement.init.type == "VariableDeclaration":
            yield from _hoisted_vars(statement.init)
        yield from _hoisted_vars(statement.body)
    elif kind in ("TryCatchStatement", "TryFinallyStatement"):
        blocks = [statement.body]
        if statement.catch_clause is not None:
            blocks.append(statement.catch_clause.body)
        if kind == "TryFinallyStatement":
            blocks.append(statement.finalizer)
        for block in blocks:
            for child in block.statements:
                yield from _hoisted_vars(child)
    elif kind in SWITCH_TYPES:
        for child in _switch_statements(statement):
            yield from _hoisted_vars(child)


def _switch_statements(node: Node) -> list[Node]:
    if node.type == "SwitchStatement":
        cases = node.cases
    else:
        cases = node.pre_default_cases + (node.default_case,) + node.post_default_cases
    return [statement for case in cases for statement in case.consequent]


def _duplicates(names: Iterable[str]) -> list[str]:
    seen, repeated = set(), []
    for name in names:
        if name in seen and name not in repeated:
            repeated.append(name)
        seen.add(name)
    return repeated


def _is_constructor(method: Node) -> bool:
    return method.name.type == "StaticPropertyName" and method.name.value == "constructor"


# ═══════════════════════════════════════════════════════════════════
#  RULE CHECKER
# ═══════════════════════════════════════════════════════════════════

class _Checker:
    """Walks a well-typed tree, collecting early errors."""

    def __init__(self):
        self.errors: list[EarlyError] = []

    def report(self, path: Path, message: str) -> None:
        self.errors.append(EarlyError(path, message))

    def visit(self, node: Node, path: Path, ctx: _Context) -> None:
        check = _CHECKS.get(node.type)
        if check is not None:
            check(self, node, path, ctx)

        inherited = ctx
        if ctx.derived_class or ctx.derived_constructor or ctx.default_name:
            inherited = replace(ctx, derived_class=False, derived_constructor=False, default_name=False)

        for name, value in node.fields():
            if isinstance(value, Node):
                self.visit(value, path + (name,), _child_context(node, name, inherited, ctx))
            elif isinstance(value, tuple):
                child_ctx = _child_context(node, name, inherited, ctx)
                for i, item in enumerate(value):
                    if isinstance(item, Node):
                        self.visit(item, path + (name, i), child_ctx)

    # ── §4 scopes ──

    def check_scope(self, path: Path, items: Iterable[Node], *,
                    functions_are_var: bool, extra_lexical: Iterable[str] = ()) -> None:
        items = list(items)
        lexical = list(extra_lexical) + _lexical_names(items, functions_are_var)
        for name in _duplicates(lexical):
            self.report(path, f"duplicate lexical declaration of {name!r}")
        clashes = set(lexical) & set(_var_names(items, functions_are_var))
        for name in sorted(clashes):
            self.report(path, f"{name!r} is declared both lexically and with var")

    def check_parameters(self, path: Path, names: list[str], body: Node) -> None:
        if body.type != "FunctionBody":
            return
        clashes = set(names) & set(_lexical_names(body.statements, True))
        for name in sorted(clashes):
            self.report(path, f"parameter {name!r} is redeclared in the function body")


# ── per-type checks ──

def _check_script(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    checker.check_scope(path, node.statements, functions_are_var=True)


def _check_module(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    checker.check_scope(path, node.items, functions_are_var=False)
    defaults = [i for i, item in enumerate(node.items) if item.type == "ExportDefault"]
    for i in defaults[1:]:
        checker.report(path + ("items", i), "a module may have only one default export")


def _check_function_body(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    checker.check_scope(path, node.statements, functions_are_var=True)


def _check_function(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    names = _parameter_names(node.params)
    checker.check_parameters(path, names, node.body)
    simple = _simple_parameters(node.params)
    if not simple and _has_use_strict(node.body):
        checker.report(path, '"use strict" is not allowed in a function with non-simple parameters')
    unique = (
        node.type in ("ArrowExpression", "Method") or not simple
        or ctx.strict or _has_use_strict(node.body)
    )
    if unique:
        for name in _duplicates(names):
            checker.report(path + ("params",), f"duplicate parameter name {name!r}")


def _check_setter(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    checker.check_parameters(path, [_parameter_name(node.param)], node.body)
    if node.param.type == "BindingWithDefault" and _has_use_strict(node.body):
        checker.report(path, '"use strict" is not allowed in a function with non-simple parameters')


def _check_block(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    checker.check_scope(path, node.statements, functions_are_var=False)


def _check_switch(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    checker.check_scope(path, _switch_statements(node), functions_are_var=False)


def _check_for(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    init = node.init
    if init is None or init.type != "VariableDeclaration" or init.kind == "var":
        return
    lexical = _declarator_names(init)
    for name in _duplicates(lexical):
        checker.report(path, f"duplicate lexical declaration of {name!r}")
    for name in sorted(set(lexical) & set(_hoisted_vars(node.body))):
        checker.report(path, f"{name!r} is declared both lexically and with var")


def _check_catch(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    if node.binding is None:
        return
    if node.binding.name in _lexical_names(node.body.statements, False):
        checker.report(path, f"catch parameter {node.binding.name!r} is redeclared in its block")


def _check_variable_declaration(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    if not node.declarators:
        checker.report(path, "a variable declaration needs at least one declarator")
    if node.kind == "const":
        for i, declarator in enumerate(node.declarators):
            if declarator.init is None:
                checker.report(path + ("declarators", i), "const declarations must be initialised")


def _check_single_statements(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    for field in SINGLE_STATEMENT_FIELDS[node.type]:
        statement = getattr(node, field)
        if statement is None:
            continue
        kind = statement.type
        lexical = kind in ("ClassDeclaration", "FunctionDeclaration") or (
            kind == "VariableDeclarationStatement" and statement.declaration.kind != "var"
        )
        if lexical:
            checker.report(path + (field,), f"{kind} is not allowed in single-statement position")


def _check_loop(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    _check_single_statements(checker, node, path, ctx)
    if node.type == "ForStatement":
        _check_for(checker, node, path, ctx)


def _check_labeled(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    _check_single_statements(checker, node, path, ctx)
    if ctx.label(node.label) is not None:
        checker.report(path, f"label {node.label!r} is already declared")
    _check_identifier_name(checker, node.label, path, reserved=True)


# ── §1 function context ──

def _check_return(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    if not ctx.in_function:
        checker.report(path, "return outside of a function")


def _check_await(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    if not ctx.is_async:
        checker.report(path, "await outside of an async function")


def _check_yield(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    if not ctx.is_generator:
        checker.report(path, "yield outside of a generator")


# ── §2 jumps ──

def _check_break(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    if node.label is None:
        if not (ctx.in_iteration or ctx.in_switch):
            checker.report(path, "break outside of a loop or switch")
    elif ctx.label(node.label) is None:
        checker.report(path, f"break to undeclared label {node.label!r}")


def _check_continue(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    if node.label is None:
        if not ctx.in_iteration:
            checker.report(path, "continue outside of a loop")
        return
    is_loop = ctx.label(node.label)
    if is_loop is None:
        checker.report(path, f"continue to undeclared label {node.label!r}")
    elif not is_loop:
        checker.report(path, f"continue to label {node.label!r}, which does not label a loop")


# ── §3 super ──

def _check_call(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    if node.callee.type == "Super" and not ctx.super_call:
        checker.report(path, "super() outside of a derived class constructor")


def _check_member(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    if node.object.type == "Super" and not ctx.super_property:
        checker.report(path, "super property access outside of a method")
    if node.type.startswith("Static"):
        _check_identifier_name(checker, node.property, path, reserved=False)


# ── §5 templates ──

def _check_template(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    elements = node.elements
    if len(elements) % 2 == 0:
        checker.report(path, "a template must start and end with a TemplateElement")
    for i, element in enumerate(elements):
        is_text = element.type == "TemplateElement"
        if is_text != (i % 2 == 0):
            checker.report(path + ("elements", i), "template text and expressions must alternate")


# ── §6 classes ──

def _check_class(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    constructors = 0
    for i, element in enumerate(node.elements):
        method = element.method
        if element.is_static:
            if method.name.type == "StaticPropertyName" and method.name.value == "prototype":
                checker.report(path + ("elements", i), "a class may not have a static method named prototype")
            continue
        if not _is_constructor(method):
            continue
        constructors += 1
        if constructors > 1:
            checker.report(path + ("elements", i), "a class may have only one constructor")
        if method.type != "Method":
            checker.report(path + ("elements", i), "a class constructor may not be a getter or setter")
        elif method.is_async or method.is_generator:
            checker.report(path + ("elements", i), "a class constructor may not be async or a generator")


# ── §7 / §8 names and literals ──

def _check_identifier_name(checker: _Checker, name: str, path: Path, *, reserved: bool) -> None:
    if not IDENTIFIER_NAME.match(name):
        checker.report(path, f"{name!r} is not a valid identifier")
    elif reserved and name in RESERVED_WORDS:
        checker.report(path, f"{name!r} is a reserved word")


def _check_binding(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    if node.name == DEFAULT_EXPORT_NAME:
        if not ctx.default_name:
            checker.report(path, f"{DEFAULT_EXPORT_NAME} may only name a default-exported declaration")
        return
    _check_identifier_name(checker, node.name, path, reserved=True)
    if ctx.strict and node.name in STRICT_RESTRICTED_NAMES:
        checker.report(path, f"{node.name!r} may not be bound in strict mode")


def _check_identifier(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    _check_identifier_name(checker, node.name, path, reserved=True)


def _check_number(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    value = node.value
    if isinstance(value, float) and not math.isfinite(value):
        checker.report(path, "numeric literals must be finite")
    elif value < 0:
        checker.report(path, "numeric literals must not be negative")


def _check_regexp(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    if not node.pattern:
        checker.report(path, "a regular expression pattern may not be empty")


# ── §9 strict mode ──

def _check_unary(checker: _Checker, node: Node, path: Path, ctx: _Context) -> None:
    if ctx.strict and node.operator == "delete" and node.operand.type == "IdentifierExpression":
        checker.report(path, "delete of an unqualified identifier in strict mode")


_CHECKS: dict[str, Callable[[_Checker, Node, Path, _Context], None]] = {
    "Script": _check_script,
    "Module": _check_module,
    "FunctionBody": _check_function_body,
    "FunctionDeclaration": _check_function,
    "FunctionExpression": _check_function,
    "ArrowExpression": _check_function,
    "Method": _check_function,
    "Setter": _check_setter,
    "Block": _check_block,
    "SwitchStatement": _check_switch,
    "SwitchStatementWithDefault": _check_switch,
    "CatchClause": _check_catch,
    "VariableDeclaration": _check_variable_declaration,
    "IfStatement": _check_single_statements,
    "DoWhileStatement": _check_loop,
    "ForStatement": _check_loop,
    "WhileStatement": _check_loop,
    "LabeledStatement": _check_labeled,
    "ReturnStatement": _check_return,
    "AwaitExpression": _check_await,
    "YieldExpression": _check_yield,
    "UnaryExpression": _check_unary,
    "BreakStatement": _check_break,
    "ContinueStatement": _check_continue,
    "CallExpression": _check_call,
    "ComputedMemberExpression": _check_member,
    "ComputedMemberAssignmentTarget": _check_member,
    "StaticMemberExpression": _check_member,
    "StaticMemberAssignmentTarget": _check_member,
    "TemplateExpression": _check_template,
    "ClassDeclaration": _check_class,
    "ClassExpression": _check_class,
    "BindingIdentifier": _check_binding,
    "IdentifierExpression": _check_identifier,
    "AssignmentTargetIdentifier": _check_identifier,
    "LiteralNumericExpression": _check_number,
    "LiteralRegExpExpression": _check_regexp,
}
