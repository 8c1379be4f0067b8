"""
structshrink.codegen — Minified JavaScript from a tree.

Output is as short as the grammar allows without renaming anything:
no whitespace except where two words would merge, semicolons only
between statements that need them, parentheses only where precedence
or statement-start ambiguity demands them.

    generate(tree) == "console.log(x+y)"

Printing is never used by the reducer itself; it exists so callers can
look at (or feed to an external tool) what the reducer produced.
"""

import json
import re
from typing import Callable

from .errors import NodeTypeError
from .jsgrammar import BINARY_PRECEDENCE
from .nodes import Node
from .validator import IDENTIFIER_NAME


SEQUENCE = 0
ASSIGNMENT = 1
CONDITIONAL = 2
PREFIX = 14
POSTFIX = 15
NEW = 16
CALL = 17
TAGGED_TEMPLATE = 18
MEMBER = 19
PRIMARY = 20

DEFAULT_EXPORT_NAME = "*default*"

# expression statements that would otherwise parse as something else
_AMBIGUOUS_START = re.compile(r"(?:function\b|class\b|async\s+function\b|\{|let\s*\[)")

REGEXP_FLAGS = (
    ("is_global", "g"),
    ("ignore_case", "i"),
    ("multi_line", "m"),
    ("dot_all", "s"),
    ("unicode", "u"),
    ("sticky", "y"),
)


def generate(node: Node) -> str:
    """Render a program, statement or expression as JavaScript source."""
    kind = node.type
    if kind in _STATEMENTS:
        return _STATEMENTS[kind](node)[0]
    if kind in _EXPRESSIONS:
        return _expr(node)
    if kind in _OTHERS:
        return _OTHERS[kind](node)
    raise NodeTypeError(f"cannot print a {kind} on its own")


# ═══════════════════════════════════════════════════════════════════
#  STATEMENTS
# ═══════════════════════════════════════════════════════════════════
#  Each printer returns (text, needs_semicolon): whether a following
#  statement must be separated from this one by `;`.

Printed = tuple[str, bool]


def _join(parts: list[Printed]) -> str:
    out = []
    for i, (text, needs_semi) in enumerate(parts):
        out.append(text)
        if needs_semi and i < len(parts) - 1:
            out.append(";")
    return "".join(out)


def _stmt(node: Node) -> Printed:
    return _STATEMENTS[node.type](node)


def _statements(nodes) -> str:
    return _join([_stmt(node) for node in nodes])


def _directive(node: Node) -> Printed:
    quote = "'" if '"' in node.raw_value else '"'
    return f"{quote}{node.raw_value}{quote}", True


def _body(directives, statements) -> str:
    return _join([_directive(d) for d in directives] + [_stmt(s) for s in statements])


def _space_before(text: str) -> str:
    return " " if text[:1].isalnum() or text[:1] in "_$\\" else ""


def _block(node: Node) -> str:
    return "{" + _statements(node.statements) + "}"


def _block_statement(node: Node) -> Printed:
    return _block(node.block), False


def _expression_statement(node: Node) -> Printed:
    text = _expr(node.expression)
    if node.expression.type == "LiteralStringExpression" or _AMBIGUOUS_START.match(text):
        text = f"({text})"
    return text, True


def _variable_declaration(node: Node) -> str:
    declarators = []
    for declarator in node.declarators:
        text = declarator.binding.name
        if declarator.init is not None:
            text += "=" + _expr(declarator.init, ASSIGNMENT)
        declarators.append(text)
    return f"{node.kind} " + ",".join(declarators)


def _variable_declaration_statement(node: Node) -> Printed:
    return _variable_declaration(node.declaration), True


def _keyword_with_optional(keyword: str, value) -> Printed:
    if value is None:
        return keyword, True
    return f"{keyword} {value}", True


def _return(node: Node) -> Printed:
    return _keyword_with_optional("return", None if node.expression is None else _expr(node.expression))


def _throw(node: Node) -> Printed:
    return f"throw {_expr(node.expression)}", True


def _break(node: Node) -> Printed:
    return _keyword_with_optional("break", node.label)


def _continue(node: Node) -> Printed:
    return _keyword_with_optional("continue", node.label)


def _dangling_if(node: Node) -> bool:
    """Whether `else` placed after this statement would bind inside it."""
    while True:
        kind = node.type
        if kind == "IfStatement":
            if node.alternate is None:
                return True
            node = node.alternate
        elif kind in ("WhileStatement", "ForStatement", "LabeledStatement"):
            node = node.body
        else:
            return False


def _if(node: Node) -> Printed:
    head = f"if({_expr(node.test)})"
    if node.alternate is None:
        text, needs_semi = _stmt(node.consequent)
        return head + text, needs_semi
    if _dangling_if(node.consequent):
        consequent, needs_semi = "{" + _stmt(node.consequent)[0] + "}", False
    else:
        consequent, needs_semi = _stmt(node.consequent)
    alternate, alternate_semi = _stmt(node.alternate)
    text = head + consequent + (";" if needs_semi else "") + "else" + _space_before(alternate) + alternate
    return text, alternate_semi


def _while(node: Node) -> Printed:
    text, needs_semi = _stmt(node.body)
    return f"while({_expr(node.test)})" + text, needs_semi


def _do_while(node: Node) -> Printed:
    body, needs_semi = _stmt(node.body)
    return "do" + _space_before(body) + body + (";" if needs_semi else "") + f"while({_expr(node.test)})", True


def _for(node: Node) -> Printed:
    init = ""
    if node.init is not None:
        if node.init.type == "VariableDeclaration":
            init = _variable_declaration(node.init)
        else:
            init = _expr(node.init)
    test = "" if node.test is None else _expr(node.test)
    update = "" if node.update is None else _expr(node.update)
    body, needs_semi = _stmt(node.body)
    return f"for({init};{test};{update})" + body, needs_semi


def _labeled(node: Node) -> Printed:
    body, needs_semi = _stmt(node.body)
    return f"{node.label}:" + body, needs_semi


def _case(node: Node) -> Printed:
    head = "default:" if node.type == "SwitchDefault" else f"case {_expr(node.test)}:"
    parts = [_stmt(s) for s in node.consequent]
    return head + _join(parts), bool(parts) and parts[-1][1]


def _switch(node: Node) -> Printed:
    if node.type == "SwitchStatement":
        cases = node.cases
    else:
        cases = node.pre_default_cases + (node.default_case,) + node.post_default_cases
    return f"switch({_expr(node.discriminant)}){{" + _join([_case(c) for c in cases]) + "}", False


def _catch(node: Node) -> str:
    if node.binding is None:
        return "catch" + _block(node.body)
    return f"catch({node.binding.name})" + _block(node.body)


def _try_catch(node: Node) -> Printed:
    return "try" + _block(node.body) + _catch(node.catch_clause), False


def _try_finally(node: Node) -> Printed:
    catch = "" if node.catch_clause is None else _catch(node.catch_clause)
    return "try" + _block(node.body) + catch + "finally" + _block(node.finalizer), False


def _function_declaration(node: Node) -> Printed:
    return _function(node), False


def _class_declaration(node: Node) -> Printed:
    return _class(node), False


def _export(node: Node) -> Printed:
    declaration = node.declaration
    if declaration.type == "VariableDeclaration":
        return "export " + _variable_declaration(declaration), True
    return "export " + _stmt(declaration)[0], False


def _export_default(node: Node) -> Printed:
    body = node.body
    if body.type in ("FunctionDeclaration", "ClassDeclaration"):
        return "export default " + _stmt(body)[0], False
    text = _expr(body, ASSIGNMENT)
    if _AMBIGUOUS_START.match(text):
        text = f"({text})"
    return "export default " + text, True


_STATEMENTS: dict[str, Callable[[Node], Printed]] = {
    "BlockStatement": _block_statement,
    "BreakStatement": _break,
    "ClassDeclaration": _class_declaration,
    "ContinueStatement": _continue,
    "DebuggerStatement": lambda node: ("debugger", True),
    "DoWhileStatement": _do_while,
    "EmptyStatement": lambda node: (";", False),
    "ExpressionStatement": _expression_statement,
    "ForStatement": _for,
    "FunctionDeclaration": _function_declaration,
    "IfStatement": _if,
    "LabeledStatement": _labeled,
    "ReturnStatement": _return,
    "SwitchStatement": _switch,
    "SwitchStatementWithDefault": _switch,
    "ThrowStatement": _throw,
    "TryCatchStatement": _try_catch,
    "TryFinallyStatement": _try_finally,
    "VariableDeclarationStatement": _variable_declaration_statement,
    "WhileStatement": _while,
    "Export": _export,
    "ExportDefault": _export_default,
}


# ═══════════════════════════════════════════════════════════════════
#  EXPRESSIONS
# ═══════════════════════════════════════════════════════════════════
#  Each printer returns (text, precedence); _expr() parenthesises when
#  the precedence is below what the position requires.

def _expr(node: Node, min_precedence: int = SEQUENCE) -> str:
    text, precedence = _EXPRESSIONS[node.type](node)
    if precedence < min_precedence:
        return f"({text})"
    return text


def _number(value) -> str:
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)


def _string(value: str) -> str:
    return json.dumps(value)


def _property_name(node: Node) -> str:
    if node.type == "ComputedPropertyName":
        return f"[{_expr(node.expression, ASSIGNMENT)}]"
    value = node.value
    if IDENTIFIER_NAME.match(value) or value.isdigit() and (value == "0" or value[0] != "0"):
        return value
    return _string(value)


def _params(node: Node) -> str:
    items = []
    for item in node.items:
        if item.type == "BindingWithDefault":
            items.append(f"{item.binding.name}={_expr(item.init, ASSIGNMENT)}")
        else:
            items.append(item.name)
    if node.rest is not None:
        items.append("..." + node.rest.name)
    return "(" + ",".join(items) + ")"


def _function_body(node: Node) -> str:
    return "{" + _body(node.directives, node.statements) + "}"


def _function(node: Node) -> str:
    text = "async function" if node.is_async else "function"
    if node.is_generator:
        text += "*"
    if node.name is not None and node.name.name != DEFAULT_EXPORT_NAME:
        text += ("" if node.is_generator else " ") + node.name.name
    return text + _params(node.params) + _function_body(node.body)


def _method(node: Node) -> str:
    name = _property_name(node.name)
    if node.type == "Getter":
        return f"get {name}()" + _function_body(node.body)
    if node.type == "Setter":
        return f"set {name}" + _params_of_one(node.param) + _function_body(node.body)
    prefix = ("async " if node.is_async else "") + ("*" if node.is_generator else "")
    return prefix + name + _params(node.params) + _function_body(node.body)


def _params_of_one(param: Node) -> str:
    if param.type == "BindingWithDefault":
        return f"({param.binding.name}={_expr(param.init, ASSIGNMENT)})"
    return f"({param.name})"


def _class(node: Node) -> str:
    text = "class"
    if node.name is not None and node.name.name != DEFAULT_EXPORT_NAME:
        text += " " + node.name.name
    if node.super_class is not None:
        text += " extends " + _expr(node.super_class, CALL)
    elements = "".join(("static " if e.is_static else "") + _method(e.method) for e in node.elements)
    return text + "{" + elements + "}"


def _member_object(node: Node) -> str:
    if node.type == "Super":
        return "super"
    text = _expr(node, CALL)
    if node.type == "LiteralNumericExpression" and text.isdigit():
        text += "."
    return text


def _arguments(arguments) -> str:
    return "(" + ",".join(_spreadable(a) for a in arguments) + ")"


def _spreadable(node: Node) -> str:
    if node.type == "SpreadElement":
        return "..." + _expr(node.expression, ASSIGNMENT)
    return _expr(node, ASSIGNMENT)


def _array(node: Node) -> tuple[str, int]:
    elements = ["" if e is None else _spreadable(e) for e in node.elements]
    text = ",".join(elements)
    if node.elements and node.elements[-1] is None:
        text += ","
    return f"[{text}]", PRIMARY


def _arrow(node: Node) -> tuple[str, int]:
    head = ("async " if node.is_async else "") + _params(node.params) + "=>"
    if node.body.type == "FunctionBody":
        return head + _function_body(node.body), ASSIGNMENT
    body = _expr(node.body, ASSIGNMENT)
    if body.startswith("{"):
        body = f"({body})"
    return head + body, ASSIGNMENT


def _target(node: Node) -> str:
    if node.type == "AssignmentTargetIdentifier":
        return node.name
    if node.type == "StaticMemberAssignmentTarget":
        return _member_object(node.object) + "." + node.property
    return _member_object(node.object) + f"[{_expr(node.expression)}]"


def _assignment(node: Node) -> tuple[str, int]:
    operator = getattr(node, "operator", "=")
    return _target(node.binding) + operator + _expr(node.expression, ASSIGNMENT), ASSIGNMENT


def _binary(node: Node) -> tuple[str, int]:
    operator = node.operator
    precedence = BINARY_PRECEDENCE[operator]
    if operator == "**":
        left = _expr(node.left, POSTFIX)
        right = _expr(node.right, precedence)
    else:
        left = _expr(node.left, precedence)
        right = _expr(node.right, precedence + 1)
    if operator in ("in", "instanceof"):
        return f"{left} {operator} {right}", precedence
    if operator[-1] in "+-" and right.startswith(operator[-1]):
        right = " " + right
    return left + operator + right, precedence


def _unary(node: Node) -> tuple[str, int]:
    operator = node.operator
    operand = _expr(node.operand, PREFIX)
    if operator.isalpha() or operator in "+-" and operand.startswith(operator):
        return f"{operator} {operand}", PREFIX
    return operator + operand, PREFIX


def _update(node: Node) -> tuple[str, int]:
    operand = _target(node.operand)
    if node.is_prefix:
        return node.operator + operand, PREFIX
    return operand + node.operator, POSTFIX


def _conditional(node: Node) -> tuple[str, int]:
    test = _expr(node.test, CONDITIONAL + 1)
    consequent = _expr(node.consequent, ASSIGNMENT)
    alternate = _expr(node.alternate, ASSIGNMENT)
    return f"{test}?{consequent}:{alternate}", CONDITIONAL


def _call(node: Node) -> tuple[str, int]:
    return _member_object(node.callee) + _arguments(node.arguments), CALL


def _new(node: Node) -> tuple[str, int]:
    return "new " + _expr(node.callee, MEMBER) + _arguments(node.arguments), NEW


def _static_member(node: Node) -> tuple[str, int]:
    return _member_object(node.object) + "." + node.property, MEMBER


def _computed_member(node: Node) -> tuple[str, int]:
    return _member_object(node.object) + f"[{_expr(node.expression)}]", MEMBER


def _object(node: Node) -> tuple[str, int]:
    properties = []
    for prop in node.properties:
        if prop.type == "DataProperty":
            properties.append(_property_name(prop.name) + ":" + _expr(prop.expression, ASSIGNMENT))
        elif prop.type == "ShorthandProperty":
            properties.append(prop.name.name)
        else:
            properties.append(_method(prop))
    return "{" + ",".join(properties) + "}", PRIMARY


def _template(node: Node) -> tuple[str, int]:
    parts = []
    for element in node.elements:
        if element.type == "TemplateElement":
            parts.append(element.raw_value)
        else:
            parts.append("${" + _expr(element) + "}")
    text = "`" + "".join(parts) + "`"
    if node.tag is None:
        return text, PRIMARY
    return _expr(node.tag, CALL) + text, TAGGED_TEMPLATE


def _regexp(node: Node) -> tuple[str, int]:
    flags = "".join(flag for field, flag in REGEXP_FLAGS if getattr(node, field))
    return f"/{node.pattern}/{flags}", PRIMARY


def _yield(node: Node) -> tuple[str, int]:
    if node.expression is None:
        return "yield", ASSIGNMENT
    return "yield " + _expr(node.expression, ASSIGNMENT), ASSIGNMENT


_EXPRESSIONS: dict[str, Callable[[Node], tuple[str, int]]] = {
    "ArrayExpression": _array,
    "ArrowExpression": _arrow,
    "AssignmentExpression": _assignment,
    "AwaitExpression": lambda node: ("await " + _expr(node.expression, PREFIX), PREFIX),
    "BinaryExpression": _binary,
    "CallExpression": _call,
    "ClassExpression": lambda node: (_class(node), PRIMARY),
    "CompoundAssignmentExpression": _assignment,
    "ComputedMemberExpression": _computed_member,
    "ConditionalExpression": _conditional,
    "FunctionExpression": lambda node: (_function(node), PRIMARY),
    "IdentifierExpression": lambda node: (node.name, PRIMARY),
    "LiteralBooleanExpression": lambda node: ("true" if node.value else "false", PRIMARY),
    "LiteralNullExpression": lambda node: ("null", PRIMARY),
    "LiteralNumericExpression": lambda node: (_number(node.value), PRIMARY),
    "LiteralRegExpExpression": _regexp,
    "LiteralStringExpression": lambda node: (_string(node.value), PRIMARY),
    "NewExpression": _new,
    "ObjectExpression": _object,
    "StaticMemberExpression": _static_member,
    "TemplateExpression": _template,
    "ThisExpression": lambda node: ("this", PRIMARY),
    "UnaryExpression": _unary,
    "UpdateExpression": _update,
    "YieldExpression": _yield,
}


# ═══════════════════════════════════════════════════════════════════
#  PROGRAMS AND FRAGMENTS
# ═══════════════════════════════════════════════════════════════════

_OTHERS: dict[str, Callable[[Node], str]] = {
    "Script": lambda node: _body(node.directives, node.statements),
    "Module": lambda node: _body(node.directives, node.items),
    "Block": _block,
    "FunctionBody": _function_body,
    "FormalParameters": _params,
    "Directive": lambda node: _directive(node)[0],
    "TemplateElement": lambda node: node.raw_value,
}
