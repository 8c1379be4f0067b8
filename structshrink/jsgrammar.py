"""
structshrink.jsgrammar — A JavaScript subset in Shift AST shape.

Type names and field order follow the Shift AST; field
names are the snake_case spelling of the Shift names (with `super`
spelled `super_class` and the regex flag `global` spelled `is_global`).
Field order matters: the enumerator visits fields in the order they are
declared here.

Not covered: destructuring, imports, for-in/of, with, new.target,
spread properties.
"""

from .grammar import (
    BOOLEAN, NUMBER, STRING, RawGrammar, SpecType, build_table, enum, list_of, maybe, raw_grammar, union,
)


# ═══════════════════════════════════════════════════════════════════
#  NAMED UNIONS
# ═══════════════════════════════════════════════════════════════════

EXPRESSION = union(
    "ArrayExpression",
    "ArrowExpression",
    "AssignmentExpression",
    "AwaitExpression",
    "BinaryExpression",
    "CallExpression",
    "ClassExpression",
    "CompoundAssignmentExpression",
    "ComputedMemberExpression",
    "ConditionalExpression",
    "FunctionExpression",
    "IdentifierExpression",
    "LiteralBooleanExpression",
    "LiteralNullExpression",
    "LiteralNumericExpression",
    "LiteralRegExpExpression",
    "LiteralStringExpression",
    "NewExpression",
    "ObjectExpression",
    "StaticMemberExpression",
    "TemplateExpression",
    "ThisExpression",
    "UnaryExpression",
    "UpdateExpression",
    "YieldExpression",
)

STATEMENT = union(
    "BlockStatement",
    "BreakStatement",
    "ClassDeclaration",
    "ContinueStatement",
    "DebuggerStatement",
    "DoWhileStatement",
    "EmptyStatement",
    "ExpressionStatement",
    "ForStatement",
    "FunctionDeclaration",
    "IfStatement",
    "LabeledStatement",
    "ReturnStatement",
    "SwitchStatement",
    "SwitchStatementWithDefault",
    "ThrowStatement",
    "TryCatchStatement",
    "TryFinallyStatement",
    "VariableDeclarationStatement",
    "WhileStatement",
)

SIMPLE_ASSIGNMENT_TARGET = union(
    "AssignmentTargetIdentifier",
    "ComputedMemberAssignmentTarget",
    "StaticMemberAssignmentTarget",
)

BINDING = union("BindingIdentifier")
PARAMETER = union(BINDING, "BindingWithDefault")
PROPERTY_NAME = union("ComputedPropertyName", "StaticPropertyName")
METHOD_DEFINITION = union("Method", "Getter", "Setter")
OBJECT_PROPERTY = union(METHOD_DEFINITION, "DataProperty", "ShorthandProperty")
ARGUMENTS = list_of(union("SpreadElement", EXPRESSION))
MEMBER_OBJECT = union(EXPRESSION, "Super")
MODULE_ITEM = union("Export", "ExportDefault", STATEMENT)

BINARY_OPERATOR = enum(
    "==", "!=", "===", "!==", "<", "<=", ">", ">=", "in", "instanceof",
    "<<", ">>", ">>>", "+", "-", "*", "/", "%", "**", ",", "||", "&&",
    "|", "^", "&",
)
COMPOUND_ASSIGNMENT_OPERATOR = enum(
    "+=", "-=", "*=", "/=", "%=", "**=", "<<=", ">>=", ">>>=", "|=", "^=", "&=",
)
UNARY_OPERATOR = enum("+", "-", "!", "~", "typeof", "void", "delete")
UPDATE_OPERATOR = enum("++", "--")
VARIABLE_DECLARATION_KIND = enum("var", "let", "const")

# precedence of the binary operators, shared by the printer
BINARY_PRECEDENCE = {
    ",": 0,
    "||": 3, "&&": 4, "|": 5, "^": 6, "&": 7,
    "==": 8, "!=": 8, "===": 8, "!==": 8,
    "<": 9, "<=": 9, ">": 9, ">=": 9, "in": 9, "instanceof": 9,
    "<<": 10, ">>": 10, ">>>": 10,
    "+": 11, "-": 11,
    "*": 12, "/": 12, "%": 12,
    "**": 13,
}


def _function_fields() -> list[tuple[str, SpecType]]:
    return [
        ("is_async", BOOLEAN),
        ("is_generator", BOOLEAN),
    ]


# ═══════════════════════════════════════════════════════════════════
#  NODE TYPES
# ═══════════════════════════════════════════════════════════════════

JS_GRAMMAR: RawGrammar = raw_grammar({
    # programs
    "Script": [("directives", list_of("Directive")), ("statements", list_of(STATEMENT))],
    "Module": [("directives", list_of("Directive")), ("items", list_of(MODULE_ITEM))],
    "Directive": [("raw_value", STRING)],
    "Export": [("declaration", union("FunctionDeclaration", "ClassDeclaration", "VariableDeclaration"))],
    "ExportDefault": [("body", union("FunctionDeclaration", "ClassDeclaration", EXPRESSION))],

    # bindings
    "BindingIdentifier": [("name", STRING)],
    "BindingWithDefault": [("binding", BINDING), ("init", EXPRESSION)],
    "AssignmentTargetIdentifier": [("name", STRING)],
    "ComputedMemberAssignmentTarget": [("object", MEMBER_OBJECT), ("expression", EXPRESSION)],
    "StaticMemberAssignmentTarget": [("object", MEMBER_OBJECT), ("property", STRING)],

    # classes
    "ClassDeclaration": [
        ("name", "BindingIdentifier"),
        ("super_class", maybe(EXPRESSION)),
        ("elements", list_of("ClassElement")),
    ],
    "ClassExpression": [
        ("name", maybe("BindingIdentifier")),
        ("super_class", maybe(EXPRESSION)),
        ("elements", list_of("ClassElement")),
    ],
    "ClassElement": [("is_static", BOOLEAN), ("method", METHOD_DEFINITION)],

    # functions
    "FormalParameters": [("items", list_of(PARAMETER)), ("rest", maybe(BINDING))],
    "FunctionBody": [("directives", list_of("Directive")), ("statements", list_of(STATEMENT))],
    "FunctionDeclaration": _function_fields() + [
        ("name", "BindingIdentifier"),
        ("params", "FormalParameters"),
        ("body", "FunctionBody"),
    ],
    "FunctionExpression": _function_fields() + [
        ("name", maybe("BindingIdentifier")),
        ("params", "FormalParameters"),
        ("body", "FunctionBody"),
    ],
    "ArrowExpression": [
        ("is_async", BOOLEAN),
        ("params", "FormalParameters"),
        ("body", union("FunctionBody", EXPRESSION)),
    ],

    # object members
    "Method": _function_fields() + [
        ("name", PROPERTY_NAME),
        ("params", "FormalParameters"),
        ("body", "FunctionBody"),
    ],
    "Getter": [("name", PROPERTY_NAME), ("body", "FunctionBody")],
    "Setter": [("name", PROPERTY_NAME), ("param", PARAMETER), ("body", "FunctionBody")],
    "DataProperty": [("name", PROPERTY_NAME), ("expression", EXPRESSION)],
    "ShorthandProperty": [("name", "IdentifierExpression")],
    "ComputedPropertyName": [("expression", EXPRESSION)],
    "StaticPropertyName": [("value", STRING)],

    # expressions
    "ArrayExpression": [("elements", list_of(maybe(union("SpreadElement", EXPRESSION))))],
    "AssignmentExpression": [("binding", SIMPLE_ASSIGNMENT_TARGET), ("expression", EXPRESSION)],
    "AwaitExpression": [("expression", EXPRESSION)],
    "BinaryExpression": [("left", EXPRESSION), ("operator", BINARY_OPERATOR), ("right", EXPRESSION)],
    "CallExpression": [("callee", MEMBER_OBJECT), ("arguments", ARGUMENTS)],
    "CompoundAssignmentExpression": [
        ("binding", SIMPLE_ASSIGNMENT_TARGET),
        ("operator", COMPOUND_ASSIGNMENT_OPERATOR),
        ("expression", EXPRESSION),
    ],
    "ComputedMemberExpression": [("object", MEMBER_OBJECT), ("expression", EXPRESSION)],
    "ConditionalExpression": [("test", EXPRESSION), ("consequent", EXPRESSION), ("alternate", EXPRESSION)],
    "IdentifierExpression": [("name", STRING)],
    "LiteralBooleanExpression": [("value", BOOLEAN)],
    "LiteralNullExpression": [],
    "LiteralNumericExpression": [("value", NUMBER)],
    "LiteralRegExpExpression": [
        ("pattern", STRING),
        ("is_global", BOOLEAN),
        ("ignore_case", BOOLEAN),
        ("multi_line", BOOLEAN),
        ("dot_all", BOOLEAN),
        ("unicode", BOOLEAN),
        ("sticky", BOOLEAN),
    ],
    "LiteralStringExpression": [("value", STRING)],
    "NewExpression": [("callee", EXPRESSION), ("arguments", ARGUMENTS)],
    "ObjectExpression": [("properties", list_of(OBJECT_PROPERTY))],
    "SpreadElement": [("expression", EXPRESSION)],
    "StaticMemberExpression": [("object", MEMBER_OBJECT), ("property", STRING)],
    "Super": [],
    "TemplateElement": [("raw_value", STRING)],
    "TemplateExpression": [("tag", maybe(EXPRESSION)), ("elements", list_of(union(EXPRESSION, "TemplateElement")))],
    "ThisExpression": [],
    "UnaryExpression": [("operator", UNARY_OPERATOR), ("operand", EXPRESSION)],
    "UpdateExpression": [
        ("is_prefix", BOOLEAN),
        ("operator", UPDATE_OPERATOR),
        ("operand", SIMPLE_ASSIGNMENT_TARGET),
    ],
    "YieldExpression": [("expression", maybe(EXPRESSION))],

    # statements
    "Block": [("statements", list_of(STATEMENT))],
    "BlockStatement": [("block", "Block")],
    "BreakStatement": [("label", maybe(STRING))],
    "CatchClause": [("binding", maybe(BINDING)), ("body", "Block")],
    "ContinueStatement": [("label", maybe(STRING))],
    "DebuggerStatement": [],
    "DoWhileStatement": [("body", STATEMENT), ("test", EXPRESSION)],
    "EmptyStatement": [],
    "ExpressionStatement": [("expression", EXPRESSION)],
    "ForStatement": [
        ("init", maybe(union("VariableDeclaration", EXPRESSION))),
        ("test", maybe(EXPRESSION)),
        ("update", maybe(EXPRESSION)),
        ("body", STATEMENT),
    ],
    "IfStatement": [("test", EXPRESSION), ("consequent", STATEMENT), ("alternate", maybe(STATEMENT))],
    "LabeledStatement": [("label", STRING), ("body", STATEMENT)],
    "ReturnStatement": [("expression", maybe(EXPRESSION))],
    "SwitchCase": [("test", EXPRESSION), ("consequent", list_of(STATEMENT))],
    "SwitchDefault": [("consequent", list_of(STATEMENT))],
    "SwitchStatement": [("discriminant", EXPRESSION), ("cases", list_of("SwitchCase"))],
    "SwitchStatementWithDefault": [
        ("discriminant", EXPRESSION),
        ("pre_default_cases", list_of("SwitchCase")),
        ("default_case", "SwitchDefault"),
        ("post_default_cases", list_of("SwitchCase")),
    ],
    "ThrowStatement": [("expression", EXPRESSION)],
    "TryCatchStatement": [("body", "Block"), ("catch_clause", "CatchClause")],
    "TryFinallyStatement": [("body", "Block"), ("catch_clause", maybe("CatchClause")), ("finalizer", "Block")],
    "VariableDeclaration": [("kind", VARIABLE_DECLARATION_KIND), ("declarators", list_of("VariableDeclarator"))],
    "VariableDeclarationStatement": [("declaration", "VariableDeclaration")],
    "VariableDeclarator": [("binding", BINDING), ("init", maybe(EXPRESSION))],
    "WhileStatement": [("test", EXPRESSION), ("body", STATEMENT)],
})


# ═══════════════════════════════════════════════════════════════════
#  BUILT TABLES
# ═══════════════════════════════════════════════════════════════════

GRAMMAR = build_table(JS_GRAMMAR)

# raw field types by name, for constructors and the validator
FIELD_TYPES: dict[str, dict[str, SpecType]] = {
    name: dict(fields) for name, fields in JS_GRAMMAR.items()
}
