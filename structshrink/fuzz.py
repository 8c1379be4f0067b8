"""
structshrink.fuzz — Random programs over the JavaScript subset.

The generator tracks the context it is building in (function, async,
generator, loop, switch, labels, super, strict mode) and only places a
construct where it is legal, and it never reuses a binding name.  Its
output is
meant to pass validator.is_valid(), which is what the enumeration
property tests need: a valid starting point whose candidates can then
be checked.

    rng = random.Random(7)
    tree = fuzz_program(rng, module=True, max_depth=3)

Any random.Random works, including one supplied by hypothesis through
st.randoms().
"""

import random
import string
from dataclasses import dataclass, replace
from itertools import count
from typing import Callable, Optional

from .jsgrammar import BINARY_OPERATOR, COMPOUND_ASSIGNMENT_OPERATOR, UNARY_OPERATOR, UPDATE_OPERATOR
from .nodes import Node, make_node


IDENTIFIERS = ("a", "b", "c", "x", "y", "foo", "bar", "console", "$", "_")
PROPERTY_NAMES = ("p", "q", "log", "length", "value", "then")
METHOD_NAMES = ("m", "n", "run", "size", "toString")
DEFAULT_EXPORT_NAME = "*default*"


@dataclass(frozen=True, slots=True)
class _Context:
    in_function: bool = False
    is_async: bool = False
    is_generator: bool = False
    in_loop: bool = False
    in_switch: bool = False
    labels: tuple[tuple[str, bool], ...] = ()
    super_property: bool = False
    super_call: bool = False
    strict: bool = False


class _Fuzzer:

    def __init__(self, rng: random.Random, max_depth: int):
        self.rng = rng
        self.max_depth = max_depth
        self._names = count()

    # ── helpers ──

    def chance(self, p: float) -> bool:
        return self.rng.random() < p

    def some(self, produce: Callable[[], Node], most: int = 3) -> tuple:
        return tuple(produce() for _ in range(self.rng.randint(0, most)))

    def fresh(self, prefix: str = "v") -> str:
        return f"{prefix}{next(self._names)}"

    def binding(self) -> Node:
        return make_node("BindingIdentifier", name=self.fresh())

    # ── programs ──

    def script(self) -> Node:
        directives = (make_node("Directive", raw_value="use strict"),) if self.chance(0.2) else ()
        ctx = _Context(strict=bool(directives))
        statements = tuple(self.statement(ctx, 0, declarations=True) for _ in range(self.rng.randint(1, 4)))
        return make_node("Script", directives=directives, statements=statements)

    def module(self) -> Node:
        ctx = _Context(strict=True)
        items = []
        has_default = False
        for _ in range(self.rng.randint(1, 4)):
            roll = self.rng.random()
            if roll < 0.15:
                items.append(make_node("Export", declaration=self.export_declaration(ctx)))
            elif roll < 0.25 and not has_default:
                has_default = True
                items.append(make_node("ExportDefault", body=self.export_default_body(ctx)))
            else:
                items.append(self.statement(ctx, 0, declarations=True))
        return make_node("Module", directives=(), items=tuple(items))

    def export_declaration(self, ctx: _Context) -> Node:
        roll = self.rng.random()
        if roll < 0.4:
            return self.function_declaration(ctx, 1)
        if roll < 0.6:
            return self.class_declaration(ctx, 1)
        return self.variable_declaration(ctx, 1, lexical=True)

    def export_default_body(self, ctx: _Context) -> Node:
        roll = self.rng.random()
        name = make_node("BindingIdentifier", name=DEFAULT_EXPORT_NAME) if self.chance(0.5) else None
        if roll < 0.4:
            return self.function_declaration(ctx, 1, name=name)
        if roll < 0.6:
            return self.class_declaration(ctx, 1, name=name)
        return self.expression(ctx, 1)

    # ── statements ──

    def statement(self, ctx: _Context, depth: int, *, declarations: bool = False) -> Node:
        if depth >= self.max_depth:
            return self.simple_statement(ctx, depth)

        choices = [
            self.simple_statement,
            self.simple_statement,
            self.expression_statement,
            self.block_statement,
            self.if_statement,
            self.loop_statement,
            self.labeled_statement,
            self.switch_statement,
            self.try_statement,
            lambda c, d: self.variable_declaration_statement(c, d, lexical=False),
        ]
        if declarations:
            choices += [
                lambda c, d: self.variable_declaration_statement(c, d, lexical=True),
                self.function_declaration,
                self.class_declaration,
            ]
        return self.rng.choice(choices)(ctx, depth)

    def statement_list(self, ctx: _Context, depth: int) -> tuple:
        return self.some(lambda: self.statement(ctx, depth + 1, declarations=True))

    def simple_statement(self, ctx: _Context, depth: int) -> Node:
        choices = ["expression", "empty", "throw", "debugger"]
        if ctx.in_function:
            choices.append("return")
        if ctx.in_loop or ctx.in_switch or ctx.labels:
            choices.append("break")
        if ctx.in_loop or any(is_loop for _, is_loop in ctx.labels):
            choices.append("continue")
        kind = self.rng.choice(choices)

        if kind == "expression":
            return self.expression_statement(ctx, depth)
        if kind == "empty":
            return make_node("EmptyStatement")
        if kind == "debugger":
            return make_node("DebuggerStatement")
        if kind == "throw":
            return make_node("ThrowStatement", expression=self.expression(ctx, depth + 1))
        if kind == "return":
            expression = self.expression(ctx, depth + 1) if self.chance(0.6) else None
            return make_node("ReturnStatement", expression=expression)
        if kind == "break":
            label = None
            if ctx.labels and (self.chance(0.5) or not (ctx.in_loop or ctx.in_switch)):
                label = self.rng.choice(ctx.labels)[0]
            return make_node("BreakStatement", label=label)
        loop_labels = [name for name, is_loop in ctx.labels if is_loop]
        label = None
        if loop_labels and (self.chance(0.5) or not ctx.in_loop):
            label = self.rng.choice(loop_labels)
        return make_node("ContinueStatement", label=label)

    def expression_statement(self, ctx: _Context, depth: int) -> Node:
        return make_node("ExpressionStatement", expression=self.expression(ctx, depth + 1))

    def block(self, ctx: _Context, depth: int) -> Node:
        return make_node("Block", statements=self.statement_list(ctx, depth))

    def block_statement(self, ctx: _Context, depth: int) -> Node:
        return make_node("BlockStatement", block=self.block(ctx, depth))

    def if_statement(self, ctx: _Context, depth: int) -> Node:
        alternate = self.statement(ctx, depth + 1) if self.chance(0.5) else None
        return make_node(
            "IfStatement",
            test=self.expression(ctx, depth + 1),
            consequent=self.statement(ctx, depth + 1),
            alternate=alternate,
        )

    def loop_statement(self, ctx: _Context, depth: int, body_ctx: Optional[_Context] = None) -> Node:
        body_ctx = replace(body_ctx or ctx, in_loop=True)
        body = self.statement(body_ctx, depth + 1)
        roll = self.rng.random()
        if roll < 0.4:
            return make_node("WhileStatement", test=self.expression(ctx, depth + 1), body=body)
        if roll < 0.6:
            return make_node("DoWhileStatement", body=body, test=self.expression(ctx, depth + 1))
        init = None
        if self.chance(0.5):
            init = self.variable_declaration(ctx, depth + 1, lexical=self.chance(0.5))
        elif self.chance(0.5):
            init = self.assignment(ctx, depth + 1)
        test = self.expression(ctx, depth + 1) if self.chance(0.7) else None
        update = self.expression(ctx, depth + 1) if self.chance(0.5) else None
        return make_node("ForStatement", init=init, test=test, update=update, body=body)

    def labeled_statement(self, ctx: _Context, depth: int) -> Node:
        label = self.fresh("L")
        if self.chance(0.6):
            body_ctx = replace(ctx, labels=ctx.labels + ((label, True),))
            body = self.loop_statement(ctx, depth + 1, body_ctx=body_ctx)
        else:
            body_ctx = replace(ctx, labels=ctx.labels + ((label, False),))
            body = self.block_statement(body_ctx, depth + 1)
        return make_node("LabeledStatement", label=label, body=body)

    def switch_statement(self, ctx: _Context, depth: int) -> Node:
        inner = replace(ctx, in_switch=True)

        def case() -> Node:
            return make_node(
                "SwitchCase",
                test=self.expression(ctx, depth + 1),
                consequent=self.statement_list(inner, depth),
            )

        discriminant = self.expression(ctx, depth + 1)
        if self.chance(0.5):
            return make_node("SwitchStatement", discriminant=discriminant, cases=self.some(case))
        return make_node(
            "SwitchStatementWithDefault",
            discriminant=discriminant,
            pre_default_cases=self.some(case, 2),
            default_case=make_node("SwitchDefault", consequent=self.statement_list(inner, depth)),
            post_default_cases=self.some(case, 2),
        )

    def try_statement(self, ctx: _Context, depth: int) -> Node:
        body = self.block(ctx, depth)
        catch = None
        if self.chance(0.7):
            binding = self.binding() if self.chance(0.8) else None
            catch = make_node("CatchClause", binding=binding, body=self.block(ctx, depth))
        if catch is not None and self.chance(0.5):
            return make_node("TryCatchStatement", body=body, catch_clause=catch)
        return make_node("TryFinallyStatement", body=body, catch_clause=catch, finalizer=self.block(ctx, depth))

    def variable_declaration(self, ctx: _Context, depth: int, *, lexical: bool) -> Node:
        kind = self.rng.choice(("let", "const")) if lexical else "var"

        def declarator() -> Node:
            init = self.expression(ctx, depth + 1) if kind == "const" or self.chance(0.6) else None
            return make_node("VariableDeclarator", binding=self.binding(), init=init)

        declarators = (declarator(),) + self.some(declarator, 2)
        return make_node("VariableDeclaration", kind=kind, declarators=declarators)

    def variable_declaration_statement(self, ctx: _Context, depth: int, *, lexical: bool) -> Node:
        return make_node(
            "VariableDeclarationStatement",
            declaration=self.variable_declaration(ctx, depth, lexical=lexical),
        )

    # ── functions and classes ──

    def params(self, ctx: _Context, depth: int) -> Node:
        def param() -> Node:
            if depth < self.max_depth and self.chance(0.2):
                return make_node("BindingWithDefault", binding=self.binding(), init=self.expression(ctx, depth + 1))
            return self.binding()

        rest = self.binding() if self.chance(0.15) else None
        return make_node("FormalParameters", items=self.some(param, 2), rest=rest)

    def function_body(self, ctx: _Context, depth: int) -> Node:
        return make_node("FunctionBody", directives=(), statements=self.statement_list(ctx, depth))

    def function_parts(self, ctx: _Context, depth: int, *, is_async: bool, is_generator: bool,
                       super_property: bool = False, super_call: bool = False) -> tuple[Node, Node]:
        params_ctx = _Context(
            in_function=True, super_property=super_property, super_call=super_call, strict=ctx.strict,
        )
        body_ctx = replace(params_ctx, is_async=is_async, is_generator=is_generator)
        return self.params(params_ctx, depth + 1), self.function_body(body_ctx, depth)

    def function_declaration(self, ctx: _Context, depth: int, name: Optional[Node] = None) -> Node:
        is_async, is_generator = self.chance(0.3), self.chance(0.2)
        params, body = self.function_parts(ctx, depth, is_async=is_async, is_generator=is_generator)
        return make_node(
            "FunctionDeclaration",
            is_async=is_async,
            is_generator=is_generator,
            name=name or self.binding(),
            params=params,
            body=body,
        )

    def function_expression(self, ctx: _Context, depth: int) -> Node:
        is_async, is_generator = self.chance(0.3), self.chance(0.2)
        params, body = self.function_parts(ctx, depth, is_async=is_async, is_generator=is_generator)
        return make_node(
            "FunctionExpression",
            is_async=is_async,
            is_generator=is_generator,
            name=self.binding() if self.chance(0.3) else None,
            params=params,
            body=body,
        )

    def arrow(self, ctx: _Context, depth: int) -> Node:
        is_async = self.chance(0.3)
        inner = replace(ctx, in_function=True, is_generator=False, in_loop=False, in_switch=False, labels=())
        params = self.params(replace(inner, is_async=False), depth + 1)
        body_ctx = replace(inner, is_async=is_async)
        if self.chance(0.5):
            body = self.function_body(body_ctx, depth)
        else:
            body = self.expression(body_ctx, depth + 1)
        return make_node("ArrowExpression", is_async=is_async, params=params, body=body)

    def property_name(self, ctx: _Context, depth: int, names: tuple = PROPERTY_NAMES) -> Node:
        if depth < self.max_depth and self.chance(0.2):
            return make_node("ComputedPropertyName", expression=self.expression(ctx, depth + 1))
        return make_node("StaticPropertyName", value=self.rng.choice(names))

    def method(self, ctx: _Context, depth: int, *, name: Optional[Node] = None,
               super_call: bool = False, plain: bool = False) -> Node:
        name = name or self.property_name(ctx, depth, METHOD_NAMES)
        roll = 0.0 if plain else self.rng.random()
        if roll < 0.6:
            is_async = not plain and self.chance(0.3)
            is_generator = not plain and self.chance(0.2)
            params, body = self.function_parts(
                ctx, depth, is_async=is_async, is_generator=is_generator,
                super_property=True, super_call=super_call,
            )
            return make_node(
                "Method", is_async=is_async, is_generator=is_generator, name=name, params=params, body=body,
            )
        body_ctx = _Context(in_function=True, super_property=True, strict=ctx.strict)
        if roll < 0.8:
            return make_node("Getter", name=name, body=self.function_body(body_ctx, depth))
        return make_node("Setter", name=name, param=self.binding(), body=self.function_body(body_ctx, depth))

    def class_parts(self, ctx: _Context, depth: int) -> dict:
        ctx = replace(ctx, strict=True)
        super_class = self.expression(ctx, depth + 1) if self.chance(0.3) else None
        elements = list(self.some(
            lambda: make_node("ClassElement", is_static=self.chance(0.3), method=self.method(ctx, depth + 1)),
        ))
        if self.chance(0.3):
            constructor = self.method(
                ctx, depth + 1,
                name=make_node("StaticPropertyName", value="constructor"),
                super_call=super_class is not None,
                plain=True,
            )
            elements.insert(self.rng.randint(0, len(elements)), make_node(
                "ClassElement", is_static=False, method=constructor,
            ))
        return {"super_class": super_class, "elements": tuple(elements)}

    def class_declaration(self, ctx: _Context, depth: int, name: Optional[Node] = None) -> Node:
        return make_node("ClassDeclaration", name=name or self.binding(), **self.class_parts(ctx, depth))

    def class_expression(self, ctx: _Context, depth: int) -> Node:
        name = self.binding() if self.chance(0.3) else None
        return make_node("ClassExpression", name=name, **self.class_parts(ctx, depth))

    # ── expressions ──

    def expression(self, ctx: _Context, depth: int) -> Node:
        if depth >= self.max_depth or self.chance(0.3):
            return self.leaf(ctx)

        choices = [
            self.binary, self.binary, self.call, self.static_member, self.computed_member,
            self.assignment, self.compound_assignment, self.unary, self.update,
            self.conditional, self.array, self.object, self.template, self.new,
            self.arrow, self.function_expression, self.class_expression,
        ]
        if ctx.is_async:
            choices.append(lambda c, d: make_node("AwaitExpression", expression=self.expression(c, d + 1)))
        if ctx.is_generator:
            choices.append(self.yield_expression)
        if ctx.super_property:
            choices.append(self.super_member)
        if ctx.super_call:
            choices.append(lambda c, d: make_node("CallExpression", callee=make_node("Super"), arguments=self.arguments(c, d)))
        return self.rng.choice(choices)(ctx, depth)

    def leaf(self, ctx: _Context) -> Node:
        roll = self.rng.random()
        if roll < 0.4:
            return make_node("IdentifierExpression", name=self.rng.choice(IDENTIFIERS))
        if roll < 0.55:
            value = self.rng.randint(0, 100) if self.chance(0.8) else round(self.rng.random() * 10, 2)
            return make_node("LiteralNumericExpression", value=value)
        if roll < 0.7:
            text = "".join(self.rng.choice(string.ascii_letters) for _ in range(self.rng.randint(0, 5)))
            return make_node("LiteralStringExpression", value=text)
        if roll < 0.78:
            return make_node("LiteralBooleanExpression", value=self.chance(0.5))
        if roll < 0.86:
            return make_node("LiteralNullExpression")
        if roll < 0.93:
            return make_node("ThisExpression")
        return make_node(
            "LiteralRegExpExpression",
            pattern=self.rng.choice(("a", "b+", "[0-9]", "x|y")),
            is_global=self.chance(0.3),
            ignore_case=self.chance(0.3),
            multi_line=self.chance(0.1),
            dot_all=self.chance(0.1),
            unicode=self.chance(0.1),
            sticky=self.chance(0.1),
        )

    def binary(self, ctx: _Context, depth: int) -> Node:
        return make_node(
            "BinaryExpression",
            left=self.expression(ctx, depth + 1),
            operator=self.rng.choice(BINARY_OPERATOR.arguments),
            right=self.expression(ctx, depth + 1),
        )

    def arguments(self, ctx: _Context, depth: int) -> tuple:
        def argument() -> Node:
            if self.chance(0.1):
                return make_node("SpreadElement", expression=self.expression(ctx, depth + 1))
            return self.expression(ctx, depth + 1)
        return self.some(argument)

    def call(self, ctx: _Context, depth: int) -> Node:
        return make_node("CallExpression", callee=self.expression(ctx, depth + 1), arguments=self.arguments(ctx, depth))

    def new(self, ctx: _Context, depth: int) -> Node:
        return make_node("NewExpression", callee=self.expression(ctx, depth + 1), arguments=self.arguments(ctx, depth))

    def static_member(self, ctx: _Context, depth: int) -> Node:
        return make_node(
            "StaticMemberExpression",
            object=self.expression(ctx, depth + 1),
            property=self.rng.choice(PROPERTY_NAMES),
        )

    def computed_member(self, ctx: _Context, depth: int) -> Node:
        return make_node(
            "ComputedMemberExpression",
            object=self.expression(ctx, depth + 1),
            expression=self.expression(ctx, depth + 1),
        )

    def super_member(self, ctx: _Context, depth: int) -> Node:
        return make_node("StaticMemberExpression", object=make_node("Super"), property=self.rng.choice(PROPERTY_NAMES))

    def target(self, ctx: _Context, depth: int) -> Node:
        roll = self.rng.random()
        if roll < 0.6 or depth >= self.max_depth:
            return make_node("AssignmentTargetIdentifier", name=self.rng.choice(IDENTIFIERS))
        if roll < 0.8:
            return make_node(
                "StaticMemberAssignmentTarget",
                object=self.expression(ctx, depth + 1),
                property=self.rng.choice(PROPERTY_NAMES),
            )
        return make_node(
            "ComputedMemberAssignmentTarget",
            object=self.expression(ctx, depth + 1),
            expression=self.expression(ctx, depth + 1),
        )

    def assignment(self, ctx: _Context, depth: int) -> Node:
        return make_node("AssignmentExpression", binding=self.target(ctx, depth), expression=self.expression(ctx, depth + 1))

    def compound_assignment(self, ctx: _Context, depth: int) -> Node:
        return make_node(
            "CompoundAssignmentExpression",
            binding=self.target(ctx, depth),
            operator=self.rng.choice(COMPOUND_ASSIGNMENT_OPERATOR.arguments),
            expression=self.expression(ctx, depth + 1),
        )

    def unary(self, ctx: _Context, depth: int) -> Node:
        operator = self.rng.choice(UNARY_OPERATOR.arguments)
        if operator == "delete" and ctx.strict:
            # strict code may only delete a property
            operand = self.static_member(ctx, depth)
        else:
            operand = self.expression(ctx, depth + 1)
        return make_node("UnaryExpression", operator=operator, operand=operand)

    def update(self, ctx: _Context, depth: int) -> Node:
        return make_node(
            "UpdateExpression",
            is_prefix=self.chance(0.5),
            operator=self.rng.choice(UPDATE_OPERATOR.arguments),
            operand=self.target(ctx, depth),
        )

    def conditional(self, ctx: _Context, depth: int) -> Node:
        return make_node(
            "ConditionalExpression",
            test=self.expression(ctx, depth + 1),
            consequent=self.expression(ctx, depth + 1),
            alternate=self.expression(ctx, depth + 1),
        )

    def array(self, ctx: _Context, depth: int) -> Node:
        def element() -> Optional[Node]:
            roll = self.rng.random()
            if roll < 0.1:
                return None
            if roll < 0.2:
                return make_node("SpreadElement", expression=self.expression(ctx, depth + 1))
            return self.expression(ctx, depth + 1)
        return make_node("ArrayExpression", elements=self.some(element))

    def object(self, ctx: _Context, depth: int) -> Node:
        def prop() -> Node:
            roll = self.rng.random()
            if roll < 0.5:
                return make_node(
                    "DataProperty",
                    name=self.property_name(ctx, depth + 1),
                    expression=self.expression(ctx, depth + 1),
                )
            if roll < 0.7:
                return make_node(
                    "ShorthandProperty",
                    name=make_node("IdentifierExpression", name=self.rng.choice(IDENTIFIERS)),
                )
            return self.method(ctx, depth + 1)
        return make_node("ObjectExpression", properties=self.some(prop))

    def template(self, ctx: _Context, depth: int) -> Node:
        def text() -> Node:
            raw = "".join(self.rng.choice(string.ascii_lowercase + " ") for _ in range(self.rng.randint(0, 4)))
            return make_node("TemplateElement", raw_value=raw)

        elements = [text()]
        for _ in range(self.rng.randint(0, 2)):
            elements += [self.expression(ctx, depth + 1), text()]
        tag = self.expression(ctx, depth + 1) if self.chance(0.2) else None
        return make_node("TemplateExpression", tag=tag, elements=tuple(elements))

    def yield_expression(self, ctx: _Context, depth: int) -> Node:
        expression = self.expression(ctx, depth + 1) if self.chance(0.7) else None
        return make_node("YieldExpression", expression=expression)


# ═══════════════════════════════════════════════════════════════════
#  ENTRY POINTS
# ═══════════════════════════════════════════════════════════════════

def fuzz_program(rng: Optional[random.Random] = None, *, module: bool = False, max_depth: int = 4) -> Node:
    """A random Script (or Module) no deeper than roughly `max_depth` levels of nesting."""
    fuzzer = _Fuzzer(rng or random.Random(), max_depth)
    return fuzzer.module() if module else fuzzer.script()


def fuzz_script(rng: Optional[random.Random] = None, *, max_depth: int = 4) -> Node:
    return fuzz_program(rng, module=False, max_depth=max_depth)


def fuzz_module(rng: Optional[random.Random] = None, *, max_depth: int = 4) -> Node:
    return fuzz_program(rng, module=True, max_depth=max_depth)
