"""
Tests for the shrink loop.

    §1  Canonical results from hand-written programs
    §2  Canonical results from generated programs
    §3  Shrinking below a path
    §4  Contract (precondition, callbacks, errors, async predicates)
    §5  Lookahead
"""

import sys
import os
import logging
import random
from functools import partial

import pytest
import trio

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from structshrink.codegen import generate
from structshrink.errors import PathError, PreconditionError
from structshrink.fuzz import fuzz_script
from structshrink.nodes import contains_type, make_node
from structshrink.shrink import shrink, valid_subtrees
from structshrink.validator import is_valid

from builders import (
    binary, binding, block_stmt, body, call, declare, function, ident,
    member, null, num, params, ret, script, stmt, string, template, throw,
)


def run_shrink(tree, predicate, **kwargs):
    return trio.run(partial(shrink, tree, predicate, **kwargs))


def containing(type_name):
    return partial(contains_type, type_name)


def static_name(value):
    return make_node("StaticPropertyName", value=value)


def class_declaration(name, *methods):
    elements = tuple(make_node("ClassElement", is_static=False, method=m) for m in methods)
    return make_node("ClassDeclaration", name=binding(name), super_class=None, elements=elements)


def generated_programs(type_name, n, *, max_depth=3, limit=5000):
    """The first `n` seeded scripts that contain `type_name` and are valid."""
    found = []
    for seed in range(limit):
        tree = fuzz_script(random.Random(seed), max_depth=max_depth)
        if contains_type(type_name, tree) and is_valid(tree):
            found.append(tree)
            if len(found) == n:
                break
    assert len(found) == n, f"only {len(found)} generated programs contain {type_name}"
    return found


CANONICAL = {
    "ReturnStatement": "(function(){return})",
    "AwaitExpression": "(async function(){await null})",
    "ThrowStatement": "throw null",
    "TemplateExpression": "``",
    "LiteralStringExpression": '("")',
}


# ═══════════════════════════════════════════════════════════════════
#  §1  CANONICAL RESULTS FROM HAND-WRITTEN PROGRAMS
# ═══════════════════════════════════════════════════════════════════

def _getter_with_nested_return():
    """class A { get p() { if (x) { return y; } } }"""
    test = make_node(
        "IfStatement", test=ident("x"), consequent=block_stmt(ret(ident("y"))), alternate=None,
    )
    return script(class_declaration("A", make_node("Getter", name=static_name("p"), body=body(test))))


def _return_with_directive():
    """function outer() { function inner(a, b) { "use strict"; return a + b; } }"""
    inner = make_node(
        "FunctionDeclaration", is_async=False, is_generator=True,
        name=binding("inner"), params=params("a", "b"),
        body=make_node(
            "FunctionBody",
            directives=(make_node("Directive", raw_value="use strict"),),
            statements=(ret(binary(ident("a"), "+", ident("b"))),),
        ),
    )
    return script(function("outer", inner), stmt(ident("tail")))


def _await_in_arguments():
    """async function f() { g(await x); }"""
    return script(function("f", stmt(call(ident("g"), make_node("AwaitExpression", expression=ident("x")))),
                           is_async=True))


def _await_in_arrow():
    """x = async () => await y;"""
    arrow = make_node(
        "ArrowExpression", is_async=True, params=params(),
        body=make_node("AwaitExpression", expression=ident("y")),
    )
    target = make_node("AssignmentTargetIdentifier", name="x")
    return script(stmt(make_node("AssignmentExpression", binding=target, expression=arrow)))


def _await_in_method():
    """class A { async m() { await x; } }"""
    method = make_node(
        "Method", is_async=True, is_generator=False, name=static_name("m"), params=params(),
        body=body(stmt(make_node("AwaitExpression", expression=ident("x")))),
    )
    return script(class_declaration("A", method))


def _throw_in_try():
    """function f() { try { throw e; } catch (e) {} }"""
    statement = make_node(
        "TryCatchStatement",
        body=make_node("Block", statements=(throw(ident("e")),)),
        catch_clause=make_node("CatchClause", binding=binding("e"), body=make_node("Block", statements=())),
    )
    return script(function("f", statement))


def _throw_in_loop():
    """while (x) { if (y) throw z; }"""
    test = make_node("IfStatement", test=ident("y"), consequent=throw(ident("z")), alternate=None)
    return script(make_node("WhileStatement", test=ident("x"), body=block_stmt(test)))


def _template_argument():
    """f(`a${x}b`);"""
    return script(stmt(call(ident("f"), template("a", ident("x"), "b"))))


def _tagged_template():
    """tag`x`;"""
    return script(stmt(template("x", tag=ident("tag"))))


def _string_initialiser():
    """let s = "abc";"""
    return script(declare("let", "s", string("abc")))


def _string_property():
    """({p: "v"});"""
    prop = make_node("DataProperty", name=static_name("p"), expression=string("v"))
    return script(stmt(make_node("ObjectExpression", properties=(prop,))))


class TestHandWritten:

    @pytest.mark.parametrize("type_name,make", [
        ("ReturnStatement", _getter_with_nested_return),
        ("ReturnStatement", _return_with_directive),
        ("AwaitExpression", _await_in_arguments),
        ("AwaitExpression", _await_in_arrow),
        ("AwaitExpression", _await_in_method),
        ("ThrowStatement", _throw_in_try),
        ("ThrowStatement", _throw_in_loop),
        ("TemplateExpression", _template_argument),
        ("TemplateExpression", _tagged_template),
        ("LiteralStringExpression", _string_initialiser),
        ("LiteralStringExpression", _string_property),
    ])
    def test_canonical(self, type_name, make):
        tree = make()
        assert is_valid(tree)
        assert generate(run_shrink(tree, containing(type_name))) == CANONICAL[type_name]

    def test_result_is_local_minimum(self):
        predicate = containing("ReturnStatement")
        result = run_shrink(_getter_with_nested_return(), predicate)
        assert is_valid(result)
        assert not any(predicate(candidate) for candidate in valid_subtrees(result))

    def test_already_minimal(self):
        tree = script(throw(null()))
        assert run_shrink(tree, containing("ThrowStatement")) is tree


# ═══════════════════════════════════════════════════════════════════
#  §2  CANONICAL RESULTS FROM GENERATED PROGRAMS
# ═══════════════════════════════════════════════════════════════════

class TestGenerated:

    @pytest.mark.parametrize("type_name", [
        "ReturnStatement",
        "ThrowStatement",
        "TemplateExpression",
        "LiteralStringExpression",
    ])
    def test_canonical(self, type_name):
        for tree in generated_programs(type_name, 2):
            assert generate(run_shrink(tree, containing(type_name))) == CANONICAL[type_name]


# ═══════════════════════════════════════════════════════════════════
#  §3  SHRINKING BELOW A PATH
# ═══════════════════════════════════════════════════════════════════

class TestSubpath:

    PATH = ["statements", 0, "body", "statements"]

    def test_throw_inside_wrapper(self):
        inner = function("g", throw(ident("b")))
        wrapper = make_node(
            "FunctionDeclaration", is_async=False, is_generator=False, name=binding("wrapper"),
            params=params("p"), body=body(stmt(ident("a")), inner, stmt(ident("c"))),
        )
        tree = script(wrapper, stmt(ident("outside")))
        result = run_shrink(tree, containing("ThrowStatement"), path=self.PATH)
        assert generate(result) == "function wrapper(p){throw null}outside"

    def test_generated_statements(self):
        for program in generated_programs("ThrowStatement", 2):
            tree = script(function("wrapper", *program.statements))
            assert is_valid(tree)
            result = run_shrink(tree, containing("ThrowStatement"), path=self.PATH)
            assert generate(result) == "function wrapper(){throw null}"

    def test_bad_path(self):
        tree = script(throw(null()))
        with pytest.raises(PathError):
            run_shrink(tree, containing("ThrowStatement"), path=["statements", 1])


# ═══════════════════════════════════════════════════════════════════
#  §4  CONTRACT
# ═══════════════════════════════════════════════════════════════════

class TestContract:

    def test_precondition(self):
        calls = []

        def never(tree):
            calls.append(tree)
            return False

        with pytest.raises(PreconditionError):
            run_shrink(script(stmt(ident("x"))), never)
        assert len(calls) == 1

    def test_async_predicate(self):
        async def has_throw(tree):
            await trio.sleep(0)
            return contains_type("ThrowStatement", tree)

        result = run_shrink(_throw_in_loop(), has_throw)
        assert generate(result) == "throw null"

    def test_predicate_error_propagates(self):
        calls = []

        def flaky(tree):
            calls.append(tree)
            if len(calls) > 1:
                raise RuntimeError("oracle crashed")
            return True

        with pytest.raises(RuntimeError, match="oracle crashed"):
            run_shrink(script(stmt(ident("x"))), flaky)

    def test_callbacks(self):
        tested, improved = [], []
        result = run_shrink(
            _template_argument(), containing("TemplateExpression"),
            on_candidate=tested.append, on_improved=improved.append,
        )
        assert improved
        assert improved[-1] is result
        assert len(tested) > len(improved)
        assert all(any(t is i for t in tested) for i in improved)

    def test_callback_error_propagates(self):
        def explode(tree):
            raise KeyError("stop")

        with pytest.raises(KeyError):
            run_shrink(_template_argument(), containing("TemplateExpression"), on_candidate=explode)

    def test_custom_validity(self):
        # with nothing considered valid, no candidate is ever tried
        tested = []
        tree = _template_argument()
        result = run_shrink(
            tree, containing("TemplateExpression"),
            is_valid=lambda t: False, on_candidate=tested.append,
        )
        assert result is tree
        assert tested == []

    def test_input_untouched(self):
        tree = _throw_in_try()
        before = generate(tree)
        run_shrink(tree, containing("ThrowStatement"))
        assert generate(tree) == before

    def test_logging(self, caplog):
        caplog.set_level(logging.DEBUG, logger="structshrink.shrink")
        run_shrink(_throw_in_loop(), containing("ThrowStatement"))
        messages = [r.getMessage() for r in caplog.records]
        assert any(m.startswith("shrinking Script") for m in messages)
        assert any(m.startswith("done:") for m in messages)

    def test_logging_without_improvement(self, caplog):
        caplog.set_level(logging.INFO, logger="structshrink.shrink")
        run_shrink(script(throw(null())), containing("ThrowStatement"))
        assert any(r.getMessage().startswith("could not improve") for r in caplog.records)


# ═══════════════════════════════════════════════════════════════════
#  §5  LOOKAHEAD
# ═══════════════════════════════════════════════════════════════════

class TestLookahead:

    @pytest.mark.parametrize("type_name,make", [
        ("ReturnStatement", _getter_with_nested_return),
        ("AwaitExpression", _await_in_arrow),
        ("ThrowStatement", _throw_in_try),
    ])
    def test_same_canonical_result(self, type_name, make):
        result = run_shrink(make(), containing(type_name), lookahead=10)
        assert generate(result) == CANONICAL[type_name]

    def test_fewer_candidates_on_wide_programs(self):
        statements = [stmt(call(member(ident("f"), "p"), num(i))) for i in range(8)]
        tree = script(*statements, throw(ident("x")))
        plain, ahead = [], []
        run_shrink(tree, containing("ThrowStatement"), on_candidate=plain.append)
        run_shrink(tree, containing("ThrowStatement"), on_candidate=ahead.append, lookahead=20)
        assert ahead
        assert len(ahead) <= len(plain)

    def test_bad_window(self):
        with pytest.raises(ValueError):
            run_shrink(_throw_in_loop(), containing("ThrowStatement"), lookahead=0)
