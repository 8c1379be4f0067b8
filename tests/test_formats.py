"""
Tests for loading and dumping trees as plain data.

    §1  Field names
    §2  Loading Shift JSON
    §3  Round trips
    §4  Errors
"""

import sys
import os
import json
import pytest
from hypothesis import given, settings, strategies as st

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from structshrink.codegen import generate
from structshrink.errors import NodeTypeError
from structshrink.formats import from_json, from_python, to_json, to_python
from structshrink.fuzz import fuzz_program
from structshrink.nodes import make_node

from builders import binding, console_log_program, function, ident, script, stmt


CONSOLE_LOG_JSON = """
{
  "type": "Script",
  "directives": [],
  "statements": [{
    "type": "ExpressionStatement",
    "expression": {
      "type": "CallExpression",
      "callee": {
        "type": "StaticMemberExpression",
        "object": {"type": "IdentifierExpression", "name": "console"},
        "property": "log"
      },
      "arguments": [{
        "type": "BinaryExpression",
        "left": {"type": "IdentifierExpression", "name": "x"},
        "operator": "+",
        "right": {"type": "IdentifierExpression", "name": "y"}
      }]
    }
  }]
}
"""


# ═══════════════════════════════════════════════════════════════════
#  §1  FIELD NAMES
# ═══════════════════════════════════════════════════════════════════

class TestFieldNames:

    def test_camel_case(self):
        data = to_python(function("f"))
        assert list(data) == ["type", "isAsync", "isGenerator", "name", "params", "body"]
        assert data["body"] == {"type": "FunctionBody", "directives": [], "statements": []}

    def test_multi_word(self):
        default = make_node("SwitchDefault", consequent=())
        tree = make_node("SwitchStatementWithDefault", discriminant=ident("x"),
                         pre_default_cases=(), default_case=default, post_default_cases=())
        data = to_python(tree)
        assert {"preDefaultCases", "defaultCase", "postDefaultCases"} <= set(data)

    def test_super_and_global(self):
        tree = make_node("ClassDeclaration", name=binding("A"), super_class=ident("B"), elements=())
        assert to_python(tree)["super"] == {"type": "IdentifierExpression", "name": "B"}
        regexp = make_node("LiteralRegExpExpression", pattern="a", is_global=True, ignore_case=False,
                           multi_line=False, dot_all=True, unicode=False, sticky=False)
        data = to_python(regexp)
        assert data["global"] is True
        assert data["dotAll"] is True
        assert "isGlobal" not in data

    def test_lists_become_lists(self):
        data = to_python(console_log_program())
        assert isinstance(data["statements"], list)
        assert isinstance(data["statements"][0]["expression"]["arguments"], list)


# ═══════════════════════════════════════════════════════════════════
#  §2  LOADING SHIFT JSON
# ═══════════════════════════════════════════════════════════════════

class TestLoading:

    def test_console_log(self):
        tree = from_json(CONSOLE_LOG_JSON)
        assert tree == console_log_program()
        assert generate(tree) == "console.log(x+y)"

    def test_renamed_fields_load(self):
        data = {
            "type": "ClassExpression",
            "name": None,
            "super": {"type": "IdentifierExpression", "name": "B"},
            "elements": [],
        }
        tree = from_python(data)
        assert tree.super_class == ident("B")
        regexp = from_python({
            "type": "LiteralRegExpExpression", "pattern": "a+", "global": True,
            "ignoreCase": True, "multiLine": False, "dotAll": False, "unicode": False, "sticky": False,
        })
        assert generate(regexp) == "/a+/gi"

    def test_primitives_unchanged(self):
        for value in (None, 0, 1.5, "s", True):
            assert from_python(value) == value
            assert to_python(value) == value

    def test_lists_become_tuples(self):
        assert from_python([1, [2]]) == (1, (2,))


# ═══════════════════════════════════════════════════════════════════
#  §3  ROUND TRIPS
# ═══════════════════════════════════════════════════════════════════

class TestRoundTrips:

    def test_json_text(self):
        tree = from_json(CONSOLE_LOG_JSON)
        assert json.loads(to_json(tree)) == json.loads(CONSOLE_LOG_JSON)

    def test_json_kwargs(self):
        text = to_json(script(stmt(ident("a"))), indent=2, sort_keys=True)
        assert text.startswith("{\n")
        assert text.index('"directives"') < text.index('"statements"') < text.index('"type"')

    @given(st.randoms(use_true_random=False), st.booleans())
    @settings(max_examples=20, deadline=None)
    def test_generated_programs(self, rng, as_module):
        tree = fuzz_program(rng, module=as_module, max_depth=3)
        assert from_python(to_python(tree)) == tree
        assert from_json(to_json(tree)) == tree


# ═══════════════════════════════════════════════════════════════════
#  §4  ERRORS
# ═══════════════════════════════════════════════════════════════════

class TestErrors:

    @pytest.mark.parametrize("data", [
        {"name": "x"},
        {"type": "Banana"},
        {"type": "IdentifierExpression", "name": "x", "loc": None},
        {"type": "IdentifierExpression"},
        {"type": "ExpressionStatement", "expression": {"type": "EmptyStatement"}},
        {"type": "Script", "directives": [], "statements": [{"kind": "var"}]},
    ])
    def test_rejected(self, data):
        with pytest.raises(NodeTypeError):
            from_python(data)

    def test_bad_json(self):
        with pytest.raises(json.JSONDecodeError):
            from_json("{not json")
