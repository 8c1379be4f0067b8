"""
Tests for validity-filtered candidates.

    §1  Path handling
    §2  Filtering
    §3  Generated programs
"""

import sys
import os
import pytest
from hypothesis import given, settings, strategies as st

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from structshrink.codegen import generate
from structshrink.errors import PathError
from structshrink.fuzz import fuzz_program
from structshrink.nodes import make_node
from structshrink.paths import access_path, replace_at_path
from structshrink.shrink import valid_subtrees
from structshrink.subtrees import subtrees
from structshrink.validator import is_valid

from builders import (
    binding, block_stmt, body, console_log_program, declare, function, ident, member,
    module, params, ret, script, stmt,
)


def printed(trees):
    return [generate(tree) for tree in trees]


def default_export(name):
    declaration = make_node(
        "FunctionDeclaration", is_async=False, is_generator=False,
        name=binding(name), params=params(), body=body(),
    )
    return module(make_node("ExportDefault", body=declaration))


# ═══════════════════════════════════════════════════════════════════
#  §1  PATH HANDLING
# ═══════════════════════════════════════════════════════════════════

class TestPaths:

    def test_bad_path_raises_before_iteration(self):
        with pytest.raises(PathError):
            valid_subtrees(console_log_program(), ["statements", 5])

    def test_path_to_primitive_field(self):
        with pytest.raises(PathError):
            valid_subtrees(console_log_program(), ("statements", 0, "expression", "callee", "property"))

    def test_list_path(self):
        tree = console_log_program()
        candidates = valid_subtrees(tree, ["statements", 0, "expression", "arguments"])
        assert printed(candidates) == [
            "console.log()",
            "console.log(null)",
            "console.log(x)",
            "console.log(null+y)",
            "console.log(y)",
            "console.log(x+null)",
        ]

    def test_node_path_keeps_outside(self):
        tree = script(stmt(ident("a")), function("f", stmt(ident("b")), stmt(ident("c"))))
        path = ("statements", 1, "body")
        candidates = list(valid_subtrees(tree, path))
        assert candidates
        for candidate in candidates:
            assert replace_at_path(candidate, path, access_path(tree, path)) == tree

    def test_edits_confined_to_path(self):
        tree = script(stmt(ident("a")), function("f", stmt(ident("b"))))
        candidates = printed(valid_subtrees(tree, ("statements", 1, "body", "statements")))
        assert candidates == ["a;function f(){}", "a;function f(){;}", "a;function f(){null}"]

    def test_whole_tree_at_empty_path(self):
        tree = console_log_program()
        assert list(valid_subtrees(tree)) == list(valid_subtrees(tree, ()))


# ═══════════════════════════════════════════════════════════════════
#  §2  FILTERING
# ═══════════════════════════════════════════════════════════════════

class TestFiltering:

    def test_is_filtered_enumeration(self):
        tree = script(function("f", ret(ident("x"))), stmt(ident("y")))
        assert list(valid_subtrees(tree)) == [c for c in subtrees(tree) if is_valid(c)]

    def test_return_not_promoted_out_of_function(self):
        tree = script(function("f", ret()))
        assert "return" in printed(subtrees(tree))
        assert "return" not in printed(valid_subtrees(tree))

    def test_clashing_let_not_promoted(self):
        tree = script(declare("let", "x"), block_stmt(declare("let", "x")))
        assert "let x;let x" in printed(subtrees(tree))
        assert "let x;let x" not in printed(valid_subtrees(tree))

    def test_break_not_promoted_out_of_loop(self):
        loop = make_node("WhileStatement", test=ident("a"), body=make_node("BreakStatement", label=None))
        tree = script(loop)
        assert "break" in printed(subtrees(tree))
        assert "break" not in printed(valid_subtrees(tree))

    def test_unqualified_delete_only_in_sloppy_code(self):
        deleted = make_node("UnaryExpression", operator="delete", operand=member(ident("x"), "y"))
        strict = module(stmt(deleted))
        assert "delete x" in printed(subtrees(strict))
        assert "delete x" not in printed(valid_subtrees(strict))
        assert "delete x" in printed(valid_subtrees(script(stmt(deleted))))

    def test_custom_validity(self):
        seen = []

        def nothing_is_valid(tree):
            seen.append(tree)
            return False

        tree = console_log_program()
        assert list(valid_subtrees(tree, is_valid=nothing_is_valid)) == []
        assert len(seen) == len(list(subtrees(tree)))

    def test_lazy(self):
        seen = []

        def everything_is_valid(tree):
            seen.append(tree)
            return True

        candidates = valid_subtrees(console_log_program(), is_valid=everything_is_valid)
        assert seen == []
        next(candidates)
        assert len(seen) == 1


# ═══════════════════════════════════════════════════════════════════
#  §3  GENERATED PROGRAMS
# ═══════════════════════════════════════════════════════════════════

class TestGeneratedPrograms:

    @given(st.randoms(use_true_random=False), st.booleans())
    @settings(max_examples=20, deadline=None)
    def test_generated_programs_are_valid(self, rng, as_module):
        tree = fuzz_program(rng, module=as_module, max_depth=3)
        assert is_valid(tree)

    @given(st.randoms(use_true_random=False))
    @settings(max_examples=20, deadline=None)
    def test_all_candidates_valid(self, rng):
        tree = fuzz_program(rng, max_depth=3)
        for candidate in valid_subtrees(tree):
            assert is_valid(candidate)

    def test_named_default_export(self):
        tree = default_export("f")
        candidates = list(valid_subtrees(tree))
        assert candidates
        assert all(is_valid(c) for c in candidates)

    def test_anonymous_default_name_stays_in_export(self):
        tree = default_export("*default*")
        assert is_valid(tree)
        for candidate in valid_subtrees(tree):
            for item in candidate.items:
                if item.type == "FunctionDeclaration":
                    assert item.name.name != "*default*"
