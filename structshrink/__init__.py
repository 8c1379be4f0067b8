"""
structshrink — Grammar-aware test-case reduction for syntax trees
=================================================================

Given a tree with some property ("crashes the engine", "still
miscompiles"), find a smaller tree with the same property:

    best = trio.run(shrink, tree, still_crashes)

Candidates are produced by structural edits that respect the grammar:
dropping a list element, bubbling a node up to an ancestor position
that admits it, replacing an expression with `null` or a statement with
`;`, and a table of per-type canonicalisations.  Outer edits come
first, so large deletions are tried before small rewrites.

  • subtrees          every tree one edit away, breadth-first
  • valid_subtrees    the same, filtered by whole-tree validity
  • shrink            first-improvement search to a local minimum
  • lookahead_by_size smallest-first reordering in a bounded window

Trees are immutable dataclasses in Shift AST shape; codegen prints
them, fuzz generates them, formats loads them from Shift JSON.
"""

from structshrink.errors import (
    StructShrinkError,
    GrammarError,
    PathError,
    NodeTypeError,
    PreconditionError,
)
from structshrink.grammar import build_table, raw_grammar, statement_lists
from structshrink.jsgrammar import GRAMMAR
from structshrink.nodes import Node, contains_type, make_node
from structshrink.paths import access_path, replace_at_path
from structshrink.subtrees import subtrees
from structshrink.lookahead import estimated_size, lookahead_by_size
from structshrink.validator import EarlyError, is_valid, validate
from structshrink.shrink import shrink, valid_subtrees
from structshrink.codegen import generate
from structshrink.fuzz import fuzz_module, fuzz_program, fuzz_script
from structshrink.formats import from_json, to_json, from_python, to_python

__version__ = "0.1.0"
__all__ = [
    "StructShrinkError", "GrammarError", "PathError", "NodeTypeError", "PreconditionError",
    "build_table", "raw_grammar", "statement_lists", "GRAMMAR",
    "Node", "make_node", "contains_type",
    "access_path", "replace_at_path",
    "subtrees", "valid_subtrees", "shrink",
    "estimated_size", "lookahead_by_size",
    "EarlyError", "is_valid", "validate",
    "generate",
    "fuzz_program", "fuzz_script", "fuzz_module",
    "from_json", "to_json", "from_python", "to_python",
]
