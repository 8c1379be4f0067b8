"""
structshrink.shrink — Grammar-filtered candidates and the shrink loop.

valid_subtrees() turns the raw single-edit enumeration into a sequence
of whole trees that pass a validity predicate.  shrink() repeatedly
takes the first such tree the caller's predicate still accepts, until a
full pass accepts nothing: the result is a local minimum.

    best = await shrink(tree, lambda t: "ReturnStatement" in kinds(t))

The predicate may be a plain function or a coroutine function; it is
awaited one candidate at a time.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Iterator, Optional, Sequence, Union

from . import validator
from .errors import PathError, PreconditionError
from .grammar import FieldType
from .jsgrammar import GRAMMAR
from .lookahead import lookahead_by_size
from .nodes import Node
from .paths import Path, Step, access_path, replace_at_path
from .subtrees import subtrees


logger = logging.getLogger(__name__)

Predicate = Callable[[Any], Union[bool, Awaitable[bool]]]


# ═══════════════════════════════════════════════════════════════════
#  VALID SUBTREES
# ═══════════════════════════════════════════════════════════════════

def _field_type(owner: Any, field: Step, path: Path) -> FieldType:
    fields = GRAMMAR.get(getattr(owner, "type", None), {})
    if field not in fields:
        raise PathError(f"{path!r} does not lead to a node position", path)
    return fields[field]


def _resolve(tree: Any, path: Path) -> tuple[Any, Optional[FieldType]]:
    """The value at `path` and the declared type of its position."""
    if not path:
        return tree, None
    target = access_path(tree, path)
    parent = access_path(tree, path[:-1])
    if isinstance(parent, tuple):
        # a list at the root carries no type information
        if len(path) == 1:
            return target, None
        owner = access_path(tree, path[:-2])
        return target, _field_type(owner, path[-2], path).argument
    return target, _field_type(parent, path[-1], path)


def valid_subtrees(tree: Any, path: Sequence[Step] = (), *,
                   is_valid: Callable[[Any], bool] = validator.is_valid) -> Iterator[Any]:
    """
    Whole trees one edit away at `path` that `is_valid` accepts.

    The whole tree is required because validity is a property of whole
    programs.  The path is resolved before this returns, so a path that
    does not lead into `tree` raises PathError here rather than looking
    like an empty sequence.
    """
    path = tuple(path)
    target, field_type = _resolve(tree, path)
    return _filtered(tree, path, target, field_type, is_valid)


def _filtered(tree: Any, path: Path, target: Any, field_type: Optional[FieldType],
              is_valid: Callable[[Any], bool]) -> Iterator[Any]:
    produced = rejected = 0
    try:
        for candidate in subtrees(target, field_type):
            produced += 1
            whole = replace_at_path(tree, path, candidate)
            if not is_valid(whole):
                rejected += 1
                continue
            yield whole
    finally:
        logger.debug("enumerated %d candidates at %r, %d rejected as invalid", produced, path, rejected)


# ═══════════════════════════════════════════════════════════════════
#  SHRINK LOOP
# ═══════════════════════════════════════════════════════════════════

async def _holds(predicate: Predicate, tree: Any) -> bool:
    result = predicate(tree)
    if inspect.isawaitable(result):
        result = await result
    return bool(result)


async def shrink(tree: Node, is_still_good: Predicate, *,
                 path: Sequence[Step] = (),
                 is_valid: Callable[[Any], bool] = validator.is_valid,
                 on_candidate: Optional[Callable[[Any], None]] = None,
                 on_improved: Optional[Callable[[Any], None]] = None,
                 lookahead: Optional[int] = None) -> Any:
    """
    Reduce `tree` while `is_still_good` keeps holding.

    Each pass walks valid_subtrees(best, path) and adopts the first
    candidate the predicate accepts, then starts a new pass from it.  A
    pass that accepts nothing ends the search.

    on_candidate is called before each candidate is tested and
    on_improved after one is accepted; neither affects the result.  A
    positive `lookahead` reorders each pass smallest-first within a
    window of that many candidates.

    Raises PreconditionError if `tree` itself is not good.  Anything the
    predicate or the callbacks raise propagates unchanged.
    """
    path = tuple(path)
    if not await _holds(is_still_good, tree):
        raise PreconditionError("input tree does not satisfy the predicate")

    logger.info("shrinking %s at path %r", tree.type if isinstance(tree, Node) else type(tree).__name__, path)
    best = tree
    improvements = tested = passes = 0

    while True:
        passes += 1
        candidates = valid_subtrees(best, path, is_valid=is_valid)
        if lookahead is not None:
            candidates = lookahead_by_size(candidates, lookahead)
        logger.debug("pass %d", passes)

        for candidate in candidates:
            if on_candidate is not None:
                on_candidate(candidate)
            tested += 1
            if await _holds(is_still_good, candidate):
                improvements += 1
                logger.debug("improvement %d after %d candidates", improvements, tested)
                if on_improved is not None:
                    on_improved(candidate)
                best = candidate
                break
        else:
            break

    if improvements:
        logger.info("done: %d improvements, %d candidates tested over %d passes", improvements, tested, passes)
    else:
        logger.info("could not improve: %d candidates tested", tested)
    return best
