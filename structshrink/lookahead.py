"""
structshrink.lookahead — Best-first reordering inside a bounded window.
"""

import heapq
from itertools import count, islice
from typing import Any, Callable, Iterable, Iterator, TypeVar

from .nodes import Node


T = TypeVar("T")

_EXHAUSTED = object()


def estimated_size(tree: Any) -> int:
    """
    Structural weight of a tree, a cheap proxy for its printed length.

    A node weighs 1 plus its fields, a list 1 plus its elements, a
    string its length; any other primitive weighs nothing.
    """
    if isinstance(tree, Node):
        return 1 + sum(estimated_size(value) for _, value in tree.fields())
    if isinstance(tree, tuple):
        return 1 + sum(estimated_size(value) for value in tree)
    if isinstance(tree, str):
        return len(tree)
    return 0


def lookahead_by_size(candidates: Iterable[T], window: int, *,
                      key: Callable[[T], Any] = estimated_size) -> Iterator[T]:
    """
    Yield `candidates` smallest-first within a sliding window.

    Up to `window` items are buffered; the smallest is yielded and one
    more is pulled from the input.  Equal keys keep arrival order.  The
    same items come out, only the order changes.
    """
    if window < 1:
        raise ValueError(f"window must be at least 1, got {window}")
    return _reorder(iter(candidates), window, key)


def _reorder(candidates: Iterator[T], window: int, key: Callable[[T], Any]) -> Iterator[T]:
    heap: list[tuple[Any, int, T]] = []
    arrival = count()

    for item in islice(candidates, window):
        heapq.heappush(heap, (key(item), next(arrival), item))

    while heap:
        yield heapq.heappop(heap)[2]
        item = next(candidates, _EXHAUSTED)
        if item is not _EXHAUSTED:
            heapq.heappush(heap, (key(item), next(arrival), item))
