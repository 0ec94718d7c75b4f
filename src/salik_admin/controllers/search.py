from collections.abc import Callable, Iterable
from typing import TypeVar

T = TypeVar("T")


def substring_filter(
    items: Iterable[T], term: str, fields: Callable[[T], Iterable[str | None]]
) -> list[T]:
    """Keep items where any of ``fields(item)`` contains ``term``, ignoring case.

    An empty term keeps everything. Runs purely on the cached collection.
    """
    needle = term.strip().lower()
    if not needle:
        return list(items)
    return [
        item
        for item in items
        if any(needle in (value or "").lower() for value in fields(item))
    ]
