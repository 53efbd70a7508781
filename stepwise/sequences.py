"""Small list helpers for building step tables in scenario files.

None of them mutate their input.
"""

from typing import Iterable, TypeVar

T = TypeVar("T")


def insert(seq: Iterable[T], index: int, *items: T) -> list[T]:
    """Copy of ``seq`` with ``items`` inserted before position ``index``."""
    values = list(seq)
    return values[:index] + list(items) + values[index:]


def remove(seq: Iterable[T], *indexes: int) -> list[T]:
    """Copy of ``seq`` without the elements at ``indexes`` (negative indexes allowed)."""
    values = list(seq)
    dropped = {i % len(values) for i in indexes if -len(values) <= i < len(values)}
    return [v for i, v in enumerate(values) if i not in dropped]


def pick(seq: Iterable[T], *items: T) -> list[T]:
    """Elements of ``seq`` equal to one of ``items``, in ``seq`` order."""
    return [v for v in seq if v in items]


def omit(seq: Iterable[T], *items: T) -> list[T]:
    """Elements of ``seq`` not equal to any of ``items``."""
    return [v for v in seq if v not in items]
