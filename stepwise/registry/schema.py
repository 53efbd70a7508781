"""Scenario data models.

Defines the dataclasses held by the registry: scenarios, their steps and
their lifecycle hooks.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

Body = Callable[..., Union[None, Awaitable[Any]]]


class HookKind(str, Enum):
    """Supported lifecycle hook kinds."""
    BEFORE = "before"
    AFTER = "after"
    BEFORE_EACH = "before_each"
    AFTER_EACH = "after_each"


VALID_HOOK_KINDS = {e.value for e in HookKind}


@dataclass
class Step:
    """A single named step within a scenario."""
    id: str
    body: Optional[Body] = None
    skip: bool = False
    only: bool = False
    always: bool = False

    def __post_init__(self):
        # No body means a declared-skipped placeholder
        if self.body is None:
            self.skip = True


@dataclass
class Scenario:
    """A named group of steps plus lifecycle hooks.

    Hooks and steps are filled in while the scenario body runs. Hook sets
    are dicts used as insertion-ordered sets so that registering the same
    function twice keeps a single entry.
    """
    id: str
    body: Optional[Body] = None
    skip: bool = False
    only: bool = False
    always: bool = False
    before: dict[Body, None] = field(default_factory=dict)
    after: dict[Body, None] = field(default_factory=dict)
    before_each: dict[Body, None] = field(default_factory=dict)
    after_each: dict[Body, None] = field(default_factory=dict)
    steps: dict[str, Step] = field(default_factory=dict)

    def __post_init__(self):
        if self.body is None:
            self.skip = True

    def add_step(self, step: Step) -> None:
        """Insert a step, replacing any previous one with the same id in place."""
        self.steps[step.id] = step

    def add_hook(self, kind: Union[HookKind, str], fn: Body) -> None:
        """Add a hook of the given kind. Re-adding the same function is a no-op."""
        self._hook_set(kind).setdefault(fn, None)

    def hooks(self, kind: Union[HookKind, str]) -> list[Body]:
        """Hooks of one kind in registration order."""
        return list(self._hook_set(kind))

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    def _hook_set(self, kind: Union[HookKind, str]) -> dict[Body, None]:
        return getattr(self, HookKind(kind).value)
