"""Scenario registry and the per-scenario registration surface.

Scenario files declare scenarios with ``given``. Nothing runs at
declaration time; the runner later calls each scenario body with a
``ScenarioContext`` through which the body declares its steps and hooks::

    @given("Route with auth")
    async def route_with_auth(s):
        s.before_each(reset_credentials)

        @s.it("returns the payload")
        async def _():
            ...
"""

from typing import Any, Awaitable, Callable, Iterator, Optional, Union

from .schema import Body, HookKind, Scenario, Step


class RegistrationError(RuntimeError):
    """Raised when steps or hooks are registered outside a running scenario body."""


class Declarer:
    """Callable with ``skip`` / ``only`` / ``always`` modifiers.

    Every form registers immediately when given a body and returns it, or
    returns a decorator when the body is omitted. ``skip`` with no body
    registers a placeholder straight away so that a bare ``given.skip(name)``
    still shows up as skipped.
    """

    def __init__(self, register: Callable[..., None]):
        self._register = register

    def __call__(self, name: str, body: Optional[Body] = None):
        return self._declare(name, body)

    def skip(self, name: str, body: Optional[Body] = None):
        self._register(name, body, skip=True)
        if body is None:
            return self._decorator(name, skip=True)
        return body

    def only(self, name: str, body: Optional[Body] = None):
        return self._declare(name, body, only=True)

    def always(self, name: str, body: Optional[Body] = None):
        return self._declare(name, body, always=True)

    def _declare(self, name: str, body: Optional[Body], **flags: bool):
        if body is None:
            return self._decorator(name, **flags)
        self._register(name, body, **flags)
        return body

    def _decorator(self, name: str, **flags: bool):
        def decorator(fn: Body) -> Body:
            self._register(name, fn, **flags)
            return fn
        return decorator


class Registry:
    """Insertion-ordered collection of declared scenarios.

    Re-registering an id replaces the whole entry (flags are not merged) but
    keeps the slot of the first registration, so run order is the order in
    which ids were first seen.
    """

    def __init__(self):
        self.scenarios: dict[str, Scenario] = {}
        self.given = Declarer(self.register_scenario)

    def register_scenario(
        self,
        id: str,
        body: Optional[Body] = None,
        *,
        skip: bool = False,
        only: bool = False,
        always: bool = False,
    ) -> Scenario:
        scenario = Scenario(id=id, body=body, skip=skip, only=only, always=always)
        self.scenarios[id] = scenario
        return scenario

    def clear(self) -> None:
        self.scenarios.clear()

    def __len__(self) -> int:
        return len(self.scenarios)

    def __iter__(self) -> Iterator[Scenario]:
        return iter(list(self.scenarios.values()))

    def __contains__(self, id: object) -> bool:
        return id in self.scenarios

    def __getitem__(self, id: str) -> Scenario:
        return self.scenarios[id]


class ScenarioContext:
    """Registration surface handed to one scenario body.

    ``it`` and the hook functions write into this scenario only and are
    accepted only until ``close()``; the runner closes the context as soon
    as the body returns. Pending-work tracking and checkpoints stay usable
    afterwards since steps and hooks call them while they run.
    """

    def __init__(
        self,
        scenario: Scenario,
        stepper: Any,
        checkpoint: Optional[Callable[..., None]] = None,
    ):
        self.scenario = scenario
        self._stepper = stepper
        self._checkpoint = checkpoint
        self._open = True
        self.it = Declarer(self._register_step)

    @property
    def name(self) -> str:
        return self.scenario.id

    @property
    def is_open(self) -> bool:
        return self._open

    def close(self) -> None:
        self._open = False

    def before(self, fn: Body) -> Body:
        return self.hook(HookKind.BEFORE, fn)

    def after(self, fn: Body) -> Body:
        return self.hook(HookKind.AFTER, fn)

    def before_each(self, fn: Body) -> Body:
        return self.hook(HookKind.BEFORE_EACH, fn)

    def after_each(self, fn: Body) -> Body:
        return self.hook(HookKind.AFTER_EACH, fn)

    def hook(self, kind: Union[HookKind, str], fn: Body) -> Body:
        self._ensure_open(str(getattr(kind, "value", kind)))
        try:
            self.scenario.add_hook(kind, fn)
        except ValueError:
            raise RegistrationError(f"Unknown hook kind '{kind}'") from None
        return fn

    def track(self, awaitable: Awaitable[Any]):
        """Register out-of-band work the runner must wait for before the next step."""
        return self._stepper.track(awaitable)

    def requesting(self, key: Any):
        return self._stepper.requesting(key)

    def responded(self, key: Any) -> None:
        self._stepper.responded(key)

    def checkpoint(self, label: str, data: Optional[dict] = None, kind: str = "step") -> None:
        """Report that something observable happened inside the current step."""
        if self._checkpoint is not None:
            self._checkpoint(label, data, kind)

    def _register_step(
        self,
        id: str,
        body: Optional[Body] = None,
        *,
        skip: bool = False,
        only: bool = False,
        always: bool = False,
    ) -> None:
        self._ensure_open("it")
        self.scenario.add_step(Step(id=id, body=body, skip=skip, only=only, always=always))

    def _ensure_open(self, what: str) -> None:
        if not self._open:
            raise RegistrationError(
                f"{what}() called outside the body of scenario '{self.scenario.id}'"
            )


default_registry = Registry()
