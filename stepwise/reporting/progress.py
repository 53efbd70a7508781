"""Progress notifications emitted while scenarios run.

The runner and the stepper only ever call into a ``ProgressSink``; they
never read anything back. Events are plain values so a sink can render
them however it likes.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Union


@dataclass(frozen=True)
class ScenarioEvent:
    number: int
    name: str
    skipped: bool = False


@dataclass(frozen=True)
class StepEvent:
    number: int
    name: str
    skipped: bool = False


@dataclass(frozen=True)
class GatePaused:
    message: str


@dataclass(frozen=True)
class Checkpoint:
    """Something observable happened inside a step (a request hit a hook, an event fired...)."""
    number: int
    label: str
    kind: str = "step"
    data: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class Notice:
    text: str


ProgressEvent = Union[ScenarioEvent, StepEvent, GatePaused, Checkpoint, Notice]


class ProgressSink(Protocol):
    def on_scenario(self, event: ScenarioEvent) -> None: ...

    def on_step(self, event: StepEvent) -> None: ...

    def on_gate_paused(self, event: GatePaused) -> None: ...

    def on_checkpoint(self, event: Checkpoint) -> None: ...

    def on_notice(self, event: Notice) -> None: ...


class RecordingProgress:
    """Keeps every event in order. Useful in tests and for deferred rendering."""

    def __init__(self):
        self.events: list[ProgressEvent] = []

    def on_scenario(self, event: ScenarioEvent) -> None:
        self.events.append(event)

    def on_step(self, event: StepEvent) -> None:
        self.events.append(event)

    def on_gate_paused(self, event: GatePaused) -> None:
        self.events.append(event)

    def on_checkpoint(self, event: Checkpoint) -> None:
        self.events.append(event)

    def on_notice(self, event: Notice) -> None:
        self.events.append(event)

    def of_type(self, kind: type) -> list:
        return [e for e in self.events if isinstance(e, kind)]

    @property
    def scenarios_started(self) -> list[str]:
        return [e.name for e in self.of_type(ScenarioEvent) if not e.skipped]

    @property
    def scenarios_skipped(self) -> list[str]:
        return [e.name for e in self.of_type(ScenarioEvent) if e.skipped]

    @property
    def steps_started(self) -> list[str]:
        return [e.name for e in self.of_type(StepEvent) if not e.skipped]

    @property
    def steps_skipped(self) -> list[str]:
        return [e.name for e in self.of_type(StepEvent) if e.skipped]


def _tab(n: int = 1) -> str:
    return " " * (n * 3 - 1)


def _space(text: str = " ") -> str:
    return text.ljust(4)


@dataclass
class ConsoleProgress:
    """Prints progress to stdout.

    Layout::

        1. Route with auth
          1. returns the payload
             1.  [step] onRequest 0.012s
                 >   path /auth
    """
    dump_depth: int = 2
    show_elapsed: bool = True
    started_at: float = field(default_factory=time.time)

    def on_scenario(self, event: ScenarioEvent) -> None:
        if event.skipped:
            print(f"{event.number}. [skip] {event.name}")
        else:
            print(f"{event.number}. {event.name}")

    def on_step(self, event: StepEvent) -> None:
        if event.skipped:
            print(_tab(), f"{event.number}. [skip] {event.name}")
        else:
            print(_tab(), f"{event.number}. {event.name}")

    def on_gate_paused(self, event: GatePaused) -> None:
        print(_tab(), "[pause]", event.message)

    def on_checkpoint(self, event: Checkpoint) -> None:
        parts = [_tab(2), f"{event.number}.".ljust(4), f"[{event.kind}]", event.label]
        if self.show_elapsed:
            parts.append(self._elapsed())
        print(*parts)

        if event.data:
            self._dump(event.data, 4)

    def on_notice(self, event: Notice) -> None:
        print("[instructions]", event.text)

    def _elapsed(self) -> str:
        return f"{time.time() - self.started_at:.3f}s"

    def _dump(self, data: dict[str, Any], indent: int) -> None:
        """Print nested keys as bullets, stopping after ``dump_depth`` levels."""
        if indent > 4 + self.dump_depth * 2:
            return

        for key, value in data.items():
            nested = isinstance(value, dict)

            if nested:
                shown = "{...}" if value else "{}"
            elif isinstance(value, (list, tuple)):
                shown = "[...]"
            elif value is None:
                shown = "null"
            else:
                shown = value

            print(_tab(indent), _space(">"), key, shown)

            if nested:
                self._dump(value, indent + 2)
