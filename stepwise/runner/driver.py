"""Scenario driver - runs declared scenarios and their steps in order.

For each scenario selected for this run:
1. Call the scenario body with a fresh ScenarioContext (declares steps and hooks)
2. Run ``before`` hooks
3. For each selected step: wait at the gate, run ``before_each`` hooks,
   the step body, wait for tracked pending work, run ``after_each`` hooks
4. Run ``after`` hooks

Errors raised by bodies or hooks are not caught: they abort the whole run.
"""

import inspect
import time
from dataclasses import dataclass
from typing import Any, Optional

from ..config import RunnerConfig
from ..registry.registry import Registry, ScenarioContext, default_registry
from ..registry.schema import Body, HookKind, Scenario
from ..registry.selector import resolve
from ..reporting.progress import (
    Checkpoint,
    ConsoleProgress,
    ProgressSink,
    ScenarioEvent,
    StepEvent,
)
from ..stepper.gate import Stepper


@dataclass
class RunCounters:
    """Progress numbering. Owned by the Runner; never used for control flow."""
    scenario_no: int = 0
    step_no: int = 0
    checkpoint_no: int = 0


@dataclass
class RunResult:
    """Outcome of a complete run."""
    exit_code: int = 0
    scenarios_run: int = 0
    scenarios_skipped: int = 0
    steps_run: int = 0
    steps_skipped: int = 0
    duration_ms: int = 0
    stepped: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0


async def _invoke(fn: Optional[Body], *args: Any) -> None:
    """Call a sync or async body and wait for it."""
    if fn is None:
        return

    result = fn(*args)
    if inspect.isawaitable(result):
        await result


class Runner:
    """Runs every scenario of a registry once, in registration order."""

    def __init__(
        self,
        registry: Registry,
        stepper: Optional[Stepper] = None,
        progress: Optional[ProgressSink] = None,
    ):
        """Initialize the runner.

        Args:
            registry: Declared scenarios. Cleared once the run completes.
            stepper: Gate to pause at (default: free-running gate).
            progress: Progress sink (default: ConsoleProgress).
        """
        self.registry = registry
        self.progress = progress or ConsoleProgress()
        self.stepper = stepper or Stepper(self.progress)
        self.counters = RunCounters()

    async def run(self) -> RunResult:
        """Execute the registry to completion.

        Returns:
            RunResult with counts and the exit status for the host process.
        """
        start_time = time.time()
        result = RunResult()
        skips = resolve(self.registry.scenarios)

        for scenario in self.registry:
            self.counters.step_no = 0

            if skips[scenario.id]:
                self.counters.scenario_no += 1
                self.progress.on_scenario(
                    ScenarioEvent(self.counters.scenario_no, scenario.id, skipped=True)
                )
                result.scenarios_skipped += 1
                continue

            await self._run_scenario(scenario, result)
            result.scenarios_run += 1

        result.exit_code = self.stepper.shutdown()
        result.stepped = self.stepper.engaged
        result.duration_ms = int((time.time() - start_time) * 1000)

        self.registry.clear()
        return result

    async def _run_scenario(self, scenario: Scenario, result: RunResult) -> None:
        context = ScenarioContext(scenario, self.stepper, self._checkpoint)
        await _invoke(scenario.body, context)
        context.close()

        self.counters.scenario_no += 1
        self.progress.on_scenario(ScenarioEvent(self.counters.scenario_no, scenario.id))

        await self._run_hooks(scenario, HookKind.BEFORE)

        skips = resolve(scenario.steps)

        for step in list(scenario.steps.values()):
            self.counters.checkpoint_no = 0

            if skips[step.id]:
                self.counters.step_no += 1
                self.progress.on_step(StepEvent(self.counters.step_no, step.id, skipped=True))
                result.steps_skipped += 1
                continue

            await self.stepper.next(f"Next step: {step.id}")

            self.counters.step_no += 1
            self.progress.on_step(StepEvent(self.counters.step_no, step.id))

            await self._run_hooks(scenario, HookKind.BEFORE_EACH)
            await _invoke(step.body)

            # Work started by the step may still be in flight; settle it
            # before the next step can observe its side effects.
            await self.stepper.finish_pending()

            await self._run_hooks(scenario, HookKind.AFTER_EACH)
            result.steps_run += 1

        await self._run_hooks(scenario, HookKind.AFTER)
        self.stepper.scenario_finished()

    async def _run_hooks(self, scenario: Scenario, kind: HookKind) -> None:
        for hook in scenario.hooks(kind):
            await _invoke(hook)

    def _checkpoint(self, label: str, data: Optional[dict] = None, kind: str = "step") -> None:
        self.counters.checkpoint_no += 1
        self.progress.on_checkpoint(
            Checkpoint(self.counters.checkpoint_no, label, kind=kind, data=data)
        )


async def run(
    registry: Optional[Registry] = None,
    *,
    config: Optional[RunnerConfig] = None,
    progress: Optional[ProgressSink] = None,
    stepper: Optional[Stepper] = None,
) -> RunResult:
    """Run every scenario declared on ``registry`` (default: the global one)."""
    config = config or RunnerConfig()

    if progress is None:
        progress = ConsoleProgress(
            dump_depth=config.dump_depth,
            show_elapsed=config.show_elapsed,
        )

    if stepper is None:
        stepper = Stepper(progress, enabled=config.step_mode)

    runner = Runner(
        default_registry if registry is None else registry,
        stepper=stepper,
        progress=progress,
    )
    return await runner.run()
