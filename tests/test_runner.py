"""End-to-end tests for the scenario driver."""

import asyncio

import pytest

from stepwise.config import RunnerConfig
from stepwise.registry import Registry, RegistrationError, Step
from stepwise.reporting import (
    Checkpoint,
    GatePaused,
    Notice,
    RecordingProgress,
    ScenarioEvent,
    StepEvent,
)
from stepwise.runner import Runner, run
from stepwise.stepper import OperatorChannel, Stepper


def _runner(registry, enabled=False):
    progress = RecordingProgress()
    stepper = Stepper(progress, enabled=enabled)
    return Runner(registry, stepper=stepper, progress=progress), progress, stepper


def _recording_scenario(registry, name, calls, steps=("a",)):
    def body(s):
        for step in steps:
            s.it(step, lambda step=step: calls.append(f"{name}:{step}"))

    registry.given(name, body)


# ── Ordering ─────────────────────────────────────────────────────────


class TestOrdering:

    @pytest.mark.asyncio
    async def test_scenarios_run_in_registration_order(self):
        registry = Registry()
        calls = []
        _recording_scenario(registry, "S1", calls, steps=("a", "b"))
        _recording_scenario(registry, "S2", calls, steps=("c",))

        runner, progress, _ = _runner(registry)
        result = await runner.run()

        assert calls == ["S1:a", "S1:b", "S2:c"]
        assert progress.scenarios_started == ["S1", "S2"]
        assert result.success
        assert (result.scenarios_run, result.steps_run) == (2, 3)

    @pytest.mark.asyncio
    async def test_report_sequence(self):
        registry = Registry()
        _recording_scenario(registry, "S1", [])
        _recording_scenario(registry, "S2", [])

        runner, progress, _ = _runner(registry)
        await runner.run()

        assert progress.events == [
            ScenarioEvent(1, "S1"),
            StepEvent(1, "a"),
            ScenarioEvent(2, "S2"),
            StepEvent(1, "a"),
        ]

    @pytest.mark.asyncio
    async def test_async_bodies_awaited(self):
        registry = Registry()
        calls = []

        @registry.given("S1")
        async def scenario(s):
            await asyncio.sleep(0)

            @s.it("a")
            async def _():
                await asyncio.sleep(0.01)
                calls.append("a")

            @s.it("b")
            async def _():
                calls.append("b")

        runner, _, _ = _runner(registry)
        await runner.run()
        assert calls == ["a", "b"]

    @pytest.mark.asyncio
    async def test_registry_discarded_after_run(self):
        registry = Registry()
        _recording_scenario(registry, "S1", [])
        runner, _, _ = _runner(registry)
        await runner.run()
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_empty_registry(self):
        runner, progress, _ = _runner(Registry())
        result = await runner.run()
        assert result.success
        assert result.exit_code == 0
        assert progress.events == []


# ── Selection ────────────────────────────────────────────────────────


class TestSelection:

    @pytest.mark.asyncio
    async def test_only_and_always_scenarios(self):
        registry = Registry()
        calls = []
        registry.given.only("S1", lambda s: calls.append("S1"))
        registry.given("S2", lambda s: calls.append("S2"))
        registry.given.always("S3", lambda s: calls.append("S3"))

        runner, progress, _ = _runner(registry)
        result = await runner.run()

        assert calls == ["S1", "S3"]
        assert progress.scenarios_skipped == ["S2"]
        assert (result.scenarios_run, result.scenarios_skipped) == (2, 1)

    @pytest.mark.asyncio
    async def test_skipped_scenario_runs_no_hooks(self):
        registry = Registry()
        calls = []

        def body(s):
            calls.append("body")
            s.before(lambda: calls.append("before"))

        registry.given.skip("S1", body)

        runner, progress, _ = _runner(registry)
        await runner.run()
        assert calls == []
        assert progress.events == [ScenarioEvent(1, "S1", skipped=True)]

    @pytest.mark.asyncio
    async def test_step_selection(self):
        registry = Registry()
        calls = []

        def body(s):
            s.it("a", lambda: calls.append("a"))
            s.it.only("b", lambda: calls.append("b"))
            s.it("c", lambda: calls.append("c"))
            s.it.always("d", lambda: calls.append("d"))
            s.it.skip("e")

        registry.given("S1", body)

        runner, progress, _ = _runner(registry)
        result = await runner.run()

        assert calls == ["b", "d"]
        assert progress.steps_skipped == ["a", "c", "e"]
        assert (result.steps_run, result.steps_skipped) == (2, 3)

    @pytest.mark.asyncio
    async def test_step_only_is_scoped_to_its_scenario(self):
        registry = Registry()
        calls = []

        def first(s):
            s.it.only("a", lambda: calls.append("S1:a"))
            s.it("b", lambda: calls.append("S1:b"))

        def second(s):
            s.it("c", lambda: calls.append("S2:c"))

        registry.given("S1", first)
        registry.given("S2", second)

        runner, _, _ = _runner(registry)
        await runner.run()
        assert calls == ["S1:a", "S2:c"]

    @pytest.mark.asyncio
    async def test_skip_then_always_runs(self):
        registry = Registry()
        calls = []
        registry.given.skip("x")
        registry.given.always("x", lambda s: calls.append("x"))

        runner, _, _ = _runner(registry)
        await runner.run()
        assert calls == ["x"]

    @pytest.mark.asyncio
    async def test_always_then_skip_is_skipped(self):
        registry = Registry()
        calls = []
        registry.given.always("x", lambda s: calls.append("x"))
        registry.given.skip("x")

        runner, progress, _ = _runner(registry)
        await runner.run()
        assert calls == []
        assert progress.scenarios_skipped == ["x"]

    @pytest.mark.asyncio
    async def test_always_placeholder_runs_as_noop(self):
        registry = Registry()

        def body(s):
            s.scenario.add_step(Step(id="placeholder", always=True))

        registry.given("S1", body)
        runner, progress, _ = _runner(registry)
        await runner.run()
        assert progress.steps_started == ["placeholder"]


# ── Hooks ────────────────────────────────────────────────────────────


class TestHooks:

    @pytest.mark.asyncio
    async def test_bracket_order(self):
        registry = Registry()
        calls = []

        async def before_each():
            calls.append("beforeEach")

        def body(s):
            s.before(lambda: calls.append("before1"))
            s.before(lambda: calls.append("before2"))
            s.before_each(before_each)
            s.before_each(before_each)
            s.after_each(lambda: calls.append("afterEach"))
            s.after(lambda: calls.append("after"))
            s.it("a", lambda: calls.append("a"))
            s.it.skip("skipped", lambda: calls.append("skipped"))
            s.it("b", lambda: calls.append("b"))

        registry.given("S1", body)

        runner, _, _ = _runner(registry)
        await runner.run()

        assert calls == [
            "before1", "before2",
            "beforeEach", "a", "afterEach",
            "beforeEach", "b", "afterEach",
            "after",
        ]

    @pytest.mark.asyncio
    async def test_hooks_do_not_leak_between_scenarios(self):
        registry = Registry()
        calls = []

        def first(s):
            s.before_each(lambda: calls.append("S1:beforeEach"))
            s.it("a", lambda: calls.append("S1:a"))

        def second(s):
            s.it("b", lambda: calls.append("S2:b"))

        registry.given("S1", first)
        registry.given("S2", second)

        runner, _, _ = _runner(registry)
        await runner.run()
        assert calls == ["S1:beforeEach", "S1:a", "S2:b"]


# ── Failures ─────────────────────────────────────────────────────────


class TestFailures:

    @pytest.mark.asyncio
    async def test_step_error_aborts_run(self):
        registry = Registry()
        calls = []

        def broken():
            raise ValueError("step failed")

        def first(s):
            s.after_each(lambda: calls.append("afterEach"))
            s.after(lambda: calls.append("after"))
            s.it("a", broken)
            s.it("b", lambda: calls.append("b"))

        registry.given("S1", first)
        _recording_scenario(registry, "S2", calls)

        runner, _, _ = _runner(registry)
        with pytest.raises(ValueError, match="step failed"):
            await runner.run()
        assert calls == []

    @pytest.mark.asyncio
    async def test_scenario_body_error_propagates(self):
        registry = Registry()

        async def body(s):
            raise KeyError("missing fixture")

        registry.given("S1", body)
        runner, _, _ = _runner(registry)
        with pytest.raises(KeyError):
            await runner.run()

    @pytest.mark.asyncio
    async def test_registering_from_a_step_is_a_usage_error(self):
        registry = Registry()

        def body(s):
            s.it("a", lambda: s.it("late", lambda: None))

        registry.given("S1", body)
        runner, _, _ = _runner(registry)
        with pytest.raises(RegistrationError):
            await runner.run()

    @pytest.mark.asyncio
    async def test_context_closed_after_scenario(self):
        registry = Registry()
        contexts = []
        registry.given("S1", contexts.append)

        runner, _, _ = _runner(registry)
        await runner.run()

        with pytest.raises(RegistrationError):
            contexts[0].before(lambda: None)


# ── Pending work ─────────────────────────────────────────────────────


class TestPendingWork:

    @pytest.mark.asyncio
    async def test_next_step_waits_for_tracked_work(self):
        registry = Registry()
        calls = []

        async def settle():
            await asyncio.sleep(0.05)
            calls.append("settled")

        def body(s):
            s.it("a", lambda: s.track(settle()))
            s.it("b", lambda: calls.append("b"))

        registry.given("S1", body)
        runner, _, _ = _runner(registry)
        await runner.run()
        assert calls == ["settled", "b"]

    @pytest.mark.asyncio
    async def test_after_each_runs_after_request_responded(self):
        registry = Registry()
        calls = []

        async def respond_later(s):
            await asyncio.sleep(0.01)
            calls.append("responded")
            s.responded("req-1")

        def body(s):
            def issue():
                s.requesting("req-1")
                asyncio.get_running_loop().create_task(respond_later(s))

            s.it("a", issue)
            s.after_each(lambda: calls.append("afterEach"))

        registry.given("S1", body)
        runner, _, _ = _runner(registry)
        await runner.run()
        assert calls == ["responded", "afterEach"]


# ── Checkpoints and counters ─────────────────────────────────────────


class TestCheckpoints:

    @pytest.mark.asyncio
    async def test_numbering_resets_per_step(self):
        registry = Registry()

        def body(s):
            def a():
                s.checkpoint("onRequest", {"path": "/"}, kind="ext")
                s.checkpoint("handler")

            s.it("a", a)
            s.it("b", lambda: s.checkpoint("onRequest"))

        registry.given("S1", body)
        runner, progress, _ = _runner(registry)
        await runner.run()

        assert progress.of_type(Checkpoint) == [
            Checkpoint(1, "onRequest", kind="ext", data={"path": "/"}),
            Checkpoint(2, "handler"),
            Checkpoint(1, "onRequest"),
        ]

    @pytest.mark.asyncio
    async def test_step_numbers_reset_per_scenario(self):
        registry = Registry()
        _recording_scenario(registry, "S1", [], steps=("a", "b"))
        registry.given.skip("S2")
        _recording_scenario(registry, "S3", [], steps=("c",))

        runner, progress, _ = _runner(registry)
        await runner.run()

        assert progress.of_type(StepEvent) == [StepEvent(1, "a"), StepEvent(2, "b"), StepEvent(1, "c")]
        assert [e.number for e in progress.of_type(ScenarioEvent)] == [1, 2, 3]


# ── Step mode ────────────────────────────────────────────────────────


async def _until_paused(stepper, rounds: int = 200) -> None:
    for _ in range(rounds):
        if stepper.waiting:
            return
        await asyncio.sleep(0)
    raise AssertionError("gate never paused")


class TestStepMode:

    @pytest.mark.asyncio
    async def test_pauses_before_each_step(self):
        registry = Registry()
        calls = []
        _recording_scenario(registry, "S1", calls, steps=("a", "b"))

        runner, progress, stepper = _runner(registry, enabled=True)
        task = asyncio.create_task(runner.run())

        await _until_paused(stepper)
        assert calls == []
        stepper.advance()

        await _until_paused(stepper)
        assert calls == ["S1:a"]
        stepper.advance()

        result = await asyncio.wait_for(task, timeout=1)
        assert calls == ["S1:a", "S1:b"]
        assert result.stepped
        assert progress.of_type(GatePaused) == [GatePaused("Next step: a"), GatePaused("Next step: b")]
        assert progress.events[-1] == Notice("All tests completed")

    @pytest.mark.asyncio
    async def test_skip_fast_forwards_one_scenario(self):
        registry = Registry()
        calls = []
        _recording_scenario(registry, "S1", calls, steps=("a", "b"))
        _recording_scenario(registry, "S2", calls, steps=("c", "d"))
        _recording_scenario(registry, "S3", calls, steps=("e", "f"))

        runner, progress, stepper = _runner(registry, enabled=True)
        channel = OperatorChannel(stepper)
        task = asyncio.create_task(runner.run())

        await _until_paused(stepper)
        channel.handle("enter")
        await _until_paused(stepper)
        channel.handle("enter")

        await _until_paused(stepper)
        assert calls == ["S1:a", "S1:b"]
        channel.handle("skip")

        await _until_paused(stepper)
        assert calls == ["S1:a", "S1:b", "S2:c", "S2:d"]
        assert stepper.enabled is True
        channel.handle("finish")

        await asyncio.wait_for(task, timeout=1)
        assert calls[-2:] == ["S3:e", "S3:f"]
        assert [e.message for e in progress.of_type(GatePaused)] == [
            "Next step: a",
            "Next step: b",
            "Next step: c",
            "Next step: e",
        ]

    @pytest.mark.asyncio
    async def test_free_run_needs_no_signal(self):
        registry = Registry()
        _recording_scenario(registry, "S1", [], steps=("a", "b"))
        runner, progress, _ = _runner(registry)
        result = await asyncio.wait_for(runner.run(), timeout=1)
        assert not result.stepped
        assert progress.of_type(GatePaused) == []


# ── Module entry point ───────────────────────────────────────────────


class TestRunEntryPoint:

    @pytest.mark.asyncio
    async def test_run_with_config(self, capsys):
        registry = Registry()
        calls = []
        _recording_scenario(registry, "S1", calls)

        result = await run(registry, config=RunnerConfig(show_elapsed=False))

        assert result.success
        assert calls == ["S1:a"]
        out = capsys.readouterr().out
        assert "1. S1" in out
        assert "1. a" in out
