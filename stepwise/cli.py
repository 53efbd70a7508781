"""CLI entry point for stepwise.

    stepwise [--step] [--config FILE] <scenario.py> [<scenario.py> ...]

Each scenario file is imported once; it declares its scenarios with
``stepwise.given``. The declared scenarios are then run in order.
"""

import asyncio
import importlib.util
import sys
import traceback
from pathlib import Path
from typing import Optional

import click

from .config import RunnerConfig, load_config, merge_overrides
from .reporting.progress import ConsoleProgress, Notice
from .runner.driver import RunResult, run
from .stepper.gate import Stepper
from .stepper.operator import OperatorChannel, instructions


@click.command()
@click.argument(
    "scenario_files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--step", is_flag=True, help="Pause before every step and wait for input.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file with runner settings.",
)
@click.option("--dump-depth", type=int, default=None, help="Levels of checkpoint data to print.")
def main(scenario_files: tuple[Path, ...], step: bool, config_path: Optional[Path], dump_depth: Optional[int]):
    """Run the scenarios declared in SCENARIO_FILES."""
    try:
        config = load_config(config_path) if config_path else RunnerConfig()
        config = merge_overrides(
            config,
            step_mode=True if step else None,
            dump_depth=dump_depth,
        )

        for scenario_file in scenario_files:
            load_scenario_file(scenario_file)

    except Exception as e:
        output_error(f"Failed to load scenarios: {e}")
        sys.exit(1)

    try:
        result = asyncio.run(_run(config))

    except KeyboardInterrupt:
        output_error("Run interrupted by user")
        sys.exit(130)

    except Exception as e:
        traceback.print_exc()
        output_error(f"Run failed: {type(e).__name__}: {e}")
        sys.exit(1)

    sys.exit(result.exit_code)


def load_scenario_file(file_path: Path) -> None:
    """Import a scenario file so that its ``given`` calls register scenarios.

    Raises:
        ValueError: If the file is not a Python module.
    """
    file_path = Path(file_path)

    if file_path.suffix != ".py":
        raise ValueError(f"Expected a .py scenario file, got: {file_path.suffix}")

    module_name = f"stepwise_scenarios.{file_path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, file_path)
    if spec is None or spec.loader is None:
        raise ValueError(f"Cannot import scenario file: {file_path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)


async def _run(config: RunnerConfig) -> RunResult:
    progress = ConsoleProgress(
        dump_depth=config.dump_depth,
        show_elapsed=config.show_elapsed,
    )
    stepper = Stepper(progress, enabled=config.step_mode)
    listener = None

    if stepper.enabled:
        for line in instructions():
            progress.on_notice(Notice(line))

        channel = OperatorChannel(stepper)
        listener = asyncio.create_task(channel.listen_stdin())
        watch_listener(listener, stepper)

    try:
        return await run(config=config, progress=progress, stepper=stepper)
    finally:
        if listener is not None:
            listener.cancel()


def watch_listener(listener: asyncio.Task, stepper: Stepper) -> None:
    """Leave step mode and report it if the operator input listener dies."""

    def on_done(task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is None:
            return
        output_error(f"Operator input failed, leaving step mode: {task.exception()}")
        stepper.disable()

    listener.add_done_callback(on_done)


def output_error(message: str) -> None:
    """Print an error line to stderr."""
    click.echo(f"[error] {message}", err=True)


if __name__ == "__main__":
    main()
