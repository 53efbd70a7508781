"""stepwise - scenario runner with an interactive stepper.

Declare scenarios on the default registry, then run them::

    from stepwise import given, run

    @given("Route with no auth")
    async def no_auth(s):
        @s.it("responds")
        async def _():
            ...

    asyncio.run(run())
"""

from .config import RunnerConfig, load_config
from .registry import Registry, RegistrationError, ScenarioContext, default_registry
from .reporting import ConsoleProgress, RecordingProgress
from .runner import RunResult, Runner, run
from .stepper import OperatorChannel, Stepper

given = default_registry.given

__version__ = "0.1.0"

__all__ = [
    "RunnerConfig",
    "load_config",
    "Registry",
    "RegistrationError",
    "ScenarioContext",
    "default_registry",
    "ConsoleProgress",
    "RecordingProgress",
    "RunResult",
    "Runner",
    "run",
    "OperatorChannel",
    "Stepper",
    "given",
]
