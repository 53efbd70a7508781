"""Runner module - scenario orchestration."""

from .driver import RunCounters, RunResult, Runner, run

__all__ = [
    "RunCounters",
    "RunResult",
    "Runner",
    "run",
]
