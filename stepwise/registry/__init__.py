"""Registry module - scenario declaration and skip resolution."""

from .schema import (
    Body,
    HookKind,
    Scenario,
    Step,
    VALID_HOOK_KINDS,
)
from .registry import (
    Declarer,
    Registry,
    RegistrationError,
    ScenarioContext,
    default_registry,
)
from .selector import resolve, selected

__all__ = [
    "Body",
    "HookKind",
    "Scenario",
    "Step",
    "VALID_HOOK_KINDS",
    "Declarer",
    "Registry",
    "RegistrationError",
    "ScenarioContext",
    "default_registry",
    "resolve",
    "selected",
]
