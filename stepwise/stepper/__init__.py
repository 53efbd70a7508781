"""Stepper module - interactive gate and operator control."""

from .gate import EXIT_SUCCESS, Stepper
from .operator import (
    EXIT_ABORTED,
    Command,
    OperatorChannel,
    instructions,
    parse_command,
)

__all__ = [
    "EXIT_SUCCESS",
    "Stepper",
    "EXIT_ABORTED",
    "Command",
    "OperatorChannel",
    "instructions",
    "parse_command",
]
