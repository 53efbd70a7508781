"""Operator control channel for step mode.

Reads text lines (normally from stdin) and turns them into gate commands.
"""

import asyncio
import os
import sys
from enum import Enum
from typing import Callable, Optional, TextIO

from .gate import Stepper

STEP_THROUGH = ("enter", "return")
FINISH = ("complete", "finish", "done", "f")
EXIT = ("exit", "quit", "q")
SKIP = ("skip", "s")

EXIT_ABORTED = 1


class Command(str, Enum):
    """Operator commands."""
    ADVANCE = "advance"
    FINISH = "finish"
    EXIT = "exit"
    SKIP = "skip"


def parse_command(line: str) -> Command:
    """Map one input line to a command. Anything unrecognised advances."""
    token = line.strip().lower()

    if token in FINISH:
        return Command.FINISH
    if token in SKIP:
        return Command.SKIP
    if token in EXIT:
        return Command.EXIT
    return Command.ADVANCE


def instructions() -> list[str]:
    """Operator help shown when step mode starts."""
    return [
        "Running in step mode",
        "Every step will pause the program and wait for your input so that you can inspect the logs",
        f"Press {' or '.join(STEP_THROUGH)} to step through the tests",
        f"Write {' or '.join(FINISH)} to exit step mode",
        f"Write {' or '.join(EXIT)} to exit the program",
        f"Write {' or '.join(SKIP)} to skip the given scenario",
    ]


class OperatorChannel:
    """Applies operator commands to a ``Stepper``.

    ``exit`` ends the host process immediately with status 1 and without
    cleanup. Every other line also advances the gate once it is applied.
    """

    def __init__(
        self,
        stepper: Stepper,
        terminate: Optional[Callable[[int], None]] = None,
    ):
        """Initialize the channel.

        Args:
            stepper: Gate to drive.
            terminate: Called with the exit status on ``exit``. Default: os._exit.
        """
        self.stepper = stepper
        self._terminate = terminate or os._exit

    def handle(self, line: str) -> Command:
        """Apply one line of operator input."""
        command = parse_command(line)

        if command is Command.FINISH:
            self.stepper.disable()
        elif command is Command.SKIP:
            self.stepper.skip_scenario()
        elif command is Command.EXIT:
            self._terminate(EXIT_ABORTED)
            return command

        self.stepper.advance()
        return command

    async def listen(self, reader: asyncio.StreamReader) -> None:
        """Handle lines from ``reader`` until it reaches EOF.

        Once input is exhausted nobody can advance the gate any more, so
        step mode is switched off.
        """
        while True:
            raw = await reader.readline()
            if not raw:
                break
            self.handle(raw.decode(errors="replace"))

        self.stepper.disable()

    async def listen_file(self, stream: TextIO) -> None:
        """Handle lines from a blocking text stream, such as stdin redirected from a file."""
        loop = asyncio.get_running_loop()
        while True:
            line = await loop.run_in_executor(None, stream.readline)
            if not line:
                break
            self.handle(line)

        self.stepper.disable()

    async def listen_stdin(self, stream: Optional[TextIO] = None) -> None:
        """Handle lines typed on standard input.

        Pipes and terminals are read through the event loop. Regular files
        cannot be, and are read line by line in the default executor.
        """
        stream = stream or sys.stdin
        loop = asyncio.get_running_loop()
        reader = asyncio.StreamReader()
        protocol = asyncio.StreamReaderProtocol(reader)

        try:
            await loop.connect_read_pipe(lambda: protocol, stream)
        except (ValueError, OSError):
            await self.listen_file(stream)
            return

        await self.listen(reader)
