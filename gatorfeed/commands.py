"""Named commands and the registry that dispatches them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable


class CommandError(Exception):
    """A command could not do its work."""


class CommandNotFoundError(CommandError):
    """No handler is registered under the requested name."""


@dataclass
class Command:
    """A command name with the arguments given after it."""

    name: str
    args: list[str] = field(default_factory=list)


Handler = Callable[[Any, Command], None]


class CommandRegistry:
    """Maps command names to the handlers that carry them out."""

    def __init__(self) -> None:
        self._handlers: dict[str, Handler] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def register(self, name: str, handler: Handler) -> None:
        """Register ``handler`` under ``name``, replacing any earlier one."""
        self._handlers[name] = handler

    def run(self, state: Any, command: Command) -> None:
        """Run the handler registered for ``command.name``."""
        try:
            handler = self._handlers[command.name]
        except KeyError:
            raise CommandNotFoundError("command not found") from None
        handler(state, command)