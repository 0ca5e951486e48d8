"""Command bridge to the native backend process.

Only the ``greet`` connectivity check is registered today; it has nothing
to do with conversations.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional

import structlog

logger = structlog.get_logger()

Command = Callable[..., Awaitable[Any]]

BRIDGE_UNAVAILABLE_TEXT = "Invoke only available when running inside the desktop shell."
GREET_FAILED_TEXT = "Error calling backend command"


class BridgeError(Exception):
    """Base class for bridge errors."""


class BridgeUnavailableError(BridgeError):
    """Raised when invoking while no backend process is attached."""


class UnknownCommandError(BridgeError):
    """Raised for commands that were never registered."""


class CommandBridge:
    """Registry of named async commands exposed by the backend process."""

    def __init__(self, available: bool = True) -> None:
        self.available = available
        self._commands: Dict[str, Command] = {}

    def command(self, name: Optional[str] = None) -> Callable[[Command], Command]:
        """Decorator registering a coroutine function as a command."""

        def register(func: Command) -> Command:
            self._commands[name or func.__name__] = func
            return func

        return register

    @property
    def commands(self) -> List[str]:
        return sorted(self._commands)

    async def invoke(self, command: str, /, **kwargs: Any) -> Any:
        if not self.available:
            raise BridgeUnavailableError("Bridge is not attached to a backend process")
        handler = self._commands.get(command)
        if handler is None:
            raise UnknownCommandError(f"Unknown command: {command}")
        logger.debug("bridge_invoke", command=command)
        return await handler(**kwargs)


async def greet(name: str) -> str:
    return f"Hello, {name}! You've been greeted from the backend!"


def create_bridge(available: bool = True) -> CommandBridge:
    """Build a bridge with the built-in commands registered."""
    bridge = CommandBridge(available=available)
    bridge.command("greet")(greet)
    return bridge


async def request_greeting(bridge: CommandBridge, name: str) -> str:
    """Run the greet smoke test, turning every failure into display text."""
    if not bridge.available:
        logger.info("bridge_unavailable", command="greet")
        return BRIDGE_UNAVAILABLE_TEXT
    try:
        return str(await bridge.invoke("greet", name=name))
    except Exception as e:
        logger.error("invoke_error", command="greet", error=str(e))
        return GREET_FAILED_TEXT
