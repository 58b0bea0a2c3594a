"""
Command processor for the Copilot bridge.

Maps a command name onto a BridgeService operation and guarantees that
every command yields exactly one Response.
"""

import logging
from typing import Awaitable, Callable, Dict, List

from src.config import Settings
from src.bridge.client import build_assistant_client
from src.bridge.probes import IdeEnvironmentProbe
from src.bridge.schemas import Command, ErrorCode, Response, failure, success
from src.bridge.service import BridgeService

logger = logging.getLogger("copilot.bridge")

Handler = Callable[[Command], Awaitable[Response]]


class CommandProcessor:
    """
    Dispatches commands from RAD Studio to the bridge service.

    The command set is fixed. Parameter extraction is permissive: missing
    parameters read as empty strings and required ones are validated by
    the service itself.
    """

    def __init__(self, bridge: BridgeService):
        self.bridge = bridge
        self._handlers: Dict[str, Handler] = {
            "initialize": self._initialize,
            "authenticate": self._authenticate,
            "chat": self._chat,
            "completion": self._completion,
            "signout": self._signout,
            "status": self._status,
            "test": self._test,
        }

    @property
    def command_names(self) -> List[str]:
        return list(self._handlers.keys())

    async def process(self, command: Command) -> Response:
        """
        Process one command.

        Args:
            command: Command received from the IDE

        Returns:
            Success or Failure; this method never raises
        """
        logger.debug(f"Processing command: {command.name} {command.params}")

        handler = self._handlers.get(command.name)
        if handler is None:
            logger.error(f"Command processing failed: Unknown command: {command.name}")
            return failure(ErrorCode.UNKNOWN_COMMAND, f"Unknown command: {command.name}")

        try:
            return await handler(command)
        except Exception as e:
            logger.exception(f"Command processing failed: {e}")
            return failure(ErrorCode.EXTERNAL_SERVICE_FAULT, str(e) or type(e).__name__)

    async def _initialize(self, command: Command) -> Response:
        return await self.bridge.initialize()

    async def _authenticate(self, command: Command) -> Response:
        return await self.bridge.authenticate(command.param("token"))

    async def _chat(self, command: Command) -> Response:
        return await self.bridge.send_chat_message(command.param("message"), command.param("context"))

    async def _completion(self, command: Command) -> Response:
        return await self.bridge.get_code_completion(command.param("code"), command.param("language"))

    async def _signout(self, command: Command) -> Response:
        return await self.bridge.sign_out()

    async def _status(self, command: Command) -> Response:
        return self.bridge.get_status()

    async def _test(self, command: Command) -> Response:
        # Liveness check; never touches the bridge service
        return success(message="Bridge is working", echo=dict(command.params))

    async def close(self) -> None:
        await self.bridge.close()


def build_processor(settings: Settings) -> CommandProcessor:
    """Wire a processor, its bridge service and collaborators from settings."""
    probe = IdeEnvironmentProbe(
        ide_command=settings.ide_argv,
        extension_ids=settings.extension_ids,
        timeout=settings.timeout_seconds,
    )
    assistant = build_assistant_client(settings.ASSISTANT_URL, timeout=settings.timeout_seconds)
    return CommandProcessor(BridgeService(probe=probe, assistant=assistant))
