"""
Bridge service: the initialize/authenticate lifecycle that gates every
assistant operation.

States: uninitialized -> initialized -> authenticated, and sign-out back to
initialized. Every operation returns a Success or Failure value; faults
from collaborators are converted here and never propagate to the caller.
"""

import logging
import platform
import sys
from datetime import datetime, timezone
from typing import Optional

from src.bridge import __version__
from src.bridge.client import AssistantClient, AssistantError
from src.bridge.probes import EnvironmentProbe
from src.bridge.schemas import (
    BridgeState,
    ErrorCode,
    Response,
    Success,
    failure,
    success,
)

logger = logging.getLogger("copilot.bridge")


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class BridgeService:
    """Owns one BridgeState and the collaborators the operations depend on."""

    def __init__(self, probe: EnvironmentProbe, assistant: AssistantClient):
        self.probe = probe
        self.assistant = assistant
        self.state = BridgeState()

    async def initialize(self) -> Response:
        """
        Verify the IDE and the assistant extension are installed.

        A failed or timed-out probe leaves the state untouched, so the
        call can simply be retried.
        """
        logger.info("Initializing Copilot Bridge...")
        try:
            if not await self.probe.ide_present():
                return self._environment_missing("VS Code installation not found")
            if not await self.probe.extension_present():
                return self._environment_missing("GitHub Copilot extension not found in VS Code")
        except Exception as e:
            return self._environment_missing(f"Environment probe failed: {e}")

        self.state.initialized = True
        logger.info("Copilot Bridge initialized successfully")
        return success()

    def _environment_missing(self, message: str) -> Response:
        logger.error(f"Failed to initialize Copilot Bridge: {message}")
        return failure(ErrorCode.ENVIRONMENT_MISSING, message)

    async def authenticate(self, token: Optional[str] = None) -> Response:
        logger.info("Starting authentication...")
        if not self.state.initialized:
            logger.error("Authentication failed: Bridge not initialized")
            return failure(ErrorCode.NOT_INITIALIZED, "Bridge not initialized")

        try:
            accepted = await self.assistant.authenticate(token or None)
        except AssistantError as e:
            logger.error(f"Authentication failed: {e}")
            return e.to_failure()

        if not accepted:
            logger.error("Authentication failed: credentials rejected")
            return failure(ErrorCode.EXTERNAL_SERVICE_FAULT, "Assistant service rejected the credentials")

        self.state.authenticated = True
        logger.info("Authentication successful")
        return success(message="Authentication successful")

    async def send_chat_message(self, message: str, context: str = "") -> Response:
        if not self.state.authenticated:
            return self._not_authenticated("Chat message")
        if not message:
            return failure(ErrorCode.INVALID_ARGUMENT, "message must not be empty")

        logger.debug(f"Sending chat message: {message}")
        try:
            result = await self.assistant.chat(message, context)
        except AssistantError as e:
            logger.error(f"Chat message failed: {e}")
            return e.to_failure()
        logger.debug(f"Received response: {result}")

        payload = dict(result)
        payload["metadata"] = {"timestamp": utc_timestamp(), "context": context}
        return Success(payload=payload)

    async def get_code_completion(self, code: str, language: str) -> Response:
        if not self.state.authenticated:
            return self._not_authenticated("Code completion")
        if not code:
            return failure(ErrorCode.INVALID_ARGUMENT, "code must not be empty")
        if not language:
            return failure(ErrorCode.INVALID_ARGUMENT, "language must not be empty")

        logger.debug(f"Getting code completion for: {language}")
        try:
            completions = await self.assistant.complete(code, language)
        except AssistantError as e:
            logger.error(f"Code completion failed: {e}")
            return e.to_failure()

        return success(completions=completions)

    def _not_authenticated(self, operation: str) -> Response:
        logger.error(f"{operation} failed: Not authenticated")
        return failure(ErrorCode.NOT_AUTHENTICATED, "Not authenticated")

    async def sign_out(self) -> Response:
        # Never fails; from any state other than authenticated this is a no-op
        if self.state.authenticated:
            self.state.authenticated = False
        logger.info("Signed out successfully")
        return success(message="Signed out successfully")

    def get_status(self) -> Response:
        return success(
            bare=True,
            initialized=self.state.initialized,
            authenticated=self.state.authenticated,
            version=__version__,
            environment={
                "python": platform.python_version(),
                "implementation": platform.python_implementation(),
                "platform": sys.platform,
            },
            timestamp=utc_timestamp(),
        )

    async def close(self) -> None:
        await self.assistant.close()
