import httpx
import logging
from typing import Dict, Any, Optional, List, Protocol

from src.bridge.errors import BridgeError

logger = logging.getLogger("copilot.assistant")


class AssistantError(BridgeError):
    """Raised when the external assistant service fails or rejects a request."""


class AssistantClient(Protocol):
    """Operations the bridge forwards to the assistant service."""

    async def authenticate(self, token: Optional[str]) -> bool:
        ...

    async def chat(self, message: str, context: str) -> Dict[str, Any]:
        ...

    async def complete(self, code: str, language: str) -> List[Dict[str, Any]]:
        ...

    async def close(self) -> None:
        ...


class LocalAssistant:
    """
    Placeholder assistant used when no service URL is configured.

    Accepts any credentials and answers with canned content, so the IDE
    integration can be exercised end to end without a live service.
    """

    async def authenticate(self, token: Optional[str]) -> bool:
        return True

    async def chat(self, message: str, context: str) -> Dict[str, Any]:
        return {"content": f'This is a mock response to: "{message}"'}

    async def complete(self, code: str, language: str) -> List[Dict[str, Any]]:
        return [{"text": "// Code completion suggestion", "confidence": 0.8}]

    async def close(self) -> None:
        return None


class HttpAssistantClient:
    """Client for an assistant service reachable over HTTP."""

    def __init__(self, base_url: str, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def close(self):
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            logger.debug(f"POST {self.base_url}{path}")
            response = await self.client.post(path, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Assistant HTTP Error: {e.response.status_code} - {e.response.text}")
            raise AssistantError(f"Assistant request failed: {e.response.status_code} {e.response.text}") from e
        except httpx.RequestError as e:
            logger.error(f"Assistant Request Error: {e}")
            raise AssistantError(f"Failed to connect to assistant: {e}") from e
        except ValueError as e:
            raise AssistantError(f"Assistant returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise AssistantError("Assistant response must be a JSON object")
        return data

    async def authenticate(self, token: Optional[str]) -> bool:
        data = await self._post("/auth", {"token": token or ""})
        accepted = bool(data.get("authenticated", False))
        if accepted and token:
            self.client.headers["Authorization"] = f"Bearer {token}"
        return accepted

    async def chat(self, message: str, context: str) -> Dict[str, Any]:
        return await self._post("/chat", {"message": message, "context": context})

    async def complete(self, code: str, language: str) -> List[Dict[str, Any]]:
        data = await self._post("/completions", {"code": code, "language": language})
        completions = data.get("completions", [])
        if not isinstance(completions, list):
            raise AssistantError("Assistant completions must be a list")
        return completions


def build_assistant_client(base_url: Optional[str], timeout: float = 30.0) -> AssistantClient:
    """Pick the HTTP client when a service URL is configured, else the local placeholder."""
    if base_url:
        logger.debug(f"Using assistant service at {base_url}")
        return HttpAssistantClient(base_url, timeout=timeout)
    return LocalAssistant()

