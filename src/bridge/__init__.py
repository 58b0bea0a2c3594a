"""
Bridge module for the RAD Studio Copilot integration.

Provides the command processor, the gated bridge service and its
collaborators (environment probes, assistant clients).
"""

__version__ = "1.0.0"

from src.bridge.schemas import BridgeState, Command, ErrorCode, Failure, Response, Success
from src.bridge.errors import BridgeError
from src.bridge.service import BridgeService
from src.bridge.processor import CommandProcessor, build_processor

__all__ = [
    "__version__",
    "BridgeError",
    "BridgeState",
    "Command",
    "ErrorCode",
    "Failure",
    "Response",
    "Success",
    "BridgeService",
    "CommandProcessor",
    "build_processor",
]
