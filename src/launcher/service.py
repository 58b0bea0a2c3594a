"""
Assistant service capabilities the launcher can start.
"""

import asyncio
import importlib
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger("copilot.launcher")

Listener = Callable[[Any], None]


class CapabilityLoadError(Exception):
    """The configured assistant service could not be obtained."""


class LanguageServerProcess:
    """
    Runs the Copilot language server as a child process.

    The child inherits stdin/stdout so the IDE talks to it directly.
    Lifecycle events are published to subscribers:

    - request: the server was spawned (payload: argv and pid)
    - response: the server exited cleanly (payload: return code)
    - error: the server could not start or exited non-zero
    """

    def __init__(self, argv: List[str]):
        if not argv:
            raise ValueError("language server command must not be empty")
        self.argv = list(argv)
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def prepend_listener(self, event: str, listener: Listener) -> None:
        self._listeners[event].insert(0, listener)

    def emit(self, event: str, payload: Any) -> None:
        for listener in list(self._listeners[event]):
            listener(payload)

    async def run(self, *extra_args: str) -> int:
        argv = self.argv + list(extra_args)
        try:
            proc = await asyncio.create_subprocess_exec(*argv)
        except OSError as e:
            self.emit("error", {"argv": argv, "error": str(e)})
            raise

        self.emit("request", {"argv": argv, "pid": proc.pid})
        try:
            returncode = await proc.wait()
        finally:
            if proc.returncode is None:
                # Cancelled (shutdown signal); do not leave the server orphaned
                proc.kill()
                await proc.wait()

        if returncode == 0:
            self.emit("response", {"returncode": returncode})
        else:
            self.emit("error", {"returncode": returncode})
        return returncode


def load_capability(target: str) -> Any:
    """
    Import a capability given as ``"package.module:attribute"``.

    A class or factory function is called with no arguments; any other
    object is used as is.
    """
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise CapabilityLoadError(f"Expected 'module:attribute', got {target!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise CapabilityLoadError(f"Cannot import {module_name}: {e}") from e

    try:
        obj = getattr(module, attribute)
    except AttributeError as e:
        raise CapabilityLoadError(f"{module_name} has no attribute {attribute!r}") from e

    if isinstance(obj, type) or (callable(obj) and not callable(getattr(obj, "run", None))):
        try:
            obj = obj()
        except Exception as e:
            raise CapabilityLoadError(f"Creating {target} failed: {e}") from e

    if not callable(getattr(obj, "run", None)):
        raise CapabilityLoadError(f"{target} does not provide a run() entry point")
    return obj
