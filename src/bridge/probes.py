"""
Environment probes for the bridge.

Each probe runs the IDE executable once as a child process and waits for
it with a timeout. A probe that times out kills its child and reports
failure; it never raises.
"""

import asyncio
import logging
from typing import List, Optional, Protocol, Tuple

logger = logging.getLogger("copilot.probe")


class EnvironmentProbe(Protocol):
    """Preconditions checked by BridgeService.initialize()."""

    async def ide_present(self) -> bool:
        ...

    async def extension_present(self) -> bool:
        ...


class IdeEnvironmentProbe:
    """Probes a VS Code compatible CLI (``code --version`` / ``code --list-extensions``)."""

    def __init__(self, ide_command: List[str], extension_ids: List[str], timeout: float = 30.0):
        if not ide_command:
            raise ValueError("ide_command must not be empty")
        self.ide_command = list(ide_command)
        self.extension_ids = list(extension_ids)
        self.timeout = timeout

    async def ide_present(self) -> bool:
        returncode, _ = await self._run("--version")
        return returncode == 0

    async def extension_present(self) -> bool:
        returncode, output = await self._run("--list-extensions")
        if returncode != 0:
            return False
        installed = {line.strip().lower() for line in output.splitlines() if line.strip()}
        return any(ext.lower() in installed for ext in self.extension_ids)

    async def _run(self, arg: str) -> Tuple[Optional[int], str]:
        """
        Run the IDE command with a single argument.

        Returns:
            Tuple of (returncode, stdout); returncode is None when the
            executable is missing or the probe timed out
        """
        argv = self.ide_command + [arg]
        logger.debug(f"Probing: {' '.join(argv)}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.warning(f"Probe could not start {argv[0]}: {e}")
            return None, ""

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Probe timed out after {self.timeout:.1f}s: {' '.join(argv)}")
            proc.kill()
            await proc.wait()
            return None, ""

        return proc.returncode, stdout.decode("utf-8", errors="replace")
