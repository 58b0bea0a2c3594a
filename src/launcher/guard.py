"""
Single-instance guard for the launcher.

Scans the process table for another launcher started with the same
script and arguments. The check is best effort: two launchers starting
at the same instant can both see "not running" and both proceed. A scan
that cannot complete fails open.
"""

import logging
import os
import sys
import time
from enum import Enum
from typing import List, Optional, Protocol, Set

import psutil
from pydantic import BaseModel, ConfigDict, Field

from src.bridge.errors import BridgeError
from src.bridge.schemas import ErrorCode

logger = logging.getLogger("copilot.guard")


class ProcessProbeFailure(BridgeError):
    """The process table could not be enumerated."""

    code = ErrorCode.PROCESS_PROBE_FAILURE


class ProcessRecord(BaseModel):
    """Snapshot of one OS process, valid only for the scan that produced it."""

    model_config = ConfigDict(frozen=True)

    pid: int
    name: str = ""
    command_line: str = ""


class GuardVerdict(str, Enum):
    ALREADY_RUNNING = "already_running"
    NOT_RUNNING = "not_running"
    UNKNOWN = "unknown"


class GuardReport(BaseModel):
    verdict: GuardVerdict
    matches: List[ProcessRecord] = Field(default_factory=list)
    detail: Optional[str] = None

    @property
    def should_start(self) -> bool:
        # unknown proceeds optimistically
        return self.verdict != GuardVerdict.ALREADY_RUNNING


class ProcessLister(Protocol):
    def list_processes(self, name: str) -> List[ProcessRecord]:
        """Return live processes whose executable name matches ``name``."""
        ...


class PsutilProcessLister:
    """ProcessLister backed by psutil's native process table access."""

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    def list_processes(self, name: str) -> List[ProcessRecord]:
        wanted = _normalize_name(name)
        deadline = time.monotonic() + self.timeout
        records: List[ProcessRecord] = []
        try:
            for proc in psutil.process_iter(["pid", "name", "cmdline"]):
                if time.monotonic() > deadline:
                    raise ProcessProbeFailure(f"process scan exceeded {self.timeout:.1f}s")
                info = proc.info
                if _normalize_name(info.get("name") or "") != wanted:
                    continue
                cmdline = info.get("cmdline") or []
                records.append(
                    ProcessRecord(pid=info["pid"], name=info.get("name") or "", command_line=" ".join(cmdline))
                )
        except (psutil.Error, OSError) as e:
            raise ProcessProbeFailure(f"process scan failed: {e}") from e
        return records


def _normalize_name(name: str) -> str:
    name = os.path.basename(name).lower()
    if name.endswith(".exe"):
        name = name[:-4]
    return name


def running_module() -> Optional[str]:
    """Module name when this interpreter was started with ``-m``, else None."""
    spec = getattr(sys.modules.get("__main__"), "__spec__", None)
    return spec.name if spec is not None else None


def current_executable_name() -> str:
    try:
        return psutil.Process().name()
    except psutil.Error:
        return os.path.basename(sys.executable)


class ProcessInstanceGuard:
    """
    Decides whether an equivalent launcher is already running.

    A candidate is equivalent when both the script identity and the
    joined argument vector occur as substrings of its command line.
    """

    def __init__(
        self,
        lister: ProcessLister,
        executable_name: str,
        script_path: str,
        arguments: List[str],
        ignored_pids: Optional[Set[int]] = None,
    ):
        self.lister = lister
        self.executable_name = executable_name
        self.script_path = script_path
        self.arguments = list(arguments)
        # The Windows venv redirector runs us as a child of an identical python.exe
        self.ignored_pids = {os.getpid(), os.getppid()} if ignored_pids is None else set(ignored_pids)

    @classmethod
    def for_current_process(
        cls,
        lister: ProcessLister,
        argv: Optional[List[str]] = None,
        module: Optional[str] = None,
    ) -> "ProcessInstanceGuard":
        argv = list(sys.argv if argv is None else argv)
        if module:
            # under -m the command line names the module, not main.py
            script = f"-m {module}"
        else:
            script = os.path.abspath(argv[0]) if argv and argv[0] else ""
        return cls(
            lister=lister,
            executable_name=current_executable_name(),
            script_path=script,
            arguments=argv[1:],
        )

    def is_equivalent(self, record: ProcessRecord) -> bool:
        if record.pid in self.ignored_pids:
            return False
        signature = " ".join(self.arguments)
        return self.script_path in record.command_line and signature in record.command_line

    def check(self) -> GuardReport:
        try:
            records = self.lister.list_processes(self.executable_name)
        except ProcessProbeFailure as e:
            detail = f"{e.code.value}: {e}"
            logger.warning(f"Could not check for a running instance, continuing: {detail}")
            return GuardReport(verdict=GuardVerdict.UNKNOWN, detail=detail)

        matches = [record for record in records if self.is_equivalent(record)]
        if matches:
            pids = ", ".join(str(record.pid) for record in matches)
            logger.info(f"Equivalent launcher already running (pid {pids})")
            return GuardReport(verdict=GuardVerdict.ALREADY_RUNNING, matches=matches)

        logger.debug(f"No equivalent launcher among {len(records)} {self.executable_name} process(es)")
        return GuardReport(verdict=GuardVerdict.NOT_RUNNING)
