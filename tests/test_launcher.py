"""
Tests for the launcher: capability loading, the language server process
wrapper and the main() startup sequence.
"""
import sys
import types

import pytest

from src.launcher import main as launcher_main
from src.launcher.guard import GuardReport, GuardVerdict, ProcessRecord
from src.launcher.service import CapabilityLoadError, LanguageServerProcess, load_capability

PYTHON = sys.executable


# ─── LanguageServerProcess ───────────────────────────────────────────────────

def _recording(process):
    events = []
    for name in ("request", "response", "error"):
        process.on(name, lambda payload, name=name: events.append((name, payload)))
    return events


@pytest.mark.asyncio
async def test_language_server_clean_exit_emits_request_and_response():
    process = LanguageServerProcess([PYTHON, "-c", "pass"])
    events = _recording(process)
    assert await process.run() == 0
    assert [name for name, _ in events] == ["request", "response"]
    assert events[0][1]["argv"][0] == PYTHON


@pytest.mark.asyncio
async def test_language_server_nonzero_exit_emits_error():
    process = LanguageServerProcess([PYTHON, "-c", "import sys; sys.exit(4)"])
    events = _recording(process)
    assert await process.run() == 4
    assert events[-1] == ("error", {"returncode": 4})


@pytest.mark.asyncio
async def test_language_server_missing_binary_emits_error_and_raises():
    process = LanguageServerProcess(["no-such-language-server-binary-xyz"])
    events = _recording(process)
    with pytest.raises(OSError):
        await process.run()
    assert events[0][0] == "error"


def test_language_server_requires_command():
    with pytest.raises(ValueError):
        LanguageServerProcess([])


# ─── load_capability ─────────────────────────────────────────────────────────

class _Capability:
    def run(self):
        return 0


@pytest.fixture
def fake_module(monkeypatch):
    module = types.ModuleType("fake_assistant_service")
    module.Service = _Capability
    module.instance = _Capability()
    module.factory = lambda: _Capability()
    module.not_a_service = 42
    monkeypatch.setitem(sys.modules, "fake_assistant_service", module)
    return module


def test_load_capability_class_factory_and_instance(fake_module):
    assert isinstance(load_capability("fake_assistant_service:Service"), _Capability)
    assert isinstance(load_capability("fake_assistant_service:factory"), _Capability)
    assert load_capability("fake_assistant_service:instance") is fake_module.instance


@pytest.mark.parametrize(
    "target",
    [
        "fake_assistant_service",
        "fake_assistant_service:missing",
        "fake_assistant_service:not_a_service",
        "module_that_does_not_exist_xyz:Service",
    ],
)
def test_load_capability_errors(fake_module, target):
    with pytest.raises(CapabilityLoadError):
        load_capability(target)


# ─── main() ──────────────────────────────────────────────────────────────────

class _StubGuard:
    def __init__(self, verdict):
        self.verdict = verdict

    def check(self):
        matches = [ProcessRecord(pid=99)] if self.verdict == GuardVerdict.ALREADY_RUNNING else []
        return GuardReport(verdict=self.verdict, matches=matches)


@pytest.fixture
def launcher_env(monkeypatch, tmp_path):
    log_file = tmp_path / "launcher.log"
    monkeypatch.setenv("COPILOT_LAUNCHER_LOG", str(log_file))
    monkeypatch.delenv("COPILOT_LAUNCHER_SERVICE", raising=False)
    monkeypatch.setattr(launcher_main, "install_shutdown_handlers", lambda logger: None)
    return log_file


def _use_guard(monkeypatch, verdict):
    monkeypatch.setattr(
        launcher_main.ProcessInstanceGuard,
        "for_current_process",
        classmethod(lambda cls, lister, argv=None, module=None: _StubGuard(verdict)),
    )


def test_main_exits_zero_when_already_running(monkeypatch, launcher_env):
    _use_guard(monkeypatch, GuardVerdict.ALREADY_RUNNING)
    monkeypatch.setenv("COPILOT_SERVER_COMMAND", "no-such-language-server-binary-xyz")
    assert launcher_main.main([]) == 0
    log = launcher_env.read_text(encoding="utf-8")
    assert "already running" in log


def test_main_runs_server_and_logs_lifecycle(monkeypatch, launcher_env):
    _use_guard(monkeypatch, GuardVerdict.NOT_RUNNING)
    monkeypatch.setenv("COPILOT_SERVER_COMMAND", f'"{PYTHON}" -c "pass"')
    assert launcher_main.main(["--stdio"]) == 0
    log = launcher_env.read_text(encoding="utf-8")
    assert "launcher starting" in log
    assert "Service request" in log
    assert "Service response" in log
    assert "exiting, code=0" in log


def test_main_proceeds_when_guard_unknown(monkeypatch, launcher_env):
    _use_guard(monkeypatch, GuardVerdict.UNKNOWN)
    monkeypatch.setenv("COPILOT_SERVER_COMMAND", f'"{PYTHON}" -c "import sys; sys.exit(2)"')
    assert launcher_main.main([]) == 2
    assert "Service error" in launcher_env.read_text(encoding="utf-8")


def test_main_fails_when_capability_cannot_load(monkeypatch, launcher_env):
    _use_guard(monkeypatch, GuardVerdict.NOT_RUNNING)
    monkeypatch.setenv("COPILOT_LAUNCHER_SERVICE", "module_that_does_not_exist_xyz:Service")
    assert launcher_main.main([]) == 1
    assert "Error loading assistant service" in launcher_env.read_text(encoding="utf-8")


def test_main_invalid_configuration_exits_one(monkeypatch, launcher_env):
    monkeypatch.setenv("COPILOT_LOG_LEVEL", "verbose")
    assert launcher_main.main([]) == 1


def test_main_loads_configured_capability(monkeypatch, launcher_env, fake_module):
    _use_guard(monkeypatch, GuardVerdict.NOT_RUNNING)
    monkeypatch.setenv("COPILOT_LAUNCHER_SERVICE", "fake_assistant_service:Service")
    assert launcher_main.main([]) == 0
