"""
Copilot language server launcher.

Starts the assistant service once per machine/session: if an equivalent
launcher is already running this process exits 0 without starting a
second server. Every lifecycle event is appended to a diagnostic log.
"""

import asyncio
import inspect
import logging
import sys
from typing import Any, List, Optional

from pydantic import ValidationError

from src.config import Settings, load_settings
from src.launcher.guard import ProcessInstanceGuard, PsutilProcessLister, running_module
from src.launcher.instrument import instrument
from src.launcher.service import CapabilityLoadError, LanguageServerProcess, load_capability
from src.utils.log import configure_logging
from src.utils.shutdown import install_shutdown_handlers

logger = logging.getLogger("copilot.launcher")


def _configure_logging(settings: Settings) -> None:
    try:
        configure_logging(settings.LOG_LEVEL, log_file=settings.LAUNCHER_LOG)
    except OSError as e:
        configure_logging(settings.LOG_LEVEL)
        logger.warning(f"Cannot open diagnostic log {settings.LAUNCHER_LOG}: {e}")


def obtain_capability(settings: Settings) -> Any:
    if settings.LAUNCHER_SERVICE:
        logger.info(f"Loading assistant service {settings.LAUNCHER_SERVICE}")
        return load_capability(settings.LAUNCHER_SERVICE)
    logger.info(f"Using language server command: {settings.SERVER_COMMAND}")
    return LanguageServerProcess(settings.server_argv)


def run_service(service: Any) -> Any:
    result = service.run()
    if inspect.isawaitable(result):
        return asyncio.run(_await(result))
    return result


async def _await(pending: Any) -> Any:
    return await pending


def main(argv: Optional[List[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)

    try:
        settings = load_settings()
    except ValidationError as e:
        configure_logging("info")
        logger.error(f"Launcher startup failed: invalid configuration: {e}")
        return 1

    _configure_logging(settings)
    logger.info("Copilot language server launcher starting")

    guard = ProcessInstanceGuard.for_current_process(
        PsutilProcessLister(timeout=settings.timeout_seconds),
        argv=[sys.argv[0]] + args,
        module=running_module(),
    )
    report = guard.check()
    if not report.should_start:
        logger.info("Launcher already running with the same arguments; exiting")
        return 0

    try:
        service = instrument(obtain_capability(settings))
    except (CapabilityLoadError, TypeError, ValueError) as e:
        logger.error(f"Error loading assistant service: {e}")
        return 1

    install_shutdown_handlers(logger)

    exit_code = 1
    try:
        result = run_service(service)
        exit_code = result if isinstance(result, int) else 0
    except SystemExit:
        # raised by the shutdown handlers
        exit_code = 0
        raise
    except Exception as e:
        logger.error(f"Assistant service failed: {e}")
    finally:
        logger.info(f"Copilot language server launcher exiting, code={exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
