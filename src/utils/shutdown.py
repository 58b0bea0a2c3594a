import logging
import signal
import sys
from typing import Callable, Optional


def install_shutdown_handlers(logger: logging.Logger, on_shutdown: Optional[Callable[[], None]] = None) -> None:
    """
    Turn SIGINT/SIGTERM into a logged, clean exit with code 0.

    The handler raises SystemExit(0) so `finally` blocks and asyncio
    cancellation run instead of the process dying mid-write.
    """

    def _handle(signum, frame):
        name = signal.Signals(signum).name
        logger.info(f"Received {name}, shutting down gracefully...")
        if on_shutdown is not None:
            on_shutdown()
        sys.exit(0)

    signal.signal(signal.SIGINT, _handle)
    # SIGTERM exists on Windows but is never delivered there; registering is harmless
    signal.signal(signal.SIGTERM, _handle)
