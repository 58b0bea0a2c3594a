"""
RAD Studio Copilot Bridge entry point.

    bridge <command> [--key value ...]   process one command, print JSON
    bridge                               read JSON commands from stdin, one per line

Exit code is 0 whenever a response was produced (including failures) and
1 only when the bridge itself cannot be started.
"""

import asyncio
import json
import logging
import platform
import sys
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from src.bridge import __version__
from src.bridge.processor import CommandProcessor, build_processor
from src.bridge.schemas import Command, ErrorCode, failure
from src.config import Settings, load_settings
from src.utils.log import configure_logging
from src.utils.shutdown import install_shutdown_handlers

logger = logging.getLogger("copilot.bridge")


def parse_command_line(args: List[str]) -> Tuple[str, Dict[str, str]]:
    """
    Split argv into a command name and its ``--key value`` parameters.

    Tokens that do not start with ``--`` in a key position are ignored; a
    trailing key without a value maps to an empty string.
    """
    command = args[0]
    params: Dict[str, str] = {}
    i = 1
    while i < len(args):
        token = args[i]
        if token.startswith("--"):
            value = args[i + 1] if i + 1 < len(args) else ""
            params[token[2:]] = value
        i += 2
    return command, params


def _emit(output: Dict[str, Any], indent: Optional[int] = 2) -> None:
    sys.stdout.write(json.dumps(output, indent=indent, default=str) + "\n")
    sys.stdout.flush()


def _command_from_message(raw: Dict[str, Any]) -> Command:
    name = raw.get("command")
    if not isinstance(name, str) or not name:
        raise ValueError("'command' must be a non-empty string")
    params = raw.get("params") or {}
    if not isinstance(params, dict):
        raise ValueError("'params' must be a JSON object")
    return Command(name=name, params={str(k): _param_text(v) for k, v in params.items()})


def _param_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    # numbers, booleans and nested values keep their JSON spelling
    return json.dumps(value)


async def run_single(processor: CommandProcessor, args: List[str]) -> None:
    name, params = parse_command_line(args)
    response = await processor.process(Command(name=name, params=params))
    _emit(response.to_output())


async def run_stdin_loop(processor: CommandProcessor) -> None:
    """Serve line-delimited JSON requests from stdin until EOF, one at a time."""
    logger.info("Bridge is ready. Waiting for commands...")
    for raw_line in sys.stdin:
        line = raw_line.strip()
        if not line:
            continue

        request_id = None
        try:
            message = json.loads(line)
            if not isinstance(message, dict):
                raise ValueError("Request must be a JSON object")
            request_id = message.get("id")
            command = _command_from_message(message)
        except ValueError as e:
            # json.JSONDecodeError is a ValueError too
            output = failure(ErrorCode.INVALID_ARGUMENT, f"Invalid request: {e}").to_output()
        else:
            output = (await processor.process(command)).to_output()

        if request_id is not None:
            output = {"id": request_id, **output}
        _emit(output, indent=None)


async def serve(settings: Settings, args: List[str]) -> None:
    processor = build_processor(settings)
    try:
        if args:
            await run_single(processor, args)
        else:
            await run_stdin_loop(processor)
    finally:
        await processor.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)

    try:
        settings = load_settings()
    except ValidationError as e:
        configure_logging("info")
        logger.error(f"Bridge startup failed: invalid configuration: {e}")
        return 1

    configure_logging(settings.LOG_LEVEL)
    install_shutdown_handlers(logger)

    logger.info(f"RAD Studio Copilot Bridge {__version__} starting...")
    logger.info(f"Python version: {platform.python_version()}")
    logger.info(
        f"Configuration: port={settings.BRIDGE_PORT} logLevel={settings.LOG_LEVEL} timeout={settings.TIMEOUT}ms"
    )

    try:
        asyncio.run(serve(settings, args))
    except (ValueError, OSError) as e:
        logger.error(f"Bridge startup failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
