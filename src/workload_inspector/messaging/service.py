"""
NATS micro service transport for the workload inspector.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Optional

import nats
import nats.micro
from nats.aio.client import Client as NATS

from ..core.exceptions import InspectorError, PipelineFailure, RequestError
from ..inspector import Inspector
from ..utils.logger import get_logger

logger = get_logger(__name__)

NAME = "WorkloadInspector"
PREFIX = "INSP"
VERSION = "0.0.1"
DESCRIPTION = "NATS micro service to inspect a NEX workload environment."
REQUEST_ERROR_CODE = RequestError.default_code

Handler = Callable[[Any, Inspector], Awaitable[None]]


async def ping(request, inspector: Inspector) -> None:
    await request.respond(inspector.ping().encode())


async def get_environment(request, inspector: Inspector) -> None:
    environ = inspector.get_environment()
    await request.respond(json.dumps(environ).encode())


def parse_run_request(data: bytes) -> str:
    """Extract the command from a RUN request body.

    Raises:
        RequestError: If the body is not JSON or has no command
    """
    try:
        body = json.loads(data or b"null")
    except (ValueError, UnicodeDecodeError) as e:
        raise RequestError(f"run request error: {e}") from e

    command = body.get("command") if isinstance(body, dict) else None
    if command is not None and not isinstance(command, str):
        raise RequestError("run request error: command must be a string")
    if not command:
        raise RequestError("run request error: command is required")
    return command


async def run_command(request, inspector: Inspector) -> None:
    try:
        command = parse_run_request(request.data)
    except RequestError as e:
        logger.error("%s", e)
        await request.respond_error(e.error_code, str(e))
        return

    try:
        result = await asyncio.to_thread(inspector.run_command, command)
    except PipelineFailure as e:
        logger.error("run error: %s", e)
        data = json.dumps(e.result.to_dict()).encode()
        await request.respond_error(REQUEST_ERROR_CODE, str(e), data=data)
        return
    except InspectorError as e:
        logger.error("run error: %s", e)
        await request.respond_error(REQUEST_ERROR_CODE, str(e))
        return

    await request.respond(json.dumps(result.to_dict()).encode())


def log_handler(inspector: Inspector, fn: Handler):
    """Wrap ``fn`` so every request is logged before it is handled."""

    async def handler(request) -> None:
        logger.info("%s received request", request.subject)
        try:
            await fn(request, inspector)
        except Exception as e:
            logger.error("%s response error: %s", request.subject, e, exc_info=True)

    return handler


ENDPOINTS = (
    ("PING", ping, ""),
    ("ENV", get_environment, ""),
    ("RUN", run_command, '{"command": "string"}'),
)


async def start_micro_service(nc: NATS, inspector: Inspector):
    """Register the inspector service and its endpoints on ``nc``."""
    service = await nats.micro.add_service(
        nc,
        name=NAME,
        version=VERSION,
        description=DESCRIPTION,
    )

    for name, fn, request_schema in ENDPOINTS:
        try:
            await service.add_endpoint(
                name=name,
                subject=f"{PREFIX}.{name}",
                handler=log_handler(inspector, fn),
                metadata={"request": request_schema},
            )
        except Exception as e:
            await service.stop()
            raise InspectorError(f"error adding {name} endpoint: {e}") from e

    logger.info("nats micro service started")
    return service


async def connect(servers, creds_file: str, name: str = NAME) -> NATS:
    """Connect to NATS using a user credentials file."""
    try:
        return await nats.connect(
            servers=servers,
            user_credentials=creds_file,
            name=name,
        )
    except Exception as e:
        raise InspectorError(f"error connecting to nats: {e}") from e


async def serve(
    servers,
    creds_file: str,
    inspector: Inspector,
    stop_event: Optional[asyncio.Event] = None,
) -> None:
    """Run the micro service until ``stop_event`` is set."""
    stop_event = stop_event or asyncio.Event()
    nc = await connect(servers, creds_file)
    try:
        service = await start_micro_service(nc, inspector)
        try:
            await stop_event.wait()
        finally:
            await service.stop()
    finally:
        await nc.drain()
        logger.info("nats micro service stopped")
