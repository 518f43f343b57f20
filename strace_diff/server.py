"""HTTP API for parsing and diffing trace logs."""

import json
import logging

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from .parse import PARSERS, parse_trace
from .report import DEFAULT_TOP_CALLS, build_report

DEFAULT_PORT = 8090


class InvalidRequest(Exception):
    """Request body is not usable."""


def _error(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(
        {"error": {"message": message, "type": "invalid_request"}},
        status_code=status_code,
    )


async def _read_json(request: Request) -> dict:
    body = await request.body()
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidRequest("Request body must be JSON")
    if not isinstance(data, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return data


def _trace_format(data: dict) -> str:
    mode = data.get("format", "strace")
    if mode not in PARSERS:
        raise InvalidRequest(f"Unknown trace format: {mode!r}")
    return mode


def _trace_input(data: dict, key: str | None, default_name: str) -> tuple[str, str]:
    """Extract (content, name) of one trace from a request body."""
    source = data.get(key) if key else data
    if not isinstance(source, dict):
        raise InvalidRequest(f"Missing trace object: {key}")
    content = source.get("content")
    if not isinstance(content, str):
        raise InvalidRequest(f"Missing trace content: {key or 'content'}")
    name = source.get("name") or default_name
    return content, str(name)


def _pid_filter(data: dict) -> list[int] | None:
    pids = data.get("pids")
    if pids is None:
        return None
    if not isinstance(pids, list) or not all(isinstance(p, int) for p in pids):
        raise InvalidRequest("pids must be a list of integers")
    return pids


async def parse(request: Request) -> Response:
    """Parse one trace and return its events and stats."""
    try:
        data = await _read_json(request)
        mode = _trace_format(data)
        content, name = _trace_input(data, None, "trace")
    except InvalidRequest as e:
        return _error(str(e))

    trace = await run_in_threadpool(parse_trace, content, name, mode)
    return JSONResponse(trace.to_dict())


async def diff(request: Request) -> Response:
    """Parse two traces, align them and return the comparison report."""
    try:
        data = await _read_json(request)
        mode = _trace_format(data)
        content_a, name_a = _trace_input(data, "a", "A")
        content_b, name_b = _trace_input(data, "b", "B")
        pids = _pid_filter(data)
        top = data.get("top", DEFAULT_TOP_CALLS)
        # bool is an int subclass
        if not isinstance(top, int) or isinstance(top, bool) or top < 0:
            raise InvalidRequest("top must be a non-negative integer")
        slow_only = data.get("slow_only", False)
        if not isinstance(slow_only, bool):
            raise InvalidRequest("slow_only must be a boolean")
    except InvalidRequest as e:
        return _error(str(e))

    def run():
        trace_a = parse_trace(content_a, name_a, mode)
        trace_b = parse_trace(content_b, name_b, mode)
        return build_report(trace_a, trace_b, pids=pids, slow_only=slow_only, top=top)

    logging.info(f"Diff request: {name_a} vs {name_b} ({mode})")
    report = await run_in_threadpool(run)
    return JSONResponse(report.to_dict())


async def health(request: Request) -> Response:
    return JSONResponse({"status": "ok"})


def create_app() -> Starlette:
    """Create the Starlette application."""
    return Starlette(
        routes=[
            Route("/health", health, methods=["GET"]),
            Route("/api/parse", parse, methods=["POST"]),
            Route("/api/diff", diff, methods=["POST"]),
        ],
    )
