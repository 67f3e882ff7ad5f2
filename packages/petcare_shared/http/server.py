"""FastAPI app construction, request readers and error responses.

Service route modules use these helpers so that every endpoint reads headers
and JSON bodies the same way and maps envelope errors to the same statuses.
"""

from __future__ import annotations

import json
from typing import Any, Sequence

import uvicorn
from fastapi import FastAPI, Request

from packages.petcare_shared.errors import ErrorCategory, ErrorDetail

from .errors import InvalidJsonBodyError, MissingHeaderError

_STATUS_BY_CATEGORY = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.POLICY: 403,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.CONFLICT: 409,
    ErrorCategory.INTERNAL: 500,
    ErrorCategory.DEPENDENCY: 503,
}


def create_app(*, title: str = "petcare", version: str = "0.0.0") -> FastAPI:
    return FastAPI(title=title, version=version)


def run_app(
    app: FastAPI,
    *,
    host: str = "127.0.0.1",
    port: int = 8000,
    log_level: str = "info",
) -> None:
    """Serve ``app`` with uvicorn until the process is stopped."""
    uvicorn.run(app, host=host, port=port, log_level=log_level)


def get_header(
    request: Request,
    name: str,
    *,
    required: bool = True,
    strip: bool = True,
) -> str | None:
    """Return one header value; a blank required header counts as missing."""
    value = request.headers.get(name)
    if value is not None and strip:
        value = value.strip()
    if required and not value:
        raise MissingHeaderError(name)
    return value


async def read_json_body(request: Request) -> Any:
    try:
        return json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidJsonBodyError() from exc


def status_code_for_errors(errors: Sequence[ErrorDetail]) -> int:
    """HTTP status for an error envelope, decided by its first error."""
    if not errors:
        return 500
    return _STATUS_BY_CATEGORY.get(errors[0].category, 500)


def error_body(errors: Sequence[ErrorDetail]) -> dict[str, Any]:
    return {"errors": [error.to_dict() for error in errors]}
