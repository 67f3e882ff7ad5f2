"""HTTP helpers shared by service route modules."""

from .errors import HttpServerError, InvalidJsonBodyError, MissingHeaderError
from .server import (
    create_app,
    error_body,
    get_header,
    read_json_body,
    run_app,
    status_code_for_errors,
)

__all__ = [
    "create_app",
    "error_body",
    "get_header",
    "HttpServerError",
    "InvalidJsonBodyError",
    "MissingHeaderError",
    "read_json_body",
    "run_app",
    "status_code_for_errors",
]
