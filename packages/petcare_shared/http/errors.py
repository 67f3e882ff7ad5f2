"""Request parsing failures raised by the shared HTTP helpers."""

from __future__ import annotations


class HttpServerError(Exception):
    """A request could not be read; ``message`` is safe to return to clients."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingHeaderError(HttpServerError):
    def __init__(self, header_name: str) -> None:
        super().__init__(f"Missing required header: {header_name}")
        self.header_name = header_name


class InvalidJsonBodyError(HttpServerError):
    def __init__(self) -> None:
        super().__init__("Body is not valid JSON")
