"""Observability wrapper for public service methods.

Every call decorated with ``public_api_instrumented`` produces one ``ApiCall``
when it starts and one ``ApiOutcome`` when it returns or raises. Both are fed
to a list of observers: the structured log observer, an OpenTelemetry span
observer and an OpenTelemetry metrics observer. An observer that raises is
reported on the call logger and the call itself carries on.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass, field
from functools import lru_cache, wraps
from time import perf_counter
from typing import Any, Callable, Mapping, Protocol, Sequence

from opentelemetry import metrics as otel_metrics
from opentelemetry import trace as otel_trace
from opentelemetry.trace import Status, StatusCode

from . import fields
from .context import log_context

INTERNAL_CATEGORY = "internal"
UNKNOWN_CATEGORY = "unknown"


@dataclass(frozen=True)
class ApiCall:
    """Identity of one public method call as seen by observers."""

    component_id: str
    api_name: str
    trace_id: str | None = None
    envelope_id: str | None = None
    principal: str | None = None
    references: Mapping[str, str] = field(default_factory=dict)

    @property
    def span_name(self) -> str:
        return f"public_api.{self.component_id}.{self.api_name}"

    def log_fields(self) -> dict[str, object]:
        return {
            fields.EVENT: fields.PUBLIC_API_INVOCATION_EVENT,
            fields.COMPONENT_ID: self.component_id,
            fields.API_NAME: self.api_name,
            fields.TRACE_ID: self.trace_id,
            fields.ENVELOPE_ID: self.envelope_id,
            fields.PRINCIPAL: self.principal,
            **self.references,
        }


@dataclass(frozen=True)
class ApiOutcome:
    """Result summary for one finished call."""

    call: ApiCall
    success: bool
    duration_ms: float
    errors: list[str] = field(default_factory=list)
    error_categories: list[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return "success" if self.success else "failure"


class ApiCallObserver(Protocol):
    """Receives start and finish notifications for decorated calls."""

    def call_started(self, call: ApiCall) -> None: ...

    def call_finished(self, outcome: ApiOutcome) -> None: ...


class LoggingObserver:
    """Write one INFO line per call start and one line per finish."""

    def __init__(self, logger: Any) -> None:
        self._logger = logger

    def call_started(self, call: ApiCall) -> None:
        with log_context(call.log_fields()):
            self._logger.info("Public API invocation")

    def call_finished(self, outcome: ApiOutcome) -> None:
        payload = outcome.call.log_fields()
        payload[fields.EVENT] = fields.PUBLIC_API_COMPLETION_EVENT
        payload[fields.SUCCESS] = outcome.success
        payload[fields.DURATION_MS] = outcome.duration_ms
        payload[fields.ERRORS] = outcome.errors
        level = self._logger.info if outcome.success else self._logger.warning
        with log_context(payload):
            level("Public API completion")


class TracingObserver:
    """Keep one span open for the lifetime of each call."""

    def __init__(self, tracer: Any) -> None:
        self._tracer = tracer
        self._open: ContextVar[tuple[Any, ...]] = ContextVar(
            "petcare_public_api_spans", default=()
        )

    def call_started(self, call: ApiCall) -> None:
        attributes: dict[str, object] = {
            fields.COMPONENT_ID: call.component_id,
            fields.API_NAME: call.api_name,
        }
        if call.trace_id is not None:
            attributes[fields.TRACE_ID] = call.trace_id
        if call.principal is not None:
            attributes[fields.PRINCIPAL] = call.principal
        for key, value in call.references.items():
            attributes[f"reference.{key}"] = value
        span = self._tracer.start_span(call.span_name, attributes=attributes)
        self._open.set((*self._open.get(), span))

    def call_finished(self, outcome: ApiOutcome) -> None:
        stack = self._open.get()
        if not stack:
            return
        span = stack[-1]
        self._open.set(stack[:-1])
        span.set_attribute(fields.SUCCESS, outcome.success)
        span.set_attribute(fields.DURATION_MS, outcome.duration_ms)
        span.set_attribute(fields.OUTCOME, outcome.label)
        if not outcome.success:
            span.set_status(Status(StatusCode.ERROR))
            if outcome.errors:
                span.record_exception(RuntimeError("; ".join(outcome.errors[:3])))
        span.end()


class MetricsObserver:
    """Count calls and failures and record latency per method."""

    def __init__(
        self,
        meter: Any,
        *,
        calls_metric: str,
        duration_metric: str,
        errors_metric: str,
    ) -> None:
        self._calls = meter.create_counter(
            name=calls_metric,
            description="Public API calls by component, method and outcome.",
            unit="1",
        )
        self._duration = meter.create_histogram(
            name=duration_metric,
            description="Public API call latency.",
            unit="ms",
        )
        self._errors = meter.create_counter(
            name=errors_metric,
            description="Public API failures by error category.",
            unit="1",
        )

    def call_started(self, call: ApiCall) -> None:
        return None

    def call_finished(self, outcome: ApiOutcome) -> None:
        labels = {
            fields.COMPONENT_ID: outcome.call.component_id,
            fields.API_NAME: outcome.call.api_name,
        }
        self._calls.add(1, attributes={**labels, fields.OUTCOME: outcome.label})
        self._duration.record(
            outcome.duration_ms, attributes={**labels, fields.OUTCOME: outcome.label}
        )
        if outcome.success:
            return
        for category in outcome.error_categories or [UNKNOWN_CATEGORY]:
            self._errors.add(1, attributes={**labels, fields.ERROR_CATEGORY: category})


def public_api_instrumented(
    *,
    component_id: str,
    api_name: str | None = None,
    id_fields: tuple[str, ...] = (),
    observers: Sequence[ApiCallObserver] | None = None,
    logger: Any | None = None,
    telemetry: bool = True,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorate one keyword-only public method with call observers.

    ``id_fields`` names keyword arguments copied onto logs and spans as
    references, e.g. ``owner_id``. ``telemetry`` attaches the process-wide
    OpenTelemetry span and metric observers after the explicit ones.
    """
    chain: list[ApiCallObserver] = []
    if logger is not None:
        chain.append(LoggingObserver(logger))
    chain.extend(observers or ())
    if telemetry:
        chain.extend(_telemetry_observers())
    if not chain:
        raise ValueError("public_api_instrumented requires at least one observer")

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        name = api_name or func.__name__

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            meta = kwargs.get("meta")
            call = ApiCall(
                component_id=component_id,
                api_name=name,
                trace_id=_meta_field(meta, "trace_id"),
                envelope_id=_meta_field(meta, "envelope_id"),
                principal=_meta_field(meta, "principal"),
                references={
                    key: str(kwargs[key])
                    for key in id_fields
                    if kwargs.get(key) not in (None, "")
                },
            )
            _notify(chain, "call_started", call, call=call, logger=logger)
            started = perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                outcome = ApiOutcome(
                    call=call,
                    success=False,
                    duration_ms=_elapsed_ms(started),
                    errors=[f"{type(exc).__name__}: {exc}"],
                    error_categories=[INTERNAL_CATEGORY],
                )
                _notify(chain, "call_finished", outcome, call=call, logger=logger)
                raise
            _notify(
                chain,
                "call_finished",
                _outcome_of(call, result, _elapsed_ms(started)),
                call=call,
                logger=logger,
            )
            return result

        return wrapper

    return decorator


def _outcome_of(call: ApiCall, result: Any, duration_ms: float) -> ApiOutcome:
    """Summarize an envelope-shaped result; other results count as success."""
    raw_errors = getattr(result, "errors", None)
    items = raw_errors if isinstance(raw_errors, list) else []
    summaries: list[str] = []
    categories: list[str] = []
    for item in items:
        message = getattr(item, "message", None)
        if message not in (None, ""):
            code = getattr(item, "code", None)
            summaries.append(f"{code}: {message}" if code else str(message))
        category = getattr(getattr(item, "category", None), "value", None)
        if category:
            categories.append(str(category))
    ok = getattr(result, "ok", None)
    return ApiOutcome(
        call=call,
        success=ok if isinstance(ok, bool) else not summaries,
        duration_ms=duration_ms,
        errors=summaries,
        error_categories=categories,
    )


def _notify(
    chain: Sequence[ApiCallObserver],
    hook: str,
    event: ApiCall | ApiOutcome,
    *,
    call: ApiCall,
    logger: Any | None,
) -> None:
    for observer in chain:
        try:
            getattr(observer, hook)(event)
        except Exception as exc:  # noqa: BLE001
            if logger is None:
                continue
            with log_context(
                {
                    fields.EVENT: fields.PUBLIC_API_INSTRUMENTATION_FAILURE_EVENT,
                    fields.COMPONENT_ID: call.component_id,
                    fields.API_NAME: call.api_name,
                    fields.STAGE: hook,
                    fields.OBSERVER: type(observer).__name__,
                    fields.ERRORS: [f"{type(exc).__name__}: {exc}"],
                }
            ):
                logger.warning("Public API observer failed")


def _elapsed_ms(started: float) -> float:
    return round((perf_counter() - started) * 1000.0, 3)


def _meta_field(meta: object | None, name: str) -> str | None:
    value = getattr(meta, name, None)
    return None if value in (None, "") else str(value)


@lru_cache(maxsize=1)
def _telemetry_observers() -> tuple[ApiCallObserver, ...]:
    from packages.petcare_shared.config import load_settings

    telemetry = load_settings().telemetry
    return (
        TracingObserver(otel_trace.get_tracer(telemetry.instrumentation_scope)),
        MetricsObserver(
            otel_metrics.get_meter(telemetry.instrumentation_scope),
            calls_metric=telemetry.calls_metric,
            duration_metric=telemetry.duration_metric,
            errors_metric=telemetry.errors_metric,
        ),
    )
