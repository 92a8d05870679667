"""OpenTelemetry bootstrap for workflow transitions and draft autosave spans."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter
from opentelemetry.sdk.trace.sampling import (
    ALWAYS_OFF,
    ALWAYS_ON,
    ParentBased,
    Sampler,
    TraceIdRatioBased,
)
from opentelemetry.trace import Status, StatusCode

LOGGER = logging.getLogger("gamecrafter.telemetry")

DEFAULT_SERVICE_NAME = "gamecrafter-workflow"

_INITIALISED = False
_PROVIDER_MARKER = "_gamecrafter_configured"


@dataclass(frozen=True)
class TracingConfig:
    """Exporter and sampler settings read from the ``OTEL_*`` environment."""

    enabled: bool = True
    service_name: str = DEFAULT_SERVICE_NAME
    protocol: str = "http/protobuf"
    endpoint: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout: int | None = None
    sampler: str = ""
    sampler_arg: str = ""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "TracingConfig":
        env = os.environ if environ is None else environ
        timeout_raw = (env.get("OTEL_EXPORTER_OTLP_TIMEOUT") or "").strip()
        timeout: Optional[int] = None
        if timeout_raw:
            try:
                timeout = int(float(timeout_raw))
            except ValueError:
                LOGGER.warning("Invalid OTEL_EXPORTER_OTLP_TIMEOUT '%s'; ignoring", timeout_raw)
        enabled_flag = (env.get("OTEL_TRACES_ENABLED") or "1").strip().lower()
        return cls(
            enabled=enabled_flag not in {"0", "false", "off"},
            service_name=(env.get("OTEL_SERVICE_NAME") or "").strip() or DEFAULT_SERVICE_NAME,
            protocol=(env.get("OTEL_EXPORTER_OTLP_PROTOCOL") or "http/protobuf").strip().lower(),
            endpoint=(env.get("OTEL_EXPORTER_OTLP_ENDPOINT") or "").strip(),
            headers=parse_headers(env.get("OTEL_EXPORTER_OTLP_HEADERS")),
            timeout=timeout,
            sampler=(env.get("OTEL_TRACES_SAMPLER") or "").strip().lower(),
            sampler_arg=(env.get("OTEL_TRACES_SAMPLER_ARG") or "").strip(),
        )


def parse_headers(raw: str | None) -> Dict[str, str]:
    """Parse ``key=value`` pairs separated by commas; malformed fragments are skipped."""

    headers: Dict[str, str] = {}
    for fragment in (raw or "").split(","):
        key, sep, value = fragment.partition("=")
        if sep and key.strip():
            headers[key.strip()] = value.strip()
    return headers


def _coerce_ratio(raw: str, *, default: float = 1.0) -> float:
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        LOGGER.warning("Invalid OTEL_TRACES_SAMPLER_ARG '%s'; using default %.2f", raw, default)
        return default
    return max(0.0, min(1.0, value))


def build_sampler(config: TracingConfig) -> Sampler:
    name = config.sampler
    if name in {"always_on", "always_on_sampler"}:
        return ALWAYS_ON
    if name in {"always_off", "always_off_sampler"}:
        return ALWAYS_OFF
    if name in {"traceidratio", "traceidratio_sampler"}:
        return TraceIdRatioBased(_coerce_ratio(config.sampler_arg))
    if name not in {"", "parentbased_traceidratio", "parentbased_traceidratio_sampler"}:
        LOGGER.warning("Unknown OTEL_TRACES_SAMPLER '%s'; defaulting to parentbased_traceidratio", name)
        return ParentBased(TraceIdRatioBased(1.0))
    return ParentBased(TraceIdRatioBased(_coerce_ratio(config.sampler_arg)))


def _create_exporter(config: TracingConfig) -> SpanExporter:
    if config.protocol in {"grpc", "grpc/protobuf"}:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter as GrpcExporter

        return GrpcExporter(
            endpoint=config.endpoint,
            headers=tuple(config.headers.items()) or None,
            timeout=config.timeout,
        )

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter as HttpExporter

    if config.protocol not in {"http", "http/protobuf"}:
        LOGGER.warning("Unsupported OTEL_EXPORTER_OTLP_PROTOCOL '%s'; using http/protobuf", config.protocol)
    return HttpExporter(endpoint=config.endpoint, headers=dict(config.headers) or None, timeout=config.timeout)


def setup_tracing(*, environ: Mapping[str, str] | None = None, force: bool = False) -> bool:
    """Install a tracer provider with an OTLP exporter when one is configured.

    Without ``OTEL_EXPORTER_OTLP_ENDPOINT`` the API's no-op provider stays in
    place and every span in the workflow costs nothing. Returns ``True`` when
    a provider was installed by this call.
    """

    global _INITIALISED
    if _INITIALISED and not force:
        return False

    config = TracingConfig.from_env(environ)
    if not config.enabled:
        LOGGER.info("Telemetry disabled via OTEL_TRACES_ENABLED")
        return False
    if not config.endpoint:
        LOGGER.debug("No OTLP endpoint configured; skipping telemetry bootstrap")
        return False
    if not force and getattr(trace.get_tracer_provider(), _PROVIDER_MARKER, False):
        LOGGER.debug("Telemetry already initialised; skipping setup")
        return False

    provider = TracerProvider(
        resource=Resource.create({"service.name": config.service_name}),
        sampler=build_sampler(config),
    )
    provider.add_span_processor(BatchSpanProcessor(_create_exporter(config)))
    setattr(provider, _PROVIDER_MARKER, True)
    trace.set_tracer_provider(provider)

    _INITIALISED = True
    LOGGER.info("OpenTelemetry tracing initialised for service '%s'", config.service_name)
    return True


def mark_span_failed(span: Any, exc: BaseException, *, status: bool = True) -> None:
    """Attach ``exc`` to ``span`` and, unless ``status`` is false, flag it as an error."""

    span.record_exception(exc)
    if status:
        span.set_status(Status(StatusCode.ERROR, str(exc)))


__all__ = [
    "DEFAULT_SERVICE_NAME",
    "TracingConfig",
    "build_sampler",
    "mark_span_failed",
    "parse_headers",
    "setup_tracing",
]
