import structlog
import logging
import sys
from typing import Dict, Any, List, Optional, Tuple
from datetime import datetime, timezone
import os

# Context keys the Runner binds per run
CONTEXT_KEYS = ("trace_id", "session_id", "run_id")


def add_service_context(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Stamp entries with a UTC timestamp and the bound run identifiers"""

    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())

    bound = structlog.contextvars.get_contextvars()
    for key in CONTEXT_KEYS:
        if key not in event_dict and bound.get(key):
            event_dict[key] = bound[key]

    return event_dict


def _processors(log_format: str) -> List[Any]:
    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        add_service_context,
        renderer,
    ]


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    service_name: str = "baton"
) -> None:
    """Route structlog through stdlib logging with JSON or console output"""

    level = logging.getLevelName(log_level.upper())
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level if isinstance(level, int) else logging.INFO
    )

    structlog.configure(
        processors=_processors(log_format),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(
        service=service_name,
        environment=os.getenv("ENVIRONMENT", "development"),
        version=os.getenv("SERVICE_VERSION", "unknown")
    )


def configure_logging(settings) -> None:
    """Apply the logging fields of BatonSettings"""

    setup_logging(
        log_level=settings.log_level,
        log_format=settings.log_format,
        service_name=settings.service_name
    )


class AgentLogger:
    """Event-shaped logging for agents, tools and handoffs"""

    def __init__(self, name: str):
        self.logger = structlog.get_logger(name)

    def log_agent_event(
        self,
        event_type: str,
        agent_name: str,
        data: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        self.logger.info("agent_event", event_type=event_type, agent_name=agent_name, data=data or {}, **kwargs)

    def log_tool_execution(
        self,
        tool_name: str,
        input_data: Dict[str, Any],
        output_data: Optional[Any] = None,
        duration_ms: Optional[float] = None,
        success: bool = True,
        error: Optional[str] = None
    ):
        """Failed calls are logged at warning level"""

        log = self.logger.info if success else self.logger.warning
        log(
            "tool_execution",
            tool_name=tool_name,
            input_data=input_data,
            output_data=output_data,
            duration_ms=duration_ms,
            success=success,
            error=error
        )

    def log_handoff(
        self,
        from_agent: str,
        to_agent: str,
        reason: Optional[str] = None,
        handoff_count: Optional[int] = None
    ):
        self.logger.info(
            "agent_handoff",
            from_agent=from_agent,
            to_agent=to_agent,
            reason=reason,
            handoff_count=handoff_count
        )

    def log_context_update(
        self,
        context_type: str,
        action: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.logger.debug("context_update", context_type=context_type, action=action, details=details or {})


agent_logger = AgentLogger("baton")


def series_key(name: str, tags: Optional[Dict[str, str]] = None) -> str:
    """Metric key for a tag set, e.g. ``handoffs{from=Triage,to=Billing}``"""
    if not tags:
        return name
    labels = ",".join(f"{key}={value}" for key, value in sorted(tags.items()))
    return f"{name}{{{labels}}}"


class MetricsCollector:
    """In-process latency, counter and gauge series

    Counters and latencies are kept both as an untagged total and per tag
    set; gauges are kept per tag set only.
    """

    def __init__(self):
        self.metrics: Dict[str, Any] = {}

    def _keys(self, name: str, tags: Optional[Dict[str, str]]) -> Tuple[str, ...]:
        if not tags:
            return (name,)
        return (name, series_key(name, tags))

    def record_latency(self, operation: str, duration_ms: float, tags: Optional[Dict[str, str]] = None):
        for key in self._keys(f"latency.{operation}", tags):
            stats = self.metrics.setdefault(key, {"count": 0, "sum": 0.0, "min": None, "max": None})
            stats["count"] += 1
            stats["sum"] += duration_ms
            stats["min"] = duration_ms if stats["min"] is None else min(stats["min"], duration_ms)
            stats["max"] = duration_ms if stats["max"] is None else max(stats["max"], duration_ms)

        agent_logger.logger.debug("metric", metric_type="latency", operation=operation, duration_ms=duration_ms, tags=tags or {})

    def increment_counter(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None):
        for key in self._keys(name, tags):
            self.metrics[key] = self.metrics.get(key, 0) + value

        agent_logger.logger.debug("metric", metric_type="counter", name=name, value=value, tags=tags or {})

    def set_gauge(self, name: str, value: float, tags: Optional[Dict[str, str]] = None):
        self.metrics[series_key(name, tags)] = value

        agent_logger.logger.debug("metric", metric_type="gauge", name=name, value=value, tags=tags or {})

    def get(self, name: str, tags: Optional[Dict[str, str]] = None) -> Any:
        return self.metrics.get(series_key(name, tags))

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Latency series reduced to count/avg/min/max; counters and gauges as-is"""

        summary: Dict[str, Any] = {}
        for key, value in self.metrics.items():
            if isinstance(value, dict):
                summary[key] = {
                    "count": value["count"],
                    "avg": value["sum"] / value["count"] if value["count"] else 0,
                    "min": value["min"] or 0,
                    "max": value["max"] or 0,
                }
            else:
                summary[key] = value
        return summary

    def reset(self) -> None:
        self.metrics.clear()


metrics = MetricsCollector()
