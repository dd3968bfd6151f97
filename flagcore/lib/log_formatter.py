from typing import Any

from opentelemetry import trace
from pythonjsonlogger import jsonlogger

from flagcore.lib.value import ArrValue
from flagcore.lib.value import NullValue
from flagcore.lib.value import ObjValue
from flagcore.lib.value import Value


class ValueJsonEncoder(jsonlogger.JsonEncoder):
    """Encode :py:class:`~flagcore.lib.value.Value` extras as plain JSON."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, ObjValue):
            return dict(obj.items())
        if isinstance(obj, ArrValue):
            return list(obj)
        if isinstance(obj, NullValue):
            return None
        if isinstance(obj, Value):
            return obj.value
        return super().default(obj)


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON log lines with a ``level`` key and the active trace ID, if any.

    Values passed through ``extra`` (targeting attributes, for example) are
    written as JSON rather than as their display text.

    """

    def __init__(self, *args: Any, **kwargs: Any):
        kwargs.setdefault("json_encoder", ValueJsonEncoder)
        super().__init__(*args, **kwargs)

    def process_log_record(self, log_record: dict) -> dict:
        log_record["level"] = log_record.pop("levelname", None)
        try:
            span = trace.get_current_span()
            if span.is_recording():
                log_record["traceID"] = trace.format_trace_id(span.get_span_context().trace_id)
        except (KeyError, ValueError, TypeError):
            pass
        return super().process_log_record(log_record)
