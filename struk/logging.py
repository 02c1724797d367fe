from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from typing import Any

from opentelemetry import trace
from pythonjsonlogger import jsonlogger

# attributes every LogRecord has; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(
	logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


def _extras(record: logging.LogRecord) -> dict[str, Any]:
	return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


class LokiJSONFormatter(jsonlogger.JsonFormatter):
	def __init__(self, *args: Any, service: str, **kwargs: Any) -> None:
		super().__init__(*args, **kwargs)
		self.service = service

	def add_fields(
		self,
		log_record: dict[str, Any],
		record: logging.LogRecord,
		message_dict: dict[str, Any],
	):
		super().add_fields(log_record, record, message_dict)

		log_record["timestamp"] = datetime.fromtimestamp(
			record.created, timezone.utc
		).isoformat(timespec="milliseconds")
		log_record["level"] = record.levelname.lower()
		log_record["service"] = log_record.get("service") or self.service

		log_record.pop("levelname", None)
		log_record.pop("color_message", None)
		log_record.pop("asctime", None)

		span = trace.get_current_span()
		if span and span.get_span_context().is_valid:
			ctx = span.get_span_context()
			log_record["trace_id"] = f"{ctx.trace_id:032x}"
			log_record["span_id"] = f"{ctx.span_id:016x}"

		return log_record


class KeyValueFormatter(logging.Formatter):
	"""Plain text for local runs, with ``extra=`` fields appended as key=value."""

	def format(self, record: logging.LogRecord) -> str:
		line = super().format(record)
		extras = _extras(record)
		if extras:
			line += " " + " ".join(f"{k}={v}" for k, v in sorted(extras.items()))
		return line


def configure_logging(
	service: str, json_mode: bool, level: str = "INFO"
) -> logging.Logger:
	root = logging.getLogger()
	if root.handlers:
		return logging.getLogger(service)

	handler = logging.StreamHandler(sys.stdout)
	if json_mode:
		handler.setFormatter(
			LokiJSONFormatter(
				"%(timestamp)s %(level)s %(service)s %(name)s %(message)s",
				service=service,
			)
		)
	else:
		handler.setFormatter(KeyValueFormatter(fmt="%(levelname)s %(name)s: %(message)s"))

	root.setLevel(level.upper())
	root.addHandler(handler)

	for name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
		ul = logging.getLogger(name)
		ul.handlers = [handler]
		ul.propagate = False

	# one line per outbound request is noise at INFO
	logging.getLogger("httpx").setLevel(logging.WARNING)

	return logging.getLogger(service)
