from __future__ import annotations

import argparse
import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .config import SERVICE_NAME, Settings, load_settings
from .logging import configure_logging
from .session import Session
from .transport.rest import build_router

log = logging.getLogger(__name__)


def setup_tracing(app: FastAPI, settings: Settings) -> None:
	if not settings.otlp_endpoint:
		log.info("tracing disabled (no OTLP_ENDPOINT)")
		return

	resource = Resource.create({"service.name": SERVICE_NAME})
	provider = TracerProvider(resource=resource)
	exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint, insecure=True)
	provider.add_span_processor(BatchSpanProcessor(exporter))
	trace.set_tracer_provider(provider)
	FastAPIInstrumentor.instrument_app(app, tracer_provider=provider)
	log.info("tracing enabled", extra={"otlp_endpoint": settings.otlp_endpoint})


def create_app(settings: Settings | None = None, session: Session | None = None) -> FastAPI:
	settings = settings or load_settings()
	session = session or Session(settings)

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		log.info(
			"starting drafting session",
			extra={"backend_url": settings.backend_url, "export_dir": str(settings.export_dir)},
		)
		yield
		await session.close()

	app = FastAPI(title=SERVICE_NAME, lifespan=lifespan)
	app.state.session = session
	app.include_router(build_router(session))
	setup_tracing(app, settings)
	return app


def main() -> None:
	parser = argparse.ArgumentParser(
		prog="struk",
		description="Receipt drafting session with PNG snapshot export"
	)
	parser.add_argument("--host", default="127.0.0.1", help="bind address (default: 127.0.0.1)")
	parser.add_argument("--port", type=int, default=8080, help="HTTP port (default: 8080)")
	args = parser.parse_args()

	try:
		settings = load_settings()
	except ValueError as e:
		print(f"invalid configuration: {e}", file=sys.stderr)
		sys.exit(2)

	configure_logging(
		service=SERVICE_NAME, json_mode=settings.json_logs, level=settings.log_level
	)

	try:
		uvicorn.run(create_app(settings), host=args.host, port=args.port, log_config=None)
	except Exception as e:
		log.error("server failed to start", extra={"error": str(e)})
		sys.exit(1)


if __name__ == "__main__":
	main()
