from __future__ import annotations

import importlib.metadata
import logging
from urllib.parse import quote

from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from ..errors import (
	EmptyDraft,
	ExportError,
	ExportTimeout,
	ExportWriteError,
	NothingToExport,
	OperationInProgress,
	RegionUnavailable,
	RenderFailed,
	StrukError,
	SubmissionError,
	ValidationError,
)
from ..schemas import ConnectionStatus, ErrorBody, ErrorResponse, ItemIn, LineItem, MetaIn, SessionView
from ..session import Session

log = logging.getLogger(__name__)


def _version() -> str:
	try:
		return importlib.metadata.version("struk")
	except importlib.metadata.PackageNotFoundError:
		return "unknown"


class Health(BaseModel):
	status: str = "ok"
	version: str = "unknown"


def http_error(
	code: str, message: str, status: int, details: dict | None = None
) -> JSONResponse:
	return JSONResponse(
		status_code=status,
		content=ErrorResponse(
			error=ErrorBody(code=code, message=message, details=details or {})
		).model_dump(mode="json"),
	)


def status_for(err: StrukError) -> int:
	if isinstance(err, OperationInProgress):
		return 409
	if isinstance(err, ValidationError):
		return 422
	if isinstance(err, EmptyDraft):
		return 400
	if isinstance(err, SubmissionError):
		return 502
	if isinstance(err, ExportTimeout):
		return 504
	if isinstance(err, (ExportWriteError, RenderFailed)):
		return 500
	if isinstance(err, (NothingToExport, RegionUnavailable)):
		return 409
	if isinstance(err, ExportError):
		return 422
	return 500


def error_response(err: StrukError) -> JSONResponse:
	return http_error(err.code, err.user_message, status_for(err), err.details)


def build_router(session: Session) -> APIRouter:
	router = APIRouter(prefix="/v1")

	@router.get("/health", response_model=Health)
	async def health() -> Health:
		return Health(version=_version())

	@router.get("/receipt", response_model=SessionView)
	async def receipt() -> SessionView:
		return session.view()

	@router.put("/draft/meta", response_model=SessionView)
	async def update_meta(body: MetaIn) -> SessionView:
		fields = body.model_fields_set
		if "customer_name" in fields:
			session.set_customer_name(body.customer_name)
		if "notes" in fields:
			session.set_notes(body.notes)
		return session.view()

	@router.post("/draft/items", response_model=LineItem, status_code=201)
	async def add_item(body: ItemIn):
		try:
			return session.add_item(body.name, body.quantity, body.price)
		except ValidationError as e:
			return error_response(e)

	@router.delete("/draft/items/{index}", response_model=SessionView)
	async def remove_item(index: int) -> SessionView:
		session.remove_item(index)
		return session.view()

	@router.post("/submit", response_model=SessionView)
	async def submit():
		try:
			await session.submit()
		except StrukError as e:
			return error_response(e)
		return session.view()

	@router.post("/export")
	async def export() -> Response:
		try:
			result = await session.export_snapshot()
		except StrukError as e:
			return error_response(e)
		return Response(
			content=result.data,
			media_type="image/png",
			headers={
				"Content-Disposition": f"attachment; filename*=UTF-8''{quote(result.filename)}"
			},
		)

	@router.post("/reset", response_model=SessionView)
	async def reset() -> SessionView:
		session.reset()
		return session.view()

	@router.get("/connection", response_model=ConnectionStatus)
	async def connection() -> ConnectionStatus:
		return await session.check_connection()

	return router
