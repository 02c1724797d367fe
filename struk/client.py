from __future__ import annotations

import json
import logging
import time

import httpx
from opentelemetry import trace
from pydantic import ValidationError as SchemaError

from .config import Settings
from .errors import SubmissionFailed, SubmissionRejected, truncate
from .schemas import ConfirmedReceipt, ConnectionStatus, Draft, IssueReceiptRequest, IssuedReceipt

log = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

RECEIPTS_PATH = "/api/receipts"
CONNECTION_PATH = "/test"


class ReceiptServiceClient:
	"""Client for the external receipt-issuing service."""

	def __init__(
		self,
		settings: Settings,
		transport: httpx.AsyncBaseTransport | None = None,
	) -> None:
		self.base_url = settings.backend_url
		self.timeout = settings.submit_timeout_secs
		self._transport = transport
		self._client: httpx.AsyncClient | None = None

	def _get_client(self) -> httpx.AsyncClient:
		if self._client is None or self._client.is_closed:
			self._client = httpx.AsyncClient(
				base_url=self.base_url,
				headers={"Accept": "application/json"},
				timeout=httpx.Timeout(self.timeout),
				transport=self._transport,
			)
		return self._client

	async def close(self) -> None:
		if self._client and not self._client.is_closed:
			await self._client.aclose()
			self._client = None

	async def issue(self, draft: Draft) -> ConfirmedReceipt:
		"""Send one issue request; the response is authoritative."""
		client = self._get_client()
		try:
			body = IssueReceiptRequest.from_draft(draft).model_dump(mode="json")
			request = client.build_request("POST", RECEIPTS_PATH, json=body)
		except (ValueError, TypeError) as e:
			log.error("draft could not be encoded", extra={"error": str(e)})
			raise SubmissionFailed(f"cannot encode draft: {e}") from e

		with tracer.start_as_current_span("client.issue_receipt") as span:
			span.set_attribute("items.count", len(draft.items))
			t0 = time.perf_counter()

			try:
				resp = await client.send(request)
			except httpx.HTTPError as e:
				log.warning("receipt service unreachable", extra={"error": str(e)})
				raise SubmissionFailed(str(e) or type(e).__name__) from e

			span.set_attribute("http.status_code", resp.status_code)
			span.set_attribute("elapsed_secs", round(time.perf_counter() - t0, 3))

			if not resp.is_success:
				log.warning(
					"receipt service rejected draft",
					extra={"status_code": resp.status_code},
				)
				raise SubmissionRejected(resp.text, resp.status_code)

			try:
				issued = IssuedReceipt.model_validate(resp.json())
			except (json.JSONDecodeError, SchemaError) as e:
				log.error("receipt service returned unusable body", extra={"error": str(e)})
				raise SubmissionFailed(f"invalid response: {e}") from e

			receipt = issued.to_confirmed()
			span.set_attribute("receipt.number", receipt.number)

		if receipt.total != draft.subtotal:
			log.info(
				"server total differs from local subtotal",
				extra={"server_total": str(receipt.total), "local_subtotal": str(draft.subtotal)},
			)
		log.info("receipt issued", extra={"number": receipt.number, "items": len(receipt.items)})
		return receipt

	async def check_connection(self) -> ConnectionStatus:
		url = f"{self.base_url}{CONNECTION_PATH}"
		try:
			resp = await self._get_client().get(CONNECTION_PATH)
		except httpx.HTTPError as e:
			return ConnectionStatus(ok=False, url=url, detail=truncate(str(e) or type(e).__name__))
		return ConnectionStatus(
			ok=resp.is_success,
			url=url,
			status_code=resp.status_code,
			detail=truncate(resp.text) or None,
		)
