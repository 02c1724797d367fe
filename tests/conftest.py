"""Shared fixtures: a fake receipt service and fake asset host."""

import io
import json

import httpx
import pytest
from PIL import Image

from struk.client import ReceiptServiceClient
from struk.config import Settings
from struk.session import Session

BACKEND = "http://receipts.test"
ORIGIN = "http://app.test"
LOGO_URL = "https://cdn.test/logo.png"


def png_bytes(color=(10, 120, 200, 255), size=(8, 8)) -> bytes:
	buf = io.BytesIO()
	Image.new("RGBA", size, color).save(buf, format="PNG")
	return buf.getvalue()


class FakeReceiptService:
	"""Records requests and answers like the receipt-issuing backend."""

	def __init__(self):
		self.requests: list[httpx.Request] = []
		self.next_number = 7
		self.response: httpx.Response | None = None
		self.exception: Exception | None = None

	def bodies(self) -> list[dict]:
		return [json.loads(r.content) for r in self.requests]

	def __call__(self, request: httpx.Request) -> httpx.Response:
		self.requests.append(request)
		if self.exception is not None:
			raise self.exception
		if self.response is not None:
			return self.response
		if request.url.path == "/test":
			return httpx.Response(200, text="ok")

		body = json.loads(request.content)
		total = sum(it["quantity"] * it["price"] for it in body["items"])
		number = self.next_number
		self.next_number += 1
		return httpx.Response(
			201,
			json={
				"number": number,
				"customer_name": body["customer_name"],
				"notes": body["notes"],
				"items": body["items"],
				"total": total,
			},
		)


@pytest.fixture
def service() -> FakeReceiptService:
	return FakeReceiptService()


@pytest.fixture
def settings(tmp_path) -> Settings:
	return Settings(
		backend_url=BACKEND,
		export_dir=tmp_path / "exports",
		app_origin=ORIGIN,
		asset_timeout_secs=0.5,
		brand_logo=None,
	)


@pytest.fixture
def client(settings, service) -> ReceiptServiceClient:
	return ReceiptServiceClient(settings, transport=httpx.MockTransport(service))


@pytest.fixture
def session(settings, client) -> Session:
	return Session(settings, client=client)
