import dataclasses

import httpx
import pytest
import pytest_asyncio

from struk.app import create_app
from struk.session import Session


@pytest_asyncio.fixture
async def api(settings, session):
	app = create_app(settings, session)
	async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
		yield c


@pytest.mark.asyncio
async def test_health(api):
	resp = await api.get("/v1/health")
	assert resp.status_code == 200
	assert resp.json()["status"] == "ok"
	assert resp.json()["version"]


@pytest.mark.asyncio
async def test_full_flow(api, settings):
	await api.put("/v1/draft/meta", json={"customer_name": "Budi"})
	resp = await api.post("/v1/draft/items", json={"name": "Produk A", "quantity": 2, "price": "15000"})
	assert resp.status_code == 201
	assert resp.json() == {"name": "Produk A", "quantity": 2, "price": 15000}
	await api.post("/v1/draft/items", json={"name": "Produk B", "quantity": 1, "price": 5000})

	view = (await api.get("/v1/receipt")).json()
	assert view["phase"] == "editable"
	assert view["subtotal"] == 35000
	assert view["label"] == "DRAFT"

	resp = await api.post("/v1/submit")
	assert resp.status_code == 200
	view = resp.json()
	assert view["phase"] == "confirmed"
	assert view["label"] == "0007"
	assert view["display"]["total"] == 35000
	assert view["display"]["customer_name"] == "Budi"

	resp = await api.post("/v1/export")
	assert resp.status_code == 200
	assert resp.headers["content-type"] == "image/png"
	assert "VELLIXAO_Struk_%230007.png" in resp.headers["content-disposition"]
	assert resp.content.startswith(b"\x89PNG")

	resp = await api.post("/v1/reset")
	assert resp.json()["phase"] == "empty"


@pytest.mark.asyncio
async def test_validation_error_is_422(api):
	resp = await api.post("/v1/draft/items", json={"name": "", "quantity": 1, "price": 10})
	assert resp.status_code == 422
	assert resp.json()["error"]["code"] == "EMPTY_NAME"

	view = (await api.get("/v1/receipt")).json()
	assert view["error"] == "Nama item wajib diisi"
	assert view["display"]["items"] == []


@pytest.mark.asyncio
async def test_empty_submit_is_400(api, service):
	resp = await api.post("/v1/submit")
	assert resp.status_code == 400
	assert resp.json()["error"]["code"] == "EMPTY_DRAFT"
	assert service.requests == []


@pytest.mark.asyncio
async def test_rejected_submit_is_502(api, service):
	service.response = httpx.Response(400, text="nomor habis")
	await api.post("/v1/draft/items", json={"name": "A", "quantity": 1, "price": 10})
	resp = await api.post("/v1/submit")
	assert resp.status_code == 502
	body = resp.json()["error"]
	assert body["code"] == "SUBMISSION_REJECTED"
	assert body["message"] == "Gagal membuat struk: nomor habis"


@pytest.mark.asyncio
async def test_export_without_receipt_is_409(api, settings):
	resp = await api.post("/v1/export")
	assert resp.status_code == 409
	assert resp.json()["error"]["code"] == "NOTHING_TO_EXPORT"


@pytest.mark.asyncio
async def test_remove_out_of_range_is_harmless(api):
	await api.post("/v1/draft/items", json={"name": "A", "quantity": 1, "price": 10})
	resp = await api.delete("/v1/draft/items/5")
	assert resp.status_code == 200
	assert len(resp.json()["display"]["items"]) == 1


@pytest.mark.asyncio
async def test_connection_check(api):
	resp = await api.get("/v1/connection")
	assert resp.status_code == 200
	assert resp.json()["ok"] is True


@pytest_asyncio.fixture
async def blocked_api(settings, client, tmp_path):
	blocker = tmp_path / "blocker"
	blocker.write_text("x")
	blocked = dataclasses.replace(settings, export_dir=blocker / "sub")
	app = create_app(blocked, Session(blocked, client=client))
	async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as c:
		yield c


@pytest.mark.asyncio
async def test_export_write_failure_is_structured_500(blocked_api):
	await blocked_api.post("/v1/draft/items", json={"name": "A", "quantity": 1, "price": 10})
	await blocked_api.post("/v1/submit")

	resp = await blocked_api.post("/v1/export")

	assert resp.status_code == 500
	assert resp.json()["error"]["code"] == "EXPORT_WRITE_FAILED"
	view = (await blocked_api.get("/v1/receipt")).json()
	assert view["error"] == "Gagal menyimpan struk. Periksa folder unduhan dan coba lagi."
	assert view["phase"] == "confirmed"
