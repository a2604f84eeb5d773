import asyncio
import json

import httpx
import pytest

from backoffice import catalog_api
from backoffice.config import settings


def _mock(monkeypatch, handler):
    seen = []

    def recording(request):
        seen.append(request)
        return handler(request)

    def client():
        return httpx.AsyncClient(
            base_url="http://catalog.test/api",
            headers=catalog_api._headers(),
            transport=httpx.MockTransport(recording),
        )

    monkeypatch.setattr(catalog_api, "_client", client)
    return seen


def test_get_product_variants(monkeypatch):
    monkeypatch.setattr(settings, "CATALOG_API_TOKEN", "tok")
    seen = _mock(monkeypatch, lambda req: httpx.Response(200, json={"variants": []}))
    result = asyncio.run(catalog_api.get_product_variants("p1"))
    assert result == {"status_code": 200, "data": {"variants": []}}
    assert seen[0].method == "GET"
    assert seen[0].url.path == "/api/products/p1/variants"
    assert seen[0].headers["Authorization"] == "Bearer tok"
    assert catalog_api.is_ok(result)


def test_bulk_upsert_posts_json(monkeypatch):
    seen = _mock(monkeypatch, lambda req: httpx.Response(200, json={"counts": {"created": 2, "updated": 1}}))
    payload = {"variants": [{"options": {"size": "6"}, "manageStock": True}], "variantOptions": []}
    result = asyncio.run(catalog_api.bulk_upsert_variants("p1", payload))
    assert result["data"]["counts"] == {"created": 2, "updated": 1}
    assert seen[0].url.path == "/api/products/p1/variants/bulk"
    assert json.loads(seen[0].content) == payload


def test_upload_is_multipart(monkeypatch):
    seen = _mock(monkeypatch, lambda req: httpx.Response(200, json={"images": ["u.jpg"]}))
    result = asyncio.run(catalog_api.upload_variant_image(
        "p1", {"variantId": "v7", "mode": "hover"}, "ring.jpg", b"\xff\xd8data", "image/jpeg"))
    assert result["data"] == {"images": ["u.jpg"]}
    req = seen[0]
    assert req.url.path == "/api/products/p1/variants/bulkimage"
    assert req.headers["Content-Type"].startswith("multipart/form-data")
    body = req.read()
    assert b'name="variantId"' in body and b"v7" in body
    assert b'name="mode"' in body and b"hover" in body
    assert b'filename="ring.jpg"' in body


def test_transport_error_is_returned_not_raised(monkeypatch):
    def boom(req):
        raise httpx.ConnectError("refused", request=req)

    _mock(monkeypatch, boom)
    result = asyncio.run(catalog_api.get_product_variants("p1"))
    assert "refused" in result["error"]
    assert not catalog_api.is_ok(result)


def test_non_json_body_is_kept_as_text(monkeypatch):
    _mock(monkeypatch, lambda req: httpx.Response(502, text="Bad gateway"))
    result = asyncio.run(catalog_api.bulk_upsert_variants("p1", {}))
    assert result == {"status_code": 502, "data": "Bad gateway"}


@pytest.mark.parametrize("result, expected", [
    ({"status_code": 400, "data": {"message": " Duplicate SKU "}}, "Duplicate SKU"),
    ({"status_code": 400, "data": {"detail": "bad options"}}, "bad options"),
    ({"status_code": 500, "data": {}}, "Save failed"),
    ({"status_code": 500, "data": None}, "Save failed"),
    ({"error": "timeout"}, "Save failed"),
])
def test_error_message(result, expected):
    assert catalog_api.error_message(result, "Save failed") == expected


def test_error_message_summarizes_html():
    page = "<!DOCTYPE html><html><head><title>502 Bad Gateway</title></head><body>" + "x" * 500 + "</body></html>"
    msg = catalog_api.error_message({"status_code": 502, "data": page}, "Save failed")
    assert msg.startswith("Save failed: 502 Bad Gateway")


def test_timeout_zero_means_none(monkeypatch):
    monkeypatch.setattr(settings, "CATALOG_API_TIMEOUT", 0)
    assert catalog_api._timeout() is None
    monkeypatch.setattr(settings, "CATALOG_API_TIMEOUT", 5.0)
    assert catalog_api._timeout() == 5.0


def test_ping_without_url(monkeypatch):
    monkeypatch.setattr(settings, "CATALOG_API_URL", "")
    result = asyncio.run(catalog_api.catalog_ping())
    assert result["ok"] is False
