#==========================================================================================
# backoffice/catalog_api.py
# Catalog REST API interface module.
# Functions to talk to the store backend for product variants (list, bulk upsert, images).
#==========================================================================================
import logging
from typing import Any, Dict, Optional

import httpx

from backoffice.config import settings
from backoffice.logging_filters import looks_like_html, summarize_html

logger = logging.getLogger("uvicorn.error")


def _headers() -> Dict[str, str]:
    hdrs = {"Accept": "application/json"}
    if settings.CATALOG_API_TOKEN:
        hdrs["Authorization"] = f"Bearer {settings.CATALOG_API_TOKEN}"
    return hdrs

def _timeout() -> Optional[float]:
    # 0 (or negative) means "wait forever", like the browser client did
    t = settings.CATALOG_API_TIMEOUT
    return t if t and t > 0 else None

def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.CATALOG_API_URL,
        headers=_headers(),
        timeout=_timeout(),
        verify=settings.CATALOG_API_VERIFY_TLS,
    )

def _body(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text

def _result(resp: httpx.Response) -> Dict[str, Any]:
    return {"status_code": resp.status_code, "data": _body(resp)}

def is_ok(result: Dict[str, Any]) -> bool:
    """True for a 2xx response (transport errors carry an 'error' key instead)."""
    code = result.get("status_code")
    return "error" not in result and isinstance(code, int) and 200 <= code < 300

def error_message(result: Dict[str, Any], default: str) -> str:
    """
    Pick the server-provided message out of a failed call, if any.
    Accepts {"message": ...}, {"error": ...} and {"detail": ...} bodies; HTML error
    pages are summarized; anything else falls back to `default`.
    """
    data = result.get("data")
    if isinstance(data, dict):
        for key in ("message", "error", "detail"):
            msg = data.get(key)
            if isinstance(msg, str) and msg.strip():
                return msg.strip()
    if isinstance(data, str) and looks_like_html(data):
        return f"{default}: {summarize_html(data)}"
    return default

# ---- Variants ----

async def get_product_variants(product_id: str) -> Dict[str, Any]:
    """Fetch the variants listing (variants + optional variantOptions) of a product."""
    try:
        async with _client() as client:
            resp = await client.get(f"/products/{product_id}/variants")
    except httpx.HTTPError as e:
        logger.error("[CATALOG] GET variants for product=%s failed: %s", product_id, e)
        return {"error": str(e)}
    if resp.status_code != 200:
        logger.warning("[CATALOG] GET variants for product=%s returned %s: %s",
                       product_id, resp.status_code, resp.text[:500])
    return _result(resp)

async def bulk_upsert_variants(product_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Create/update many variants in one call. Entries with `_id` are updates,
    entries without are creates. Response is expected to carry
    {"counts": {"created": n, "updated": m}}.
    """
    try:
        async with _client() as client:
            resp = await client.post(f"/products/{product_id}/variants/bulk", json=payload)
    except httpx.HTTPError as e:
        logger.error("[CATALOG] bulk upsert for product=%s failed: %s", product_id, e)
        return {"error": str(e)}
    if not 200 <= resp.status_code < 300:
        logger.warning("[CATALOG] bulk upsert for product=%s returned %s: %s",
                       product_id, resp.status_code, resp.text[:500])
    return _result(resp)

# ---- Image Upload (multipart) ----

async def upload_variant_image(
    product_id: str,
    fields: Dict[str, str],
    filename: str,
    content: bytes,
    content_type: str = "application/octet-stream",
) -> Dict[str, Any]:
    """
    Upload one image for one persisted variant. `fields` carries `variantId`
    (and optionally `mode`); the file goes under the `file` part.
    Response is expected to return the variant's updated {"images": [...]}.
    """
    files = {"file": (filename or "image.jpg", content, content_type or "application/octet-stream")}
    try:
        async with _client() as client:
            resp = await client.post(
                f"/products/{product_id}/variants/bulkimage",
                data=fields,
                files=files,
            )
    except httpx.HTTPError as e:
        logger.error("[CATALOG] image upload for product=%s failed: %s", product_id, e)
        return {"error": str(e)}
    if not 200 <= resp.status_code < 300:
        logger.warning("[CATALOG] image upload for product=%s returned %s: %s",
                       product_id, resp.status_code, resp.text[:500])
    return _result(resp)

# ---- Health ----

async def catalog_ping() -> Dict[str, Any]:
    """Reachability probe for the admin health check."""
    if not settings.CATALOG_API_URL:
        return {"ok": False, "status": None, "reason": "CATALOG_API_URL not configured"}
    try:
        async with _client() as client:
            resp = await client.get("/")
    except httpx.HTTPError as e:
        logger.debug("[CATALOG] ping failed: %s", e)
        return {"ok": False, "status": None, "reason": str(e)}
    # any answer from the backend counts as reachable; auth may reject the root
    return {"ok": resp.status_code < 500, "status": resp.status_code}
