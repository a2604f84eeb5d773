#===========================================================================
# backoffice/variants/service.py
# Variant editor orchestration: the only place that talks to the catalog
# API. Results are fed back into the session state as actions, and every
# outcome the user should see becomes a notice.
#
# The session is re-read from the store after each await: the user keeps
# editing while a request is in flight, and those edits must not be lost.
#===========================================================================
from __future__ import annotations

import logging
from typing import Iterable

from pydantic import ValidationError

from backoffice import catalog_api
from backoffice.models.audit_log import add_audit_entry
from backoffice.variants.models import EditorState, VariantPayloadError, notify
from backoffice.variants.normalize import normalize_listing
from backoffice.variants.payload import build_bulk_payload, image_form, rows_to_save
from backoffice.variants.session_store import SessionStore
from backoffice.variants.state import Action, reduce

logger = logging.getLogger("uvicorn.error")

NO_CHANGES = "No changes to save."
SAVE_FAILED = "Save failed"
LOAD_FAILED = "Failed to load variants."
UPLOAD_FAILED = "Image upload failed"
SAVE_FIRST = "Save the variant first, then upload image."
SAVE_IN_PROGRESS = "A save is already in progress for these variants."


def dispatch(store: SessionStore, sid: str, action: Action) -> EditorState:
    """Apply one local (no network) action to a session."""
    return store.put(sid, reduce(store.get(sid), action))

def _failure_text(result: dict, default: str, with_detail: bool = False) -> str:
    # transport errors carry no server message; only the load banner shows the detail
    if "error" in result:
        return f"{default} {result['error']}" if with_detail else default
    return catalog_api.error_message(result, default)

# ---- Load ----

def _load_failed(store: SessionStore, sid: str, product_id: str, msg: str, user: str) -> EditorState:
    logger.warning("[VARIANTS] load failed product=%s: %s", product_id, msg)
    add_audit_entry("Variants Load Failed", user, f"product={product_id} {msg}")
    state = reduce(store.get(sid), {"type": "load/failure", "error": msg})
    return store.put(sid, notify(state, "error", msg))

async def load_variants(
    store: SessionStore,
    sid: str,
    *,
    submitted: Iterable[str] = (),
    user: str = "admin",
) -> EditorState:
    """
    Fetch the product's variants and reconcile the rows against them.
    On failure the session goes to the error state and nothing is seeded.
    """
    state = dispatch(store, sid, {"type": "load/start"})
    product_id = state.product_id
    logger.info("[VARIANTS] loading product=%s", product_id)

    result = await catalog_api.get_product_variants(product_id)

    if not catalog_api.is_ok(result):
        return _load_failed(store, sid, product_id, _failure_text(result, LOAD_FAILED, with_detail=True), user)

    try:
        listing = normalize_listing(result.get("data"))
    except ValidationError as e:
        logger.warning("[VARIANTS] unreadable listing product=%s: %s", product_id, e)
        return _load_failed(store, sid, product_id, f"{LOAD_FAILED} Unexpected response from the catalog.", user)

    state = store.get(sid)
    state = reduce(state, {"type": "load/success", "listing": listing,
                           "submitted": list(submitted)})
    logger.info("[VARIANTS] product=%s loaded: %d persisted, %d option group(s), %d row(s)",
                product_id, len(listing.variants), len(state.groups), len(state.rows))
    return store.put(sid, state)

# ---- Save ----

async def save_variants(store: SessionStore, sid: str, *, user: str = "admin") -> EditorState:
    """
    Bulk upsert of the dirty rows (selected ones only, when a selection exists).
    Nothing dirty -> info notice, no request. Success -> refresh, which is what
    clears the dirty flags of the submitted rows.
    """
    state = store.get(sid)
    if not state.ready:
        return store.put(sid, notify(state, "error", "Variants are not loaded yet."))

    to_save = rows_to_save(state)
    if not to_save:
        busy = any(r.saving for r in state.rows)
        return store.put(sid, notify(state, "info", SAVE_IN_PROGRESS if busy else NO_CHANGES))

    try:
        payload = build_bulk_payload(state, to_save)
    except VariantPayloadError as e:
        return store.put(sid, notify(state, "error", str(e)))

    row_ids = [r.id for r in to_save]
    product_id = state.product_id
    dispatch(store, sid, {"type": "save/start", "row_ids": row_ids})
    logger.info("[VARIANTS] saving %d variant(s) for product=%s", len(row_ids), product_id)

    result = await catalog_api.bulk_upsert_variants(product_id, payload)

    state = reduce(store.get(sid), {"type": "save/finish", "row_ids": row_ids})
    if not catalog_api.is_ok(result):
        msg = _failure_text(result, SAVE_FAILED)
        logger.warning("[VARIANTS] save failed product=%s: %s", product_id, msg)
        add_audit_entry("Variants Save Failed", user, f"product={product_id} rows={len(row_ids)} {msg}")
        return store.put(sid, notify(state, "error", msg))

    data = result.get("data") if isinstance(result.get("data"), dict) else {}
    counts = data.get("counts") if isinstance(data.get("counts"), dict) else {}
    created, updated = counts.get("created", 0) or 0, counts.get("updated", 0) or 0
    add_audit_entry("Variants Saved", user,
                    f"product={product_id} created={created} updated={updated}")
    store.put(sid, notify(state, "success", f"Saved: created {created}, updated {updated}"))

    return await load_variants(store, sid, submitted=row_ids, user=user)

# ---- Image ----

async def attach_image(
    store: SessionStore,
    sid: str,
    row_id: str,
    *,
    filename: str,
    content: bytes,
    content_type: str = "application/octet-stream",
    mode: str = "primary",
    user: str = "admin",
) -> EditorState:
    """Single-image upload; only rows bound to a stored variant can take one."""
    state = store.get(sid)
    row = state.find_row(row_id)
    if not row.variant_id:
        return store.put(sid, notify(state, "info", SAVE_FIRST))
    if not content:
        return store.put(sid, notify(state, "info", "No file selected."))

    product_id = state.product_id
    result = await catalog_api.upload_variant_image(
        product_id, image_form(row, mode), filename, content, content_type,
    )

    state = store.get(sid)
    if not catalog_api.is_ok(result):
        msg = _failure_text(result, UPLOAD_FAILED)
        logger.warning("[VARIANTS] image upload failed product=%s variant=%s: %s",
                       product_id, row.variant_id, msg)
        return store.put(sid, notify(state, "error", msg))

    data = result.get("data") if isinstance(result.get("data"), dict) else {}
    images = data.get("images") if isinstance(data.get("images"), list) else []
    add_audit_entry("Variant Image Uploaded", user,
                    f"product={product_id} variant={row.variant_id} file={filename}")
    if any(r.id == row_id for r in state.rows):
        state = reduce(state, {"type": "image/attached", "row_id": row_id, "images": images})
    return store.put(sid, notify(state, "success", "Image uploaded"))
