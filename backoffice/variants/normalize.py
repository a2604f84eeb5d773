# backoffice/variants/normalize.py
# --------------------------------------------------------------------------------------
# Boundary normalization for the catalog API's variants listing.
# The backend has answered in several envelopes over time ({data: {...}}, the listing
# itself, a bare list) and variant records carry their attributes as optionsArray,
# options, or legacy flat fields. Everything is mapped into VariantListing /
# PersistedVariant here so the matrix code only ever sees one shape.
# --------------------------------------------------------------------------------------
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from backoffice.variants.models import OptionSchema, PersistedVariant, VariantListing

logger = logging.getLogger("uvicorn.error")

_LEGACY_FIELDS = ("size", "karat", "metal", "finish")


def _s(v: Any) -> str:
    return "" if v is None else str(v).strip()

def _dedupe(values) -> List[str]:
    seen = set()
    out = []
    for v in values or []:
        s = _s(v)
        if s and s not in seen:
            seen.add(s)
            out.append(s)
    return out

def _legacy_color(v: Dict[str, Any]) -> Optional[Any]:
    # first source that is present wins, even when it holds an empty string
    attrs = v.get("attributes") if isinstance(v.get("attributes"), dict) else {}
    for key in ("Color", "Metal Color"):
        if attrs.get(key) is not None:
            return attrs[key]
    metal_color = v.get("metalColor")
    if isinstance(metal_color, dict) and metal_color.get("selected") is not None:
        return metal_color["selected"]
    custom = v.get("customOptions")
    if isinstance(custom, dict):
        for k, val in custom.items():
            if "color" in str(k).lower():
                return val
    return None

def pairs_from_variant(v: Dict[str, Any]) -> List[Dict[str, str]]:
    """
    Attribute pairs [{name, value}] of a raw variant record.
    Prefers a non-empty `optionsArray`, then an `options` map, then legacy flat fields.
    """
    arr = v.get("optionsArray")
    if isinstance(arr, list) and arr:
        pairs = []
        for p in arr:
            if not isinstance(p, dict):
                continue
            name, value = _s(p.get("name")), _s(p.get("value"))
            if name and value:
                pairs.append({"name": name, "value": value})
        return pairs

    opts = v.get("options")
    if isinstance(opts, dict):
        pairs = []
        for name, value in opts.items():
            name, value = _s(name), _s(value)
            if name and value:
                pairs.append({"name": name, "value": value})
        return pairs

    pairs = []
    for field in _LEGACY_FIELDS:
        if v.get(field):
            pairs.append({"name": field, "value": _s(v[field])})
    color = _legacy_color(v)
    if color:
        pairs.append({"name": "color", "value": _s(color)})
    return [p for p in pairs if p["value"]]

def pairs_to_kv(pairs: List[Dict[str, str]]) -> Dict[str, str]:
    return {str(p["name"]): str(p["value"]) for p in pairs}

def kv_to_array(kv: Dict[str, str]) -> List[Dict[str, str]]:
    return [{"name": name, "value": str(value)} for name, value in kv.items()]

def _scalar(value: Any, field: str, ident: Any) -> Union[int, float, str, None]:
    """Commerce fields are kept only as number / string; anything else is dropped."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    logger.warning("[VARIANTS] variant %s: dropping %s of type %s", ident, field, type(value).__name__)
    return None

def normalize_variant(raw: Dict[str, Any]) -> Optional[PersistedVariant]:
    """Map one raw variant record to PersistedVariant; records without identity are skipped."""
    ident = raw.get("_id", raw.get("id"))
    if ident in (None, ""):
        logger.warning("[VARIANTS] skipping variant without identity: sku=%s", raw.get("sku"))
        return None

    compare_at = raw.get("compareAtPrice")
    if compare_at is None and isinstance(raw.get("attributes"), dict):
        compare_at = raw["attributes"].get("compareAtPrice")

    manage = raw.get("manageStock")
    images = raw.get("images")
    return PersistedVariant(
        id=str(ident),
        options=pairs_to_kv(pairs_from_variant(raw)),
        sku=_s(raw.get("sku")),
        price=_scalar(raw.get("price"), "price", ident),
        compare_at_price=_scalar(compare_at, "compareAtPrice", ident),
        inventory=_scalar(raw.get("inventory"), "inventory", ident),
        manage_stock=True if manage is None else bool(manage),
        images=[str(u) for u in images if u] if isinstance(images, list) else [],
    )

def unwrap_listing(payload: Any) -> Dict[str, Any]:
    """Accepts {data: {...}} | {variants, variantOptions} | [variant, ...]."""
    if isinstance(payload, list):
        return {"variants": payload}
    if not isinstance(payload, dict):
        return {}
    inner = payload.get("data")
    if isinstance(inner, list):
        return {"variants": inner}
    if isinstance(inner, dict) and ("variants" in inner or "variantOptions" in inner):
        return inner
    return payload

def normalize_listing(payload: Any) -> VariantListing:
    body = unwrap_listing(payload)

    variants: List[PersistedVariant] = []
    raw_variants = body.get("variants")
    for raw in raw_variants if isinstance(raw_variants, list) else []:
        if not isinstance(raw, dict):
            continue
        pv = normalize_variant(raw)
        if pv is not None:
            variants.append(pv)

    schema: List[OptionSchema] = []
    raw_options = body.get("variantOptions")
    for g in raw_options if isinstance(raw_options, list) else []:
        if not isinstance(g, dict):
            continue
        values = g.get("values")
        schema.append(OptionSchema(
            name=str(g.get("name") or ""),
            values=_dedupe(values) if isinstance(values, list) else [],
        ))

    return VariantListing(variants=variants, variant_options=schema)
