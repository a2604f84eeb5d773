# backoffice/variants/payload.py
# ---------------------------------------------------------
# Bulk upsert request body built from dirty rows.
#
#   {
#     "variants": [
#       {"_id"?, "sku"?, "options": {name: value}, "optionsArray": [{name, value}],
#        "price"?, "compareAtPrice"?, "inventory"?, "manageStock": bool}
#     ],
#     "variantOptions": [{"name": str, "values": [str, ...]}]
#   }
#
# Blank numeric fields are left out; the API wants a number or nothing.
# ---------------------------------------------------------
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Union

from backoffice.variants.matrix import active_groups
from backoffice.variants.models import EditorState, VariantPayloadError, VariantRow
from backoffice.variants.normalize import kv_to_array

Number = Union[int, float]


def rows_to_save(state: EditorState) -> List[VariantRow]:
    """Dirty rows not already in flight; when a selection exists, only the selected ones."""
    return [
        r for r in state.rows
        if r.dirty and not r.saving and (r.id in state.selected if state.selected else True)
    ]

def coerce_number(value: Any, field: str = "value", integer: bool = False) -> Optional[Number]:
    """
    None / "" / whitespace -> None (omit from payload).
    Numbers and numeric strings -> int when integral, else float.
    """
    if isinstance(value, bool):
        raise VariantPayloadError(f"{field}: expected a number, got {value!r}")
    if value is None:
        return None
    if isinstance(value, (int, float)):
        num = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            num = float(text)
        except ValueError:
            raise VariantPayloadError(f"{field}: {value!r} is not a number") from None
    if isinstance(num, float) and not math.isfinite(num):
        raise VariantPayloadError(f"{field}: {value!r} is not a finite number")
    if integer:
        if float(num) != int(num):
            raise VariantPayloadError(f"{field}: {value!r} must be a whole number")
        return int(num)
    if isinstance(num, float) and num.is_integer():
        return int(num)
    return num

def build_upsert_entry(row: VariantRow) -> Dict[str, Any]:
    label = row.sku or row.id
    entry: Dict[str, Any] = {}
    if row.variant_id:
        entry["_id"] = row.variant_id
    if row.sku:
        entry["sku"] = row.sku
    entry["options"] = dict(row.options)
    entry["optionsArray"] = kv_to_array(row.options)
    for field, key, integer in (("price", "price", False),
                                ("compare_at", "compareAtPrice", False),
                                ("inventory", "inventory", True)):
        num = coerce_number(getattr(row, field), f"{label} {key}", integer=integer)
        if num is not None:
            entry[key] = num
    entry["manageStock"] = bool(row.manage_stock)
    return entry

def variant_options(state: EditorState) -> List[Dict[str, Any]]:
    return [{"name": g["name"], "values": list(g["values"])} for g in active_groups(state.groups)]

def build_bulk_payload(state: EditorState, rows: List[VariantRow]) -> Dict[str, Any]:
    """Raises VariantPayloadError if any row holds a non-numeric price/compare-at/inventory."""
    return {
        "variants": [build_upsert_entry(r) for r in rows],
        "variantOptions": variant_options(state),
    }

def image_form(row: VariantRow, mode: str = "primary") -> Dict[str, str]:
    fields = {"variantId": str(row.variant_id)}
    if mode and mode != "primary":
        fields["mode"] = mode
    return fields
