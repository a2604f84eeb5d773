# backoffice/variants/rows.py
# ---------------------------------------------------------
# Row edits, selection and bulk assignment.
# Rows locked by an in-flight save are not edited.
# ---------------------------------------------------------
from __future__ import annotations

from typing import Any, Dict, Optional

from backoffice.variants.models import EditorState, VariantRow, notify

ROW_FIELDS = {"sku", "price", "compare_at", "inventory", "manage_stock"}
BULK_FIELDS = ("price", "compare_at", "inventory")

LOCKED_NOTICE = "Row is being saved; try again once the save finishes."


def has_value(v: Any) -> bool:
    return v is not None and str(v).strip() != ""

def _swap(state: EditorState, row: VariantRow) -> EditorState:
    return state.model_copy(update={
        "rows": [row if r.id == row.id else r for r in state.rows],
    })

def update_row(state: EditorState, row_id: str, patch: Dict[str, Any]) -> EditorState:
    row = state.find_row(row_id)
    if row.saving:
        return notify(state, "info", LOCKED_NOTICE)
    changes = {k: v for k, v in (patch or {}).items() if k in ROW_FIELDS}
    if "manage_stock" in changes:
        changes["manage_stock"] = bool(changes["manage_stock"])
    if "sku" in changes:
        changes["sku"] = "" if changes["sku"] is None else str(changes["sku"])
    changes["dirty"] = True
    return _swap(state, row.model_copy(update=changes))

# ---- Selection ----

def toggle_select(state: EditorState, row_id: str) -> EditorState:
    state.find_row(row_id)
    selected = set(state.selected)
    if row_id in selected:
        selected.discard(row_id)
    else:
        selected.add(row_id)
    return state.model_copy(update={"selected": selected})

def select_all(state: EditorState) -> EditorState:
    return state.model_copy(update={"selected": {r.id for r in state.rows}})

def clear_selection(state: EditorState) -> EditorState:
    return state.model_copy(update={"selected": set()})

def remove_selected(state: EditorState) -> EditorState:
    """Drops the selected rows from the working set only; nothing is deleted server-side."""
    if not state.selected:
        return state
    return state.model_copy(update={
        "rows": [r for r in state.rows if r.id not in state.selected],
        "selected": set(),
    })

# ---- Bulk ----

def apply_bulk(
    state: EditorState,
    price: Optional[Any] = None,
    compare_at: Optional[Any] = None,
    inventory: Optional[Any] = None,
) -> EditorState:
    """
    Overwrite only the provided (non-blank) fields on the selected rows, or on
    every row when nothing is selected. Affected rows become dirty.
    """
    provided = {k: str(v).strip() for k, v in
                (("price", price), ("compare_at", compare_at), ("inventory", inventory))
                if has_value(v)}
    if not provided:
        return notify(state, "info", "Nothing to apply: enter a price, compare-at price or inventory.")

    skipped = 0
    rows = []
    for r in state.rows:
        if state.selected and r.id not in state.selected:
            rows.append(r)
        elif r.saving:
            skipped += 1
            rows.append(r)
        else:
            rows.append(r.model_copy(update={**provided, "dirty": True}))
    state = state.model_copy(update={"rows": rows})
    if skipped:
        state = notify(state, "info", f"{skipped} row(s) are being saved and were left unchanged.")
    return state
