# backoffice/variants/state.py
# --------------------------------------------------------------------------------------
# Session state transitions: reduce(state, action) -> state.
# Actions are plain dicts, {"type": "group/add"}, {"type": "row/update", "id": ..., "patch": {...}}.
# Nothing here does I/O; service.py performs the network calls and feeds the results
# back in as load/*, save/* and image/* actions.
# --------------------------------------------------------------------------------------
from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from backoffice.variants import groups as G
from backoffice.variants import rows as R
from backoffice.variants.matrix import (
    active_groups,
    build_index,
    canonical_key,
    cartesian,
    reconcile,
)
from backoffice.variants.models import EditorState, Notice, VariantListing, VariantRow, notify

Action = Dict[str, Any]


def regenerate(
    state: EditorState,
    *,
    fresh: bool = False,
    keep: Optional[Callable[[VariantRow], bool]] = None,
) -> EditorState:
    """Recompute rows from the enabled groups. Only runs once data has loaded."""
    if not state.ready:
        return state
    combos = cartesian(active_groups(state.groups))
    rows, diff = reconcile(combos, state.rows, state.combo_keys, state.persisted_index,
                           fresh=fresh, keep=keep)
    if diff.same_set or fresh:
        ids = {r.id for r in rows}
        selected = {i for i in state.selected if i in ids}
    else:
        selected = set()
    return state.model_copy(update={
        "rows": rows,
        "combo_keys": [canonical_key(kv) for kv in combos],
        "selected": selected,
    })

# ---- load / save / image results ----

def _load_success(state: EditorState, listing: VariantListing,
                  submitted: Iterable[str] = ()) -> EditorState:
    submitted = set(submitted)
    state = state.model_copy(update={
        "status": "ready",
        "error": None,
        "persisted": list(listing.variants),
        "persisted_index": build_index(listing.variants),
        "variant_options": list(listing.variant_options),
    })
    state = G.seed_groups(state)
    # Fresh pass against the new data; unsaved edits outside the submitted batch survive.
    return regenerate(state, fresh=True,
                      keep=lambda r: r.dirty and r.id not in submitted)

def _set_saving(state: EditorState, row_ids: Iterable[str], saving: bool) -> EditorState:
    ids = set(row_ids)
    return state.model_copy(update={
        "rows": [r.model_copy(update={"saving": saving}) if r.id in ids else r
                 for r in state.rows],
    })

def _image_attached(state: EditorState, row_id: str, images: List[str]) -> EditorState:
    row = state.find_row(row_id)
    return state.model_copy(update={
        "rows": [row.model_copy(update={"images": list(images)}) if r.id == row_id else r
                 for r in state.rows],
    })

# ---- reducer ----

_GROUP_ACTIONS = {
    "group/add": lambda s, a: G.add_group(s),
    "group/update": lambda s, a: G.update_group(s, a["id"], a.get("patch") or {}),
    "group/remove": lambda s, a: G.remove_group(s, a["id"]),
    "group/reorder": lambda s, a: G.reorder_group(s, a["id"], a.get("direction", "")),
    "group/add_values": lambda s, a: G.add_values(s, a["id"], a.get("text", "")),
    "group/remove_value": lambda s, a: G.remove_value(s, a["id"], a.get("value", "")),
    "groups/resync": lambda s, a: G.resync_groups(s),
}

_ROW_ACTIONS = {
    "row/update": lambda s, a: R.update_row(s, a["id"], a.get("patch") or {}),
    "row/toggle_select": lambda s, a: R.toggle_select(s, a["id"]),
    "rows/select_all": lambda s, a: R.select_all(s),
    "rows/clear_selection": lambda s, a: R.clear_selection(s),
    "rows/remove_selected": lambda s, a: R.remove_selected(s),
    "rows/apply_bulk": lambda s, a: R.apply_bulk(
        s, a.get("price"), a.get("compare_at"), a.get("inventory")),
}

_SESSION_ACTIONS = {
    "load/start": lambda s, a: s.model_copy(update={"status": "loading", "error": None}),
    "load/success": lambda s, a: _load_success(s, a["listing"], a.get("submitted") or ()),
    "load/failure": lambda s, a: s.model_copy(update={
        "status": "error", "error": a.get("error") or "Failed to load variants."}),
    "save/start": lambda s, a: _set_saving(s, a.get("row_ids") or (), True),
    "save/finish": lambda s, a: _set_saving(s, a.get("row_ids") or (), False),
    "image/attached": lambda s, a: _image_attached(s, a["row_id"], a.get("images") or []),
    "notify": lambda s, a: notify(s, a.get("level", "info"), a["message"]),
}


def reduce(state: EditorState, action: Action) -> EditorState:
    """Apply one action. Group changes regenerate rows; row changes never do."""
    kind = (action or {}).get("type")
    if kind in _GROUP_ACTIONS:
        return regenerate(_GROUP_ACTIONS[kind](state, action))
    if kind in _ROW_ACTIONS:
        return _ROW_ACTIONS[kind](state, action)
    if kind in _SESSION_ACTIONS:
        return _SESSION_ACTIONS[kind](state, action)
    raise ValueError(f"unknown action type: {kind!r}")

def reduce_all(state: EditorState, actions: Iterable[Action]) -> EditorState:
    for action in actions:
        state = reduce(state, action)
    return state

def drain_notices(state: EditorState) -> Tuple[EditorState, List[Notice]]:
    return state.model_copy(update={"notices": []}), list(state.notices)
