# backoffice/variants/groups.py
# ---------------------------------------------------------
# Option group management. Every function takes an EditorState
# and returns a new one; rows are regenerated by the reducer.
# ---------------------------------------------------------
from __future__ import annotations

from typing import Any, Dict, Iterable, List

from backoffice.variants.models import (
    EditorState,
    OptionGroup,
    OptionSchema,
    PersistedVariant,
    UnknownGroupError,
)

_GROUP_FIELDS = {"name", "values", "enabled"}


def clean_values(values: Iterable[Any]) -> List[str]:
    """Strings, trimmed, empties dropped, first occurrence wins."""
    out: List[str] = []
    for v in values or []:
        s = "" if v is None else str(v).strip()
        if s and s not in out:
            out.append(s)
    return out

def _replace(state: EditorState, group: OptionGroup) -> EditorState:
    return state.model_copy(update={
        "groups": [group if g.id == group.id else g for g in state.groups],
    })

def add_group(state: EditorState) -> EditorState:
    return state.model_copy(update={"groups": [*state.groups, OptionGroup()]})

def update_group(state: EditorState, group_id: str, patch: Dict[str, Any]) -> EditorState:
    group = state.find_group(group_id)
    changes = {k: v for k, v in (patch or {}).items() if k in _GROUP_FIELDS}
    if "name" in changes:
        changes["name"] = "" if changes["name"] is None else str(changes["name"])
    if "values" in changes:
        changes["values"] = clean_values(changes["values"])
    if "enabled" in changes:
        changes["enabled"] = bool(changes["enabled"])
    return _replace(state, group.model_copy(update=changes))

def remove_group(state: EditorState, group_id: str) -> EditorState:
    state.find_group(group_id)
    return state.model_copy(update={
        "groups": [g for g in state.groups if g.id != group_id],
    })

def reorder_group(state: EditorState, group_id: str, direction: str) -> EditorState:
    """Move one position up or down, clamped at either end."""
    if direction not in ("up", "down"):
        raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
    groups = list(state.groups)
    ids = [g.id for g in groups]
    if group_id not in ids:
        raise UnknownGroupError(group_id)
    i = ids.index(group_id)
    j = max(0, i - 1) if direction == "up" else min(len(groups) - 1, i + 1)
    if i == j:
        return state
    groups.insert(j, groups.pop(i))
    return state.model_copy(update={"groups": groups})

def add_values(state: EditorState, group_id: str, text: str) -> EditorState:
    """Comma-separated input; values already present are ignored."""
    group = state.find_group(group_id)
    incoming = (text or "").split(",")
    return _replace(state, group.model_copy(update={
        "values": clean_values([*group.values, *incoming]),
    }))

def remove_value(state: EditorState, group_id: str, value: str) -> EditorState:
    group = state.find_group(group_id)
    return _replace(state, group.model_copy(update={
        "values": [v for v in group.values if v != value],
    }))

# ---- Seeding from persisted data ----

def groups_from_schema(schema: Iterable[OptionSchema]) -> List[OptionGroup]:
    # name casing is kept as stored ("size", "Metal Color", ...)
    return [OptionGroup(name=s.name, values=clean_values(s.values)) for s in schema]

def groups_from_variants(variants: Iterable[PersistedVariant]) -> List[OptionGroup]:
    buckets: Dict[str, List[str]] = {}
    for v in variants:
        for name, value in v.options.items():
            vals = buckets.setdefault(name, [])
            if value not in vals:
                vals.append(value)
    names = sorted(buckets, key=lambda n: (n.lower(), n))
    return [OptionGroup(name=n, values=buckets[n]) for n in names]

def groups_from_persisted(state: EditorState) -> List[OptionGroup]:
    if state.variant_options:
        return groups_from_schema(state.variant_options)
    if state.persisted:
        return groups_from_variants(state.persisted)
    return []

def seed_groups(state: EditorState) -> EditorState:
    """Initial groups after a successful load; never touches groups already being edited."""
    if state.groups or not state.ready:
        return state
    return state.model_copy(update={"groups": groups_from_persisted(state)})

def resync_groups(state: EditorState) -> EditorState:
    """'Sync from DB': replace the groups with what the server knows."""
    return state.model_copy(update={"groups": groups_from_persisted(state)})
