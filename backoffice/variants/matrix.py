# backoffice/variants/matrix.py
# --------------------------------------------------------------------------------------
# Variant matrix: option groups -> combinations -> canonical keys -> rows reconciled
# against the variants already stored for the product.
# --------------------------------------------------------------------------------------
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from itertools import product
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from backoffice.variants.models import OptionGroup, PersistedVariant, VariantRow

logger = logging.getLogger("uvicorn.error")

Combination = Dict[str, str]

_WS_RE = re.compile(r"\s+")
_NON_SKU_RE = re.compile(r"[^a-zA-Z0-9\-]")


def slugify(s) -> str:
    s = _WS_RE.sub("-", str(s or "").strip())
    return _NON_SKU_RE.sub("", s).upper()

def canonical_key(kv: Combination) -> str:
    """Order-independent identity of a combination."""
    return json.dumps({str(k): str(v) for k, v in kv.items()}, sort_keys=True,
                      separators=(",", ":"), ensure_ascii=False)

def active_groups(groups: Iterable[OptionGroup]) -> List[Dict[str, object]]:
    """
    Groups taking part in the product: enabled, named, with at least one value.
    Groups sharing a name collapse into one axis (first position wins, values merged).
    """
    axes: Dict[str, List[str]] = {}
    for g in groups:
        name = (g.name or "").strip()
        if not g.enabled or not name or not g.values:
            continue
        vals = axes.setdefault(name, [])
        for v in g.values:
            v = str(v)
            if v not in vals:
                vals.append(v)
    return [{"name": n, "values": vals} for n, vals in axes.items() if vals]

def cartesian(groups: List[Dict[str, object]]) -> List[Combination]:
    """Every combination, first group varying slowest. No groups -> no combinations."""
    if not groups:
        return []
    names = [g["name"] for g in groups]
    return [dict(zip(names, values)) for values in product(*(g["values"] for g in groups))]

def synth_sku(kv: Combination, index: int) -> str:
    parts = [f"{slugify(k)}-{slugify(v)}" for k, v in kv.items()]
    return f"SKU-{'-'.join(parts) or index}"

def build_index(variants: Iterable[PersistedVariant]) -> Dict[str, PersistedVariant]:
    index: Dict[str, PersistedVariant] = {}
    for v in variants:
        key = canonical_key(v.options)
        if key in index:
            logger.warning("[VARIANTS] duplicate persisted combination %s (ids %s, %s); keeping first",
                           key, index[key].id, v.id)
            continue
        index[key] = v
    return index


@dataclass
class KeyDiff:
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    retained: List[str] = field(default_factory=list)

    @property
    def same_set(self) -> bool:
        return not self.added and not self.removed


def diff_keys(previous: List[str], nxt: List[str]) -> KeyDiff:
    prev_set, next_set = set(previous), set(nxt)
    return KeyDiff(
        added=[k for k in nxt if k not in prev_set],
        removed=[k for k in previous if k not in next_set],
        retained=[k for k in nxt if k in prev_set],
    )

def row_for_combination(kv: Combination, index: int,
                        persisted: Dict[str, PersistedVariant]) -> VariantRow:
    """Bound row when the combination is already stored, otherwise a fresh one."""
    match = persisted.get(canonical_key(kv))
    if match is not None:
        return VariantRow(
            variant_id=match.id,
            options=dict(kv),
            sku=match.sku,
            price="" if match.price is None else match.price,
            compare_at="" if match.compare_at_price is None else match.compare_at_price,
            inventory="" if match.inventory is None else match.inventory,
            manage_stock=match.manage_stock,
            images=list(match.images),
        )
    return VariantRow(options=dict(kv), sku=synth_sku(kv, index))

def reconcile(
    combos: List[Combination],
    rows: List[VariantRow],
    previous_keys: List[str],
    persisted: Dict[str, PersistedVariant],
    *,
    fresh: bool = False,
    keep: Optional[Callable[[VariantRow], bool]] = None,
) -> Tuple[List[VariantRow], KeyDiff]:
    """
    Turn the current combinations into rows.

    - Same key set as last time (and rows exist): the existing row objects are kept,
      laid out in combination order. Rows removed locally stay removed.
    - Otherwise rows are rebuilt: a row whose key is retained is carried over as-is,
      new keys get a bound or synthesized row, keys that disappeared are dropped.
    - fresh=True (new persisted data): every row is rebuilt from `persisted`, except
      rows for which `keep(row)` is true.
    """
    keys = [canonical_key(kv) for kv in combos]
    diff = diff_keys(previous_keys, keys)
    by_key = {canonical_key(r.options): r for r in rows}

    if fresh:
        out = []
        for i, kv in enumerate(combos):
            prev = by_key.get(keys[i])
            if prev is not None and keep is not None and keep(prev):
                out.append(prev)
            else:
                out.append(row_for_combination(kv, i, persisted))
        return out, diff

    if diff.same_set and rows:
        ordered = [by_key[k] for k in keys if k in by_key]
        return ordered, diff

    out = []
    for i, kv in enumerate(combos):
        prev = by_key.get(keys[i])
        out.append(prev if prev is not None else row_for_combination(kv, i, persisted))
    logger.debug("[VARIANTS] rows rebuilt: +%d -%d =%d",
                 len(diff.added), len(diff.removed), len(diff.retained))
    return out, diff
