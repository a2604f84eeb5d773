import pytest

from backoffice.variants.models import EditorState, UnknownGroupError, UnknownRowError
from backoffice.variants.state import drain_notices, reduce, reduce_all

from conftest import loaded, row_by


def test_end_to_end_rows(state):
    assert state.ready
    assert state.mode == "edit"
    assert state.persisted_count == 1
    assert [g.name for g in state.groups] == ["size", "color"]
    assert len(state.rows) == 2

    new = row_by(state, size=6, color="gold")
    assert new.variant_id is None
    assert new.sku == "SKU-SIZE-6-COLOR-GOLD"
    assert new.price == ""

    old = row_by(state, size=7, color="gold")
    assert old.variant_id == "v7"
    assert old.sku == "OLD-7-GOLD"
    assert old.price == 500
    assert old.manage_stock is False
    assert not any(r.dirty for r in state.rows)


def test_groups_inferred_from_variants_when_no_schema():
    state = loaded({"variants": [
        {"_id": "a", "options": {"size": "6", "Color": "gold"}},
        {"_id": "b", "options": {"size": "7", "Color": "gold"}},
    ]})
    assert [(g.name, g.values) for g in state.groups] == [("Color", ["gold"]), ("size", ["6", "7"])]
    assert len(state.rows) == 2
    assert {r.variant_id for r in state.rows} == {"a", "b"}


def test_empty_listing_is_add_mode():
    state = loaded({"variants": []})
    assert state.mode == "add"
    assert state.groups == []
    assert state.rows == []


def test_nothing_regenerates_before_load():
    state = EditorState(product_id="p1")
    state = reduce_all(state, [{"type": "group/add"}])
    gid = state.groups[0].id
    state = reduce(state, {"type": "group/update", "id": gid, "patch": {"name": "size", "values": ["6"]}})
    assert state.rows == []


def test_load_failure_leaves_groups_and_rows_empty():
    state = EditorState(product_id="p1")
    state = reduce(state, {"type": "load/start"})
    state = reduce(state, {"type": "load/failure", "error": "Failed to load variants. 502"})
    assert state.status == "error"
    assert state.error == "Failed to load variants. 502"
    assert state.groups == [] and state.rows == []


def test_reload_does_not_clobber_groups(state, listing):
    gid = state.groups[1].id
    state = reduce(state, {"type": "group/add_values", "id": gid, "text": "silver"})
    from backoffice.variants.normalize import normalize_listing
    state = reduce(state, {"type": "load/success", "listing": normalize_listing(listing)})
    assert state.groups[1].values == ["gold", "silver"]
    assert len(state.rows) == 4


def test_add_group_has_no_effect_until_named_with_values(state):
    state = reduce(state, {"type": "group/add"})
    assert len(state.groups) == 3
    assert len(state.rows) == 2
    gid = state.groups[2].id
    state = reduce(state, {"type": "group/update", "id": gid, "patch": {"name": "karat"}})
    assert len(state.rows) == 2
    state = reduce(state, {"type": "group/add_values", "id": gid, "text": "14k, 18k,, 14k"})
    assert state.groups[2].values == ["14k", "18k"]
    assert len(state.rows) == 4


def test_edit_survives_noop_regeneration(state):
    row = row_by(state, size=6, color="gold")
    state = reduce(state, {"type": "row/update", "id": row.id, "patch": {"price": "750"}})
    edited = row_by(state, size=6, color="gold")
    assert edited.dirty and edited.price == "750"

    gid = state.groups[0].id
    state = reduce(state, {"type": "group/update", "id": gid, "patch": {"enabled": True}})
    state = reduce(state, {"type": "group/reorder", "id": gid, "direction": "down"})
    assert row_by(state, size=6, color="gold") is edited
    assert edited.price == "750"


def test_changed_key_set_rebuilds_and_carries_edits(state):
    row = row_by(state, size=7, color="gold")
    state = reduce_all(state, [
        {"type": "row/update", "id": row.id, "patch": {"price": "610"}},
        {"type": "row/toggle_select", "id": row.id},
    ])
    assert state.selected == {row.id}

    state = reduce(state, {"type": "group/add_values", "id": state.groups[0].id, "text": "8"})
    assert len(state.rows) == 3
    carried = row_by(state, size=7, color="gold")
    assert carried.price == "610" and carried.dirty
    fresh = row_by(state, size=8, color="gold")
    assert fresh.sku == "SKU-SIZE-8-COLOR-GOLD" and not fresh.dirty
    assert state.selected == set()


def test_disable_and_remove_group(state):
    color = state.groups[1].id
    state = reduce(state, {"type": "group/update", "id": color, "patch": {"enabled": False}})
    assert [r.options for r in state.rows] == [{"size": "6"}, {"size": "7"}]
    # {size: 7} alone is not the stored combination
    assert all(r.variant_id is None for r in state.rows)

    state = reduce(state, {"type": "group/remove", "id": state.groups[0].id})
    assert state.rows == []
    assert len(state.groups) == 1


def test_remove_value(state):
    state = reduce(state, {"type": "group/remove_value", "id": state.groups[0].id, "value": "6"})
    assert [r.variant_id for r in state.rows] == ["v7"]


def test_reorder_is_clamped(state):
    first = state.groups[0].id
    same = reduce(state, {"type": "group/reorder", "id": first, "direction": "up"})
    assert [g.id for g in same.groups] == [g.id for g in state.groups]
    moved = reduce(state, {"type": "group/reorder", "id": first, "direction": "down"})
    assert moved.groups[1].id == first
    with pytest.raises(ValueError):
        reduce(state, {"type": "group/reorder", "id": first, "direction": "sideways"})


def test_resync_replaces_groups_from_server(state):
    state = reduce(state, {"type": "group/remove", "id": state.groups[0].id})
    assert len(state.rows) == 1
    state = reduce(state, {"type": "groups/resync"})
    assert [g.name for g in state.groups] == ["size", "color"]
    assert len(state.rows) == 2


def test_bulk_only_price_on_selection(state):
    new = row_by(state, size=6, color="gold")
    state = reduce_all(state, [
        {"type": "row/update", "id": new.id, "patch": {"compare_at": "900", "inventory": "3"}},
        {"type": "row/toggle_select", "id": new.id},
        {"type": "rows/apply_bulk", "price": " 99 ", "compare_at": "", "inventory": None},
    ])
    new = row_by(state, size=6, color="gold")
    assert (new.price, new.compare_at, new.inventory) == ("99", "900", "3")
    assert new.dirty
    old = row_by(state, size=7, color="gold")
    assert old.price == 500 and not old.dirty


def test_bulk_without_selection_hits_all_rows(state):
    state = reduce(state, {"type": "rows/apply_bulk", "inventory": 10})
    assert all(r.inventory == "10" and r.dirty for r in state.rows)
    assert row_by(state, size=7, color="gold").price == 500


def test_bulk_with_nothing_provided_is_a_noop(state):
    after = reduce(state, {"type": "rows/apply_bulk", "price": "  "})
    assert not any(r.dirty for r in after.rows)
    _, notices = drain_notices(after)
    assert notices[0].level == "info"


def test_select_all_clear_and_remove_selected(state):
    state = reduce(state, {"type": "rows/select_all"})
    assert state.selected == {r.id for r in state.rows}
    state = reduce(state, {"type": "rows/clear_selection"})
    assert state.selected == set()

    target = row_by(state, size=6, color="gold")
    state = reduce_all(state, [
        {"type": "row/toggle_select", "id": target.id},
        {"type": "rows/remove_selected"},
    ])
    assert [r.variant_id for r in state.rows] == ["v7"]
    assert state.selected == set()
    assert state.persisted_count == 1


def test_locked_rows_are_not_edited(state):
    row = row_by(state, size=7, color="gold")
    state = reduce(state, {"type": "save/start", "row_ids": [row.id]})
    state = reduce(state, {"type": "row/update", "id": row.id, "patch": {"price": "1"}})
    state = reduce(state, {"type": "rows/apply_bulk", "price": "2"})
    locked = row_by(state, size=7, color="gold")
    assert locked.price == 500 and locked.saving
    assert row_by(state, size=6, color="gold").price == "2"
    state, notices = drain_notices(state)
    assert len(notices) == 2

    state = reduce(state, {"type": "save/finish", "row_ids": [row.id]})
    assert not row_by(state, size=7, color="gold").saving


def test_unknown_ids_and_actions(state):
    with pytest.raises(UnknownGroupError):
        reduce(state, {"type": "group/update", "id": "nope", "patch": {}})
    with pytest.raises(UnknownRowError):
        reduce(state, {"type": "row/update", "id": "nope", "patch": {}})
    with pytest.raises(ValueError):
        reduce(state, {"type": "row/explode"})


def test_image_attached(state):
    row = row_by(state, size=7, color="gold")
    state = reduce(state, {"type": "image/attached", "row_id": row.id, "images": ["a.jpg", "b.jpg"]})
    updated = row_by(state, size=7, color="gold")
    assert updated.images == ["a.jpg", "b.jpg"]
    assert not updated.dirty


def test_image_attached_keeps_pending_edits_dirty(state):
    row = row_by(state, size=7, color="gold")
    state = reduce_all(state, [
        {"type": "row/update", "id": row.id, "patch": {"price": "650"}},
        {"type": "image/attached", "row_id": row.id, "images": ["c.jpg"]},
    ])
    updated = row_by(state, size=7, color="gold")
    assert updated.images == ["c.jpg"]
    assert updated.price == "650" and updated.dirty
