#=======================================================================================
# backoffice/variants/variants_api.py
# Variant builder endpoints. Mounted under /admin (Basic Auth) in main_app.py,
# so final paths are /admin/api/variants/*.
#
# Every response is the session view: groups, rows, selection and the notices
# produced since the previous response (drained, so each notice is shown once).
#=======================================================================================
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field

from backoffice.security import verify_admin
from backoffice.variants import service
from backoffice.variants.matrix import active_groups
from backoffice.variants.models import (
    EditorState,
    UnknownGroupError,
    UnknownRowError,
    VariantEditorError,
    row_view,
)
from backoffice.variants.session_store import SessionNotFound, sessions
from backoffice.variants.state import Action, drain_notices

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api/variants", tags=["Variant Builder"])

Scalar = Union[int, float, str, None]

# ---------------------------
# Request bodies
# ---------------------------
class NewSession(BaseModel):
    product_id: str = Field(..., min_length=1, description="Product whose variants are edited")


class GroupPatch(BaseModel):
    name: Optional[str] = None
    values: Optional[List[str]] = None
    enabled: Optional[bool] = None


class MoveGroup(BaseModel):
    direction: str = Field(..., pattern="^(up|down)$")


class ValuesInput(BaseModel):
    text: str = Field("", description="One or more values, comma separated")


class RowPatch(BaseModel):
    sku: Optional[str] = None
    price: Scalar = None
    compare_at: Scalar = None
    inventory: Scalar = None
    manage_stock: Optional[bool] = None


class BulkInput(BaseModel):
    price: Scalar = None
    compare_at: Scalar = None
    inventory: Scalar = None

# ---------------------------
# Helpers
# ---------------------------
def _view(sid: str, state: EditorState) -> Dict[str, Any]:
    state, notices = drain_notices(state)
    try:
        sessions.put(sid, state)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail=f"Unknown session: {sid}")
    return {
        "session_id": sid,
        "product_id": state.product_id,
        "status": state.status,
        "error": state.error,
        "mode": state.mode,
        "groups": [g.model_dump() for g in state.groups],
        "active_groups": active_groups(state.groups),
        "rows": [row_view(r) for r in state.rows],
        "selected": sorted(state.selected),
        "combination_count": len(state.combo_keys),
        "persisted_count": state.persisted_count,
        "notices": [n.model_dump() for n in notices],
    }

def _state(sid: str) -> EditorState:
    try:
        return sessions.get(sid)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail=f"Unknown session: {sid}")

def _apply(sid: str, action: Action) -> Dict[str, Any]:
    _state(sid)
    try:
        state = service.dispatch(sessions, sid, action)
    except UnknownGroupError as e:
        raise HTTPException(status_code=404, detail=f"Unknown option group: {e.args[0]}")
    except UnknownRowError as e:
        raise HTTPException(status_code=404, detail=f"Unknown row: {e.args[0]}")
    except (VariantEditorError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _view(sid, state)

# --------------------------------------------------------------------
# Sessions
# --------------------------------------------------------------------
@router.post("/sessions")
async def create_session(body: NewSession, user: str = Depends(verify_admin)):
    """Open an editing session for a product and load its variants."""
    sid = sessions.create(body.product_id)
    state = await service.load_variants(sessions, sid, user=user)
    return _view(sid, state)

@router.get("/sessions/{sid}")
async def get_session(sid: str):
    return _view(sid, _state(sid))

@router.post("/sessions/{sid}/reload")
async def reload_session(sid: str, user: str = Depends(verify_admin)):
    """Re-fetch persisted variants; in-progress edits are kept, groups are not re-seeded."""
    _state(sid)
    state = await service.load_variants(sessions, sid, user=user)
    return _view(sid, state)

@router.delete("/sessions/{sid}")
async def delete_session(sid: str):
    if not sessions.delete(sid):
        raise HTTPException(status_code=404, detail=f"Unknown session: {sid}")
    return {"ok": True, "session_id": sid}

# --------------------------------------------------------------------
# Option groups
# --------------------------------------------------------------------
@router.post("/sessions/{sid}/groups")
async def add_group(sid: str):
    return _apply(sid, {"type": "group/add"})

@router.post("/sessions/{sid}/groups/resync")
async def resync_groups(sid: str):
    """'Sync from DB': rebuild groups from the stored option schema or variants."""
    return _apply(sid, {"type": "groups/resync"})

@router.patch("/sessions/{sid}/groups/{gid}")
async def update_group(sid: str, gid: str, body: GroupPatch):
    return _apply(sid, {"type": "group/update", "id": gid,
                        "patch": body.model_dump(exclude_unset=True)})

@router.delete("/sessions/{sid}/groups/{gid}")
async def remove_group(sid: str, gid: str):
    return _apply(sid, {"type": "group/remove", "id": gid})

@router.post("/sessions/{sid}/groups/{gid}/move")
async def move_group(sid: str, gid: str, body: MoveGroup):
    return _apply(sid, {"type": "group/reorder", "id": gid, "direction": body.direction})

@router.post("/sessions/{sid}/groups/{gid}/values")
async def add_values(sid: str, gid: str, body: ValuesInput):
    return _apply(sid, {"type": "group/add_values", "id": gid, "text": body.text})

@router.delete("/sessions/{sid}/groups/{gid}/values/{value}")
async def remove_value(sid: str, gid: str, value: str):
    return _apply(sid, {"type": "group/remove_value", "id": gid, "value": value})

# --------------------------------------------------------------------
# Rows & selection
# --------------------------------------------------------------------
@router.patch("/sessions/{sid}/rows/{rid}")
async def update_row(sid: str, rid: str, body: RowPatch):
    return _apply(sid, {"type": "row/update", "id": rid,
                        "patch": body.model_dump(exclude_unset=True)})

@router.post("/sessions/{sid}/rows/{rid}/select")
async def toggle_select(sid: str, rid: str):
    return _apply(sid, {"type": "row/toggle_select", "id": rid})

@router.post("/sessions/{sid}/selection/all")
async def select_all(sid: str):
    return _apply(sid, {"type": "rows/select_all"})

@router.delete("/sessions/{sid}/selection")
async def clear_selection(sid: str):
    return _apply(sid, {"type": "rows/clear_selection"})

@router.post("/sessions/{sid}/rows/remove-selected")
async def remove_selected(sid: str):
    """Local only: the stored variants are not deleted."""
    return _apply(sid, {"type": "rows/remove_selected"})

@router.post("/sessions/{sid}/bulk")
async def apply_bulk(sid: str, body: BulkInput):
    return _apply(sid, {"type": "rows/apply_bulk", **body.model_dump()})

# --------------------------------------------------------------------
# Save & image
# --------------------------------------------------------------------
@router.post("/sessions/{sid}/save")
async def save(sid: str, user: str = Depends(verify_admin)):
    _state(sid)
    state = await service.save_variants(sessions, sid, user=user)
    return _view(sid, state)

@router.post("/sessions/{sid}/rows/{rid}/image")
async def upload_image(
    sid: str,
    rid: str,
    file: UploadFile = File(...),
    mode: str = Form("primary"),
    user: str = Depends(verify_admin),
):
    _state(sid)
    content = await file.read()
    try:
        state = await service.attach_image(
            sessions, sid, rid,
            filename=file.filename or "image.jpg",
            content=content,
            content_type=file.content_type or "application/octet-stream",
            mode=mode,
            user=user,
        )
    except UnknownRowError:
        raise HTTPException(status_code=404, detail=f"Unknown row: {rid}")
    return _view(sid, state)
