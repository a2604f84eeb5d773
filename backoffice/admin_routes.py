#=======================================================================================
# backoffice/admin_routes.py
# Admin endpoints. Protected via Basic Auth in main_app.py and mounted under /admin,
# so final paths are /admin/api/*.
#=======================================================================================

import logging

from fastapi import APIRouter, Query

from backoffice.catalog_api import catalog_ping
from backoffice.config import settings
from backoffice.models.audit_log import get_audit_log
from backoffice.variants.session_store import sessions

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api", tags=["Admin API"])

# --------------------------------------------------------------------
# Admin Health (for UI): verifies the catalog API is reachable
# --------------------------------------------------------------------

@router.get("/health")
async def admin_health():
    """
    Admin-only health check used by the UI. Returns 200 with per-target status;
    does not require the catalog token to succeed.
    """
    checks = {"catalog": await catalog_ping()}
    ok = all(v.get("ok") for v in checks.values())
    return {
        "ok": ok,
        "checks": checks,
        "base": {"catalog": settings.CATALOG_API_URL},
        "open_sessions": len(sessions.ids()),
    }

# --------------------------------------------------------------------
# Audit trail
# --------------------------------------------------------------------

@router.get("/audit")
def admin_audit(limit: int = Query(100, ge=1, le=1000)):
    """Most recent saves, uploads and load failures, oldest first."""
    return {"entries": get_audit_log(limit)}
