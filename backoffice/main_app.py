#=================================================================
# backoffice/main_app.py
# FastAPI application entry-point for the store back-office API.
#=================================================================

import logging, asyncio

from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from backoffice.config import settings
from backoffice.logging_filters import install_html_filter
from backoffice.security import verify_admin

# Admin API under /admin/api/*
from backoffice.admin_routes import router as admin_router
from backoffice.variants.variants_api import router as variants_router

from backoffice.workers.session_reaper import reaper_loop

# --- FastAPI instance ---
app = FastAPI(
    title="Jewelry Store Back-office",
    description="Admin API for the store catalog: variant matrix builder and ops helpers.",
)

# --- Logging setup (console) ---
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s | %(message)s"
)
logger = logging.getLogger("uvicorn.error")
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
install_html_filter()

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------- Include routers ----------------

# Admin API (Basic Auth on everything under /admin)
app.include_router(admin_router, prefix="/admin", dependencies=[Depends(verify_admin)])
app.include_router(variants_router, prefix="/admin", dependencies=[Depends(verify_admin)])

# --- Root endpoint ---
@app.get("/")
async def home():
    return {"status": "running", "service": "Store Back-office"}

# --- Global error handler (keeps full stack trace in logs) ---
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": f"Request failed: {str(exc)}"},
    )

# ---- Session reaper lifecycle ----
_reaper_task: asyncio.Task | None = None
_reaper_stop: asyncio.Event | None = None

@app.on_event("startup")
async def _startup():
    global _reaper_task, _reaper_stop
    _reaper_stop = asyncio.Event()
    _reaper_task = asyncio.create_task(reaper_loop(_reaper_stop))

@app.on_event("shutdown")
async def _shutdown():
    global _reaper_task, _reaper_stop
    if _reaper_stop:
        _reaper_stop.set()
    if _reaper_task:
        try:
            await asyncio.wait_for(_reaper_task, timeout=5.0)
        except asyncio.TimeoutError:
            _reaper_task.cancel()
