# ----------------------------------------------------------------
# Import configuration variables to be used throughout the project
# ----------------------------------------------------------------
import os
from dotenv import load_dotenv

# Load .env (allow container env to override file values)
load_dotenv(override=True)


def _rstrip_slash(s: str) -> str:
    return (s or "").rstrip("/")


def _get_bool(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return str(v).strip().lower() in {"1", "true", "yes", "on", "y"}


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Settings:
    # ── Catalog REST API (the store backend) ────────────────────────────────
    CATALOG_API_URL: str = _rstrip_slash(os.getenv("CATALOG_API_URL", ""))
    CATALOG_API_TOKEN: str = os.getenv("CATALOG_API_TOKEN", "")
    # 0 disables the timeout entirely
    CATALOG_API_TIMEOUT: float = _get_float("CATALOG_API_TIMEOUT", 20.0)
    CATALOG_API_VERIFY_TLS: bool = _get_bool("CATALOG_API_VERIFY_TLS", True)

    # ── Admin Panel ──────────────────────────────────────────────────────────
    ADMIN_USER: str = os.getenv("ADMIN_USER", "admin")
    ADMIN_PASS: str = os.getenv("ADMIN_PASS", "changeme")

    # ── CORS ─────────────────────────────────────────────────────────────────
    # Comma-separated list in .env, e.g. "https://admin.example.com, http://localhost:3000"
    CORS_ORIGINS: list[str] = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    # ── Editing sessions ─────────────────────────────────────────────────────
    SESSION_TTL_SECONDS: int = _get_int("SESSION_TTL_SECONDS", 60 * 60)
    SESSION_REAP_INTERVAL: float = _get_float("SESSION_REAP_INTERVAL", 60.0)

    # ── Logging ──────────────────────────────────────────────────────────────
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
