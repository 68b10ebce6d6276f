# paytrack/config.py
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# ─────────────────────────────────────────────────────────────────────────────
# Env config
# ─────────────────────────────────────────────────────────────────────────────

# Variables already present in the process environment win over .env
load_dotenv(dotenv_path=Path(__file__).parent / ".env", override=False)


def _truthy(name: str, default: str = "") -> bool:
    v = os.getenv(name, default)
    return v not in ("", "0", "false", "False", "no", "No")


def _normalize_db_url(raw: Optional[str]) -> str:
    """
    Accepts postgres:// or postgresql://; converts to postgresql+psycopg://.
    Appends ?sslmode=require for non-local Postgres if not present.
    Falls back to a local SQLite file when unset.
    """
    db_url = (raw or "").strip()

    if not db_url:
        return "sqlite:///./app.db"

    db_url = db_url.replace("postgres://", "postgresql://", 1)

    if db_url.startswith("postgresql://") and "+psycopg" not in db_url:
        db_url = db_url.replace("postgresql://", "postgresql+psycopg://", 1)

    # Hosted providers (Render/Neon/RDS/etc.) require SSL
    if (
        db_url.startswith("postgresql")
        and "localhost" not in db_url
        and "127.0.0.1" not in db_url
        and "sslmode=" not in db_url
    ):
        db_url += ("&" if "?" in db_url else "?") + "sslmode=require"

    return db_url


DATABASE_URL = _normalize_db_url(os.getenv("DATABASE_URL"))

JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret")
JWT_ALG = "HS256"
# default 1 day (in minutes)
JWT_EXPIRE_MIN = int(os.getenv("JWT_EXPIRE_MIN", "1440"))

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))

# Optional admin account created on startup
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "")
# Preferred: bcrypt hash string (e.g., from bcrypt.gensalt())
ADMIN_PASSWORD_HASH = os.getenv("ADMIN_PASSWORD_HASH", "")
# Convenience for local/dev: plain password, hashed at bootstrap
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")

FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = _truthy("LOG_JSON", "true")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
