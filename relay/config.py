from __future__ import annotations

import os


class Config:
    HOST = os.environ.get("HOST", "0.0.0.0")
    PORT = int(os.environ.get("PORT", "3001"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    # Optional path; logs go to stderr only when unset.
    LOG_FILE = os.environ.get("LOG_FILE") or None
    # Comma separated list, "*" allows every origin.
    CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]
