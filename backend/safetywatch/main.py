# backend/safetywatch/main.py
from __future__ import annotations

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import RedirectResponse

from safetywatch import config

log = logging.getLogger("uvicorn.error")

# Optional global API prefix (e.g., "/api")
_API_PREFIX = config.API_PREFIX
if _API_PREFIX:
    if not _API_PREFIX.startswith("/"):
        _API_PREFIX = "/" + _API_PREFIX
    # avoid trailing slash so paths look like /api/incidents (not //incidents)
    _API_PREFIX = _API_PREFIX.rstrip("/")

app = FastAPI(
    title="SafetyWatch API",
    version="1.0.0",
    description="Backend for SafetyWatch (auth, incident reports, moderation).",
)

# ---------------- CORS (web frontend needs this) ----------------
# Prefer explicit origins via CORS_ORIGINS="https://app.example.com,https://staging.example.com"
# For local dev we allow any localhost/127.0.0.1 on any port.
cors_kwargs = dict(allow_methods=["*"], allow_headers=["*"])

if config.CORS_ORIGINS:
    allow_origins = [o.strip() for o in config.CORS_ORIGINS.split(",") if o.strip()]
    cors_kwargs.update(
        allow_origins=allow_origins,
        allow_credentials=True,
    )
else:
    cors_kwargs.update(
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
    )

app.add_middleware(CORSMiddleware, **cors_kwargs)
log.info("CORS configured: %s", cors_kwargs)

# ---------------- Routers ----------------
# each router has its own prefix (/user, /incidents, /admin)
from safetywatch.routes.user import router as user_router
from safetywatch.routes.incident import router as incident_router
from safetywatch.routes.admin import router as admin_router

app.include_router(user_router, prefix=_API_PREFIX)
app.include_router(incident_router, prefix=_API_PREFIX)
app.include_router(admin_router, prefix=_API_PREFIX)


# ---------------- Meta/utility ----------------
@app.get("/", include_in_schema=False)
def root() -> RedirectResponse:
    # Visiting the root opens Swagger UI
    return RedirectResponse(url="/docs")

@app.get(f"{_API_PREFIX or ''}/health", tags=["meta"])
def health():
    return {"status": "ok", "prefix": _API_PREFIX or ""}

# ---------------- Local dev entrypoint ----------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "safetywatch.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
