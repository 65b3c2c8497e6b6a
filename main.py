# main.py
from dotenv import load_dotenv
load_dotenv()

import os
import logging
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

# --- logging config before the app imports ---
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from app.presentation.routers import router as v1_router
from app.presentation.health import router as health_router
from app.container import get_catalog_client, get_supplement_repo, get_sync_job

app = FastAPI(
    title="Supplement Advisor",
    version=os.getenv("APP_VERSION", "0.1.0"),
)

app_logger = logging.getLogger("suppadvisor.request")

SYNC_ENABLED = os.getenv("VADEMECUM_SYNC_ENABLED", "0") == "1"

@app.middleware("http")
async def log_requests(request: Request, call_next):
    app_logger.info(f"Incoming {request.method} {request.url.path}")
    try:
        response = await call_next(request)
        app_logger.info(f"Completed {request.method} {request.url.path} -> {response.status_code}")
        return response
    except Exception:
        app_logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        raise

# ─────────────────────────────────────────────────────────────
# CORS (CORS_ALLOW_ORIGINS="https://foo.com,https://bar.com")
# ─────────────────────────────────────────────────────────────
raw_origins = os.getenv("CORS_ALLOW_ORIGINS", "*")
allow_origins = [o.strip().rstrip("/") for o in raw_origins.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials="*" not in allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ─────────────────────────────────────────────────────────────
# Routes
# ─────────────────────────────────────────────────────────────
app.include_router(v1_router, tags=["supplements"])
app.include_router(health_router, tags=["health"])

@app.get("/")
async def root():
    return {
        "name": "Supplement Advisor",
        "version": os.getenv("APP_VERSION", "0.1.0"),
        "ok": True,
    }

# ─────────────────────────────────────────────────────────────
# Startup / shutdown: indexes + daily Vademecum sync
# ─────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    try:
        await get_supplement_repo().ensure_indexes()
    except Exception:
        app_logger.exception("could not ensure supplement indexes at startup")
    if SYNC_ENABLED:
        get_sync_job().start()
    else:
        app_logger.info("Vademecum sync job disabled (VADEMECUM_SYNC_ENABLED != 1)")

@app.on_event("shutdown")
async def shutdown():
    await get_sync_job().stop()
    await get_catalog_client().aclose()

@app.options("/{rest_of_path:path}")
async def any_options(rest_of_path: str):
    return Response(status_code=204)
