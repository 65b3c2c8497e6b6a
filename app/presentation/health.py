# app/presentation/health.py
from fastapi import APIRouter, Depends
from app.container import get_catalog_client, get_supplement_repo, get_sync_job
from app.infra.api.vademecum_client import API_KEY

router = APIRouter()

@router.get("/healthz")
async def healthz():
    return {"ok": True}

@router.get("/readyz")
async def readyz(repo = Depends(get_supplement_repo), client = Depends(get_catalog_client), job = Depends(get_sync_job)):
    checks = {}; ok = True
    # Mongo
    try:
        await repo.ensure_indexes()
        checks["mongo"] = True
    except Exception as e:
        checks["mongo"] = False; checks["mongo_error"] = str(e); ok = False
    # Sync lock (redis backend only)
    try:
        pong = await job.guard.ping() if hasattr(job.guard, "ping") else True
        checks["sync_lock"] = bool(pong); ok = ok and bool(pong)
    except Exception as e:
        checks["sync_lock"] = False; checks["sync_lock_error"] = str(e); ok = False
    # Vendor / scheduler
    checks["vademecum_configured"] = bool(API_KEY)
    checks["sync_scheduled"] = job.scheduled
    checks["cache"] = client.get_cache_stats()
    return {"ok": ok, **checks}
