# app/presentation/routers.py
from __future__ import annotations

import math
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from app.infra.api.security import require_admin_key, require_api_key
from app.infra.api.vademecum_client import VademecumClient
from app.infra.repo.mongo_repo import DEFAULT_SORT, search_filter

from app.presentation.schemas import (
    ApiResponse, CacheStats, Pagination,
    RecommendationsEnvelope, SupplementEnvelope, SupplementPage, SupplementPageEnvelope,
    SyncEnvelope,
)

from app.container import (
    get_catalog_client, get_recommend_use_case, get_supplement_repo, get_sync_job,
)

from app.application.recommend_use_case import RecommendProductsUseCase
from app.application.jobs.sync_job import VademecumSyncJob
from app.domain.errors import FormNotFilledError, UserNotFoundError
from app.domain.ports import SupplementRepoPort


# ──────────────────────────────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────────────────────────────
logger = logging.getLogger("suppadvisor.api")


# every endpoint below requires X-Api-Key
router = APIRouter(prefix="/v1/supplements", dependencies=[Depends(require_api_key)])


# ── RECOMMENDATIONS ──────────────────────────────────────────────
@router.get("/recommendations", response_model=RecommendationsEnvelope)
async def get_recommendations(
    user_id: str | None = Header(None, alias="X-User-Id"),
    uc: RecommendProductsUseCase = Depends(get_recommend_use_case),
):
    # the auth gateway resolves the JWT and forwards the user id
    if not user_id:
        raise HTTPException(status_code=401, detail="Kimlik doğrulama gerekli")

    logger.info("Getting recommendations for user: %s", user_id)
    try:
        out = await uc.get_recommended_products(user_id)
    except UserNotFoundError:
        raise HTTPException(status_code=404, detail="Kullanıcı bulunamadı")
    except FormNotFilledError:
        raise HTTPException(
            status_code=400,
            detail="Öneri alabilmek için önce sağlık profili formunu doldurmalısınız",
        )
    except Exception as e:
        logger.exception("Error in get_recommendations")
        raise HTTPException(status_code=500, detail=str(e))

    return RecommendationsEnvelope(message="Öneriler başarıyla getirildi", data=out)


# ── SYNC / CACHE (admin) ─────────────────────────────────────────
@router.post("/sync", response_model=SyncEnvelope, dependencies=[Depends(require_admin_key)])
async def trigger_sync(job: VademecumSyncJob = Depends(get_sync_job)):
    logger.info("Manual Vademecum sync triggered")
    try:
        result = await job.run_once()
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))

    if result is None:
        raise HTTPException(status_code=409, detail="Senkronizasyon zaten çalışıyor")
    if result.listing_failed:
        raise HTTPException(status_code=502, detail=result.message)
    return SyncEnvelope(
        is_success=result.success,
        message="Senkronizasyon tamamlandı" if result.success else "Senkronizasyon hatalarla tamamlandı",
        data=result,
    )


@router.get("/cache/stats", response_model=ApiResponse, dependencies=[Depends(require_admin_key)])
async def cache_stats(client: VademecumClient = Depends(get_catalog_client)):
    return ApiResponse(message="Önbellek durumu", data=CacheStats(**client.get_cache_stats()))


@router.delete("/cache", response_model=ApiResponse, dependencies=[Depends(require_admin_key)])
async def clear_cache(client: VademecumClient = Depends(get_catalog_client)):
    client.clear_cache()
    return ApiResponse(message="Önbellek temizlendi", data=CacheStats(**client.get_cache_stats()))


# ── CATALOG BROWSE ───────────────────────────────────────────────
@router.get("", response_model=SupplementPageEnvelope)
async def list_supplements(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str | None = Query(None, description="Ad / marka / kullanım amacında arama"),
    repo: SupplementRepoPort = Depends(get_supplement_repo),
):
    query = {"is_active": True}
    if search and search.strip():
        query.update(search_filter(search))

    skip = (page - 1) * limit
    try:
        items = await repo.find_many(query, skip=skip, limit=limit, sort=DEFAULT_SORT)
        total = await repo.count(query)
    except Exception as e:
        logger.exception("Error in list_supplements")
        raise HTTPException(status_code=500, detail=str(e))

    logger.info("Retrieved %d supplements (page %d)", len(items), page)
    return SupplementPageEnvelope(
        message="Takviye gıdalar başarıyla getirildi",
        data=SupplementPage(
            supplements=items,
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit),
                has_more=skip + len(items) < total,
            ),
        ),
    )


@router.get("/{supplement_id}", response_model=SupplementEnvelope)
async def get_supplement(supplement_id: str, repo: SupplementRepoPort = Depends(get_supplement_repo)):
    sup = await repo.find_by_id(supplement_id)
    if sup is None:
        raise HTTPException(status_code=404, detail="Takviye gıda bulunamadı")
    return SupplementEnvelope(message="Takviye gıda başarıyla getirildi", data=sup)
