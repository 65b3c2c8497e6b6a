# app/presentation/schemas.py
from __future__ import annotations
from pydantic import BaseModel
from typing import Any, List

from app.domain.models import RecommendationResponse, Supplement, SyncResult

# ── Envelope (same shape for every /v1/supplements response) ─────────────
class ApiResponse(BaseModel):
    is_success: bool = True
    message: str
    data: Any | None = None

# ── RECOMMENDATIONS ──────────────────────────────────────────────
class RecommendationsEnvelope(ApiResponse):
    data: RecommendationResponse

# ── CATALOG BROWSE ───────────────────────────────────────────────
class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_more: bool

class SupplementPage(BaseModel):
    supplements: List[Supplement]
    pagination: Pagination

class SupplementPageEnvelope(ApiResponse):
    data: SupplementPage

class SupplementEnvelope(ApiResponse):
    data: Supplement

# ── SYNC / CACHE ─────────────────────────────────────────────────
class SyncEnvelope(ApiResponse):
    data: SyncResult

class CacheStats(BaseModel):
    product_cards: int
    product_list: str
