# app/application/sync_use_case.py
from __future__ import annotations

import os
import time
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from app.domain.errors import CatalogFetchError
from app.domain.models import SOURCE_TYPE_VADEMECUM, SyncResult, SyncStats
from app.domain.ports import CatalogClientPort, SupplementRepoPort
from app.domain.services.product_mapper import map_product_card_to_supplement
from app.domain.text import normalize_turkish
from app.domain.vendor import VendorProduct, VendorProductCard

logger = logging.getLogger("suppadvisor.sync")


def env_flag(name: str, default: bool = False) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


SYNC_BATCH_SIZE = int(os.getenv("SYNC_BATCH_SIZE", "10"))
SYNC_BATCH_DELAY = float(os.getenv("SYNC_BATCH_DELAY", "1"))
BRAND_ALLOWLIST = [b.strip().lower() for b in os.getenv("VADEMECUM_BRAND_ALLOWLIST", "").split(",") if b.strip()]
SKIP_PRESCRIPTION = env_flag("SYNC_SKIP_PRESCRIPTION", False)
SUPPLEMENTS_ONLY = env_flag("SYNC_SUPPLEMENTS_ONLY", False)

OTC_PRESCRIPTION_TYPES = {"beyaz recete", "recetesiz"}
SUPPLEMENT_TYPE_KEYWORDS = ("besin", "takviye", "vitamin", "mineral")
SUPPLEMENT_TYPE_EXACT = {"gbtu", "otc"}


@dataclass
class SyncFilters:
    """Optional narrowing of what gets imported; everything passes by default."""
    brand_allowlist: List[str] = field(default_factory=lambda: list(BRAND_ALLOWLIST))
    skip_prescription: bool = SKIP_PRESCRIPTION
    supplements_only: bool = SUPPLEMENTS_ONLY

    def skip_reason(self, card: VendorProductCard, brand_counts: Dict[str, int]) -> Optional[str]:
        c = card.card
        if self.brand_allowlist:
            brand = (c.licensee_company.name if c.licensee_company else None) or ""
            if not brand.strip():
                return "no brand information"
            low = brand.lower()
            matched = [b for b in self.brand_allowlist if b in low]
            if not matched:
                return f"brand not in allow-list: {brand}"
            for b in matched:
                brand_counts[b] = brand_counts.get(b, 0) + 1

        if self.skip_prescription:
            rx = normalize_turkish(c.prescription_type.name if c.prescription_type else None)
            if rx and rx not in OTC_PRESCRIPTION_TYPES:
                return f"prescription product ({rx})"

        if self.supplements_only:
            dtype = normalize_turkish(c.drug_type.name if c.drug_type else None)
            if not (any(k in dtype for k in SUPPLEMENT_TYPE_KEYWORDS) or dtype in SUPPLEMENT_TYPE_EXACT):
                return f"not a supplement (type: {dtype or '-'})"
        return None


class SyncProductsUseCase:
    """
    Full catalog pull: listing -> per item (card -> filter -> map -> upsert).

    Per-item outcomes:
      - card is None (404 / timeout / malformed)  -> skipped
      - filtered out                               -> skipped
      - mapping or upsert raised                   -> failed, message in `errors`
      - otherwise                                  -> synced

    A failing listing call ends the run early with `success=False`, zero
    totals and the fetch error as the only entry in `errors`. Not
    reentrant: the scheduled job guards against overlapping runs.
    """

    def __init__(
        self,
        client: CatalogClientPort,
        repo: SupplementRepoPort,
        filters: Optional[SyncFilters] = None,
        batch_size: int = SYNC_BATCH_SIZE,
        batch_delay: float = SYNC_BATCH_DELAY,
    ):
        self.client = client
        self.repo = repo
        self.filters = filters or SyncFilters()
        self.batch_size = max(1, batch_size)
        self.batch_delay = batch_delay

    async def sync_products_to_database(self) -> SyncResult:
        started = time.monotonic()
        stats = SyncStats()
        errors: List[str] = []
        brand_counts: Dict[str, int] = {b: 0 for b in self.filters.brand_allowlist}

        logger.info("Starting Vademecum product sync...")
        try:
            products = await self.client.fetch_all_products()
        except CatalogFetchError as e:
            logger.error("Sync failed, product listing unavailable: %s", e)
            return SyncResult(
                success=False,
                message=f"Sync failed: {e}",
                stats=stats,
                errors=[str(e)],
                brand_counts=None,
                duration_seconds=round(time.monotonic() - started, 2),
            )
        stats.total = len(products)

        n_batches = (len(products) + self.batch_size - 1) // self.batch_size
        for i in range(0, len(products), self.batch_size):
            batch = products[i:i + self.batch_size]
            logger.info("Processing batch %d/%d", i // self.batch_size + 1, n_batches)

            outcomes = await asyncio.gather(
                *(self._sync_one(p, brand_counts) for p in batch),
                return_exceptions=True,
            )
            for product, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    # _sync_one already isolates mapping/upsert; this catches the card fetch
                    outcome = f"Failed to sync {product.name} (id={product.id}): {outcome!r}"
                if outcome == "synced":
                    stats.synced += 1
                elif outcome == "skipped":
                    stats.skipped += 1
                else:
                    stats.failed += 1
                    errors.append(outcome)
                    logger.error(outcome)

            if self.batch_delay > 0 and i + self.batch_size < len(products):
                await asyncio.sleep(self.batch_delay)

        result = SyncResult(
            success=stats.failed == 0,
            message=f"Sync completed. {stats.synced}/{stats.total} products synced.",
            stats=stats,
            errors=errors,
            brand_counts=dict(brand_counts) if self.filters.brand_allowlist else None,
            duration_seconds=round(time.monotonic() - started, 2),
        )
        logger.info("Sync completed: %s", stats.model_dump())
        return result

    async def _sync_one(self, product: VendorProduct, brand_counts: Dict[str, int]) -> str:
        card = await self.client.fetch_product_card(product.id)
        if card is None:
            return "skipped"

        reason = self.filters.skip_reason(card, brand_counts)
        if reason:
            logger.debug("Skipping product %s - %s", product.id, reason)
            return "skipped"

        try:
            supplement = map_product_card_to_supplement(card)
            await self.repo.upsert_by_source(str(product.id), SOURCE_TYPE_VADEMECUM, supplement)
        except Exception as e:
            return f"Failed to sync {product.name} (id={product.id}): {e}"

        logger.debug("Synced: %s", product.name)
        return "synced"
