# app/infra/api/vademecum_client.py
from __future__ import annotations

import os
import time
import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from app.domain.errors import CatalogFetchError
from app.domain.ports import CatalogClientPort
from app.domain.vendor import VendorProduct, VendorProductCard
from app.infra.cache.catalog_cache import CatalogCache

logger = logging.getLogger("suppadvisor.vademecum")

BASE = os.getenv("VADEMECUM_API_BASE_URL", "https://api.vapi.co")
API_KEY = os.getenv("VADEMECUM_API_KEY", "")
UA = os.getenv("VADEMECUM_USER_AGENT", "SupplementAdvisor/0.1 (+contact)")
TIMEOUT = float(os.getenv("VADEMECUM_TIMEOUT", "30"))
RATE = float(os.getenv("VADEMECUM_RATE_PER_SEC", "5"))
PER_PAGE = int(os.getenv("VADEMECUM_PER_PAGE", "100"))
MAX_PAGES = int(os.getenv("VADEMECUM_MAX_PAGES", "0"))            # 0 = until an empty page
PAGE_REQUEST_DELAY = float(os.getenv("VADEMECUM_PAGE_DELAY", "1"))
PAGE_RETRY_COUNT = int(os.getenv("VADEMECUM_PAGE_RETRIES", "3"))
RETRY_BACKOFF_BASE = float(os.getenv("VADEMECUM_RETRY_BACKOFF", "2"))

RETRY_STATUSES = {429, 502, 503}
END_OF_LISTING_STATUSES = {400, 404}


class RateLimiter:
    def __init__(self, rate_per_sec: float):
        self.interval = 1.0 / max(rate_per_sec, 0.1)
        self._last = 0.0
        self._lock = asyncio.Lock()

    async def wait(self):
        async with self._lock:
            now = time.monotonic()
            sleep = self._last + self.interval - now
            if sleep > 0:
                await asyncio.sleep(sleep)
            self._last = time.monotonic()


class VademecumClient(CatalogClientPort):
    """
    Async client for the Vademecum catalog API.

    Listing failures are fatal and surface as `CatalogFetchError`; detail
    failures of any kind turn into `None` so one bad card never stops a bulk
    sync. Both calls read through the injected `CatalogCache`.
    """

    def __init__(
        self,
        cache: CatalogCache,
        http: Optional[httpx.AsyncClient] = None,
        *,
        base_url: str = BASE,
        api_key: str = API_KEY,
        timeout: float = TIMEOUT,
        per_page: int = PER_PAGE,
        max_pages: int = MAX_PAGES,
        page_delay: float = PAGE_REQUEST_DELAY,
        retry_count: int = PAGE_RETRY_COUNT,
        retry_backoff: float = RETRY_BACKOFF_BASE,
        limiter: Optional[RateLimiter] = None,
    ):
        self.cache = cache
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
                "User-Agent": UA,
            },
            timeout=timeout,
            follow_redirects=True,
        )
        self.per_page = per_page
        self.max_pages = max_pages
        self.page_delay = page_delay
        self.retry_count = max(1, retry_count)
        self.retry_backoff = retry_backoff
        self.limiter = limiter or RateLimiter(RATE)

    async def __aenter__(self) -> "VademecumClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        await self.limiter.wait()
        return await self.http.get(path, params=params)

    # ──────────────────────────────────────────────────────────────
    #  Listing
    # ──────────────────────────────────────────────────────────────
    async def fetch_all_products(self, use_cache: bool = True) -> List[VendorProduct]:
        """
        Walk /products page by page until a page comes back empty (or the
        vendor answers 400/404 for a page past the end). The page count is
        never assumed; `max_pages` is only an operator safety valve.
        """
        if use_cache:
            cached = self.cache.get_product_list()
            if cached is not None:
                logger.info("Returning cached product list (%d products)", len(cached))
                return cached

        products: List[VendorProduct] = []
        page = 1
        try:
            while True:
                if self.max_pages and page > self.max_pages:
                    logger.info("Stopped at page limit (%d). Total products: %d", self.max_pages, len(products))
                    break

                items = await self._fetch_page(page)
                if items is None:
                    logger.info("Reached last page (vendor answered 400/404 for page %d)", page)
                    break
                if not items:
                    logger.info("Reached last page (page %d is empty)", page)
                    break

                products.extend(items)
                logger.info("Page %d: %d products (total: %d)", page, len(items), len(products))
                page += 1

                if self.page_delay > 0:
                    await asyncio.sleep(self.page_delay)
        except CatalogFetchError:
            raise
        except httpx.HTTPStatusError as e:
            code = e.response.status_code
            logger.error("Error fetching products from Vademecum: status=%s body=%s", code, e.response.text[:500])
            raise CatalogFetchError(f"Failed to fetch products: {e} (status: {code})", status_code=code) from e
        except httpx.HTTPError as e:
            logger.error("Error fetching products from Vademecum: %r", e)
            raise CatalogFetchError(f"Failed to fetch products: {e!r} (status: N/A)") from e

        logger.info("Total products fetched: %d", len(products))
        self.cache.set_product_list(products)
        return products

    async def _fetch_page(self, page: int) -> Optional[List[VendorProduct]]:
        params = {"page": page, "per-page": self.per_page}
        for attempt in range(1, self.retry_count + 1):
            r = await self._get("/products", params=params)
            if r.status_code in END_OF_LISTING_STATUSES:
                return None
            if r.status_code in RETRY_STATUSES and attempt < self.retry_count:
                backoff = self.retry_backoff * attempt
                logger.warning(
                    "%s on page %d, retrying in %.1fs (%d retries left)",
                    r.status_code, page, backoff, self.retry_count - attempt,
                )
                await asyncio.sleep(backoff)
                continue
            r.raise_for_status()
            return self._parse_listing(r, page)
        return None  # unreachable: the last attempt either returns or raises

    @staticmethod
    def _parse_listing(r: httpx.Response, page: int) -> List[VendorProduct]:
        try:
            body = r.json()
        except ValueError as e:
            raise CatalogFetchError(f"Failed to fetch products: page {page} is not JSON", r.status_code) from e

        if not isinstance(body, dict):
            raise CatalogFetchError(f"Failed to fetch products: malformed response on page {page}", r.status_code)

        if isinstance(body.get("data"), list):
            raw = [(row or {}).get("product") if isinstance(row, dict) else None for row in body["data"]]
        elif isinstance(body.get("product"), list):
            raw = body["product"]
        else:
            raise CatalogFetchError(
                f"Failed to fetch products: malformed response on page {page} "
                f"(keys: {', '.join(sorted(body)) or '-'})",
                r.status_code,
            )

        items: List[VendorProduct] = []
        for row in raw:
            if not isinstance(row, dict) or not row.get("id") or not row.get("name"):
                continue
            try:
                items.append(VendorProduct.model_validate(row))
            except ValidationError:
                logger.debug("dropping unreadable listing row on page %d: %r", page, row)
        return items

    # ──────────────────────────────────────────────────────────────
    #  Detail card
    # ──────────────────────────────────────────────────────────────
    async def fetch_product_card(self, vendor_id: int) -> Optional[VendorProductCard]:
        cached = self.cache.get_card(vendor_id)
        if cached is not None:
            return cached

        logger.debug("Fetching product card for ID: %s", vendor_id)
        try:
            r = await self._get(f"/custom-product-card/{vendor_id}")
            if r.status_code == 404:
                logger.warning("Product card not found for ID: %s", vendor_id)
                return None
            r.raise_for_status()
            body = r.json()
        except httpx.HTTPError as e:
            logger.error("Error fetching product card %s: %r", vendor_id, e)
            return None
        except ValueError:
            logger.error("Error fetching product card %s: response is not JSON", vendor_id)
            return None

        data = self._unwrap_card(body)
        if data is None:
            logger.warning("Product card not found or empty for ID: %s", vendor_id)
            return None

        try:
            card = VendorProductCard.model_validate(data)
        except ValidationError as e:
            logger.error("Malformed product card %s: %s", vendor_id, e.errors()[:3])
            return None

        self.cache.set_card(vendor_id, card)
        return card

    @staticmethod
    def _unwrap_card(body: Any) -> Optional[Dict[str, Any]]:
        # {"success": true, "data": {product, card}} | {"success": true, "data": []} | {product, card}
        if not isinstance(body, dict):
            return None
        if "data" in body or "success" in body:
            if body.get("success") is False:
                return None
            data = body.get("data")
            return data if isinstance(data, dict) and data else None
        return body if "product" in body else None

    # ──────────────────────────────────────────────────────────────
    #  Cache control
    # ──────────────────────────────────────────────────────────────
    def clear_cache(self) -> None:
        self.cache.clear()

    def get_cache_stats(self) -> Dict[str, object]:
        return self.cache.stats()
