# app/infra/cache/catalog_cache.py
import os
import time
import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple

from app.domain.vendor import VendorProduct, VendorProductCard

logger = logging.getLogger("suppadvisor.cache")

CACHE_TTL_PRODUCT_CARD = float(os.getenv("CACHE_TTL_PRODUCT_CARD", str(24 * 60 * 60)))  # 24h
CACHE_TTL_PRODUCT_LIST = float(os.getenv("CACHE_TTL_PRODUCT_LIST", str(6 * 60 * 60)))   # 6h


class CatalogCache:
    """
    Process-local cache for the Vademecum catalog.

    - product cards: vendor id -> (card, inserted_at), TTL per entry
    - product list: single slot holding the page-assembled listing

    Entries older than their TTL count as absent and are evicted on read.
    All access goes through one lock so a value is never read together with
    another entry's timestamp.
    """

    def __init__(
        self,
        card_ttl: float = CACHE_TTL_PRODUCT_CARD,
        list_ttl: float = CACHE_TTL_PRODUCT_LIST,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.card_ttl = card_ttl
        self.list_ttl = list_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._cards: Dict[int, Tuple[VendorProductCard, float]] = {}
        self._list: Optional[Tuple[List[VendorProduct], float]] = None

    # ------- product cards -------
    def get_card(self, vendor_id: int) -> Optional[VendorProductCard]:
        with self._lock:
            hit = self._cards.get(vendor_id)
            if hit is None:
                return None
            card, inserted_at = hit
            if self._clock() - inserted_at >= self.card_ttl:
                del self._cards[vendor_id]
                return None
            return card

    def set_card(self, vendor_id: int, card: VendorProductCard) -> None:
        with self._lock:
            self._cards[vendor_id] = (card, self._clock())

    # ------- product list -------
    def get_product_list(self) -> Optional[List[VendorProduct]]:
        with self._lock:
            if self._list is None:
                return None
            items, inserted_at = self._list
            if self._clock() - inserted_at >= self.list_ttl:
                self._list = None
                return None
            return list(items)

    def set_product_list(self, items: List[VendorProduct]) -> None:
        with self._lock:
            self._list = (list(items), self._clock())

    # ------- control -------
    def clear(self) -> None:
        with self._lock:
            self._cards.clear()
            self._list = None
        logger.info("Cache cleared")

    def _evict_stale_cards(self) -> None:
        now = self._clock()
        for vendor_id in [k for k, (_, at) in self._cards.items() if now - at >= self.card_ttl]:
            del self._cards[vendor_id]

    def stats(self) -> Dict[str, object]:
        with self._lock:
            self._evict_stale_cards()
            list_fresh = self._list is not None and self._clock() - self._list[1] < self.list_ttl
            return {
                "product_cards": len(self._cards),
                "product_list": "cached" if list_fresh else "empty",
            }
