# app/domain/ports.py
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from app.domain.models import Supplement, UserProfile
from app.domain.vendor import VendorProduct, VendorProductCard


class SupplementRepoPort(ABC):
    """Narrow read/upsert contract over the `supplements` collection."""
    @abstractmethod
    async def ensure_indexes(self) -> None: ...

    @abstractmethod
    async def find_many(
        self,
        filter: Dict[str, Any],
        skip: int = 0,
        limit: int = 0,
        sort: Optional[List[Tuple[str, int]]] = None,
    ) -> List[Supplement]: ...

    @abstractmethod
    async def count(self, filter: Dict[str, Any]) -> int: ...

    @abstractmethod
    async def upsert_by_source(self, source_id: str, source_type: str, supplement: Supplement) -> Supplement: ...

    @abstractmethod
    async def find_by_id(self, supplement_id: str) -> Optional[Supplement]: ...


class UserRepoPort(ABC):
    @abstractmethod
    async def find_user_by_id(self, user_id: str) -> Optional[UserProfile]: ...


class CatalogClientPort(ABC):
    @abstractmethod
    async def fetch_all_products(self, use_cache: bool = True) -> List[VendorProduct]: ...

    @abstractmethod
    async def fetch_product_card(self, vendor_id: int) -> Optional[VendorProductCard]: ...


class RunGuardPort(ABC):
    """Mutual exclusion for the scheduled sync; acquire never blocks."""
    @abstractmethod
    async def acquire(self) -> bool: ...

    @abstractmethod
    async def release(self) -> None: ...
