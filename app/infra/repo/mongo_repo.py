# app/infra/repo/mongo_repo.py
from __future__ import annotations

import os
import re
import logging
import datetime as dt
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from app.domain.models import Supplement, UserProfile
from app.domain.ports import SupplementRepoPort, UserRepoPort

logger = logging.getLogger("suppadvisor.repo")

MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
DB_NAME = os.getenv("MONGO_DB", "supplement_advisor")
SUPPLEMENTS_COLL = os.getenv("MONGO_SUPPLEMENTS_COLL", "supplements")
USERS_COLL = os.getenv("MONGO_USERS_COLL", "users")

DEFAULT_SORT = [("created_at", DESCENDING)]


def _as_object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _database(client: Optional[AsyncIOMotorClient] = None) -> AsyncIOMotorDatabase:
    return (client or AsyncIOMotorClient(MONGO_URI))[DB_NAME]


def search_filter(search: str) -> Dict[str, Any]:
    """Case-insensitive regex over name / brand / description (catalog browse)."""
    rx = re.compile(re.escape(search.strip()), re.IGNORECASE)
    return {"$or": [{"name": {"$regex": rx}}, {"brand": {"$regex": rx}}, {"description": {"$regex": rx}}]}


class MongoSupplementRepo(SupplementRepoPort):
    """
    Async repository over `supplements`.

    Natural key is (source_id, source_type); `upsert_by_source` relies on the
    unique compound index so two writers for one vendor id can never leave
    two documents behind.
    """

    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None) -> None:
        self.db = db if db is not None else _database()
        self.coll: AsyncIOMotorCollection = self.db[SUPPLEMENTS_COLL]

    # ──────────────────────────────────────────────────────────────
    #  Indexing
    # ──────────────────────────────────────────────────────────────
    async def ensure_indexes(self) -> None:
        await self.coll.create_index(
            [("source_id", ASCENDING), ("source_type", ASCENDING)],
            unique=True,
            name="source_key",
        )
        try:
            await self.coll.create_index([("is_active", ASCENDING), ("source_type", ASCENDING)])
            await self.coll.create_index([("category", ASCENDING)])
        except Exception:
            # secondary indexes only speed up reads
            logger.warning("could not create secondary indexes on %s", SUPPLEMENTS_COLL, exc_info=True)

    # ──────────────────────────────────────────────────────────────
    #  Reads
    # ──────────────────────────────────────────────────────────────
    async def find_many(
        self,
        filter: Dict[str, Any],
        skip: int = 0,
        limit: int = 0,
        sort: Optional[List[Tuple[str, int]]] = None,
    ) -> List[Supplement]:
        cursor = self.coll.find(filter)
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [Supplement.from_document(doc) async for doc in cursor]

    async def count(self, filter: Dict[str, Any]) -> int:
        return await self.coll.count_documents(filter)

    async def find_by_id(self, supplement_id: str) -> Optional[Supplement]:
        oid = _as_object_id(supplement_id)
        if oid is None:
            return None
        doc = await self.coll.find_one({"_id": oid})
        return Supplement.from_document(doc) if doc else None

    # ──────────────────────────────────────────────────────────────
    #  Upsert
    # ──────────────────────────────────────────────────────────────
    async def upsert_by_source(self, source_id: str, source_type: str, supplement: Supplement) -> Supplement:
        now = dt.datetime.now(dt.timezone.utc)
        fields = supplement.to_document()
        fields.update({"source_id": source_id, "source_type": source_type, "updated_at": now})
        fields.pop("rating", None)
        fields.pop("review_count", None)
        doc = await self.coll.find_one_and_update(
            {"source_id": source_id, "source_type": source_type},
            {
                "$set": fields,
                # review data belongs to the app, the vendor never overwrites it
                "$setOnInsert": {"created_at": now, "rating": 0, "review_count": 0},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return Supplement.from_document(doc)


class MongoUserRepo(UserRepoPort):
    def __init__(self, db: Optional[AsyncIOMotorDatabase] = None) -> None:
        self.db = db if db is not None else _database()
        self.coll: AsyncIOMotorCollection = self.db[USERS_COLL]

    async def find_user_by_id(self, user_id: str) -> Optional[UserProfile]:
        oid = _as_object_id(user_id)
        if oid is None:
            return None
        doc = await self.coll.find_one(
            {"_id": oid},
            {"is_form_filled": 1, "form_data.supplement_goals": 1},
        )
        return UserProfile.from_document(doc) if doc else None
