# app/container.py
import os
from functools import lru_cache

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.infra.cache.catalog_cache import CatalogCache
from app.infra.cache.run_lock import InProcessRunGuard, RedisRunGuard
from app.infra.api.vademecum_client import VademecumClient
from app.infra.repo.mongo_repo import DB_NAME, MONGO_URI, MongoSupplementRepo, MongoUserRepo

from app.application.sync_use_case import SyncProductsUseCase
from app.application.recommend_use_case import RecommendProductsUseCase
from app.application.jobs.sync_job import VademecumSyncJob
from app.domain.ports import RunGuardPort

SYNC_LOCK_BACKEND = os.getenv("SYNC_LOCK_BACKEND", "memory")  # memory | redis

@lru_cache
def _db() -> AsyncIOMotorDatabase: return AsyncIOMotorClient(MONGO_URI)[DB_NAME]

@lru_cache
def _catalog_cache() -> CatalogCache: return CatalogCache()

@lru_cache
def _supplement_repo() -> MongoSupplementRepo: return MongoSupplementRepo(_db())

@lru_cache
def _user_repo() -> MongoUserRepo: return MongoUserRepo(_db())

@lru_cache
def _vademecum_client() -> VademecumClient: return VademecumClient(cache=_catalog_cache())

@lru_cache
def _run_guard() -> RunGuardPort:
    if SYNC_LOCK_BACKEND == "redis":
        return RedisRunGuard.from_env()
    return InProcessRunGuard()

@lru_cache
def _sync_job() -> VademecumSyncJob:
    uc = SyncProductsUseCase(client=_vademecum_client(), repo=_supplement_repo())
    return VademecumSyncJob(use_case=uc, guard=_run_guard())

def get_supplement_repo() -> MongoSupplementRepo: return _supplement_repo()
def get_catalog_client() -> VademecumClient: return _vademecum_client()
def get_sync_job() -> VademecumSyncJob: return _sync_job()

def get_recommend_use_case() -> RecommendProductsUseCase:
    return RecommendProductsUseCase(users=_user_repo(), supplements=_supplement_repo())
