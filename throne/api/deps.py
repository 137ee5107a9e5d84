from __future__ import annotations

from collections.abc import Generator
from functools import lru_cache

import redis
from fastapi import Depends

from throne.combat import CombatResolver
from throne.config import Settings, get_settings
from throne.dispatcher import Dispatcher
from throne.infra.redis_client import create_redis
from throne.messenger import StreamMessenger
from throne.permissions import ChatPermissions, ConfiguredPermissions
from throne.store import ThroneStore


@lru_cache(maxsize=1)
def _shared_redis() -> redis.Redis:
    return create_redis()


def get_redis() -> Generator[redis.Redis, None, None]:
    # One client for the process: notice deletions outlive the request.
    yield _shared_redis()


@lru_cache(maxsize=1)
def _shared_store() -> ThroneStore:
    settings = get_settings()
    return ThroneStore(settings.data_path, starting_balance=settings.starting_balance)


def get_store() -> ThroneStore:
    return _shared_store()


def get_permissions(settings: Settings = Depends(get_settings)) -> ChatPermissions:
    return ConfiguredPermissions(admin_ids=settings.admin_ids)


def get_resolver() -> CombatResolver:
    return CombatResolver()


def get_dispatcher(
    settings: Settings = Depends(get_settings),
    store: ThroneStore = Depends(get_store),
    r: redis.Redis = Depends(get_redis),
    permissions: ChatPermissions = Depends(get_permissions),
    resolver: CombatResolver = Depends(get_resolver),
) -> Dispatcher:
    return Dispatcher(
        store=store,
        messenger=StreamMessenger(r),
        permissions=permissions,
        resolver=resolver,
        notice_delete_after=settings.notice_delete_after_seconds,
        image_ref=settings.image_ref,
    )
