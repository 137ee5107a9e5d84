from __future__ import annotations

import random
from collections.abc import Generator
from pathlib import Path

import pytest

from throne.combat import CombatResolver
from throne.dispatcher import Dispatcher
from throne.economy import economy
from throne.lock import ChatLocks
from throne.messenger import View
from throne.permissions import ConfiguredPermissions
from throne.store import ThroneStore


ADMIN_ID = 99

# Rolls under the holder's win chance mean the holder defends.
HOLDER_WINS = 0.0
CHALLENGER_WINS = 0.99


class ScriptedRandom(random.Random):
    """`random()` returns queued rolls in order (then repeats the last one)."""

    def __init__(self, *rolls: float) -> None:
        super().__init__(0)
        self.rolls = list(rolls)
        self._last = rolls[-1] if rolls else 0.5

    def queue(self, *rolls: float) -> None:
        self.rolls.extend(rolls)

    def random(self) -> float:
        if self.rolls:
            self._last = self.rolls.pop(0)
        return self._last


class FakeMessenger:
    """In-memory ChatMessenger that records every call and can fail on demand."""

    def __init__(self) -> None:
        self.ops: list[tuple[str, int, str]] = []
        self.views: dict[str, View] = {}
        self.texts: dict[str, str] = {}
        self.fail: set[str] = set()
        self._seq = 0

    def _next_id(self) -> str:
        self._seq += 1
        return f"m{self._seq}"

    def _check(self, op: str) -> None:
        if op in self.fail:
            raise RuntimeError(f"{op} failed")

    async def publish(self, chat_id: int, view: View) -> str:
        self._check("publish")
        mid = self._next_id()
        self.views[mid] = view
        self.ops.append(("publish", chat_id, mid))
        return mid

    async def send_text(self, chat_id: int, text: str) -> str:
        self._check("send_text")
        mid = self._next_id()
        self.texts[mid] = text
        self.ops.append(("send_text", chat_id, mid))
        return mid

    async def pin(self, chat_id: int, message_id: str) -> None:
        self._check("pin")
        self.ops.append(("pin", chat_id, message_id))

    async def unpin(self, chat_id: int, message_id: str) -> None:
        self._check("unpin")
        self.ops.append(("unpin", chat_id, message_id))

    async def delete(self, chat_id: int, message_id: str) -> None:
        self._check("delete")
        self.ops.append(("delete", chat_id, message_id))

    def names(self) -> list[str]:
        return [op for op, _, _ in self.ops]

    def sent_texts(self) -> list[str]:
        return [self.texts[mid] for op, _, mid in self.ops if op == "send_text"]


@pytest.fixture(autouse=True)
def _zero_house_edge() -> Generator[None, None, None]:
    economy.set_house_edge(0)
    yield
    economy.set_house_edge(0)


@pytest.fixture()
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "data.json"


@pytest.fixture()
def store(store_path: Path) -> ThroneStore:
    return ThroneStore(store_path)


@pytest.fixture()
def rng() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture()
def messenger() -> FakeMessenger:
    return FakeMessenger()


@pytest.fixture()
def dispatcher(store: ThroneStore, messenger: FakeMessenger, rng: ScriptedRandom) -> Dispatcher:
    return Dispatcher(
        store=store,
        messenger=messenger,
        permissions=ConfiguredPermissions(admin_ids=frozenset({ADMIN_ID})),
        resolver=CombatResolver(rng),
        locks=ChatLocks(),
        notice_delete_after=0,
    )


@pytest.fixture()
def client_and_redis(store_path: Path, rng: ScriptedRandom):
    """FastAPI TestClient wired to fakeredis, a temp store and scripted rolls."""

    import fakeredis
    from fastapi.testclient import TestClient

    from throne.api.deps import get_redis, get_resolver, get_store
    from throne.config import Settings, get_settings
    from throne.main import app

    r = fakeredis.FakeRedis(decode_responses=True)
    test_store = ThroneStore(store_path)
    settings = Settings(data_path=store_path, notice_delete_after_seconds=0, admin_ids=frozenset({ADMIN_ID}))

    def _override_redis() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override_redis
    app.dependency_overrides[get_store] = lambda: test_store
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_resolver] = lambda: CombatResolver(rng)
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()
