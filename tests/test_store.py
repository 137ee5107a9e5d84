from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path

import pytest

from throne.api.models import King
from throne.errors import InsufficientBalance
from throne.store import INITIAL_USER_BALANCE, ThroneStore


def _king(holder_id: int = 1, stake: int = 100, streak: int = 0) -> King:
    return King(holder_id=holder_id, stake=stake, streak=streak, claimed_at=datetime(2025, 1, 1, tzinfo=UTC))


def test_users_are_created_lazily_with_starting_balance(store: ThroneStore) -> None:
    user = store.get_or_create_user(10, 1, "alice")
    assert user.balance == INITIAL_USER_BALANCE
    assert user.display_name == "alice"

    # Later sightings refresh the name but keep the balance.
    store.adjust_balance(10, 1, -250)
    again = store.get_or_create_user(10, 1, "Alice B")
    assert again.balance == 750
    assert again.display_name == "Alice B"

    # Same user id in another chat is a different wallet.
    assert store.get_balance(11, 1) == INITIAL_USER_BALANCE


def test_adjust_balance_never_goes_negative(store: ThroneStore) -> None:
    store.get_or_create_user(10, 1)
    with pytest.raises(InsufficientBalance):
        store.adjust_balance(10, 1, -(INITIAL_USER_BALANCE + 1))
    assert store.get_balance(10, 1) == INITIAL_USER_BALANCE


def test_every_mutation_is_written_through(store: ThroneStore, store_path: Path) -> None:
    store.get_or_create_user(10, 1, "alice")
    store.adjust_balance(10, 1, -100)
    store.set_king(10, _king(stake=100))
    store.set_last_message_id(10, "m7")

    raw = json.loads(store_path.read_text(encoding="utf-8"))
    chat = raw["chats"]["10"]
    assert chat["users"]["1"]["balance"] == 900
    assert chat["king"]["holder_id"] == 1
    assert chat["last_message_id"] == "m7"

    reloaded = ThroneStore(store_path)
    assert reloaded.get_balance(10, 1) == 900
    king = reloaded.get_king(10)
    assert king is not None and king.stake == 100
    assert reloaded.get_last_message_id(10) == "m7"


def test_clear_king_and_message_pointer(store: ThroneStore, store_path: Path) -> None:
    store.set_king(10, _king())
    store.set_last_message_id(10, "m1")
    store.clear_king(10)
    store.set_last_message_id(10, None)

    reloaded = ThroneStore(store_path)
    assert reloaded.get_king(10) is None
    assert reloaded.get_last_message_id(10) is None


def test_returned_models_are_copies(store: ThroneStore) -> None:
    store.set_king(10, _king(streak=2))
    king = store.get_king(10)
    assert king is not None
    king.streak = 50
    assert store.get_king(10).streak == 2  # type: ignore[union-attr]


def test_missing_file_starts_empty(tmp_path: Path) -> None:
    store = ThroneStore(tmp_path / "nope" / "data.json")
    assert store.stats().chat_count == 0


def test_unreadable_file_starts_empty(store_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    store_path.write_text("{not json", encoding="utf-8")
    with caplog.at_level(logging.ERROR, logger="throne.store"):
        store = ThroneStore(store_path)
    assert store.stats().chat_count == 0
    assert "starting empty" in caplog.text


def test_save_failure_is_logged_and_memory_state_kept(
    store: ThroneStore, store_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    store.get_or_create_user(10, 1)

    def _boom(src: str, dst: Path) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", _boom)
    with caplog.at_level(logging.ERROR, logger="throne.store"):
        assert store.adjust_balance(10, 1, -100) == 900
    assert "ahead of disk" in caplog.text
    assert store.get_balance(10, 1) == 900

    monkeypatch.undo()
    # Disk still has the last good record and no temp files are left behind.
    assert ThroneStore(store_path).get_balance(10, 1) == INITIAL_USER_BALANCE
    assert [p.name for p in store_path.parent.iterdir()] == ["data.json"]


def test_restore_chat_puts_back_users_and_king(store: ThroneStore) -> None:
    store.get_or_create_user(10, 1)
    store.set_last_message_id(10, "m1")
    snapshot = store.get_chat(10)

    store.adjust_balance(10, 1, -100)
    store.get_or_create_user(10, 2)
    store.set_king(10, _king())
    store.set_last_message_id(10, "m2")

    store.restore_chat(snapshot)
    chat = store.get_chat(10)
    assert chat.king is None
    assert set(chat.users) == {1}
    assert chat.users[1].balance == INITIAL_USER_BALANCE
    # The message pointer keeps tracking what was actually published.
    assert chat.last_message_id == "m2"


def test_reset_chat_and_stats(store: ThroneStore, store_path: Path) -> None:
    store.get_or_create_user(10, 1)
    store.get_or_create_user(10, 2)
    store.get_or_create_user(20, 1)
    stats = store.stats()
    assert (stats.chat_count, stats.user_count) == (2, 3)

    assert store.reset_chat(10) is True
    assert store.reset_chat(10) is False
    stats = ThroneStore(store_path).stats()
    assert (stats.chat_count, stats.user_count) == (1, 1)


def test_reading_an_unknown_chat_does_not_create_it(store: ThroneStore) -> None:
    chat = store.get_chat(42)
    assert chat.users == {}
    assert store.stats().chat_count == 0
