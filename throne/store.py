"""Single-file JSON store for every chat's users, king and live message.

The whole store is rewritten on every mutating call. Writes go to a sibling
temporary file that is then renamed over the real one, so an interrupted save
leaves the previous record intact. Load and save failures are logged, never
raised: a broken file means starting empty, a failed save means the in-memory
state runs ahead of disk until the next successful save.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path

from pydantic import ValidationError

from throne.api.models import ChatState, King, StoreData, StoreStats, User
from throne.errors import InsufficientBalance


logger = logging.getLogger(__name__)

INITIAL_USER_BALANCE = 1000


class ThroneStore:
    def __init__(self, path: Path | str, *, starting_balance: int = INITIAL_USER_BALANCE) -> None:
        self.path = Path(path)
        self.starting_balance = starting_balance
        self._lock = threading.RLock()
        self._data = self._load()

    def _load(self) -> StoreData:
        if not self.path.exists():
            logger.info("No store file at %s; starting empty", self.path)
            return StoreData()
        try:
            raw = self.path.read_text(encoding="utf-8")
            data = StoreData.model_validate_json(raw)
        except (OSError, ValidationError, ValueError):
            logger.exception("Could not load store from %s; starting empty", self.path)
            return StoreData()
        logger.info("Loaded store from %s (%d chats)", self.path, len(data.chats))
        return data

    def _save(self) -> None:
        payload = self._data.model_dump_json(indent=2, exclude_none=True)
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError:
            logger.exception("Could not save store to %s; in-memory state is ahead of disk", self.path)
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

    def _chat(self, chat_id: int) -> ChatState:
        chat = self._data.chats.get(chat_id)
        if chat is None:
            chat = ChatState(chat_id=chat_id)
            self._data.chats[chat_id] = chat
        return chat

    def _user(self, chat_id: int, user_id: int, display_name: str | None = None) -> tuple[User, bool]:
        chat = self._chat(chat_id)
        user = chat.users.get(user_id)
        changed = False
        if user is None:
            user = User(id=user_id, display_name=display_name, balance=self.starting_balance)
            chat.users[user_id] = user
            changed = True
        elif display_name and user.display_name != display_name:
            user.display_name = display_name
            changed = True
        return user, changed

    # --- users / balances ---

    def get_or_create_user(self, chat_id: int, user_id: int, display_name: str | None = None) -> User:
        with self._lock:
            user, changed = self._user(chat_id, user_id, display_name)
            if changed:
                self._save()
            return user.model_copy()

    def get_balance(self, chat_id: int, user_id: int) -> int:
        return self.get_or_create_user(chat_id, user_id).balance

    def adjust_balance(self, chat_id: int, user_id: int, delta: int) -> int:
        with self._lock:
            user, _ = self._user(chat_id, user_id)
            new_balance = user.balance + delta
            if new_balance < 0:
                raise InsufficientBalance(f"Insufficient balance! You have {user.balance} coins, but need {-delta} coins.")
            user.balance = new_balance
            self._save()
            return new_balance

    # --- king ---

    def get_king(self, chat_id: int) -> King | None:
        with self._lock:
            chat = self._data.chats.get(chat_id)
            if chat is None or chat.king is None:
                return None
            return chat.king.model_copy()

    def set_king(self, chat_id: int, king: King) -> None:
        with self._lock:
            self._chat(chat_id).king = king.model_copy()
            self._save()

    def clear_king(self, chat_id: int) -> None:
        with self._lock:
            self._chat(chat_id).king = None
            self._save()

    # --- live message pointer ---

    def get_last_message_id(self, chat_id: int) -> str | None:
        with self._lock:
            chat = self._data.chats.get(chat_id)
            return chat.last_message_id if chat is not None else None

    def set_last_message_id(self, chat_id: int, message_id: str | None) -> None:
        with self._lock:
            self._chat(chat_id).last_message_id = message_id
            self._save()

    # --- whole chat ---

    def get_chat(self, chat_id: int) -> ChatState:
        """Deep copy of a chat's state; an unknown chat reads as empty."""

        with self._lock:
            chat = self._data.chats.get(chat_id)
            if chat is None:
                return ChatState(chat_id=chat_id)
            return chat.model_copy(deep=True)

    def restore_chat(self, snapshot: ChatState) -> None:
        """Put back users and king from a snapshot taken with `get_chat`.

        The live message pointer is left alone: it always tracks what is
        actually published.
        """

        with self._lock:
            chat = self._chat(snapshot.chat_id)
            chat.users = {uid: u.model_copy() for uid, u in snapshot.users.items()}
            chat.king = snapshot.king.model_copy() if snapshot.king is not None else None
            self._save()

    def reset_chat(self, chat_id: int) -> bool:
        with self._lock:
            if self._data.chats.pop(chat_id, None) is None:
                return False
            self._save()
            return True

    def stats(self) -> StoreStats:
        with self._lock:
            return StoreStats(
                chat_count=len(self._data.chats),
                user_count=sum(len(c.users) for c in self._data.chats.values()),
            )
