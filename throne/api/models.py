from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class User(BaseModel):
    id: int
    display_name: str | None = None
    balance: int = Field(..., ge=0)


class King(BaseModel):
    holder_id: int
    stake: int = Field(..., ge=1, le=10_000)
    streak: int = Field(default=0, ge=0)
    claimed_at: datetime


class ChatState(BaseModel):
    chat_id: int
    users: dict[int, User] = Field(default_factory=dict)

    # Absent while the throne is empty.
    king: King | None = None

    # The single live, actionable game message for this chat.
    last_message_id: str | None = None


class StoreData(BaseModel):
    chats: dict[int, ChatState] = Field(default_factory=dict)


class StoreStats(BaseModel):
    chat_count: int
    user_count: int


class EconomySnapshot(BaseModel):
    house_edge: float
    is_zero_sum: bool
    description: str


class CommandResponse(BaseModel):
    command: str
    chat: ChatState
    message_id: str | None = None
    text: str | None = None


class ThronePhase(StrEnum):
    empty = "empty"
    claimed = "claimed"


def phase_of(chat: ChatState) -> ThronePhase:
    return ThronePhase.claimed if chat.king is not None else ThronePhase.empty
