from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ValidationError

from throne.api.deps import get_dispatcher, get_permissions, get_store
from throne.api.models import ChatState, CommandResponse, StoreStats
from throne.commands import parse_callback, parse_command
from throne.dispatcher import CommandResult, Dispatcher
from throne.errors import GameError, PermissionDenied, PublishError
from throne.permissions import ChatPermissions
from throne.store import ThroneStore

router = APIRouter()


class CallbackRequest(BaseModel):
    action: str
    user_id: int
    display_name: str | None = None


def _game_error(e: GameError) -> HTTPException:
    code = status.HTTP_403_FORBIDDEN if isinstance(e, PermissionDenied) else status.HTTP_422_UNPROCESSABLE_ENTITY
    return HTTPException(status_code=code, detail={"code": e.code, "detail": e.message})


def _publish_error(e: PublishError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail={"code": "publish_failed", "detail": str(e)})


def _response(result: CommandResult) -> CommandResponse:
    return CommandResponse(command=result.command, chat=result.chat, message_id=result.message_id, text=result.text)


@router.post("/chats/{chat_id}/commands", response_model=CommandResponse)
async def command_route(
    chat_id: int,
    body: dict[str, Any],
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> CommandResponse:
    try:
        command = parse_command(body)
        result = await dispatcher.dispatch(chat_id, command)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.errors(include_url=False, include_context=False, include_input=False)) from e
    except GameError as e:
        raise _game_error(e) from e
    except PublishError as e:
        raise _publish_error(e) from e
    return _response(result)


@router.post("/chats/{chat_id}/callbacks", response_model=CommandResponse)
async def callback_route(
    chat_id: int,
    payload: CallbackRequest,
    dispatcher: Dispatcher = Depends(get_dispatcher),
) -> CommandResponse:
    try:
        command = parse_callback(payload.action, user_id=payload.user_id, display_name=payload.display_name)
        result = await dispatcher.dispatch(chat_id, command)
    except GameError as e:
        raise _game_error(e) from e
    except PublishError as e:
        raise _publish_error(e) from e
    return _response(result)


@router.get("/chats/{chat_id}", response_model=ChatState)
async def get_chat_route(chat_id: int, store: ThroneStore = Depends(get_store)) -> ChatState:
    return store.get_chat(chat_id)


@router.delete("/chats/{chat_id}", status_code=status.HTTP_204_NO_CONTENT)
async def reset_chat_route(
    chat_id: int,
    user_id: int,
    dispatcher: Dispatcher = Depends(get_dispatcher),
    permissions: ChatPermissions = Depends(get_permissions),
) -> None:
    """Drop every record for a chat (users, king, live message pointer)."""

    if not await permissions.is_administrator(chat_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": PermissionDenied.code, "detail": "Admin required"},
        )
    if not await dispatcher.reset_chat(chat_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found")


@router.get("/stats", response_model=StoreStats)
async def stats_route(store: ThroneStore = Depends(get_store)) -> StoreStats:
    return store.stats()
