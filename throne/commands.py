"""Closed set of typed commands.

Raw platform payloads are validated here, at the boundary; the dispatcher and
the game never look at untyped dicts.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from throne.errors import UnknownAction
from throne.messenger import ATTACK, CASHOUT


class _CommandBase(BaseModel):
    user_id: int
    display_name: str | None = None


class Claim(_CommandBase):
    command: Literal["claim"] = "claim"
    # Non-integer stakes fail validation here; the 1-10000 range is checked by
    # the game so it surfaces as InvalidStake.
    stake: int


class Attack(_CommandBase):
    command: Literal["attack"] = "attack"


class Cashout(_CommandBase):
    command: Literal["cashout"] = "cashout"


class Reset(_CommandBase):
    command: Literal["reset"] = "reset"


class ForceReset(_CommandBase):
    command: Literal["force_reset"] = "force_reset"


class Stats(_CommandBase):
    command: Literal["stats"] = "stats"


class EconomyInfo(_CommandBase):
    command: Literal["economy_info"] = "economy_info"


class SetHouseEdge(_CommandBase):
    command: Literal["set_house_edge"] = "set_house_edge"
    # Fraction in [0, 0.5]; range is checked by the economy (OutOfRange).
    percent: float


class Help(_CommandBase):
    command: Literal["help"] = "help"


class Start(_CommandBase):
    command: Literal["start"] = "start"


Command = Annotated[
    Union[Claim, Attack, Cashout, Reset, ForceReset, Stats, EconomyInfo, SetHouseEdge, Help, Start],
    Field(discriminator="command"),
]

COMMAND_NAMES = frozenset(
    {"claim", "attack", "cashout", "reset", "force_reset", "stats", "economy_info", "set_house_edge", "help", "start"}
)

_command_adapter: TypeAdapter[Command] = TypeAdapter(Command)

CALLBACK_COMMANDS: dict[str, type[Attack] | type[Cashout]] = {ATTACK: Attack, CASHOUT: Cashout}


def parse_command(payload: dict[str, Any]) -> Command:
    """Validate a raw command payload.

    Raises UnknownAction for an unrecognised `command`, and pydantic's
    ValidationError for a recognised command with bad fields.
    """

    name = payload.get("command")
    if not isinstance(name, str) or name not in COMMAND_NAMES:
        raise UnknownAction(f"Unknown command: {name}")
    return _command_adapter.validate_python(payload)


def parse_callback(action: str, *, user_id: int, display_name: str | None = None) -> Attack | Cashout:
    model = CALLBACK_COMMANDS.get(action)
    if model is None:
        raise UnknownAction("Unknown action")
    return model(user_id=user_id, display_name=display_name)
