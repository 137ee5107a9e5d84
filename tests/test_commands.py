from __future__ import annotations

import pytest
from pydantic import ValidationError

from throne.commands import Attack, Cashout, Claim, ForceReset, SetHouseEdge, parse_callback, parse_command
from throne.errors import UnknownAction


def test_parse_command_builds_typed_commands() -> None:
    claim = parse_command({"command": "claim", "user_id": 7, "display_name": "al", "stake": 100})
    assert isinstance(claim, Claim)
    assert (claim.user_id, claim.stake, claim.display_name) == (7, 100, "al")

    edge = parse_command({"command": "set_house_edge", "user_id": 1, "percent": 0.05})
    assert isinstance(edge, SetHouseEdge)
    assert edge.percent == 0.05

    assert isinstance(parse_command({"command": "force_reset", "user_id": 1}), ForceReset)


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"command": "dump", "user_id": 1},
        {"command": None},
        {"command": ["claim"], "user_id": 1},
        {"command": {"name": "claim"}, "user_id": 1},
        {"command": 3, "user_id": 1},
    ],
)
def test_parse_command_rejects_unknown(payload: dict) -> None:
    with pytest.raises(UnknownAction):
        parse_command(payload)


def test_parse_command_rejects_bad_fields() -> None:
    with pytest.raises(ValidationError):
        parse_command({"command": "claim", "user_id": 1, "stake": "lots"})
    with pytest.raises(ValidationError):
        parse_command({"command": "claim", "stake": 10})
    with pytest.raises(ValidationError) as e:
        parse_command({"command": "claim", "user_id": 1, "stake": 2.5})
    assert e.value.errors()[0]["loc"][-1] == "stake"


def test_parse_callback() -> None:
    assert isinstance(parse_callback("attack", user_id=1), Attack)
    assert isinstance(parse_callback("cashout", user_id=1, display_name="k"), Cashout)
    with pytest.raises(UnknownAction) as e:
        parse_callback("dump", user_id=1)
    assert str(e.value) == "Unknown action"
