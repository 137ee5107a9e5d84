from __future__ import annotations


class GameError(ValueError):
    """A user-facing rule violation. No state is mutated when one is raised."""

    code = "game_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidStake(GameError):
    code = "invalid_stake"


class InsufficientBalance(GameError):
    code = "insufficient_balance"


class SelfAttack(GameError):
    code = "self_attack"


class NotKing(GameError):
    code = "not_king"


class WrongState(GameError):
    code = "wrong_state"


class OutOfRange(GameError):
    code = "out_of_range"


class UnknownAction(GameError):
    code = "unknown_action"


class PermissionDenied(GameError):
    code = "permission_denied"


class PublishError(RuntimeError):
    """Sending the new game message failed; the triggering update is aborted."""
