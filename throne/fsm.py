from __future__ import annotations

from statemachine import State, StateMachine

from throne.api.models import ChatState, ThronePhase, phase_of


class ThroneFSM(StateMachine):
    """FSM wrapper around a chat's throne.

    Two states cycling forever: empty -> claimed (claim), claimed -> claimed
    (attack, either outcome), claimed -> empty (cashout, reset_throne).
    `reset_throne` on an empty throne is allowed and changes nothing. The
    store remains the source of truth; the machine is rebuilt from
    `ChatState` per operation and only guards transitions.
    """

    empty = State(ThronePhase.empty.value, value=ThronePhase.empty.value, initial=True)
    claimed = State(ThronePhase.claimed.value, value=ThronePhase.claimed.value)

    claim = empty.to(claimed)
    attack = claimed.to.itself()
    cashout = claimed.to(empty)
    reset_throne = claimed.to(empty) | empty.to.itself()

    def __init__(self, chat: ChatState):
        self.chat = chat
        super().__init__(start_value=phase_of(chat).value)

    @property
    def phase(self) -> ThronePhase:
        return ThronePhase(str(self.current_state.value))
