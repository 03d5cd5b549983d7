"""Round lifecycle states and the machine that guards transitions."""

from enum import Enum

from transitions import Machine, MachineError


class RoundState(Enum):
    """
    Round state machine states.

    Flow: IDLE → PLAYING → BUST | FINISHED
    """

    # No round committed yet
    IDLE = "idle"

    # Hand open, hit and stand allowed
    PLAYING = "playing"

    # Terminal: total went over 21 on a hit
    BUST = "bust"

    # Terminal: player stood
    FINISHED = "finished"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        """Check if the round has ended."""
        return self in (RoundState.BUST, RoundState.FINISHED)


class RoundAction(Enum):
    """Player-facing actions."""

    START = "start"
    HIT = "hit"
    STAND = "stand"


class IllegalTransition(Exception):
    """A trigger was fired from a state that does not allow it."""


class RoundLifecycle:
    """
    State machine for a single round.

    The machine is rebuilt from a stored state for every request, so it
    carries no history of its own.
    """

    STATES = [s.value for s in RoundState]

    TRANSITIONS = [
        {"trigger": "start", "source": ["idle", "bust", "finished"], "dest": "playing"},
        {"trigger": "hit", "source": "playing", "dest": "playing"},
        {"trigger": "bust", "source": "playing", "dest": "bust"},
        {"trigger": "stand", "source": "playing", "dest": "finished"},
    ]

    def __init__(self, state: RoundState = RoundState.IDLE) -> None:
        self.machine = Machine(
            model=self,
            states=self.STATES,
            transitions=self.TRANSITIONS,
            initial=state.value,
            auto_transitions=False,
            model_attribute="_machine_state",
        )

    @property
    def state(self) -> RoundState:
        """Get current state as enum."""
        return RoundState(self._machine_state)  # type: ignore[attr-defined]

    def can(self, action: RoundAction) -> bool:
        """Check whether a player action is legal in the current state."""
        return action.value in self.machine.get_triggers(self._machine_state)  # type: ignore[attr-defined]

    def advance(self, trigger: str) -> RoundState:
        """
        Fire a trigger and return the resulting state.

        Raises:
            IllegalTransition: If the trigger is not allowed from the current state
        """
        try:
            self.trigger(trigger)  # type: ignore[attr-defined]
        except MachineError as exc:
            raise IllegalTransition(f"Cannot {trigger} from {self.state}") from exc
        return self.state


def can_perform(state: RoundState, action: RoundAction) -> bool:
    """Check whether an action is allowed from a state."""
    return RoundLifecycle(state).can(action)
