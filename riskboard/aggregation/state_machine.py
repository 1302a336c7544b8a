"""State machine for one aggregate request."""

from enum import Enum

import structlog


logger = structlog.get_logger()


class EngineState(str, Enum):
    """State of an aggregate request.

    - AGGREGATE_PENDING: Branches launched, join not reached
    - AGGREGATE_ALL_RESOLVED: Every branch produced a result
    - AGGREGATE_COMPOSED: The composite view was built

    There is no failed state: branches always resolve.
    """

    AGGREGATE_PENDING = "AGGREGATE_PENDING"
    AGGREGATE_ALL_RESOLVED = "AGGREGATE_ALL_RESOLVED"
    AGGREGATE_COMPOSED = "AGGREGATE_COMPOSED"


_VALID_TRANSITIONS: dict[EngineState, set[EngineState]] = {
    EngineState.AGGREGATE_PENDING: {EngineState.AGGREGATE_ALL_RESOLVED},
    EngineState.AGGREGATE_ALL_RESOLVED: {EngineState.AGGREGATE_COMPOSED},
    EngineState.AGGREGATE_COMPOSED: set(),  # Terminal state
}


class EngineStateTransitionError(Exception):
    """Raised when an illegal state transition is attempted."""

    def __init__(self, from_state: EngineState, to_state: EngineState) -> None:
        """Initialize the transition error.

        Args:
            from_state: Current state.
            to_state: Attempted target state.
        """
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Illegal aggregate state transition: {from_state.value} -> {to_state.value}"
        )


class EngineStateMachine:
    """Tracks one aggregate request through the join barrier."""

    def __init__(self) -> None:
        """Initialize in AGGREGATE_PENDING."""
        self._state = EngineState.AGGREGATE_PENDING
        self._log = logger.bind(component="aggregation")

    @property
    def state(self) -> EngineState:
        """Get the current state."""
        return self._state

    def transition_to(self, target: EngineState) -> None:
        """Transition to a new state.

        Raises:
            EngineStateTransitionError: If the transition is invalid.
        """
        if target not in _VALID_TRANSITIONS[self._state]:
            raise EngineStateTransitionError(self._state, target)

        old_state = self._state
        self._state = target
        self._log.debug(
            "state_transition",
            from_state=old_state.value,
            to_state=target.value,
        )

    def to_all_resolved(self) -> None:
        self.transition_to(EngineState.AGGREGATE_ALL_RESOLVED)

    def to_composed(self) -> None:
        self.transition_to(EngineState.AGGREGATE_COMPOSED)
