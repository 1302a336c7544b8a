"""State machine for a single downstream branch."""

from enum import Enum

import structlog


logger = structlog.get_logger()


class BranchState(str, Enum):
    """State of one branch during an aggregate request.

    - BRANCH_PENDING: Not yet resolved (first attempt in flight)
    - BRANCH_RETRYING: At least one attempt failed with a retryable error
    - BRANCH_SUCCEEDED: Resolved with a downstream payload
    - BRANCH_FALLBACK_APPLIED: Resolved with the fallback payload
    """

    BRANCH_PENDING = "BRANCH_PENDING"
    BRANCH_RETRYING = "BRANCH_RETRYING"
    BRANCH_SUCCEEDED = "BRANCH_SUCCEEDED"
    BRANCH_FALLBACK_APPLIED = "BRANCH_FALLBACK_APPLIED"


_VALID_TRANSITIONS: dict[BranchState, set[BranchState]] = {
    BranchState.BRANCH_PENDING: {
        BranchState.BRANCH_RETRYING,
        BranchState.BRANCH_SUCCEEDED,
        # Unretryable error on the first attempt
        BranchState.BRANCH_FALLBACK_APPLIED,
    },
    BranchState.BRANCH_RETRYING: {
        BranchState.BRANCH_RETRYING,
        BranchState.BRANCH_SUCCEEDED,
        BranchState.BRANCH_FALLBACK_APPLIED,
    },
    BranchState.BRANCH_SUCCEEDED: set(),  # Terminal state
    BranchState.BRANCH_FALLBACK_APPLIED: set(),  # Terminal state
}


class BranchStateTransitionError(Exception):
    """Raised when an illegal state transition is attempted."""

    def __init__(
        self,
        branch: str,
        from_state: BranchState,
        to_state: BranchState,
    ) -> None:
        """Initialize the transition error.

        Args:
            branch: Name of the branch.
            from_state: Current state.
            to_state: Attempted target state.
        """
        self.branch = branch
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Illegal state transition for branch '{branch}': "
            f"{from_state.value} -> {to_state.value}"
        )


class BranchStateMachine:
    """Manages state transitions for one branch.

    Enforces valid transitions and logs every state change at debug level.
    """

    def __init__(
        self,
        branch: str,
        initial_state: BranchState = BranchState.BRANCH_PENDING,
    ) -> None:
        """Initialize the state machine.

        Args:
            branch: Name of the branch.
            initial_state: Starting state.
        """
        self._branch = branch
        self._state = initial_state
        self._log = logger.bind(component="fetch", branch=branch)

    @property
    def branch(self) -> str:
        """Get the branch name."""
        return self._branch

    @property
    def state(self) -> BranchState:
        """Get the current state."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return self._state in (
            BranchState.BRANCH_SUCCEEDED,
            BranchState.BRANCH_FALLBACK_APPLIED,
        )

    def can_transition_to(self, target: BranchState) -> bool:
        """Check if a transition to the target state is valid.

        Args:
            target: The target state.

        Returns:
            True if the transition is valid.
        """
        return target in _VALID_TRANSITIONS.get(self._state, set())

    def transition_to(self, target: BranchState) -> None:
        """Transition to a new state.

        Args:
            target: The target state.

        Raises:
            BranchStateTransitionError: If the transition is invalid.
        """
        if not self.can_transition_to(target):
            self._log.error(
                "illegal_state_transition",
                from_state=self._state.value,
                to_state=target.value,
            )
            raise BranchStateTransitionError(
                branch=self._branch,
                from_state=self._state,
                to_state=target,
            )

        old_state = self._state
        self._state = target
        self._log.debug(
            "state_transition",
            from_state=old_state.value,
            to_state=target.value,
        )

    def to_retrying(self) -> None:
        """Transition to BRANCH_RETRYING state."""
        self.transition_to(BranchState.BRANCH_RETRYING)

    def to_succeeded(self) -> None:
        """Transition to BRANCH_SUCCEEDED state."""
        self.transition_to(BranchState.BRANCH_SUCCEEDED)

    def to_fallback(self) -> None:
        """Transition to BRANCH_FALLBACK_APPLIED state."""
        self.transition_to(BranchState.BRANCH_FALLBACK_APPLIED)
