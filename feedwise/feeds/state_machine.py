"""State machine for per-source feed retrieval."""

from enum import Enum

import structlog


logger = structlog.get_logger()


class FeedState(str, Enum):
    """State of one feed during retrieval.

    - PENDING: Not yet started
    - FETCHING: HTTP request in progress
    - PARSING: Parsing the feed document
    - DONE: Entries extracted
    - FAILED: Fetch or parse failed
    """

    PENDING = "PENDING"
    FETCHING = "FETCHING"
    PARSING = "PARSING"
    DONE = "DONE"
    FAILED = "FAILED"


_VALID_TRANSITIONS: dict[FeedState, set[FeedState]] = {
    FeedState.PENDING: {FeedState.FETCHING, FeedState.FAILED},
    FeedState.FETCHING: {FeedState.PARSING, FeedState.FAILED},
    FeedState.PARSING: {FeedState.DONE, FeedState.FAILED},
    FeedState.DONE: set(),
    FeedState.FAILED: set(),
}


class FeedStateTransitionError(Exception):
    """Raised when an illegal state transition is attempted."""

    def __init__(
        self, source_id: str, from_state: FeedState, to_state: FeedState
    ) -> None:
        """Initialize the transition error.

        Args:
            source_id: Identifier of the source.
            from_state: Current state.
            to_state: Attempted target state.
        """
        self.source_id = source_id
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Illegal state transition for source '{source_id}': "
            f"{from_state.value} -> {to_state.value}"
        )


class FeedStateMachine:
    """Tracks the retrieval state of a single feed."""

    def __init__(self, source_id: str) -> None:
        """Initialize the state machine.

        Args:
            source_id: Identifier for the source.
        """
        self._source_id = source_id
        self._state = FeedState.PENDING
        self._log = logger.bind(component="feeds", source_id=source_id)

    @property
    def state(self) -> FeedState:
        """Get the current state."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return self._state in (FeedState.DONE, FeedState.FAILED)

    def can_transition_to(self, target: FeedState) -> bool:
        """Check if a transition to the target state is valid."""
        return target in _VALID_TRANSITIONS[self._state]

    def transition_to(self, target: FeedState) -> None:
        """Transition to a new state.

        Args:
            target: The target state.

        Raises:
            FeedStateTransitionError: If the transition is invalid.
        """
        if not self.can_transition_to(target):
            self._log.error(
                "invariant_violation",
                from_state=self._state.value,
                to_state=target.value,
            )
            raise FeedStateTransitionError(self._source_id, self._state, target)

        self._log.debug(
            "feed_state_transition",
            from_state=self._state.value,
            to_state=target.value,
        )
        self._state = target

    def to_fetching(self) -> None:
        """Transition to FETCHING."""
        self.transition_to(FeedState.FETCHING)

    def to_parsing(self) -> None:
        """Transition to PARSING."""
        self.transition_to(FeedState.PARSING)

    def to_done(self) -> None:
        """Transition to DONE."""
        self.transition_to(FeedState.DONE)

    def to_failed(self) -> None:
        """Transition to FAILED."""
        self.transition_to(FeedState.FAILED)
