"""Upload lifecycle state machine.

Tracks the state of an upload session through its lifecycle and enforces
valid transitions.  Prevents an uploader from being started twice or from
transferring before the server offset is known.
"""

from __future__ import annotations

from tusify.errors import TusifyStateError
from tusify.models import UploadState


class UploadStateMachine:
    """Finite state machine for a single upload session.

    Valid transitions::

        CREATED             -> DETERMINING_OFFSET | FAILED
        DETERMINING_OFFSET  -> TRANSFERRING | FAILED
        TRANSFERRING        -> COMPLETED | FAILED
        COMPLETED           -> (terminal)
        FAILED              -> (terminal)

    Parameters
    ----------
    name:
        Label used in error messages (usually the endpoint or upload URL).
    """

    VALID_TRANSITIONS: dict[UploadState, set[UploadState]] = {
        UploadState.CREATED: {UploadState.DETERMINING_OFFSET, UploadState.FAILED},
        UploadState.DETERMINING_OFFSET: {UploadState.TRANSFERRING, UploadState.FAILED},
        UploadState.TRANSFERRING: {UploadState.COMPLETED, UploadState.FAILED},
        UploadState.COMPLETED: set(),
        UploadState.FAILED: set(),
    }

    def __init__(self, name: str = "") -> None:
        self.name: str = name
        self.state: UploadState = UploadState.CREATED

    @property
    def is_terminal(self) -> bool:
        return not self.VALID_TRANSITIONS[self.state]

    def transition(self, new_state: UploadState) -> None:
        """Attempt to transition to *new_state*.

        Raises
        ------
        TusifyStateError
            If the transition from the current state to *new_state* is
            not valid.
        """
        allowed = self.VALID_TRANSITIONS.get(self.state, set())

        if new_state not in allowed:
            raise TusifyStateError(
                message=(
                    f"Invalid state transition: {self.state.value} -> {new_state.value} "
                    f"for upload {self.name}. "
                    f"Allowed transitions from {self.state.value}: "
                    f"{{{', '.join(sorted(s.value for s in allowed))}}}"
                ),
                context={
                    "current_state": self.state.value,
                    "requested_state": new_state.value,
                },
            )

        self.state = new_state

    def fail(self) -> None:
        """Move to ``FAILED`` unless the machine is already terminal."""
        if not self.is_terminal:
            self.state = UploadState.FAILED

    def require(self, expected: UploadState) -> None:
        """Assert that the machine is in *expected* before a step runs.

        Raises
        ------
        TusifyStateError
            If the current state differs from *expected*.
        """
        if self.state != expected:
            raise TusifyStateError(
                message=(
                    f"Upload {self.name} cannot run this step in state "
                    f"{self.state.value}; must be in {expected.value}"
                ),
                context={"current_state": self.state.value, "expected_state": expected.value},
            )
