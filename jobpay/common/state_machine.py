"""Attempt status transitions shared by STK Push payments and B2C payouts."""

UNSENT = "UNSENT"
CONFIG_INVALID = "CONFIG_INVALID"
SENT = "SENT"
SEND_FAILED = "SEND_FAILED"
REJECTED = "REJECTED"
SUCCEEDED = "SUCCEEDED"
FAILED = "FAILED"
TIMED_OUT = "TIMED_OUT"

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    UNSENT: {CONFIG_INVALID, SENT, SEND_FAILED, REJECTED},
    SENT: {SUCCEEDED, FAILED, TIMED_OUT},
    CONFIG_INVALID: set(),
    SEND_FAILED: set(),
    REJECTED: set(),
    SUCCEEDED: set(),
    FAILED: set(),
    TIMED_OUT: set(),
}


def validate_transition(current: str, new: str) -> None:
    """Raise when a transition is not allowed by the state machine."""

    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise ValueError(f"Invalid transition: {current} -> {new}")


def is_terminal(status: str) -> bool:
    return not ALLOWED_TRANSITIONS.get(status)
