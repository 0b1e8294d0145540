"""Error types raised by the visual regression tool."""

from __future__ import annotations


class VRTError(Exception):
    """Base class for all tool errors."""


class SecurityError(VRTError):
    """Interaction content matched the evaluate denylist. Never retried."""


class BaselineNotFoundError(VRTError, LookupError):
    """Unknown baseline branch or version. Never retried."""


class TransientOperationError(VRTError):
    """A capture-time fault (navigation, timeout, crashed session)."""


class RetryExhaustedError(VRTError):
    """An operation kept failing after every allowed attempt."""

    def __init__(self, attempts: int, last_error: BaseException):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Operation failed after {attempts} attempts. Last error: {last_error}"
        )
