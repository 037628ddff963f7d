"""Errors raised by flowalign.

Only the CLI turns these into log lines and exit codes; everything below it
lets them propagate.
"""

from __future__ import annotations

from typing import Optional


class FlowAlignError(Exception):
    """Base class for flowalign failures."""


class ConfigurationError(FlowAlignError):
    """Invalid user-supplied configuration, detected before any network call."""


class AuthenticationError(FlowAlignError):
    """The server rejected the credential exchange."""


class RemoteCommunicationError(FlowAlignError):
    """Non-success response (or transport failure) from the flow server.

    `status` is the HTTP status code, or None when no response was received.
    `body` is the raw response body as text.
    """

    def __init__(self, message: str, *, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is None:
            return base
        return f"HTTP {self.status}: {base}"


class TeardownWarning(Warning):
    """Session teardown (logout) failed. Logged, never raised."""
