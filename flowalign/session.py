"""Authenticated session lifecycle.

A `Session` is created once per process after a successful credential
exchange, handed to every remote call, and released exactly once on the way
out, whatever the outcome of the alignment.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from .client import NiFiClient
from .errors import TeardownWarning


logger = logging.getLogger(__name__)


@dataclass
class Session:
    token: Optional[str] = None

    def authorization_value(self) -> str:
        """Value for the Authorization header ("" when unauthenticated)."""
        return f"Bearer {self.token}" if self.token else ""


class SessionManager:
    """Acquires and releases the bearer token for a client."""

    def __init__(self, client: NiFiClient):
        self.client = client

    def authenticate(self, username: str, password: str) -> Session:
        logger.info("Authenticating...")
        token = self.client.request_token(username, password)
        logger.info("Authenticated!")
        return Session(token=token or None)

    @staticmethod
    def current_token(session: Session) -> Optional[str]:
        return session.token

    def release(self, session: Session) -> None:
        """Best-effort logout; never raises. The local token is always cleared."""
        if session.token is None:
            return
        try:
            self.client.logout(session)
        except Exception as e:
            warning = TeardownWarning(f"Unable to logout: {e}")
            logger.warning(str(warning))
        finally:
            session.token = None


@contextmanager
def open_session(client: NiFiClient, username: str, password: str) -> Iterator[Session]:
    """Authenticate on entry; release on every exit path."""
    manager = SessionManager(client)
    session = manager.authenticate(username, password)
    try:
        yield session
    finally:
        manager.release(session)
