"""Thin client for the NiFi REST API (`<location>/nifi-api`).

Only the four calls flowalign needs are implemented. Every call that acts on
behalf of the user takes the explicit `Session`; there is no ambient token.
"""

from __future__ import annotations

import http.client
import json
import logging
import ssl
from typing import Any, Dict, Optional, TYPE_CHECKING
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from pydantic import ValidationError

from .errors import AuthenticationError, RemoteCommunicationError
from .models import ROOT_GROUP_ID, FlowSnapshot, GroupRef, Position

if TYPE_CHECKING:
    from .session import Session


logger = logging.getLogger(__name__)

API_PREFIX = "/nifi-api"
DEFAULT_TIMEOUT_S = 30.0


class NiFiClient:
    """Blocking HTTP client for the flow server.

    Example:
        >>> client = NiFiClient("https://nifi.example.com:8443")
        >>> token = client.request_token("admin", "secret")
    """

    def __init__(
        self,
        location: str,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        verify_tls: bool = True,
    ):
        """Initialize a NiFiClient.

        Args:
            location: Server base URL (scheme, host, optional port).
            timeout_s: Per-request timeout in seconds.
            verify_tls: Set to False to accept self-signed certificates.
        """
        self.base_url = str(location or "").strip().rstrip("/") + API_PREFIX
        self.timeout_s = float(timeout_s)
        self.verify_tls = bool(verify_tls)

    def _ssl_context(self) -> Optional[ssl.SSLContext]:
        if not self.base_url.startswith("https://"):
            return None
        ctx = ssl.create_default_context()
        if not self.verify_tls:
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
        return ctx

    def _request(
        self,
        method: str,
        path: str,
        *,
        session: Optional["Session"] = None,
        data: Optional[bytes] = None,
        content_type: str = "application/json",
        accept: str = "application/json",
    ) -> str:
        url = f"{self.base_url}{path}"
        headers = {"Content-Type": content_type, "Accept": accept}
        if session is not None:
            auth = session.authorization_value()
            if auth:
                headers["Authorization"] = auth

        logger.debug(f"{method} {url}")
        req = Request(url=url, data=data, method=method, headers=headers)
        try:
            with urlopen(req, timeout=self.timeout_s, context=self._ssl_context()) as resp:
                return resp.read().decode("utf-8")
        except HTTPError as e:
            detail = ""
            try:
                detail = e.read().decode("utf-8", errors="replace")
            except Exception:
                detail = ""
            raise RemoteCommunicationError(
                detail or str(e.reason),
                status=e.code,
                body=detail,
            ) from e
        except URLError as e:
            raise RemoteCommunicationError(f"Request failed: {e.reason}") from e
        except (OSError, http.client.HTTPException) as e:
            # Timeouts and dropped connections during getresponse()/read() are not wrapped by urllib.
            raise RemoteCommunicationError(f"Request failed: {e}") from e

    def _request_json(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        raw = self._request(method, path, **kwargs)
        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError as e:
            raise RemoteCommunicationError(f"Invalid JSON response from {path}: {e}", body=raw) from e
        if not isinstance(data, dict):
            raise RemoteCommunicationError(f"Unexpected response from {path}", body=raw)
        return data

    def request_token(self, username: str, password: str) -> str:
        """Exchange credentials for a bearer token.

        Raises:
            AuthenticationError: if the server rejects the credentials.
            RemoteCommunicationError: on any other failure.
        """
        form = urlencode({"username": username, "password": password}).encode("utf-8")
        try:
            token = self._request(
                "POST",
                "/access/token",
                data=form,
                content_type="application/x-www-form-urlencoded",
                accept="text/plain",
            )
        except RemoteCommunicationError as e:
            # NiFi answers a bad username/password with 400.
            if e.status in (400, 401):
                raise AuthenticationError("Unauthorized!") from e
            raise
        return token.strip()

    def logout(self, session: "Session") -> None:
        self._request("DELETE", "/access/logout", session=session)

    def fetch_subtree(self, session: "Session", group_id: str) -> FlowSnapshot:
        """Read the immediate contents of a process group ("" or "root" = root group)."""
        gid = str(group_id or "").strip() or ROOT_GROUP_ID
        path = f"/flow/process-groups/{quote(gid, safe='')}"
        data = self._request_json("GET", path, session=session)
        try:
            return FlowSnapshot.model_validate(data)
        except ValidationError as e:
            raise RemoteCommunicationError(
                f"Unexpected process group flow document for {gid}: {e}",
                body=json.dumps(data),
            ) from e

    def update_position(self, session: "Session", group: GroupRef, position: Position) -> None:
        """Move a process group; the server rejects a stale revision (409)."""
        payload = {
            "revision": group.revision.model_dump(exclude_none=True),
            "component": {
                "id": group.id,
                "position": position.model_dump(),
            },
        }
        self._request(
            "PUT",
            f"/process-groups/{quote(group.id, safe='')}",
            session=session,
            data=json.dumps(payload).encode("utf-8"),
        )
