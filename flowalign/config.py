"""Configuration resolution for flowalign.

Command-line values win; environment variables fill the gaps:

- FLOWALIGN_LOCATION, FLOWALIGN_USERNAME, FLOWALIGN_PASSWORD
- FLOWALIGN_TIMEOUT (seconds), FLOWALIGN_INSECURE (1/true/yes)
- FLOWALIGN_LOG_LEVEL

Everything here runs before the first network call, so a bad value never
leaves a half-aligned canvas behind.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlsplit

from .client import DEFAULT_TIMEOUT_S
from .errors import ConfigurationError
from .models import AlignmentRequest


_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ConnectionSettings:
    location: str
    username: str
    password: str
    timeout_s: float = DEFAULT_TIMEOUT_S
    verify_tls: bool = True


def env_str(name: str) -> str:
    return str(os.getenv(name) or "").strip()


def env_flag(name: str) -> bool:
    return env_str(name).lower() in _TRUTHY


def normalize_location(value: Any) -> str:
    """Reduce a server URL to scheme://[userinfo@]host[:port].

    Raises:
        ConfigurationError: if the value is not an http(s) URL with a host.
    """
    raw = str(value or "").strip()
    try:
        parts = urlsplit(raw)
        port = parts.port
    except ValueError as e:
        raise ConfigurationError(f"Invalid NiFi URL ({raw}) provided.") from e
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ConfigurationError(f"Invalid NiFi URL ({raw}) provided.")

    netloc = parts.netloc.rsplit("@", 1)
    userinfo = f"{netloc[0]}@" if len(netloc) == 2 else ""
    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"
    hostport = f"{host}:{port}" if port is not None else host
    return f"{parts.scheme}://{userinfo}{hostport}"


def parse_columns(value: Any) -> int:
    try:
        columns = int(str(value).strip())
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid columns number ({value}) provided.") from e
    if columns < 1:
        raise ConfigurationError("Maximum columns number can not be less than 1.")
    return columns


def build_alignment_request(
    *,
    depth: int = 5,
    root_id: Optional[str] = None,
    columns: Any = 4,
    dry_run: bool = False,
) -> AlignmentRequest:
    return AlignmentRequest(
        root_id=str(root_id or "").strip(),
        max_depth=int(depth),
        max_columns=parse_columns(columns),
        dry_run=bool(dry_run),
    )


def resolve_connection_settings(
    *,
    location: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    timeout_s: Optional[float] = None,
    insecure: bool = False,
) -> ConnectionSettings:
    loc = str(location or "").strip() or env_str("FLOWALIGN_LOCATION")
    if not loc:
        raise ConfigurationError("Missing NiFi URL (--location or FLOWALIGN_LOCATION).")
    user = str(username or "").strip() or env_str("FLOWALIGN_USERNAME")
    if not user:
        raise ConfigurationError("Missing username (--username or FLOWALIGN_USERNAME).")
    # Passwords are taken as-is; surrounding whitespace may be significant.
    pwd = password if password else (os.getenv("FLOWALIGN_PASSWORD") or "")
    if not pwd:
        raise ConfigurationError("Missing password (--password or FLOWALIGN_PASSWORD).")

    if timeout_s is None:
        raw_timeout = env_str("FLOWALIGN_TIMEOUT")
        try:
            timeout_s = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT_S
        except ValueError as e:
            raise ConfigurationError(f"Invalid timeout ({raw_timeout}) provided.") from e
    if timeout_s <= 0:
        raise ConfigurationError(f"Invalid timeout ({timeout_s}) provided.")

    return ConnectionSettings(
        location=normalize_location(loc),
        username=user,
        password=pwd,
        timeout_s=float(timeout_s),
        verify_tls=not (insecure or env_flag("FLOWALIGN_INSECURE")),
    )
