"""flowalign test bootstrap.

- Puts the project root on `sys.path` so `flowalign` imports without an
  editable install.
- Provides `FakeNiFi`, an in-memory stand-in for the flow server that records
  every call in order and enforces revision checks on updates.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest


HERE = Path(__file__).resolve()
PROJECT_ROOT = HERE.parents[1]

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


from flowalign.errors import AuthenticationError, RemoteCommunicationError  # noqa: E402
from flowalign.models import FlowSnapshot, GroupRef, Position  # noqa: E402


class FakeNiFi:
    """In-memory flow server.

    Groups are declared with `add_group(parent, id, **elements)` where
    `elements` are counts per flow element kind (e.g. processors=1).
    """

    def __init__(self, *, username: str = "admin", password: str = "secret") -> None:
        self.username = username
        self.password = password
        self.calls: List[Tuple[Any, ...]] = []
        self.groups: Dict[str, Dict[str, Any]] = {"root-id": self._new_group(None)}
        self.issued_tokens: List[str] = []
        self.fail_update_at: Optional[int] = None
        self.fail_logout = False
        self._updates = 0

    @staticmethod
    def _new_group(parent: Optional[str]) -> Dict[str, Any]:
        return {"parent": parent, "children": [], "elements": {}, "version": 1, "position": None}

    def add_group(self, parent: str, group_id: str, **elements: int) -> str:
        self.groups[group_id] = self._new_group(parent)
        self.groups[group_id]["elements"] = dict(elements)
        self.groups[parent]["children"].append(group_id)
        return group_id

    def set_elements(self, group_id: str, **elements: int) -> None:
        self.groups[group_id]["elements"] = dict(elements)

    def updates(self) -> List[Tuple[str, Tuple[float, float]]]:
        return [(c[1], c[2]) for c in self.calls if c[0] == "update"]

    def fetches(self) -> List[str]:
        return [c[1] for c in self.calls if c[0] == "fetch"]

    # -- client surface ------------------------------------------------------

    def request_token(self, username: str, password: str) -> str:
        self.calls.append(("token", username))
        if (username, password) != (self.username, self.password):
            raise AuthenticationError("Unauthorized!")
        token = f"token-{len(self.issued_tokens) + 1}"
        self.issued_tokens.append(token)
        return token

    def logout(self, session) -> None:
        self.calls.append(("logout", session.token))
        if self.fail_logout:
            raise RemoteCommunicationError("logout failed", status=500, body="boom")

    def fetch_subtree(self, session, group_id: str) -> FlowSnapshot:
        gid = "root-id" if group_id in ("", "root") else group_id
        self.calls.append(("fetch", gid))
        if gid not in self.groups:
            raise RemoteCommunicationError("not found", status=404, body=f"Unable to find group {gid}")
        group = self.groups[gid]
        flow: Dict[str, Any] = {
            "processGroups": [
                {
                    "id": cid,
                    "revision": {"version": self.groups.get(cid, {}).get("version", 1)},
                    "component": {"id": cid, "name": f"PG {cid}"},
                }
                for cid in group["children"]
            ]
        }
        for kind, count in group["elements"].items():
            flow[kind] = [{"id": f"{gid}-{kind}-{i}"} for i in range(count)]
        return FlowSnapshot.model_validate(
            {
                "processGroupFlow": {
                    "id": gid,
                    "parentGroupId": group["parent"],
                    "flow": flow,
                    "lastRefreshed": "12:00:00 UTC",
                }
            }
        )

    def update_position(self, session, group: GroupRef, position: Position) -> None:
        self._updates += 1
        self.calls.append(("update", group.id, (position.x, position.y)))
        if self.fail_update_at is not None and self._updates == self.fail_update_at:
            raise RemoteCommunicationError(
                "stale revision",
                status=409,
                body=f"{group.revision.version} is not the most up-to-date revision.",
            )
        stored = self.groups[group.id]
        if group.revision.version != stored["version"]:
            raise RemoteCommunicationError("stale revision", status=409, body="conflict")
        stored["version"] += 1
        stored["position"] = (position.x, position.y)


@pytest.fixture
def fake_nifi() -> FakeNiFi:
    return FakeNiFi()
