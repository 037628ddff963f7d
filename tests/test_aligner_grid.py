from __future__ import annotations

import pytest

from flowalign.aligner import ProcessGroupAligner, align_process_groups
from flowalign.errors import RemoteCommunicationError
from flowalign.models import AlignmentRequest
from flowalign.session import Session


def _run(fake, **kwargs):
    return ProcessGroupAligner(fake, Session(token="t")).run(AlignmentRequest(**kwargs))


def test_five_siblings_land_on_a_four_column_grid(fake_nifi) -> None:
    for i in range(5):
        fake_nifi.add_group("root-id", f"pg{i}")

    report = _run(fake_nifi, max_columns=4)

    assert fake_nifi.updates() == [
        ("pg0", (0, 0)),
        ("pg1", (394, 0)),
        ("pg2", (788, 0)),
        ("pg3", (1182, 0)),
        ("pg4", (0, 186)),
    ]
    assert report.updated == 5
    # Stored revisions advanced once per committed move.
    assert all(fake_nifi.groups[f"pg{i}"]["version"] == 2 for i in range(5))


def test_siblings_keep_server_discovery_order(fake_nifi) -> None:
    for gid in ["zeta", "alpha", "mike"]:
        fake_nifi.add_group("root-id", gid)

    _run(fake_nifi, max_columns=2)

    assert fake_nifi.updates() == [("zeta", (0, 0)), ("alpha", (394, 0)), ("mike", (0, 186))]


def test_depth_zero_makes_no_calls(fake_nifi) -> None:
    fake_nifi.add_group("root-id", "pg0")

    report = _run(fake_nifi, max_depth=0)

    assert fake_nifi.calls == []
    assert report.updated == 0


def test_depth_one_moves_children_without_fetching_them(fake_nifi) -> None:
    fake_nifi.add_group("root-id", "a")
    fake_nifi.add_group("a", "a1")

    _run(fake_nifi, max_depth=1)

    assert fake_nifi.fetches() == ["root-id"]
    assert fake_nifi.updates() == [("a", (0, 0))]


def test_children_are_aligned_before_their_own_move(fake_nifi) -> None:
    fake_nifi.add_group("root-id", "a")
    fake_nifi.add_group("a", "a1")
    fake_nifi.add_group("a", "a2")
    fake_nifi.add_group("root-id", "b")

    _run(fake_nifi, max_depth=-1, max_columns=4)

    assert [c[:2] for c in fake_nifi.calls] == [
        ("fetch", "root-id"),
        ("fetch", "a"),
        ("fetch", "a1"),
        ("update", "a1"),
        ("fetch", "a2"),
        ("update", "a2"),
        ("update", "a"),
        ("fetch", "b"),
        ("update", "b"),
    ]
    # Each level has its own grid counter.
    assert dict(fake_nifi.updates()) == {"a1": (0, 0), "a2": (394, 0), "a": (0, 0), "b": (394, 0)}


def test_bounded_depth_stops_descending(fake_nifi) -> None:
    fake_nifi.add_group("root-id", "a")
    fake_nifi.add_group("a", "b")
    fake_nifi.add_group("b", "c")

    _run(fake_nifi, max_depth=2)

    assert fake_nifi.fetches() == ["root-id", "a"]
    assert [gid for gid, _ in fake_nifi.updates()] == ["b", "a"]
    assert fake_nifi.groups["c"]["position"] is None


def test_unlimited_depth_walks_deep_hierarchies(fake_nifi) -> None:
    parent = "root-id"
    for i in range(300):
        parent = fake_nifi.add_group(parent, f"level{i}")

    report = _run(fake_nifi, max_depth=-1)

    assert report.updated == 300
    # Deepest group is committed first.
    assert fake_nifi.updates()[0][0] == "level299"
    assert fake_nifi.updates()[-1][0] == "level0"


def test_populated_start_group_is_left_untouched(fake_nifi) -> None:
    fake_nifi.add_group("root-id", "busy", processors=1)
    fake_nifi.add_group("busy", "child1")
    fake_nifi.add_group("busy", "child2")

    report = _run(fake_nifi, root_id="busy", max_depth=-1)

    assert fake_nifi.fetches() == ["busy"]
    assert fake_nifi.updates() == []
    assert report.skipped == 1


def test_populated_child_is_moved_but_not_descended(fake_nifi) -> None:
    fake_nifi.add_group("root-id", "busy", connections=2, processors=1)
    fake_nifi.add_group("busy", "inner")
    fake_nifi.add_group("root-id", "empty")

    _run(fake_nifi, max_depth=-1)

    assert fake_nifi.updates() == [("busy", (0, 0)), ("empty", (394, 0))]
    assert "inner" not in fake_nifi.fetches()


@pytest.mark.parametrize(
    "kind",
    ["connections", "funnels", "inputPorts", "outputPorts", "remoteProcessGroups", "processors"],
)
def test_every_flow_element_kind_blocks_alignment(fake_nifi, kind) -> None:
    fake_nifi.add_group("root-id", "pg0")
    fake_nifi.set_elements("root-id", **{kind: 1})

    _run(fake_nifi)

    assert fake_nifi.updates() == []


def test_labels_do_not_block_alignment(fake_nifi) -> None:
    fake_nifi.add_group("root-id", "pg0")
    fake_nifi.set_elements("root-id", labels=3)

    _run(fake_nifi)

    assert fake_nifi.updates() == [("pg0", (0, 0))]


def test_stale_revision_aborts_without_undoing_earlier_moves(fake_nifi) -> None:
    for i in range(5):
        fake_nifi.add_group("root-id", f"pg{i}")
    fake_nifi.fail_update_at = 3

    with pytest.raises(RemoteCommunicationError) as exc:
        _run(fake_nifi)

    assert exc.value.status == 409
    assert [gid for gid, _ in fake_nifi.updates()] == ["pg0", "pg1", "pg2"]
    assert fake_nifi.groups["pg0"]["position"] == (0, 0)
    assert fake_nifi.groups["pg1"]["position"] == (394, 0)
    assert fake_nifi.groups["pg3"]["position"] is None


def test_missing_child_group_aborts_run(fake_nifi) -> None:
    fake_nifi.add_group("root-id", "pg0")
    fake_nifi.groups["root-id"]["children"].append("ghost")

    with pytest.raises(RemoteCommunicationError) as exc:
        _run(fake_nifi)

    assert exc.value.status == 404
    assert "ghost" in exc.value.body


def test_dry_run_reads_but_never_updates(fake_nifi) -> None:
    fake_nifi.add_group("root-id", "a")
    fake_nifi.add_group("a", "a1")

    report = align_process_groups(fake_nifi, Session(token="t"), AlignmentRequest(max_depth=-1, dry_run=True))

    assert fake_nifi.updates() == []
    assert fake_nifi.fetches() == ["root-id", "a", "a1"]
    assert report.updated == 2
    assert report.visited == 3
