"""Grid alignment of process groups.

Starting from one process group, every child group is moved onto a row-major
grid (discovery order, `max_columns` wide). A group whose own level holds any
non-group flow element (processor, connection, port, funnel, remote group) is
considered populated: neither its children nor anything below it is touched.

Children are aligned before their own move is committed, i.e. a child's
subtree is finished before the child itself is repositioned and before its
next sibling is looked at. The traversal keeps an explicit stack of frames so
arbitrarily deep hierarchies do not grow the Python call stack.

Failures are fail-fast: the first error aborts the run and updates already
committed stay in place (the server has no transactions).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .client import NiFiClient
from .layout import grid_cell, position_for
from .models import ROOT_GROUP_ID, AlignmentReport, AlignmentRequest, FlowSnapshot, GroupRef
from .session import Session


logger = logging.getLogger(__name__)


@dataclass
class _Frame:
    group_id: str
    depth: int
    children: List[GroupRef] = field(default_factory=list)
    next_index: int = 0
    # True once children[next_index] has been descended into.
    descended: bool = False


def _child_depth(depth: int) -> int:
    # Negative depth means unlimited and never counts down to zero.
    return depth - 1 if depth > 0 else depth


class ProcessGroupAligner:
    """Aligns process groups through a flow client.

    Example:
        >>> aligner = ProcessGroupAligner(client, session)
        >>> report = aligner.run(AlignmentRequest(max_depth=-1, max_columns=3))
    """

    def __init__(self, client: NiFiClient, session: Session):
        self.client = client
        self.session = session

    def run(self, request: AlignmentRequest) -> AlignmentReport:
        report = AlignmentReport()
        if request.max_depth == 0:
            return report

        root_id = request.root_id.strip() or ROOT_GROUP_ID
        logger.info("Aligning Process Groups...")
        snapshot = self.client.fetch_subtree(self.session, root_id)

        stack: List[_Frame] = []
        frame = self._open(snapshot, request.max_depth, report)
        if frame is not None:
            stack.append(frame)

        while stack:
            frame = stack[-1]
            if frame.next_index >= len(frame.children):
                stack.pop()
                continue

            child = frame.children[frame.next_index]
            child_depth = _child_depth(frame.depth)
            if not frame.descended and child_depth != 0:
                frame.descended = True
                child_snapshot = self.client.fetch_subtree(self.session, child.id)
                child_frame = self._open(child_snapshot, child_depth, report)
                if child_frame is not None:
                    stack.append(child_frame)
                continue

            row, col = grid_cell(frame.next_index, request.max_columns)
            self._move(child, row, col, request.dry_run)
            report.updated += 1
            frame.next_index += 1
            frame.descended = False

        logger.info(
            f"Aligning Completed! ({report.updated} moved, {report.visited} visited, "
            f"{report.skipped} skipped)"
        )
        return report

    def _open(self, snapshot: FlowSnapshot, depth: int, report: AlignmentReport) -> Optional[_Frame]:
        """Return a frame for a group's children, or None if there is nothing to align."""
        report.visited += 1
        if snapshot.has_flow_elements:
            report.skipped += 1
            counts = {k: v for k, v in snapshot.element_counts().items() if v}
            logger.debug(f"Skipping populated process group {snapshot.group_id}: {counts}")
            return None
        children = snapshot.children
        if not children:
            return None
        return _Frame(group_id=snapshot.group_id, depth=depth, children=children)

    def _move(self, group: GroupRef, row: int, col: int, dry_run: bool) -> None:
        position = position_for(row, col)
        if dry_run:
            logger.info(f"[dry-run] {group.name} ({group.id}) -> ({position.x:g}, {position.y:g})")
            return
        logger.debug(f"Moving {group.name} ({group.id}) to row {row}, column {col}")
        self.client.update_position(self.session, group, position)


def align_process_groups(client: NiFiClient, session: Session, request: AlignmentRequest) -> AlignmentReport:
    return ProcessGroupAligner(client, session).run(request)
