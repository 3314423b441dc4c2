# Copyright Red Hat
#
# xdiff/treediff/engine.py - Unordered tree diff engine
#
# This file is part of the xdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Unordered tree diff engine
"""
from typing import Dict, List, Optional, Tuple
from collections import Counter, defaultdict, deque
from datetime import datetime
import logging

from xdiff import XDIFF_SUBSYSTEM_ENGINE, XDiffInvariantError

from .difftypes import FieldType
from .edits import Delete, DiffResult, EditOperation, Insert, Move, Update
from .matcher import Match, NodeMatcher
from .options import DiffOptions
from .tree import Node, Tree

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_engine(msg, *args, **kwargs):
    """A wrapper for engine subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": XDIFF_SUBSYSTEM_ENGINE}, **kwargs)


#: Sort ranks of operations sharing a tree-1 document position
_RANK_DELETE = 0
_RANK_TEXT = 1
_RANK_ATTRIBUTE = 2


def field_updates(tree1: Tree, node1: Node, node2: Node) -> List[Update]:
    """
    Return one ``Update`` per field that differs between a matched pair:
    the text first, then each added, removed or changed attribute by key.

    :param tree1: The tree owning ``node1``.
    :type tree1: ``Tree``
    :param node1: The tree-1 node of the pair.
    :type node1: ``Node``
    :param node2: The tree-2 node of the pair.
    :type node2: ``Node``
    :returns: The field updates for this pair.
    :rtype: ``List[Update]``
    """
    updates = []
    path = tree1.path(node1.node_id)
    if node1.text != node2.text:
        updates.append(
            Update(
                node1.node_id,
                node2.node_id,
                path,
                FieldType.TEXT,
                "text",
                node1.text,
                node2.text,
            )
        )
    for key in sorted(set(node1.attributes) | set(node2.attributes)):
        old_value = node1.attributes.get(key)
        new_value = node2.attributes.get(key)
        if old_value != new_value:
            updates.append(
                Update(
                    node1.node_id,
                    node2.node_id,
                    path,
                    FieldType.ATTRIBUTE,
                    key,
                    old_value,
                    new_value,
                )
            )
    return updates


class DiffEngine:
    """
    Core class for generating unordered tree comparisons.
    """

    def __init__(self, options: Optional[DiffOptions] = None):
        """
        Initialise a new ``DiffEngine`` instance.

        :param options: Options to apply to the diff generation.
        :type options: ``Optional[DiffOptions]``
        """
        self.options = options or DiffOptions()

    def compute_diff(self, tree1: Tree, tree2: Tree) -> DiffResult:
        """
        Compute the edit script transforming ``tree1`` into ``tree2``.

        :param tree1: The original tree.
        :type tree1: ``Tree``
        :param tree2: The updated tree.
        :type tree2: ``Tree``
        :returns: The ordered edit script.
        :rtype: ``DiffResult``
        """
        start_time = datetime.now()
        root1 = tree1.root_node
        root2 = tree2.root_node

        if tree1.signature(root1.node_id) == tree2.signature(root2.node_id):
            _log_debug_engine("Root signatures match: trees are identical")
            return DiffResult(
                [], tree1, tree2, matches=[Match(root1.node_id, root2.node_id, 0.0)]
            )

        if root1.label != root2.label:
            _log_debug_engine(
                "Root labels differ (%s != %s): replacing whole tree",
                root1.label,
                root2.label,
            )
            deletes = [
                Delete(
                    root1.node_id,
                    tree1.path(root1.node_id),
                    size=tree1.subtree_size(root1.node_id),
                )
            ]
            inserts = [
                Insert(
                    root2.node_id,
                    tree2.path(root2.node_id),
                    size=tree2.subtree_size(root2.node_id),
                )
            ]
            result = DiffResult(
                deletes + inserts, tree1, tree2, matches=[], replaced_root=True
            )
            if self.options.check_invariants:
                check_completeness(result)
            return result

        matcher = NodeMatcher(tree1, tree2, self.options)
        matches, updates, deletes, inserts = self._walk(matcher, root1, root2)

        moves = []
        if self.options.detect_moves:
            moves = self._detect_moves(tree1, tree2, deletes, inserts)
            moved1 = {move.node1 for move in moves}
            moved2 = {move.node2 for move in moves}
            deletes = [op for op in deletes if op.node not in moved1]
            inserts = [op for op in inserts if op.node not in moved2]

        operations = self._order(tree1, tree2, updates, deletes, inserts, moves)
        end_time = datetime.now()

        _log_debug_engine(
            "Found %d differences in %s (%s)",
            len(operations),
            end_time - start_time,
            matcher.stats,
        )

        result = DiffResult(
            operations, tree1, tree2, matches=matches, stats=matcher.stats
        )
        if self.options.check_invariants:
            check_completeness(result)
        return result

    # pylint: disable=too-many-locals
    def _walk(
        self, matcher: NodeMatcher, root1: Node, root2: Node
    ) -> Tuple[List[Match], List[Update], List[Delete], List[Insert]]:
        """
        Walk matched pairs from the roots down, collecting matches, field
        updates and unmatched subtree roots.
        """
        tree1 = matcher.tree1
        tree2 = matcher.tree2
        matches = []
        updates = []
        deletes = []
        inserts = []

        root_cost = matcher.distance(root1.node_id, root2.node_id)
        pending = [Match(root1.node_id, root2.node_id, root_cost)]
        while pending:
            pair = pending.pop()
            matches.append(pair)
            node1 = tree1.node(pair.node1)
            node2 = tree2.node(pair.node2)
            _log_debug_engine(
                "Comparing matched pair %d <-> %d (%s, cost=%.3f)",
                pair.node1,
                pair.node2,
                node1.label,
                pair.cost,
            )

            updates.extend(field_updates(tree1, node1, node2))

            children = matcher.match_children(pair.node1, pair.node2)
            for match in children.matches:
                if matcher.identical(match.node1, match.node2):
                    matches.append(match)
                else:
                    pending.append(match)

            for child in children.unmatched1:
                deletes.append(
                    Delete(
                        child,
                        tree1.path(child),
                        parent=pair.node1,
                        size=tree1.subtree_size(child),
                    )
                )
            for child in children.unmatched2:
                inserts.append(
                    Insert(
                        child,
                        tree2.path(child),
                        parent=pair.node2,
                        location=pair.node1,
                        size=tree2.subtree_size(child),
                    )
                )

        return matches, updates, deletes, inserts

    @staticmethod
    def _detect_moves(
        tree1: Tree, tree2: Tree, deletes: List[Delete], inserts: List[Insert]
    ) -> List[Move]:
        """
        Reinterpret Delete+Insert pairs of signature-identical subtrees under
        different parents as moves.

        Deleted subtrees are visited in tree-1 document order; each takes the
        first unused inserted subtree with an equal signature in tree-2
        document order.

        :param tree1: The original tree.
        :type tree1: ``Tree``
        :param tree2: The updated tree.
        :type tree2: ``Tree``
        :param deletes: The unmatched tree-1 subtree roots.
        :type deletes: ``List[Delete]``
        :param inserts: The unmatched tree-2 subtree roots.
        :type inserts: ``List[Insert]``
        :returns: The detected moves in tree-1 document order.
        :rtype: ``List[Move]``
        """
        if not deletes or not inserts:
            return []

        # Index destination subtrees by signature.
        dest_signatures: Dict[bytes, deque] = defaultdict(deque)
        for op in sorted(inserts, key=lambda op: tree2.order(op.node)):
            dest_signatures[tree2.signature(op.node)].append(op)

        moves = []
        for op in sorted(deletes, key=lambda op: tree1.order(op.node)):
            candidates = dest_signatures.get(tree1.signature(op.node))
            if not candidates:
                continue
            dest = next(
                (cand for cand in candidates if cand.location != op.parent), None
            )
            if dest is None:
                continue
            candidates.remove(dest)
            _log_debug_engine(
                "Detected move of %s: node %d -> node %d (%s)",
                op.path,
                op.node,
                dest.node,
                dest.path,
            )
            moves.append(
                Move(
                    op.node,
                    dest.node,
                    op.parent,
                    dest.parent,
                    op.path,
                    dest.path,
                    location=dest.location,
                )
            )
        return moves

    @staticmethod
    def _order(
        tree1: Tree,
        tree2: Tree,
        updates: List[Update],
        deletes: List[Delete],
        inserts: List[Insert],
        moves: List[Move],
    ) -> List[EditOperation]:
        """
        Impose the documented edit script order.
        """

        def _tree1_key(op) -> Tuple[int, int, str]:
            if isinstance(op, Delete):
                return (tree1.order(op.node), _RANK_DELETE, "")
            rank = _RANK_TEXT if op.field_type == FieldType.TEXT else _RANK_ATTRIBUTE
            return (tree1.order(op.node1), rank, op.field)

        first = sorted(list(deletes) + list(updates), key=_tree1_key)
        second = sorted(inserts, key=lambda op: tree2.order(op.node))
        third = sorted(moves, key=lambda op: tree1.order(op.node1))
        return first + second + third


def _covered(counts: Counter, tree: Tree, node_id: int, whole_subtree: bool):
    if whole_subtree:
        counts.update(node.node_id for node in tree.iter_subtree(node_id))
    else:
        counts[node_id] += 1


def check_completeness(result: DiffResult):
    """
    Verify that every node of both trees is accounted for exactly once: as
    part of a match, a deleted or inserted subtree, or a move.

    :param result: The diff result to verify.
    :type result: ``DiffResult``
    :raises XDiffInvariantError: if a node is missing or counted twice.
    """
    tree1 = result.tree1
    tree2 = result.tree2
    counts1: Counter = Counter()
    counts2: Counter = Counter()

    for match in result.matches:
        identical = tree1.signature(match.node1) == tree2.signature(match.node2)
        _covered(counts1, tree1, match.node1, identical)
        _covered(counts2, tree2, match.node2, identical)

    for op in result:
        if isinstance(op, Delete):
            _covered(counts1, tree1, op.node, True)
        elif isinstance(op, Insert):
            _covered(counts2, tree2, op.node, True)
        elif isinstance(op, Move):
            _covered(counts1, tree1, op.node1, True)
            _covered(counts2, tree2, op.node2, True)

    for name, tree, counts in (("tree1", tree1, counts1), ("tree2", tree2, counts2)):
        missing = [node.node_id for node in tree if counts[node.node_id] == 0]
        repeated = [node.node_id for node in tree if counts[node.node_id] > 1]
        if missing or repeated:
            raise XDiffInvariantError(
                f"Incomplete edit script for {name}: "
                f"missing={missing} repeated={repeated}"
            )


def diff(tree1: Tree, tree2: Tree, options: Optional[DiffOptions] = None) -> DiffResult:
    """
    Compute the edit script transforming ``tree1`` into ``tree2``.

    :param tree1: The original tree.
    :type tree1: ``Tree``
    :param tree2: The updated tree.
    :type tree2: ``Tree``
    :param options: Options to apply to the diff generation.
    :type options: ``Optional[DiffOptions]``
    :returns: The ordered edit script.
    :rtype: ``DiffResult``
    """
    return DiffEngine(options).compute_diff(tree1, tree2)


__all__ = [
    "DiffEngine",
    "check_completeness",
    "diff",
    "field_updates",
]
