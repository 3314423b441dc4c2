# Copyright Red Hat
#
# xdiff/treediff/matcher.py - Unordered tree diff sibling group matching
#
# This file is part of the xdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Minimum-cost matching of same-label sibling groups.

For two groups of sibling nodes carrying the same label, ``NodeMatcher``
finds the one-to-one partial pairing with the smallest total cost, where a
paired node costs its distance to its partner and an unpaired node costs the
size of its subtree. Signature-identical nodes are paired up front at zero
cost; whatever remains is solved exactly as an assignment problem.
"""
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple, TYPE_CHECKING
from collections import defaultdict, deque
import logging

from xdiff import XDIFF_SUBSYSTEM_MATCHER, XDiffArgumentError, XDiffInvariantError

from .options import DiffOptions, TEXT_DISTANCE_EXACT

if TYPE_CHECKING:
    from .tree import Node, Tree

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error


def _log_debug_matcher(msg, *args, **kwargs):
    """A wrapper for matcher subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": XDIFF_SUBSYSTEM_MATCHER}, **kwargs)


def levenshtein(s1: str, s2: str) -> int:
    """
    Return the Levenshtein edit distance between ``s1`` and ``s2``.
    """
    if len(s1) < len(s2):
        s1, s2 = s2, s1
    if not s2:
        return len(s1)
    prev = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, 1):
        curr = [i] + [0] * len(s2)
        for j, c2 in enumerate(s2, 1):
            curr[j] = min(
                prev[j] + 1,
                curr[j - 1] + 1,
                prev[j - 1] + (0 if c1 == c2 else 1),
            )
        prev = curr
    return prev[-1]


def text_distance(
    text1: Optional[str], text2: Optional[str], measure: str = "levenshtein"
) -> float:
    """
    Return the normalised distance between two optional text values.

    :param text1: The first text value, or ``None``.
    :type text1: ``Optional[str]``
    :param text2: The second text value, or ``None``.
    :type text2: ``Optional[str]``
    :param measure: ``"levenshtein"`` for normalised edit distance or
                    ``"exact"`` for a mismatch indicator.
    :type measure: ``str``
    :returns: A distance in the range [0, 1].
    :rtype: ``float``
    """
    if text1 == text2:
        return 0.0
    if text1 is None or text2 is None or measure == TEXT_DISTANCE_EXACT:
        return 1.0
    return levenshtein(text1, text2) / max(len(text1), len(text2))


def attribute_distance(node1: "Node", node2: "Node") -> float:
    """
    Return the symmetric difference of the ``(key, value)`` attribute pairs
    of two nodes, normalised by their total attribute count.
    """
    pairs1 = set(node1.attribute_items())
    pairs2 = set(node2.attribute_items())
    total = len(pairs1) + len(pairs2)
    if not total:
        return 0.0
    return len(pairs1 ^ pairs2) / total


def solve_assignment(costs: Sequence[Sequence[float]]) -> List[Tuple[int, int]]:
    """
    Solve the rectangular assignment problem for ``costs``.

    Uses the Hungarian (Kuhn-Munkres) algorithm with row and column
    potentials in O(n^2 m). Rows are assigned in ascending order and ties
    between equally cheap columns go to the lower column index, so the
    result is deterministic for a given matrix.

    :param costs: An ``n x m`` cost matrix with ``n <= m``.
    :type costs: ``Sequence[Sequence[float]]``
    :returns: The ``(row, column)`` pairs of a minimum-cost assignment that
              covers every row, sorted by row.
    :rtype: ``List[Tuple[int, int]]``
    """
    n = len(costs)
    if not n:
        return []
    m = len(costs[0])
    if n > m:
        raise XDiffArgumentError(
            f"Assignment matrix must not have more rows than columns ({n}x{m})"
        )

    inf = float("inf")
    u = [0.0] * (n + 1)
    v = [0.0] * (m + 1)
    p = [0] * (m + 1)
    way = [0] * (m + 1)

    for i in range(1, n + 1):
        p[0] = i
        j0 = 0
        minv = [inf] * (m + 1)
        used = [False] * (m + 1)
        while True:
            used[j0] = True
            i0 = p[j0]
            row = costs[i0 - 1]
            delta = inf
            j1 = 0
            for j in range(1, m + 1):
                if used[j]:
                    continue
                cur = row[j - 1] - u[i0] - v[j]
                if cur < minv[j]:
                    minv[j] = cur
                    way[j] = j0
                if minv[j] < delta:
                    delta = minv[j]
                    j1 = j
            for j in range(m + 1):
                if used[j]:
                    u[p[j]] += delta
                    v[j] -= delta
                else:
                    minv[j] -= delta
            j0 = j1
            if p[j0] == 0:
                break
        # Augment along the alternating path
        while True:
            j1 = way[j0]
            p[j0] = p[j1]
            j0 = j1
            if j0 == 0:
                break

    return sorted((p[j] - 1, j - 1) for j in range(1, m + 1) if p[j])


class Match(NamedTuple):
    """
    A pairing of a tree-1 node with a tree-2 node and its cost.
    """

    node1: int
    node2: int
    cost: float


class GroupMatching(NamedTuple):
    """
    The result of matching one same-label sibling group.
    """

    #: Matched pairs, in tree-1 document order
    matches: Tuple[Match, ...]
    #: Unmatched tree-1 node ids, in document order
    unmatched1: Tuple[int, ...]
    #: Unmatched tree-2 node ids, in document order
    unmatched2: Tuple[int, ...]
    #: Total cost of pairs and unmatched nodes
    cost: float


class ChildrenMatching(NamedTuple):
    """
    The result of matching all children of a node pair, group by group.
    """

    #: Per-label group matchings, keyed by label
    groups: Dict[str, GroupMatching]
    #: Total cost over all groups
    cost: float

    @property
    def matches(self) -> List[Match]:
        """All matched pairs over every group."""
        return [match for group in self.groups.values() for match in group.matches]

    @property
    def unmatched1(self) -> List[int]:
        """All unmatched tree-1 children."""
        return [node for group in self.groups.values() for node in group.unmatched1]

    @property
    def unmatched2(self) -> List[int]:
        """All unmatched tree-2 children."""
        return [node for group in self.groups.values() for node in group.unmatched2]


class MatchStats:
    """
    Counters describing the work done by a ``NodeMatcher``.
    """

    def __init__(self):
        #: Number of non-trivial distance computations
        self.distance_calls = 0
        #: Number of distance lookups answered by the memo table
        self.memo_hits = 0
        #: Number of pairs made on signature identity alone
        self.exact_pairs = 0
        #: Number of assignment problems solved
        self.solver_calls = 0
        #: Largest residual group handed to the solver (rows + columns)
        self.max_solver_size = 0

    def __str__(self) -> str:
        return (
            f"distance_calls={self.distance_calls} "
            f"memo_hits={self.memo_hits} "
            f"exact_pairs={self.exact_pairs} "
            f"solver_calls={self.solver_calls} "
            f"max_solver_size={self.max_solver_size}"
        )


def _partition(tree: "Tree", node_ids: Sequence[int]) -> Dict[str, List[int]]:
    """
    Partition ``node_ids`` into sibling groups by label, keeping order.
    """
    groups = defaultdict(list)
    for node_id in node_ids:
        groups[tree.node(node_id).label].append(node_id)
    return groups


class NodeMatcher:
    """
    Computes node distances and minimum-cost sibling group matchings between
    two trees.

    Distances and child matchings are memoised by ``(tree1 id, tree2 id)``
    for the lifetime of the matcher; a matcher is bound to one pair of trees.
    """

    def __init__(self, tree1: "Tree", tree2: "Tree", options: Optional[DiffOptions] = None):
        """
        Initialise a new ``NodeMatcher``.

        :param tree1: The original tree.
        :type tree1: ``Tree``
        :param tree2: The updated tree.
        :type tree2: ``Tree``
        :param options: Options controlling the distance function.
        :type options: ``Optional[DiffOptions]``
        """
        self.tree1 = tree1
        self.tree2 = tree2
        self.options = options or DiffOptions()
        self.stats = MatchStats()
        self._sigs1 = tree1.signatures
        self._sigs2 = tree2.signatures
        self._distance_memo: Dict[Tuple[int, int], float] = {}
        self._children_memo: Dict[Tuple[int, int], ChildrenMatching] = {}

    def identical(self, node1: int, node2: int) -> bool:
        """
        Return ``True`` if the subtrees at ``node1`` and ``node2`` have equal
        signatures.
        """
        return self._sigs1[node1] == self._sigs2[node2]

    def local_distance(self, node1: "Node", node2: "Node") -> float:
        """
        Return the weighted attribute and text distance of two nodes,
        ignoring their children.
        """
        opts = self.options
        return opts.attribute_weight * attribute_distance(
            node1, node2
        ) + opts.text_weight * text_distance(node1.text, node2.text, opts.text_distance)

    def distance(self, node1: int, node2: int) -> float:
        """
        Return the distance between the subtrees at ``node1`` (tree 1) and
        ``node2`` (tree 2).

        :param node1: A tree-1 node id.
        :type node1: ``int``
        :param node2: A tree-2 node id with the same label.
        :type node2: ``int``
        :returns: ``0.0`` for identical subtrees, otherwise the local
                  distance plus the cost of matching the children.
        :rtype: ``float``
        """
        if self.identical(node1, node2):
            return 0.0

        key = (node1, node2)
        if key in self._distance_memo:
            self.stats.memo_hits += 1
            return self._distance_memo[key]

        n1 = self.tree1.node(node1)
        n2 = self.tree2.node(node2)
        if n1.label != n2.label:
            raise XDiffInvariantError(
                f"Cannot compute distance across labels: {n1.label} != {n2.label}"
            )

        # Resolve the residual child pairs bottom-up on an explicit stack so
        # that deep documents do not exhaust the interpreter stack.
        pending = [key]
        while pending:
            pair = pending[-1]
            if pair in self._distance_memo:
                pending.pop()
                continue
            missing = [
                child_pair
                for child_pair in self._residual_pairs(*pair)
                if child_pair not in self._distance_memo
            ]
            if missing:
                pending.extend(missing)
                continue
            pending.pop()
            self._distance_memo[pair] = self._pair_cost(*pair)
        return self._distance_memo[key]

    def _residual_pairs(self, node1: int, node2: int) -> List[Tuple[int, int]]:
        """
        Return the child pairs of ``node1`` and ``node2`` whose distances are
        needed to match their children: every pairing left after exact
        pairing within each same-label group.
        """
        groups1 = _partition(self.tree1, self.tree1.node(node1).children)
        groups2 = _partition(self.tree2, self.tree2.node(node2).children)
        pairs = []
        for label in sorted(set(groups1) & set(groups2)):
            _, rest1, rest2 = self._pair_identical(groups1[label], groups2[label])
            pairs.extend((child1, child2) for child1 in rest1 for child2 in rest2)
        return pairs

    def _pair_cost(self, node1: int, node2: int) -> float:
        """
        Return the local distance of a non-identical same-label pair plus the
        cost of matching its children. Child distances must already be
        memoised.
        """
        self.stats.distance_calls += 1
        n1 = self.tree1.node(node1)
        n2 = self.tree2.node(node2)
        return self.local_distance(n1, n2) + self.match_children(node1, node2).cost

    def match_children(self, node1: int, node2: int) -> ChildrenMatching:
        """
        Match the children of ``node1`` against the children of ``node2``,
        one same-label sibling group at a time.

        :param node1: A tree-1 node id.
        :type node1: ``int``
        :param node2: A tree-2 node id.
        :type node2: ``int``
        :returns: The per-group matchings and their total cost.
        :rtype: ``ChildrenMatching``
        """
        key = (node1, node2)
        if key in self._children_memo:
            return self._children_memo[key]

        groups1 = _partition(self.tree1, self.tree1.node(node1).children)
        groups2 = _partition(self.tree2, self.tree2.node(node2).children)

        groups = {}
        for label in sorted(set(groups1) | set(groups2)):
            groups[label] = self.match_group(
                groups1.get(label, []), groups2.get(label, [])
            )

        matching = ChildrenMatching(groups, sum(g.cost for g in groups.values()))
        self._children_memo[key] = matching
        return matching

    def match_group(
        self, group1: Sequence[int], group2: Sequence[int]
    ) -> GroupMatching:
        """
        Find a minimum-cost partial one-to-one matching between two
        same-label sibling groups.

        :param group1: Tree-1 node ids, in document order.
        :type group1: ``Sequence[int]``
        :param group2: Tree-2 node ids, in document order.
        :type group2: ``Sequence[int]``
        :returns: The matched pairs, the unmatched nodes on each side and the
                  total cost.
        :rtype: ``GroupMatching``
        """
        matches, rest1, rest2 = self._pair_identical(group1, group2)
        self.stats.exact_pairs += len(matches)

        unmatched1: List[int] = []
        unmatched2: List[int] = []
        if rest1 and rest2:
            solved, unmatched1, unmatched2 = self._solve_residual(rest1, rest2)
            matches.extend(solved)
        else:
            unmatched1 = rest1
            unmatched2 = rest2

        cost = (
            sum(match.cost for match in matches)
            + sum(self.tree1.subtree_size(node) for node in unmatched1)
            + sum(self.tree2.subtree_size(node) for node in unmatched2)
        )
        order1 = self.tree1.order
        order2 = self.tree2.order
        matches.sort(key=lambda match: order1(match.node1))
        return GroupMatching(
            tuple(matches),
            tuple(sorted(unmatched1, key=order1)),
            tuple(sorted(unmatched2, key=order2)),
            cost,
        )

    def _pair_identical(
        self, group1: Sequence[int], group2: Sequence[int]
    ) -> Tuple[List[Match], List[int], List[int]]:
        """
        Pair signature-identical nodes of two sibling groups in document
        order and return the pairs plus the residual nodes of each side.

        The residual nodes are returned in canonical order (by signature,
        then document order), so that any later tie-breaking depends on
        node content and not on sibling position.
        """
        by_signature = defaultdict(deque)
        for node2 in group2:
            by_signature[self._sigs2[node2]].append(node2)

        matches = []
        rest1 = []
        paired2 = set()
        for node1 in group1:
            candidates = by_signature.get(self._sigs1[node1])
            if candidates:
                node2 = candidates.popleft()
                paired2.add(node2)
                matches.append(Match(node1, node2, 0.0))
            else:
                rest1.append(node1)
        rest2 = [node2 for node2 in group2 if node2 not in paired2]

        rest1.sort(key=lambda node: (self._sigs1[node], self.tree1.order(node)))
        rest2.sort(key=lambda node: (self._sigs2[node], self.tree2.order(node)))
        return matches, rest1, rest2

    def _solve_residual(
        self, rest1: List[int], rest2: List[int]
    ) -> Tuple[List[Match], List[int], List[int]]:
        """
        Solve the assignment problem for the nodes left after exact pairing.
        """
        delete_costs = [self.tree1.subtree_size(node) for node in rest1]
        insert_costs = [self.tree2.subtree_size(node) for node in rest2]

        if len(rest1) == 1 and len(rest2) == 1:
            cost = self.distance(rest1[0], rest2[0])
            if cost <= delete_costs[0] + insert_costs[0]:
                return [Match(rest1[0], rest2[0], cost)], [], []
            return [], list(rest1), list(rest2)

        m, n = len(rest1), len(rest2)
        size = m + n
        self.stats.solver_calls += 1
        self.stats.max_solver_size = max(self.stats.max_solver_size, size)
        _log_debug_matcher(
            "Solving %dx%d assignment for label %s",
            m,
            n,
            self.tree1.node(rest1[0]).label,
        )

        # Any complete assignment costs at most the sum of all delete and
        # insert costs, so this bound excludes the forbidden cells.
        forbidden = float(sum(delete_costs) + sum(insert_costs) + 1)

        distances = [[self.distance(node1, node2) for node2 in rest2] for node1 in rest1]
        matrix = []
        for i in range(m):
            row = list(distances[i])
            row.extend(delete_costs[i] if k == i else forbidden for k in range(m))
            matrix.append(row)
        for i in range(n):
            row = [insert_costs[i] if j == i else forbidden for j in range(n)]
            row.extend(0.0 for _ in range(m))
            matrix.append(row)

        matches = []
        unmatched1 = []
        paired2 = set()
        for i, j in solve_assignment(matrix):
            if i >= m:
                continue
            if j < n:
                matches.append(Match(rest1[i], rest2[j], distances[i][j]))
                paired2.add(j)
            else:
                unmatched1.append(rest1[i])
        unmatched2 = [node for j, node in enumerate(rest2) if j not in paired2]

        _log_debug_matcher(
            "Assignment paired %d of %d/%d nodes", len(matches), m, n
        )
        return matches, unmatched1, unmatched2


__all__ = [
    "ChildrenMatching",
    "GroupMatching",
    "Match",
    "MatchStats",
    "NodeMatcher",
    "attribute_distance",
    "levenshtein",
    "solve_assignment",
    "text_distance",
]
