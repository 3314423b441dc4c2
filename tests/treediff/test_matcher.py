# Copyright Red Hat
#
# tests/treediff/test_matcher.py - Node matcher tests.
#
# This file is part of the xdiff project.
#
# SPDX-License-Identifier: Apache-2.0
import itertools
import unittest

from xdiff import XDiffArgumentError, XDiffInvariantError
from xdiff.treediff.matcher import (
    Match,
    NodeMatcher,
    attribute_distance,
    levenshtein,
    solve_assignment,
    text_distance,
)
from xdiff.treediff.options import DiffOptions
from xdiff.treediff.tree import element

from ._util import make_chain, make_tree


def _brute_force(costs):
    n = len(costs)
    m = len(costs[0])
    best = None
    for cols in itertools.permutations(range(m), n):
        total = sum(costs[i][j] for i, j in enumerate(cols))
        if best is None or total < best:
            best = total
    return best


class TestDistances(unittest.TestCase):
    def test_levenshtein(self):
        self.assertEqual(levenshtein("", ""), 0)
        self.assertEqual(levenshtein("abc", ""), 3)
        self.assertEqual(levenshtein("", "abc"), 3)
        self.assertEqual(levenshtein("kitten", "sitting"), 3)
        self.assertEqual(levenshtein("flaw", "lawn"), 2)
        self.assertEqual(levenshtein("Seattle", "Seattle"), 0)

    def test_text_distance(self):
        self.assertEqual(text_distance(None, None), 0.0)
        self.assertEqual(text_distance("a", None), 1.0)
        self.assertEqual(text_distance(None, "a"), 1.0)
        self.assertAlmostEqual(text_distance("kitten", "sitting"), 3 / 7)
        self.assertEqual(text_distance("abc", "abd", "exact"), 1.0)
        self.assertEqual(text_distance("abc", "abc", "exact"), 0.0)

    def test_attribute_distance(self):
        a = make_tree("a", {"x": "1", "y": "2"}).root_node
        b = make_tree("a", {"x": "1", "y": "3"}).root_node
        c = make_tree("a").root_node
        self.assertEqual(attribute_distance(a, a), 0.0)
        self.assertEqual(attribute_distance(a, b), 0.5)
        self.assertEqual(attribute_distance(a, c), 1.0)
        self.assertEqual(attribute_distance(c, c), 0.0)


class TestSolveAssignment(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(solve_assignment([]), [])

    def test_square(self):
        costs = [[4, 1, 3], [2, 0, 5], [3, 2, 2]]
        pairs = solve_assignment(costs)
        self.assertEqual(sum(costs[i][j] for i, j in pairs), 5)
        self.assertEqual([i for i, _ in pairs], [0, 1, 2])
        self.assertEqual(len({j for _, j in pairs}), 3)

    def test_rectangular(self):
        costs = [[9, 2, 7, 1], [6, 4, 3, 8]]
        pairs = solve_assignment(costs)
        self.assertEqual(pairs, [(0, 3), (1, 2)])

    def test_too_many_rows(self):
        with self.assertRaises(XDiffArgumentError):
            solve_assignment([[1], [2]])

    def test_matches_brute_force(self):
        grids = [
            [[7, 3, 9, 1], [2, 8, 4, 6], [5, 5, 1, 3], [9, 2, 6, 4]],
            [[0.5, 1.25, 3], [2, 0.75, 0.5], [1, 1, 1]],
            [[1, 1, 1], [1, 1, 1], [1, 1, 1]],
        ]
        for costs in grids:
            pairs = solve_assignment(costs)
            total = sum(costs[i][j] for i, j in pairs)
            self.assertAlmostEqual(total, _brute_force(costs))

    def test_deterministic_ties(self):
        costs = [[1, 1], [1, 1]]
        self.assertEqual(solve_assignment(costs), solve_assignment(costs))


class TestNodeMatcher(unittest.TestCase):
    def test_identical_distance_is_zero(self):
        tree1 = make_tree("a", children=[element("b", text="x")])
        tree2 = make_tree("a", children=[element("b", text="x")])
        matcher = NodeMatcher(tree1, tree2)
        self.assertTrue(matcher.identical(0, 0))
        self.assertEqual(matcher.distance(0, 0), 0.0)
        self.assertEqual(matcher.stats.distance_calls, 0)

    def test_label_mismatch(self):
        tree1 = make_tree("a", text="x")
        tree2 = make_tree("b", text="y")
        with self.assertRaises(XDiffInvariantError):
            NodeMatcher(tree1, tree2).distance(0, 0)

    def test_leaf_distance(self):
        tree1 = make_tree("a", {"k": "1"}, "abcd")
        tree2 = make_tree("a", {"k": "2"}, "abce")
        matcher = NodeMatcher(tree1, tree2)
        # 0.5 * (2 / 2) + 0.5 * (1 / 4)
        self.assertAlmostEqual(matcher.distance(0, 0), 0.625)

    def test_distance_memoised(self):
        tree1 = make_tree("a", text="x")
        tree2 = make_tree("a", text="y")
        matcher = NodeMatcher(tree1, tree2)
        first = matcher.distance(0, 0)
        second = matcher.distance(0, 0)
        self.assertEqual(first, second)
        self.assertEqual(matcher.stats.distance_calls, 1)
        self.assertEqual(matcher.stats.memo_hits, 1)

    def test_children_cost_includes_unmatched(self):
        tree1 = make_tree("a", children=[element("b"), element("c", children=[element("d")])])
        tree2 = make_tree("a", children=[element("b")])
        matcher = NodeMatcher(tree1, tree2)
        children = matcher.match_children(0, 0)
        self.assertEqual(children.unmatched1, [2])
        self.assertEqual(children.unmatched2, [])
        self.assertEqual(children.cost, 2)
        self.assertEqual(matcher.distance(0, 0), 2)

    def test_group_prefers_closest(self):
        tree1 = make_tree(
            "r",
            children=[
                element("item", text="apple"),
                element("item", text="banana"),
                element("item", text="cherry"),
            ],
        )
        tree2 = make_tree(
            "r",
            children=[
                element("item", text="cherri"),
                element("item", text="bananas"),
                element("item", text="appel"),
            ],
        )
        matcher = NodeMatcher(tree1, tree2)
        group = matcher.match_group([1, 2, 3], [1, 2, 3])
        self.assertEqual([(m.node1, m.node2) for m in group.matches], [(1, 3), (2, 2), (3, 1)])
        self.assertEqual(group.unmatched1, ())
        self.assertEqual(group.unmatched2, ())
        self.assertEqual(matcher.stats.solver_calls, 1)

    def test_group_uneven(self):
        tree1 = make_tree("r", children=[element("v", text="aaaa"), element("v", text="bbbb")])
        tree2 = make_tree("r", children=[element("v", text="bbbc")])
        matcher = NodeMatcher(tree1, tree2)
        group = matcher.match_group([1, 2], [1])
        self.assertEqual([(m.node1, m.node2) for m in group.matches], [(2, 1)])
        self.assertEqual(group.unmatched1, (1,))
        self.assertEqual(group.unmatched2, ())
        self.assertAlmostEqual(group.cost, 0.125 + 1)

    def test_exact_pairs_skip_solver(self):
        count = 25
        repeats = [element("Row", {"v": "1"}, "same") for _ in range(count)]
        tree1 = make_tree("Table", children=repeats)
        tree2 = make_tree("Table", children=repeats)
        matcher = NodeMatcher(tree1, tree2)
        group = matcher.match_group(list(range(1, count + 1)), list(range(1, count + 1)))
        self.assertEqual(len(group.matches), count)
        self.assertEqual(group.cost, 0.0)
        self.assertEqual(matcher.stats.exact_pairs, count)
        self.assertEqual(matcher.stats.solver_calls, 0)

    def test_exact_pairs_with_residual(self):
        tree1 = make_tree(
            "Table",
            children=[element("Row", text="same") for _ in range(10)] + [element("Row", text="old")],
        )
        tree2 = make_tree(
            "Table",
            children=[element("Row", text="new")] + [element("Row", text="same") for _ in range(10)],
        )
        matcher = NodeMatcher(tree1, tree2)
        children = matcher.match_children(0, 0)
        self.assertEqual(matcher.stats.exact_pairs, 10)
        self.assertEqual(matcher.stats.solver_calls, 0)
        self.assertIn(Match(11, 1, children.matches[-1].cost), children.matches)
        self.assertEqual(children.unmatched1, [])
        self.assertEqual(children.unmatched2, [])

    def test_groups_by_label(self):
        tree1 = make_tree("r", children=[element("a", text="1"), element("b", text="2")])
        tree2 = make_tree("r", children=[element("b", text="1"), element("a", text="2")])
        matcher = NodeMatcher(tree1, tree2)
        children = matcher.match_children(0, 0)
        self.assertEqual(sorted(children.groups), ["a", "b"])
        pairs = [(m.node1, m.node2) for m in children.matches]
        self.assertIn((1, 2), pairs)
        self.assertIn((2, 1), pairs)

    def test_exact_text_measure(self):
        tree1 = make_tree("a", text="abcd")
        tree2 = make_tree("a", text="abce")
        options = DiffOptions(text_distance="exact")
        self.assertAlmostEqual(NodeMatcher(tree1, tree2, options).distance(0, 0), 0.5)

    def test_stats_str(self):
        matcher = NodeMatcher(make_tree("a"), make_tree("a"))
        self.assertIn("solver_calls=0", str(matcher.stats))

    def test_tied_group_pairs_by_content(self):
        tree1 = make_tree("r", children=[element("a", {"x": "1"}), element("a", {"x": "2"})])
        forward = make_tree("r", children=[element("a", {"x": "3"}), element("a", {"x": "4"})])
        swapped = make_tree("r", children=[element("a", {"x": "4"}), element("a", {"x": "3"})])

        def _pairs(tree2):
            group = NodeMatcher(tree1, tree2).match_group([1, 2], [1, 2])
            return sorted(
                (tree1.node(m.node1).attributes["x"], tree2.node(m.node2).attributes["x"])
                for m in group.matches
            )

        self.assertEqual(len(_pairs(forward)), 2)
        self.assertEqual(_pairs(forward), _pairs(swapped))

    def test_deep_chain_distance(self):
        depth = 1500
        matcher = NodeMatcher(make_chain(depth, "a"), make_chain(depth, "b"))
        self.assertAlmostEqual(matcher.distance(0, 0), 0.5)
        self.assertEqual(matcher.stats.distance_calls, depth + 1)
