# Copyright Red Hat
#
# xdiff/treediff/tree.py - Unordered tree diff document tree model
#
# This file is part of the xdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Immutable, arena-owned document tree model.

A ``Tree`` owns every ``Node`` in a flat arena keyed by integer node id and
exposes a single root id. Trees are constructed once through a
``TreeBuilder`` and are never modified afterwards: any transformation
builds a new tree.
"""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import (
    Dict,
    Iterator,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Sequence,
    Tuple,
    TYPE_CHECKING,
)
from collections import defaultdict
import logging

from xdiff import (
    XDIFF_SUBSYSTEM_TREE,
    XDiffArgumentError,
    XDiffInvariantError,
    XDiffNotFoundError,
)

from .signature import compute_signatures

if TYPE_CHECKING:
    from .signature import SignatureTable

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

#: Label used for text nodes split out of mixed content
TEXT_LABEL = "#text"


def _log_debug_tree(msg, *args, **kwargs):
    """A wrapper for tree subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": XDIFF_SUBSYSTEM_TREE}, **kwargs)


@dataclass(frozen=True, eq=False)
class Node:
    """
    A single node of a document tree.
    """

    #: Node identifier, unique within the owning tree
    node_id: int
    #: Tag name
    label: str
    #: Attribute mapping, ordered by key
    attributes: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )
    #: Text content (leaf and text nodes only)
    text: Optional[str] = None
    #: Child node ids in document order
    children: Tuple[int, ...] = ()
    #: Parent node id, or ``None`` for the root
    parent: Optional[int] = None
    #: Source line reported by the parser, if any
    sourceline: Optional[int] = None

    def __str__(self) -> str:
        attrs = "".join(f' {key}="{value}"' for key, value in self.attributes.items())
        text = f" {self.text!r}" if self.text is not None else ""
        return f"[{self.node_id}] <{self.label}{attrs}>{text}"

    @property
    def is_leaf(self) -> bool:
        """``True`` if this node has no children."""
        return not self.children

    @property
    def is_text(self) -> bool:
        """``True`` if this is a text node split out of mixed content."""
        return self.label == TEXT_LABEL

    def attribute_items(self) -> Tuple[Tuple[str, str], ...]:
        """
        Return the canonical (key-sorted) attribute pairs of this node.

        :returns: A tuple of ``(key, value)`` pairs.
        :rtype: ``Tuple[Tuple[str, str], ...]``
        """
        return tuple(self.attributes.items())


class TreeElement(NamedTuple):
    """
    A nested, order-preserving description of a subtree, used to build
    trees programmatically and to export them again.
    """

    label: str
    attributes: Mapping[str, str] = MappingProxyType({})
    text: Optional[str] = None
    children: Sequence["TreeElement"] = ()


def element(
    label: str,
    attributes: Optional[Mapping[str, str]] = None,
    text: Optional[str] = None,
    children: Sequence[TreeElement] = (),
) -> TreeElement:
    """
    Convenience constructor for ``TreeElement`` values.
    """
    return TreeElement(label, dict(attributes or {}), text, tuple(children))


class Tree:
    """
    An immutable document tree owning its nodes in a flat arena.

    Instances are created by ``TreeBuilder.build()``; the constructor
    expects already validated data.
    """

    def __init__(
        self,
        nodes: Dict[int, Node],
        root: int,
        preorder: Tuple[int, ...],
        sizes: Dict[int, int],
    ):
        """
        Initialise a new ``Tree``.

        :param nodes: The node arena.
        :type nodes: ``Dict[int, Node]``
        :param root: The root node id.
        :type root: ``int``
        :param preorder: All node ids in document (pre-) order.
        :type preorder: ``Tuple[int, ...]``
        :param sizes: Map of node id to the number of nodes in its subtree.
        :type sizes: ``Dict[int, int]``
        """
        self._nodes = nodes
        self._root = root
        self._preorder = preorder
        self._order = {node_id: i for i, node_id in enumerate(preorder)}
        self._sizes = sizes
        self._signatures: Optional["SignatureTable"] = None

    def __repr__(self) -> str:
        return f"Tree(root={self._root}, nodes={len(self._nodes)})"

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: int) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        """
        Iterate over all nodes in document order.
        """
        return (self._nodes[node_id] for node_id in self._preorder)

    @property
    def root(self) -> int:
        """The root node id."""
        return self._root

    @property
    def root_node(self) -> Node:
        """The root ``Node``."""
        return self._nodes[self._root]

    def node(self, node_id: int) -> Node:
        """
        Return the node with id ``node_id``.

        :param node_id: The node id to look up.
        :type node_id: ``int``
        :returns: The corresponding node.
        :rtype: ``Node``
        :raises XDiffNotFoundError: if ``node_id`` is not part of this tree.
        """
        try:
            return self._nodes[node_id]
        except KeyError as err:
            raise XDiffNotFoundError(f"No node with id {node_id} in tree") from err

    def children(self, node_id: int) -> List[Node]:
        """
        Return the children of ``node_id`` in document order.
        """
        return [self._nodes[child] for child in self.node(node_id).children]

    def parent(self, node_id: int) -> Optional[Node]:
        """
        Return the parent of ``node_id``, or ``None`` for the root.
        """
        parent = self.node(node_id).parent
        return self._nodes[parent] if parent is not None else None

    def ancestors(self, node_id: int) -> List[Node]:
        """
        Return the ancestors of ``node_id``, root first, excluding the node
        itself.

        :param node_id: The node id to start from.
        :type node_id: ``int``
        :returns: The ancestor path of ``node_id``.
        :rtype: ``List[Node]``
        """
        path = []
        parent = self.node(node_id).parent
        while parent is not None:
            node = self._nodes[parent]
            path.append(node)
            parent = node.parent
        path.reverse()
        return path

    def path(self, node_id: int) -> str:
        """
        Return the label path of ``node_id``, e.g. ``/Profile/Customer``.

        The label path does not depend on sibling order.
        """
        labels = [node.label for node in self.ancestors(node_id)]
        labels.append(self.node(node_id).label)
        return "/" + "/".join(labels)

    def indexed_path(self, node_id: int) -> str:
        """
        Return the positional path of ``node_id``, e.g.
        ``/Profile[1]/Customer[1]/Address[2]``, counting same-label siblings
        in document order from 1.
        """
        steps = []
        for node in self.ancestors(node_id) + [self.node(node_id)]:
            index = 1
            if node.parent is not None:
                siblings = self._nodes[node.parent].children
                index = 1 + sum(
                    1
                    for sibling in siblings[: siblings.index(node.node_id)]
                    if self._nodes[sibling].label == node.label
                )
            steps.append(f"{node.label}[{index}]")
        return "/" + "/".join(steps)

    def order(self, node_id: int) -> int:
        """
        Return the document-order (preorder) position of ``node_id``.
        """
        self.node(node_id)
        return self._order[node_id]

    def subtree_size(self, node_id: int) -> int:
        """
        Return the number of nodes in the subtree rooted at ``node_id``.
        """
        self.node(node_id)
        return self._sizes[node_id]

    def iter_subtree(self, node_id: int) -> Iterator[Node]:
        """
        Iterate over the subtree rooted at ``node_id`` in document order,
        starting with the node itself.
        """
        start = self.order(node_id)
        return (
            self._nodes[other]
            for other in self._preorder[start : start + self._sizes[node_id]]
        )

    def descendants(self, node_id: int) -> List[Node]:
        """
        Return all descendants of ``node_id`` in document order, excluding
        the node itself.
        """
        return list(self.iter_subtree(node_id))[1:]

    @property
    def signatures(self) -> "SignatureTable":
        """
        The subtree signatures of this tree, computed on first access.
        """
        if self._signatures is None:
            self._signatures = compute_signatures(self)
        return self._signatures

    def signature(self, node_id: int) -> bytes:
        """
        Return the subtree signature of ``node_id``.
        """
        return self.signatures[node_id]

    def to_element(self, node_id: Optional[int] = None) -> TreeElement:
        """
        Export the subtree rooted at ``node_id`` (default: the root) as a
        nested ``TreeElement``.
        """
        node_id = self._root if node_id is None else node_id
        built: Dict[int, TreeElement] = {}
        subtree = list(self.iter_subtree(node_id))
        for node in reversed(subtree):
            built[node.node_id] = TreeElement(
                node.label,
                dict(node.attributes),
                node.text,
                tuple(built[child] for child in node.children),
            )
        return built[node_id]

    @classmethod
    def from_element(cls, root: TreeElement) -> "Tree":
        """
        Build a new ``Tree`` from a nested ``TreeElement`` description.
        """
        builder = TreeBuilder()
        builder.add_element(root)
        return builder.build()


class TreeBuilder:
    """
    Single-use builder for ``Tree`` objects.

    Node ids are assigned from a counter local to this builder, starting at
    zero, in the order nodes are added.
    """

    def __init__(self):
        self._next_id = 0
        self._root: Optional[int] = None
        self._labels: Dict[int, str] = {}
        self._attributes: Dict[int, Dict[str, str]] = {}
        self._texts: Dict[int, Optional[str]] = {}
        self._parents: Dict[int, Optional[int]] = {}
        self._sourcelines: Dict[int, Optional[int]] = {}
        self._children: Dict[int, List[int]] = defaultdict(list)
        self._built = False

    def __len__(self) -> int:
        return self._next_id

    def _check_open(self):
        if self._built:
            raise XDiffArgumentError("TreeBuilder has already built its tree")

    def add_node(
        self,
        label: str,
        attributes: Optional[Mapping[str, str]] = None,
        text: Optional[str] = None,
        parent: Optional[int] = None,
        sourceline: Optional[int] = None,
    ) -> int:
        """
        Add a node and return its id.

        :param label: The node label (tag name).
        :type label: ``str``
        :param attributes: Optional attribute mapping.
        :type attributes: ``Optional[Mapping[str, str]]``
        :param text: Optional text content (leaf nodes only).
        :type text: ``Optional[str]``
        :param parent: The parent node id, or ``None`` to add the root.
        :type parent: ``Optional[int]``
        :param sourceline: Optional source line of the node.
        :type sourceline: ``Optional[int]``
        :returns: The id assigned to the new node.
        :rtype: ``int``
        """
        self._check_open()
        if not label:
            raise XDiffArgumentError("Node label must be a non-empty string")
        if parent is None:
            if self._root is not None:
                raise XDiffArgumentError(
                    f"Tree already has a root node ({self._root})"
                )
        elif parent not in self._labels:
            raise XDiffNotFoundError(f"Parent node {parent} does not exist")

        node_id = self._next_id
        self._next_id += 1

        self._labels[node_id] = label
        self._attributes[node_id] = {
            str(key): str(value) for key, value in (attributes or {}).items()
        }
        self._texts[node_id] = text
        self._parents[node_id] = parent
        self._sourcelines[node_id] = sourceline
        if parent is None:
            self._root = node_id
        else:
            self._children[parent].append(node_id)
        return node_id

    def add_element(self, elem: TreeElement, parent: Optional[int] = None) -> int:
        """
        Add a nested ``TreeElement`` below ``parent`` and return the id of
        its top node. Ids are assigned in document order.
        """
        stack = [(elem, parent)]
        top = None
        while stack:
            current, current_parent = stack.pop()
            node_id = self.add_node(
                current.label,
                attributes=current.attributes,
                text=current.text,
                parent=current_parent,
            )
            if top is None:
                top = node_id
            stack.extend((child, node_id) for child in reversed(current.children))
        return top

    def build(self) -> Tree:
        """
        Validate the collected nodes and return a new ``Tree``.

        :returns: The constructed tree.
        :rtype: ``Tree``
        :raises XDiffInvariantError: if the nodes do not form a single
                                     rooted tree.
        """
        self._check_open()
        if self._root is None:
            raise XDiffInvariantError("Cannot build a tree without a root node")

        for node_id, text in self._texts.items():
            if text is not None and self._children.get(node_id):
                raise XDiffInvariantError(
                    f"Node {node_id} ({self._labels[node_id]}) has both text "
                    "and children"
                )

        preorder = []
        seen = set()
        stack = [self._root]
        while stack:
            node_id = stack.pop()
            if node_id in seen:
                raise XDiffInvariantError(f"Node {node_id} is reachable twice")
            seen.add(node_id)
            preorder.append(node_id)
            stack.extend(reversed(self._children.get(node_id, [])))

        if len(preorder) != self._next_id:
            unreachable = sorted(set(self._labels) - seen)
            raise XDiffInvariantError(
                f"Nodes not reachable from root: {unreachable}"
            )

        sizes: Dict[int, int] = {}
        for node_id in reversed(preorder):
            sizes[node_id] = 1 + sum(
                sizes[child] for child in self._children.get(node_id, [])
            )

        nodes = {
            node_id: Node(
                node_id=node_id,
                label=self._labels[node_id],
                attributes=MappingProxyType(
                    dict(sorted(self._attributes[node_id].items()))
                ),
                text=self._texts[node_id],
                children=tuple(self._children.get(node_id, ())),
                parent=self._parents[node_id],
                sourceline=self._sourcelines[node_id],
            )
            for node_id in preorder
        }
        self._built = True
        _log_debug_tree(
            "Built tree with %d nodes (root=%d, depth-first order)",
            len(nodes),
            self._root,
        )
        return Tree(nodes, self._root, tuple(preorder), sizes)


__all__ = [
    "Node",
    "TEXT_LABEL",
    "Tree",
    "TreeBuilder",
    "TreeElement",
    "element",
]
