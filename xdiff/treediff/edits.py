# Copyright Red Hat
#
# xdiff/treediff/edits.py - Unordered tree diff edit script
#
# This file is part of the xdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Edit operations and diff results.

Edit operations reference nodes by id, never by object, so both source trees
must stay alive for as long as a ``DiffResult`` is in use.
"""
from typing import Any, Dict, Iterator, List, Optional, TYPE_CHECKING
import json

from .difftypes import EditType, FieldType

if TYPE_CHECKING:
    from .matcher import Match, MatchStats
    from .tree import Tree


class EditOperation:
    """
    Base class for edit operations.
    """

    #: The edit type of this operation
    edit_type: EditType

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert this edit operation into a dictionary representation
        suitable for encoding as JSON.

        :returns: A dictionary mapping this instance's keys to values.
        :rtype: ``Dict[str, Any]``
        """
        raise NotImplementedError

    def json(self, pretty=False) -> str:
        """
        Return a string representation of this edit operation in JSON
        notation.

        :param pretty: Indent JSON to be human readable.
        :type pretty: ``bool``
        :returns: A JSON representation of this instance.
        :rtype: ``str``
        """
        return json.dumps(self.to_dict(), indent=4 if pretty else None)

    def __eq__(self, other) -> bool:
        if not isinstance(other, EditOperation):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self):
        return hash(self.json())

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.to_dict()!r})"

    # pylint: disable=unused-argument
    def expand(self, tree1: "Tree", tree2: "Tree") -> List["EditOperation"]:
        """
        Return this operation with every affected descendant enumerated.

        Only ``Insert`` and ``Delete`` cover more than one node; other
        operations expand to themselves.
        """
        return [self]


class Insert(EditOperation):
    """
    Insertion of a tree-2 subtree.
    """

    edit_type = EditType.INSERT

    def __init__(
        self,
        node: int,
        path: str,
        parent: Optional[int] = None,
        location: Optional[int] = None,
        size: int = 1,
    ):
        """
        Initialise a new ``Insert`` operation.

        :param node: The tree-2 id of the inserted subtree root.
        :param path: The label path of ``node`` in tree 2.
        :param parent: The tree-2 id of the parent of ``node``.
        :param location: The tree-1 id of the node ``node`` is inserted
                         under, or ``None`` if the whole tree is replaced.
        :param size: The number of nodes in the inserted subtree.
        """
        self.node = node
        self.path = path
        self.parent = parent
        self.location = location
        self.size = size

    def __str__(self) -> str:
        if self.location is not None:
            return f"insert node {self.node} to node {self.location}"
        if self.parent is None:
            return f"insert node {self.node} as root"
        # Descendant of an inserted subtree: the parent only exists in tree 2.
        return f"insert node {self.node} below inserted node {self.parent}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "edit_type": self.edit_type.value,
            "node": self.node,
            "path": self.path,
            "parent": self.parent,
            "location": self.location,
            "size": self.size,
        }

    def expand(self, tree1: "Tree", tree2: "Tree") -> List[EditOperation]:
        ops: List[EditOperation] = [self]
        for node in tree2.descendants(self.node):
            ops.append(
                Insert(
                    node.node_id,
                    tree2.path(node.node_id),
                    parent=node.parent,
                    location=None,
                    size=tree2.subtree_size(node.node_id),
                )
            )
        return ops


class Delete(EditOperation):
    """
    Deletion of a tree-1 subtree.
    """

    edit_type = EditType.DELETE

    def __init__(
        self,
        node: int,
        path: str,
        parent: Optional[int] = None,
        size: int = 1,
    ):
        """
        Initialise a new ``Delete`` operation.

        :param node: The tree-1 id of the deleted subtree root.
        :param path: The label path of ``node`` in tree 1.
        :param parent: The tree-1 id of the parent of ``node``.
        :param size: The number of nodes in the deleted subtree.
        """
        self.node = node
        self.path = path
        self.parent = parent
        self.size = size

    def __str__(self) -> str:
        return f"delete node {self.node}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "edit_type": self.edit_type.value,
            "node": self.node,
            "path": self.path,
            "parent": self.parent,
            "size": self.size,
        }

    def expand(self, tree1: "Tree", tree2: "Tree") -> List[EditOperation]:
        ops: List[EditOperation] = [self]
        for node in tree1.descendants(self.node):
            ops.append(
                Delete(
                    node.node_id,
                    tree1.path(node.node_id),
                    parent=node.parent,
                    size=tree1.subtree_size(node.node_id),
                )
            )
        return ops


class Update(EditOperation):
    """
    A change to one field (text or a single attribute) of a matched pair.
    """

    edit_type = EditType.UPDATE

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        node1: int,
        node2: int,
        path: str,
        field_type: FieldType,
        field: str,
        old_value: Optional[str],
        new_value: Optional[str],
    ):
        """
        Initialise a new ``Update`` operation.

        :param node1: The tree-1 node id of the matched pair.
        :param node2: The tree-2 node id of the matched pair.
        :param path: The label path of ``node1`` in tree 1.
        :param field_type: Whether the text or an attribute changed.
        :param field: ``"text"`` or the attribute name.
        :param old_value: The tree-1 value, ``None`` if absent.
        :param new_value: The tree-2 value, ``None`` if absent.
        """
        self.node1 = node1
        self.node2 = node2
        self.path = path
        self.field_type = field_type
        self.field = field
        self.old_value = old_value
        self.new_value = new_value

    def __str__(self) -> str:
        node = (
            f"{self.node1}[{self.field}]"
            if self.field_type == FieldType.ATTRIBUTE
            else f"{self.node1}"
        )
        old_value = json.dumps(self.old_value)
        new_value = json.dumps(self.new_value)
        return f"update node {node}: {old_value} -> {new_value}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "edit_type": self.edit_type.value,
            "node1": self.node1,
            "node2": self.node2,
            "path": self.path,
            "field_type": self.field_type.value,
            "field": self.field,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }


class Move(EditOperation):
    """
    Relocation of an unchanged subtree to a different parent.
    """

    edit_type = EditType.MOVE

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        node1: int,
        node2: int,
        old_parent: Optional[int],
        new_parent: Optional[int],
        old_path: str,
        new_path: str,
        location: Optional[int] = None,
    ):
        """
        Initialise a new ``Move`` operation.

        :param node1: The tree-1 id of the moved subtree root.
        :param node2: The tree-2 id of the moved subtree root.
        :param old_parent: The tree-1 parent id of ``node1``.
        :param new_parent: The tree-2 parent id of ``node2``.
        :param old_path: The label path of ``node1`` in tree 1.
        :param new_path: The label path of ``node2`` in tree 2.
        :param location: The tree-1 id of the node ``node1`` is moved
                         under (the counterpart of ``new_parent``).
        """
        self.node1 = node1
        self.node2 = node2
        self.old_parent = old_parent
        self.new_parent = new_parent
        self.old_path = old_path
        self.new_path = new_path
        self.location = location

    @property
    def path(self) -> str:
        """The tree-1 label path of the moved subtree."""
        return self.old_path

    def __str__(self) -> str:
        return (
            f"move node {self.node1} from node {self.old_parent} "
            f"to node {self.location}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "edit_type": self.edit_type.value,
            "node1": self.node1,
            "node2": self.node2,
            "old_parent": self.old_parent,
            "new_parent": self.new_parent,
            "old_path": self.old_path,
            "new_path": self.new_path,
            "location": self.location,
        }


class DiffResult:
    """
    An ordered edit script transforming tree 1 into tree 2.

    Deletions and updates come first in tree-1 document order, then
    insertions in tree-2 document order, then moves in tree-1 document order.
    """

    def __init__(
        self,
        operations: List[EditOperation],
        tree1: "Tree",
        tree2: "Tree",
        matches: Optional[List["Match"]] = None,
        stats: Optional["MatchStats"] = None,
        replaced_root: bool = False,
    ):
        """
        Initialise a new ``DiffResult``.

        :param operations: The ordered edit operations.
        :param tree1: The original tree.
        :param tree2: The updated tree.
        :param matches: The matched node pairs (subtree roots only for
                        signature-identical pairs).
        :param stats: Matcher statistics for the run.
        :param replaced_root: ``True`` if the root labels differed and the
                              whole tree was replaced.
        """
        self._operations = operations
        self.tree1 = tree1
        self.tree2 = tree2
        self.matches = matches or []
        self.stats = stats
        self.replaced_root = replaced_root

    def __repr__(self) -> str:
        return f"DiffResult([...{len(self)} operations], replaced_root={self.replaced_root})"

    def __str__(self) -> str:
        return "\n".join(str(op) for op in self._operations)

    # List-like interface
    def __iter__(self) -> Iterator[EditOperation]:
        return iter(self._operations)

    def __len__(self) -> int:
        return len(self._operations)

    def __getitem__(self, index: int) -> EditOperation:
        return self._operations[index]

    def _of_type(self, edit_type: EditType) -> List[EditOperation]:
        return [op for op in self._operations if op.edit_type == edit_type]

    @property
    def inserted(self) -> List[EditOperation]:
        """All ``Insert`` operations."""
        return self._of_type(EditType.INSERT)

    @property
    def deleted(self) -> List[EditOperation]:
        """All ``Delete`` operations."""
        return self._of_type(EditType.DELETE)

    @property
    def updated(self) -> List[EditOperation]:
        """All ``Update`` operations."""
        return self._of_type(EditType.UPDATE)

    @property
    def moved(self) -> List[EditOperation]:
        """All ``Move`` operations."""
        return self._of_type(EditType.MOVE)

    def paths(self) -> List[str]:
        """
        Return the label path of every operation, in script order.
        """
        return [op.path for op in self._operations]

    def to_list(self) -> List[Dict[str, Any]]:
        """
        Return the dictionary representation of every operation.
        """
        return [op.to_dict() for op in self._operations]

    def json(self, pretty: bool = False) -> str:
        """
        Return a JSON representation of the edit script.

        :param pretty: Indent JSON to be human readable.
        :type pretty: ``bool``
        :returns: JSON string description of the edit script.
        :rtype: ``str``
        """
        return json.dumps(self.to_list(), indent=4 if pretty else None)

    def expanded(self) -> List[EditOperation]:
        """
        Return the edit script with every inserted and deleted descendant
        enumerated after its subtree root.
        """
        ops = []
        for op in self._operations:
            ops.extend(op.expand(self.tree1, self.tree2))
        return ops

    def summary(self) -> str:
        """
        Return a short summary of the operation counts.
        """
        return (
            f"Total operations: {len(self)}\n"
            f"  inserted: {len(self.inserted)}\n"
            f"  deleted:  {len(self.deleted)}\n"
            f"  updated:  {len(self.updated)}\n"
            f"  moved:    {len(self.moved)}"
        )


__all__ = [
    "Delete",
    "DiffResult",
    "EditOperation",
    "Insert",
    "Move",
    "Update",
]
