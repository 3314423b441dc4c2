# Copyright Red Hat
#
# xdiff/treediff/signature.py - Unordered tree diff subtree signatures
#
# This file is part of the xdiff project.
#
# SPDX-License-Identifier: Apache-2.0
"""
Order-independent subtree signatures.

The signature of a node is a BLAKE2b digest over its label, its sorted
attribute pairs, its text (if any) and the *sorted* list of its children's
signatures. Permuting the children of a node therefore never changes its
signature, and two subtrees with equal signatures are treated as identical.
This is exact only up to hash collisions.
"""
from typing import Dict, Iterable, Iterator, Mapping, TYPE_CHECKING
from datetime import datetime
import hashlib
import logging

from xdiff import XDIFF_SUBSYSTEM_SIGNATURE

if TYPE_CHECKING:
    from .tree import Node, Tree

_log = logging.getLogger(__name__)

_log_debug = _log.debug
_log_info = _log.info
_log_warn = _log.warning
_log_error = _log.error

#: Width of a signature in bytes
SIGNATURE_SIZE = 16

#: BLAKE2b personalisation string for node signatures
_SIGNATURE_PERSON = b"xdiff-node-v1"

_NO_TEXT = b"\x00"
_HAS_TEXT = b"\x01"


def _log_debug_signature(msg, *args, **kwargs):
    """A wrapper for signature subsystem debug logs."""
    _log.debug(msg, *args, extra={"subsystem": XDIFF_SUBSYSTEM_SIGNATURE}, **kwargs)


def _feed(digest, value: str):
    """
    Feed a length-prefixed UTF-8 string into ``digest``.
    """
    data = value.encode("utf-8")
    digest.update(len(data).to_bytes(8, "big"))
    digest.update(data)


def node_signature(node: "Node", child_signatures: Iterable[bytes]) -> bytes:
    """
    Compute the signature of ``node`` given the signatures of its children.

    :param node: The node to compute a signature for.
    :type node: ``Node``
    :param child_signatures: The signatures of the children of ``node``, in
                             any order.
    :type child_signatures: ``Iterable[bytes]``
    :returns: The node signature.
    :rtype: ``bytes``
    """
    digest = hashlib.blake2b(digest_size=SIGNATURE_SIZE, person=_SIGNATURE_PERSON)
    _feed(digest, node.label)

    items = node.attribute_items()
    digest.update(len(items).to_bytes(8, "big"))
    for key, value in items:
        _feed(digest, key)
        _feed(digest, value)

    if node.text is None:
        digest.update(_NO_TEXT)
    else:
        digest.update(_HAS_TEXT)
        _feed(digest, node.text)

    children = sorted(child_signatures)
    digest.update(len(children).to_bytes(8, "big"))
    for child in children:
        digest.update(child)
    return digest.digest()


class SignatureTable(Mapping[int, bytes]):
    """
    Read-only mapping of node id to subtree signature for one tree.
    """

    def __init__(self, signatures: Dict[int, bytes]):
        self._signatures = signatures

    def __getitem__(self, node_id: int) -> bytes:
        return self._signatures[node_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self._signatures)

    def __len__(self) -> int:
        return len(self._signatures)

    def hexdigest(self, node_id: int) -> str:
        """
        Return the signature of ``node_id`` as a hexadecimal string.
        """
        return self._signatures[node_id].hex()


def compute_signatures(tree: "Tree") -> SignatureTable:
    """
    Compute the signature of every node in ``tree``.

    Nodes are visited in reverse document order, so every child signature
    is available before its parent's is computed.

    :param tree: The tree to compute signatures for.
    :type tree: ``Tree``
    :returns: A signature table for ``tree``.
    :rtype: ``SignatureTable``
    """
    start_time = datetime.now()
    signatures: Dict[int, bytes] = {}
    for node in reversed(list(tree)):
        signatures[node.node_id] = node_signature(
            node, (signatures[child] for child in node.children)
        )
    end_time = datetime.now()
    _log_debug_signature(
        "Computed %d signatures in %s (root=%s)",
        len(signatures),
        end_time - start_time,
        signatures[tree.root].hex(),
    )
    return SignatureTable(signatures)


__all__ = [
    "SIGNATURE_SIZE",
    "SignatureTable",
    "compute_signatures",
    "node_signature",
]
