"""Hash-tree witnesses that prove the presence, absence or range of keys in an RbTree."""

from __future__ import annotations

from typing import Any, Callable, Optional

from certmap.hashtree import (
    Empty,
    HashTree,
    Leaf,
    Pruned,
    fork,
    fork_hash,
    labeled,
)
from certmap.rbtree import KeyBound, RbTree, _Node, root_hash_of

__all__ = [
    "hash_tree_of",
    "three_way_fork",
    "full_tree",
    "witness",
    "nested_witness",
    "keys",
    "key_range",
    "value_range",
    "keys_with_prefix",
]

_NodeTree = Callable[[_Node], HashTree]


def hash_tree_of(value: Any) -> HashTree:
    """Return the full hash tree that a stored value stands for.

    Nested trees expand to their full tree, objects with an ``as_hash_tree``
    method supply their own, and byte strings become a leaf.
    """
    if isinstance(value, RbTree):
        return full_tree(value)
    method = getattr(value, "as_hash_tree", None)
    if callable(method):
        return method()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return Leaf(bytes(value))
    raise TypeError(f"cannot build a hash tree for {type(value).__name__}")


def three_way_fork(left: HashTree, middle: HashTree, right: HashTree) -> HashTree:
    """Join a left subtree, a node and a right subtree, collapsing what it can."""
    left_empty = isinstance(left, Empty)
    right_empty = isinstance(right, Empty)
    if left_empty and right_empty:
        return middle
    if right_empty:
        return fork(left, middle)
    if left_empty:
        return fork(middle, right)
    if isinstance(middle, Pruned) and isinstance(right, Pruned):
        joined = fork_hash(middle.digest, right.digest)
        if isinstance(left, Pruned):
            return Pruned(fork_hash(left.digest, joined))
        return fork(left, Pruned(joined))
    return fork(left, fork(middle, right))


def _data_tree(node: _Node) -> HashTree:
    return labeled(node.key, hash_tree_of(node.value))


def _witness_tree(node: _Node) -> HashTree:
    return labeled(node.key, Pruned(root_hash_of(node.value)))


def _left_hash_tree(node: _Node) -> HashTree:
    return Empty() if node.left is None else Pruned(node.left.subtree_hash)


def _right_hash_tree(node: _Node) -> HashTree:
    return Empty() if node.right is None else Pruned(node.right.subtree_hash)


def _full(node: Optional[_Node], make: _NodeTree) -> HashTree:
    if node is None:
        return Empty()
    return three_way_fork(_full(node.left, make), make(node), _full(node.right, make))


def _cmp(a: bytes, b: bytes) -> int:
    return (a > b) - (a < b)


def _bounded(node: _Node, bound: KeyBound, make: _NodeTree) -> HashTree:
    return make(node) if bound.exact else _witness_tree(node)


def _range_above(node: Optional[_Node], lo: KeyBound, make: _NodeTree) -> HashTree:
    if node is None:
        return Empty()
    order = _cmp(node.key, lo.key)
    if order == 0:
        return three_way_fork(
            _left_hash_tree(node), _bounded(node, lo, make), _full(node.right, make)
        )
    if order < 0:
        return three_way_fork(
            _left_hash_tree(node),
            Pruned(node.data_hash()),
            _range_above(node.right, lo, make),
        )
    return three_way_fork(
        _range_above(node.left, lo, make), make(node), _full(node.right, make)
    )


def _range_below(node: Optional[_Node], hi: KeyBound, make: _NodeTree) -> HashTree:
    if node is None:
        return Empty()
    order = _cmp(node.key, hi.key)
    if order == 0:
        return three_way_fork(
            _full(node.left, make), _bounded(node, hi, make), _right_hash_tree(node)
        )
    if order > 0:
        return three_way_fork(
            _range_below(node.left, hi, make),
            Pruned(node.data_hash()),
            _right_hash_tree(node),
        )
    return three_way_fork(
        _full(node.left, make), make(node), _range_below(node.right, hi, make)
    )


def _range_between(
    node: Optional[_Node], lo: KeyBound, hi: KeyBound, make: _NodeTree
) -> HashTree:
    if node is None:
        return Empty()
    lo_order = _cmp(lo.key, node.key)
    hi_order = _cmp(node.key, hi.key)
    if lo_order < 0 and hi_order < 0:
        return three_way_fork(
            _range_between(node.left, lo, hi, make),
            make(node),
            _range_between(node.right, lo, hi, make),
        )
    if lo_order == 0 and hi_order == 0:
        middle = make(node) if (lo.exact or hi.exact) else _witness_tree(node)
        return three_way_fork(_left_hash_tree(node), middle, _right_hash_tree(node))
    if hi_order == 0:
        return three_way_fork(
            _range_between(node.left, lo, hi, make),
            _bounded(node, hi, make),
            _right_hash_tree(node),
        )
    if lo_order == 0:
        return three_way_fork(
            _left_hash_tree(node),
            _bounded(node, lo, make),
            _range_between(node.right, lo, hi, make),
        )
    if lo_order < 0 and hi_order > 0:
        return three_way_fork(
            _range_between(node.left, lo, hi, make),
            Pruned(node.data_hash()),
            _right_hash_tree(node),
        )
    if lo_order > 0 and hi_order < 0:
        return three_way_fork(
            _left_hash_tree(node),
            Pruned(node.data_hash()),
            _range_between(node.right, lo, hi, make),
        )
    return Pruned(node.subtree_hash)


def _range_witness(
    tree: RbTree,
    lo: Optional[KeyBound],
    hi: Optional[KeyBound],
    make: _NodeTree,
) -> HashTree:
    root = tree._root
    if lo is None and hi is None:
        return _full(root, make)
    if hi is None:
        return _range_above(root, lo, make)
    if lo is None:
        return _range_below(root, hi, make)
    if lo.key > hi.key:
        raise ValueError(f"lower bound {lo.key!r} is above upper bound {hi.key!r}")
    return _range_between(root, lo, hi, make)


def _lookup(
    node: Optional[_Node], key: bytes, func: Callable[[Any], HashTree]
) -> Optional[HashTree]:
    if node is None:
        return None
    if key == node.key:
        return three_way_fork(
            _left_hash_tree(node),
            labeled(node.key, func(node.value)),
            _right_hash_tree(node),
        )
    if key < node.key:
        subtree = _lookup(node.left, key, func)
        if subtree is None:
            return None
        return three_way_fork(subtree, Pruned(node.data_hash()), _right_hash_tree(node))
    subtree = _lookup(node.right, key, func)
    if subtree is None:
        return None
    return three_way_fork(_left_hash_tree(node), Pruned(node.data_hash()), subtree)


def full_tree(tree: RbTree) -> HashTree:
    """Return the complete hash tree of a map, keys and values included."""
    return _full(tree._root, _data_tree)


def nested_witness(
    tree: RbTree, key: bytes, func: Callable[[Any], HashTree]
) -> HashTree:
    """Prove the presence of ``key``, letting ``func`` build the value's witness.

    If the key is absent, a proof of absence is returned instead.
    """
    key = bytes(key)
    found = _lookup(tree._root, key, func)
    if found is not None:
        return found
    return _range_witness(
        tree, tree.lower_bound(key), tree.upper_bound(key), _witness_tree
    )


def witness(tree: RbTree, key: bytes) -> HashTree:
    """Prove the presence of ``key`` with its value, or prove its absence."""
    return nested_witness(tree, key, hash_tree_of)


def keys(tree: RbTree) -> HashTree:
    """Enumerate every key; values are replaced by pruned hashes."""
    return _full(tree._root, _witness_tree)


def key_range(tree: RbTree, first: bytes, last: bytes) -> HashTree:
    """Witness the keys between ``first`` and ``last``, values pruned."""
    return _range_witness(
        tree, tree.lower_bound(first), tree.upper_bound(last), _witness_tree
    )


def value_range(tree: RbTree, first: bytes, last: bytes) -> HashTree:
    """Witness the keys and values between ``first`` and ``last``."""
    return _range_witness(
        tree, tree.lower_bound(first), tree.upper_bound(last), _data_tree
    )


def keys_with_prefix(tree: RbTree, prefix: bytes) -> HashTree:
    """Witness every key that starts with ``prefix``, values pruned."""
    return _range_witness(
        tree,
        tree.lower_bound(prefix),
        tree.right_prefix_neighbor(prefix),
        _witness_tree,
    )