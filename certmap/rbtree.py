"""A left-leaning red-black tree map that keeps Merkle hashes of its subtrees."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Optional, Tuple

from certmap.hashtree import Hash, empty_hash, fork_hash, labeled_hash, leaf_hash

__all__ = ["KeyBound", "RbTree", "root_hash_of"]


def root_hash_of(value: Any) -> Hash:
    """Return the root hash of a value stored in a tree.

    Objects with a ``root_hash`` method (such as nested trees) supply their own;
    byte strings hash as a leaf.
    """
    method = getattr(value, "root_hash", None)
    if callable(method):
        return method()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return leaf_hash(bytes(value))
    raise TypeError(f"cannot compute a root hash for {type(value).__name__}")


@dataclass(frozen=True)
class KeyBound:
    """A key found while searching for a bound: the key itself or a neighbour."""

    key: bytes
    exact: bool


class _Node:
    """A tree node caching the hash of the subtree rooted at it."""

    __slots__ = ("key", "value", "left", "right", "red", "subtree_hash")

    def __init__(self, key: bytes, value: Any) -> None:
        self.key = key
        self.value = value
        self.left: Optional[_Node] = None
        self.right: Optional[_Node] = None
        self.red = True
        self.subtree_hash = self.data_hash()

    def data_hash(self) -> Hash:
        return labeled_hash(self.key, root_hash_of(self.value))

    def compute_subtree_hash(self) -> Hash:
        own = self.data_hash()
        left, right = self.left, self.right
        if left is None and right is None:
            return own
        if right is None:
            return fork_hash(left.subtree_hash, own)
        if left is None:
            return fork_hash(own, right.subtree_hash)
        return fork_hash(left.subtree_hash, fork_hash(own, right.subtree_hash))

    def update_subtree_hash(self) -> None:
        self.subtree_hash = self.compute_subtree_hash()


def _is_red(node: Optional[_Node]) -> bool:
    return node is not None and node.red


def _rotate_right(h: _Node) -> _Node:
    x = h.left
    h.left = x.right
    h.update_subtree_hash()
    x.right = h
    x.red = h.red
    h.red = True
    x.update_subtree_hash()
    return x


def _rotate_left(h: _Node) -> _Node:
    x = h.right
    h.right = x.left
    h.update_subtree_hash()
    x.left = h
    x.red = h.red
    h.red = True
    x.update_subtree_hash()
    return x


def _flip_colors(h: _Node) -> None:
    h.red = not h.red
    h.left.red = not h.left.red
    h.right.red = not h.right.red


def _balance(h: _Node) -> _Node:
    if _is_red(h.right) and not _is_red(h.left):
        h = _rotate_left(h)
    if _is_red(h.left) and _is_red(h.left.left):
        h = _rotate_right(h)
    if _is_red(h.left) and _is_red(h.right):
        _flip_colors(h)
    return h


def _insert(h: Optional[_Node], key: bytes, value: Any) -> _Node:
    if h is None:
        return _Node(key, value)
    if key == h.key:
        h.value = value
    elif key < h.key:
        h.left = _insert(h.left, key, value)
    else:
        h.right = _insert(h.right, key, value)
    h.update_subtree_hash()
    return _balance(h)


def _move_red_left(h: _Node) -> _Node:
    _flip_colors(h)
    if _is_red(h.right.left):
        h.right = _rotate_right(h.right)
        h = _rotate_left(h)
        _flip_colors(h)
    return h


def _move_red_right(h: _Node) -> _Node:
    _flip_colors(h)
    if _is_red(h.left.left):
        h = _rotate_right(h)
        _flip_colors(h)
    return h


def _min_node(h: _Node) -> _Node:
    while h.left is not None:
        h = h.left
    return h


def _delete_min(h: _Node) -> Optional[_Node]:
    if h.left is None:
        return None
    if not _is_red(h.left) and not _is_red(h.left.left):
        h = _move_red_left(h)
    h.left = _delete_min(h.left)
    h.update_subtree_hash()
    return _balance(h)


def _delete(h: _Node, key: bytes) -> Optional[_Node]:
    if key < h.key:
        if not _is_red(h.left) and not _is_red(h.left.left):
            h = _move_red_left(h)
        h.left = _delete(h.left, key)
    else:
        if _is_red(h.left):
            h = _rotate_right(h)
        if key == h.key and h.right is None:
            return None
        if not _is_red(h.right) and not _is_red(h.right.left):
            h = _move_red_right(h)
        if key == h.key:
            smallest = _min_node(h.right)
            h.key, smallest.key = smallest.key, h.key
            h.value, smallest.value = smallest.value, h.value
            h.right = _delete_min(h.right)
        else:
            h.right = _delete(h.right, key)
    h.update_subtree_hash()
    return _balance(h)


def _is_prefix_of(prefix: bytes, data: bytes) -> bool:
    return data.startswith(prefix)


@functools.total_ordering
class RbTree:
    """A mutable map from byte-string keys to hashable values, kept as an LLRB tree."""

    def __init__(self, items: Optional[Iterable[Tuple[bytes, Any]]] = None) -> None:
        self._root: Optional[_Node] = None
        if items is not None:
            for key, value in items:
                self.insert(key, value)

    def is_empty(self) -> bool:
        """Return True if the map holds no entries."""
        return self._root is None

    def _find(self, key: bytes) -> Optional[_Node]:
        node = self._root
        while node is not None:
            if key == node.key:
                return node
            node = node.left if key < node.key else node.right
        return None

    def get(self, key: bytes) -> Any:
        """Return the value stored under ``key``, or None."""
        node = self._find(bytes(key))
        return None if node is None else node.value

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (bytes, bytearray, memoryview)):
            return False
        return self._find(bytes(key)) is not None

    def insert(self, key: bytes, value: Any) -> None:
        """Insert or replace the value under ``key``."""
        root = _insert(self._root, bytes(key), value)
        root.red = False
        self._root = root

    def delete(self, key: bytes) -> None:
        """Remove ``key`` from the map; absent keys are ignored."""
        key = bytes(key)
        if self._find(key) is None:
            return
        root = self._root
        if not _is_red(root.left) and not _is_red(root.right):
            root.red = True
        self._root = _delete(root, key)
        if self._root is not None:
            self._root.red = False

    def modify(self, key: bytes, func: Callable[[Any], Any]) -> None:
        """Update the value under ``key`` with ``func`` and refresh the hashes.

        ``func`` receives the current value; if it returns something other than
        None, that becomes the new value, otherwise the value is taken to have
        been changed in place. Absent keys are ignored.
        """
        key = bytes(key)
        path = []
        node = self._root
        while node is not None:
            path.append(node)
            if key == node.key:
                break
            node = node.left if key < node.key else node.right
        if node is None:
            return
        replacement = func(node.value)
        if replacement is not None:
            node.value = replacement
        for visited in reversed(path):
            visited.update_subtree_hash()

    def __iter__(self) -> Iterator[Tuple[bytes, Any]]:
        stack: list[_Node] = []
        node = self._root
        while stack or node is not None:
            while node is not None:
                stack.append(node)
                node = node.left
            node = stack.pop()
            yield node.key, node.value
            node = node.right

    def for_each(self, func: Callable[[bytes, Any], Any]) -> None:
        """Call ``func(key, value)`` for every entry in key order."""
        for key, value in self:
            func(key, value)

    def root_hash(self) -> Hash:
        """Return the root hash of the hash tree this map stands for."""
        if self._root is None:
            return empty_hash()
        return self._root.subtree_hash

    def lower_bound(self, key: bytes) -> Optional[KeyBound]:
        """Find ``key`` itself or the greatest key below it."""
        key = bytes(key)

        def go(node: Optional[_Node]) -> Optional[KeyBound]:
            if node is None:
                return None
            if node.key < key:
                found = go(node.right)
                return found if found is not None else KeyBound(node.key, exact=False)
            if node.key == key:
                return KeyBound(node.key, exact=True)
            return go(node.left)

        return go(self._root)

    def upper_bound(self, key: bytes) -> Optional[KeyBound]:
        """Find ``key`` itself or the smallest key above it."""
        key = bytes(key)

        def go(node: Optional[_Node]) -> Optional[KeyBound]:
            if node is None:
                return None
            if node.key < key:
                return go(node.right)
            if node.key == key:
                return KeyBound(node.key, exact=True)
            found = go(node.left)
            return found if found is not None else KeyBound(node.key, exact=False)

        return go(self._root)

    def right_prefix_neighbor(self, prefix: bytes) -> Optional[KeyBound]:
        """Find the smallest key above every key that starts with ``prefix``."""
        prefix = bytes(prefix)

        def go(node: Optional[_Node]) -> Optional[KeyBound]:
            if node is None:
                return None
            if node.key > prefix:
                if _is_prefix_of(prefix, node.key):
                    return go(node.right)
                found = go(node.left)
                return found if found is not None else KeyBound(node.key, exact=False)
            return go(node.right)

        return go(self._root)

    def is_balanced(self) -> bool:
        """Check the red-black invariants: equal black height, no red-red links."""
        black_height = 0
        node = self._root
        while node is not None:
            if not node.red:
                black_height += 1
            node = node.left

        def go(node: Optional[_Node], remaining: int) -> bool:
            if node is None:
                return remaining == 0
            if node.red:
                if _is_red(node.left) or _is_red(node.right):
                    return False
            else:
                if remaining == 0:
                    return False
                remaining -= 1
            return go(node.left, remaining) and go(node.right, remaining)

        return go(self._root, black_height)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RbTree):
            return NotImplemented
        return list(self) == list(other)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RbTree):
            return NotImplemented
        return list(self) < list(other)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        entries = ", ".join(f"({key!r}, {value!r})" for key, value in self)
        return f"RbTree([{entries}])"