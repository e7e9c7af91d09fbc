"""Hash trees as used in certified data, with their root hash and CBOR encoding."""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import cbor2

__all__ = [
    "Hash",
    "HashTree",
    "Empty",
    "Fork",
    "Labeled",
    "Leaf",
    "Pruned",
    "fork",
    "labeled",
    "fork_hash",
    "leaf_hash",
    "labeled_hash",
    "empty_hash",
]

Hash = bytes
"""A 32-byte SHA-256 digest."""

HASH_SIZE = 32
_SELF_DESCRIBE_TAG = 55799


def _domain_sep(name: str) -> "hashlib._Hash":
    encoded = name.encode("ascii")
    hasher = hashlib.sha256()
    hasher.update(bytes([len(encoded)]))
    hasher.update(encoded)
    return hasher


def _check_hash(value: bytes, what: str) -> bytes:
    value = bytes(value)
    if len(value) != HASH_SIZE:
        raise ValueError(f"{what} must be {HASH_SIZE} bytes, got {len(value)}")
    return value


def empty_hash() -> Hash:
    """Return the hash of an empty tree."""
    return _domain_sep("ic-hashtree-empty").digest()


def fork_hash(left: Hash, right: Hash) -> Hash:
    """Hash a fork from the hashes of its two branches."""
    hasher = _domain_sep("ic-hashtree-fork")
    hasher.update(_check_hash(left, "left hash"))
    hasher.update(_check_hash(right, "right hash"))
    return hasher.digest()


def leaf_hash(data: bytes) -> Hash:
    """Hash the contents of a leaf."""
    hasher = _domain_sep("ic-hashtree-leaf")
    hasher.update(bytes(data))
    return hasher.digest()


def labeled_hash(label: bytes, content_hash: Hash) -> Hash:
    """Hash a label together with the hash of the subtree it names."""
    hasher = _domain_sep("ic-hashtree-labeled")
    hasher.update(bytes(label))
    hasher.update(_check_hash(content_hash, "content hash"))
    return hasher.digest()


class HashTree(ABC):
    """A node of a hash tree."""

    __slots__ = ()

    @abstractmethod
    def reconstruct(self) -> Hash:
        """Compute the root hash of this tree."""

    @abstractmethod
    def _cbor_value(self) -> list[Any]:
        """Return the nested list form used for CBOR encoding."""

    def to_cbor(self, self_describe: bool = False) -> bytes:
        """Encode the tree as CBOR, optionally with the self-describe tag."""
        value: Any = self._cbor_value()
        if self_describe:
            value = cbor2.CBORTag(_SELF_DESCRIBE_TAG, value)
        return cbor2.dumps(value)


@dataclass(frozen=True)
class Empty(HashTree):
    """A tree with no children; proves absence."""

    def reconstruct(self) -> Hash:
        return empty_hash()

    def _cbor_value(self) -> list[Any]:
        return [0]


@dataclass(frozen=True)
class Fork(HashTree):
    """A pair of left and right branches."""

    left: HashTree
    right: HashTree

    def reconstruct(self) -> Hash:
        return fork_hash(self.left.reconstruct(), self.right.reconstruct())

    def _cbor_value(self) -> list[Any]:
        return [1, self.left._cbor_value(), self.right._cbor_value()]


@dataclass(frozen=True)
class Labeled(HashTree):
    """A subtree under a label."""

    label: bytes
    tree: HashTree

    def __post_init__(self) -> None:
        object.__setattr__(self, "label", bytes(self.label))

    def reconstruct(self) -> Hash:
        return labeled_hash(self.label, self.tree.reconstruct())

    def _cbor_value(self) -> list[Any]:
        return [2, self.label, self.tree._cbor_value()]


@dataclass(frozen=True)
class Leaf(HashTree):
    """A leaf holding a value."""

    data: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))

    def reconstruct(self) -> Hash:
        return leaf_hash(self.data)

    def _cbor_value(self) -> list[Any]:
        return [3, self.data]


@dataclass(frozen=True)
class Pruned(HashTree):
    """A branch left out of this view, represented only by its hash."""

    digest: Hash

    def __post_init__(self) -> None:
        object.__setattr__(self, "digest", _check_hash(self.digest, "pruned digest"))

    def reconstruct(self) -> Hash:
        return self.digest

    def _cbor_value(self) -> list[Any]:
        return [4, self.digest]


def fork(left: HashTree, right: HashTree) -> Fork:
    """Build a fork of two trees."""
    return Fork(left, right)


def labeled(label: bytes, tree: HashTree) -> Labeled:
    """Build a labeled subtree."""
    return Labeled(label, tree)