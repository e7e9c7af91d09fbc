import hashlib

import cbor2
import pytest

from certmap.hashtree import (
    Empty,
    Fork,
    Labeled,
    Leaf,
    Pruned,
    empty_hash,
    fork,
    fork_hash,
    labeled,
    labeled_hash,
    leaf_hash,
)


def _spec_example():
    return fork(
        fork(
            labeled(
                b"a",
                fork(
                    fork(labeled(b"x", Leaf(b"hello")), Empty()),
                    labeled(b"y", Leaf(b"world")),
                ),
            ),
            labeled(b"b", Leaf(b"good")),
        ),
        fork(
            labeled(b"c", Empty()),
            labeled(b"d", Leaf(b"morning")),
        ),
    )


def test_public_spec_example_root_hash():
    tree = _spec_example()
    assert (
        tree.reconstruct().hex()
        == "eb5c5b2195e62d996b84c9bcc8259d19a83786a2f59e0878cec84c811f669aa0"
    )


def test_public_spec_example_cbor():
    tree = _spec_example()
    assert tree.to_cbor().hex() == (
        "8301830183024161830183018302417882034568656c6c6f810083024179820345776f726c64"
        "83024162820344676f6f648301830241638100830241648203476d6f726e696e67"
    )


def test_self_describe_prefix():
    encoded = Empty().to_cbor(self_describe=True)
    assert encoded[:3] == bytes.fromhex("d9d9f7")
    assert encoded[3:] == Empty().to_cbor()


def test_cbor_decodes_to_nested_lists():
    tree = fork(labeled(b"k", Leaf(b"v")), Pruned(bytes(32)))
    assert cbor2.loads(tree.to_cbor()) == [1, [2, b"k", [3, b"v"]], [4, bytes(32)]]


def test_empty_reconstructs_to_empty_hash():
    assert Empty().reconstruct() == empty_hash()
    assert len(empty_hash()) == 32


def test_empty_hash_uses_domain_separator():
    name = b"ic-hashtree-empty"
    assert empty_hash() == hashlib.sha256(bytes([len(name)]) + name).digest()


def test_pruned_reconstructs_to_its_digest():
    digest = bytes(range(32))
    assert Pruned(digest).reconstruct() == digest


def test_pruned_rejects_wrong_length():
    with pytest.raises(ValueError):
        Pruned(b"short")


def test_fork_reconstruct_matches_fork_hash():
    left, right = Leaf(b"l"), Leaf(b"r")
    assert Fork(left, right).reconstruct() == fork_hash(leaf_hash(b"l"), leaf_hash(b"r"))


def test_labeled_reconstruct_matches_labeled_hash():
    tree = Labeled(b"name", Leaf(b"value"))
    assert tree.reconstruct() == labeled_hash(b"name", leaf_hash(b"value"))


def test_pruning_preserves_root_hash():
    subtree = labeled(b"a", Leaf(b"hello"))
    full = fork(subtree, Leaf(b"other"))
    pruned = fork(Pruned(subtree.reconstruct()), Leaf(b"other"))
    assert full.reconstruct() == pruned.reconstruct()


def test_fork_order_matters():
    a, b = leaf_hash(b"a"), leaf_hash(b"b")
    assert fork_hash(a, b) != fork_hash(b, a)


def test_fork_hash_rejects_bad_input_length():
    with pytest.raises(ValueError):
        fork_hash(b"x", bytes(32))


def test_helpers_build_expected_nodes():
    assert fork(Empty(), Empty()) == Fork(Empty(), Empty())
    assert labeled(bytearray(b"k"), Empty()) == Labeled(b"k", Empty())