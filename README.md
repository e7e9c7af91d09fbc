# certmap

A map backed by a Merkle tree, which lets you prove the presence or absence of
entries against a single root hash. It also provides value types for ledger
accounts, token amounts, transfers and blocks, and textual principal
identifiers.

## Installation

```
pip install certmap
```

To run the test suite:

```
pip install "certmap[test]"
pytest
```

## Hash trees

`certmap.hashtree` defines the hash tree nodes `Empty`, `Fork`, `Labeled`,
`Leaf` and `Pruned`, all frozen dataclasses deriving from `HashTree`.
`reconstruct()` returns the 32-byte root hash of a tree, and
`to_cbor(self_describe=False)` returns its CBOR encoding; with
`self_describe=True` the encoding is wrapped in the CBOR self-describe tag.

```python
from certmap.hashtree import Leaf, Empty, fork, labeled

tree = fork(labeled(b"x", Leaf(b"hello")), labeled(b"y", Empty()))
root = tree.reconstruct()
encoded = tree.to_cbor(self_describe=True)
```

The helpers `fork_hash`, `leaf_hash`, `labeled_hash` and `empty_hash` compute
the domain-separated SHA-256 hashes for the node kinds. `fork_hash`,
`labeled_hash` and `Pruned` reject hashes that are not 32 bytes long with
`ValueError`.

## Certified maps

`certmap.rbtree.RbTree` is a left-leaning red-black tree with byte-string
keys. Every node keeps the hash of its subtree, so `root_hash()` is always
ready to be certified.

```python
from certmap.rbtree import RbTree
from certmap.hashtree import leaf_hash

tree = RbTree()
tree.insert(b"counter", leaf_hash((1).to_bytes(4, "big")))
tree.root_hash()
```

Values may be byte strings (hashed as a leaf) or any object with a
`root_hash()` method, such as a nested `RbTree`.

- `RbTree(items)` builds a map from an iterable of `(key, value)` pairs.
- `get(key)` returns the value or `None`; `key in tree` tests presence.
- `insert(key, value)` adds or replaces; `delete(key)` removes, ignoring
  absent keys.
- `modify(key, func)` passes the current value to `func`; a non-`None` return
  value replaces it, otherwise the value is taken to have been changed in
  place. The hashes along the path are refreshed.
- Iterating yields `(key, value)` pairs in key order; `for_each(func)` calls
  `func(key, value)` for each.
- `lower_bound`, `upper_bound` and `right_prefix_neighbor` return a `KeyBound`
  (a key and whether it matched exactly) or `None`.
- `is_balanced()` checks the red-black invariants.
- Trees compare equal, and order, by their entry lists.

## Witnesses

`certmap.witness` builds hash trees that prove facts about an `RbTree`. Every
witness reconstructs to the tree's root hash.

```python
from certmap import witness

proof = witness.witness(tree, b"counter")
assert proof.reconstruct() == tree.root_hash()
```

- `witness(tree, key)` proves a key with its value, or proves its absence.
- `nested_witness(tree, key, func)` lets `func` build the value's part, for
  nested maps.
- `keys(tree)`, `key_range(tree, first, last)` and
  `keys_with_prefix(tree, prefix)` enumerate keys with values pruned.
- `value_range(tree, first, last)` includes the values too.
- `full_tree(tree)` is the complete hash tree; `hash_tree_of(value)` and
  `three_way_fork(left, middle, right)` are the building blocks.

## Principals

`certmap.principal.Principal` holds up to 29 bytes and converts to and from
the dashed, checksummed base32 text form. `Principal.from_text` raises
`PrincipalError` (a `ValueError`) for bad characters, a wrong checksum or
non-canonical grouping. `Principal.anonymous()` and
`Principal.management_canister()` give the two well-known principals.

## Ledger types

`certmap.ledger` holds `Tokens`, `Subaccount`, `AccountIdentifier`, `Memo`,
`Timestamp`, `TransferArgs`, `Transaction`, `Block`, the `Operation` kinds
(`Mint`, `Burn`, `Transfer`, `Approve`, `TransferFrom`), the `TransferError`
and `GetBlocksError` kinds, and the block query records.

```python
from certmap.principal import Principal
from certmap.ledger import AccountIdentifier, DEFAULT_SUBACCOUNT, Tokens

owner = Principal.from_text("ryjl3-tyaaa-aaaaa-aaaba-cai")
account = AccountIdentifier.new(owner, DEFAULT_SUBACCOUNT)
print(account)                        # 64 hex digits
print(Tokens.from_e8s(150_000_000))   # 1.50000000
```

`Tokens` addition and subtraction raise `OverflowError` outside the unsigned
64-bit range. `AccountIdentifier.from_bytes` raises `ValueError` when the
leading CRC-32 checksum does not match. `Subaccount.from_principal` encodes a
principal as a length byte followed by its bytes. The constants
`DEFAULT_FEE`, `DEFAULT_SUBACCOUNT` and the `MAINNET_*_CANISTER_ID`
principals are provided.

## What this package does not do

The ledger module holds data types only: it does not contact a ledger, so
there is nothing here to query a balance, send a transfer or fetch blocks,
and the ledger types have no wire encoding. Certificates themselves are not
obtained or verified; the package builds and hashes the trees that a
certificate would cover.