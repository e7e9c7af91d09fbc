import pytest

from certmap.hashtree import empty_hash, labeled_hash, leaf_hash
from certmap.rbtree import KeyBound, RbTree, root_hash_of


def be(n):
    return n.to_bytes(8, "big")


def le(n):
    return n.to_bytes(8, "little")


def test_key_bounds():
    t = RbTree()
    t.insert(bytes([1]), bytes([10]))
    t.insert(bytes([3]), bytes([30]))

    assert t.lower_bound(bytes([0])) is None
    assert t.lower_bound(bytes([1])) == KeyBound(bytes([1]), exact=True)
    assert t.lower_bound(bytes([2])) == KeyBound(bytes([1]), exact=False)
    assert t.lower_bound(bytes([3])) == KeyBound(bytes([3]), exact=True)
    assert t.lower_bound(bytes([4])) == KeyBound(bytes([3]), exact=False)

    assert t.upper_bound(bytes([0])) == KeyBound(bytes([1]), exact=False)
    assert t.upper_bound(bytes([1])) == KeyBound(bytes([1]), exact=True)
    assert t.upper_bound(bytes([2])) == KeyBound(bytes([3]), exact=False)
    assert t.upper_bound(bytes([3])) == KeyBound(bytes([3]), exact=True)
    assert t.upper_bound(bytes([4])) is None


def test_prefix_neighbor():
    t = RbTree()
    t.insert(b"a/b", bytes([0]))
    t.insert(b"a/b/c", bytes([1]))
    t.insert(b"a/b/d", bytes([2]))
    t.insert(b"a/c/d", bytes([3]))

    assert t.right_prefix_neighbor(b"a/b/c") == KeyBound(b"a/b/d", exact=False)
    assert t.right_prefix_neighbor(b"a/b") == KeyBound(b"a/c/d", exact=False)
    assert t.right_prefix_neighbor(b"a/c/d") is None
    assert t.right_prefix_neighbor(b"a") is None


def test_simple_delete():
    t = RbTree()
    t.insert(b"x", b"a")
    t.insert(b"y", b"b")
    t.insert(b"z", b"c")

    t.delete(b"x")
    assert t.get(b"x") is None
    assert t.get(b"y") == b"b"
    assert t.get(b"z") == b"c"

    t.delete(b"y")
    assert t.get(b"y") is None
    assert t.get(b"z") == b"c"

    t.delete(b"z")
    assert t.get(b"z") is None
    assert t.is_empty()


def test_simple_delete_2():
    t = RbTree()
    t.insert(b"x", b"y")
    t.insert(b"z", b"w")

    t.delete(b"z")
    assert t.get(b"z") is None
    assert t.get(b"x") == b"y"


def test_delete_missing_key_is_noop():
    t = RbTree([(b"a", b"1"), (b"b", b"2")])
    before = t.root_hash()
    t.delete(b"zz")
    assert t.root_hash() == before
    assert list(t) == [(b"a", b"1"), (b"b", b"2")]


def test_map_model():
    keys = [be(i) for i in range(100)]
    rb = RbTree()
    for count, key in enumerate(keys, start=1):
        rb.insert(key, key)
        assert rb.is_balanced()
        for present in keys[:count]:
            assert rb.get(present) == present

    remaining = list(keys)
    for key in keys[::2] + keys[1::2]:
        remaining.remove(key)
        assert key in rb
        rb.delete(key)
        assert key not in rb
        assert rb.get(key) is None
        assert rb.is_balanced()
        for other in remaining:
            assert rb.get(other) == other
    assert rb.is_empty()


def test_iter():
    t = RbTree()
    expected = []
    for k in range(100):
        t.insert(be(k), be(k + 10))
        expected.append((be(k), be(k + 10)))
        assert list(t) == expected


def test_equality():
    t1 = RbTree()
    for k in reversed(range(100)):
        t1.insert(be(k), be(k + 10))
    t2 = RbTree((be(k), be(k + 10)) for k in range(100))

    assert t1 == t2
    assert not (t1 < t2) and not (t2 < t1)

    t1.insert(be(200), be(210))
    assert not (t1 == t2)
    assert t2 < t1


def test_ordering():
    t1 = RbTree((be(k), be(k)) for k in range(10))
    t2 = RbTree((be(k), be(k + 1)) for k in range(10))
    t3 = RbTree((be(k), be(k)) for k in range(5))
    t4 = RbTree((be(k), be(k)) for k in range(1, 5))

    assert t1 < t2
    assert t1 > t3
    assert t1 < t4


def test_get_after_inserting_odd_keys():
    t = RbTree()
    for i in range(10):
        key, val = be(1 + 2 * i), le(1 + 2 * i)
        t.insert(key, val)
        assert t.get(key) == val
    assert t.get(be(4)) is None


def test_root_hash_empty_and_single():
    t = RbTree()
    assert t.root_hash() == empty_hash()
    t.insert(b"key", b"value")
    assert t.root_hash() == labeled_hash(b"key", leaf_hash(b"value"))


def test_root_hash_changes_with_value():
    t = RbTree([(b"a", b"1"), (b"b", b"2"), (b"c", b"3")])
    before = t.root_hash()
    t.insert(b"b", b"changed")
    assert t.root_hash() != before
    t.insert(b"b", b"2")
    assert t.root_hash() == before


def test_modify_matches_insert():
    items = [(be(i), be(i)) for i in range(20)]
    modified = RbTree(items)
    inserted = RbTree(items)

    modified.modify(be(7), lambda v: b"new")
    inserted.insert(be(7), b"new")

    assert modified.get(be(7)) == b"new"
    assert modified.root_hash() == inserted.root_hash()


def test_modify_nested_in_place():
    nested = RbTree([(b"bottom", b"data")])
    rb = RbTree([(b"top", nested)])
    assert rb.root_hash() == labeled_hash(b"top", nested.root_hash())

    rb.modify(b"top", lambda m: m.delete(b"bottom"))
    assert rb.get(b"top").is_empty()
    assert rb.root_hash() == labeled_hash(b"top", empty_hash())


def test_modify_missing_key_does_nothing():
    t = RbTree([(b"a", b"1")])
    calls = []
    t.modify(b"b", lambda v: calls.append(v))
    assert calls == []
    assert t.get(b"a") == b"1"


def test_for_each_in_order():
    t = RbTree([(b"c", b"3"), (b"a", b"1"), (b"b", b"2")])
    seen = []
    t.for_each(lambda k, v: seen.append((k, v)))
    assert seen == [(b"a", b"1"), (b"b", b"2"), (b"c", b"3")]


def test_root_hash_of():
    assert root_hash_of(b"abc") == leaf_hash(b"abc")
    tree = RbTree([(b"k", b"v")])
    assert root_hash_of(tree) == tree.root_hash()
    with pytest.raises(TypeError):
        root_hash_of(42)


def test_repr():
    t = RbTree([(b"b", b"y"), (b"a", b"x")])
    assert repr(t) == "RbTree([(b'a', b'x'), (b'b', b'y')])"


def test_contains_rejects_non_bytes():
    t = RbTree([(b"a", b"x")])
    assert b"a" in t
    assert "a" not in t