from backtree.interner import StringPool


def test_intern_is_idempotent():
    pool = StringPool()
    a = pool.intern("Library")
    b = pool.intern("Library")
    assert a == b
    assert hash(a) == hash(b)
    assert str(a) == "Library" and b.text == "Library"
    assert len(pool) == 1


def test_distinct_text_distinct_handles():
    pool = StringPool()
    a, b = pool.intern("a"), pool.intern("b")
    assert a != b
    assert len(pool) == 2
    # handles work as dict keys by text
    d = {a: 1}
    assert d[pool.intern("a")] == 1
    assert b not in d


def test_equality_is_by_text_across_pools():
    p1, p2 = StringPool(), StringPool()
    p2.intern("padding")
    assert p1.intern("x") == p2.intern("x")
