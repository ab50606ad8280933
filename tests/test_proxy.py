"""Tests for RefProxy — attribute/item access over a channel."""

import pytest

from refcentral import ABSENT, RefRegistry, create_proxy


class TestRefProxy:
    def test_set_and_get(self):
        api = RefRegistry().open_channel()
        p = api.create_proxy()
        p.gg = "abc"
        p["testing"] = 1234
        assert api.get_ref("gg") == "abc"
        assert api.get_ref("testing") == 1234
        assert p.gg == "abc"
        assert p["testing"] == 1234

    def test_reads_go_to_registry(self):
        api = RefRegistry().open_channel()
        p = api.create_proxy()
        api.set_ref("omg", "should exist")
        assert p.omg == "should exist"
        p.omg = "should be modified"
        assert api.get_ref("omg") == "should be modified"
        assert p.missing is ABSENT

    def test_keys_follow_proxy_writes(self):
        api = RefRegistry().open_channel()
        p = api.create_proxy()
        p.gg = 1
        p.testing = 2
        api.set_ref("elsewhere", 3)
        p.omg = 4
        assert list(p) == ["gg", "testing", "omg"]
        assert len(p) == 3

    def test_contains(self):
        api = RefRegistry().open_channel()
        p = api.create_proxy()
        api.set_ref("a", None)
        assert "a" in p
        assert "b" not in p
        assert 1 not in p

    def test_delete(self):
        api = RefRegistry().open_channel()
        p = api.create_proxy()
        removed = []
        p.gg = "abc"
        api.get_remove_ref("gg", lambda v, prm, k: removed.append(v))
        del p.gg
        assert removed == ["abc"]
        assert api.get_ref("gg") is ABSENT
        assert p.gg is ABSENT

    def test_delete_missing_fails(self):
        api = RefRegistry().open_channel()
        p = api.create_proxy()
        with pytest.raises(AttributeError):
            del p.not_exist
        with pytest.raises(KeyError):
            del p["not_exist"]

    def test_delete_key_not_written_through_proxy_fails(self):
        api = RefRegistry().open_channel()
        p = api.create_proxy()
        api.set_ref("outside", 1)
        with pytest.raises(KeyError):
            del p["outside"]
        assert api.get_ref("outside") == 1

    def test_target_items_become_refs(self):
        api = RefRegistry().open_channel()
        log = []
        for k in "abcd":
            api.get_ref(k, lambda v, prm, key: log.append((key, v)))
        p = api.create_proxy({"a": 1, "b": 2, "c": 3})
        assert [api.get_ref(k) for k in "abc"] == [1, 2, 3]
        assert api.get_ref("d") is ABSENT
        p.d = 4
        assert api.get_ref("d") == 4
        assert log == [("a", 1), ("b", 2), ("c", 3), ("d", 4)]

    def test_reuse(self):
        api = RefRegistry().open_channel()
        assert api.create_proxy() is not api.create_proxy()
        target = {}
        assert api.create_proxy(target) is api.create_proxy(target)
        assert create_proxy(api, target) is api.create_proxy(target)

    def test_clear_proxies(self):
        api = RefRegistry().open_channel()
        target = {"x": 1}
        first = api.create_proxy(target)
        assert api.cached_proxy(target) is first
        assert api.clear_proxies() == 1
        assert api.cached_proxy(target) is None
        assert api.create_proxy(target) is not first

    def test_untargeted_proxies_are_not_cached(self):
        api = RefRegistry().open_channel()
        api.create_proxy()
        api.create_proxy()
        assert api.clear_proxies() == 0

    def test_repr(self):
        api = RefRegistry().open_channel()
        p = api.create_proxy({"x": 1})
        assert "'x'" in repr(p)
