"""Document store contract, run against both the in-memory and the SQL backend."""
import pytest

from ijf_bracket.store import InMemoryDocumentStore


@pytest.fixture(params=["memory", "sql"])
def any_store(request, store):
    if request.param == "memory":
        return InMemoryDocumentStore()
    return store


def test_get_missing_returns_none(any_store):
    assert any_store.get("tournament/matches/nope") is None


def test_set_overwrites_and_get_returns_copy(any_store):
    any_store.set("doc", {"a": 1, "nested": {"b": 2}})
    any_store.set("doc", {"a": 3})

    data = any_store.get("doc")
    assert data == {"a": 3}
    data["a"] = 99
    assert any_store.get("doc") == {"a": 3}


def test_update_merges_top_level_fields(any_store):
    any_store.set("doc", {"slot_a": {"name": "x"}, "slot_b": None, "status": "pending"})
    any_store.update("doc", {"slot_b": {"name": "y"}})

    assert any_store.get("doc") == {"slot_a": {"name": "x"}, "slot_b": {"name": "y"}, "status": "pending"}


def test_update_creates_missing_document(any_store):
    any_store.update("doc", {"status": "pending"})

    assert any_store.get("doc") == {"status": "pending"}


def test_delete(any_store):
    any_store.set("doc", {"a": 1})
    any_store.delete("doc")
    any_store.delete("doc")

    assert any_store.get("doc") is None


class TestCompareAndSwap:
    def test_create_if_absent(self, any_store):
        assert any_store.compare_and_swap("lock", None, {"holder_id": "d1"}) is True
        assert any_store.compare_and_swap("lock", None, {"holder_id": "d2"}) is False
        assert any_store.get("lock") == {"holder_id": "d1"}

    def test_swap_requires_expected_value(self, any_store):
        any_store.set("doc", {"v": 1})

        assert any_store.compare_and_swap("doc", {"v": 2}, {"v": 3}) is False
        assert any_store.compare_and_swap("doc", {"v": 1}, {"v": 3}) is True
        assert any_store.get("doc") == {"v": 3}

    def test_swap_to_none_deletes(self, any_store):
        any_store.set("doc", {"v": 1})

        assert any_store.compare_and_swap("doc", {"v": 1}, None) is True
        assert any_store.get("doc") is None

    def test_expected_absent_but_present_fails(self, any_store):
        any_store.set("doc", {"v": 1})

        assert any_store.compare_and_swap("doc", None, None) is False


class TestSubscribe:
    def test_receives_current_then_changes(self, any_store):
        any_store.set("doc", {"v": 1})
        seen = []

        unsubscribe = any_store.subscribe("doc", seen.append)
        any_store.update("doc", {"w": 2})
        any_store.delete("doc")
        unsubscribe()
        any_store.set("doc", {"v": 5})

        assert seen == [{"v": 1}, {"v": 1, "w": 2}, None]

    def test_only_committed_swaps_notify(self, any_store):
        seen = []
        any_store.subscribe("lock", seen.append)

        any_store.compare_and_swap("lock", None, {"holder_id": "d1"})
        any_store.compare_and_swap("lock", None, {"holder_id": "d2"})

        assert seen == [None, {"holder_id": "d1"}]

    def test_failing_subscriber_does_not_break_writer(self, any_store, caplog):
        def broken(_):
            raise RuntimeError("boom")

        any_store.set("doc", {"v": 1})
        any_store.subscribe("doc", broken)
        any_store.set("doc", {"v": 2})

        assert any_store.get("doc") == {"v": 2}
        assert "Subscriber for doc raised" in caplog.text
