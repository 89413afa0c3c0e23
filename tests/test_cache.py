import pytest

from agencyops.store.cache import INVALIDATES, QueryCache, QueryStatus, affected_keys


def test_fetch_caches_success_until_invalidated() -> None:
    cache = QueryCache()
    calls = []

    def loader():
        calls.append(1)
        return ["row"]

    assert cache.fetch("clients", {"market": "SG"}, loader) == ["row"]
    assert cache.fetch("clients", {"market": "SG"}, loader) == ["row"]
    assert len(calls) == 1
    assert cache.entry("clients", {"market": "SG"}).status is QueryStatus.SUCCESS

    cache.invalidate("clients")
    cache.fetch("clients", {"market": "SG"}, loader)
    assert len(calls) == 2


def test_filters_are_part_of_the_key() -> None:
    assert QueryCache.key("tasks", {"b": 1, "a": None}) == QueryCache.key("tasks", {"b": "1"})
    assert QueryCache.key("tasks", {"b": 1}) != QueryCache.key("tasks", {"b": 2})


def test_failed_load_records_error_and_reraises() -> None:
    cache = QueryCache()

    def loader():
        raise RuntimeError("down")

    with pytest.raises(RuntimeError):
        cache.fetch("invoices", None, loader)
    entry = cache.entry("invoices")
    assert entry.status is QueryStatus.ERROR
    assert str(entry.error) == "down"
    assert cache.fetch("invoices", None, lambda: []) == []


def test_client_mutation_invalidates_dependent_queries() -> None:
    cache = QueryCache()
    for entity in ("clients", "pipeline-clients", "deliverables", "invoices", "notifications"):
        cache.fetch(entity, None, lambda: [])

    dropped = cache.invalidate_for("clients")

    assert dropped == 4
    assert len(cache) == 1
    assert cache.entry("notifications") is not None


def test_every_entity_invalidates_itself_or_its_views() -> None:
    for entity, keys in INVALIDATES.items():
        assert keys, entity
    assert "pipeline-clients" in affected_keys("pipeline")
    assert "activity-logs" in affected_keys("portal-messages")


def test_undeclared_entity_is_an_error() -> None:
    with pytest.raises(KeyError):
        affected_keys("widgets")
