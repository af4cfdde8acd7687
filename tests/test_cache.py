import pytest

from conftest import SMALL_COSTS, FixedOracle, make_point
from routeseq.services.routing import oracle as oracle_module
from routeseq.services.routing.cache import ExpiringCache, geocode_cache_key, matrix_cache_key
from routeseq.services.routing.errors import OracleError
from routeseq.services.routing.oracle import CachingGeocoder, CachingOracle, build_geocoder, build_oracle


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = ExpiringCache(clock=clock)
    cache.set("k", "v", ttl_seconds=60)

    clock.now += 60
    assert cache.get("k") == "v"
    assert cache.has("k")

    clock.now += 1
    assert cache.get("k") is None
    assert not cache.has("k")
    assert len(cache) == 0


def test_clear_removes_everything():
    cache = ExpiringCache()
    cache.set("a", 1, 10)
    cache.set("b", 2, 10)
    assert len(cache) == 2
    cache.clear()
    assert cache.get("a") is None


def test_matrix_key_depends_on_order_and_traffic():
    a, b = make_point("A", 21.5, 39.2), make_point("B", 21.6, 39.3)
    assert matrix_cache_key([a, b], False) == matrix_cache_key([a, b], False)
    assert matrix_cache_key([a, b], False) != matrix_cache_key([b, a], False)
    assert matrix_cache_key([a, b], False) != matrix_cache_key([a, b], True)
    assert matrix_cache_key([a, b], True).startswith("matrix:")


def test_geocode_key_ignores_case_and_padding():
    assert geocode_cache_key("  King Road, Jeddah ") == geocode_cache_key("king road, jeddah")


def test_caching_oracle_serves_repeat_requests_from_cache():
    upstream = FixedOracle(SMALL_COSTS)
    oracle = CachingOracle(upstream, ExpiringCache(), ttl_seconds=900)
    points = [make_point("H", 21.5, 39.2), make_point("A", 21.6, 39.3)]

    first = oracle.matrix(points, traffic_aware=True)
    second = oracle.matrix(points, traffic_aware=True)
    oracle.matrix(points, traffic_aware=False)

    assert first is second
    assert len(upstream.calls) == 2


def test_caching_oracle_with_zero_ttl_does_not_store():
    upstream = FixedOracle(SMALL_COSTS)
    oracle = CachingOracle(upstream, ExpiringCache(), ttl_seconds=0)
    points = [make_point("H"), make_point("A", 21.6, 39.3)]

    oracle.matrix(points)
    oracle.matrix(points)

    assert len(upstream.calls) == 2


def test_caching_geocoder():
    calls = []

    class StubGeocoder:
        def geocode(self, address):
            calls.append(address)
            return make_point(None, 21.5, 39.2)

    geocoder = CachingGeocoder(StubGeocoder(), ExpiringCache(), ttl_seconds=3600)
    geocoder.geocode("King Road")
    geocoder.geocode("king road ")

    assert calls == ["King Road"]


def test_build_oracle_without_osrm_url_is_an_oracle_error(monkeypatch):
    monkeypatch.setattr(oracle_module.settings, "osrm_base_url", None)
    with pytest.raises(OracleError):
        build_oracle("osrm")


def test_build_oracle_rejects_unknown_provider():
    with pytest.raises(OracleError):
        build_oracle("mapbox")


def test_build_oracle_wraps_provider_in_cache(monkeypatch):
    monkeypatch.setattr(oracle_module.settings, "osrm_base_url", "http://osrm.test")
    oracle = build_oracle("osrm", cache=ExpiringCache())
    assert isinstance(oracle, CachingOracle)


def test_build_geocoder_needs_google_key(monkeypatch):
    monkeypatch.setattr(oracle_module.settings, "google_maps_api_key", None)
    assert build_geocoder() is None

    monkeypatch.setattr(oracle_module.settings, "google_maps_api_key", "test-key")
    assert isinstance(build_geocoder(ExpiringCache()), CachingGeocoder)


def test_writes_purge_expired_entries():
    clock = FakeClock()
    cache = ExpiringCache(clock=clock)

    for index in range(1000):
        cache.set(f"k{index}", index, ttl_seconds=10)
        clock.now += 11

    assert len(cache) == 0
    assert cache.stored == 1


def test_oldest_write_is_evicted_when_full():
    cache = ExpiringCache(max_entries=3)
    cache.set("a", 1, 60)
    cache.set("b", 2, 60)
    cache.set("c", 3, 60)
    cache.set("b", 20, 60)
    cache.set("d", 4, 60)
    cache.set("e", 5, 60)

    assert cache.get("a") is None
    assert cache.get("c") is None
    assert [cache.get(key) for key in ("b", "d", "e")] == [20, 4, 5]
    assert cache.stored == 3


def test_max_entries_must_be_positive():
    with pytest.raises(ValueError):
        ExpiringCache(max_entries=0)
