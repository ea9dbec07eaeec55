from datetime import datetime, timedelta, timezone

from fleetstate.models.domain import Coordinates
from fleetstate.services.fleet.cache import VehicleStateCache

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_begin_poll_is_monotonic():
    cache = VehicleStateCache()

    assert [cache.begin_poll() for _ in range(3)] == [1, 2, 3]


def test_write_from_older_poll_is_discarded():
    cache = VehicleStateCache()
    newer_fix = NOW - timedelta(minutes=1)

    assert cache.set_if_newer("101", generation=2, updated_at=NOW, last_seen_at=newer_fix)
    assert not cache.set_if_newer("101", generation=1, updated_at=NOW, last_seen_at=NOW)

    entry = cache.get("101")
    assert entry.generation == 2
    assert entry.last_seen_at == newer_fix
    assert cache.generation == 2


def test_last_seen_never_moves_backwards():
    cache = VehicleStateCache()
    cache.set_if_newer("101", generation=1, updated_at=NOW, last_seen_at=NOW)
    cache.set_if_newer("101", generation=2, updated_at=NOW, last_seen_at=NOW - timedelta(hours=1))

    assert cache.get("101").last_seen_at == NOW
    assert cache.get("101").generation == 2


def test_coordinates_kept_when_poll_has_no_fix():
    cache = VehicleStateCache()
    fix = Coordinates(lat=1.0, lng=2.0, timestamp=NOW)
    cache.set_if_newer("101", generation=1, updated_at=NOW, last_seen_at=NOW, coordinates=fix)
    cache.set_if_newer("101", generation=2, updated_at=NOW + timedelta(minutes=1))

    assert cache.get("101").last_known_coordinates == fix


def test_evict_inactive_drops_old_entries_only():
    cache = VehicleStateCache()
    cache.set_if_newer("old", generation=1, updated_at=NOW - timedelta(hours=2))
    cache.set_if_newer("fresh", generation=1, updated_at=NOW)

    removed = cache.evict_inactive(NOW, timedelta(hours=1))

    assert removed == 1
    assert cache.get("old") is None
    assert "fresh" in cache.snapshot()
    assert len(cache) == 1
