import threading

import pytest

from upnprelay.device import Device
from upnprelay.registry import DeviceRegistry, RegistryFullError

TTL = 12 * 3600


@pytest.fixture
def registry():
    return DeviceRegistry()


def store(registry, usn="uuid:a", now=0.0, location="http://10.0.0.2/", source="10.0.0.2"):
    return registry.upsert_alive(usn, "urn:x", location, source, now)


def test_insert_and_find(registry):
    store(registry, now=5.0)
    device = registry.find_by_usn("uuid:a")
    assert device == Device(
        usn="uuid:a",
        service_type="urn:x",
        location="http://10.0.0.2/",
        source_address="10.0.0.2",
        last_seen=5.0,
    )


def test_find_unknown(registry):
    assert registry.find_by_usn("uuid:unknown") is None


def test_repeat_announcement_refreshes_only_timestamp(registry):
    store(registry, now=1.0)
    registry.upsert_alive("uuid:a", "urn:changed", "http://changed/", "10.0.0.9", 2.0)

    assert len(registry) == 1
    device = registry.find_by_usn("uuid:a")
    assert device.last_seen == 2.0
    assert device.location == "http://10.0.0.2/"
    assert device.service_type == "urn:x"
    assert device.source_address == "10.0.0.2"


def test_timestamp_never_moves_backwards(registry):
    store(registry, now=10.0)
    store(registry, now=3.0)
    assert registry.find_by_usn("uuid:a").last_seen == 10.0


def test_uniqueness_over_many_announcements(registry):
    for i in range(50):
        store(registry, usn=f"uuid:{i % 5}", now=float(i))
    assert len(registry) == 5
    assert sorted(device.usn for device in registry) == [f"uuid:{i}" for i in range(5)]


def test_empty_usn_rejected(registry):
    with pytest.raises(ValueError):
        store(registry, usn="")
    assert len(registry) == 0


def test_remove(registry):
    store(registry)
    removed = registry.remove_by_usn("uuid:a")
    assert removed.usn == "uuid:a"
    assert "uuid:a" not in registry


def test_remove_unknown_is_noop(registry):
    store(registry)
    assert registry.remove_by_usn("uuid:unknown") is None
    assert len(registry) == 1


def test_sweep_expired(registry):
    store(registry, usn="uuid:old", now=0.0)
    store(registry, usn="uuid:new", now=TTL)

    removed = registry.sweep_expired(now=TTL + 1, ttl=TTL)

    assert [device.usn for device in removed] == ["uuid:old"]
    assert "uuid:old" not in registry
    assert "uuid:new" in registry


def test_sweep_keeps_device_exactly_at_ttl(registry):
    store(registry, now=0.0)
    assert registry.sweep_expired(now=TTL, ttl=TTL) == []
    assert "uuid:a" in registry


def test_sweep_empty_registry(registry):
    assert registry.sweep_expired(now=TTL * 10, ttl=TTL) == []


def test_devices_is_a_snapshot(registry):
    store(registry, usn="uuid:a")
    snapshot = registry.devices()
    store(registry, usn="uuid:b")
    registry.remove_by_usn("uuid:a")

    assert [device.usn for device in snapshot] == ["uuid:a"]
    assert [device.usn for device in registry.devices()] == ["uuid:b"]


def test_iteration_is_restartable(registry):
    store(registry, usn="uuid:a")
    store(registry, usn="uuid:b")
    assert sorted(d.usn for d in registry) == sorted(d.usn for d in registry)


def test_full_registry_rejects_new_devices():
    registry = DeviceRegistry(max_devices=2)
    store(registry, usn="uuid:a", now=1.0)
    store(registry, usn="uuid:b", now=1.0)

    with pytest.raises(RegistryFullError):
        store(registry, usn="uuid:c", now=2.0)

    assert len(registry) == 2
    assert "uuid:c" not in registry
    # known devices can still be refreshed
    store(registry, usn="uuid:a", now=3.0)
    assert registry.find_by_usn("uuid:a").last_seen == 3.0


def test_concurrent_inserts_of_same_device(registry):
    barrier = threading.Barrier(8)

    def announce(now):
        barrier.wait()
        for _ in range(100):
            store(registry, now=now)

    threads = [threading.Thread(target=announce, args=(float(i),)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(registry) == 1
    assert registry.find_by_usn("uuid:a").last_seen == 7.0


def test_clear(registry):
    store(registry)
    registry.clear()
    assert len(registry) == 0
