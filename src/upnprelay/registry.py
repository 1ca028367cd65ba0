"""
Module providing `DeviceRegistry`, the cache of devices seen on the network.
"""

from threading import RLock
from typing import Iterator

from upnprelay.device import Device


class RegistryFullError(Exception):
    pass


class DeviceRegistry:
    """
    Thread-safe store of :class:`Device` records, keyed by USN.

    Every method takes the registry lock. Callers that need several operations to happen as one step, such as
    a lookup followed by a removal, hold :attr:`lock` around the whole sequence; the lock is re-entrant.

    :param max_devices: Maximum number of devices to store, or ``None`` for no limit.
    """

    lock: RLock

    def __init__(self, max_devices: int | None = None):
        self.lock = RLock()
        self.max_devices = max_devices
        self._devices: dict[str, Device] = {}

    def find_by_usn(self, usn: str) -> Device | None:
        with self.lock:
            return self._devices.get(usn)

    def upsert_alive(
        self,
        usn: str,
        service_type: str,
        location: str,
        source_address: str,
        now: float,
    ) -> Device:
        """
        Record an alive announcement.

        A known device only has its timestamp refreshed: the location and service type it was first seen with
        are kept. An unknown device is inserted.

        :return: The stored device.
        :raises ValueError: if the USN is empty.
        :raises RegistryFullError: if a new device would exceed the maximum number of devices. The registry
            is left unchanged.
        """
        if not usn:
            raise ValueError("Cannot store a device without a USN.")
        with self.lock:
            device = self._devices.get(usn)
            if device is not None:
                device = device.refreshed(now)
            else:
                if self.max_devices is not None and len(self._devices) >= self.max_devices:
                    raise RegistryFullError(
                        f"Registry is full ({self.max_devices} devices), cannot store {usn}"
                    )
                device = Device(
                    usn=usn,
                    service_type=service_type,
                    location=location,
                    source_address=source_address,
                    last_seen=now,
                )
            self._devices[usn] = device
            return device

    def remove_by_usn(self, usn: str) -> Device | None:
        """
        Remove a device if it is known.

        :return: The removed device, or ``None`` if there was no device with that USN.
        """
        with self.lock:
            return self._devices.pop(usn, None)

    def sweep_expired(self, now: float, ttl: float) -> list[Device]:
        """
        Remove every device that has not been seen for more than ``ttl`` seconds.

        :return: The removed devices.
        """
        with self.lock:
            expired = [
                device
                for device in self._devices.values()
                if device.is_expired(now, ttl)
            ]
            for device in expired:
                del self._devices[device.usn]
            return expired

    def devices(self) -> list[Device]:
        """
        Return a snapshot of the devices at this instant, in no particular order.
        """
        with self.lock:
            return list(self._devices.values())

    def clear(self):
        with self.lock:
            self._devices.clear()

    def __iter__(self) -> Iterator[Device]:
        return iter(self.devices())

    def __len__(self):
        with self.lock:
            return len(self._devices)

    def __contains__(self, usn):
        with self.lock:
            return usn in self._devices
