"""
Module defining a Device.
"""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Device:
    """
    A cached service advertisement.

    A device is identified by its USN. The location and service type are kept as first seen, and the source
    address is only used to avoid telling a host about its own devices.
    """

    usn: str
    service_type: str
    location: str
    source_address: str
    last_seen: float

    def refreshed(self, now: float) -> "Device":
        """
        Returns a copy of this device seen at the given time. The timestamp never moves backwards.
        """
        return replace(self, last_seen=max(self.last_seen, now))

    def is_expired(self, now: float, ttl: float) -> bool:
        return self.last_seen + ttl < now

    def __str__(self):
        return f"{self.usn} ({self.service_type}) at {self.location}"
