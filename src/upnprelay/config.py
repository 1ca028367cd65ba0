"""
Module providing the configuration of the relay.
"""

from dataclasses import dataclass

SSDP_MULTICAST_GROUP = "239.255.255.250"
SSDP_PORT = 1900

DEFAULT_DEVICE_TTL = 12 * 3600
DEFAULT_SWEEP_INTERVAL = 30 * 60
DEFAULT_MAX_AGE = 1800
DEFAULT_SERVER_NAME = "UPnP Cache"
DEFAULT_MX = 5


@dataclass(kw_only=True)
class RelayConfig:
    """
    Settings for a :class:`upnprelay.server.RelayServer` and its transport.

    :param group: SSDP multicast group to join and to send discovery requests to.
    :param port: SSDP port to listen on.
    :param interfaces: Names of the network interfaces to use, or ``None`` for every interface that is up.
    :param ignore_byebye: Keep devices that announce they are going offline. Some devices send spurious
        ``ssdp:byebye`` notifications while still running.
    :param device_ttl: Seconds after the last announcement before a device is forgotten.
    :param sweep_interval: Minimum seconds between two sweep-and-rediscover cycles.
    :param max_age: ``CACHE-CONTROL`` lifetime advertised in replayed responses.
    :param server_name: ``SERVER`` header of replayed responses.
    :param mx: ``MX`` header of the discovery requests sent by the relay.
    :param max_devices: Maximum number of cached devices, or ``None`` for no limit.
    :param max_workers: Number of threads handling received datagrams.
    :param max_pending: Maximum number of received datagrams waiting for a worker.
    :param receive_timeout: Seconds the receive loop waits before checking for shutdown.
    """

    group: str = SSDP_MULTICAST_GROUP
    port: int = SSDP_PORT
    interfaces: list[str] | None = None
    ignore_byebye: bool = False
    device_ttl: float = DEFAULT_DEVICE_TTL
    sweep_interval: float = DEFAULT_SWEEP_INTERVAL
    max_age: int = DEFAULT_MAX_AGE
    server_name: str = DEFAULT_SERVER_NAME
    mx: int = DEFAULT_MX
    max_devices: int | None = None
    max_workers: int = 4
    max_pending: int = 256
    receive_timeout: float = 0.5

    def __post_init__(self):
        for name in ("device_ttl", "sweep_interval", "receive_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("max_age", "mx", "max_workers", "max_pending"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1, got {getattr(self, name)}")
        if self.max_devices is not None and self.max_devices < 1:
            raise ValueError(f"max_devices must be at least 1, got {self.max_devices}")
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port number: {self.port}")
