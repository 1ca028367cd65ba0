"""
Module providing the UDP multicast transport the relay sends and receives SSDP datagrams with.
"""

import logging
import select
import socket
from threading import Lock
from typing import Protocol

from upnprelay.config import SSDP_MULTICAST_GROUP, SSDP_PORT
from upnprelay.utils import get_ipv4_addresses

IP_ADDRESS_ANY = "0.0.0.0"
MAXIMUM_MESSAGE_SIZE = 8192

Address = tuple[str, int]


class Transport(Protocol):
    @property
    def port(self) -> int: ...

    @property
    def local_addresses(self) -> frozenset[str]: ...

    def interfaces(self) -> list[str]: ...

    def receive(self, timeout: float | None = None) -> tuple[bytes, Address] | None: ...

    def send(self, destination: Address, data: bytes) -> None: ...

    def send_on(self, interface: str, destination: Address, data: bytes) -> None: ...

    def close(self) -> None: ...


def configure_reusable_socket() -> socket.socket:
    """
    Sets up a socket set up for listening with reuseable address.

    :return: A socket.
    """
    # IPv4 UDP socket
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    # Enable reuse, other SSDP stacks on this host listen on the same port
    s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    if hasattr(socket, "SO_REUSEPORT"):
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
    return s


class MulticastTransport:
    """
    A UDP socket bound to the SSDP port and joined to the SSDP multicast group on every local IPv4 interface.

    Failing to create or bind the socket raises :exc:`OSError`, as the relay cannot work without it. Failing
    to join the group on a single interface is only logged.

    :param group: Multicast group to join.
    :param port: Port to bind to. Use 0 to pick a free port.
    :param interfaces: Names of the interfaces to use, or ``None`` for all interfaces that are up.
    """

    def __init__(
        self,
        group: str = SSDP_MULTICAST_GROUP,
        port: int = SSDP_PORT,
        interfaces: list[str] | None = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.group = group
        self._interface_names = interfaces
        self._local_addresses: frozenset[str] = frozenset()
        self._send_lock = Lock()
        self._socket = configure_reusable_socket()
        try:
            self._socket.bind((IP_ADDRESS_ANY, port))
        except OSError:
            self._socket.close()
            raise
        self.logger.info(f"Listening for SSDP messages on port {self.port}")
        self._join_group()

    @property
    def port(self) -> int:
        return self._socket.getsockname()[1]

    @property
    def local_addresses(self) -> frozenset[str]:
        """
        The IPV4 addresses of the local interfaces, as of the last enumeration.
        """
        return self._local_addresses

    def interfaces(self) -> list[str]:
        """
        Enumerates the IPV4 addresses of the local interfaces to send multicast messages on.
        """
        addresses = [
            entry.address for entry in get_ipv4_addresses(self._interface_names)
        ]
        self._local_addresses = frozenset(addresses)
        return addresses

    def _join_group(self):
        for address in self.interfaces():
            membership = socket.inet_aton(self.group) + socket.inet_aton(address)
            try:
                self._socket.setsockopt(
                    socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, membership
                )
            except OSError as e:
                self.logger.warning(
                    f"Failed to join multicast group {self.group} on interface {address}: {e}"
                )
            else:
                self.logger.info(
                    f"Joined multicast group {self.group} on interface {address}"
                )

    def _check_for_messages(self, timeout):
        socket_list = [self._socket]
        readable, _, exceptional = select.select(socket_list, [], socket_list, timeout)
        if len(exceptional) > 0:
            raise ConnectionError("Exception on socket while checking for messages.")
        return len(readable) > 0

    def receive(self, timeout: float | None = None) -> tuple[bytes, Address] | None:
        """
        Waits for a datagram.

        :param timeout: Seconds to wait, or ``None`` to wait indefinitely.
        :return: The datagram and the address it came from, or ``None`` if nothing arrived in time.
        """
        if not self._check_for_messages(timeout):
            return None
        data, address = self._socket.recvfrom(MAXIMUM_MESSAGE_SIZE)
        return data, address[:2]

    def send(self, destination: Address, data: bytes):
        self._socket.sendto(data, destination)

    def send_on(self, interface: str, destination: Address, data: bytes):
        """
        Sends a multicast datagram out of the interface with the given address.
        """
        # the outbound interface is socket state, so select it and send in one step
        with self._send_lock:
            self._socket.setsockopt(
                socket.IPPROTO_IP, socket.IP_MULTICAST_IF, socket.inet_aton(interface)
            )
            self._socket.sendto(data, destination)

    def close(self):
        self._socket.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
