from queue import Queue, Empty
from threading import Lock
from typing import Iterable

from upnprelay.message import parse_headers, decode_datagram
from upnprelay.transport import Address


class FakeTransport:
    """
    In-memory stand-in for :class:`upnprelay.transport.MulticastTransport`.

    Datagrams given to :meth:`inject` are returned by :meth:`receive`, and everything sent is recorded.
    """

    def __init__(self, interfaces: Iterable[str] = ("192.168.1.1",), port: int = 1900):
        self.port = port
        self._interfaces = list(interfaces)
        self._lock = Lock()
        self._inbox: Queue = Queue()
        self.sent: list[tuple[Address, bytes]] = []
        self.sent_on: list[tuple[str, Address, bytes]] = []
        self.fail_sends = False
        self.closed = False

    @property
    def local_addresses(self) -> frozenset[str]:
        return frozenset(self._interfaces)

    def interfaces(self) -> list[str]:
        return list(self._interfaces)

    def inject(self, data: bytes, address: Address):
        self._inbox.put((data, address))

    def receive(self, timeout: float | None = None) -> tuple[bytes, Address] | None:
        try:
            return self._inbox.get(timeout=timeout)
        except Empty:
            return None

    def send(self, destination: Address, data: bytes):
        if self.fail_sends:
            raise OSError("Simulated send failure")
        with self._lock:
            self.sent.append((destination, data))

    def send_on(self, interface: str, destination: Address, data: bytes):
        if self.fail_sends:
            raise OSError("Simulated send failure")
        with self._lock:
            self.sent_on.append((interface, destination, data))

    def close(self):
        self.closed = True

    def responses_to(self, host: str) -> list[dict[str, str]]:
        """
        Headers of every datagram sent to the given host.
        """
        with self._lock:
            return [
                parse_headers(decode_datagram(data))
                for (destination_host, _), data in self.sent
                if destination_host == host
            ]

    def usns_sent_to(self, host: str) -> list[str]:
        return [headers["usn"] for headers in self.responses_to(host)]

    def clear(self):
        with self._lock:
            self.sent.clear()
            self.sent_on.clear()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
