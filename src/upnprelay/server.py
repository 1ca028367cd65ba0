"""
Module providing the relay server, which caches SSDP announcements and answers searches from the cache.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from upnprelay.config import RelayConfig
from upnprelay.message import MessageKind, ParsedMessage, parse_message
from upnprelay.registry import DeviceRegistry, RegistryFullError
from upnprelay.response import build_discovery_request, iter_search_responses
from upnprelay.scheduler import DiscoveryScheduler
from upnprelay.transport import Address, Transport


class RelayServer:
    """
    Caches the devices announced on the network and replays them to every search.

    A receive thread reads datagrams from the transport and hands each one to a pool of worker threads. The
    registry is the only state the workers share, and each announcement is applied under the registry lock
    from lookup to update, so concurrent announcements of the same device never produce duplicates.
    Replies are sent from the worker, outside the lock, and are best effort: a failed send is logged and
    dropped.

    :param transport: Transport to receive and send datagrams with.
    :param config: Relay settings, defaults to :class:`RelayConfig` defaults.
    :param registry: Registry to cache devices in. A new, empty one is created if not given.
    :param clock: Function returning the current time in seconds.
    """

    def __init__(
        self,
        transport: Transport,
        config: RelayConfig | None = None,
        *,
        registry: DeviceRegistry | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if config is None:
            config = RelayConfig()
        if registry is None:
            registry = DeviceRegistry(max_devices=config.max_devices)
        self.logger = logging.getLogger(__name__)
        self.config = config
        self.transport = transport
        self.registry = registry
        self.scheduler = DiscoveryScheduler(config.sweep_interval, clock=clock)
        self._clock = clock
        self._discovery_request = build_discovery_request(
            group=config.group, port=config.port, mx=config.mx
        )
        self._pending = threading.BoundedSemaphore(config.max_pending)
        self._cancel = False
        self._receive_thread: threading.Thread | None = None
        self._workers: ThreadPoolExecutor | None = None

    @property
    def running(self):
        return self._receive_thread is not None

    @property
    def receiving(self):
        """
        Whether the receive thread is still reading datagrams. It stops if the transport fails.
        """
        return self._receive_thread is not None and self._receive_thread.is_alive()

    def start(self):
        """
        Multicast a first discovery request on every interface and start handling received datagrams.
        """
        if self._receive_thread is not None:
            raise RuntimeError("Relay server already running!")
        self.scheduler.start(self._clock())
        self.broadcast_discovery()
        self._workers = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="upnp-relay"
        )
        self._receive_thread = threading.Thread(target=self._receive, daemon=True)
        self._receive_thread.start()

    def close(self):
        if self.running:
            self._cancel = True
            self._receive_thread.join()
            self._receive_thread = None
            self._cancel = False
            self._workers.shutdown(wait=True)
            self._workers = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _receive(self):
        while not self._cancel:
            try:
                received = self.transport.receive(timeout=self.config.receive_timeout)
            except OSError:
                self.logger.exception("Failed to receive from transport, stopping.")
                return
            if received is not None:
                self.submit_datagram(*received)

    def submit_datagram(self, data: bytes, address: Address):
        """
        Queue a received datagram for handling by a worker thread. The datagram is dropped if too many are
        already waiting.
        """
        if not self._pending.acquire(blocking=False):
            self.logger.debug(f"Too many pending datagrams, dropping one from {address[0]}")
            return
        try:
            self._workers.submit(self._handle_pending, data, address)
        except RuntimeError:
            # the pool is shutting down
            self._pending.release()

    def _handle_pending(self, data: bytes, address: Address):
        try:
            self.handle_datagram(data, address)
        except Exception:
            self.logger.exception(f"Error handling datagram from {address[0]}")
        finally:
            self._pending.release()

    def handle_datagram(self, data: bytes, address: Address):
        """
        Update the cache from an announcement, or answer a search from the cache. Anything else is ignored.

        :param data: The received datagram.
        :param address: The ``(host, port)`` it was received from.
        """
        message = parse_message(data, address)
        if message.kind is MessageKind.ALIVE_OR_RESPONSE:
            self._handle_announcement(message)
        elif message.kind is MessageKind.SEARCH_REQUEST:
            self._handle_search(message)

    def _handle_announcement(self, message: ParsedMessage):
        usn = message.usn
        if not usn:
            self.logger.debug(f"Ignoring announcement without USN from {message.source_host}")
            return

        now = self._clock()
        with self.registry.lock:
            device = self.registry.find_by_usn(usn)
            if device is None:
                # nothing to forget about an unknown device going offline
                if not message.is_alive:
                    return
                try:
                    device = self.registry.upsert_alive(
                        usn,
                        message.service_type,
                        message.location,
                        message.source_host,
                        now,
                    )
                except (RegistryFullError, MemoryError) as e:
                    self.logger.warning(f"[{usn}] Dropping announcement: {e!r}")
                    return
                self.logger.debug(
                    f"[{usn}] Device is now alive\n"
                    f"  Location: {device.location}\n"
                    f"  ST: {device.service_type}"
                )
            elif message.is_alive:
                self.registry.upsert_alive(
                    usn,
                    message.service_type,
                    message.location,
                    message.source_host,
                    now,
                )
            elif self.config.ignore_byebye:
                self.logger.debug(f"[{usn}] Device claims to be down, keeping it")
            else:
                self.registry.remove_by_usn(usn)
                self.logger.debug(f"[{usn}] Device is down")

    def _handle_search(self, message: ParsedMessage):
        if self._is_own_datagram(message.source_address):
            return
        requester = message.source_host
        self.logger.debug(f"Received M-SEARCH request from {requester}")

        now = self._clock()
        if self.scheduler.try_begin_sweep(now):
            self.run_discovery_cycle(now)

        responses = iter_search_responses(
            self.registry.devices(),
            requester,
            server_name=self.config.server_name,
            max_age=self.config.max_age,
        )
        for device, response in responses:
            self._send(message.source_address, response)

    def _is_own_datagram(self, address: Address) -> bool:
        host, port = address
        return port == self.transport.port and host in self.transport.local_addresses

    def _send(self, destination: Address, data: bytes):
        try:
            self.transport.send(destination, data)
        except OSError as e:
            self.logger.debug(f"Failed to send to {destination[0]}: {e}")

    def run_discovery_cycle(self, now: float | None = None):
        """
        Forget the devices that have not been seen for too long, then ask the network for every device.
        """
        if now is None:
            now = self._clock()
        for device in self.registry.sweep_expired(now, self.config.device_ttl):
            self.logger.debug(f"[{device.usn}] Timed out, removing")
        self.broadcast_discovery()

    def broadcast_discovery(self):
        """
        Multicast an ``M-SEARCH`` for all service types on every local interface.
        """
        destination = (self.config.group, self.config.port)
        interfaces = self.transport.interfaces()
        self.logger.info(f"Sending out M-SEARCH on {len(interfaces)} interface(s)")
        for interface in interfaces:
            self.logger.debug(f"  sending out via IP {interface}")
            try:
                self.transport.send_on(interface, destination, self._discovery_request)
            except OSError as e:
                self.logger.warning(f"Failed to send M-SEARCH via {interface}: {e}")
