"""
Module for rendering the datagrams the relay sends: replayed search responses and its own discovery requests.
"""

from typing import Iterable, Iterator

from upnprelay.config import (
    DEFAULT_MAX_AGE,
    DEFAULT_MX,
    DEFAULT_SERVER_NAME,
    SSDP_MULTICAST_GROUP,
    SSDP_PORT,
)
from upnprelay.device import Device
from upnprelay.message import encode_datagram

SEARCH_ALL_TARGET = "ssdp:all"


def should_respond(device: Device, requester_host: str) -> bool:
    """
    Whether a device should be included in the answer to a search from the given host. A host is never told
    about the devices it announced itself.
    """
    return device.source_address != requester_host


def build_search_response(
    device: Device,
    *,
    server_name: str = DEFAULT_SERVER_NAME,
    max_age: int = DEFAULT_MAX_AGE,
) -> bytes:
    """
    Renders a device as a response to an ``M-SEARCH``.

    Only the location, service type and USN of the original announcement are carried over. The location is
    left untouched, so clients contact the device directly.
    """
    return encode_datagram(
        "HTTP/1.1 200 OK\r\n"
        f"LOCATION: {device.location}\r\n"
        f"SERVER: {server_name}\r\n"
        f"CACHE-CONTROL: max-age={max_age}\r\n"
        "EXT:\r\n"
        f"ST: {device.service_type}\r\n"
        f"USN: {device.usn}\r\n"
        "\r\n"
    )


def iter_search_responses(
    devices: Iterable[Device],
    requester_host: str,
    *,
    server_name: str = DEFAULT_SERVER_NAME,
    max_age: int = DEFAULT_MAX_AGE,
) -> Iterator[tuple[Device, bytes]]:
    for device in devices:
        if should_respond(device, requester_host):
            yield device, build_search_response(
                device, server_name=server_name, max_age=max_age
            )


def build_discovery_request(
    *,
    group: str = SSDP_MULTICAST_GROUP,
    port: int = SSDP_PORT,
    mx: int = DEFAULT_MX,
) -> bytes:
    """
    Renders the ``M-SEARCH`` for all service types that the relay multicasts to rediscover devices.
    """
    return encode_datagram(
        "M-SEARCH * HTTP/1.1\r\n"
        f"HOST: {group}:{port}\r\n"
        'MAN: "ssdp:discover"\r\n'
        f"MX: {mx}\r\n"
        f"ST: {SEARCH_ALL_TARGET}\r\n"
        "\r\n"
    )
