"""
Module for classifying received SSDP datagrams and extracting the headers the relay caches.
"""

from dataclasses import dataclass
from enum import Enum

NOTIFY_PREFIX = "NOTIFY "
RESPONSE_PREFIX = "HTTP/1.1 200"
SEARCH_PREFIX = "M-SEARCH "

LOCATION_HEADER = "location"
NOTIFICATION_TYPE_HEADER = "nt"
SEARCH_TARGET_HEADER = "st"
NOTIFICATION_SUBTYPE_HEADER = "nts"
USN_HEADER = "usn"

BYEBYE_SUBTYPE = "ssdp:byebye"

# Keeps undecodable bytes intact so they can be written back to the wire unchanged.
WIRE_ENCODING = "utf-8"
WIRE_ERRORS = "surrogateescape"


class MessageKind(Enum):
    ALIVE_OR_RESPONSE = "alive-or-response"
    SEARCH_REQUEST = "search-request"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class ParsedMessage:
    """
    A received datagram, reduced to the fields the relay acts on.
    """

    kind: MessageKind
    source_address: tuple[str, int]
    is_alive: bool = True
    location: str = ""
    service_type: str = ""
    usn: str = ""

    @property
    def source_host(self) -> str:
        return self.source_address[0]


def decode_datagram(data: bytes) -> str:
    return data.decode(WIRE_ENCODING, WIRE_ERRORS)


def encode_datagram(text: str) -> bytes:
    return text.encode(WIRE_ENCODING, WIRE_ERRORS)


def classify(text: str) -> MessageKind:
    """
    Determines the kind of message from its request or status line.

    Announcements (``NOTIFY``) and responses to searches (``HTTP/1.1 200``) both describe a device, and are
    treated the same.
    """
    if text.startswith(NOTIFY_PREFIX) or text.startswith(RESPONSE_PREFIX):
        return MessageKind.ALIVE_OR_RESPONSE
    if text.startswith(SEARCH_PREFIX):
        return MessageKind.SEARCH_REQUEST
    return MessageKind.UNRECOGNIZED


def parse_headers(text: str) -> dict[str, str]:
    """
    Parses the header lines of a message, skipping the request or status line.

    Header names are lower-cased. Values have leading blanks removed and end at the first carriage return.
    When a header is repeated, the first occurrence wins.

    >>> parse_headers("NOTIFY * HTTP/1.1\\r\\nHOST: 239.255.255.250:1900\\r\\nNTS: ssdp:alive\\r\\n\\r\\n")
    {'host': '239.255.255.250:1900', 'nts': 'ssdp:alive'}
    """
    headers: dict[str, str] = {}
    for line in text.split("\n")[1:]:
        line = line.split("\r", 1)[0]
        name, separator, value = line.partition(":")
        if not separator:
            continue
        name = name.strip().lower()
        if name and name not in headers:
            headers[name] = value.lstrip(" \t")
    return headers


def is_alive_notification(headers: dict[str, str]) -> bool:
    # anything but an explicit byebye keeps the device
    subtype = headers.get(NOTIFICATION_SUBTYPE_HEADER, "")
    return subtype.strip().lower() != BYEBYE_SUBTYPE


def parse_message(data: bytes, source_address: tuple[str, int]) -> ParsedMessage:
    """
    Turns a received datagram into a :class:`ParsedMessage`.

    This never fails on malformed input: messages of unknown kind come back as
    :attr:`MessageKind.UNRECOGNIZED`, and missing headers are empty strings.

    :param data: The raw datagram.
    :param source_address: The ``(host, port)`` the datagram was received from.
    :return: The parsed message.
    """
    text = decode_datagram(data)
    kind = classify(text)
    if kind is not MessageKind.ALIVE_OR_RESPONSE:
        return ParsedMessage(kind=kind, source_address=source_address)

    headers = parse_headers(text)
    # NOTIFY calls the service type NT, search responses call it ST
    service_type = headers.get(NOTIFICATION_TYPE_HEADER)
    if service_type is None:
        service_type = headers.get(SEARCH_TARGET_HEADER, "")

    return ParsedMessage(
        kind=kind,
        source_address=source_address,
        is_alive=is_alive_notification(headers),
        location=headers.get(LOCATION_HEADER, ""),
        service_type=service_type,
        usn=headers.get(USN_HEADER, ""),
    )
