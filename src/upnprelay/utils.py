import socket
from typing import NamedTuple

import psutil


class InterfaceAddress(NamedTuple):
    name: str
    address: str
    netmask: str | None


def get_ipv4_addresses(interfaces: list[str] | None = None) -> list[InterfaceAddress]:
    """
    Gets all the IPV4 addresses currently available on all interfaces that are up.

    :param interfaces: Optional list of interface names to extract addresses from. If none are provided,
        all interfaces will be used.
    :return: A list of interface addresses, one for each IPV4 address of each interface.
    """
    active_ifs = {name for name, stats in psutil.net_if_stats().items() if stats.isup}
    valid_ifs = {
        name: addrs
        for name, addrs in psutil.net_if_addrs().items()
        if name in active_ifs and (interfaces is None or name in interfaces)
    }

    return [
        InterfaceAddress(name=name, address=addr.address, netmask=addr.netmask)
        for name, addrs in valid_ifs.items()
        for addr in addrs
        if addr.family == socket.AddressFamily.AF_INET
    ]
