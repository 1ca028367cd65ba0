"""
Command line interface for the UPnP relay.
"""

import argparse
import logging
import sys
import textwrap
import time
from contextlib import contextmanager
from signal import signal, SIGINT, SIGTERM

from rich.logging import RichHandler

from upnprelay.config import (
    RelayConfig,
    SSDP_MULTICAST_GROUP,
    SSDP_PORT,
    DEFAULT_DEVICE_TTL,
    DEFAULT_SWEEP_INTERVAL,
    DEFAULT_MAX_AGE,
)
from upnprelay.server import RelayServer
from upnprelay.transport import MulticastTransport


@contextmanager
def suppress_interrupts_as_cancellation():
    """
    Context manager that suppresses SIGINT and SIGTERM and instead yields a cancellation token that can be
    polled to check if either signal has been received during the lifetime of the context.
    """
    token = CancellationToken()

    prev_int_handler = signal(SIGINT, lambda _, __: token.cancel())
    prev_term_handler = signal(SIGTERM, lambda _, __: token.cancel())
    try:
        yield token
    finally:
        signal(SIGINT, prev_int_handler)
        signal(SIGTERM, prev_term_handler)


class CancellationToken:
    _cancelled = False

    @property
    def is_cancelled(self):
        """
        Has this token been cancelled?
        """
        return self._cancelled

    def cancel(self):
        """
        Cancel this token.
        """
        self._cancelled = True

    def wait_cancellation(self, interval=0.1, while_true=lambda: True):
        """
        Sleep until this token is cancelled, or until ``while_true`` stops returning True.

        :param interval: the interval in seconds between waking up to check cancellation.
        """
        while not self._cancelled and while_true():
            time.sleep(interval)


def handle_user_arguments(args=None) -> argparse.Namespace:
    """
    Parse the arguments from the command line.

    :return: The namespace of arguments read from the command line.
    """
    description = textwrap.dedent(
        """\
    Relay and cache UPnP (SSDP) announcements. Every M-SEARCH seen on the network
    is answered with all the devices the relay has seen announce themselves.
    """
    )
    parser = argparse.ArgumentParser(description=description)

    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=SSDP_PORT,
        help="SSDP port to listen on (default: %(default)s).",
    )
    parser.add_argument(
        "-g",
        "--group",
        default=SSDP_MULTICAST_GROUP,
        help="SSDP multicast group (default: %(default)s).",
    )
    parser.add_argument(
        "-i",
        "--interface",
        dest="interfaces",
        action="append",
        default=None,
        metavar="NAME",
        help="Network interface to relay on, can be repeated. All interfaces are used by default.",
    )
    parser.add_argument(
        "--ignore-byebye",
        action="store_true",
        default=False,
        help="Keep devices that announce they are going offline.",
    )
    parser.add_argument(
        "--ttl",
        dest="device_ttl",
        type=float,
        default=DEFAULT_DEVICE_TTL,
        metavar="SECONDS",
        help="Forget devices not seen for this long (default: %(default)s).",
    )
    parser.add_argument(
        "--sweep-interval",
        type=float,
        default=DEFAULT_SWEEP_INTERVAL,
        metavar="SECONDS",
        help="Minimum time between two rediscoveries of the network (default: %(default)s).",
    )
    parser.add_argument(
        "--max-age",
        type=int,
        default=DEFAULT_MAX_AGE,
        metavar="SECONDS",
        help="Cache lifetime advertised in replayed responses (default: %(default)s).",
    )
    parser.add_argument(
        "--max-devices",
        type=int,
        default=None,
        help="Maximum number of devices to cache. Unlimited by default.",
    )
    parser.add_argument(
        "-w",
        "--workers",
        dest="max_workers",
        type=int,
        default=4,
        help="Number of threads handling received messages (default: %(default)s).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Log every message handled by the relay.",
    )

    arguments = parser.parse_args(args)
    return arguments


def config_from_arguments(arguments: argparse.Namespace) -> RelayConfig:
    return RelayConfig(
        group=arguments.group,
        port=arguments.port,
        interfaces=arguments.interfaces,
        ignore_byebye=arguments.ignore_byebye,
        device_ttl=arguments.device_ttl,
        sweep_interval=arguments.sweep_interval,
        max_age=arguments.max_age,
        max_devices=arguments.max_devices,
        max_workers=arguments.max_workers,
    )


def main(args=None):
    """
    Entry point for the command line.
    """
    arguments = handle_user_arguments(args)
    logging.basicConfig(
        level=logging.DEBUG if arguments.verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    logging.captureWarnings(True)
    logger = logging.getLogger("upnprelay")

    try:
        config = config_from_arguments(arguments)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    try:
        transport = MulticastTransport(
            group=config.group, port=config.port, interfaces=config.interfaces
        )
    except OSError as e:
        logger.error(f"Could not set up the SSDP socket on port {config.port}: {e}")
        sys.exit(1)

    with transport, RelayServer(transport, config) as server:
        with suppress_interrupts_as_cancellation() as cancellation:
            server.start()
            logger.info("UPnP relay is running, press Ctrl-C to stop.")
            cancellation.wait_cancellation(while_true=lambda: server.receiving)
        logger.info("Closing UPnP relay.")
