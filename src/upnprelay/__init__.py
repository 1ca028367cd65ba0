"""
Module providing a caching relay for UPnP service discovery (SSDP).

Devices announce themselves on the SSDP multicast group with ``NOTIFY`` messages. Some of them only announce
once, on boot, and never answer ``M-SEARCH`` queries afterwards. The relay listens to every announcement it sees,
keeps the essential headers of each one keyed by its ``USN``, and answers every ``M-SEARCH`` with synthetic
responses built from that cache.

An example of a cached announcement, replayed as a search response:

.. code

  HTTP/1.1 200 OK
  LOCATION: http://10.0.0.2:80/description.xml
  SERVER: UPnP Cache
  CACHE-CONTROL: max-age=1800
  EXT:
  ST: urn:schemas-upnp-org:device:MediaRenderer:1
  USN: uuid:1234::urn:schemas-upnp-org:device:MediaRenderer:1

The :class:`RelayServer` class runs the relay over a :class:`MulticastTransport`. Only discovery metadata is
relayed: the ``LOCATION`` is passed on untouched, so clients talk to the original device directly.

"""

from upnprelay.config import RelayConfig
from upnprelay.device import Device
from upnprelay.registry import DeviceRegistry, RegistryFullError
from upnprelay.server import RelayServer
from upnprelay.transport import MulticastTransport

__version__ = "1.0.0"
