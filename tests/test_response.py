import pytest

from upnprelay.device import Device
from upnprelay.response import (
    build_discovery_request,
    build_search_response,
    iter_search_responses,
    should_respond,
)


@pytest.fixture
def device():
    return Device(
        usn="uuid:a::urn:x",
        service_type="urn:x",
        location="http://10.0.0.2:80/desc.xml",
        source_address="10.0.0.2",
        last_seen=0.0,
    )


def test_search_response(device):
    assert build_search_response(device) == (
        b"HTTP/1.1 200 OK\r\n"
        b"LOCATION: http://10.0.0.2:80/desc.xml\r\n"
        b"SERVER: UPnP Cache\r\n"
        b"CACHE-CONTROL: max-age=1800\r\n"
        b"EXT:\r\n"
        b"ST: urn:x\r\n"
        b"USN: uuid:a::urn:x\r\n"
        b"\r\n"
    )


def test_search_response_custom_envelope(device):
    response = build_search_response(device, server_name="Relay", max_age=60)
    assert b"SERVER: Relay\r\n" in response
    assert b"CACHE-CONTROL: max-age=60\r\n" in response


def test_search_response_does_not_leak_source(device):
    response = build_search_response(
        Device(
            usn="uuid:b",
            service_type="urn:y",
            location="http://10.0.0.5/",
            source_address="10.9.9.9",
            last_seen=0.0,
        )
    )
    assert b"10.9.9.9" not in response


def test_should_respond(device):
    assert not should_respond(device, "10.0.0.2")
    assert should_respond(device, "10.0.0.3")


def test_iter_search_responses_excludes_requester(device):
    other = Device(
        usn="uuid:b",
        service_type="urn:y",
        location="http://10.0.0.5/",
        source_address="10.0.0.5",
        last_seen=0.0,
    )
    included = [d for d, _ in iter_search_responses([device, other], "10.0.0.2")]
    assert included == [other]
    included = [d for d, _ in iter_search_responses([device, other], "10.0.0.7")]
    assert included == [device, other]


def test_discovery_request():
    assert build_discovery_request() == (
        b"M-SEARCH * HTTP/1.1\r\n"
        b"HOST: 239.255.255.250:1900\r\n"
        b'MAN: "ssdp:discover"\r\n'
        b"MX: 5\r\n"
        b"ST: ssdp:all\r\n"
        b"\r\n"
    )
