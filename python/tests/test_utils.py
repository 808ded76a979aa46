import socket

from queuestat.utils import HostResolver, format_duration, format_ip, format_timestamp


def test_format_ip():
    assert format_ip(bytes([192, 0, 2, 1])) == "192.0.2.1"
    assert format_ip(socket.inet_pton(socket.AF_INET6, "2001:db8::2")) == "2001:db8::2"
    assert format_ip("already text") == "already text"


def test_format_timestamp_and_duration():
    assert format_timestamp(None) == "-"
    assert format_timestamp(1_500_250_000).endswith(".250")
    assert format_duration(1_000_000, 3_500_000) == "2.500s"
    assert format_duration(None, None) == "0.000s"


def test_host_resolver_caches_and_falls_back():
    lookups = []

    def lookup(address):
        lookups.append(address)
        if address == "10.0.0.9":
            raise socket.herror("unknown host")
        return ("worker-1.example.net", [], [address])

    resolver = HostResolver(lookup=lookup)

    assert resolver("10.0.0.1") == "worker-1.example.net"
    assert resolver("10.0.0.1") == "worker-1.example.net"
    assert resolver.resolve("10.0.0.9") == "10.0.0.9"
    assert lookups == ["10.0.0.1", "10.0.0.9"]
