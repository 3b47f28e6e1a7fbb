import os
import socket
from unittest import mock

import pytest

from iodine.common import (
    RAW_HDR_CMD_DATA,
    RAW_HDR_CMD_PING,
    RAW_HEADER,
    TopDomainError,
    check_superuser,
    check_topdomain,
    do_pidfile,
    format_addr,
    get_addr,
    open_dns,
    query_datalen,
    raw_header_command,
    raw_header_user,
    read_password,
    recent_seqno,
)


def test_raw_header_fields():
    packet = RAW_HEADER[:3] + bytes([RAW_HDR_CMD_DATA | 5]) + b"payload"
    assert raw_header_command(packet) == RAW_HDR_CMD_DATA
    assert raw_header_user(packet) == 5


def test_raw_header_ping_user_zero():
    packet = RAW_HEADER[:3] + bytes([RAW_HDR_CMD_PING])
    assert raw_header_command(packet) == RAW_HDR_CMD_PING
    assert raw_header_user(packet) == 0


def test_raw_header_too_short():
    with pytest.raises(ValueError):
        raw_header_command(RAW_HEADER[:2])


def test_check_superuser_refuses_non_root():
    with mock.patch.object(os, "geteuid", return_value=1000, create=True):
        with pytest.raises(PermissionError):
            check_superuser()


def test_format_addr_ipv4():
    assert format_addr(("127.0.0.1", 53)) == "127.0.0.1"


def test_format_addr_mapped_ipv4():
    assert format_addr(("::ffff:10.1.2.3", 53, 0, 0)) == "10.1.2.3"


def test_format_addr_ipv6():
    assert format_addr(("::1", 53, 0, 0)) == "::1"


@pytest.mark.parametrize("address", [("not-an-ip", 0), None, ()])
def test_format_addr_unknown(address):
    assert format_addr(address) == "?"


def test_get_addr_bad_numeric_host():
    with pytest.raises(OSError):
        get_addr("256.256.256.256", 53, socket.AF_INET, socket.AI_NUMERICHOST)


def test_open_dns_binds_loopback(capsys):
    sock = open_dns(("127.0.0.1", 0))
    try:
        host, port = sock.getsockname()
        assert host == "127.0.0.1"
        assert port > 0
        assert sock.type == socket.SOCK_DGRAM
    finally:
        sock.close()
    assert "Opened IPv4 UDP socket" in capsys.readouterr().err


def test_open_dns_bind_failure():
    with pytest.raises(OSError):
        open_dns(("192.0.2.1", 0))


def test_do_pidfile_writes_pid(tmp_path):
    path = tmp_path / "iodine.pid"
    do_pidfile(path)
    assert path.read_text() == f"{os.getpid()}\n"


def test_do_pidfile_unwritable(tmp_path):
    with pytest.raises(OSError):
        do_pidfile(tmp_path / "missing" / "iodine.pid")


def test_read_password_returns_entry():
    password = "password"
    with mock.patch("getpass.getpass", return_value=password):
        assert read_password() == password


def test_read_password_truncated():
    with mock.patch("getpass.getpass", return_value="x" * 200):
        entered = read_password()
    assert entered == "x" * len(entered)
    assert len(entered) < 200


@pytest.mark.parametrize("name", ["example.com", "a-b.c0.net", "xy.c"])
def test_check_topdomain_accepts(name):
    assert check_topdomain(name) == name


def test_check_topdomain_wildcard_allowed():
    assert check_topdomain("*.example.com", True) == "*.example.com"


@pytest.mark.parametrize(
    "name, wildcard, message",
    [
        ("a.", False, "Too short (< 3)"),
        ("a" * 129, False, "Too long (> 128)"),
        (".example.com", False, "Starts with a dot"),
        ("foo..com", False, "Consecutive dots"),
        ("a" * 64 + ".com", False, "Too long domain part (> 63)"),
        ("com." + "a" * 64, False, "Too long domain part (> 63)"),
        ("exa_mple.com", False, "Contains illegal character (allowed: [a-zA-Z0-9-.])"),
        ("*.example.com", False, "Contains illegal character (allowed: [a-zA-Z0-9-.])"),
        ("*example.com", True, "Wildcard (*) must be followed by dot"),
        ("a.*.example.com", True, "Wildcard (*) only allowed as first char"),
        ("localhost", False, "No dots"),
        ("example.com.", False, "Ends with a dot"),
    ],
)
def test_check_topdomain_rejects(name, wildcard, message):
    with pytest.raises(TopDomainError) as info:
        check_topdomain(name, wildcard)
    assert str(info.value) == message


def test_topdomain_error_is_value_error():
    with pytest.raises(ValueError):
        check_topdomain("bad")


def test_query_datalen_with_data():
    assert query_datalen("foo.example.com", "example.com") == len("foo.")


def test_query_datalen_case_insensitive():
    assert query_datalen("abc.EXAMPLE.com", "example.COM") == len("abc.")


def test_query_datalen_exact_match():
    assert query_datalen("example.com", "example.com") == 0


@pytest.mark.parametrize(
    "qname, topdomain",
    [
        ("foo.example.org", "example.com"),
        ("fooexample.com", "example.com"),
        ("com", "example.com"),
        ("foo.example.com", "ab"),
    ],
)
def test_query_datalen_mismatch(qname, topdomain):
    assert query_datalen(qname, topdomain) is None


def test_query_datalen_wildcard():
    assert query_datalen("a.b.example.com", "*.example.com") == len("a.")


def test_query_datalen_wildcard_rejects_star_in_query():
    assert query_datalen("x.*.example.com", "*.example.com") is None


@pytest.mark.parametrize(
    "ours, got, expected",
    [
        (5, 5, True),
        (5, 4, True),
        (5, 2, True),
        (5, 1, False),
        (5, 6, False),
        (1, 0, True),
        (1, 7, True),
        (1, 6, True),
        (1, 5, False),
        (0, 5, True),
        (0, 4, False),
    ],
)
def test_recent_seqno(ours, got, expected):
    assert recent_seqno(ours, got) is expected