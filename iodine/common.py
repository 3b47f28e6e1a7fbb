"""Shared constants, data structures and socket/process helpers."""

from __future__ import annotations

import contextlib
import enum
import getpass
import ipaddress
import os
import signal
import socket
import sys
from dataclasses import dataclass
from typing import Any

try:
    import syslog as _syslog
except ImportError:  # pragma: no cover - not available on every platform
    _syslog = None

# The raw header used when not using the DNS protocol.  The last byte holds
# the command in its high nibble and the user id in its low nibble.
RAW_HDR_LEN = 4
RAW_HDR_IDENT_LEN = 3
RAW_HDR_CMD = 3
RAW_HDR_CMD_LOGIN = 0x10
RAW_HDR_CMD_DATA = 0x20
RAW_HDR_CMD_PING = 0x30
RAW_HDR_CMD_MASK = 0xF0
RAW_HDR_USR_MASK = 0x0F
RAW_HEADER = bytes([0x10, 0xD1, 0x9E, 0x00])

DNS_PORT = 53
QUERY_NAME_SIZE = 256

# Undefined RR type from the "private use" range.
T_PRIVATE = 65399
# Unused RR type, never actually sent.
T_UNSET = 65432

_MAX_TOPDOMAIN_LEN = 128
_MAX_LABEL_LEN = 63
_MAX_PASSWORD_LEN = 79


class Connection(enum.IntEnum):
    """How tunnel data travels between client and server."""

    RAW_UDP = 0
    DNS_NULL = 1


@dataclass
class Packet:
    """A tunnelled IP packet being sent or reassembled in fragments."""

    data: bytes = b""
    sentlen: int = 0
    offset: int = 0
    seqno: int = 0
    fragment: int = 0


@dataclass
class Query:
    """A DNS query as seen by the tunnel, with where it came from."""

    name: str = ""
    type: int = 0
    rcode: int = 0
    id: int = 0
    destination: Any = None
    from_addr: Any = None
    id2: int = 0
    from_addr2: Any = None


class TopDomainError(ValueError):
    """The tunnel top domain is not an acceptable domain name."""


def _warn(message: str) -> None:
    print(message, file=sys.stderr)


def _check_raw_header(packet: bytes) -> None:
    if len(packet) < RAW_HDR_LEN:
        raise ValueError("packet shorter than the raw header")


def raw_header_command(packet: bytes) -> int:
    """Return the command nibble of a raw-mode packet header."""
    _check_raw_header(packet)
    return packet[RAW_HDR_CMD] & RAW_HDR_CMD_MASK


def raw_header_user(packet: bytes) -> int:
    """Return the user id nibble of a raw-mode packet header."""
    _check_raw_header(packet)
    return packet[RAW_HDR_CMD] & RAW_HDR_USR_MASK


def check_superuser() -> None:
    """Raise PermissionError unless running with effective uid 0."""
    geteuid = getattr(os, "geteuid", None)
    if geteuid is not None and geteuid() != 0:
        raise PermissionError("Run as root and you'll be happy.")


def format_addr(address: Any) -> str:
    """Return the numeric host of a socket address, or '?' if it has none.

    IPv4 addresses mapped into IPv6 are shown in dotted IPv4 form.
    """
    host = address[0] if isinstance(address, tuple) and address else address
    if not isinstance(host, str):
        return "?"
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return "?"
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return str(ip.ipv4_mapped)
    return str(ip)


def _family_of(address: tuple) -> socket.AddressFamily:
    if len(address) == 4 or ":" in str(address[0]):
        return socket.AF_INET6
    return socket.AF_INET


def get_addr(host: str | None, port: int, family: int = socket.AF_UNSPEC,
             flags: int = 0) -> tuple:
    """Resolve host and port to the first matching UDP socket address.

    Raises socket.gaierror (an OSError) when the lookup fails.
    """
    if sys.platform.startswith(("win", "openbsd")):
        hint_flags = flags
    else:
        hint_flags = socket.AI_ADDRCONFIG | flags
    results = socket.getaddrinfo(host, str(port), family, socket.SOCK_DGRAM,
                                 socket.IPPROTO_UDP, hint_flags)
    return results[0][4]


def open_dns(address: tuple, v6only: bool | None = None) -> socket.socket:
    """Open a UDP socket bound to address, ready for DNS traffic."""
    family = _family_of(address)
    sock = socket.socket(family, socket.SOCK_DGRAM, socket.IPPROTO_UDP)

    reuseport = getattr(socket, "SO_REUSEPORT", None)
    if reuseport is not None:
        with contextlib.suppress(OSError):
            sock.setsockopt(socket.SOL_SOCKET, reuseport, 1)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    sock.set_inheritable(False)

    if family == socket.AF_INET6 and v6only is not None:
        sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, int(v6only))

    mtu_discover = getattr(socket, "IP_MTU_DISCOVER", None)
    if mtu_discover is not None:
        dont_frag = (mtu_discover, getattr(socket, "IP_PMTUDISC_DO", 2))
    elif getattr(socket, "IP_DONTFRAG", None) is not None:
        dont_frag = (socket.IP_DONTFRAG, 1)
    else:
        dont_frag = None
    if dont_frag is not None:
        with contextlib.suppress(OSError):
            sock.setsockopt(socket.IPPROTO_IP, *dont_frag)

    try:
        sock.bind(address)
    except OSError as exc:
        sock.close()
        raise OSError(exc.errno, f"bind() to {format_addr(address)}: {exc.strerror}") from exc

    version = 6 if family == socket.AF_INET6 else 4
    _warn(f"Opened IPv{version} UDP socket")
    return sock


def open_dns_from_host(host: str | None, port: int, family: int = socket.AF_UNSPEC,
                       flags: int = 0) -> socket.socket:
    """Resolve host and open a UDP socket bound to the result."""
    return open_dns(get_addr(host, port, family, flags))


def do_chroot(newroot: str) -> None:
    """Change root to newroot and drop any set-uid privileges."""
    if not hasattr(os, "chroot"):
        _warn("chroot not available")
        return
    try:
        os.chroot(newroot)
        os.chdir("/")
    except OSError as exc:
        raise OSError(exc.errno, f"{newroot}: {exc.strerror}") from exc
    try:
        os.seteuid(os.geteuid())
        os.setuid(os.getuid())
    except OSError as exc:
        raise OSError(exc.errno, f"set[e]uid(): {exc.strerror}") from exc


def do_pidfile(path: str | os.PathLike) -> None:
    """Write the current process id to path."""
    try:
        with open(path, "w", encoding="ascii") as handle:
            handle.write(f"{os.getpid()}\n")
    except OSError as exc:
        if _syslog is not None:
            _syslog.syslog(_syslog.LOG_ERR, f"Cannot write pidfile to {path}, exiting")
        raise OSError(exc.errno, f"Can not write pidfile to {path}") from exc


def do_detach() -> None:
    """Leave the controlling terminal: new session, stdio to /dev/null."""
    if not hasattr(os, "setsid"):
        _warn("Detaching is not supported on this platform")
        return
    _warn("Detaching from terminal...")
    os.chdir("/")
    with contextlib.suppress(OSError):
        os.setsid()
    with contextlib.suppress(OSError):
        fd = os.open(os.devnull, os.O_RDWR)
        for target in (0, 1, 2):
            os.dup2(fd, target)
        if fd > 2:
            os.close(fd)
    os.umask(0)
    if hasattr(signal, "alarm"):
        signal.alarm(0)


def read_password() -> str:
    """Prompt for the tunnel password without echo."""
    entered = getpass.getpass("Enter tunnel password: ", stream=sys.stderr)
    return entered.split("\n", 1)[0][:_MAX_PASSWORD_LEN]


def _is_host_char(char: str) -> bool:
    return ("a" <= char <= "z" or "A" <= char <= "Z" or "0" <= char <= "9"
            or char in "-.")


def check_topdomain(name: str, allow_wildcard: bool = False) -> str:
    """Validate a tunnel top domain; return it or raise TopDomainError."""
    if len(name) < 3:
        raise TopDomainError("Too short (< 3)")
    if len(name) > _MAX_TOPDOMAIN_LEN:
        raise TopDomainError("Too long (> 128)")
    if name.startswith("."):
        raise TopDomainError("Starts with a dot")

    dots = 0
    chunklen = 0
    for position, char in enumerate(name):
        if char == ".":
            dots += 1
            if chunklen == 0:
                raise TopDomainError("Consecutive dots")
            if chunklen > _MAX_LABEL_LEN:
                raise TopDomainError("Too long domain part (> 63)")
            chunklen = 0
        else:
            chunklen += 1

        if _is_host_char(char):
            continue
        if allow_wildcard and char == "*":
            if position == 0:
                if name[1:2] == ".":
                    continue
                raise TopDomainError("Wildcard (*) must be followed by dot")
            raise TopDomainError("Wildcard (*) only allowed as first char")
        raise TopDomainError("Contains illegal character (allowed: [a-zA-Z0-9-.])")

    if dots == 0:
        raise TopDomainError("No dots")
    if chunklen == 0:
        raise TopDomainError("Ends with a dot")
    if chunklen > _MAX_LABEL_LEN:
        raise TopDomainError("Too long domain part (> 63)")
    return name


def query_datalen(qname: str, topdomain: str) -> int | None:
    """Return how many leading characters of qname carry data.

    Returns None when qname does not end in topdomain.  A topdomain starting
    with '*' matches any single label in that position.
    """
    qpos = len(qname) - 1
    tpos = len(topdomain) - 1
    if tpos < 2 or qpos < tpos:
        return None

    while qpos >= 0:
        at_label_start = qpos == 0 or qname[qpos - 1] == "."
        if topdomain[tpos] == "*":
            if qname[qpos] == "*":
                return None
            if at_label_start:
                return qpos
            qpos -= 1
        elif qname[qpos].lower() == topdomain[tpos].lower():
            if tpos == 0:
                return qpos if at_label_start else None
            tpos -= 1
            qpos -= 1
        else:
            return None
    return None


def recent_seqno(ourseqno: int, gotseqno: int) -> bool:
    """Tell whether gotseqno is ourseqno or one of the three before it (mod 8)."""
    return any((ourseqno - back) % 8 == gotseqno for back in range(4))