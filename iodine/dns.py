"""DNS packet encoding and decoding for the tunnel protocol."""

from __future__ import annotations

import enum
import ipaddress
import struct
from typing import Any

from .common import QUERY_NAME_SIZE, T_PRIVATE, T_UNSET, Query

T_A = 1
T_NS = 2
T_CNAME = 5
T_NULL = 10
T_MX = 15
T_TXT = 16
T_SRV = 33
C_IN = 1

NOERROR = 0
FORMERR = 1
SERVFAIL = 2
NXDOMAIN = 3
NOTIMP = 4
REFUSED = 5

__all__ = [
    "QR", "DnsDecodeError", "dns_encode", "dns_encode_ns_response",
    "dns_encode_a_response", "dns_get_id", "dns_decode",
    "T_A", "T_NS", "T_CNAME", "T_NULL", "T_MX", "T_TXT", "T_SRV",
    "T_PRIVATE", "T_UNSET", "C_IN",
    "NOERROR", "FORMERR", "SERVFAIL", "NXDOMAIN", "NOTIMP", "REFUSED",
]

HEADER_LEN = 12
DEFAULT_BUFLEN = 4096
_RDATA_MAX = 4 * 1024
_MAX_LABEL = 63
_MAX_TXT_STRING = 255
_QUESTION_POINTER = 0xC000 | HEADER_LEN
_EDNS0_OPT = b"\x00" + struct.pack("!HHHHH", 0x0029, 0x1000, 0x0000, 0x8000, 0x0000)


class QR(enum.IntEnum):
    """Whether a DNS message is a query or an answer."""

    QUERY = 0
    ANSWER = 1


class DnsDecodeError(ValueError):
    """A DNS message is an error reply or does not fit what was expected.

    The query attribute holds whatever was decoded before the problem,
    notably the reply code.
    """

    def __init__(self, message: str, query: Query | None = None) -> None:
        super().__init__(message)
        self.query = query


class _Malformed(Exception):
    """Internal: the packet ends early or is structurally broken."""


def _as_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        return value.encode("latin-1")
    return bytes(value)


def _header(qid: int, qr: QR, *, answers: int = 0, additional: int = 0) -> bytes:
    if qr is QR.ANSWER:
        flags = 0x8000 | 0x0400  # qr, aa
    else:
        flags = 0x0100  # rd
    return struct.pack("!6H", qid & 0xFFFF, flags, 1, answers, 0, additional)


def _encode_name(name: Any) -> bytes:
    raw = _as_bytes(name).split(b"\0", 1)[0]
    out = bytearray()
    for label in raw.split(b"."):
        if not label:
            continue
        if len(label) > _MAX_LABEL:
            raise ValueError(f"DNS label longer than {_MAX_LABEL} characters")
        out.append(len(label))
        out += label
    out.append(0)
    return bytes(out)


def _encode_txt(data: bytes) -> bytes:
    if not data:
        return b"\x00"
    out = bytearray()
    for start in range(0, len(data), _MAX_TXT_STRING):
        chunk = data[start:start + _MAX_TXT_STRING]
        out.append(len(chunk))
        out += chunk
    return bytes(out)


def _record(pointer: int, rtype: int, ttl: int, rdata: bytes) -> bytes:
    if len(rdata) > 0xFFFF:
        raise ValueError("record data too long")
    return struct.pack("!HHHIH", pointer, rtype, C_IN, ttl, len(rdata)) + rdata


def _question(query: Query) -> bytes:
    return _encode_name(query.name) + struct.pack("!HH", query.type, C_IN)


def _fit(packet: bytes, buflen: int) -> bytes:
    if len(packet) > buflen:
        raise ValueError(f"DNS packet of {len(packet)} bytes does not fit in {buflen}")
    return packet


def _ipv4_bytes(destination: Any) -> bytes | None:
    host = destination[0] if isinstance(destination, tuple) and destination else destination
    if host is None:
        return None
    try:
        address = ipaddress.ip_address(str(host))
    except ValueError:
        return None
    if isinstance(address, ipaddress.IPv4Address):
        return address.packed
    return None


def dns_encode(query: Query, qr: QR | int, data: Any, buflen: int = DEFAULT_BUFLEN,
               use_edns0: bool = True) -> bytes:
    """Build a DNS query for hostname data, or an answer carrying data.

    Raises ValueError when the packet would not fit in buflen bytes.
    """
    qr = QR(qr)
    payload = _as_bytes(data)

    if qr is QR.QUERY:
        body = _encode_name(payload) + struct.pack("!HH", query.type, C_IN)
        additional = 0
        if use_edns0:
            # Advertise a larger maximum response length.
            body += _EDNS0_OPT
            additional = 1
        return _fit(_header(query.id, qr, additional=additional) + body, buflen)

    answers: list[bytes] = []
    if query.type in (T_CNAME, T_A):
        # A questions are answered with a CNAME.
        answers.append(_record(_QUESTION_POINTER, T_CNAME, 0, _encode_name(payload)))
    elif query.type in (T_MX, T_SRV):
        # Data is like b"Hname.com\0Hanother.com\0\0".
        for index, name in enumerate(payload.split(b"\0"), start=1):
            if index > 1 and not name:
                break
            rdata = struct.pack("!H", 10 * index)
            if query.type == T_SRV:
                rdata += struct.pack("!HH", 10, 5060)  # weight, port
            rdata += _encode_name(name)
            answers.append(_record(_QUESTION_POINTER, query.type, 0, rdata))
    elif query.type == T_TXT:
        answers.append(_record(_QUESTION_POINTER, T_TXT, 0, _encode_txt(payload)))
    else:
        answers.append(_record(_QUESTION_POINTER, query.type, 0, payload))

    packet = _header(query.id, qr, answers=len(answers)) + _question(query) + b"".join(answers)
    return _fit(packet, buflen)


def dns_encode_ns_response(query: Query, topdomain: Any,
                           buflen: int = DEFAULT_BUFLEN) -> bytes:
    """Answer an NS query with ns.<topdomain>, adding its A record if known.

    Raises ValueError when the query name is not within topdomain.
    """
    name = _as_bytes(query.name)
    top = _as_bytes(topdomain)
    domain_len = len(name) - len(top)
    if domain_len < 0 or domain_len == 1:
        raise ValueError("query name is not within the top domain")
    if name[domain_len:].lower() != top.lower():
        raise ValueError("query name is not within the top domain")
    if domain_len >= 1 and name[domain_len - 1:domain_len] != b".":
        raise ValueError("query name is not within the top domain")

    # Length bytes stand where the dots were, so offsets carry over.
    topname = 0xC000 | ((HEADER_LEN + domain_len) & 0x3FFF)
    question = _question(query)
    ns_rdata = b"\x02ns" + struct.pack("!H", topname)
    answer = _record(_QUESTION_POINTER, query.type, 3600, ns_rdata)
    nsname = 0xC000 | ((HEADER_LEN + len(question) + 12) & 0x3FFF)

    additional = b""
    address = _ipv4_bytes(query.destination)
    if address is not None:
        additional = _record(nsname, T_A, 3600, address)

    header = _header(query.id, QR.ANSWER, answers=1, additional=1 if additional else 0)
    return _fit(header + question + answer + additional, buflen)


def dns_encode_a_response(query: Query, buflen: int = DEFAULT_BUFLEN) -> bytes:
    """Answer an A query with the IPv4 address the query was sent to.

    Raises ValueError when that address is not IPv4.
    """
    address = _ipv4_bytes(query.destination)
    if address is None:
        raise ValueError("no IPv4 destination address to answer with")
    answer = _record(_QUESTION_POINTER, query.type, 3600, address)
    return _fit(_header(query.id, QR.ANSWER, answers=1) + _question(query) + answer, buflen)


def dns_get_id(packet: bytes) -> int:
    """Return the id of a DNS packet, or 0 if it is too short."""
    if len(packet) < HEADER_LEN:
        return 0
    return struct.unpack_from("!H", packet)[0]


class _Reader:
    def __init__(self, packet: bytes, pos: int) -> None:
        self.packet = packet
        self.pos = pos

    def _need(self, count: int) -> None:
        if self.pos + count > len(self.packet):
            raise _Malformed

    def short(self) -> int:
        self._need(2)
        (value,) = struct.unpack_from("!H", self.packet, self.pos)
        self.pos += 2
        return value

    def long(self) -> int:
        self._need(4)
        (value,) = struct.unpack_from("!I", self.packet, self.pos)
        self.pos += 4
        return value

    def data(self, count: int) -> bytes:
        self._need(count)
        chunk = self.packet[self.pos:self.pos + count]
        self.pos += count
        return chunk

    def seek(self, pos: int) -> None:
        if pos > len(self.packet):
            raise _Malformed
        self.pos = pos

    def name(self, limit: int = QUERY_NAME_SIZE - 1) -> bytes:
        packet = self.packet
        labels: list[bytes] = []
        pos = self.pos
        resume: int | None = None
        jumps = 0
        while True:
            if pos >= len(packet):
                raise _Malformed
            length = packet[pos]
            if length & 0xC0 == 0xC0:
                if pos + 1 >= len(packet):
                    raise _Malformed
                if resume is None:
                    resume = pos + 2
                pos = ((length & 0x3F) << 8) | packet[pos + 1]
                jumps += 1
                if jumps > len(packet):
                    raise _Malformed
                continue
            if length & 0xC0:
                raise _Malformed
            pos += 1
            if length == 0:
                break
            if pos + length > len(packet):
                raise _Malformed
            labels.append(packet[pos:pos + length])
            pos += length
        self.pos = resume if resume is not None else pos
        return b".".join(labels)[:max(0, limit)]

    def record_header(self) -> tuple[int, int]:
        self.name()
        rtype = self.short()
        self.short()  # class
        self.long()  # TTL
        rlen = self.short()
        return rtype, rlen

    def txt(self, rlen: int) -> bytes:
        end = self.pos + rlen
        if end > len(self.packet):
            raise _Malformed
        out = bytearray()
        pos = self.pos
        while pos < end:
            count = self.packet[pos]
            out += self.packet[pos + 1:min(pos + 1 + count, end)]
            pos += 1 + count
        self.pos = end
        return bytes(out[:_RDATA_MAX])


def _limit(data: bytes, maxlen: int | None) -> bytes:
    return data if maxlen is None else data[:max(0, maxlen)]


def _binary_rdata(reader: _Reader, rlen: int) -> bytes:
    rdata = reader.data(min(rlen, _RDATA_MAX))
    return rdata if len(rdata) >= 2 else b""


def _decode_mx(reader: _Reader, ancount: int, maxlen: int | None) -> tuple[int, bytes]:
    names: dict[int, bytes] = {}
    rtype = T_MX
    for _ in range(ancount):
        rtype, rlen = reader.record_header()
        start = reader.pos
        pref = reader.short()
        if rtype == T_SRV:
            reader.seek(reader.pos + 4)  # weight, port
        # Only exact multiples of 10 are used; gaps truncate the output.
        if pref % 10 == 0 and 10 <= pref < 2500:
            names[pref // 10 - 1] = reader.name(QUERY_NAME_SIZE - 1)
        reader.seek(start + rlen)

    out = bytearray()
    index = 0
    while names.get(index):
        name = names[index]
        if maxlen is not None:
            room = min(len(name), maxlen - len(out) - 2)
            if room <= 0:
                break
            name = name[:room]
        out += name + b"\0"
        index += 1
    return rtype, bytes(out)


def _decode_answer(reader: _Reader, query: Query, qid: int, qdcount: int,
                   ancount: int, maxlen: int | None) -> tuple[Query, bytes]:
    if qdcount < 1:
        raise DnsDecodeError("reply has no question section", query)
    query.id = qid

    name = reader.name()
    qtype = reader.short()
    reader.short()  # class
    query.name = name.decode("latin-1")
    query.type = qtype

    if ancount < 1:
        # Errors like NXDOMAIN carry no answer.
        raise DnsDecodeError("reply has no answer", query)

    rtype = qtype
    result = b""
    if qtype in (T_NULL, T_PRIVATE):
        rtype, rlen = reader.record_header()
        result = _binary_rdata(reader, rlen)
    elif qtype in (T_A, T_CNAME):
        rtype, rlen = reader.record_header()
        if rtype == T_CNAME:
            result = reader.name(QUERY_NAME_SIZE - 1)
            if maxlen is not None:
                result = result[:max(0, maxlen - 1)]
        elif rtype == T_A:
            result = _binary_rdata(reader, rlen)
    elif qtype in (T_MX, T_SRV):
        rtype, result = _decode_mx(reader, ancount, maxlen)
    elif qtype == T_TXT:
        rtype, rlen = reader.record_header()
        result = reader.txt(rlen)

    query.type = rtype
    return query, _limit(result, maxlen)


def _decode_query(reader: _Reader, query: Query, qid: int,
                  qdcount: int) -> tuple[Query, bytes]:
    if qdcount < 1:
        raise DnsDecodeError("no question section in name query", query)
    name = reader.name(QUERY_NAME_SIZE - 1)
    qtype = reader.short()
    reader.short()  # class
    query.name = name.decode("latin-1")
    query.type = qtype
    query.id = qid
    return query, name


def dns_decode(packet: bytes, qr: QR | int, maxlen: int | None = None) -> tuple[Query, bytes]:
    """Decode a DNS packet into its query and carried data.

    For a query the data is the question name.  For an answer it is the
    payload of the first answer record (NULL, TXT, CNAME) or the names of
    MX/SRV records in preference order, each followed by a NUL byte.
    Short or truncated packets give empty data.  Raises DnsDecodeError on
    error replies and messages of the wrong kind.
    """
    qr = QR(qr)
    packet = bytes(packet)
    query = Query()
    if len(packet) < HEADER_LEN:
        return query, b""

    qid, flags, qdcount, ancount, _, _ = struct.unpack_from("!6H", packet)
    if (flags >> 15) != qr:
        raise DnsDecodeError("header qr does not match the requested qr", query)
    query.rcode = flags & 0x0F

    reader = _Reader(packet, HEADER_LEN)
    try:
        if qr is QR.ANSWER:
            return _decode_answer(reader, query, qid, qdcount, ancount, maxlen)
        return _decode_query(reader, query, qid, qdcount)
    except _Malformed:
        return query, b""