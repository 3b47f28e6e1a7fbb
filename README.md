# iodine

The protocol layer for carrying IP traffic inside DNS queries and replies.
This package provides the codecs, hostname packing, DNS packet building and
helper routines that such a tunnel needs. It has no dependencies outside the
standard library.

## Modules

### Codecs: `iodine.encoding`, `iodine.base32codec`, `iodine.base64codec`, `iodine.base128codec`

`Encoder` in `iodine.encoding` packs bytes into characters of a power-of-two
alphabet. It takes bits most significant first and pads a trailing partial
character with zero bits. Characters outside the alphabet decode to zero.

- `encode(data, maxlen)` returns `(text, consumed)`. It encodes as many
  whole input bytes as fit in `maxlen` characters, and `consumed` is how
  many input bytes that was.
- `decode(text, maxlen)` returns bytes. It stops at a NUL character or
  after `maxlen` bytes.

The package has three concrete codecs, each with a ready-made instance:

| Class | Module | Instance | Bits per character | Notes |
| --- | --- | --- | --- | --- |
| `Base32Encoder` | `iodine.base32codec` | `BASE32` | 5 | Lowercase alphabet; decoding also accepts uppercase |
| `Base64Encoder` | `iodine.base64codec` | `BASE64` | 6 | Letters, digits, `-` and `+` |
| `Base128Encoder` | `iodine.base128codec` | `BASE128` | 7 | Letters, digits and Latin-1 characters 0xBC–0xFD |

`iodine.base32codec` also provides two single-character helpers:

- `b32_5to8(value)` maps the low five bits of `value` to a character.
- `b32_8to5(char)` maps a character back to its value, or 0 if it is not
  in the alphabet.

### Hostname helpers: `iodine.encoding`

- `build_hostname(data, topdomain, encoder, maxlen, buflen)` encodes a
  prefix of `data` and splits it into labels of at most 57 characters. It
  then appends the top domain and returns `(hostname, consumed)`. It leaves
  room for a five-character header in front, and raises `ValueError` if the
  top domain leaves no room for data.
- `unpack_data(text, encoder, maxlen)` removes the dots and decodes.
- `inline_dotify(text, maxlen)` inserts a dot after every full run of 57
  characters.
- `inline_undotify(text)` removes every dot.
- `DOWNCODECCHECK1` is the 48-byte pattern used to check that a downstream
  codec passes every bit pattern.

### DNS packets: `iodine.dns`

- `dns_encode(query, qr, data, buflen, use_edns0)` builds either of:
  - a query for the hostname in `data`, with an EDNS0 OPT record when
    `use_edns0` is true;
  - an answer carrying `data`. The answer is NULL/PRIVATE raw data, TXT
    strings, a CNAME (also used for A questions), or MX/SRV records. For
    MX/SRV, give the names NUL-separated.

  It raises `ValueError` if the packet would exceed `buflen`.
- `dns_decode(packet, qr, maxlen)` returns `(Query, data)`:
  - For a query, `data` is the question name.
  - For an answer, `data` is the first record's payload. For MX/SRV it is
    the names in preference order, each followed by a NUL.

  Short or truncated packets give empty data. Error replies, replies
  without a question or answer, and a mismatched query/answer flag raise
  `DnsDecodeError`. The partly decoded `Query`, including `rcode`, is on
  its `query` attribute.
- `dns_encode_ns_response(query, topdomain, buflen)` answers an NS query
  with `ns.<topdomain>`. It adds an A record when the query's destination
  is an IPv4 address.
- `dns_encode_a_response(query, buflen)` answers with the IPv4 destination
  address. It raises `ValueError` if there is none.
- `dns_get_id(packet)` returns the packet id, or 0 if the packet is too
  short.
- `QR` distinguishes `QUERY` from `ANSWER`.
- The record type constants are `T_A`, `T_CNAME`, `T_NULL`, `T_MX`,
  `T_TXT`, `T_SRV`, `T_PRIVATE` and others.
- The reply code constants are `NOERROR`, `SERVFAIL`, `NXDOMAIN` and
  others.

### Common utilities: `iodine.common`

Validation and matching:

- `check_topdomain(name, allow_wildcard)` returns the name or raises
  `TopDomainError` with the reason. With `allow_wildcard`, it accepts a
  leading `*.`.
- `query_datalen(qname, topdomain)` returns how many leading characters of
  a query name carry data, or `None` if the name is not under the top
  domain.
- `recent_seqno(ourseqno, gotseqno)` tells whether a 3-bit sequence number
  is the current one or one of the three before it.

Raw-mode headers:

- `RAW_HEADER` and the `RAW_HDR_*` constants describe the raw-mode header.
- `raw_header_command(packet)` and `raw_header_user(packet)` read the
  header's command and user nibbles.

Sockets and process setup:

- `get_addr(host, port, family, flags)` resolves a UDP address.
- `open_dns(address, v6only)` opens a bound UDP socket.
- `open_dns_from_host(host, port, family, flags)` does both.
- `format_addr(address)` formats the numeric host. IPv4-mapped IPv6
  addresses come out in dotted form, and anything without a host comes out
  as `?`.
- `check_superuser()`, `do_chroot(newroot)`, `do_pidfile(path)`,
  `do_detach()` and `read_password()` cover daemon and process setup.

Data classes:

- `Connection` (`RAW_UDP`, `DNS_NULL`), `Packet` and `Query` are the data
  types shared by the other modules.

### Forwarded-query cache: `iodine.fw_query`

`ForwardedQueryCache` is a ring of 16 entries by default.

- `put(query)` stores a `ForwardedQuery(addr, id)` and overwrites the
  oldest slot when the ring is full.
- `get(query_id)` returns the matching entry, or `None`.

## What this package does not do

There is no tunnel client or server. The package contains no handshake,
login, tun device handling, select loop or command-line program. It
provides the pieces such programs are built from, and nothing that runs on
its own.

## Install

```
pip install .
```

## Example

```python
from iodine.base32codec import Base32Encoder
from iodine.encoding import build_hostname, unpack_data

encoder = Base32Encoder()
hostname, used = build_hostname(b"hello, tunnel", "t.example.com", encoder, 255, 4096)
labels = hostname[: -len(".t.example.com")]
assert unpack_data(labels, encoder, 4096) == b"hello, tunnel"[:used]
```

```python
from iodine.common import Query
from iodine.dns import QR, T_TXT, dns_decode, dns_encode

reply = dns_encode(Query(name="x.t.example.com", type=T_TXT, id=42), QR.ANSWER, b"payload")
query, data = dns_decode(reply, QR.ANSWER)
assert (query.id, data) == (42, b"payload")
```

## Tests

```
pip install .[test]
pytest
```