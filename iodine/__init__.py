"""DNS-safe codecs, hostname packing, DNS packet handling and helpers for tunnelling IP over DNS."""

__version__ = "0.1.0"

__all__ = ["base32codec", "base64codec", "base128codec", "common", "dns", "encoding", "fw_query"]