"""DNSSEC protocol specific functions."""

import base64
import struct

from signsession.common.data import AlgorithmDNSSEC, Key
from signsession.common.ecdsa_utils import (
    ecdsa_public_key_without_prefix,
    is_algorithm_ecdsa,
)

__author__ = "ft"


def key_to_rdata(key: Key) -> bytes:
    """Return key in DNS RDATA format (RFC 4034)."""
    header = struct.pack(
        "!HBB",
        key.flags,
        key.protocol,
        key.algorithm.value,
    )
    pubkey = base64.b64decode(key.public_key)
    return header + pubkey


def calculate_key_tag(key: Key) -> int:
    """
    Calculate DNSSEC key tag from RDATA.

    The algorithm to do this is found in RFC 4034, Appendix B.
    """
    rdata = key_to_rdata(key)

    _odd = False
    _sum = 0
    for this in rdata:
        if _odd:
            _sum += this
        else:
            _sum += this << 8
        _odd = not _odd
    return ((_sum & 0xFFFF) + (_sum >> 16)) & 0xFFFF


def public_key_to_dnssec_key(
    pubkey: bytes,
    key_identifier: str,
    algorithm: AlgorithmDNSSEC,
    ttl: int,
    flags: int,
) -> Key:
    """
    Make a Key instance from public key bytes (as returned by get_public_key_bytes).

    ECDSA points are stored without the SEC 1 0x04 prefix in DNSKEY records (RFC 6605).
    """
    if is_algorithm_ecdsa(algorithm):
        pubkey = ecdsa_public_key_without_prefix(pubkey, algorithm)
    _key = Key(
        algorithm=algorithm,
        flags=flags,
        key_identifier=key_identifier,
        protocol=3,  # Always 3 for DNSSEC
        ttl=ttl,
        key_tag=0,  # will calculate this below
        public_key=base64.b64encode(pubkey),
    )
    key_tag = calculate_key_tag(_key)
    return _key.replace(key_tag=key_tag)


def format_dnskey(key: Key, owner: str) -> str:
    """Return the DNSKEY record in presentation format, with the key tag as a comment."""
    _pubkey = key.public_key.decode("ascii")
    return (
        f"{owner} {key.ttl} IN DNSKEY {key.flags} {key.protocol} {key.algorithm.value} "
        f"{_pubkey} ; key_tag={key.key_tag} id={key.key_identifier}"
    )
