"""Various functions relating to the RSA algorithm."""

import math
import struct
from typing import Self

from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.padding import PKCS1v15
from pydantic import Field

from signsession.common.data import AlgorithmDNSSEC
from signsession.common.errors import KeyTypeMismatchError
from signsession.common.public_key import PublicKey, algorithm_to_hash

__author__ = "ft"


def is_algorithm_rsa(alg: AlgorithmDNSSEC) -> bool:
    """Check if `alg' is one of the known RSA algorithms."""
    return alg in [
        AlgorithmDNSSEC.RSASHA1,
        AlgorithmDNSSEC.RSASHA1_NSEC3_SHA1,
        AlgorithmDNSSEC.RSASHA256,
        AlgorithmDNSSEC.RSASHA512,
    ]


class PublicKey_RSA(PublicKey):
    """A parsed DNSSEC RSA public key."""

    exponent: int
    n: bytes = Field(repr=False)

    def __str__(self) -> str:
        """Return RSA Public Key as string."""
        return f"alg=RSA bits={self.bits} exp={self.exponent}"

    def to_cryptography_pubkey(self) -> rsa.RSAPublicKey:
        """Return a 'cryptography' public key object."""
        rsa_n = int.from_bytes(self.n, byteorder="big")
        public = rsa.RSAPublicNumbers(self.exponent, rsa_n)
        return public.public_key()

    def verify_signature(
        self, signature: bytes, data: bytes, algorithm: AlgorithmDNSSEC
    ) -> None:
        """Verify a signature over 'data' using the 'cryptography' library."""
        if not is_algorithm_rsa(algorithm):
            raise KeyTypeMismatchError(
                f"Algorithm mismatch: Expected RSA, got {algorithm.name}"
            )
        pubkey = self.to_cryptography_pubkey()
        pubkey.verify(signature, data, PKCS1v15(), algorithm_to_hash(algorithm))

    @classmethod
    def from_cryptography(cls, pubkey: rsa.RSAPublicKey) -> Self:
        """Extract exponent and modulus from a 'cryptography' public key."""
        numbers = pubkey.public_numbers()
        _n_len = math.ceil(pubkey.key_size / 8)
        rsa_n = int.to_bytes(numbers.n, length=_n_len, byteorder="big")
        return cls(bits=pubkey.key_size, exponent=numbers.e, n=rsa_n)

    @classmethod
    def decode_public_key(
        cls, key: bytes, algorithm: AlgorithmDNSSEC = AlgorithmDNSSEC.RSASHA256
    ) -> Self:
        """Parse DNSSEC RSA public_key, as specified in RFC3110."""
        if len(key) < 3:
            raise ValueError(f"RSA public key too short ({len(key)} bytes)")
        _bytes = key
        if _bytes[0] == 0:
            # two bytes length of exponent follows
            (_exponent_len,) = struct.unpack("!H", _bytes[1:3])
            _bytes = _bytes[3:]
        else:
            (_exponent_len,) = struct.unpack("!B", _bytes[0:1])
            _bytes = _bytes[1:]

        rsa_e = int.from_bytes(_bytes[:_exponent_len], byteorder="big")
        rsa_n = _bytes[_exponent_len:]
        if not rsa_n:
            raise ValueError("RSA public key has no modulus")
        return cls(bits=len(rsa_n) * 8, exponent=rsa_e, n=rsa_n)

    def encode_public_key(self) -> bytes:
        """
        Encode a public key into the DNSKEY public key field format.

        This is specified in RFC 3110, section 2.
        """
        _exp_len = math.ceil(int.bit_length(self.exponent) / 8)
        exp = int.to_bytes(self.exponent, length=_exp_len, byteorder="big")
        if _exp_len > 255:
            # A value larger than 255 can't be represented using a single byte. Use long variant
            # of encoding, which is a zero byte followed by the value in two bytes.
            exp_header = b"\0" + struct.pack("!H", _exp_len)
        else:
            exp_header = struct.pack("!B", _exp_len)
        return exp_header + exp + self.n
