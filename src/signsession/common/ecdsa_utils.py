"""Various functions relating to the ECDSA algorithm."""

from enum import Enum
from typing import ClassVar, Final, Self

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from pydantic import Field, model_validator

from signsession.common.data import AlgorithmDNSSEC
from signsession.common.errors import KeyTypeMismatchError, UnsupportedAlgorithmError
from signsession.common.public_key import PublicKey, algorithm_to_hash

__author__ = "ft"


class ECCurve(Enum):
    """ECC Curves."""

    P256 = "secp256r1"
    P384 = "secp384r1"


_curve_to_bits: Final[dict[ECCurve, int]] = {
    ECCurve.P256: 256,
    ECCurve.P384: 384,
}


class PublicKey_ECDSA(PublicKey):
    """
    A parsed DNSSEC ECDSA public key.

    The point `q' is kept in SEC 1 uncompressed form (0x04 prefix, then x and y).
    """

    q: bytes = Field(repr=False)
    curve: ECCurve

    algorithm_to_curve: ClassVar[dict[AlgorithmDNSSEC, ECCurve]] = {
        AlgorithmDNSSEC.ECDSAP256SHA256: ECCurve.P256,
        AlgorithmDNSSEC.ECDSAP384SHA384: ECCurve.P384,
    }

    @model_validator(mode="after")
    def _check_point(self) -> Self:
        _bits = _curve_to_bits[self.curve]
        if self.bits != _bits:
            raise ValueError(f"Curve {self.curve.value} is {_bits} bits, got {self.bits}")
        if len(self.q) != 1 + (_bits // 8) * 2 or self.q[0] != 4:
            raise ValueError(
                f"Expected an uncompressed {self.curve.value} point, got {len(self.q)} bytes"
            )
        return self

    def __str__(self) -> str:
        """Return key as string."""
        return f"alg=EC bits={self.bits} curve={self.curve.value}"

    def to_cryptography_pubkey(self) -> ec.EllipticCurvePublicKey:
        """Convert a PublicKey_ECDSA into a 'cryptography' ec.EllipticCurvePublicKey."""
        return ec.EllipticCurvePublicKey.from_encoded_point(
            curve_to_cryptography(self.curve), self.q
        )

    def verify_signature(
        self, signature: bytes, data: bytes, algorithm: AlgorithmDNSSEC
    ) -> None:
        """Verify a signature over 'data' using the 'cryptography' library."""
        if not is_algorithm_ecdsa(algorithm):
            raise KeyTypeMismatchError(
                f"Algorithm mismatch: Expected ECDSA, got {algorithm.name}"
            )
        pubkey = self.to_cryptography_pubkey()
        # OpenSSL (which is at the bottom of 'cryptography') expects ECDSA signatures to
        # be in RFC3279 format (ASN.1 encoded).
        _ec_alg = ec.ECDSA(algorithm=algorithm_to_hash(algorithm))
        pubkey.verify(raw_signature_to_der(signature), data, _ec_alg)

    @classmethod
    def from_cryptography(cls, pubkey: ec.EllipticCurvePublicKey) -> Self:
        """Make an instance from a 'cryptography' public key."""
        try:
            curve = ECCurve(pubkey.curve.name)
        except ValueError as exc:
            raise KeyTypeMismatchError(f"Unsupported curve {pubkey.curve.name}") from exc
        q = pubkey.public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)
        return cls(bits=pubkey.curve.key_size, q=q, curve=curve)

    @classmethod
    def decode_public_key(cls, key: bytes, algorithm: AlgorithmDNSSEC) -> Self:
        """Parse bytes to the internal representation of an ECDSA key."""
        curve = algorithm_to_curve(algorithm)
        q = key
        if len(q) == (_curve_to_bits[curve] // 8) * 2:
            # q is the bare x and y point (RFC 6605), add the 0x04 prefix (SEC 1: complete point (x,y))
            q = b"\x04" + q
        return cls(curve=curve, bits=_curve_to_bits[curve], q=q)

    def encode_public_key(self) -> bytes:
        """Return the uncompressed point, including the 0x04 prefix byte."""
        return self.q


def is_algorithm_ecdsa(alg: AlgorithmDNSSEC) -> bool:
    """Check if `alg' is one of the ECDSA algorithms."""
    return alg in [
        AlgorithmDNSSEC.ECDSAP256SHA256,
        AlgorithmDNSSEC.ECDSAP384SHA384,
    ]


def algorithm_to_curve(alg: AlgorithmDNSSEC) -> ECCurve:
    """Return EC Curve of ECDSA key."""
    if alg in PublicKey_ECDSA.algorithm_to_curve:
        return PublicKey_ECDSA.algorithm_to_curve[alg]
    raise UnsupportedAlgorithmError(f"Algorithm {alg.name} is not an ECDSA algorithm")


def curve_to_cryptography(curve: ECCurve) -> ec.EllipticCurve:
    """Return the 'cryptography' curve instance for a curve."""
    if curve == ECCurve.P256:
        return ec.SECP256R1()
    if curve == ECCurve.P384:
        return ec.SECP384R1()
    raise RuntimeError(f"Don't know which curve to use for {curve.name}")


def der_to_raw_signature(signature: bytes, curve: ECCurve) -> bytes:
    """Convert an RFC3279 (ASN.1) ECDSA signature to the DNSSEC r || s format (RFC 6605)."""
    r, s = decode_dss_signature(signature)
    _len = _curve_to_bits[curve] // 8
    return r.to_bytes(_len, byteorder="big") + s.to_bytes(_len, byteorder="big")


def raw_signature_to_der(signature: bytes) -> bytes:
    """Convert a DNSSEC r || s ECDSA signature to RFC3279 (ASN.1) format."""
    _r, _s = signature[: len(signature) // 2], signature[len(signature) // 2 :]
    r = int.from_bytes(_r, byteorder="big")
    s = int.from_bytes(_s, byteorder="big")
    return encode_dss_signature(r, s)


def ecdsa_public_key_without_prefix(
    public_key: bytes, algorithm: AlgorithmDNSSEC
) -> bytes:
    """
    Normalise ECDSA public keys by removing the common 0x04 prefix byte.

    Depending on source of the public key, it might be prefixed by the 0x04 byte used in
    SEC 1 encoding to signify a complete (x,y). If the size is not what we would have expected
    for a particular algorithm, and the first byte is 0x04 we remove it.
    """
    size = get_ecdsa_pubkey_size(public_key)
    if size != expected_ecdsa_key_size(algorithm):  # noqa
        if public_key and public_key[0] == 4:
            return public_key[1:]
    return public_key


def get_ecdsa_pubkey_size(public_key: bytes) -> int:
    """Return ECDSA public key size."""
    # pubkey is both x and y points concatenated, so divide by 2
    return len(public_key) * 8 // 2


def expected_ecdsa_key_size(algorithm: AlgorithmDNSSEC) -> int:
    """Return expected ECDSA public key size."""
    return _curve_to_bits[algorithm_to_curve(algorithm)]
