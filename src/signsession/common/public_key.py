"""A module to hold the shared base class for session public keys."""

from abc import ABC, abstractmethod
from typing import Self

from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.hashes import SHA256, SHA384, SHA512, HashAlgorithm

from signsession.common.data import AlgorithmDNSSEC, FrozenStrictBaseModel
from signsession.common.errors import KeyTypeMismatchError, UnsupportedAlgorithmError

__author__ = "ft"


CryptographyPubKey = rsa.RSAPublicKey | ec.EllipticCurvePublicKey


def algorithm_to_hash(alg: AlgorithmDNSSEC) -> HashAlgorithm:
    """Return the hash function used with a DNSSEC signing algorithm."""
    _hashes: dict[AlgorithmDNSSEC, type[HashAlgorithm]] = {
        AlgorithmDNSSEC.RSASHA256: SHA256,
        AlgorithmDNSSEC.RSASHA512: SHA512,
        AlgorithmDNSSEC.ECDSAP256SHA256: SHA256,
        AlgorithmDNSSEC.ECDSAP384SHA384: SHA384,
    }
    if alg not in _hashes:
        raise UnsupportedAlgorithmError(f"No hash function known for algorithm {alg.name}")
    return _hashes[alg]()


class PublicKey(FrozenStrictBaseModel, ABC):
    """Base class for parsed public keys."""

    bits: int

    @classmethod
    def from_cryptography(cls, pubkey: CryptographyPubKey) -> "PublicKey":
        """Make an instance of the right subclass from a 'cryptography' public key."""
        from signsession.common.ecdsa_utils import PublicKey_ECDSA
        from signsession.common.rsa_utils import PublicKey_RSA

        if isinstance(pubkey, rsa.RSAPublicKey):
            return PublicKey_RSA.from_cryptography(pubkey)
        if isinstance(pubkey, ec.EllipticCurvePublicKey):
            return PublicKey_ECDSA.from_cryptography(pubkey)
        raise KeyTypeMismatchError(f"Unhandled public key type {type(pubkey)}")

    @classmethod
    def from_bytes(cls, public_key: bytes, algorithm: AlgorithmDNSSEC) -> "PublicKey":
        """Decode public key bytes, as returned by get_public_key_bytes()."""
        from signsession.common.ecdsa_utils import PublicKey_ECDSA, is_algorithm_ecdsa
        from signsession.common.rsa_utils import PublicKey_RSA, is_algorithm_rsa

        if is_algorithm_rsa(algorithm):
            return PublicKey_RSA.decode_public_key(public_key, algorithm)
        if is_algorithm_ecdsa(algorithm):
            return PublicKey_ECDSA.decode_public_key(public_key, algorithm)
        raise UnsupportedAlgorithmError(
            f"Can't make public key instance for algorithm {algorithm.name}"
        )

    @abstractmethod
    def to_cryptography_pubkey(self) -> CryptographyPubKey:
        """Return a 'cryptography' public key object."""
        pass

    @abstractmethod
    def verify_signature(
        self, signature: bytes, data: bytes, algorithm: AlgorithmDNSSEC
    ) -> None:
        """Verify a DNSSEC signature over 'data' using the 'cryptography' library."""
        pass

    @classmethod
    @abstractmethod
    def decode_public_key(cls, key: bytes, algorithm: AlgorithmDNSSEC) -> Self:
        """Decode a public key from its DNSKEY byte representation."""
        pass

    @abstractmethod
    def encode_public_key(self) -> bytes:
        """Encode the public key to its DNSKEY byte representation."""
        pass
