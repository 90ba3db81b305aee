"""Signing capabilities handed out by sessions."""

import logging
from abc import ABC, abstractmethod

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.asymmetric.padding import PKCS1v15
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed
from pydantic import BaseModel, ConfigDict

from signsession.common.data import AlgorithmDNSSEC
from signsession.common.ecdsa_utils import (
    algorithm_to_curve,
    der_to_raw_signature,
    is_algorithm_ecdsa,
)
from signsession.common.errors import KeyTypeMismatchError
from signsession.common.public_key import PublicKey, algorithm_to_hash
from signsession.common.rsa_utils import is_algorithm_rsa
from signsession.misc.crypto import PrivateKey

__author__ = "ft"

logger = logging.getLogger(__name__)


class Signer(ABC):
    """
    A key that can make DNSSEC signatures, without exposing the private key.

    Signatures are returned in the format used in RRSIG records: PKCS#1 v1.5 for RSA,
    and the raw r || s integers for ECDSA (RFC 6605).
    """

    label: str

    @abstractmethod
    def public_key(self) -> PublicKey:
        """Return the public key of this signer."""
        pass

    @abstractmethod
    def sign_digest(self, digest: bytes, algorithm: AlgorithmDNSSEC) -> bytes:
        """Sign a digest made with the hash function of `algorithm'."""
        pass

    def sign(self, data: bytes, algorithm: AlgorithmDNSSEC) -> bytes:
        """Hash `data' and sign the digest."""
        _hash = hashes.Hash(algorithm_to_hash(algorithm))
        _hash.update(data)
        return self.sign_digest(_hash.finalize(), algorithm)

    def __str__(self) -> str:
        """Return signer as string."""
        return f"key_label={self.label} {self.public_key()}"


def check_digest(digest: bytes, algorithm: AlgorithmDNSSEC) -> hashes.HashAlgorithm:
    """Return the hash function of `algorithm', after checking the digest is the right size."""
    _hash = algorithm_to_hash(algorithm)
    if len(digest) != _hash.digest_size:
        raise ValueError(
            f"Digest is {len(digest)} bytes, {_hash.name} digests are {_hash.digest_size} bytes"
        )
    return _hash


class FileSigner(Signer):
    """Signer using a private key loaded into memory."""

    def __init__(self, key: PrivateKey, label: str):
        self.label = label
        self._key = key
        self._public_key: PublicKey | None = None

    def public_key(self) -> PublicKey:
        """
        Return the public key of this signer.

        Raises KeyTypeMismatchError for keys (like other EC curves) that DNSSEC has no encoding of.
        """
        if self._public_key is None:
            self._public_key = PublicKey.from_cryptography(self._key.public_key())
        return self._public_key

    def sign_digest(self, digest: bytes, algorithm: AlgorithmDNSSEC) -> bytes:
        _hash = check_digest(digest, algorithm)
        if isinstance(self._key, rsa.RSAPrivateKey):
            if not is_algorithm_rsa(algorithm):
                raise KeyTypeMismatchError(
                    f"Can't sign with RSA key {self.label} using algorithm {algorithm.name}"
                )
            return self._key.sign(digest, PKCS1v15(), Prehashed(_hash))

        if not is_algorithm_ecdsa(algorithm):
            raise KeyTypeMismatchError(
                f"Can't sign with EC key {self.label} using algorithm {algorithm.name}"
            )
        curve = algorithm_to_curve(algorithm)
        if self._key.curve.name != curve.value:
            raise KeyTypeMismatchError(
                f"Key {self.label} is on curve {self._key.curve.name}, "
                f"algorithm {algorithm.name} needs {curve.value}"
            )
        _der = self._key.sign(digest, ec.ECDSA(Prehashed(_hash)))
        return der_to_raw_signature(_der, curve)


class SigKeys(BaseModel):
    """The signers for the ZSK and the KSK, handed over to the signing pipeline."""

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    zsk_signer: Signer
    ksk_signer: Signer
