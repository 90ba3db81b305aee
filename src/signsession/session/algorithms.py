"""
Signing algorithms known to the sessions.

Every place that needs to know what kind of key belongs to an algorithm (key generation in
software or in an HSM, exporting public keys) looks the algorithm up in ALGORITHMS.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from signsession.common.data import AlgorithmDNSSEC, KeyRole
from signsession.common.ecdsa_utils import ECCurve, PublicKey_ECDSA
from signsession.common.errors import KeyTypeMismatchError, UnsupportedAlgorithmError
from signsession.common.public_key import PublicKey
from signsession.common.rsa_utils import PublicKey_RSA
from signsession.misc.crypto import PrivateKey, generate_ec_key, generate_rsa_key
from signsession.session.signer import SigKeys, Signer

__author__ = "ft"

logger = logging.getLogger(__name__)


class KeyFamily(Enum):
    """Kind of key pair used by an algorithm."""

    RSA = "RSA"
    EC = "EC"


@dataclass(frozen=True)
class AlgorithmSpec:
    """Key parameters for one signing algorithm."""

    algorithm: AlgorithmDNSSEC
    family: KeyFamily
    ksk_bits: int
    zsk_bits: int
    curve: ECCurve | None = None
    rsa_exponent: int = 65537

    def key_size(self, role: KeyRole) -> int:
        """Size in bits of the key for a role."""
        return self.ksk_bits if role == KeyRole.KSK else self.zsk_bits

    def generate(self, role: KeyRole) -> PrivateKey:
        """Generate a new private key for `role' in software."""
        match self.family:
            case KeyFamily.RSA:
                return generate_rsa_key(self.key_size(role), self.rsa_exponent)
            case KeyFamily.EC if self.curve is not None:
                return generate_ec_key(self.curve)
        raise UnsupportedAlgorithmError(f"Can't generate keys for {self.algorithm.name}")

    def encode_public(self, public_key: PublicKey) -> bytes:
        """Encode a public key the way DNSKEY records for this algorithm need it."""
        if self.family == KeyFamily.RSA and isinstance(public_key, PublicKey_RSA):
            return public_key.encode_public_key()
        if (
            self.family == KeyFamily.EC
            and isinstance(public_key, PublicKey_ECDSA)
            and public_key.curve == self.curve
        ):
            return public_key.encode_public_key()
        raise KeyTypeMismatchError(
            f"Key ({public_key}) can't be used with algorithm {self.algorithm.name}"
        )


ALGORITHMS: dict[AlgorithmDNSSEC, AlgorithmSpec] = {
    # The KSK is the trust anchor and gets the larger key, the ZSK is rolled more often
    AlgorithmDNSSEC.RSASHA256: AlgorithmSpec(
        algorithm=AlgorithmDNSSEC.RSASHA256,
        family=KeyFamily.RSA,
        ksk_bits=2048,
        zsk_bits=1024,
    ),
    AlgorithmDNSSEC.ECDSAP256SHA256: AlgorithmSpec(
        algorithm=AlgorithmDNSSEC.ECDSAP256SHA256,
        family=KeyFamily.EC,
        ksk_bits=256,
        zsk_bits=256,
        curve=ECCurve.P256,
    ),
}


def get_algorithm(algorithm: AlgorithmDNSSEC) -> AlgorithmSpec:
    """Look up an algorithm, raising UnsupportedAlgorithmError for anything unknown."""
    spec = ALGORITHMS.get(algorithm)
    if spec is None:
        raise UnsupportedAlgorithmError(f"Unsupported sign algorithm {algorithm.name}")
    return spec


def get_public_key_bytes(
    algorithm: AlgorithmDNSSEC, keys: SigKeys
) -> tuple[bytes, bytes]:
    """
    Return the (zsk, ksk) public keys of `keys', encoded for `algorithm'.

    The KSK is processed first, so a failure for the KSK is reported without touching the ZSK.
    """
    spec = get_algorithm(algorithm)
    ksk_bytes = _encode_signer(spec, keys.ksk_signer, KeyRole.KSK)
    zsk_bytes = _encode_signer(spec, keys.zsk_signer, KeyRole.ZSK)
    return zsk_bytes, ksk_bytes


def _encode_signer(spec: AlgorithmSpec, signer: Signer, role: KeyRole) -> bytes:
    _pubkey = signer.public_key()
    logger.debug(f"Encoding {role.name} public key {_pubkey} for {spec.algorithm.name}")
    return spec.encode_public(_pubkey)
