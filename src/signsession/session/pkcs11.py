"""Key session using keys stored in PKCS#11 modules (HSMs)."""

import logging

from signsession.common.context import Context
from signsession.common.data import AlgorithmDNSSEC, KeyRole
from signsession.common.errors import (
    HSMError,
    KeyNotFoundError,
    UnsupportedAlgorithmError,
)
from signsession.common.public_key import PublicKey
from signsession.keymaster.delete import key_delete
from signsession.keymaster.keygen import generate_ec_key, generate_rsa_key
from signsession.misc.hsm import P11KeyPair, P11Module, get_key_pair, sign_using_p11
from signsession.session.algorithms import (
    AlgorithmSpec,
    KeyFamily,
    get_algorithm,
    get_public_key_bytes,
)
from signsession.session.base import Session
from signsession.session.signer import SigKeys, Signer, check_digest

__author__ = "ft"

logger = logging.getLogger(__name__)


class P11Signer(Signer):
    """Signer using a private key that never leaves the HSM."""

    def __init__(self, key: P11KeyPair):
        if key.public_key is None or key.private_handle is None:
            raise KeyNotFoundError(f"Key pair with label {key.label} is incomplete")
        self.label = key.label
        self._key = key
        self._public_key: PublicKey = key.public_key

    def public_key(self) -> PublicKey:
        return self._public_key

    def sign_digest(self, digest: bytes, algorithm: AlgorithmDNSSEC) -> bytes:
        check_digest(digest, algorithm)
        return sign_using_p11(self._key, digest, algorithm)


class P11Session(Session):
    """
    Key session backed by PKCS#11 modules.

    The ZSK and KSK are the key pairs with CKA_LABEL `zsk_label' and `ksk_label'.
    """

    def __init__(
        self,
        context: Context,
        p11modules: list[P11Module],
        zsk_label: str,
        ksk_label: str,
    ):
        self._context = context
        self.p11modules = p11modules
        self.labels = {KeyRole.ZSK: zsk_label, KeyRole.KSK: ksk_label}

    def __str__(self) -> str:
        """Return session as string."""
        _modules = ", ".join([x.label for x in self.p11modules])
        return f"<{self.__class__.__name__}: {_modules}>"

    @property
    def context(self) -> Context:
        return self._context

    def get_keys(self) -> SigKeys:
        """Locate the ZSK and KSK in the HSM, after replacing them with new keys if create_keys is set."""
        spec = get_algorithm(self._context.sign_algorithm)
        if self._context.create_keys:
            self._context.log.info(
                "create-keys flag activated. Creating or overwriting keys"
            )
            self._generate_keys(spec)
        return SigKeys(
            zsk_signer=self._load_signer(KeyRole.ZSK),
            ksk_signer=self._load_signer(KeyRole.KSK),
        )

    def get_public_key_bytes(self, keys: SigKeys) -> tuple[bytes, bytes]:
        return get_public_key_bytes(self._context.sign_algorithm, keys)

    def destroy_all_keys(self) -> None:
        """Delete both key pairs from the HSM."""
        for role in [KeyRole.KSK, KeyRole.ZSK]:
            if key_delete(self.labels[role], self.p11modules):
                logger.info(f"Deleted {role.name} {self.labels[role]}")

    def end(self) -> None:
        """Close all PKCS#11 sessions."""
        for module in self.p11modules:
            module.close()
        logger.debug(f"{self}: session ended")

    def _generate_keys(self, spec: AlgorithmSpec) -> None:
        """Replace both key pairs with new ones, generated in the first PKCS#11 module."""
        if not self.p11modules:
            raise HSMError("No PKCS#11 module to generate keys in")
        module = self.p11modules[0]
        for role in [KeyRole.KSK, KeyRole.ZSK]:
            label = self.labels[role]
            if key_delete(label, self.p11modules):
                logger.warning(f"Replacing existing {role.name} with label {label}")
            match spec.family:
                case KeyFamily.RSA:
                    generate_rsa_key(
                        label,
                        spec.key_size(role),
                        module,
                        exponent=spec.rsa_exponent,
                    )
                case KeyFamily.EC if spec.curve is not None:
                    generate_ec_key(label, spec.curve, module)
                case _:
                    raise UnsupportedAlgorithmError(
                        f"Can't generate {spec.algorithm.name} keys in a PKCS#11 module"
                    )
            logger.info(
                f"Generated {role.name} {label} ({spec.algorithm.name}, {spec.key_size(role)} bits)"
            )

    def _load_signer(self, role: KeyRole) -> P11Signer:
        label = self.labels[role]
        key = get_key_pair(label, self.p11modules)
        if key is None:
            raise KeyNotFoundError(f"{role.name} key pair with label {label} not found")
        return P11Signer(key)
