"""Access to keys stored in PKCS#11 modules (HSMs)."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from enum import Enum
from getpass import getpass
from pathlib import Path
from typing import Any

import PyKCS11
from cryptography.hazmat.primitives.asymmetric import ec
from PyKCS11.LowLevel import (
    CKA_CLASS,
    CKA_EC_PARAMS,
    CKA_EC_POINT,
    CKA_KEY_TYPE,
    CKA_LABEL,
    CKA_MODULUS,
    CKA_PUBLIC_EXPONENT,
    CKF_RW_SESSION,
    CKK_EC,
    CKK_RSA,
    CKM_ECDSA,
    CKM_RSA_X_509,
    CKO_PRIVATE_KEY,
    CKO_PUBLIC_KEY,
)
from pydantic import BaseModel, ConfigDict, Field

from signsession.common.config import ConfigurationError
from signsession.common.config_misc import HSMConfig
from signsession.common.data import AlgorithmDNSSEC
from signsession.common.ecdsa_utils import (
    ECCurve,
    PublicKey_ECDSA,
    curve_to_cryptography,
    is_algorithm_ecdsa,
)
from signsession.common.errors import (
    HSMError,
    KeyNotFoundError,
    KeyTypeMismatchError,
    UnsupportedAlgorithmError,
)
from signsession.common.public_key import PublicKey
from signsession.common.rsa_utils import PublicKey_RSA, is_algorithm_rsa

__author__ = "ft"


logger = logging.getLogger(__name__)


# DER encoded OIDs of the curves, as found in CKA_EC_PARAMS
EC_CURVE_OIDS: dict[ECCurve, bytes] = {
    # OID 1.2.840.10045.3.1.7 / prime256v1
    ECCurve.P256: b"\x06\x08\x2a\x86\x48\xce\x3d\x03\x01\x07",
    # OID 1.3.132.0.34 / secp384r1
    ECCurve.P384: b"\x06\x05\x2b\x81\x04\x00\x22",
}
_OID_TO_CURVE = {v: k for k, v in EC_CURVE_OIDS.items()}

# DigestInfo prefixes for EMSA-PKCS1-v1_5 (RFC 3447, section 9.2, note 1)
_DIGEST_INFO_PREFIX: dict[AlgorithmDNSSEC, bytes] = {
    AlgorithmDNSSEC.RSASHA256: b"\x30\x31\x30\x0d\x06\x09\x60\x86\x48\x01\x65\x03\x04\x02\x01\x05\x00\x04\x20",
    AlgorithmDNSSEC.RSASHA512: b"\x30\x51\x30\x0d\x06\x09\x60\x86\x48\x01\x65\x03\x04\x02\x03\x05\x00\x04\x40",
}


class KeyType(Enum):
    """The CKA_KEY_TYPE values a key session can use."""

    RSA = CKK_RSA
    EC = CKK_EC


class P11KeyPair(BaseModel):
    """
    The public and private key objects sharing a CKA_LABEL in a PKCS#11 module.

    Either handle is None if that half of the pair is missing from the token.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    label: str
    key_type: KeyType
    public_key: PublicKey | None
    session: Any = Field(default=None, repr=False)  # PyKCS11 opaque data
    private_handle: Any = Field(default=None, repr=False)  # PyKCS11 opaque data
    public_handle: Any = Field(default=None, repr=False)  # PyKCS11 opaque data

    def __str__(self) -> str:
        """Return key pair as string."""
        ret = f"key_label={self.label}"
        if self.public_key:
            ret += " " + str(self.public_key)
        return ret


@contextmanager
def hsm_errors(action: str) -> Iterator[None]:
    """Raise PyKCS11 errors occurring inside the block as HSMError."""
    try:
        yield
    except PyKCS11.PyKCS11Error as exc:
        raise HSMError(f"{action} failed: {exc}") from exc


@contextmanager
def _environment(env: Mapping[str, Any]) -> Iterator[None]:
    """Set environment variables (like SOFTHSM2_CONF) for the duration of the block."""
    old_env = {key: os.environ.get(key) for key in env}
    os.environ.update({k: str(v) for k, v in env.items()})
    try:
        yield
    finally:
        for key, val in old_env.items():
            if val is None:
                del os.environ[key]
            else:
                os.environ[key] = val


def _module_path(module: Path | str) -> Path | str:
    """Resolve module paths given as $VARIABLE from the environment."""
    if isinstance(module, str) and module.startswith("$"):
        if not (_module := os.environ.get(module.lstrip("$"))):
            raise ConfigurationError(f"Environment variable {module} not set")
        return Path(_module)
    return module


class P11Module:
    """A PKCS#11 module, with a single USER session to the first slot holding a token."""

    def __init__(self, label: str, hsm: HSMConfig, rw_session: bool = False):
        """
        Load and initialise a PKCS#11 module.

        The module isn't logged in to until the session is first used.

        :param rw_session: Request a R/W session (needed to create and destroy keys)
        """
        self.label = label
        self.module = _module_path(hsm.module)
        self._rw_session = rw_session
        self._pin = None if hsm.pin is None else str(hsm.pin)
        self._session: PyKCS11.Session | None = None

        logger.info(f"Initializing PKCS#11 module {self.label} using {self.module}")
        self._lib = PyKCS11.PyKCS11Lib()
        with _environment(hsm.env), hsm_errors(f"Loading PKCS#11 module {self.module}"):
            self._lib.load(str(self.module))
            self._lib.lib.C_Initialize()

    def __str__(self) -> str:
        """Return P11 module as string."""
        return f"<{self.__class__.__name__}: {self.label} ({self.module})>"

    @property
    def session(self) -> PyKCS11.Session:
        """Return the session, opening it and logging in on first use."""
        if self._session is None:
            with hsm_errors(f"Logging in to PKCS#11 module {self.label}"):
                slots: list[int] = self._lib.getSlotList(tokenPresent=True)
                if not slots:
                    raise HSMError(f"No token found in PKCS#11 module {self.label}")
                _slot = slots[0]
                logger.debug(
                    f"Opening slot {_slot} (of {slots}) in module {self.label} (R/W: {self._rw_session})"
                )
                _session = self._lib.openSession(
                    _slot, flags=CKF_RW_SESSION if self._rw_session else 0
                )
                if self._pin is None:
                    self._pin = getpass(
                        f"Enter USER PIN for PKCS#11 module {self.label}: "
                    )
                _session.login(self._pin)
            logger.debug(f"Login to module {self.label} slot {_slot} successful")
            self._session = _session
        return self._session

    def close(self) -> None:
        """Log out and close the session, if one was opened."""
        if self._session is None:
            return
        with hsm_errors(f"Closing session with PKCS#11 module {self.label}"):
            self._session.logout()
            self._session.closeSession()
        self._session = None

    def find_key_pair(self, label: str) -> P11KeyPair | None:
        """Look for the key objects with CKA_LABEL `label'."""
        with hsm_errors(f"Looking for key {label!r} in PKCS#11 module {self.label}"):
            public = self._find_object(label, CKO_PUBLIC_KEY)
            private = self._find_object(label, CKO_PRIVATE_KEY)
            if public is None and private is None:
                logger.debug(f"Key with label {label!r} not found in {self}")
                return None
            _handle = public if public is not None else private
            _cka_type = self.session.getAttributeValue(_handle, [CKA_KEY_TYPE])[0]
            try:
                key_type = KeyType(_cka_type)
            except ValueError as exc:
                raise KeyTypeMismatchError(
                    f"Key with label {label!r} has unsupported CKA_KEY_TYPE {_cka_type}"
                ) from exc
            public_key = None
            if public is not None:
                public_key = self._public_key(key_type, public)
        return P11KeyPair(
            label=label,
            key_type=key_type,
            public_key=public_key,
            session=self.session,
            private_handle=private,
            public_handle=public,
        )

    def _find_object(self, label: str, cka_class: int) -> Any:
        res = self.session.findObjects([(CKA_LABEL, label), (CKA_CLASS, cka_class)])
        if len(res) > 1:
            raise HSMError(
                f"More than one ({len(res)}) objects with label {label!r} found in {self}"
            )
        return res[0] if res else None

    def _public_key(self, key_type: KeyType, handle: Any) -> PublicKey:
        match key_type:
            case KeyType.RSA:
                _modulus, _exp = self.session.getAttributeValue(
                    handle, [CKA_MODULUS, CKA_PUBLIC_EXPONENT]
                )
                rsa_n = bytes(_modulus)
                return PublicKey_RSA(
                    bits=len(rsa_n) * 8,
                    exponent=int.from_bytes(bytes(_exp), byteorder="big"),
                    n=rsa_n,
                )
            case KeyType.EC:
                _params, _point = self.session.getAttributeValue(
                    handle, [CKA_EC_PARAMS, CKA_EC_POINT]
                )
                curve = _OID_TO_CURVE.get(bytes(_params))
                if curve is None:
                    raise KeyTypeMismatchError(
                        f"Unsupported curve (CKA_EC_PARAMS {bytes(_params).hex()})"
                    )
                point = _ec_point_from_der(bytes(_point), curve)
                return PublicKey_ECDSA.from_cryptography(
                    ec.EllipticCurvePublicKey.from_encoded_point(
                        curve_to_cryptography(curve), point
                    )
                )


def _ec_point_from_der(value: bytes, curve: ECCurve) -> bytes:
    """
    Return the uncompressed point in a CKA_EC_POINT value.

    PKCS#11 says CKA_EC_POINT is a DER OCTET STRING holding the point, but some modules
    return the bare point.
    """
    _size = 1 + (curve_to_cryptography(curve).key_size // 8) * 2
    if len(value) == _size and value[0] == 4:
        return value
    if len(value) == _size + 2 and value[:2] == bytes([4, _size]) and value[2] == 4:
        return value[2:]
    raise KeyTypeMismatchError(
        f"Can't find an uncompressed {curve.value} point in {len(value)} bytes CKA_EC_POINT"
    )


def _prepare_digest(
    key: P11KeyPair, digest: bytes, algorithm: AlgorithmDNSSEC
) -> tuple[int, bytes]:
    """
    Return the mechanism to sign with, and the data to pass to it.

    The digest is made in software. For RSA, the PKCS#1 v1.5 padding is done here as well
    since the raw CKM_RSA_X_509 mechanism is used. CKM_ECDSA signs the digest as is.
    """
    match key.key_type:
        case KeyType.RSA:
            if not is_algorithm_rsa(algorithm):
                raise KeyTypeMismatchError(
                    f"Can't sign with RSA key {key.label} using algorithm {algorithm.name}"
                )
            if not isinstance(key.public_key, PublicKey_RSA):
                raise KeyNotFoundError(f"No RSA public key found for {key}")
            prefix = _DIGEST_INFO_PREFIX.get(algorithm)
            if prefix is None:
                raise UnsupportedAlgorithmError(
                    f"Don't know how to pad algorithm {algorithm.name}"
                )
            # RFC 3447 9.2, EMSA-PKCS1-v1_5: 0x00 0x01 PS 0x00 T
            _t = prefix + digest
            pad_len = key.public_key.bits // 8 - len(_t) - 3
            if pad_len < 8:
                raise KeyTypeMismatchError(f"RSA key {key.label} too short for {algorithm.name}")
            return CKM_RSA_X_509, b"\x00\x01" + b"\xff" * pad_len + b"\x00" + _t
        case KeyType.EC:
            if not is_algorithm_ecdsa(algorithm):
                raise KeyTypeMismatchError(
                    f"Can't sign with EC key {key.label} using algorithm {algorithm.name}"
                )
            return CKM_ECDSA, digest


def sign_using_p11(key: P11KeyPair, digest: bytes, algorithm: AlgorithmDNSSEC) -> bytes:
    """Sign a digest using the private half of a PKCS#11 key pair."""
    if key.private_handle is None:
        raise KeyNotFoundError(f"No private key found for {key}")
    mechanism, data = _prepare_digest(key, digest, algorithm)
    logger.debug(
        f"Signing {len(digest)} bytes digest with key {key}, algorithm {algorithm.name}, "
        f"mechanism {PyKCS11.CKM[mechanism]}"
    )
    with hsm_errors(f"Signing with key {key.label}"):
        sig = key.session.sign(key.private_handle, data, PyKCS11.Mechanism(mechanism, None))
    return bytes(sig)


def init_pkcs11_modules(
    hsm: Mapping[str, HSMConfig],
    name: str | None = None,
    rw_session: bool = False,
) -> list[P11Module]:
    """
    Initialize PKCS#11 modules using the 'hsm' section of the configuration.

    If `name' is provided, _only_ the HSM matching that name is initialised.
    """
    if name and name not in hsm:
        raise ConfigurationError(f"No HSM with that name ({name}) found in the configuration")
    return [
        P11Module(label, this, rw_session=rw_session)
        for label, this in hsm.items()
        if not name or label == name
    ]


def get_key_pair(label: str, p11modules: list[P11Module]) -> P11KeyPair | None:
    """Return the key pair with CKA_LABEL `label' from the first module that has one."""
    for module in p11modules:
        key = module.find_key_pair(label)
        if key is not None:
            return key
    return None
