"""Generation of signing key pairs inside a PKCS#11 module."""

import logging
from typing import Any

import PyKCS11
from PyKCS11.LowLevel import (
    CK_FALSE,
    CK_TRUE,
    CKA_CLASS,
    CKA_DECRYPT,
    CKA_DERIVE,
    CKA_EC_PARAMS,
    CKA_ENCRYPT,
    CKA_EXTRACTABLE,
    CKA_KEY_TYPE,
    CKA_LABEL,
    CKA_MODULUS_BITS,
    CKA_PRIVATE,
    CKA_PUBLIC_EXPONENT,
    CKA_SENSITIVE,
    CKA_SIGN,
    CKA_TOKEN,
    CKA_UNWRAP,
    CKA_VERIFY,
    CKA_WRAP,
    CKK_EC,
    CKK_RSA,
    CKO_PRIVATE_KEY,
    CKO_PUBLIC_KEY,
)

from signsession.common.ecdsa_utils import ECCurve
from signsession.common.errors import KeyGenerationError
from signsession.misc.hsm import EC_CURVE_OIDS, P11KeyPair, P11Module

__author__ = "ft"


logger = logging.getLogger(__name__)

Template = list[tuple[Any, Any]]

# Token objects usable for signing and verifying only. The private key never leaves the token.
_PUBLIC_TEMPLATE: Template = [
    (CKA_CLASS, CKO_PUBLIC_KEY),
    (CKA_TOKEN, CK_TRUE),
    (CKA_VERIFY, CK_TRUE),
    (CKA_WRAP, CK_FALSE),
]
_PRIVATE_TEMPLATE: Template = [
    (CKA_CLASS, CKO_PRIVATE_KEY),
    (CKA_TOKEN, CK_TRUE),
    (CKA_SIGN, CK_TRUE),
    (CKA_PRIVATE, CK_TRUE),
    (CKA_SENSITIVE, CK_TRUE),
    (CKA_EXTRACTABLE, CK_FALSE),
    (CKA_UNWRAP, CK_FALSE),
    (CKA_DERIVE, CK_FALSE),
]


def generate_rsa_key(
    label: str, bits: int, module: P11Module, exponent: int = 65537
) -> P11KeyPair:
    """Generate an RSA key pair of `bits' bits."""
    _exp = exponent.to_bytes((exponent.bit_length() + 7) // 8, byteorder="big")
    return _generate(
        module,
        label,
        public=[
            (CKA_KEY_TYPE, CKK_RSA),
            (CKA_MODULUS_BITS, bits),
            (CKA_PUBLIC_EXPONENT, tuple(_exp)),
            (CKA_ENCRYPT, CK_FALSE),
        ],
        private=[(CKA_KEY_TYPE, CKK_RSA), (CKA_DECRYPT, CK_FALSE)],
        mechanism=PyKCS11.MechanismRSAGENERATEKEYPAIR,
    )


def generate_ec_key(label: str, curve: ECCurve, module: P11Module) -> P11KeyPair:
    """Generate an EC key pair on `curve'."""
    return _generate(
        module,
        label,
        public=[(CKA_KEY_TYPE, CKK_EC), (CKA_EC_PARAMS, tuple(EC_CURVE_OIDS[curve]))],
        private=[(CKA_KEY_TYPE, CKK_EC)],
        mechanism=PyKCS11.MechanismECGENERATEKEYPAIR,
    )


def _generate(
    module: P11Module,
    label: str,
    public: Template,
    private: Template,
    mechanism: PyKCS11.Mechanism,
) -> P11KeyPair:
    existing = module.find_key_pair(label)
    if existing is not None:
        raise KeyGenerationError(f"A key with label {label} already exists: {existing}")

    _label = [(CKA_LABEL, label)]
    logger.debug(f"Generating key pair {label} in {module}")
    try:
        module.session.generateKeyPair(
            _label + _PUBLIC_TEMPLATE + public,
            _label + _PRIVATE_TEMPLATE + private,
            mecha=mechanism,
        )
    except PyKCS11.PyKCS11Error as exc:
        raise KeyGenerationError(f"Failed generating key {label}: {exc}") from exc

    new_key = module.find_key_pair(label)
    if new_key is None or new_key.public_key is None or new_key.private_handle is None:
        raise KeyGenerationError(f"Generated key {label} could not be found afterwards")
    logger.info(f"Generated key: {new_key}")
    return new_key
