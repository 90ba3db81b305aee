"""Code using the Cryptography library to generate, encode and decode private keys."""

import logging
import re
from typing import BinaryIO

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from signsession.common.ecdsa_utils import ECCurve, curve_to_cryptography
from signsession.common.errors import (
    KeyDecodeError,
    KeyEncodingError,
    KeyGenerationError,
    KeyStreamError,
)

__author__ = "ft"

logger = logging.getLogger(__name__)


PrivateKey = rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey

PEM_LABEL = b"PRIVATE KEY"

_PEM_BEGIN = re.compile(rb"-----BEGIN ([A-Z0-9 ]+)-----")


def generate_rsa_key(bits: int, exponent: int = 65537) -> rsa.RSAPrivateKey:
    """Generate an RSA private key."""
    logger.debug(f"Generating RSA-{bits} key with exponent {exponent}")
    try:
        return rsa.generate_private_key(public_exponent=exponent, key_size=bits)
    except (ValueError, TypeError) as exc:
        raise KeyGenerationError(f"Failed generating RSA-{bits} key: {exc}") from exc


def generate_ec_key(curve: ECCurve) -> ec.EllipticCurvePrivateKey:
    """Generate an elliptic curve private key."""
    logger.debug(f"Generating EC key on curve {curve.value}")
    try:
        return ec.generate_private_key(curve_to_cryptography(curve))
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyGenerationError(f"Failed generating {curve.value} key: {exc}") from exc


def private_key_to_pem(key: PrivateKey) -> bytes:
    """Encode a private key as an unencrypted PKCS#8 structure in a PEM 'PRIVATE KEY' block."""
    try:
        return key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    except (ValueError, TypeError) as exc:
        raise KeyEncodingError(f"Failed encoding private key as PKCS#8: {exc}") from exc


def pem_to_private_key(data: bytes) -> PrivateKey:
    """
    Decode a PEM 'PRIVATE KEY' block holding a PKCS#8 encoded RSA or EC private key.

    Other PEM types (like PKCS#1 'RSA PRIVATE KEY' or 'ENCRYPTED PRIVATE KEY') are rejected.
    """
    if not data.strip():
        raise KeyDecodeError("No key data found")
    match = _PEM_BEGIN.search(data)
    if not match:
        raise KeyDecodeError("No PEM block found in key data")
    if match.group(1) != PEM_LABEL:
        raise KeyDecodeError(
            f"Unexpected PEM block type {match.group(1).decode()!r}, "
            f"expected {PEM_LABEL.decode()!r}"
        )
    try:
        key = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyDecodeError(f"Failed decoding PKCS#8 private key: {exc}") from exc
    if not isinstance(key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
        raise KeyDecodeError(f"Unsupported private key type {type(key).__name__}")
    return key


def write_private_key(stream: BinaryIO, data: bytes, name: str) -> None:
    """
    Replace the contents of a key stream with `data'.

    The stream is left positioned at the start, so that the key can be read back right away.
    """
    try:
        stream.seek(0)
        stream.write(data)
        stream.truncate()
        stream.flush()
        stream.seek(0)
    except (OSError, ValueError) as exc:
        # ValueError is what io raises for operations on closed streams
        raise KeyStreamError(f"Failed writing {name} key: {exc}") from exc
    logger.debug(f"Wrote {len(data)} bytes to {name} key stream")


def read_private_key(stream: BinaryIO, name: str) -> PrivateKey:
    """Read and decode the private key stored in a key stream, starting from the beginning."""
    try:
        stream.seek(0)
        data = stream.read()
        stream.seek(0)
    except (OSError, ValueError) as exc:
        raise KeyStreamError(f"Failed reading {name} key: {exc}") from exc
    logger.debug(f"Read {len(data)} bytes from {name} key stream")
    try:
        return pem_to_private_key(data)
    except KeyDecodeError as exc:
        raise KeyDecodeError(f"Invalid {name} key: {exc}") from exc
