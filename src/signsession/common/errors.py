"""Base exception classes used by the key sessions."""

__author__ = "ft"


class SessionError(Exception):
    """Base class exception for all key session errors."""


class UnsupportedAlgorithmError(SessionError):
    """The configured signing algorithm is not implemented by this session."""


class KeyGenerationError(SessionError):
    """Generating new key material failed."""


class KeyEncodingError(SessionError):
    """A generated key could not be encoded as PKCS#8."""


class KeyDecodeError(SessionError):
    """Stored key material is not a valid PEM encoded PKCS#8 private key."""


class KeyStreamError(SessionError):
    """Reading, writing or seeking a key stream failed."""


class KeyNotFoundError(SessionError):
    """A key could not be located in the key store."""


class KeyTypeMismatchError(SessionError):
    """The key type does not match the signing algorithm."""


class HSMError(SessionError):
    """Talking to a PKCS#11 module failed."""
