"""Data classes common to all key sessions."""

from abc import ABC
from base64 import b64decode
from enum import Enum
from typing import TYPE_CHECKING, Any, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

__author__ = "ft"


class FrozenBaseModel(BaseModel, ABC):
    """
    A frozen abstract base class for Pydantic models.

    This variant allows coercion of data - used when loading configuration objects to e.g.
    get algorithms loaded transparently from strings.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")


class FrozenStrictBaseModel(BaseModel, ABC):
    """
    A frozen *strict* abstract base class for Pydantic models.

    This variant does NOT allow coercion of data - used for key material.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)


class AlgorithmDNSSEC(Enum):
    """
    DNSSEC Algorithms.

    https://www.iana.org/assignments/dns-sec-alg-numbers/dns-sec-alg-numbers.xhtml
    """

    RSAMD5 = 1
    DSA = 3
    RSASHA1 = 5
    DSA_NSEC3_SHA1 = 6
    RSASHA1_NSEC3_SHA1 = 7
    RSASHA256 = 8
    RSASHA512 = 10
    ECC_GOST = 12
    ECDSAP256SHA256 = 13
    ECDSAP384SHA384 = 14
    ED25519 = 15
    ED448 = 16


# Algorithms a session can generate keys for and export public keys of
SUPPORTED_ALGORITHMS = [
    AlgorithmDNSSEC.RSASHA256,
    AlgorithmDNSSEC.ECDSAP256SHA256,
]


class FlagsDNSKEY(Enum):
    """DNSKEY flags."""

    SEP = 0x0001
    REVOKE = 0x0080
    ZONE = 0x0100


class KeyRole(Enum):
    """The two keys managed by a session, with their DNSKEY flags."""

    ZSK = FlagsDNSKEY.ZONE.value
    KSK = FlagsDNSKEY.ZONE.value | FlagsDNSKEY.SEP.value

    @property
    def flags(self) -> int:
        return self.value


class Key(FrozenStrictBaseModel):
    """DNSKEY parameters."""

    if TYPE_CHECKING:
        # A frozen BaseModel will get a __hash__ function, but Pylance currently misses this
        def __hash__(self) -> int: ...

    key_identifier: str
    key_tag: int
    ttl: int
    flags: int
    protocol: int
    algorithm: AlgorithmDNSSEC
    public_key: bytes = Field(repr=False)

    @field_validator("public_key", mode="after")
    @classmethod
    def ecdsa_public_key_size(cls, v: bytes, info: ValidationInfo) -> bytes:
        # have to import these locally to avoid circular imports  # noqa
        from signsession.common.ecdsa_utils import (
            ecdsa_public_key_without_prefix,
            expected_ecdsa_key_size,
            get_ecdsa_pubkey_size,
            is_algorithm_ecdsa,
        )

        _algorithm = info.data["algorithm"]
        if is_algorithm_ecdsa(_algorithm):
            _pubkey = ecdsa_public_key_without_prefix(b64decode(v), _algorithm)
            _size = get_ecdsa_pubkey_size(_pubkey)
            if _size != expected_ecdsa_key_size(_algorithm):
                raise ValueError(
                    f"Unexpected ECDSA key length {_size} for algorithm {_algorithm}"
                )
        return v

    @field_validator("flags", mode="after")
    @classmethod
    def validate_flags(cls, flags: int, info: ValidationInfo) -> int:
        if (
            flags == FlagsDNSKEY.ZONE.value | FlagsDNSKEY.SEP.value
            or flags
            == FlagsDNSKEY.ZONE.value | FlagsDNSKEY.SEP.value | FlagsDNSKEY.REVOKE.value
            or flags == FlagsDNSKEY.ZONE.value
        ):
            return flags
        raise ValueError(f"Unsupported DNSSEC key flags combination {flags}")

    def replace(self, **kwargs: Any) -> Self:
        """Return a new instance with the provided attributes updated. Used in tests."""
        return self.model_copy(update=kwargs)
