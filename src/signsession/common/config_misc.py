"""Sub-parts of SessionConfig (in config.py)."""

from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, FilePath, StringConstraints, field_validator

from signsession.common.data import AlgorithmDNSSEC, FrozenBaseModel

__author__ = "ft"


DomainNameString = Annotated[str, StringConstraints(pattern=r"^[\w\.-]+$")]
IntegerDNSTTL = Annotated[int, Field(ge=0)]
KeyLabel = Annotated[str, StringConstraints(pattern=r"^[\w_-]+$")]


class SessionBackend(Enum):
    """Where a session keeps the private keys."""

    FILE = "file"
    PKCS11 = "pkcs11"


class SessionPolicy(FrozenBaseModel):
    """
    How the session should behave.

    This corresponds to the 'session' section of signsession.yaml.
    """

    backend: SessionBackend = SessionBackend.FILE
    sign_algorithm: AlgorithmDNSSEC = AlgorithmDNSSEC.RSASHA256
    create_keys: bool = False

    @field_validator("sign_algorithm", mode="before")
    @classmethod
    def algorithm_by_name(cls, v: Any) -> Any:
        if isinstance(v, str):
            try:
                return AlgorithmDNSSEC[v]
            except KeyError as err:
                raise ValueError(f"invalid algorithm {v!r}") from err
        return v


class KeyFilenames(FrozenBaseModel):
    """
    Private key files used by the file backend.

    This corresponds to the 'files' section of signsession.yaml.
    """

    zsk: Path = Path("zsk.pem")
    ksk: Path = Path("ksk.pem")


class KeyLabels(FrozenBaseModel):
    """
    CKA_LABEL of the keys used by the PKCS#11 backend.

    This corresponds to the 'labels' section of signsession.yaml.
    """

    zsk: KeyLabel = "signsession_zsk"
    ksk: KeyLabel = "signsession_ksk"


class DNSKEYPolicy(FrozenBaseModel):
    """Parameters used when presenting the keys as DNSKEY records."""

    owner: DomainNameString = "."
    ttl: IntegerDNSTTL = 3600


class HSMConfig(FrozenBaseModel):
    """A PKCS#11 module, as found in the 'hsm' section of signsession.yaml."""

    module: FilePath | str
    pin: str | int | None = None
    env: Mapping[str, Any] = Field(default_factory=dict)
