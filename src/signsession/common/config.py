"""Load and parse configuration."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Mapping
from io import BufferedReader, StringIO
from typing import Any

import yaml
from pydantic import Field

from signsession.common.config_misc import (
    DNSKEYPolicy,
    FrozenBaseModel,
    HSMConfig,
    KeyFilenames,
    KeyLabels,
    SessionPolicy,
)

__author__ = "ft"

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Base exception for errors in the configuration."""


class SessionConfig(FrozenBaseModel):
    """
    Configuration object.

    Holds configuration loaded from signsession.yaml.
    """

    """
    Session behaviour.

    Example:
    -------
        session:
            backend: file
            sign_algorithm: ECDSAP256SHA256
            create_keys: false
    """
    session: SessionPolicy = SessionPolicy()

    """
    Key files used by the file backend. Relative paths are relative to the working directory.

    Example:
    -------
        files:
            zsk: /var/lib/signsession/zsk.pem
            ksk: /var/lib/signsession/ksk.pem
    """
    files: KeyFilenames = KeyFilenames()

    """
    Key labels used by the PKCS#11 backend.

    Example:
    -------
        labels:
            zsk: example_zsk
            ksk: example_ksk
    """
    labels: KeyLabels = KeyLabels()

    """
    DNSKEY presentation parameters.

    Example:
    -------
        dnskey:
            owner: example.com.
            ttl: 3600
    """
    dnskey: DNSKEYPolicy = DNSKEYPolicy()

    """
    HSM configuration.

    Example:
    -------
        hsm:
            softhsm:
                module: /path/to/softhsm/libsofthsm2.so
                pin: 123456
                env:
                    SOFTHSM2_CONF: /path/to/softhsm.conf
    """
    hsm: Mapping[str, HSMConfig] = Field(default_factory=dict)

    @classmethod
    def from_yaml(
        cls: type[SessionConfig], stream: BufferedReader | StringIO
    ) -> SessionConfig:
        """Load configuration from a YAML stream."""
        config = yaml.safe_load(stream)
        if config is None:
            config = {}
        if not isinstance(config, Mapping):
            raise ConfigurationError("Configuration must be a YAML mapping")
        return cls.from_dict(config)

    @classmethod
    def from_dict(cls: type[SessionConfig], config: Mapping[str, Any]) -> SessionConfig:
        return cls.model_validate(dict(config))


def get_config(filename: str | None) -> SessionConfig:
    """Top-level function to load configuration, or return a default SessionConfig instance."""
    if not filename:
        # Avoid having Optional[SessionConfig] everywhere by always having a config, even if it is empty
        logger.warning(
            "No configuration filename provided, using default configuration."
        )
        return SessionConfig()
    with open(filename, "rb") as fd:
        config_bytes = fd.read()
        logger.info(
            "Loaded configuration from file %s SHA-256 %s",
            filename,
            hashlib.sha256(config_bytes).hexdigest(),
        )
        fd.seek(0)
        return SessionConfig.from_yaml(fd)
