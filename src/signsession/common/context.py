"""Process wide settings handed to key sessions."""

import logging

from pydantic import BaseModel, ConfigDict, Field

from signsession.common.config import SessionConfig
from signsession.common.data import AlgorithmDNSSEC

__author__ = "ft"


class Context(BaseModel):
    """
    Read-only view of the settings a session acts on.

    The `log' logger is where sessions report notices meant for the operator.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    sign_algorithm: AlgorithmDNSSEC
    create_keys: bool = False
    log: logging.Logger = Field(
        default_factory=lambda: logging.getLogger("signsession"), repr=False
    )

    @classmethod
    def from_config(
        cls,
        config: SessionConfig,
        create_keys: bool | None = None,
        log: logging.Logger | None = None,
    ) -> "Context":
        """
        Make a context from the 'session' section of the configuration.

        :param create_keys: Override the create_keys setting from the configuration
        """
        return cls(
            sign_algorithm=config.session.sign_algorithm,
            create_keys=(
                config.session.create_keys if create_keys is None else create_keys
            ),
            log=log if log is not None else logging.getLogger("signsession"),
        )
