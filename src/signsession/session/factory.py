"""Set up the session configured in signsession.yaml."""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO

from signsession.common.config import ConfigurationError, SessionConfig
from signsession.common.config_misc import SessionBackend
from signsession.common.context import Context
from signsession.common.errors import KeyStreamError
from signsession.session.base import Session
from signsession.session.file import FileSession

__author__ = "ft"

logger = logging.getLogger(__name__)


def open_key_file(path: Path) -> BinaryIO:
    """Open a key file for reading and writing, creating it readable only by the owner if missing."""
    try:
        fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o600)
    except OSError as exc:
        raise KeyStreamError(f"Failed opening key file {path}: {exc}") from exc
    return os.fdopen(fd, "r+b")


@contextmanager
def open_session(
    context: Context, config: SessionConfig, hsm: str | None = None
) -> Iterator[Session]:
    """
    Open the session backend named in the configuration, and end it when done.

    :param hsm: Only use the PKCS#11 module with this name from the 'hsm' section
    """
    session: Session
    match config.session.backend:
        case SessionBackend.FILE:
            logger.debug(f"Using key files {config.files.zsk} and {config.files.ksk}")
            with open_key_file(config.files.zsk) as zsk_fd, open_key_file(
                config.files.ksk
            ) as ksk_fd:
                session = FileSession(context, zsk_stream=zsk_fd, ksk_stream=ksk_fd)
                try:
                    yield session
                finally:
                    session.end()
        case SessionBackend.PKCS11:
            if not config.hsm:
                raise ConfigurationError("The pkcs11 backend needs an 'hsm' section")
            # imported here to not require a PKCS#11 library for the file backend
            from signsession.misc.hsm import init_pkcs11_modules
            from signsession.session.pkcs11 import P11Session

            p11modules = init_pkcs11_modules(config.hsm, name=hsm, rw_session=True)
            session = P11Session(
                context,
                p11modules,
                zsk_label=config.labels.zsk,
                ksk_label=config.labels.ksk,
            )
            try:
                yield session
            finally:
                session.end()
