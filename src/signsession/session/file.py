"""Key session storing PEM encoded PKCS#8 private keys in streams (typically files)."""

import logging
from typing import BinaryIO

from signsession.common.context import Context
from signsession.common.data import KeyRole
from signsession.misc.crypto import private_key_to_pem, read_private_key, write_private_key
from signsession.session.algorithms import (
    AlgorithmSpec,
    get_algorithm,
    get_public_key_bytes,
)
from signsession.session.base import Session
from signsession.session.signer import FileSigner, SigKeys

__author__ = "ft"

logger = logging.getLogger(__name__)


class FileSession(Session):
    """
    Key session backed by two seekable binary streams, one per key.

    The caller opens (and closes) the streams. Each stream holds a single PEM 'PRIVATE KEY'
    block. The session assumes exclusive use of the streams while get_keys() runs.
    """

    def __init__(self, context: Context, zsk_stream: BinaryIO, ksk_stream: BinaryIO):
        self._context = context
        self.zsk_stream = zsk_stream
        self.ksk_stream = ksk_stream

    def __str__(self) -> str:
        """Return session as string."""
        return f"<{self.__class__.__name__}: {self._context.sign_algorithm.name}>"

    @property
    def context(self) -> Context:
        return self._context

    def get_keys(self) -> SigKeys:
        """
        Load the ZSK and KSK from the streams, after overwriting them with new keys if create_keys is set.

        Keys are always read back from the streams, so the signers use exactly what is stored.
        """
        spec = get_algorithm(self._context.sign_algorithm)
        if self._context.create_keys:
            self._context.log.info(
                "create-keys flag activated. Creating or overwriting keys"
            )
            self._generate_keys(spec)
        zsk = read_private_key(self.zsk_stream, KeyRole.ZSK.name)
        ksk = read_private_key(self.ksk_stream, KeyRole.KSK.name)
        return SigKeys(
            zsk_signer=FileSigner(zsk, label=KeyRole.ZSK.name),
            ksk_signer=FileSigner(ksk, label=KeyRole.KSK.name),
        )

    def get_public_key_bytes(self, keys: SigKeys) -> tuple[bytes, bytes]:
        return get_public_key_bytes(self._context.sign_algorithm, keys)

    def destroy_all_keys(self) -> None:
        """Files are left alone, deleting them is up to whoever created them."""
        logger.debug(f"{self}: destroy_all_keys is a no-op for files")

    def end(self) -> None:
        """Nothing to release, the caller owns the streams."""
        logger.debug(f"{self}: session ended")

    def _generate_keys(self, spec: AlgorithmSpec) -> None:
        """
        Write new PKCS#8 encoded keys to the KSK and ZSK streams, in that order.

        If generating the ZSK fails, the KSK stream has already been overwritten.
        """
        for role, stream in [
            (KeyRole.KSK, self.ksk_stream),
            (KeyRole.ZSK, self.zsk_stream),
        ]:
            try:
                data = private_key_to_pem(spec.generate(role))
                write_private_key(stream, data, role.name)
            except Exception:
                if role == KeyRole.ZSK:
                    self._context.log.error(
                        "Generating the ZSK failed, the KSK has already been replaced"
                    )
                raise
            logger.info(
                f"Generated {role.name} ({spec.algorithm.name}, {spec.key_size(role)} bits)"
            )
