"""The interface all key sessions implement."""

from abc import ABC, abstractmethod
from types import TracebackType
from typing import Self

from signsession.common.context import Context
from signsession.session.signer import SigKeys

__author__ = "ft"


class Session(ABC):
    """
    A source of a ZSK and a KSK for a signing run.

    Implementations must reject an unsupported Context.sign_algorithm with
    UnsupportedAlgorithmError before doing any I/O.
    """

    @property
    @abstractmethod
    def context(self) -> Context:
        """Return the session context."""

    @abstractmethod
    def get_keys(self) -> SigKeys:
        """Return signers for the ZSK and KSK, creating the keys first if the context says so."""

    @abstractmethod
    def get_public_key_bytes(self, keys: SigKeys) -> tuple[bytes, bytes]:
        """Return the (zsk, ksk) public keys, encoded for DNSKEY records."""

    @abstractmethod
    def destroy_all_keys(self) -> None:
        """Irreversibly remove all keys managed by this session."""

    @abstractmethod
    def end(self) -> None:
        """Release resources held by the session."""

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.end()
