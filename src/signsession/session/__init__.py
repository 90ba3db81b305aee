"""Sub-package with the key sessions (ZSK/KSK sources) for signing."""
from signsession.session.base import Session  # noqa
from signsession.session.factory import open_session  # noqa
from signsession.session.file import FileSession  # noqa
from signsession.session.signer import FileSigner, SigKeys, Signer  # noqa

__author__ = 'ft'
