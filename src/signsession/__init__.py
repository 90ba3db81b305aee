"""DNSSEC signing key sessions (ZSK/KSK) backed by files or PKCS#11 modules."""
from signsession.version import __version__  # noqa

__author__ = "ft"
