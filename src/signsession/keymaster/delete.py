"""Removal of key pairs from PKCS#11 modules."""

import logging

from signsession.misc.hsm import P11Module, hsm_errors

__author__ = "ft"

logger = logging.getLogger(__name__)


def key_delete(label: str, p11modules: list[P11Module]) -> bool:
    """
    Delete the public and private key objects with CKA_LABEL `label' from all modules.

    :return: True if anything was deleted
    """
    deleted = False
    for module in p11modules:
        # destroyObject can invalidate other handles, so look the pair up again after every delete
        while (key := module.find_key_pair(label)) is not None:
            if key.private_handle is not None:
                _what, _handle = "private", key.private_handle
            else:
                _what, _handle = "public", key.public_handle
            logger.info(f"Deleting {_what} key {key} from {module}")
            with hsm_errors(f"Deleting {_what} key {label}"):
                key.session.destroyObject(_handle)
            deleted = True
    if not deleted:
        logger.debug(f"No key with label {label} found")
    return deleted
