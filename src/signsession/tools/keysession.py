"""
Key session utility.

Tool to create, show and destroy the ZSK and KSK of the configured key session.
"""

import argparse
import logging
import os
import sys

from signsession.common.config import ConfigurationError, SessionConfig, get_config
from signsession.common.context import Context
from signsession.common.data import KeyRole
from signsession.common.dnssec import format_dnskey, public_key_to_dnssec_key
from signsession.common.errors import SessionError
from signsession.common.logging import get_logger
from signsession.session import Session, open_session
from signsession.version import __verbose_version__

__author__ = "ft"


def keys(
    args: argparse.Namespace,
    config: SessionConfig,
    session: Session,
    logger: logging.Logger,
) -> bool:
    """Get (or create) the keys, and print their DNSKEY records."""
    logger.info("Get signing keys")
    sigkeys = session.get_keys()
    zsk_bytes, ksk_bytes = session.get_public_key_bytes(sigkeys)
    for role, pubkey, signer in [
        (KeyRole.KSK, ksk_bytes, sigkeys.ksk_signer),
        (KeyRole.ZSK, zsk_bytes, sigkeys.zsk_signer),
    ]:
        _key = public_key_to_dnssec_key(
            pubkey=pubkey,
            key_identifier=signer.label,
            algorithm=session.context.sign_algorithm,
            ttl=config.dnskey.ttl,
            flags=role.flags,
        )
        logger.info(
            f"{role.name} {signer.label} has key tag {_key.key_tag} for algorithm={_key.algorithm}, "
            f"flags=0x{_key.flags:x}"
        )
        print(format_dnskey(_key, config.dnskey.owner))
    return True


def pubkeys(
    args: argparse.Namespace,
    config: SessionConfig,
    session: Session,
    logger: logging.Logger,
) -> bool:
    """Print the public keys, hex encoded."""
    sigkeys = session.get_keys()
    zsk_bytes, ksk_bytes = session.get_public_key_bytes(sigkeys)
    print(f"KSK {ksk_bytes.hex()}")
    print(f"ZSK {zsk_bytes.hex()}")
    return True


def destroy(
    args: argparse.Namespace,
    config: SessionConfig,
    session: Session,
    logger: logging.Logger,
) -> bool:
    """Destroy all keys of the session."""
    if not args.force:
        answer = input(f"Destroy all keys in {session}? Type 'yes' to confirm: ")
        if answer.strip().lower() != "yes":
            logger.info("Not destroying any keys")
            return False
    logger.info("Destroy all keys")
    session.destroy_all_keys()
    return True


def main() -> None:
    """Main function."""
    progname = os.path.basename(sys.argv[0])

    parser = argparse.ArgumentParser(
        description=f"Key session tool {__verbose_version__}",
        add_help=True,
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--config",
        dest="config",
        metavar="CFGFILE",
        type=str,
        default="signsession.yaml",
        help="Path to the signsession configuration file",
    )
    parser.add_argument(
        "--hsm",
        dest="hsm",
        metavar="HSM",
        type=str,
        help="HSM to operate on (pkcs11 backend)",
    )
    parser.add_argument(
        "--debug",
        dest="debug",
        action="store_true",
        default=False,
        help="Enable debug operation",
    )
    parser.add_argument(
        "--create-keys",
        dest="create_keys",
        action="store_true",
        default=None,
        help="Create (or overwrite) the keys before using them",
    )

    subparsers = parser.add_subparsers()

    parser_keys = subparsers.add_parser("keys")
    parser_keys.set_defaults(func=keys)

    parser_pubkeys = subparsers.add_parser("pubkeys")
    parser_pubkeys.set_defaults(func=pubkeys)

    parser_destroy = subparsers.add_parser("destroy")
    parser_destroy.set_defaults(func=destroy)
    parser_destroy.add_argument(
        "--force",
        dest="force",
        action="store_true",
        default=False,
        help="Don't ask for confirmation",
    )

    args = parser.parse_args()
    logger = get_logger(progname=progname, debug=args.debug)

    try:
        mode_function = args.func
    except AttributeError:
        parser.print_help()
        sys.exit(1)

    try:
        config = get_config(args.config)
    except FileNotFoundError as exc:
        logger.critical(str(exc))
        sys.exit(1)
    except (ConfigurationError, ValueError) as exc:
        # pydantic ValidationError is a ValueError
        _config_logger = logging.getLogger("configuration")
        for message in str(exc).splitlines():
            _config_logger.critical(message)
        sys.exit(1)

    context = Context.from_config(config, create_keys=args.create_keys, log=logger)

    try:
        with open_session(context, config, hsm=args.hsm) as session:
            res = mode_function(args, config, session, logger)
    except (SessionError, ConfigurationError) as exc:
        logger.critical(str(exc))
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(0)

    sys.exit(0 if res is True else 1)


if __name__ == "__main__":
    main()
