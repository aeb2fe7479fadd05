"""sup command line: lock, unlock and inspect the service config file."""

from __future__ import annotations

import argparse
import logging
import os
from typing import List, Optional

from ...core.config import (
    CONFIG_KEY_ENV,
    DEFAULT_CONFIG_PATH,
    load_config,
    lock_config_file,
    resolve_passphrase,
    unlock_config_file,
)
from ...core.exceptions import SupError
from ...security import keystore
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def _require_passphrase(args: argparse.Namespace) -> Optional[bytes]:
    passphrase = resolve_passphrase(args.key)
    if passphrase is None:
        logger.error("key required: pass --key, set $%s or run store-key", CONFIG_KEY_ENV)
    return passphrase


def cmd_encrypt(args: argparse.Namespace) -> int:
    passphrase = _require_passphrase(args)
    if passphrase is None:
        return 1
    lock_config_file(args.config, passphrase)
    return 0


def cmd_decrypt(args: argparse.Namespace) -> int:
    passphrase = _require_passphrase(args)
    if passphrase is None:
        return 1
    unlock_config_file(args.config, passphrase)
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    # a missing passphrase means the file is read as plain JSON
    config = load_config(args.config, resolve_passphrase(args.key))
    print(f"URL:      {config.url or '-'}")
    print(f"CallFrom: {config.call_from or '-'}")
    print(f"Phones:   {len(config.phones)}")
    print(f"Twilio:   {'configured' if config.has_twilio else 'missing'}")
    print(f"HipChat:  {'configured' if config.has_hipchat else 'missing'}")
    return 0


def cmd_store_key(args: argparse.Namespace) -> int:
    passphrase = resolve_passphrase(args.key, use_keyring=False)
    if passphrase is None:
        logger.error("key required: pass --key or set $%s", CONFIG_KEY_ENV)
        return 1
    if not args.force:
        secure, msg = keystore.assess_keyring_backend()
        if not secure:
            logger.error("refusing to store key: %s; pass --force to override", msg)
            return 1
    keystore.save_key(keystore.DEFAULT_SERVICE, keystore.DEFAULT_ACCOUNT, passphrase)
    logger.info("stored config key in the OS keyring")
    return 0


def cmd_forget_key(args: argparse.Namespace) -> int:
    if keystore.delete_key(keystore.DEFAULT_SERVICE, keystore.DEFAULT_ACCOUNT):
        logger.info("removed config key from the OS keyring")
    else:
        logger.info("no config key stored in the OS keyring")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sup", description="check if site is up")
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help="file where config values are read from",
    )
    parser.add_argument(
        "--key",
        default=None,
        help=f"key to lock/unlock config file (default: ${CONFIG_KEY_ENV}, then OS keyring)",
    )
    parser.add_argument(
        "--logfile",
        default=os.environ.get("SUP_LOGFILE"),
        help="log messages go here. if not present, log to stdout",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("encrypt", help="encrypt config file").set_defaults(func=cmd_encrypt)
    sub.add_parser("decrypt", help="decrypt config file").set_defaults(func=cmd_decrypt)
    sub.add_parser("show", help="print non-secret config values").set_defaults(func=cmd_show)
    store = sub.add_parser("store-key", help="save the config key in the OS keyring")
    store.add_argument("--force", action="store_true", help="store even if the backend looks insecure")
    store.set_defaults(func=cmd_store_key)
    sub.add_parser("forget-key", help="delete the config key from the OS keyring").set_defaults(func=cmd_forget_key)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO, logfile=args.logfile)

    try:
        return args.func(args)
    except SupError as e:
        logger.error("%s", e)
        return 1
    except RuntimeError as e:
        # keyring missing or unusable
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
