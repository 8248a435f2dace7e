#!/usr/bin/env python3
"""
MailKey — encrypted mail credential vault and login automator.
Stores IMAP/SMTP/POP3 accounts under one master passphrase, logs in over TLS by alias,
then hands the authenticated session to the terminal.

Copyright (C) Cuma KURT <cumakurt@gmail.com>
This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version. See <https://www.gnu.org/licenses/>.
"""
import argparse
import os
import sys

# Ensure project root is on path when run as script
_PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from core.config import load_env_config, load_file_config, merge_config, validate_separator
from core.constants import VERSION
from core.context import Session
from core.errors import ConfigError, MailKeyError
from core.prompts import ask_new_password
from core.requirements_check import check_requirements
from core.runner import add_account, connect, list_accounts, logger, setup_logging
from vault.records import Protocol, VaultRecord, guess_protocol_for_server

# Exit codes: 0 = success, 1 = usage/config error, 2 = operation failure, 130 = interrupted
EXIT_SUCCESS = 0
EXIT_VALIDATION = 1
EXIT_FAILURE = 2
EXIT_INTERRUPTED = 130


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mailkey",
        description="Log in to IMAP/SMTP/POP3 accounts kept in an encrypted vault, then use the session interactively.",
        epilog="Examples: mailkey -l | mailkey -a work -t imap -s imap.example.com -u bob | mailkey work",
    )
    parser.add_argument("alias_pos", nargs="?", metavar="ALIAS", help="Account alias (same as -a)")
    parser.add_argument("-a", "--alias", metavar="ALIAS", help="Account alias")
    parser.add_argument("-s", "--server", metavar="HOST", help="Mail server host name (adds or updates the account)")
    parser.add_argument("-p", "--port", type=int, metavar="PORT", help="Server port (default: 993 imap, 465 smtp, 995 pop3)")
    parser.add_argument("-t", "--type", choices=[p.value for p in Protocol], help="Protocol (guessed when omitted)")
    parser.add_argument("-u", "--user", metavar="NAME", help="Login name (adds or updates the account)")
    parser.add_argument("-f", "--file", metavar="FILE", help="Vault file (default: ~/.mailkey)")
    parser.add_argument("-l", "--list", action="store_true", help="List stored accounts (no passphrase needed)")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("--timeout", type=float, metavar="SEC", help="Login inactivity timeout in seconds (default: 5)")
    parser.add_argument("--verbose", action="store_true", help="Verbose (debug) logging; credentials are never logged")
    parser.add_argument("--log-file", metavar="FILE", help="Append logs to file")
    parser.add_argument("--config", metavar="FILE", help="Path to JSON config file (overridden by CLI)")
    return parser


def parse_args(argv=None) -> argparse.Namespace:
    return _build_parser().parse_args(argv)


def build_session(args: argparse.Namespace) -> Session:
    """Resolve env, config file and CLI settings into the run's Session."""
    cli_cfg = {
        "vault_file": (args.file or "").strip() or None,
        "timeout": args.timeout,
        "verbose": args.verbose if args.verbose else None,
        "log_file": (args.log_file or "").strip() or None,
    }
    cli_cfg = {k: v for k, v in cli_cfg.items() if v is not None}
    merged = merge_config(load_env_config(), load_file_config(args.config or ""), cli_cfg)
    if merged["timeout"] <= 0:
        raise ConfigError("timeout must be positive")
    return Session(
        vault_file=merged["vault_file"],
        separator=validate_separator(merged["separator"]),
        timeout=float(merged["timeout"]),
        verbose=bool(merged.get("verbose", False)),
        log_file=merged.get("log_file"),
    )


def _record_from_args(args: argparse.Namespace, alias: str) -> VaultRecord:
    if not args.server or not args.user:
        raise ValueError("adding an account needs both --server and --user")
    server = args.server.strip()
    protocol = Protocol.parse(args.type) if args.type else guess_protocol_for_server(server)
    port = protocol.default_port if args.port is None else args.port
    password = ask_new_password(f"{args.user}@{server}")
    return VaultRecord(alias=alias, protocol=protocol, server=server, port=port, username=args.user.strip(), password=password)


def run(args: argparse.Namespace) -> int:
    alias = (args.alias or args.alias_pos or "").strip()
    try:
        session = build_session(args)
    except ConfigError as e:
        print(f"mailkey: {e}", file=sys.stderr)
        return EXIT_VALIDATION
    setup_logging(session)

    try:
        if args.list:
            list_accounts(session)
            return EXIT_SUCCESS
        if not alias:
            _build_parser().print_usage(sys.stderr)
            print("mailkey: an alias is required (or use --list)", file=sys.stderr)
            return EXIT_VALIDATION
        if args.server or args.user:
            add_account(session, _record_from_args(args, alias))
            return EXIT_SUCCESS
        connect(session, alias, Protocol.parse(args.type) if args.type else None)
        return EXIT_SUCCESS
    except ValueError as e:
        logger.error("mailkey: %s", e)
        return EXIT_VALIDATION
    except ConfigError as e:
        logger.error("mailkey: %s", e)
        return EXIT_VALIDATION
    except MailKeyError as e:
        logger.error("mailkey: %s", e)
        return EXIT_FAILURE
    except OSError as e:
        logger.error("mailkey: %s", e)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.error("\nmailkey: interrupted")
        return EXIT_INTERRUPTED


def main(argv=None) -> None:
    args = parse_args(argv)
    check_requirements()
    sys.exit(run(args))


if __name__ == "__main__":
    main()
