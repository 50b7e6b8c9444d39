"""
ntexport CLI — entry point for all operations.

Usage:
    ntexport export                     # Export using ./config.yml
    ntexport export -c /etc/nt.yml      # Explicit config file
    ntexport export -o out.json         # Override the output path
    ntexport decrypt <value>            # Decrypt one stored secret
    ntexport version                    # Show version
"""

from __future__ import annotations

import argparse
import logging

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="ntexport",
        description="Export a Next Terminal database to a portable JSON backup.",
    )
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    subparsers = parser.add_subparsers(dest="command")

    # export
    export_parser = subparsers.add_parser("export", help="Export the database to a backup file")
    export_parser.add_argument(
        "-c", "--config", default="config.yml", help="Config file (default: config.yml)"
    )
    export_parser.add_argument("-o", "--output", type=str, help="Backup file (overrides config)")
    export_parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    # decrypt
    decrypt_parser = subparsers.add_parser("decrypt", help="Decrypt one stored secret")
    decrypt_parser.add_argument("value", help="Stored (base64) secret value")

    # version
    subparsers.add_parser("version", help="Show version")

    args = parser.parse_args(argv)

    if args.version or args.command == "version":
        from ntexport import __version__

        print(f"ntexport {__version__}")
        return 0

    if args.command == "export":
        return _cmd_export(args)
    elif args.command == "decrypt":
        return _cmd_decrypt(args)
    else:
        parser.print_help()
        return 0


def _configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _cmd_export(args: argparse.Namespace) -> int:
    from pathlib import Path

    from ntexport.config import load_config
    from ntexport.errors import ExportError
    from ntexport.export import run_export

    _configure_logging(args.verbose)
    try:
        logger.info("Reading config %s...", args.config)
        cfg = load_config(args.config)
        logger.info("Config: %s", cfg.redacted())
        output = Path(args.output) if args.output else None
        path = run_export(cfg, output)
    except ExportError as e:
        logger.error("Export failed: %s", e)
        return 1
    print(f"Backup written to {path}")
    return 0


def _cmd_decrypt(args: argparse.Namespace) -> int:
    from ntexport.errors import SecretDecodeError
    from ntexport.vault import decrypt

    try:
        print(decrypt(args.value))
    except SecretDecodeError as e:
        print(f"Error: {e}")
        return 1
    return 0
