# dcchain/cli/main.py
"""
Console entry points:

  make-dc-chain [--out-dir DIR] [--config YAML] [-v]
      Build Root -> Intermediate -> Leaf in DIR and print a subject/issuer summary.

  dc-verify --ca-file CHAIN [--untrusted PEM] CERT [CERT ...]
      Check each certificate against the certificates in CHAIN.

Exit codes: 0 ok, 1 chain or verification failure, 2 configuration or
usage error, 130 interrupted.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from cryptography import x509
from pydantic import ValidationError

from .. import __version__
from ..logging_setup import setup_logging
from ..pki.builder import ChainBuilder
from ..pki.errors import ChainError
from ..pki.report import ChainReporter
from ..pki.verify import ChainValidator, load_pem_bundle
from ..settings import load_settings

logger = logging.getLogger("dcchain.cli")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


def _level_for(verbosity: int, configured: str) -> str:
    if verbosity >= 1:
        return "DEBUG"
    return configured


# ==========================
# make-dc-chain
# ==========================

def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="make-dc-chain",
        description="Create a digital cinema style Root -> Intermediate -> Leaf certificate chain.",
    )
    p.add_argument("--out-dir", type=Path, default=None, help="Output directory (default: current directory)")
    p.add_argument("--config", type=Path, default=None, help="YAML file with chain settings")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Debug logging")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings(args.config, out_dir=args.out_dir)
    except (ValidationError, ValueError, OSError) as e:
        print(f"[error] invalid configuration: {e}", file=sys.stderr)
        return EXIT_CONFIG

    setup_logging(_level_for(args.verbose, settings.logging.level), settings.logging.format)
    try:
        chain = ChainBuilder(settings).build()
        ChainReporter().report(chain.report_entries())
        return EXIT_OK
    except ChainError as e:
        logger.error("chain creation failed: %s", e)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print("[abort] Interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED


# ==========================
# dc-verify
# ==========================

def build_verify_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="dc-verify",
        description="Verify certificates against a concatenated PEM chain (openssl verify -CAfile semantics).",
    )
    p.add_argument("--ca-file", required=True, type=Path, help="PEM file with the trusted certificates")
    p.add_argument("--untrusted", type=Path, default=None, help="PEM file with intermediate certificates that are not trusted")
    p.add_argument("certs", nargs="+", type=Path, help="Certificate(s) to verify")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Debug logging")
    return p


def verify_main(argv: Optional[List[str]] = None) -> int:
    args = build_verify_parser().parse_args(argv)
    setup_logging(_level_for(args.verbose, "WARNING"))
    try:
        anchors = load_pem_bundle(args.ca_file)
        untrusted = load_pem_bundle(args.untrusted) if args.untrusted else []
    except (OSError, ChainError) as e:
        print(f"[error] cannot read certificates: {e}", file=sys.stderr)
        return EXIT_CONFIG

    validator = ChainValidator()
    failed = 0
    try:
        for path in args.certs:
            try:
                cert = x509.load_pem_x509_certificate(path.read_bytes())
            except (OSError, ValueError) as e:
                print(f"{path}: error: cannot load certificate: {e}")
                failed += 1
                continue
            result = validator.verify(anchors, cert, untrusted)
            if result.ok:
                print(f"{path}: OK")
            else:
                print(f"{path}: error: {result.error}")
                failed += 1
    except KeyboardInterrupt:
        print("[abort] Interrupted", file=sys.stderr)
        return EXIT_INTERRUPTED
    return EXIT_FAILURE if failed else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
