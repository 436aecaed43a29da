# dcchain/cli/xsd_check.py
from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from ..logging_setup import setup_logging
from ..schema.xsd_check import XsdChecker


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="xsd-check",
        description="Validate an XML document against an XSD schema. Order of the two files does not matter.",
    )
    # Arity is checked by XsdChecker so the usage line matches its report
    p.add_argument("paths", nargs="*", help="One XML document and one XSD schema")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Debug logging")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else "WARNING")
    try:
        report = XsdChecker().check(args.paths)
    except KeyboardInterrupt:
        print("[abort] Interrupted", file=sys.stderr)
        return 130
    sys.stdout.write(report.text())
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
