# dcchain/pki/report.py
from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Iterable, Optional, TextIO

from cryptography import x509

from .names import name_to_slash

__all__ = ["ReportEntry", "ChainReporter"]

HEADER = "+++ Certificate info +++"


@dataclass(frozen=True)
class ReportEntry:
    label: str
    certificate: x509.Certificate
    filename: Optional[str] = None


class ChainReporter:
    """Human-readable subject/issuer summary of issued certificates."""

    def format_entry(self, entry: ReportEntry) -> str:
        where = f" ({entry.filename})" if entry.filename else ""
        return (
            f"{entry.label}{where}:\n"
            f"subject={name_to_slash(entry.certificate.subject)}\n"
            "   signed by\n"
            f" issuer={name_to_slash(entry.certificate.issuer)}\n"
        )

    def render(self, entries: Iterable[ReportEntry]) -> str:
        parts = [f"\n{HEADER}\n"]
        for entry in entries:
            parts.append("\n" + self.format_entry(entry))
        return "".join(parts)

    def report(self, entries: Iterable[ReportEntry], stream: Optional[TextIO] = None) -> None:
        out = stream if stream is not None else sys.stdout
        out.write(self.render(entries))
        out.flush()
