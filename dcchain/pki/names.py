# dcchain/pki/names.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from cryptography import x509
from cryptography.x509.oid import NameOID, ObjectIdentifier

from .dnq import escape_qualifier, unescape_qualifier

__all__ = ["SubjectFields", "name_to_slash", "SHORT_NAMES"]

# Short attribute names as used in openssl-style "/O=.../CN=..." strings
SHORT_NAMES: Dict[ObjectIdentifier, str] = {
    NameOID.COUNTRY_NAME: "C",
    NameOID.ORGANIZATION_NAME: "O",
    NameOID.ORGANIZATIONAL_UNIT_NAME: "OU",
    NameOID.COMMON_NAME: "CN",
    NameOID.DN_QUALIFIER: "dnQualifier",
}


@dataclass(frozen=True)
class SubjectFields:
    """
    Subject of one tier. Attribute order is a fixed contract:
    O, OU, CN, dnQualifier. Relying parties compare the resulting identity
    strings, so reordering changes the identity.

    ``dn_qualifier`` holds the raw base64 value; escaping is applied only
    when rendering the slash-delimited form.
    """

    organization: str
    organizational_unit: str
    common_name: str
    dn_qualifier: str

    def __post_init__(self) -> None:
        # Accept an escaped qualifier, store it raw
        object.__setattr__(self, "dn_qualifier", unescape_qualifier(self.dn_qualifier))

    def to_name(self) -> x509.Name:
        return x509.Name([
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, self.organization),
            x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, self.organizational_unit),
            x509.NameAttribute(NameOID.COMMON_NAME, self.common_name),
            x509.NameAttribute(NameOID.DN_QUALIFIER, self.dn_qualifier),
        ])

    def to_slash(self) -> str:
        return (
            f"/O={self.organization}"
            f"/OU={self.organizational_unit}"
            f"/CN={self.common_name}"
            f"/dnQualifier={escape_qualifier(self.dn_qualifier)}"
        )


def name_to_slash(name: x509.Name) -> str:
    """Render a Name in certificate order as ``/O=.../OU=.../CN=.../dnQualifier=...``."""
    parts = []
    for attr in name:
        short = SHORT_NAMES.get(attr.oid, attr.oid.dotted_string)
        value = attr.value if isinstance(attr.value, str) else attr.value.hex()
        parts.append(f"/{short}={escape_qualifier(value)}")
    return "".join(parts)
