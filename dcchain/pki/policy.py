# dcchain/pki/policy.py
"""
Per-tier X.509v3 extension policy.

| tier         | basicConstraints (critical) | keyUsage (critical)                | authorityKeyIdentifier     |
|--------------|-----------------------------|------------------------------------|----------------------------|
| root         | CA:true, pathlen:3          | keyCertSign, cRLSign               | keyid:always,issuer:always |
| intermediate | CA:true, pathlen:2          | keyCertSign, cRLSign               | keyid:always,issuer:always |
| leaf         | CA:false (pathlen 0)        | digitalSignature, keyEncipherment  | keyid,issuer:always        |

All tiers carry subjectKeyIdentifier = hash of their own public key.

The leaf's path length of 0 is implied by CA:false. RFC 5280 does not allow
pathLenConstraint on a non-CA certificate and the encoder rejects it, so
the leaf extension is written without the field; see effective_path_length().

Besides the cryptography extension objects, each policy renders an
OpenSSL-compatible .cnf descriptor so the chain can be reproduced with the
openssl binary (`openssl req`/`openssl x509 -req -extfile <cnf> -extensions v3_ca`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from cryptography import x509
from cryptography.x509.oid import ExtensionOID

from .errors import PolicyError
from .tiers import Tier

logger = logging.getLogger(__name__)

__all__ = [
    "ExtensionSet",
    "TierPolicy",
    "ExtensionPolicy",
    "effective_path_length",
]

# openssl name, cryptography KeyUsage kwarg; openssl's canonical order
_KEY_USAGE_BITS: Tuple[Tuple[str, str], ...] = (
    ("digitalSignature", "digital_signature"),
    ("nonRepudiation", "content_commitment"),
    ("keyEncipherment", "key_encipherment"),
    ("dataEncipherment", "data_encipherment"),
    ("keyAgreement", "key_agreement"),
    ("keyCertSign", "key_cert_sign"),
    ("cRLSign", "crl_sign"),
)


@dataclass
class ExtensionSet:
    """Ordered (extension value, critical) pairs ready for a certificate builder."""

    items: List[Tuple[x509.ExtensionType, bool]] = field(default_factory=list)

    def add(self, ext: x509.ExtensionType, critical: bool) -> None:
        if any(e.oid == ext.oid for e, _ in self.items):
            raise PolicyError(f"Duplicate extension {ext.oid.dotted_string}")
        self.items.append((ext, critical))

    def __iter__(self) -> Iterator[Tuple[x509.ExtensionType, bool]]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def apply(self, builder: x509.CertificateBuilder) -> x509.CertificateBuilder:
        for ext, critical in self.items:
            builder = builder.add_extension(ext, critical=critical)
        return builder


@dataclass(frozen=True)
class TierPolicy:
    tier: Tier
    ca: bool
    path_length: int
    key_usage: frozenset
    basic_constraints_critical: bool = True
    key_usage_critical: bool = True
    aki_keyid_always: bool = True
    aki_issuer_always: bool = True

    # ---------- extension objects ----------

    def basic_constraints(self) -> x509.BasicConstraints:
        return x509.BasicConstraints(ca=self.ca, path_length=self.path_length if self.ca else None)

    def key_usage_ext(self) -> x509.KeyUsage:
        flags = {kwarg: (kwarg in self.key_usage) for _, kwarg in _KEY_USAGE_BITS}
        return x509.KeyUsage(encipher_only=False, decipher_only=False, **flags)

    def authority_key_identifier(
        self,
        subject_public_key,
        subject_name: x509.Name,
        serial: int,
        issuer_cert: Optional[x509.Certificate],
    ) -> x509.AuthorityKeyIdentifier:
        """
        Self-signed (issuer_cert is None): key id of our own key, our own name
        and serial. Otherwise: key id of the issuer plus the issuer's issuer
        name and serial, exactly what openssl puts there for issuer:always.
        """
        if issuer_cert is None:
            key_id = x509.SubjectKeyIdentifier.from_public_key(subject_public_key).digest
            issuer_names, issuer_serial = [x509.DirectoryName(subject_name)], serial
        else:
            key_id = _issuer_key_id(issuer_cert, required=self.aki_keyid_always)
            issuer_names = [x509.DirectoryName(issuer_cert.issuer)]
            issuer_serial = issuer_cert.serial_number

        if not self.aki_issuer_always:
            issuer_names, issuer_serial = None, None
        return x509.AuthorityKeyIdentifier(
            key_identifier=key_id,
            authority_cert_issuer=issuer_names,
            authority_cert_serial_number=issuer_serial,
        )

    def extensions(
        self,
        subject_public_key,
        subject_name: x509.Name,
        serial: int,
        issuer_cert: Optional[x509.Certificate] = None,
    ) -> ExtensionSet:
        exts = ExtensionSet()
        exts.add(self.basic_constraints(), critical=self.basic_constraints_critical)
        exts.add(self.key_usage_ext(), critical=self.key_usage_critical)
        exts.add(x509.SubjectKeyIdentifier.from_public_key(subject_public_key), critical=False)
        exts.add(
            self.authority_key_identifier(subject_public_key, subject_name, serial, issuer_cert),
            critical=False,
        )
        return exts

    # ---------- openssl descriptor ----------

    def openssl_key_usage(self) -> str:
        names = [name for name, kwarg in _KEY_USAGE_BITS if kwarg in self.key_usage]
        prefix = "critical," if self.key_usage_critical else ""
        return prefix + ",".join(names)

    def openssl_basic_constraints(self) -> str:
        value = "CA:true" if self.ca else "CA:false"
        if self.ca:
            value += f",pathlen:{self.path_length}"
        return ("critical," if self.basic_constraints_critical else "") + value

    def openssl_authority_key_identifier(self) -> str:
        parts = ["keyid:always" if self.aki_keyid_always else "keyid"]
        if self.aki_issuer_always:
            parts.append("issuer:always")
        return ",".join(parts)

    def to_openssl_config(self) -> str:
        return (
            "[ req ]\n"
            "distinguished_name = req_distinguished_name\n"
            "x509_extensions = v3_ca\n"
            "[ v3_ca ]\n"
            f"basicConstraints = {self.openssl_basic_constraints()}\n"
            f"keyUsage = {self.openssl_key_usage()}\n"
            "subjectKeyIdentifier = hash\n"
            f"authorityKeyIdentifier = {self.openssl_authority_key_identifier()}\n"
            "[ req_distinguished_name ]\n"
            "O = Unique organization name\n"
            "OU = Organization unit\n"
            "CN = Entity and dnQualifier\n"
        )


class ExtensionPolicy:
    """Lookup of the constant policy for each tier."""

    def policy_for(self, tier: Tier) -> TierPolicy:
        if not isinstance(tier, Tier):
            raise PolicyError(f"Unknown tier: {tier!r}")
        prof = tier.profile
        return TierPolicy(
            tier=tier,
            ca=prof.ca,
            path_length=prof.path_length,
            key_usage=prof.key_usage,
            aki_keyid_always=prof.aki_keyid_always,
            aki_issuer_always=prof.aki_issuer_always,
        )


def _issuer_key_id(issuer_cert: x509.Certificate, required: bool) -> Optional[bytes]:
    try:
        ski = issuer_cert.extensions.get_extension_for_oid(ExtensionOID.SUBJECT_KEY_IDENTIFIER)
        return ski.value.digest
    except x509.ExtensionNotFound:
        if not required:
            return None
        logger.debug("issuer %s has no subjectKeyIdentifier; hashing its key", issuer_cert.subject.rfc4514_string())
        return x509.SubjectKeyIdentifier.from_public_key(issuer_cert.public_key()).digest


def effective_path_length(cert: x509.Certificate) -> Optional[int]:
    """
    pathLenConstraint as a relying party sees it: the encoded value for a CA,
    0 for an end entity (CA:false allows no certificates below it), None for
    an unconstrained CA or a certificate without basicConstraints.
    """
    try:
        bc = cert.extensions.get_extension_for_class(x509.BasicConstraints).value
    except x509.ExtensionNotFound:
        return None
    if not bc.ca:
        return 0
    return bc.path_length
