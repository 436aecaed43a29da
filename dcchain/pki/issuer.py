# dcchain/pki/issuer.py
"""
Certificate issuance for the three tiers.

Root is self-signed directly. Intermediate and Leaf go through a signing
request first (subject + public key only, no extensions); the parent tier
then signs the request and applies the child tier's extension policy. The
issuer name always comes from the parent certificate, never from the
caller, which keeps the issuer(n) == subject(n-1) invariant by construction.

Signature algorithm is sha256WithRSAEncryption throughout.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes

from .errors import IssuanceError
from .keys import KeyPair
from .names import SubjectFields, name_to_slash
from .policy import TierPolicy

logger = logging.getLogger(__name__)

__all__ = ["CertificateIssuer", "DEFAULT_VALIDITY_DAYS"]

DEFAULT_VALIDITY_DAYS = 365


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc).replace(microsecond=0)


@dataclass
class CertificateIssuer:
    validity_days: int = DEFAULT_VALIDITY_DAYS
    clock: Callable[[], dt.datetime] = _utcnow

    def __post_init__(self) -> None:
        if self.validity_days <= 0:
            raise IssuanceError(f"validity_days must be positive, got {self.validity_days}")

    # ---------- public API ----------

    def issue_root(
        self,
        key_pair: KeyPair,
        subject: SubjectFields,
        serial: int,
        policy: TierPolicy,
    ) -> x509.Certificate:
        if not policy.ca:
            raise IssuanceError(f"Self-signed root requires a CA policy, got tier {policy.tier.value}")
        name = subject.to_name()
        builder = self._base_builder(name, name, key_pair.public_key, serial)
        builder = policy.extensions(key_pair.public_key, name, serial, issuer_cert=None).apply(builder)
        cert = self._sign(builder, key_pair)
        logger.info("issued %s certificate serial=%d subject=%s", policy.tier.value, serial, name_to_slash(name))
        return cert

    def build_csr(self, key_pair: KeyPair, subject: SubjectFields) -> x509.CertificateSigningRequest:
        builder = x509.CertificateSigningRequestBuilder().subject_name(subject.to_name())
        try:
            return builder.sign(key_pair.private_key, hashes.SHA256())
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise IssuanceError(f"Signing request creation failed: {e}") from e

    def sign_csr(
        self,
        csr: x509.CertificateSigningRequest,
        serial: int,
        policy: TierPolicy,
        issuer_cert: x509.Certificate,
        issuer_key: KeyPair,
    ) -> x509.Certificate:
        if not csr.is_signature_valid:
            raise IssuanceError("Signing request signature is invalid")
        if not issuer_key.matches(issuer_cert.public_key()):
            raise IssuanceError(
                f"Issuer key does not match issuer certificate {name_to_slash(issuer_cert.subject)}"
            )
        _require_signing_ca(issuer_cert)
        if serial == issuer_cert.serial_number:
            raise IssuanceError(f"Serial {serial} is already used by the issuer certificate")

        subject_key = csr.public_key()
        builder = self._base_builder(csr.subject, issuer_cert.subject, subject_key, serial)
        builder = policy.extensions(subject_key, csr.subject, serial, issuer_cert=issuer_cert).apply(builder)
        cert = self._sign(builder, issuer_key)
        logger.info(
            "issued %s certificate serial=%d subject=%s issuer=%s",
            policy.tier.value,
            serial,
            name_to_slash(cert.subject),
            name_to_slash(cert.issuer),
        )
        return cert

    def issue_signed(
        self,
        key_pair: KeyPair,
        subject: SubjectFields,
        serial: int,
        policy: TierPolicy,
        issuer_cert: x509.Certificate,
        issuer_key: KeyPair,
        csr: Optional[x509.CertificateSigningRequest] = None,
    ) -> x509.Certificate:
        """Build the signing request (unless given) and have the issuer sign it."""
        if csr is None:
            csr = self.build_csr(key_pair, subject)
        return self.sign_csr(csr, serial, policy, issuer_cert, issuer_key)

    # ---------- internals ----------

    def _base_builder(self, subject: x509.Name, issuer: x509.Name, public_key, serial: int) -> x509.CertificateBuilder:
        if serial <= 0:
            raise IssuanceError(f"Serial number must be positive, got {serial}")
        not_before = self.clock()
        return (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(issuer)
            .public_key(public_key)
            .serial_number(serial)
            .not_valid_before(not_before)
            .not_valid_after(not_before + dt.timedelta(days=self.validity_days))
        )

    @staticmethod
    def _sign(builder: x509.CertificateBuilder, signer: KeyPair) -> x509.Certificate:
        try:
            return builder.sign(private_key=signer.private_key, algorithm=hashes.SHA256())
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise IssuanceError(f"Certificate signing failed: {e}") from e


def _require_signing_ca(issuer_cert: x509.Certificate) -> None:
    try:
        bc = issuer_cert.extensions.get_extension_for_class(x509.BasicConstraints).value
    except x509.ExtensionNotFound:
        bc = None
    if bc is None or not bc.ca:
        raise IssuanceError(f"Issuer {name_to_slash(issuer_cert.subject)} is not a CA certificate")
    try:
        ku = issuer_cert.extensions.get_extension_for_class(x509.KeyUsage).value
    except x509.ExtensionNotFound:
        return
    if not ku.key_cert_sign:
        raise IssuanceError(f"Issuer {name_to_slash(issuer_cert.subject)} may not sign certificates")
