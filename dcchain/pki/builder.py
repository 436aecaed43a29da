# dcchain/pki/builder.py
"""
Three-tier chain orchestration.

    cleanup -> Root -> Intermediate -> Leaf -> certificate_chain

Each step is strictly sequential: a tier needs the certificate and key of
the tier above it, which are passed along as return values. The first
failure aborts the run; no later tier is issued.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from cryptography import x509

from .chainfile import ChainFile
from .dnq import DNQualifierDeriver
from .errors import IssuanceError
from .issuer import CertificateIssuer
from .keys import KeyGenerator, KeyPair
from .names import SubjectFields
from .policy import ExtensionPolicy
from .report import ReportEntry
from .store import OutputStore
from .tiers import CHAIN_ORDER, Tier

if TYPE_CHECKING:  # pragma: no cover
    from ..settings import ChainSettings

logger = logging.getLogger(__name__)

__all__ = ["IssuedCertificate", "IssuedChain", "ChainBuilder"]


@dataclass
class IssuedCertificate:
    tier: Tier
    key_pair: KeyPair
    certificate: x509.Certificate
    subject: SubjectFields
    # Raw (unescaped) base64 qualifier as stored in the certificate
    qualifier: str
    csr: Optional[x509.CertificateSigningRequest] = None
    paths: Dict[str, Path] = field(default_factory=dict)

    @property
    def serial(self) -> int:
        return self.certificate.serial_number


@dataclass
class IssuedChain:
    root: IssuedCertificate
    intermediate: IssuedCertificate
    leaf: IssuedCertificate
    chain: ChainFile
    chain_path: Optional[Path] = None

    def __iter__(self):
        return iter((self.root, self.intermediate, self.leaf))

    def get(self, tier: Tier) -> IssuedCertificate:
        return {Tier.ROOT: self.root, Tier.INTERMEDIATE: self.intermediate, Tier.LEAF: self.leaf}[tier]

    def report_entries(self) -> List[ReportEntry]:
        entries = []
        for issued in self:
            cert_path = issued.paths.get("cert")
            entries.append(
                ReportEntry(
                    label=issued.tier.profile.label,
                    certificate=issued.certificate,
                    filename=cert_path.name if cert_path is not None else None,
                )
            )
        return entries


class ChainBuilder:
    def __init__(
        self,
        settings: "ChainSettings",
        store: Optional[OutputStore] = None,
        key_generator: Optional[KeyGenerator] = None,
        deriver: Optional[DNQualifierDeriver] = None,
        policies: Optional[ExtensionPolicy] = None,
        issuer: Optional[CertificateIssuer] = None,
    ) -> None:
        self.settings = settings
        self.store = store or OutputStore(settings.out_dir)
        self.key_generator = key_generator or KeyGenerator()
        self.deriver = deriver or DNQualifierDeriver()
        self.policies = policies or ExtensionPolicy()
        self.issuer = issuer or CertificateIssuer(validity_days=settings.validity_days)

    # ---------- public API ----------

    def build(self) -> IssuedChain:
        self._check_serials()
        removed = self.store.cleanup()
        if removed:
            logger.info("removed %d file(s) from a previous run in %s", len(removed), self.store.out_dir)

        chain = ChainFile()
        issued: Dict[Tier, IssuedCertificate] = {}
        parent: Optional[IssuedCertificate] = None
        for tier in CHAIN_ORDER:
            current = self.build_tier(tier, parent)
            chain.append(current.certificate)
            issued[tier] = current
            parent = current

        chain_path = chain.write(self.store.chain_path)
        logger.info("wrote certificate chain (%d certificates) to %s", len(chain), chain_path)
        return IssuedChain(
            root=issued[Tier.ROOT],
            intermediate=issued[Tier.INTERMEDIATE],
            leaf=issued[Tier.LEAF],
            chain=chain,
            chain_path=chain_path,
        )

    def build_tier(self, tier: Tier, parent: Optional[IssuedCertificate] = None) -> IssuedCertificate:
        if (tier.parent is None) != (parent is None) or (parent is not None and parent.tier is not tier.parent):
            raise IssuanceError(f"Tier {tier.value} cannot be issued by {parent.tier.value if parent else 'nobody'}")

        key_pair = self.key_generator.generate(self.settings.key_size)
        qualifier = self.deriver.derive_raw(key_pair.public_key)
        subject = self.subject_for(tier, qualifier)
        policy = self.policies.policy_for(tier)
        serial = self.settings.serials.for_tier(tier)

        paths: Dict[str, Path] = {"key": self.store.write_key(tier, key_pair)}
        if self.settings.write_policy_files:
            paths["cnf"] = self.store.write_policy(tier, policy.to_openssl_config())

        csr = None
        if parent is None:
            cert = self.issuer.issue_root(key_pair, subject, serial, policy)
        else:
            csr = self.issuer.build_csr(key_pair, subject)
            paths["csr"] = self.store.write_csr(tier, csr)
            cert = self.issuer.sign_csr(csr, serial, policy, parent.certificate, parent.key_pair)
        paths["cert"] = self.store.write_certificate(tier, cert)

        return IssuedCertificate(
            tier=tier,
            key_pair=key_pair,
            certificate=cert,
            subject=subject,
            qualifier=qualifier,
            csr=csr,
            paths=paths,
        )

    def subject_for(self, tier: Tier, qualifier: str) -> SubjectFields:
        subj = self.settings.subject
        return SubjectFields(
            organization=subj.organization,
            organizational_unit=subj.organizational_unit,
            common_name=tier.common_name(subj.entity),
            dn_qualifier=qualifier,
        )

    # ---------- internals ----------

    def _check_serials(self) -> None:
        serials: List[Tuple[Tier, int]] = [(t, self.settings.serials.for_tier(t)) for t in CHAIN_ORDER]
        seen: Dict[int, Tier] = {}
        for tier, serial in serials:
            if serial <= 0:
                raise IssuanceError(f"Serial for {tier.value} must be positive, got {serial}")
            if serial in seen:
                raise IssuanceError(f"Serial {serial} used by both {seen[serial].value} and {tier.value}")
            seen[serial] = tier
