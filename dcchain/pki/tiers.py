# dcchain/pki/tiers.py
"""
The three certificate tiers of a digital cinema chain.

Root (self-signed trust anchor) issues Intermediate, Intermediate issues
Leaf (the content signer used for CPL/PKL signatures). The set is closed:
every tier carries its constant profile, nothing is registered at runtime.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional, Tuple

__all__ = ["Tier", "TierProfile", "CHAIN_ORDER"]


@dataclass(frozen=True)
class TierProfile:
    ca: bool
    path_length: int
    key_usage: FrozenSet[str]
    cn_suffix: str
    role_prefix: Optional[str]
    default_serial: int
    file_prefix: str
    label: str
    # authorityKeyIdentifier: keyid "always" vs only when the issuer has one
    aki_keyid_always: bool
    aki_issuer_always: bool


_PROFILES = {
    "root": TierProfile(
        ca=True,
        path_length=3,
        key_usage=frozenset({"key_cert_sign", "crl_sign"}),
        cn_suffix="ROOT",
        role_prefix=None,
        default_serial=5,
        file_prefix="ca",
        label="Self-signed CA certificate (issuer == subject)",
        aki_keyid_always=True,
        aki_issuer_always=True,
    ),
    "intermediate": TierProfile(
        ca=True,
        path_length=2,
        key_usage=frozenset({"key_cert_sign", "crl_sign"}),
        cn_suffix="INTERMEDIATE",
        role_prefix=None,
        default_serial=6,
        file_prefix="intermediate",
        label="Intermediate certificate",
        aki_keyid_always=True,
        aki_issuer_always=True,
    ),
    "leaf": TierProfile(
        ca=False,
        path_length=0,
        key_usage=frozenset({"digital_signature", "key_encipherment"}),
        cn_suffix="LEAF",
        role_prefix="CS",  # content signer/creator
        default_serial=7,
        file_prefix="leaf",
        label="Leaf certificate",
        aki_keyid_always=False,
        aki_issuer_always=True,
    ),
}


class Tier(str, Enum):
    ROOT = "root"
    INTERMEDIATE = "intermediate"
    LEAF = "leaf"

    @property
    def profile(self) -> TierProfile:
        return _PROFILES[self.value]

    @property
    def is_ca(self) -> bool:
        return self.profile.ca

    @property
    def path_length(self) -> int:
        return self.profile.path_length

    @property
    def parent(self) -> Optional["Tier"]:
        idx = CHAIN_ORDER.index(self)
        return CHAIN_ORDER[idx - 1] if idx > 0 else None

    def common_name(self, entity: str) -> str:
        """CN value for this tier, e.g. ``dcstore.ROOT`` or ``CS dcstore.LEAF``."""
        cn = f"{entity}.{self.profile.cn_suffix}"
        if self.profile.role_prefix:
            cn = f"{self.profile.role_prefix} {cn}"
        return cn


CHAIN_ORDER: Tuple[Tier, ...] = (Tier.ROOT, Tier.INTERMEDIATE, Tier.LEAF)
