# dcchain/pki/store.py
"""
Tier-prefixed output files in a single directory.

    ca.key  ca.cnf  ca.self-signed.pem
    intermediate.key  intermediate.cnf  intermediate.csr  intermediate.signed.pem
    leaf.key  leaf.cnf  leaf.csr  leaf.signed.pem
    certificate_chain

All writes go through a temp file in the same directory followed by
os.replace(), so a file is either the old or the new content.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding

from .errors import OutputError
from .keys import KeyPair
from .tiers import CHAIN_ORDER, Tier

logger = logging.getLogger(__name__)

__all__ = ["OutputStore", "atomic_write_bytes", "CHAIN_FILE_NAME"]

CHAIN_FILE_NAME = "certificate_chain"

KEY_MODE = 0o600
PUBLIC_MODE = 0o644


# ==========================
# Filesystem helpers
# ==========================

def atomic_write_bytes(target: Path, data: bytes, mode: int = KEY_MODE) -> None:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".tmp-", dir=str(target.parent))
    except OSError as e:
        raise OutputError(f"Cannot write {target}: {e}") from e
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, target)
    except OSError as e:
        raise OutputError(f"Cannot write {target}: {e}") from e
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


# ==========================
# Store
# ==========================

class OutputStore:
    def __init__(self, out_dir: Union[str, Path, None] = None) -> None:
        self.out_dir = Path(out_dir) if out_dir is not None else Path.cwd()

    # ---------- naming ----------

    def _path(self, tier: Tier, suffix: str) -> Path:
        return self.out_dir / f"{tier.profile.file_prefix}.{suffix}"

    def key_path(self, tier: Tier) -> Path:
        return self._path(tier, "key")

    def cnf_path(self, tier: Tier) -> Path:
        return self._path(tier, "cnf")

    def csr_path(self, tier: Tier) -> Optional[Path]:
        # Root is self-signed straight from its key
        if tier is Tier.ROOT:
            return None
        return self._path(tier, "csr")

    def cert_path(self, tier: Tier) -> Path:
        return self._path(tier, "self-signed.pem" if tier is Tier.ROOT else "signed.pem")

    @property
    def chain_path(self) -> Path:
        return self.out_dir / CHAIN_FILE_NAME

    # ---------- writers ----------

    def write_key(self, tier: Tier, key_pair: KeyPair) -> Path:
        path = self.key_path(tier)
        atomic_write_bytes(path, key_pair.private_pem(), mode=KEY_MODE)
        logger.info("wrote %s private key to %s", tier.value, path)
        return path

    def write_policy(self, tier: Tier, cnf_text: str) -> Path:
        path = self.cnf_path(tier)
        atomic_write_bytes(path, cnf_text.encode("utf-8"), mode=PUBLIC_MODE)
        logger.info("wrote %s policy descriptor to %s", tier.value, path)
        return path

    def write_csr(self, tier: Tier, csr: x509.CertificateSigningRequest) -> Path:
        path = self.csr_path(tier)
        if path is None:
            raise OutputError(f"Tier {tier.value} has no signing request")
        atomic_write_bytes(path, csr.public_bytes(Encoding.PEM), mode=PUBLIC_MODE)
        logger.info("wrote %s signing request to %s", tier.value, path)
        return path

    def write_certificate(self, tier: Tier, cert: x509.Certificate) -> Path:
        path = self.cert_path(tier)
        atomic_write_bytes(path, cert.public_bytes(Encoding.PEM), mode=PUBLIC_MODE)
        logger.info("wrote %s certificate to %s", tier.value, path)
        return path

    # ---------- cleanup ----------

    def is_managed(self, path: Path) -> bool:
        name = path.name
        if name == CHAIN_FILE_NAME:
            return True
        return any(name.startswith(f"{t.profile.file_prefix}.") for t in CHAIN_ORDER)

    def cleanup(self) -> List[Path]:
        """Remove artifacts of an earlier run; returns what was deleted."""
        removed: List[Path] = []
        if not self.out_dir.is_dir():
            return removed
        for entry in sorted(self.out_dir.iterdir()):
            if not entry.is_file() or entry.is_symlink() or not self.is_managed(entry):
                continue
            try:
                entry.unlink()
            except OSError as e:
                raise OutputError(f"Cannot remove {entry}: {e}") from e
            logger.debug("removed %s", entry)
            removed.append(entry)
        return removed
