# dcchain/pki/chainfile.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives.serialization import Encoding

from .errors import ChainValidationError
from .names import name_to_slash
from .store import atomic_write_bytes
from .verify import ChainValidator, VerificationResult, load_pem_bundle

logger = logging.getLogger(__name__)

__all__ = ["ChainFile"]


class ChainFile:
    """
    Root-first concatenation of PEM certificates.

    A certificate is only appended after it verifies against everything
    already in the file (the first one against itself), so the file is a
    valid chain prefix at every point.
    """

    def __init__(self, validator: Optional[ChainValidator] = None) -> None:
        self._validator = validator or ChainValidator()
        self._certs: List[x509.Certificate] = []

    @property
    def certificates(self) -> List[x509.Certificate]:
        return list(self._certs)

    def __len__(self) -> int:
        return len(self._certs)

    def __iter__(self) -> Iterator[x509.Certificate]:
        return iter(list(self._certs))

    def append(self, cert: x509.Certificate) -> VerificationResult:
        anchors = self._certs or [cert]
        result = self._validator.verify(anchors, cert)
        if not result.ok:
            raise ChainValidationError(
                f"Refusing to append {name_to_slash(cert.subject)} to chain: {result.error}",
                result,
            )
        self._certs.append(cert)
        logger.debug("chain now holds %d certificate(s)", len(self._certs))
        return result

    def to_pem(self) -> bytes:
        return b"".join(c.public_bytes(Encoding.PEM) for c in self._certs)

    def write(self, path: Union[str, Path]) -> Path:
        target = Path(path)
        atomic_write_bytes(target, self.to_pem(), mode=0o644)
        return target

    @classmethod
    def load(cls, path: Union[str, Path], validator: Optional[ChainValidator] = None) -> "ChainFile":
        """Read a chain file back, re-verifying every certificate in order."""
        chain = cls(validator)
        for cert in load_pem_bundle(path):
            chain.append(cert)
        return chain
