# dcchain/pki/verify.py
"""
Trust-anchor chain validation with `openssl verify -CAfile <anchors>` semantics.

Every certificate in the anchor set is trusted. The path is built upward
from the target by issuer name and signature until a self-signed
certificate that is itself an anchor is reached. Along the way:

- each signature must verify against the next certificate up,
- each certificate must be inside its validity window at `at`,
- each issuing certificate must be a CA (basicConstraints CA:true) and,
  when keyUsage is present, allow keyCertSign,
- pathLenConstraint of every issuing CA must not be exceeded.

No purpose/EKU checks are done on the target, so a root or intermediate
verifies as a target as well ("root validates against itself").
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Union

from cryptography import x509
from cryptography.exceptions import InvalidSignature

from .errors import ChainValidationError
from .names import name_to_slash

logger = logging.getLogger(__name__)

__all__ = [
    "VerificationResult",
    "ChainValidator",
    "load_pem_bundle",
    "ERR_NO_ISSUER",
    "ERR_SELF_SIGNED",
    "ERR_SELF_SIGNED_IN_CHAIN",
    "ERR_SIGNATURE",
    "ERR_EXPIRED",
    "ERR_NOT_YET_VALID",
    "ERR_INVALID_CA",
    "ERR_KEY_USAGE",
    "ERR_PATH_LENGTH",
    "ERR_PATH_LOOP",
]

ERR_NO_ISSUER = "unable to get local issuer certificate"
ERR_SELF_SIGNED = "self-signed certificate"
ERR_SELF_SIGNED_IN_CHAIN = "self-signed certificate in certificate chain"
ERR_SIGNATURE = "certificate signature failure"
ERR_EXPIRED = "certificate has expired"
ERR_NOT_YET_VALID = "certificate is not yet valid"
ERR_INVALID_CA = "invalid CA certificate"
ERR_KEY_USAGE = "key usage does not include certificate signing"
ERR_PATH_LENGTH = "path length constraint exceeded"
ERR_PATH_LOOP = "certificate path does not terminate"


@dataclass
class VerificationResult:
    ok: bool
    error: Optional[str] = None
    # Target first, trust anchor last
    path: List[x509.Certificate] = field(default_factory=list)
    # Position in path of the certificate the error refers to
    depth: Optional[int] = None

    def __bool__(self) -> bool:
        return self.ok

    def describe(self) -> str:
        if self.ok:
            return "OK"
        where = f" at depth {self.depth}" if self.depth is not None else ""
        return f"error{where}: {self.error}"


def _is_self_issued(cert: x509.Certificate) -> bool:
    return cert.issuer == cert.subject


def _signed_by(cert: x509.Certificate, issuer: x509.Certificate) -> bool:
    try:
        cert.verify_directly_issued_by(issuer)
        return True
    except (ValueError, TypeError, InvalidSignature):
        return False


def _basic_constraints(cert: x509.Certificate) -> Optional[x509.BasicConstraints]:
    try:
        return cert.extensions.get_extension_for_class(x509.BasicConstraints).value
    except x509.ExtensionNotFound:
        return None


def _key_usage(cert: x509.Certificate) -> Optional[x509.KeyUsage]:
    try:
        return cert.extensions.get_extension_for_class(x509.KeyUsage).value
    except x509.ExtensionNotFound:
        return None


class ChainValidator:
    def __init__(self, at: Optional[dt.datetime] = None) -> None:
        # None means "now" at each verify() call
        self._at = at

    def _moment(self) -> dt.datetime:
        return self._at or dt.datetime.now(dt.timezone.utc)

    def verify(
        self,
        trust_anchors: Sequence[x509.Certificate],
        cert: x509.Certificate,
        untrusted: Sequence[x509.Certificate] = (),
    ) -> VerificationResult:
        """
        `untrusted` certificates may be used to build the path but never end
        it; a self-signed one reached that way is not a trust anchor.
        """
        anchors = list(trust_anchors)
        pool = anchors + [c for c in untrusted if c not in anchors]
        path: List[x509.Certificate] = [cert]
        current = cert

        # -- path building --
        while True:
            if _is_self_issued(current):
                if not _signed_by(current, current):
                    return VerificationResult(False, ERR_SIGNATURE, path, len(path) - 1)
                if current not in anchors:
                    err = ERR_SELF_SIGNED if len(path) == 1 else ERR_SELF_SIGNED_IN_CHAIN
                    return VerificationResult(False, err, path, len(path) - 1)
                break
            if len(path) > len(pool) + 1:
                return VerificationResult(False, ERR_PATH_LOOP, path, len(path) - 1)

            candidates = [a for a in pool if a.subject == current.issuer and a not in path]
            if not candidates:
                return VerificationResult(False, ERR_NO_ISSUER, path, len(path) - 1)
            issuer = next((c for c in candidates if _signed_by(current, c)), None)
            if issuer is None:
                return VerificationResult(False, ERR_SIGNATURE, path, len(path) - 1)
            path.append(issuer)
            current = issuer

        # -- checks along the path --
        now = self._moment()
        for depth, c in enumerate(path):
            if now < c.not_valid_before_utc:
                return VerificationResult(False, ERR_NOT_YET_VALID, path, depth)
            if now > c.not_valid_after_utc:
                return VerificationResult(False, ERR_EXPIRED, path, depth)

        for depth in range(1, len(path)):
            ca = path[depth]
            bc = _basic_constraints(ca)
            if bc is None or not bc.ca:
                return VerificationResult(False, ERR_INVALID_CA, path, depth)
            ku = _key_usage(ca)
            if ku is not None and not ku.key_cert_sign:
                return VerificationResult(False, ERR_KEY_USAGE, path, depth)
            if bc.path_length is not None:
                # CA certificates between this one and the target, self-issued ones excluded
                below = sum(1 for c in path[1:depth] if not _is_self_issued(c))
                if below > bc.path_length:
                    return VerificationResult(False, ERR_PATH_LENGTH, path, depth)

        logger.debug(
            "verified %s via %d certificate(s)",
            name_to_slash(cert.subject),
            len(path),
        )
        return VerificationResult(True, None, path, None)

    def check(
        self,
        trust_anchors: Sequence[x509.Certificate],
        cert: x509.Certificate,
        untrusted: Sequence[x509.Certificate] = (),
    ) -> VerificationResult:
        result = self.verify(trust_anchors, cert, untrusted)
        if not result.ok:
            raise ChainValidationError(
                f"{name_to_slash(cert.subject)}: {result.describe()}",
                result,
            )
        return result


def load_pem_bundle(source: Union[str, Path, bytes]) -> List[x509.Certificate]:
    """Load every certificate of a concatenated PEM file (or PEM bytes)."""
    data = source if isinstance(source, bytes) else Path(source).read_bytes()
    try:
        return x509.load_pem_x509_certificates(data)
    except ValueError as e:
        raise ChainValidationError(f"Cannot parse PEM certificates: {e}") from e
