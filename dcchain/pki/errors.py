# dcchain/pki/errors.py
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .verify import VerificationResult

__all__ = [
    "ChainError",
    "KeyGenerationError",
    "DNQualifierError",
    "PolicyError",
    "IssuanceError",
    "ChainValidationError",
    "OutputError",
]


class ChainError(RuntimeError):
    """Base class for every chain building failure. All of them are fatal."""


class KeyGenerationError(ChainError):
    pass


class DNQualifierError(ChainError):
    pass


class PolicyError(ChainError):
    pass


class IssuanceError(ChainError):
    pass


class ChainValidationError(ChainError):
    def __init__(self, message: str, result: Optional["VerificationResult"] = None) -> None:
        super().__init__(message)
        self.result = result


class OutputError(ChainError):
    pass
