"""Exception types raised while issuing certificates.

Every failure aborts the current issuance; callers catch `TLSGenError` to
handle them all or one of the subclasses below for a specific stage.
"""
from __future__ import annotations


class TLSGenError(Exception):
    """Base class for all tlsgen errors."""


class RandomnessError(TLSGenError):
    """The secure random source could not supply a serial number."""


class KeyGenerationError(TLSGenError):
    """Invalid key size or the key pair could not be generated."""


class InvalidIssuerError(TLSGenError, ValueError):
    """Supplied CA certificate/key cannot be parsed or do not belong together."""


class SigningError(TLSGenError, ValueError):
    """The template was rejected while building or signing the certificate."""


class CAMaterialError(TLSGenError, OSError):
    """CA material could not be read from a file, the environment or a provider."""


class TrustPoolError(TLSGenError, ValueError):
    """A trust file is unreadable or holds no parseable certificate."""
