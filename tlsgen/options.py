"""Certificate configuration: immutable config records and the builder that
assembles them.

`CertificateOptions` applies defaults first and user overrides on top, then
`build()` freezes the result into a `CertificateConfig`. CA material read
from files, the environment or a provider is resolved to bytes here, before
any issuance starts.
"""
from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field, replace
from typing import Callable, Optional, Tuple

import structlog
from dotenv import find_dotenv, load_dotenv

from tlsgen.crypto.keys import MIN_KEY_BITS
from tlsgen.errors import CAMaterialError, KeyGenerationError

logger = structlog.get_logger()

DEFAULT_KEY_BITS = 2048

DEFAULT_CA_COMMON_NAME = "TLSGen Certification Authority"
DEFAULT_HOSTS = ("localhost", "127.0.0.1")


class Role(enum.Enum):
    CERTIFICATE_AUTHORITY = "ca"
    SERVER = "server"
    CLIENT = "client"

    @property
    def is_server(self) -> bool:
        return self is Role.SERVER


@dataclass(frozen=True)
class Subject:
    common_name: str = ""
    organization: Tuple[str, ...] = ()
    organizational_unit: Tuple[str, ...] = ()
    country: Tuple[str, ...] = ()
    province: Tuple[str, ...] = ()
    locality: Tuple[str, ...] = ()


@dataclass(frozen=True)
class IssuerMaterial:
    """PEM-encoded CA certificate and private key used to sign leaves."""

    certificate: bytes
    key: bytes


@dataclass(frozen=True)
class CertificateConfig:
    hosts: Tuple[str, ...] = ()
    subject: Subject = field(default_factory=Subject)
    key_bits: int = DEFAULT_KEY_BITS
    role: Role = Role.SERVER
    issuer: Optional[IssuerMaterial] = None


DEFAULT_SUBJECT = Subject(
    organization=("tlsgen",),
    organizational_unit=("IT Department",),
    country=("US",),
    province=("State",),
    locality=("City",),
)


def _read(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as exc:
        raise CAMaterialError(f"cannot read ca material from {path!r}") from exc


class CertificateOptions:
    """Builder for `CertificateConfig` with chainable named setters.

    Use `for_ca()` or `for_leaf()` to start from the stock defaults:

        config = (CertificateOptions.for_leaf()
                  .hosts("api.internal", "10.0.0.7:8443")
                  .ca_from_file("certs/ca-cert.crt", "certs/ca-private.key")
                  .build())
    """

    def __init__(self, config: CertificateConfig | None = None):
        self._config = config if config is not None else CertificateConfig()

    @classmethod
    def for_ca(cls) -> "CertificateOptions":
        return cls(CertificateConfig(
            subject=replace(DEFAULT_SUBJECT, common_name=DEFAULT_CA_COMMON_NAME),
            role=Role.CERTIFICATE_AUTHORITY,
        ))

    @classmethod
    def for_leaf(cls) -> "CertificateOptions":
        return cls(CertificateConfig(
            hosts=DEFAULT_HOSTS,
            subject=DEFAULT_SUBJECT,
            role=Role.SERVER,
        ))

    def _set(self, **changes) -> "CertificateOptions":
        self._config = replace(self._config, **changes)
        return self

    def _set_subject(self, **changes) -> "CertificateOptions":
        return self._set(subject=replace(self._config.subject, **changes))

    def hosts(self, *hosts: str) -> "CertificateOptions":
        return self._set(hosts=tuple(hosts))

    def ca_from_bytes(self, cert: bytes, key: bytes) -> "CertificateOptions":
        return self._set(issuer=IssuerMaterial(certificate=cert, key=key))

    def ca_from_file(self, certfile: str, keyfile: str) -> "CertificateOptions":
        return self.ca_from_bytes(_read(certfile), _read(keyfile))

    def ca_from_environment(self, cert_env_key: str, key_env_key: str) -> "CertificateOptions":
        """Read the CA file paths from two environment variables (a `.env`
        file in the working directory is loaded first) and load them."""
        load_dotenv(find_dotenv(usecwd=True))
        paths = []
        for name in (cert_env_key, key_env_key):
            value = os.getenv(name)
            if not value:
                raise CAMaterialError(f"environment variable {name} is not set")
            paths.append(value)
        return self.ca_from_file(*paths)

    def ca_from_provider(self, fn: Callable[[], Tuple[bytes, bytes, Optional[Exception]]]) -> "CertificateOptions":
        """Install CA material returned by `fn` only when it reports success."""
        try:
            cert, key, err = fn()
        except Exception as exc:
            raise CAMaterialError("ca provider failed") from exc
        if err is not None:
            raise CAMaterialError("ca provider failed") from err
        if not cert or not key:
            logger.warning("ca provider returned empty material")
            raise CAMaterialError("ca provider returned empty material")
        return self.ca_from_bytes(cert, key)

    def common_name(self, common_name: str) -> "CertificateOptions":
        return self._set_subject(common_name=common_name)

    def organization(self, *org: str) -> "CertificateOptions":
        return self._set_subject(organization=tuple(org))

    def organizational_unit(self, *org_unit: str) -> "CertificateOptions":
        return self._set_subject(organizational_unit=tuple(org_unit))

    def country(self, *country: str) -> "CertificateOptions":
        return self._set_subject(country=tuple(country))

    def province(self, *province: str) -> "CertificateOptions":
        return self._set_subject(province=tuple(province))

    def locality(self, *locality: str) -> "CertificateOptions":
        return self._set_subject(locality=tuple(locality))

    def key_bits(self, bits: int) -> "CertificateOptions":
        if isinstance(bits, bool) or not isinstance(bits, int):
            raise KeyGenerationError(f"key size must be an integer, got {bits!r}")
        if bits < MIN_KEY_BITS:
            logger.warning("weak key size requested", key_bits=bits, minimum=MIN_KEY_BITS)
        return self._set(key_bits=bits)

    def role(self, role: Role) -> "CertificateOptions":
        return self._set(role=Role(role))

    def build(self) -> CertificateConfig:
        return self._config
