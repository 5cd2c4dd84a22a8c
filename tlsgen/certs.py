"""Certificate issuance: a self-signed CA, and server/client leaves signed by
themselves or by a supplied CA.

Both entry points run one linear pipeline (template, SANs, issuer, subject
key, signature) and either return the PEM certificate together with its PEM
private key or raise; nothing partial is ever returned.
"""
from __future__ import annotations

from dataclasses import dataclass

import structlog
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509.oid import ExtendedKeyUsageOID

from tlsgen.crypto import keys
from tlsgen.crypto.issuer import ChainSigned, Resolution, SelfSigned, resolve_issuer, signature_hash
from tlsgen.crypto.san import classify_hosts
from tlsgen.crypto.template import CertificateTemplate, new_template
from tlsgen.errors import SigningError
from tlsgen.options import CertificateConfig, Role

logger = structlog.get_logger()


@dataclass(frozen=True)
class IssuedCertificate:
    certificate: bytes
    private_key: bytes


def _sign(template: CertificateTemplate, subject_key, issuer: Resolution) -> x509.Certificate:
    try:
        subject = template.subject_name()
        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .public_key(subject_key.public_key())
            .serial_number(template.serial_number)
            .not_valid_before(template.not_before)
            .not_valid_after(template.not_after)
        )
        for ext, critical in template.extensions():
            builder = builder.add_extension(ext, critical=critical)
        if template.is_ca:
            builder = builder.add_extension(
                x509.SubjectKeyIdentifier.from_public_key(subject_key.public_key()), critical=False
            )

        if isinstance(issuer, ChainSigned):
            builder = builder.issuer_name(issuer.ca_certificate.subject)
            builder = builder.add_extension(issuer.authority_key_identifier(), critical=False)
            signing_key = issuer.ca_private_key
        else:
            builder = builder.issuer_name(subject)
            signing_key = subject_key

        return builder.sign(private_key=signing_key, algorithm=signature_hash(signing_key))
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise SigningError(f"certificate rejected: {exc}") from exc


def _encode(cert: x509.Certificate, subject_key, role: Role, issuer: Resolution) -> IssuedCertificate:
    issued = IssuedCertificate(
        certificate=cert.public_bytes(serialization.Encoding.PEM),
        private_key=keys.encode_private_key(subject_key),
    )
    logger.info(
        "issued certificate",
        role=role.value,
        serial=format(cert.serial_number, "x"),
        issuer=issuer.mode,
        fingerprint=cert.fingerprint(hashes.SHA256()).hex(),
    )
    return issued


def generate_ca_certificate(config: CertificateConfig) -> IssuedCertificate:
    """Issue a self-signed CA certificate.

    Any issuer material and hosts in `config` are ignored.
    """
    template = new_template(config)
    template.is_ca = True
    template.key_usage.add("key_cert_sign")
    template.ext_key_usage = [ExtendedKeyUsageOID.ANY_EXTENDED_KEY_USAGE]

    priv = keys.generate_key_pair(config.key_bits)
    issuer = SelfSigned()
    cert = _sign(template, priv, issuer)
    return _encode(cert, priv, Role.CERTIFICATE_AUTHORITY, issuer)


def generate_certificate(config: CertificateConfig) -> IssuedCertificate:
    """Issue a server or client certificate.

    Server certificates get `config.hosts` as SANs. Every other role,
    CERTIFICATE_AUTHORITY included, is issued as a client certificate without
    SANs; CA certificates come from `generate_ca_certificate`.

    The certificate is signed by `config.issuer` when present, else by its
    own key. The CA material is checked before the subject key is made.
    """
    template = new_template(config)
    role = Role.SERVER if config.role.is_server else Role.CLIENT

    if role is Role.SERVER:
        sans = classify_hosts(config.hosts)
        template.ip_addresses = sans.ip_addresses
        template.dns_names = sans.dns_names
        template.ext_key_usage = [ExtendedKeyUsageOID.CLIENT_AUTH, ExtendedKeyUsageOID.SERVER_AUTH]
    else:
        template.ext_key_usage = [ExtendedKeyUsageOID.CLIENT_AUTH]
        template.key_usage = {"digital_signature"}

    issuer = resolve_issuer(config.issuer)
    priv = keys.generate_key_pair(config.key_bits)
    cert = _sign(template, priv, issuer)
    return _encode(cert, priv, role, issuer)
